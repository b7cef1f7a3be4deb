"""
The JSONL envelope protocol spoken by the instrument.

Each message is one JSON object per line. Requests carry a type, a random id and a message (msg);
responses add a code and an error text. A code of 0 means success.
"""

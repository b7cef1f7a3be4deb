"""
Administration of LUCIDAC instruments

- Endpoint: where an instrument is reached, a network address (net://host:port) or a
  serial device (serial://dev/ttyACM0). Parsed from URLs with parse_endpoint().
- Conduit: abstraction of a bi-directional channel. Combines 2 streams for reading and writing.
  Opening an endpoint gives a conduit.
- Controller: holds the conversation with one instrument over a conduit. Requests are
  JSON lines with a type, id and msg; responses add a code and an error.
- Discovery: instruments announce themselves over zeroconf. A discovery session
  collects the announcements for a short time window.
- Proxy web server: bridges a websocket to the instrument, so that the browser GUI
  can talk to instruments that are only reachable from this machine (e.g. via USB).
"""

__version__ = '0.1.0'

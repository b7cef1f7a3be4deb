"""
The proxy web server: exposes an instrument connection to browsers over a websocket,
next to an identification document and optionally the static GUI assets.
"""

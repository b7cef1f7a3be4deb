"""
A connector describes where an instrument can be reached and knows how to open a conduit to it.

Two endpoint types exist, NetworkEndpoint (host and port) and SerialEndpoint (device path).
Endpoints are usually created from a URL with parse_endpoint().
"""
from luciadmin.connector.base import ConnectorError, Endpoint, ParseError, TransportError
from luciadmin.connector.endpoint import parse_endpoint
from luciadmin.connector.serialconn import SerialEndpoint
from luciadmin.connector.socketconn import DEFAULT_PORT, NetworkEndpoint

__all__ = ['ConnectorError', 'Endpoint', 'ParseError', 'TransportError', 'parse_endpoint',
           'SerialEndpoint', 'NetworkEndpoint', 'DEFAULT_PORT']

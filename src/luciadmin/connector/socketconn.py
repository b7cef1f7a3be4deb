import logging
import socket

from luciadmin.conduit.base import Conduit
from luciadmin.conduit.socket_conduit import SocketConduit
from luciadmin.connector.base import Endpoint, TransportError

logger = logging.getLogger(__name__)

# the instrument serves the JSONL protocol on this port
DEFAULT_PORT = 5732

# seconds
connect_timeout = 5


class NetworkEndpoint(Endpoint):
    """
    Describes a TCP server endpoint, such as an instrument on the local network.
    """
    scheme = 'net'

    def __init__(self, host: str, port: int = DEFAULT_PORT):
        self.host = host
        self.port = port

    def is_valid(self):
        """
        >>> NetworkEndpoint('1.2.3.4', 0).is_valid()
        False
        >>> NetworkEndpoint('', 5732).is_valid()
        False
        """
        return bool(self.host) and self.port != 0

    def host_port(self):
        """
        >>> NetworkEndpoint('1.2.3.4', 55).host_port()
        '1.2.3.4:55'
        >>> NetworkEndpoint('fe80::1', 55).host_port()
        '[fe80::1]:55'
        """
        host = self.host
        if ':' in host:
            host = '[' + host + ']'
        return '%s:%d' % (host, self.port)

    def to_url(self):
        return self.scheme + '://' + self.host_port()

    def gui_url(self):
        """
        >>> NetworkEndpoint('lucidac-01.local').gui_url()
        'http://lucidac-01.local/lucigui/'
        """
        host = '[' + self.host + ']' if ':' in self.host else self.host
        return 'http://' + host + '/lucigui/'

    def open(self, timeout=None) -> Conduit:
        """
        Connects a socket to the endpoint.
        :param timeout: how long to wait for the connection to be established, in seconds.
            Defaults to 5. Once connected the socket is blocking.
        """
        if timeout is None:
            timeout = connect_timeout
        if not self.is_valid():
            raise TransportError("invalid network endpoint %r" % self)
        try:
            sock = socket.create_connection((self.host, self.port), timeout)
            sock.settimeout(None)
        except OSError as e:
            logger.warning("error opening socket to %s: %s" % (self.host_port(), e))
            raise TransportError("cannot connect to %s: %s" % (self.to_url(), e)) from e
        logger.info("opened socket to %s" % self.host_port())
        return SocketConduit(sock)

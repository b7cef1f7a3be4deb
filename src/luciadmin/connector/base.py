import logging
from abc import abstractmethod

from luciadmin.conduit.base import Conduit
from luciadmin.support.mixins import ValueObjectMixin

logger = logging.getLogger(__name__)


class ConnectorError(Exception):
    """ Indicates an error condition with a connection. """


class ParseError(ConnectorError, ValueError):
    """ The endpoint description could not be understood. """


class TransportError(ConnectorError, IOError):
    """ The endpoint could not be opened. """


class Endpoint(ValueObjectMixin):
    """
    Describes where an instrument can be reached.
    Endpoints are immutable values; equal endpoints describe the same place.
    """

    @abstractmethod
    def is_valid(self) -> bool:
        """
        Determines if the endpoint holds useful data. This does not check whether
        the endpoint can actually be opened.
        """
        raise NotImplementedError

    @abstractmethod
    def to_url(self) -> str:
        """ renders the endpoint as a URL that parse_endpoint() understands. """
        raise NotImplementedError

    @abstractmethod
    def open(self, timeout=None) -> Conduit:
        """
        Opens a duplex stream to the endpoint.
        :param timeout: seconds to wait for the stream to be established. None uses the endpoint's default.
        raises TransportError when that is not possible.
        """
        raise NotImplementedError

    def gui_url(self):
        """ the URL of the GUI served by the instrument itself, None when it cannot serve one. """
        return None

    def __str__(self):
        return self.to_url()

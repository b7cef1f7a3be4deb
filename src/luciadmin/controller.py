"""
The Controller is the most important object in this package. It holds the conversation
with one instrument: requests are written as JSON lines and the answer is read back synchronously.

    with open_controller("net://1.2.3.4") as controller:
        response = controller.query("net_status")
        print(response.msg)

The controller is a thin layer above the envelope protocol. It does not know about the payloads.
"""
import logging
import threading
import warnings
from concurrent.futures import Future, TimeoutError as FutureTimeoutError

from luciadmin.conduit.base import Conduit
from luciadmin.connector.base import Endpoint
from luciadmin.connector.endpoint import parse_endpoint
from luciadmin.protocol.envelope import Request, Response, ProtocolWarning, is_echo, line_terminator

logger = logging.getLogger(__name__)


class ControllerError(IOError):
    """ The conversation with the instrument failed. """


class ConnectionClosedError(ControllerError):
    """ The instrument closed the stream. """


class CommandTimeoutError(ControllerError):
    """ The instrument did not answer in time. """


class Controller:
    """
    Talks to an instrument over an open conduit.

    A controller models a single sequential conversation and is not safe for concurrent use.
    After any I/O error the controller is closed and a new one has to be opened.

    :param endpoint: where the conduit leads to. Used for information only.
    :param conduit: the open duplex stream
    """

    def __init__(self, endpoint: Endpoint, conduit: Conduit):
        self.endpoint = endpoint
        self._conduit = conduit

    @classmethod
    def open(cls, endpoint: Endpoint, connect_timeout=None):
        """
        Opens the endpoint and returns a controller for it.
        :param connect_timeout: seconds to wait for a network connection, the endpoint's default when None.
        raises TransportError when the endpoint cannot be opened.
        """
        logger.info("connecting to %s" % endpoint)
        return cls(endpoint, endpoint.open(timeout=connect_timeout))

    @property
    def conduit(self) -> Conduit:
        return self._conduit

    @property
    def closed(self):
        return self._conduit is None

    def close(self):
        conduit = self._conduit
        self._conduit = None
        if conduit is not None:
            logger.info("closing connection to %s" % self.endpoint)
            conduit.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _check_open(self):
        conduit = self._conduit
        if conduit is None:
            raise ControllerError("cannot use uninitialized or closed controller for %s" % self.endpoint)
        return conduit

    def write_line(self, line):
        """
        Writes a raw line to the instrument, followed by CRLF.
        :param line: str or bytes, without line terminator
        """
        conduit = self._check_open()
        if isinstance(line, str):
            line = line.encode('utf-8')
        try:
            conduit.output.write(line + line_terminator)
            conduit.output.flush()
        except OSError:
            self.close()
            raise

    def read_line(self) -> str:
        """
        Reads the next raw line from the instrument, without line terminator.
        This blocks until a complete line is available.
        raises ConnectionClosedError when the instrument closed the stream.
        """
        conduit = self._check_open()
        try:
            data = conduit.input.readline()
        except (OSError, ValueError):
            # ValueError when the stream is closed under our feet
            self.close()
            raise
        if not data:
            self.close()
            raise ConnectionClosedError("connection to %s closed by the instrument" % self.endpoint)
        return data.decode('utf-8', errors='replace').rstrip('\r\n')

    def command(self, request: Request, timeout=None) -> Response:
        """
        Sends a request and waits for the response.

        Lines that are just the request reflected back (echo) are skipped. There is no
        limit on the number of lines read: without a timeout, an instrument that never
        answers blocks the caller forever.

        :param request: the request to send
        :param timeout: seconds to wait for the response. None waits forever.
        :return: the first line received that is not an echo, as a Response.
        raises ControllerError (an IOError) on I/O failure, CommandTimeoutError when the timeout elapses
        and EnvelopeError if the answer is not an envelope.
        """
        try:
            line = request.to_line()
        except (TypeError, ValueError) as e:
            raise ControllerError("cannot serialize %r: %s" % (request, e)) from e

        if timeout is None:
            return self._exchange(request, line)

        future = Future()

        def run():
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._exchange(request, line))
            except BaseException as e:
                future.set_exception(e)

        threading.Thread(target=run, name="command-%s" % request.type, daemon=True).start()
        try:
            return future.result(timeout)
        except FutureTimeoutError:
            self.close()
            raise CommandTimeoutError("no response to %s within %ss from %s" % (request.type, timeout,
                                                                                self.endpoint)) from None

    def _exchange(self, request: Request, line: bytes) -> Response:
        self.write_line(line)
        logger.debug("sent %s" % line)
        while True:
            received = self.read_line()
            if not received.strip():
                continue
            if is_echo(received, request):
                logger.debug("skipping echo %s" % received)
                continue
            logger.debug("received %s" % received)
            response = Response.from_line(received)
            if response.type != request.type:
                # the id is not checked either
                warnings.warn("expected response of type %s but got %s" % (request.type, response.type),
                              ProtocolWarning, stacklevel=3)
            return response

    def query(self, type: str, timeout=None) -> Response:
        """ sends a request without message. Some types, such as 'net_status', do not expect any. """
        return self.command(Request(type), timeout)

    def query_with_payload(self, type: str, payload: dict, timeout=None) -> Response:
        """ sends a request with the given payload as message. """
        return self.command(Request(type, payload), timeout)


def open_controller(endpoint, connect_timeout=None) -> Controller:
    """
    Opens a controller for an endpoint.
    :param endpoint: an Endpoint or an endpoint URL
    raises ParseError for a malformed URL and TransportError when the endpoint cannot be opened.
    """
    if isinstance(endpoint, str):
        endpoint = parse_endpoint(endpoint)
    return Controller.open(endpoint, connect_timeout)

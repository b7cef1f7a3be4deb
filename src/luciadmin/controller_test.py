import json
import socket
import unittest
import uuid
import warnings
from unittest.mock import Mock, patch

from hamcrest import assert_that, is_, calling, raises, equal_to, instance_of, has_length, contains_string

from luciadmin.conduit.socket_conduit import SocketConduit
from luciadmin.connector.socketconn import NetworkEndpoint
from luciadmin.controller import Controller, ControllerError, ConnectionClosedError, CommandTimeoutError, \
    open_controller
from luciadmin.protocol.envelope import Request, Response, ProtocolWarning, EnvelopeError

request_id = uuid.UUID("0b6e2f8c-5d1a-4c3e-9f7b-2a4d6c8e0f12")
endpoint = NetworkEndpoint("10.0.0.5")


def response_line(type, id=request_id, code=0, error="", msg=None):
    return json.dumps({"type": type, "id": str(id), "code": code, "error": error, "msg": msg}).encode() + b"\n"


class ControllerTestCase(unittest.TestCase):
    """ runs the controller against a socket pair, the test plays the instrument at the other end. """

    def setUp(self):
        local, self.device = socket.socketpair()
        self.device.settimeout(5)
        self.sut = Controller(endpoint, SocketConduit(local))

    def tearDown(self):
        self.sut.close()
        self.device.close()

    def device_says(self, *lines):
        self.device.sendall(b"".join(lines))

    def device_heard(self):
        data = b""
        while not data.endswith(b"\r\n"):
            data += self.device.recv(4096)
        return data


class CommandTest(ControllerTestCase):

    def test_end_to_end_with_echo(self):
        request = Request("net_status", None, request_id)
        self.device_says(request.to_line() + b"\r\n",
                         response_line("net_status", msg={"ip": "10.0.0.5"}))

        response = self.sut.command(request)

        assert_that(self.device_heard(), is_(
            b'{"type":"net_status","id":"0b6e2f8c-5d1a-4c3e-9f7b-2a4d6c8e0f12","msg":null}\r\n'))
        assert_that(response, is_(instance_of(Response)))
        assert_that(response.code, is_(0))
        assert_that(response.is_success(), is_(True))
        assert_that(response.id, is_(request_id))
        assert_that(response.msg, is_({"ip": "10.0.0.5"}))

    def test_without_echo(self):
        request = Request("net_get", None, request_id)
        self.device_says(response_line("net_get", msg={"wifi": {}}))
        assert_that(self.sut.command(request).msg, is_({"wifi": {}}))

    def test_several_echoes_and_blank_lines(self):
        request = Request("net_get", {"a": 1}, request_id)
        echo = request.to_line() + b"\r\n"
        self.device_says(echo, b"\r\n", echo, response_line("net_get", msg={"b": 2}))
        assert_that(self.sut.command(request).msg, is_({"b": 2}))

    def test_line_similar_to_echo_is_response(self):
        request = Request("net_get", None, request_id)
        other = Request("net_get", None, uuid.uuid4())
        self.device_says(other.to_line() + b"\n")
        response = self.sut.command(request)
        assert_that(response.id, is_(other.id))

    def test_error_response(self):
        self.device_says(response_line("net_set", code=-3, error="invalid key"))
        response = self.sut.command(Request("net_set", {}, request_id))
        assert_that(response.is_success(), is_(False))
        assert_that(response.error, is_("invalid key"))

    def test_type_mismatch_warns_but_returns(self):
        self.device_says(response_line("something_else"))
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            response = self.sut.command(Request("net_status", None, request_id))
        assert_that(response.type, is_("something_else"))
        caught = [w for w in caught if issubclass(w.category, ProtocolWarning)]
        assert_that(caught, has_length(1))
        assert_that(str(caught[0].message), contains_string("net_status"))

    def test_stale_id_accepted(self):
        stale = uuid.uuid4()
        self.device_says(response_line("net_status", id=stale))
        assert_that(self.sut.command(Request("net_status", None, request_id)).id, is_(stale))

    def test_undecodable_response(self):
        self.device_says(b"booting firmware 1.0\n")
        assert_that(calling(self.sut.command).with_args(Request("net_status")), raises(EnvelopeError))
        assert_that(self.sut.closed, is_(False))

    def test_instrument_closes_stream(self):
        self.device.shutdown(socket.SHUT_WR)
        assert_that(calling(self.sut.command).with_args(Request("net_status")), raises(ConnectionClosedError))
        assert_that(self.sut.closed, is_(True))

    def test_closed_controller(self):
        self.sut.close()
        assert_that(calling(self.sut.command).with_args(Request("net_status")),
                    raises(ControllerError, "uninitialized or closed"))

    def test_unserializable_request(self):
        assert_that(calling(self.sut.command).with_args(Request("net_set", {"x": {1, 2}})),
                    raises(ControllerError, "cannot serialize"))

    def test_controller_error_is_io_error(self):
        assert_that(issubclass(ControllerError, IOError), is_(True))

    def test_query(self):
        self.device_says(response_line("net_status"))
        self.sut.query("net_status")
        sent = json.loads(self.device_heard())
        assert_that(sent["type"], is_("net_status"))
        assert_that(sent["msg"], is_(None))
        uuid.UUID(sent["id"])

    def test_query_with_payload(self):
        self.device_says(response_line("net_set"))
        self.sut.query_with_payload("net_set", {"wifi": {"ssid": "lab"}})
        sent = json.loads(self.device_heard())
        assert_that(sent["msg"], is_({"wifi": {"ssid": "lab"}}))


class CommandTimeoutTest(ControllerTestCase):

    def test_answer_within_timeout(self):
        self.device_says(response_line("net_status"))
        response = self.sut.command(Request("net_status", None, request_id), timeout=5)
        assert_that(response.type, is_("net_status"))
        assert_that(self.sut.closed, is_(False))

    def test_no_answer(self):
        assert_that(calling(self.sut.command).with_args(Request("net_status"), timeout=0.1),
                    raises(CommandTimeoutError, "net_status"))
        assert_that(self.sut.closed, is_(True))

    def test_errors_are_passed_on(self):
        self.device.shutdown(socket.SHUT_WR)
        assert_that(calling(self.sut.query).with_args("net_status", timeout=5), raises(ConnectionClosedError))


class RawLineTest(ControllerTestCase):

    def test_write_line_appends_crlf(self):
        self.sut.write_line("hello")
        assert_that(self.device_heard(), is_(b"hello\r\n"))

    def test_read_line_strips_terminator(self):
        self.device_says(b"first\r\nsecond\n")
        assert_that(self.sut.read_line(), is_("first"))
        assert_that(self.sut.read_line(), is_("second"))

    def test_write_error_closes(self):
        conduit = Mock()
        conduit.output.write.side_effect = BrokenPipeError("gone")
        sut = Controller(endpoint, conduit)
        assert_that(calling(sut.write_line).with_args("x"), raises(BrokenPipeError))
        assert_that(sut.closed, is_(True))
        conduit.close.assert_called_once_with()

    def test_read_error_closes(self):
        conduit = Mock()
        conduit.input.readline.side_effect = ConnectionResetError("reset")
        sut = Controller(endpoint, conduit)
        assert_that(calling(sut.read_line), raises(ConnectionResetError))
        assert_that(sut.closed, is_(True))


class OpenControllerTest(unittest.TestCase):

    def test_context_manager_closes(self):
        conduit = Mock()
        with Controller(endpoint, conduit) as sut:
            assert_that(sut.conduit, is_(conduit))
        conduit.close.assert_called_once_with()
        assert_that(sut.closed, is_(True))

    @patch.object(NetworkEndpoint, 'open')
    def test_open_controller_from_url(self, open):
        sut = open_controller("net://1.2.3.4:99", connect_timeout=2)
        assert_that(sut.endpoint, is_(equal_to(NetworkEndpoint("1.2.3.4", 99))))
        assert_that(sut.conduit, is_(open.return_value))
        open.assert_called_once_with(timeout=2)

    @patch.object(NetworkEndpoint, 'open')
    def test_open_controller_from_endpoint(self, open):
        sut = open_controller(endpoint)
        assert_that(sut.endpoint, is_(endpoint))
        open.assert_called_once_with(timeout=None)

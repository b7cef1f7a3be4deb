import unittest
from unittest.mock import patch

from hamcrest import assert_that, is_, calling, raises, instance_of, none
from serial import SerialException

from luciadmin.conduit.serial_conduit import SerialConduit
from luciadmin.connector.base import TransportError
from luciadmin.connector.serialconn import SerialEndpoint, BAUD_RATE


class SerialEndpointTest(unittest.TestCase):

    def test_validity(self):
        assert_that(SerialEndpoint("/dev/ttyACM0").is_valid(), is_(True))
        assert_that(SerialEndpoint("").is_valid(), is_(False))

    def test_to_url(self):
        assert_that(SerialEndpoint("/dev/ttyACM0").to_url(), is_("serial://dev/ttyACM0"))
        assert_that(SerialEndpoint("COM3").to_url(), is_("serial://COM3"))

    def test_no_gui(self):
        assert_that(SerialEndpoint("COM3").gui_url(), is_(none()))

    def test_open_invalid(self):
        assert_that(calling(SerialEndpoint("").open), raises(TransportError))

    @patch('luciadmin.connector.serialconn.Serial')
    def test_open_discards_buffered_input(self, serial):
        conduit = SerialEndpoint("/dev/ttyACM0").open()
        serial.assert_called_once()
        args, kwargs = serial.call_args
        assert_that(kwargs['port'], is_("/dev/ttyACM0"))
        assert_that(kwargs['baudrate'], is_(BAUD_RATE))
        serial.return_value.reset_input_buffer.assert_called_once_with()
        assert_that(conduit, is_(instance_of(SerialConduit)))
        assert_that(conduit.target, is_(serial.return_value))

    @patch('luciadmin.connector.serialconn.Serial', side_effect=SerialException("no such device"))
    def test_open_failure(self, serial):
        assert_that(calling(SerialEndpoint("/dev/nothing").open), raises(TransportError, "no such device"))

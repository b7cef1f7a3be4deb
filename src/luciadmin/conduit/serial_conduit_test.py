import unittest
from unittest.mock import Mock, patch

from hamcrest import assert_that, is_

from luciadmin.conduit.serial_conduit import SerialConduit, serial_port_info


class SerialConduitTest(unittest.TestCase):
    def test(self):
        serial = Mock()
        sut = SerialConduit(serial)

        assert_that(sut.target, is_(serial))
        assert_that(sut.input, is_(serial))
        assert_that(sut.output, is_(serial))

        serial.is_open = True
        assert_that(sut.open, is_(True))
        serial.is_open = False
        assert_that(sut.open, is_(False))

        sut.close()
        serial.close.assert_called_once()

    def test_assigns_flush_to_noflush(self):
        ser = Mock()
        sut = SerialConduit(ser)
        assert_that(ser.flush, is_(sut._no_flush))
        ser.flush()

    @patch('serial.tools.list_ports.comports', return_value=["p1", "p2"])
    def test_function_serial_port_info(self, comports):
        assert_that(serial_port_info(), is_(("p1", "p2")))
        comports.assert_called_once()

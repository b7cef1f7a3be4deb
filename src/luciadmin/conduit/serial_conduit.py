"""
Implements a conduit over a serial port.
"""

import logging

import serial
from serial.tools import list_ports

from luciadmin.conduit.base import Conduit

logger = logging.getLogger(__name__)


class SerialConduit(Conduit):
    """
    A conduit that provides comms via a serial port.
    """

    def __init__(self, ser: serial.Serial):
        self.ser = ser
        # patch flushing since this causes a lockup if the serial is disconnected during
        # the flush.
        ser.flush = self._no_flush

    def _no_flush(self, *args, **kwargs):
        pass

    @property
    def target(self):
        return self.ser

    @property
    def input(self):
        return self.ser

    @property
    def output(self):
        return self.ser

    @property
    def open(self) -> bool:
        return self.ser.is_open

    def close(self):
        self.ser.close()


def serial_port_info():
    """
    :return: a tuple of ListPortInfo for the serial ports on this machine.
    """
    return tuple(list_ports.comports())

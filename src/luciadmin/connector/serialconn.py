import logging

from serial import Serial, SerialException, EIGHTBITS, PARITY_NONE, STOPBITS_ONE

from luciadmin.conduit.base import Conduit
from luciadmin.conduit.serial_conduit import SerialConduit
from luciadmin.connector.base import Endpoint, TransportError

logger = logging.getLogger(__name__)

BAUD_RATE = 115200


class SerialEndpoint(Endpoint):
    """
    Describes an instrument attached to a local serial port, e.g. /dev/ttyACM0 or COM3.
    """
    scheme = 'serial'

    def __init__(self, path: str):
        self.path = path

    def is_valid(self):
        return bool(self.path)

    def to_url(self):
        """
        >>> SerialEndpoint('/dev/ttyACM0').to_url()
        'serial://dev/ttyACM0'
        >>> SerialEndpoint('COM1').to_url()
        'serial://COM1'
        """
        path = self.path[1:] if self.path.startswith('/') else self.path
        return self.scheme + '://' + path

    def open(self, timeout=None) -> Conduit:
        """
        Opens the serial port at 115200 baud, 8N1. Anything the device sent before
        the port was opened (e.g. boot messages) is discarded.
        :param timeout: not used, opening a local port does not wait.
        """
        if not self.is_valid():
            raise TransportError("invalid serial endpoint %r" % self)
        try:
            ser = Serial(port=self.path, baudrate=BAUD_RATE, bytesize=EIGHTBITS,
                         parity=PARITY_NONE, stopbits=STOPBITS_ONE)
            ser.reset_input_buffer()
        except SerialException as e:
            logger.warning("error opening serial port %s: %s" % (self.path, e))
            raise TransportError("cannot open %s: %s" % (self.path, e)) from e
        logger.info("opened serial port %s" % self.path)
        return SerialConduit(ser)

"""
Request and response envelopes and their line encoding.
"""
import json
import logging
import uuid

from luciadmin.support.mixins import CommonEqualityMixin, ReprMixin

logger = logging.getLogger(__name__)

# written after each outgoing line
line_terminator = b"\r\n"

request_fields = frozenset(('type', 'id', 'msg'))


class EnvelopeError(ValueError):
    """ A line could not be understood as an envelope. """


class ProtocolWarning(UserWarning):
    """ The instrument answered in an unexpected way, but the answer was accepted. """


def _parse_id(value):
    if value is None:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise EnvelopeError("malformed id %r" % (value,)) from e


def _response_id(value):
    """ ids of responses are not checked, one that is not a UUID is kept as sent. """
    try:
        return _parse_id(value)
    except EnvelopeError:
        logger.debug("keeping response id %r as is" % (value,))
        return value


def _id_value(id):
    return str(id) if isinstance(id, uuid.UUID) else id


def decode_line(line):
    """
    Decodes a line to a JSON object.
    :param line: str or bytes, with or without line terminator
    :return: the decoded dict
    raises EnvelopeError if the line is not a JSON object
    """
    if isinstance(line, bytes):
        line = line.decode('utf-8', errors='replace')
    try:
        obj = json.loads(line)
    except ValueError as e:
        raise EnvelopeError("not a JSON line: %r" % line) from e
    if not isinstance(obj, dict):
        raise EnvelopeError("expected a JSON object, got %r" % line)
    return obj


class Request(CommonEqualityMixin, ReprMixin):
    """
    The outer structure of a message sent to the instrument.
    :param type: the command type, e.g. 'net_status'
    :param msg: the command argument, any JSON value. None is sent as null.
    :param id: correlation id, a fresh random UUID when not given.
    """

    def __init__(self, type: str, msg=None, id: uuid.UUID = None):
        self.type = type
        self.id = id if id is not None else uuid.uuid4()
        self.msg = msg

    def to_dict(self):
        return {'type': self.type, 'id': str(self.id), 'msg': self.msg}

    def to_line(self) -> bytes:
        """
        Encodes the request as a single line of compact JSON, without line terminator.
        raises TypeError or ValueError when msg cannot be represented in JSON.
        """
        return json.dumps(self.to_dict(), separators=(',', ':'), allow_nan=False).encode('utf-8')

    @classmethod
    def from_dict(cls, obj: dict):
        return cls(obj.get('type', ''), obj.get('msg'), _parse_id(obj.get('id')))


class Response(CommonEqualityMixin, ReprMixin):
    """
    The outer structure of a message received from the instrument.
    By convention, the type and id repeat those of the request. The content of msg depends on the type.
    """

    def __init__(self, type: str = '', id: uuid.UUID = None, code: int = 0, error: str = '', msg: dict = None):
        self.type = type
        self.id = id
        self.code = code
        self.error = error
        self.msg = msg if msg is not None else {}

    def is_success(self) -> bool:
        return self.code == 0

    def to_dict(self):
        return {'type': self.type, 'id': _id_value(self.id),
                'code': self.code, 'error': self.error, 'msg': self.msg}

    @classmethod
    def from_dict(cls, obj: dict):
        msg = obj.get('msg')
        if msg is not None and not isinstance(msg, dict):
            raise EnvelopeError("expected msg to be an object, got %r" % (msg,))
        code = obj.get('code') or 0
        if not isinstance(code, int) or isinstance(code, bool):
            raise EnvelopeError("expected code to be an integer, got %r" % (code,))
        return cls(obj.get('type') or '', _response_id(obj.get('id')), code, obj.get('error') or '', msg)

    @classmethod
    def from_line(cls, line):
        return cls.from_dict(decode_line(line))


def is_echo(line, request: Request) -> bool:
    """
    Determines if a received line is the request itself, reflected by the transport.
    This happens typically on the serial line. The line must carry the request fields only,
    with the same values as the request had on the wire.
    """
    try:
        obj = decode_line(line)
        if not obj.keys() <= request_fields:
            return False
        sent = Request.from_dict(decode_line(request.to_line()))
        return Request.from_dict(obj) == sent
    except EnvelopeError:
        return False

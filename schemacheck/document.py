"""Parses JSON text into plain Python values and inspects them.

The document model is the set of values produced by the ``json`` module:
``None``, ``bool``, ``int``, ``float``, ``str``, ``list`` and ``dict``. The
helpers in this module add the JSON Schema view of those values (``integer``
versus ``number``, ``bool`` never being a number) and the type names used in
validation messages.
"""

import json
import math
from decimal import Decimal
from json import decoder, scanner
from typing import Any, IO, List, Union

JsonValue = Union[None, bool, int, float, str, List[Any], dict]


class ParseError(ValueError):
    """Raised when a JSON document cannot be parsed."""

    def __init__(self, message: str, offset: int = None, lineno: int = None, colno: int = None):
        self.message = message
        self.offset = offset
        self.lineno = lineno
        self.colno = colno
        if offset is not None:
            super().__init__(f"{message} at offset {offset} (line {lineno}, column {colno})")
        else:
            super().__init__(message)


class NotApplicableError(TypeError):
    """Raised when an accessor is used on a value of the wrong kind."""


class _RejectedToken(ValueError):
    """Raised by the decoder hooks; the scanner turns it into a positioned JSONDecodeError."""


def _reject_constant(name: str):
    raise _RejectedToken(f"invalid JSON literal {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise _RejectedToken(f"number {text} is out of range")
    return value


def _bounded_int(text: str) -> int:
    try:
        return int(text)
    except ValueError as e:
        # the interpreter's limit on integer string conversion
        raise _RejectedToken(str(e)) from e


def _positioned(scan_once):
    def scan(string, idx):
        try:
            return scan_once(string, idx)
        except _RejectedToken as e:
            raise json.JSONDecodeError(str(e), string, idx) from e
    return scan


class _StrictDecoder(json.JSONDecoder):
    """
    Decoder that rejects duplicate keys and non-finite numbers.

    Uses the pure Python scanner so that every rejected token is reported at
    its own offset, like any other syntax error.
    """

    def __init__(self):
        super().__init__(parse_float=_finite_float, parse_int=_bounded_int, parse_constant=_reject_constant)
        self.parse_object = self._parse_object
        self.parse_array = self._parse_array
        self.scan_once = _positioned(scanner.py_make_scanner(self))

    def _parse_array(self, s_and_end, scan_once, _w=decoder.WHITESPACE.match):
        return decoder.JSONArray(s_and_end, _positioned(scan_once), _w)

    def _parse_object(self, s_and_end, strict, scan_once, object_hook, object_pairs_hook, memo=None,
                      _w=decoder.WHITESPACE.match):
        string, start = s_and_end
        pairs, end = decoder.JSONObject(s_and_end, strict, _positioned(scan_once), None, list, memo, _w)
        result = {}
        for key, value in pairs:
            if key in result:
                raise json.JSONDecodeError(f"duplicate key [{key}]", string,
                                           self._duplicate_offset(string, start, scan_once, _w))
            result[key] = value
        return result, end

    def _duplicate_offset(self, string, pos, scan_once, _w):
        """Offset of the first repeated key of an object already known to be well formed."""
        seen = set()
        while True:
            pos = _w(string, pos).end()
            key, pos_after_key = decoder.scanstring(string, pos + 1, self.strict)
            if key in seen:
                return pos
            seen.add(key)
            pos = _w(string, _w(string, pos_after_key).end() + 1).end()
            _, pos = scan_once(string, pos)
            pos = _w(string, pos).end() + 1


def parse_json(text: Union[str, bytes]) -> JsonValue:
    """Parses a JSON document.

    Args:
        text: The JSON text. Bytes are decoded as UTF-8.

    Returns:
        The parsed value.

    Raises:
        ParseError: If the text is not a single well-formed JSON value, or
            contains a duplicate key or a number outside the float range.
    """
    raw = None
    if isinstance(text, (bytes, bytearray)):
        raw = bytes(text)
        try:
            text = raw.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise ParseError(f"invalid UTF-8 input: {e.reason}", e.start, None, None) from e
    try:
        return _StrictDecoder().decode(text)
    except json.JSONDecodeError as e:
        offset = e.pos
        if raw is not None:
            offset = len(text[:e.pos].encode('utf-8'))
            if raw.startswith(b'\xef\xbb\xbf'):
                offset += 3
        raise ParseError(e.msg, offset, e.lineno, e.colno) from e


def load_json(stream: IO) -> JsonValue:
    """Reads and parses a JSON document from a text or binary stream."""
    return parse_json(stream.read())


def load_json_file(file_path: str) -> JsonValue:
    """Reads and parses a JSON file."""
    with open(file_path, 'rb') as f:
        return load_json(f)


def is_null(value: Any) -> bool:
    return value is None


def is_boolean(value: Any) -> bool:
    return isinstance(value, bool)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_integral(value: Any) -> bool:
    """True for numbers without a fractional part, including ``1.0``."""
    if not is_number(value):
        return False
    if isinstance(value, float):
        return value.is_integer()
    return True


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_array(value: Any) -> bool:
    return isinstance(value, list)


def is_object(value: Any) -> bool:
    return isinstance(value, dict)


def json_type(value: Any) -> str:
    """Returns the JSON Schema primitive type of a value.

    Integer-valued numbers report ``integer``; other numbers ``number``.
    """
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, int):
        return 'integer'
    if isinstance(value, float):
        return 'integer' if value.is_integer() else 'number'
    if isinstance(value, str):
        return 'string'
    if isinstance(value, list):
        return 'array'
    if isinstance(value, dict):
        return 'object'
    raise NotApplicableError(f"{type(value).__name__} is not a JSON value")


def type_name(value: Any) -> str:
    """Returns the name of a value's runtime type as used in violation messages."""
    if value is None:
        return 'Null'
    if isinstance(value, bool):
        return 'Boolean'
    if isinstance(value, int):
        return 'Integer'
    if isinstance(value, float):
        return 'Number'
    if isinstance(value, str):
        return 'String'
    if isinstance(value, list):
        return 'JSONArray'
    if isinstance(value, dict):
        return 'JSONObject'
    raise NotApplicableError(f"{type(value).__name__} is not a JSON value")


def get(value: Any, key: Union[str, int]) -> JsonValue:
    """Returns a member of an object or an element of an array.

    Raises:
        NotApplicableError: If ``value`` is not a container matching the kind
            of ``key``, or the member does not exist.
    """
    if isinstance(key, str):
        if not is_object(value):
            raise NotApplicableError(f"cannot get key [{key}] from {type_name(value)}")
        if key not in value:
            raise NotApplicableError(f"key [{key}] not found")
        return value[key]
    if isinstance(key, int) and not isinstance(key, bool):
        if not is_array(value):
            raise NotApplicableError(f"cannot get index [{key}] from {type_name(value)}")
        if not 0 <= key < len(value):
            raise NotApplicableError(f"index [{key}] out of range 0..{len(value)}")
        return value[key]
    raise NotApplicableError(f"unsupported accessor {key!r}")


def size(value: Any) -> int:
    """Returns the member count of an object or the length of an array."""
    if is_object(value) or is_array(value):
        return len(value)
    raise NotApplicableError(f"{type_name(value)} has no size")


def json_equals(left: Any, right: Any) -> bool:
    """Compares two JSON values by JSON Schema equality.

    Numbers compare by value (``1 == 1.0``), booleans never equal numbers, and
    objects compare without regard to key order.
    """
    if is_number(left) and is_number(right):
        return Decimal(str(left)) == Decimal(str(right))
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if is_array(left) and is_array(right):
        return len(left) == len(right) and all(json_equals(a, b) for a, b in zip(left, right))
    if is_object(left) and is_object(right):
        if left.keys() != right.keys():
            return False
        return all(json_equals(left[k], right[k]) for k in left)
    if type(left) is not type(right):
        return False
    return left == right


def format_value(value: Any) -> str:
    """Renders a value for a message: strings bare, everything else as minified JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(',', ':'), ensure_ascii=False)

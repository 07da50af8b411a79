"""Appending MessagePack objects to byte buffers.

Every function takes a buffer (a bytearray, any bytes-like object or None),
appends the encoded value and returns the bytearray that holds the result.
A bytearray passed in is extended in place and returned.
"""

from __future__ import annotations

import struct
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from .types import (
    ARRAY16,
    ARRAY32,
    BIN8,
    BIN16,
    BIN32,
    COMPLEX64_EXTENSION,
    COMPLEX128_EXTENSION,
    EXT8,
    EXT16,
    EXT32,
    FALSE,
    FIXARRAY,
    FIXEXT1,
    FIXEXT2,
    FIXEXT4,
    FIXEXT8,
    FIXEXT16,
    FIXMAP,
    FIXSTR,
    FLOAT32,
    FLOAT64,
    INT8,
    INT16,
    INT32,
    INT64,
    INT64_MAX,
    INT64_MIN,
    MAP16,
    MAP32,
    NIL,
    STR8,
    STR16,
    STR32,
    TIME_EXTENSION,
    TRUE,
    UINT8,
    UINT16,
    UINT32,
    UINT32_MAX,
    UINT64,
    UINT64_MAX,
    IntOverflow,
    UintBelowZero,
    UintOverflow,
    UnsupportedTypeError,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_FIXEXT_BY_LEN = {1: FIXEXT1, 2: FIXEXT2, 4: FIXEXT4, 8: FIXEXT8, 16: FIXEXT16}


def _buffer(b: Any) -> bytearray:
    if isinstance(b, bytearray):
        return b
    return bytearray(b) if b is not None else bytearray()


def _check_uint32(sz: int) -> None:
    if sz < 0:
        raise UintBelowZero(sz)
    if sz > UINT32_MAX:
        raise UintOverflow(sz, 32)


def _sized_header(out: bytearray, sz: int, fix: int, fixmax: int, p8, p16: int, p32: int) -> bytearray:
    _check_uint32(sz)
    if sz <= fixmax:
        out.append(fix | sz)
    elif p8 is not None and sz <= 0xFF:
        out += struct.pack(">BB", p8, sz)
    elif sz <= 0xFFFF:
        out += struct.pack(">BH", p16, sz)
    else:
        out += struct.pack(">BI", p32, sz)
    return out


def append_map_header(b, sz: int) -> bytearray:
    """Append a map header announcing `sz` key/value pairs."""
    return _sized_header(_buffer(b), sz, FIXMAP, 15, None, MAP16, MAP32)


def append_array_header(b, sz: int) -> bytearray:
    """Append an array header announcing `sz` elements."""
    return _sized_header(_buffer(b), sz, FIXARRAY, 15, None, ARRAY16, ARRAY32)


def append_nil(b) -> bytearray:
    """Append a nil byte."""
    out = _buffer(b)
    out.append(NIL)
    return out


def append_float64(b, f: float) -> bytearray:
    """Append a 64-bit float."""
    out = _buffer(b)
    out += struct.pack(">Bd", FLOAT64, f)
    return out


def append_float32(b, f: float) -> bytearray:
    """Append a 32-bit float."""
    out = _buffer(b)
    out += struct.pack(">Bf", FLOAT32, f)
    return out


def append_int(b, i: int) -> bytearray:
    """Append a signed integer in its smallest encoding; it must fit in 64 bits."""
    if not INT64_MIN <= i <= INT64_MAX:
        raise IntOverflow(i, 64)
    out = _buffer(b)
    if i >= 0:
        if i <= 0x7F:
            out.append(i)
        elif i <= 0x7FFF:
            out += struct.pack(">Bh", INT16, i)
        elif i <= 0x7FFFFFFF:
            out += struct.pack(">Bi", INT32, i)
        else:
            out += struct.pack(">Bq", INT64, i)
        return out
    if i >= -32:
        out.append(i & 0xFF)
    elif i >= -0x80:
        out += struct.pack(">Bb", INT8, i)
    elif i >= -0x8000:
        out += struct.pack(">Bh", INT16, i)
    elif i >= -0x80000000:
        out += struct.pack(">Bi", INT32, i)
    else:
        out += struct.pack(">Bq", INT64, i)
    return out


def append_uint(b, u: int) -> bytearray:
    """Append an unsigned integer in its smallest encoding; it must fit in 64 bits."""
    if u < 0:
        raise UintBelowZero(u)
    if u > UINT64_MAX:
        raise UintOverflow(u, 64)
    out = _buffer(b)
    if u <= 0x7F:
        out.append(u)
    elif u <= 0xFF:
        out += struct.pack(">BB", UINT8, u)
    elif u <= 0xFFFF:
        out += struct.pack(">BH", UINT16, u)
    elif u <= 0xFFFFFFFF:
        out += struct.pack(">BI", UINT32, u)
    else:
        out += struct.pack(">BQ", UINT64, u)
    return out


def append_bytes_header(b, sz: int) -> bytearray:
    """Append a 'bin' header; the caller appends `sz` bytes afterwards."""
    _check_uint32(sz)
    out = _buffer(b)
    if sz <= 0xFF:
        out += struct.pack(">BB", BIN8, sz)
    elif sz <= 0xFFFF:
        out += struct.pack(">BH", BIN16, sz)
    else:
        out += struct.pack(">BI", BIN32, sz)
    return out


def append_bytes(b, bts) -> bytearray:
    """Append binary data as a 'bin' object."""
    data = bytes(bts)
    out = append_bytes_header(b, len(data))
    out += data
    return out


def append_bool(b, t: bool) -> bytearray:
    """Append a boolean."""
    out = _buffer(b)
    out.append(TRUE if t else FALSE)
    return out


def append_string_from_bytes(b, s) -> bytearray:
    """Append already-encoded UTF-8 bytes as a 'str' object."""
    data = bytes(s)
    out = _sized_header(_buffer(b), len(data), FIXSTR, 31, STR8, STR16, STR32)
    out += data
    return out


def append_string(b, s: str) -> bytearray:
    """Append a string as a UTF-8 'str' object."""
    return append_string_from_bytes(b, s.encode("utf-8"))


def append_complex64(b, c: complex) -> bytearray:
    """Append a complex number with 32-bit parts as an extension."""
    out = _buffer(b)
    out += struct.pack(">BBff", FIXEXT8, COMPLEX64_EXTENSION, c.real, c.imag)
    return out


def append_complex128(b, c: complex) -> bytearray:
    """Append a complex number with 64-bit parts as an extension."""
    out = _buffer(b)
    out += struct.pack(">BBdd", FIXEXT16, COMPLEX128_EXTENSION, c.real, c.imag)
    return out


def append_time(b, t: datetime) -> bytearray:
    """Append a datetime as Unix seconds and nanoseconds; naive values are local time."""
    if not isinstance(t, datetime):
        raise UnsupportedTypeError(type(t))
    aware = t if t.tzinfo is not None else t.astimezone()
    delta = aware - _EPOCH
    seconds = delta.days * 86400 + delta.seconds
    nanos = delta.microseconds * 1000
    out = _buffer(b)
    out += struct.pack(">BBbqi", EXT8, 12, TIME_EXTENSION, seconds, nanos)
    return out


def _require_str(value: Any) -> str:
    if not isinstance(value, str):
        raise UnsupportedTypeError(type(value))
    return value


def append_map_str_str(b, m: Mapping) -> bytearray:
    """Append a mapping of strings to strings."""
    out = append_map_header(b, len(m))
    for key, val in m.items():
        out = append_string(out, _require_str(key))
        out = append_string(out, _require_str(val))
    return out


def append_map_str_intf(b, m: Mapping) -> bytearray:
    """Append a mapping with string keys and values of any supported type."""
    out = append_map_header(b, len(m))
    for key, val in m.items():
        out = append_string(out, _require_str(key))
        out = append_intf(out, val)
    return out


def _append_extension(out: bytearray, ext: Any) -> bytearray:
    data = bytes(ext.marshal_binary())
    ext_type = ext.extension_type()
    if not -0x80 <= ext_type <= 0x7F:
        raise IntOverflow(ext_type, 8)
    length = len(data)
    fixed = _FIXEXT_BY_LEN.get(length)
    if fixed is not None:
        out += struct.pack(">Bb", fixed, ext_type)
    elif length <= 0xFF:
        out += struct.pack(">BBb", EXT8, length, ext_type)
    elif length <= 0xFFFF:
        out += struct.pack(">BHb", EXT16, length, ext_type)
    else:
        _check_uint32(length)
        out += struct.pack(">BIb", EXT32, length, ext_type)
    out += data
    return out


def append_intf(b, i: Any) -> bytearray:
    """Append any supported value.

    Supported: None, bool, int, float, complex, str, bytes-like objects,
    datetime, mappings with string keys, lists and tuples of supported
    values, objects with a ``marshal_msg`` method and extension objects
    (with ``extension_type`` and ``marshal_binary`` methods).
    """
    out = _buffer(b)
    if i is None:
        return append_nil(out)
    if hasattr(i, "marshal_msg"):
        return _buffer(i.marshal_msg(out))
    if hasattr(i, "extension_type") and hasattr(i, "marshal_binary"):
        return _append_extension(out, i)
    if isinstance(i, bool):
        return append_bool(out, i)
    if isinstance(i, int):
        if i > INT64_MAX:
            return append_uint(out, i)
        return append_int(out, i)
    if isinstance(i, float):
        return append_float64(out, i)
    if isinstance(i, complex):
        return append_complex128(out, i)
    if isinstance(i, str):
        return append_string(out, i)
    if isinstance(i, (bytes, bytearray, memoryview)):
        return append_bytes(out, i)
    if isinstance(i, datetime):
        return append_time(out, i)
    if isinstance(i, Mapping):
        return append_map_str_intf(out, i)
    if isinstance(i, (list, tuple)):
        out = append_array_header(out, len(i))
        for item in i:
            out = append_intf(out, item)
        return out
    raise UnsupportedTypeError(type(i))
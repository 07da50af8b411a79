"""Reading MessagePack objects out of byte buffers.

Every reader takes a bytes-like object and returns the decoded value
together with the bytes that follow it, as a memoryview over the input,
so that reads can be chained without copying. Malformed input raises a
subclass of MsgpError.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from .encode import append_nil
from .types import (
    ARRAY16,
    ARRAY32,
    BIN8,
    BIN16,
    BIN32,
    COMPLEX64_EXTENSION,
    COMPLEX128_EXTENSION,
    CONST_SIZE,
    EXT8,
    EXT16,
    EXT32,
    EXTRA8,
    EXTRA16,
    EXTRA32,
    ARRAY16V,
    ARRAY32V,
    BYTE_SPECS,
    FALSE,
    FIXEXT1,
    FIXEXT2,
    FIXEXT4,
    FIXEXT8,
    FIXEXT16,
    FLOAT32,
    FLOAT64,
    INT8,
    INT16,
    INT32,
    INT64,
    INT64_MAX,
    MAP16,
    MAP16V,
    MAP32,
    MAP32V,
    NIL,
    STR8,
    STR16,
    STR32,
    TIME_EXTENSION,
    TRUE,
    UINT8,
    UINT16,
    UINT32,
    UINT64,
    ArrayError,
    ExtensionTypeError,
    IntOverflow,
    InvalidPrefixError,
    MsgpError,
    MsgTypeError,
    RawExtension,
    ShortBytesError,
    Type,
    UintBelowZero,
    UintOverflow,
    bad_prefix,
    get_type,
    is_nil,
    next_type,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_INT_FORMATS = {
    INT8: ">b",
    INT16: ">h",
    INT32: ">i",
    INT64: ">q",
    UINT8: ">B",
    UINT16: ">H",
    UINT32: ">I",
    UINT64: ">Q",
}

_FIXEXT_LENGTHS = {FIXEXT1: 1, FIXEXT2: 2, FIXEXT4: 4, FIXEXT8: 8, FIXEXT16: 16}


def _view(b: Any) -> memoryview:
    view = b if isinstance(b, memoryview) else memoryview(b)
    if view.format == "B" and view.ndim == 1:
        return view
    return view.cast("B")


def _need(view: memoryview, n: int) -> None:
    if len(view) < n:
        raise ShortBytesError()


def _int8(value: int) -> int:
    return value - 0x100 if value >= 0x80 else value


def _read_header(view: memoryview, fix_lo: int, fix_hi: int, p16: int, p32: int, typ: Type):
    _need(view, 1)
    lead = view[0]
    if fix_lo <= lead <= fix_hi:
        return lead & 0x0F, view[1:]
    if lead == p16:
        _need(view, 3)
        return struct.unpack_from(">H", view, 1)[0], view[3:]
    if lead == p32:
        _need(view, 5)
        return struct.unpack_from(">I", view, 1)[0], view[5:]
    raise bad_prefix(typ, lead)


def read_map_header(b) -> tuple[int, memoryview]:
    """Read a map header; return the number of key/value pairs and the rest."""
    return _read_header(_view(b), 0x80, 0x8F, MAP16, MAP32, Type.MAP)


def read_array_header(b) -> tuple[int, memoryview]:
    """Read an array header; return the number of elements and the rest."""
    return _read_header(_view(b), 0x90, 0x9F, ARRAY16, ARRAY32, Type.ARRAY)


def _bin_header(view: memoryview) -> tuple[int, int]:
    _need(view, 1)
    lead = view[0]
    if lead == BIN8:
        _need(view, 2)
        return view[1], 2
    if lead == BIN16:
        _need(view, 3)
        return struct.unpack_from(">H", view, 1)[0], 3
    if lead == BIN32:
        _need(view, 5)
        return struct.unpack_from(">I", view, 1)[0], 5
    raise bad_prefix(Type.BIN, lead)


def read_bytes_header(b) -> tuple[int, memoryview]:
    """Read a 'bin' header; return the payload size and the rest."""
    view = _view(b)
    size, skip_len = _bin_header(view)
    return size, view[skip_len:]


def read_nil(b) -> memoryview:
    """Read a nil byte and return the rest."""
    view = _view(b)
    _need(view, 1)
    if view[0] != NIL:
        raise bad_prefix(Type.NIL, view[0])
    return view[1:]


def read_float32(b) -> tuple[float, memoryview]:
    """Read a 32-bit float."""
    view = _view(b)
    _need(view, 5)
    if view[0] != FLOAT32:
        raise MsgTypeError(Type.FLOAT32, get_type(view[0]))
    return struct.unpack_from(">f", view, 1)[0], view[5:]


def read_float64(b) -> tuple[float, memoryview]:
    """Read a 64-bit float; a 32-bit float is accepted as well."""
    view = _view(b)
    if len(view) < 9:
        if len(view) >= 5 and view[0] == FLOAT32:
            return read_float32(view)
        raise ShortBytesError()
    if view[0] != FLOAT64:
        if view[0] == FLOAT32:
            return read_float32(view)
        raise bad_prefix(Type.FLOAT64, view[0])
    return struct.unpack_from(">d", view, 1)[0], view[9:]


def read_bool(b) -> tuple[bool, memoryview]:
    """Read a boolean."""
    view = _view(b)
    _need(view, 1)
    if view[0] == TRUE:
        return True, view[1:]
    if view[0] == FALSE:
        return False, view[1:]
    raise bad_prefix(Type.BOOL, view[0])


def _read_integer(view: memoryview, want: Type) -> tuple[int, memoryview]:
    _need(view, 1)
    lead = view[0]
    if lead <= 0x7F:
        return lead, view[1:]
    if lead >= 0xE0:
        return lead - 0x100, view[1:]
    fmt = _INT_FORMATS.get(lead)
    if fmt is None:
        raise bad_prefix(want, lead)
    size = 1 + struct.calcsize(fmt)
    _need(view, size)
    return struct.unpack_from(fmt, view, 1)[0], view[size:]


def read_int64(b) -> tuple[int, memoryview]:
    """Read an integer that fits in a signed 64-bit value."""
    value, rest = _read_integer(_view(b), Type.INT)
    if value > INT64_MAX:
        raise UintOverflow(value, 64)
    return value, rest


def _read_signed(b, bits: int) -> tuple[int, memoryview]:
    value, rest = read_int64(b)
    limit = 1 << (bits - 1)
    if not -limit <= value < limit:
        raise IntOverflow(value, bits)
    return value, rest


def read_int32(b) -> tuple[int, memoryview]:
    """Read an integer that fits in a signed 32-bit value."""
    return _read_signed(b, 32)


def read_int16(b) -> tuple[int, memoryview]:
    """Read an integer that fits in a signed 16-bit value."""
    return _read_signed(b, 16)


def read_int8(b) -> tuple[int, memoryview]:
    """Read an integer that fits in a signed 8-bit value."""
    return _read_signed(b, 8)


def read_int(b) -> tuple[int, memoryview]:
    """Read a signed integer (64 bits wide)."""
    return read_int64(b)


def read_uint64(b) -> tuple[int, memoryview]:
    """Read a non-negative integer that fits in 64 bits."""
    value, rest = _read_integer(_view(b), Type.UINT)
    if value < 0:
        raise UintBelowZero(value)
    return value, rest


def _read_unsigned(b, bits: int) -> tuple[int, memoryview]:
    value, rest = read_uint64(b)
    if value >= 1 << bits:
        raise UintOverflow(value, bits)
    return value, rest


def read_uint32(b) -> tuple[int, memoryview]:
    """Read a non-negative integer that fits in 32 bits."""
    return _read_unsigned(b, 32)


def read_uint16(b) -> tuple[int, memoryview]:
    """Read a non-negative integer that fits in 16 bits."""
    return _read_unsigned(b, 16)


def read_uint8(b) -> tuple[int, memoryview]:
    """Read a non-negative integer that fits in 8 bits."""
    return _read_unsigned(b, 8)


def read_uint(b) -> tuple[int, memoryview]:
    """Read an unsigned integer (64 bits wide)."""
    return read_uint64(b)


def read_byte(b) -> tuple[int, memoryview]:
    """Read a byte value; the same as read_uint8."""
    return read_uint8(b)


def read_bytes(b) -> tuple[bytes, memoryview]:
    """Read a 'bin' object and return a copy of its payload."""
    view = _view(b)
    size, start = _bin_header(view)
    _need(view, start + size)
    return bytes(view[start:start + size]), view[start + size:]


def read_exact_bytes(b, into) -> memoryview:
    """Read a 'bin' object whose length must equal len(into), copying it there."""
    view = _view(b)
    size, start = _bin_header(view)
    target = _view(into)
    if size != len(target):
        raise ArrayError(len(target), size)
    _need(view, start + size)
    target[:] = view[start:start + size]
    return view[start + size:]


def read_string_raw(b) -> tuple[bytes, memoryview]:
    """Read a 'str' object and return its undecoded UTF-8 bytes."""
    view = _view(b)
    _need(view, 1)
    lead = view[0]
    if 0xA0 <= lead <= 0xBF:
        size, start = lead & 0x1F, 1
    elif lead == STR8:
        _need(view, 2)
        size, start = view[1], 2
    elif lead == STR16:
        _need(view, 3)
        size, start = struct.unpack_from(">H", view, 1)[0], 3
    elif lead == STR32:
        _need(view, 5)
        size, start = struct.unpack_from(">I", view, 1)[0], 5
    else:
        raise MsgTypeError(Type.STR, get_type(lead))
    _need(view, start + size)
    return bytes(view[start:start + size]), view[start + size:]


def read_string(b) -> tuple[str, memoryview]:
    """Read a 'str' object; undecodable bytes are kept as surrogate escapes."""
    raw, rest = read_string_raw(b)
    return raw.decode("utf-8", "surrogateescape"), rest


def read_map_key(b) -> tuple[bytes, memoryview]:
    """Read a map key, which may be a 'str' or a 'bin' object."""
    view = _view(b)
    try:
        return read_string_raw(view)
    except MsgTypeError as err:
        if err.encoded is Type.BIN:
            return read_bytes(view)
        raise


def read_complex128(b) -> tuple[complex, memoryview]:
    """Read a complex number with 64-bit parts."""
    view = _view(b)
    _need(view, 18)
    if view[0] != FIXEXT16:
        raise bad_prefix(Type.COMPLEX128, view[0])
    ext = _int8(view[1])
    if ext != COMPLEX128_EXTENSION:
        raise ExtensionTypeError(ext, COMPLEX128_EXTENSION)
    real, imag = struct.unpack_from(">dd", view, 2)
    return complex(real, imag), view[18:]


def read_complex64(b) -> tuple[complex, memoryview]:
    """Read a complex number with 32-bit parts."""
    view = _view(b)
    _need(view, 10)
    if view[0] != FIXEXT8:
        raise bad_prefix(Type.COMPLEX64, view[0])
    ext = _int8(view[1])
    if ext != COMPLEX64_EXTENSION:
        raise ExtensionTypeError(ext, COMPLEX64_EXTENSION)
    real, imag = struct.unpack_from(">ff", view, 2)
    return complex(real, imag), view[10:]


def read_time(b) -> tuple[datetime, memoryview]:
    """Read a time extension as an aware datetime in local time."""
    view = _view(b)
    _need(view, 15)
    if view[0] != EXT8 or view[1] != 12:
        raise bad_prefix(Type.TIME, view[0])
    ext = _int8(view[2])
    if ext != TIME_EXTENSION:
        raise ExtensionTypeError(ext, TIME_EXTENSION)
    seconds, nanos = struct.unpack_from(">qi", view, 3)
    moment = _EPOCH + timedelta(seconds=seconds, microseconds=nanos // 1000)
    return moment.astimezone(), view[15:]


def _read_extension(view: memoryview) -> tuple[RawExtension, memoryview]:
    _need(view, 1)
    lead = view[0]
    if lead in _FIXEXT_LENGTHS:
        _need(view, 2)
        length, ext, start = _FIXEXT_LENGTHS[lead], view[1], 2
    elif lead == EXT8:
        _need(view, 3)
        length, ext, start = view[1], view[2], 3
    elif lead == EXT16:
        _need(view, 4)
        length, ext, start = struct.unpack_from(">H", view, 1)[0], view[3], 4
    elif lead == EXT32:
        _need(view, 6)
        length, ext, start = struct.unpack_from(">I", view, 1)[0], view[5], 6
    else:
        raise bad_prefix(Type.EXTENSION, lead)
    _need(view, start + length)
    data = bytes(view[start:start + length])
    return RawExtension(_int8(ext), data), view[start + length:]


def read_map_str_intf(b, old: dict | None = None) -> tuple[dict, memoryview]:
    """Read a map with string keys; `old`, if given, is cleared and filled."""
    size, rest = read_map_header(b)
    if old is not None:
        old.clear()
        result = old
    else:
        result = {}
    for _ in range(size):
        _need(rest, 1)
        key, rest = read_map_key(rest)
        value, rest = read_intf(rest)
        result[key.decode("utf-8", "surrogateescape")] = value
    return result, rest


def _read_array(view: memoryview) -> tuple[list, memoryview]:
    size, rest = read_array_header(view)
    items = []
    for _ in range(size):
        item, rest = read_intf(rest)
        items.append(item)
    return items, rest


def _read_nil_value(view: memoryview) -> tuple[None, memoryview]:
    return None, read_nil(view)


_INTF_READERS = {
    Type.MAP: read_map_str_intf,
    Type.ARRAY: _read_array,
    Type.FLOAT32: read_float32,
    Type.FLOAT64: read_float64,
    Type.INT: read_int64,
    Type.UINT: read_uint64,
    Type.BOOL: read_bool,
    Type.TIME: read_time,
    Type.COMPLEX64: read_complex64,
    Type.COMPLEX128: read_complex128,
    Type.EXTENSION: _read_extension,
    Type.NIL: _read_nil_value,
    Type.BIN: read_bytes,
    Type.STR: read_string,
}


def read_intf(b) -> tuple[Any, memoryview]:
    """Read the next object as the Python value that best matches it.

    Maps become dicts, arrays lists, 'bin' bytes, 'str' str, time
    extensions datetimes and other extensions RawExtension objects.
    """
    view = _view(b)
    _need(view, 1)
    reader = _INTF_READERS.get(next_type(view))
    if reader is None:
        raise InvalidPrefixError(view[0])
    return reader(view)


def _get_size(view: memoryview) -> tuple[int, int]:
    """Return (bytes to skip, child objects to skip) for the next object."""
    _need(view, 1)
    lead = view[0]
    spec = BYTE_SPECS[lead]
    if spec.size == 0:
        raise InvalidPrefixError(lead)
    if spec.extra >= CONST_SIZE:
        return spec.size, spec.extra
    _need(view, spec.size)
    mode = spec.extra
    if mode == EXTRA8:
        return spec.size + view[1], 0
    if mode == EXTRA16:
        return spec.size + struct.unpack_from(">H", view, 1)[0], 0
    if mode == EXTRA32:
        return spec.size + struct.unpack_from(">I", view, 1)[0], 0
    if mode == MAP16V:
        return spec.size, 2 * struct.unpack_from(">H", view, 1)[0]
    if mode == MAP32V:
        return spec.size, 2 * struct.unpack_from(">I", view, 1)[0]
    if mode == ARRAY16V:
        return spec.size, struct.unpack_from(">H", view, 1)[0]
    if mode == ARRAY32V:
        return spec.size, struct.unpack_from(">I", view, 1)[0]
    raise MsgpError("unexpected size mode in byte specification")


def skip(b) -> memoryview:
    """Skip the next object, including every element of a map or array."""
    view = _view(b)
    pending = 1
    while pending:
        size, children = _get_size(view)
        _need(view, size)
        view = view[size:]
        pending += children - 1
    return view


@dataclass
class Raw:
    """An encoded MessagePack object kept without interpreting it.

    Empty data stands for nil.
    """

    data: bytes = b""

    def __bytes__(self) -> bytes:
        return bytes(self.data)

    def __len__(self) -> int:
        return len(self.data)

    def marshal_msg(self, b) -> bytearray:
        """Append the raw object to `b`, or a nil when there is none."""
        if not self.data:
            return append_nil(b)
        out = b if isinstance(b, bytearray) else bytearray(b or b"")
        out += self.data
        return out

    def unmarshal_msg(self, b) -> memoryview:
        """Take the next object from `b` as the raw data and return the rest."""
        view = _view(b)
        rest = skip(view)
        taken = view[:len(view) - len(rest)]
        self.data = b"" if is_nil(taken) else bytes(taken)
        return rest

    def encode_msg(self, writer) -> None:
        """Write the raw object, or a nil when there is none."""
        if not self.data:
            writer.write_nil()
        else:
            writer.write(self.data)

    def msgsize(self) -> int:
        return len(self.data) or 1
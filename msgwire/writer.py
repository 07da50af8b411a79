"""A buffered writer of MessagePack objects to a binary stream."""

from __future__ import annotations

import struct
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .encode import (
    _append_extension,
    append_array_header,
    append_bool,
    append_bytes_header,
    append_complex64,
    append_complex128,
    append_float32,
    append_float64,
    append_int,
    append_map_header,
    append_nil,
    append_time,
    append_uint,
)
from .size import (
    BOOL_SIZE,
    BYTES_PREFIX_SIZE,
    COMPLEX128_SIZE,
    EXTENSION_PREFIX_SIZE,
    FLOAT64_SIZE,
    INT_SIZE,
    MAP_HEADER_SIZE,
    NIL_SIZE,
    STRING_PREFIX_SIZE,
)
from .types import (
    FIXSTR,
    INT64_MAX,
    STR8,
    STR16,
    STR32,
    UINT32_MAX,
    UintBelowZero,
    UintOverflow,
    UnsupportedTypeError,
)

MIN_WRITER_SIZE = 18
DEFAULT_WRITER_SIZE = 2048


class Nowhere:
    """A binary stream that discards everything written to it."""

    def write(self, p) -> int:
        return len(p)


def _str_header(sz: int) -> bytes:
    if sz < 0:
        raise UintBelowZero(sz)
    if sz > UINT32_MAX:
        raise UintOverflow(sz, 32)
    if sz <= 31:
        return bytes([FIXSTR | sz])
    if sz <= 0xFF:
        return struct.pack(">BB", STR8, sz)
    if sz <= 0xFFFF:
        return struct.pack(">BH", STR16, sz)
    return struct.pack(">BI", STR32, sz)


def _is_extension(v: Any) -> bool:
    return hasattr(v, "extension_type") and hasattr(v, "marshal_binary")


class Writer:
    """Buffers encoded objects and passes them on to a binary stream.

    Nothing reaches the stream until the buffer fills or `flush` is called.
    """

    def __init__(self, stream, size: int = DEFAULT_WRITER_SIZE) -> None:
        self._stream = stream
        self._size = max(size, MIN_WRITER_SIZE)
        self._buf = bytearray()

    def __enter__(self) -> Writer:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.flush()

    def _write_through(self, data) -> None:
        view = memoryview(data)
        while view:
            n = self._stream.write(view)
            if n is None:
                n = len(view)
            if n <= 0:
                raise OSError("short write")
            view = view[n:]

    def flush(self) -> None:
        """Write all buffered data to the underlying stream."""
        while self._buf:
            n = self._stream.write(bytes(self._buf))
            if n is None:
                n = len(self._buf)
            if n <= 0:
                raise OSError("short write")
            del self._buf[:n]

    def buffered(self) -> int:
        """Return the number of bytes waiting in the buffer."""
        return len(self._buf)

    def _put(self, data) -> None:
        if len(self._buf) + len(data) > self._size:
            self.flush()
            if len(data) > self._size:
                self._write_through(data)
                return
        self._buf += data

    def append(self, *args: int) -> None:
        """Append raw byte values to the buffer."""
        self._put(bytes(args))

    def write(self, p) -> int:
        """Write raw bytes and return how many were taken."""
        data = bytes(p)
        self._put(data)
        return len(data)

    def reset(self, stream) -> None:
        """Drop buffered data and switch to another stream."""
        self._stream = stream
        self._buf.clear()

    def write_map_header(self, sz: int) -> None:
        self._put(append_map_header(None, sz))

    def write_array_header(self, sz: int) -> None:
        self._put(append_array_header(None, sz))

    def write_nil(self) -> None:
        self._put(append_nil(None))

    def write_float64(self, f: float) -> None:
        self._put(append_float64(None, f))

    def write_float32(self, f: float) -> None:
        self._put(append_float32(None, f))

    def write_int(self, i: int) -> None:
        self._put(append_int(None, i))

    def write_uint(self, u: int) -> None:
        self._put(append_uint(None, u))

    def write_bytes(self, b) -> None:
        data = bytes(b)
        self._put(append_bytes_header(None, len(data)))
        self.write(data)

    def write_bytes_header(self, sz: int) -> None:
        """Write a 'bin' header; the caller then writes `sz` bytes."""
        self._put(append_bytes_header(None, sz))

    def write_bool(self, b: bool) -> None:
        self._put(append_bool(None, b))

    def write_string(self, s: str) -> None:
        self.write_string_from_bytes(s.encode("utf-8"))

    def write_string_header(self, sz: int) -> None:
        """Write a 'str' header; the caller then writes `sz` UTF-8 bytes."""
        self._put(_str_header(sz))

    def write_string_from_bytes(self, s) -> None:
        data = bytes(s)
        self._put(_str_header(len(data)))
        self.write(data)

    def write_complex64(self, c: complex) -> None:
        self._put(append_complex64(None, c))

    def write_complex128(self, c: complex) -> None:
        self._put(append_complex128(None, c))

    def write_map_str_str(self, mp: Mapping) -> None:
        self.write_map_header(len(mp))
        for key, val in mp.items():
            if not isinstance(key, str):
                raise UnsupportedTypeError(type(key))
            if not isinstance(val, str):
                raise UnsupportedTypeError(type(val))
            self.write_string(key)
            self.write_string(val)

    def write_map_str_intf(self, mp: Mapping) -> None:
        self.write_map_header(len(mp))
        for key, val in mp.items():
            if not isinstance(key, str):
                raise UnsupportedTypeError(type(key))
            self.write_string(key)
            self.write_intf(val)

    def write_time(self, t: datetime) -> None:
        """Write a datetime as Unix seconds and nanoseconds (15 bytes)."""
        self._put(append_time(None, t))

    def write_intf(self, v: Any) -> None:
        """Write any supported value.

        Objects with an ``encode_msg`` method encode themselves; extension
        objects, None, bool, int, float, complex, str, bytes-like objects,
        datetime, mappings with string keys and lists or tuples of supported
        values are written directly.
        """
        if v is None:
            self.write_nil()
        elif hasattr(v, "encode_msg"):
            v.encode_msg(self)
        elif _is_extension(v):
            self._put(_append_extension(bytearray(), v))
        elif isinstance(v, bool):
            self.write_bool(v)
        elif isinstance(v, int):
            if v > INT64_MAX:
                self.write_uint(v)
            else:
                self.write_int(v)
        elif isinstance(v, float):
            self.write_float64(v)
        elif isinstance(v, complex):
            self.write_complex128(v)
        elif isinstance(v, str):
            self.write_string(v)
        elif isinstance(v, (bytes, bytearray, memoryview)):
            self.write_bytes(v)
        elif isinstance(v, datetime):
            self.write_time(v)
        elif isinstance(v, Mapping):
            self.write_map_str_intf(v)
        elif isinstance(v, (list, tuple)):
            self.write_array_header(len(v))
            for item in v:
                self.write_intf(item)
        else:
            raise UnsupportedTypeError(type(v))


def encode(stream, e: Any) -> None:
    """Encode an object with an ``encode_msg`` method to a stream and flush."""
    wr = stream if isinstance(stream, Writer) else Writer(stream)
    e.encode_msg(wr)
    wr.flush()


def guess_size(i: Any) -> int:
    """Estimate the encoded size of `i`; unknown kinds count as 512 bytes."""
    if i is None:
        return NIL_SIZE
    if hasattr(i, "msgsize"):
        return i.msgsize()
    if _is_extension(i):
        length = len(i) if hasattr(i, "__len__") else len(i.marshal_binary())
        return EXTENSION_PREFIX_SIZE + length
    if isinstance(i, bool):
        return BOOL_SIZE
    if isinstance(i, float):
        return FLOAT64_SIZE
    if isinstance(i, int):
        return INT_SIZE
    if isinstance(i, (bytes, bytearray, memoryview)):
        return BYTES_PREFIX_SIZE + len(i)
    if isinstance(i, str):
        return STRING_PREFIX_SIZE + len(i.encode("utf-8"))
    if isinstance(i, complex):
        return COMPLEX128_SIZE
    if isinstance(i, Mapping) and all(isinstance(k, str) for k in i):
        return MAP_HEADER_SIZE + sum(
            STRING_PREFIX_SIZE + len(key.encode("utf-8")) + guess_size(val)
            for key, val in i.items()
        )
    return 512
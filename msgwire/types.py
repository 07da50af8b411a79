"""Wire-level type information, errors and extension objects."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

# Leading bytes of the MessagePack format.
FIXMAP = 0x80
FIXARRAY = 0x90
FIXSTR = 0xA0
NIL = 0xC0
FALSE = 0xC2
TRUE = 0xC3
BIN8 = 0xC4
BIN16 = 0xC5
BIN32 = 0xC6
EXT8 = 0xC7
EXT16 = 0xC8
EXT32 = 0xC9
FLOAT32 = 0xCA
FLOAT64 = 0xCB
UINT8 = 0xCC
UINT16 = 0xCD
UINT32 = 0xCE
UINT64 = 0xCF
INT8 = 0xD0
INT16 = 0xD1
INT32 = 0xD2
INT64 = 0xD3
FIXEXT1 = 0xD4
FIXEXT2 = 0xD5
FIXEXT4 = 0xD6
FIXEXT8 = 0xD7
FIXEXT16 = 0xD8
STR8 = 0xD9
STR16 = 0xDA
STR32 = 0xDB
ARRAY16 = 0xDC
ARRAY32 = 0xDD
MAP16 = 0xDE
MAP32 = 0xDF

# Extension type numbers reserved for built-in types.
COMPLEX64_EXTENSION = 3
COMPLEX128_EXTENSION = 4
TIME_EXTENSION = 5

# How the size of an object is found from its header.
# Non-negative values are a fixed count of child objects to follow.
CONST_SIZE = 0
EXTRA8 = -1
EXTRA16 = -2
EXTRA32 = -3
MAP16V = -4
MAP32V = -5
ARRAY16V = -6
ARRAY32V = -7

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
UINT64_MAX = (1 << 64) - 1
UINT32_MAX = (1 << 32) - 1


class Type(Enum):
    """The kind of object a leading byte announces."""

    INVALID = "<invalid>"
    STR = "str"
    BIN = "bin"
    MAP = "map"
    ARRAY = "array"
    FLOAT64 = "float64"
    FLOAT32 = "float32"
    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    NIL = "nil"
    EXTENSION = "ext"
    COMPLEX64 = "complex64"
    COMPLEX128 = "complex128"
    TIME = "time"

    def __str__(self) -> str:
        return self.value


class _ByteSpec(NamedTuple):
    type: Type
    size: int
    extra: int


def _build_specs() -> tuple[_ByteSpec, ...]:
    specs = [_ByteSpec(Type.INVALID, 0, CONST_SIZE)] * 256
    for lead in range(0x00, 0x80):
        specs[lead] = _ByteSpec(Type.INT, 1, CONST_SIZE)
    for lead in range(0x80, 0x90):
        specs[lead] = _ByteSpec(Type.MAP, 1, 2 * (lead & 0x0F))
    for lead in range(0x90, 0xA0):
        specs[lead] = _ByteSpec(Type.ARRAY, 1, lead & 0x0F)
    for lead in range(0xA0, 0xC0):
        specs[lead] = _ByteSpec(Type.STR, 1 + (lead & 0x1F), CONST_SIZE)
    for lead in range(0xE0, 0x100):
        specs[lead] = _ByteSpec(Type.INT, 1, CONST_SIZE)
    fixed = {
        NIL: (Type.NIL, 1, CONST_SIZE),
        FALSE: (Type.BOOL, 1, CONST_SIZE),
        TRUE: (Type.BOOL, 1, CONST_SIZE),
        BIN8: (Type.BIN, 2, EXTRA8),
        BIN16: (Type.BIN, 3, EXTRA16),
        BIN32: (Type.BIN, 5, EXTRA32),
        EXT8: (Type.EXTENSION, 3, EXTRA8),
        EXT16: (Type.EXTENSION, 4, EXTRA16),
        EXT32: (Type.EXTENSION, 6, EXTRA32),
        FLOAT32: (Type.FLOAT32, 5, CONST_SIZE),
        FLOAT64: (Type.FLOAT64, 9, CONST_SIZE),
        UINT8: (Type.UINT, 2, CONST_SIZE),
        UINT16: (Type.UINT, 3, CONST_SIZE),
        UINT32: (Type.UINT, 5, CONST_SIZE),
        UINT64: (Type.UINT, 9, CONST_SIZE),
        INT8: (Type.INT, 2, CONST_SIZE),
        INT16: (Type.INT, 3, CONST_SIZE),
        INT32: (Type.INT, 5, CONST_SIZE),
        INT64: (Type.INT, 9, CONST_SIZE),
        FIXEXT1: (Type.EXTENSION, 3, CONST_SIZE),
        FIXEXT2: (Type.EXTENSION, 4, CONST_SIZE),
        FIXEXT4: (Type.EXTENSION, 6, CONST_SIZE),
        FIXEXT8: (Type.EXTENSION, 10, CONST_SIZE),
        FIXEXT16: (Type.EXTENSION, 18, CONST_SIZE),
        STR8: (Type.STR, 2, EXTRA8),
        STR16: (Type.STR, 3, EXTRA16),
        STR32: (Type.STR, 5, EXTRA32),
        ARRAY16: (Type.ARRAY, 3, ARRAY16V),
        ARRAY32: (Type.ARRAY, 5, ARRAY32V),
        MAP16: (Type.MAP, 3, MAP16V),
        MAP32: (Type.MAP, 5, MAP32V),
    }
    for lead, (typ, size, extra) in fixed.items():
        specs[lead] = _ByteSpec(typ, size, extra)
    return tuple(specs)


BYTE_SPECS = _build_specs()


class MsgpError(Exception):
    """Base class of all encoding and decoding errors."""


class ShortBytesError(MsgpError):
    """There are too few bytes left to read an object."""

    def __init__(self, message: str = "too few bytes left to read object") -> None:
        super().__init__(message)


class MsgTypeError(MsgpError, TypeError):
    """An object was read with a method meant for another type."""

    def __init__(self, method: Type, encoded: Type) -> None:
        self.method = method
        self.encoded = encoded
        super().__init__(
            f"attempted to decode type {str(encoded)!r} with method for {str(method)!r}"
        )


class IntOverflow(MsgpError, OverflowError):
    """A signed value does not fit in the requested bit size."""

    def __init__(self, value: int, failed_bitsize: int) -> None:
        self.value = value
        self.failed_bitsize = failed_bitsize
        super().__init__(f"{value} overflows int{failed_bitsize}")


class UintOverflow(MsgpError, OverflowError):
    """An unsigned value does not fit in the requested bit size."""

    def __init__(self, value: int, failed_bitsize: int) -> None:
        self.value = value
        self.failed_bitsize = failed_bitsize
        super().__init__(f"{value} overflows uint{failed_bitsize}")


class UintBelowZero(MsgpError, ValueError):
    """A negative value was read or written as unsigned."""

    def __init__(self, value: int) -> None:
        self.value = value
        super().__init__(f"attempted to cast int {value} to unsigned")


class InvalidPrefixError(MsgpError, ValueError):
    """A leading byte is not a valid MessagePack prefix."""

    def __init__(self, prefix: int) -> None:
        self.prefix = prefix
        super().__init__(f"unrecognized type prefix 0x{prefix:x}")


class ArrayError(MsgpError, ValueError):
    """An object had a different length than expected."""

    def __init__(self, wanted: int, got: int) -> None:
        self.wanted = wanted
        self.got = got
        super().__init__(f"wanted array of size {wanted}; got {got}")


class ExtensionTypeError(MsgpError, TypeError):
    """An extension object carried an unexpected type number."""

    def __init__(self, got: int, want: int) -> None:
        self.got = got
        self.want = want
        super().__init__(f"error decoding extension: wanted type {want}; got type {got}")


class UnsupportedTypeError(MsgpError, TypeError):
    """A value of this type cannot be encoded."""

    def __init__(self, type_: type) -> None:
        self.type = type_
        super().__init__(f"type {type_.__name__!r} not supported")


@dataclass
class RawExtension:
    """An extension object kept as its type number and raw payload."""

    type: int
    data: bytes = b""

    def extension_type(self) -> int:
        return self.type

    def __len__(self) -> int:
        return len(self.data)

    def marshal_binary(self) -> bytes:
        return bytes(self.data)

    def unmarshal_binary(self, data: bytes) -> None:
        self.data = bytes(data)


def get_type(lead: int) -> Type:
    """Return the type announced by a leading byte."""
    return BYTE_SPECS[lead].type


def bad_prefix(want: Type, lead: int) -> MsgpError:
    """Build the error for reading `want` where `lead` was found."""
    found = get_type(lead)
    if found is Type.INVALID:
        return InvalidPrefixError(lead)
    return MsgTypeError(want, found)


def _int8(value: int) -> int:
    return value - 0x100 if value >= 0x80 else value


_EXTENSION_TYPES = {
    TIME_EXTENSION: Type.TIME,
    COMPLEX128_EXTENSION: Type.COMPLEX128,
    COMPLEX64_EXTENSION: Type.COMPLEX64,
}


def next_type(b: bytes) -> Type:
    """Return the type of the next object in `b`; INVALID when `b` is empty."""
    if not b:
        return Type.INVALID
    spec = BYTE_SPECS[b[0]]
    if spec.type is Type.EXTENSION and len(b) > spec.size:
        raw = b[1] if spec.extra == CONST_SIZE else b[spec.size - 1]
        return _EXTENSION_TYPES.get(_int8(raw), Type.EXTENSION)
    return spec.type


def is_nil(b: bytes) -> bool:
    """Return True when `b` starts with a nil byte."""
    return len(b) != 0 and b[0] == NIL
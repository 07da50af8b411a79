import pytest

from msgwire.types import (
    BYTE_SPECS,
    InvalidPrefixError,
    IntOverflow,
    MsgTypeError,
    RawExtension,
    ShortBytesError,
    Type,
    UintBelowZero,
    UnsupportedTypeError,
    bad_prefix,
    get_type,
    is_nil,
    next_type,
)


def test_next_type_empty_is_invalid():
    assert next_type(b"") is Type.INVALID


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"\xc0", Type.NIL),
        (b"\x05", Type.INT),
        (b"\xe0", Type.INT),
        (b"\xc3", Type.BOOL),
        (b"\xc2", Type.BOOL),
        (b"\x81", Type.MAP),
        (b"\x91", Type.ARRAY),
        (b"\xa1a", Type.STR),
        (b"\xc4\x00", Type.BIN),
        (b"\xcb" + bytes(8), Type.FLOAT64),
        (b"\xca" + bytes(4), Type.FLOAT32),
        (b"\xcc\x01", Type.UINT),
        (b"\xd0\x01", Type.INT),
        (b"\xc1", Type.INVALID),
    ],
)
def test_next_type_for_leading_bytes(data, expected):
    assert next_type(data) is expected


def test_next_type_recognises_builtin_extensions():
    time_obj = bytes([0xC7, 12, 5]) + bytes(12)
    assert next_type(time_obj) is Type.TIME
    complex64_obj = bytes([0xD7, 3]) + bytes(8) + b"\xc0"
    assert next_type(complex64_obj) is Type.COMPLEX64
    complex128_obj = bytes([0xD8, 4]) + bytes(16) + b"\xc0"
    assert next_type(complex128_obj) is Type.COMPLEX128


def test_next_type_user_extension():
    assert next_type(bytes([0xD4, 42, 0, 0xC0])) is Type.EXTENSION


def test_next_type_extension_header_only():
    assert next_type(bytes([0xC7, 12])) is Type.EXTENSION


def test_is_nil():
    assert is_nil(b"\xc0")
    assert is_nil(b"\xc0\x01")
    assert not is_nil(b"")
    assert not is_nil(b"\xc2")


def test_byte_spec_table_invariants():
    assert len(BYTE_SPECS) == 256
    for lead in range(0xA0, 0xC0):
        assert get_type(lead) is Type.STR
        assert next_type(bytes([lead])) is Type.STR
        assert BYTE_SPECS[lead].size == 1 + (lead & 0x1F)
    for lead in range(0x80, 0x90):
        assert get_type(lead) is Type.MAP
        assert BYTE_SPECS[lead].extra == 2 * (lead & 0x0F)
    assert get_type(0xC1) is Type.INVALID
    assert BYTE_SPECS[0xC1].size == 0


def test_get_type():
    assert get_type(0xC0) is Type.NIL
    assert get_type(0xDF) is Type.MAP
    assert get_type(0xC1) is Type.INVALID


def test_bad_prefix_invalid_byte():
    err = bad_prefix(Type.INT, 0xC1)
    assert isinstance(err, InvalidPrefixError)
    assert err.prefix == 0xC1


def test_bad_prefix_wrong_type():
    err = bad_prefix(Type.INT, 0xC0)
    assert isinstance(err, MsgTypeError)
    assert err.method is Type.INT
    assert err.encoded is Type.NIL
    assert "nil" in str(err)


def test_error_attributes():
    overflow = IntOverflow(300, 8)
    assert overflow.value == 300
    assert overflow.failed_bitsize == 8
    assert isinstance(overflow, OverflowError)
    below = UintBelowZero(-1)
    assert below.value == -1
    unsupported = UnsupportedTypeError(object)
    assert unsupported.type is object
    with pytest.raises(ShortBytesError):
        raise ShortBytesError()


def test_type_str():
    assert str(next_type(bytes([0xD4, 42, 0, 0xC0]))) == "ext"
    assert str(next_type(bytes([0xD8, 4]) + bytes(16) + b"\xc0")) == "complex128"


def test_raw_extension_round_trip():
    ext = RawExtension(type=55, data=b"raw data!!!")
    assert ext.extension_type() == 55
    assert len(ext) == len(b"raw data!!!")
    assert ext.marshal_binary() == b"raw data!!!"
    ext.unmarshal_binary(bytearray(b"other"))
    assert ext.data == b"other"
    assert len(ext) == 5
import io
from datetime import datetime, timezone

import pytest

from msgwire.decode import (
    Raw,
    read_array_header,
    read_bool,
    read_byte,
    read_bytes,
    read_bytes_header,
    read_complex64,
    read_complex128,
    read_exact_bytes,
    read_float32,
    read_float64,
    read_int,
    read_int8,
    read_int16,
    read_int32,
    read_int64,
    read_intf,
    read_map_header,
    read_map_key,
    read_map_str_intf,
    read_nil,
    read_string,
    read_string_raw,
    read_time,
    read_uint,
    read_uint8,
    read_uint16,
    read_uint32,
    read_uint64,
    skip,
)
from msgwire.encode import append_intf, append_map_header, append_string, append_time
from msgwire.types import (
    ArrayError,
    ExtensionTypeError,
    IntOverflow,
    InvalidPrefixError,
    MsgTypeError,
    RawExtension,
    ShortBytesError,
    Type,
    UintBelowZero,
    UintOverflow,
)
from msgwire.writer import Writer

TUINT16 = 300
TUINT32 = 0xFFFF + 100
TUINT64 = 0xFFFFFFFF + 100
INT64_MAX = (1 << 63) - 1
INT64_MIN = -(1 << 63)
UINT64_MAX = (1 << 64) - 1
UINT32_MAX = (1 << 32) - 1


def written(action):
    buf = io.BytesIO()
    wr = Writer(buf)
    action(wr)
    wr.flush()
    return buf.getvalue()


@pytest.mark.parametrize("size", [0, 1, 5, 49082])
def test_read_map_header(size):
    data = written(lambda wr: wr.write_map_header(size))
    out, left = read_map_header(data)
    assert out == size
    assert len(left) == 0


@pytest.mark.parametrize("size", [0, 1, 5, 49082])
def test_read_array_header(size):
    data = written(lambda wr: wr.write_array_header(size))
    out, left = read_array_header(data)
    assert out == size
    assert len(left) == 0


@pytest.mark.parametrize("size", [0, 1, 5, 49082, 1 << 16, UINT32_MAX])
def test_read_bytes_header(size):
    data = written(lambda wr: wr.write_bytes_header(size))
    out, left = read_bytes_header(data)
    assert out == size
    assert len(left) == 0


def test_read_nil():
    data = written(lambda wr: wr.write_nil())
    left = read_nil(data)
    assert len(left) == 0


def test_read_nil_wrong_type():
    with pytest.raises(MsgTypeError) as info:
        read_nil(b"\xc3")
    assert info.value.encoded is Type.BOOL


def test_read_float64():
    data = written(lambda wr: wr.write_float64(3.14159))
    out, left = read_float64(data)
    assert out == 3.14159
    assert len(left) == 0


def test_read_float64_accepts_float32():
    data = written(lambda wr: wr.write_float32(3.1))
    out, left = read_float64(data)
    assert out == pytest.approx(3.1, rel=1e-6)
    assert len(left) == 0


def test_read_float32():
    data = written(lambda wr: wr.write_float32(3.1))
    out, left = read_float32(data)
    assert out == pytest.approx(3.1, rel=1e-6)
    assert len(left) == 0


def test_read_float32_rejects_float64():
    data = written(lambda wr: wr.write_float64(1.5))
    with pytest.raises(MsgTypeError) as info:
        read_float32(data)
    assert info.value.encoded is Type.FLOAT64


@pytest.mark.parametrize("value", [True, False])
def test_read_bool(value):
    data = written(lambda wr: wr.write_bool(value))
    out, left = read_bool(data)
    assert out is value
    assert len(left) == 0


def test_read_bool_invalid_prefix():
    with pytest.raises(InvalidPrefixError):
        read_bool(b"\xc1")


INTS = [-100000, -5000, -5, 0, 8, 240, TUINT16, TUINT32, TUINT64,
        -5, -30, 0, 1, 127, 300, 40921, 34908219]
UINTS = [0, 8, 240, TUINT16, TUINT32, TUINT64]


@pytest.mark.parametrize("num", INTS)
def test_read_int64_from_signed(num):
    data = written(lambda wr: wr.write_int(num))
    out, left = read_int64(data)
    assert out == num
    assert len(left) == 0


@pytest.mark.parametrize("num", UINTS)
def test_read_int64_from_unsigned(num):
    data = written(lambda wr: wr.write_uint(num))
    out, left = read_int64(data)
    assert out == num
    assert len(left) == 0


@pytest.mark.parametrize("num", [0, 8, 240, TUINT16, TUINT32, TUINT64])
def test_read_uint64_from_signed(num):
    data = written(lambda wr: wr.write_int(num))
    out, left = read_uint64(data)
    assert out == num
    assert len(left) == 0


@pytest.mark.parametrize("num", [0, 8, 240, TUINT16, TUINT32, TUINT64, UINT64_MAX])
def test_read_uint64_from_unsigned(num):
    data = written(lambda wr: wr.write_uint(num))
    out, left = read_uint64(data)
    assert out == num
    assert len(left) == 0


OVERFLOWS = [
    (INT64_MAX, read_int32, IntOverflow, 32),
    (INT64_MAX, read_int16, IntOverflow, 16),
    (INT64_MAX, read_int8, IntOverflow, 8),
    (UINT64_MAX, read_int64, UintOverflow, 64),
    (UINT64_MAX, read_int32, UintOverflow, 64),
    (UINT64_MAX, read_int16, UintOverflow, 64),
    (UINT64_MAX, read_int8, UintOverflow, 64),
    (UINT32_MAX, read_int32, IntOverflow, 32),
    (UINT32_MAX, read_int16, IntOverflow, 16),
    (UINT32_MAX, read_int8, IntOverflow, 8),
]


@pytest.mark.parametrize("value,reader,error,bits", OVERFLOWS)
def test_read_int_overflows(value, reader, error, bits):
    data = written(lambda wr: wr.write_uint(value))
    with pytest.raises(error) as info:
        reader(data)
    assert type(info.value) is error
    assert info.value.failed_bitsize == bits
    assert info.value.value == value


BELOW_ZERO = [
    (value, reader)
    for value in [INT64_MIN, -(1 << 31), -(1 << 15), -(1 << 7), -1]
    for reader in [read_uint64, read_uint32, read_uint16, read_uint8]
]


@pytest.mark.parametrize("value,reader", BELOW_ZERO)
def test_read_uint_below_zero(value, reader):
    data = written(lambda wr: wr.write_int(value))
    with pytest.raises(UintBelowZero) as info:
        reader(data)
    assert info.value.value == value


def test_read_uint_overflows_narrow():
    data = written(lambda wr: wr.write_uint(256))
    with pytest.raises(UintOverflow) as info:
        read_uint8(data)
    assert info.value.failed_bitsize == 8
    assert read_uint16(data)[0] == 256


def test_read_int_and_uint_aliases():
    data = written(lambda wr: wr.write_int(-7))
    assert read_int(data)[0] == -7
    data = written(lambda wr: wr.write_uint(200))
    assert read_uint(data)[0] == 200
    assert read_byte(data)[0] == 200


def test_issue116_min_int64():
    data = append_intf(None, INT64_MIN)
    out, left = read_int64(data)
    assert out == INT64_MIN
    assert len(left) == 0


def test_read_int_short():
    with pytest.raises(ShortBytesError):
        read_int64(b"\xd2\x00\x01")


@pytest.mark.parametrize("value", [b"", b"some bytes", b"some more bytes"])
def test_read_bytes(value):
    data = written(lambda wr: wr.write_bytes(value))
    out, left = read_bytes(data)
    assert out == value
    assert len(left) == 0


def test_read_bytes_short_payload():
    with pytest.raises(ShortBytesError):
        read_bytes(b"\xc4\x05abc")


def test_read_exact_bytes():
    data = written(lambda wr: wr.write_bytes(b"hello"))
    into = bytearray(5)
    left = read_exact_bytes(data + b"\xc0", into)
    assert into == bytearray(b"hello")
    assert bytes(left) == b"\xc0"


def test_read_exact_bytes_wrong_length():
    data = written(lambda wr: wr.write_bytes(b"hello"))
    with pytest.raises(ArrayError) as info:
        read_exact_bytes(data, bytearray(3))
    assert (info.value.wanted, info.value.got) == (3, 5)


@pytest.mark.parametrize("value", ["", "hello", "here's another string......"])
def test_read_string_raw(value):
    data = written(lambda wr: wr.write_string(value))
    out, left = read_string_raw(data)
    assert out == value.encode()
    assert len(left) == 0


@pytest.mark.parametrize("value", ["", "hello", "here's another string......", "é" * 200])
def test_read_string(value):
    data = written(lambda wr: wr.write_string(value))
    out, left = read_string(data)
    assert out == value
    assert len(left) == 0


def test_read_string_wrong_type():
    with pytest.raises(MsgTypeError) as info:
        read_string(b"\x01")
    assert info.value.method is Type.STR
    assert info.value.encoded is Type.INT


@pytest.mark.parametrize("value", [complex(0, 0), complex(12.8, 32.0)])
def test_read_complex128(value):
    data = written(lambda wr: wr.write_complex128(value))
    out, left = read_complex128(data)
    assert out == value
    assert len(left) == 0


@pytest.mark.parametrize("value", [complex(0, 0), complex(12.8, 32.0)])
def test_read_complex64(value):
    data = written(lambda wr: wr.write_complex64(value))
    out, left = read_complex64(data)
    assert out.real == pytest.approx(value.real, rel=1e-6)
    assert out.imag == pytest.approx(value.imag, rel=1e-6)
    assert len(left) == 0


def test_read_complex64_wrong_extension():
    data = bytes([0xD7, 0x09]) + bytes(8)
    with pytest.raises(ExtensionTypeError) as info:
        read_complex64(data)
    assert (info.value.got, info.value.want) == (9, 3)


def test_read_map_key():
    args = ["a", "ab", "qwertyuiop"]

    def write_all(wr):
        for arg in args:
            wr.write_string(arg)
            wr.write_bytes(arg.encode())

    rest = written(write_all)
    for arg in args:
        s0, rest = read_map_key(rest)
        s1, rest = read_map_key(rest)
        assert s0 == s1
        assert s0 == arg.encode()
    assert len(rest) == 0


def test_read_map_key_rejects_int():
    with pytest.raises(MsgTypeError):
        read_map_key(b"\x05")


def test_read_time():
    now = datetime.now(timezone.utc)
    data = written(lambda wr: wr.write_time(now))
    out, left = read_time(data)
    assert out == now
    assert len(left) == 0


def test_read_time_fixed_moment():
    moment = datetime(2001, 2, 3, 4, 5, 6, 789000, tzinfo=timezone.utc)
    out, left = read_time(append_time(None, moment))
    assert out.astimezone(timezone.utc) == moment
    assert len(left) == 0


def test_read_time_short():
    with pytest.raises(ShortBytesError):
        read_time(b"\xc7\x0c\x05")


INTF_CASES = [
    3.5,
    -49082,
    34908,
    "hello!",
    b"blah.",
    {"key_one": 3.5, "key_two": "hi."},
]


@pytest.mark.parametrize("value", INTF_CASES)
def test_read_intf(value):
    data = written(lambda wr: wr.write_intf(value))
    out, left = read_intf(data)
    assert out == value
    assert len(left) == 0


def test_read_intf_extension():
    ext = RawExtension(55, b"raw data!!!")
    out, left = read_intf(append_intf(None, ext))
    assert out == ext
    assert len(left) == 0


def test_read_intf_invalid():
    with pytest.raises(InvalidPrefixError) as info:
        read_intf(b"\xc1")
    assert info.value.prefix == 0xC1


def test_read_intf_empty():
    with pytest.raises(ShortBytesError):
        read_intf(b"")


def test_read_map_str_intf_reuses_old():
    old = {"stale": 1}
    data = append_intf(None, {"a": 1, "b": "two"})
    out, left = read_map_str_intf(data, old)
    assert out is old
    assert old == {"a": 1, "b": "two"}
    assert len(left) == 0


def test_read_map_str_intf_short():
    data = append_string(append_map_header(None, 2), "a") + b"\x01"
    with pytest.raises(ShortBytesError):
        read_map_str_intf(data)


def _sample_map(wr):
    wr.write_map_header(6)
    wr.write_string("thing_one")
    wr.write_string("value_one")
    wr.write_string("thing_two")
    wr.write_float64(3.14159)
    wr.write_string("some_bytes")
    wr.write_bytes(b"nkl4321rqw908vxzpojnlk2314rqew098-s09123rdscasd")
    wr.write_string("the_time")
    wr.write_time(datetime.now(timezone.utc))
    wr.write_string("what?")
    wr.write_bool(True)
    wr.write_string("ext")
    wr.write_intf(RawExtension(55, b"raw data!!!"))


def test_skip_whole_map():
    data = written(_sample_map)
    assert len(skip(data)) == 0
    assert bytes(skip(data + b"\xc0\x01")) == b"\xc0\x01"


def test_skip_truncated():
    data = written(_sample_map)
    with pytest.raises(ShortBytesError):
        skip(data[:-3])


def test_skip_invalid_prefix():
    with pytest.raises(InvalidPrefixError):
        skip(b"\x91\xc1")


def test_raw_round_trip():
    encoded = bytes(append_intf(None, [1, "two", {"three": 3.0}]))
    raw = Raw()
    left = raw.unmarshal_msg(encoded + b"\x07")
    assert raw.data == encoded
    assert bytes(left) == b"\x07"
    assert bytes(raw.marshal_msg(None)) == encoded
    assert raw.msgsize() == len(encoded)


def test_raw_nil():
    raw = Raw(b"\x01")
    left = raw.unmarshal_msg(b"\xc0")
    assert raw.data == b""
    assert len(left) == 0
    assert bytes(raw.marshal_msg(bytearray(b"\x05"))) == b"\x05\xc0"
    assert raw.msgsize() == 1


def test_raw_encode_msg():
    raw = Raw(bytes(append_string(None, "hi")))
    assert written(raw.encode_msg) == b"\xa2hi"
    assert written(Raw().encode_msg) == b"\xc0"


def test_raw_inside_append_intf():
    raw = Raw(b"\x2a")
    out, left = read_intf(append_intf(None, [raw, Raw()]))
    assert out == [42, None]
    assert len(left) == 0
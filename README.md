# msgwire

Low-level MessagePack encoding and decoding for Python, using only the
standard library.

msgwire gives you three ways to work with MessagePack data:

- **Append-style encoders** in `msgwire.encode`. Each one adds one encoded
  value to the end of a buffer and returns the `bytearray` holding the result.
  A `bytearray` you pass in is extended in place; `None` or other bytes-like
  objects start a new one.
- **A buffered `Writer`** in `msgwire.writer` that encodes values into any
  object with a `write` method, such as a file or `io.BytesIO`.
- **Slice decoders** in `msgwire.decode` that read one value from the front of
  a bytes-like object and return the value together with the bytes that
  follow it, as a `memoryview` over the input, so reads can be chained
  without copying.

`append_int` and `Writer.write_int` use the smallest signed encoding that
holds the value; `append_uint` and `Writer.write_uint` the smallest unsigned
one. Times are written as an extension object of 15 bytes holding Unix
seconds and nanoseconds. Complex numbers are written as extension objects
too (`append_complex64`, `append_complex128`).

## Installation

```
pip install msgwire
```

## Encoding into a buffer

```python
from msgwire.encode import append_map_header, append_string, append_int

buf = bytearray()
buf = append_map_header(buf, 1)
buf = append_string(buf, "answer")
buf = append_int(buf, 42)
```

`append_intf` picks the encoding from the type of the value. It handles
`None`, `bool`, `int` (values above the signed 64-bit range are written as
unsigned), `float`, `complex`, `str`, bytes-like objects, `datetime`, lists,
tuples, mappings with string keys, objects with a `marshal_msg(b)` method and
extension objects (with `extension_type()` and `marshal_binary()` methods,
such as `msgwire.types.RawExtension`):

```python
from msgwire.encode import append_intf

buf = append_intf(bytearray(), {"name": "widget", "sizes": [1, 2, 3]})
```

A naive `datetime` is taken to be local time.

## Encoding into a stream

```python
import io
from msgwire.writer import Writer

out = io.BytesIO()
with Writer(out) as w:
    w.write_array_header(2)
    w.write_string("hello")
    w.write_float64(3.5)
data = out.getvalue()
```

The writer keeps data in its buffer (2048 bytes by default, at least 18) until
the buffer fills, `flush()` is called or the `with` block ends without an
error. `write_intf` accepts the same kinds of values as `append_intf`, except
that objects encode themselves through an `encode_msg(writer)` method.

`encode(stream, e)` calls `e.encode_msg` on a writer for the stream and
flushes. `guess_size(value)` gives a rough estimate of the encoded size;
values it does not recognise count as 512 bytes. `Nowhere` is a stream that
discards everything written to it.

## Decoding

Each reader takes bytes and returns the value and the remaining bytes:

```python
from msgwire.decode import read_map_header, read_string, read_int64, read_intf

size, rest = read_map_header(data)
key, rest = read_string(rest)
value, rest = read_int64(rest)

obj, rest = read_intf(data)  # any value, decoded by its type
```

`read_intf` returns maps as dicts, arrays as lists, 'bin' as `bytes`, 'str'
as `str`, time extensions as aware `datetime` objects in local time, complex
extensions as `complex` and other extensions as `RawExtension` objects.
The sized integer readers (`read_int32`, `read_uint16` and so on) check that
the value fits the width. `read_map_key` accepts a 'str' or a 'bin' key.

`skip(b)` steps over one whole value, including every element of a map or
array. `msgwire.types.next_type(b)` tells you what comes next without
decoding it, and `is_nil(b)` whether it is a nil.

`msgwire.decode.Raw` holds one encoded value without interpreting it:
`unmarshal_msg` takes the next value from a buffer, and `marshal_msg` /
`encode_msg` write it back out (empty data stands for nil).

`msgwire.size` lists the worst-case encoded size of each kind of value.

## Errors

Every decoding failure raises a subclass of `msgwire.types.MsgpError`:

- `ShortBytesError`: the input ended too early.
- `MsgTypeError`: the next value is not of the requested type.
- `IntOverflow` and `UintOverflow`: the value does not fit the requested width.
- `UintBelowZero`: a negative value was read as unsigned.
- `InvalidPrefixError`: the lead byte is not valid MessagePack.
- `ExtensionTypeError`: an extension of the wrong type was found.
- `ArrayError`: `read_exact_bytes` found a payload of a different length.

Encoding a value of an unsupported type raises `UnsupportedTypeError`;
integers and sizes outside the range of the format raise `IntOverflow`,
`UintOverflow` or `UintBelowZero`.

## What it does not do

Decoding works on bytes already in memory; there is no reader that pulls
values from a stream. Nothing generates encoding or decoding methods for your
own classes: objects take part by providing `marshal_msg`, `encode_msg` or
`msgsize` themselves.

## Running the tests

```
pip install -e ".[test]"
pytest
```
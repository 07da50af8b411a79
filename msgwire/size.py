"""Worst-case encoded sizes of MessagePack objects.

For variable-length types (bin, str, ext) the total encoded size is the
prefix size plus the length of the payload.
"""

INT64_SIZE = 9
INT_SIZE = INT64_SIZE
UINT_SIZE = INT64_SIZE
INT8_SIZE = 2
INT16_SIZE = 3
INT32_SIZE = 5
UINT8_SIZE = 2
BYTE_SIZE = UINT8_SIZE
UINT16_SIZE = 3
UINT32_SIZE = 5
UINT64_SIZE = INT64_SIZE
FLOAT64_SIZE = 9
FLOAT32_SIZE = 5
COMPLEX64_SIZE = 10
COMPLEX128_SIZE = 18

TIME_SIZE = 15
BOOL_SIZE = 1
NIL_SIZE = 1

MAP_HEADER_SIZE = 5
ARRAY_HEADER_SIZE = 5

BYTES_PREFIX_SIZE = 5
STRING_PREFIX_SIZE = 5
EXTENSION_PREFIX_SIZE = 6
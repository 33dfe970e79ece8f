"""Variable-length quantity encoding for 32-bit and 64-bit unsigned integers.

Values are split into 7-bit groups, least significant group first. The last
group is written as-is, so its top bit is clear. Every other group is written
as the one's complement of the group, which always sets the top bit:

    0       -> 00
    127     -> 7f
    128     -> ff 01
    300     -> d3 02

This differs from the common protobuf layout (which sets bit 7 and keeps the
low bits untouched) and must stay bit-exact to read existing data.

Decoding rejects encodings longer than the width allows (5 bytes for 32-bit,
10 bytes for 64-bit) with MalformedVarint. Bits carried by a maximum-length
encoding beyond the width are dropped.
"""
from typing import Iterator

from .stream import ByteBufferSink, ByteBufferSource, ByteSink, ByteSource

INT_BITS = 32
LONG_BITS = 64

MAX_INT_BYTES = 5
MAX_LONG_BYTES = 10

_MASKS = {
    INT_BITS: (1 << INT_BITS) - 1,
    LONG_BITS: (1 << LONG_BITS) - 1,
}
_MAX_BYTES = {
    INT_BITS: MAX_INT_BYTES,
    LONG_BITS: MAX_LONG_BYTES,
}


class MalformedVarint(ValueError):
    """Raised when an encoding has more continuation bytes than its width allows."""


def _check_width(width: int) -> None:
    if width not in _MASKS:
        raise ValueError(f"Unsupported integer width: {width} (expected 32 or 64)")


def _pack(value: int, sink: ByteSink, width: int) -> None:
    # Negative numbers are written as their unsigned bit pattern, so the shift below is logical.
    value &= _MASKS[width]

    if value == 0:
        sink.write_byte(0)
        return

    while True:
        remainder = value & 0x7f
        value >>= 7

        if value == 0:
            sink.write_byte(remainder)
            return

        sink.write_byte(~remainder & 0xff)


def _unpack(source: ByteSource, width: int) -> int:
    max_bytes = _MAX_BYTES[width]
    result = 0
    for index in range(max_bytes):
        next_byte = source.read_byte()
        if not next_byte & 0x80:
            result |= next_byte << (7 * index)
            return result & _MASKS[width]

        result |= (~next_byte & 0x7f) << (7 * index)

    raise MalformedVarint(f"Variable-length quantity exceeds {max_bytes} bytes for a {width}-bit integer")


def pack_int(value: int, sink: ByteSink) -> None:
    """Write a 32-bit unsigned integer to a byte sink.

    Args:
        value: Integer to encode; bits above 32 are ignored and negative values
               are written as their unsigned 32-bit pattern
        sink: Destination; its errors propagate unchanged
    """
    _pack(value, sink, INT_BITS)


def pack_long(value: int, sink: ByteSink) -> None:
    """Write a 64-bit unsigned integer to a byte sink. See pack_int."""
    _pack(value, sink, LONG_BITS)


def unpack_int(source: ByteSource) -> int:
    """Read a 32-bit unsigned integer from a byte source.

    Returns:
        Decoded value in the range 0 to 2^32-1

    Raises:
        SourceExhausted: The source ended before the terminal byte
        MalformedVarint: More than 5 bytes without a terminal byte
    """
    return _unpack(source, INT_BITS)


def unpack_long(source: ByteSource) -> int:
    """Read a 64-bit unsigned integer from a byte source.

    Returns:
        Decoded value in the range 0 to 2^64-1

    Raises:
        SourceExhausted: The source ended before the terminal byte
        MalformedVarint: More than 10 bytes without a terminal byte
    """
    return _unpack(source, LONG_BITS)


def encode_int(value: int) -> bytes:
    sink = ByteBufferSink()
    pack_int(value, sink)
    return sink.getvalue()


def encode_long(value: int) -> bytes:
    sink = ByteBufferSink()
    pack_long(value, sink)
    return sink.getvalue()


def decode_int(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a 32-bit value from a buffer.

    Args:
        data: Buffer containing the encoding
        offset: Starting position in the buffer

    Returns:
        Tuple of (decoded_value, bytes_consumed)
    """
    source = ByteBufferSource(data, offset)
    value = unpack_int(source)
    return value, source.position - offset


def decode_long(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a 64-bit value from a buffer. See decode_int."""
    source = ByteBufferSource(data, offset)
    value = unpack_long(source)
    return value, source.position - offset


def iter_decode(data: bytes, width: int = LONG_BITS) -> Iterator[int]:
    """Yield every value from a buffer of concatenated encodings.

    Raises:
        SourceExhausted: The buffer ends in the middle of an encoding
    """
    _check_width(width)
    source = ByteBufferSource(data)
    while source.remaining():
        yield _unpack(source, width)


def encoded_size(value: int, width: int = LONG_BITS) -> int:
    """Number of bytes pack_int / pack_long would write for value."""
    _check_width(width)
    value &= _MASKS[width]
    size = 1
    while value > 0x7f:
        value >>= 7
        size += 1
    return size


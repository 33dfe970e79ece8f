"""Byte sinks and sources consumed by the variable-length quantity codec.

The codec only needs two capabilities: appending one byte, and reading one byte
while advancing. Anything that provides ``write_byte`` or ``read_byte`` can be
passed to it; the classes here cover in-memory buffers and binary file objects.
"""
from typing import BinaryIO, Protocol


class SourceExhausted(EOFError):
    """Raised when a byte source has no more bytes to read."""


class ByteSink(Protocol):
    def write_byte(self, value: int) -> None:
        """Append one byte (0..255)."""
        ...


class ByteSource(Protocol):
    def read_byte(self) -> int:
        """Read one byte (0..255) and advance by one.

        Raises:
            SourceExhausted: No bytes are left
        """
        ...


class ByteBufferSink:
    """Append-only in-memory sink."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_byte(self, value: int) -> None:
        self._buffer.append(value)

    def getvalue(self) -> bytes:
        return bytes(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)


class ByteBufferSource:
    """Sequential reader over an in-memory buffer.

    Args:
        data: Buffer to read from
        offset: Position of the first byte to read
    """

    def __init__(self, data: bytes | bytearray | memoryview, offset: int = 0) -> None:
        if offset < 0 or offset > len(data):
            raise ValueError(f"Offset {offset} is outside the buffer (length {len(data)})")
        self._data = memoryview(data)
        self.position = offset

    def read_byte(self) -> int:
        if self.position >= len(self._data):
            raise SourceExhausted(f"Buffer exhausted at offset {self.position}")
        value = self._data[self.position]
        self.position += 1
        return value

    def remaining(self) -> int:
        return len(self._data) - self.position


class FileByteSink:
    """Sink writing through to a binary file object."""

    def __init__(self, fileobj: BinaryIO) -> None:
        self._file = fileobj

    def write_byte(self, value: int) -> None:
        self._file.write(bytes((value,)))


class FileByteSource:
    """Source reading one byte at a time from a binary file object.

    An empty read is reported as SourceExhausted; errors raised by the file
    object itself propagate unchanged.
    """

    def __init__(self, fileobj: BinaryIO) -> None:
        self._file = fileobj

    def read_byte(self) -> int:
        data = self._file.read(1)
        if not data:
            raise SourceExhausted("Unexpected end of file")
        return data[0]

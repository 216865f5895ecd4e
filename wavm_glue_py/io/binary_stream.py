"""
Binary stream reader for the WebAssembly binary format.

This module provides a BinaryStream class with the primitive readers the
WebAssembly decoder is built on: fixed-width little-endian integers and
floats, LEB128 variable-length integers and length-prefixed names.
Every read is bounds-checked; running off the end of the data raises
DecoderError instead of returning short data.
"""

import struct
from io import BytesIO
from typing import Callable, List, TypeVar, Union

from ..errors import DecoderError

T = TypeVar('T')


class BinaryStream:
    """
    Bounds-checked little-endian reader over an in-memory byte buffer.

    Attributes:
        position: Current read offset
        length: Total number of bytes in the stream
    """

    def __init__(self, data: Union[bytes, bytearray, BytesIO]):
        """
        Initialize a BinaryStream.

        Args:
            data: Either raw bytes or a BytesIO stream
        """
        if isinstance(data, (bytes, bytearray)):
            self._stream = BytesIO(bytes(data))
        else:
            self._stream = data

        current = self._stream.tell()
        self._stream.seek(0, 2)
        self._length = self._stream.tell()
        self._stream.seek(current)

    # ========== Position and Length ==========

    @property
    def position(self) -> int:
        """Get current stream position."""
        return self._stream.tell()

    @position.setter
    def position(self, value: int) -> None:
        """Set stream position."""
        self._stream.seek(value)

    @property
    def length(self) -> int:
        """Get stream length."""
        return self._length

    @property
    def remaining(self) -> int:
        """Number of bytes left after the current position."""
        return self._length - self.position

    def at_end(self) -> bool:
        return self.position >= self._length

    # ========== Primitive Readers ==========

    def read_bytes(self, count: int) -> bytes:
        """Read exactly count raw bytes."""
        if count < 0:
            raise DecoderError(f"Negative read length {count} at offset 0x{self.position:x}")
        offset = self.position
        data = self._stream.read(count)
        if len(data) != count:
            raise DecoderError(
                f"Unexpected end of data at offset 0x{offset:x}: "
                f"wanted {count} bytes, got {len(data)}"
            )
        return data

    def read_byte(self) -> int:
        """Read an unsigned byte."""
        return self.read_bytes(1)[0]

    def read_uint32(self) -> int:
        """Read an unsigned 32-bit integer."""
        return struct.unpack('<I', self.read_bytes(4))[0]

    def read_float(self) -> float:
        """Read a 32-bit float."""
        return struct.unpack('<f', self.read_bytes(4))[0]

    def read_double(self) -> float:
        """Read a 64-bit double."""
        return struct.unpack('<d', self.read_bytes(8))[0]

    # ========== LEB128 Readers ==========

    def read_uleb128(self, bits: int = 32) -> int:
        """
        Read an unsigned LEB128 encoded integer.

        Args:
            bits: Width of the encoded value; longer encodings are rejected

        Returns:
            The decoded value
        """
        offset = self.position
        max_bytes = (bits + 6) // 7
        result = 0
        shift = 0
        for _ in range(max_bytes):
            b = self.read_byte()
            result |= (b & 0x7F) << shift
            shift += 7
            if (b & 0x80) == 0:
                if result >> bits:
                    raise DecoderError(f"LEB128 value at offset 0x{offset:x} exceeds {bits} bits")
                return result
        raise DecoderError(f"LEB128 value at offset 0x{offset:x} is longer than {max_bytes} bytes")

    def read_sleb128(self, bits: int = 32) -> int:
        """
        Read a signed LEB128 encoded integer.

        Args:
            bits: Width of the encoded value; longer encodings are rejected

        Returns:
            The decoded value, sign-extended
        """
        offset = self.position
        max_bytes = (bits + 6) // 7
        result = 0
        shift = 0
        for _ in range(max_bytes):
            b = self.read_byte()
            result |= (b & 0x7F) << shift
            shift += 7
            if (b & 0x80) == 0:
                if b & 0x40:
                    result |= (~0 << shift)
                if not -(1 << (bits - 1)) <= result < (1 << (bits - 1)):
                    raise DecoderError(f"LEB128 value at offset 0x{offset:x} exceeds {bits} bits")
                return result
        raise DecoderError(f"LEB128 value at offset 0x{offset:x} is longer than {max_bytes} bytes")

    # ========== Composite Readers ==========

    def read_name(self) -> str:
        """Read a length-prefixed UTF-8 name."""
        offset = self.position
        raw = self.read_bytes(self.read_uleb128())
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecoderError(f"Malformed UTF-8 name at offset 0x{offset:x}: {e}") from e

    def read_vector(self, reader: Callable[[], T]) -> List[T]:
        """Read a length-prefixed vector, calling reader once per element."""
        return [reader() for _ in range(self.read_uleb128())]

    def dispose(self) -> None:
        """Close the stream."""
        self._stream.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.dispose()

"""
Linear memory images.

A MemoryImage holds the full initial contents of one declared memory:
zero-filled at creation, then overwritten by each active data segment
at its constant offset.
"""

from ..errors import OutOfBounds
from ..formats.wasm_structures import WASM_PAGE_SIZE


class MemoryImage:
    """
    Byte image of one linear memory.

    Attributes:
        index: Declaration-order index of the memory
        pages: Initial size in 64 KiB pages
        data: The image, exactly pages * 64 KiB bytes long
    """

    def __init__(self, index: int, pages: int):
        self.index = index
        self.pages = pages
        self.data = bytearray(pages * WASM_PAGE_SIZE)

    def __len__(self) -> int:
        return len(self.data)

    def apply(self, offset: int, payload: bytes) -> None:
        """
        Copy payload into the image at offset.

        Raises:
            OutOfBounds: If the payload does not fit entirely inside the image
        """
        end = offset + len(payload)
        if offset < 0 or end > len(self.data):
            raise OutOfBounds(
                f"Data segment [0x{offset:x}, 0x{end:x}) does not fit into memory "
                f"{self.index} of 0x{len(self.data):x} bytes"
            )
        self.data[offset:end] = payload

    def used_length(self) -> int:
        """Length of the image up to and including its last non-zero byte."""
        return len(self.data.rstrip(b'\x00'))

    def trimmed(self) -> bytes:
        """The image without its trailing zero bytes."""
        return bytes(self.data[:self.used_length()])

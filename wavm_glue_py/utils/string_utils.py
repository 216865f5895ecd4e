"""
String utility functions for C source generation.
"""

from typing import Iterator


def sanitize_identifier(name: str) -> str:
    """
    Turn an arbitrary name into a valid C identifier.

    Every character outside [A-Za-z0-9_] becomes '_'; a leading digit
    gets an extra '_' prefix.

    Args:
        name: Input name, e.g. a WebAssembly import field

    Returns:
        A valid C identifier
    """
    result = identifier_fragment(name)
    if result and result[0].isdigit():
        result = '_' + result
    return result


def identifier_fragment(name: str) -> str:
    """
    Replace every character outside [A-Za-z0-9_] with '_'.

    Unlike sanitize_identifier, no prefix is added for a leading digit, so
    the result is only valid as the non-leading part of an identifier.
    """
    return ''.join(c if (c.isascii() and c.isalnum()) or c == '_' else '_' for c in name)


def hex_byte_lines(data: bytes, per_line: int = 32) -> Iterator[str]:
    """
    Format bytes as comma-separated C hex literals, per_line values per line.

    Lines carry no trailing separator; join them with ",\\n".

    Args:
        data: Bytes to format
        per_line: Number of values per line

    Yields:
        One line of literals, e.g. "0x0, 0x1f, 0xff"
    """
    if per_line <= 0:
        raise ValueError(f"per_line must be positive, got {per_line}")
    for start in range(0, len(data), per_line):
        yield ', '.join(f'0x{b:x}' for b in data[start:start + per_line])

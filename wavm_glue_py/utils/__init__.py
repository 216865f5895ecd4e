"""
Utility functions.
"""

from .string_utils import sanitize_identifier, identifier_fragment, hex_byte_lines

__all__ = ['sanitize_identifier', 'identifier_fragment', 'hex_byte_lines']

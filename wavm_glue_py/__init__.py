"""
wavm-glue
Turns a WAVM-precompiled WebAssembly module into a native object file and
the C glue header needed to link it into a standalone executable.
"""

__version__ = "0.1.0"
__author__ = "wavm-glue contributors"

from .config import Config
from .converter import ConversionResult, convert, convert_file, write_outputs
from .errors import GlueError

__all__ = ['Config', 'ConversionResult', 'convert', 'convert_file', 'write_outputs', 'GlueError', '__version__']

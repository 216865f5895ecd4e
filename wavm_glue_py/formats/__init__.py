"""
WebAssembly binary format support.

- wasm_structures: constants, enums and decoded structures
- wasm_events: structural events produced by the decoder
- wasm: WasmParser, the sequential event source
"""

from .wasm import WasmParser
from .wasm_events import *
from .wasm_structures import *

__all__ = ['WasmParser']

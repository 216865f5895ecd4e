"""
WebAssembly format structure definitions.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Tuple, Union


# WebAssembly Magic and version
WASM_MAGIC = 0x6D736100  # "\0asm"
WASM_VERSION = 1

# Size of one linear memory page
WASM_PAGE_SIZE = 64 * 1024

# Function type form byte
FUNC_TYPE_FORM = 0x60


class WasmSectionId(IntEnum):
    """WebAssembly section IDs."""
    CUSTOM = 0
    TYPE = 1
    IMPORT = 2
    FUNCTION = 3
    TABLE = 4
    MEMORY = 5
    GLOBAL = 6
    EXPORT = 7
    START = 8
    ELEMENT = 9
    CODE = 10
    DATA = 11
    DATA_COUNT = 12


class ValueType(IntEnum):
    """WebAssembly value type encodings."""
    I32 = 0x7F
    I64 = 0x7E
    F32 = 0x7D
    F64 = 0x7C
    V128 = 0x7B
    FUNCREF = 0x70
    EXTERNREF = 0x6F


class ExternalKind(IntEnum):
    """Import/export descriptor kinds."""
    FUNCTION = 0
    TABLE = 1
    MEMORY = 2
    GLOBAL = 3


class Opcode(IntEnum):
    """Opcodes allowed inside constant expressions."""
    END = 0x0B
    GLOBAL_GET = 0x23
    I32_CONST = 0x41
    I64_CONST = 0x42
    F32_CONST = 0x43
    F64_CONST = 0x44
    I32_ADD = 0x6A
    I32_SUB = 0x6B
    I32_MUL = 0x6C
    I64_ADD = 0x7C
    I64_SUB = 0x7D
    I64_MUL = 0x7E
    REF_NULL = 0xD0
    REF_FUNC = 0xD2


@dataclass(frozen=True)
class FuncType:
    """Function signature: parameter types and result types."""
    params: Tuple[ValueType, ...] = ()
    returns: Tuple[ValueType, ...] = ()


@dataclass(frozen=True)
class ResizableLimits:
    """Table or memory limits."""
    initial: int = 0
    maximum: Optional[int] = None
    shared: bool = False


@dataclass(frozen=True)
class TableType:
    """Table declaration."""
    element_type: ValueType = ValueType.FUNCREF
    limits: ResizableLimits = field(default_factory=ResizableLimits)


@dataclass(frozen=True)
class MemoryType:
    """Linear memory declaration."""
    limits: ResizableLimits = field(default_factory=ResizableLimits)
    memory64: bool = False


@dataclass(frozen=True)
class GlobalType:
    """Global declaration: content type and mutability."""
    content_type: ValueType = ValueType.I32
    mutable: bool = False


@dataclass(frozen=True)
class Operator:
    """
    One constant-expression operator.

    value holds the immediate: the constant for *.const, the index for
    global.get/ref.func, the reference type for ref.null, None otherwise.
    """
    opcode: Opcode
    value: Union[int, float, ValueType, None] = None


ImportType = Union[int, TableType, MemoryType, GlobalType]

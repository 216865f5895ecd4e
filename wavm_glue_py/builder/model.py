"""
In-memory model of a module's ABI surface.

The model is filled in a single forward pass by ModuleBuilder and is
only ever appended to.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, TypeVar, Union

from ..errors import MissingIndex
from ..formats.wasm_structures import ExternalKind, FuncType, ValueType
from .memory import MemoryImage

T = TypeVar('T')

IMPORT_SYMBOL_PREFIX = "functionImport"
LOCAL_SYMBOL_PREFIX = "functionDef"


def lookup(entries: Sequence[T], index: int, what: str) -> T:
    """Index into an index space, raising MissingIndex for undeclared entries."""
    if not 0 <= index < len(entries):
        raise MissingIndex(f"{what} index {index} out of range ({len(entries)} declared)")
    return entries[index]


@dataclass(frozen=True)
class ImportedFunction:
    """A function provided by the host, numbered by import order."""
    signature: FuncType
    import_index: int
    module: str
    field: str

    @property
    def symbol(self) -> str:
        return f"{IMPORT_SYMBOL_PREFIX}{self.import_index}"


@dataclass(frozen=True)
class LocalFunction:
    """A function defined by the module, numbered by function-section order."""
    signature: FuncType
    local_index: int

    @property
    def symbol(self) -> str:
        return f"{LOCAL_SYMBOL_PREFIX}{self.local_index}"


FunctionEntry = Union[ImportedFunction, LocalFunction]


class FunctionIndexSpace:
    """
    WebAssembly's combined function index space.

    Imported functions come first, in import order, followed by the
    functions of the function section. Imports and local definitions keep
    separate counters for their symbol names.
    """

    def __init__(self):
        self._entries: List[FunctionEntry] = []
        self._import_count = 0
        self._local_count = 0

    def add_import(self, signature: FuncType, module: str, field: str) -> ImportedFunction:
        entry = ImportedFunction(signature, self._import_count, module, field)
        self._import_count += 1
        self._entries.append(entry)
        return entry

    def add_local(self, signature: FuncType) -> LocalFunction:
        entry = LocalFunction(signature, self._local_count)
        self._local_count += 1
        self._entries.append(entry)
        return entry

    def resolve(self, index: int) -> FunctionEntry:
        return lookup(self._entries, index, "Function")

    @property
    def import_count(self) -> int:
        return self._import_count

    @property
    def local_count(self) -> int:
        return self._local_count

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)


@dataclass(frozen=True)
class ExportEntry:
    name: str
    kind: ExternalKind
    index: int


@dataclass(frozen=True)
class TableEntry:
    index: int
    element_count: int


@dataclass(frozen=True)
class GlobalEntry:
    index: int
    content_type: ValueType
    mutable: bool
    value: int


@dataclass
class ModuleModel:
    """Everything the builder has learned about a module so far."""
    types: List[FuncType] = field(default_factory=list)
    functions: FunctionIndexSpace = field(default_factory=FunctionIndexSpace)
    exports: List[ExportEntry] = field(default_factory=list)
    tables: List[TableEntry] = field(default_factory=list)
    memories: List[MemoryImage] = field(default_factory=list)
    globals: List[GlobalEntry] = field(default_factory=list)
    entry_point: Optional[LocalFunction] = None
    element_segments: int = 0
    has_precompiled_object: bool = False

    def get_type(self, index: int) -> FuncType:
        return lookup(self.types, index, "Type")

    def get_memory(self, index: int) -> MemoryImage:
        return lookup(self.memories, index, "Memory")

"""
Structural events produced by the WebAssembly decoder.

The decoder walks a module once, front to back, and describes it as a flat
sequence of these events. Consumers dispatch on the event class.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .wasm_structures import (
    ExternalKind, FuncType, GlobalType, ImportType, MemoryType, Operator,
    TableType, WasmSectionId,
)


@dataclass(frozen=True)
class WasmEvent:
    """Base class for all decoder events."""
    pass


@dataclass(frozen=True)
class BeginWasm(WasmEvent):
    version: int


@dataclass(frozen=True)
class EndWasm(WasmEvent):
    pass


@dataclass(frozen=True)
class BeginSection(WasmEvent):
    code: WasmSectionId
    size: int
    name: Optional[str] = None  # custom sections only


@dataclass(frozen=True)
class EndSection(WasmEvent):
    pass


@dataclass(frozen=True)
class SectionRawData(WasmEvent):
    """Payload of a custom section, after its name."""
    data: bytes


@dataclass(frozen=True)
class TypeSectionEntry(WasmEvent):
    func_type: FuncType


@dataclass(frozen=True)
class ImportSectionEntry(WasmEvent):
    module: str
    field: str
    kind: ExternalKind
    type: ImportType  # type index for functions


@dataclass(frozen=True)
class FunctionSectionEntry(WasmEvent):
    type_index: int


@dataclass(frozen=True)
class TableSectionEntry(WasmEvent):
    table_type: TableType


@dataclass(frozen=True)
class MemorySectionEntry(WasmEvent):
    memory_type: MemoryType


@dataclass(frozen=True)
class BeginGlobalSectionEntry(WasmEvent):
    global_type: GlobalType


@dataclass(frozen=True)
class EndGlobalSectionEntry(WasmEvent):
    pass


@dataclass(frozen=True)
class InitExpressionOperator(WasmEvent):
    operator: Operator


@dataclass(frozen=True)
class EndInitExpressionBody(WasmEvent):
    pass


@dataclass(frozen=True)
class ExportSectionEntry(WasmEvent):
    field: str
    kind: ExternalKind
    index: int


@dataclass(frozen=True)
class StartSectionEntry(WasmEvent):
    function_index: int


@dataclass(frozen=True)
class BeginElementSectionEntry(WasmEvent):
    table_index: Optional[int]  # None for passive and declarative segments


@dataclass(frozen=True)
class ElementSectionEntryBody(WasmEvent):
    """Function indices, or one constant expression per element."""
    items: Tuple[Union[int, Tuple[Operator, ...]], ...]


@dataclass(frozen=True)
class EndElementSectionEntry(WasmEvent):
    pass


@dataclass(frozen=True)
class CodeSectionEntryBody(WasmEvent):
    size: int


@dataclass(frozen=True)
class BeginActiveDataSectionEntry(WasmEvent):
    memory_index: int


@dataclass(frozen=True)
class BeginPassiveDataSectionEntry(WasmEvent):
    pass


@dataclass(frozen=True)
class BeginDataSectionEntryBody(WasmEvent):
    size: int


@dataclass(frozen=True)
class DataSectionEntryBodyChunk(WasmEvent):
    data: bytes


@dataclass(frozen=True)
class EndDataSectionEntryBody(WasmEvent):
    pass


@dataclass(frozen=True)
class EndDataSectionEntry(WasmEvent):
    pass


@dataclass(frozen=True)
class DataCountSectionEntry(WasmEvent):
    count: int

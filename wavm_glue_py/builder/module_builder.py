"""
Module model builder.

Consumes the decoder's event stream in one forward pass, keeps the index
spaces a WAVM-precompiled object is linked against, and drives the glue
writer as soon as each declaration is known. Memory images are the only
state held back until the end of the stream, since data segments may
arrive at any point before it.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Iterable, Optional, Type

from ..config import Config
from ..errors import BadInitializer, DecoderError, UnresolvedExport
from ..formats.wasm_events import (
    WasmEvent, BeginWasm, EndWasm, BeginSection, EndSection, SectionRawData,
    TypeSectionEntry, ImportSectionEntry, FunctionSectionEntry,
    TableSectionEntry, MemorySectionEntry, BeginGlobalSectionEntry,
    EndGlobalSectionEntry, InitExpressionOperator, EndInitExpressionBody,
    ExportSectionEntry, BeginElementSectionEntry, EndElementSectionEntry,
    BeginActiveDataSectionEntry, BeginPassiveDataSectionEntry,
    BeginDataSectionEntryBody, DataSectionEntryBodyChunk,
    EndDataSectionEntryBody, EndDataSectionEntry,
)
from ..formats.wasm_structures import ExternalKind, GlobalType, Opcode, Operator, ValueType
from ..output.c_types import map_type
from ..output.object_extractor import PrecompiledObjectExtractor
from .memory import MemoryImage
from .model import ExportEntry, GlobalEntry, ImportedFunction, ModuleModel, TableEntry

if TYPE_CHECKING:
    from ..output.glue_writer import GlueWriter

logger = logging.getLogger(__name__)

# Constant opcode each supported global content type must be initialized with
GLOBAL_CONST_OPCODES = {
    ValueType.I32: Opcode.I32_CONST,
    ValueType.I64: Opcode.I64_CONST,
}

UINT32_MASK = 0xFFFFFFFF


class InitializerContext(Enum):
    """Which entry the next initializer expression belongs to."""
    NONE = 0
    DATA = 1
    GLOBAL = 2
    ELEMENT = 3


class ModuleBuilder:
    """
    Builds the module model from decoder events and streams glue output.

    Example:
        builder = ModuleBuilder("hello", GlueWriter(out))
        model = builder.build(WasmParser(data).events())
    """

    def __init__(
        self,
        module_name: str,
        writer: 'GlueWriter',
        extractor: Optional[PrecompiledObjectExtractor] = None,
        config: Optional[Config] = None,
    ):
        """
        Initialize the builder.

        Args:
            module_name: Output module name, used for the include guard
            writer: Glue writer receiving declarations
            extractor: Receives the precompiled object section payload
            config: Generation options
        """
        self.module_name = module_name
        self.writer = writer
        self.config = config or Config()
        self.extractor = extractor or PrecompiledObjectExtractor(self.config.precompiled_object_section)
        self.model = ModuleModel()
        self.finished = False

        self._section_name: Optional[str] = None
        self._context = InitializerContext.NONE

        # Active data segment being applied
        self._data_memory: Optional[MemoryImage] = None
        self._data_offset: Optional[int] = None
        self._data_operators = 0

        # Global entry being defined
        self._global_type: Optional[GlobalType] = None
        self._global_defined = False

        self._handlers: Dict[Type[WasmEvent], Callable] = {
            BeginWasm: self._on_begin_wasm,
            EndWasm: self._on_end_wasm,
            BeginSection: self._on_begin_section,
            EndSection: self._on_end_section,
            SectionRawData: self._on_section_raw_data,
            TypeSectionEntry: self._on_type,
            ImportSectionEntry: self._on_import,
            FunctionSectionEntry: self._on_function,
            ExportSectionEntry: self._on_export,
            TableSectionEntry: self._on_table,
            MemorySectionEntry: self._on_memory,
            BeginActiveDataSectionEntry: self._on_begin_active_data,
            BeginPassiveDataSectionEntry: self._on_begin_passive_data,
            EndDataSectionEntry: self._on_end_data,
            DataSectionEntryBodyChunk: self._on_data_chunk,
            BeginDataSectionEntryBody: self._ignore,
            EndDataSectionEntryBody: self._ignore,
            BeginGlobalSectionEntry: self._on_begin_global,
            EndGlobalSectionEntry: self._on_end_global,
            BeginElementSectionEntry: self._on_begin_element,
            EndElementSectionEntry: self._on_end_element,
            InitExpressionOperator: self._on_init_expression,
            EndInitExpressionBody: self._ignore,
        }

    # ========== Driving ==========

    def build(self, events: Iterable[WasmEvent]) -> ModuleModel:
        """
        Consume a complete event stream.

        Raises:
            DecoderError: If the stream ends without an EndWasm event
        """
        for event in events:
            self.consume(event)
        if not self.finished:
            raise DecoderError("Event stream ended before the end of the module")
        return self.model

    def consume(self, event: WasmEvent) -> None:
        """Process one event."""
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.debug("Unprocessed event: %s", type(event).__name__)
            return
        handler(event)

    def _ignore(self, event: WasmEvent) -> None:
        pass

    # ========== Module and sections ==========

    def _on_begin_wasm(self, event: BeginWasm) -> None:
        self.writer.write_prologue(self.module_name)

    def _on_end_wasm(self, event: EndWasm) -> None:
        for memory in self.model.memories:
            self.writer.write_memory(memory)

        if self.model.entry_point is not None and self.config.emit_main:
            self.writer.write_main()

        self.writer.write_epilogue()
        self.finished = True

    def _on_begin_section(self, event: BeginSection) -> None:
        self._section_name = event.name

    def _on_end_section(self, event: EndSection) -> None:
        self._section_name = None

    def _on_section_raw_data(self, event: SectionRawData) -> None:
        if self.extractor.matches(self._section_name):
            self.extractor.extract(event.data)
            self.model.has_precompiled_object = True
        else:
            logger.debug("Skipping custom section '%s' (%d bytes)", self._section_name, len(event.data))

    # ========== Types and functions ==========

    def _on_type(self, event: TypeSectionEntry) -> None:
        self.writer.write_type(len(self.model.types))
        self.model.types.append(event.func_type)

    def _on_import(self, event: ImportSectionEntry) -> None:
        if event.kind != ExternalKind.FUNCTION:
            logger.warning(
                "Import %s.%s of kind %s is not modelled",
                event.module, event.field, event.kind.name
            )
            return

        signature = self.model.get_type(event.type)
        entry = self.model.functions.add_import(signature, event.module, event.field)
        self.writer.write_import(entry)

    def _on_function(self, event: FunctionSectionEntry) -> None:
        signature = self.model.get_type(event.type_index)
        entry = self.model.functions.add_local(signature)
        self.writer.write_function_def(entry)

    def _on_export(self, event: ExportSectionEntry) -> None:
        self.model.exports.append(ExportEntry(event.field, event.kind, event.index))
        if event.kind != ExternalKind.FUNCTION:
            logger.debug("Skipping export '%s' of kind %s", event.field, event.kind.name)
            return

        entry = self.model.functions.resolve(event.index)
        if isinstance(entry, ImportedFunction):
            raise UnresolvedExport(
                f"Export '{event.field}' refers to imported function "
                f"{entry.module}.{entry.field}; exporting imports is not supported"
            )

        self.writer.write_export(event.field, entry)
        if event.field == self.config.entry_point:
            self.model.entry_point = entry

    # ========== Tables and memories ==========

    def _on_table(self, event: TableSectionEntry) -> None:
        table = TableEntry(len(self.model.tables), event.table_type.limits.initial)
        self.writer.write_table(table)
        self.model.tables.append(table)

    def _on_memory(self, event: MemorySectionEntry) -> None:
        memory = MemoryImage(len(self.model.memories), event.memory_type.limits.initial)
        self.model.memories.append(memory)

    def _on_begin_active_data(self, event: BeginActiveDataSectionEntry) -> None:
        self._context = InitializerContext.DATA
        self._data_memory = self.model.get_memory(event.memory_index)
        self._data_offset = None
        self._data_operators = 0

    def _on_begin_passive_data(self, event: BeginPassiveDataSectionEntry) -> None:
        logger.debug("Skipping passive data segment")
        self._context = InitializerContext.NONE

    def _on_end_data(self, event: EndDataSectionEntry) -> None:
        self._context = InitializerContext.NONE
        self._data_memory = None
        self._data_offset = None

    def _on_data_chunk(self, event: DataSectionEntryBodyChunk) -> None:
        if self._data_memory is None or self._data_offset is None:
            return
        self._data_memory.apply(self._data_offset, event.data)
        self._data_offset += len(event.data)

    # ========== Globals ==========

    def _on_begin_global(self, event: BeginGlobalSectionEntry) -> None:
        map_type(event.global_type.content_type)
        self._context = InitializerContext.GLOBAL
        self._global_type = event.global_type
        self._global_defined = False

    def _on_end_global(self, event: EndGlobalSectionEntry) -> None:
        if not self._global_defined:
            raise BadInitializer(f"Global {len(self.model.globals)} has no initializer")
        self._context = InitializerContext.NONE
        self._global_type = None

    # ========== Element segments ==========

    def _on_begin_element(self, event: BeginElementSectionEntry) -> None:
        if self.model.element_segments == 0:
            logger.warning("Element segments are not applied; tables are emitted zero-filled")
        self.model.element_segments += 1
        self._context = InitializerContext.ELEMENT

    def _on_end_element(self, event: EndElementSectionEntry) -> None:
        self._context = InitializerContext.NONE

    # ========== Initializer expressions ==========

    def _on_init_expression(self, event: InitExpressionOperator) -> None:
        if self._context == InitializerContext.DATA:
            self._set_data_offset(event.operator)
        elif self._context == InitializerContext.GLOBAL:
            self._define_global(event.operator)
        else:
            logger.debug("Skipping initializer operator %s", event.operator.opcode.name)

    def _set_data_offset(self, operator: Operator) -> None:
        self._data_operators += 1
        if self._data_operators > 1:
            if self._data_offset is not None:
                logger.warning(
                    "Data segment offset in memory %d is not a single constant; segment not applied",
                    self._data_memory.index
                )
            self._data_offset = None
        elif operator.opcode == Opcode.I32_CONST:
            self._data_offset = operator.value & UINT32_MASK
        elif operator.opcode == Opcode.I64_CONST:
            self._data_offset = operator.value
        else:
            logger.warning(
                "Data segment offset in memory %d uses %s; segment not applied",
                self._data_memory.index, operator.opcode.name
            )

    def _define_global(self, operator: Operator) -> None:
        index = len(self.model.globals)
        global_type = self._global_type
        if self._global_defined:
            raise BadInitializer(f"Global {index - 1} initializer is not a single constant")

        expected = GLOBAL_CONST_OPCODES.get(global_type.content_type)
        if expected is None:
            raise BadInitializer(
                f"Invalid content type: {global_type.content_type.name} for global entry {index}"
            )
        if operator.opcode != expected:
            raise BadInitializer(
                f"Invalid global value {operator.opcode.name} for type "
                f"{global_type.content_type.name} in global {index}"
            )

        entry = GlobalEntry(index, global_type.content_type, global_type.mutable, operator.value)
        self.writer.write_global(entry)
        self.model.globals.append(entry)
        self._global_defined = True

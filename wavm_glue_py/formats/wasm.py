"""
WebAssembly (WASM) binary decoder.

Walks a module once, front to back, and yields the structural events
defined in wasm_events. Nothing is buffered beyond the section being
decoded: data segment bodies are handed out in chunks and function
bodies are skipped.
"""

from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from ..errors import DecoderError
from ..io.binary_stream import BinaryStream
from .wasm_events import (
    WasmEvent, BeginWasm, EndWasm, BeginSection, EndSection, SectionRawData,
    TypeSectionEntry, ImportSectionEntry, FunctionSectionEntry,
    TableSectionEntry, MemorySectionEntry, BeginGlobalSectionEntry,
    EndGlobalSectionEntry, InitExpressionOperator, EndInitExpressionBody,
    ExportSectionEntry, StartSectionEntry, BeginElementSectionEntry,
    ElementSectionEntryBody, EndElementSectionEntry, CodeSectionEntryBody,
    BeginActiveDataSectionEntry, BeginPassiveDataSectionEntry,
    BeginDataSectionEntryBody, DataSectionEntryBodyChunk,
    EndDataSectionEntryBody, EndDataSectionEntry, DataCountSectionEntry,
)
from .wasm_structures import (
    WASM_MAGIC, WASM_VERSION, FUNC_TYPE_FORM, WasmSectionId, ValueType,
    ExternalKind, Opcode, FuncType, ResizableLimits, TableType, MemoryType,
    GlobalType, Operator,
)

DEFAULT_CHUNK_SIZE = 4096

# Element kind byte of the legacy element segment encodings (funcref)
ELEM_KIND_FUNCREF = 0x00


class WasmParser(BinaryStream):
    """
    Sequential event source over a WebAssembly binary module.

    Example:
        for event in WasmParser(data).events():
            ...
    """

    def __init__(self, data: bytes, chunk_size: int = DEFAULT_CHUNK_SIZE):
        super().__init__(data)
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self._section_readers: Dict[WasmSectionId, Callable[[], Iterator[WasmEvent]]] = {
            WasmSectionId.TYPE: self._read_type_section,
            WasmSectionId.IMPORT: self._read_import_section,
            WasmSectionId.FUNCTION: self._read_function_section,
            WasmSectionId.TABLE: self._read_table_section,
            WasmSectionId.MEMORY: self._read_memory_section,
            WasmSectionId.GLOBAL: self._read_global_section,
            WasmSectionId.EXPORT: self._read_export_section,
            WasmSectionId.START: self._read_start_section,
            WasmSectionId.ELEMENT: self._read_element_section,
            WasmSectionId.CODE: self._read_code_section,
            WasmSectionId.DATA: self._read_data_section,
            WasmSectionId.DATA_COUNT: self._read_data_count_section,
        }

    def __iter__(self) -> Iterator[WasmEvent]:
        return self.events()

    def events(self) -> Iterator[WasmEvent]:
        """Yield every structural event of the module, ending with EndWasm."""
        self.position = 0

        if self.length < 8:
            raise DecoderError("File too small to be a WebAssembly module")

        magic = self.read_uint32()
        if magic != WASM_MAGIC:
            raise DecoderError(f"Invalid WebAssembly magic: 0x{magic:08X}")

        version = self.read_uint32()
        if version != WASM_VERSION:
            raise DecoderError(f"Unsupported WebAssembly version: {version}")

        yield BeginWasm(version)
        while not self.at_end():
            yield from self._read_section()
        yield EndWasm()

    # ========== Sections ==========

    def _read_section(self) -> Iterator[WasmEvent]:
        offset = self.position
        section_id = self.read_byte()
        try:
            code = WasmSectionId(section_id)
        except ValueError:
            raise DecoderError(f"Unknown section id {section_id} at offset 0x{offset:x}") from None

        size = self.read_uleb128()
        start = self.position
        end = start + size
        if end > self.length:
            raise DecoderError(
                f"Section {code.name} at offset 0x{offset:x} claims {size} bytes, "
                f"only {self.length - start} available"
            )

        if code == WasmSectionId.CUSTOM:
            name = self.read_name()
            if self.position > end:
                raise DecoderError(f"Custom section name overruns its section at offset 0x{offset:x}")
            yield BeginSection(code, size, name)
            yield SectionRawData(self.read_bytes(end - self.position))
        else:
            yield BeginSection(code, size)
            yield from self._section_readers[code]()

        if self.position != end:
            raise DecoderError(
                f"Section {code.name} at offset 0x{offset:x} has size mismatch: "
                f"declared {size}, decoded {self.position - start}"
            )
        yield EndSection()

    def _read_type_section(self) -> Iterator[WasmEvent]:
        for _ in range(self.read_uleb128()):
            yield TypeSectionEntry(self._read_func_type())

    def _read_import_section(self) -> Iterator[WasmEvent]:
        for _ in range(self.read_uleb128()):
            module = self.read_name()
            field = self.read_name()
            kind = self._read_external_kind()
            if kind == ExternalKind.FUNCTION:
                import_type = self.read_uleb128()
            elif kind == ExternalKind.TABLE:
                import_type = self._read_table_type()
            elif kind == ExternalKind.MEMORY:
                import_type = self._read_memory_type()
            else:
                import_type = self._read_global_type()
            yield ImportSectionEntry(module, field, kind, import_type)

    def _read_function_section(self) -> Iterator[WasmEvent]:
        for _ in range(self.read_uleb128()):
            yield FunctionSectionEntry(self.read_uleb128())

    def _read_table_section(self) -> Iterator[WasmEvent]:
        for _ in range(self.read_uleb128()):
            yield TableSectionEntry(self._read_table_type())

    def _read_memory_section(self) -> Iterator[WasmEvent]:
        for _ in range(self.read_uleb128()):
            yield MemorySectionEntry(self._read_memory_type())

    def _read_global_section(self) -> Iterator[WasmEvent]:
        for _ in range(self.read_uleb128()):
            yield BeginGlobalSectionEntry(self._read_global_type())
            yield from self._read_init_expression()
            yield EndGlobalSectionEntry()

    def _read_export_section(self) -> Iterator[WasmEvent]:
        for _ in range(self.read_uleb128()):
            field = self.read_name()
            kind = self._read_external_kind()
            yield ExportSectionEntry(field, kind, self.read_uleb128())

    def _read_start_section(self) -> Iterator[WasmEvent]:
        yield StartSectionEntry(self.read_uleb128())

    def _read_element_section(self) -> Iterator[WasmEvent]:
        for _ in range(self.read_uleb128()):
            offset = self.position
            flags = self.read_uleb128()
            if flags > 7:
                raise DecoderError(f"Unknown element segment flags {flags} at offset 0x{offset:x}")

            passive = bool(flags & 1)
            explicit = bool(flags & 2)
            uses_expressions = bool(flags & 4)

            if passive:
                yield BeginElementSectionEntry(None)
            else:
                table_index = self.read_uleb128() if explicit else 0
                yield BeginElementSectionEntry(table_index)
                yield from self._read_init_expression()

            if flags & 3:
                if uses_expressions:
                    self._read_value_type()
                else:
                    elem_kind = self.read_byte()
                    if elem_kind != ELEM_KIND_FUNCREF:
                        raise DecoderError(f"Unknown element kind 0x{elem_kind:02x}")

            items: List[Union[int, Tuple[Operator, ...]]]
            if uses_expressions:
                items = self.read_vector(lambda: tuple(self._read_const_expr()))
            else:
                items = self.read_vector(self.read_uleb128)
            yield ElementSectionEntryBody(tuple(items))
            yield EndElementSectionEntry()

    def _read_code_section(self) -> Iterator[WasmEvent]:
        for _ in range(self.read_uleb128()):
            size = self.read_uleb128()
            self.read_bytes(size)
            yield CodeSectionEntryBody(size)

    def _read_data_section(self) -> Iterator[WasmEvent]:
        for _ in range(self.read_uleb128()):
            offset = self.position
            flags = self.read_uleb128()
            if flags == 0:
                yield BeginActiveDataSectionEntry(0)
                yield from self._read_init_expression()
            elif flags == 1:
                yield BeginPassiveDataSectionEntry()
            elif flags == 2:
                yield BeginActiveDataSectionEntry(self.read_uleb128())
                yield from self._read_init_expression()
            else:
                raise DecoderError(f"Unknown data segment flags {flags} at offset 0x{offset:x}")

            size = self.read_uleb128()
            if size > self.remaining:
                raise DecoderError(f"Data segment at offset 0x{offset:x} overruns the module")
            yield BeginDataSectionEntryBody(size)
            left = size
            while left > 0:
                chunk = self.read_bytes(min(self.chunk_size, left))
                left -= len(chunk)
                yield DataSectionEntryBodyChunk(chunk)
            yield EndDataSectionEntryBody()
            yield EndDataSectionEntry()

    def _read_data_count_section(self) -> Iterator[WasmEvent]:
        yield DataCountSectionEntry(self.read_uleb128())

    # ========== Types ==========

    def _read_value_type(self) -> ValueType:
        offset = self.position
        raw = self.read_byte()
        try:
            return ValueType(raw)
        except ValueError:
            raise DecoderError(f"Unknown value type 0x{raw:02x} at offset 0x{offset:x}") from None

    def _read_external_kind(self) -> ExternalKind:
        offset = self.position
        raw = self.read_byte()
        try:
            return ExternalKind(raw)
        except ValueError:
            raise DecoderError(f"Unknown external kind 0x{raw:02x} at offset 0x{offset:x}") from None

    def _read_func_type(self) -> FuncType:
        offset = self.position
        form = self.read_byte()
        if form != FUNC_TYPE_FORM:
            raise DecoderError(f"Invalid function type form 0x{form:02x} at offset 0x{offset:x}")
        params = self.read_vector(self._read_value_type)
        returns = self.read_vector(self._read_value_type)
        return FuncType(tuple(params), tuple(returns))

    def _read_limits(self) -> Tuple[ResizableLimits, bool]:
        """Read limits; returns the limits and whether they are 64-bit."""
        offset = self.position
        flags = self.read_byte()
        if flags > 7:
            raise DecoderError(f"Invalid limits flags 0x{flags:02x} at offset 0x{offset:x}")
        is_64 = bool(flags & 4)
        bits = 64 if is_64 else 32
        initial = self.read_uleb128(bits)
        maximum: Optional[int] = self.read_uleb128(bits) if flags & 1 else None
        return ResizableLimits(initial, maximum, bool(flags & 2)), is_64

    def _read_table_type(self) -> TableType:
        element_type = self._read_value_type()
        limits, _ = self._read_limits()
        return TableType(element_type, limits)

    def _read_memory_type(self) -> MemoryType:
        limits, is_64 = self._read_limits()
        return MemoryType(limits, is_64)

    def _read_global_type(self) -> GlobalType:
        content_type = self._read_value_type()
        offset = self.position
        mutability = self.read_byte()
        if mutability not in (0, 1):
            raise DecoderError(f"Invalid global mutability 0x{mutability:02x} at offset 0x{offset:x}")
        return GlobalType(content_type, mutability == 1)

    # ========== Constant Expressions ==========

    def _read_init_expression(self) -> Iterator[WasmEvent]:
        for operator in self._read_const_expr():
            yield InitExpressionOperator(operator)
        yield EndInitExpressionBody()

    def _read_const_expr(self) -> List[Operator]:
        """Read operators up to and including the terminating end opcode."""
        operators = []
        while True:
            operator = self._read_operator()
            if operator.opcode == Opcode.END:
                return operators
            operators.append(operator)

    def _read_operator(self) -> Operator:
        offset = self.position
        raw = self.read_byte()
        try:
            opcode = Opcode(raw)
        except ValueError:
            raise DecoderError(
                f"Opcode 0x{raw:02x} at offset 0x{offset:x} is not allowed in a constant expression"
            ) from None

        if opcode == Opcode.I32_CONST:
            return Operator(opcode, self.read_sleb128(32))
        if opcode == Opcode.I64_CONST:
            return Operator(opcode, self.read_sleb128(64))
        if opcode == Opcode.F32_CONST:
            return Operator(opcode, self.read_float())
        if opcode == Opcode.F64_CONST:
            return Operator(opcode, self.read_double())
        if opcode in (Opcode.GLOBAL_GET, Opcode.REF_FUNC):
            return Operator(opcode, self.read_uleb128())
        if opcode == Opcode.REF_NULL:
            return Operator(opcode, self._read_value_type())
        # END and the extended-const arithmetic opcodes carry no immediate
        return Operator(opcode)

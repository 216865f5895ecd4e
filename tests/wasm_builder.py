"""
Minimal WebAssembly binary encoder used to build test modules.
"""

import struct
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

I32 = 0x7F
I64 = 0x7E
F32 = 0x7D
F64 = 0x7C
V128 = 0x7B
FUNCREF = 0x70
EXTERNREF = 0x6F

KIND_FUNCTION = 0
KIND_TABLE = 1
KIND_MEMORY = 2
KIND_GLOBAL = 3

END = b'\x0b'


def uleb(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def sleb(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        done = (value == 0 and not byte & 0x40) or (value == -1 and byte & 0x40)
        out.append(byte if done else byte | 0x80)
        if done:
            return bytes(out)


def name(text: str) -> bytes:
    raw = text.encode('utf-8')
    return uleb(len(raw)) + raw


def vec(items: Sequence[bytes]) -> bytes:
    return uleb(len(items)) + b''.join(items)


def section(section_id: int, payload: bytes) -> bytes:
    return bytes([section_id]) + uleb(len(payload)) + payload


def custom_section(section_name: str, payload: bytes) -> bytes:
    return section(0, name(section_name) + payload)


def i32_const(value: int) -> bytes:
    return b'\x41' + sleb(value) + END


def i64_const(value: int) -> bytes:
    return b'\x42' + sleb(value) + END


def f32_const(value: float) -> bytes:
    return b'\x43' + struct.pack('<f', value) + END


def f64_const(value: float) -> bytes:
    return b'\x44' + struct.pack('<d', value) + END


def global_get(index: int) -> bytes:
    return b'\x23' + uleb(index) + END


def limits(initial: int, maximum: Optional[int] = None) -> bytes:
    if maximum is None:
        return b'\x00' + uleb(initial)
    return b'\x01' + uleb(initial) + uleb(maximum)


@dataclass
class WasmModule:
    """Collects declarations and encodes them as a binary module."""
    types: List[Tuple[Sequence[int], Sequence[int]]] = field(default_factory=list)
    imports: List[Tuple[str, str, int, bytes]] = field(default_factory=list)
    functions: List[int] = field(default_factory=list)
    tables: List[Tuple[int, Optional[int]]] = field(default_factory=list)
    memories: List[Tuple[int, Optional[int]]] = field(default_factory=list)
    globals: List[Tuple[int, bool, bytes]] = field(default_factory=list)
    exports: List[Tuple[str, int, int]] = field(default_factory=list)
    elements: List[bytes] = field(default_factory=list)
    data: List[bytes] = field(default_factory=list)
    customs: List[Tuple[str, bytes]] = field(default_factory=list)

    def add_type(self, params: Sequence[int] = (), results: Sequence[int] = ()) -> int:
        self.types.append((tuple(params), tuple(results)))
        return len(self.types) - 1

    def import_function(self, module: str, field_name: str, type_index: int) -> None:
        self.imports.append((module, field_name, KIND_FUNCTION, uleb(type_index)))

    def import_memory(self, module: str, field_name: str, initial: int) -> None:
        self.imports.append((module, field_name, KIND_MEMORY, limits(initial)))

    def add_function(self, type_index: int) -> None:
        self.functions.append(type_index)

    def add_table(self, initial: int, maximum: Optional[int] = None) -> None:
        self.tables.append((initial, maximum))

    def add_memory(self, initial: int, maximum: Optional[int] = None) -> None:
        self.memories.append((initial, maximum))

    def add_global(self, value_type: int, mutable: bool, init_expr: bytes) -> None:
        self.globals.append((value_type, mutable, init_expr))

    def export_function(self, export_name: str, index: int) -> None:
        self.exports.append((export_name, KIND_FUNCTION, index))

    def export(self, export_name: str, kind: int, index: int) -> None:
        self.exports.append((export_name, kind, index))

    def add_active_element(self, offset_expr: bytes, function_indices: Sequence[int]) -> None:
        self.elements.append(uleb(0) + offset_expr + vec([uleb(i) for i in function_indices]))

    def add_data(self, offset_expr: bytes, payload: bytes, memory_index: int = 0) -> None:
        if memory_index == 0:
            self.data.append(uleb(0) + offset_expr + uleb(len(payload)) + payload)
        else:
            self.data.append(uleb(2) + uleb(memory_index) + offset_expr + uleb(len(payload)) + payload)

    def add_passive_data(self, payload: bytes) -> None:
        self.data.append(uleb(1) + uleb(len(payload)) + payload)

    def add_custom(self, section_name: str, payload: bytes) -> None:
        self.customs.append((section_name, payload))

    def encode(self) -> bytes:
        out = bytearray(b'\x00asm\x01\x00\x00\x00')
        if self.types:
            out += section(1, vec([
                b'\x60' + vec([bytes([p]) for p in params]) + vec([bytes([r]) for r in results])
                for params, results in self.types
            ]))
        if self.imports:
            out += section(2, vec([
                name(module) + name(field_name) + bytes([kind]) + desc
                for module, field_name, kind, desc in self.imports
            ]))
        if self.functions:
            out += section(3, vec([uleb(t) for t in self.functions]))
        if self.tables:
            out += section(4, vec([bytes([FUNCREF]) + limits(i, m) for i, m in self.tables]))
        if self.memories:
            out += section(5, vec([limits(i, m) for i, m in self.memories]))
        if self.globals:
            out += section(6, vec([
                bytes([value_type, 1 if mutable else 0]) + init_expr
                for value_type, mutable, init_expr in self.globals
            ]))
        if self.exports:
            out += section(7, vec([
                name(export_name) + bytes([kind]) + uleb(index)
                for export_name, kind, index in self.exports
            ]))
        if self.elements:
            out += section(9, vec(self.elements))
        if self.functions:
            # Every body is empty: no locals, just "end"
            out += section(10, vec([uleb(2) + b'\x00' + END for _ in self.functions]))
        if self.data:
            out += section(11, vec(self.data))
        for section_name, payload in self.customs:
            out += custom_section(section_name, payload)
        return bytes(out)

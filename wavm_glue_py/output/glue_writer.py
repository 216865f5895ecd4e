"""
Glue header writer.

Renders the module model as a C header declaring everything a
WAVM-precompiled object needs at link time:

- return wrapper structs and ABI placeholder constants (prologue)
- type ids, imported function stubs and local function declarations
- exported function aliases
- table storage, global definitions and static memory images
- an optional main() calling the exported entry point (epilogue)

All writes are append-only, in call order, so identical input always
produces identical output.
"""

from pathlib import Path
from typing import Dict, Optional, TextIO

from ..config import Config
from ..errors import DuplicateSymbol
from ..formats.wasm_structures import ValueType
from ..builder.memory import MemoryImage
from ..builder.model import GlobalEntry, ImportedFunction, LocalFunction, TableEntry
from ..utils.string_utils import hex_byte_lines, identifier_fragment, sanitize_identifier
from .c_types import function_abi, map_type, return_wrapper_definition


# Return wrappers are emitted once each, in this order
RETURN_WRAPPER_TYPES = (ValueType.I32, ValueType.I64, ValueType.F32, ValueType.F64)

# Instance identity and table bias are not computed by this generator
ABI_PLACEHOLDERS = ("functionDefMutableData", "biasedInstanceId", "tableReferenceBias")

INT64_MIN = -(1 << 63)
UINT32_MAX = (1 << 32) - 1


def header_guard(module_name: str) -> str:
    """Include guard macro for the header of module_name."""
    return f"{sanitize_identifier(Path(module_name).name)}_GLUE_H"


class GlueWriter:
    """
    Streams glue declarations to a text sink.

    Example:
        writer = GlueWriter(out, config)
        writer.write_prologue("hello")
        ...
        writer.write_epilogue()
    """

    def __init__(self, out: TextIO, config: Optional[Config] = None):
        """
        Initialize the writer.

        Args:
            out: Text sink receiving the header
            config: Naming and formatting options
        """
        self.out = out
        self.config = config or Config()
        self._guard: Optional[str] = None
        # Macro name -> the WebAssembly name it was built from
        self._aliases: Dict[str, str] = {}

    # ========== Prologue / Epilogue ==========

    def write_prologue(self, module_name: str) -> None:
        """Write includes, the opening include guard and the fixed ABI boilerplate."""
        self._guard = header_guard(module_name)
        f = self.out
        f.write("// Generated by wavm-glue. Do not edit.\n\n")
        f.write("#include<stddef.h>\n")
        f.write("#include<stdint.h>\n\n")
        f.write(f"#ifndef {self._guard}\n")
        f.write(f"#define {self._guard}\n\n")

        for value_type in RETURN_WRAPPER_TYPES:
            f.write(return_wrapper_definition(value_type))
            f.write("\n")

        for name in ABI_PLACEHOLDERS:
            f.write(f"const uint64_t {name} = 0;\n")
        f.write("\n")

    def write_main(self) -> None:
        """Write a main() that runs the exported entry point with a null context."""
        alias = self.export_alias(self.config.entry_point)
        self.out.write(
            "\nint main() {\n"
            f"  {alias}(NULL);\n"
            "  // This should not be reached\n"
            "  return -1;\n"
            "}\n"
        )

    def write_epilogue(self) -> None:
        """Close the include guard."""
        if self._guard is None:
            raise RuntimeError("write_prologue() must be called before write_epilogue()")
        self.out.write(f"\n#endif /* {self._guard} */\n")

    # ========== Names ==========

    def import_alias(self, module: str, field: str) -> str:
        """Conventional name of an imported function, e.g. wavm_env_abort."""
        return f"{self.config.import_prefix}_{identifier_fragment(module)}_{identifier_fragment(field)}"

    def export_alias(self, name: str) -> str:
        """Conventional name of an exported function, e.g. wavm_exported_function__start."""
        return f"{self.config.export_prefix}_{identifier_fragment(name)}"

    def _claim(self, alias: str, origin: str) -> None:
        """
        Reserve a macro name.

        Raises:
            DuplicateSymbol: If a different name already maps to alias
        """
        previous = self._aliases.get(alias)
        if previous is not None:
            raise DuplicateSymbol(f"{origin} and {previous} both map to the C name {alias}")
        self._aliases[alias] = origin

    # ========== Declarations ==========

    def write_type(self, index: int) -> None:
        self.out.write(f"const uint64_t typeId{index} = 0;\n")

    def write_import(self, entry: ImportedFunction) -> None:
        """Alias the conventional import name to its symbol and declare the stub."""
        alias = self.import_alias(entry.module, entry.field)
        self._claim(alias, f"import '{entry.module}.{entry.field}'")
        self.out.write(f"#define {alias} {entry.symbol}\n")
        self.out.write(f"extern {function_abi(entry.signature, entry.symbol)};\n")

    def write_function_def(self, entry: LocalFunction) -> None:
        """Declare a locally defined function and its mutable-data marker."""
        self.out.write(f"extern {function_abi(entry.signature, entry.symbol)};\n")
        self.out.write(f"const uint64_t functionDefMutableDatas{entry.local_index} = 0;\n")

    def write_export(self, name: str, entry: LocalFunction) -> None:
        alias = self.export_alias(name)
        self._claim(alias, f"export '{name}'")
        self.out.write(f"#define {alias} {entry.symbol}\n")

    def write_table(self, table: TableEntry) -> None:
        """Declare zero-filled table storage and its offset alias."""
        i = table.index
        if table.element_count:
            self.out.write(f"uintptr_t table{i}[{table.element_count}] = {{ 0 }};\n")
        else:
            self.out.write(f"uintptr_t table{i}[0];\n")
        self.out.write(f"uintptr_t* tableOffset{i} = table{i};\n")

    def write_global(self, entry: GlobalEntry) -> None:
        """Define a global with its constant initial value."""
        if self.config.const_on_mutable_globals:
            is_const = entry.mutable
        else:
            is_const = not entry.mutable
        qualifier = "const " if is_const else ""

        if entry.content_type == ValueType.I64 and entry.value == INT64_MIN:
            value = "INT64_MIN"
        else:
            value = str(entry.value)

        self.out.write(f"{qualifier}{map_type(entry.content_type)} global{entry.index} = {value};\n")

    def write_memory(self, image: MemoryImage) -> None:
        """
        Write the static image of one linear memory.

        The array is declared with the full memory size, but its initializer
        stops at the last non-zero byte; C zero-fills the remainder.
        """
        f = self.out
        i = image.index
        size = len(image)
        length_type = "uint32_t" if size <= UINT32_MAX else "uint64_t"

        f.write(f"{length_type} memory{i}_length = {size};\n")
        used = image.trimmed()
        if not size:
            f.write(f"uint8_t memory{i}[0];\n")
        elif used:
            f.write(f"uint8_t memory{i}[{size}] = {{")
            separator = "\n  "
            for line in hex_byte_lines(used, self.config.bytes_per_line):
                f.write(separator)
                f.write(line)
                separator = ",\n  "
            f.write("\n};\n")
        else:
            f.write(f"uint8_t memory{i}[{size}] = {{ 0 }};\n")
        f.write(f"uint8_t* memoryOffset{i} = memory{i};\n")
        f.write(f"#define MEMORY{i}_DEFINED 1\n")

"""
One-shot conversion of a WebAssembly module into its glue artifacts.

The header is streamed into an in-memory buffer and the object payload is
held in memory; nothing touches the disk until the whole module has been
processed without error, so a failed run leaves no half-written artifact.
"""

from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import List, Optional, Union

from .config import Config
from .errors import MissingPrecompiledObject
from .formats.wasm import WasmParser
from .builder.model import ModuleModel
from .builder.module_builder import ModuleBuilder
from .output.glue_writer import GlueWriter
from .output.object_extractor import PrecompiledObjectExtractor


@dataclass
class ConversionResult:
    """Artifacts produced for one module."""
    module_name: str
    header: str
    object_data: Optional[bytes]
    model: ModuleModel


def header_path(module_name: str, config: Config) -> Path:
    return Path(f"{module_name}{config.header_suffix}")


def object_path(module_name: str, config: Config) -> Path:
    return Path(f"{module_name}{config.object_suffix}")


def convert(data: bytes, module_name: str, config: Optional[Config] = None) -> ConversionResult:
    """
    Convert a module held in memory.

    Args:
        data: WebAssembly binary
        module_name: Output module name (used for the include guard)
        config: Generation options

    Returns:
        The header text, the precompiled object payload (None if the module
        has no such section) and the module model

    Raises:
        GlueError: On malformed or unsupported input
    """
    config = config or Config()
    buffer = StringIO()
    writer = GlueWriter(buffer, config)
    extractor = PrecompiledObjectExtractor(config.precompiled_object_section)
    builder = ModuleBuilder(module_name, writer, extractor, config)

    with WasmParser(data, config.data_chunk_size) as parser:
        model = builder.build(parser.events())

    if config.require_precompiled_object and not extractor.found:
        raise MissingPrecompiledObject(
            f"Module has no '{config.precompiled_object_section}' section"
        )

    return ConversionResult(module_name, buffer.getvalue(), extractor.payload, model)


def write_outputs(result: ConversionResult, config: Optional[Config] = None) -> List[Path]:
    """
    Write the artifacts of a successful conversion.

    Returns:
        Paths written: the header, then the object file if there is one
    """
    config = config or Config()
    written = []

    path = header_path(result.module_name, config)
    with open(path, 'w', encoding='utf-8', newline='\n') as f:
        f.write(result.header)
    written.append(path)

    if result.object_data is not None:
        path = object_path(result.module_name, config)
        with open(path, 'wb') as f:
            f.write(result.object_data)
        written.append(path)

    return written


def convert_file(
    input_path: Union[str, Path],
    module_name: str,
    config: Optional[Config] = None,
) -> List[Path]:
    """Convert a module file and write its artifacts; returns the paths written."""
    config = config or Config()
    data = Path(input_path).read_bytes()
    result = convert(data, module_name, config)
    return write_outputs(result, config)

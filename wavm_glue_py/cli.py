#!/usr/bin/env python3
"""
wavm-glue

Command-line interface for turning a WAVM-precompiled WebAssembly module
into a native object file plus the C glue header needed to link it.

Usage:
    wavm-glue <input-wasm-file> <output-module-name>
    wavm-glue -h | --help
    wavm-glue --version

Arguments:
    input-wasm-file      Path to a module precompiled by WAVM
    output-module-name   Output name; writes <name>_glue.h and <name>.o

Options:
    -h --help            Show this help message
    --version            Show version
    --abi RUNTIME        Also write the WASI ABI header for RUNTIME (posix, ckb-vm)
"""

import sys
import argparse
import logging
from pathlib import Path
from typing import List, Optional

from . import __version__
from .abi import available_runtimes, copy_abi_header
from .config import Config
from .converter import convert, write_outputs
from .errors import GlueError


def run(input_path: str, module_name: str, config: Config, abi: Optional[str] = None) -> List[Path]:
    """
    Convert one module and write its artifacts.

    Args:
        input_path: Path to the WebAssembly module
        module_name: Output module name
        config: Configuration
        abi: Runtime whose ABI header is copied next to the outputs

    Returns:
        Paths of the written artifacts
    """
    print(f"Reading {input_path}...")
    data = Path(input_path).read_bytes()

    print("Generating glue...")
    result = convert(data, module_name, config)
    model = result.model
    print(
        f"Found {model.functions.import_count} imported and {model.functions.local_count} "
        f"local functions, {len(model.memories)} memories, {len(model.globals)} globals"
    )
    if result.object_data is None:
        print(f"WARNING: No '{config.precompiled_object_section}' section, no object file written")

    written = write_outputs(result, config)
    if abi:
        written.append(copy_abi_header(abi, Path(module_name).parent))
    for path in written:
        print(f"  {path}: {path.stat().st_size:,} bytes")
    print("Done!")
    return written


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="wavm-glue",
        description="wavm-glue - Extract the precompiled object and generate C glue from a WAVM module",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('files', nargs='*', help='Input WebAssembly module and output module name')
    parser.add_argument('--version', action='version', version=f'wavm-glue {__version__}')
    parser.add_argument('--config', type=str, help='Path to config.json')
    parser.add_argument('--require-object', action='store_true',
                        help='Fail if the module has no precompiled object section')
    parser.add_argument('--abi', choices=available_runtimes(),
                        help='Also write the WASI ABI header for this runtime')
    parser.add_argument('-v', '--verbose', action='store_true', help='Log every decoded event')

    args = parser.parse_args(argv)

    if len(args.files) != 2:
        parser.print_help()
        print("\nERROR: Exactly two arguments are required: <input wasm file> <output module name>")
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(name)s: %(message)s"
    )

    # Load config
    config_path = Path(args.config) if args.config else None
    config = Config.load(config_path)
    if args.require_object:
        config.require_precompiled_object = True

    input_path, module_name = args.files
    if not Path(input_path).is_file():
        print(f"ERROR: Input module not found: {input_path}")
        sys.exit(1)

    try:
        run(input_path, module_name, config, args.abi)
    except GlueError as e:
        print(f"ERROR: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"ERROR: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Runtime ABI headers.

Each header implements the WASI host functions a program imports
(wasi_unstable.fd_write, wasi_unstable.proc_exit, ...) for one target
runtime. It is included after the generated glue header and relies on
what that header defines:

- the wavm_ret_* return wrappers
- the wavm_<module>_<field> import macros
- memory0 / memoryOffset0 and MEMORY0_DEFINED
"""

import shutil
from pathlib import Path
from typing import Dict, List, Union

ABI_DIR = Path(__file__).parent

ABI_HEADERS: Dict[str, str] = {
    'posix': 'posix_wasi_abi.h',
    'ckb-vm': 'ckb_vm_wasi_abi.h',
}


def available_runtimes() -> List[str]:
    return sorted(ABI_HEADERS)


def abi_header_path(runtime: str) -> Path:
    """Path of the bundled header for runtime."""
    try:
        return ABI_DIR / ABI_HEADERS[runtime]
    except KeyError:
        raise ValueError(
            f"Unknown runtime '{runtime}', expected one of: {', '.join(available_runtimes())}"
        ) from None


def read_abi_header(runtime: str) -> str:
    return abi_header_path(runtime).read_text(encoding='utf-8')


def copy_abi_header(runtime: str, dest_dir: Union[str, Path]) -> Path:
    """Copy the header for runtime into dest_dir; returns the written path."""
    source = abi_header_path(runtime)
    dest = Path(dest_dir) / source.name
    shutil.copyfile(source, dest)
    return dest


__all__ = ['ABI_HEADERS', 'available_runtimes', 'abi_header_path', 'read_abi_header', 'copy_abi_header']

import re

import pytest

from wavm_glue_py.abi import (
    ABI_HEADERS, abi_header_path, available_runtimes, copy_abi_header, read_abi_header,
)

from wasm_builder import I32, WasmModule, i32_const


def wasi_module():
    module = WasmModule()
    fd_write = module.add_type([I32, I32, I32, I32], [I32])
    proc_exit = module.add_type([I32], [])
    start = module.add_type()
    module.import_function("wasi_unstable", "fd_write", fd_write)
    module.import_function("wasi_unstable", "proc_exit", proc_exit)
    module.add_function(start)
    module.export_function("_start", 2)
    module.add_memory(1)
    module.add_data(i32_const(8), b'hello\n')
    return module


def test_runtimes():
    assert available_runtimes() == ['ckb-vm', 'posix']
    for runtime in ABI_HEADERS:
        assert abi_header_path(runtime).is_file()


def test_unknown_runtime():
    with pytest.raises(ValueError, match="Unknown runtime 'wasm3'"):
        abi_header_path('wasm3')


@pytest.mark.parametrize("runtime", ['posix', 'ckb-vm'])
def test_glue_provides_what_the_abi_header_uses(convert_module, runtime):
    header = convert_module(wasi_module()).header
    abi = read_abi_header(runtime)

    assert "#define wavm_wasi_unstable_fd_write functionImport0\n" in header
    assert "#define wavm_wasi_unstable_proc_exit functionImport1\n" in header
    assert "} wavm_ret_int32_t;\n" in header
    assert "#define MEMORY0_DEFINED 1\n" in header
    assert "uint8_t* memoryOffset0 = memory0;\n" in header

    defined = set(re.findall(r'^#define (wavm_\w+) ', header, re.MULTILINE))
    implemented = set(re.findall(r'^\S[^(\n]* (wavm_wasi_\w+)\(', abi, re.MULTILINE))
    assert implemented == {'wavm_wasi_unstable_fd_write', 'wavm_wasi_unstable_proc_exit'}
    assert implemented <= defined
    assert "wavm_ret_int32_t wavm_wasi_unstable_fd_write(" in abi
    assert "MEMORY0_DEFINED" in abi


def test_abi_return_types_match_glue_declarations(convert_module):
    header = convert_module(wasi_module()).header
    assert "extern wavm_ret_int32_t (functionImport0) (void*, int32_t, int32_t, int32_t, int32_t);\n" in header
    assert "extern void* (functionImport1) (void*, int32_t);\n" in header
    for runtime in available_runtimes():
        abi = read_abi_header(runtime)
        assert "void* wavm_wasi_unstable_proc_exit(void* dummy, int32_t code)" in abi


def test_copy_abi_header(tmp_path):
    written = copy_abi_header('posix', tmp_path)
    assert written == tmp_path / 'posix_wasi_abi.h'
    assert written.read_text() == read_abi_header('posix')

import pytest

from wavm_glue_py import __version__
from wavm_glue_py.cli import main

from wasm_builder import I32, WasmModule, i32_const


def write_module(path, with_object=True):
    module = WasmModule()
    module.add_function(module.add_type())
    module.export_function("_start", 0)
    module.add_memory(1)
    module.add_global(I32, False, i32_const(1))
    if with_object:
        module.add_custom("wavm.precompiled_object", b'\x7fELF')
    path.write_bytes(module.encode())


@pytest.mark.parametrize("argv", [[], ["only-one"], ["a", "b", "c"]])
def test_wrong_argument_count(tmp_path, monkeypatch, capsys, argv):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(SystemExit) as exc:
        main(argv)
    assert exc.value.code == 1
    out = capsys.readouterr().out
    assert "usage: wavm-glue" in out
    assert "ERROR: Exactly two arguments are required" in out
    assert list(tmp_path.iterdir()) == []


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_successful_run(tmp_path, capsys):
    source = tmp_path / "prog.wasm"
    write_module(source)

    main([str(source), str(tmp_path / "prog")])

    out = capsys.readouterr().out
    assert "Done!" in out
    assert (tmp_path / "prog.o").read_bytes() == b'\x7fELF'
    assert "int main()" in (tmp_path / "prog_glue.h").read_text()


def test_missing_object_is_a_warning(tmp_path, capsys):
    source = tmp_path / "prog.wasm"
    write_module(source, with_object=False)

    main([str(source), str(tmp_path / "prog")])

    assert "WARNING: No 'wavm.precompiled_object' section" in capsys.readouterr().out
    assert (tmp_path / "prog_glue.h").exists()
    assert not (tmp_path / "prog.o").exists()


def test_require_object_flag(tmp_path, capsys):
    source = tmp_path / "prog.wasm"
    write_module(source, with_object=False)

    with pytest.raises(SystemExit) as exc:
        main([str(source), str(tmp_path / "prog"), "--require-object"])

    assert exc.value.code == 1
    assert "ERROR: Module has no 'wavm.precompiled_object' section" in capsys.readouterr().out
    assert not (tmp_path / "prog_glue.h").exists()


def test_missing_input(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / "nope.wasm"), str(tmp_path / "out")])
    assert exc.value.code == 1
    assert "ERROR: Input module not found" in capsys.readouterr().out


def test_malformed_input(tmp_path, capsys):
    source = tmp_path / "bad.wasm"
    source.write_bytes(b'\x00asm\x02\x00\x00\x00')

    with pytest.raises(SystemExit) as exc:
        main([str(source), str(tmp_path / "bad")])

    assert exc.value.code == 1
    assert "ERROR: Unsupported WebAssembly version: 2" in capsys.readouterr().out
    assert sorted(p.name for p in tmp_path.iterdir()) == ["bad.wasm"]


def test_config_file(tmp_path, capsys):
    config = tmp_path / "config.json"
    config.write_text('{"headerSuffix": ".h", "emitMain": false}')
    source = tmp_path / "prog.wasm"
    write_module(source)

    main([str(source), str(tmp_path / "prog"), "--config", str(config)])

    assert "int main()" not in (tmp_path / "prog.h").read_text()


def test_abi_header_written_next_to_outputs(tmp_path, capsys):
    source = tmp_path / "prog.wasm"
    write_module(source)

    main([str(source), str(tmp_path / "prog"), "--abi", "posix"])

    assert (tmp_path / "posix_wasi_abi.h").is_file()
    assert "posix_wasi_abi.h" in capsys.readouterr().out


def test_unknown_abi_runtime(tmp_path, capsys):
    source = tmp_path / "prog.wasm"
    write_module(source)
    with pytest.raises(SystemExit) as exc:
        main([str(source), str(tmp_path / "prog"), "--abi", "wasm3"])
    assert exc.value.code == 2
    assert not (tmp_path / "prog_glue.h").exists()

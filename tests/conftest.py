"""Test configuration ensuring the project source tree is importable."""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
TESTS = ROOT / "tests"

for path in (str(TESTS), str(ROOT)):
    if path not in sys.path:
        sys.path.insert(0, path)

from wavm_glue_py.config import Config  # noqa: E402
from wavm_glue_py.converter import convert  # noqa: E402


@pytest.fixture
def convert_module():
    """Convert a wasm_builder.WasmModule, returning the ConversionResult."""
    def _convert(module, module_name="test", **options):
        return convert(module.encode(), module_name, Config(**options))
    return _convert

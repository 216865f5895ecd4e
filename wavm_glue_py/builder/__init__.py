"""
Module model: index spaces, memory images and the data model they hold.

ModuleBuilder lives in builder.module_builder and is imported from there.
"""

from .memory import MemoryImage
from .model import (
    ModuleModel, FunctionIndexSpace, ImportedFunction, LocalFunction,
    ExportEntry, TableEntry, GlobalEntry,
)

__all__ = [
    'MemoryImage', 'ModuleModel', 'FunctionIndexSpace', 'ImportedFunction',
    'LocalFunction', 'ExportEntry', 'TableEntry', 'GlobalEntry',
]

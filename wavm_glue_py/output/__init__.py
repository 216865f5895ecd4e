"""
Output generation module.
"""

from .glue_writer import GlueWriter
from .object_extractor import PrecompiledObjectExtractor
from .c_types import map_type, function_abi

__all__ = ['GlueWriter', 'PrecompiledObjectExtractor', 'map_type', 'function_abi']

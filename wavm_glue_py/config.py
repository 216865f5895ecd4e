"""
Configuration handling for the glue generator.
"""

from dataclasses import dataclass, fields as dataclass_fields
from typing import Optional
import json
from pathlib import Path


@dataclass
class Config:
    """Configuration options for the glue generator."""

    # Input conventions
    precompiled_object_section: str = "wavm.precompiled_object"
    entry_point: str = "_start"

    # Output naming
    header_suffix: str = "_glue.h"
    object_suffix: str = ".o"
    import_prefix: str = "wavm"
    export_prefix: str = "wavm_exported_function"

    # Generation options
    bytes_per_line: int = 32
    data_chunk_size: int = 4096
    emit_main: bool = True

    # Legacy WAVM glue marks *mutable* globals const. Set to False to mark
    # immutable globals const instead.
    const_on_mutable_globals: bool = True

    # Runtime options
    require_precompiled_object: bool = False

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'Config':
        """Load configuration from a JSON file."""
        if path is None:
            path = Path(__file__).parent / 'config.json'

        if not path.exists():
            return cls()

        with open(path, 'r') as f:
            data = json.load(f)

        # Convert camelCase to snake_case
        converted = {}
        for key, value in data.items():
            snake_key = ''.join(
                f'_{c.lower()}' if c.isupper() else c
                for c in key
            ).lstrip('_')
            converted[snake_key] = value

        # Filter to only include valid fields
        valid_fields = {f.name for f in dataclass_fields(cls)}
        filtered = {k: v for k, v in converted.items() if k in valid_fields}

        return cls(**filtered)

    def save(self, path: Path) -> None:
        """Save configuration to a JSON file."""
        # Convert snake_case to camelCase for compatibility
        data = {}
        for key, value in self.__dict__.items():
            camel_key = ''.join(
                word.capitalize() if i > 0 else word
                for i, word in enumerate(key.split('_'))
            )
            data[camel_key] = value

        with open(path, 'w') as f:
            json.dump(data, f, indent=2)

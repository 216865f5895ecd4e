"""
Extraction of the precompiled native object embedded in a module.

WAVM stores the relocatable object it compiled for a module in a custom
section. The payload is passed through untouched.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_SECTION_NAME = "wavm.precompiled_object"


class PrecompiledObjectExtractor:
    """
    Captures the payload of the precompiled object section.

    Only the first matching section is kept; the caller writes the
    payload out once the conversion has succeeded.
    """

    def __init__(self, section_name: str = DEFAULT_SECTION_NAME):
        self.section_name = section_name
        self.payload: Optional[bytes] = None

    def matches(self, name: Optional[str]) -> bool:
        return name == self.section_name

    @property
    def found(self) -> bool:
        return self.payload is not None

    def extract(self, data: bytes) -> bool:
        """
        Record the section payload.

        Returns:
            True if the payload was recorded, False if one was already recorded
        """
        if self.payload is not None:
            logger.warning(
                "Ignoring duplicate '%s' section (%d bytes); keeping the first one",
                self.section_name, len(data)
            )
            return False
        self.payload = bytes(data)
        logger.debug("Captured precompiled object: %d bytes", len(self.payload))
        return True

"""
Recovers hand-written content from a previously generated CQL library.

Authors are expected to fill in the ``define`` bodies that the generator
stubs out.  When a library is regenerated, those bodies (and any
``parameter`` declarations) are read back and emitted again in place of
the generated stubs, unless a refresh is requested.
"""

import logging
import os
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# A define block runs from ``define "<name>"`` to the next block comment
_DEFINE_PATTERN = re.compile(r'(define\s?"([^"]*)"[\s\S]*?)(?=/\*|\Z)', re.IGNORECASE)
_PARAMETER_PATTERN = re.compile(r"^parameter.*?$", re.IGNORECASE | re.MULTILINE)


@dataclass
class ExistingDefinitionStore:
    """Define blocks (by name) and parameter lines of one prior output file."""
    definitions: dict = field(default_factory=dict)
    parameters: list = field(default_factory=list)

    @classmethod
    def from_text(cls, text):
        store = cls()
        for match in _DEFINE_PATTERN.finditer(text):
            name = match.group(2)
            if name in store.definitions:
                logger.warning(f"Duplicate define \"{name}\" - keeping the first one")
                continue
            store.definitions[name] = match.group(1).strip()
        store.parameters = [m.group(0).strip() for m in _PARAMETER_PATTERN.finditer(text)]
        return store

    @classmethod
    def from_file(cls, file_path):
        """Parse *file_path*; an empty store if it does not exist."""
        if not os.path.exists(file_path):
            return cls()
        with open(file_path, "r", encoding="utf-8") as f:
            store = cls.from_text(f.read())
        logger.debug(
            f"Recovered {len(store.definitions)} defines and "
            f"{len(store.parameters)} parameters from {file_path}"
        )
        return store

    def lookup(self, name, refresh=False):
        """Return the prior block for *name*, or ``None`` if it must be generated."""
        if refresh:
            return None
        return self.definitions.get(name.strip())

    def __bool__(self):
        return bool(self.definitions or self.parameters)

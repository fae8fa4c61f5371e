"""
Builds the text of a CQL library.

Every library has the same skeleton::

    /* header comment */
    library <Name>
    <skeleton contents: using / include declarations>
    <parameter declarations>
    context Patient
    /* comment */ define "...": ...
    ...

``define`` blocks found in a previous version of the file are emitted
verbatim instead of being regenerated (unless refreshing).  A block is
always written trimmed and followed by one blank line, so reading the file
back and writing it again yields the same bytes.
"""

import logging

from .existing_definitions import ExistingDefinitionStore

logger = logging.getLogger(__name__)

DEFAULT_PARAMETER = 'parameter "Measurement Period" Interval<Date>'


def define_name(name):
    """Name as written in ``define "<name>"``: double quotes become single quotes."""
    return name.strip().replace('"', "'")


def comment_lines(text):
    """Split a (possibly multi-line) cell value into non-empty comment lines."""
    return [line.strip() for line in text.replace("\r", "\n").split("\n") if line.strip()]


class CqlWriter:
    """Accumulates library lines in memory; nothing touches the disk here."""

    def __init__(self, store=None, refresh=False, default_parameter=DEFAULT_PARAMETER):
        self.store = store if store is not None else ExistingDefinitionStore()
        self.refresh = refresh
        self.default_parameter = default_parameter
        self.lines = []
        self.reused = 0
        self.generated = 0

    def blank(self):
        self.lines.append("")

    def comment(self, *entries):
        """Emit a ``/* ... */`` block, one `` * `` line per entry line."""
        self.lines.append("/*")
        for entry in entries:
            for line in entry.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
                self.lines.append(f" * {line}".rstrip())
        self.lines.append(" */")

    def library(self, name):
        self.lines.append(f"library {name}")
        self.blank()

    def skeleton(self, text):
        if text and text.strip():
            self.lines.append(text.strip("\r\n"))
            self.blank()

    def parameters(self, skeleton_text=""):
        """Carry prior parameter lines forward, or declare the default one.

        Parameter lines that come from the skeleton are not repeated.
        """
        in_skeleton = {line.strip() for line in (skeleton_text or "").splitlines()}
        carried = [p for p in self.store.parameters if p not in in_skeleton]
        if carried:
            self.lines.extend(carried)
        elif self.default_parameter and self.default_parameter not in in_skeleton:
            self.lines.append(self.default_parameter)
        self.blank()

    def context(self, name="Patient"):
        self.lines.append(f"context {name}")
        self.blank()

    def define(self, name, body):
        """Emit ``define "<name>": <body>`` or the previously written block."""
        safe_name = define_name(name)
        if safe_name != name.strip():
            logger.warning(f"Define name {name!r} contains double quotes - written as {safe_name!r}")
        name = safe_name
        existing = self.store.lookup(name, self.refresh)
        if existing is not None:
            block = existing
            self.reused += 1
        else:
            block = f'define "{name}":\n\t{body}'
            self.generated += 1
        self.lines.append(block.strip())
        self.blank()

    def text(self):
        return "\n".join(self.lines).rstrip("\n") + "\n"

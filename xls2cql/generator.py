"""Common interface of the workbook generators."""

from dataclasses import dataclass, field

from .config import DEFAULTS


@dataclass
class GenerateOptions:
    replace: bool = False       # overwrite files that already exist
    refresh: bool = False       # regenerate define bodies instead of reusing them
    rules_only: bool = False    # skip the data element placeholder defines
    config: dict = field(default_factory=lambda: dict(DEFAULTS))


class Generator:
    """Turns a workbook into files under an output directory."""

    name = None
    description = None

    def generate(self, workbook, output_dir, skeleton, options):
        """Generate all files for *workbook*; return the paths written."""
        raise NotImplementedError

"""
Decision tables -> CQL libraries.

Every ``Decision ID`` block on every visible worksheet becomes
``<output>/input/cql/<LibraryName>.cql`` holding:

* a placeholder ``define`` per data element used by the table's clauses,
  for the author to fill in;
* a ``define`` per rule group whose body is the group's OR-of-ANDs
  condition.
"""

import logging

from .cql_expression import collect_data_elements, data_element_name, render
from .cql_writer import CqlWriter
from .decision_rules import extract_rule_groups
from .errors import LayoutError
from .existing_definitions import ExistingDefinitionStore
from .generator import Generator
from .output_files import CQL_DIR, output_path, should_generate, write_text_atomic
from .table_layout import resolve_sheet_layouts
from .worksheet import iter_grids

logger = logging.getLogger(__name__)

DATA_ELEMENT_STUB = "0 // TODO: Define this"


def _bullets(values):
    return [f"  - {v}" for v in values]


def emit_rule_group(writer, group, emitted_elements, rules_only=False):
    """Write the data element placeholders and the rule define of *group*.

    *emitted_elements* holds the data element names already written to this
    library; it is updated in place.
    """
    if not rules_only:
        for raw in collect_data_elements(group.expression):
            name = data_element_name(raw)
            if not name or name in emitted_elements:
                continue
            emitted_elements.add(name)
            writer.comment(f"@dataElement {name}")
            writer.define(name, DATA_ELEMENT_STUB)

    logic = render(group.expression)
    writer.comment(
        f"Rule: {group.action}",
        "Annotations:", *_bullets(group.annotations),
        "Outputs:", *_bullets(group.outputs),
        "References:", *_bullets(group.references),
        "Logic:", f"  {logic}",
    )
    writer.define(group.action, logic)


def compile_decision_table(grid, layout, skeleton, store, options):
    """Return the full CQL text of the decision table at *layout*."""
    decision_id = layout.decision_id
    groups = extract_rule_groups(grid, layout)

    writer = CqlWriter(
        store,
        refresh=options.refresh,
        default_parameter=options.config.get("default_parameter"),
    )
    writer.comment(
        f"Library: {decision_id.library_name} ({decision_id})",
        f"Rule: {layout.description}",
        f"Trigger: {layout.trigger}",
    )
    writer.library(decision_id.library_name)
    writer.skeleton(skeleton)
    writer.parameters(skeleton)
    writer.context()

    emitted_elements = set()
    for group in groups:
        if not group.action:
            logger.warning(
                f"{decision_id.code}: rows without any action text are grouped "
                f"under an empty define name"
            )
        emit_rule_group(writer, group, emitted_elements, rules_only=options.rules_only)

    logger.debug(
        f"{decision_id.library_name}: {writer.generated} defines generated, "
        f"{writer.reused} reused"
    )
    return writer.text()


class DecisionTableCqlGenerator(Generator):
    name = "who.dak.l2.dt.cql"
    description = "Decision Tables to CQL"

    def generate(self, workbook, output_dir, skeleton, options):
        written = []
        for grid in iter_grids(workbook, options.config.get("ignore_sheets", ())):
            try:
                layouts = resolve_sheet_layouts(grid)
            except LayoutError as e:
                logger.error(f"Sheet '{grid.title}' skipped: {e}")
                continue

            for layout in layouts:
                file_name = f"{layout.decision_id.library_name}.cql"
                path = output_path(output_dir, CQL_DIR, file_name)
                logger.info(f"Generating {path}...")
                if not should_generate(path, options.replace):
                    continue

                store = ExistingDefinitionStore.from_file(path)
                text = compile_decision_table(grid, layout, skeleton, store, options)
                written.append(write_text_atomic(path, text))
        return written

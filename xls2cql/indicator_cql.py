"""
Indicator table -> CQL libraries.

One library per indicator with ``numerator``, ``denominator`` and one
``<disaggregation> Stratifier`` define each, stubbed for the author.
"""

import logging

from .cql_writer import CqlWriter
from .errors import LayoutError
from .existing_definitions import ExistingDefinitionStore
from .generator import Generator
from .indicators import INDICATOR_SHEET, find_indicator_sheet, read_indicators
from .output_files import CQL_DIR, output_path, should_generate, write_text_atomic

logger = logging.getLogger(__name__)

LOGIC_STUB = "true // TODO: Write logic here"


def compile_indicator(indicator, skeleton, store, options):
    """Return the CQL text of one indicator library."""
    writer = CqlWriter(
        store,
        refresh=options.refresh,
        default_parameter=options.config.get("default_parameter"),
    )
    writer.comment(
        f"Library: {indicator.code}",
        indicator.name,
        indicator.discussion,
        "",
        f"Numerator: {indicator.numerator_definition}",
        f"Numerator Computation: {indicator.numerator_computation}",
        f"Denominator: {indicator.denominator_definition}",
        f"Denominator Computation: {indicator.denominator_computation}",
        "",
        "Disaggregation:",
        *[f"  - {d}" for d in indicator.disaggregations],
        "",
        f"References: {', '.join(indicator.references)}",
    )
    writer.library(indicator.library_name)
    writer.skeleton(skeleton)
    writer.parameters(skeleton)
    writer.context()

    writer.comment(
        f"Numerator: {indicator.numerator_definition}",
        f"Numerator Computation: {indicator.numerator_computation}",
    )
    writer.define("numerator", LOGIC_STUB)
    writer.comment(
        f"Denominator: {indicator.denominator_definition}",
        f"Denominator Computation: {indicator.denominator_computation}",
    )
    writer.define("denominator", LOGIC_STUB)

    seen = set()
    for disaggregation, stratifier in zip(indicator.disaggregations, indicator.stratifiers):
        if stratifier in seen:
            continue
        seen.add(stratifier)
        writer.comment(f"Disaggregator: {disaggregation}")
        writer.define(stratifier, LOGIC_STUB)

    writer.comment(f"End of {indicator.code}")
    return writer.text()


class IndicatorCqlGenerator(Generator):
    name = "who.dak.l2.ind.cql"
    description = "WHO DAK L2 Indicator Table to CQL"

    def generate(self, workbook, output_dir, skeleton, options):
        try:
            grid = find_indicator_sheet(
                workbook, options.config.get("indicator_sheet", INDICATOR_SHEET))
            indicators = read_indicators(grid)
        except LayoutError as e:
            logger.error(f"Indicator table skipped: {e}")
            return []

        written = []
        for indicator in indicators:
            path = output_path(output_dir, CQL_DIR, f"{indicator.library_name}.cql")
            logger.info(f"Creating {path}")
            if not should_generate(path, options.replace):
                continue
            store = ExistingDefinitionStore.from_file(path)
            text = compile_indicator(indicator, skeleton, store, options)
            written.append(write_text_atomic(path, text))
        return written

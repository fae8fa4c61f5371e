"""
FHIR resource documents that point at the generated CQL.

* PlanDefinition per decision table: one action per rule group, whose
  applicability condition names the group's ``define``.
* Measure per indicator: proportion measure with numerator/denominator
  populations and one stratifier per disaggregation.

Resources are plain dicts serialised as indented JSON.
"""

import datetime
import json
import logging
import re

from .cql_expression import render
from .cql_writer import define_name
from .decision_rules import extract_rule_groups
from .errors import LayoutError
from .generator import Generator
from .indicators import INDICATOR_SHEET, find_indicator_sheet, read_indicators
from .output_files import (
    MEASURE_DIR,
    PLAN_DEFINITION_DIR,
    output_path,
    should_generate,
    write_text_atomic,
)
from .table_layout import resolve_sheet_layouts
from .worksheet import iter_grids

logger = logging.getLogger(__name__)

CQL_IDENTIFIER = "text/cql-identifier"
TERMINOLOGY = "http://terminology.hl7.org/CodeSystem"

_ELEMENT_ID_CHARS = re.compile(r"[\s\-\(\)]+")


def _coding(system, code):
    return {"coding": [{"system": f"{TERMINOLOGY}/{system}", "code": code}]}


def _element_id(text):
    """``Age group (years)`` -> ``age-group``."""
    return _ELEMENT_ID_CHARS.sub("-", text.split("(", 1)[0].strip()).strip("-").lower()


def to_json(resource):
    return json.dumps(resource, indent=2, ensure_ascii=False) + "\n"


# ------------------------------------------------------------------
# PlanDefinition
# ------------------------------------------------------------------

def _plan_action(group):
    action = {"title": "; ".join(group.outputs) or group.action}
    if group.annotations:
        action["description"] = "\n".join(group.annotations)
    if group.references:
        action["documentation"] = [
            {"type": "citation", "citation": ref} for ref in group.references
        ]
    action["condition"] = [{
        "kind": "applicability",
        "expression": {
            "description": render(group.expression),
            "language": CQL_IDENTIFIER,
            "expression": define_name(group.action),
        },
    }]
    return action


def build_plan_definition(layout, groups, canonical_base):
    """PlanDefinition resource for one decision table."""
    decision_id = layout.decision_id
    name = decision_id.library_name
    resource = {
        "resourceType": "PlanDefinition",
        "id": name,
        "url": f"{canonical_base}/PlanDefinition/{name}",
        "name": name,
        "title": str(decision_id),
        "status": "draft",
        "type": _coding("plan-definition-type", "eca-rule"),
    }
    if layout.description:
        resource["description"] = layout.description
    resource["library"] = [f"{canonical_base}/Library/{name}"]

    actions = [_plan_action(group) for group in groups]
    if layout.trigger:
        for action in actions:
            action["trigger"] = [{"type": "named-event", "name": layout.trigger}]
    resource["action"] = actions
    return resource


class PlanDefinitionGenerator(Generator):
    name = "who.dak.l2.dt.pd"
    description = "Decision Tables to Plan Definition Resources"

    def generate(self, workbook, output_dir, skeleton, options):
        base = options.config.get("canonical_base")
        written = []
        for grid in iter_grids(workbook, options.config.get("ignore_sheets", ())):
            try:
                layouts = resolve_sheet_layouts(grid)
            except LayoutError as e:
                logger.error(f"Sheet '{grid.title}' skipped: {e}")
                continue

            for layout in layouts:
                name = layout.decision_id.library_name
                path = output_path(output_dir, PLAN_DEFINITION_DIR, f"{name}.json")
                logger.info(f"Generating {path}...")
                if not should_generate(path, options.replace or options.refresh):
                    continue
                groups = extract_rule_groups(grid, layout)
                resource = build_plan_definition(layout, groups, base)
                written.append(write_text_atomic(path, to_json(resource)))
        return written


# ------------------------------------------------------------------
# Measure
# ------------------------------------------------------------------

def _population(code, description):
    return {
        "id": code,
        "code": _coding("measure-population", code),
        "description": description,
        "criteria": {"language": CQL_IDENTIFIER, "expression": code},
    }


def build_measure(indicator, canonical_base, date=None):
    """Measure resource for one indicator."""
    name = indicator.library_name
    if date is None:
        date = datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds")
    return {
        "resourceType": "Measure",
        "id": name,
        "url": f"{canonical_base}/Measure/{name}",
        "name": name,
        "title": f"{indicator.code} {indicator.name}".strip(),
        "status": "draft",
        "date": date,
        "description": indicator.discussion,
        "library": [f"{canonical_base}/Library/{name}"],
        "scoring": _coding("measure-scoring", "proportion"),
        "type": [_coding("measure-type", "process")],
        "improvementNotation": _coding("measure-improvement-notation", "increase"),
        "group": [{
            "id": name,
            "population": [
                _population("numerator", indicator.numerator_definition),
                _population("denominator", indicator.denominator_definition),
            ],
            "stratifier": [
                {
                    "id": f"{_element_id(d)}-stratifier",
                    "criteria": {"language": CQL_IDENTIFIER, "expression": s},
                }
                for d, s in zip(indicator.disaggregations, indicator.stratifiers)
            ],
        }],
    }


class MeasureGenerator(Generator):
    name = "who.dak.l2.ind.measure"
    description = "WHO DAK L2 Indicator to Measure JSON Resources"

    def generate(self, workbook, output_dir, skeleton, options):
        try:
            grid = find_indicator_sheet(
                workbook, options.config.get("indicator_sheet", INDICATOR_SHEET))
            indicators = read_indicators(grid)
        except LayoutError as e:
            logger.error(f"Indicator table skipped: {e}")
            return []

        base = options.config.get("canonical_base")
        written = []
        for indicator in indicators:
            path = output_path(
                output_dir, MEASURE_DIR, f"measure-{indicator.library_name}.json")
            logger.info(f"Generating {path}...")
            if not should_generate(path, options.replace or options.refresh):
                continue
            written.append(write_text_atomic(path, to_json(build_measure(indicator, base))))
        return written

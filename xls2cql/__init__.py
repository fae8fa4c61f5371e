"""Excel-to-CQL Converter.

Compiles WHO DAK style workbooks into:

  * **CQL libraries** – one per decision table (rule groups folded into
    boolean conditions, plus placeholder defines for every data element)
    and one per indicator (numerator / denominator / stratifiers).
  * **FHIR resources** – PlanDefinitions for decision tables and Measures
    for indicators, referencing that logic.

Regenerating a library keeps the ``define`` bodies written by hand in the
previous version unless ``refresh`` is requested.
"""

from .cql_expression import (
    BinaryExpression,
    BinaryOperator,
    Identifier,
    collect_data_elements,
    parse_clause,
    render,
)
from .decision_cql import compile_decision_table
from .decision_rules import DecisionRuleGroup, extract_rule_groups
from .existing_definitions import ExistingDefinitionStore
from .registry import GENERATORS, get_generator

__all__ = [
    "BinaryExpression",
    "BinaryOperator",
    "Identifier",
    "collect_data_elements",
    "parse_clause",
    "render",
    "compile_decision_table",
    "DecisionRuleGroup",
    "extract_rule_groups",
    "ExistingDefinitionStore",
    "GENERATORS",
    "get_generator",
]

"""
Parses decision-table clauses into a tiny CQL expression tree.

A clause is the text of one input cell, for example::

    "Age in years" >= 9
    "Has allergy" != TRUE
    "Pregnant"                  (shorthand for "Pregnant" = TRUE)

Handles:
- Quoted attribute names on the left (may span line breaks)
- Operators: = ! != <= >= > < & && and | || or
- Quoted strings, TRUE / FALSE and bare word/number tokens on the right

The tree is rendered back to fully parenthesised CQL, e.g.
``(("Age in years" >= 9) and ("Pregnant" = true))``.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Optional, Union

from .errors import MalformedClauseError, UnsupportedOperatorError


class BinaryOperator(Enum):
    AND = "And"
    OR = "Or"
    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    GREATER_THAN = "GreaterThan"
    GREATER_THAN_EQUAL_TO = "GreaterThanEqualTo"
    LESS_THAN = "LessThan"
    LESS_THAN_EQUAL_TO = "LessThanEqualTo"


# Maps clause operator tokens (lower-cased) to operators
OPERATOR_TOKENS = MappingProxyType({
    "=": BinaryOperator.EQUAL,
    "!": BinaryOperator.NOT_EQUAL,
    "!=": BinaryOperator.NOT_EQUAL,
    "<=": BinaryOperator.LESS_THAN_EQUAL_TO,
    ">=": BinaryOperator.GREATER_THAN_EQUAL_TO,
    ">": BinaryOperator.GREATER_THAN,
    "<": BinaryOperator.LESS_THAN,
    "&": BinaryOperator.AND,
    "&&": BinaryOperator.AND,
    "and": BinaryOperator.AND,
    "|": BinaryOperator.OR,
    "||": BinaryOperator.OR,
    "or": BinaryOperator.OR,
})

# Maps operators to the CQL token they render as
OPERATOR_RENDER = MappingProxyType({
    BinaryOperator.EQUAL: "=",
    BinaryOperator.NOT_EQUAL: "<>",
    BinaryOperator.LESS_THAN_EQUAL_TO: "<=",
    BinaryOperator.GREATER_THAN_EQUAL_TO: ">=",
    BinaryOperator.GREATER_THAN: ">",
    BinaryOperator.LESS_THAN: "<",
    BinaryOperator.AND: "and",
    BinaryOperator.OR: "or",
})

SYNTAX_HELP = (
    'please use syntax "attribute" [=,!=,<,>,>=,<=] '
    '[true,false,####,"other attribute"]'
)

_OPERATOR_CHARS = "=!<>&|"
_WORD_OPERATORS = ("and", "or")
_TRUE_SUFFIX = " = TRUE"


@dataclass(frozen=True)
class Identifier:
    """A data element reference (``"Name"``) or a literal token (``TRUE``, ``5``)."""
    text: str

    @property
    def is_quoted(self) -> bool:
        return self.text.startswith('"')

    def __str__(self):
        return render(self)


@dataclass(frozen=True)
class BinaryExpression:
    operator: BinaryOperator
    left: "Expression"
    right: "Expression"

    def __str__(self):
        return render(self)


Expression = Union[Identifier, BinaryExpression]


# ------------------------------------------------------------------
# Scanner
# ------------------------------------------------------------------

def _skip_whitespace(text, i):
    while i < len(text) and text[i].isspace():
        i += 1
    return i


def _scan_quoted(text, i):
    """QUOTED := '"' any-char-but-quote* '"'.  Returns (raw, next) or None."""
    if i >= len(text) or text[i] != '"':
        return None
    end = text.find('"', i + 1)
    if end == -1:
        return None
    return text[i:end + 1], end + 1


def _scan_operator(text, i):
    """OP := one or two of ``=!<>&|`` | 'and' | 'or' (followed by whitespace)."""
    j = i
    while j < len(text) and text[j] in _OPERATOR_CHARS:
        j += 1
    if j > i:
        if j - i > 2:
            return None
        return text[i:j], j

    for word in _WORD_OPERATORS:
        end = i + len(word)
        if (text[i:end].lower() == word and end < len(text)
                and text[end].isspace()):
            return text[i:end], end
    return None


def _is_bare_char(c):
    return c.isalnum() or c == "_" or c.isspace()


def _scan_rhs(text, i):
    """RHS := QUOTED | TRUE | FALSE | bare token of word chars, digits and spaces."""
    quoted = _scan_quoted(text, i)
    if quoted is not None:
        return quoted

    j = i
    while j < len(text) and _is_bare_char(text[j]):
        j += 1
    raw = text[i:j].rstrip()
    if not raw:
        return None
    return raw, j


def _match_clause(text):
    """CLAUSE := QUOTED ws* OP ws* RHS ws* <end>.  Returns (lhs, op, rhs) or None."""
    lhs = _scan_quoted(text, 0)
    if lhs is None:
        return None
    lhs_text, i = lhs

    op = _scan_operator(text, _skip_whitespace(text, i))
    if op is None:
        return None
    op_token, i = op

    rhs = _scan_rhs(text, _skip_whitespace(text, i))
    if rhs is None:
        return None
    rhs_text, i = rhs

    if _skip_whitespace(text, i) != len(text):
        return None
    return lhs_text, op_token, rhs_text


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------

def parse_clause(clause: str) -> BinaryExpression:
    """Parse one cell's clause into ``BinaryExpression(op, lhs, rhs)``.

    A clause with no operator (just ``"Attribute"``) is read as
    ``"Attribute" = TRUE``.

    Raises:
        MalformedClauseError: the clause does not fit the grammar.
        UnsupportedOperatorError: the operator has no CQL equivalent.
    """
    text = clause.strip()
    match = _match_clause(text)
    if match is None:
        match = _match_clause(text + _TRUE_SUFFIX)
    if match is None:
        raise MalformedClauseError(
            clause, f"The expression {clause} is not well formed - {SYNTAX_HELP}"
        )

    lhs, token, rhs = match
    operator = OPERATOR_TOKENS.get(token.lower())
    if operator is None:
        raise UnsupportedOperatorError(
            clause, token,
            f"Operator {token} not supported. Use one of : =, <, <=, >, >=, !=, !, &, |",
        )
    return BinaryExpression(operator, Identifier(lhs), Identifier(rhs))


def combine(operator: BinaryOperator, left: Optional[Expression],
            right: Optional[Expression]) -> Optional[Expression]:
    """Join two expressions with *operator*, treating ``None`` as absent."""
    if left is None:
        return right
    if right is None:
        return left
    return BinaryExpression(operator, left, right)


def and_all(expressions) -> Optional[Expression]:
    """Left-associative AND over *expressions*: ``((e1 and e2) and e3)``."""
    result = None
    for expression in expressions:
        result = combine(BinaryOperator.AND, result, expression)
    return result


def render_identifier(identifier: Identifier) -> str:
    if identifier.is_quoted:
        return identifier.text.replace("\r", "").replace("\n", "")
    return identifier.text.lower()


def render(expression: Optional[Expression]) -> str:
    """Render an expression tree as fully parenthesised CQL.

    Uses an explicit stack: OR-folded rule groups are left-deep and can be
    as deep as the table is long.
    """
    parts = []
    stack = [expression]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
        elif item is None:
            parts.append("null")
        elif isinstance(item, Identifier):
            parts.append(render_identifier(item))
        else:
            stack.append(")")
            stack.append(item.right)
            stack.append(f" {OPERATOR_RENDER[item.operator]} ")
            stack.append(item.left)
            stack.append("(")
    return "".join(parts)


def _iter_identifiers(expression):
    stack = [expression]
    while stack:
        item = stack.pop()
        if isinstance(item, Identifier):
            yield item
        elif isinstance(item, BinaryExpression):
            stack.append(item.right)
            stack.append(item.left)


def collect_data_elements(expression: Optional[Expression]) -> Iterator[str]:
    """Yield the raw text of each quoted identifier once, left to right."""
    seen = set()
    for identifier in _iter_identifiers(expression):
        if identifier.is_quoted and identifier.text not in seen:
            seen.add(identifier.text)
            yield identifier.text


def data_element_name(raw: str) -> str:
    """``"Age\\nin years"`` -> ``Agein years``: the name used for its define."""
    return raw.replace("\r", "").replace("\n", "").replace('"', "").strip()

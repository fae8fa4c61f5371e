"""Exceptions raised while compiling spreadsheets into CQL and resources."""


class Xls2CqlError(Exception):
    """Base class for all xls2cql errors."""


class ClauseError(Xls2CqlError):
    """A single input cell could not be turned into an expression."""

    def __init__(self, clause, message):
        super().__init__(message)
        self.clause = clause


class MalformedClauseError(ClauseError):
    """The clause does not fit the grammar, even as ``<clause> = TRUE``."""


class UnsupportedOperatorError(ClauseError):
    """The clause has an operator token that has no CQL equivalent."""

    def __init__(self, clause, operator, message):
        super().__init__(clause, message)
        self.operator = operator


class LayoutError(Xls2CqlError):
    """A worksheet does not have the shape of a decision or indicator table."""


class LayoutNotFoundError(LayoutError):
    """A landmark label (or sheet) could not be located."""


class BadDecisionIdError(LayoutError):
    """The decision ID cell is not in ``AAA.BBB.##.Description`` form."""


class UnknownGeneratorError(Xls2CqlError):
    """No generator is registered under the requested name."""


class ConfigError(Xls2CqlError):
    """The configuration file cannot be parsed or is not a mapping."""

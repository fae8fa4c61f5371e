"""Name -> generator lookup for ``--generate``."""

from .decision_cql import DecisionTableCqlGenerator
from .errors import UnknownGeneratorError
from .indicator_cql import IndicatorCqlGenerator
from .resources import MeasureGenerator, PlanDefinitionGenerator

GENERATORS = {
    cls.name: cls
    for cls in (
        DecisionTableCqlGenerator,
        PlanDefinitionGenerator,
        IndicatorCqlGenerator,
        MeasureGenerator,
    )
}


def get_generator(name):
    """Instantiate the generator registered as *name*."""
    try:
        return GENERATORS[name]()
    except KeyError:
        raise UnknownGeneratorError(
            f"Don't have a generator for {name}. Available: {', '.join(GENERATORS)}"
        ) from None

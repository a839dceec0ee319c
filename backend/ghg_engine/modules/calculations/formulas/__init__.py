"""Formula registry: one formula per activity type, no shared default."""

from __future__ import annotations

from ghg_engine.db.models import ActivityType
from ghg_engine.modules.calculations.formulas import (
    combustion,
    offsets,
    refrigerants,
    scope2,
    scope3,
)
from ghg_engine.modules.calculations.formulas.base import (
    CalculationContext,
    FactorLookup,
    Formula,
    FormulaOutput,
)

FORMULAS: dict[ActivityType, Formula] = {
    formula.activity_type: formula
    for family in (combustion, refrigerants, scope2, scope3, offsets)
    for formula in family.FORMULAS
}


def get_formula(activity_type: ActivityType | str) -> Formula:
    """Return the formula registered for *activity_type*.

    Raises:
        ValueError: If *activity_type* is not a known activity type.
        KeyError: If the activity type has no formula.
    """
    return FORMULAS[ActivityType(activity_type)]


__all__ = [
    "FORMULAS",
    "CalculationContext",
    "FactorLookup",
    "Formula",
    "FormulaOutput",
    "get_formula",
]

"""Calculation dispatcher: activity type -> formula -> ``CalculationResult``.

Dispatch is a table lookup in the formula registry. The dispatcher
validates the payload, runs the formula against a :class:`FactorLookup`
and assembles the result with the factors, notes and version it used.
Any failure surfaces as :class:`CalculationFailedError`.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from ghg_engine.core.logging import get_logger
from ghg_engine.db.models import ActivityType
from ghg_engine.modules.calculations.formulas import (
    FORMULAS,
    CalculationContext,
    FactorLookup,
    Formula,
    FormulaOutput,
)
from ghg_engine.modules.calculations.payloads import (
    ActivityPayload,
    PayloadValidationError,
    parse_payload,
)
from ghg_engine.modules.calculations.schemas import CalculationResult
from ghg_engine.modules.calculations.units import UnitConversionError, co2e_metric_tons
from ghg_engine.modules.factors.resolver import FactorResolver

logger = get_logger(__name__)


class CalculationFailedError(Exception):
    """A single activity could not be calculated."""

    def __init__(self, activity_type: str, reason: str) -> None:
        self.activity_type = activity_type
        self.reason = reason
        super().__init__(f"Calculation failed for {activity_type}: {reason}")


class CalculationDispatcher:
    """Route an activity payload to its formula.

    Usage::

        dispatcher = CalculationDispatcher(resolver)
        result = await dispatcher.calculate(
            ActivityType.STATIONARY_COMBUSTION,
            {"fuel_type": "Natural Gas", "quantity": 1000, "units": "therms"},
        )
    """

    def __init__(
        self,
        resolver: FactorResolver,
        *,
        formulas: Mapping[ActivityType, Formula] | None = None,
    ) -> None:
        self._resolver = resolver
        self._formulas = formulas if formulas is not None else FORMULAS

    async def calculate(
        self,
        activity_type: ActivityType | str,
        payload: Mapping[str, Any] | ActivityPayload,
        *,
        context: CalculationContext | None = None,
    ) -> CalculationResult:
        """Calculate emissions for one activity.

        Raises:
            CalculationFailedError: For unknown activity types, invalid
                payloads, unit errors and any unexpected exception raised
                while computing.
        """
        formula = self._formula_for(activity_type)
        context = context or CalculationContext.from_settings()
        lookup = FactorLookup(self._resolver, context)

        try:
            parsed = (
                payload
                if isinstance(payload, formula.payload_model)
                else parse_payload(formula.activity_type, payload)
            )
            output = await formula.compute(parsed, lookup)
        except (PayloadValidationError, UnitConversionError) as exc:
            logger.warning(
                "calculation_rejected",
                activity_type=formula.activity_type.value,
                reason=str(exc),
            )
            raise CalculationFailedError(formula.activity_type.value, str(exc)) from exc
        except Exception as exc:
            logger.error(
                "calculation_error",
                activity_type=formula.activity_type.value,
                exc_info=True,
            )
            raise CalculationFailedError(formula.activity_type.value, repr(exc)) from exc

        result = self._build_result(formula, parsed, output, lookup)
        logger.debug(
            "calculation_complete",
            activity_type=formula.activity_type.value,
            method=formula.method,
            total_co2e_mt=result.total_co2e_mt,
            note_count=len(result.notes),
        )
        return result

    def supported_activity_types(self) -> list[ActivityType]:
        return sorted(self._formulas, key=lambda activity_type: activity_type.value)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _formula_for(self, activity_type: ActivityType | str) -> Formula:
        try:
            return self._formulas[ActivityType(activity_type)]
        except (KeyError, ValueError):
            logger.warning("unsupported_activity_type", activity_type=str(activity_type))
            raise CalculationFailedError(str(activity_type), "unsupported activity type") from None

    @staticmethod
    def _build_result(
        formula: Formula,
        payload: ActivityPayload,
        output: FormulaOutput,
        lookup: FactorLookup,
    ) -> CalculationResult:
        total = output.total_co2e_mt
        if total is None:
            total = co2e_metric_tons(output.co2_kg, output.ch4_g, output.n2o_g)

        values = (output.co2_kg, output.ch4_g, output.n2o_g, output.biogenic_co2_kg, total)
        if not all(math.isfinite(value) for value in values):
            logger.warning("calculation_not_finite", activity_type=formula.activity_type.value)
            raise CalculationFailedError(formula.activity_type.value, "non-finite result")

        # The first factor a formula resolves is its primary factor.
        primary = next(iter(lookup.factors.values()), None)
        return CalculationResult(
            activity_type=formula.activity_type,
            method=formula.method,
            co2_kg=output.co2_kg,
            ch4_g=output.ch4_g,
            n2o_g=output.n2o_g,
            biogenic_co2_kg=output.biogenic_co2_kg,
            total_co2e_mt=total,
            location_based=output.location_based,
            market_based=output.market_based,
            factors_used={
                role: factor.model_dump(mode="json") for role, factor in lookup.factors.items()
            },
            inputs={"payload": payload.model_dump(mode="json"), **output.inputs},
            notes=list(lookup.notes),
            factor_version=primary.version if primary else lookup.context.default_factor_version,
            standard=lookup.context.standard,
        )

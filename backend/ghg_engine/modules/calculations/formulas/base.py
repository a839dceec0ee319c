"""Formula records and the factor lookup handed to every formula.

A formula is a plain async function ``compute(payload, lookup)`` wrapped
in a :class:`Formula` record that declares the payload schema it reads
and the factor categories it resolves. Formulas never raise for a
missing factor: :class:`FactorLookup` records a note and returns
``None``, and the formula falls back to a zero or default factor.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ghg_engine.core.config import get_settings
from ghg_engine.core.logging import get_logger
from ghg_engine.db.models import ActivityType, FactorCategory
from ghg_engine.modules.calculations.payloads import ActivityPayload
from ghg_engine.modules.calculations.schemas import Scope2Result
from ghg_engine.modules.factors.resolver import FactorNotFoundError, FactorResolver
from ghg_engine.modules.factors.schemas import Factor, canonical_key

logger = get_logger(__name__)


@dataclass(frozen=True)
class CalculationContext:
    """Request-scoped inputs that are not part of the activity payload."""

    standard: str
    company_country: str | None = None
    as_of: date | None = None
    default_grid_region: str = "US Average"
    default_model_year: int = 2021
    default_boiler_efficiency_percent: float = 80.0
    default_factor_version: str = "AR5-static"

    @classmethod
    def from_settings(
        cls,
        *,
        standard: str | None = None,
        company_country: str | None = None,
        as_of: date | None = None,
    ) -> CalculationContext:
        settings = get_settings()
        return cls(
            standard=standard or settings.default_reporting_standard,
            company_country=company_country,
            as_of=as_of,
            default_grid_region=settings.default_grid_region,
            default_model_year=settings.default_vehicle_model_year,
            default_boiler_efficiency_percent=settings.default_boiler_efficiency_percent,
            default_factor_version=settings.default_factor_version,
        )


@dataclass
class FormulaOutput:
    """Gas masses and totals produced by one formula.

    ``total_co2e_mt`` is left as ``None`` when the total follows from the
    gas breakdown; formulas working directly in CO2e set it explicitly.
    """

    co2_kg: float = 0.0
    ch4_g: float = 0.0
    n2o_g: float = 0.0
    biogenic_co2_kg: float = 0.0
    total_co2e_mt: float | None = None
    location_based: Scope2Result | None = None
    market_based: Scope2Result | None = None
    inputs: dict[str, Any] = field(default_factory=dict)


class FactorLookup:
    """Resolver facade that turns misses into notes.

    Every factor resolved through the lookup is remembered under a role
    name (``"fuel"``, ``"grid"``, ``"gwp"`` ...) so the dispatcher can
    record exactly which factors a result used.
    """

    def __init__(self, resolver: FactorResolver, context: CalculationContext) -> None:
        self.resolver = resolver
        self.context = context
        self.factors: dict[str, Factor] = {}
        self.notes: list[str] = []

    def note(self, message: str) -> None:
        self.notes.append(message)

    async def get(
        self,
        role: str,
        category: FactorCategory,
        key: Mapping[str, Any],
        *,
        unit: str | None = None,
        note_on_miss: bool = True,
    ) -> Factor | None:
        """Resolve one factor, or record a note and return ``None``."""
        try:
            factor = await self.resolver.resolve(
                category,
                key,
                standard=self.context.standard,
                as_of=self.context.as_of,
                unit=unit,
            )
        except FactorNotFoundError:
            if note_on_miss:
                self.note(
                    f"No emission factor found for {category.value} "
                    f"({canonical_key(key) or 'empty key'}); using a zero factor"
                )
            return None
        self.factors[role] = factor
        return factor

    async def grid(self, role: str, grid_region: str) -> Factor | None:
        """Resolve an electricity factor with the country-level refinement."""
        try:
            factor = await self.resolver.resolve_electricity(
                grid_region,
                company_country=self.context.company_country,
                standard=self.context.standard,
                as_of=self.context.as_of,
            )
        except FactorNotFoundError:
            return None
        self.factors[role] = factor
        return factor

    async def gwp(self, category: FactorCategory, gas_type: str) -> float:
        """Global warming potential of *gas_type*, or 0 with a note."""
        factor = await self.get("gwp", category, {"gas_type": gas_type}, note_on_miss=False)
        if factor is None:
            self.note(f"No GWP found for gas '{gas_type}'; emissions recorded as zero")
            logger.warning("gwp_not_found", gas_type=gas_type, category=category.value)
            return 0.0
        return factor.coefficient("gwp")


FormulaFn = Callable[[Any, FactorLookup], Awaitable[FormulaOutput]]


@dataclass(frozen=True)
class Formula:
    """Registry entry binding one activity type to its formula."""

    activity_type: ActivityType
    method: str
    payload_model: type[ActivityPayload]
    factor_categories: tuple[FactorCategory, ...]
    compute: FormulaFn

    @property
    def required_fields(self) -> tuple[str, ...]:
        return tuple(
            name
            for name, info in self.payload_model.model_fields.items()
            if info.is_required()
        )

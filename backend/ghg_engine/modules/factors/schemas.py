"""Pydantic schemas and natural-key helpers for emission factors."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ghg_engine.db.models import EmissionFactor, FactorCategory

MODEL_YEAR_FIELD = "model_year"

# Fields that make up the natural key of each category.
CATEGORY_KEY_FIELDS: dict[FactorCategory, tuple[str, ...]] = {
    FactorCategory.STATIONARY_FUEL: ("fuel_type",),
    FactorCategory.MOBILE_SOURCE: ("vehicle_type", "fuel_type", MODEL_YEAR_FIELD),
    FactorCategory.REFRIGERANT: ("gas_type",),
    FactorCategory.GAS_GWP: ("gas_type",),
    FactorCategory.ELECTRICITY_GRID: ("grid_region", "country"),
    FactorCategory.WASTE: ("material", "disposal_method"),
    FactorCategory.BUSINESS_TRAVEL: ("vehicle_type",),
    FactorCategory.COMMUTING: ("vehicle_type",),
    FactorCategory.HOTEL: ("hotel_type",),
    FactorCategory.TRANSPORT: ("vehicle_type", "basis"),
}


class FactorTier(str, Enum):
    """Which step of the resolution chain produced a factor."""

    EXACT = "exact"
    RELAXED = "relaxed"
    STATIC = "static"


def _normalise_value(value: Any) -> str:
    if isinstance(value, str):
        return " ".join(value.lower().split())
    return str(value)


def canonical_key(key: Mapping[str, Any], *, drop: tuple[str, ...] = ()) -> str:
    """Render a natural key as a stable, case-insensitive string.

    ``None`` values and any field named in *drop* are omitted, so
    ``{"fuel_type": "Natural  Gas"}`` and ``{"fuel_type": "natural gas"}``
    share the key ``fuel_type=natural gas``.
    """
    parts = [
        f"{field}={_normalise_value(value)}"
        for field, value in sorted(key.items())
        if value is not None and field not in drop
    ]
    return "|".join(parts)


def base_key(key: Mapping[str, Any]) -> str:
    """Canonical key with the model year removed."""
    return canonical_key(key, drop=(MODEL_YEAR_FIELD,))


class Factor(BaseModel):
    """A resolved emission factor, independent of where it came from."""

    category: FactorCategory
    key: dict[str, Any] = Field(default_factory=dict)
    coefficients: dict[str, float] = Field(default_factory=dict)
    unit: str | None = None
    is_biomass: bool = False
    standard: str
    version: str
    effective_date: date | None = None
    source: str | None = None
    tier: FactorTier = FactorTier.EXACT

    def coefficient(self, name: str, default: float = 0.0) -> float:
        """Return a coefficient, or *default* when the factor lacks it."""
        return float(self.coefficients.get(name, default))

    @classmethod
    def from_row(cls, row: EmissionFactor, tier: FactorTier = FactorTier.EXACT) -> Factor:
        return cls(
            category=row.category,
            key=dict(row.key_fields or {}),
            coefficients={name: float(value) for name, value in (row.coefficients or {}).items()},
            unit=row.unit,
            is_biomass=row.is_biomass,
            standard=row.standard,
            version=row.version,
            effective_date=row.effective_date,
            source=row.source,
            tier=tier,
        )


class FactorCreate(BaseModel):
    """A factor version about to be published to the store."""

    category: FactorCategory
    key: dict[str, Any]
    coefficients: dict[str, float]
    unit: str | None = None
    is_biomass: bool = False
    standard: str = "GHG_PROTOCOL"
    version: str
    effective_date: date
    source: str | None = None

    @property
    def model_year(self) -> int | None:
        value = self.key.get(MODEL_YEAR_FIELD)
        return int(value) if value is not None else None

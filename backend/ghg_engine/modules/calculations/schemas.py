"""Typed results produced by the calculation dispatcher."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ghg_engine.db.models import ActivityType
from ghg_engine.modules.calculations.units import GWP_CH4, GWP_N2O, G_TO_KG, KG_TO_METRIC_TON


class GasBreakdown(BaseModel):
    """CO2, CH4 and N2O masses in internal units, with their CO2e weights."""

    co2_kg: float = 0.0
    ch4_g: float = 0.0
    n2o_g: float = 0.0

    @property
    def co2_mt(self) -> float:
        return self.co2_kg * KG_TO_METRIC_TON

    @property
    def ch4_co2e_mt(self) -> float:
        return self.ch4_g * G_TO_KG * KG_TO_METRIC_TON * GWP_CH4

    @property
    def n2o_co2e_mt(self) -> float:
        return self.n2o_g * G_TO_KG * KG_TO_METRIC_TON * GWP_N2O

    @property
    def total_co2e_mt(self) -> float:
        return self.co2_mt + self.ch4_co2e_mt + self.n2o_co2e_mt


class Scope2Result(BaseModel):
    """One of the two parallel Scope 2 accounting results."""

    method: str
    co2_kg: float = 0.0
    ch4_g: float = 0.0
    n2o_g: float = 0.0
    total_co2e_mt: float = 0.0
    factors: dict[str, Any] = Field(default_factory=dict)
    source: str | None = None
    is_fallback: bool = False


class CalculationResult(BaseModel):
    """Outcome of one formula applied to one activity payload."""

    activity_type: ActivityType
    method: str
    co2_kg: float = 0.0
    ch4_g: float = 0.0
    n2o_g: float = 0.0
    biogenic_co2_kg: float = 0.0
    total_co2e_mt: float = 0.0
    location_based: Scope2Result | None = None
    market_based: Scope2Result | None = None
    factors_used: dict[str, Any] = Field(default_factory=dict)
    inputs: dict[str, Any] = Field(default_factory=dict)
    notes: list[str] = Field(default_factory=list)
    factor_version: str | None = None
    standard: str | None = None

    @property
    def is_scope2(self) -> bool:
        return self.location_based is not None

    def breakdown(self) -> dict[str, Any]:
        """JSON-serialisable record stored alongside the ledger row."""
        gases = GasBreakdown(co2_kg=self.co2_kg, ch4_g=self.ch4_g, n2o_g=self.n2o_g)
        payload: dict[str, Any] = {
            "method": self.method,
            "co2_mt": gases.co2_mt,
            "ch4_co2e_mt": gases.ch4_co2e_mt,
            "n2o_co2e_mt": gases.n2o_co2e_mt,
            "gas_total_co2e_mt": gases.total_co2e_mt,
            "is_scope2": self.is_scope2,
            "biogenic_co2_kg": self.biogenic_co2_kg,
            "factors_used": self.factors_used,
            "inputs": self.inputs,
            "notes": self.notes,
        }
        if self.location_based is not None:
            payload["location_based"] = self.location_based.model_dump(mode="json")
        if self.market_based is not None:
            payload["market_based"] = self.market_based.model_dump(mode="json")
        return payload

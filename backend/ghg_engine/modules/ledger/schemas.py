"""Pydantic read models for the calculation ledger."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ghg_engine.db.models import ActivityType, ReportingStandard


class LedgerEntry(BaseModel):
    """One immutable ledger row."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    activity_id: UUID
    company_id: UUID
    reporting_period_id: UUID
    activity_type: ActivityType
    calculation_method: str
    co2_kg: float
    ch4_g: float
    n2o_g: float
    biogenic_co2_kg: float
    total_co2e_mt: float
    location_based_co2e_mt: float | None = None
    market_based_co2e_mt: float | None = None
    calculation_breakdown: dict[str, Any]
    emission_factor_version: str
    reporting_standard: ReportingStandard
    calculated_by: str | None = None
    calculated_at: datetime


class CalculationComparison(BaseModel):
    """Differences between two calculations of the same activity."""

    activity_id: UUID
    older_id: UUID
    newer_id: UUID
    deltas: dict[str, float]
    total_delta_co2e_mt: float
    total_change_percent: float | None = None
    factor_version_changed: bool
    method_changed: bool


class LedgerStats(BaseModel):
    """Ledger activity within one (company, reporting period)."""

    total_activities: int
    total_calculations: int
    activity_type_count: int
    first_calculated_at: datetime | None = None
    last_calculated_at: datetime | None = None

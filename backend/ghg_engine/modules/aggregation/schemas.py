"""Pydantic read model for period summaries."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ghg_engine.db.models import CalculationStatus


class PeriodSummaryRead(BaseModel):
    """Scope totals for one (company, reporting period), in metric tons CO2e."""

    model_config = ConfigDict(from_attributes=True)

    company_id: UUID
    reporting_period_id: UUID

    scope1_stationary_combustion_co2e: float = 0.0
    scope1_mobile_sources_co2e: float = 0.0
    scope1_refrigeration_ac_co2e: float = 0.0
    scope1_fire_suppression_co2e: float = 0.0
    scope1_purchased_gases_co2e: float = 0.0
    scope1_total_gross_co2e: float = 0.0
    scope1_total_net_co2e: float = 0.0

    scope2_location_electricity_co2e: float = 0.0
    scope2_location_steam_co2e: float = 0.0
    scope2_location_total_co2e: float = 0.0
    scope2_market_electricity_co2e: float = 0.0
    scope2_market_steam_co2e: float = 0.0
    scope2_market_total_co2e: float = 0.0

    scope3_business_travel_air_co2e: float = 0.0
    scope3_business_travel_rail_co2e: float = 0.0
    scope3_business_travel_road_co2e: float = 0.0
    scope3_business_travel_hotel_co2e: float = 0.0
    scope3_commuting_co2e: float = 0.0
    scope3_transportation_distribution_co2e: float = 0.0
    scope3_waste_co2e: float = 0.0
    scope3_total_co2e: float = 0.0

    offsets_total_co2e: float = 0.0

    total_scope1_2_location_gross_co2e: float = 0.0
    total_scope1_2_location_net_co2e: float = 0.0
    total_scope1_2_market_gross_co2e: float = 0.0
    total_scope1_2_market_net_co2e: float = 0.0

    activity_count: int = 0
    calculation_status: CalculationStatus = CalculationStatus.DRAFT
    last_calculated_at: datetime | None = None

"""
SQLAlchemy ORM models for the emissions engine.
Every record is scoped to a company and a reporting period.
"""

from datetime import date, datetime
from enum import Enum as PyEnum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    type_annotation_map = {
        dict[str, Any]: JSON().with_variant(JSONB(), "postgresql"),
    }


# =============================================================================
# Enums
# =============================================================================


class ActivityType(str, PyEnum):
    """Closed set of activity types the engine knows how to calculate."""

    STATIONARY_COMBUSTION = "stationary_combustion"
    MOBILE_SOURCES = "mobile_sources"
    REFRIGERATION_AC = "refrigeration_ac"
    REFRIGERATION_AC_MATERIAL_BALANCE = "refrigeration_ac_material_balance"
    REFRIGERATION_AC_SIMPLIFIED_MATERIAL_BALANCE = "refrigeration_ac_simplified_material_balance"
    REFRIGERATION_AC_SCREENING_METHOD = "refrigeration_ac_screening_method"
    FIRE_SUPPRESSION = "fire_suppression"
    FIRE_SUPPRESSION_MATERIAL_BALANCE = "fire_suppression_material_balance"
    FIRE_SUPPRESSION_SIMPLIFIED_MATERIAL_BALANCE = "fire_suppression_simplified_material_balance"
    FIRE_SUPPRESSION_SCREENING_METHOD = "fire_suppression_screening_method"
    PURCHASED_GASES = "purchased_gases"
    ELECTRICITY = "electricity"
    STEAM = "steam"
    BUSINESS_TRAVEL_PERSONAL_CAR = "business_travel_personal_car"
    BUSINESS_TRAVEL_RAIL_BUS = "business_travel_rail_bus"
    BUSINESS_TRAVEL_AIR = "business_travel_air"
    BUSINESS_TRAVEL_HOTEL = "business_travel_hotel"
    EMPLOYEE_COMMUTING_PERSONAL_CAR = "employee_commuting_personal_car"
    EMPLOYEE_COMMUTING_PUBLIC_TRANSPORT = "employee_commuting_public_transport"
    UPSTREAM_TRANS_DIST_VEHICLE_MILES = "upstream_trans_dist_vehicle_miles"
    UPSTREAM_TRANS_DIST_TON_MILES = "upstream_trans_dist_ton_miles"
    WASTE = "waste"
    OFFSETS = "offsets"


class FactorCategory(str, PyEnum):
    """Emission factor families held in the factor store."""

    STATIONARY_FUEL = "stationary_fuel"
    MOBILE_SOURCE = "mobile_source"
    REFRIGERANT = "refrigerant"
    ELECTRICITY_GRID = "electricity_grid"
    WASTE = "waste"
    GAS_GWP = "gas_gwp"
    BUSINESS_TRAVEL = "business_travel"
    HOTEL = "hotel"
    COMMUTING = "commuting"
    TRANSPORT = "transport"


class ReportingStandard(str, PyEnum):
    """Reporting framework a factor or calculation was produced under."""

    GHG_PROTOCOL = "GHG_PROTOCOL"
    CSRD = "CSRD"
    ISO_14064 = "ISO_14064"


class CalculationStatus(str, PyEnum):
    """Lifecycle of a period summary row."""

    DRAFT = "draft"
    COMPLETE = "complete"


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [member.value for member in enum_cls]


# =============================================================================
# Activity
# =============================================================================


class Activity(Base):
    """
    One physical or operational event entered by a user.

    The payload is validated against the per-type schema before it is
    stored; the engine reads it back when recalculating.
    """

    __tablename__ = "activities"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(nullable=False)
    reporting_period_id: Mapped[UUID] = mapped_column(nullable=False)
    activity_type: Mapped[ActivityType] = mapped_column(
        Enum(ActivityType, values_callable=_enum_values, name="activity_type"),
        nullable=False,
    )
    payload: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    entered_by: Mapped[str | None] = mapped_column(
        String(255),
        comment="Subject of the user who entered the activity",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index("ix_activities_company_period", "company_id", "reporting_period_id"),
        Index("ix_activities_activity_type", "activity_type"),
    )


# =============================================================================
# Emission Factors
# =============================================================================


class EmissionFactor(Base):
    """
    A published, versioned emission factor.

    Rows are never edited in place: corrections are published as new
    versions and resolution prefers the latest effective date.
    """

    __tablename__ = "emission_factors"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    category: Mapped[FactorCategory] = mapped_column(
        Enum(FactorCategory, values_callable=_enum_values, name="factor_category"),
        nullable=False,
    )
    natural_key: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        comment="Canonical key, e.g. 'fuel_type=natural gas'",
    )
    base_key: Mapped[str] = mapped_column(
        String(512),
        nullable=False,
        comment="Canonical key without the model year (mobile relaxed matching)",
    )
    key_fields: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    model_year: Mapped[int | None] = mapped_column(Integer)
    coefficients: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    unit: Mapped[str | None] = mapped_column(String(50))
    is_biomass: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    standard: Mapped[str] = mapped_column(String(50), nullable=False)
    version: Mapped[str] = mapped_column(String(100), nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    source: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "category",
            "natural_key",
            "unit",
            "standard",
            "version",
            name="uq_emission_factors_key_version",
        ),
        Index(
            "ix_emission_factors_lookup",
            "category",
            "natural_key",
            "standard",
            "effective_date",
        ),
        Index("ix_emission_factors_base_key", "category", "base_key"),
    )


# =============================================================================
# Calculation Ledger
# =============================================================================


class CalculationResult(Base):
    """
    Append-only ledger entry for one calculation of one activity.

    The current value for an activity is the row with the latest
    ``calculated_at``; earlier rows stay for audit.
    """

    __tablename__ = "calculation_results"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    activity_id: Mapped[UUID] = mapped_column(
        ForeignKey("activities.id"),
        nullable=False,
    )
    company_id: Mapped[UUID] = mapped_column(nullable=False)
    reporting_period_id: Mapped[UUID] = mapped_column(nullable=False)
    activity_type: Mapped[ActivityType] = mapped_column(
        Enum(ActivityType, values_callable=_enum_values, name="activity_type"),
        nullable=False,
    )
    calculation_method: Mapped[str] = mapped_column(String(100), nullable=False)
    co2_kg: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ch4_g: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    n2o_g: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    biogenic_co2_kg: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_co2e_mt: Mapped[float] = mapped_column(Float, nullable=False)
    location_based_co2e_mt: Mapped[float | None] = mapped_column(Float)
    market_based_co2e_mt: Mapped[float | None] = mapped_column(Float)
    calculation_breakdown: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    emission_factor_version: Mapped[str] = mapped_column(String(100), nullable=False)
    reporting_standard: Mapped[ReportingStandard] = mapped_column(
        Enum(ReportingStandard, values_callable=_enum_values, name="reporting_standard"),
        nullable=False,
    )
    calculated_by: Mapped[str | None] = mapped_column(String(255))
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_calculation_results_activity_latest", "activity_id", "calculated_at"),
        Index(
            "ix_calculation_results_company_period",
            "company_id",
            "reporting_period_id",
        ),
        Index("ix_calculation_results_activity_type", "activity_type"),
    )


# =============================================================================
# Period Summaries
# =============================================================================


class PeriodSummary(Base):
    """
    Scope totals for one (company, reporting period).

    Written only by the aggregator, always as a full overwrite.
    All values are metric tons CO2e.
    """

    __tablename__ = "period_summaries"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(nullable=False)
    reporting_period_id: Mapped[UUID] = mapped_column(nullable=False)

    # Scope 1
    scope1_stationary_combustion_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope1_mobile_sources_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope1_refrigeration_ac_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope1_fire_suppression_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope1_purchased_gases_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope1_total_gross_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope1_total_net_co2e: Mapped[float] = mapped_column(Float, default=0.0)

    # Scope 2
    scope2_location_electricity_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope2_location_steam_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope2_location_total_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope2_market_electricity_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope2_market_steam_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope2_market_total_co2e: Mapped[float] = mapped_column(Float, default=0.0)

    # Scope 3
    scope3_business_travel_air_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope3_business_travel_rail_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope3_business_travel_road_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope3_business_travel_hotel_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope3_commuting_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope3_transportation_distribution_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope3_waste_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    scope3_total_co2e: Mapped[float] = mapped_column(Float, default=0.0)

    # Offsets (stored negative)
    offsets_total_co2e: Mapped[float] = mapped_column(Float, default=0.0)

    # Scope 1 + 2 combinations
    total_scope1_2_location_gross_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    total_scope1_2_location_net_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    total_scope1_2_market_gross_co2e: Mapped[float] = mapped_column(Float, default=0.0)
    total_scope1_2_market_net_co2e: Mapped[float] = mapped_column(Float, default=0.0)

    activity_count: Mapped[int] = mapped_column(Integer, default=0)
    calculation_status: Mapped[CalculationStatus] = mapped_column(
        Enum(CalculationStatus, values_callable=_enum_values, name="calculation_status"),
        nullable=False,
        default=CalculationStatus.DRAFT,
    )
    last_calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "company_id",
            "reporting_period_id",
            name="uq_period_summaries_company_period",
        ),
    )

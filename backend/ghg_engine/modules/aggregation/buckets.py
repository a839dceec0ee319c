"""Static classification of activity types into scope buckets.

Every activity type belongs to exactly one bucket. Scope 2 buckets have
a location-based and a market-based column; every other bucket has one.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ghg_engine.db.models import ActivityType

SUMMARY_PRECISION = 6


class Scope(str, Enum):
    SCOPE1 = "scope1"
    SCOPE2 = "scope2"
    SCOPE3 = "scope3"
    OFFSETS = "offsets"


@dataclass(frozen=True)
class Bucket:
    name: str
    scope: Scope
    activity_types: frozenset[ActivityType]
    column: str
    market_column: str | None = None


def _bucket(
    name: str,
    scope: Scope,
    column: str,
    *activity_types: ActivityType,
    market_column: str | None = None,
) -> Bucket:
    return Bucket(name, scope, frozenset(activity_types), column, market_column)


BUCKETS: tuple[Bucket, ...] = (
    # Scope 1
    _bucket(
        "stationary_combustion",
        Scope.SCOPE1,
        "scope1_stationary_combustion_co2e",
        ActivityType.STATIONARY_COMBUSTION,
    ),
    _bucket(
        "mobile_sources",
        Scope.SCOPE1,
        "scope1_mobile_sources_co2e",
        ActivityType.MOBILE_SOURCES,
    ),
    _bucket(
        "refrigeration_ac",
        Scope.SCOPE1,
        "scope1_refrigeration_ac_co2e",
        ActivityType.REFRIGERATION_AC,
        ActivityType.REFRIGERATION_AC_MATERIAL_BALANCE,
        ActivityType.REFRIGERATION_AC_SIMPLIFIED_MATERIAL_BALANCE,
        ActivityType.REFRIGERATION_AC_SCREENING_METHOD,
    ),
    _bucket(
        "fire_suppression",
        Scope.SCOPE1,
        "scope1_fire_suppression_co2e",
        ActivityType.FIRE_SUPPRESSION,
        ActivityType.FIRE_SUPPRESSION_MATERIAL_BALANCE,
        ActivityType.FIRE_SUPPRESSION_SIMPLIFIED_MATERIAL_BALANCE,
        ActivityType.FIRE_SUPPRESSION_SCREENING_METHOD,
    ),
    _bucket(
        "purchased_gases",
        Scope.SCOPE1,
        "scope1_purchased_gases_co2e",
        ActivityType.PURCHASED_GASES,
    ),
    # Scope 2
    _bucket(
        "electricity",
        Scope.SCOPE2,
        "scope2_location_electricity_co2e",
        ActivityType.ELECTRICITY,
        market_column="scope2_market_electricity_co2e",
    ),
    _bucket(
        "steam",
        Scope.SCOPE2,
        "scope2_location_steam_co2e",
        ActivityType.STEAM,
        market_column="scope2_market_steam_co2e",
    ),
    # Scope 3
    _bucket(
        "business_travel_air",
        Scope.SCOPE3,
        "scope3_business_travel_air_co2e",
        ActivityType.BUSINESS_TRAVEL_AIR,
    ),
    _bucket(
        "business_travel_rail",
        Scope.SCOPE3,
        "scope3_business_travel_rail_co2e",
        ActivityType.BUSINESS_TRAVEL_RAIL_BUS,
    ),
    _bucket(
        "business_travel_road",
        Scope.SCOPE3,
        "scope3_business_travel_road_co2e",
        ActivityType.BUSINESS_TRAVEL_PERSONAL_CAR,
    ),
    _bucket(
        "business_travel_hotel",
        Scope.SCOPE3,
        "scope3_business_travel_hotel_co2e",
        ActivityType.BUSINESS_TRAVEL_HOTEL,
    ),
    _bucket(
        "commuting",
        Scope.SCOPE3,
        "scope3_commuting_co2e",
        ActivityType.EMPLOYEE_COMMUTING_PERSONAL_CAR,
        ActivityType.EMPLOYEE_COMMUTING_PUBLIC_TRANSPORT,
    ),
    _bucket(
        "transportation_distribution",
        Scope.SCOPE3,
        "scope3_transportation_distribution_co2e",
        ActivityType.UPSTREAM_TRANS_DIST_VEHICLE_MILES,
        ActivityType.UPSTREAM_TRANS_DIST_TON_MILES,
    ),
    _bucket(
        "waste",
        Scope.SCOPE3,
        "scope3_waste_co2e",
        ActivityType.WASTE,
    ),
    # Offsets
    _bucket(
        "offsets",
        Scope.OFFSETS,
        "offsets_total_co2e",
        ActivityType.OFFSETS,
    ),
)

_BUCKET_BY_TYPE: dict[ActivityType, Bucket] = {
    activity_type: bucket for bucket in BUCKETS for activity_type in bucket.activity_types
}

TOTAL_COLUMNS: tuple[str, ...] = (
    "scope1_total_gross_co2e",
    "scope1_total_net_co2e",
    "scope2_location_total_co2e",
    "scope2_market_total_co2e",
    "scope3_total_co2e",
    "total_scope1_2_location_gross_co2e",
    "total_scope1_2_location_net_co2e",
    "total_scope1_2_market_gross_co2e",
    "total_scope1_2_market_net_co2e",
)

SUMMARY_COLUMNS: tuple[str, ...] = (
    *(bucket.column for bucket in BUCKETS),
    *(bucket.market_column for bucket in BUCKETS if bucket.market_column),
    *TOTAL_COLUMNS,
)


class LedgerTotals(Protocol):
    activity_type: ActivityType
    total_co2e_mt: float
    location_based_co2e_mt: float | None
    market_based_co2e_mt: float | None


def bucket_for(activity_type: ActivityType | str) -> Bucket:
    """Return the bucket that claims *activity_type*."""
    return _BUCKET_BY_TYPE[ActivityType(activity_type)]


def _scope_sum(totals: dict[str, float], scope: Scope, *, market: bool = False) -> float:
    return sum(
        totals[bucket.market_column if market and bucket.market_column else bucket.column]
        for bucket in BUCKETS
        if bucket.scope is scope
    )


def summarize(rows: Iterable[LedgerTotals]) -> dict[str, float]:
    """Bucket totals plus scope and combined totals, in metric tons CO2e.

    Scope 2 rows add their location-based figure to the location column
    and their market-based figure to the market column. Offsets are
    negative, so net totals are gross totals plus offsets.
    """
    totals = dict.fromkeys(SUMMARY_COLUMNS, 0.0)

    for row in rows:
        bucket = bucket_for(row.activity_type)
        if bucket.market_column is None:
            totals[bucket.column] += row.total_co2e_mt
            continue
        location = (
            row.location_based_co2e_mt
            if row.location_based_co2e_mt is not None
            else row.total_co2e_mt
        )
        market = row.market_based_co2e_mt if row.market_based_co2e_mt is not None else location
        totals[bucket.column] += location
        totals[bucket.market_column] += market

    scope1 = _scope_sum(totals, Scope.SCOPE1)
    scope2_location = _scope_sum(totals, Scope.SCOPE2)
    scope2_market = _scope_sum(totals, Scope.SCOPE2, market=True)
    offsets = totals["offsets_total_co2e"]

    totals["scope1_total_gross_co2e"] = scope1
    totals["scope1_total_net_co2e"] = scope1 + offsets
    totals["scope2_location_total_co2e"] = scope2_location
    totals["scope2_market_total_co2e"] = scope2_market
    totals["scope3_total_co2e"] = _scope_sum(totals, Scope.SCOPE3)
    totals["total_scope1_2_location_gross_co2e"] = scope1 + scope2_location
    totals["total_scope1_2_location_net_co2e"] = scope1 + scope2_location + offsets
    totals["total_scope1_2_market_gross_co2e"] = scope1 + scope2_market
    totals["total_scope1_2_market_net_co2e"] = scope1 + scope2_market + offsets

    return {column: round(value, SUMMARY_PRECISION) for column, value in totals.items()}

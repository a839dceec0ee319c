"""Scope 3: business travel, commuting, upstream transport and waste.

Each method is a linear multiply of an activity quantity by a factor
picked from a closed table. An unmatched combination contributes zero
and leaves a note on the result.
"""

from __future__ import annotations

from ghg_engine.db.models import ActivityType, FactorCategory
from ghg_engine.modules.calculations.formulas.base import FactorLookup, Formula, FormulaOutput
from ghg_engine.modules.calculations.payloads import (
    HotelPayload,
    TonMilesPayload,
    TravelPayload,
    VehicleMilesPayload,
    WastePayload,
)
from ghg_engine.modules.calculations.units import KG_TO_METRIC_TON, to_miles, to_short_tons
from ghg_engine.modules.factors.schemas import Factor


def _per_unit(quantity: float, factor: Factor | None) -> FormulaOutput:
    if factor is None:
        return FormulaOutput()
    return FormulaOutput(
        co2_kg=quantity * factor.coefficient("co2_kg_per_unit"),
        ch4_g=quantity * factor.coefficient("ch4_g_per_unit"),
        n2o_g=quantity * factor.coefficient("n2o_g_per_unit"),
    )


async def _distance_based(
    payload: TravelPayload, lookup: FactorLookup, category: FactorCategory
) -> FormulaOutput:
    miles = to_miles(payload.distance, payload.distance_units)
    factor = await lookup.get("mode", category, {"vehicle_type": payload.vehicle_type})
    output = _per_unit(miles, factor)
    output.inputs = {"vehicle_type": payload.vehicle_type, "miles": miles}
    return output


async def business_travel(payload: TravelPayload, lookup: FactorLookup) -> FormulaOutput:
    """Passenger-miles by mode times per-mile factors."""
    return await _distance_based(payload, lookup, FactorCategory.BUSINESS_TRAVEL)


async def employee_commuting(payload: TravelPayload, lookup: FactorLookup) -> FormulaOutput:
    return await _distance_based(payload, lookup, FactorCategory.COMMUTING)


async def hotel_stay(payload: HotelPayload, lookup: FactorLookup) -> FormulaOutput:
    room_nights = payload.num_nights * payload.num_rooms
    factor = await lookup.get("hotel", FactorCategory.HOTEL, {"hotel_type": payload.hotel_type})
    co2e_kg = room_nights * factor.coefficient("co2e_kg_per_unit") if factor else 0.0
    return FormulaOutput(
        total_co2e_mt=co2e_kg * KG_TO_METRIC_TON,
        inputs={"hotel_type": payload.hotel_type, "room_nights": room_nights},
    )


async def vehicle_miles(payload: VehicleMilesPayload, lookup: FactorLookup) -> FormulaOutput:
    key = {"vehicle_type": payload.vehicle_type, "basis": "vehicle_miles"}
    factor = await lookup.get("vehicle", FactorCategory.TRANSPORT, key)
    output = _per_unit(payload.vehicle_miles, factor)
    output.inputs = {"vehicle_type": payload.vehicle_type, "vehicle_miles": payload.vehicle_miles}
    return output


async def ton_miles(payload: TonMilesPayload, lookup: FactorLookup) -> FormulaOutput:
    key = {"vehicle_type": payload.vehicle_type, "basis": "ton_miles"}
    factor = await lookup.get("vehicle", FactorCategory.TRANSPORT, key)
    output = _per_unit(payload.short_ton_miles, factor)
    output.inputs = {
        "vehicle_type": payload.vehicle_type,
        "short_ton_miles": payload.short_ton_miles,
    }
    return output


async def waste(payload: WastePayload, lookup: FactorLookup) -> FormulaOutput:
    """Short tons of material times t CO2e per short ton for the disposal route."""
    short_tons = to_short_tons(payload.amount, payload.units)
    key = {"material": payload.waste_material, "disposal_method": payload.disposal_method}
    factor = await lookup.get("waste", FactorCategory.WASTE, key)
    per_ton = factor.coefficient("co2e_mt_per_unit") if factor else 0.0
    return FormulaOutput(
        total_co2e_mt=short_tons * per_ton,
        inputs={
            "waste_material": payload.waste_material,
            "disposal_method": payload.disposal_method,
            "short_tons": short_tons,
        },
    )


def _travel_formula(activity_type: ActivityType, category: FactorCategory) -> Formula:
    return Formula(
        activity_type=activity_type,
        method="distance_based",
        payload_model=TravelPayload,
        factor_categories=(category,),
        compute=(
            business_travel
            if category is FactorCategory.BUSINESS_TRAVEL
            else employee_commuting
        ),
    )


FORMULAS = (
    _travel_formula(ActivityType.BUSINESS_TRAVEL_PERSONAL_CAR, FactorCategory.BUSINESS_TRAVEL),
    _travel_formula(ActivityType.BUSINESS_TRAVEL_RAIL_BUS, FactorCategory.BUSINESS_TRAVEL),
    _travel_formula(ActivityType.BUSINESS_TRAVEL_AIR, FactorCategory.BUSINESS_TRAVEL),
    _travel_formula(ActivityType.EMPLOYEE_COMMUTING_PERSONAL_CAR, FactorCategory.COMMUTING),
    _travel_formula(ActivityType.EMPLOYEE_COMMUTING_PUBLIC_TRANSPORT, FactorCategory.COMMUTING),
    Formula(
        activity_type=ActivityType.BUSINESS_TRAVEL_HOTEL,
        method="room_nights",
        payload_model=HotelPayload,
        factor_categories=(FactorCategory.HOTEL,),
        compute=hotel_stay,
    ),
    Formula(
        activity_type=ActivityType.UPSTREAM_TRANS_DIST_VEHICLE_MILES,
        method="vehicle_miles",
        payload_model=VehicleMilesPayload,
        factor_categories=(FactorCategory.TRANSPORT,),
        compute=vehicle_miles,
    ),
    Formula(
        activity_type=ActivityType.UPSTREAM_TRANS_DIST_TON_MILES,
        method="ton_miles",
        payload_model=TonMilesPayload,
        factor_categories=(FactorCategory.TRANSPORT,),
        compute=ton_miles,
    ),
    Formula(
        activity_type=ActivityType.WASTE,
        method="waste_disposal",
        payload_model=WastePayload,
        factor_categories=(FactorCategory.WASTE,),
        compute=waste,
    ),
)

"""Scope 1 combustion: stationary fuel use and mobile sources."""

from __future__ import annotations

from ghg_engine.db.models import ActivityType, FactorCategory
from ghg_engine.modules.calculations.formulas.base import FactorLookup, Formula, FormulaOutput
from ghg_engine.modules.calculations.payloads import (
    MobileSourcesPayload,
    StationaryCombustionPayload,
)
from ghg_engine.modules.calculations.units import (
    SCF_TO_CUBIC_METER,
    UnitConversionError,
    canonical_unit,
    same_unit,
    to_gallons,
    to_miles,
    to_mmbtu,
)

# Checked in order; the first keyword contained in the vehicle description wins.
_VEHICLE_FUEL_KEYWORDS: tuple[tuple[str, str], ...] = (
    ("biodiesel", "Biodiesel"),
    ("diesel", "Diesel"),
    ("cng", "CNG"),
    ("lpg", "LPG"),
    ("lng", "LNG"),
    ("methanol", "Methanol"),
    ("ethanol", "Ethanol"),
    ("jet fuel", "Jet Fuel"),
    ("aviation gasoline", "Aviation Gasoline"),
    ("residual fuel oil", "Residual Fuel Oil"),
    ("gasoline", "Gasoline"),
)
_DEFAULT_VEHICLE_FUEL = "Gasoline"


def infer_vehicle_fuel(vehicle_type: str) -> str:
    """Guess the fuel from a vehicle description such as 'Diesel Passenger Car'."""
    description = vehicle_type.lower()
    for keyword, fuel in _VEHICLE_FUEL_KEYWORDS:
        if keyword in description:
            return fuel
    return _DEFAULT_VEHICLE_FUEL


async def stationary_combustion(
    payload: StationaryCombustionPayload, lookup: FactorLookup
) -> FormulaOutput:
    """Fuel quantity times per-unit CO2, CH4 and N2O factors.

    A factor published in the payload's own unit is used as-is;
    otherwise the quantity is converted to MMBtu through the fuel's heat
    content and the MMBtu factor applies.
    """
    key = {"fuel_type": payload.fuel_type}
    factor = await lookup.get(
        "fuel", FactorCategory.STATIONARY_FUEL, key, unit=payload.units, note_on_miss=False
    )
    quantity = payload.quantity
    unit = payload.units
    if factor is None and not same_unit(payload.units, "MMBtu"):
        factor = await lookup.get("fuel", FactorCategory.STATIONARY_FUEL, key, unit="MMBtu")
        if factor is not None:
            quantity = to_mmbtu(payload.fuel_type, payload.quantity, payload.units)
            unit = "MMBtu"
    elif factor is None:
        lookup.note(
            f"No emission factor found for stationary_fuel ({payload.fuel_type}); "
            "using a zero factor"
        )

    co2_kg = ch4_g = n2o_g = 0.0
    is_biomass = bool(payload.is_biomass)
    if factor is not None:
        co2_kg = quantity * factor.coefficient("co2_kg_per_unit")
        ch4_g = quantity * factor.coefficient("ch4_g_per_unit")
        n2o_g = quantity * factor.coefficient("n2o_g_per_unit")
        if payload.is_biomass is None:
            is_biomass = factor.is_biomass

    biogenic_co2_kg = 0.0
    if is_biomass:
        biogenic_co2_kg, co2_kg = co2_kg, 0.0
        lookup.note("Biomass fuel: CO2 reported as biogenic and excluded from the total")

    return FormulaOutput(
        co2_kg=co2_kg,
        ch4_g=ch4_g,
        n2o_g=n2o_g,
        biogenic_co2_kg=biogenic_co2_kg,
        inputs={
            "fuel_type": payload.fuel_type,
            "quantity": quantity,
            "unit": unit,
            "is_biomass": is_biomass,
        },
    )


def _fuel_volume(quantity: float, unit: str, factor_unit: str) -> float:
    """Express a fuel amount in the unit the mobile factor is quoted in."""
    target = canonical_unit(factor_unit)
    if target == "gallon":
        return to_gallons(quantity, unit)
    if target == "scf":
        source = canonical_unit(unit)
        if source == "scf":
            return quantity
        if source == "cubic meter":
            return quantity / SCF_TO_CUBIC_METER
    raise UnitConversionError(f"Cannot express '{unit}' of fuel in '{factor_unit}'")


async def mobile_sources(payload: MobileSourcesPayload, lookup: FactorLookup) -> FormulaOutput:
    """Fuel-based CO2 plus distance-based CH4 and N2O.

    The biodiesel and ethanol share of the fuel is reported as biogenic
    CO2 and excluded from the total.
    """
    context = lookup.context
    fuel_type = payload.fuel_type or infer_vehicle_fuel(payload.vehicle_type)
    model_year = payload.model_year or context.default_model_year
    key = {
        "vehicle_type": payload.vehicle_type,
        "fuel_type": fuel_type,
        "model_year": model_year,
    }
    factor = await lookup.get("vehicle", FactorCategory.MOBILE_SOURCE, key)

    miles = to_miles(payload.mileage, payload.distance_units)
    co2_total_kg = ch4_g = n2o_g = 0.0
    volume = 0.0
    factor_unit = None
    if factor is not None:
        factor_unit = factor.unit or "gallon"
        fuel_units = payload.fuel_units or factor_unit
        volume = _fuel_volume(payload.fuel_usage, fuel_units, factor_unit)
        co2_total_kg = volume * factor.coefficient("co2_kg_per_unit")
        ch4_g = miles * factor.coefficient("ch4_g_per_mile")
        n2o_g = miles * factor.coefficient("n2o_g_per_mile")

    bio_share = (payload.biodiesel_percent + payload.ethanol_percent) / 100.0
    return FormulaOutput(
        co2_kg=co2_total_kg * (1.0 - bio_share),
        ch4_g=ch4_g,
        n2o_g=n2o_g,
        biogenic_co2_kg=co2_total_kg * bio_share,
        inputs={
            "vehicle_type": payload.vehicle_type,
            "fuel_type": fuel_type,
            "model_year": model_year,
            "fuel_volume": volume,
            "fuel_unit": factor_unit,
            "miles": miles,
            "biofuel_share": bio_share,
        },
    )


FORMULAS = (
    Formula(
        activity_type=ActivityType.STATIONARY_COMBUSTION,
        method="fuel_combustion",
        payload_model=StationaryCombustionPayload,
        factor_categories=(FactorCategory.STATIONARY_FUEL,),
        compute=stationary_combustion,
    ),
    Formula(
        activity_type=ActivityType.MOBILE_SOURCES,
        method="fuel_and_distance",
        payload_model=MobileSourcesPayload,
        factor_categories=(FactorCategory.MOBILE_SOURCE,),
        compute=mobile_sources,
    ),
)

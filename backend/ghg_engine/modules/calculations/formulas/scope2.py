"""Scope 2: purchased electricity and steam.

Both formulas return two parallel results. The location-based result
uses grid-average or default fuel factors; the market-based result uses
supplier factors from the payload when present and otherwise repeats
the location-based figures flagged ``is_fallback``. The primary total
is the location-based figure.
"""

from __future__ import annotations

from ghg_engine.core.logging import get_logger
from ghg_engine.db.models import ActivityType, FactorCategory
from ghg_engine.modules.calculations.formulas.base import FactorLookup, Formula, FormulaOutput
from ghg_engine.modules.calculations.payloads import ElectricityPayload, SteamPayload
from ghg_engine.modules.calculations.schemas import Scope2Result
from ghg_engine.modules.calculations.units import (
    G_TO_KG,
    KWH_PER_MWH,
    LB_TO_KG,
    UnitConversionError,
    canonical_unit,
    co2e_metric_tons,
    to_kwh,
    to_mmbtu,
)
from ghg_engine.modules.factors.schemas import Factor

logger = get_logger(__name__)

LOCATION_BASED = "location_based"
MARKET_BASED = "market_based"

# kg CO2, g CH4 and g N2O per MMBtu of fuel input
DEFAULT_STEAM_FACTORS = {"co2": 53.06, "ch4": 1.0, "n2o": 0.1}

_STEAM_ENERGY_UNITS = frozenset({"mmbtu", "therm", "gj", "kwh", "mwh"})


def _lb_per_mwh_result(
    method: str, mwh: float, co2: float, ch4: float, n2o: float, *, source: str | None
) -> Scope2Result:
    co2_kg = mwh * co2 * LB_TO_KG
    ch4_g = mwh * ch4 * LB_TO_KG / G_TO_KG
    n2o_g = mwh * n2o * LB_TO_KG / G_TO_KG
    return Scope2Result(
        method=method,
        co2_kg=co2_kg,
        ch4_g=ch4_g,
        n2o_g=n2o_g,
        total_co2e_mt=co2e_metric_tons(co2_kg, ch4_g, n2o_g),
        factors={"co2_lb_per_mwh": co2, "ch4_lb_per_mwh": ch4, "n2o_lb_per_mwh": n2o},
        source=source,
    )


def _grid_result(kwh: float, factor: Factor) -> Scope2Result:
    """Location-based electricity emissions from a grid factor.

    Regional factors are lb per MWh per gas. Country-level factors carry
    a single kg CO2e per kWh intensity, reported as CO2.
    """
    if "co2_lb_per_mwh" in factor.coefficients:
        return _lb_per_mwh_result(
            LOCATION_BASED,
            kwh / KWH_PER_MWH,
            factor.coefficient("co2_lb_per_mwh"),
            factor.coefficient("ch4_lb_per_mwh"),
            factor.coefficient("n2o_lb_per_mwh"),
            source=factor.source,
        )
    intensity = factor.coefficient("co2e_kg_per_kwh")
    co2e_kg = kwh * intensity
    return Scope2Result(
        method=LOCATION_BASED,
        co2_kg=co2e_kg,
        total_co2e_mt=co2e_metric_tons(co2e_kg, 0.0, 0.0),
        factors={"co2e_kg_per_kwh": intensity},
        source=factor.source,
    )


def _fallback_market(location: Scope2Result, lookup: FactorLookup) -> Scope2Result:
    lookup.note("No supplier-specific factors supplied; market-based result uses location factors")
    return location.model_copy(update={"method": MARKET_BASED, "is_fallback": True})


def _primary_output(location: Scope2Result, market: Scope2Result, inputs: dict) -> FormulaOutput:
    return FormulaOutput(
        co2_kg=location.co2_kg,
        ch4_g=location.ch4_g,
        n2o_g=location.n2o_g,
        total_co2e_mt=location.total_co2e_mt,
        location_based=location,
        market_based=market,
        inputs=inputs,
    )


async def electricity(payload: ElectricityPayload, lookup: FactorLookup) -> FormulaOutput:
    kwh = to_kwh(payload.kwh_purchased, payload.energy_units)
    mwh = kwh / KWH_PER_MWH
    grid_region = payload.grid_region or lookup.context.default_grid_region

    factor = await lookup.grid("grid", grid_region)
    if factor is None and grid_region != lookup.context.default_grid_region:
        lookup.note(
            f"No grid factor for '{grid_region}'; "
            f"using {lookup.context.default_grid_region} factors"
        )
        factor = await lookup.grid("grid", lookup.context.default_grid_region)

    if factor is None:
        lookup.note(f"No grid factor for '{grid_region}'; electricity recorded as zero")
        logger.warning("grid_factor_missing", grid_region=grid_region)
        location = Scope2Result(method=LOCATION_BASED)
    else:
        location = _grid_result(kwh, factor)

    if payload.market_based_co2_factor is not None:
        market = _lb_per_mwh_result(
            MARKET_BASED,
            mwh,
            payload.market_based_co2_factor,
            payload.market_based_ch4_factor or 0.0,
            payload.market_based_n2o_factor or 0.0,
            source="supplier",
        )
    else:
        market = _fallback_market(location, lookup)

    return _primary_output(
        location,
        market,
        {"kwh": kwh, "mwh": mwh, "grid_region": grid_region},
    )


def _steam_result(
    method: str, mmbtu_input: float, co2: float, ch4: float, n2o: float, *, source: str | None
) -> Scope2Result:
    co2_kg = mmbtu_input * co2
    ch4_g = mmbtu_input * ch4
    n2o_g = mmbtu_input * n2o
    return Scope2Result(
        method=method,
        co2_kg=co2_kg,
        ch4_g=ch4_g,
        n2o_g=n2o_g,
        total_co2e_mt=co2e_metric_tons(co2_kg, ch4_g, n2o_g),
        factors={"co2_kg_per_mmbtu": co2, "ch4_g_per_mmbtu": ch4, "n2o_g_per_mmbtu": n2o},
        source=source,
    )


async def steam(payload: SteamPayload, lookup: FactorLookup) -> FormulaOutput:
    """Steam energy divided by boiler efficiency, times fuel factors per MMBtu."""
    if canonical_unit(payload.steam_units) not in _STEAM_ENERGY_UNITS:
        raise UnitConversionError(f"'{payload.steam_units}' is not an energy unit")
    mmbtu = to_mmbtu(payload.fuel_type, payload.amount_purchased, payload.steam_units)
    efficiency = (
        payload.boiler_efficiency_percent or lookup.context.default_boiler_efficiency_percent
    )
    fuel_input = mmbtu / (efficiency / 100.0)

    if payload.location_based_co2_factor is not None:
        location = _steam_result(
            LOCATION_BASED,
            fuel_input,
            payload.location_based_co2_factor,
            payload.location_based_ch4_factor or 0.0,
            payload.location_based_n2o_factor or 0.0,
            source="supplied",
        )
    else:
        factor = await lookup.get(
            "fuel",
            FactorCategory.STATIONARY_FUEL,
            {"fuel_type": payload.fuel_type},
            unit="MMBtu",
            note_on_miss=False,
        )
        if factor is None:
            lookup.note(
                f"No fuel factor for steam fuel '{payload.fuel_type}'; "
                "natural gas defaults applied"
            )
            co2, ch4, n2o = (
                DEFAULT_STEAM_FACTORS["co2"],
                DEFAULT_STEAM_FACTORS["ch4"],
                DEFAULT_STEAM_FACTORS["n2o"],
            )
            source = "default"
        else:
            co2 = factor.coefficient("co2_kg_per_unit")
            ch4 = factor.coefficient("ch4_g_per_unit")
            n2o = factor.coefficient("n2o_g_per_unit")
            source = factor.source
        location = _steam_result(LOCATION_BASED, fuel_input, co2, ch4, n2o, source=source)

    if payload.market_based_co2_factor is not None:
        market = _steam_result(
            MARKET_BASED,
            fuel_input,
            payload.market_based_co2_factor,
            payload.market_based_ch4_factor or 0.0,
            payload.market_based_n2o_factor or 0.0,
            source="supplier",
        )
    else:
        market = _fallback_market(location, lookup)

    return _primary_output(
        location,
        market,
        {
            "mmbtu": mmbtu,
            "boiler_efficiency_percent": efficiency,
            "fuel_input_mmbtu": fuel_input,
            "fuel_type": payload.fuel_type,
        },
    )


FORMULAS = (
    Formula(
        activity_type=ActivityType.ELECTRICITY,
        method="location_and_market_based",
        payload_model=ElectricityPayload,
        factor_categories=(FactorCategory.ELECTRICITY_GRID,),
        compute=electricity,
    ),
    Formula(
        activity_type=ActivityType.STEAM,
        method="location_and_market_based",
        payload_model=SteamPayload,
        factor_categories=(FactorCategory.STATIONARY_FUEL,),
        compute=steam,
    ),
)

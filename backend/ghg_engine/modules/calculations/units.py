"""Unit normalization for calculation inputs.

Internal units: kilograms for fuels and gases, grams for trace gases
(CH4, N2O), metric tons for CO2e totals, MMBtu for energy, miles for
distance and US gallons for liquid volume.
"""

from __future__ import annotations

# AR5 100-year global warming potentials for the combustion gases
GWP_CO2 = 1.0
GWP_CH4 = 28.0
GWP_N2O = 265.0

LB_TO_KG = 0.453592
KG_TO_METRIC_TON = 0.001
G_TO_KG = 0.001
SHORT_TON_TO_METRIC_TON = 0.907185
METRIC_TON_TO_SHORT_TON = 1.10231
KG_TO_SHORT_TON = 0.00110231
LB_PER_SHORT_TON = 2000.0
KWH_PER_MWH = 1000.0
THERM_TO_MMBTU = 0.1
KWH_TO_MMBTU = 0.003412142
GJ_TO_MMBTU = 0.947817
GALLON_TO_LITRE = 3.785411784
SCF_TO_CUBIC_METER = 0.0283168
KM_TO_MILE = 0.621371


class UnitConversionError(ValueError):
    """An input unit is unknown or cannot be converted to the requested unit."""


def _normalise_unit(unit: str) -> str:
    return " ".join(unit.strip().lower().replace("_", " ").split())


_UNIT_ALIASES: dict[str, str] = {
    "mmbtu": "mmbtu",
    "million btu": "mmbtu",
    "therm": "therm",
    "therms": "therm",
    "kwh": "kwh",
    "mwh": "mwh",
    "gj": "gj",
    "gallon": "gallon",
    "gallons": "gallon",
    "gal": "gallon",
    "litre": "litre",
    "litres": "litre",
    "liter": "litre",
    "liters": "litre",
    "l": "litre",
    "scf": "scf",
    "standard cubic foot": "scf",
    "standard cubic feet": "scf",
    "cubic meter": "cubic meter",
    "cubic meters": "cubic meter",
    "m3": "cubic meter",
    "short ton": "short ton",
    "short tons": "short ton",
    "ton": "short ton",
    "tons": "short ton",
    "metric ton": "metric ton",
    "metric tons": "metric ton",
    "tonne": "metric ton",
    "tonnes": "metric ton",
    "kg": "kg",
    "kilogram": "kg",
    "kilograms": "kg",
    "lb": "lb",
    "lbs": "lb",
    "pound": "lb",
    "pounds": "lb",
    "mile": "mile",
    "miles": "mile",
    "km": "km",
    "kilometer": "km",
    "kilometers": "km",
    "kilometre": "km",
    "kilometres": "km",
}


def canonical_unit(unit: str) -> str:
    """Map a user-facing unit spelling onto the canonical unit name."""
    normalised = _normalise_unit(unit)
    try:
        return _UNIT_ALIASES[normalised]
    except KeyError:
        raise UnitConversionError(f"Unknown unit '{unit}'") from None


def same_unit(left: str | None, right: str | None) -> bool:
    if left is None or right is None:
        return False
    try:
        return canonical_unit(left) == canonical_unit(right)
    except UnitConversionError:
        return _normalise_unit(left) == _normalise_unit(right)


# ---------------------------------------------------------------------------
# Fuel heat contents (MMBtu per physical unit)
# ---------------------------------------------------------------------------

MMBTU_PER_GALLON: dict[str, float] = {
    "distillate fuel oil no. 2": 0.138,
    "diesel": 0.138,
    "residual fuel oil no. 6": 0.150,
    "kerosene": 0.135,
    "liquefied petroleum gases (lpg)": 0.092,
    "lpg": 0.092,
    "propane": 0.091,
    "motor gasoline": 0.125,
    "gasoline": 0.125,
    "biodiesel (100%)": 0.128,
    "biodiesel": 0.128,
    "ethanol (100%)": 0.084,
    "ethanol": 0.084,
    "rendered animal fat": 0.125,
    "vegetable oil": 0.120,
}

MMBTU_PER_SCF: dict[str, float] = {
    "natural gas": 0.001026,
    "propane gas": 0.002516,
    "landfill gas": 0.000485,
}

MMBTU_PER_SHORT_TON: dict[str, float] = {
    "anthracite": 25.09,
    "bituminous": 24.93,
    "sub-bituminous": 17.25,
    "lignite": 14.21,
    "mixed (commercial sector)": 21.39,
    "mixed (electric power sector)": 19.73,
    "mixed (industrial coking)": 26.28,
    "mixed (industrial sector)": 22.35,
    "coal coke": 24.80,
    "agricultural byproducts": 8.25,
    "peat": 8.00,
    "solid byproducts": 10.39,
    "wood and wood residuals": 17.48,
    "municipal solid waste": 9.95,
    "petroleum coke (solid)": 30.00,
    "petroleum coke": 30.00,
    "plastics": 38.00,
    "tires": 28.00,
}


def to_mmbtu(fuel_type: str, quantity: float, unit: str) -> float:
    """Convert a fuel quantity to MMBtu.

    Energy units convert directly. Physical units (gallons, litres,
    scf, cubic meters, short tons) use the fuel's heat content.

    Raises:
        UnitConversionError: For unknown units or fuels without a heat
            content for the given physical unit.
    """
    canonical = canonical_unit(unit)
    fuel = _normalise_unit(fuel_type)

    if canonical == "mmbtu":
        return quantity
    if canonical == "therm":
        return quantity * THERM_TO_MMBTU
    if canonical == "kwh":
        return quantity * KWH_TO_MMBTU
    if canonical == "mwh":
        return quantity * KWH_PER_MWH * KWH_TO_MMBTU
    if canonical == "gj":
        return quantity * GJ_TO_MMBTU
    if canonical in ("gallon", "litre"):
        gallons = quantity if canonical == "gallon" else quantity / GALLON_TO_LITRE
        return gallons * _heat_content(MMBTU_PER_GALLON, fuel, fuel_type, "gallon")
    if canonical in ("scf", "cubic meter"):
        scf = quantity if canonical == "scf" else quantity / SCF_TO_CUBIC_METER
        return scf * _heat_content(MMBTU_PER_SCF, fuel, fuel_type, "scf")
    if canonical in ("short ton", "metric ton", "kg", "lb"):
        return to_short_tons(quantity, unit) * _heat_content(
            MMBTU_PER_SHORT_TON, fuel, fuel_type, "short ton"
        )
    raise UnitConversionError(f"Cannot express '{unit}' of {fuel_type} in MMBtu")


def _heat_content(table: dict[str, float], fuel: str, fuel_type: str, unit: str) -> float:
    try:
        return table[fuel]
    except KeyError:
        raise UnitConversionError(f"No heat content per {unit} for fuel '{fuel_type}'") from None


def to_short_tons(quantity: float, unit: str) -> float:
    canonical = canonical_unit(unit)
    if canonical == "short ton":
        return quantity
    if canonical == "metric ton":
        return quantity * METRIC_TON_TO_SHORT_TON
    if canonical == "kg":
        return quantity * KG_TO_SHORT_TON
    if canonical == "lb":
        return quantity / LB_PER_SHORT_TON
    raise UnitConversionError(f"'{unit}' is not a mass unit")


def to_kg(quantity: float, unit: str) -> float:
    canonical = canonical_unit(unit)
    if canonical == "kg":
        return quantity
    if canonical == "lb":
        return quantity * LB_TO_KG
    if canonical == "metric ton":
        return quantity / KG_TO_METRIC_TON
    if canonical == "short ton":
        return quantity * SHORT_TON_TO_METRIC_TON / KG_TO_METRIC_TON
    raise UnitConversionError(f"'{unit}' is not a mass unit")


def to_miles(distance: float, unit: str) -> float:
    canonical = canonical_unit(unit)
    if canonical == "mile":
        return distance
    if canonical == "km":
        return distance * KM_TO_MILE
    raise UnitConversionError(f"'{unit}' is not a distance unit")


def to_gallons(volume: float, unit: str) -> float:
    canonical = canonical_unit(unit)
    if canonical == "gallon":
        return volume
    if canonical == "litre":
        return volume / GALLON_TO_LITRE
    raise UnitConversionError(f"'{unit}' is not a liquid volume unit")


def to_kwh(energy: float, unit: str) -> float:
    canonical = canonical_unit(unit)
    if canonical == "kwh":
        return energy
    if canonical == "mwh":
        return energy * KWH_PER_MWH
    raise UnitConversionError(f"'{unit}' is not an electricity unit")


def co2e_metric_tons(co2_kg: float, ch4_g: float, n2o_g: float) -> float:
    """Total CO2e in metric tons from CO2 kg and CH4/N2O grams.

    CH4 and N2O are converted grams -> kg -> metric tons before the
    AR5 weighting, so 1 t CH4 contributes 28 t CO2e.
    """
    co2_mt = co2_kg * KG_TO_METRIC_TON
    ch4_mt = ch4_g * G_TO_KG * KG_TO_METRIC_TON
    n2o_mt = n2o_g * G_TO_KG * KG_TO_METRIC_TON
    return co2_mt * GWP_CO2 + ch4_mt * GWP_CH4 + n2o_mt * GWP_N2O

"""Scope 1 fugitive emissions: refrigerants, fire suppressants and purchased gases.

Every method reduces to a mass of gas that left containment, converted
to kilograms and weighted by the gas's AR5 GWP. Results carry a CO2e
total only; the CO2/CH4/N2O breakdown stays zero.
"""

from __future__ import annotations

from ghg_engine.db.models import ActivityType, FactorCategory
from ghg_engine.modules.calculations.formulas.base import FactorLookup, Formula, FormulaOutput
from ghg_engine.modules.calculations.payloads import (
    FireSuppressionMaterialBalancePayload,
    FireSuppressionPayload,
    FireSuppressionScreeningPayload,
    FireSuppressionSimplifiedPayload,
    PurchasedGasesPayload,
    RefrigerationMaterialBalancePayload,
    RefrigerationPayload,
    RefrigerationScreeningPayload,
    RefrigerationSimplifiedPayload,
)
from ghg_engine.modules.calculations.units import KG_TO_METRIC_TON, to_kg

# (installation, operating, disposal) loss rates per equipment type
SCREENING_LEAK_RATES: dict[str, tuple[float, float, float]] = {
    "Domestic Refrigeration": (0.01, 0.005, 0.24),
    "Stand-Alone Commercial": (0.03, 0.15, 0.15),
    "Medium/Large Commercial": (0.03, 0.225, 0.15),
    "Transport Refrigeration": (0.005, 0.275, 0.15),
    "Industrial Refrigeration": (0.03, 0.16, 0.15),
    "Chillers": (0.005, 0.085, 0.15),
    "Residential/Commercial A/C": (0.005, 0.05, 0.15),
    "Mobile A/C": (0.005, 0.20, 0.15),
    "Maritime A/C Units": (0.005, 0.20, 1.0),
    "Railway A/C Units": (0.005, 0.20, 1.0),
    "Buses A/C Units": (0.005, 0.20, 1.0),
    "Other Mobile A/C Units": (0.005, 0.20, 1.0),
}
DEFAULT_SCREENING_LEAK_RATES = (0.01, 0.15, 1.0)

# Annual leak rate of installed fire suppression capacity
SUPPRESSION_LEAK_RATES: dict[str, float] = {
    "Fixed": 0.035,
    "Portable": 0.025,
}


def _screening_rates(equipment_type: str | None) -> tuple[float, float, float] | None:
    if not equipment_type:
        return None
    wanted = equipment_type.strip().lower()
    for name, rates in SCREENING_LEAK_RATES.items():
        if name.lower() == wanted:
            return rates
    return None


def _co2e_output(
    emitted_kg: float, gwp: float, lookup: FactorLookup, **inputs: object
) -> FormulaOutput:
    if emitted_kg < 0:
        lookup.note("Net gas balance is negative; check inventory and transfer figures")
    return FormulaOutput(
        total_co2e_mt=emitted_kg * gwp * KG_TO_METRIC_TON,
        inputs={"emitted_kg": emitted_kg, "gwp": gwp, **inputs},
    )


# ---------------------------------------------------------------------------
# Method implementations, shared by refrigerants and suppressants
# ---------------------------------------------------------------------------


async def released_amount(
    payload: RefrigerationPayload | FireSuppressionPayload, lookup: FactorLookup
) -> FormulaOutput:
    """Directly measured release times GWP."""
    gwp = await lookup.gwp(FactorCategory.REFRIGERANT, payload.gas_type)
    emitted_kg = to_kg(payload.amount_released, payload.amount_units)
    return _co2e_output(emitted_kg, gwp, lookup, gas_type=payload.gas_type)


async def material_balance(
    payload: RefrigerationMaterialBalancePayload | FireSuppressionMaterialBalancePayload,
    lookup: FactorLookup,
) -> FormulaOutput:
    """Gas transferred in, less what stayed in inventory or new capacity.

    ``inventory_change`` and ``capacity_change`` are end-minus-start
    deltas, so a shrinking inventory adds to emissions and growing
    capacity subtracts from them.
    """
    gwp = await lookup.gwp(FactorCategory.REFRIGERANT, payload.gas_type)
    balance = payload.transferred_amount - payload.inventory_change - payload.capacity_change
    emitted_kg = to_kg(balance, payload.amount_units)
    return _co2e_output(
        emitted_kg,
        gwp,
        lookup,
        gas_type=payload.gas_type,
        inventory_change=payload.inventory_change,
        transferred_amount=payload.transferred_amount,
        capacity_change=payload.capacity_change,
    )


async def simplified_material_balance(
    payload: RefrigerationSimplifiedPayload | FireSuppressionSimplifiedPayload,
    lookup: FactorLookup,
) -> FormulaOutput:
    """Charge and recharge of new and existing units against disposals."""
    gwp = await lookup.gwp(FactorCategory.REFRIGERANT, payload.gas_type)
    balance = (
        payload.new_units_charge
        - payload.new_units_capacity
        + payload.existing_units_recharge
        + payload.disposed_units_capacity
        - payload.disposed_units_recovered
    )
    emitted_kg = to_kg(balance, payload.amount_units)
    return _co2e_output(emitted_kg, gwp, lookup, gas_type=payload.gas_type)


async def refrigeration_screening(
    payload: RefrigerationScreeningPayload, lookup: FactorLookup
) -> FormulaOutput:
    """Equipment-class leak rates applied to charge, capacity and disposals."""
    gwp = await lookup.gwp(FactorCategory.REFRIGERANT, payload.gas_type)
    rates = _screening_rates(payload.equipment_type)
    if rates is None:
        rates = DEFAULT_SCREENING_LEAK_RATES
        lookup.note(
            f"Unknown equipment type '{payload.equipment_type}'; default screening rates applied"
        )
    install_rate, operating_rate, disposal_rate = rates
    emitted = (
        install_rate * payload.new_units_charge
        + operating_rate * payload.operating_units_capacity
        + disposal_rate * payload.disposed_units_capacity
    )
    emitted_kg = to_kg(emitted, payload.amount_units)
    return _co2e_output(
        emitted_kg,
        gwp,
        lookup,
        gas_type=payload.gas_type,
        equipment_type=payload.equipment_type,
        leak_rates=list(rates),
    )


async def suppression_screening(
    payload: FireSuppressionScreeningPayload, lookup: FactorLookup
) -> FormulaOutput:
    """Annual leak rate of fixed or portable capacity."""
    gwp = await lookup.gwp(FactorCategory.REFRIGERANT, payload.gas_type)
    leak_rate = SUPPRESSION_LEAK_RATES[payload.equipment_type]
    emitted_kg = to_kg(payload.unit_capacity * leak_rate, payload.amount_units)
    return _co2e_output(
        emitted_kg,
        gwp,
        lookup,
        gas_type=payload.gas_type,
        equipment_type=payload.equipment_type,
        leak_rate=leak_rate,
    )


async def purchased_gases(payload: PurchasedGasesPayload, lookup: FactorLookup) -> FormulaOutput:
    """Purchased industrial gas released in full."""
    gwp = await lookup.gwp(FactorCategory.GAS_GWP, payload.gas_type)
    emitted_kg = to_kg(payload.amount_purchased, payload.amount_units)
    return _co2e_output(emitted_kg, gwp, lookup, gas_type=payload.gas_type)


_GWP_ONLY = (FactorCategory.REFRIGERANT,)

FORMULAS = (
    Formula(
        ActivityType.REFRIGERATION_AC,
        "mass_released",
        RefrigerationPayload,
        _GWP_ONLY,
        released_amount,
    ),
    Formula(
        ActivityType.REFRIGERATION_AC_MATERIAL_BALANCE,
        "material_balance",
        RefrigerationMaterialBalancePayload,
        _GWP_ONLY,
        material_balance,
    ),
    Formula(
        ActivityType.REFRIGERATION_AC_SIMPLIFIED_MATERIAL_BALANCE,
        "simplified_material_balance",
        RefrigerationSimplifiedPayload,
        _GWP_ONLY,
        simplified_material_balance,
    ),
    Formula(
        ActivityType.REFRIGERATION_AC_SCREENING_METHOD,
        "screening",
        RefrigerationScreeningPayload,
        _GWP_ONLY,
        refrigeration_screening,
    ),
    Formula(
        ActivityType.FIRE_SUPPRESSION,
        "mass_released",
        FireSuppressionPayload,
        _GWP_ONLY,
        released_amount,
    ),
    Formula(
        ActivityType.FIRE_SUPPRESSION_MATERIAL_BALANCE,
        "material_balance",
        FireSuppressionMaterialBalancePayload,
        _GWP_ONLY,
        material_balance,
    ),
    Formula(
        ActivityType.FIRE_SUPPRESSION_SIMPLIFIED_MATERIAL_BALANCE,
        "simplified_material_balance",
        FireSuppressionSimplifiedPayload,
        _GWP_ONLY,
        simplified_material_balance,
    ),
    Formula(
        ActivityType.FIRE_SUPPRESSION_SCREENING_METHOD,
        "screening",
        FireSuppressionScreeningPayload,
        _GWP_ONLY,
        suppression_screening,
    ),
    Formula(
        ActivityType.PURCHASED_GASES,
        "mass_purchased",
        PurchasedGasesPayload,
        (FactorCategory.GAS_GWP,),
        purchased_gases,
    ),
)

"""Tests for refrigerant, fire suppressant and purchased gas formulas."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from ghg_engine.db.models import FactorCategory
from ghg_engine.modules.calculations.formulas import CalculationContext, FactorLookup
from ghg_engine.modules.calculations.formulas.refrigerants import (
    DEFAULT_SCREENING_LEAK_RATES,
    SCREENING_LEAK_RATES,
    material_balance,
    purchased_gases,
    refrigeration_screening,
    released_amount,
    simplified_material_balance,
    suppression_screening,
)
from ghg_engine.modules.calculations.payloads import (
    FireSuppressionPayload,
    FireSuppressionScreeningPayload,
    PurchasedGasesPayload,
    RefrigerationMaterialBalancePayload,
    RefrigerationPayload,
    RefrigerationScreeningPayload,
    RefrigerationSimplifiedPayload,
)
from ghg_engine.modules.factors.resolver import FactorNotFoundError
from ghg_engine.modules.factors.schemas import Factor


@pytest.fixture
def gwp_1430_lookup(context: CalculationContext) -> FactorLookup:
    """Lookup whose resolver knows a single gas with GWP 1430."""
    resolver = MagicMock()
    resolver.resolve = AsyncMock(
        return_value=Factor(
            category=FactorCategory.REFRIGERANT,
            key={"gas_type": "HFC-134a"},
            coefficients={"gwp": 1430},
            standard="GHG_PROTOCOL",
            version="AR4",
        )
    )
    return FactorLookup(resolver, context)


@pytest.mark.asyncio
async def test_material_balance_shrinking_inventory_is_a_leak(gwp_1430_lookup) -> None:
    payload = RefrigerationMaterialBalancePayload(
        refrigerant_type="HFC-134a",
        inventory_change=-5,
        transferred_amount=0,
        capacity_change=0,
    )

    output = await material_balance(payload, gwp_1430_lookup)

    assert output.total_co2e_mt == pytest.approx(7.15)
    assert output.inputs["emitted_kg"] == pytest.approx(5.0)
    assert (output.co2_kg, output.ch4_g, output.n2o_g) == (0.0, 0.0, 0.0)
    assert gwp_1430_lookup.notes == []


@pytest.mark.asyncio
async def test_material_balance_growing_capacity_reduces_emissions(gwp_1430_lookup) -> None:
    payload = RefrigerationMaterialBalancePayload(
        refrigerant_type="HFC-134a",
        inventory_change=0,
        transferred_amount=10,
        capacity_change=4,
    )

    output = await material_balance(payload, gwp_1430_lookup)

    assert output.total_co2e_mt == pytest.approx(6 * 1430 / 1000)


@pytest.mark.asyncio
async def test_negative_balance_is_kept_with_a_note(gwp_1430_lookup) -> None:
    payload = RefrigerationMaterialBalancePayload(
        refrigerant_type="HFC-134a",
        inventory_change=5,
    )

    output = await material_balance(payload, gwp_1430_lookup)

    assert output.total_co2e_mt == pytest.approx(-7.15)
    assert any("negative" in note for note in gwp_1430_lookup.notes)


@pytest.mark.asyncio
async def test_released_amount_in_pounds(lookup) -> None:
    payload = FireSuppressionPayload(suppressant_type="HFC-227ea", amount_released=10)

    output = await released_amount(payload, lookup)

    assert output.total_co2e_mt == pytest.approx(4.53592 * 3350 / 1000)
    assert lookup.factors["gwp"].key["gas_type"] == "HFC-227ea"


@pytest.mark.asyncio
async def test_released_amount_in_kilograms(lookup) -> None:
    payload = RefrigerationPayload(refrigerant_type="R-410A", amount_released=2)

    output = await released_amount(payload, lookup)

    assert output.total_co2e_mt == pytest.approx(2 * 1924 / 1000)


@pytest.mark.asyncio
async def test_simplified_material_balance(lookup) -> None:
    payload = RefrigerationSimplifiedPayload(
        refrigerant_type="R-410A",
        new_units_charge=100,
        new_units_capacity=90,
        existing_units_recharge=5,
        disposed_units_capacity=20,
        disposed_units_recovered=15,
    )

    output = await simplified_material_balance(payload, lookup)

    assert output.inputs["emitted_kg"] == pytest.approx(20.0)
    assert output.total_co2e_mt == pytest.approx(20 * 1924 / 1000)


@pytest.mark.asyncio
async def test_refrigeration_screening_uses_equipment_rates(lookup) -> None:
    payload = RefrigerationScreeningPayload(
        refrigerant_type="R-410A",
        equipment_type="chillers",
        new_units_charge=100,
        operating_units_capacity=1000,
        disposed_units_capacity=200,
    )

    output = await refrigeration_screening(payload, lookup)

    # 0.5% of charge + 8.5% of capacity + 15% of disposals
    assert output.inputs["emitted_kg"] == pytest.approx(115.5)
    assert output.total_co2e_mt == pytest.approx(115.5 * 1924 / 1000)
    assert lookup.notes == []


@pytest.mark.asyncio
async def test_refrigeration_screening_unknown_equipment_uses_defaults(lookup) -> None:
    payload = RefrigerationScreeningPayload(
        refrigerant_type="R-410A",
        equipment_type="Ice Rink",
        operating_units_capacity=100,
    )

    output = await refrigeration_screening(payload, lookup)

    assert output.inputs["leak_rates"] == list(DEFAULT_SCREENING_LEAK_RATES)
    assert output.inputs["emitted_kg"] == pytest.approx(15.0)
    assert any("Ice Rink" in note for note in lookup.notes)


@pytest.mark.asyncio
@pytest.mark.parametrize(("equipment", "rate"), [("Fixed", 0.035), ("Portable", 0.025)])
async def test_suppression_screening_leak_rates(lookup, equipment: str, rate: float) -> None:
    payload = FireSuppressionScreeningPayload(
        suppressant_type="HFC-227ea",
        equipment_type=equipment,
        unit_capacity=1000,
    )

    output = await suppression_screening(payload, lookup)

    assert output.total_co2e_mt == pytest.approx(1000 * rate * 0.453592 * 3350 / 1000)


@pytest.mark.asyncio
async def test_purchased_gases_use_gas_gwp_table(lookup) -> None:
    payload = PurchasedGasesPayload(gas_type="SF6", amount_purchased=10)

    output = await purchased_gases(payload, lookup)

    assert output.total_co2e_mt == pytest.approx(4.53592 * 23500 / 1000)
    assert lookup.factors["gwp"].category is FactorCategory.GAS_GWP


@pytest.mark.asyncio
async def test_unknown_gas_records_zero_and_a_note(context: CalculationContext) -> None:
    resolver = MagicMock()
    resolver.resolve = AsyncMock(
        side_effect=FactorNotFoundError(
            FactorCategory.REFRIGERANT, {"gas_type": "R-999"}, "GHG_PROTOCOL"
        )
    )
    lookup = FactorLookup(resolver, context)
    payload = RefrigerationPayload(refrigerant_type="R-999", amount_released=50)

    output = await released_amount(payload, lookup)

    assert output.total_co2e_mt == 0.0
    assert lookup.notes == ["No GWP found for gas 'R-999'; emissions recorded as zero"]
    assert "gwp" not in lookup.factors


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("equipment", "rates"),
    [
        ("Domestic Refrigeration", (0.01, 0.005, 0.24)),
        ("Stand-Alone Commercial", (0.03, 0.15, 0.15)),
        ("Medium/Large Commercial", (0.03, 0.225, 0.15)),
        ("Transport Refrigeration", (0.005, 0.275, 0.15)),
        ("Industrial Refrigeration", (0.03, 0.16, 0.15)),
        ("Chillers", (0.005, 0.085, 0.15)),
        ("Residential/Commercial A/C", (0.005, 0.05, 0.15)),
        ("Mobile A/C", (0.005, 0.20, 0.15)),
        ("Maritime A/C Units", (0.005, 0.20, 1.0)),
        ("Railway A/C Units", (0.005, 0.20, 1.0)),
        ("Buses A/C Units", (0.005, 0.20, 1.0)),
        ("Other Mobile A/C Units", (0.005, 0.20, 1.0)),
    ],
)
async def test_refrigeration_screening_rates_per_equipment_class(
    lookup, equipment: str, rates: tuple[float, float, float]
) -> None:
    payload = RefrigerationScreeningPayload(
        refrigerant_type="R-410A",
        equipment_type=equipment,
        new_units_charge=100,
        operating_units_capacity=100,
        disposed_units_capacity=10,
    )

    output = await refrigeration_screening(payload, lookup)

    install_rate, operating_rate, disposal_rate = rates
    emitted_kg = 100 * install_rate + 100 * operating_rate + 10 * disposal_rate
    assert output.inputs["leak_rates"] == list(rates)
    assert output.total_co2e_mt == pytest.approx(emitted_kg * 1924 / 1000)
    assert lookup.notes == []


def test_screening_table_has_one_row_per_equipment_class() -> None:
    assert len(SCREENING_LEAK_RATES) == 12

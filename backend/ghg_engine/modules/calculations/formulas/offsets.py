"""Carbon offsets, recorded as a negative CO2e credit."""

from __future__ import annotations

from ghg_engine.db.models import ActivityType
from ghg_engine.modules.calculations.formulas.base import FactorLookup, Formula, FormulaOutput
from ghg_engine.modules.calculations.payloads import OffsetsPayload


async def offset_credit(payload: OffsetsPayload, lookup: FactorLookup) -> FormulaOutput:
    return FormulaOutput(
        total_co2e_mt=-payload.amount_mtco2e,
        inputs={
            "amount_mtco2e": payload.amount_mtco2e,
            "offset_type": payload.offset_type,
            "registry_reference": payload.registry_reference,
        },
    )


FORMULAS = (
    Formula(
        activity_type=ActivityType.OFFSETS,
        method="offset_credit",
        payload_model=OffsetsPayload,
        factor_categories=(),
        compute=offset_credit,
    ),
)

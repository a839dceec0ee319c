"""Integration tests for activity create, update and delete flows."""

from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ghg_engine.db.models import Activity, ActivityType
from ghg_engine.db.models import CalculationResult as CalculationRow
from ghg_engine.modules.calculations.payloads import PayloadValidationError
from ghg_engine.modules.emissions.activities import ActivityService
from ghg_engine.modules.emissions.service import EmissionsService
from ghg_engine.modules.ledger.service import CalculationLedger

NATURAL_GAS_THERMS = {"fuel_type": "Natural Gas", "quantity": 1000, "units": "therms"}


@pytest.fixture
def activities(db_session, clock) -> ActivityService:
    return ActivityService(db_session, clock=clock)


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return int(result.scalar_one())


@pytest.mark.asyncio
async def test_create_stores_activity_and_result(
    activities, db_session, company_id, reporting_period_id
) -> None:
    activity, result = await activities.create_activity(
        company_id,
        reporting_period_id,
        "stationary_combustion",
        {**NATURAL_GAS_THERMS, "quantity": "1000"},
        entered_by="test-user-123",
    )

    assert result is not None
    assert result.total_co2e_mt == pytest.approx(5.31145)
    assert activity.activity_type is ActivityType.STATIONARY_COMBUSTION
    assert activity.payload == {"fuel_type": "Natural Gas", "quantity": 1000.0, "units": "therms"}
    assert activity.entered_by == "test-user-123"
    assert await _count(db_session, CalculationRow) == 1


@pytest.mark.asyncio
async def test_invalid_payload_stores_nothing(
    activities, db_session, company_id, reporting_period_id
) -> None:
    with pytest.raises(PayloadValidationError):
        await activities.create_activity(
            company_id,
            reporting_period_id,
            ActivityType.WASTE,
            {"waste_material": "Glass", "amount": 1, "colour": "green"},
        )

    assert await _count(db_session, Activity) == 0


@pytest.mark.asyncio
async def test_failed_calculation_keeps_activity_without_result(
    activities, db_session, company_id, reporting_period_id
) -> None:
    activity, result = await activities.create_activity(
        company_id,
        reporting_period_id,
        ActivityType.STATIONARY_COMBUSTION,
        {"fuel_type": "Natural Gas", "quantity": 10, "units": "furlongs"},
    )

    assert result is None
    assert await db_session.get(Activity, activity.id) is activity
    assert await _count(db_session, CalculationRow) == 0


@pytest.mark.asyncio
async def test_ledger_write_failure_keeps_activity(
    activities, db_session, monkeypatch: pytest.MonkeyPatch, company_id, reporting_period_id
) -> None:
    async def _broken_append(self, *args, **kwargs):
        raise SQLAlchemyError("ledger unavailable")

    monkeypatch.setattr(CalculationLedger, "append", _broken_append)

    activity, result = await activities.create_activity(
        company_id, reporting_period_id, ActivityType.OFFSETS, {"amount_mtco2e": 2}
    )

    assert result is None
    assert await _count(db_session, Activity) == 1
    assert await _count(db_session, CalculationRow) == 0
    assert activity.payload == {"amount_mtco2e": 2.0}


@pytest.mark.asyncio
async def test_update_appends_a_recalculation(
    activities, db_session, clock, company_id, reporting_period_id
) -> None:
    activity, _ = await activities.create_activity(
        company_id, reporting_period_id, ActivityType.STATIONARY_COMBUSTION, NATURAL_GAS_THERMS
    )
    clock.advance(hours=1)

    updated, result = await activities.update_activity(
        activity.id, {**NATURAL_GAS_THERMS, "quantity": 2000}, updated_by="editor"
    )

    assert updated is activity
    assert activity.payload["quantity"] == 2000.0
    assert result is not None
    assert result.total_co2e_mt == pytest.approx(10.6229)
    ledger = CalculationLedger(db_session, aggregate_on_append=False)
    history = await ledger.history(activity.id)
    assert len(history) == 2
    assert history[0].calculated_by == "editor"


@pytest.mark.asyncio
async def test_update_missing_activity_raises(activities) -> None:
    with pytest.raises(ValueError, match="not found"):
        await activities.update_activity(uuid4(), NATURAL_GAS_THERMS)


@pytest.mark.asyncio
async def test_delete_purges_history_and_zeroes_summary(
    activities, db_session, clock, company_id, reporting_period_id
) -> None:
    activity, _ = await activities.create_activity(
        company_id, reporting_period_id, ActivityType.STATIONARY_COMBUSTION, NATURAL_GAS_THERMS
    )
    activity_id = activity.id
    clock.advance(minutes=5)
    await activities.update_activity(activity_id, NATURAL_GAS_THERMS)

    purged = await activities.delete_activity(activity_id)

    assert purged == 2
    assert await _count(db_session, Activity) == 0
    assert await _count(db_session, CalculationRow) == 0
    summary = await EmissionsService(db_session).get_period_summary(
        company_id, reporting_period_id
    )
    assert summary is not None
    assert summary.activity_count == 0
    assert summary.scope1_total_gross_co2e == 0.0


@pytest.mark.asyncio
async def test_delete_missing_activity_raises(activities) -> None:
    with pytest.raises(ValueError, match="not found"):
        await activities.delete_activity(uuid4())

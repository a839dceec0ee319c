"""Integration tests for the period re-aggregation tool."""

from __future__ import annotations

from uuid import uuid4

import pytest

from ghg_engine.db.models import ActivityType
from ghg_engine.modules.emissions.service import EmissionsService
from tools.reaggregate_period import company_period_ids, rebuild_period

NATURAL_GAS_THERMS = {"fuel_type": "Natural Gas", "quantity": 1000, "units": "therms"}


@pytest.fixture
def service(db_session, clock) -> EmissionsService:
    return EmissionsService(db_session, clock=clock)


@pytest.mark.asyncio
async def test_period_ids_cover_ledger_rows_only_for_the_company(
    db_session, service, make_activity, company_id, reporting_period_id
) -> None:
    other_period = uuid4()
    first = await make_activity(ActivityType.STATIONARY_COMBUSTION, NATURAL_GAS_THERMS)
    second = await make_activity(
        ActivityType.STATIONARY_COMBUSTION, NATURAL_GAS_THERMS, period_id=other_period
    )
    for activity in (first, second):
        await service.calculate_and_store(
            activity.activity_type,
            NATURAL_GAS_THERMS,
            activity.id,
            activity.reporting_period_id,
            "test-user-123",
        )

    period_ids = await company_period_ids(db_session, company_id)

    assert sorted(period_ids, key=str) == sorted([reporting_period_id, other_period], key=str)
    assert await company_period_ids(db_session, uuid4()) == []


@pytest.mark.asyncio
async def test_purged_period_summary_is_rebuilt_to_zero(
    db_session, service, make_activity, company_id, reporting_period_id
) -> None:
    activity = await make_activity(ActivityType.STATIONARY_COMBUSTION, NATURAL_GAS_THERMS)
    await service.calculate_and_store(
        activity.activity_type,
        NATURAL_GAS_THERMS,
        activity.id,
        activity.reporting_period_id,
        "test-user-123",
    )
    await service.ledger.purge(activity.id)
    stale = await service.get_period_summary(company_id, reporting_period_id)
    assert stale is not None
    assert stale.activity_count == 1

    period_ids = await company_period_ids(db_session, company_id)
    assert period_ids == [reporting_period_id]

    rebuilt = await rebuild_period(db_session, company_id, reporting_period_id)

    assert rebuilt["reporting_period_id"] == str(reporting_period_id)
    assert rebuilt["activity_count"] == 0
    assert rebuilt["scope1_total_gross_co2e"] == 0.0
    summary = await service.get_period_summary(company_id, reporting_period_id)
    assert summary is not None
    assert summary.activity_count == 0
    assert summary.scope1_stationary_combustion_co2e == 0.0

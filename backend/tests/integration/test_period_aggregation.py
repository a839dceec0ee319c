"""Integration tests for period summary recomputation."""

from __future__ import annotations

from uuid import uuid4

import pytest

from ghg_engine.db.models import ActivityType, CalculationStatus
from ghg_engine.modules.aggregation import service as aggregation_service
from ghg_engine.modules.aggregation.schemas import PeriodSummaryRead
from ghg_engine.modules.aggregation.service import AggregationFailedError, PeriodAggregator
from ghg_engine.modules.calculations.schemas import CalculationResult, Scope2Result
from ghg_engine.modules.ledger.service import CalculationLedger


@pytest.fixture
def ledger(db_session, clock) -> CalculationLedger:
    return CalculationLedger(db_session, clock=clock, aggregate_on_append=False)


async def _record(ledger, clock, activity, total, *, location=None, market=None):
    clock.advance(minutes=1)
    scope2 = location is not None
    result = CalculationResult(
        activity_type=activity.activity_type,
        method="test",
        total_co2e_mt=total,
        location_based=Scope2Result(method="location_based", total_co2e_mt=location)
        if scope2
        else None,
        market_based=Scope2Result(method="market_based", total_co2e_mt=market)
        if scope2
        else None,
    )
    await ledger.append(
        result,
        activity_id=activity.id,
        company_id=activity.company_id,
        reporting_period_id=activity.reporting_period_id,
    )


@pytest.mark.asyncio
async def test_get_before_first_recompute_is_none(db_session, company_id, reporting_period_id):
    assert await PeriodAggregator(db_session).get(company_id, reporting_period_id) is None


@pytest.mark.asyncio
async def test_empty_period_recomputes_to_zero(db_session, clock, company_id, reporting_period_id):
    summary = await PeriodAggregator(db_session, clock=clock).recompute(
        company_id, reporting_period_id
    )

    read = PeriodSummaryRead.model_validate(summary)
    assert read.activity_count == 0
    assert read.scope1_total_gross_co2e == 0.0
    assert read.total_scope1_2_market_net_co2e == 0.0
    assert read.calculation_status is CalculationStatus.COMPLETE


@pytest.mark.asyncio
async def test_only_latest_row_per_activity_counts(
    db_session, clock, ledger, make_activity, company_id, reporting_period_id
) -> None:
    boiler = await make_activity(ActivityType.STATIONARY_COMBUSTION)
    meter = await make_activity(ActivityType.ELECTRICITY)
    credits = await make_activity(ActivityType.OFFSETS)
    await _record(ledger, clock, boiler, 10.0)
    await _record(ledger, clock, boiler, 4.0)
    await _record(ledger, clock, meter, 3.0, location=3.0, market=1.0)
    await _record(ledger, clock, credits, -2.0)
    other_period = await make_activity(period_id=uuid4())
    await _record(ledger, clock, other_period, 100.0)

    summary = await PeriodAggregator(db_session, clock=clock).recompute(
        company_id, reporting_period_id
    )

    assert summary.activity_count == 3
    assert summary.scope1_stationary_combustion_co2e == 4.0
    assert summary.scope1_total_net_co2e == 2.0
    assert summary.scope2_location_total_co2e == 3.0
    assert summary.scope2_market_total_co2e == 1.0
    assert summary.offsets_total_co2e == -2.0
    assert summary.total_scope1_2_location_gross_co2e == 7.0
    assert summary.total_scope1_2_market_net_co2e == 3.0


@pytest.mark.asyncio
async def test_recompute_is_idempotent_and_overwrites_one_row(
    db_session, clock, ledger, make_activity, company_id, reporting_period_id
) -> None:
    activity = await make_activity(ActivityType.WASTE)
    await _record(ledger, clock, activity, 1.25)
    aggregator = PeriodAggregator(db_session, clock=clock)

    first = await aggregator.recompute(company_id, reporting_period_id)
    first_id = first.id
    first_read = PeriodSummaryRead.model_validate(first).model_dump()
    second = await aggregator.recompute(company_id, reporting_period_id)
    second_read = PeriodSummaryRead.model_validate(second).model_dump()

    assert second.id == first_id
    assert second_read == first_read

    await _record(ledger, clock, activity, 2.5)
    third = await aggregator.recompute(company_id, reporting_period_id)

    assert third.id == first_id
    assert third.scope3_waste_co2e == 2.5
    assert third.scope3_total_co2e == 2.5


@pytest.mark.asyncio
async def test_unsupported_dialect_raises_aggregation_failed(
    db_session, clock, monkeypatch: pytest.MonkeyPatch, company_id, reporting_period_id
) -> None:
    monkeypatch.setattr(aggregation_service, "_UPSERT_DIALECTS", {})

    with pytest.raises(AggregationFailedError) as excinfo:
        await PeriodAggregator(db_session, clock=clock).recompute(
            company_id, reporting_period_id
        )

    assert "not supported" in excinfo.value.reason
    assert excinfo.value.company_id == company_id

"""Append-only calculation ledger.

Each calculation of an activity becomes a new row; the current value is
the row with the latest ``calculated_at``. Rows are never updated. The
only deletion is :meth:`CalculationLedger.purge`, which callers invoke
explicitly when an activity itself is deleted.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ghg_engine.core.config import get_settings
from ghg_engine.core.logging import get_logger
from ghg_engine.db.models import ActivityType, ReportingStandard
from ghg_engine.db.models import CalculationResult as CalculationRow
from ghg_engine.modules.aggregation.service import AggregationFailedError, PeriodAggregator
from ghg_engine.modules.calculations.schemas import CalculationResult
from ghg_engine.modules.ledger.queries import latest_per_activity
from ghg_engine.modules.ledger.schemas import CalculationComparison, LedgerStats

logger = get_logger(__name__)

_COMPARED_FIELDS = (
    "co2_kg",
    "ch4_g",
    "n2o_g",
    "biogenic_co2_kg",
    "total_co2e_mt",
    "location_based_co2e_mt",
    "market_based_co2e_mt",
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CalculationLedger:
    """Append and read calculation rows.

    After every append the owning period's summary is recomputed inside
    a savepoint; an aggregation failure is logged and never undoes the
    append.

    Usage::

        ledger = CalculationLedger(session)
        row = await ledger.append(
            result,
            activity_id=activity.id,
            company_id=activity.company_id,
            reporting_period_id=activity.reporting_period_id,
            calculated_by="user-sub",
        )
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], datetime] | None = None,
        aggregator: PeriodAggregator | None = None,
        aggregate_on_append: bool | None = None,
    ) -> None:
        settings = get_settings()
        self._session = session
        self._clock = clock or _utcnow
        self._aggregator = aggregator or PeriodAggregator(session, clock=self._clock)
        self._aggregate_on_append = (
            settings.aggregate_on_append if aggregate_on_append is None else aggregate_on_append
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def append(
        self,
        result: CalculationResult,
        *,
        activity_id: UUID,
        company_id: UUID,
        reporting_period_id: UUID,
        calculated_by: str | None = None,
    ) -> CalculationRow:
        """Write *result* as a new ledger row.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the row cannot be written,
                e.g. the activity does not exist.
        """
        settings = get_settings()
        row = CalculationRow(
            activity_id=activity_id,
            company_id=company_id,
            reporting_period_id=reporting_period_id,
            activity_type=result.activity_type,
            calculation_method=result.method,
            co2_kg=result.co2_kg,
            ch4_g=result.ch4_g,
            n2o_g=result.n2o_g,
            biogenic_co2_kg=result.biogenic_co2_kg,
            total_co2e_mt=result.total_co2e_mt,
            location_based_co2e_mt=(
                result.location_based.total_co2e_mt if result.location_based else None
            ),
            market_based_co2e_mt=(
                result.market_based.total_co2e_mt if result.market_based else None
            ),
            calculation_breakdown=result.breakdown(),
            emission_factor_version=result.factor_version or settings.default_factor_version,
            reporting_standard=ReportingStandard(
                result.standard or settings.default_reporting_standard
            ),
            calculated_by=calculated_by,
            calculated_at=self._clock(),
        )
        self._session.add(row)
        await self._session.flush()

        logger.info(
            "calculation_appended",
            calculation_id=str(row.id),
            activity_id=str(activity_id),
            activity_type=result.activity_type.value,
            total_co2e_mt=result.total_co2e_mt,
            factor_version=row.emission_factor_version,
        )

        if self._aggregate_on_append:
            await self._refresh_summary(company_id, reporting_period_id)
        return row

    async def latest(self, activity_id: UUID) -> CalculationRow | None:
        """Row with the greatest ``calculated_at`` for *activity_id*."""
        result = await self._session.execute(
            select(CalculationRow)
            .where(CalculationRow.activity_id == activity_id)
            .order_by(CalculationRow.calculated_at.desc(), CalculationRow.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def history(self, activity_id: UUID, limit: int = 50) -> Sequence[CalculationRow]:
        """Rows for *activity_id*, newest first."""
        result = await self._session.execute(
            select(CalculationRow)
            .where(CalculationRow.activity_id == activity_id)
            .order_by(CalculationRow.calculated_at.desc(), CalculationRow.id.desc())
            .limit(limit)
        )
        return result.scalars().all()

    async def latest_for_period(
        self,
        company_id: UUID,
        reporting_period_id: UUID,
        activity_type: ActivityType | None = None,
    ) -> Sequence[CalculationRow]:
        """Latest row per activity within one period."""
        criteria = [
            CalculationRow.company_id == company_id,
            CalculationRow.reporting_period_id == reporting_period_id,
        ]
        if activity_type is not None:
            criteria.append(CalculationRow.activity_type == activity_type)
        result = await self._session.execute(latest_per_activity(*criteria))
        return result.scalars().all()

    async def purge(self, activity_id: UUID) -> int:
        """Delete every ledger row of one activity and return the count.

        Only for activity deletion; recalculation always appends.
        """
        result = await self._session.execute(
            delete(CalculationRow).where(CalculationRow.activity_id == activity_id)
        )
        await self._session.flush()
        removed = result.rowcount or 0
        logger.warning("calculation_history_purged", activity_id=str(activity_id), rows=removed)
        return removed

    async def compare(self, older_id: UUID, newer_id: UUID) -> CalculationComparison:
        """Field-by-field difference between two rows of the same activity.

        Raises:
            ValueError: If either row is missing or the rows belong to
                different activities.
        """
        older = await self._session.get(CalculationRow, older_id)
        newer = await self._session.get(CalculationRow, newer_id)
        if older is None or newer is None:
            missing = older_id if older is None else newer_id
            raise ValueError(f"Calculation {missing} not found")
        if older.activity_id != newer.activity_id:
            raise ValueError("Calculations belong to different activities")

        deltas = {
            field: round((getattr(newer, field) or 0.0) - (getattr(older, field) or 0.0), 6)
            for field in _COMPARED_FIELDS
        }
        total_delta = deltas["total_co2e_mt"]
        change_percent: float | None = None
        if older.total_co2e_mt:
            change_percent = round(total_delta / abs(older.total_co2e_mt) * 100, 2)

        return CalculationComparison(
            activity_id=older.activity_id,
            older_id=older.id,
            newer_id=newer.id,
            deltas=deltas,
            total_delta_co2e_mt=total_delta,
            total_change_percent=change_percent,
            factor_version_changed=older.emission_factor_version != newer.emission_factor_version,
            method_changed=older.calculation_method != newer.calculation_method,
        )

    async def stats(self, company_id: UUID, reporting_period_id: UUID) -> LedgerStats:
        result = await self._session.execute(
            select(
                func.count(func.distinct(CalculationRow.activity_id)),
                func.count(CalculationRow.id),
                func.count(func.distinct(CalculationRow.activity_type)),
                func.min(CalculationRow.calculated_at),
                func.max(CalculationRow.calculated_at),
            ).where(
                CalculationRow.company_id == company_id,
                CalculationRow.reporting_period_id == reporting_period_id,
            )
        )
        activities, calculations, types, first, last = result.one()
        return LedgerStats(
            total_activities=activities,
            total_calculations=calculations,
            activity_type_count=types,
            first_calculated_at=first,
            last_calculated_at=last,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _refresh_summary(self, company_id: UUID, reporting_period_id: UUID) -> None:
        try:
            async with self._session.begin_nested():
                await self._aggregator.recompute(company_id, reporting_period_id)
        except AggregationFailedError as exc:
            logger.warning(
                "period_aggregation_failed",
                company_id=str(company_id),
                reporting_period_id=str(reporting_period_id),
                reason=exc.reason,
            )
        except SQLAlchemyError as exc:
            # Raised when releasing or rolling back the savepoint itself
            logger.warning(
                "period_aggregation_failed",
                company_id=str(company_id),
                reporting_period_id=str(reporting_period_id),
                reason=repr(exc),
            )

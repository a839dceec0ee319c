"""Period aggregation: latest ledger row per activity -> scope totals.

Every recompute rebuilds the whole summary from the ledger and upserts
it over the previous row, so a summary never mixes old and new totals
and concurrent recomputes converge on the last writer's full result.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ghg_engine.core.logging import get_logger
from ghg_engine.db.models import CalculationResult as CalculationRow
from ghg_engine.db.models import CalculationStatus, PeriodSummary
from ghg_engine.modules.aggregation.buckets import summarize
from ghg_engine.modules.ledger.queries import latest_per_activity

logger = get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}
_CONFLICT_COLUMNS = ("company_id", "reporting_period_id")


class AggregationFailedError(Exception):
    """A period summary could not be recomputed; the stored row is unchanged."""

    def __init__(self, company_id: UUID, reporting_period_id: UUID, reason: str) -> None:
        self.company_id = company_id
        self.reporting_period_id = reporting_period_id
        self.reason = reason
        super().__init__(
            f"Aggregation failed for company {company_id} period {reporting_period_id}: {reason}"
        )


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PeriodAggregator:
    """Recompute and read per-period scope summaries.

    Usage::

        aggregator = PeriodAggregator(session)
        summary = await aggregator.recompute(company_id, reporting_period_id)
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def recompute(self, company_id: UUID, reporting_period_id: UUID) -> PeriodSummary:
        """Rebuild the summary for one period and overwrite the stored row.

        Raises:
            AggregationFailedError: If the ledger read or the upsert fails.
        """
        try:
            result = await self._session.execute(
                latest_per_activity(
                    CalculationRow.company_id == company_id,
                    CalculationRow.reporting_period_id == reporting_period_id,
                )
            )
            rows = result.scalars().all()
            now = self._clock()
            values: dict[str, Any] = {
                **summarize(rows),
                "activity_count": len(rows),
                "calculation_status": CalculationStatus.COMPLETE,
                "last_calculated_at": now,
                "updated_at": now,
            }
            await self._upsert(company_id, reporting_period_id, values)
            summary = await self._fetch(company_id, reporting_period_id, refresh=True)
        except (SQLAlchemyError, KeyError, ValueError) as exc:
            logger.error(
                "period_aggregation_error",
                company_id=str(company_id),
                reporting_period_id=str(reporting_period_id),
                exc_info=True,
            )
            raise AggregationFailedError(company_id, reporting_period_id, repr(exc)) from exc

        if summary is None:
            raise AggregationFailedError(company_id, reporting_period_id, "summary row missing")

        logger.info(
            "period_summary_recomputed",
            company_id=str(company_id),
            reporting_period_id=str(reporting_period_id),
            activity_count=len(rows),
            scope1_total_gross_co2e=values["scope1_total_gross_co2e"],
            scope2_location_total_co2e=values["scope2_location_total_co2e"],
            scope3_total_co2e=values["scope3_total_co2e"],
        )
        return summary

    async def get(self, company_id: UUID, reporting_period_id: UUID) -> PeriodSummary | None:
        """Return the stored summary, or ``None`` if the period was never aggregated."""
        return await self._fetch(company_id, reporting_period_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _upsert(
        self,
        company_id: UUID,
        reporting_period_id: UUID,
        values: dict[str, Any],
    ) -> None:
        dialect = self._session.get_bind().dialect.name
        try:
            insert = _UPSERT_DIALECTS[dialect]
        except KeyError:
            raise ValueError(f"Summary upsert is not supported on '{dialect}'") from None

        stmt = insert(PeriodSummary).values(
            id=uuid4(),
            company_id=company_id,
            reporting_period_id=reporting_period_id,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_CONFLICT_COLUMNS),
            set_={column: stmt.excluded[column] for column in values},
        )
        await self._session.execute(stmt)

    async def _fetch(
        self,
        company_id: UUID,
        reporting_period_id: UUID,
        *,
        refresh: bool = False,
    ) -> PeriodSummary | None:
        stmt = select(PeriodSummary).where(
            PeriodSummary.company_id == company_id,
            PeriodSummary.reporting_period_id == reporting_period_id,
        )
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

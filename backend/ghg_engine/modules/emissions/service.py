"""Emissions service: the engine's in-process contract for activity flows.

Wires the factor resolver, the calculation dispatcher, the ledger and
the aggregator around one ``AsyncSession``. ``calculate_and_store``
never raises for a calculation that cannot be performed; it logs the
failure and returns ``None`` so the activity persists without a result.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ghg_engine.core.logging import calculation_log_context, get_logger
from ghg_engine.db.models import Activity, ActivityType
from ghg_engine.modules.aggregation.schemas import PeriodSummaryRead
from ghg_engine.modules.aggregation.service import PeriodAggregator
from ghg_engine.modules.calculations.dispatcher import (
    CalculationDispatcher,
    CalculationFailedError,
)
from ghg_engine.modules.calculations.formulas import CalculationContext
from ghg_engine.modules.calculations.schemas import CalculationResult
from ghg_engine.modules.factors.resolver import FactorResolver
from ghg_engine.modules.factors.store import FactorStore
from ghg_engine.modules.ledger.schemas import CalculationComparison, LedgerEntry, LedgerStats
from ghg_engine.modules.ledger.service import CalculationLedger

logger = get_logger(__name__)


class EmissionsService:
    """Calculate, record and summarise activity emissions.

    Usage::

        service = EmissionsService(session)
        result = await service.calculate_and_store(
            ActivityType.ELECTRICITY,
            {"kwh_purchased": 12000, "grid_region": "RFC East"},
            activity_id=activity.id,
            reporting_period_id=activity.reporting_period_id,
            user_id="user-sub",
        )
        await session.commit()
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        resolver: FactorResolver | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._resolver = resolver or FactorResolver(FactorStore(session))
        self._dispatcher = CalculationDispatcher(self._resolver)
        self._aggregator = PeriodAggregator(session, clock=clock)
        self._ledger = CalculationLedger(session, clock=clock, aggregator=self._aggregator)

    @property
    def ledger(self) -> CalculationLedger:
        return self._ledger

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def calculate_and_store(
        self,
        activity_type: ActivityType | str,
        payload: Mapping[str, Any],
        activity_id: UUID,
        reporting_period_id: UUID,
        user_id: str | None,
        company_id: UUID | None = None,
        *,
        company_country: str | None = None,
        standard: str | None = None,
        as_of: date | None = None,
    ) -> CalculationResult | None:
        """Calculate one activity, append the result and refresh the period.

        ``company_id`` defaults to the owning activity's company.

        Returns:
            The calculation result, or ``None`` when the activity could
            not be calculated.

        Raises:
            ValueError: If ``company_id`` is omitted and the activity
                does not exist.
            sqlalchemy.exc.SQLAlchemyError: If the ledger row cannot be
                written.
        """
        with calculation_log_context(
            activity_id=activity_id,
            activity_type=getattr(activity_type, "value", activity_type),
            reporting_period_id=reporting_period_id,
        ):
            if company_id is None:
                company_id = await self._company_of(activity_id)

            context = CalculationContext.from_settings(
                standard=standard,
                company_country=company_country,
                as_of=as_of,
            )
            try:
                result = await self._dispatcher.calculate(activity_type, payload, context=context)
            except CalculationFailedError as exc:
                logger.warning("emissions_not_calculated", reason=exc.reason)
                return None

            await self._ledger.append(
                result,
                activity_id=activity_id,
                company_id=company_id,
                reporting_period_id=reporting_period_id,
                calculated_by=user_id,
            )
            if result.notes:
                logger.info("calculation_notes", notes=result.notes)
            return result

    async def get_latest(self, activity_id: UUID) -> LedgerEntry | None:
        row = await self._ledger.latest(activity_id)
        return LedgerEntry.model_validate(row) if row is not None else None

    async def get_history(self, activity_id: UUID, limit: int = 50) -> list[LedgerEntry]:
        rows = await self._ledger.history(activity_id, limit)
        return [LedgerEntry.model_validate(row) for row in rows]

    async def compare_calculations(
        self, older_id: UUID, newer_id: UUID
    ) -> CalculationComparison:
        return await self._ledger.compare(older_id, newer_id)

    async def get_calculation_stats(
        self, company_id: UUID, reporting_period_id: UUID
    ) -> LedgerStats:
        return await self._ledger.stats(company_id, reporting_period_id)

    async def get_period_summary(
        self, company_id: UUID, reporting_period_id: UUID
    ) -> PeriodSummaryRead | None:
        """Stored summary for the period, or ``None`` if never aggregated."""
        summary = await self._aggregator.get(company_id, reporting_period_id)
        return PeriodSummaryRead.model_validate(summary) if summary is not None else None

    async def aggregate(self, company_id: UUID, reporting_period_id: UUID) -> PeriodSummaryRead:
        """Recompute the period summary now.

        Raises:
            AggregationFailedError: If the recompute fails.
        """
        summary = await self._aggregator.recompute(company_id, reporting_period_id)
        return PeriodSummaryRead.model_validate(summary)

    def clear_factor_cache(self) -> int:
        return self._resolver.clear_cache()

    def cache_stats(self) -> dict[str, Any]:
        return self._resolver.cache_stats()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _company_of(self, activity_id: UUID) -> UUID:
        activity = await self._session.get(Activity, activity_id)
        if activity is None:
            raise ValueError(f"Activity {activity_id} not found")
        return activity.company_id

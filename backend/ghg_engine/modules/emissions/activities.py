"""Activity create/update/delete flows around the emissions engine.

The activity write always survives a failed calculation: calculation
and ledger append run in a savepoint, and any failure there leaves the
activity persisted with no result attached.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ghg_engine.core.logging import get_logger
from ghg_engine.db.models import Activity, ActivityType
from ghg_engine.modules.aggregation.service import AggregationFailedError
from ghg_engine.modules.calculations.payloads import parse_payload
from ghg_engine.modules.calculations.schemas import CalculationResult
from ghg_engine.modules.emissions.service import EmissionsService

logger = get_logger(__name__)


class ActivityService:
    """Persist activities and keep their calculations current.

    Usage::

        service = ActivityService(session)
        activity, result = await service.create_activity(
            company_id,
            reporting_period_id,
            ActivityType.STATIONARY_COMBUSTION,
            {"fuel_type": "Natural Gas", "quantity": 1000, "units": "therms"},
            entered_by="user-sub",
        )
        await session.commit()
    """

    def __init__(
        self,
        session: AsyncSession,
        *,
        emissions: EmissionsService | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._emissions = emissions or EmissionsService(session, clock=clock)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def create_activity(
        self,
        company_id: UUID,
        reporting_period_id: UUID,
        activity_type: ActivityType | str,
        payload: Mapping[str, Any],
        *,
        entered_by: str | None = None,
        company_country: str | None = None,
    ) -> tuple[Activity, CalculationResult | None]:
        """Validate and store an activity, then calculate it.

        Raises:
            PayloadValidationError: If the payload does not match the
                activity type's schema. Nothing is written.
        """
        activity_type = ActivityType(activity_type)
        parsed = parse_payload(activity_type, payload)

        activity = Activity(
            company_id=company_id,
            reporting_period_id=reporting_period_id,
            activity_type=activity_type,
            payload=parsed.model_dump(mode="json", exclude_none=True),
            entered_by=entered_by,
        )
        self._session.add(activity)
        await self._session.flush()
        logger.info(
            "activity_created",
            activity_id=str(activity.id),
            activity_type=activity_type.value,
        )

        result = await self._calculate(activity, entered_by, company_country)
        return activity, result

    async def update_activity(
        self,
        activity_id: UUID,
        payload: Mapping[str, Any],
        *,
        updated_by: str | None = None,
        company_country: str | None = None,
    ) -> tuple[Activity, CalculationResult | None]:
        """Replace an activity's payload and append a recalculation.

        Earlier ledger rows are kept; the new row becomes the latest.

        Raises:
            ValueError: If the activity does not exist.
            PayloadValidationError: If the payload is invalid.
        """
        activity = await self._get(activity_id)
        parsed = parse_payload(activity.activity_type, payload)
        activity.payload = parsed.model_dump(mode="json", exclude_none=True)
        await self._session.flush()
        logger.info("activity_updated", activity_id=str(activity_id))

        result = await self._calculate(activity, updated_by, company_country)
        return activity, result

    async def delete_activity(self, activity_id: UUID) -> int:
        """Delete an activity with its ledger rows and refresh its period.

        Returns:
            The number of ledger rows purged.

        Raises:
            ValueError: If the activity does not exist.
        """
        activity = await self._get(activity_id)
        company_id = activity.company_id
        reporting_period_id = activity.reporting_period_id

        purged = await self._emissions.ledger.purge(activity_id)
        await self._session.delete(activity)
        await self._session.flush()
        logger.info("activity_deleted", activity_id=str(activity_id), purged_rows=purged)

        try:
            async with self._session.begin_nested():
                await self._emissions.aggregate(company_id, reporting_period_id)
        except AggregationFailedError as exc:
            logger.warning("period_aggregation_failed", reason=exc.reason)
        return purged

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _get(self, activity_id: UUID) -> Activity:
        activity = await self._session.get(Activity, activity_id)
        if activity is None:
            raise ValueError(f"Activity {activity_id} not found")
        return activity

    async def _calculate(
        self,
        activity: Activity,
        user_id: str | None,
        company_country: str | None,
    ) -> CalculationResult | None:
        try:
            async with self._session.begin_nested():
                return await self._emissions.calculate_and_store(
                    activity.activity_type,
                    activity.payload,
                    activity.id,
                    activity.reporting_period_id,
                    user_id,
                    activity.company_id,
                    company_country=company_country,
                )
        except SQLAlchemyError:
            logger.error(
                "calculation_store_failed",
                activity_id=str(activity.id),
                exc_info=True,
            )
            return None

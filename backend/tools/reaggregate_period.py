"""Recompute reporting-period emission summaries from the calculation ledger."""

from __future__ import annotations

import argparse
import asyncio
import json
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, union
from sqlalchemy.ext.asyncio import AsyncSession

from ghg_engine.core.logging import configure_logging
from ghg_engine.db.models import CalculationResult, PeriodSummary
from ghg_engine.db.session import close_db, get_background_session, init_db
from ghg_engine.modules.emissions.service import EmissionsService


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rebuild period emission summaries.")
    parser.add_argument("--company-id", required=True, help="Company UUID.")
    parser.add_argument(
        "--reporting-period-id",
        help="Single reporting period UUID. Omit to rebuild every period of the company.",
    )
    return parser.parse_args()


async def company_period_ids(session: AsyncSession, company_id: UUID) -> list[UUID]:
    """Periods with ledger rows or an existing summary.

    Summaries whose ledger rows were purged are included so they rebuild to zero.
    """
    result = await session.execute(
        union(
            select(CalculationResult.reporting_period_id).where(
                CalculationResult.company_id == company_id
            ),
            select(PeriodSummary.reporting_period_id).where(
                PeriodSummary.company_id == company_id
            ),
        )
    )
    return sorted(result.scalars().all(), key=str)


async def rebuild_period(
    session: AsyncSession, company_id: UUID, period_id: UUID
) -> dict[str, object]:
    period = await EmissionsService(session).aggregate(company_id, period_id)
    return {
        "reporting_period_id": str(period_id),
        "activity_count": period.activity_count,
        "scope1_total_gross_co2e": period.scope1_total_gross_co2e,
        "scope2_location_total_co2e": period.scope2_location_total_co2e,
        "scope2_market_total_co2e": period.scope2_market_total_co2e,
        "scope3_total_co2e": period.scope3_total_co2e,
    }


async def _resolve_period_ids(company_id: UUID, period_id_arg: str | None) -> list[UUID]:
    if period_id_arg:
        return [UUID(period_id_arg)]

    async with get_background_session() as session:
        return await company_period_ids(session, company_id)


async def _main() -> int:
    args = _parse_args()
    configure_logging()
    company_id = UUID(args.company_id)
    await init_db()
    try:
        period_ids = await _resolve_period_ids(company_id, args.reporting_period_id)
        summary: dict[str, object] = {
            "ran_at": datetime.now(UTC).isoformat(),
            "company_id": str(company_id),
            "period_count": len(period_ids),
            "summaries": [],
            "errors": [],
        }
        for period_id in period_ids:
            try:
                async with get_background_session() as session:
                    rebuilt = await rebuild_period(session, company_id, period_id)
                    await session.commit()
                summary["summaries"].append(rebuilt)
            except Exception as exc:  # pragma: no cover - reported in summary
                summary["errors"].append({"reporting_period_id": str(period_id), "error": str(exc)})
        print(json.dumps(summary, indent=2))
        return 0 if not summary["errors"] else 1
    finally:
        await close_db()


if __name__ == "__main__":
    raise SystemExit(asyncio.run(_main()))

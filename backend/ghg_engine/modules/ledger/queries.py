"""Shared ledger queries."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import aliased

from ghg_engine.db.models import CalculationResult as CalculationRow


def latest_per_activity(*criteria: Any) -> Select[tuple[CalculationRow]]:
    """Latest ledger row for every activity matching *criteria*.

    One window-function pass ranks rows per activity by ``calculated_at``;
    rows come back ordered by activity id so sums over them are stable.
    """
    rank = (
        func.row_number()
        .over(
            partition_by=CalculationRow.activity_id,
            order_by=(CalculationRow.calculated_at.desc(), CalculationRow.id.desc()),
        )
        .label("row_rank")
    )
    ranked = select(CalculationRow, rank).where(*criteria).subquery()
    latest = aliased(CalculationRow, ranked)
    return select(latest).where(ranked.c.row_rank == 1).order_by(latest.activity_id)

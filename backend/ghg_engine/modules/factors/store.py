"""Versioned emission factor store backed by the ``emission_factors`` table."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any

from sqlalchemy import Select, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ghg_engine.core.logging import get_logger
from ghg_engine.db.models import EmissionFactor, FactorCategory
from ghg_engine.modules.factors.schemas import (
    MODEL_YEAR_FIELD,
    FactorCreate,
    base_key,
    canonical_key,
)

logger = get_logger(__name__)


class FactorStore:
    """Read and publish factor versions.

    Published rows are immutable: the store exposes inserts and reads
    only, and corrections are published as new versions.

    Usage::

        store = FactorStore(session)
        row = await store.find_exact(
            FactorCategory.STATIONARY_FUEL,
            {"fuel_type": "Natural Gas"},
            standard="GHG_PROTOCOL",
        )
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def find_exact(
        self,
        category: FactorCategory,
        key: Mapping[str, Any],
        *,
        standard: str,
        as_of: date | None = None,
        version: str | None = None,
        unit: str | None = None,
    ) -> EmissionFactor | None:
        """Return the newest row whose natural key matches *key* exactly."""
        stmt = self._filtered(
            select(EmissionFactor).where(EmissionFactor.natural_key == canonical_key(key)),
            category,
            standard=standard,
            as_of=as_of,
            version=version,
            unit=unit,
        ).order_by(EmissionFactor.effective_date.desc(), EmissionFactor.created_at.desc())
        result = await self._session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def find_relaxed(
        self,
        category: FactorCategory,
        key: Mapping[str, Any],
        *,
        standard: str,
        as_of: date | None = None,
        version: str | None = None,
    ) -> EmissionFactor | None:
        """Match on the key without its model year.

        Rows for the closest model year not after the requested one are
        preferred; otherwise the newest model year wins. Within a model
        year the latest effective date wins.
        """
        stmt = self._filtered(
            select(EmissionFactor).where(EmissionFactor.base_key == base_key(key)),
            category,
            standard=standard,
            as_of=as_of,
            version=version,
        )
        requested_year = key.get(MODEL_YEAR_FIELD)
        if requested_year is not None:
            not_after_request = case(
                (EmissionFactor.model_year <= int(requested_year), 0),
                else_=1,
            )
            stmt = stmt.order_by(not_after_request)
        stmt = stmt.order_by(
            EmissionFactor.model_year.desc(),
            EmissionFactor.effective_date.desc(),
            EmissionFactor.created_at.desc(),
        )
        result = await self._session.execute(stmt.limit(1))
        return result.scalar_one_or_none()

    async def publish(self, factor: FactorCreate) -> EmissionFactor:
        """Insert a new factor version.

        Raises:
            sqlalchemy.exc.IntegrityError: If the (category, key, unit,
                standard, version) combination is already published.
        """
        row = EmissionFactor(
            category=factor.category,
            natural_key=canonical_key(factor.key),
            base_key=base_key(factor.key),
            key_fields=dict(factor.key),
            model_year=factor.model_year,
            coefficients=dict(factor.coefficients),
            unit=factor.unit,
            is_biomass=factor.is_biomass,
            standard=factor.standard,
            version=factor.version,
            effective_date=factor.effective_date,
            source=factor.source,
        )
        self._session.add(row)
        await self._session.flush()
        logger.info(
            "emission_factor_published",
            category=factor.category.value,
            natural_key=row.natural_key,
            standard=factor.standard,
            version=factor.version,
        )
        return row

    async def distinct_key_values(self, category: FactorCategory, field: str) -> list[str]:
        """Distinct values of one natural-key field across published rows."""
        result = await self._session.execute(
            select(EmissionFactor.key_fields).where(EmissionFactor.category == category)
        )
        values = {
            str(fields[field])
            for fields in result.scalars().all()
            if isinstance(fields, dict) and fields.get(field) is not None
        }
        return sorted(values)

    async def count(self, category: FactorCategory | None = None) -> int:
        stmt = select(func.count()).select_from(EmissionFactor)
        if category is not None:
            stmt = stmt.where(EmissionFactor.category == category)
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _filtered(
        stmt: Select[tuple[EmissionFactor]],
        category: FactorCategory,
        *,
        standard: str,
        as_of: date | None,
        version: str | None,
        unit: str | None = None,
    ) -> Select[tuple[EmissionFactor]]:
        stmt = stmt.where(
            EmissionFactor.category == category,
            EmissionFactor.standard == standard,
        )
        if as_of is not None:
            stmt = stmt.where(EmissionFactor.effective_date <= as_of)
        if version is not None:
            stmt = stmt.where(EmissionFactor.version == version)
        if unit is not None:
            stmt = stmt.where(func.lower(EmissionFactor.unit) == unit.lower())
        return stmt

"""Emission factor resolution with caching and a multi-tier fallback chain.

Resolution order, first hit wins:

1. in-process cache entry younger than the TTL
2. exact natural-key match in the factor store, newest effective date
3. mobile sources only: relaxed match ignoring the model year
4. static constant table
5. ``FactorNotFoundError``
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from ghg_engine.core.config import get_settings
from ghg_engine.core.logging import get_logger
from ghg_engine.db.models import FactorCategory
from ghg_engine.modules.factors.cache import FactorCache, get_factor_cache
from ghg_engine.modules.factors.schemas import (
    MODEL_YEAR_FIELD,
    Factor,
    FactorTier,
    canonical_key,
)
from ghg_engine.modules.factors.static import StaticFactorTable
from ghg_engine.modules.factors.store import FactorStore

logger = get_logger(__name__)

# Module-level singleton static table (parsed once, reused across resolvers)
_static_table: StaticFactorTable | None = None


def get_static_table() -> StaticFactorTable:
    """Return the process-wide static factor table."""
    global _static_table  # noqa: PLW0603
    if _static_table is None:
        _static_table = StaticFactorTable(yaml_path=get_settings().static_factor_table_path)
    return _static_table


class FactorNotFoundError(LookupError):
    """No tier of the resolution chain produced a factor."""

    def __init__(self, category: FactorCategory, key: Mapping[str, Any], standard: str) -> None:
        self.category = category
        self.key = dict(key)
        self.standard = standard
        super().__init__(
            f"No {category.value} factor for {canonical_key(key) or '<empty key>'} "
            f"under {standard}"
        )


class FactorResolver:
    """Resolve emission factors through cache, store and static table.

    Usage::

        resolver = FactorResolver(FactorStore(session))
        factor = await resolver.resolve(
            FactorCategory.STATIONARY_FUEL,
            {"fuel_type": "Natural Gas"},
            unit="MMBtu",
        )
    """

    def __init__(
        self,
        store: FactorStore,
        *,
        cache: FactorCache | None = None,
        static_table: StaticFactorTable | None = None,
        default_standard: str | None = None,
        country_level_regions: Iterable[str] | None = None,
    ) -> None:
        settings = get_settings()
        self._store = store
        self._cache = cache if cache is not None else get_factor_cache()
        self._static = static_table if static_table is not None else get_static_table()
        self._default_standard = default_standard or settings.default_reporting_standard
        regions = (
            country_level_regions
            if country_level_regions is not None
            else settings.country_level_grid_region_codes
        )
        self._country_level_regions = frozenset(code.upper() for code in regions)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(
        self,
        category: FactorCategory,
        key: Mapping[str, Any],
        *,
        standard: str | None = None,
        as_of: date | None = None,
        version: str | None = None,
        unit: str | None = None,
    ) -> Factor:
        """Resolve one factor.

        Raises:
            FactorNotFoundError: When every tier misses. Callers apply
                their own default rather than failing the batch.
        """
        standard = standard or self._default_standard
        cache_key = self._cache_key(category, key, standard, as_of, version, unit)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        factor = await self._lookup(category, key, standard, as_of, version, unit)
        if factor is None:
            logger.info(
                "factor_not_found",
                category=category.value,
                key=canonical_key(key),
                standard=standard,
            )
            raise FactorNotFoundError(category, key, standard)

        self._cache.set(cache_key, factor)
        return factor

    async def resolve_electricity(
        self,
        grid_region: str,
        *,
        company_country: str | None = None,
        standard: str | None = None,
        as_of: date | None = None,
        version: str | None = None,
    ) -> Factor:
        """Resolve a grid factor, preferring country-level data where maintained."""
        country = (company_country or "").strip().upper()
        if country in self._country_level_regions:
            try:
                return await self.resolve(
                    FactorCategory.ELECTRICITY_GRID,
                    {"country": country},
                    standard=standard,
                    as_of=as_of,
                    version=version,
                )
            except FactorNotFoundError:
                logger.info("country_grid_factor_missing", country=country, grid_region=grid_region)

        return await self.resolve(
            FactorCategory.ELECTRICITY_GRID,
            {"grid_region": grid_region},
            standard=standard,
            as_of=as_of,
            version=version,
        )

    async def available_fuel_types(self) -> list[str]:
        """Stationary fuel types known to the store or the static table."""
        return await self._key_values(FactorCategory.STATIONARY_FUEL, "fuel_type")

    async def available_vehicle_types(self) -> list[str]:
        """Vehicle types known for mobile sources."""
        return await self._key_values(FactorCategory.MOBILE_SOURCE, "vehicle_type")

    def clear_cache(self) -> int:
        return self._cache.clear()

    def cache_stats(self) -> dict[str, Any]:
        return self._cache.stats()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _lookup(
        self,
        category: FactorCategory,
        key: Mapping[str, Any],
        standard: str,
        as_of: date | None,
        version: str | None,
        unit: str | None,
    ) -> Factor | None:
        row = await self._store.find_exact(
            category, key, standard=standard, as_of=as_of, version=version, unit=unit
        )
        if row is not None:
            return Factor.from_row(row, FactorTier.EXACT)

        if category is FactorCategory.MOBILE_SOURCE and key.get(MODEL_YEAR_FIELD) is not None:
            row = await self._store.find_relaxed(
                category, key, standard=standard, as_of=as_of, version=version
            )
            if row is not None:
                logger.info(
                    "mobile_factor_relaxed_match",
                    requested_year=key.get(MODEL_YEAR_FIELD),
                    matched_year=row.model_year,
                )
                return Factor.from_row(row, FactorTier.RELAXED)

        static = self._static.lookup(category, key, unit=unit)
        if static is not None:
            logger.info(
                "static_factor_used",
                category=category.value,
                key=canonical_key(key),
                source=static.source,
            )
        return static

    async def _key_values(self, category: FactorCategory, field: str) -> list[str]:
        values = set(await self._store.distinct_key_values(category, field))
        values.update(self._static.key_values(category, field))
        return sorted(values)

    @staticmethod
    def _cache_key(
        category: FactorCategory,
        key: Mapping[str, Any],
        standard: str,
        as_of: date | None,
        version: str | None,
        unit: str | None,
    ) -> str:
        return ":".join(
            (
                category.value,
                canonical_key(key),
                standard,
                version or "latest",
                as_of.isoformat() if as_of else "current",
                (unit or "*").lower(),
            )
        )

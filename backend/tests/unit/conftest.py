"""Fixtures for unit tests: an empty factor store behind the bundled static table."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ghg_engine.modules.calculations.formulas import CalculationContext, FactorLookup
from ghg_engine.modules.factors.cache import FactorCache
from ghg_engine.modules.factors.resolver import FactorResolver
from ghg_engine.modules.factors.static import StaticFactorTable


@pytest.fixture
def empty_store() -> MagicMock:
    store = MagicMock()
    store.find_exact = AsyncMock(return_value=None)
    store.find_relaxed = AsyncMock(return_value=None)
    store.distinct_key_values = AsyncMock(return_value=[])
    return store


@pytest.fixture(scope="session")
def static_table() -> StaticFactorTable:
    return StaticFactorTable()


@pytest.fixture
def static_resolver(empty_store: MagicMock, static_table: StaticFactorTable) -> FactorResolver:
    """Resolver that can only answer from the static table."""
    return FactorResolver(empty_store, cache=FactorCache(), static_table=static_table)


@pytest.fixture
def context() -> CalculationContext:
    return CalculationContext.from_settings()


@pytest.fixture
def lookup(static_resolver: FactorResolver, context: CalculationContext) -> FactorLookup:
    return FactorLookup(static_resolver, context)

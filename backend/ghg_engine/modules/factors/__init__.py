"""Emission factor module: store, cache, static table and resolver."""

from ghg_engine.modules.factors.cache import FactorCache, get_factor_cache, reset_factor_cache
from ghg_engine.modules.factors.resolver import (
    FactorNotFoundError,
    FactorResolver,
    get_static_table,
)
from ghg_engine.modules.factors.schemas import Factor, FactorCreate, FactorTier
from ghg_engine.modules.factors.static import StaticFactorTable
from ghg_engine.modules.factors.store import FactorStore

__all__ = [
    "Factor",
    "FactorCache",
    "FactorCreate",
    "FactorNotFoundError",
    "FactorResolver",
    "FactorStore",
    "FactorTier",
    "StaticFactorTable",
    "get_factor_cache",
    "get_static_table",
    "reset_factor_cache",
]

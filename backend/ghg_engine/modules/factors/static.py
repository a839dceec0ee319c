"""Static, hand-maintained emission factor table.

Loaded from a bundled YAML file and consulted by the resolver after the
factor store. It covers the AR5 GWP table, a handful of default
combustion and mobile factors, and the closed Scope 3 tables.
"""

from __future__ import annotations

from collections.abc import Mapping
from importlib import resources as importlib_resources
from pathlib import Path
from typing import Any

import yaml

from ghg_engine.core.logging import get_logger
from ghg_engine.db.models import FactorCategory
from ghg_engine.modules.factors.schemas import (
    CATEGORY_KEY_FIELDS,
    Factor,
    FactorTier,
    canonical_key,
)

logger = get_logger(__name__)

_RESERVED_FIELDS = frozenset({"unit", "aliases", "is_biomass", "source"})


class StaticFactorTable:
    """Static factor table loaded from YAML.

    Usage::

        table = StaticFactorTable()
        factor = table.lookup(FactorCategory.REFRIGERANT, {"gas_type": "R-410A"})
        backup = table.lookup(FactorCategory.MOBILE_SOURCE, {"fuel_type": "Diesel"})
    """

    def __init__(self, yaml_path: str | Path | None = None) -> None:
        self._factors: dict[FactorCategory, dict[str, Factor]] = {}
        self._aliases: dict[FactorCategory, list[tuple[str, Factor]]] = {}
        self._version = "0.0"
        self._standard = "GHG_PROTOCOL"
        self._source = ""
        self._load(yaml_path)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def version(self) -> str:
        return self._version

    def lookup(
        self,
        category: FactorCategory,
        key: Mapping[str, Any],
        *,
        unit: str | None = None,
    ) -> Factor | None:
        """Find a static factor for *key*.

        Mobile-source keys match on fuel family: the first alias found as
        a substring of the requested fuel type wins. Every other category
        needs the key fields the table declares to match exactly
        (case-insensitive); fields outside the category key are
        ignored.
        """
        if category is FactorCategory.MOBILE_SOURCE:
            return self._match_alias(category, str(key.get("fuel_type") or ""))

        wanted = {field: key.get(field) for field in CATEGORY_KEY_FIELDS[category]}
        factor = self._factors.get(category, {}).get(canonical_key(wanted))
        if factor is None:
            return None
        if unit is not None and factor.unit and factor.unit.lower() != unit.lower():
            return None
        return factor

    def key_values(self, category: FactorCategory, field: str) -> list[str]:
        """Distinct values of one key field within a category."""
        values = {
            str(factor.key[field])
            for factor in self._factors.get(category, {}).values()
            if factor.key.get(field) is not None
        }
        return sorted(values)

    def __len__(self) -> int:
        return sum(len(entries) for entries in self._factors.values())

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _match_alias(self, category: FactorCategory, fuel_type: str) -> Factor | None:
        needle = fuel_type.lower().strip()
        if not needle:
            return None
        for alias, factor in self._aliases.get(category, []):
            if alias in needle:
                return factor
        return None

    def _load(self, yaml_path: str | Path | None) -> None:
        path = Path(yaml_path) if yaml_path is not None else self._default_path()

        if not path.is_file():
            logger.warning("static_factor_table_not_found", path=str(path))
            return

        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh)

        if not isinstance(data, dict):
            logger.warning("invalid_static_factor_table", path=str(path))
            return

        self._version = str(data.get("version", "0.0"))
        self._standard = str(data.get("standard", "GHG_PROTOCOL"))
        self._source = str(data.get("source", ""))

        for category in FactorCategory:
            raw_entries = data.get(category.value) or []
            if not isinstance(raw_entries, list):
                logger.warning("invalid_static_factor_section", section=category.value)
                continue
            for raw in raw_entries:
                if not isinstance(raw, dict):
                    continue
                try:
                    self._add(category, raw)
                except (ValueError, TypeError):
                    logger.warning(
                        "skipping_invalid_static_factor",
                        section=category.value,
                        entry=raw,
                        exc_info=True,
                    )

        logger.info(
            "static_factor_table_loaded",
            version=self._version,
            factor_count=len(self),
            path=path.name,
        )

    def _add(self, category: FactorCategory, raw: dict[str, Any]) -> None:
        key_fields = CATEGORY_KEY_FIELDS[category]
        key = {field: raw[field] for field in key_fields if raw.get(field) is not None}
        if not key:
            raise ValueError(f"entry has none of the key fields {key_fields}")
        coefficients = {
            name: float(value)
            for name, value in raw.items()
            if name not in key_fields and name not in _RESERVED_FIELDS
        }
        factor = Factor(
            category=category,
            key=key,
            coefficients=coefficients,
            unit=raw.get("unit"),
            is_biomass=bool(raw.get("is_biomass", False)),
            standard=self._standard,
            version=self._version,
            source=raw.get("source") or self._source,
            tier=FactorTier.STATIC,
        )
        self._factors.setdefault(category, {})[canonical_key(key)] = factor
        for alias in raw.get("aliases") or []:
            self._aliases.setdefault(category, []).append((str(alias).lower(), factor))

    @staticmethod
    def _default_path() -> Path:
        """Resolve the static_factors.yaml bundled with this package."""
        pkg = importlib_resources.files("ghg_engine.modules.factors")
        return Path(str(pkg)) / "data" / "static_factors.yaml"

"""YAML factor-file loader used to seed the factor store.

File layout::

    version: EPA_2024_v1
    standard: GHG_PROTOCOL
    effective_date: 2024-01-01
    source: EPA GHG Emission Factors Hub 2024
    factors:
      - category: stationary_fuel
        key: {fuel_type: Natural Gas}
        unit: MMBtu
        coefficients: {co2_kg_per_unit: 53.06, ch4_g_per_unit: 1.0, n2o_g_per_unit: 0.1}

Per-entry ``version``, ``standard``, ``effective_date`` and ``source``
override the file-level defaults.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ghg_engine.core.logging import get_logger
from ghg_engine.modules.factors.schemas import FactorCreate

logger = get_logger(__name__)


def load_factor_file(path: str | Path) -> list[FactorCreate]:
    """Parse a factor file into publishable records.

    Invalid entries are logged and skipped; a file that is missing or
    not a mapping raises ``ValueError``.
    """
    path = Path(path)
    if not path.is_file():
        raise ValueError(f"Factor file not found: {path}")

    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if not isinstance(data, dict):
        raise ValueError(f"Factor file must contain a mapping: {path}")

    defaults = {
        "version": data.get("version"),
        "standard": data.get("standard", "GHG_PROTOCOL"),
        "effective_date": data.get("effective_date", date.today()),
        "source": data.get("source"),
    }

    factors: list[FactorCreate] = []
    for index, raw in enumerate(data.get("factors") or []):
        if not isinstance(raw, dict):
            logger.warning("skipping_non_mapping_factor", index=index, path=path.name)
            continue
        entry: dict[str, Any] = {**defaults, **{k: v for k, v in raw.items() if v is not None}}
        try:
            factors.append(FactorCreate.model_validate(entry))
        except ValidationError as exc:
            logger.warning(
                "skipping_invalid_factor",
                index=index,
                path=path.name,
                errors=exc.errors(include_url=False),
            )

    logger.info("factor_file_loaded", path=path.name, factor_count=len(factors))
    return factors

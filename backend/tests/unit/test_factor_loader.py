"""Tests for YAML factor-file parsing."""

from __future__ import annotations

from datetime import date
from importlib import resources as importlib_resources
from pathlib import Path

import pytest

from ghg_engine.db.models import FactorCategory
from ghg_engine.modules.factors.loader import load_factor_file

FACTOR_FILE = """\
version: TEST_2024
standard: GHG_PROTOCOL
effective_date: 2024-01-01
source: Test source
factors:
  - category: stationary_fuel
    key: {fuel_type: Natural Gas}
    unit: MMBtu
    coefficients: {co2_kg_per_unit: 53.06, ch4_g_per_unit: 1.0, n2o_g_per_unit: 0.1}
  - category: mobile_source
    key: {vehicle_type: Passenger Car, fuel_type: Gasoline, model_year: 2022}
    unit: gallon
    version: TEST_2024_rev2
    effective_date: 2024-07-01
    coefficients: {co2_kg_per_unit: 8.78}
  - category: not_a_category
    key: {fuel_type: Coal}
    coefficients: {co2_kg_per_unit: 1.0}
  - just a string
"""


def test_file_defaults_and_entry_overrides(tmp_path: Path) -> None:
    path = tmp_path / "factors.yaml"
    path.write_text(FACTOR_FILE, encoding="utf-8")

    factors = load_factor_file(path)

    assert len(factors) == 2
    fuel, vehicle = factors
    assert fuel.category is FactorCategory.STATIONARY_FUEL
    assert fuel.version == "TEST_2024"
    assert fuel.effective_date == date(2024, 1, 1)
    assert fuel.source == "Test source"
    assert fuel.model_year is None

    assert vehicle.version == "TEST_2024_rev2"
    assert vehicle.effective_date == date(2024, 7, 1)
    assert vehicle.model_year == 2022


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not found"):
        load_factor_file(tmp_path / "nope.yaml")


def test_non_mapping_file_raises(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mapping"):
        load_factor_file(path)


def test_bundled_seed_file_parses() -> None:
    pkg = importlib_resources.files("ghg_engine.modules.factors")
    factors = load_factor_file(Path(str(pkg)) / "data" / "seed_epa_2024.yaml")

    categories = {factor.category for factor in factors}
    assert FactorCategory.ELECTRICITY_GRID in categories
    assert FactorCategory.STATIONARY_FUEL in categories
    assert any(factor.key.get("grid_region") == "US Average" for factor in factors)

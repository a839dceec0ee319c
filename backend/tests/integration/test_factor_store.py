"""Integration tests for the versioned factor store and store-backed resolution."""

from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from ghg_engine.db.models import FactorCategory
from ghg_engine.modules.factors.cache import FactorCache
from ghg_engine.modules.factors.resolver import FactorResolver
from ghg_engine.modules.factors.schemas import FactorCreate, FactorTier
from ghg_engine.modules.factors.store import FactorStore

NATURAL_GAS = {"fuel_type": "Natural Gas"}


def _fuel(co2: float, *, version: str, effective: date, unit: str = "MMBtu") -> FactorCreate:
    return FactorCreate(
        category=FactorCategory.STATIONARY_FUEL,
        key=NATURAL_GAS,
        coefficients={"co2_kg_per_unit": co2, "ch4_g_per_unit": 1.0, "n2o_g_per_unit": 0.1},
        unit=unit,
        version=version,
        effective_date=effective,
        source="EPA",
    )


def _car(year: int, co2: float) -> FactorCreate:
    return FactorCreate(
        category=FactorCategory.MOBILE_SOURCE,
        key={"vehicle_type": "Passenger Car", "fuel_type": "Gasoline", "model_year": year},
        coefficients={"co2_kg_per_unit": co2, "ch4_g_per_mile": 0.01, "n2o_g_per_mile": 0.01},
        unit="gallon",
        version=f"EPA-{year}",
        effective_date=date(2024, 1, 1),
    )


@pytest.mark.asyncio
async def test_publish_and_find_exact(db_session) -> None:
    store = FactorStore(db_session)
    await store.publish(_fuel(53.06, version="EPA-2024", effective=date(2024, 1, 1)))

    row = await store.find_exact(
        FactorCategory.STATIONARY_FUEL, {"fuel_type": " natural  GAS "}, standard="GHG_PROTOCOL"
    )

    assert row is not None
    assert row.coefficients["co2_kg_per_unit"] == 53.06
    assert row.key_fields == NATURAL_GAS
    assert row.model_year is None


@pytest.mark.asyncio
async def test_newest_effective_date_wins(db_session) -> None:
    store = FactorStore(db_session)
    await store.publish(_fuel(53.0, version="EPA-2023", effective=date(2023, 1, 1)))
    await store.publish(_fuel(53.5, version="EPA-2024", effective=date(2024, 1, 1)))

    latest = await store.find_exact(
        FactorCategory.STATIONARY_FUEL, NATURAL_GAS, standard="GHG_PROTOCOL"
    )
    as_of_2023 = await store.find_exact(
        FactorCategory.STATIONARY_FUEL,
        NATURAL_GAS,
        standard="GHG_PROTOCOL",
        as_of=date(2023, 6, 30),
    )
    pinned = await store.find_exact(
        FactorCategory.STATIONARY_FUEL, NATURAL_GAS, standard="GHG_PROTOCOL", version="EPA-2023"
    )

    assert latest is not None and latest.version == "EPA-2024"
    assert as_of_2023 is not None and as_of_2023.version == "EPA-2023"
    assert pinned is not None and pinned.version == "EPA-2023"


@pytest.mark.asyncio
async def test_find_exact_filters_unit_and_standard(db_session) -> None:
    store = FactorStore(db_session)
    await store.publish(_fuel(53.06, version="EPA-2024", effective=date(2024, 1, 1)))

    by_unit = await store.find_exact(
        FactorCategory.STATIONARY_FUEL, NATURAL_GAS, standard="GHG_PROTOCOL", unit="mmbtu"
    )
    other_unit = await store.find_exact(
        FactorCategory.STATIONARY_FUEL, NATURAL_GAS, standard="GHG_PROTOCOL", unit="scf"
    )
    other_standard = await store.find_exact(
        FactorCategory.STATIONARY_FUEL, NATURAL_GAS, standard="CSRD"
    )

    assert by_unit is not None
    assert other_unit is None
    assert other_standard is None


@pytest.mark.asyncio
async def test_duplicate_version_is_rejected(db_session) -> None:
    store = FactorStore(db_session)
    await store.publish(_fuel(53.06, version="EPA-2024", effective=date(2024, 1, 1)))

    with pytest.raises(IntegrityError):
        async with db_session.begin_nested():
            await store.publish(_fuel(99.0, version="EPA-2024", effective=date(2024, 2, 1)))

    assert await store.count(FactorCategory.STATIONARY_FUEL) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(("requested", "matched"), [(2021, 2020), (2017, 2023), (2020, 2020)])
async def test_relaxed_match_prefers_closest_earlier_year(
    db_session, requested: int, matched: int
) -> None:
    store = FactorStore(db_session)
    for year in (2018, 2020, 2023):
        await store.publish(_car(year, 8.0 + year / 10000))

    row = await store.find_relaxed(
        FactorCategory.MOBILE_SOURCE,
        {"vehicle_type": "Passenger Car", "fuel_type": "Gasoline", "model_year": requested},
        standard="GHG_PROTOCOL",
    )

    assert row is not None
    assert row.model_year == matched


@pytest.mark.asyncio
async def test_distinct_key_values_and_count(db_session) -> None:
    store = FactorStore(db_session)
    await store.publish(_fuel(53.06, version="EPA-2024", effective=date(2024, 1, 1)))
    await store.publish(_car(2020, 8.78))
    await store.publish(_car(2023, 8.78))

    assert await store.distinct_key_values(FactorCategory.MOBILE_SOURCE, "vehicle_type") == [
        "Passenger Car"
    ]
    assert await store.count() == 3
    assert await store.count(FactorCategory.MOBILE_SOURCE) == 2


@pytest.mark.asyncio
async def test_resolver_prefers_store_tiers_over_static(db_session) -> None:
    store = FactorStore(db_session)
    await store.publish(_fuel(50.0, version="EPA-2024", effective=date(2024, 1, 1)))
    await store.publish(_car(2019, 9.0))
    resolver = FactorResolver(store, cache=FactorCache())

    gas = await resolver.resolve(FactorCategory.STATIONARY_FUEL, NATURAL_GAS, unit="MMBtu")
    car = await resolver.resolve(
        FactorCategory.MOBILE_SOURCE,
        {"vehicle_type": "Passenger Car", "fuel_type": "Gasoline", "model_year": 2022},
    )
    kerosene = await resolver.resolve(
        FactorCategory.STATIONARY_FUEL, {"fuel_type": "Kerosene"}, unit="MMBtu"
    )

    assert gas.tier is FactorTier.EXACT
    assert gas.coefficient("co2_kg_per_unit") == 50.0
    assert car.tier is FactorTier.RELAXED
    assert car.key["model_year"] == 2019
    assert kerosene.tier is FactorTier.STATIC
    assert "Natural Gas" in await resolver.available_fuel_types()

"""Tests for MongoBloodUnitRepository on a mongomock-motor collection."""

import asyncio
from datetime import timedelta

import pytest

from models import UnitStatus
from services.unit_repository import MongoBloodUnitRepository
from fakes import HOSPITAL_ID, OTHER_HOSPITAL_ID, NOW, make_unit


@pytest.fixture
def repository(mock_db):
    return MongoBloodUnitRepository(mock_db.blood_units)


async def test_insert_does_not_leak_object_id(repository) -> None:
    unit = make_unit(HOSPITAL_ID, "A+", NOW + timedelta(days=5), unit_id="u1")

    returned = await repository.insert(unit)

    assert "_id" not in returned
    assert "_id" not in await repository.get(HOSPITAL_ID, "u1")


async def test_find_available_orders_by_expiry_and_limits(repository) -> None:
    for days, unit_id in ((9, "c"), (1, "a"), (4, "b")):
        await repository.insert(make_unit(HOSPITAL_ID, "A+", NOW + timedelta(days=days), unit_id=unit_id))
    await repository.insert(make_unit(HOSPITAL_ID, "A+", NOW, status="allocated", unit_id="used"))

    rows = await repository.find_available(HOSPITAL_ID, "A+", 2)

    assert [row["id"] for row in rows] == ["a", "b"]
    assert await repository.find_available(HOSPITAL_ID, "A+", 0) == []


async def test_claim_is_conditional_on_available(repository) -> None:
    await repository.insert(make_unit(HOSPITAL_ID, "A+", NOW + timedelta(days=1), unit_id="u1"))
    await repository.insert(make_unit(HOSPITAL_ID, "A+", NOW + timedelta(days=2), unit_id="u2"))

    first, second = await asyncio.gather(
        repository.claim(["u1", "u2"], UnitStatus.ALLOCATED),
        repository.claim(["u1", "u2"], UnitStatus.DISPOSED),
    )

    assert sorted(first + second) == ["u1", "u2"]
    assert not set(first) & set(second)
    assert await repository.claim(["u1", "missing"], UnitStatus.EXPIRED) == []


async def test_claim_refuses_available_target(repository) -> None:
    with pytest.raises(ValueError):
        await repository.claim(["u1"], UnitStatus.AVAILABLE)


async def test_aggregate_groups_available_units(repository) -> None:
    await repository.insert(make_unit(HOSPITAL_ID, "B+", NOW + timedelta(days=2), quantity_ml=300))
    await repository.insert(make_unit(HOSPITAL_ID, "B+", NOW + timedelta(days=20), quantity_ml=450))
    await repository.insert(make_unit(HOSPITAL_ID, "A-", NOW + timedelta(days=20), quantity_ml=100))
    await repository.insert(make_unit(HOSPITAL_ID, "A-", NOW, quantity_ml=999, status="expired"))
    await repository.insert(make_unit(OTHER_HOSPITAL_ID, "B+", NOW, quantity_ml=999))

    rows = await repository.aggregate_available_by_type(HOSPITAL_ID, NOW + timedelta(days=7))

    assert rows == [
        {"blood_type": "A-", "total_quantity": 100, "unit_count": 1, "expiring_soon": 0},
        {"blood_type": "B+", "total_quantity": 750, "unit_count": 2, "expiring_soon": 1},
    ]


async def test_find_expiring_respects_cutoff(repository) -> None:
    await repository.insert(make_unit(HOSPITAL_ID, "O+", NOW + timedelta(days=3), unit_id="edge"))
    await repository.insert(make_unit(HOSPITAL_ID, "O+", NOW + timedelta(days=3, seconds=1), unit_id="after"))

    rows = await repository.find_expiring(HOSPITAL_ID, NOW + timedelta(days=3))

    assert [row["id"] for row in rows] == ["edge"]

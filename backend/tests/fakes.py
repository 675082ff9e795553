"""
In-memory BloodUnitRepository and shared helpers for tests.
"""
import asyncio
from datetime import datetime, timezone, timedelta
from typing import List, Optional

from pymongo.errors import AutoReconnect

from models import BloodUnit, UnitStatus, User, iso_timestamp
from services import create_tokens
from services.unit_repository import BloodUnitRepository

HOSPITAL_ID = "hospital-1"
OTHER_HOSPITAL_ID = "hospital-2"
NOW = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


def make_user(role="administrator", hospital_id=HOSPITAL_ID, user_id="user-1"):
    return {
        "id": user_id,
        "email": f"{user_id}@cityhospital.in",
        "role": role,
        "hospital_id": hospital_id,
    }


def bearer(user: dict) -> dict:
    return {"Authorization": f"Bearer {create_tokens(user)['access_token']}"}


def make_unit(
    hospital_id: str,
    blood_type: str,
    expiry: datetime,
    quantity_ml: float = 450,
    status: str = "available",
    batch_id: str = "BATCH-TEST",
    unit_id: Optional[str] = None,
) -> dict:
    fields = dict(
        hospital_id=hospital_id,
        blood_type=blood_type,
        batch_id=batch_id,
        quantity_ml=quantity_ml,
        collection_date=expiry - timedelta(days=35),
        expiry_date=expiry,
        status=status,
    )
    if unit_id:
        fields["id"] = unit_id
    return BloodUnit(**fields).to_document()


class InMemoryBloodUnitRepository(BloodUnitRepository):
    def __init__(self, units: Optional[List[dict]] = None):
        self.units = {}
        for unit in units or []:
            self.units[unit["id"]] = dict(unit)

    def status_of(self, unit_id: str) -> str:
        return self.units[unit_id]["status"]

    async def insert(self, unit: dict) -> dict:
        self.units[unit["id"]] = dict(unit)
        return unit

    async def find_available(self, hospital_id, blood_type, limit):
        rows = [
            u for u in self.units.values()
            if u["hospital_id"] == hospital_id and u["blood_type"] == blood_type
            and u["status"] == UnitStatus.AVAILABLE.value
        ]
        rows.sort(key=lambda u: u["expiry_date"])
        return [dict(u) for u in rows[:max(limit, 0)]]

    async def claim(self, unit_ids, new_status):
        if new_status == UnitStatus.AVAILABLE:
            raise ValueError("Units cannot be returned to the available pool")
        claimed = []
        for unit_id in unit_ids:
            unit = self.units.get(unit_id)
            if unit and unit["status"] == UnitStatus.AVAILABLE.value:
                unit["status"] = new_status.value
                unit["updated_at"] = iso_timestamp(datetime.now(timezone.utc))
                claimed.append(unit_id)
        return claimed

    async def aggregate_available_by_type(self, hospital_id, expiring_before):
        cutoff = iso_timestamp(expiring_before)
        groups = {}
        for u in self.units.values():
            if u["hospital_id"] != hospital_id or u["status"] != UnitStatus.AVAILABLE.value:
                continue
            group = groups.setdefault(
                u["blood_type"],
                {"blood_type": u["blood_type"], "total_quantity": 0, "unit_count": 0, "expiring_soon": 0}
            )
            group["total_quantity"] += u["quantity_ml"]
            group["unit_count"] += 1
            if u["expiry_date"] <= cutoff:
                group["expiring_soon"] += 1
        return [groups[k] for k in sorted(groups)]

    async def find_expiring(self, hospital_id, before):
        cutoff = iso_timestamp(before)
        rows = [
            dict(u) for u in self.units.values()
            if u["hospital_id"] == hospital_id and u["status"] == UnitStatus.AVAILABLE.value
            and u["expiry_date"] <= cutoff
        ]
        return sorted(rows, key=lambda u: u["expiry_date"])

    async def list_units(self, hospital_id, status=None, blood_type=None):
        rows = [
            dict(u) for u in self.units.values()
            if u["hospital_id"] == hospital_id
            and (status is None or u["status"] == status)
            and (blood_type is None or u["blood_type"] == blood_type)
        ]
        return sorted(rows, key=lambda u: u["created_at"], reverse=True)

    async def get(self, hospital_id, unit_id):
        unit = self.units.get(unit_id)
        if unit and unit["hospital_id"] == hospital_id:
            return dict(unit)
        return None


class SelectBarrierRepository(InMemoryBloodUnitRepository):
    """
    Holds every caller of the first selection round until `parties` callers
    have selected, so concurrent removals see the same candidate set.
    """

    def __init__(self, parties: int, units: Optional[List[dict]] = None):
        super().__init__(units)
        self.parties = parties
        self.arrived = 0
        self.released = asyncio.Event()

    async def find_available(self, hospital_id, blood_type, limit):
        rows = await super().find_available(hospital_id, blood_type, limit)
        if not self.released.is_set():
            self.arrived += 1
            if self.arrived >= self.parties:
                self.released.set()
            await self.released.wait()
        return rows


def seed_user(mock_db, user: dict, is_active: bool = True) -> dict:
    """Persist a staff record matching a `make_user` dict so bearer lookups succeed."""
    doc = User(
        id=user["id"],
        hospital_id=user["hospital_id"],
        email=user["email"],
        name=user["id"].replace("-", " ").title(),
        role=user["role"],
        password_hash="not-a-bcrypt-hash",
        is_active=is_active,
    ).model_dump(mode="json")
    asyncio.run(mock_db.users.insert_one(dict(doc)))
    return doc


class CollectionProxy:
    """Wraps a collection, replacing selected methods."""

    def __init__(self, collection, **methods):
        self._collection = collection
        self._methods = methods

    def __getattr__(self, name):
        if name in self._methods:
            return self._methods[name]
        return getattr(self._collection, name)


class DatabaseProxy:
    """Wraps a database, substituting selected collections."""

    def __init__(self, db, **collections):
        self._db = db
        self._collections = collections

    def __getattr__(self, name):
        if name in self._collections:
            return self._collections[name]
        return getattr(self._db, name)


async def unavailable(*args, **kwargs):
    raise AutoReconnect("connection reset")


def without_lookups_by(collection, *keys) -> CollectionProxy:
    """
    `find_one` misses whenever the filter names one of `keys`, as if a
    concurrent request inserted the matching record right after the check.
    """
    async def find_one(filter=None, *args, **kwargs):
        if filter and any(key in filter for key in keys):
            return None
        return await collection.find_one(filter, *args, **kwargs)

    return CollectionProxy(collection, find_one=find_one)

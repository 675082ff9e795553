"""
Blood Unit Repository
Storage access for blood unit rows. The stock ledger only talks to storage
through BloodUnitRepository, so it can run against MongoDB or a test double.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from pymongo import ASCENDING, DESCENDING

from models import UnitStatus, iso_timestamp

logger = logging.getLogger(__name__)


class BloodUnitRepository(ABC):
    """Operations the stock ledger needs from the persistent store."""

    @abstractmethod
    async def insert(self, unit: dict) -> dict:
        """Persist a new unit document and return it."""

    @abstractmethod
    async def find_available(self, hospital_id: str, blood_type: str, limit: int) -> List[dict]:
        """Up to `limit` available units of one type, soonest expiry first."""

    @abstractmethod
    async def claim(self, unit_ids: List[str], new_status: UnitStatus) -> List[str]:
        """
        Move units out of the available pool.

        Each unit is flipped only if it is still available at write time; the
        ids that were actually flipped are returned. Units already claimed by
        someone else are silently skipped.
        """

    @abstractmethod
    async def aggregate_available_by_type(self, hospital_id: str, expiring_before: datetime) -> List[dict]:
        """Rows of {blood_type, total_quantity, unit_count, expiring_soon} for available units."""

    @abstractmethod
    async def find_expiring(self, hospital_id: str, before: datetime) -> List[dict]:
        """Available units expiring on or before `before`, soonest first."""

    @abstractmethod
    async def list_units(
        self,
        hospital_id: str,
        status: Optional[str] = None,
        blood_type: Optional[str] = None,
    ) -> List[dict]:
        """All units of a hospital, newest first."""

    @abstractmethod
    async def get(self, hospital_id: str, unit_id: str) -> Optional[dict]:
        """One unit, or None if it does not belong to the hospital."""


class MongoBloodUnitRepository(BloodUnitRepository):
    """BloodUnitRepository backed by the `blood_units` collection."""

    def __init__(self, collection):
        self.collection = collection

    async def insert(self, unit: dict) -> dict:
        # insert_one adds _id to the dict it is given
        await self.collection.insert_one(dict(unit))
        return unit

    async def find_available(self, hospital_id: str, blood_type: str, limit: int) -> List[dict]:
        if limit <= 0:
            return []
        cursor = self.collection.find(
            {"hospital_id": hospital_id, "blood_type": blood_type, "status": UnitStatus.AVAILABLE.value},
            {"_id": 0}
        ).sort("expiry_date", ASCENDING).limit(limit)
        return await cursor.to_list(limit)

    async def claim(self, unit_ids: List[str], new_status: UnitStatus) -> List[str]:
        if new_status == UnitStatus.AVAILABLE:
            raise ValueError("Units cannot be returned to the available pool")

        updated_at = iso_timestamp(datetime.now(timezone.utc))

        async def claim_one(unit_id: str) -> Optional[str]:
            doc = await self.collection.find_one_and_update(
                {"id": unit_id, "status": UnitStatus.AVAILABLE.value},
                {"$set": {"status": new_status.value, "updated_at": updated_at}},
                projection={"_id": 0, "id": 1},
            )
            return doc["id"] if doc else None

        results = await asyncio.gather(*(claim_one(unit_id) for unit_id in unit_ids))
        claimed = [unit_id for unit_id in results if unit_id]
        if len(claimed) < len(unit_ids):
            logger.info("Skipped %d unit(s) already claimed elsewhere", len(unit_ids) - len(claimed))
        return claimed

    async def aggregate_available_by_type(self, hospital_id: str, expiring_before: datetime) -> List[dict]:
        cutoff = iso_timestamp(expiring_before)
        pipeline = [
            {"$match": {"hospital_id": hospital_id, "status": UnitStatus.AVAILABLE.value}},
            {"$group": {
                "_id": "$blood_type",
                "total_quantity": {"$sum": "$quantity_ml"},
                "unit_count": {"$sum": 1},
                "expiring_soon": {"$sum": {"$cond": [{"$lte": ["$expiry_date", cutoff]}, 1, 0]}},
            }},
            {"$sort": {"_id": 1}},
        ]
        rows = await self.collection.aggregate(pipeline).to_list(None)
        return [
            {
                "blood_type": row["_id"],
                "total_quantity": row["total_quantity"],
                "unit_count": row["unit_count"],
                "expiring_soon": row["expiring_soon"],
            }
            for row in rows if row["_id"]
        ]

    async def find_expiring(self, hospital_id: str, before: datetime) -> List[dict]:
        cursor = self.collection.find(
            {
                "hospital_id": hospital_id,
                "status": UnitStatus.AVAILABLE.value,
                "expiry_date": {"$lte": iso_timestamp(before)},
            },
            {"_id": 0}
        ).sort("expiry_date", ASCENDING)
        return await cursor.to_list(None)

    async def list_units(
        self,
        hospital_id: str,
        status: Optional[str] = None,
        blood_type: Optional[str] = None,
    ) -> List[dict]:
        query = {"hospital_id": hospital_id}
        if status:
            query["status"] = status
        if blood_type:
            query["blood_type"] = blood_type
        cursor = self.collection.find(query, {"_id": 0}).sort("created_at", DESCENDING)
        return await cursor.to_list(1000)

    async def get(self, hospital_id: str, unit_id: str) -> Optional[dict]:
        return await self.collection.find_one({"id": unit_id, "hospital_id": hospital_id}, {"_id": 0})

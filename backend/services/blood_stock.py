"""
Blood Stock Ledger
Per-hospital intake, consumption and stock-level views over blood unit rows.

Units are created once (intake) and flipped out of `available` at most once
(consumption); they are never deleted and never returned to `available`.
"""
import logging
import math
import uuid
from datetime import datetime, timezone, timedelta
from typing import Callable, List, Optional

from config import (
    ASSUMED_UNIT_VOLUME_ML, CRITICAL_LEVEL_ML, EXPIRING_SOON_DAYS, UNIT_SHELF_LIFE_DAYS
)
from models import (
    BloodType, BloodUnit, StockOperation, StockReason, StockUpdate, REMOVAL_STATUS,
    InventoryLevel, InventorySummary, ExpiringReport, StockUpdateResult
)
from .unit_repository import BloodUnitRepository

logger = logging.getLogger(__name__)

BLOOD_TYPES = sorted(bt.value for bt in BloodType)


class StockError(Exception):
    """Ledger failure that is safe to report to the client."""


class InvalidStockOperation(StockError):
    pass


class NoAvailableUnits(StockError):
    pass


def units_for_quantity(quantity_ml: float) -> int:
    """Number of unit rows a removal of `quantity_ml` touches."""
    return math.ceil(quantity_ml / ASSUMED_UNIT_VOLUME_ML)


def is_critical(total_quantity_ml: float) -> bool:
    return total_quantity_ml < CRITICAL_LEVEL_ML


def generate_batch_id(now: datetime) -> str:
    return f"BATCH-{now.strftime('%Y%m%d')}-{uuid.uuid4().hex[:6].upper()}"


class BloodStockLedger:
    def __init__(
        self,
        repository: BloodUnitRepository,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        return self._clock()

    async def get_inventory(self, hospital_id: str) -> InventorySummary:
        """Stock level for every canonical blood type, including empty ones."""
        now = self.now()
        rows = await self.repository.aggregate_available_by_type(
            hospital_id, now + timedelta(days=EXPIRING_SOON_DAYS)
        )
        by_type = {row["blood_type"]: row for row in rows}

        levels = []
        for blood_type in BLOOD_TYPES:
            row = by_type.get(blood_type)
            if row is None:
                levels.append(InventoryLevel(blood_type=blood_type))
                continue
            levels.append(InventoryLevel(
                blood_type=blood_type,
                quantity_ml=row["total_quantity"],
                unit_count=row["unit_count"],
                expiring_soon=row["expiring_soon"],
                critical_level=is_critical(row["total_quantity"]),
            ))

        return InventorySummary(inventory=levels, last_updated=now)

    async def update_stock(self, hospital_id: str, update: StockUpdate) -> StockUpdateResult:
        if update.operation == StockOperation.ADD:
            return await self.add_stock(hospital_id, update)
        if update.operation == StockOperation.REMOVE:
            return await self.remove_stock(hospital_id, update)
        raise InvalidStockOperation('Invalid operation. Must be "add" or "remove"')

    async def add_stock(self, hospital_id: str, update: StockUpdate) -> StockUpdateResult:
        """Record one new unit holding the whole `quantity_change`. `reason` is not used."""
        now = self.now()
        unit = BloodUnit(
            hospital_id=hospital_id,
            blood_type=update.blood_type,
            batch_id=update.batch_id or generate_batch_id(now),
            quantity_ml=update.quantity_change,
            collection_date=now,
            expiry_date=now + timedelta(days=UNIT_SHELF_LIFE_DAYS),
            donor_id=update.donor_id,
            created_at=now,
            updated_at=now,
        )
        doc = await self.repository.insert(unit.to_document())
        logger.info(
            "Stock intake: hospital=%s type=%s volume=%sml unit=%s",
            hospital_id, update.blood_type.value, update.quantity_change, unit.id
        )
        return StockUpdateResult(operation=StockOperation.ADD, unit=doc)

    async def remove_stock(self, hospital_id: str, update: StockUpdate) -> StockUpdateResult:
        """
        Take units out of the available pool, soonest expiry first.

        The removal is best effort: if fewer units are available than the
        quantity implies, all of them are taken. Candidates claimed by a
        concurrent removal are replaced from the remaining pool.
        """
        if update.reason is None:
            raise InvalidStockOperation("A reason is required when removing stock")
        new_status = REMOVAL_STATUS.get(update.reason)
        if new_status is None:
            raise InvalidStockOperation(
                f"Reason '{update.reason.value}' does not apply to stock removal; "
                "use request, expired or disposed"
            )

        wanted = units_for_quantity(update.quantity_change)
        claimed: List[str] = []
        while len(claimed) < wanted:
            candidates = await self.repository.find_available(
                hospital_id, update.blood_type.value, wanted - len(claimed)
            )
            if not candidates:
                break
            claimed.extend(await self.repository.claim([c["id"] for c in candidates], new_status))

        if not claimed:
            raise NoAvailableUnits("No available blood units to remove")

        logger.info(
            "Stock removal: hospital=%s type=%s reason=%s units=%d/%d",
            hospital_id, update.blood_type.value, update.reason.value, len(claimed), wanted
        )
        return StockUpdateResult(
            operation=StockOperation.REMOVE,
            units_updated=len(claimed),
            unit_ids=claimed,
            reason=update.reason,
        )

    async def count_available(self, hospital_id: str, blood_type: BloodType, limit: int) -> int:
        """Available units of `blood_type`, counting no further than `limit`."""
        rows = await self.repository.find_available(hospital_id, blood_type.value, limit)
        return len(rows)

    async def allocate_units(self, hospital_id: str, blood_type: BloodType, units: int) -> StockUpdateResult:
        """Allocate whole units to a blood request; a `request` removal sized in units."""
        update = StockUpdate(
            blood_type=blood_type,
            quantity_change=units * ASSUMED_UNIT_VOLUME_ML,
            operation=StockOperation.REMOVE,
            reason=StockReason.REQUEST,
        )
        return await self.remove_stock(hospital_id, update)

    async def get_expiring(self, hospital_id: str, days: int = EXPIRING_SOON_DAYS) -> ExpiringReport:
        units = await self.repository.find_expiring(hospital_id, self.now() + timedelta(days=days))
        return ExpiringReport(
            expiring_blood=units,
            total_units=len(units),
            total_quantity_ml=sum(unit.get("quantity_ml", 0) for unit in units),
        )

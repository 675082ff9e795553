from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime, timezone
import uuid
from .enums import BloodType, UnitStatus, StockOperation, StockReason

# Largest single intake or removal accepted, in millilitres
MAX_STOCK_CHANGE_ML = 100_000


def iso_timestamp(value: datetime) -> str:
    """UTC ISO-8601 with fixed microsecond precision, so string order matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class BloodUnit(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    hospital_id: str
    blood_type: BloodType
    batch_id: str
    quantity_ml: float = Field(ge=0, allow_inf_nan=False)
    collection_date: datetime
    expiry_date: datetime
    status: UnitStatus = UnitStatus.AVAILABLE
    donor_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def to_document(self) -> dict:
        doc = self.model_dump(mode="json")
        for key in ("collection_date", "expiry_date", "created_at", "updated_at"):
            doc[key] = iso_timestamp(getattr(self, key))
        return doc


class StockUpdate(BaseModel):
    blood_type: BloodType
    quantity_change: float = Field(
        gt=0, le=MAX_STOCK_CHANGE_ML, allow_inf_nan=False, description="Volume in millilitres"
    )
    operation: StockOperation
    reason: Optional[StockReason] = None
    batch_id: Optional[str] = Field(default=None, max_length=100)
    donor_id: Optional[str] = None


class InventoryLevel(BaseModel):
    blood_type: BloodType
    quantity_ml: float = 0
    unit_count: int = 0
    expiring_soon: int = 0
    critical_level: bool = True


class InventorySummary(BaseModel):
    inventory: List[InventoryLevel]
    last_updated: datetime


class ExpiringReport(BaseModel):
    expiring_blood: List[dict]
    total_units: int
    total_quantity_ml: float


class StockUpdateResult(BaseModel):
    message: str = "Blood stock updated successfully"
    operation: StockOperation
    unit: Optional[dict] = None
    units_updated: Optional[int] = None
    unit_ids: Optional[List[str]] = None
    reason: Optional[StockReason] = None

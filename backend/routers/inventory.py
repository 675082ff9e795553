"""
Blood Inventory API
Stock summary, intake/consumption and expiry views for the caller's hospital.
"""
from fastapi import APIRouter, HTTPException, Depends, Query, Request
from typing import Optional
from datetime import datetime, timezone

from database import get_db
from models import (
    BloodType, UnitStatus, StockOperation, StockUpdate, InventorySummary, ExpiringReport,
    iso_timestamp
)
from models.audit import AuditAction, AuditModule
from services import (
    BloodStockLedger, BloodUnitRepository, MongoBloodUnitRepository,
    InvalidStockOperation, NoAvailableUnits, generate_qr_base64, unit_label_payload
)
from services.audit_service import audit_committed_change
from middleware import ReadAccess, HospitalAccessHelper
from config import EXPIRING_SOON_DAYS

router = APIRouter(prefix="/inventory", tags=["Inventory"])


def get_blood_unit_repository(db=Depends(get_db)) -> BloodUnitRepository:
    return MongoBloodUnitRepository(db.blood_units)


def get_ledger(repository: BloodUnitRepository = Depends(get_blood_unit_repository)) -> BloodStockLedger:
    return BloodStockLedger(repository)


@router.get("", response_model=InventorySummary)
async def get_blood_inventory(
    access: HospitalAccessHelper = Depends(ReadAccess),
    ledger: BloodStockLedger = Depends(get_ledger)
):
    """Current available stock for each of the eight blood types"""
    return await ledger.get_inventory(access.hospital_id)


@router.put("/update")
async def update_blood_stock(
    data: StockUpdate,
    request: Request,
    access: HospitalAccessHelper = Depends(ReadAccess),
    ledger: BloodStockLedger = Depends(get_ledger),
    db=Depends(get_db)
):
    """Add a new unit or remove units from the available pool"""
    try:
        result = await ledger.update_stock(access.hospital_id, data)
    except NoAvailableUnits as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidStockOperation as e:
        raise HTTPException(status_code=400, detail=str(e))

    if data.operation == StockOperation.ADD:
        unit = result.unit
        if data.donor_id:
            await db.donors.update_one(
                {"id": data.donor_id, "hospital_id": access.hospital_id},
                {"$set": {
                    "last_donation": unit["collection_date"],
                    "medical_history.last_donation": unit["collection_date"],
                    "updated_at": iso_timestamp(datetime.now(timezone.utc))
                }}
            )
        await audit_committed_change(
            db, AuditAction.STOCK_ADD, AuditModule.INVENTORY, access.user,
            record_id=unit["id"], record_type="blood_unit",
            description=f"Added {data.quantity_change}ml of {data.blood_type.value}",
            new_values=unit, request=request
        )
    else:
        await audit_committed_change(
            db, AuditAction.STOCK_REMOVE, AuditModule.INVENTORY, access.user,
            record_type="blood_unit",
            description=f"Removed {result.units_updated} unit(s) of {data.blood_type.value} ({data.reason.value})",
            request=request,
            metadata={
                "unit_ids": result.unit_ids,
                "reason": data.reason.value,
                "quantity_change": data.quantity_change
            }
        )

    return result.model_dump(mode="json", exclude_none=True)


@router.get("/expiring", response_model=ExpiringReport)
async def get_expiring_blood(
    days: int = Query(EXPIRING_SOON_DAYS, ge=0, le=365),
    access: HospitalAccessHelper = Depends(ReadAccess),
    ledger: BloodStockLedger = Depends(get_ledger)
):
    """Available units expiring within `days` days, soonest first"""
    return await ledger.get_expiring(access.hospital_id, days)


@router.get("/units")
async def list_blood_units(
    status: Optional[UnitStatus] = None,
    blood_type: Optional[BloodType] = None,
    access: HospitalAccessHelper = Depends(ReadAccess),
    repository: BloodUnitRepository = Depends(get_blood_unit_repository)
):
    return await repository.list_units(
        access.hospital_id,
        status=status.value if status else None,
        blood_type=blood_type.value if blood_type else None
    )


@router.get("/units/{unit_id}")
async def get_blood_unit(
    unit_id: str,
    access: HospitalAccessHelper = Depends(ReadAccess),
    repository: BloodUnitRepository = Depends(get_blood_unit_repository)
):
    unit = await repository.get(access.hospital_id, unit_id)
    if not unit:
        raise HTTPException(status_code=404, detail="Blood unit not found")
    return unit


@router.get("/units/{unit_id}/qrcode")
async def get_blood_unit_qrcode(
    unit_id: str,
    access: HospitalAccessHelper = Depends(ReadAccess),
    repository: BloodUnitRepository = Depends(get_blood_unit_repository)
):
    """Bag label QR code (base64 PNG) for one unit"""
    unit = await repository.get(access.hospital_id, unit_id)
    if not unit:
        raise HTTPException(status_code=404, detail="Blood unit not found")
    payload = unit_label_payload(unit)
    return {"unit_id": unit["id"], "payload": payload, "qrcode": generate_qr_base64(payload)}

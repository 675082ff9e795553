"""
Blood Requests API
Clinician requests for blood, approved and fulfilled from the hospital's own stock.
"""
import logging
import uuid
from fastapi import APIRouter, HTTPException, Depends, Request
from pymongo import ReturnDocument
from typing import Optional
from datetime import datetime, timezone

from database import get_db
from models import (
    BloodRequest, BloodRequestCreate, RequestRejection, RequestStatus, BloodType,
    iso_timestamp
)
from models.audit import AuditAction, AuditModule
from services import BloodStockLedger, NoAvailableUnits
from services.audit_service import AuditService, audit_create, audit_committed_change
from middleware import ReadAccess, AdminAccess, HospitalAccessHelper
from routers.inventory import get_ledger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blood-requests", tags=["Blood Requests"])


def generate_request_id(now: datetime) -> str:
    return f"REQ-{now.strftime('%Y%m%d')}-{uuid.uuid4().hex[:8].upper()}"


def _match(access: HospitalAccessHelper, request_id: str, **extra) -> dict:
    return access.filter({"$or": [{"id": request_id}, {"request_id": request_id}], **extra})


async def _transition(db, access, request_id: str, expected: RequestStatus, updates: dict) -> dict:
    """Move a request out of `expected` status; only one caller can win a given transition."""
    updates["updated_at"] = iso_timestamp(datetime.now(timezone.utc))
    updated = await db.blood_requests.find_one_and_update(
        _match(access, request_id, status=expected.value),
        {"$set": updates},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER
    )
    if updated:
        return updated

    existing = await db.blood_requests.find_one(_match(access, request_id), {"_id": 0})
    if not existing:
        raise HTTPException(status_code=404, detail="Blood request not found")
    if expected == RequestStatus.APPROVED and existing["status"] == RequestStatus.PENDING.value:
        raise HTTPException(status_code=400, detail="Request must be approved before fulfillment")
    raise HTTPException(status_code=400, detail=f"Request is already {existing['status']}")


@router.post("", status_code=201)
async def create_blood_request(
    data: BloodRequestCreate,
    request: Request,
    access: HospitalAccessHelper = Depends(ReadAccess),
    db=Depends(get_db)
):
    now = datetime.now(timezone.utc)
    blood_request = BloodRequest(
        hospital_id=access.hospital_id,
        requested_by=access.user_id,
        request_id=generate_request_id(now),
        **data.model_dump()
    )
    doc = blood_request.model_dump(mode="json")
    doc["created_at"] = iso_timestamp(blood_request.created_at)
    doc["updated_at"] = iso_timestamp(blood_request.updated_at)

    await db.blood_requests.insert_one(dict(doc))
    await audit_create(
        db, AuditModule.REQUESTS, access.user, blood_request.id, "blood_request", doc, request=request
    )
    return doc


@router.get("")
async def get_blood_requests(
    status: Optional[RequestStatus] = None,
    blood_type: Optional[BloodType] = None,
    access: HospitalAccessHelper = Depends(ReadAccess),
    db=Depends(get_db)
):
    query = {}
    if status:
        query["status"] = status.value
    if blood_type:
        query["blood_type"] = blood_type.value

    requests = await db.blood_requests.find(access.filter(query), {"_id": 0}) \
        .sort("created_at", -1) \
        .to_list(1000)
    return requests


@router.get("/{request_id}")
async def get_blood_request(
    request_id: str,
    access: HospitalAccessHelper = Depends(ReadAccess),
    db=Depends(get_db)
):
    blood_request = await db.blood_requests.find_one(_match(access, request_id), {"_id": 0})
    if not blood_request:
        raise HTTPException(status_code=404, detail="Blood request not found")
    return blood_request


@router.put("/{request_id}/approve")
async def approve_request(
    request_id: str,
    request: Request,
    access: HospitalAccessHelper = Depends(AdminAccess),
    ledger: BloodStockLedger = Depends(get_ledger),
    db=Depends(get_db)
):
    """Approve a pending request when enough units are on the shelf"""
    blood_request = await db.blood_requests.find_one(_match(access, request_id), {"_id": 0})
    if not blood_request:
        raise HTTPException(status_code=404, detail="Blood request not found")
    if blood_request["status"] != RequestStatus.PENDING.value:
        raise HTTPException(status_code=400, detail=f"Request is already {blood_request['status']}")

    available = await ledger.count_available(
        access.hospital_id, BloodType(blood_request["blood_type"]), blood_request["quantity"]
    )
    if available < blood_request["quantity"]:
        raise HTTPException(
            status_code=400,
            detail=f"Insufficient stock. Available: {available}, Required: {blood_request['quantity']}"
        )

    updated = await _transition(db, access, request_id, RequestStatus.PENDING, {
        "status": RequestStatus.APPROVED.value,
        "approved_by": access.user_id,
        "approved_at": iso_timestamp(datetime.now(timezone.utc))
    })
    await AuditService.log(
        db, AuditAction.APPROVE, AuditModule.REQUESTS, access.user,
        record_id=updated["id"], record_type="blood_request", request=request
    )
    return updated


@router.put("/{request_id}/reject")
async def reject_request(
    request_id: str,
    rejection: RequestRejection,
    request: Request,
    access: HospitalAccessHelper = Depends(AdminAccess),
    db=Depends(get_db)
):
    updated = await _transition(db, access, request_id, RequestStatus.PENDING, {
        "status": RequestStatus.REJECTED.value,
        "rejected_reason": rejection.reason,
        "approved_by": access.user_id
    })
    await AuditService.log(
        db, AuditAction.REJECT, AuditModule.REQUESTS, access.user,
        record_id=updated["id"], record_type="blood_request", request=request,
        metadata={"reason": rejection.reason}
    )
    return updated


@router.put("/{request_id}/fulfill")
async def fulfill_request(
    request_id: str,
    request: Request,
    access: HospitalAccessHelper = Depends(AdminAccess),
    ledger: BloodStockLedger = Depends(get_ledger),
    db=Depends(get_db)
):
    """
    Allocate units to an approved request, soonest expiry first.

    The request is marked fulfilled before any unit is touched so that two
    concurrent calls cannot both allocate stock for it. If no unit can be
    allocated it goes back to `approved`.
    """
    blood_request = await _transition(db, access, request_id, RequestStatus.APPROVED, {
        "status": RequestStatus.FULFILLED.value,
        "fulfilled_by": access.user_id
    })

    try:
        result = await ledger.allocate_units(
            access.hospital_id, BloodType(blood_request["blood_type"]), blood_request["quantity"]
        )
    except NoAvailableUnits:
        await db.blood_requests.update_one(
            {"id": blood_request["id"]},
            {"$set": {"status": RequestStatus.APPROVED.value, "fulfilled_by": None}}
        )
        raise HTTPException(status_code=400, detail="No available blood units to fulfil this request")

    if result.units_updated < blood_request["quantity"]:
        logger.warning(
            "Request %s fulfilled short: %d of %d units",
            blood_request["request_id"], result.units_updated, blood_request["quantity"]
        )

    fulfilled = {
        "fulfilled_units": result.unit_ids,
        "fulfilled_at": iso_timestamp(datetime.now(timezone.utc))
    }
    await db.blood_requests.update_one({"id": blood_request["id"]}, {"$set": fulfilled})
    blood_request.update(fulfilled)

    await audit_committed_change(
        db, AuditAction.STOCK_REMOVE, AuditModule.INVENTORY, access.user,
        record_type="blood_unit",
        description=f"Allocated {result.units_updated} unit(s) of {blood_request['blood_type']} "
                    f"to {blood_request['request_id']}",
        request=request,
        metadata={"unit_ids": result.unit_ids, "reason": "request", "request_id": blood_request["id"]}
    )
    await audit_committed_change(
        db, AuditAction.FULFILL, AuditModule.REQUESTS, access.user,
        record_id=blood_request["id"], record_type="blood_request", request=request,
        metadata={"unit_ids": result.unit_ids}
    )
    return blood_request

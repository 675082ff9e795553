from fastapi import APIRouter, HTTPException, Depends, Request
from typing import Optional
from datetime import datetime, timezone

from database import get_db
from models import Donor, DonorCreate, DonorUpdate, BloodType, iso_timestamp
from models.audit import AuditAction, AuditModule
from services.audit_service import AuditService, audit_create, audit_update
from middleware import ReadAccess, AdminAccess, HospitalAccessHelper

router = APIRouter(prefix="/donors", tags=["Donors"])

@router.post("", status_code=201)
async def create_donor(
    data: DonorCreate,
    request: Request,
    access: HospitalAccessHelper = Depends(ReadAccess),
    db=Depends(get_db)
):
    donor = Donor(hospital_id=access.hospital_id, **data.model_dump())
    doc = donor.model_dump(mode="json")
    doc["created_at"] = iso_timestamp(donor.created_at)
    doc["updated_at"] = iso_timestamp(donor.updated_at)
    if doc.get("email"):
        doc["email"] = doc["email"].lower()

    await db.donors.insert_one(dict(doc))
    await audit_create(db, AuditModule.DONORS, access.user, donor.id, "donor", doc, request=request)
    return doc

@router.get("")
async def get_donors(
    blood_type: Optional[BloodType] = None,
    is_active: Optional[bool] = None,
    access: HospitalAccessHelper = Depends(ReadAccess),
    db=Depends(get_db)
):
    query = {}
    if blood_type:
        query["blood_type"] = blood_type.value
    if is_active is not None:
        query["is_active"] = is_active

    donors = await db.donors.find(access.filter(query), {"_id": 0}).sort("name", 1).to_list(1000)
    return donors

@router.get("/{donor_id}")
async def get_donor(
    donor_id: str,
    access: HospitalAccessHelper = Depends(ReadAccess),
    db=Depends(get_db)
):
    donor = await db.donors.find_one(access.filter({"id": donor_id}), {"_id": 0})
    if not donor:
        raise HTTPException(status_code=404, detail="Donor not found")
    return donor

@router.put("/{donor_id}")
async def update_donor(
    donor_id: str,
    updates: DonorUpdate,
    request: Request,
    access: HospitalAccessHelper = Depends(ReadAccess),
    db=Depends(get_db)
):
    update_data = updates.model_dump(mode="json", exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    existing = await db.donors.find_one(access.filter({"id": donor_id}), {"_id": 0})
    if not existing:
        raise HTTPException(status_code=404, detail="Donor not found")

    if update_data.get("email"):
        update_data["email"] = update_data["email"].lower()
    update_data["updated_at"] = iso_timestamp(datetime.now(timezone.utc))
    await db.donors.update_one(access.filter({"id": donor_id}), {"$set": update_data})

    await audit_update(
        db, AuditModule.DONORS, access.user, donor_id, "donor",
        old_values={k: existing.get(k) for k in update_data}, new_values=update_data,
        request=request
    )
    return {**existing, **update_data}

@router.delete("/{donor_id}")
async def deactivate_donor(
    donor_id: str,
    request: Request,
    access: HospitalAccessHelper = Depends(AdminAccess),
    db=Depends(get_db)
):
    """Soft delete: the donor stays on record for unit traceability"""
    result = await db.donors.update_one(
        access.filter({"id": donor_id}),
        {"$set": {"is_active": False, "updated_at": iso_timestamp(datetime.now(timezone.utc))}}
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Donor not found")

    await AuditService.log(
        db, AuditAction.DEACTIVATE, AuditModule.DONORS, access.user,
        record_id=donor_id, record_type="donor", request=request
    )
    return {"status": "success"}

from fastapi import APIRouter, HTTPException, Depends, Request
from datetime import datetime, timezone

from database import get_db
from models import HospitalUpdate, iso_timestamp
from models.audit import AuditModule
from services.audit_service import audit_update
from middleware import ReadAccess, AdminAccess, HospitalAccessHelper

router = APIRouter(prefix="/hospitals", tags=["Hospitals"])

@router.get("/me")
async def get_my_hospital(access: HospitalAccessHelper = Depends(ReadAccess), db=Depends(get_db)):
    hospital = await db.hospitals.find_one({"id": access.hospital_id}, {"_id": 0})
    if not hospital:
        raise HTTPException(status_code=404, detail="Hospital not found")
    return hospital

@router.put("/me")
async def update_my_hospital(
    updates: HospitalUpdate,
    request: Request,
    access: HospitalAccessHelper = Depends(AdminAccess),
    db=Depends(get_db)
):
    update_data = updates.model_dump(mode="json", exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")

    existing = await db.hospitals.find_one({"id": access.hospital_id}, {"_id": 0})
    if not existing:
        raise HTTPException(status_code=404, detail="Hospital not found")

    update_data["updated_at"] = iso_timestamp(datetime.now(timezone.utc))
    await db.hospitals.update_one({"id": access.hospital_id}, {"$set": update_data})

    await audit_update(
        db, AuditModule.HOSPITALS, access.user, access.hospital_id, "hospital",
        old_values={k: existing.get(k) for k in update_data}, new_values=update_data,
        request=request
    )
    return {"status": "success"}

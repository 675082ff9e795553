from fastapi import APIRouter, HTTPException, Depends, Request
from pymongo.errors import DuplicateKeyError
from typing import List
from datetime import datetime, timezone

from database import get_db
from models import User, UserCreate, UserResponse, iso_timestamp
from models.audit import AuditAction, AuditModule
from services import hash_password
from services.audit_service import AuditService, audit_create
from middleware import AdminAccess, HospitalAccessHelper

router = APIRouter(prefix="/staff", tags=["Staff"])

@router.get("", response_model=List[UserResponse])
async def get_staff(access: HospitalAccessHelper = Depends(AdminAccess), db=Depends(get_db)):
    users = await db.users.find(access.filter(), {"_id": 0, "password_hash": 0}).to_list(1000)
    return users

@router.post("", response_model=UserResponse, status_code=201)
async def create_staff(
    data: UserCreate,
    request: Request,
    access: HospitalAccessHelper = Depends(AdminAccess),
    db=Depends(get_db)
):
    email = data.email.lower()
    if await db.users.find_one({"email": email}):
        raise HTTPException(status_code=400, detail="User with this email already exists")

    user = User(
        hospital_id=access.hospital_id,
        email=email,
        name=data.name,
        role=data.role,
        password_hash=hash_password(data.password)
    )
    doc = user.model_dump(mode="json")
    doc["created_at"] = iso_timestamp(user.created_at)
    doc["updated_at"] = iso_timestamp(user.updated_at)
    try:
        await db.users.insert_one(dict(doc))
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User with this email already exists")

    await audit_create(db, AuditModule.STAFF, access.user, user.id, "user", doc, request=request)
    return doc

@router.put("/{user_id}/deactivate")
async def deactivate_staff(
    user_id: str,
    request: Request,
    access: HospitalAccessHelper = Depends(AdminAccess),
    db=Depends(get_db)
):
    if user_id == access.user_id:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")

    result = await db.users.update_one(
        access.filter({"id": user_id}),
        {"$set": {"is_active": False, "updated_at": iso_timestamp(datetime.now(timezone.utc))}}
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="User not found")

    await AuditService.log(
        db, AuditAction.DEACTIVATE, AuditModule.STAFF, access.user,
        record_id=user_id, record_type="user", request=request
    )
    return {"status": "success"}

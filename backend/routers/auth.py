import logging
from fastapi import APIRouter, HTTPException, Depends, Request
from pymongo.errors import DuplicateKeyError
from datetime import datetime, timezone

from database import get_db
from models import (
    Hospital, User, RegisterRequest, UserLogin, RefreshRequest, AuthResponse, TokenPair,
    UserResponse, iso_timestamp
)
from models.audit import AuditAction, AuditModule
from services import (
    get_current_user, hash_password, verify_password, create_tokens,
    decode_refresh_token, InvalidToken
)
from services.audit_service import AuditService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _user_response(user: dict, hospital: dict) -> dict:
    return {
        "id": user["id"],
        "email": user["email"],
        "name": user["name"],
        "role": user["role"],
        "is_active": user.get("is_active", True),
        "hospital": {
            "id": hospital["id"],
            "name": hospital["name"],
            "license_number": hospital["license_number"]
        }
    }


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(data: RegisterRequest, request: Request, db=Depends(get_db)):
    """Register a hospital together with its first administrator"""
    if await db.hospitals.find_one({"license_number": data.hospital.license_number}):
        raise HTTPException(status_code=400, detail="Hospital with this license number already exists")

    email = data.user.email.lower()
    if await db.users.find_one({"email": email}):
        raise HTTPException(status_code=400, detail="User with this email already exists")

    hospital = Hospital(**data.hospital.model_dump(mode="json"))
    hospital_doc = hospital.model_dump(mode="json")
    hospital_doc["created_at"] = iso_timestamp(hospital.created_at)
    hospital_doc["updated_at"] = iso_timestamp(hospital.updated_at)
    try:
        await db.hospitals.insert_one(dict(hospital_doc))
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="Hospital with this license number already exists")

    now = datetime.now(timezone.utc)
    user = User(
        hospital_id=hospital.id,
        email=email,
        name=data.user.name,
        role=data.user.role,
        password_hash=hash_password(data.user.password),
        last_login=now
    )
    user_doc = user.model_dump(mode="json")
    for key in ("last_login", "created_at", "updated_at"):
        user_doc[key] = iso_timestamp(getattr(user, key))
    try:
        await db.users.insert_one(dict(user_doc))
    except DuplicateKeyError:
        # the hospital was created for this registration only
        await db.hospitals.delete_one({"id": hospital.id})
        raise HTTPException(status_code=400, detail="User with this email already exists")

    await AuditService.log(
        db, AuditAction.REGISTER, AuditModule.AUTH, user_doc,
        record_id=hospital.id, record_type="hospital",
        description=f"Registered hospital {hospital.name}",
        request=request
    )
    logger.info("Registered hospital %s (%s)", hospital.id, hospital.license_number)

    return {"tokens": create_tokens(user_doc), "user": _user_response(user_doc, hospital_doc)}


@router.post("/login", response_model=AuthResponse)
async def login(data: UserLogin, request: Request, db=Depends(get_db)):
    email = data.email.lower()
    user = await db.users.find_one({"email": email}, {"_id": 0})
    if not user or not verify_password(data.password, user.get("password_hash", "")):
        await AuditService.log(
            db, AuditAction.LOGIN_FAILED, AuditModule.AUTH,
            hospital_id=user["hospital_id"] if user else None,
            description=f"Failed login for {email}",
            request=request
        )
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account is deactivated")

    hospital = await db.hospitals.find_one({"id": user["hospital_id"]}, {"_id": 0})
    if not hospital:
        raise HTTPException(status_code=404, detail="Hospital not found")

    await db.users.update_one(
        {"id": user["id"]},
        {"$set": {"last_login": iso_timestamp(datetime.now(timezone.utc))}}
    )
    await AuditService.log(db, AuditAction.LOGIN, AuditModule.AUTH, user, request=request)

    return {"tokens": create_tokens(user), "user": _user_response(user, hospital)}


@router.post("/refresh", response_model=TokenPair)
async def refresh_token(data: RefreshRequest, db=Depends(get_db)):
    try:
        payload = decode_refresh_token(data.refresh_token)
    except InvalidToken:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    user = await db.users.find_one({"id": payload["sub"]}, {"_id": 0})
    if not user or not user.get("is_active", True):
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    return create_tokens(user)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: dict = Depends(get_current_user), db=Depends(get_db)):
    user = await db.users.find_one({"id": current_user["id"]}, {"_id": 0})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    hospital = await db.hospitals.find_one({"id": user["hospital_id"]}, {"_id": 0})
    if not hospital:
        raise HTTPException(status_code=404, detail="Hospital not found")
    return _user_response(user, hospital)

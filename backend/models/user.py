from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator
from typing import Optional
from datetime import datetime, timezone
import uuid
from .enums import StaffRole
from .hospital import HospitalCreate, HospitalSummary

class User(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    hospital_id: str
    email: str
    name: str
    role: StaffRole
    password_hash: str
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("email")
    @classmethod
    def normalise_email(cls, value: str) -> str:
        return value.strip().lower()

class UserCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    role: StaffRole = StaffRole.ADMINISTRATOR

class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)

class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)

class RegisterRequest(BaseModel):
    hospital: HospitalCreate
    user: UserCreate

class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: StaffRole
    is_active: bool = True
    hospital: Optional[HospitalSummary] = None

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

class AuthResponse(BaseModel):
    tokens: TokenPair
    user: UserResponse

from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Optional
from datetime import datetime, timezone
import uuid

class Address(BaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(pattern=r"^\d{6}$")
    country: str = "India"

class Hospital(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    license_number: str
    address: Address
    contact_email: str
    contact_phone: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class HospitalCreate(BaseModel):
    name: str = Field(min_length=1)
    license_number: str = Field(min_length=1)
    address: Address
    contact_email: EmailStr
    contact_phone: str = Field(pattern=r"^[6-9]\d{9}$")

class HospitalUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    address: Optional[Address] = None
    contact_email: Optional[EmailStr] = None
    contact_phone: Optional[str] = Field(default=None, pattern=r"^[6-9]\d{9}$")

class HospitalSummary(BaseModel):
    id: str
    name: str
    license_number: str

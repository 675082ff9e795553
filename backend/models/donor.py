from pydantic import BaseModel, Field, ConfigDict, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime, date, timezone
import uuid
from .enums import BloodType

MINIMUM_DONOR_AGE = 18


def _check_donor_age(value: Optional[date]) -> Optional[date]:
    if value is None:
        return value
    today = date.today()
    age = today.year - value.year - ((today.month, today.day) < (value.month, value.day))
    if age < MINIMUM_DONOR_AGE:
        raise ValueError(f"Donor must be at least {MINIMUM_DONOR_AGE} years old")
    return value

class MedicalHistory(BaseModel):
    """Self-reported history captured at registration"""
    conditions: List[str] = []
    medications: List[str] = []
    allergies: List[str] = []
    last_donation: Optional[str] = None

class Donor(BaseModel):
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    hospital_id: str
    name: str
    email: Optional[str] = None
    phone: str
    blood_type: BloodType
    date_of_birth: date
    medical_history: MedicalHistory = Field(default_factory=MedicalHistory)
    is_active: bool = True
    last_donation: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class DonorCreate(BaseModel):
    name: str = Field(min_length=1)
    email: Optional[EmailStr] = None
    phone: str = Field(min_length=7, max_length=20)
    blood_type: BloodType
    date_of_birth: date
    medical_history: MedicalHistory = Field(default_factory=MedicalHistory)

    @field_validator("date_of_birth")
    @classmethod
    def check_age(cls, value):
        return _check_donor_age(value)

class DonorUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=7, max_length=20)
    blood_type: Optional[BloodType] = None
    date_of_birth: Optional[date] = None
    medical_history: Optional[MedicalHistory] = None
    is_active: Optional[bool] = None

    @field_validator("date_of_birth")
    @classmethod
    def check_age(cls, value):
        return _check_donor_age(value)

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime, date, timezone
import uuid
from .enums import BloodType, RequestStatus, RequestUrgency

# Largest number of units one request may ask for
MAX_REQUEST_UNITS = 50

class BloodRequest(BaseModel):
    """A clinician's request for units of one blood type, filled from the hospital's own stock"""
    model_config = ConfigDict(extra="ignore")
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    request_id: str = ""
    hospital_id: str
    requested_by: str
    patient_name: str
    blood_type: BloodType
    quantity: int  # units
    urgency: RequestUrgency = RequestUrgency.MEDIUM
    reason: str
    required_by: Optional[date] = None
    status: RequestStatus = RequestStatus.PENDING
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    rejected_reason: Optional[str] = None
    fulfilled_by: Optional[str] = None
    fulfilled_at: Optional[str] = None
    fulfilled_units: List[str] = []
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class BloodRequestCreate(BaseModel):
    patient_name: str = Field(min_length=1)
    blood_type: BloodType
    quantity: int = Field(ge=1, le=MAX_REQUEST_UNITS)
    urgency: RequestUrgency = RequestUrgency.MEDIUM
    reason: str = Field(min_length=1)
    required_by: Optional[date] = None

class RequestRejection(BaseModel):
    reason: str = Field(min_length=1)

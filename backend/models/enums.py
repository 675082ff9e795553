from enum import Enum

class StaffRole(str, Enum):
    ADMINISTRATOR = "administrator"
    STAFF = "staff"
    MEDICAL_PROFESSIONAL = "medical_professional"

class BloodType(str, Enum):
    A_POSITIVE = "A+"
    A_NEGATIVE = "A-"
    B_POSITIVE = "B+"
    B_NEGATIVE = "B-"
    AB_POSITIVE = "AB+"
    AB_NEGATIVE = "AB-"
    O_POSITIVE = "O+"
    O_NEGATIVE = "O-"

class UnitStatus(str, Enum):
    AVAILABLE = "available"
    ALLOCATED = "allocated"
    EXPIRED = "expired"
    DISPOSED = "disposed"

class StockOperation(str, Enum):
    ADD = "add"
    REMOVE = "remove"

class StockReason(str, Enum):
    DONATION = "donation"
    REQUEST = "request"
    EXPIRED = "expired"
    DISPOSED = "disposed"


# Terminal status a unit moves to when removed for a given reason
REMOVAL_STATUS = {
    StockReason.REQUEST: UnitStatus.ALLOCATED,
    StockReason.EXPIRED: UnitStatus.EXPIRED,
    StockReason.DISPOSED: UnitStatus.DISPOSED,
}

class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FULFILLED = "fulfilled"

class RequestUrgency(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

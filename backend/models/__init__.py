from .enums import (
    StaffRole, BloodType, UnitStatus, StockOperation, StockReason, REMOVAL_STATUS,
    RequestStatus, RequestUrgency
)
from .hospital import Hospital, HospitalCreate, HospitalUpdate, HospitalSummary, Address
from .user import (
    User, UserCreate, UserLogin, UserResponse, RefreshRequest, RegisterRequest,
    TokenPair, AuthResponse
)
from .donor import Donor, DonorCreate, DonorUpdate, MedicalHistory
from .request import BloodRequest, BloodRequestCreate, RequestRejection
from .blood_unit import (
    BloodUnit, StockUpdate, InventoryLevel, InventorySummary, ExpiringReport,
    StockUpdateResult, iso_timestamp
)
from .audit import AuditLog, AuditAction, AuditModule, AuditLogResponse

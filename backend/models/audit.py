"""
Audit Log Models
Append-only trail of stock movements and account actions.
"""
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from typing import Optional, List
from enum import Enum
import uuid


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"

    # Auth Actions
    REGISTER = "register"
    LOGIN = "login"
    LOGIN_FAILED = "login_failed"

    # Stock Actions
    STOCK_ADD = "stock_add"
    STOCK_REMOVE = "stock_remove"

    # Staff / donor Actions
    DEACTIVATE = "deactivate"

    # Request Actions
    APPROVE = "approve"
    REJECT = "reject"
    FULFILL = "fulfill"


class AuditModule(str, Enum):
    AUTH = "auth"
    HOSPITALS = "hospitals"
    STAFF = "staff"
    DONORS = "donors"
    INVENTORY = "inventory"
    REQUESTS = "requests"


class AuditLog(BaseModel):
    """Audit log entry for a single action."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))

    hospital_id: Optional[str] = None

    # User info
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    user_role: Optional[str] = None

    # Action details
    action: AuditAction
    module: AuditModule
    record_id: Optional[str] = None
    record_type: Optional[str] = None  # e.g., "blood_unit", "donor", "blood_request"
    description: Optional[str] = None

    # Data changes
    old_values: Optional[dict] = None
    new_values: Optional[dict] = None

    # Request info
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    request_method: Optional[str] = None
    request_path: Optional[str] = None

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Optional[dict] = None


class AuditLogResponse(BaseModel):
    """Response model for audit log queries."""
    logs: List[dict]
    total: int
    page: int
    page_size: int
    has_more: bool

"""
Audit Logging Service
Writes audit entries for stock movements and account actions.
"""
import logging
from typing import Optional
from fastapi import Request
from pymongo.errors import PyMongoError

from models import iso_timestamp
from models.audit import AuditLog, AuditAction, AuditModule

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = {
    "password", "password_hash", "token", "access_token", "refresh_token", "secret"
}


class AuditService:
    """Creates audit log documents in the `audit_logs` collection."""

    @staticmethod
    async def log(
        db,
        action: AuditAction,
        module: AuditModule,
        user: Optional[dict] = None,
        record_id: Optional[str] = None,
        record_type: Optional[str] = None,
        description: Optional[str] = None,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        request: Optional[Request] = None,
        hospital_id: Optional[str] = None,
        metadata: Optional[dict] = None
    ) -> str:
        """
        Create an audit log entry.

        Args:
            db: Database handle (from get_db)
            action: The action being performed
            module: The module where action occurred
            user: Current user dict (from get_current_user)
            record_id: ID of the affected record
            record_type: Type of record (e.g., "blood_unit", "donor")
            description: Human-readable description
            old_values: Previous values (for updates)
            new_values: New values (for creates/updates)
            request: FastAPI request object for IP/user-agent
            hospital_id: Override hospital_id (e.g. during registration)
            metadata: Additional metadata

        Returns:
            ID of created audit log
        """
        ip_address = None
        user_agent = None
        request_method = None
        request_path = None

        if request:
            ip_address = request.client.host if request.client else None
            user_agent = request.headers.get("user-agent", "")[:500]
            request_method = request.method
            request_path = str(request.url.path)

        audit_log = AuditLog(
            hospital_id=hospital_id or (user.get("hospital_id") if user else None),
            user_id=user.get("id") if user else None,
            user_email=user.get("email") if user else None,
            user_role=user.get("role") if user else None,
            action=action,
            module=module,
            record_id=record_id,
            record_type=record_type,
            description=description,
            old_values=AuditService._clean_sensitive_data(old_values),
            new_values=AuditService._clean_sensitive_data(new_values),
            ip_address=ip_address,
            user_agent=user_agent,
            request_method=request_method,
            request_path=request_path,
            metadata=metadata
        )

        doc = audit_log.model_dump(mode="json")
        doc["timestamp"] = iso_timestamp(audit_log.timestamp)

        await db.audit_logs.insert_one(doc)
        logger.debug("Audit %s/%s recorded for %s", module.value, action.value, record_id)

        return audit_log.id

    @staticmethod
    def _clean_sensitive_data(data: Optional[dict]) -> Optional[dict]:
        """Remove sensitive fields from audit data."""
        if not data:
            return None

        cleaned = {}
        for key, value in data.items():
            if key.lower() in SENSITIVE_FIELDS:
                cleaned[key] = "[REDACTED]"
            elif isinstance(value, dict):
                cleaned[key] = AuditService._clean_sensitive_data(value)
            else:
                cleaned[key] = value

        return cleaned


async def audit_create(db, module: AuditModule, user: dict, record_id: str, record_type: str, new_values: dict, **kwargs):
    """Log a CREATE action."""
    return await AuditService.log(
        db, AuditAction.CREATE, module, user,
        record_id=record_id, record_type=record_type,
        new_values=new_values,
        description=f"Created {record_type} {record_id}",
        **kwargs
    )


async def audit_update(db, module: AuditModule, user: dict, record_id: str, record_type: str, old_values: dict, new_values: dict, **kwargs):
    """Log an UPDATE action."""
    return await AuditService.log(
        db, AuditAction.UPDATE, module, user,
        record_id=record_id, record_type=record_type,
        old_values=old_values, new_values=new_values,
        description=f"Updated {record_type} {record_id}",
        **kwargs
    )


async def audit_committed_change(db, action: AuditAction, module: AuditModule, user: Optional[dict], **kwargs):
    """
    Log an action whose state change is already persisted.

    Stock movements cannot be undone, so a failed audit write is logged
    rather than turned into an error the caller might retry.
    """
    try:
        return await AuditService.log(db, action, module, user, **kwargs)
    except PyMongoError:
        logger.exception(
            "Audit write failed for %s/%s (record %s); change already applied",
            module.value, action.value, kwargs.get("record_id")
        )
        return None

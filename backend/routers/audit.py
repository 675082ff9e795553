from fastapi import APIRouter, Depends, Query
from typing import Optional

from database import get_db
from models.audit import AuditAction, AuditModule, AuditLogResponse
from middleware import AdminAccess, HospitalAccessHelper

router = APIRouter(prefix="/audit-logs", tags=["Audit Logs"])

@router.get("", response_model=AuditLogResponse)
async def get_audit_logs(
    module: Optional[AuditModule] = None,
    action: Optional[AuditAction] = None,
    record_id: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    access: HospitalAccessHelper = Depends(AdminAccess),
    db=Depends(get_db)
):
    """Audit trail for the caller's hospital, newest first"""
    query = {}
    if module:
        query["module"] = module.value
    if action:
        query["action"] = action.value
    if record_id:
        query["record_id"] = record_id
    query = access.filter(query)

    total = await db.audit_logs.count_documents(query)
    logs = await db.audit_logs.find(query, {"_id": 0}) \
        .sort("timestamp", -1) \
        .skip((page - 1) * page_size) \
        .limit(page_size) \
        .to_list(page_size)

    return {
        "logs": logs,
        "total": total,
        "page": page,
        "page_size": page_size,
        "has_more": page * page_size < total
    }

"""
Hospital-scoped access control.
Every authenticated request acts inside exactly one hospital; these
dependencies expose that scope and enforce role requirements.
"""
from typing import Optional

from fastapi import Depends, HTTPException

from models import StaffRole
from services import get_current_user


class HospitalAccessHelper:
    """Request-scoped view of the caller and their hospital."""

    def __init__(self, user: dict):
        self.user = user
        self.user_id = user["id"]
        self.hospital_id = user["hospital_id"]
        self.role = user.get("role")

    def filter(self, query: Optional[dict] = None) -> dict:
        """Restrict a Mongo query to the caller's hospital."""
        scoped = dict(query or {})
        scoped["hospital_id"] = self.hospital_id
        return scoped


class RoleAccess:
    """Dependency that admits only the given roles."""

    def __init__(self, *roles: StaffRole):
        self.roles = {role.value for role in roles}

    async def __call__(self, current_user: dict = Depends(get_current_user)) -> HospitalAccessHelper:
        if self.roles and current_user.get("role") not in self.roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return HospitalAccessHelper(current_user)


ReadAccess = RoleAccess()
AdminAccess = RoleAccess(StaffRole.ADMINISTRATOR)

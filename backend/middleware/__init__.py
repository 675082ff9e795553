"""
Middleware package for the Hospital Blood Bank API.
"""
from .hospital_access import (
    HospitalAccessHelper,
    RoleAccess,
    ReadAccess,
    AdminAccess
)

__all__ = [
    'HospitalAccessHelper',
    'RoleAccess',
    'ReadAccess',
    'AdminAccess'
]

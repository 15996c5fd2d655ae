"""Repository modules - Data access layer"""
from functools import lru_cache
from typing import Tuple, Union

from ..config.settings import settings
from .staff_repo import StaffRepository
from .audit_repo import AuditRepository
from .memory_store import MemoryStaffRepository, MemoryAuditRepository

StaffStore = Union[StaffRepository, MemoryStaffRepository]
AuditStore = Union[AuditRepository, MemoryAuditRepository]


@lru_cache()
def get_repositories() -> Tuple[StaffStore, AuditStore]:
    """Build the configured repository pair (cached per process)"""
    if settings.store_backend.lower() == "memory":
        return MemoryStaffRepository(), MemoryAuditRepository()
    return StaffRepository(), AuditRepository()


__all__ = [
    "StaffRepository",
    "AuditRepository",
    "MemoryStaffRepository",
    "MemoryAuditRepository",
    "StaffStore",
    "AuditStore",
    "get_repositories",
]

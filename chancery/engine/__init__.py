"""Succession Engine - Staff account state machine and seat policies"""
from .succession_engine import SuccessionEngine
from .permission_guard import PermissionGuard
from .transition_resolver import TransitionResolver
from .succession_policy import (
    SuccessionPolicy, ExclusiveSingletonPolicy, CoexistingPolicy, get_policy
)
from .audit_writer import AuditWriter

__all__ = [
    "SuccessionEngine",
    "PermissionGuard",
    "TransitionResolver",
    "SuccessionPolicy",
    "ExclusiveSingletonPolicy",
    "CoexistingPolicy",
    "get_policy",
    "AuditWriter",
]

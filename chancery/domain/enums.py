"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class StaffRole(str, Enum):
    """Role of a staff account, fixed at registration"""
    CHANCELLOR = "chancellor"
    PARISH_STAFF = "parish_staff"


class StaffStatus(str, Enum):
    """Lifecycle status of a staff account"""
    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"  # Suspended; still occupies the seat
    ARCHIVED = "archived"  # Terminal
    REJECTED = "rejected"  # Terminal


class ParishPosition(str, Enum):
    """Seat within a parish"""
    SECRETARY = "secretary"
    PRIEST = "priest"


class TermStatus(str, Enum):
    """Status of a term ledger entry"""
    ACTIVE = "active"
    COMPLETED = "completed"
    SUSPENDED = "suspended"


class SuccessionPolicyKind(str, Enum):
    """How approving a successor affects the current occupants of a seat"""
    EXCLUSIVE_SINGLETON = "exclusive_singleton"  # One occupant; approver steps down
    COEXISTING = "coexisting"                    # Many occupants; approver stays


class WorkflowAction(str, Enum):
    """Commands accepted by the succession engine"""
    APPROVE = "approve"
    REJECT = "reject"
    END_TERM = "end_term"
    DEACTIVATE = "deactivate"
    REACTIVATE = "reactivate"


class ResourceType(str, Enum):
    """Categories of audited resources"""
    USER = "user"
    TERM = "term"
    SYSTEM = "system"


class AuditAction(str, Enum):
    """Audited actions for staff account lifecycle"""
    # Chancellor account lifecycle
    CHANCELLOR_REGISTER = "chancellor.register"
    CHANCELLOR_APPROVE = "chancellor.approve"
    CHANCELLOR_REJECT = "chancellor.reject"
    CHANCELLOR_ARCHIVE = "chancellor.archive"      # Self-archival on successor approval
    CHANCELLOR_TERM_END = "chancellor.term_end"

    # Parish staff account lifecycle
    PARISH_STAFF_REGISTER = "parish_staff.register"
    PARISH_STAFF_APPROVE = "parish_staff.approve"
    PARISH_STAFF_REJECT = "parish_staff.reject"
    PARISH_STAFF_TERM_END = "parish_staff.term_end"

    # Reversible suspension
    USER_DEACTIVATE = "user.deactivate"
    USER_REACTIVATE = "user.reactivate"


# Per-role audit action lookup used by the engine and registration service
ROLE_AUDIT_ACTIONS = {
    StaffRole.CHANCELLOR: {
        "register": AuditAction.CHANCELLOR_REGISTER,
        "approve": AuditAction.CHANCELLOR_APPROVE,
        "reject": AuditAction.CHANCELLOR_REJECT,
        "term_end": AuditAction.CHANCELLOR_TERM_END,
    },
    StaffRole.PARISH_STAFF: {
        "register": AuditAction.PARISH_STAFF_REGISTER,
        "approve": AuditAction.PARISH_STAFF_APPROVE,
        "reject": AuditAction.PARISH_STAFF_REJECT,
        "term_end": AuditAction.PARISH_STAFF_TERM_END,
    },
}

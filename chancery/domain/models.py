"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict, model_validator

from .enums import (
    StaffRole, StaffStatus, ParishPosition, TermStatus, SuccessionPolicyKind,
    AuditAction, ResourceType
)


# ============================================================================
# Actor
# ============================================================================

class ActorContext(BaseModel):
    """Current actor context from JWT token"""
    model_config = ConfigDict(extra="forbid")

    staff_id: str = Field(..., description="Identity provider user ID")
    email: EmailStr = Field(..., description="User email")
    display_name: str = Field(..., description="User display name")
    roles: List[str] = Field(default_factory=list, description="Custom claims roles")

    def has_role(self, role: str) -> bool:
        """Check for a custom-claims role (case-insensitive)"""
        return role.lower() in (r.lower() for r in self.roles)


# ============================================================================
# Scope & Accounts
# ============================================================================

class StaffScope(BaseModel):
    """Organisational binding of an account (the seat it can occupy)"""
    model_config = ConfigDict(extra="forbid")

    diocese: str = Field(..., description="Diocese key, e.g. 'tagbilaran'")
    parish_id: Optional[str] = Field(None, description="Parish ID for parish staff")
    parish_name: Optional[str] = Field(None, description="Parish display name")
    municipality: Optional[str] = Field(None, description="Municipality of the parish")
    position: Optional[ParishPosition] = Field(None, description="Seat within the parish")

    def same_diocese(self, other: "StaffScope") -> bool:
        return self.diocese == other.diocese

    def same_parish(self, other: "StaffScope") -> bool:
        return self.same_diocese(other) and self.parish_id is not None and self.parish_id == other.parish_id

    def label(self) -> str:
        """Human readable seat label"""
        if self.parish_id:
            parish = self.parish_name or self.parish_id
            position = self.position.value if self.position else "staff"
            return f"{parish} ({position}), {self.diocese}"
        return f"Diocese of {self.diocese}"


class StaffAccount(BaseModel):
    """One human occupant-in-waiting or occupant of a seat"""
    model_config = ConfigDict(extra="ignore")

    staff_id: str = Field(..., description="Identity provider user ID (immutable)")
    email: EmailStr
    name: str
    phone_number: Optional[str] = None
    role: StaffRole
    scope: StaffScope
    status: StaffStatus = StaffStatus.PENDING
    registration_source: str = Field(default="self")

    term_start: Optional[datetime] = None
    term_end: Optional[datetime] = None

    approved_by: Optional[str] = None
    approved_by_name: Optional[str] = None
    approved_at: Optional[datetime] = None
    approval_notes: Optional[str] = None

    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    deactivated_by: Optional[str] = None
    deactivated_at: Optional[datetime] = None
    deactivation_reason: Optional[str] = None
    reactivated_by: Optional[str] = None
    reactivated_at: Optional[datetime] = None

    archived_at: Optional[datetime] = None
    archived_reason: Optional[str] = None

    registered_at: datetime
    updated_at: Optional[datetime] = None
    version: int = Field(default=1, description="Incremented on every write")

    @model_validator(mode="after")
    def _check_term_fields(self) -> "StaffAccount":
        if self.status == StaffStatus.PENDING and (self.term_start or self.term_end):
            raise ValueError("pending accounts cannot carry term dates")
        if self.status in (StaffStatus.ACTIVE, StaffStatus.INACTIVE) and self.term_start is None:
            raise ValueError(f"{self.status.value} accounts require term_start")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in (StaffStatus.ARCHIVED, StaffStatus.REJECTED)

    @property
    def occupies_seat(self) -> bool:
        """Active and suspended accounts both hold their seat"""
        return self.status in (StaffStatus.ACTIVE, StaffStatus.INACTIVE)


# ============================================================================
# Term Ledger
# ============================================================================

class TermStats(BaseModel):
    """Aggregate audit counts for one term span"""
    model_config = ConfigDict(extra="forbid")

    total_actions: int = 0
    action_breakdown: Dict[str, int] = Field(default_factory=dict)
    last_action_at: Optional[datetime] = None
    period_start: datetime
    period_end: datetime


class TermRecord(BaseModel):
    """Point-in-time snapshot of one occupancy span (append-mostly)"""
    model_config = ConfigDict(extra="ignore")

    term_id: str
    staff_id: str
    staff_name: str
    staff_email: EmailStr
    role: StaffRole
    scope: StaffScope
    term_start: datetime
    term_end: Optional[datetime] = None
    status: TermStatus = TermStatus.ACTIVE
    end_reason: Optional[str] = None
    approved_successor_id: Optional[str] = None
    approved_successor_name: Optional[str] = None
    stats: Optional[TermStats] = None
    created_at: datetime
    closed_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status == TermStatus.ACTIVE and self.term_end is None


# ============================================================================
# Audit
# ============================================================================

class AuditActor(BaseModel):
    """Who performed an audited action, as known at the time"""
    model_config = ConfigDict(extra="forbid")

    staff_id: str
    email: str
    name: str
    role: Optional[str] = None
    diocese: Optional[str] = None


class FieldChange(BaseModel):
    """Record of a specific field change"""
    model_config = ConfigDict(extra="forbid")

    field: str
    old_value: Any = None
    new_value: Any = None


class AuditEvent(BaseModel):
    """Audit event (append-only)"""
    model_config = ConfigDict(extra="forbid")

    audit_event_id: str
    actor: AuditActor
    action: AuditAction
    resource_type: ResourceType
    resource_id: str
    resource_name: Optional[str] = None
    changes: List[FieldChange] = Field(default_factory=list)
    diocese: Optional[str] = None
    parish_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    correlation_id: Optional[str] = None


# ============================================================================
# Requests & Outcomes
# ============================================================================

class RegistrationRequest(BaseModel):
    """Self-registration form data"""
    model_config = ConfigDict(extra="forbid")

    email: str
    password: str = Field(..., repr=False)
    name: str
    phone_number: Optional[str] = None
    role: StaffRole
    scope: StaffScope


class RegistrationResult(BaseModel):
    """Outcome of a successful registration"""
    staff_id: str
    status: StaffStatus = StaffStatus.PENDING
    message: str


class ApprovalOutcome(BaseModel):
    """Which accounts and terms an approval touched"""
    approved_staff_id: str
    policy: SuccessionPolicyKind
    opened_term_id: str
    archived_staff_ids: List[str] = Field(default_factory=list)
    closed_term_ids: List[str] = Field(default_factory=list)
    sessions_revoked: List[str] = Field(default_factory=list)
    message: str

    @property
    def approver_archived(self) -> bool:
        return bool(self.archived_staff_ids)


class TransitionResult(BaseModel):
    """Outcome of reject / end_term / toggle_active"""
    staff_id: str
    previous_status: StaffStatus
    new_status: StaffStatus
    closed_term_id: Optional[str] = None
    message: str

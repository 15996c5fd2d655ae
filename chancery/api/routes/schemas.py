"""
Staff & Seat Schemas

Request and response models for staff API endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ...domain.models import StaffAccount, StaffScope, TermRecord, TermStats
from ...domain.enums import ParishPosition, StaffRole, StaffStatus, TermStatus
from ...utils.time import term_length_days


# =============================================================================
# Registration Schemas
# =============================================================================

class RegisterRequest(BaseModel):
    """Self-registration form"""
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)
    name: str = Field(..., min_length=1, max_length=200)
    phone_number: Optional[str] = Field(None, max_length=32)
    role: StaffRole
    diocese: str = Field(..., min_length=1, max_length=64)
    parish_id: Optional[str] = Field(None, max_length=128)
    parish_name: Optional[str] = Field(None, max_length=200)
    municipality: Optional[str] = Field(None, max_length=200)
    position: Optional[ParishPosition] = None

    def scope(self) -> StaffScope:
        return StaffScope(
            diocese=self.diocese,
            parish_id=self.parish_id,
            parish_name=self.parish_name,
            municipality=self.municipality,
            position=self.position,
        )


# =============================================================================
# Action Schemas
# =============================================================================

class ApproveRequest(BaseModel):
    """Request to approve a pending registration"""
    notes: Optional[str] = Field(None, max_length=2000)


class ReasonRequest(BaseModel):
    """Request carrying a mandatory reason (reject, end term)"""
    reason: str = Field(..., min_length=1, max_length=2000)


class StatusChangeRequest(BaseModel):
    """Request to suspend or restore an account"""
    status: StaffStatus = Field(..., description="'inactive' to suspend, 'active' to restore")
    reason: Optional[str] = Field(None, max_length=2000)


# =============================================================================
# Response Schemas
# =============================================================================

class StaffAccountResponse(BaseModel):
    """Public view of a staff account"""
    staff_id: str
    email: str
    name: str
    phone_number: Optional[str] = None
    role: StaffRole
    scope: StaffScope
    status: StaffStatus
    term_start: Optional[datetime] = None
    term_end: Optional[datetime] = None
    approved_by: Optional[str] = None
    approved_by_name: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    deactivation_reason: Optional[str] = None
    archived_reason: Optional[str] = None
    registered_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_account(cls, account: StaffAccount) -> "StaffAccountResponse":
        return cls(**account.model_dump(include=set(cls.model_fields)))


class TermRecordResponse(BaseModel):
    """One entry of the term ledger"""
    term_id: str
    staff_id: str
    staff_name: str
    staff_email: str
    role: StaffRole
    scope: StaffScope
    term_start: datetime
    term_end: Optional[datetime] = None
    status: TermStatus
    end_reason: Optional[str] = None
    approved_successor_id: Optional[str] = None
    approved_successor_name: Optional[str] = None
    stats: Optional[TermStats] = None
    days_served: int = 0

    @classmethod
    def from_term(cls, term: TermRecord) -> "TermRecordResponse":
        data = term.model_dump(include=set(cls.model_fields))
        data["days_served"] = term_length_days(term.term_start, term.term_end)
        return cls(**data)


class StaffListResponse(BaseModel):
    """List of staff accounts"""
    items: List[StaffAccountResponse]
    total: int


class TermListResponse(BaseModel):
    """List of term records"""
    items: List[TermRecordResponse]
    total: int


class SeatOccupantResponse(BaseModel):
    """Current holder of a singleton seat (None when vacant)"""
    diocese: str
    occupant: Optional[StaffAccountResponse] = None
    vacant: bool


class ActivityResponse(BaseModel):
    """Audit events for a staff member"""
    items: List[Dict[str, Any]]
    total: int

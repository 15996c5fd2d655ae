"""
Staff Routes

Registration and lifecycle commands for staff accounts:
- Register (public)
- Approve / Reject pending registrations
- End term
- Suspend / restore
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from ..deps import (
    get_current_user_dep, get_correlation_id_dep, get_engine_dep,
    get_query_dep, get_registration_dep
)
from ...domain.models import (
    ActorContext, ApprovalOutcome, RegistrationRequest, RegistrationResult, TransitionResult
)
from ...domain.errors import ValidationError
from ...engine.succession_engine import SuccessionEngine
from ...services.query_service import QueryService
from ...services.registration_service import RegistrationService
from ...utils.logger import get_logger
from ...utils.time import parse_iso
from .schemas import (
    ActivityResponse, ApproveRequest, ReasonRequest, RegisterRequest,
    StaffAccountResponse, StatusChangeRequest
)

logger = get_logger(__name__)
router = APIRouter()


@router.post("/register", response_model=RegistrationResult, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    correlation_id: str = Depends(get_correlation_id_dep),
    service: RegistrationService = Depends(get_registration_dep)
):
    """
    Self-register as chancellor or parish staff.

    Creates a sign-in identity and a pending account awaiting approval.
    """
    return service.register(RegistrationRequest(
        email=request.email,
        password=request.password,
        name=request.name,
        phone_number=request.phone_number,
        role=request.role,
        scope=request.scope(),
    ))


@router.get("/{staff_id}", response_model=StaffAccountResponse)
async def get_staff(
    staff_id: str,
    actor: ActorContext = Depends(get_current_user_dep),
    queries: QueryService = Depends(get_query_dep)
):
    """Current state of a staff account"""
    return StaffAccountResponse.from_account(queries.get_account(staff_id))


@router.get("/{staff_id}/activity", response_model=ActivityResponse)
async def get_staff_activity(
    staff_id: str,
    since: Optional[str] = Query(None, description="ISO 8601 lower bound"),
    until: Optional[str] = Query(None, description="ISO 8601 upper bound"),
    limit: int = Query(100, ge=1, le=500),
    actor: ActorContext = Depends(get_current_user_dep),
    queries: QueryService = Depends(get_query_dep)
):
    """Audit events performed by a staff member, newest first"""
    try:
        window = [parse_iso(v) if v else None for v in (since, until)]
    except ValueError as e:
        raise ValidationError(f"Invalid date: {e}", details={"since": since, "until": until})
    events = queries.actor_activity(staff_id, since=window[0], until=window[1], limit=limit)
    return ActivityResponse(
        items=[e.model_dump(mode="json") for e in events],
        total=len(events)
    )


@router.post("/{staff_id}/approve", response_model=ApprovalOutcome)
async def approve(
    staff_id: str,
    request: ApproveRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    engine: SuccessionEngine = Depends(get_engine_dep)
):
    """
    Approve a pending registration.

    Approving a chancellor successor ends the approving chancellor's term.
    """
    return engine.approve(actor, staff_id, notes=request.notes)


@router.post("/{staff_id}/reject", response_model=TransitionResult)
async def reject(
    staff_id: str,
    request: ReasonRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    engine: SuccessionEngine = Depends(get_engine_dep)
):
    """Reject a pending registration"""
    return engine.reject(actor, staff_id, request.reason)


@router.post("/{staff_id}/end-term", response_model=TransitionResult)
async def end_term(
    staff_id: str,
    request: ReasonRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    engine: SuccessionEngine = Depends(get_engine_dep)
):
    """End an occupant's term and archive the account"""
    return engine.end_term(actor, staff_id, request.reason)


@router.post("/{staff_id}/status", response_model=TransitionResult)
async def change_status(
    staff_id: str,
    request: StatusChangeRequest,
    actor: ActorContext = Depends(get_current_user_dep),
    correlation_id: str = Depends(get_correlation_id_dep),
    engine: SuccessionEngine = Depends(get_engine_dep)
):
    """Suspend (inactive) or restore (active) an account"""
    return engine.toggle_active(actor, staff_id, request.status, reason=request.reason)

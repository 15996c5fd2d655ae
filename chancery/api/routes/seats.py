"""
Seat Routes

Read-only views of who holds which seat, who is waiting, and who held it before.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..deps import get_current_user_dep, get_query_dep
from ...domain.models import ActorContext
from ...domain.enums import ParishPosition, StaffRole
from ...services.query_service import QueryService
from .schemas import (
    SeatOccupantResponse, StaffAccountResponse, StaffListResponse,
    TermListResponse, TermRecordResponse
)

router = APIRouter()


@router.get("/{diocese}/chancellor", response_model=SeatOccupantResponse)
async def get_chancellor(
    diocese: str,
    actor: ActorContext = Depends(get_current_user_dep),
    queries: QueryService = Depends(get_query_dep)
):
    """Current chancellor of a diocese (active or suspended)"""
    occupant = queries.current_occupant(diocese)
    return SeatOccupantResponse(
        diocese=diocese,
        occupant=StaffAccountResponse.from_account(occupant) if occupant else None,
        vacant=occupant is None
    )


@router.get("/{diocese}/parishes/{parish_id}/occupants", response_model=StaffListResponse)
async def get_parish_occupants(
    diocese: str,
    parish_id: str,
    position: Optional[ParishPosition] = Query(None),
    actor: ActorContext = Depends(get_current_user_dep),
    queries: QueryService = Depends(get_query_dep)
):
    """Parish staff currently seated in a parish"""
    accounts = queries.current_occupants(diocese, parish_id, position)
    return StaffListResponse(
        items=[StaffAccountResponse.from_account(a) for a in accounts],
        total=len(accounts)
    )


@router.get("/{diocese}/pending", response_model=StaffListResponse)
async def get_pending(
    diocese: str,
    role: Optional[StaffRole] = Query(None),
    parish_id: Optional[str] = Query(None),
    actor: ActorContext = Depends(get_current_user_dep),
    queries: QueryService = Depends(get_query_dep)
):
    """Registrations awaiting a decision, oldest first"""
    accounts = queries.pending_queue(diocese, role=role, parish_id=parish_id)
    return StaffListResponse(
        items=[StaffAccountResponse.from_account(a) for a in accounts],
        total=len(accounts)
    )


@router.get("/{diocese}/terms", response_model=TermListResponse)
async def get_terms(
    diocese: str,
    role: Optional[StaffRole] = Query(None),
    parish_id: Optional[str] = Query(None),
    position: Optional[ParishPosition] = Query(None),
    actor: ActorContext = Depends(get_current_user_dep),
    queries: QueryService = Depends(get_query_dep)
):
    """Term history for a diocese or parish, most recent first"""
    terms = queries.term_history(diocese, role=role, parish_id=parish_id, position=position)
    return TermListResponse(
        items=[TermRecordResponse.from_term(t) for t in terms],
        total=len(terms)
    )

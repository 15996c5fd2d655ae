"""Succession Policies - What approving a pending account does to its seat"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..domain.models import ActorContext, StaffAccount, StaffScope, TermRecord, TermStats
from ..domain.enums import (
    StaffRole, StaffStatus, SuccessionPolicyKind, TermStatus, WorkflowAction
)
from ..domain.errors import SeatOccupiedError
from ..utils.idgen import generate_term_id
from ..utils.logger import get_logger
from .transition_resolver import TransitionResolver

logger = get_logger(__name__)

_resolver = TransitionResolver()


@dataclass
class SuccessionContext:
    """Everything a policy needs to apply one approval inside a transaction"""
    repo: Any
    session: Any
    pending: StaffAccount
    approver: ActorContext
    approver_account: Optional[StaffAccount]
    now: datetime
    notes: Optional[str] = None
    approver_stats: Optional[TermStats] = None


@dataclass
class SuccessionResult:
    activated: StaffAccount
    opened_term: TermRecord
    archived: List[StaffAccount] = field(default_factory=list)
    closed_terms: List[TermRecord] = field(default_factory=list)


def seat_key(role: StaffRole, scope: StaffScope) -> str:
    """Stable key for a seat, used to serialise writers of the same seat"""
    if role == StaffRole.CHANCELLOR:
        return f"chancellor:{scope.diocese}"
    position = scope.position.value if scope.position else "staff"
    return f"parish:{scope.diocese}:{scope.parish_id}:{position}"


def term_closure_updates(
    account: StaffAccount,
    now: datetime,
    end_reason: str,
    stats: Optional[TermStats] = None,
    successor: Optional[StaffAccount] = None
) -> Dict[str, Any]:
    """
    Build the fields written when a term is closed.

    Name and email are copied again so the ledger keeps the values the
    occupant had when the term ended.
    """
    return {
        "status": TermStatus.COMPLETED.value,
        "term_end": now,
        "end_reason": end_reason,
        "stats": stats.model_dump() if stats else None,
        "approved_successor_id": successor.staff_id if successor else None,
        "approved_successor_name": successor.name if successor else None,
        "staff_name": account.name,
        "staff_email": account.email,
        "closed_at": now,
    }


class SuccessionPolicy:
    """Base policy: activate the pending account and open its term"""

    kind: SuccessionPolicyKind

    def displaces(self, approver_account: Optional[StaffAccount], pending: StaffAccount) -> bool:
        """Whether approving pending ends the approver's own term"""
        return False

    def apply(self, ctx: SuccessionContext) -> SuccessionResult:
        raise NotImplementedError

    def _activate(self, ctx: SuccessionContext) -> StaffAccount:
        approver_name = ctx.approver_account.name if ctx.approver_account else ctx.approver.display_name
        activated = ctx.repo.transition_account(
            ctx.pending.staff_id,
            [StaffStatus.PENDING],
            {
                "status": StaffStatus.ACTIVE.value,
                "term_start": ctx.now,
                "term_end": None,
                "approved_by": ctx.approver.staff_id,
                "approved_by_name": approver_name,
                "approved_at": ctx.now,
                "approval_notes": ctx.notes,
            },
            session=ctx.session
        )
        if activated is None:
            # Lost the race: someone else decided this registration first
            current = ctx.repo.get_account_or_raise(ctx.pending.staff_id, session=ctx.session)
            raise _resolver.mismatch_error(WorkflowAction.APPROVE, current.status, current.staff_id)
        return activated

    def _open_term(self, ctx: SuccessionContext, account: StaffAccount) -> TermRecord:
        term = TermRecord(
            term_id=generate_term_id(),
            staff_id=account.staff_id,
            staff_name=account.name,
            staff_email=account.email,
            role=account.role,
            scope=account.scope,
            term_start=ctx.now,
            status=TermStatus.ACTIVE,
            created_at=ctx.now,
        )
        return ctx.repo.insert_term(term, session=ctx.session)


class ExclusiveSingletonPolicy(SuccessionPolicy):
    """
    One occupant per seat (diocesan chancellor).

    The approving incumbent is archived and their term closed in the same
    transaction that activates the successor. Any other occupant, active or
    suspended, blocks the approval.
    """

    kind = SuccessionPolicyKind.EXCLUSIVE_SINGLETON

    def displaces(self, approver_account: Optional[StaffAccount], pending: StaffAccount) -> bool:
        return (
            approver_account is not None
            and approver_account.role == pending.role
            and approver_account.occupies_seat
            and approver_account.scope.same_diocese(pending.scope)
        )

    def apply(self, ctx: SuccessionContext) -> SuccessionResult:
        pending = ctx.pending
        ctx.repo.claim_seat(seat_key(pending.role, pending.scope), session=ctx.session)

        occupants = ctx.repo.find_accounts(
            role=pending.role,
            diocese=pending.scope.diocese,
            statuses=[StaffStatus.ACTIVE, StaffStatus.INACTIVE],
            session=ctx.session
        )
        approver_id = ctx.approver_account.staff_id if ctx.approver_account else None
        blocking = [o for o in occupants if o.staff_id != approver_id]
        if blocking:
            holder = blocking[0]
            logger.info(
                f"Seat {pending.scope.label()} held by {holder.staff_id}",
                extra={"staff_id": pending.staff_id, "diocese": pending.scope.diocese, "status": holder.status.value}
            )
            raise SeatOccupiedError(
                f"The {pending.role.value} seat for {pending.scope.label()} is already occupied.",
                details={"staff_id": pending.staff_id, "occupant_id": holder.staff_id, "occupant_status": holder.status.value}
            )

        activated = self._activate(ctx)
        result = SuccessionResult(activated=activated, opened_term=self._open_term(ctx, activated))

        if approver_id is None or not any(o.staff_id == approver_id for o in occupants):
            return result

        archived = ctx.repo.transition_account(
            approver_id,
            [StaffStatus.ACTIVE],
            {
                "status": StaffStatus.ARCHIVED.value,
                "archived_at": ctx.now,
                "archived_reason": f"Term ended - approved successor: {activated.name}",
                "term_end": ctx.now,
            },
            session=ctx.session
        )
        if archived is None:
            current = ctx.repo.get_account_or_raise(approver_id, session=ctx.session)
            raise _resolver.mismatch_error(WorkflowAction.END_TERM, current.status, approver_id)
        result.archived.append(archived)

        open_term = ctx.repo.get_open_term(approver_id, session=ctx.session)
        if open_term is not None:
            closed = ctx.repo.close_term(
                open_term.term_id,
                term_closure_updates(
                    archived,
                    ctx.now,
                    archived.archived_reason,
                    stats=ctx.approver_stats,
                    successor=activated
                ),
                session=ctx.session
            )
            if closed is not None:
                result.closed_terms.append(closed)
        else:
            logger.warning(
                f"No open term found for outgoing {archived.role.value} {approver_id}",
                extra={"staff_id": approver_id, "diocese": archived.scope.diocese}
            )
        return result


class CoexistingPolicy(SuccessionPolicy):
    """Any number of occupants per seat (parish secretaries, priests)"""

    kind = SuccessionPolicyKind.COEXISTING

    def apply(self, ctx: SuccessionContext) -> SuccessionResult:
        activated = self._activate(ctx)
        return SuccessionResult(activated=activated, opened_term=self._open_term(ctx, activated))


POLICIES: Dict[StaffRole, SuccessionPolicy] = {
    StaffRole.CHANCELLOR: ExclusiveSingletonPolicy(),
    StaffRole.PARISH_STAFF: CoexistingPolicy(),
}


def get_policy(role: StaffRole) -> SuccessionPolicy:
    return POLICIES[role]

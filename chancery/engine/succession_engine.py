"""
Succession Engine - Orchestrates staff approval, rejection and term lifecycle

=============================================================================
MODULE STRUCTURE
=============================================================================

1. INITIALIZATION
   - Constructor with repository, audit and identity dependencies

2. REGISTRATION DECISIONS
   - approve: Activate a pending account under its seat's succession policy
   - reject: Terminally reject a pending account

3. TERM LIFECYCLE
   - end_term: Close an occupant's term and archive the account
   - toggle_active: Suspend or restore an occupant without ending the term

4. HELPERS
   - _actor_account, _require_reason, _revoke_sessions

Every command runs its account and term writes in one store transaction.
Audit writes and session revocation happen after commit and never fail
the command.
=============================================================================
"""
from typing import Any, Optional

from ..config.settings import settings
from ..domain.models import (
    ActorContext, ApprovalOutcome, StaffAccount, TransitionResult
)
from ..domain.enums import (
    AuditAction, ROLE_AUDIT_ACTIONS, StaffStatus, WorkflowAction
)
from ..domain.errors import ReasonTooShortError, ValidationError
from ..utils.logger import get_logger
from ..utils.time import utc_now
from .audit_writer import AuditWriter, actor_from_context
from .permission_guard import PermissionGuard
from .succession_policy import SuccessionContext, get_policy, term_closure_updates
from .transition_resolver import TransitionResolver

logger = get_logger(__name__)


class SuccessionEngine:
    """
    The Succession Engine - Central orchestrator for account state changes

    Responsibilities:
    - Enforce permissions via PermissionGuard
    - Validate transitions via TransitionResolver
    - Apply the seat's succession policy atomically
    - Keep the term ledger in step with account status
    - Write audit events and revoke sessions of outgoing occupants
    """

    def __init__(
        self,
        staff_repo: Any,
        audit_writer: AuditWriter,
        identity_provider: Any,
        permission_guard: Optional[PermissionGuard] = None,
        transition_resolver: Optional[TransitionResolver] = None
    ):
        self.staff_repo = staff_repo
        self.audit_writer = audit_writer
        self.identity_provider = identity_provider
        self.permission_guard = permission_guard or PermissionGuard()
        self.transition_resolver = transition_resolver or TransitionResolver()

    # =========================================================================
    # Registration decisions
    # =========================================================================

    def approve(
        self,
        actor: ActorContext,
        staff_id: str,
        notes: Optional[str] = None
    ) -> ApprovalOutcome:
        """
        Approve a pending registration.

        For a singleton seat the approving incumbent steps down in the same
        transaction; for a coexisting seat only the new account changes.

        Raises:
            StaffNotFoundError, AlreadyProcessedError, UnauthorizedActionError,
            SeatOccupiedError, StoreWriteError
        """
        pending = self.staff_repo.get_account_or_raise(staff_id)
        self.transition_resolver.resolve(WorkflowAction.APPROVE, pending.status, staff_id)

        actor_account = self._actor_account(actor)
        self.permission_guard.require_can_decide_registration(
            actor, actor_account, pending, WorkflowAction.APPROVE
        )

        policy = get_policy(pending.role)
        now = utc_now()

        approver_stats = None
        if policy.displaces(actor_account, pending) and actor_account.term_start:
            approver_stats = self.audit_writer.compute_term_stats(
                actor_account.staff_id, since=actor_account.term_start, until=now
            )

        def _apply(session):
            return policy.apply(SuccessionContext(
                repo=self.staff_repo,
                session=session,
                pending=pending,
                approver=actor,
                approver_account=actor_account,
                now=now,
                notes=notes,
                approver_stats=approver_stats,
            ))

        result = self.staff_repo.run_in_transaction(_apply)
        activated = result.activated

        logger.info(
            f"Approved {activated.role.value} {activated.staff_id} ({policy.kind.value})",
            extra={
                "staff_id": activated.staff_id,
                "actor_id": actor.staff_id,
                "action": WorkflowAction.APPROVE.value,
                "diocese": activated.scope.diocese,
                "term_id": result.opened_term.term_id,
            }
        )

        audit_actor = actor_from_context(actor, actor_account)
        self.audit_writer.status_change(
            audit_actor,
            ROLE_AUDIT_ACTIONS[activated.role]["approve"],
            activated,
            StaffStatus.PENDING.value,
            StaffStatus.ACTIVE.value,
            metadata={
                "notes": notes,
                "term_id": result.opened_term.term_id,
                "policy": policy.kind.value,
            }
        )

        closed_ids = [t.term_id for t in result.closed_terms]
        for archived in result.archived:
            self.audit_writer.status_change(
                audit_actor,
                AuditAction.CHANCELLOR_ARCHIVE,
                archived,
                StaffStatus.ACTIVE.value,
                StaffStatus.ARCHIVED.value,
                metadata={
                    "reason": archived.archived_reason,
                    "successor_id": activated.staff_id,
                    "successor_name": activated.name,
                    "closed_term_ids": closed_ids,
                }
            )

        revoked = [a.staff_id for a in result.archived if self._revoke_sessions(a)]

        if result.archived:
            message = (
                f"{activated.name} is now {activated.role.value} for {activated.scope.label()}. "
                f"Your term has ended and your account has been archived."
            )
        else:
            message = f"{activated.name} has been approved."

        return ApprovalOutcome(
            approved_staff_id=activated.staff_id,
            policy=policy.kind,
            opened_term_id=result.opened_term.term_id,
            archived_staff_ids=[a.staff_id for a in result.archived],
            closed_term_ids=closed_ids,
            sessions_revoked=revoked,
            message=message,
        )

    def reject(self, actor: ActorContext, staff_id: str, reason: str) -> TransitionResult:
        """Reject a pending registration (terminal, no term record)"""
        reason = self._require_reason(reason, WorkflowAction.REJECT)

        pending = self.staff_repo.get_account_or_raise(staff_id)
        target = self.transition_resolver.resolve(WorkflowAction.REJECT, pending.status, staff_id)

        actor_account = self._actor_account(actor)
        self.permission_guard.require_can_decide_registration(
            actor, actor_account, pending, WorkflowAction.REJECT
        )

        now = utc_now()

        def _apply(session):
            rejected = self.staff_repo.transition_account(
                staff_id,
                [StaffStatus.PENDING],
                {
                    "status": target.value,
                    "rejected_by": actor.staff_id,
                    "rejected_at": now,
                    "rejection_reason": reason,
                },
                session=session
            )
            if rejected is None:
                current = self.staff_repo.get_account_or_raise(staff_id, session=session)
                raise self.transition_resolver.mismatch_error(WorkflowAction.REJECT, current.status, staff_id)
            return rejected

        rejected = self.staff_repo.run_in_transaction(_apply)

        logger.info(
            f"Rejected {rejected.role.value} registration {staff_id}",
            extra={"staff_id": staff_id, "actor_id": actor.staff_id, "action": WorkflowAction.REJECT.value}
        )
        self.audit_writer.status_change(
            actor_from_context(actor, actor_account),
            ROLE_AUDIT_ACTIONS[rejected.role]["reject"],
            rejected,
            StaffStatus.PENDING.value,
            StaffStatus.REJECTED.value,
            metadata={"reason": reason}
        )

        return TransitionResult(
            staff_id=staff_id,
            previous_status=StaffStatus.PENDING,
            new_status=rejected.status,
            message=f"Registration for {rejected.name} has been rejected.",
        )

    # =========================================================================
    # Term lifecycle
    # =========================================================================

    def end_term(self, actor: ActorContext, staff_id: str, reason: str) -> TransitionResult:
        """
        End an occupant's term without naming a successor.

        Closes the open term with its activity stats and archives the
        account in one transaction.
        """
        reason = self._require_reason(reason, WorkflowAction.END_TERM)

        account = self.staff_repo.get_account_or_raise(staff_id)
        actor_account = self._actor_account(actor)
        self.permission_guard.require_can_end_term(actor, actor_account, account)
        target = self.transition_resolver.resolve(WorkflowAction.END_TERM, account.status, staff_id)

        now = utc_now()
        stats = None
        if account.term_start:
            stats = self.audit_writer.compute_term_stats(staff_id, since=account.term_start, until=now)

        def _apply(session):
            archived = self.staff_repo.transition_account(
                staff_id,
                [StaffStatus.ACTIVE],
                {
                    "status": target.value,
                    "archived_at": now,
                    "archived_reason": reason,
                    "term_end": now,
                },
                session=session
            )
            if archived is None:
                current = self.staff_repo.get_account_or_raise(staff_id, session=session)
                raise self.transition_resolver.mismatch_error(WorkflowAction.END_TERM, current.status, staff_id)

            closed_term_id = None
            open_term = self.staff_repo.get_open_term(staff_id, session=session)
            if open_term is not None:
                closed = self.staff_repo.close_term(
                    open_term.term_id,
                    term_closure_updates(archived, now, reason, stats=stats),
                    session=session
                )
                closed_term_id = closed.term_id if closed else None
            return archived, closed_term_id

        archived, closed_term_id = self.staff_repo.run_in_transaction(_apply)

        logger.info(
            f"Ended term of {archived.role.value} {staff_id}",
            extra={
                "staff_id": staff_id,
                "actor_id": actor.staff_id,
                "action": WorkflowAction.END_TERM.value,
                "term_id": closed_term_id,
            }
        )
        self.audit_writer.status_change(
            actor_from_context(actor, actor_account),
            ROLE_AUDIT_ACTIONS[archived.role]["term_end"],
            archived,
            StaffStatus.ACTIVE.value,
            StaffStatus.ARCHIVED.value,
            metadata={"reason": reason, "term_id": closed_term_id}
        )
        self._revoke_sessions(archived)

        return TransitionResult(
            staff_id=staff_id,
            previous_status=StaffStatus.ACTIVE,
            new_status=archived.status,
            closed_term_id=closed_term_id,
            message=f"The term of {archived.name} has ended.",
        )

    def toggle_active(
        self,
        actor: ActorContext,
        staff_id: str,
        new_status: StaffStatus,
        reason: Optional[str] = None
    ) -> TransitionResult:
        """
        Suspend (active -> inactive) or restore (inactive -> active) an account.

        The term stays open and the account keeps its seat either way.
        """
        if new_status == StaffStatus.INACTIVE:
            action = WorkflowAction.DEACTIVATE
            reason = (reason or "").strip()
            if len(reason) < settings.min_deactivation_reason_length:
                raise ReasonTooShortError(
                    f"Please provide a reason of at least {settings.min_deactivation_reason_length} characters.",
                    details={"min_length": settings.min_deactivation_reason_length, "length": len(reason)}
                )
        elif new_status == StaffStatus.ACTIVE:
            action = WorkflowAction.REACTIVATE
        else:
            raise ValidationError(
                "Status can only be set to active or inactive.",
                details={"status": new_status.value}
            )

        account = self.staff_repo.get_account_or_raise(staff_id)
        actor_account = self._actor_account(actor)
        self.permission_guard.require_can_toggle(actor, actor_account, account, action)
        required = self.transition_resolver.required_status(action)
        self.transition_resolver.resolve(action, account.status, staff_id)

        now = utc_now()
        if action == WorkflowAction.DEACTIVATE:
            updates = {
                "status": StaffStatus.INACTIVE.value,
                "deactivated_by": actor.staff_id,
                "deactivated_at": now,
                "deactivation_reason": reason,
            }
        else:
            updates = {
                "status": StaffStatus.ACTIVE.value,
                "deactivated_by": None,
                "deactivated_at": None,
                "deactivation_reason": None,
                "reactivated_by": actor.staff_id,
                "reactivated_at": now,
            }

        def _apply(session):
            updated = self.staff_repo.transition_account(staff_id, [required], updates, session=session)
            if updated is None:
                current = self.staff_repo.get_account_or_raise(staff_id, session=session)
                raise self.transition_resolver.mismatch_error(action, current.status, staff_id)
            return updated

        updated = self.staff_repo.run_in_transaction(_apply)

        logger.info(
            f"{action.value.capitalize()}d {updated.role.value} {staff_id}",
            extra={"staff_id": staff_id, "actor_id": actor.staff_id, "action": action.value}
        )
        audit_action = (
            AuditAction.USER_DEACTIVATE if action == WorkflowAction.DEACTIVATE
            else AuditAction.USER_REACTIVATE
        )
        self.audit_writer.status_change(
            actor_from_context(actor, actor_account),
            audit_action,
            updated,
            required.value,
            updated.status.value,
            metadata={"reason": reason}
        )
        if action == WorkflowAction.DEACTIVATE:
            self._revoke_sessions(updated)

        verb = "deactivated" if action == WorkflowAction.DEACTIVATE else "reactivated"
        return TransitionResult(
            staff_id=staff_id,
            previous_status=required,
            new_status=updated.status,
            message=f"The account of {updated.name} has been {verb}.",
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _actor_account(self, actor: ActorContext) -> Optional[StaffAccount]:
        return self.staff_repo.get_account(actor.staff_id)

    def _require_reason(self, reason: Optional[str], action: WorkflowAction) -> str:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError(
                "A reason is required.",
                details={"action": action.value}
            )
        return reason

    def _revoke_sessions(self, account: StaffAccount) -> bool:
        """Best-effort sign-out of an account that lost its access"""
        try:
            self.identity_provider.revoke_sessions(account.staff_id)
            return True
        except Exception as e:
            logger.warning(
                f"Session revocation failed for {account.staff_id}: {e}",
                extra={"staff_id": account.staff_id}
            )
            return False

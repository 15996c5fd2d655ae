"""Audit Writer - Best-effort append-only audit events and term statistics"""
import threading
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Tuple

from ..config.settings import settings
from ..domain.models import (
    ActorContext, AuditActor, AuditEvent, FieldChange, StaffAccount, TermStats
)
from ..domain.enums import AuditAction, ResourceType
from ..utils.idgen import generate_audit_event_id
from ..utils.logger import get_logger, get_correlation_id
from ..utils.time import utc_now

logger = get_logger(__name__)


def actor_from_account(account: StaffAccount) -> AuditActor:
    """Snapshot a staff account as an audit actor"""
    return AuditActor(
        staff_id=account.staff_id,
        email=account.email,
        name=account.name,
        role=account.role.value,
        diocese=account.scope.diocese,
    )


def actor_from_context(actor: ActorContext, account: Optional[StaffAccount] = None) -> AuditActor:
    """Snapshot the request actor, enriched with their account when they have one"""
    if account is not None:
        return actor_from_account(account)
    return AuditActor(
        staff_id=actor.staff_id,
        email=actor.email,
        name=actor.display_name,
        role=",".join(actor.roles) or None,
    )


class AuditWriter:
    """
    Write audit events (append-only)

    Audit is supplementary to account state: a failed write never fails
    the caller. Failed events are queued and retried by the scheduler
    until they succeed or exhaust settings.audit_max_retries.
    """

    def __init__(self, repo):
        self.repo = repo
        self._pending: Deque[Tuple[AuditEvent, int]] = deque()
        self._pending_lock = threading.Lock()

    def record(
        self,
        actor: AuditActor,
        action: AuditAction,
        resource_type: ResourceType,
        resource_id: str,
        resource_name: Optional[str] = None,
        changes: Optional[List[FieldChange]] = None,
        diocese: Optional[str] = None,
        parish_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """Build and write an audit event; failures are queued, not raised"""
        event = AuditEvent(
            audit_event_id=generate_audit_event_id(),
            actor=actor,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            resource_name=resource_name,
            changes=changes or [],
            diocese=diocese,
            parish_id=parish_id,
            metadata={k: v for k, v in (metadata or {}).items() if v is not None},
            timestamp=utc_now(),
            correlation_id=get_correlation_id()
        )

        try:
            self.repo.create_event(event)
        except Exception as e:
            logger.warning(
                f"Audit write failed, queued for retry: {e}",
                extra={"action": action.value, "staff_id": resource_id, "actor_id": actor.staff_id}
            )
            with self._pending_lock:
                self._pending.append((event, 1))
        return event

    def status_change(
        self,
        actor: AuditActor,
        action: AuditAction,
        account: StaffAccount,
        old_status: str,
        new_status: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AuditEvent:
        """Record a status transition on a staff account"""
        return self.record(
            actor=actor,
            action=action,
            resource_type=ResourceType.USER,
            resource_id=account.staff_id,
            resource_name=account.name,
            changes=[FieldChange(field="status", old_value=old_status, new_value=new_status)],
            diocese=account.scope.diocese,
            parish_id=account.scope.parish_id,
            metadata=metadata
        )

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def flush_pending(self) -> int:
        """
        Retry queued audit events once each.

        Returns:
            Number of events written on this pass
        """
        with self._pending_lock:
            batch = list(self._pending)
            self._pending.clear()

        written = 0
        for event, attempts in batch:
            try:
                self.repo.create_event(event)
                written += 1
            except Exception as e:
                if attempts + 1 >= settings.audit_max_retries:
                    logger.error(
                        f"Dropping audit event {event.audit_event_id} after {attempts + 1} attempts: {e}",
                        extra={"action": event.action.value, "staff_id": event.resource_id}
                    )
                    continue
                with self._pending_lock:
                    self._pending.append((event, attempts + 1))

        if written:
            logger.info(f"Flushed {written} queued audit events")
        return written

    def compute_term_stats(
        self,
        staff_id: str,
        since: datetime,
        until: datetime
    ) -> Optional[TermStats]:
        """Aggregate a staff member's audited actions over their term; None on failure"""
        try:
            counts = self.repo.count_actions_for_actor(staff_id, since=since, until=until)
        except Exception as e:
            logger.warning(f"Term stats unavailable for {staff_id}: {e}", extra={"staff_id": staff_id})
            return None

        breakdown = counts.get("breakdown", {})
        return TermStats(
            total_actions=sum(breakdown.values()),
            action_breakdown=breakdown,
            last_action_at=counts.get("last_action_at"),
            period_start=since,
            period_end=until,
        )

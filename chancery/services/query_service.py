"""Query Service - Read-only views over seats, queues and term history"""
from datetime import datetime
from typing import Any, List, Optional

from ..domain.models import AuditEvent, StaffAccount, TermRecord
from ..domain.enums import ParishPosition, ResourceType, StaffRole, StaffStatus
from ..utils.logger import get_logger

logger = get_logger(__name__)

SEATED_STATUSES = [StaffStatus.ACTIVE, StaffStatus.INACTIVE]


class QueryService:
    """Read-side of the account store, term ledger and audit trail"""

    def __init__(self, staff_repo: Any, audit_repo: Any):
        self.staff_repo = staff_repo
        self.audit_repo = audit_repo

    def get_account(self, staff_id: str) -> StaffAccount:
        """Current state of one account (raises StaffNotFoundError)"""
        return self.staff_repo.get_account_or_raise(staff_id)

    def current_occupant(self, diocese: str) -> Optional[StaffAccount]:
        """
        The chancellor currently holding the diocese seat, active or suspended.

        More than one would mean the singleton seat was breached; that is
        logged and the longest-serving occupant is returned.
        """
        occupants = self.staff_repo.find_accounts(
            role=StaffRole.CHANCELLOR,
            diocese=diocese,
            statuses=SEATED_STATUSES,
            sort_field="term_start",
            ascending=True
        )
        if not occupants:
            return None
        if len(occupants) > 1:
            logger.error(
                f"Diocese {diocese} has {len(occupants)} seated chancellors",
                extra={"diocese": diocese}
            )
        return occupants[0]

    def current_occupants(
        self,
        diocese: str,
        parish_id: str,
        position: Optional[ParishPosition] = None
    ) -> List[StaffAccount]:
        """All parish staff holding a seat in the parish"""
        return self.staff_repo.find_accounts(
            role=StaffRole.PARISH_STAFF,
            diocese=diocese,
            parish_id=parish_id,
            position=position,
            statuses=SEATED_STATUSES,
            sort_field="term_start",
            ascending=True
        )

    def pending_queue(
        self,
        diocese: str,
        role: Optional[StaffRole] = None,
        parish_id: Optional[str] = None
    ) -> List[StaffAccount]:
        """Registrations awaiting a decision, oldest first"""
        return self.staff_repo.find_accounts(
            role=role,
            diocese=diocese,
            parish_id=parish_id,
            statuses=[StaffStatus.PENDING],
            sort_field="registered_at",
            ascending=True
        )

    def term_history(
        self,
        diocese: str,
        role: Optional[StaffRole] = None,
        parish_id: Optional[str] = None,
        position: Optional[ParishPosition] = None
    ) -> List[TermRecord]:
        """Term ledger for a scope, most recent first"""
        return self.staff_repo.find_terms(
            role=role,
            diocese=diocese,
            parish_id=parish_id,
            position=position
        )

    def actor_activity(
        self,
        staff_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 100
    ) -> List[AuditEvent]:
        """Audit events performed by a staff member, newest first"""
        return self.audit_repo.get_events_for_actor(staff_id, since=since, until=until, limit=limit)

    def account_history(self, staff_id: str, limit: int = 100) -> List[AuditEvent]:
        """Audit events recorded against a staff account, newest first"""
        return self.audit_repo.get_events_for_resource(ResourceType.USER, staff_id, limit=limit)

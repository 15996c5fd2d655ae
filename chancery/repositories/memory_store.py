"""In-memory repositories for local runs and tests.

Same interface as the MongoDB repositories. Transactions are serialised
with a re-entrant lock and rolled back by restoring a snapshot taken
when the transaction began.
"""
import copy
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

from ..domain.models import AuditEvent, StaffAccount, TermRecord
from ..domain.enums import ParishPosition, ResourceType, StaffRole, StaffStatus, TermStatus
from ..domain.errors import StaffNotFoundError, StoreWriteError
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)

T = TypeVar("T")


def _scope_matches(
    scoped: Any,
    role: Optional[StaffRole],
    diocese: Optional[str],
    parish_id: Optional[str],
    position: Optional[ParishPosition],
) -> bool:
    if role and scoped.role != role:
        return False
    if diocese and scoped.scope.diocese != diocese:
        return False
    if parish_id and scoped.scope.parish_id != parish_id:
        return False
    if position and scoped.scope.position != position:
        return False
    return True


class MemoryStaffRepository:
    """Account Store and Term Ledger held in process memory"""

    def __init__(self):
        self._lock = threading.RLock()
        self._accounts: Dict[str, StaffAccount] = {}
        self._terms: Dict[str, TermRecord] = {}

    # =========================================================================
    # Transactions
    # =========================================================================

    def run_in_transaction(self, callback: Callable[[Optional[Any]], T]) -> T:
        """Run callback atomically; any exception restores the prior state"""
        with self._lock:
            accounts_snapshot = copy.deepcopy(self._accounts)
            terms_snapshot = copy.deepcopy(self._terms)
            try:
                return callback(None)
            except Exception:
                self._accounts = accounts_snapshot
                self._terms = terms_snapshot
                logger.info("In-memory transaction rolled back")
                raise

    def claim_seat(self, seat_key: str, session: Any = None) -> None:
        # Transactions already hold the store lock
        return None

    # =========================================================================
    # Accounts
    # =========================================================================

    def get_account(self, staff_id: str, session: Any = None) -> Optional[StaffAccount]:
        with self._lock:
            account = self._accounts.get(staff_id)
            return account.model_copy(deep=True) if account else None

    def get_account_or_raise(self, staff_id: str, session: Any = None) -> StaffAccount:
        account = self.get_account(staff_id)
        if not account:
            raise StaffNotFoundError(f"Staff account {staff_id} not found", details={"staff_id": staff_id})
        return account

    def insert_account(self, account: StaffAccount, session: Any = None) -> StaffAccount:
        with self._lock:
            if account.staff_id in self._accounts:
                raise StoreWriteError(f"Account {account.staff_id} already exists")
            self._accounts[account.staff_id] = account.model_copy(deep=True)
        logger.info(f"Created staff account: {account.staff_id}", extra={"staff_id": account.staff_id})
        return account

    def transition_account(
        self,
        staff_id: str,
        expected_statuses: List[StaffStatus],
        updates: Dict[str, Any],
        session: Any = None
    ) -> Optional[StaffAccount]:
        with self._lock:
            current = self._accounts.get(staff_id)
            if current is None or current.status not in expected_statuses:
                return None
            doc = current.model_dump()
            doc.update(updates)
            doc["updated_at"] = utc_now()
            doc["version"] = current.version + 1
            updated = StaffAccount.model_validate(doc)
            self._accounts[staff_id] = updated
            return updated.model_copy(deep=True)

    def find_accounts(
        self,
        role: Optional[StaffRole] = None,
        diocese: Optional[str] = None,
        parish_id: Optional[str] = None,
        position: Optional[ParishPosition] = None,
        statuses: Optional[List[StaffStatus]] = None,
        sort_field: str = "registered_at",
        ascending: bool = True,
        session: Any = None
    ) -> List[StaffAccount]:
        with self._lock:
            matches = [
                a.model_copy(deep=True) for a in self._accounts.values()
                if _scope_matches(a, role, diocese, parish_id, position)
                and (not statuses or a.status in statuses)
            ]
        matches.sort(key=lambda a: getattr(a, sort_field), reverse=not ascending)
        return matches

    # =========================================================================
    # Terms
    # =========================================================================

    def insert_term(self, term: TermRecord, session: Any = None) -> TermRecord:
        with self._lock:
            self._terms[term.term_id] = term.model_copy(deep=True)
        return term

    def get_open_term(self, staff_id: str, session: Any = None) -> Optional[TermRecord]:
        with self._lock:
            open_terms = [
                t for t in self._terms.values()
                if t.staff_id == staff_id and t.status == TermStatus.ACTIVE
            ]
        if not open_terms:
            return None
        return max(open_terms, key=lambda t: t.term_start).model_copy(deep=True)

    def close_term(self, term_id: str, updates: Dict[str, Any], session: Any = None) -> Optional[TermRecord]:
        with self._lock:
            current = self._terms.get(term_id)
            if current is None or current.status != TermStatus.ACTIVE:
                return None
            doc = current.model_dump()
            doc.update(updates)
            closed = TermRecord.model_validate(doc)
            self._terms[term_id] = closed
            return closed.model_copy(deep=True)

    def find_terms(
        self,
        role: Optional[StaffRole] = None,
        diocese: Optional[str] = None,
        parish_id: Optional[str] = None,
        position: Optional[ParishPosition] = None,
        staff_id: Optional[str] = None,
        session: Any = None
    ) -> List[TermRecord]:
        with self._lock:
            matches = [
                t.model_copy(deep=True) for t in self._terms.values()
                if _scope_matches(t, role, diocese, parish_id, position)
                and (not staff_id or t.staff_id == staff_id)
            ]
        matches.sort(key=lambda t: t.term_start, reverse=True)
        return matches


class MemoryAuditRepository:
    """Append-only audit events held in process memory"""

    def __init__(self):
        self._lock = threading.Lock()
        self._events: List[AuditEvent] = []

    def create_event(self, event: AuditEvent) -> AuditEvent:
        with self._lock:
            self._events.append(event.model_copy(deep=True))
        return event

    def get_events_for_actor(
        self,
        staff_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 100
    ) -> List[AuditEvent]:
        events = self._window(staff_id, since, until)
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    def get_events_for_resource(
        self,
        resource_type: ResourceType,
        resource_id: str,
        limit: int = 100
    ) -> List[AuditEvent]:
        with self._lock:
            events = [
                e for e in self._events
                if e.resource_type == resource_type and e.resource_id == resource_id
            ]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]

    def count_actions_for_actor(
        self,
        staff_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None
    ) -> Dict[str, Any]:
        breakdown: Dict[str, int] = {}
        last_action_at: Optional[datetime] = None
        for event in self._window(staff_id, since, until):
            breakdown[event.action.value] = breakdown.get(event.action.value, 0) + 1
            if last_action_at is None or event.timestamp > last_action_at:
                last_action_at = event.timestamp
        return {"breakdown": breakdown, "last_action_at": last_action_at}

    def _window(
        self,
        staff_id: str,
        since: Optional[datetime],
        until: Optional[datetime]
    ) -> List[AuditEvent]:
        with self._lock:
            return [
                e.model_copy(deep=True) for e in self._events
                if e.actor.staff_id == staff_id
                and (since is None or e.timestamp >= since)
                and (until is None or e.timestamp <= until)
            ]

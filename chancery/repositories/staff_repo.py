"""Staff Repository - Account Store and Term Ledger on MongoDB"""
from typing import Any, Callable, Dict, List, Optional, TypeVar
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, PyMongoError

from .mongo_client import get_database
from ..domain.models import StaffAccount, TermRecord
from ..domain.enums import StaffRole, StaffStatus, ParishPosition, TermStatus
from ..domain.errors import DomainError, StoreWriteError, StaffNotFoundError
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)

T = TypeVar("T")


def _account_query(
    role: Optional[StaffRole] = None,
    diocese: Optional[str] = None,
    parish_id: Optional[str] = None,
    position: Optional[ParishPosition] = None,
    statuses: Optional[List[StaffStatus]] = None,
) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if role:
        query["role"] = role.value
    if diocese:
        query["scope.diocese"] = diocese
    if parish_id:
        query["scope.parish_id"] = parish_id
    if position:
        query["scope.position"] = position.value
    if statuses:
        query["status"] = {"$in": [s.value for s in statuses]}
    return query


class StaffRepository:
    """
    Repository for staff accounts and their term history.

    Every status write is a compare-and-swap on the expected current
    status, so a stale caller gets None back instead of overwriting.
    """

    def __init__(self, database: Optional[Database] = None):
        self._db = database if database is not None else get_database()
        self._accounts: Collection = self._db["staff_accounts"]
        self._terms: Collection = self._db["staff_terms"]
        self._seats: Collection = self._db["staff_seats"]

    # =========================================================================
    # Transactions
    # =========================================================================

    def claim_seat(self, seat_key: str, session: Optional[ClientSession] = None) -> None:
        """
        Write the seat's marker document inside the current transaction.

        Two transactions filling the same seat both write this document, so
        the server aborts one with a write conflict and the driver retries it
        against the committed state.
        """
        self._seats.update_one(
            {"_id": seat_key},
            {"$inc": {"version": 1}, "$set": {"updated_at": utc_now()}},
            upsert=True,
            session=session
        )

    def run_in_transaction(self, callback: Callable[[Optional[ClientSession]], T]) -> T:
        """
        Run callback inside a multi-document transaction.

        The callback receives the session and must pass it to every
        repository call it makes. Transient errors are retried by the
        driver; domain errors abort the transaction and propagate.
        """
        try:
            with self._db.client.start_session() as session:
                return session.with_transaction(callback)
        except DomainError:
            raise
        except PyMongoError as e:
            logger.error(f"Transaction failed: {e}", exc_info=True)
            raise StoreWriteError("Could not save changes. Please try again.", details={"cause": str(e)})

    # =========================================================================
    # Accounts
    # =========================================================================

    def get_account(self, staff_id: str, session: Optional[ClientSession] = None) -> Optional[StaffAccount]:
        """Get account by staff ID"""
        doc = self._accounts.find_one({"staff_id": staff_id}, session=session)
        if doc:
            doc.pop("_id", None)
            return StaffAccount.model_validate(doc)
        return None

    def get_account_or_raise(self, staff_id: str, session: Optional[ClientSession] = None) -> StaffAccount:
        """Get account by staff ID or raise error"""
        account = self.get_account(staff_id, session=session)
        if not account:
            raise StaffNotFoundError(f"Staff account {staff_id} not found", details={"staff_id": staff_id})
        return account

    def insert_account(self, account: StaffAccount, session: Optional[ClientSession] = None) -> StaffAccount:
        """Create a new account document"""
        # Don't use mode="json" - it converts datetime to strings, breaking MongoDB sorting
        doc = account.model_dump()
        doc["_id"] = account.staff_id
        try:
            self._accounts.insert_one(doc, session=session)
        except DuplicateKeyError as e:
            raise StoreWriteError(f"Account {account.staff_id} already exists", details={"cause": str(e)})
        except PyMongoError as e:
            raise StoreWriteError("Failed to write staff account", details={"cause": str(e)})
        logger.info(
            f"Created staff account: {account.staff_id}",
            extra={"staff_id": account.staff_id, "role": account.role.value, "status": account.status.value}
        )
        return account

    def transition_account(
        self,
        staff_id: str,
        expected_statuses: List[StaffStatus],
        updates: Dict[str, Any],
        session: Optional[ClientSession] = None
    ) -> Optional[StaffAccount]:
        """
        Apply updates only if the account is currently in one of expected_statuses.

        Returns the updated account, or None when the precondition failed.
        """
        updates = dict(updates)
        updates["updated_at"] = utc_now()
        result = self._accounts.find_one_and_update(
            {"staff_id": staff_id, "status": {"$in": [s.value for s in expected_statuses]}},
            {"$set": updates, "$inc": {"version": 1}},
            return_document=ReturnDocument.AFTER,
            session=session
        )
        if result is None:
            return None
        result.pop("_id", None)
        logger.info(
            f"Updated staff account: {staff_id}",
            extra={"staff_id": staff_id, "status": result.get("status")}
        )
        return StaffAccount.model_validate(result)

    def find_accounts(
        self,
        role: Optional[StaffRole] = None,
        diocese: Optional[str] = None,
        parish_id: Optional[str] = None,
        position: Optional[ParishPosition] = None,
        statuses: Optional[List[StaffStatus]] = None,
        sort_field: str = "registered_at",
        ascending: bool = True,
        session: Optional[ClientSession] = None
    ) -> List[StaffAccount]:
        """Query accounts by role, scope and status"""
        query = _account_query(role, diocese, parish_id, position, statuses)
        cursor = self._accounts.find(query, session=session).sort(
            sort_field, ASCENDING if ascending else DESCENDING
        )
        accounts = []
        for doc in cursor:
            doc.pop("_id", None)
            accounts.append(StaffAccount.model_validate(doc))
        return accounts

    # =========================================================================
    # Terms
    # =========================================================================

    def insert_term(self, term: TermRecord, session: Optional[ClientSession] = None) -> TermRecord:
        """Append a term record"""
        doc = term.model_dump()
        doc["_id"] = term.term_id
        self._terms.insert_one(doc, session=session)
        logger.info(
            f"Opened term {term.term_id} for {term.staff_id}",
            extra={"term_id": term.term_id, "staff_id": term.staff_id}
        )
        return term

    def get_open_term(self, staff_id: str, session: Optional[ClientSession] = None) -> Optional[TermRecord]:
        """Get the currently open term for an account"""
        doc = self._terms.find_one(
            {"staff_id": staff_id, "status": TermStatus.ACTIVE.value},
            sort=[("term_start", DESCENDING)],
            session=session
        )
        if doc:
            doc.pop("_id", None)
            return TermRecord.model_validate(doc)
        return None

    def close_term(
        self,
        term_id: str,
        updates: Dict[str, Any],
        session: Optional[ClientSession] = None
    ) -> Optional[TermRecord]:
        """Close an open term; None if it was already closed"""
        result = self._terms.find_one_and_update(
            {"term_id": term_id, "status": TermStatus.ACTIVE.value},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
            session=session
        )
        if result is None:
            return None
        result.pop("_id", None)
        logger.info(f"Closed term {term_id}", extra={"term_id": term_id, "status": result.get("status")})
        return TermRecord.model_validate(result)

    def find_terms(
        self,
        role: Optional[StaffRole] = None,
        diocese: Optional[str] = None,
        parish_id: Optional[str] = None,
        position: Optional[ParishPosition] = None,
        staff_id: Optional[str] = None,
        session: Optional[ClientSession] = None
    ) -> List[TermRecord]:
        """Query term history, most recent term_start first"""
        query = _account_query(role, diocese, parish_id, position)
        if staff_id:
            query["staff_id"] = staff_id
        cursor = self._terms.find(query, session=session).sort("term_start", DESCENDING)
        terms = []
        for doc in cursor:
            doc.pop("_id", None)
            terms.append(TermRecord.model_validate(doc))
        return terms

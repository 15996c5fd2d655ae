"""Transition Resolver - Staff status state machine"""
from typing import Dict, FrozenSet, Tuple

from ..domain.enums import StaffStatus, WorkflowAction
from ..domain.errors import (
    AlreadyProcessedError, InvalidTransitionError, NotActiveError, ConflictError
)
from ..utils.logger import get_logger

logger = get_logger(__name__)


# pending -> {active, rejected}; active -> {inactive, archived}; inactive -> {active, archived}
ALLOWED_TRANSITIONS: Dict[StaffStatus, FrozenSet[StaffStatus]] = {
    StaffStatus.PENDING: frozenset({StaffStatus.ACTIVE, StaffStatus.REJECTED}),
    StaffStatus.ACTIVE: frozenset({StaffStatus.INACTIVE, StaffStatus.ARCHIVED}),
    StaffStatus.INACTIVE: frozenset({StaffStatus.ACTIVE, StaffStatus.ARCHIVED}),
    StaffStatus.ARCHIVED: frozenset(),
    StaffStatus.REJECTED: frozenset(),
}

# action -> (required current status, resulting status, error raised on mismatch)
ACTION_RULES: Dict[WorkflowAction, Tuple[StaffStatus, StaffStatus, type]] = {
    WorkflowAction.APPROVE: (StaffStatus.PENDING, StaffStatus.ACTIVE, AlreadyProcessedError),
    WorkflowAction.REJECT: (StaffStatus.PENDING, StaffStatus.REJECTED, AlreadyProcessedError),
    WorkflowAction.END_TERM: (StaffStatus.ACTIVE, StaffStatus.ARCHIVED, NotActiveError),
    WorkflowAction.DEACTIVATE: (StaffStatus.ACTIVE, StaffStatus.INACTIVE, NotActiveError),
    WorkflowAction.REACTIVATE: (StaffStatus.INACTIVE, StaffStatus.ACTIVE, InvalidTransitionError),
}

_MISMATCH_MESSAGES = {
    AlreadyProcessedError: "This registration has already been processed.",
    NotActiveError: "This account is not active.",
    InvalidTransitionError: "Only inactive accounts can be reactivated.",
}


class TransitionResolver:
    """
    Resolve the status an action moves an account to.

    The required-status check runs twice per command: once up front for a
    fast, friendly error, and again as the compare-and-swap filter inside
    the transaction.
    """

    def is_allowed(self, current: StaffStatus, target: StaffStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[current]

    def required_status(self, action: WorkflowAction) -> StaffStatus:
        return ACTION_RULES[action][0]

    def resolve(self, action: WorkflowAction, current: StaffStatus, staff_id: str = "") -> StaffStatus:
        """
        Return the target status for action, or raise the action's conflict error.

        Raises:
            AlreadyProcessedError / NotActiveError / InvalidTransitionError
        """
        required, target, _ = ACTION_RULES[action]
        if current != required or not self.is_allowed(current, target):
            logger.info(
                f"Rejected {action.value} on {staff_id}: status is {current.value}",
                extra={"staff_id": staff_id, "action": action.value, "status": current.value}
            )
            raise self.mismatch_error(action, current, staff_id)
        return target

    def mismatch_error(self, action: WorkflowAction, current: StaffStatus, staff_id: str = "") -> ConflictError:
        """Build the conflict error reported when current status does not fit action"""
        error_cls = ACTION_RULES[action][2]
        return error_cls(
            _MISMATCH_MESSAGES[error_cls],
            details={"staff_id": staff_id, "status": current.value, "action": action.value}
        )

"""Permission Guard - Authorization enforcement for succession actions"""
from typing import Optional

from ..config.settings import settings
from ..domain.models import ActorContext, StaffAccount
from ..domain.enums import StaffRole, StaffStatus, WorkflowAction
from ..domain.errors import CannotActOnSelfError, UnauthorizedActionError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PermissionGuard:
    """
    Permission enforcement for staff lifecycle operations

    Rules:
    - Only accounts in the active state can act; suspended staff cannot
    - Chancellor registrations: decided by the sitting chancellor of the
      diocese, or a system administrator
    - Parish registrations: decided by active staff of the same parish or
      the chancellor of the diocese
    - Ending a term: chancellor for parish staff in the diocese; system
      administrator for anyone
    - Suspension: same parish staff or diocese chancellor for parish
      accounts; system administrator for chancellors
    - Nobody changes their own status
    """

    def is_system_admin(self, actor: ActorContext) -> bool:
        return actor.has_role(settings.system_admin_role)

    def _is_acting_chancellor(self, account: Optional[StaffAccount], target: StaffAccount) -> bool:
        return (
            account is not None
            and account.role == StaffRole.CHANCELLOR
            and account.status == StaffStatus.ACTIVE
            and account.scope.same_diocese(target.scope)
        )

    def _is_parish_colleague(self, account: Optional[StaffAccount], target: StaffAccount) -> bool:
        return (
            account is not None
            and account.role == StaffRole.PARISH_STAFF
            and account.status == StaffStatus.ACTIVE
            and account.scope.same_parish(target.scope)
        )

    def _deny(self, actor: ActorContext, target: StaffAccount, action: WorkflowAction, message: str) -> None:
        logger.warning(
            f"Unauthorized {action.value} by {actor.email} on {target.staff_id}",
            extra={"actor_id": actor.staff_id, "staff_id": target.staff_id, "action": action.value}
        )
        raise UnauthorizedActionError(
            message,
            details={"staff_id": target.staff_id, "action": action.value}
        )

    def _reject_self(self, actor: ActorContext, target: StaffAccount, action: WorkflowAction) -> None:
        if actor.staff_id == target.staff_id:
            logger.warning(
                f"Self {action.value} attempted by {actor.email}",
                extra={"actor_id": actor.staff_id, "action": action.value}
            )
            raise CannotActOnSelfError(
                "You cannot change the status of your own account.",
                details={"staff_id": target.staff_id, "action": action.value}
            )

    def require_can_decide_registration(
        self,
        actor: ActorContext,
        actor_account: Optional[StaffAccount],
        pending: StaffAccount,
        action: WorkflowAction
    ) -> None:
        """Approve / reject authorization"""
        if pending.role == StaffRole.CHANCELLOR:
            if self._is_acting_chancellor(actor_account, pending) or self.is_system_admin(actor):
                return
            self._deny(actor, pending, action, "You can only decide chancellor registrations for your own diocese.")

        if (
            self._is_parish_colleague(actor_account, pending)
            or self._is_acting_chancellor(actor_account, pending)
            or self.is_system_admin(actor)
        ):
            return
        self._deny(actor, pending, action, "You can only decide staff registrations for your own parish.")

    def require_can_end_term(
        self,
        actor: ActorContext,
        actor_account: Optional[StaffAccount],
        target: StaffAccount
    ) -> None:
        """End-term authorization (scope-superior only)"""
        self._reject_self(actor, target, WorkflowAction.END_TERM)
        if self.is_system_admin(actor):
            return
        if target.role == StaffRole.PARISH_STAFF and self._is_acting_chancellor(actor_account, target):
            return
        self._deny(actor, target, WorkflowAction.END_TERM, "Only a superior authority can end this term.")

    def require_can_toggle(
        self,
        actor: ActorContext,
        actor_account: Optional[StaffAccount],
        target: StaffAccount,
        action: WorkflowAction
    ) -> None:
        """Deactivate / reactivate authorization"""
        self._reject_self(actor, target, action)
        if self.is_system_admin(actor):
            return
        if target.role == StaffRole.PARISH_STAFF and (
            self._is_parish_colleague(actor_account, target)
            or self._is_acting_chancellor(actor_account, target)
        ):
            return
        self._deny(actor, target, action, "You can only manage staff accounts within your own scope.")

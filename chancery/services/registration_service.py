"""Registration Service - Self-registration of staff accounts"""
import re
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email

from ..config.settings import settings
from ..domain.models import RegistrationRequest, RegistrationResult, StaffAccount, StaffScope
from ..domain.enums import ROLE_AUDIT_ACTIONS, ResourceType, StaffRole, StaffStatus
from ..domain.errors import (
    DomainError, InvalidContactError, OrphanedIdentityError, StoreWriteError, WeakCredentialError
)
from ..engine.audit_writer import AuditWriter, actor_from_account
from ..utils.logger import get_logger
from ..utils.time import utc_now

logger = get_logger(__name__)

# Philippine mobile/landline: optional +63 or 0 prefix, then ten digits
PHONE_PATTERN = re.compile(r"^(\+63|0)?[0-9]{10}$")
MIN_NAME_LENGTH = 2


class RegistrationService:
    """
    Creates a login identity plus a pending staff account.

    The identity is created first. If the account write then fails the
    identity is deleted again, so a failed registration never leaves a
    login behind without an account.
    """

    def __init__(self, staff_repo: Any, audit_writer: AuditWriter, identity_provider: Any):
        self.staff_repo = staff_repo
        self.audit_writer = audit_writer
        self.identity_provider = identity_provider

    def register(self, request: RegistrationRequest) -> RegistrationResult:
        """
        Register a new staff member awaiting approval.

        Raises:
            InvalidContactError, WeakCredentialError, DuplicateIdentityError,
            IdentityProviderError, StoreWriteError, OrphanedIdentityError
        """
        email = self._normalize_email(request.email)
        name = self._validate_name(request.name)
        phone = self._validate_phone(request.phone_number)
        scope = self._validate_scope(request.role, request.scope)
        self._validate_password(request.password)

        identity_id = self.identity_provider.create_identity(email, request.password, name)

        account = StaffAccount(
            staff_id=identity_id,
            email=email,
            name=name,
            phone_number=phone,
            role=request.role,
            scope=scope,
            status=StaffStatus.PENDING,
            registration_source="self",
            registered_at=utc_now(),
        )

        try:
            self.staff_repo.insert_account(account)
        except Exception as e:
            self._roll_back_identity(identity_id, email, e)

        logger.info(
            f"Registered {request.role.value} {identity_id} pending approval",
            extra={
                "staff_id": identity_id,
                "role": request.role.value,
                "diocese": scope.diocese,
                "parish_id": scope.parish_id,
                "status": StaffStatus.PENDING.value,
            }
        )

        self.audit_writer.record(
            actor=actor_from_account(account),
            action=ROLE_AUDIT_ACTIONS[request.role]["register"],
            resource_type=ResourceType.USER,
            resource_id=identity_id,
            resource_name=name,
            diocese=scope.diocese,
            parish_id=scope.parish_id,
            metadata={
                "email": email,
                "parish_name": scope.parish_name,
                "position": scope.position.value if scope.position else None,
            }
        )

        return RegistrationResult(
            staff_id=identity_id,
            status=StaffStatus.PENDING,
            message="Registration submitted. Your account is awaiting approval.",
        )

    # =========================================================================
    # Compensation
    # =========================================================================

    def _roll_back_identity(self, identity_id: str, email: str, cause: Exception) -> None:
        logger.error(
            f"Account write failed for {email}, deleting identity {identity_id}: {cause}",
            extra={"staff_id": identity_id}
        )
        try:
            self.identity_provider.delete_identity(identity_id)
        except Exception as delete_error:
            logger.error(
                f"Orphaned identity {identity_id} for {email}: {delete_error}",
                extra={"staff_id": identity_id, "error_code": OrphanedIdentityError.error_code}
            )
            raise OrphanedIdentityError(
                "Registration failed and the sign-in account could not be removed. Please contact support.",
                details={"identity_id": identity_id, "email": email}
            )
        if isinstance(cause, StoreWriteError):
            raise cause
        if isinstance(cause, DomainError):
            raise StoreWriteError(cause.message, details=cause.details)
        raise StoreWriteError("Registration could not be saved. Please try again.", details={"cause": str(cause)})

    # =========================================================================
    # Validation
    # =========================================================================

    def _normalize_email(self, email: str) -> str:
        try:
            return validate_email(email.strip(), check_deliverability=False).normalized.lower()
        except EmailNotValidError as e:
            raise InvalidContactError(f"Invalid email address: {e}", details={"field": "email"})

    def _validate_name(self, name: str) -> str:
        name = (name or "").strip()
        if len(name) < MIN_NAME_LENGTH:
            raise InvalidContactError("Please enter your full name.", details={"field": "name"})
        return name

    def _validate_phone(self, phone: Optional[str]) -> Optional[str]:
        if not phone:
            return None
        compact = re.sub(r"[\s\-()]", "", phone)
        if not PHONE_PATTERN.match(compact):
            raise InvalidContactError("Invalid phone number format.", details={"field": "phone_number"})
        return compact

    def _validate_scope(self, role: StaffRole, scope: StaffScope) -> StaffScope:
        diocese = (scope.diocese or "").strip().lower()
        if diocese not in settings.dioceses_list:
            raise InvalidContactError(
                f"Unknown diocese: {scope.diocese}",
                details={"field": "diocese", "allowed": settings.dioceses_list}
            )
        if role == StaffRole.PARISH_STAFF:
            if not (scope.parish_id or "").strip():
                raise InvalidContactError("Parish is required for parish staff.", details={"field": "parish_id"})
            if scope.position is None:
                raise InvalidContactError("Position is required for parish staff.", details={"field": "position"})
            return scope.model_copy(update={"diocese": diocese, "parish_id": scope.parish_id.strip()})
        # Chancellors bind to the whole diocese
        return StaffScope(diocese=diocese)

    def _validate_password(self, password: str) -> None:
        if len(password or "") < settings.min_password_length:
            raise WeakCredentialError(
                f"Password must be at least {settings.min_password_length} characters.",
                details={"min_length": settings.min_password_length}
            )

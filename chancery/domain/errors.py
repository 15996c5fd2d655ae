"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details
            }
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class AuthorizationError(DomainError):
    """User lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


class UnauthorizedActionError(AuthorizationError):
    """Actor's role or scope does not cover the target account"""
    error_code = "UNAUTHORIZED"


class CannotActOnSelfError(AuthorizationError):
    """Actor tried to change their own account status"""
    error_code = "CANNOT_ACT_ON_SELF"


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


class WeakCredentialError(ValidationError):
    """Password does not meet policy"""
    error_code = "WEAK_CREDENTIAL"


class InvalidContactError(ValidationError):
    """Contact or scope fields are malformed"""
    error_code = "INVALID_CONTACT"


class ReasonTooShortError(ValidationError):
    """Reason text shorter than policy minimum"""
    error_code = "REASON_TOO_SHORT"


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class StaffNotFoundError(NotFoundError):
    """Staff account not found"""
    error_code = "STAFF_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict (e.g., concurrent modification)"""
    error_code = "CONFLICT"
    http_status = 409


class AlreadyProcessedError(ConflictError):
    """Registration was already approved or rejected"""
    error_code = "ALREADY_PROCESSED"


class NotActiveError(ConflictError):
    """Account is not in the active state"""
    error_code = "NOT_ACTIVE"


class InvalidTransitionError(ConflictError):
    """Status transition not allowed from the current state"""
    error_code = "INVALID_TRANSITION"


class SeatOccupiedError(ConflictError):
    """Singleton seat already held by another account"""
    error_code = "SEAT_OCCUPIED"


class DuplicateIdentityError(ConflictError):
    """Identity provider already has this email"""
    error_code = "DUPLICATE_IDENTITY"


# Infrastructure Errors
class InfrastructureError(DomainError):
    """Backing service failure; safe for the caller to retry"""
    error_code = "INFRASTRUCTURE_ERROR"
    http_status = 503


class StoreWriteError(InfrastructureError):
    """Record store rejected or failed a write"""
    error_code = "STORE_WRITE_ERROR"


class IdentityProviderError(InfrastructureError):
    """Identity provider unavailable or returned an unexpected error"""
    error_code = "IDENTITY_PROVIDER_ERROR"
    http_status = 502


class OrphanedIdentityError(InfrastructureError):
    """Profile write failed and the identity it belonged to could not be removed"""
    error_code = "ORPHANED_IDENTITY"
    http_status = 500

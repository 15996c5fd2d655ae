"""Identity Service - Login identities for staff accounts

Two providers share one interface:
- FirebaseIdentityProvider talks to the Identity Toolkit admin REST API
- InMemoryIdentityProvider keeps identities in process memory (dev/tests)
"""
import threading
import time
from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from ..config.settings import settings
from ..domain.errors import (
    DuplicateIdentityError, IdentityProviderError, InvalidContactError, WeakCredentialError
)
from ..utils.idgen import generate_identity_id
from ..utils.logger import get_logger

logger = get_logger(__name__)


class FirebaseIdentityProvider:
    """Identity provider backed by Firebase Authentication"""

    def __init__(
        self,
        project_id: Optional[str] = None,
        api_base: Optional[str] = None,
        admin_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        self.project_id = project_id or settings.firebase_project_id
        self.api_base = (api_base or settings.firebase_api_base).rstrip("/")
        self.admin_token = admin_token or settings.identity_admin_token
        self.timeout = timeout or settings.identity_timeout_seconds
        self._transport = transport

    @property
    def _accounts_url(self) -> str:
        return f"{self.api_base}/projects/{self.project_id}/accounts"

    def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self.admin_token:
            headers["Authorization"] = f"Bearer {self.admin_token}"
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Identity provider unreachable: {e}")
            raise IdentityProviderError(
                "The sign-in service is unavailable. Please try again.",
                details={"cause": str(e)}
            )

        if response.status_code == 200:
            return response.json()

        try:
            code = response.json().get("error", {}).get("message", "")
        except ValueError:
            code = ""
        self._raise_for_code(code.split(" ")[0] if code else "", response.status_code)
        return {}

    def _raise_for_code(self, code: str, status_code: int) -> None:
        if code == "EMAIL_EXISTS":
            raise DuplicateIdentityError("An account with this email already exists.")
        if code == "WEAK_PASSWORD":
            raise WeakCredentialError("Password is too weak.")
        if code == "INVALID_EMAIL":
            raise InvalidContactError("Email address is invalid.", details={"field": "email"})
        logger.error(f"Identity provider error {status_code}: {code or 'unknown'}")
        raise IdentityProviderError(
            "The sign-in service returned an error.",
            details={"status_code": status_code, "code": code or None}
        )

    def create_identity(self, email: str, password: str, display_name: str) -> str:
        """Create a login identity and return its ID"""
        data = self._post(
            self._accounts_url,
            {"email": email, "password": password, "displayName": display_name}
        )
        identity_id = data.get("localId")
        if not identity_id:
            raise IdentityProviderError("The sign-in service did not return an account ID.")
        logger.info(f"Created identity for {email}", extra={"staff_id": identity_id})
        return identity_id

    def delete_identity(self, identity_id: str) -> None:
        """Delete a login identity; deleting an unknown identity is a no-op"""
        try:
            self._post(f"{self._accounts_url}:delete", {"localId": identity_id})
        except IdentityProviderError as e:
            if e.details.get("code") == "USER_NOT_FOUND":
                return
            raise
        logger.info(f"Deleted identity {identity_id}", extra={"staff_id": identity_id})

    def revoke_sessions(self, identity_id: str) -> None:
        """Invalidate every refresh token issued before now"""
        self._post(
            f"{self._accounts_url}:update",
            {"localId": identity_id, "validSince": str(int(time.time()))}
        )
        logger.info(f"Revoked sessions for {identity_id}", extra={"staff_id": identity_id})


class InMemoryIdentityProvider:
    """Identity provider for development and tests"""

    def __init__(self):
        self._lock = threading.Lock()
        self.identities: Dict[str, Dict[str, Any]] = {}
        self.revocations: Dict[str, int] = {}

    def create_identity(self, email: str, password: str, display_name: str) -> str:
        email_key = email.lower()
        with self._lock:
            if any(i["email"] == email_key for i in self.identities.values()):
                raise DuplicateIdentityError("An account with this email already exists.")
            identity_id = generate_identity_id()
            self.identities[identity_id] = {"email": email_key, "display_name": display_name}
        return identity_id

    def delete_identity(self, identity_id: str) -> None:
        with self._lock:
            self.identities.pop(identity_id, None)

    def revoke_sessions(self, identity_id: str) -> None:
        with self._lock:
            self.revocations[identity_id] = self.revocations.get(identity_id, 0) + 1

    def exists(self, identity_id: str) -> bool:
        with self._lock:
            return identity_id in self.identities


@lru_cache()
def get_identity_provider():
    """Build the configured identity provider (cached per process)"""
    if settings.identity_backend.lower() == "memory":
        return InMemoryIdentityProvider()
    return FirebaseIdentityProvider()

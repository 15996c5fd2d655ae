"""JWT Token Validation for Firebase Authentication ID tokens"""
import jwt
from jwt import PyJWKClient
from typing import Any, Dict, List, Optional
from datetime import timedelta

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from .logger import get_logger
from .time import utc_now

logger = get_logger(__name__)

FIREBASE_JWKS_URI = "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com"


class JWTValidator:
    """Firebase ID token validator"""

    def __init__(self):
        self._jwks_client: Optional[PyJWKClient] = None
        self._jwks_cache_time = None
        self._cache_duration = timedelta(hours=6)

    @property
    def issuer(self) -> str:
        """Expected token issuer for the configured project"""
        return f"https://securetoken.google.com/{settings.firebase_project_id}"

    @property
    def jwks_client(self) -> PyJWKClient:
        """Get or create JWKS client with caching"""
        now = utc_now()
        if (self._jwks_client is None or
                self._jwks_cache_time is None or
                now - self._jwks_cache_time > self._cache_duration):
            self._jwks_client = PyJWKClient(FIREBASE_JWKS_URI)
            self._jwks_cache_time = now
            logger.info(f"Refreshed JWKS client cache from {FIREBASE_JWKS_URI}")
        return self._jwks_client

    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a Firebase ID token.

        In development the signature is not checked so locally minted
        tokens work; expiry is still enforced.

        Raises:
            AuthenticationError: If token is invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            if not settings.is_production:
                claims = jwt.decode(
                    token,
                    options={
                        "verify_signature": False,
                        "verify_exp": True,
                        "verify_aud": False,
                        "verify_iss": False,
                    }
                )
                logger.debug(f"Dev mode - token for {claims.get('email', 'unknown')}")
                return claims

            signing_key = self.jwks_client.get_signing_key_from_jwt(token)
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256"],
                audience=settings.firebase_project_id,
                issuer=self.issuer,
                options={"verify_exp": True, "verify_aud": True, "verify_iss": True}
            )

        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidAudienceError as e:
            logger.warning(f"Invalid token audience: {e}")
            raise AuthenticationError("Invalid token audience")
        except jwt.InvalidIssuerError:
            logger.warning("Invalid token issuer")
            raise AuthenticationError("Invalid token issuer")
        except jwt.PyJWTError as e:
            logger.warning(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

    def get_actor_context(self, token: str) -> ActorContext:
        """Extract actor context from a validated token"""
        claims = self.validate_token(token)

        staff_id = claims.get("user_id") or claims.get("sub") or ""
        email = claims.get("email") or ""
        if not staff_id or not email:
            logger.warning(f"Token missing identity claims. Available claims: {list(claims.keys())}")
            raise AuthenticationError("Unable to determine user from token")

        roles: List[str] = claims.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]

        return ActorContext(
            staff_id=staff_id,
            email=email,
            display_name=claims.get("name") or email,
            roles=roles
        )


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def get_current_user(authorization: str) -> ActorContext:
    """Get current user from authorization header"""
    if not authorization:
        raise AuthenticationError("Authorization header is missing")
    return get_jwt_validator().get_actor_context(authorization)

"""Service modules - Business logic layer"""
from .identity_service import FirebaseIdentityProvider, InMemoryIdentityProvider, get_identity_provider
from .registration_service import RegistrationService
from .query_service import QueryService

__all__ = [
    "FirebaseIdentityProvider",
    "InMemoryIdentityProvider",
    "get_identity_provider",
    "RegistrationService",
    "QueryService",
]

"""Service wiring - one shared instance of each service per process"""
from functools import lru_cache

from ..engine.audit_writer import AuditWriter
from ..engine.succession_engine import SuccessionEngine
from ..repositories import get_repositories
from .identity_service import get_identity_provider
from .query_service import QueryService
from .registration_service import RegistrationService


@lru_cache()
def get_audit_writer() -> AuditWriter:
    _, audit_repo = get_repositories()
    return AuditWriter(audit_repo)


@lru_cache()
def get_succession_engine() -> SuccessionEngine:
    staff_repo, _ = get_repositories()
    return SuccessionEngine(staff_repo, get_audit_writer(), get_identity_provider())


@lru_cache()
def get_registration_service() -> RegistrationService:
    staff_repo, _ = get_repositories()
    return RegistrationService(staff_repo, get_audit_writer(), get_identity_provider())


@lru_cache()
def get_query_service() -> QueryService:
    staff_repo, audit_repo = get_repositories()
    return QueryService(staff_repo, audit_repo)

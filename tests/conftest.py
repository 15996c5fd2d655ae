"""
Pytest Configuration and Fixtures

Shared fixtures for all tests. Everything runs against the in-memory
store and identity provider; settings are pointed at them before any
chancery module is imported.
"""

import os
import tempfile

os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("IDENTITY_BACKEND", "memory")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("LOGS_PATH", tempfile.mkdtemp(prefix="chancery-logs-"))

import pytest
from typing import Optional

from chancery.domain.models import (
    ActorContext, RegistrationRequest, StaffAccount, StaffScope, TermRecord
)
from chancery.domain.enums import ParishPosition, StaffRole, StaffStatus, TermStatus
from chancery.engine.audit_writer import AuditWriter
from chancery.engine.succession_engine import SuccessionEngine
from chancery.repositories.memory_store import MemoryAuditRepository, MemoryStaffRepository
from chancery.services.identity_service import InMemoryIdentityProvider
from chancery.services.query_service import QueryService
from chancery.services.registration_service import RegistrationService
from chancery.utils.idgen import generate_identity_id, generate_term_id
from chancery.utils.time import utc_now

DIOCESE = "tagbilaran"
PARISH_ID = "parish-loboc"


# =============================================================================
# Wiring
# =============================================================================

@pytest.fixture
def staff_repo() -> MemoryStaffRepository:
    return MemoryStaffRepository()


@pytest.fixture
def audit_repo() -> MemoryAuditRepository:
    return MemoryAuditRepository()


@pytest.fixture
def audit_writer(audit_repo) -> AuditWriter:
    return AuditWriter(audit_repo)


@pytest.fixture
def identity() -> InMemoryIdentityProvider:
    return InMemoryIdentityProvider()


@pytest.fixture
def engine(staff_repo, audit_writer, identity) -> SuccessionEngine:
    return SuccessionEngine(staff_repo, audit_writer, identity)


@pytest.fixture
def registration(staff_repo, audit_writer, identity) -> RegistrationService:
    return RegistrationService(staff_repo, audit_writer, identity)


@pytest.fixture
def queries(staff_repo, audit_repo) -> QueryService:
    return QueryService(staff_repo, audit_repo)


# =============================================================================
# Accounts
# =============================================================================

def parish_scope(parish_id: str = PARISH_ID, position: ParishPosition = ParishPosition.SECRETARY) -> StaffScope:
    return StaffScope(
        diocese=DIOCESE,
        parish_id=parish_id,
        parish_name="Loboc Church",
        municipality="Loboc",
        position=position,
    )


def seat_account(
    staff_repo: MemoryStaffRepository,
    role: StaffRole,
    scope: StaffScope,
    name: str,
    email: str,
    status: StaffStatus = StaffStatus.ACTIVE
) -> StaffAccount:
    """Insert an already-seated account with its open term"""
    now = utc_now()
    account = StaffAccount(
        staff_id=generate_identity_id(),
        email=email,
        name=name,
        role=role,
        scope=scope,
        status=status,
        registration_source="seed",
        term_start=now,
        registered_at=now,
    )
    staff_repo.insert_account(account)
    staff_repo.insert_term(TermRecord(
        term_id=generate_term_id(),
        staff_id=account.staff_id,
        staff_name=name,
        staff_email=email,
        role=role,
        scope=scope,
        term_start=now,
        status=TermStatus.ACTIVE,
        created_at=now,
    ))
    return account


def actor_for(account: StaffAccount, roles: Optional[list] = None) -> ActorContext:
    return ActorContext(
        staff_id=account.staff_id,
        email=account.email,
        display_name=account.name,
        roles=roles or [],
    )


def register(
    registration: RegistrationService,
    role: StaffRole,
    email: str,
    name: str,
    scope: Optional[StaffScope] = None,
    password: str = "s3cure-pass"
) -> str:
    result = registration.register(RegistrationRequest(
        email=email,
        password=password,
        name=name,
        phone_number="09171234567",
        role=role,
        scope=scope or StaffScope(diocese=DIOCESE),
    ))
    return result.staff_id


@pytest.fixture
def chancellor(staff_repo) -> StaffAccount:
    """Sitting chancellor of the test diocese"""
    return seat_account(
        staff_repo, StaffRole.CHANCELLOR, StaffScope(diocese=DIOCESE),
        "Fr. Antonio Reyes", "antonio@tagbilaran.example.org"
    )


@pytest.fixture
def secretary(staff_repo) -> StaffAccount:
    """Active parish secretary of the test parish"""
    return seat_account(
        staff_repo, StaffRole.PARISH_STAFF, parish_scope(),
        "Maria Santos", "maria@loboc.example.org"
    )


@pytest.fixture
def system_admin() -> ActorContext:
    return ActorContext(
        staff_id="sysadmin-0001",
        email="admin@chancery.example.org",
        display_name="System Administrator",
        roles=["system_admin"],
    )

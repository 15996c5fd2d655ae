"""
Tests for self-registration and its identity rollback.
"""

import pytest

from chancery.domain.enums import AuditAction, ParishPosition, ResourceType, StaffRole, StaffStatus
from chancery.domain.errors import (
    DuplicateIdentityError, InvalidContactError, OrphanedIdentityError,
    StoreWriteError, WeakCredentialError
)
from chancery.domain.models import RegistrationRequest, StaffScope

from tests.conftest import DIOCESE, PARISH_ID, parish_scope, register


def _request(**overrides) -> RegistrationRequest:
    data = dict(
        email="pedro@tagbilaran.example.org",
        password="s3cure-pass",
        name="Fr. Pedro Cruz",
        phone_number="+639171234567",
        role=StaffRole.CHANCELLOR,
        scope=StaffScope(diocese=DIOCESE),
    )
    data.update(overrides)
    return RegistrationRequest(**data)


class TestRegister:

    def test_creates_pending_account_and_identity(self, registration, staff_repo, identity):
        result = registration.register(_request())

        assert result.status == StaffStatus.PENDING
        assert identity.exists(result.staff_id)
        account = staff_repo.get_account(result.staff_id)
        assert account.status == StaffStatus.PENDING
        assert account.registration_source == "self"
        assert account.term_start is None
        assert account.phone_number == "+639171234567"

    def test_email_normalised(self, registration, staff_repo):
        result = registration.register(_request(email="  Pedro@Tagbilaran.Example.org "))

        assert staff_repo.get_account(result.staff_id).email == "pedro@tagbilaran.example.org"

    def test_parish_registration_keeps_scope(self, registration, staff_repo):
        staff_id = register(
            registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim",
            scope=parish_scope(position=ParishPosition.PRIEST)
        )

        scope = staff_repo.get_account(staff_id).scope
        assert scope.parish_id == PARISH_ID
        assert scope.position == ParishPosition.PRIEST

    def test_registration_is_audited_as_the_new_account(self, registration, audit_repo):
        result = registration.register(_request())

        events = audit_repo.get_events_for_resource(ResourceType.USER, result.staff_id)
        assert [e.action for e in events] == [AuditAction.CHANCELLOR_REGISTER]
        assert events[0].actor.staff_id == result.staff_id

    def test_audit_failure_does_not_fail_registration(self, registration, audit_repo, audit_writer, monkeypatch):
        def broken(event):
            raise RuntimeError("audit store down")

        monkeypatch.setattr(audit_repo, "create_event", broken)

        result = registration.register(_request())

        assert result.status == StaffStatus.PENDING
        assert audit_writer.pending_count == 1

    def test_pending_chancellor_registration_allowed_while_seat_filled(self, registration, chancellor):
        result = registration.register(_request())

        assert result.status == StaffStatus.PENDING


class TestValidation:

    def test_short_password(self, registration, identity):
        with pytest.raises(WeakCredentialError):
            registration.register(_request(password="short"))
        assert identity.identities == {}

    @pytest.mark.parametrize("email", ["not-an-email", "a@", "@example.org"])
    def test_bad_email(self, registration, email):
        with pytest.raises(InvalidContactError):
            registration.register(_request(email=email))

    def test_bad_phone(self, registration):
        with pytest.raises(InvalidContactError):
            registration.register(_request(phone_number="12-34"))

    def test_blank_name(self, registration):
        with pytest.raises(InvalidContactError):
            registration.register(_request(name="  "))

    def test_unknown_diocese(self, registration):
        with pytest.raises(InvalidContactError):
            registration.register(_request(scope=StaffScope(diocese="manila")))

    def test_parish_staff_needs_parish_and_position(self, registration):
        with pytest.raises(InvalidContactError):
            registration.register(_request(role=StaffRole.PARISH_STAFF, scope=StaffScope(diocese=DIOCESE)))
        with pytest.raises(InvalidContactError):
            registration.register(_request(
                role=StaffRole.PARISH_STAFF, scope=StaffScope(diocese=DIOCESE, parish_id=PARISH_ID)
            ))

    def test_duplicate_email(self, registration):
        registration.register(_request())

        with pytest.raises(DuplicateIdentityError):
            registration.register(_request(name="Someone Else"))


class TestRollback:

    def test_store_failure_deletes_identity(self, registration, staff_repo, identity, monkeypatch):
        def fail_insert(account, session=None):
            raise StoreWriteError("write timeout")

        monkeypatch.setattr(staff_repo, "insert_account", fail_insert)

        with pytest.raises(StoreWriteError):
            registration.register(_request())

        assert identity.identities == {}

    def test_failed_cleanup_reports_orphan(self, registration, staff_repo, identity, monkeypatch):
        def fail_insert(account, session=None):
            raise StoreWriteError("write timeout")

        def fail_delete(identity_id):
            raise RuntimeError("identity provider down")

        monkeypatch.setattr(staff_repo, "insert_account", fail_insert)
        monkeypatch.setattr(identity, "delete_identity", fail_delete)

        with pytest.raises(OrphanedIdentityError) as exc_info:
            registration.register(_request())

        orphan_id = exc_info.value.details["identity_id"]
        assert identity.exists(orphan_id)

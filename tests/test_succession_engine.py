"""
Tests for the succession engine: approval under both seat policies,
rejection, end of term, and suspension.
"""

import pytest

from chancery.domain.enums import (
    AuditAction, ParishPosition, StaffRole, StaffStatus, SuccessionPolicyKind, TermStatus
)
from chancery.domain.errors import (
    AlreadyProcessedError, CannotActOnSelfError, InvalidTransitionError, NotActiveError,
    ReasonTooShortError, SeatOccupiedError, StaffNotFoundError, StoreWriteError,
    UnauthorizedActionError, ValidationError
)
from chancery.domain.models import StaffScope

from tests.conftest import (
    DIOCESE, actor_for, parish_scope, register, seat_account
)


# =============================================================================
# Chancellor succession (exclusive singleton)
# =============================================================================

class TestChancellorSuccession:

    def test_approving_successor_archives_the_approver(self, engine, registration, staff_repo, chancellor):
        successor_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        outcome = engine.approve(actor_for(chancellor), successor_id, notes="Welcome")

        assert outcome.policy == SuccessionPolicyKind.EXCLUSIVE_SINGLETON
        assert outcome.archived_staff_ids == [chancellor.staff_id]
        assert outcome.approver_archived
        assert len(outcome.closed_term_ids) == 1

        successor = staff_repo.get_account(successor_id)
        assert successor.status == StaffStatus.ACTIVE
        assert successor.term_start is not None
        assert successor.approved_by == chancellor.staff_id
        assert successor.approved_by_name == chancellor.name
        assert successor.approval_notes == "Welcome"

        outgoing = staff_repo.get_account(chancellor.staff_id)
        assert outgoing.status == StaffStatus.ARCHIVED
        assert outgoing.term_end is not None
        assert outgoing.archived_reason == "Term ended - approved successor: Fr. Pedro Cruz"

    def test_closed_term_records_successor_and_snapshot(self, engine, registration, staff_repo, chancellor):
        successor_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        outcome = engine.approve(actor_for(chancellor), successor_id)

        history = staff_repo.find_terms(role=StaffRole.CHANCELLOR, diocese=DIOCESE)
        assert [t.staff_id for t in history] == [successor_id, chancellor.staff_id]

        opened, closed = history
        assert opened.term_id == outcome.opened_term_id
        assert opened.status == TermStatus.ACTIVE
        assert opened.term_end is None

        assert closed.term_id == outcome.closed_term_ids[0]
        assert closed.status == TermStatus.COMPLETED
        assert closed.term_end is not None
        assert closed.approved_successor_id == successor_id
        assert closed.approved_successor_name == "Fr. Pedro Cruz"
        assert closed.staff_name == chancellor.name
        assert closed.staff_email == chancellor.email
        assert closed.closed_at is not None

    def test_only_one_chancellor_seated_after_succession(self, engine, registration, queries, chancellor):
        successor_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")
        engine.approve(actor_for(chancellor), successor_id)

        occupant = queries.current_occupant(DIOCESE)
        assert occupant.staff_id == successor_id
        seated = [
            a for a in queries.staff_repo.find_accounts(role=StaffRole.CHANCELLOR, diocese=DIOCESE)
            if a.occupies_seat
        ]
        assert len(seated) == 1

    def test_closed_term_carries_activity_stats(self, engine, registration, staff_repo, chancellor):
        clerk_id = register(
            registration, StaffRole.PARISH_STAFF, "clerk@loboc.example.org", "Jose Clerk", scope=parish_scope()
        )
        engine.approve(actor_for(chancellor), clerk_id)
        successor_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        outcome = engine.approve(actor_for(chancellor), successor_id)

        closed = [t for t in staff_repo.find_terms(staff_id=chancellor.staff_id)][0]
        assert closed.term_id == outcome.closed_term_ids[0]
        assert closed.stats is not None
        assert closed.stats.total_actions == 1
        assert closed.stats.action_breakdown == {AuditAction.PARISH_STAFF_APPROVE.value: 1}

    def test_archived_approver_sessions_revoked(self, engine, registration, identity, chancellor):
        successor_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        outcome = engine.approve(actor_for(chancellor), successor_id)

        assert outcome.sessions_revoked == [chancellor.staff_id]
        assert identity.revocations[chancellor.staff_id] == 1

    def test_revocation_failure_does_not_fail_approval(self, engine, registration, identity, staff_repo, chancellor, monkeypatch):
        def boom(identity_id):
            raise RuntimeError("identity provider down")

        monkeypatch.setattr(identity, "revoke_sessions", boom)
        successor_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        outcome = engine.approve(actor_for(chancellor), successor_id)

        assert outcome.sessions_revoked == []
        assert staff_repo.get_account(successor_id).status == StaffStatus.ACTIVE

    def test_approval_writes_activation_and_archival_audit(self, engine, registration, queries, chancellor):
        successor_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        engine.approve(actor_for(chancellor), successor_id)

        actions = {e.action for e in queries.actor_activity(chancellor.staff_id)}
        assert actions == {AuditAction.CHANCELLOR_APPROVE, AuditAction.CHANCELLOR_ARCHIVE}

    def test_system_admin_fills_vacant_seat(self, engine, registration, staff_repo, system_admin):
        pending_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        outcome = engine.approve(system_admin, pending_id)

        assert outcome.archived_staff_ids == []
        assert outcome.closed_term_ids == []
        assert staff_repo.get_account(pending_id).approved_by_name == system_admin.display_name

    def test_system_admin_cannot_approve_into_occupied_seat(self, engine, registration, staff_repo, chancellor, system_admin):
        pending_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        with pytest.raises(SeatOccupiedError):
            engine.approve(system_admin, pending_id)

        assert staff_repo.get_account(pending_id).status == StaffStatus.PENDING
        assert staff_repo.get_account(chancellor.staff_id).status == StaffStatus.ACTIVE

    def test_suspended_chancellor_still_blocks_the_seat(self, engine, registration, staff_repo, system_admin):
        seat_account(
            staff_repo, StaffRole.CHANCELLOR, StaffScope(diocese=DIOCESE),
            "Fr. Suspended", "suspended@tagbilaran.example.org", status=StaffStatus.INACTIVE
        )
        pending_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        with pytest.raises(SeatOccupiedError):
            engine.approve(system_admin, pending_id)

    def test_chancellor_of_other_diocese_cannot_approve(self, engine, registration, staff_repo):
        other = seat_account(
            staff_repo, StaffRole.CHANCELLOR, StaffScope(diocese="talibon"),
            "Fr. Talibon", "chancellor@talibon.example.org"
        )
        pending_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        with pytest.raises(UnauthorizedActionError):
            engine.approve(actor_for(other), pending_id)

    def test_parish_staff_cannot_approve_chancellor(self, engine, registration, secretary):
        pending_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        with pytest.raises(UnauthorizedActionError):
            engine.approve(actor_for(secretary), pending_id)

    def test_failure_mid_transaction_rolls_everything_back(self, engine, registration, staff_repo, chancellor, monkeypatch):
        successor_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")

        def fail_close(term_id, updates, session=None):
            raise StoreWriteError("disk full")

        monkeypatch.setattr(staff_repo, "close_term", fail_close)

        with pytest.raises(StoreWriteError):
            engine.approve(actor_for(chancellor), successor_id)

        assert staff_repo.get_account(successor_id).status == StaffStatus.PENDING
        assert staff_repo.get_account(chancellor.staff_id).status == StaffStatus.ACTIVE
        assert staff_repo.get_open_term(successor_id) is None
        assert staff_repo.get_open_term(chancellor.staff_id) is not None


# =============================================================================
# Parish staff (coexisting)
# =============================================================================

class TestParishStaffApproval:

    def test_approver_keeps_seat(self, engine, registration, staff_repo, secretary):
        pending_id = register(
            registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
        )

        outcome = engine.approve(actor_for(secretary), pending_id)

        assert outcome.policy == SuccessionPolicyKind.COEXISTING
        assert outcome.archived_staff_ids == []
        assert outcome.closed_term_ids == []
        assert staff_repo.get_account(secretary.staff_id).status == StaffStatus.ACTIVE
        assert staff_repo.get_account(pending_id).status == StaffStatus.ACTIVE

    def test_both_secretaries_listed_as_occupants(self, engine, registration, queries, secretary):
        pending_id = register(
            registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
        )
        engine.approve(actor_for(secretary), pending_id)

        occupants = queries.current_occupants(DIOCESE, secretary.scope.parish_id, ParishPosition.SECRETARY)

        assert {a.staff_id for a in occupants} == {secretary.staff_id, pending_id}

    def test_chancellor_may_approve_parish_staff(self, engine, registration, staff_repo, chancellor):
        pending_id = register(
            registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
        )

        engine.approve(actor_for(chancellor), pending_id)

        assert staff_repo.get_account(chancellor.staff_id).status == StaffStatus.ACTIVE
        assert staff_repo.get_account(pending_id).status == StaffStatus.ACTIVE

    def test_staff_of_other_parish_cannot_approve(self, engine, registration, staff_repo):
        outsider = seat_account(
            staff_repo, StaffRole.PARISH_STAFF, parish_scope("parish-baclayon"),
            "Outsider", "out@baclayon.example.org"
        )
        pending_id = register(
            registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
        )

        with pytest.raises(UnauthorizedActionError):
            engine.approve(actor_for(outsider), pending_id)

    def test_suspended_staff_cannot_approve(self, engine, registration, staff_repo):
        suspended = seat_account(
            staff_repo, StaffRole.PARISH_STAFF, parish_scope(),
            "Suspended Sec", "sus@loboc.example.org", status=StaffStatus.INACTIVE
        )
        pending_id = register(
            registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
        )

        with pytest.raises(UnauthorizedActionError):
            engine.approve(actor_for(suspended), pending_id)

    def test_second_approval_reports_already_processed(self, engine, registration, secretary, chancellor):
        pending_id = register(
            registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
        )
        engine.approve(actor_for(secretary), pending_id)

        with pytest.raises(AlreadyProcessedError):
            engine.approve(actor_for(chancellor), pending_id)

    def test_unknown_account(self, engine, secretary):
        with pytest.raises(StaffNotFoundError):
            engine.approve(actor_for(secretary), "no-such-staff")


# =============================================================================
# Rejection
# =============================================================================

class TestReject:

    def test_rejection_is_terminal_and_termless(self, engine, registration, staff_repo, secretary):
        pending_id = register(
            registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
        )

        result = engine.reject(actor_for(secretary), pending_id, "Not a member of this parish")

        assert result.new_status == StaffStatus.REJECTED
        account = staff_repo.get_account(pending_id)
        assert account.rejection_reason == "Not a member of this parish"
        assert account.rejected_by == secretary.staff_id
        assert staff_repo.find_terms(staff_id=pending_id) == []

        with pytest.raises(AlreadyProcessedError):
            engine.approve(actor_for(secretary), pending_id)

    def test_reason_required(self, engine, registration, secretary):
        pending_id = register(
            registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
        )

        with pytest.raises(ValidationError):
            engine.reject(actor_for(secretary), pending_id, "   ")


# =============================================================================
# End of term
# =============================================================================

class TestEndTerm:

    def test_chancellor_ends_parish_staff_term(self, engine, staff_repo, chancellor, secretary):
        result = engine.end_term(actor_for(chancellor), secretary.staff_id, "Reassigned to another parish")

        assert result.new_status == StaffStatus.ARCHIVED
        account = staff_repo.get_account(secretary.staff_id)
        assert account.archived_reason == "Reassigned to another parish"
        assert account.term_end is not None

        term = staff_repo.find_terms(staff_id=secretary.staff_id)[0]
        assert term.term_id == result.closed_term_id
        assert term.status == TermStatus.COMPLETED
        assert term.end_reason == "Reassigned to another parish"
        assert term.approved_successor_id is None
        assert term.stats is not None

    def test_never_activates_a_replacement(self, engine, registration, staff_repo, chancellor, secretary):
        pending_id = register(
            registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
        )

        engine.end_term(actor_for(chancellor), secretary.staff_id, "Retired")

        assert staff_repo.get_account(pending_id).status == StaffStatus.PENDING

    def test_system_admin_ends_chancellor_term(self, engine, staff_repo, chancellor, system_admin, queries):
        engine.end_term(system_admin, chancellor.staff_id, "Appointed bishop")

        assert staff_repo.get_account(chancellor.staff_id).status == StaffStatus.ARCHIVED
        assert queries.current_occupant(DIOCESE) is None

    def test_peer_cannot_end_term(self, engine, staff_repo, secretary):
        peer = seat_account(
            staff_repo, StaffRole.PARISH_STAFF, parish_scope(), "Peer", "peer@loboc.example.org"
        )

        with pytest.raises(UnauthorizedActionError):
            engine.end_term(actor_for(peer), secretary.staff_id, "No reason")

    def test_cannot_end_own_term(self, engine, chancellor):
        with pytest.raises(CannotActOnSelfError):
            engine.end_term(actor_for(chancellor), chancellor.staff_id, "Stepping down")

    def test_requires_active_account(self, engine, staff_repo, chancellor):
        suspended = seat_account(
            staff_repo, StaffRole.PARISH_STAFF, parish_scope(),
            "Suspended", "sus@loboc.example.org", status=StaffStatus.INACTIVE
        )

        with pytest.raises(NotActiveError):
            engine.end_term(actor_for(chancellor), suspended.staff_id, "Left the parish")


# =============================================================================
# Suspension
# =============================================================================

class TestToggleActive:

    def test_reason_of_nine_characters_is_too_short(self, engine, staff_repo, chancellor, secretary):
        with pytest.raises(ReasonTooShortError):
            engine.toggle_active(actor_for(chancellor), secretary.staff_id, StaffStatus.INACTIVE, "too short")

        assert staff_repo.get_account(secretary.staff_id).status == StaffStatus.ACTIVE

    def test_deactivate_keeps_term_open(self, engine, staff_repo, chancellor, secretary):
        reason = "On extended leave until next year"

        result = engine.toggle_active(actor_for(chancellor), secretary.staff_id, StaffStatus.INACTIVE, reason)

        assert result.new_status == StaffStatus.INACTIVE
        account = staff_repo.get_account(secretary.staff_id)
        assert account.deactivation_reason == reason
        assert account.deactivated_by == chancellor.staff_id
        assert account.occupies_seat
        assert staff_repo.get_open_term(secretary.staff_id) is not None

    def test_reactivate_clears_deactivation(self, engine, staff_repo, chancellor, secretary):
        engine.toggle_active(
            actor_for(chancellor), secretary.staff_id, StaffStatus.INACTIVE, "On extended leave until next year"
        )

        result = engine.toggle_active(actor_for(chancellor), secretary.staff_id, StaffStatus.ACTIVE)

        assert result.previous_status == StaffStatus.INACTIVE
        account = staff_repo.get_account(secretary.staff_id)
        assert account.status == StaffStatus.ACTIVE
        assert account.deactivation_reason is None
        assert account.reactivated_by == chancellor.staff_id

    def test_reactivating_active_account_is_invalid(self, engine, chancellor, secretary):
        with pytest.raises(InvalidTransitionError):
            engine.toggle_active(actor_for(chancellor), secretary.staff_id, StaffStatus.ACTIVE)

    def test_deactivating_twice_reports_not_active(self, engine, chancellor, secretary):
        reason = "On extended leave until next year"
        engine.toggle_active(actor_for(chancellor), secretary.staff_id, StaffStatus.INACTIVE, reason)

        with pytest.raises(NotActiveError):
            engine.toggle_active(actor_for(chancellor), secretary.staff_id, StaffStatus.INACTIVE, reason)

    def test_cannot_toggle_self(self, engine, secretary):
        with pytest.raises(CannotActOnSelfError):
            engine.toggle_active(
                actor_for(secretary), secretary.staff_id, StaffStatus.INACTIVE, "Taking a long break"
            )

    def test_parish_staff_cannot_suspend_chancellor(self, engine, chancellor, secretary):
        with pytest.raises(UnauthorizedActionError):
            engine.toggle_active(
                actor_for(secretary), chancellor.staff_id, StaffStatus.INACTIVE, "Disagreement over policy"
            )

    def test_only_active_or_inactive_targets(self, engine, chancellor, secretary):
        with pytest.raises(ValidationError):
            engine.toggle_active(actor_for(chancellor), secretary.staff_id, StaffStatus.ARCHIVED)

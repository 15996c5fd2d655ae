"""
Tests for read-only seat, queue and history views.
"""

import pytest

from chancery.domain.enums import ParishPosition, StaffRole, StaffStatus
from chancery.domain.errors import StaffNotFoundError

from tests.conftest import DIOCESE, PARISH_ID, actor_for, parish_scope, register


def test_vacant_diocese_has_no_occupant(queries):
    assert queries.current_occupant(DIOCESE) is None


def test_suspended_chancellor_is_still_the_occupant(engine, queries, chancellor, system_admin):
    engine.toggle_active(system_admin, chancellor.staff_id, StaffStatus.INACTIVE, "Medical leave for two months")

    occupant = queries.current_occupant(DIOCESE)

    assert occupant.staff_id == chancellor.staff_id
    assert occupant.status == StaffStatus.INACTIVE


def test_pending_queue_oldest_first(registration, queries):
    first = register(registration, StaffRole.CHANCELLOR, "first@tagbilaran.example.org", "Fr. First")
    second = register(
        registration, StaffRole.PARISH_STAFF, "second@loboc.example.org", "Second Sec", scope=parish_scope()
    )
    third = register(registration, StaffRole.CHANCELLOR, "third@tagbilaran.example.org", "Fr. Third")

    assert [a.staff_id for a in queries.pending_queue(DIOCESE)] == [first, second, third]
    assert [a.staff_id for a in queries.pending_queue(DIOCESE, role=StaffRole.CHANCELLOR)] == [first, third]
    assert [a.staff_id for a in queries.pending_queue(DIOCESE, parish_id=PARISH_ID)] == [second]


def test_pending_queue_excludes_decided(engine, registration, queries, secretary):
    pending_id = register(
        registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
    )
    engine.reject(actor_for(secretary), pending_id, "Duplicate request")

    assert queries.pending_queue(DIOCESE) == []


def test_occupants_filtered_by_position(engine, registration, queries, secretary):
    priest_id = register(
        registration, StaffRole.PARISH_STAFF, "priest@loboc.example.org", "Fr. Parish Priest",
        scope=parish_scope(position=ParishPosition.PRIEST)
    )
    engine.approve(actor_for(secretary), priest_id)

    everyone = queries.current_occupants(DIOCESE, PARISH_ID)
    priests = queries.current_occupants(DIOCESE, PARISH_ID, ParishPosition.PRIEST)

    assert {a.staff_id for a in everyone} == {secretary.staff_id, priest_id}
    assert [a.staff_id for a in priests] == [priest_id]


def test_term_history_most_recent_first(engine, registration, queries, chancellor):
    successor_id = register(registration, StaffRole.CHANCELLOR, "pedro@tagbilaran.example.org", "Fr. Pedro Cruz")
    engine.approve(actor_for(chancellor), successor_id)

    history = queries.term_history(DIOCESE, role=StaffRole.CHANCELLOR)

    assert [t.staff_id for t in history] == [successor_id, chancellor.staff_id]


def test_get_account_unknown(queries):
    with pytest.raises(StaffNotFoundError):
        queries.get_account("missing")


def test_account_history_lists_status_changes(engine, registration, queries, secretary):
    pending_id = register(
        registration, StaffRole.PARISH_STAFF, "ana@loboc.example.org", "Ana Lim", scope=parish_scope()
    )
    engine.approve(actor_for(secretary), pending_id)

    events = queries.account_history(pending_id)

    assert len(events) == 2
    approvals = [e for e in events if e.changes]
    assert approvals[0].changes[0].new_value == StaffStatus.ACTIVE.value

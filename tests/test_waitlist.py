from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from dental_booking.exceptions import (
    AlreadyWaitlistedError,
    NotAuthorizedError,
    PastDateError,
    ProviderNotFoundError,
    SlotConflictError,
    WaitlistEntryNotFoundError,
)
from dental_booking.identity import Caller
from dental_booking.models import Booking, WaitlistEntry

ALICE = Caller("alice@example.com")
BOB = Caller("bob@example.com")
CAROL = Caller("carol@example.com")


def at(day, hour, minute=0):
    return day.replace(hour=hour, minute=minute)


def entries(session):
    return session.scalars(select(WaitlistEntry).order_by(WaitlistEntry.id)).all()


def booking_for(session, caller):
    return session.scalars(select(Booking).where(Booking.user_id == caller.user_id)).one_or_none()


def test_cancel_promotes_waiting_user(service, providers, day, session, booking_invariants):
    sarah, _ = providers
    service.create_booking(ALICE, sarah.id, at(day, 10))
    with pytest.raises(SlotConflictError):
        service.create_booking(BOB, sarah.id, at(day, 10, 30))

    service.join_waitlist(BOB, sarah.id, at(day, 10))
    service.cancel_own_booking(ALICE)

    promoted = booking_for(session, BOB)
    assert promoted is not None
    assert promoted.provider_id == sarah.id
    assert promoted.appointment_date == at(day, 10)
    assert booking_for(session, ALICE) is None
    assert entries(session) == []
    booking_invariants()


def test_promotion_is_first_come_first_served(
    service, providers, day, clock, session, booking_invariants
):
    sarah, _ = providers
    service.create_booking(ALICE, sarah.id, at(day, 10))
    first = service.join_waitlist(BOB, sarah.id, at(day, 10))
    clock.advance(minutes=5)
    second = service.join_waitlist(CAROL, sarah.id, at(day, 10, 30))

    service.cancel_own_booking(ALICE)

    assert booking_for(session, BOB).appointment_date == at(day, 10)
    assert booking_for(session, CAROL) is None
    assert [e.id for e in entries(session)] == [second.id]
    assert first.id != second.id
    booking_invariants()


def test_promotion_ignores_proximity_to_freed_slot(service, providers, day, clock, session):
    sarah, _ = providers
    service.create_booking(ALICE, sarah.id, at(day, 10))
    service.join_waitlist(BOB, sarah.id, at(day, 16))
    clock.advance(minutes=1)
    service.join_waitlist(CAROL, sarah.id, at(day, 10))

    service.cancel_own_booking(ALICE)

    assert booking_for(session, BOB).appointment_date == at(day, 16)
    assert booking_for(session, CAROL) is None


def test_promotion_skips_users_with_booking_and_taken_slots(
    service, providers, day, clock, session, booking_invariants
):
    sarah, michael = providers
    service.create_booking(ALICE, sarah.id, at(day, 10))
    service.create_booking(BOB, michael.id, at(day, 10))
    service.create_booking(Caller("dave"), sarah.id, at(day, 14))

    service.join_waitlist(BOB, sarah.id, at(day, 10))
    clock.advance(minutes=1)
    service.join_waitlist(Caller("erin"), sarah.id, at(day, 14, 30))
    clock.advance(minutes=1)
    service.join_waitlist(CAROL, sarah.id, at(day, 11))

    service.cancel_own_booking(ALICE)

    assert booking_for(session, CAROL).appointment_date == at(day, 11)
    assert booking_for(session, BOB).provider_id == michael.id
    assert booking_for(session, Caller("erin")) is None
    assert len(entries(session)) == 2
    booking_invariants()


def test_promotion_skips_entries_in_the_past(service, providers, day, clock, session):
    sarah, _ = providers
    service.create_booking(ALICE, sarah.id, at(day, 10))
    service.join_waitlist(BOB, sarah.id, clock.now + timedelta(days=1))
    clock.advance(minutes=1)
    service.join_waitlist(CAROL, sarah.id, at(day, 10))
    clock.now = clock.now + timedelta(days=2)

    service.cancel_own_booking(ALICE)

    assert booking_for(session, BOB) is None
    assert booking_for(session, CAROL).appointment_date == at(day, 10)


def test_nothing_to_promote_leaves_slot_open(service, providers, day, session):
    sarah, _ = providers
    service.create_booking(ALICE, sarah.id, at(day, 10))

    service.cancel_own_booking(ALICE)

    assert session.scalars(select(Booking)).all() == []
    assert not service.checker.has_conflict(sarah.id, at(day, 10))


def test_update_frees_previous_slot(service, providers, day, session, booking_invariants):
    sarah, michael = providers
    service.create_booking(ALICE, sarah.id, at(day, 10))
    service.join_waitlist(BOB, sarah.id, at(day, 10))

    service.update_own_booking(ALICE, provider_id=michael.id)

    assert booking_for(session, ALICE).provider_id == michael.id
    assert booking_for(session, BOB).provider_id == sarah.id
    booking_invariants()


def test_admin_delete_promotes(service, providers, day, admin, session, booking_invariants):
    sarah, _ = providers
    booking = service.create_booking(ALICE, sarah.id, at(day, 10))
    service.join_waitlist(BOB, sarah.id, at(day, 10, 15))

    service.admin_delete_booking(admin, booking.id)

    assert booking_for(session, BOB).appointment_date == at(day, 10, 15)
    booking_invariants()


def test_admin_move_promotes_from_previous_slot(
    service, providers, day, clock, admin, session, booking_invariants
):
    sarah, michael = providers
    booking = service.create_booking(ALICE, sarah.id, at(day, 10))
    service.join_waitlist(BOB, sarah.id, at(day, 10))
    clock.advance(minutes=1)
    service.join_waitlist(CAROL, michael.id, at(day, 15))
    clock.now = at(day, 9)

    moved = service.admin_update_booking(
        admin, booking.id, provider_id=michael.id, appointment_date=at(day, 14)
    )

    assert moved.provider_id == michael.id
    assert booking_for(session, BOB).provider_id == sarah.id
    assert booking_for(session, BOB).appointment_date == at(day, 10)
    assert booking_for(session, CAROL) is None
    assert [e.user_id for e in entries(session)] == [CAROL.user_id]
    booking_invariants()


def test_admin_time_change_promotes_same_provider(
    service, providers, day, admin, session, booking_invariants
):
    sarah, _ = providers
    booking = service.create_booking(ALICE, sarah.id, at(day, 10))
    service.join_waitlist(BOB, sarah.id, at(day, 10, 30))

    service.admin_update_booking(admin, booking.id, appointment_date=at(day, 12))

    assert booking_for(session, BOB).appointment_date == at(day, 10, 30)
    booking_invariants()


def test_admin_user_reassignment_does_not_promote(service, providers, day, admin, session):
    sarah, _ = providers
    booking = service.create_booking(ALICE, sarah.id, at(day, 10))
    service.join_waitlist(BOB, sarah.id, at(day, 12))

    service.admin_update_booking(admin, booking.id, user_id=CAROL.user_id)

    assert booking_for(session, CAROL).id == booking.id
    assert booking_for(session, BOB) is None
    assert len(entries(session)) == 1


def test_promotion_failure_does_not_fail_cancel(
    service, providers, day, session, monkeypatch, caplog
):
    sarah, _ = providers
    service.create_booking(ALICE, sarah.id, at(day, 10))
    service.join_waitlist(BOB, sarah.id, at(day, 10))

    def broken_create(**kwargs):
        raise OperationalError("INSERT INTO bookings", {}, Exception("disk I/O error"))

    monkeypatch.setattr(service.promoter.bookings, "create", broken_create)

    with caplog.at_level("ERROR", logger="dental_booking"):
        service.cancel_own_booking(ALICE)

    assert session.scalars(select(Booking)).all() == []
    assert len(entries(session)) == 1
    assert "Waitlist promotion failed" in caplog.text


def test_notified_entries_are_not_pending(service, providers, day, session):
    sarah, _ = providers
    service.create_booking(ALICE, sarah.id, at(day, 10))
    entry = service.join_waitlist(BOB, sarah.id, at(day, 10))
    entry.notified = True
    session.commit()

    service.cancel_own_booking(ALICE)

    assert booking_for(session, BOB) is None
    assert service.list_own_waitlist(BOB) == []
    service.join_waitlist(BOB, sarah.id, at(day, 11))


def test_join_waitlist_rules(service, providers, day, clock):
    sarah, michael = providers
    service.join_waitlist(BOB, sarah.id, at(day, 10))

    with pytest.raises(AlreadyWaitlistedError):
        service.join_waitlist(BOB, sarah.id, at(day, 12))
    with pytest.raises(ProviderNotFoundError):
        service.join_waitlist(BOB, 999, at(day, 12))
    with pytest.raises(PastDateError):
        service.join_waitlist(BOB, michael.id, clock.now)

    service.join_waitlist(BOB, michael.id, at(day, 12))
    assert [e.provider_id for e in service.list_own_waitlist(BOB)] == [sarah.id, michael.id]


def test_leave_waitlist_twice(service, providers, day):
    sarah, _ = providers
    entry = service.join_waitlist(BOB, sarah.id, at(day, 10))
    entry_id = entry.id

    service.leave_waitlist(BOB, entry_id)
    with pytest.raises(WaitlistEntryNotFoundError):
        service.leave_waitlist(BOB, entry_id)


def test_leave_waitlist_only_own_entries(service, providers, day):
    sarah, _ = providers
    entry = service.join_waitlist(BOB, sarah.id, at(day, 10))

    with pytest.raises(WaitlistEntryNotFoundError):
        service.leave_waitlist(CAROL, entry.id)


def test_admin_waitlist_listing(service, providers, day, clock, admin):
    sarah, michael = providers
    service.join_waitlist(CAROL, michael.id, at(day, 9))
    clock.advance(minutes=1)
    service.join_waitlist(BOB, sarah.id, at(day, 9))

    assert [e.user_id for e in service.list_waitlist(admin)] == [CAROL.user_id, BOB.user_id]
    with pytest.raises(NotAuthorizedError):
        service.list_waitlist(BOB)

from datetime import date, time

import pytest

from hms_scheduler.models.schedule import ScheduleDay, ScheduleSlot
from hms_scheduler.services.errors import ScheduleConflict, ScheduleNotFound, SlotAlreadyBooked, SlotNotFound
from hms_scheduler.services.schedule_store import ScheduleStore
from hms_scheduler.services.slot_generator import generate

DAY = date(2026, 3, 2)


def _add_day(store: ScheduleStore, doctor_id: str, day: date, start: time, end: time, step: int) -> ScheduleDay:
    slots = generate(doctor_id, day, start, end, step)
    result = store.replace_day(doctor_id, day, start, end, step, slots)
    store.db.commit()
    return result


def test_get_day_returns_none_when_missing(db_session) -> None:
    assert ScheduleStore(db_session).get_day('doctor-1', DAY) is None


def test_replace_day_replaces_slots_instead_of_appending(db_session) -> None:
    store = ScheduleStore(db_session)
    _add_day(store, 'doctor-1', DAY, time(9, 0), time(11, 0), 30)
    _add_day(store, 'doctor-1', DAY, time(14, 0), time(15, 0), 40)

    days = db_session.query(ScheduleDay).filter(ScheduleDay.doctor_id == 'doctor-1').all()
    assert len(days) == 1
    assert [slot.time for slot in days[0].slots] == ['2:00 PM', '2:40 PM']
    assert days[0].start_time == time(14, 0)
    assert days[0].step_minutes == 40
    assert db_session.query(ScheduleSlot).count() == 2


def test_replace_day_refuses_when_a_slot_is_booked(db_session) -> None:
    store = ScheduleStore(db_session)
    _add_day(store, 'doctor-1', DAY, time(9, 0), time(11, 0), 30)
    store.set_slot_booked('doctor-1', DAY, '9:30 AM', True)
    db_session.commit()

    with pytest.raises(ScheduleConflict):
        store.replace_day('doctor-1', DAY, time(9, 0), time(10, 0), 20, generate('doctor-1', DAY, time(9, 0), time(10, 0), 20))


def test_list_upcoming_orders_by_date_and_filters_range(db_session) -> None:
    store = ScheduleStore(db_session)
    _add_day(store, 'doctor-1', date(2026, 3, 5), time(9, 0), time(10, 0), 30)
    _add_day(store, 'doctor-1', date(2026, 3, 3), time(9, 0), time(10, 0), 30)
    _add_day(store, 'doctor-1', date(2026, 3, 20), time(9, 0), time(10, 0), 30)
    _add_day(store, 'doctor-2', date(2026, 3, 4), time(9, 0), time(10, 0), 30)

    days = store.list_upcoming('doctor-1', date(2026, 3, 2), date(2026, 3, 9))

    assert [day.date for day in days] == [date(2026, 3, 3), date(2026, 3, 5)]


def test_set_slot_booked_is_idempotent(db_session) -> None:
    store = ScheduleStore(db_session)
    _add_day(store, 'doctor-1', DAY, time(9, 0), time(11, 0), 30)

    store.set_slot_booked('doctor-1', DAY, '10:00 AM', True)
    store.set_slot_booked('doctor-1', DAY, '10:00 AM', True)
    db_session.commit()

    assert store.require_slot('doctor-1', DAY, '10:00 AM').is_booked is True

    store.set_slot_booked('doctor-1', DAY, '10:00 AM', False)
    db_session.commit()

    assert store.require_slot('doctor-1', DAY, '10:00 AM').is_booked is False


def test_set_slot_booked_reports_missing_day_and_slot(db_session) -> None:
    store = ScheduleStore(db_session)

    with pytest.raises(ScheduleNotFound):
        store.set_slot_booked('doctor-1', DAY, '9:00 AM', True)

    _add_day(store, 'doctor-1', DAY, time(9, 0), time(11, 0), 30)

    with pytest.raises(SlotNotFound):
        store.set_slot_booked('doctor-1', DAY, '9:15 AM', True)


def test_claim_slot_only_succeeds_once(db_session) -> None:
    store = ScheduleStore(db_session)
    _add_day(store, 'doctor-1', DAY, time(9, 0), time(11, 0), 30)

    slot = store.claim_slot('doctor-1', DAY, '10:30 AM')
    db_session.commit()

    assert slot.is_booked is True
    with pytest.raises(SlotAlreadyBooked):
        store.claim_slot('doctor-1', DAY, '10:30 AM')


def test_claim_slot_rejects_stale_free_read(session_factory) -> None:
    setup = session_factory()
    _add_day(ScheduleStore(setup), 'doctor-1', DAY, time(9, 0), time(11, 0), 30)
    setup.close()

    first = session_factory()
    second = session_factory()
    try:
        second_store = ScheduleStore(second)
        stale_slot = second_store.require_slot('doctor-1', DAY, '9:00 AM')
        assert stale_slot.is_booked is False

        ScheduleStore(first).claim_slot('doctor-1', DAY, '9:00 AM')
        first.commit()

        with pytest.raises(SlotAlreadyBooked):
            second_store.claim_slot('doctor-1', DAY, '9:00 AM')
    finally:
        first.close()
        second.close()


def test_delete_day_removes_slots(db_session) -> None:
    store = ScheduleStore(db_session)
    _add_day(store, 'doctor-1', DAY, time(9, 0), time(11, 0), 30)

    store.delete_day('doctor-1', DAY)
    db_session.commit()

    assert store.get_day('doctor-1', DAY) is None
    assert db_session.query(ScheduleSlot).count() == 0


def test_delete_day_refuses_booked_day(db_session) -> None:
    store = ScheduleStore(db_session)
    _add_day(store, 'doctor-1', DAY, time(9, 0), time(11, 0), 30)
    store.claim_slot('doctor-1', DAY, '9:00 AM')
    db_session.commit()

    with pytest.raises(ScheduleConflict):
        store.delete_day('doctor-1', DAY)


def test_delete_day_reports_missing_day(db_session) -> None:
    with pytest.raises(ScheduleNotFound):
        ScheduleStore(db_session).delete_day('doctor-1', DAY)

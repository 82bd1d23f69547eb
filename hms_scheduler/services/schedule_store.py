from datetime import date, time
from typing import Sequence

from sqlalchemy import delete, func, update
from sqlalchemy.orm import Session, selectinload

from hms_scheduler.models.schedule import ScheduleDay, ScheduleSlot
from hms_scheduler.services.errors import ScheduleConflict, ScheduleNotFound, SlotAlreadyBooked, SlotNotFound
from hms_scheduler.services.slot_generator import GeneratedSlot


class ScheduleStore:
    """Schedule days and their slots, keyed by (doctor_id, date)."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_day(self, doctor_id: str, schedule_date: date) -> ScheduleDay | None:
        return self.db.query(ScheduleDay).options(selectinload(ScheduleDay.slots)).filter(
            ScheduleDay.doctor_id == doctor_id,
            ScheduleDay.date == schedule_date,
        ).first()

    def require_day(self, doctor_id: str, schedule_date: date) -> ScheduleDay:
        day = self.get_day(doctor_id, schedule_date)
        if day is None:
            raise ScheduleNotFound(f'No schedule for doctor {doctor_id} on {schedule_date.isoformat()}.')
        return day

    def require_slot(self, doctor_id: str, schedule_date: date, label: str) -> ScheduleSlot:
        day = self.require_day(doctor_id, schedule_date)
        slot = day.find_slot(label)
        if slot is None:
            raise SlotNotFound(f'No {label} slot on {schedule_date.isoformat()}.')
        return slot

    def list_upcoming(self, doctor_id: str, from_date: date, to_date: date) -> list[ScheduleDay]:
        return self.db.query(ScheduleDay).options(selectinload(ScheduleDay.slots)).filter(
            ScheduleDay.doctor_id == doctor_id,
            ScheduleDay.date >= from_date,
            ScheduleDay.date <= to_date,
        ).order_by(ScheduleDay.date.asc()).all()

    def set_slot_booked(self, doctor_id: str, schedule_date: date, label: str, booked: bool) -> ScheduleSlot:
        slot = self.require_slot(doctor_id, schedule_date, label)
        if slot.is_booked != booked:
            slot.is_booked = booked
            self.db.flush()
        return slot

    def claim_slot(self, doctor_id: str, schedule_date: date, label: str) -> ScheduleSlot:
        """Mark a free slot as booked with a single conditional update.

        The row is only written while ``is_booked`` is still false in the
        database, so two callers racing for the same slot cannot both win
        even if both read it as free.
        """
        slot = self.require_slot(doctor_id, schedule_date, label)

        result = self.db.execute(
            update(ScheduleSlot)
            .where(ScheduleSlot.id == slot.id, ScheduleSlot.is_booked.is_(False))
            .values(is_booked=True)
            .execution_options(synchronize_session=False)
        )
        self.db.expire(slot, ['is_booked'])

        if result.rowcount != 1:
            raise SlotAlreadyBooked(f'The {label} slot on {schedule_date.isoformat()} is already booked.')
        return slot

    def _clear_free_slots(self, day: ScheduleDay, action: str) -> None:
        """Delete the day's unbooked slots; fail if any booked slot is left.

        The booked check is part of the DELETE itself, so a slot claimed by a
        booking that committed after ``day`` was loaded is never removed.
        """
        self.db.execute(
            delete(ScheduleSlot)
            .where(ScheduleSlot.schedule_day_id == day.id, ScheduleSlot.is_booked.is_(False))
            .execution_options(synchronize_session='fetch')
        )
        self.db.expire(day, ['slots'])

        remaining = self.db.query(func.count(ScheduleSlot.id)).filter(
            ScheduleSlot.schedule_day_id == day.id,
        ).scalar()
        if remaining:
            raise ScheduleConflict(
                f'Schedule for {day.date.isoformat()} has booked slots and cannot be {action}.'
            )

    def replace_day(
        self,
        doctor_id: str,
        schedule_date: date,
        start_time: time,
        end_time: time,
        step_minutes: int,
        slots: Sequence[GeneratedSlot],
    ) -> ScheduleDay:
        day = self.get_day(doctor_id, schedule_date)

        if day is None:
            day = ScheduleDay(doctor_id=doctor_id, date=schedule_date)
            self.db.add(day)
        else:
            self._clear_free_slots(day, 'replaced')

        day.start_time = start_time
        day.end_time = end_time
        day.step_minutes = step_minutes
        day.slots.extend(
            ScheduleSlot(
                position=slot.position,
                time=slot.time,
                start_time=slot.start_time,
                is_booked=slot.is_booked,
            )
            for slot in slots
        )
        self.db.flush()
        return day

    def delete_day(self, doctor_id: str, schedule_date: date) -> None:
        day = self.require_day(doctor_id, schedule_date)
        self._clear_free_slots(day, 'removed')
        self.db.delete(day)
        self.db.flush()

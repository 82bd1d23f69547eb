"""Booking coordinator.

Every change to schedule days, slots and appointment records goes through
:class:`BookingCoordinator`. Each operation runs inside one database
transaction, so a reader never sees a booked slot without its appointment
record, or a canceled appointment whose slot is still held. Operations do
not raise :class:`BookingError` to the caller; they return a
:class:`BookingResult` carrying either the value or the error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, time, timedelta
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hms_scheduler.core import config
from hms_scheduler.models.appointment import Appointment, AppointmentStatus
from hms_scheduler.models.schedule import ScheduleDay
from hms_scheduler.services import events as booking_events
from hms_scheduler.services import lifecycle
from hms_scheduler.services.appointment_ledger import AppointmentLedger
from hms_scheduler.services.errors import (
    BookingError,
    InvalidTransition,
    RecordNotFound,
    TransientError,
    ValidationError,
)
from hms_scheduler.services.events import BookingEvents
from hms_scheduler.services.schedule_store import ScheduleStore
from hms_scheduler.services.slot_generator import generate, normalize_slot_label

logger = logging.getLogger(__name__)


@dataclass
class BookingResult:
    value: Any = None
    error: BookingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def _require_id(value: str | None, field_name: str) -> str:
    normalized = (value or '').strip()
    if not normalized:
        raise ValidationError(f'{field_name} is required.')
    return normalized


def normalize_patient_id(value: str | None) -> str:
    return _require_id(value, 'Patient id').lower()


class BookingCoordinator:
    def __init__(self, db: Session, events: BookingEvents | None = None) -> None:
        self.db = db
        self.events = events or BookingEvents()
        self.schedules = ScheduleStore(db)
        self.ledger = AppointmentLedger(db)

    def _run(self, operation: Callable[[], Any], description: str, write: bool = True) -> BookingResult:
        try:
            value = operation()
            if write:
                self.db.commit()
        except BookingError as exc:
            self.db.rollback()
            logger.info('Rejected %s: %s', description, exc.message)
            return BookingResult(error=exc)
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception('Store failure while %s.', description)
            return BookingResult(error=TransientError('Database unavailable. The request can be retried.'))

        return BookingResult(value=value)

    # Schedules

    def define_schedule(
        self,
        doctor_id: str,
        schedule_date: date,
        start_time: time,
        end_time: time,
        step_minutes: int,
    ) -> BookingResult:
        def operation() -> ScheduleDay:
            doctor = _require_id(doctor_id, 'Doctor id')
            slots = generate(doctor, schedule_date, start_time, end_time, step_minutes)
            return self.schedules.replace_day(doctor, schedule_date, start_time, end_time, step_minutes, slots)

        result = self._run(operation, 'defining a schedule')
        if result.ok:
            logger.info(
                'Doctor %s offers %d slots on %s.',
                doctor_id,
                len(result.value.slots),
                schedule_date.isoformat(),
            )
        return result

    def remove_schedule(self, doctor_id: str, schedule_date: date) -> BookingResult:
        def operation() -> None:
            self.schedules.delete_day(_require_id(doctor_id, 'Doctor id'), schedule_date)

        return self._run(operation, 'removing a schedule')

    def get_day(self, doctor_id: str, schedule_date: date) -> BookingResult:
        return self._run(
            lambda: self.schedules.require_day(_require_id(doctor_id, 'Doctor id'), schedule_date),
            'reading a schedule',
            write=False,
        )

    def list_upcoming(
        self,
        doctor_id: str,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> BookingResult:
        def operation() -> list[ScheduleDay]:
            start = from_date or date.today()
            end = to_date or start + timedelta(days=config.UPCOMING_RANGE_DAYS)
            if end < start:
                raise ValidationError('The end of the range must not be before its start.')
            return self.schedules.list_upcoming(_require_id(doctor_id, 'Doctor id'), start, end)

        return self._run(operation, 'listing schedules', write=False)

    # Appointments

    def book_appointment(
        self,
        doctor_id: str,
        patient_id: str,
        patient_name: str,
        appointment_date: date,
        time: str,
    ) -> BookingResult:
        created = False

        def operation() -> Appointment:
            nonlocal created
            doctor = _require_id(doctor_id, 'Doctor id')
            patient = normalize_patient_id(patient_id)
            label = normalize_slot_label(time)

            existing = self.ledger.find(doctor, patient, appointment_date, label, status=AppointmentStatus.PENDING)
            if existing is not None:
                return existing

            self.schedules.claim_slot(doctor, appointment_date, label)
            record = self.ledger.append(
                Appointment(
                    doctor_id=doctor,
                    patient_id=patient,
                    patient_name=(patient_name or '').strip() or patient,
                    date=appointment_date,
                    time=label,
                    status=AppointmentStatus.PENDING.value,
                )
            )
            created = True
            return record

        result = self._run(operation, 'booking an appointment')
        if result.ok and created:
            self.events.emit(booking_events.APPOINTMENT_BOOKED, result.value)
        return result

    def cancel_appointment(self, doctor_id: str, patient_id: str, appointment_date: date, time: str) -> BookingResult:
        result = self._run(
            lambda: self._finish(doctor_id, patient_id, appointment_date, time, AppointmentStatus.CANCELED),
            'canceling an appointment',
        )
        if result.ok:
            self.events.emit(booking_events.APPOINTMENT_CANCELED, result.value)
        return result

    def complete_appointment(self, doctor_id: str, patient_id: str, appointment_date: date, time: str) -> BookingResult:
        result = self._run(
            lambda: self._finish(doctor_id, patient_id, appointment_date, time, AppointmentStatus.COMPLETED),
            'completing an appointment',
        )
        if result.ok:
            self.events.emit(booking_events.APPOINTMENT_COMPLETED, result.value)
        return result

    def _finish(
        self,
        doctor_id: str,
        patient_id: str,
        appointment_date: date,
        time: str,
        new_status: AppointmentStatus,
    ) -> Appointment:
        doctor = _require_id(doctor_id, 'Doctor id')
        patient = normalize_patient_id(patient_id)
        label = normalize_slot_label(time)

        record = self.ledger.find(doctor, patient, appointment_date, label, status=AppointmentStatus.PENDING)
        if record is None:
            latest = self.ledger.find(doctor, patient, appointment_date, label)
            if latest is not None and lifecycle.is_terminal(latest.status):
                raise InvalidTransition(f'Appointment is already {latest.status}.')
            raise RecordNotFound('Appointment not found.')

        self.ledger.update_status(record, new_status)
        if new_status is AppointmentStatus.CANCELED:
            self.schedules.set_slot_booked(doctor, appointment_date, label, False)
        return record

    def list_for_patient(self, patient_id: str) -> BookingResult:
        return self._run(
            lambda: self.ledger.list_for_patient(normalize_patient_id(patient_id)),
            'listing patient appointments',
            write=False,
        )

    def list_for_doctor(self, doctor_id: str, status: AppointmentStatus | None = None) -> BookingResult:
        def operation() -> tuple[list[Appointment], dict[str, int]]:
            doctor = _require_id(doctor_id, 'Doctor id')
            return self.ledger.list_for_doctor(doctor, status), self.ledger.count_by_status(doctor)

        return self._run(operation, 'listing doctor appointments', write=False)



import logging
from typing import Callable

from hms_scheduler.models.appointment import Appointment

logger = logging.getLogger(__name__)

APPOINTMENT_BOOKED = 'appointment_booked'
APPOINTMENT_CANCELED = 'appointment_canceled'
APPOINTMENT_COMPLETED = 'appointment_completed'

Listener = Callable[[str, Appointment], None]


class BookingEvents:
    """Callbacks run after a booking transition has been committed."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def emit(self, event: str, appointment: Appointment) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, appointment)
            except Exception:
                # The transition is already committed; a failed notification must not undo it.
                logger.exception('Booking listener %r failed for %s (appointment %s).', listener, event, appointment.id)


def log_appointment_event(event: str, appointment: Appointment) -> None:
    if event == APPOINTMENT_BOOKED:
        logger.info(
            'Appointment confirmed for %s with doctor %s on %s at %s.',
            appointment.patient_id,
            appointment.doctor_id,
            appointment.date.isoformat(),
            appointment.time,
        )
    else:
        logger.info('%s: appointment %s is now %s.', event, appointment.id, appointment.status)

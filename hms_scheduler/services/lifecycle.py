from hms_scheduler.models.appointment import AppointmentStatus
from hms_scheduler.services.errors import InvalidTransition

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELED: frozenset(),
}


def can_transition(current: str, new: str) -> bool:
    """Return True if an appointment may move from ``current`` to ``new``."""
    try:
        current_status = AppointmentStatus(current)
        new_status = AppointmentStatus(new)
    except ValueError:
        return False
    return new_status in TRANSITIONS[current_status]


def is_terminal(status: str) -> bool:
    return not TRANSITIONS[AppointmentStatus(status)]


def ensure_transition(current: str, new: str) -> None:
    if not can_transition(current, new):
        raise InvalidTransition(f'Appointment cannot move from {current} to {new}.')

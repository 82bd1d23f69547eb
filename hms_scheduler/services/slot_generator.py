"""Turns a doctor's availability window into discrete bookable slots."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from hms_scheduler.services.errors import ValidationError

LABEL_INPUT_FORMATS = ('%I:%M %p', '%I:%M%p', '%H:%M')


@dataclass(frozen=True)
class GeneratedSlot:
    position: int
    time: str
    start_time: time
    is_booked: bool = False


def format_slot_label(value: time) -> str:
    """Return the display label for a slot start (e.g. ``9:40 AM``)."""
    hour = value.hour % 12 or 12
    ampm = 'PM' if value.hour >= 12 else 'AM'
    return f'{hour}:{value.minute:02d} {ampm}'


def normalize_slot_label(value: str) -> str:
    normalized = ' '.join(value.strip().upper().split())
    if not normalized:
        raise ValidationError('Slot time is required.')

    for label_format in LABEL_INPUT_FORMATS:
        try:
            parsed = datetime.strptime(normalized, label_format)
        except ValueError:
            continue
        return format_slot_label(parsed.time())

    raise ValidationError(f'Unrecognized slot time: {value!r}.')


def validate_window(start_time: time, end_time: time, step_minutes: int) -> None:
    if isinstance(step_minutes, bool) or not isinstance(step_minutes, int):
        raise ValidationError('Slot step must be a whole number of minutes.')
    if step_minutes <= 0:
        raise ValidationError('Slot step must be greater than zero.')
    if start_time >= end_time:
        raise ValidationError('Schedule start time must be before its end time.')


def generate(
    doctor_id: str,
    schedule_date: date,
    start_time: time,
    end_time: time,
    step_minutes: int,
) -> list[GeneratedSlot]:
    """Return the ordered slots for one doctor's window on one date.

    Only the slot *start* is bounded by ``end_time``: when the step does not
    divide the window evenly the last slot runs past the end of the window.
    """
    if not doctor_id or not doctor_id.strip():
        raise ValidationError('Doctor id is required.')
    validate_window(start_time, end_time, step_minutes)

    current = datetime.combine(schedule_date, start_time)
    window_end = datetime.combine(schedule_date, end_time)
    step = timedelta(minutes=step_minutes)

    slots: list[GeneratedSlot] = []
    while current < window_end:
        slot_start = current.time().replace(second=0, microsecond=0)
        slots.append(
            GeneratedSlot(
                position=len(slots),
                time=format_slot_label(slot_start),
                start_time=slot_start,
            )
        )
        current += step

    return slots

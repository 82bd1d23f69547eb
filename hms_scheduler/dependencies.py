from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hms_scheduler.database import SessionLocal, ensure_scheduling_schema
from hms_scheduler.services import errors
from hms_scheduler.services.booking import BookingCoordinator, BookingResult
from hms_scheduler.services.events import BookingEvents

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'

ERROR_STATUS_CODES = {
    errors.ValidationError: status.HTTP_400_BAD_REQUEST,
    errors.ScheduleNotFound: status.HTTP_404_NOT_FOUND,
    errors.SlotNotFound: status.HTTP_404_NOT_FOUND,
    errors.RecordNotFound: status.HTTP_404_NOT_FOUND,
    errors.SlotAlreadyBooked: status.HTTP_409_CONFLICT,
    errors.InvalidTransition: status.HTTP_409_CONFLICT,
    errors.ScheduleConflict: status.HTTP_409_CONFLICT,
    errors.TransientError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def ensure_database_ready() -> None:
    try:
        ensure_scheduling_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_booking_events(request: Request) -> BookingEvents:
    events = getattr(request.app.state, 'booking_events', None)
    if events is None:
        events = BookingEvents()
        request.app.state.booking_events = events
    return events


def get_coordinator(
    db: Session = Depends(get_db),
    events: BookingEvents = Depends(get_booking_events),
) -> BookingCoordinator:
    ensure_database_ready()
    return BookingCoordinator(db, events)


def unwrap_or_raise(result: BookingResult):
    """Return the result value or raise the matching ``HTTPException``."""
    if result.ok:
        return result.value

    status_code = ERROR_STATUS_CODES.get(type(result.error), status.HTTP_400_BAD_REQUEST)
    raise HTTPException(status_code=status_code, detail=result.error.message)

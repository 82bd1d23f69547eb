from datetime import date, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator

from hms_scheduler.core import config
from hms_scheduler.dependencies import get_coordinator, unwrap_or_raise
from hms_scheduler.services.booking import BookingCoordinator

router = APIRouter(tags=['schedules'])


class DefineScheduleRequest(BaseModel):
    date: date
    start_time: time
    end_time: time
    step_minutes: int = config.DEFAULT_SLOT_STEP_MINUTES

    @field_validator('start_time', 'end_time')
    @classmethod
    def drop_seconds(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0, tzinfo=None)


class SlotResponse(BaseModel):
    time: str
    start_time: time
    is_booked: bool

    class Config:
        from_attributes = True


class ScheduleDayResponse(BaseModel):
    id: int
    doctor_id: str
    date: date
    start_time: time
    end_time: time
    step_minutes: int
    slots: list[SlotResponse]

    class Config:
        from_attributes = True


@router.post('/{doctor_id}/days', response_model=ScheduleDayResponse, status_code=status.HTTP_201_CREATED)
def define_schedule_day(
    doctor_id: str,
    data: DefineScheduleRequest,
    coordinator: BookingCoordinator = Depends(get_coordinator),
):
    return unwrap_or_raise(
        coordinator.define_schedule(
            doctor_id,
            data.date,
            data.start_time,
            data.end_time,
            data.step_minutes,
        )
    )


@router.get('/{doctor_id}/days', response_model=list[ScheduleDayResponse])
def list_schedule_days(
    doctor_id: str,
    from_date: date | None = Query(default=None),
    to_date: date | None = Query(default=None),
    coordinator: BookingCoordinator = Depends(get_coordinator),
):
    return unwrap_or_raise(coordinator.list_upcoming(doctor_id, from_date, to_date))


@router.get('/{doctor_id}/days/{schedule_date}', response_model=ScheduleDayResponse)
def get_schedule_day(
    doctor_id: str,
    schedule_date: date,
    coordinator: BookingCoordinator = Depends(get_coordinator),
):
    return unwrap_or_raise(coordinator.get_day(doctor_id, schedule_date))


@router.delete('/{doctor_id}/days/{schedule_date}', status_code=status.HTTP_204_NO_CONTENT)
def remove_schedule_day(
    doctor_id: str,
    schedule_date: date,
    coordinator: BookingCoordinator = Depends(get_coordinator),
):
    unwrap_or_raise(coordinator.remove_schedule(doctor_id, schedule_date))

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator

from hms_scheduler.dependencies import get_coordinator, unwrap_or_raise
from hms_scheduler.models.appointment import AppointmentStatus
from hms_scheduler.services.booking import BookingCoordinator
from hms_scheduler.services.errors import ValidationError as SlotLabelError
from hms_scheduler.services.slot_generator import normalize_slot_label

router = APIRouter(tags=['appointments'])

MAX_PATIENT_NAME_LENGTH = 200


def _normalize_slot_time(value: str) -> str:
    try:
        return normalize_slot_label(value)
    except SlotLabelError as exc:
        raise ValueError(exc.message) from exc


class AppointmentKeyRequest(BaseModel):
    doctor_id: str
    patient_id: str
    date: date
    time: str

    @field_validator('doctor_id')
    @classmethod
    def validate_doctor_id(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Doctor id is required.')
        return normalized

    @field_validator('patient_id')
    @classmethod
    def validate_patient_id(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized:
            raise ValueError('Patient id is required.')
        return normalized

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _normalize_slot_time(value)


class BookAppointmentRequest(AppointmentKeyRequest):
    patient_name: str = ''

    @field_validator('patient_name')
    @classmethod
    def validate_patient_name(cls, value: str) -> str:
        normalized = ' '.join(value.split())
        if len(normalized) > MAX_PATIENT_NAME_LENGTH:
            raise ValueError(f'Patient name must be {MAX_PATIENT_NAME_LENGTH} characters or fewer.')
        return normalized


class AppointmentResponse(BaseModel):
    id: int
    doctor_id: str
    patient_id: str
    patient_name: str
    date: date
    time: str
    status: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PatientAppointmentsResponse(BaseModel):
    pending: list[AppointmentResponse]
    completed: list[AppointmentResponse]
    canceled: list[AppointmentResponse]


class DoctorAppointmentsResponse(BaseModel):
    appointments: list[AppointmentResponse]
    counts: dict[str, int]


def parse_status_filter(value: str | None) -> AppointmentStatus | None:
    if value is None or not value.strip():
        return None

    normalized = value.strip().capitalize()
    try:
        return AppointmentStatus(normalized)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Invalid appointment status.',
        ) from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    coordinator: BookingCoordinator = Depends(get_coordinator),
):
    return unwrap_or_raise(
        coordinator.book_appointment(
            data.doctor_id,
            data.patient_id,
            data.patient_name,
            data.date,
            data.time,
        )
    )


@router.post('/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    data: AppointmentKeyRequest,
    coordinator: BookingCoordinator = Depends(get_coordinator),
):
    return unwrap_or_raise(coordinator.cancel_appointment(data.doctor_id, data.patient_id, data.date, data.time))


@router.post('/complete', response_model=AppointmentResponse)
def complete_appointment(
    data: AppointmentKeyRequest,
    coordinator: BookingCoordinator = Depends(get_coordinator),
):
    return unwrap_or_raise(coordinator.complete_appointment(data.doctor_id, data.patient_id, data.date, data.time))


@router.get('/patients/{patient_id}', response_model=PatientAppointmentsResponse)
def list_patient_appointments(
    patient_id: str,
    coordinator: BookingCoordinator = Depends(get_coordinator),
):
    partitioned = unwrap_or_raise(coordinator.list_for_patient(patient_id))
    return PatientAppointmentsResponse(
        pending=[AppointmentResponse.model_validate(record) for record in partitioned[AppointmentStatus.PENDING.value]],
        completed=[AppointmentResponse.model_validate(record) for record in partitioned[AppointmentStatus.COMPLETED.value]],
        canceled=[AppointmentResponse.model_validate(record) for record in partitioned[AppointmentStatus.CANCELED.value]],
    )


@router.get('/doctors/{doctor_id}', response_model=DoctorAppointmentsResponse)
def list_doctor_appointments(
    doctor_id: str,
    status_filter: str | None = Query(default=None, alias='status'),
    coordinator: BookingCoordinator = Depends(get_coordinator),
):
    records, counts = unwrap_or_raise(coordinator.list_for_doctor(doctor_id, parse_status_filter(status_filter)))
    return DoctorAppointmentsResponse(
        appointments=[AppointmentResponse.model_validate(record) for record in records],
        counts=counts,
    )

from datetime import date

from sqlalchemy import func
from sqlalchemy.orm import Session

from hms_scheduler.models.appointment import Appointment, AppointmentStatus
from hms_scheduler.services import lifecycle


class AppointmentLedger:
    """Appointment records; rows are never deleted, only their status changes."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def append(self, record: Appointment) -> Appointment:
        self.db.add(record)
        self.db.flush()
        return record

    def find(
        self,
        doctor_id: str,
        patient_id: str,
        appointment_date: date,
        time: str,
        status: AppointmentStatus | None = None,
    ) -> Appointment | None:
        """Return the newest record matching the slot key, optionally by status."""
        query = self.db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.patient_id == patient_id,
            Appointment.date == appointment_date,
            Appointment.time == time,
        )
        if status is not None:
            query = query.filter(Appointment.status == status.value)
        return query.order_by(Appointment.id.desc()).first()

    def update_status(self, record: Appointment, new_status: AppointmentStatus) -> Appointment:
        lifecycle.ensure_transition(record.status, new_status.value)
        record.status = new_status.value
        self.db.flush()
        return record

    def list_for_patient(self, patient_id: str) -> dict[str, list[Appointment]]:
        partitioned: dict[str, list[Appointment]] = {status.value: [] for status in AppointmentStatus}

        records = self.db.query(Appointment).filter(
            Appointment.patient_id == patient_id,
        ).order_by(Appointment.date.asc(), Appointment.id.asc()).all()

        for record in records:
            partitioned.setdefault(record.status, []).append(record)
        return partitioned

    def list_for_doctor(self, doctor_id: str, status: AppointmentStatus | None = None) -> list[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.doctor_id == doctor_id)
        if status is not None:
            query = query.filter(Appointment.status == status.value)
        return query.order_by(Appointment.date.asc(), Appointment.id.asc()).all()

    def count_by_status(self, doctor_id: str) -> dict[str, int]:
        counts = {status.value: 0 for status in AppointmentStatus}
        rows = self.db.query(Appointment.status, func.count(Appointment.id)).filter(
            Appointment.doctor_id == doctor_id,
        ).group_by(Appointment.status).all()
        for status, total in rows:
            counts[status] = total
        return counts

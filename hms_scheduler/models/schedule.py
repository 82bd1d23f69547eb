"""Doctor schedule model definitions."""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.orm import relationship

from hms_scheduler.database import Base


class ScheduleDay(Base):
    """The slots a doctor offers on one calendar date."""
    __tablename__ = "schedule_days"
    __table_args__ = (
        UniqueConstraint("doctor_id", "date", name="uq_schedule_days_doctor_date"),
    )

    id = Column(Integer, primary_key=True)
    doctor_id = Column(String, nullable=False, index=True)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    step_minutes = Column(Integer, nullable=False)

    slots = relationship(
        "ScheduleSlot",
        back_populates="day",
        order_by="ScheduleSlot.position",
        cascade="all, delete-orphan",
    )

    def find_slot(self, label: str):
        return next((slot for slot in self.slots if slot.time == label), None)


class ScheduleSlot(Base):
    """A bookable time unit inside a schedule day."""
    __tablename__ = "schedule_slots"
    __table_args__ = (
        UniqueConstraint("schedule_day_id", "time", name="uq_schedule_slots_day_time"),
    )

    id = Column(Integer, primary_key=True)
    schedule_day_id = Column(Integer, ForeignKey("schedule_days.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    time = Column(String, nullable=False)  # display label, e.g. "10:40 AM"
    start_time = Column(Time, nullable=False)
    is_booked = Column(Boolean, nullable=False, default=False)

    day = relationship("ScheduleDay", back_populates="slots")

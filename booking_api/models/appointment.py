"""Appointment model definitions."""

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint, func
from booking_api.database import SLOT_INDEX_NAME, Base


class Appointment(Base):
    """Represents one booked riding lesson slot."""
    __tablename__ = "appointments"
    __table_args__ = (
        UniqueConstraint("appointment_date", "appointment_time", name=SLOT_INDEX_NAME),
    )

    id = Column(Integer, primary_key=True)
    appointment_date = Column(String(10), nullable=False, index=True)
    appointment_time = Column(String(8), nullable=False)  # HH:MM:SS
    student_name = Column(String(255), nullable=False)
    notes = Column(Text, nullable=False, default="")
    # default= sends now() with every INSERT, so migrated tables without a
    # column default still get a timestamp.
    created_at = Column(DateTime, nullable=False, default=func.now(), server_default=func.now())

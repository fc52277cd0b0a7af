import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, ForeignKey, Index, text, Enum as SAEnum
from konsuldok.core.base import Base, TrackedMixin, UTCDateTime
from konsuldok.core.constants import AppointmentStatus

# Blocking rows only; keep in step with BLOCKING_STATUSES
_BLOCKING_ROWS = text("status IN ('Requested', 'Confirmed') AND deleted_at IS NULL")

class Appointment(Base, TrackedMixin):
    patient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("patient_profile.id"))
    doctor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("doctor_profile.id"))
    scheduled_by_staff: Mapped[uuid.UUID | None] = mapped_column(nullable=True)  # set when booked by Staff/Admin

    appointment_time: Mapped[datetime] = mapped_column(UTCDateTime())
    duration_minutes: Mapped[int] = mapped_column(Integer, default=30)
    # appointment_time + duration_minutes, kept so overlap is a plain range predicate
    appointment_end: Mapped[datetime] = mapped_column(UTCDateTime())

    reason_for_visit: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        SAEnum(AppointmentStatus, name="appointment_status", values_callable=lambda e: [m.value for m in e]),
        default=AppointmentStatus.REQUESTED,
    )
    cancellation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    completion_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_appointment_doctor_time", "doctor_id", "appointment_time"),
        Index("ix_appointment_patient_time", "patient_id", "appointment_time"),
        Index(
            "uq_appointment_doctor_slot", "doctor_id", "appointment_time",
            unique=True, postgresql_where=_BLOCKING_ROWS, sqlite_where=_BLOCKING_ROWS,
        ),
    )

import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Text, JSON, ForeignKey, Index
from konsuldok.core.base import Base, TrackedMixin, UTCDateTime

class MedicalNote(Base, TrackedMixin):
    patient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("patient_profile.id"), index=True)
    authored_by: Mapped[uuid.UUID] = mapped_column(ForeignKey("user.id"), index=True)  # Doctor or Staff
    consultation_date: Mapped[datetime] = mapped_column(UTCDateTime())
    note_content: Mapped[str] = mapped_column(Text)
    tags: Mapped[list] = mapped_column(JSON, default=list)
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("appointment.id"), nullable=True, index=True)

    __table_args__ = (
        Index("ix_medical_note_patient_date", "patient_id", "consultation_date"),
    )

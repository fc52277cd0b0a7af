import uuid
from datetime import date
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Date, JSON, ForeignKey
from konsuldok.core.base import Base, TrackedMixin

BLOOD_TYPES = ("A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-")
GENDERS = ("Male", "Female", "Other", "Prefer Not To Say")

class PatientProfile(Base, TrackedMixin):
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("user.id"), unique=True, index=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(24), nullable=True)
    address: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # street, city, province, postal_code, country
    emergency_contact: Mapped[dict | None] = mapped_column(JSON, nullable=True)  # name, relationship, phone
    blood_type: Mapped[str | None] = mapped_column(String(3), nullable=True)
    allergies: Mapped[list] = mapped_column(JSON, default=list)
    medical_history_summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    insurance_provider: Mapped[str | None] = mapped_column(String(120), nullable=True)
    insurance_policy_number: Mapped[str | None] = mapped_column(String(64), nullable=True)

    def age_on(self, today: date) -> int | None:
        if not self.date_of_birth:
            return None
        dob = self.date_of_birth
        return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))

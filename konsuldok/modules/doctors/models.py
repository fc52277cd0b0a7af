import uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, Numeric, JSON, ForeignKey
from konsuldok.core.base import Base, TrackedMixin

# Common specialties in Indonesian clinics
SPECIALTIES = (
    "Penyakit Dalam",  # Internal Medicine
    "Anak",  # Pediatrics
    "Obstetri & Ginekologi",
    "Bedah Umum",  # General Surgery
    "Mata",  # Ophthalmology
    "THT-KL",  # ENT
    "Kulit & Kelamin",  # Dermatology & Venereology
    "Saraf",  # Neurology
    "Kesehatan Jiwa",  # Psychiatry
    "Jantung & Pembuluh Darah",  # Cardiology
    "Paru",  # Pulmonology
    "Ortopedi & Traumatologi",
    "Radiologi",
    "Anestesiologi & Terapi Intensif",
    "Patologi Klinik",
    "Gigi Umum",  # General Dentistry
    "Urologi",
    "Bedah Saraf",  # Neurosurgery
    "Onkologi Radiasi",
    "Gastroenterologi-Hepatologi",
    "Lainnya",  # Other
)

class DoctorProfile(Base, TrackedMixin):
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("user.id"), unique=True, index=True)
    specialty: Mapped[str] = mapped_column(String(64), index=True)
    license_number: Mapped[str] = mapped_column(String(64), unique=True, index=True)  # STR
    years_of_experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    qualifications: Mapped[list] = mapped_column(JSON, default=list)
    consultation_fee: Mapped[float | None] = mapped_column(Numeric(12, 2), nullable=True)
    biography: Mapped[str | None] = mapped_column(Text, nullable=True)
    languages_spoken: Mapped[list] = mapped_column(JSON, default=lambda: ["Bahasa Indonesia"])

    # [{"dayOfWeek": 1, "startTime": "09:00", "endTime": "12:00"}, ...]; replaced wholesale on update
    weekly_schedule: Mapped[list] = mapped_column(JSON, default=list)

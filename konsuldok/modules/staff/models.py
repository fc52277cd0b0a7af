import uuid
from datetime import date
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Date, JSON, ForeignKey
from konsuldok.core.base import Base, TrackedMixin

class StaffProfile(Base, TrackedMixin):
    """Employment record of a Staff account (nurses, front desk, pharmacy)."""
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("user.id"), unique=True, index=True)
    job_title: Mapped[str] = mapped_column(String(100), index=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    # NIP / internal payroll number; optional but unique when present
    employee_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True, index=True)
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    certifications: Mapped[list] = mapped_column(JSON, default=list)

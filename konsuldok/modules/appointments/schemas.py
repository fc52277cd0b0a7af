import uuid
from datetime import datetime, date
from pydantic import BaseModel, ConfigDict, Field
from konsuldok.core.constants import AppointmentStatus

class AppointmentCreate(BaseModel):
    # Omitted by patients booking for themselves; required for staff/admin bookings
    patient_id: uuid.UUID | None = None
    doctor_id: uuid.UUID
    appointment_time: datetime  # ISO-8601; naive values are clinic-local
    duration_minutes: int = 30
    reason_for_visit: str | None = Field(default=None, max_length=500)

class AppointmentUpdate(BaseModel):
    appointment_time: datetime | None = None
    duration_minutes: int | None = None
    reason_for_visit: str | None = Field(default=None, max_length=500)
    status: AppointmentStatus | None = None
    cancellation_reason: str | None = Field(default=None, max_length=500)
    completion_notes: str | None = Field(default=None, max_length=5000)

class AppointmentCancel(BaseModel):
    reason: str = Field(..., max_length=500)

class AppointmentFilters(BaseModel):
    status: AppointmentStatus | None = None
    doctor_id: uuid.UUID | None = None
    patient_id: uuid.UUID | None = None
    start_date: date | None = None
    end_date: date | None = None  # inclusive
    limit: int = Field(50, ge=1, le=200)
    offset: int = Field(0, ge=0)

class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    scheduled_by_staff: uuid.UUID | None
    appointment_time: datetime
    appointment_end: datetime
    duration_minutes: int
    reason_for_visit: str | None
    status: AppointmentStatus
    cancellation_reason: str | None
    completion_notes: str | None
    created_at: datetime | None = None
    updated_at: datetime | None = None

import uuid
from decimal import Decimal
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from konsuldok.modules.availability.evaluator import HHMM_PATTERN, find_overlapping_blocks
from konsuldok.modules.doctors.models import SPECIALTIES

Specialty = Literal[SPECIALTIES]  # type: ignore[valid-type]

class WeeklyAvailabilityBlock(BaseModel):
    """One recurring working block. Wire and storage shape is camelCase."""
    model_config = ConfigDict(populate_by_name=True)

    day_of_week: int = Field(..., alias="dayOfWeek", ge=0, le=6)  # 0 = Sunday
    start_time: str = Field(..., alias="startTime", pattern=HHMM_PATTERN)
    end_time: str = Field(..., alias="endTime", pattern=HHMM_PATTERN)

    @model_validator(mode="after")
    def _end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time for the same availability block.")
        return self

def _validate_schedule(schedule: list[WeeklyAvailabilityBlock] | None):
    if not schedule:
        return schedule
    clashes = find_overlapping_blocks([b.model_dump(by_alias=True) for b in schedule])
    if clashes:
        days = sorted({a.day_of_week for a, _ in clashes})
        raise ValueError(f"Overlapping time slots detected for day(s) {days}.")
    return schedule

class DoctorCreate(BaseModel):
    user_id: uuid.UUID
    specialty: Specialty
    license_number: str = Field(..., min_length=3, max_length=64)
    years_of_experience: int | None = Field(default=None, ge=0)
    qualifications: list[str] = Field(default_factory=list)
    consultation_fee: Decimal | None = Field(default=None, ge=0)
    biography: str | None = None
    languages_spoken: list[str] = Field(default_factory=lambda: ["Bahasa Indonesia"])
    weekly_schedule: list[WeeklyAvailabilityBlock] = Field(default_factory=list)

    @field_validator("weekly_schedule")
    @classmethod
    def _no_overlaps(cls, v):
        return _validate_schedule(v)

class DoctorUpdate(BaseModel):
    specialty: Specialty | None = None
    years_of_experience: int | None = Field(default=None, ge=0)
    qualifications: list[str] | None = None
    consultation_fee: Decimal | None = Field(default=None, ge=0)
    biography: str | None = None
    languages_spoken: list[str] | None = None
    weekly_schedule: list[WeeklyAvailabilityBlock] | None = None

    @field_validator("weekly_schedule")
    @classmethod
    def _no_overlaps(cls, v):
        return _validate_schedule(v)

class DoctorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    specialty: str
    license_number: str
    years_of_experience: int | None
    qualifications: list[str]
    consultation_fee: Decimal | None
    biography: str | None
    languages_spoken: list[str]
    weekly_schedule: list[dict]

class DoctorListItem(BaseModel):
    id: uuid.UUID
    specialty: str
    consultation_fee: Decimal | None
    full_name: str
    first_name: str
    last_name: str

class DoctorList(BaseModel):
    doctors: list[DoctorListItem]
    total_count: int
    total_pages: int
    current_page: int

class AvailabilitySlots(BaseModel):
    doctor_id: uuid.UUID
    date: str
    duration_minutes: int
    slots: list[str]

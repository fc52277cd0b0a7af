import uuid
from datetime import date
from pydantic import BaseModel, ConfigDict, Field, field_validator

def _clean_certifications(values: list[str] | None) -> list[str] | None:
    if values is None:
        return None
    return [c.strip() for c in values if c and c.strip()]

class StaffCreate(BaseModel):
    user_id: uuid.UUID
    job_title: str = Field(..., min_length=1, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    employee_id: str | None = Field(default=None, max_length=64)
    hire_date: date | None = None
    certifications: list[str] = Field(default_factory=list)

    @field_validator("job_title")
    @classmethod
    def _title_not_blank(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("Job title is required.")
        return v

    @field_validator("department", "employee_id")
    @classmethod
    def _blank_is_none(cls, v: str | None):
        return (v.strip() or None) if v is not None else None

    @field_validator("certifications")
    @classmethod
    def _certs(cls, v):
        return _clean_certifications(v)

class StaffUpdate(BaseModel):
    # the linked account is fixed once the profile exists
    model_config = ConfigDict(extra="forbid")

    job_title: str | None = Field(default=None, min_length=1, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    employee_id: str | None = Field(default=None, max_length=64)
    hire_date: date | None = None
    certifications: list[str] | None = None

    @field_validator("certifications")
    @classmethod
    def _certs(cls, v):
        return _clean_certifications(v)

class StaffOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    job_title: str
    department: str | None
    employee_id: str | None
    hire_date: date | None
    certifications: list[str]

class StaffPage(BaseModel):
    staff: list[StaffOut]
    total_count: int
    total_pages: int
    current_page: int

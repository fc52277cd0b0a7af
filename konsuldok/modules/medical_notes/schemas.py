import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator

NOTE_MAX_CHARS = 5000

def _clean_tags(tags: list[str] | None) -> list[str] | None:
    if tags is None:
        return None
    cleaned = [t.strip() for t in tags]
    if any(not t for t in cleaned):
        raise ValueError("Tags must be non-empty strings")
    return cleaned

class NoteCreate(BaseModel):
    patient_id: uuid.UUID
    note_content: str = Field(..., min_length=1, max_length=NOTE_MAX_CHARS)
    consultation_date: datetime | None = None  # defaults to now
    tags: list[str] = Field(default_factory=list)
    appointment_id: uuid.UUID | None = None

    @field_validator("tags")
    @classmethod
    def _tags_not_blank(cls, v):
        return _clean_tags(v)

class NoteUpdate(BaseModel):
    note_content: str | None = Field(default=None, min_length=1, max_length=NOTE_MAX_CHARS)
    consultation_date: datetime | None = None
    tags: list[str] | None = None
    appointment_id: uuid.UUID | None = None

    @field_validator("tags")
    @classmethod
    def _tags_not_blank(cls, v):
        return _clean_tags(v)

class NoteQuery(BaseModel):
    start_date: datetime | None = None
    end_date: datetime | None = None
    sort_by: Literal["consultation_date", "created_at"] = "consultation_date"
    order: Literal["asc", "desc"] = "desc"
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)

class NoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    authored_by: uuid.UUID
    consultation_date: datetime
    note_content: str
    tags: list[str]
    appointment_id: uuid.UUID | None
    created_at: datetime | None = None

class NotePage(BaseModel):
    notes: list[NoteOut]
    total_count: int
    total_pages: int
    current_page: int

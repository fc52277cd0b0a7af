import uuid
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field

class DocumentMeta(BaseModel):
    description: str | None = Field(default=None, max_length=1000)
    document_date: datetime | None = None
    tags: list[str] = Field(default_factory=list)

class DocumentUpdate(BaseModel):
    description: str | None = Field(default=None, max_length=1000)
    document_date: datetime | None = None
    tags: list[str] | None = None

class DocumentQuery(BaseModel):
    tags: list[str] = Field(default_factory=list)  # match any
    start_date: datetime | None = None
    end_date: datetime | None = None
    sort_by: Literal["created_at", "document_date", "file_name"] = "created_at"
    order: Literal["asc", "desc"] = "desc"
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)

class DocumentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    uploaded_by: uuid.UUID
    file_name: str
    file_type: str
    file_size: int
    sha256: str
    description: str | None
    document_date: datetime | None
    tags: list[str]
    created_at: datetime | None = None
    download_url: str | None = None

class DocumentPage(BaseModel):
    documents: list[DocumentOut]
    total_count: int
    total_pages: int
    current_page: int

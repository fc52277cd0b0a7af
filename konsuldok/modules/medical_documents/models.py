import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, BigInteger, JSON, ForeignKey
from konsuldok.core.base import Base, TrackedMixin, UTCDateTime

class MedicalDocument(Base, TrackedMixin):
    patient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("patient_profile.id"), index=True)
    uploaded_by: Mapped[uuid.UUID] = mapped_column(ForeignKey("user.id"), index=True)
    file_name: Mapped[str] = mapped_column(String(255))  # original client filename
    file_type: Mapped[str] = mapped_column(String(128), index=True)  # mime type
    file_size: Mapped[int] = mapped_column(BigInteger)
    # object key relative to the storage provider: documents/<patient_id>/<sha256>.<ext>
    storage_key: Mapped[str] = mapped_column(String(512))
    sha256: Mapped[str] = mapped_column(String(64))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_date: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True, index=True)
    tags: Mapped[list] = mapped_column(JSON, default=list)

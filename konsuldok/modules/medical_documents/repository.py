import json
import uuid
from datetime import datetime
from typing import Sequence
from sqlalchemy import select, func, and_, or_, cast, Text
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.modules.medical_documents.models import MedicalDocument

class MedicalDocumentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> MedicalDocument:
        obj = MedicalDocument(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, document_id: uuid.UUID) -> MedicalDocument | None:
        q = select(MedicalDocument).where(MedicalDocument.id == document_id, MedicalDocument.deleted_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    def _conditions(self, patient_id: uuid.UUID, tags: list[str], start: datetime | None, end: datetime | None) -> list:
        cond = [MedicalDocument.patient_id == patient_id, MedicalDocument.deleted_at.is_(None)]
        if tags:
            # tags is a JSON list; match serialized elements so this works on postgres and sqlite
            cond.append(or_(*[cast(MedicalDocument.tags, Text).contains(json.dumps(t)) for t in tags]))
        if start:
            cond.append(MedicalDocument.document_date >= start)
        if end:
            cond.append(MedicalDocument.document_date <= end)
        return cond

    async def list_for_patient(self, patient_id: uuid.UUID, *, tags: list[str] | None = None, start: datetime | None = None, end: datetime | None = None,
                               sort_by: str = "created_at", order: str = "desc", limit: int = 10, offset: int = 0) -> Sequence[MedicalDocument]:
        col = getattr(MedicalDocument, sort_by)
        q = (
            select(MedicalDocument)
            .where(and_(*self._conditions(patient_id, tags or [], start, end)))
            .order_by(col.asc() if order == "asc" else col.desc())
            .limit(limit)
            .offset(offset)
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    async def count_for_patient(self, patient_id: uuid.UUID, *, tags: list[str] | None = None, start: datetime | None = None, end: datetime | None = None) -> int:
        q = select(func.count()).select_from(MedicalDocument).where(and_(*self._conditions(patient_id, tags or [], start, end)))
        return (await self.session.execute(q)).scalar_one()

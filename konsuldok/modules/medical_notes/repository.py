import uuid
from datetime import datetime
from typing import Sequence
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.modules.medical_notes.models import MedicalNote

class MedicalNoteRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> MedicalNote:
        obj = MedicalNote(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, note_id: uuid.UUID) -> MedicalNote | None:
        q = select(MedicalNote).where(MedicalNote.id == note_id, MedicalNote.deleted_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    def _conditions(self, patient_id: uuid.UUID, start: datetime | None, end: datetime | None) -> list:
        cond = [MedicalNote.patient_id == patient_id, MedicalNote.deleted_at.is_(None)]
        if start:
            cond.append(MedicalNote.consultation_date >= start)
        if end:
            cond.append(MedicalNote.consultation_date <= end)
        return cond

    async def list_for_patient(self, patient_id: uuid.UUID, *, start: datetime | None = None, end: datetime | None = None,
                               sort_by: str = "consultation_date", order: str = "desc", limit: int = 10, offset: int = 0) -> Sequence[MedicalNote]:
        col = getattr(MedicalNote, sort_by)
        q = (
            select(MedicalNote)
            .where(and_(*self._conditions(patient_id, start, end)))
            .order_by(col.asc() if order == "asc" else col.desc())
            .limit(limit)
            .offset(offset)
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    async def count_for_patient(self, patient_id: uuid.UUID, *, start: datetime | None = None, end: datetime | None = None) -> int:
        q = select(func.count()).select_from(MedicalNote).where(and_(*self._conditions(patient_id, start, end)))
        return (await self.session.execute(q)).scalar_one()

import uuid
from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.modules.patients.models import PatientProfile

class PatientRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> PatientProfile:
        obj = PatientProfile(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, patient_id: uuid.UUID) -> PatientProfile | None:
        q = select(PatientProfile).where(
            PatientProfile.id == patient_id,
            PatientProfile.deleted_at.is_(None),
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_user(self, user_id: uuid.UUID) -> PatientProfile | None:
        q = select(PatientProfile).where(PatientProfile.user_id == user_id, PatientProfile.deleted_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def exists(self, patient_id: uuid.UUID) -> bool:
        q = select(func.count()).select_from(PatientProfile).where(
            PatientProfile.id == patient_id, PatientProfile.deleted_at.is_(None)
        )
        return (await self.session.execute(q)).scalar_one() > 0

    async def list(self, limit: int = 50, offset: int = 0) -> Sequence[PatientProfile]:
        q = select(PatientProfile).where(
            PatientProfile.deleted_at.is_(None),
        ).order_by(PatientProfile.created_at.desc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

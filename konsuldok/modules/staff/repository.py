import uuid
from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.modules.staff.models import StaffProfile

class StaffRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> StaffProfile:
        obj = StaffProfile(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, staff_id: uuid.UUID) -> StaffProfile | None:
        q = select(StaffProfile).where(StaffProfile.id == staff_id, StaffProfile.deleted_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_user(self, user_id: uuid.UUID) -> StaffProfile | None:
        q = select(StaffProfile).where(StaffProfile.user_id == user_id, StaffProfile.deleted_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_employee_id(self, employee_id: str) -> StaffProfile | None:
        # soft-deleted rows still hold the unique value
        q = select(StaffProfile).where(StaffProfile.employee_id == employee_id)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    def _conditions(self, department: str | None) -> list:
        cond = [StaffProfile.deleted_at.is_(None)]
        if department:
            cond.append(StaffProfile.department == department)
        return cond

    async def list(self, department: str | None = None, limit: int = 10, offset: int = 0) -> Sequence[StaffProfile]:
        q = (
            select(StaffProfile)
            .where(*self._conditions(department))
            .order_by(StaffProfile.job_title.asc(), StaffProfile.created_at.asc())
            .limit(limit).offset(offset)
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    async def count(self, department: str | None = None) -> int:
        q = select(func.count()).select_from(StaffProfile).where(*self._conditions(department))
        return (await self.session.execute(q)).scalar_one()

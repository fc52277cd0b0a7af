import uuid
from typing import Sequence
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.modules.doctors.models import DoctorProfile
from konsuldok.modules.users.models import User

class DoctorRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> DoctorProfile:
        obj = DoctorProfile(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, doctor_id: uuid.UUID) -> DoctorProfile | None:
        q = select(DoctorProfile).where(DoctorProfile.id == doctor_id, DoctorProfile.deleted_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_user(self, user_id: uuid.UUID) -> DoctorProfile | None:
        q = select(DoctorProfile).where(DoctorProfile.user_id == user_id, DoctorProfile.deleted_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_license(self, license_number: str) -> DoctorProfile | None:
        q = select(DoctorProfile).where(DoctorProfile.license_number == license_number)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    def _booking_query(self, specialty: str | None, search: str | None):
        q = (
            select(DoctorProfile, User)
            .join(User, User.id == DoctorProfile.user_id)
            .where(DoctorProfile.deleted_at.is_(None), User.deleted_at.is_(None), User.is_active.is_(True))
        )
        if specialty:
            q = q.where(DoctorProfile.specialty == specialty)
        if search:
            like = f"%{search.strip()}%"
            q = q.where(or_(User.first_name.ilike(like), User.last_name.ilike(like)))
        return q

    async def list_for_booking(self, specialty: str | None, search: str | None, limit: int, offset: int) -> Sequence[tuple[DoctorProfile, User]]:
        q = self._booking_query(specialty, search).order_by(User.first_name.asc(), User.last_name.asc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return [tuple(row) for row in res.all()]

    async def count_for_booking(self, specialty: str | None, search: str | None) -> int:
        q = select(func.count()).select_from(self._booking_query(specialty, search).subquery())
        return (await self.session.execute(q)).scalar_one()

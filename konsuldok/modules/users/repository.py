import uuid
from typing import Sequence
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import UserRole
from konsuldok.modules.users.models import User

class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> User:
        obj = User(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, user_id: uuid.UUID) -> User | None:
        q = select(User).where(User.id == user_id, User.deleted_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        # deactivated accounts keep their address reserved
        q = select(User).where(User.email == email.lower())
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    def _conditions(self, role: UserRole | None, is_active: bool | None) -> list:
        cond = [User.deleted_at.is_(None)]
        if role:
            cond.append(User.role == role)
        if is_active is not None:
            cond.append(User.is_active.is_(is_active))
        return cond

    async def list(self, *, role: UserRole | None = None, is_active: bool | None = None,
                   sort_by: str = "created_at", order: str = "desc", limit: int = 10, offset: int = 0) -> Sequence[User]:
        col = getattr(User, sort_by)
        q = (
            select(User)
            .where(*self._conditions(role, is_active))
            .order_by(col.asc() if order == "asc" else col.desc(), User.id)
            .limit(limit).offset(offset)
        )
        res = await self.session.execute(q)
        return res.scalars().all()

    async def count(self, *, role: UserRole | None = None, is_active: bool | None = None) -> int:
        q = select(func.count()).select_from(User).where(*self._conditions(role, is_active))
        return (await self.session.execute(q)).scalar_one()

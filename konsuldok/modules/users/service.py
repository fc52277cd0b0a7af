import math
import uuid
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import UserRole
from konsuldok.core.errors import ConflictError, InvalidInputError, NotFoundError
from konsuldok.core.security import Principal
from konsuldok.modules.doctors.repository import DoctorRepository
from konsuldok.modules.patients.repository import PatientRepository
from konsuldok.modules.staff.repository import StaffRepository
from konsuldok.modules.users.repository import UserRepository
from konsuldok.modules.users.schemas import UserCreate, UserUpdate, UserSelfUpdate
from konsuldok.modules.users.models import User

logger = logging.getLogger(__name__)

class UserService:
    def __init__(self, session: AsyncSession):
        self.repo = UserRepository(session)
        self.patients = PatientRepository(session)
        self.doctors = DoctorRepository(session)
        self.staff = StaffRepository(session)
        self.session = session

    async def create(self, payload: UserCreate, actor: Principal) -> User:
        email = payload.email.lower()
        if await self.repo.get_by_email(email):
            raise ConflictError(f"A user with email {email} already exists.", code="DUPLICATE_EMAIL")
        data = payload.model_dump()
        data["email"] = email
        obj = await self.repo.create(**data, created_by=actor.user_id)
        await self.session.commit()
        logger.info(f"User {obj.id} created with role {obj.role.value} by {actor.user_id}")
        return obj

    async def get(self, user_id: uuid.UUID) -> User:
        obj = await self.repo.get(user_id)
        if not obj:
            raise NotFoundError("User not found.")
        return obj

    async def linked_profiles(self, user: User) -> dict:
        """The role-specific profiles attached to an account, keyed like ``UserDetailOut``."""
        return {
            "patient_profile": await self.patients.get_by_user(user.id),
            "doctor_profile": await self.doctors.get_by_user(user.id),
            "staff_profile": await self.staff.get_by_user(user.id),
        }

    async def list(self, *, role: UserRole | None = None, is_active: bool | None = None,
                   sort_by: str = "created_at", order: str = "desc", page: int = 1, limit: int = 10) -> dict:
        users = await self.repo.list(
            role=role, is_active=is_active, sort_by=sort_by, order=order, limit=limit, offset=(page - 1) * limit,
        )
        total = await self.repo.count(role=role, is_active=is_active)
        return {
            "users": users,
            "total_count": total,
            "total_pages": math.ceil(total / limit) if total else 0,
            "current_page": page,
        }

    async def update(self, user_id: uuid.UUID, payload: UserUpdate, actor: Principal) -> User:
        obj = await self.get(user_id)
        for k, v in payload.model_dump(exclude_unset=True).items():
            if v is not None:
                setattr(obj, k, v)
        obj.updated_by = actor.user_id
        await self.session.commit()
        return obj

    async def update_me(self, payload: UserSelfUpdate, actor: Principal) -> User:
        obj = await self.get(actor.user_id)
        changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        if not changes:
            raise InvalidInputError("No valid fields provided for update.")
        for k, v in changes.items():
            setattr(obj, k, v)
        obj.updated_by = actor.user_id
        await self.session.commit()
        logger.info(f"User {obj.id} updated own account ({', '.join(sorted(changes))})")
        return obj

    async def deactivate(self, user_id: uuid.UUID, actor: Principal) -> None:
        if user_id == actor.user_id:
            raise InvalidInputError("Administrators cannot delete their own account.")
        obj = await self.get(user_id)
        logger.warning(f"Deactivating user {user_id} by {actor.user_id}")
        obj.is_active = False
        obj.soft_delete(actor.user_id)
        for kind, profile in (await self.linked_profiles(obj)).items():
            if profile is not None:
                profile.soft_delete(actor.user_id)
                logger.info(f"Soft deleted {kind} {profile.id} with user {user_id}")
        await self.session.commit()

import math
import uuid
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import UserRole, CLINIC_ROLES
from konsuldok.core.errors import ConflictError, ForbiddenError, NotFoundError
from konsuldok.core.security import Principal
from konsuldok.modules.staff.models import StaffProfile
from konsuldok.modules.staff.repository import StaffRepository
from konsuldok.modules.staff.schemas import StaffCreate, StaffUpdate
from konsuldok.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

class StaffService:
    def __init__(self, session: AsyncSession):
        self.repo = StaffRepository(session)
        self.users = UserRepository(session)
        self.session = session

    async def _ensure_employee_id_free(self, employee_id: str | None, own_id: uuid.UUID | None = None):
        if not employee_id:
            return
        holder = await self.repo.get_by_employee_id(employee_id)
        if holder and holder.id != own_id:
            raise ConflictError(f"Employee ID {employee_id} is already assigned.", code="DUPLICATE_EMPLOYEE_ID")

    async def create(self, payload: StaffCreate, actor: Principal) -> StaffProfile:
        user = await self.users.get(payload.user_id)
        if not user:
            raise NotFoundError("User account not found.")
        if user.role != UserRole.STAFF:
            raise ConflictError("Staff profiles can only be attached to Staff accounts.", code="ROLE_MISMATCH")
        if await self.repo.get_by_user(payload.user_id):
            raise ConflictError("This user already has a staff profile.", code="PROFILE_EXISTS")
        await self._ensure_employee_id_free(payload.employee_id)
        obj = await self.repo.create(**payload.model_dump(), created_by=actor.user_id)
        await self.session.commit()
        logger.info(f"Staff profile {obj.id} ({obj.job_title}) created for user {payload.user_id}")
        return obj

    async def get(self, staff_id: uuid.UUID, actor: Principal) -> StaffProfile:
        if actor.role not in CLINIC_ROLES:
            raise ForbiddenError("Only clinic members can view staff profiles.")
        obj = await self.repo.get(staff_id)
        if not obj:
            raise NotFoundError("Staff profile not found.")
        return obj

    async def get_mine(self, actor: Principal) -> StaffProfile:
        obj = await self.repo.get_by_user(actor.user_id)
        if not obj:
            raise NotFoundError("You do not have a staff profile.")
        return obj

    async def list(self, department: str | None = None, page: int = 1, limit: int = 10) -> dict:
        rows = await self.repo.list(department, limit, (page - 1) * limit)
        total = await self.repo.count(department)
        return {
            "staff": rows,
            "total_count": total,
            "total_pages": math.ceil(total / limit) if total else 0,
            "current_page": page,
        }

    async def update(self, staff_id: uuid.UUID, payload: StaffUpdate, actor: Principal) -> StaffProfile:
        obj = await self.get(staff_id, actor)
        changes = payload.model_dump(exclude_unset=True)
        if "employee_id" in changes:
            await self._ensure_employee_id_free(changes["employee_id"], own_id=obj.id)
        for k, v in changes.items():
            if k == "job_title" and not v:
                continue
            setattr(obj, k, [] if k == "certifications" and v is None else v)
        obj.updated_by = actor.user_id
        await self.session.commit()
        logger.info(f"Staff profile {staff_id} updated ({', '.join(sorted(changes))}) by {actor.user_id}")
        return obj

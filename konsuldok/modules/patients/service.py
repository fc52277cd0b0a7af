import uuid
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import UserRole, CLINIC_ROLES
from konsuldok.core.errors import ConflictError, ForbiddenError, NotFoundError
from konsuldok.core.security import Principal
from konsuldok.modules.patients.repository import PatientRepository
from konsuldok.modules.patients.schemas import PatientCreate, PatientUpdate
from konsuldok.modules.patients.models import PatientProfile
from konsuldok.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

class PatientService:
    def __init__(self, session: AsyncSession):
        self.repo = PatientRepository(session)
        self.users = UserRepository(session)
        self.session = session

    async def create(self, payload: PatientCreate, actor: Principal) -> PatientProfile:
        if actor.role == UserRole.PATIENT and payload.user_id != actor.user_id:
            raise ForbiddenError("Patients can only create their own profile.")
        user = await self.users.get(payload.user_id)
        if not user:
            raise NotFoundError("User account not found.")
        if user.role != UserRole.PATIENT:
            raise ConflictError("Patient profiles can only be attached to Patient accounts.", code="ROLE_MISMATCH")
        if await self.repo.get_by_user(payload.user_id):
            raise ConflictError("This user already has a patient profile.", code="PROFILE_EXISTS")
        obj = await self.repo.create(**payload.model_dump(exclude_unset=True), created_by=actor.user_id)
        await self.session.commit()
        logger.info(f"Patient profile {obj.id} created for user {payload.user_id}")
        return obj

    async def get(self, patient_id: uuid.UUID, actor: Principal) -> PatientProfile:
        obj = await self.repo.get(patient_id)
        if not obj:
            raise NotFoundError("Patient profile not found.")
        if actor.role == UserRole.PATIENT and actor.patient_profile_id != obj.id:
            raise ForbiddenError("You can only view your own patient profile.")
        return obj

    async def get_mine(self, actor: Principal) -> PatientProfile:
        if actor.role != UserRole.PATIENT:
            raise ForbiddenError("Only patients have a patient profile of their own.")
        obj = await self.repo.get_by_user(actor.user_id)
        if not obj:
            raise NotFoundError("Patient profile not found for the current user.")
        return obj

    async def list(self, limit: int = 50, offset: int = 0):
        return await self.repo.list(limit, offset)

    async def update(self, patient_id: uuid.UUID, payload: PatientUpdate, actor: Principal) -> PatientProfile:
        obj = await self.get(patient_id, actor)
        if actor.role not in CLINIC_ROLES and actor.patient_profile_id != obj.id:
            raise ForbiddenError("You are not authorized to update this patient profile.")
        for k, v in payload.model_dump(exclude_unset=True).items():
            if v is not None:
                setattr(obj, k, v)
        obj.updated_by = actor.user_id
        await self.session.commit()
        return obj

    async def delete(self, patient_id: uuid.UUID, actor: Principal) -> None:
        obj = await self.get(patient_id, actor)
        logger.warning(f"Soft deleting patient profile {patient_id} by {actor.user_id}")
        obj.soft_delete(actor.user_id)
        await self.session.commit()

import math
import uuid
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.config import settings
from konsuldok.core.constants import UserRole
from konsuldok.core.errors import ConflictError, ForbiddenError, NotFoundError
from konsuldok.core.security import Principal
from konsuldok.modules.availability.conflicts import ConflictResolver, parse_day, validate_duration
from konsuldok.modules.availability.evaluator import schedule_to_wire
from konsuldok.modules.appointments.repository import SqlSchedulingStore
from konsuldok.modules.doctors.models import DoctorProfile
from konsuldok.modules.doctors.repository import DoctorRepository
from konsuldok.modules.doctors.schemas import DoctorCreate, DoctorUpdate
from konsuldok.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

class DoctorService:
    def __init__(self, session: AsyncSession):
        self.repo = DoctorRepository(session)
        self.users = UserRepository(session)
        self.session = session

    async def create(self, payload: DoctorCreate, actor: Principal) -> DoctorProfile:
        user = await self.users.get(payload.user_id)
        if not user:
            raise NotFoundError("User account not found.")
        if user.role != UserRole.DOCTOR:
            raise ConflictError("Doctor profiles can only be attached to Doctor accounts.", code="ROLE_MISMATCH")
        if await self.repo.get_by_user(payload.user_id):
            raise ConflictError("This user already has a doctor profile.", code="PROFILE_EXISTS")
        if await self.repo.get_by_license(payload.license_number):
            raise ConflictError("License number is already registered.", code="DUPLICATE_LICENSE")
        data = payload.model_dump(exclude={"weekly_schedule"})
        obj = await self.repo.create(
            **data,
            weekly_schedule=schedule_to_wire(payload.weekly_schedule),
            created_by=actor.user_id,
        )
        await self.session.commit()
        logger.info(f"Doctor profile {obj.id} created for user {payload.user_id}")
        return obj

    async def get(self, doctor_id: uuid.UUID) -> DoctorProfile:
        obj = await self.repo.get(doctor_id)
        if not obj:
            raise NotFoundError("Doctor profile not found.")
        return obj

    async def list_for_booking(self, specialty: str | None = None, search: str | None = None, page: int = 1, limit: int = 10) -> dict:
        offset = (page - 1) * limit
        rows = await self.repo.list_for_booking(specialty, search, limit, offset)
        total = await self.repo.count_for_booking(specialty, search)
        return {
            "doctors": [
                {
                    "id": doc.id,
                    "specialty": doc.specialty,
                    "consultation_fee": doc.consultation_fee,
                    "full_name": user.full_name,
                    "first_name": user.first_name,
                    "last_name": user.last_name,
                }
                for doc, user in rows
            ],
            "total_count": total,
            "total_pages": math.ceil(total / limit) if total else 0,
            "current_page": page,
        }

    async def update(self, doctor_id: uuid.UUID, payload: DoctorUpdate, actor: Principal) -> DoctorProfile:
        obj = await self.get(doctor_id)
        if actor.role != UserRole.ADMIN and actor.doctor_profile_id != obj.id:
            raise ForbiddenError("You are not authorized to update this doctor profile.")
        changes = payload.model_dump(exclude_unset=True, exclude={"weekly_schedule"})
        for k, v in changes.items():
            if v is not None:
                setattr(obj, k, v)
        if payload.weekly_schedule is not None:
            # replaced wholesale, already validated for format and overlap
            obj.weekly_schedule = schedule_to_wire(payload.weekly_schedule)
            logger.info(f"Weekly schedule of doctor {obj.id} replaced with {len(obj.weekly_schedule)} blocks")
        obj.updated_by = actor.user_id
        await self.session.commit()
        return obj

    async def available_slots(self, doctor_id: uuid.UUID, day: str, duration_minutes: int = settings.DEFAULT_APPOINTMENT_MINUTES) -> dict:
        requested = parse_day(day)
        validate_duration(duration_minutes, settings.MIN_APPOINTMENT_MINUTES)
        resolver = ConflictResolver(SqlSchedulingStore(self.session), settings.clinic_tz, settings.SLOT_INCREMENT_MINUTES)
        slots = await resolver.list_available_slots(doctor_id, requested, duration_minutes)
        return {"doctor_id": doctor_id, "date": requested.isoformat(), "duration_minutes": duration_minutes, "slots": slots}

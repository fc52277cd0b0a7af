import math
import uuid
import logging
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import UserRole
from konsuldok.core.errors import ForbiddenError, NotFoundError
from konsuldok.core.security import Principal
from konsuldok.modules.appointments.repository import SqlSchedulingStore
from konsuldok.modules.medical_notes.models import MedicalNote
from konsuldok.modules.medical_notes.repository import MedicalNoteRepository
from konsuldok.modules.medical_notes.schemas import NoteCreate, NoteUpdate, NoteQuery
from konsuldok.modules.patients.repository import PatientRepository

logger = logging.getLogger(__name__)

AUTHOR_ROLES = (UserRole.DOCTOR, UserRole.STAFF)

class MedicalNoteService:
    def __init__(self, session: AsyncSession):
        self.repo = MedicalNoteRepository(session)
        self.patients = PatientRepository(session)
        self.appointments = SqlSchedulingStore(session)
        self.session = session

    async def _check_appointment(self, appointment_id: uuid.UUID | None):
        if appointment_id and not await self.appointments.get_appointment(appointment_id):
            raise NotFoundError(f"Appointment not found with ID: {appointment_id}")

    def _check_patient_scope(self, patient_id: uuid.UUID, actor: Principal):
        if actor.role == UserRole.PATIENT and actor.patient_profile_id != patient_id:
            raise ForbiddenError("You can only view your own medical notes.")

    async def create(self, payload: NoteCreate, actor: Principal) -> MedicalNote:
        if actor.role not in AUTHOR_ROLES:
            raise ForbiddenError("Only Doctors or Staff can create medical notes.")
        if not await self.patients.exists(payload.patient_id):
            raise NotFoundError(f"Patient profile not found with ID: {payload.patient_id}")
        await self._check_appointment(payload.appointment_id)
        obj = await self.repo.create(
            patient_id=payload.patient_id,
            authored_by=actor.user_id,
            consultation_date=payload.consultation_date or datetime.now(timezone.utc),
            note_content=payload.note_content,
            tags=payload.tags,
            appointment_id=payload.appointment_id,
            created_by=actor.user_id,
        )
        await self.session.commit()
        logger.info(f"Medical note {obj.id} created for patient {payload.patient_id} by {actor.user_id}")
        return obj

    async def list_for_patient(self, patient_id: uuid.UUID, query: NoteQuery, actor: Principal) -> dict:
        self._check_patient_scope(patient_id, actor)
        offset = (query.page - 1) * query.limit
        notes = await self.repo.list_for_patient(
            patient_id, start=query.start_date, end=query.end_date,
            sort_by=query.sort_by, order=query.order, limit=query.limit, offset=offset,
        )
        total = await self.repo.count_for_patient(patient_id, start=query.start_date, end=query.end_date)
        return {
            "notes": notes,
            "total_count": total,
            "total_pages": math.ceil(total / query.limit) if total else 0,
            "current_page": query.page,
        }

    async def get(self, note_id: uuid.UUID, actor: Principal) -> MedicalNote:
        obj = await self.repo.get(note_id)
        if not obj:
            raise NotFoundError("Medical note not found.")
        self._check_patient_scope(obj.patient_id, actor)
        return obj

    def _ensure_author_or_admin(self, obj: MedicalNote, actor: Principal, action: str):
        if obj.authored_by != actor.user_id and actor.role != UserRole.ADMIN:
            raise ForbiddenError(f"You are not authorized to {action} this medical note.")

    async def update(self, note_id: uuid.UUID, payload: NoteUpdate, actor: Principal) -> MedicalNote:
        obj = await self.get(note_id, actor)
        self._ensure_author_or_admin(obj, actor, "update")
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("appointment_id"):
            await self._check_appointment(changes["appointment_id"])
        for k, v in changes.items():
            if v is not None or k == "appointment_id":
                setattr(obj, k, v)
        obj.updated_by = actor.user_id
        await self.session.commit()
        return obj

    async def delete(self, note_id: uuid.UUID, actor: Principal) -> None:
        obj = await self.get(note_id, actor)
        self._ensure_author_or_admin(obj, actor, "delete")
        logger.warning(f"Soft deleting medical note {note_id} by {actor.user_id}")
        obj.soft_delete(actor.user_id)
        await self.session.commit()

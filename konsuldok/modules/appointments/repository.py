import uuid
import logging
from datetime import datetime, timedelta
from functools import wraps
from typing import Any, Iterable, Sequence
from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from konsuldok.core.constants import AppointmentStatus
from konsuldok.core.errors import ConflictError, InfrastructureError, SlotUnavailableError
from konsuldok.modules.appointments.models import Appointment
from konsuldok.modules.doctors.models import DoctorProfile
from konsuldok.modules.events.outbox import OutboxService
from konsuldok.modules.patients.repository import PatientRepository

logger = logging.getLogger(__name__)

SLOT_INDEX = "uq_appointment_doctor_slot"

def _translate_db_errors(fn):
    @wraps(fn)
    async def wrapper(self, *args, **kwargs):
        try:
            return await fn(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Database failure in {fn.__name__}: {e}", exc_info=True)
            raise InfrastructureError("Database is unavailable.") from e
    return wrapper

def _slot_violation(e: IntegrityError) -> bool:
    msg = str(e.orig)
    # postgres names the index, sqlite names the columns
    return SLOT_INDEX in msg or "appointment.doctor_id, appointment.appointment_time" in msg

class SqlSchedulingStore:
    """``SchedulingStore`` on an ``AsyncSession``. Timestamps go through ``UTCDateTime``."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.patients = PatientRepository(session)
        self.outbox = OutboxService(session)

    async def _flush_or_conflict(self):
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            if _slot_violation(e):
                logger.warning(f"Double booking rejected by {SLOT_INDEX}")
                raise SlotUnavailableError(SlotUnavailableError.SLOT_TAKEN) from e
            raise ConflictError("The change violates a data constraint.", code="INTEGRITY_ERROR") from e

    @_translate_db_errors
    async def get_schedule(self, doctor_id: uuid.UUID, *, for_update: bool = False) -> list[dict] | None:
        q = select(DoctorProfile.weekly_schedule).where(DoctorProfile.id == doctor_id, DoctorProfile.deleted_at.is_(None))
        if for_update:
            # serialises bookings per doctor until commit/rollback
            q = q.with_for_update()
        row = (await self.session.execute(q)).first()
        if row is None:
            return None
        return list(row[0] or [])

    @_translate_db_errors
    async def patient_exists(self, patient_id: uuid.UUID) -> bool:
        return await self.patients.exists(patient_id)

    def _overlapping(self, doctor_id: uuid.UUID, statuses: Iterable[AppointmentStatus], start: datetime, end: datetime) -> list:
        return [
            Appointment.doctor_id == doctor_id,
            Appointment.deleted_at.is_(None),
            Appointment.status.in_(list(statuses)),
            Appointment.appointment_time < end,
            Appointment.appointment_end > start,
        ]

    @_translate_db_errors
    async def find_conflicting(self, doctor_id: uuid.UUID, statuses: Iterable[AppointmentStatus], start: datetime, end: datetime, exclude_id: uuid.UUID | None = None) -> Appointment | None:
        cond = self._overlapping(doctor_id, statuses, start, end)
        if exclude_id:
            cond.append(Appointment.id != exclude_id)
        q = select(Appointment).where(and_(*cond)).order_by(Appointment.appointment_time.asc()).limit(1)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    @_translate_db_errors
    async def list_blocking(self, doctor_id: uuid.UUID, statuses: Iterable[AppointmentStatus], start: datetime, end: datetime) -> Sequence[Appointment]:
        q = select(Appointment).where(and_(*self._overlapping(doctor_id, statuses, start, end))).order_by(Appointment.appointment_time.asc())
        res = await self.session.execute(q)
        return res.scalars().all()

    @_translate_db_errors
    async def get_appointment(self, appointment_id: uuid.UUID) -> Appointment | None:
        q = select(Appointment).where(Appointment.id == appointment_id, Appointment.deleted_at.is_(None))
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    @_translate_db_errors
    async def list_appointments(
        self,
        *,
        patient_id: uuid.UUID | None = None,
        doctor_id: uuid.UUID | None = None,
        status: AppointmentStatus | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Appointment]:
        cond = [Appointment.deleted_at.is_(None)]
        if patient_id:
            cond.append(Appointment.patient_id == patient_id)
        if doctor_id:
            cond.append(Appointment.doctor_id == doctor_id)
        if status:
            cond.append(Appointment.status == status)
        if start:
            cond.append(Appointment.appointment_time >= start)
        if end:
            cond.append(Appointment.appointment_time < end)
        q = select(Appointment).where(and_(*cond)).order_by(Appointment.appointment_time.asc()).limit(limit).offset(offset)
        res = await self.session.execute(q)
        return res.scalars().all()

    @_translate_db_errors
    async def insert(self, **data: Any) -> Appointment:
        obj = Appointment(**data)
        obj.appointment_end = obj.appointment_time + timedelta(minutes=obj.duration_minutes)
        self.session.add(obj)
        await self._flush_or_conflict()
        return obj

    @_translate_db_errors
    async def update(self, appointment: Appointment, **patch: Any) -> Appointment:
        for k, v in patch.items():
            setattr(appointment, k, v)
        if "appointment_time" in patch or "duration_minutes" in patch:
            appointment.appointment_end = appointment.appointment_time + timedelta(minutes=appointment.duration_minutes)
        await self._flush_or_conflict()
        return appointment

    @_translate_db_errors
    async def emit(self, event_type: str, appointment: Appointment, payload: dict) -> None:
        await self.outbox.enqueue(event_type, "appointment", appointment.id, payload)

    @_translate_db_errors
    async def commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if _slot_violation(e):
                raise SlotUnavailableError(SlotUnavailableError.SLOT_TAKEN) from e
            raise ConflictError("The change violates a data constraint.", code="INTEGRITY_ERROR") from e

    @_translate_db_errors
    async def rollback(self) -> None:
        await self.session.rollback()

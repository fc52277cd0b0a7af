import uuid
import logging
from datetime import datetime, time, timedelta, timezone, tzinfo
from typing import Callable
from konsuldok.core.constants import (
    AppointmentStatus, UserRole, BLOCKING_STATUSES, BOOKING_DESK_ROLES, CLINIC_ROLES, TERMINAL_STATUSES,
)
from konsuldok.core.errors import ForbiddenError, InvalidInputError, NotFoundError
from konsuldok.core.security import Principal
from konsuldok.modules.availability.conflicts import (
    ConflictResolver, SLOT_INCREMENT_MINUTES, MIN_DURATION_MINUTES, validate_duration,
)
from konsuldok.modules.availability.evaluator import to_clinic_time
from konsuldok.modules.availability.ports import AppointmentRecord, SchedulingStore
from konsuldok.modules.appointments.schemas import AppointmentCreate, AppointmentUpdate, AppointmentFilters

logger = logging.getLogger(__name__)

S = AppointmentStatus
VALID_NEXT: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.REQUESTED: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.COMPLETED, S.CANCELLED, S.NO_SHOW}),
    S.CANCELLED: frozenset(),
    S.COMPLETED: frozenset(),
    S.NO_SHOW: frozenset(),
}
# Transitions patients may never make themselves
CLINIC_ONLY_TARGETS = frozenset({S.CONFIRMED, S.COMPLETED, S.NO_SHOW})

def event_payload(appt: AppointmentRecord, **extra) -> dict:
    data = {
        "appointment_id": str(appt.id),
        "patient_id": str(appt.patient_id),
        "doctor_id": str(appt.doctor_id),
        "appointment_time": appt.appointment_time.isoformat(),
        "duration_minutes": appt.duration_minutes,
        "status": S(appt.status).value,
    }
    data.update(extra)
    return data

class AppointmentService:
    """Booking, rescheduling, status transitions and cancellation.

    Every mutation goes through the composite availability check (working
    hours first, then overlap against blocking appointments) and is committed
    together with its outbox event. Any failure rolls the unit of work back.
    """

    def __init__(
        self,
        store: SchedulingStore,
        tz: tzinfo | None = None,
        now: Callable[[], datetime] | None = None,
        slot_increment_minutes: int = SLOT_INCREMENT_MINUTES,
        min_duration_minutes: int = MIN_DURATION_MINUTES,
    ):
        self.store = store
        self.tz = tz
        self.min_duration = min_duration_minutes
        self.resolver = ConflictResolver(store, tz, slot_increment_minutes)
        self._clock = now

    def _now(self) -> datetime:
        return self._clock() if self._clock else datetime.now(timezone.utc)

    def _localize(self, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=self.tz or timezone.utc)
        return to_clinic_time(value, self.tz)

    def _future_start(self, value: datetime | None) -> datetime:
        if not isinstance(value, datetime):
            raise InvalidInputError("Invalid or past appointment time specified.")
        start = self._localize(value)
        if start <= self._now():
            raise InvalidInputError("Invalid or past appointment time specified.")
        return start

    async def _load(self, appointment_id: uuid.UUID) -> AppointmentRecord:
        appt = await self.store.get_appointment(appointment_id)
        if appt is None:
            raise NotFoundError("Appointment not found.")
        return appt

    @staticmethod
    def _owns(appt: AppointmentRecord, actor: Principal) -> bool:
        if actor.role == UserRole.PATIENT:
            return actor.patient_profile_id is not None and appt.patient_id == actor.patient_profile_id
        if actor.role == UserRole.DOCTOR:
            return actor.doctor_profile_id is not None and appt.doctor_id == actor.doctor_profile_id
        return actor.role in BOOKING_DESK_ROLES

    async def _commit(self, appt: AppointmentRecord, event_type: str, **extra) -> None:
        await self.store.emit(event_type, appt, event_payload(appt, **extra))
        await self.store.commit()

    # ---- Create ----

    async def create(self, payload: AppointmentCreate, actor: Principal) -> AppointmentRecord:
        if actor.role == UserRole.PATIENT:
            if actor.patient_profile_id is None:
                raise InvalidInputError("Patient profile not found for requesting user.")
            if payload.patient_id and payload.patient_id != actor.patient_profile_id:
                raise ForbiddenError("Patients can only book appointments for themselves.")
            patient_id = actor.patient_profile_id
        else:
            if payload.patient_id is None:
                raise InvalidInputError("patient_id is required when booking on behalf of a patient.")
            patient_id = payload.patient_id

        start = self._future_start(payload.appointment_time)
        duration = validate_duration(payload.duration_minutes, self.min_duration)

        if not await self.store.patient_exists(patient_id):
            raise NotFoundError("Patient profile not found.")

        by_desk = actor.role in BOOKING_DESK_ROLES
        try:
            await self.resolver.ensure_available(payload.doctor_id, start, duration, lock=True)
            appt = await self.store.insert(
                patient_id=patient_id,
                doctor_id=payload.doctor_id,
                appointment_time=start,
                duration_minutes=duration,
                reason_for_visit=payload.reason_for_visit,
                status=S.CONFIRMED if by_desk else S.REQUESTED,
                scheduled_by_staff=actor.user_id if by_desk else None,
                created_by=actor.user_id,
                updated_by=actor.user_id,
            )
            await self._commit(appt, "APPOINTMENT_CREATED")
        except Exception:
            await self.store.rollback()
            raise
        logger.info(f"Appointment {appt.id} created with status {S(appt.status).value} by {actor.user_id}")
        return appt

    # ---- Read ----

    async def get(self, appointment_id: uuid.UUID, actor: Principal) -> AppointmentRecord:
        appt = await self._load(appointment_id)
        if actor.role == UserRole.PATIENT and not self._owns(appt, actor):
            raise ForbiddenError("You can only view your own appointments.")
        return appt

    async def list_for(self, actor: Principal, filters: AppointmentFilters | None = None):
        f = filters or AppointmentFilters()
        patient_id, doctor_id = f.patient_id, f.doctor_id
        if actor.role == UserRole.PATIENT:
            if actor.patient_profile_id is None:
                raise InvalidInputError("Patient profile not found.")
            patient_id = actor.patient_profile_id
        elif actor.role == UserRole.DOCTOR:
            if actor.doctor_profile_id is None:
                raise InvalidInputError("Doctor profile not found.")
            doctor_id = actor.doctor_profile_id

        start = end = None
        if f.start_date:
            start = datetime.combine(f.start_date, time.min, tzinfo=self.tz or timezone.utc)
        if f.end_date:
            end = datetime.combine(f.end_date, time.min, tzinfo=self.tz or timezone.utc) + timedelta(days=1)
        if start and end and end <= start:
            raise InvalidInputError("end_date must not be before start_date.")
        return await self.store.list_appointments(
            patient_id=patient_id, doctor_id=doctor_id, status=f.status,
            start=start, end=end, limit=f.limit, offset=f.offset,
        )

    # ---- Update / reschedule ----

    async def update(self, appointment_id: uuid.UUID, payload: AppointmentUpdate, actor: Principal) -> AppointmentRecord:
        appt = await self._load(appointment_id)
        if actor.role in (UserRole.PATIENT, UserRole.DOCTOR) and not self._owns(appt, actor):
            raise ForbiddenError("You are not authorized to update this appointment.")
        current = S(appt.status)
        if current in TERMINAL_STATUSES:
            raise InvalidInputError(f"Cannot modify appointment with status: {current.value}")

        patch: dict = {}
        target = payload.status
        if target is not None and target != current:
            if target in CLINIC_ONLY_TARGETS and actor.role not in CLINIC_ROLES:
                raise ForbiddenError("Only Doctor, Staff, or Admin can confirm, complete or mark no-show.")
            if target not in VALID_NEXT[current]:
                raise InvalidInputError(f"Cannot change status from {current.value} to {target.value}.")
            if target == S.CANCELLED:
                reason = (payload.cancellation_reason or "").strip()
                if not reason:
                    raise InvalidInputError("Cancellation reason is required.")
                patch["cancellation_reason"] = reason
            if target == S.COMPLETED and payload.completion_notes:
                patch["completion_notes"] = payload.completion_notes
            patch["status"] = target

        if payload.appointment_time is not None or payload.duration_minutes is not None:
            if payload.appointment_time is not None:
                new_start = self._future_start(payload.appointment_time)
            else:
                # duration-only change still has to start in the future
                new_start = self._future_start(appt.appointment_time)
            if payload.duration_minutes is not None:
                new_duration = validate_duration(payload.duration_minutes, self.min_duration)
            else:
                new_duration = appt.duration_minutes
            try:
                await self.resolver.ensure_available(appt.doctor_id, new_start, new_duration, exclude_appointment_id=appt.id, lock=True)
            except Exception:
                await self.store.rollback()
                raise
            patch["appointment_time"] = new_start
            patch["duration_minutes"] = new_duration

        if "reason_for_visit" in payload.model_fields_set:
            patch["reason_for_visit"] = payload.reason_for_visit

        if not patch:
            return appt

        try:
            appt = await self.store.update(appt, **patch, updated_by=actor.user_id)
            await self._commit(appt, "APPOINTMENT_UPDATED", changed=sorted(patch))
        except Exception:
            await self.store.rollback()
            raise
        logger.info(f"Appointment {appointment_id} updated ({', '.join(sorted(patch))}) by {actor.user_id}")
        return appt

    async def reschedule(self, appointment_id: uuid.UUID, appointment_time: datetime, actor: Principal, duration_minutes: int | None = None) -> AppointmentRecord:
        return await self.update(
            appointment_id,
            AppointmentUpdate(appointment_time=appointment_time, duration_minutes=duration_minutes),
            actor,
        )

    # ---- Cancel / delete ----

    async def cancel(self, appointment_id: uuid.UUID, reason: str, actor: Principal) -> AppointmentRecord:
        appt = await self._load(appointment_id)
        current = S(appt.status)
        if current in TERMINAL_STATUSES:
            raise InvalidInputError(f"Cannot cancel appointment with status: {current.value}")
        if not self._owns(appt, actor):
            raise ForbiddenError("You are not authorized to cancel this appointment.")
        if actor.role == UserRole.PATIENT and current not in BLOCKING_STATUSES:
            raise InvalidInputError(f"Patients can only cancel Requested or Confirmed appointments, not {current.value}.")
        reason = (reason or "").strip()
        if not reason:
            raise InvalidInputError("Cancellation reason is required.")

        try:
            appt = await self.store.update(appt, status=S.CANCELLED, cancellation_reason=reason, updated_by=actor.user_id)
            await self._commit(appt, "APPOINTMENT_CANCELLED", reason=reason)
        except Exception:
            await self.store.rollback()
            raise
        logger.warning(f"Appointment {appointment_id} cancelled by {actor.user_id} ({actor.role.value})")
        return appt

    async def delete(self, appointment_id: uuid.UUID, actor: Principal) -> None:
        if actor.role != UserRole.ADMIN:
            raise ForbiddenError("Only administrators can delete appointments.")
        appt = await self._load(appointment_id)
        try:
            appt = await self.store.update(appt, deleted_at=self._now(), deleted_by=actor.user_id, updated_by=actor.user_id)
            await self._commit(appt, "APPOINTMENT_DELETED")
        except Exception:
            await self.store.rollback()
            raise
        logger.warning(f"Appointment {appointment_id} soft deleted by {actor.user_id}")

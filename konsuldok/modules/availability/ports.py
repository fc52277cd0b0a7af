import uuid
from datetime import datetime
from typing import Any, Iterable, Protocol, Sequence, runtime_checkable
from konsuldok.core.constants import AppointmentStatus

class AppointmentRecord(Protocol):
    id: uuid.UUID
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    appointment_time: datetime
    duration_minutes: int
    status: AppointmentStatus

@runtime_checkable
class SchedulingStore(Protocol):
    """Persistence seen by the availability engine and the appointment lifecycle.

    ``find_conflicting`` and ``list_blocking`` use half-open overlap:
    an appointment ``[s, e)`` matches the window ``[start, end)`` iff
    ``s < end and e > start``. Soft-deleted appointments never match.
    """

    async def get_schedule(self, doctor_id: uuid.UUID, *, for_update: bool = False) -> list[dict] | None: ...
    async def patient_exists(self, patient_id: uuid.UUID) -> bool: ...
    async def find_conflicting(self, doctor_id: uuid.UUID, statuses: Iterable[AppointmentStatus], start: datetime, end: datetime, exclude_id: uuid.UUID | None = None) -> AppointmentRecord | None: ...
    async def list_blocking(self, doctor_id: uuid.UUID, statuses: Iterable[AppointmentStatus], start: datetime, end: datetime) -> Sequence[AppointmentRecord]: ...
    async def get_appointment(self, appointment_id: uuid.UUID) -> AppointmentRecord | None: ...
    async def list_appointments(self, *, patient_id: uuid.UUID | None = None, doctor_id: uuid.UUID | None = None, status: AppointmentStatus | None = None, start: datetime | None = None, end: datetime | None = None, limit: int = 50, offset: int = 0) -> Sequence[AppointmentRecord]: ...
    async def insert(self, **data: Any) -> AppointmentRecord: ...
    async def update(self, appointment: AppointmentRecord, **patch: Any) -> AppointmentRecord: ...
    async def emit(self, event_type: str, appointment: AppointmentRecord, payload: dict) -> None: ...
    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...

"""In-memory scheduling store and time helpers shared by the tests."""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone

from konsuldok.core.constants import AppointmentStatus

# Fixed offset keeps tests independent of the tz database
TZ = timezone(timedelta(hours=7))
NOW = datetime(2030, 1, 1, 8, 0, tzinfo=TZ)  # a Tuesday
MONDAY = date(2030, 1, 7)

MORNING_BLOCK = {"dayOfWeek": 1, "startTime": "09:00", "endTime": "12:00"}


def at(hhmm: str, day: date = MONDAY) -> datetime:
    h, m = (int(p) for p in hhmm.split(":"))
    return datetime(day.year, day.month, day.day, h, m, tzinfo=TZ)


@dataclass
class FakeAppointment:
    patient_id: uuid.UUID
    doctor_id: uuid.UUID
    appointment_time: datetime
    duration_minutes: int = 30
    status: AppointmentStatus = AppointmentStatus.REQUESTED
    reason_for_visit: str | None = None
    scheduled_by_staff: uuid.UUID | None = None
    cancellation_reason: str | None = None
    completion_notes: str | None = None
    created_by: uuid.UUID | None = None
    updated_by: uuid.UUID | None = None
    deleted_at: datetime | None = None
    deleted_by: uuid.UUID | None = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    @property
    def appointment_end(self) -> datetime:
        return self.appointment_time + timedelta(minutes=self.duration_minutes)


class InMemorySchedulingStore:
    def __init__(self):
        self.schedules: dict[uuid.UUID, list[dict]] = {}
        self.patients: set[uuid.UUID] = set()
        self.appointments: dict[uuid.UUID, FakeAppointment] = {}
        self.events: list[tuple[str, dict]] = []
        self.locked: list[uuid.UUID] = []
        self.commits = 0
        self.rollbacks = 0
        self.conflict_queries = 0

    # ---- fixtures ----

    def add_doctor(self, schedule: list[dict], doctor_id: uuid.UUID | None = None) -> uuid.UUID:
        doctor_id = doctor_id or uuid.uuid4()
        self.schedules[doctor_id] = list(schedule)
        return doctor_id

    def add_patient(self) -> uuid.UUID:
        patient_id = uuid.uuid4()
        self.patients.add(patient_id)
        return patient_id

    def add_appointment(self, doctor_id: uuid.UUID, start: datetime, duration: int = 30,
                        status: AppointmentStatus = AppointmentStatus.CONFIRMED, patient_id: uuid.UUID | None = None) -> FakeAppointment:
        appt = FakeAppointment(
            patient_id=patient_id or uuid.uuid4(), doctor_id=doctor_id,
            appointment_time=start, duration_minutes=duration, status=status,
        )
        self.appointments[appt.id] = appt
        return appt

    def _live(self):
        return [a for a in self.appointments.values() if a.deleted_at is None]

    def _overlapping(self, doctor_id, statuses, start, end):
        statuses = set(statuses)
        return [
            a for a in self._live()
            if a.doctor_id == doctor_id and a.status in statuses
            and a.appointment_time < end and a.appointment_end > start
        ]

    # ---- SchedulingStore ----

    async def get_schedule(self, doctor_id, *, for_update=False):
        if for_update:
            self.locked.append(doctor_id)
        schedule = self.schedules.get(doctor_id)
        return None if schedule is None else list(schedule)

    async def patient_exists(self, patient_id):
        return patient_id in self.patients

    async def find_conflicting(self, doctor_id, statuses, start, end, exclude_id=None):
        self.conflict_queries += 1
        for a in self._overlapping(doctor_id, statuses, start, end):
            if a.id != exclude_id:
                return a
        return None

    async def list_blocking(self, doctor_id, statuses, start, end):
        return sorted(self._overlapping(doctor_id, statuses, start, end), key=lambda a: a.appointment_time)

    async def get_appointment(self, appointment_id):
        appt = self.appointments.get(appointment_id)
        if appt is None or appt.deleted_at is not None:
            return None
        return appt

    async def list_appointments(self, *, patient_id=None, doctor_id=None, status=None, start=None, end=None, limit=50, offset=0):
        rows = [
            a for a in self._live()
            if (patient_id is None or a.patient_id == patient_id)
            and (doctor_id is None or a.doctor_id == doctor_id)
            and (status is None or a.status == status)
            and (start is None or a.appointment_time >= start)
            and (end is None or a.appointment_time < end)
        ]
        rows.sort(key=lambda a: a.appointment_time)
        return rows[offset:offset + limit]

    async def insert(self, **data):
        appt = FakeAppointment(**data)
        self.appointments[appt.id] = appt
        return appt

    async def update(self, appointment, **patch):
        for k, v in patch.items():
            setattr(appointment, k, v)
        return appointment

    async def emit(self, event_type, appointment, payload):
        self.events.append((event_type, payload))

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1

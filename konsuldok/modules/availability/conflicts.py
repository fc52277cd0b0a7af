import re
import uuid
import logging
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum

from konsuldok.core.constants import BLOCKING_STATUSES
from konsuldok.core.errors import InvalidInputError, NotFoundError, SlotUnavailableError
from konsuldok.modules.availability.evaluator import (
    blocks_for_day, day_of_week, format_hhmm, is_within_schedule, to_clinic_time,
)
from konsuldok.modules.availability.ports import SchedulingStore

logger = logging.getLogger(__name__)

SLOT_INCREMENT_MINUTES = 15
DEFAULT_DURATION_MINUTES = 30
MIN_DURATION_MINUTES = 5

_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Availability(str, Enum):
    AVAILABLE = "AVAILABLE"
    OUTSIDE_SCHEDULE = SlotUnavailableError.OUTSIDE_SCHEDULE
    SLOT_TAKEN = SlotUnavailableError.SLOT_TAKEN


def intervals_overlap(s1: datetime, e1: datetime, s2: datetime, e2: datetime) -> bool:
    # half-open: touching endpoints do not overlap
    return s1 < e2 and e1 > s2


def parse_day(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE.match(value):
        raise InvalidInputError("Invalid date format provided. Use YYYY-MM-DD.")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidInputError("Invalid date format provided. Use YYYY-MM-DD.")


def validate_duration(duration_minutes: int, minimum: int = MIN_DURATION_MINUTES) -> int:
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes < minimum:
        raise InvalidInputError(f"Duration must be an integer of at least {minimum} minutes.")
    return duration_minutes


class ConflictResolver:
    """Decides whether a doctor can take ``[start, start + duration)``.

    The schedule check runs first because it is in-memory; the overlap query
    against booked appointments only runs for windows inside working hours.
    """

    def __init__(self, store: SchedulingStore, tz: tzinfo | None = None, slot_increment_minutes: int = SLOT_INCREMENT_MINUTES):
        self.store = store
        self.tz = tz
        self.slot_increment = slot_increment_minutes

    async def has_conflict(self, doctor_id: uuid.UUID, start: datetime, duration_minutes: int, exclude_appointment_id: uuid.UUID | None = None) -> bool:
        end = start + timedelta(minutes=duration_minutes)
        hit = await self.store.find_conflicting(doctor_id, BLOCKING_STATUSES, start, end, exclude_id=exclude_appointment_id)
        if hit is not None:
            logger.debug(f"Conflict found with appointment {hit.id} for doctor {doctor_id}")
            return True
        return False

    async def check_doctor_availability(
        self,
        doctor_id: uuid.UUID,
        start: datetime,
        duration_minutes: int,
        exclude_appointment_id: uuid.UUID | None = None,
        *,
        lock: bool = False,
    ) -> Availability:
        logger.debug(f"Checking availability for doctor {doctor_id} at {start} for {duration_minutes} mins")
        schedule = await self.store.get_schedule(doctor_id, for_update=lock)
        if schedule is None:
            raise NotFoundError("Doctor profile not found.")

        if not is_within_schedule(schedule, start, duration_minutes, self.tz):
            logger.debug(f"Requested window {start} (+{duration_minutes}m) is outside doctor {doctor_id} working hours")
            return Availability.OUTSIDE_SCHEDULE

        if await self.has_conflict(doctor_id, start, duration_minutes, exclude_appointment_id):
            return Availability.SLOT_TAKEN

        logger.debug(f"Doctor {doctor_id} is available at {start}")
        return Availability.AVAILABLE

    async def ensure_available(self, doctor_id: uuid.UUID, start: datetime, duration_minutes: int, exclude_appointment_id: uuid.UUID | None = None, *, lock: bool = False) -> None:
        verdict = await self.check_doctor_availability(doctor_id, start, duration_minutes, exclude_appointment_id, lock=lock)
        if verdict is not Availability.AVAILABLE:
            raise SlotUnavailableError(verdict.value)

    async def list_available_slots(self, doctor_id: uuid.UUID, day: str | date, duration_minutes: int = DEFAULT_DURATION_MINUTES) -> list[str]:
        """Free start times (``HH:MM``) for one calendar day.

        Candidates step through every working block at the slot increment and
        stop once ``candidate + duration`` would pass the block end. The busy
        intervals of the day are read once and every candidate is tested with
        the same overlap rule ``has_conflict`` uses.
        """
        requested = parse_day(day)
        validate_duration(duration_minutes)
        schedule = await self.store.get_schedule(doctor_id)
        if schedule is None:
            raise NotFoundError("Doctor profile not found.")

        dow = day_of_week(requested)
        blocks = blocks_for_day(schedule, dow)
        if not blocks:
            logger.debug(f"Doctor {doctor_id} has no schedule for dayOfWeek {dow} on {requested}")
            return []

        midnight = datetime.combine(requested, time.min, tzinfo=self.tz)
        busy = [
            (to_clinic_time(a.appointment_time, self.tz), to_clinic_time(a.appointment_time, self.tz) + timedelta(minutes=a.duration_minutes))
            for a in await self.store.list_blocking(doctor_id, BLOCKING_STATUSES, midnight, midnight + timedelta(days=1))
        ]
        if self.tz is None:
            busy = [(s.replace(tzinfo=None), e.replace(tzinfo=None)) for s, e in busy]

        free: set[str] = set()
        for block in blocks:
            candidate = block.start_minute
            while candidate + duration_minutes <= block.end_minute:
                slot_start = midnight + timedelta(minutes=candidate)
                slot_end = slot_start + timedelta(minutes=duration_minutes)
                if not any(intervals_overlap(slot_start, slot_end, bs, be) for bs, be in busy):
                    free.add(format_hhmm(candidate))
                candidate += self.slot_increment
        return sorted(free)

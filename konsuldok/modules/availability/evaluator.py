"""Weekly working-hours checks.

A doctor's schedule is a set of recurring blocks ``{dayOfWeek, startTime,
endTime}`` where ``dayOfWeek`` is 0 (Sunday) .. 6 (Saturday) and the times are
zero-padded ``HH:MM`` strings. Everything here is pure: no I/O and no raising
on bad schedule data, a malformed block simply never matches.

Times of day are compared as minutes since midnight, which orders exactly like
the zero-padded strings do. Seconds are dropped, as with ``HH:MM``.
"""

import re
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
HHMM_PATTERN = r"^([01][0-9]|2[0-3]):([0-5][0-9])$"
_HHMM = re.compile(HHMM_PATTERN)


@dataclass(frozen=True, order=True)
class WorkingBlock:
    day_of_week: int
    start_minute: int
    end_minute: int

    @property
    def start_time(self) -> str:
        return format_hhmm(self.start_minute)

    @property
    def end_time(self) -> str:
        return format_hhmm(self.end_minute)

    def as_dict(self) -> dict:
        return {"dayOfWeek": self.day_of_week, "startTime": self.start_time, "endTime": self.end_time}


def parse_hhmm(value: Any) -> int | None:
    if not isinstance(value, str):
        return None
    m = _HHMM.match(value)
    if not m:
        return None
    return int(m.group(1)) * 60 + int(m.group(2))


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def day_of_week(d: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return d.isoweekday() % 7


def to_clinic_time(dt: datetime, tz: tzinfo | None) -> datetime:
    if tz is None:
        return dt
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def _field(raw: Any, *names: str) -> Any:
    if isinstance(raw, Mapping):
        for n in names:
            if n in raw:
                return raw[n]
        return None
    for n in names:
        if hasattr(raw, n):
            return getattr(raw, n)
    return None


def coerce_block(raw: Any) -> WorkingBlock | None:
    """Accepts the wire shape, its snake_case twin, or any object with those attributes."""
    if isinstance(raw, WorkingBlock):
        return raw
    dow = _field(raw, "dayOfWeek", "day_of_week")
    if isinstance(dow, bool) or not isinstance(dow, int) or not 0 <= dow <= 6:
        return None
    start = parse_hhmm(_field(raw, "startTime", "start_time"))
    end = parse_hhmm(_field(raw, "endTime", "end_time"))
    if start is None or end is None or end <= start:
        return None
    return WorkingBlock(dow, start, end)


def coerce_schedule(schedule: Iterable[Any] | None) -> list[WorkingBlock]:
    blocks = []
    for raw in schedule or ():
        block = coerce_block(raw)
        if block is None:
            logger.debug(f"Skipping malformed schedule block {raw!r}")
            continue
        blocks.append(block)
    return blocks


def blocks_for_day(schedule: Iterable[Any] | None, dow: int) -> list[WorkingBlock]:
    return sorted(b for b in coerce_schedule(schedule) if b.day_of_week == dow)


def is_within_schedule(schedule: Iterable[Any] | None, start: datetime, duration_minutes: int, tz: tzinfo | None = None) -> bool:
    """True iff ``[start, start + duration)`` lies inside one working block of that weekday.

    A window whose end lands on the next calendar day never fits: blocks end
    at 23:59 at the latest.
    """
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
        return False
    local_start = to_clinic_time(start, tz)
    local_end = local_start + timedelta(minutes=duration_minutes)
    start_min = local_start.hour * 60 + local_start.minute
    day_offset = (local_end.date() - local_start.date()).days
    end_min = day_offset * MINUTES_PER_DAY + local_end.hour * 60 + local_end.minute

    for block in blocks_for_day(schedule, day_of_week(local_start.date())):
        if block.start_minute <= start_min and end_min <= block.end_minute:
            return True
    return False


def find_overlapping_blocks(schedule: Iterable[Any] | None) -> list[tuple[WorkingBlock, WorkingBlock]]:
    """Pairs of same-day blocks that overlap. Touching blocks (09:00-12:00, 12:00-15:00) are fine."""
    clashes = []
    by_day: dict[int, list[WorkingBlock]] = {}
    for b in coerce_schedule(schedule):
        by_day.setdefault(b.day_of_week, []).append(b)
    for blocks in by_day.values():
        blocks.sort()
        for prev, nxt in zip(blocks, blocks[1:]):
            if prev.end_minute > nxt.start_minute:
                clashes.append((prev, nxt))
    return clashes


def schedule_to_wire(schedule: Iterable[Any] | None) -> list[dict]:
    """Storage shape of a schedule: camelCase blocks ordered by day, then start."""
    return [b.as_dict() for b in sorted(coerce_schedule(schedule))]

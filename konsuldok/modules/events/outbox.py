import uuid
import asyncio
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Index, String, Integer, Text, JSON, select
from sqlalchemy.ext.asyncio import AsyncSession

from konsuldok.core.base import Base, TrackedMixin, UTCDateTime
from konsuldok.core.config import settings
from konsuldok.core.db import SessionLocal
from konsuldok.platform.provider_registry import registry

log = logging.getLogger("events.outbox")

PENDING, PROCESSING, SENT, DEAD = "pending", "processing", "sent", "dead"

class EventOutbox(Base, TrackedMixin):
    """Domain events written in the same transaction as the change they describe."""
    __table_args__ = (Index("ix_event_outbox_due", "status", "next_attempt_at"),)

    event_type: Mapped[str] = mapped_column(String(64))
    subject_type: Mapped[str] = mapped_column(String(32))
    subject_id: Mapped[str] = mapped_column(String(64), index=True)
    payload: Mapped[dict] = mapped_column(JSON)
    occurred_at: Mapped[datetime] = mapped_column(UTCDateTime)

    status: Mapped[str] = mapped_column(String(16), default=PENDING)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    next_attempt_at: Mapped[datetime] = mapped_column(UTCDateTime)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

def retry_backoff_seconds(attempts: int) -> int:
    return min(60, 2 ** min(attempts, 6))  # 2,4,8,16,32,60s

def topic_for(subject_type: str) -> str:
    # appointment -> konsuldok.appointment
    return f"{settings.APP_NAME}.{subject_type}"

class OutboxService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def enqueue(self, event_type: str, subject_type: str, subject_id: str | uuid.UUID, payload: dict, occurred_at: datetime | None = None) -> EventOutbox:
        now = datetime.now(timezone.utc)
        obj = EventOutbox(
            event_type=event_type,
            subject_type=subject_type,
            subject_id=str(subject_id),
            payload=payload,
            occurred_at=occurred_at or now,
            status=PENDING,
            attempts=0,
            next_attempt_at=now,
        )
        self.session.add(obj)
        await self.session.flush()
        log.debug(f"Queued {event_type} for {subject_type} {subject_id}")
        return obj

    async def claim_due(self, limit: int) -> list[EventOutbox]:
        q = (
            select(EventOutbox)
            .where(
                EventOutbox.deleted_at.is_(None),
                EventOutbox.status == PENDING,
                EventOutbox.next_attempt_at <= datetime.now(timezone.utc),
            )
            .order_by(EventOutbox.occurred_at.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        rows = list((await self.session.execute(q)).scalars().all())
        for row in rows:
            row.status = PROCESSING
        await self.session.flush()
        return rows

    def mark_sent(self, ev: EventOutbox):
        ev.status = SENT
        ev.last_error = None

    def mark_failed(self, ev: EventOutbox, error: str):
        ev.attempts = (ev.attempts or 0) + 1
        ev.last_error = error[:2000]
        if ev.attempts >= settings.OUTBOX_MAX_ATTEMPTS:
            ev.status = DEAD
            log.error(f"Outbox event {ev.id} ({ev.event_type}) parked after {ev.attempts} attempts")
            return
        ev.status = PENDING
        ev.next_attempt_at = datetime.now(timezone.utc) + timedelta(seconds=retry_backoff_seconds(ev.attempts))

def event_envelope(ev: EventOutbox) -> dict:
    return {
        "event_type": ev.event_type,
        "subject": {"type": ev.subject_type, "id": ev.subject_id},
        "payload": ev.payload,
        "occurred_at": ev.occurred_at.isoformat() if ev.occurred_at else None,
        "event_id": str(ev.id),
    }

async def relay_once(session: AsyncSession, limit: int | None = None) -> int:
    """Publish one batch of due events and return how many were claimed."""
    bus = registry.event_bus()
    outbox = OutboxService(session)
    batch = await outbox.claim_due(limit or settings.OUTBOX_BATCH_SIZE)
    for ev in batch:
        try:
            await bus.publish(
                topic=topic_for(ev.subject_type),
                key=ev.subject_id,
                value=event_envelope(ev),
                headers={"event_type": ev.event_type},
            )
            outbox.mark_sent(ev)
        except Exception as ex:
            log.warning(f"Publish failed for outbox event {ev.id}: {ex}")
            outbox.mark_failed(ev, error=str(ex))
    await session.commit()
    return len(batch)

async def run_outbox_relay(poll_interval_seconds: float | None = None):
    interval = poll_interval_seconds or settings.OUTBOX_POLL_SECONDS
    log.info(f"Outbox relay started with bus={registry.event_bus().__class__.__name__}")
    while True:
        async with SessionLocal() as session:
            try:
                claimed = await relay_once(session)
            except Exception:
                log.exception("Outbox relay iteration failed")
                await session.rollback()
                claimed = 0
        # drain backlog without sleeping
        await asyncio.sleep(0 if claimed else interval)

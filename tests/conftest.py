import os
import uuid

# Settings are read at import time
os.environ["ENV"] = "test"
os.environ["DATABASE_DSN"] = "sqlite+aiosqlite:///:memory:"
os.environ["DB_MANAGE"] = "migrations"
os.environ["EVENT_BUS_PROVIDER"] = "noop"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from konsuldok.core.base import Base
from konsuldok.core.db import import_models
from konsuldok.core.constants import UserRole
from konsuldok.core.security import Principal
from konsuldok.modules.appointments.service import AppointmentService
from konsuldok.modules.availability.conflicts import ConflictResolver
from support import InMemorySchedulingStore, MORNING_BLOCK, NOW, TZ


@pytest.fixture
def store() -> InMemorySchedulingStore:
    return InMemorySchedulingStore()


@pytest.fixture
def doctor_id(store):
    return store.add_doctor([MORNING_BLOCK])


@pytest.fixture
def patient_id(store):
    return store.add_patient()


@pytest.fixture
def resolver(store):
    return ConflictResolver(store, TZ)


@pytest.fixture
def service(store):
    return AppointmentService(store, TZ, now=lambda: NOW)


@pytest.fixture
def staff():
    return Principal(user_id=uuid.uuid4(), role=UserRole.STAFF)


@pytest.fixture
def admin():
    return Principal(user_id=uuid.uuid4(), role=UserRole.ADMIN)


@pytest.fixture
def patient(patient_id):
    return Principal(user_id=uuid.uuid4(), role=UserRole.PATIENT, patient_profile_id=patient_id)


@pytest.fixture
def other_patient(store):
    return Principal(user_id=uuid.uuid4(), role=UserRole.PATIENT, patient_profile_id=store.add_patient())


@pytest.fixture
def doctor(doctor_id):
    return Principal(user_id=uuid.uuid4(), role=UserRole.DOCTOR, doctor_profile_id=doctor_id)


@pytest_asyncio.fixture
async def session():
    """Fresh in-memory sqlite schema per test."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with factory() as s:
        yield s
    await engine.dispose()

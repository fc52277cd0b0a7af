from typing import AsyncIterator
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from .config import settings
from .base import Base

engine = create_async_engine(settings.DATABASE_DSN, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_session() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session

def import_models() -> None:
    # every mapped class has to be imported before metadata.create_all
    from konsuldok.modules.users import models as _users  # noqa: F401
    from konsuldok.modules.patients import models as _patients  # noqa: F401
    from konsuldok.modules.doctors import models as _doctors  # noqa: F401
    from konsuldok.modules.staff import models as _staff  # noqa: F401
    from konsuldok.modules.appointments import models as _appointments  # noqa: F401
    from konsuldok.modules.medical_notes import models as _notes  # noqa: F401
    from konsuldok.modules.medical_documents import models as _documents  # noqa: F401
    from konsuldok.modules.events import outbox as _outbox  # noqa: F401

async def init_models():
    ## In dev-only "create_all" mode, build the schema; otherwise, migrations own it.
    if settings.DB_MANAGE == "create_all":
        import_models()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

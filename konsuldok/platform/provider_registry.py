import logging
from konsuldok.core.config import settings
from konsuldok.platform.ports.object_storage import ObjectStoragePort
from konsuldok.platform.ports.event_bus import EventBusPort

log = logging.getLogger("platform.registry")

def _build_object_storage() -> ObjectStoragePort:
    if settings.OBJECT_STORAGE_PROVIDER == "s3":
        from konsuldok.platform.adapters.storage_s3 import S3Storage
        return S3Storage()
    from konsuldok.platform.adapters.storage_local import LocalFilesystemStorage
    return LocalFilesystemStorage(settings.LOCAL_STORAGE_ROOT)

def _build_event_bus() -> EventBusPort:
    provider = (settings.EVENT_BUS_PROVIDER or "noop").lower()
    if provider == "redis":
        from konsuldok.platform.adapters.bus_redis import RedisEventBus
        return RedisEventBus()
    if provider != "noop":
        raise ValueError(f"Unknown EVENT_BUS_PROVIDER: {provider}")
    from konsuldok.platform.adapters.bus_noop import NoopEventBus
    return NoopEventBus()

class ProviderRegistry:
    """Lazily built adapters for document storage and the domain event bus."""
    _object_storage: ObjectStoragePort | None = None
    _event_bus: EventBusPort | None = None

    @classmethod
    def object_storage(cls) -> ObjectStoragePort:
        if cls._object_storage is None:
            cls._object_storage = _build_object_storage()
            log.info(f"Object storage: {cls._object_storage.__class__.__name__}")
        return cls._object_storage

    @classmethod
    def event_bus(cls) -> EventBusPort:
        if cls._event_bus is None:
            cls._event_bus = _build_event_bus()
            log.info(f"Event bus: {cls._event_bus.__class__.__name__}")
        return cls._event_bus

    @classmethod
    def override(cls, *, object_storage: ObjectStoragePort | None = None, event_bus: EventBusPort | None = None) -> None:
        """Swap providers (tests, scripts). ``None`` resets to lazy construction."""
        cls._object_storage = object_storage
        cls._event_bus = event_bus

registry = ProviderRegistry()

from typing import Protocol, runtime_checkable

@runtime_checkable
class ObjectStoragePort(Protocol):
    """Blob store for medical documents. Implementations raise ``OSError`` or botocore errors."""

    def put_bytes(self, key: str, data: bytes, content_type: str) -> None: ...
    def presign_download(self, key: str, expires_seconds: int = 900, filename: str | None = None) -> str: ...
    def delete(self, key: str) -> None: ...

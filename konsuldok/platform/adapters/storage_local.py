import logging
from pathlib import Path
from konsuldok.platform.ports.object_storage import ObjectStoragePort

log = logging.getLogger("storage.local")

class LocalFilesystemStorage(ObjectStoragePort):
    """Documents under a directory on disk. Development and single-node installs only."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key.lstrip("/")).resolve()
        if not path.is_relative_to(self.root):
            raise PermissionError(f"Storage key escapes the document root: {key}")
        return path

    def put_bytes(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        log.debug(f"Wrote {len(data)} bytes ({content_type}) to {path}")

    def presign_download(self, key: str, expires_seconds: int = 900, filename: str | None = None) -> str:
        # no expiry on disk; served by a reverse proxy in real setups
        return self._path(key).as_uri()

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

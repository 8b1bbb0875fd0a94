import logging
from pathlib import Path
from starlette.concurrency import run_in_threadpool
from app.storage.base import StorageInterface
from app.core.config import settings

logger = logging.getLogger(__name__)

# Public mount point for files served by StaticFiles in app.main.
# Only these top-level folders are published; prescriptions stay private.
PUBLIC_PREFIX = "/uploads"
PUBLIC_FOLDERS = ("medications",)


class LocalStorage(StorageInterface):
    def __init__(self, root: str | None = None):
        self.root = Path(root or settings.upload_dir).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        # Keys come from our own services, but never let one escape the root
        if self.root not in path.parents:
            raise ValueError(f"Invalid storage key: {key}")
        return path

    def generate_url(self, key: str, expires_in: int = 300) -> str:
        return f"{PUBLIC_PREFIX}/{key}"

    async def upload(self, key: str, file_bytes: bytes, content_type: str) -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        await run_in_threadpool(path.write_bytes, file_bytes)
        logger.info(f"Local storage saved: {key} ({len(file_bytes)} bytes)")
        return key

    async def read(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise FileNotFoundError(key)
        return await run_in_threadpool(path.read_bytes)

    async def exists(self, key: str) -> bool:
        return self._path(key).is_file()

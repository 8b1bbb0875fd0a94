from abc import ABC, abstractmethod


class StorageInterface(ABC):
    """Where uploaded prescriptions and medication images live."""

    @abstractmethod
    async def upload(self, key: str, file_bytes: bytes, content_type: str) -> str:
        """Persist the bytes under `key` and return the key."""

    @abstractmethod
    async def read(self, key: str) -> bytes:
        """Return the stored bytes. Raises FileNotFoundError if the key is unknown."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    def generate_url(self, key: str, expires_in: int = 300) -> str:
        pass

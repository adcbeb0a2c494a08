"""
Vault Storage — Persistence adapters for the encrypted blob and metadata.

An adapter is a durable text store addressed by namespace keys such as
``{app_name}_byok_storage``. Adapters never see plaintext: the vault hands
them an already-sealed token (or the unencrypted metadata record).

Every adapter failure surfaces as ``PersistenceError``.
"""
import os
import asyncio
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Union

from ..exceptions import PersistenceError


class VaultStorage(ABC):
    """Durable get/set/remove keyed by a namespace string."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored text, or None if absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store text under key, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete key. Removing a missing key is a no-op."""


class MemoryStorage(VaultStorage):
    """Process-local storage; useful for tests and ephemeral sessions."""

    def __init__(self, data: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(data or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class FileStorage(VaultStorage):
    """One file per namespace key inside a directory.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace``, so a crash never leaves a half-written blob.
    """

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in (".", ".."):
            raise PersistenceError(f"Invalid storage key: {key!r}")
        return self._directory / key

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as err:
            raise PersistenceError(f"Cannot read {path}: {err}") from err

    def _write(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fp:
                    fp.write(value)
                os.chmod(tmp, 0o600)
                os.replace(tmp, path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as err:
            raise PersistenceError(f"Cannot write {path}: {err}") from err

    def _delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as err:
            raise PersistenceError(f"Cannot remove {path}: {err}") from err

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)


class RedisStorage(VaultStorage):
    """Adapter over an async Redis client (``redis.asyncio`` compatible).

    Only ``get``, ``set`` and ``delete`` are used, so any client exposing
    those coroutines works.
    """

    def __init__(self, redis: Any, prefix: str = "byok:"):
        self._redis = redis
        self._prefix = prefix

    def _redis_key(self, key: str) -> str:
        """Build Redis key."""
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            value = await self._redis.get(self._redis_key(key))
        except Exception as err:
            raise PersistenceError(f"Redis get failed: {err}") from err
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        try:
            await self._redis.set(self._redis_key(key), value)
        except Exception as err:
            raise PersistenceError(f"Redis set failed: {err}") from err

    async def remove(self, key: str) -> None:
        try:
            await self._redis.delete(self._redis_key(key))
        except Exception as err:
            raise PersistenceError(f"Redis delete failed: {err}") from err

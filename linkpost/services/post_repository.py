"""Key-value persistence media for the post store: in-memory, JSON file, Redis."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import redis

from linkpost.config import Settings, get_settings
from linkpost.core.exceptions import StorageError

logger = logging.getLogger(__name__)


class PostRepository(Protocol):
    """A string key-value store holding one serialized collection per key."""

    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class InMemoryRepository:
    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileRepository:
    """One `<key>.json` file per key under `directory`; writes are atomic renames."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {path}: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(value)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {path}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot remove {self._path(key)}: {e}") from e


class RedisRepository:
    KEY_PREFIX = "linkpost:"

    def __init__(self, url: str, client: Optional[redis.Redis] = None):
        self._client = client or redis.from_url(url, decode_responses=True)

    def get_item(self, key: str) -> Optional[str]:
        try:
            return self._client.get(f"{self.KEY_PREFIX}{key}")
        except redis.RedisError as e:
            raise StorageError(f"Redis read failed: {e}") from e

    def set_item(self, key: str, value: str) -> None:
        try:
            self._client.set(f"{self.KEY_PREFIX}{key}", value)
        except redis.RedisError as e:
            raise StorageError(f"Redis write failed: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._client.delete(f"{self.KEY_PREFIX}{key}")
        except redis.RedisError as e:
            raise StorageError(f"Redis delete failed: {e}") from e


def build_repository(settings: Optional[Settings] = None) -> PostRepository:
    settings = settings or get_settings()
    if settings.post_storage == "memory":
        return InMemoryRepository()
    if settings.post_storage == "redis":
        logger.info("Post storage: redis (%s)", settings.redis_url.split("@")[-1])
        return RedisRepository(settings.redis_url)
    logger.info("Post storage: file (%s)", settings.post_storage_dir)
    return FileRepository(settings.post_storage_dir)

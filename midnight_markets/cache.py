"""
TTL cache for the news feed.

One logical bucket holds ``{"items": [...], "expiry": <epoch ms>}``. The
store owns the serialized form; callers only see ``read()`` / ``write()``.
Clock and storage backend are injected so tests can run on a fake clock and
an in-memory backend.
"""
import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import redis
from pydantic import ValidationError

from .models import NewsItem

logger = logging.getLogger(__name__)


def epoch_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass
class CachePolicy:
    """
    Cache behavior configuration.

    - key: Storage key of the bucket
    - ttl_seconds: How long a written entry is served without a network call
    """
    key: str = "midnight_market_news_cache_v2"
    ttl_seconds: int = 300

    @property
    def ttl_ms(self) -> int:
        return int(self.ttl_seconds * 1000)


def _json_loads(raw: Optional[str]) -> Dict[str, Any]:
    """Decode a stored entry; raises ValueError on anything but a JSON object."""
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise ValueError("cache entry is not an object")
    return data


def _json_dumps(obj: Dict[str, Any]) -> str:
    """Compact JSON encode for storage."""
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


# ---------------------------------------------------------------------------
# Storage backends
# ---------------------------------------------------------------------------

class MemoryBackend:
    """Process-local backend; also the test double."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class FileBackend:
    """All keys in one JSON file, replaced atomically on every write."""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except OSError as exc:
            logger.warning("cache.file_unreadable %s: %s", self.path, exc)
            return {}
        except ValueError as exc:
            logger.warning("cache.file_corrupt %s; removing (%s)", self.path, exc)
            os.unlink(self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("cache.file_corrupt %s; removing (not an object)", self.path)
            os.unlink(self.path)
            return {}
        return data

    def _save(self, data: Dict[str, str]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".cache-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        data = self._load()
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            logger.warning("cache.file_bad_value key=%s; removing", key)
            del data[key]
            self._save(data)
            return None
        return value

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


class RedisBackend:
    """Backend over a ``redis.Redis`` client (bytes or decoded responses)."""

    def __init__(self, rds):
        self.rds = rds

    @classmethod
    def from_url(cls, url: str) -> "RedisBackend":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[str]:
        raw = self.rds.get(key)
        if isinstance(raw, bytes):
            return raw.decode("utf-8", errors="replace")
        return raw

    def set(self, key: str, value: str) -> None:
        self.rds.set(key, value)

    def delete(self, key: str) -> None:
        self.rds.delete(key)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class CacheStore:
    def __init__(self, backend, policy: Optional[CachePolicy] = None, clock: Callable[[], int] = epoch_ms):
        self.backend = backend
        self.policy = policy or CachePolicy()
        self.clock = clock

    def read(self) -> Optional[List[NewsItem]]:
        """
        Return cached items, or None on a miss.

        - nothing stored: miss
        - stored entry undecodable or malformed: delete it, miss
        - stored entry expired: miss, left in place for the next write
        """
        key = self.policy.key
        raw = self.backend.get(key)
        if raw is None:
            return None
        try:
            entry = _json_loads(raw)
            expiry = int(entry["expiry"])
            items = [NewsItem.model_validate(item) for item in entry["items"]]
        except (ValueError, TypeError, KeyError, OverflowError, ValidationError) as exc:
            logger.warning("cache.corrupt_entry key=%s; deleting (%s)", key, exc)
            self.backend.delete(key)
            return None
        if self.clock() >= expiry:
            logger.debug("cache.expired key=%s", key)
            return None
        return items

    def write(self, items: List[NewsItem]) -> None:
        entry = {
            "items": [item.model_dump(mode="json") for item in items],
            "expiry": self.clock() + self.policy.ttl_ms,
        }
        self.backend.set(self.policy.key, _json_dumps(entry))

    def clear(self) -> None:
        self.backend.delete(self.policy.key)


def build_backend(kind: str, *, path: str = "news_cache.json", redis_url: str = ""):
    """Backend named by configuration: memory, file or redis."""
    if kind == "file":
        return FileBackend(path)
    if kind == "redis":
        return RedisBackend.from_url(redis_url)
    if kind != "memory":
        logger.warning("cache.unknown_backend %r; using memory", kind)
    return MemoryBackend()


__all__ = [
    "CachePolicy",
    "CacheStore",
    "MemoryBackend",
    "FileBackend",
    "RedisBackend",
    "build_backend",
    "epoch_ms",
]

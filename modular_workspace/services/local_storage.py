"""
Durable local storage backends.

A synchronous, string-keyed get/set/remove store that survives restarts.
The cache store keeps three kinds of keys in it: the serialized cache
blob, the pending-write array, and the work-mode preference.

Backends:
    - MemoryStorage: process-local dict (tests, ephemeral sessions)
    - JsonFileStorage: a single JSON file, rewritten atomically on change
    - RedisStorage: a Redis database, optionally scoped by a key prefix
"""

from __future__ import annotations

import json
import logging
import os
import ssl
import tempfile
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import urlparse

import redis

from modular_workspace.lib.exceptions import ConfigurationError, StorageError

logger = logging.getLogger(__name__)


class DurableStorage(Protocol):
    """Synchronous string-keyed store scoped to one workspace origin."""

    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...

    def keys(self) -> list[str]:
        ...


class MemoryStorage:
    """In-memory storage; contents are lost with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)


class JsonFileStorage:
    """Storage persisted as one JSON object in a file.

    Every mutation rewrites the file through a temporary file and
    ``os.replace`` so a crash never leaves a half-written store.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._data: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Storage file %s is unreadable, starting empty: %s", self._path, e)
            return {}
        if not isinstance(raw, dict):
            logger.error("Storage file %s does not hold an object, starting empty", self._path)
            return {}
        return {str(k): str(v) for k, v in raw.items()}

    def _flush(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise StorageError(f"Cannot write storage file {self._path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove_item(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    def keys(self) -> list[str]:
        return list(self._data)


class RedisStorage:
    """Storage backed by a synchronous Redis client.

    Keys are written under ``prefix`` so several workspaces can share a
    database; ``keys()`` returns them with the prefix stripped.
    """

    def __init__(self, client: Any, prefix: str = "") -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "") -> RedisStorage:
        """Connect to Redis (TLS for rediss:// URLs) and verify with a ping.

        Raises:
            StorageError: If the server cannot be reached
        """
        try:
            client = redis.from_url(  # type: ignore[no-untyped-call]
                url,
                decode_responses=True,
                **_tls_kwargs(url),
            )
            client.ping()
        except redis.RedisError as e:
            raise StorageError(f"Cannot connect to Redis storage: {e}") from e
        return cls(client, prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get_item(self, key: str) -> str | None:
        try:
            result = self._client.get(self._key(key))
        except redis.RedisError as e:
            raise StorageError(f"Redis get failed for {key}: {e}") from e
        return str(result) if result is not None else None

    def set_item(self, key: str, value: str) -> None:
        try:
            self._client.set(self._key(key), value)
        except redis.RedisError as e:
            raise StorageError(f"Redis set failed for {key}: {e}") from e

    def remove_item(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except redis.RedisError as e:
            raise StorageError(f"Redis delete failed for {key}: {e}") from e

    def keys(self) -> list[str]:
        try:
            found = list(self._client.scan_iter(match=f"{self._prefix}*"))
        except redis.RedisError as e:
            raise StorageError(f"Redis scan failed: {e}") from e
        return [str(k)[len(self._prefix):] for k in found]


def _tls_kwargs(redis_url: str) -> dict[str, Any]:
    """Build TLS keyword arguments when using rediss:// URLs."""
    if not redis_url.startswith("rediss://"):
        return {}

    cert_path = os.environ.get("REDIS_TLS_CERT_PATH")
    if cert_path:
        ssl_ctx = ssl.create_default_context(cafile=cert_path)
    else:
        ssl_ctx = ssl.create_default_context()
    ssl_ctx.check_hostname = True
    ssl_ctx.verify_mode = ssl.CERT_REQUIRED
    return {"ssl": ssl_ctx}


def open_storage(url: str, namespace: str = "") -> DurableStorage:
    """Open a storage backend from a URL.

    Args:
        url: ``memory://``, ``file:///abs/path.json`` or ``redis[s]://host/db``
        namespace: Key prefix used by the Redis backend

    Raises:
        ConfigurationError: If the URL scheme is not supported
    """
    parsed = urlparse(url)
    if parsed.scheme in ("", "memory"):
        return MemoryStorage()
    if parsed.scheme == "file":
        if not parsed.path:
            raise ConfigurationError(f"Storage URL {url!r} has no file path")
        return JsonFileStorage(parsed.path)
    if parsed.scheme in ("redis", "rediss"):
        prefix = f"{namespace}:" if namespace else ""
        return RedisStorage.from_url(url, prefix=prefix)
    raise ConfigurationError(f"Unsupported storage URL scheme: {parsed.scheme!r}")

"""Local key/value stores for profile and progress blobs.

Values are JSON-compatible dicts. Every store reads and writes whole blobs;
there is no partial update.
"""

from __future__ import annotations

import json
import logging
import os
import re
import secrets
import tempfile
import threading
from pathlib import Path
from typing import Optional

from flask import session

logger = logging.getLogger(__name__)

REMEMBER_ME_KEY = "remember_me"
PROFILE_KEY = "user_profile"
PROGRESS_KEY = "progress"
SESSION_ID_KEY = "_profile_store_id"


def user_key(prefix: str, user_id: str) -> str:
    return f"{prefix}:{user_id}"


def device_key(prefix: str, device_id: str, user_id: str) -> str:
    return f"{prefix}:{device_id}:{user_id}"


class LocalStore:
    """Interface shared by the local stores."""

    def get(self, key: str) -> Optional[dict]:
        raise NotImplementedError

    def set(self, key: str, value: dict) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(LocalStore):
    """Process-local store; values are copied through JSON on the way in and out."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[dict]:
        with self._lock:
            raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: dict) -> None:
        path = self._path(key)
        with self._lock:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.directory,
                prefix=f"{path.stem}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                handle.write(json.dumps(value))
            try:
                os.replace(handle.name, path)
            except OSError:
                Path(handle.name).unlink(missing_ok=True)
                raise

    def remove(self, key: str) -> None:
        with self._lock:
            self._path(key).unlink(missing_ok=True)


class SessionStore(LocalStore):
    """Store scoped to the current browser session.

    The Flask session cookie only carries a random store id; the blobs live in
    ``backing`` so their size never reaches the cookie.
    """

    def __init__(self, backing: LocalStore) -> None:
        self.backing = backing

    def _scoped(self, key: str, *, create: bool = False) -> Optional[str]:
        store_id = session.get(SESSION_ID_KEY)
        if store_id is None:
            if not create:
                return None
            store_id = secrets.token_urlsafe(16)
            session[SESSION_ID_KEY] = store_id
        return f"session:{store_id}:{key}"

    def get(self, key: str) -> Optional[dict]:
        scoped = self._scoped(key)
        return self.backing.get(scoped) if scoped else None

    def set(self, key: str, value: dict) -> None:
        self.backing.set(self._scoped(key, create=True), value)  # type: ignore[arg-type]

    def remove(self, key: str) -> None:
        scoped = self._scoped(key)
        if scoped:
            self.backing.remove(scoped)


def build_store(directory: Optional[str]) -> LocalStore:
    """Return a file-backed store when a directory is configured, else memory."""
    if directory:
        return JsonFileStore(directory)
    return MemoryStore()

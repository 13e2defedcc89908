"""AuthSession: bearer token and device identifier, plus their stores.

Two scalars survive process restarts:

  - ``authToken``: set after registration, cleared on sign-out
  - ``deviceId``:  generated once per install and never changed

Both live in a :class:`~shopai.interfaces.KeyValueStore`.  ``JSONFileStore``
is the default for the CLI; ``MemoryStore`` serves tests and embedders that
persist state elsewhere.

Access is single-writer: the session is mutated from one logical control
thread only, so no locking is done here.
"""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path

from shopai.constants import AUTH_TOKEN_KEY, DEVICE_ID_KEY
from shopai.interfaces import KeyValueStore

logger = logging.getLogger(__name__)


class MemoryStore(KeyValueStore):
    """Dict-backed store; state dies with the process."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JSONFileStore(KeyValueStore):
    """Store backed by a small JSON object on disk.

    Every write rewrites the whole file through a temporary sibling and
    ``os.replace`` so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        with self._path.open("r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ValueError(f"State file {self._path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"State file {self._path} does not hold a JSON object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
        os.replace(tmp, self._path)

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)


class AuthSession:
    """Holds the bearer token and the per-install device identifier.

    The token is loaded from the store at construction.  The device id is
    generated lazily on first access and persisted immediately; afterwards
    it never changes, even across sign-outs.

    Args:
        store: where the two scalars are persisted
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._token: str | None = store.get(AUTH_TOKEN_KEY)

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    def set_token(self, token: str) -> None:
        self._token = token
        self._store.set(AUTH_TOKEN_KEY, token)

    def clear_token(self) -> None:
        """Forget the token (sign-out).  The device id is kept."""
        self._token = None
        self._store.delete(AUTH_TOKEN_KEY)

    @property
    def device_id(self) -> str:
        """Stable install identifier, generated and persisted on first use."""
        stored = self._store.get(DEVICE_ID_KEY)
        if stored:
            return stored
        new_id = str(uuid.uuid4()).upper()
        self._store.set(DEVICE_ID_KEY, new_id)
        logger.info("Generated new device id")
        return new_id

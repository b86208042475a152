"""Stable client identifier persisted across sessions."""

from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from pathlib import Path

import yaml

_LOGGER = logging.getLogger(__name__)

CLIENT_ID_KEY = "clientId"


class Storage(ABC):
    """Key/value store that survives between client runs."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is unset."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store a value under key."""


class MemoryStorage(Storage):
    """In-memory storage for tests and throwaway clients."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class YamlFileStorage(Storage):
    """Storage backed by a YAML mapping on disk.

    The file is read on every ``get`` so values written by another process
    or a previous run are picked up.
    """

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        with self._path.open() as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self._path} does not contain a mapping")
        return {str(key): str(value) for key, value in data.items()}

    def get(self, key: str) -> str | None:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w") as f:
            yaml.safe_dump(data, f, default_flow_style=False)


def generate_client_id() -> str:
    """Return a random numeric identifier.

    Uniqueness is best effort; the server only uses it to tell clients apart.
    """
    return str(secrets.randbelow(10**16))


class ClientIdProvider:
    """Hands out the installation's client id, creating it on first use."""

    def __init__(self, storage: Storage | None = None) -> None:
        self._storage = storage if storage is not None else MemoryStorage()

    def get_client_id(self) -> str:
        client_id = self._storage.get(CLIENT_ID_KEY)
        if not client_id:
            client_id = generate_client_id()
            self._storage.set(CLIENT_ID_KEY, client_id)
            _LOGGER.debug("Generated new client id %s", client_id)
        return client_id

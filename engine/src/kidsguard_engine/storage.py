"""Persistent storage backends.

Two stores back the engine: a plain key-value store for counters, timestamps
and settings blobs, and an encrypted secret store for the PIN. Both are
file-based and run their blocking I/O off the event loop.
"""

import asyncio
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Protocol

from cryptography.fernet import Fernet, InvalidToken

from .errors import PersistenceFailure

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    async def get_string(self, key: str) -> str | None: ...

    async def set_string(self, key: str, value: str) -> None: ...

    async def remove_key(self, key: str) -> None: ...


class SecretStore(Protocol):
    async def set_secret(self, key: str, value: str) -> None: ...

    async def get_secret(self, key: str) -> str | None: ...


def _read_json_object(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise PersistenceFailure(f"Failed to read {path.name}") from e
    if not isinstance(data, dict):
        raise PersistenceFailure(f"{path.name} does not hold a JSON object")
    return data


def _write_json_atomic(path: Path, data: dict[str, Any]) -> None:
    """Write to a temp file, then rename, so a crash never leaves half a file."""
    tmp_path: str | None = None
    try:
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise PersistenceFailure(f"Failed to write {path.name}") from e


class FileKeyValueStore:
    """Flat key -> string preferences kept in a single JSON file."""

    def __init__(self, data_dir: Path):
        self._data_dir = data_dir
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def _preferences_path(self) -> Path:
        return self._data_dir / "preferences.json"

    async def get_string(self, key: str) -> str | None:
        data = await asyncio.to_thread(self._load)
        value = data.get(key)
        return None if value is None else str(value)

    async def set_string(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._update, key, value)
        logger.debug("Stored preference %s", key)

    async def remove_key(self, key: str) -> None:
        await asyncio.to_thread(self._update, key, None)
        logger.debug("Removed preference %s", key)

    def _load(self) -> dict[str, Any]:
        with self._lock:
            return _read_json_object(self._preferences_path)

    def _update(self, key: str, value: str | None) -> None:
        with self._lock:
            data = _read_json_object(self._preferences_path)
            if value is None:
                if key not in data:
                    return
                del data[key]
            else:
                data[key] = value
            _write_json_atomic(self._preferences_path, data)


class EncryptedSecretStore:
    """Secrets encrypted at rest with Fernet.

    The key lives next to the secrets in ``secret.key``, created owner-only.
    Values are compared by callers after decryption, so plaintext never
    touches the preferences file.
    """

    def __init__(self, data_dir: Path):
        self._data_dir = data_dir
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._fernet: Fernet | None = None

    @property
    def _key_path(self) -> Path:
        return self._data_dir / "secret.key"

    @property
    def _secrets_path(self) -> Path:
        return self._data_dir / "secrets.json"

    async def set_secret(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._set, key, value)
        logger.debug("Stored secret %s", key)

    async def get_secret(self, key: str) -> str | None:
        return await asyncio.to_thread(self._get, key)

    def _set(self, key: str, value: str) -> None:
        with self._lock:
            token = self._get_fernet().encrypt(value.encode()).decode()
            secrets = _read_json_object(self._secrets_path)
            secrets[key] = token
            _write_json_atomic(self._secrets_path, secrets)

    def _get(self, key: str) -> str | None:
        with self._lock:
            token = _read_json_object(self._secrets_path).get(key)
            if token is None:
                return None
            try:
                return self._get_fernet().decrypt(str(token).encode()).decode()
            except InvalidToken as e:
                raise PersistenceFailure(f"Secret {key} could not be decrypted") from e

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            try:
                self._fernet = Fernet(self._load_or_create_key())
            except ValueError as e:
                raise PersistenceFailure("Secret store key is malformed") from e
        return self._fernet

    def _load_or_create_key(self) -> bytes:
        try:
            if self._key_path.exists():
                return self._key_path.read_bytes().strip()

            key = Fernet.generate_key()
            fd = os.open(self._key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
            with os.fdopen(fd, "wb") as f:
                f.write(key)
            logger.info("Generated new secret store key")
            return key
        except OSError as e:
            raise PersistenceFailure("Failed to load secret store key") from e

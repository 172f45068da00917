"""
Local Key-Value Storage

The device-local backend: one file per key inside a directory.
Values are written to a temporary file first and moved into place,
so a crash mid-write never leaves a half-written snapshot behind.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote

import structlog

from money_tracker.services.storage.interface import (
    BackendReadError,
    BackendWriteError,
    KeyValueStorageInterface,
)


logger = structlog.get_logger(__name__)


class LocalFileKeyValueStorage(KeyValueStorageInterface):
    """File-backed key-value store rooted at a directory."""

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        """Map a key to a file name that is safe on every platform."""
        if not key:
            raise ValueError("Storage key must not be empty")
        return self._directory / f"{quote(key, safe='')}.dat"

    async def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise BackendReadError(f"Failed to read {path}: {e}") from e

    async def set(self, key: str, value: bytes) -> None:
        path = self._path_for(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise BackendWriteError(f"Failed to write {path}: {e}") from e
        logger.debug("local_value_written", key=key, size=len(value))

    async def remove(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise BackendWriteError(f"Failed to remove {path}: {e}") from e

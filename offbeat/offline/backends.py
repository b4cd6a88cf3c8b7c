"""Key-value storage backends for the offline trip cache."""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_SAFE_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class KeyValueBackend(Protocol):
    """Durable string storage keyed by name.

    Values are whole serialized documents; every write replaces the previous
    value for the key.
    """

    def read(self, key: str) -> str | None:
        """Return the stored value, or None if the key was never written."""
        ...

    def write(self, key: str, value: str) -> None:
        """Replace the stored value for key."""
        ...

    def delete(self, key: str) -> None:
        """Remove key if present."""
        ...


class InMemoryBackend:
    """In-memory implementation of KeyValueBackend."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class FileBackend:
    """One JSON file per key inside a directory.

    Writes go to a temporary file in the same directory followed by
    `os.replace`, so a crash never leaves a half-written document behind.
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY_RE.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write(self, key: str, value: str) -> None:
        path = self._path(key)
        self._directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, path)
        except OSError:
            logger.error(f"Failed to write offline storage key {key} to {path}")
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

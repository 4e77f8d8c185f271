"""
Key-value settings stores used to persist small blobs such as the favorites list.

Values are bytes; the file-backed store keeps them as UTF-8 strings inside a
single JSON object so the file stays human readable.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from .constants import ErrorKind

logger = logging.getLogger("settings_store")


class PersistenceError(Exception):
    """Raised when the settings store cannot be read or written."""

    kind = ErrorKind.PERSISTENCE_FAILURE


class MemorySettingsStore:
    """Dict-backed store. Nothing survives the process."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def get_data(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set_data(self, key: str, data: bytes) -> None:
        self._data[key] = bytes(data)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileSettingsStore:
    """
    Store backed by one JSON file of key -> string.

    Every write rewrites the whole file through a temp file and `os.replace`,
    so a crash mid-write leaves the previous file intact.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def get_data(self, key: str) -> Optional[bytes]:
        value = self._read_all().get(key)
        if value is None:
            return None
        return value.encode("utf-8")

    def set_data(self, key: str, data: bytes) -> None:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PersistenceError(f"Value for {key!r} is not UTF-8: {e}") from e

        content = self._read_all()
        content[key] = text
        self._write_all(content)

    def remove(self, key: str) -> None:
        content = self._read_all()
        if content.pop(key, None) is not None:
            self._write_all(content)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read settings file {self.path}: {str(e)}")
            raise PersistenceError(f"Failed to read settings file {self.path}: {e}") from e

        if not isinstance(content, dict):
            raise PersistenceError(f"Settings file {self.path} does not hold a JSON object")

        bad_keys = [key for key, value in content.items() if not isinstance(value, str)]
        if bad_keys:
            raise PersistenceError(f"Settings file {self.path} holds non-string values for {bad_keys}")
        return content

    def _write_all(self, content: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(content, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to write settings file {self.path}: {str(e)}")
            raise PersistenceError(f"Failed to write settings file {self.path}: {e}") from e

        logger.debug(f"Saved settings file: {self.path}")

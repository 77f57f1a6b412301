"""
Key-value persistence for serialized blobs
Stores one JSON document per key, either on disk or in memory
"""

import logging
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from ..exceptions import LedgerWriteError


class KeyValueStore:
    """get/set of serialized string blobs, no query capability"""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str):
        raise NotImplementedError

    def delete(self, key: str):
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Process-local store, mainly for tests and one-off CLI runs"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self.lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self.lock:
            return self.data.get(key)

    def set(self, key: str, value: str):
        with self.lock:
            self.data[key] = value

    def delete(self, key: str):
        with self.lock:
            self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """
    One file per key under a data directory

    Writes go to a temporary file that replaces the target, so readers never
    see a half-written blob.
    """

    def __init__(self, directory: str = "data"):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.lock = threading.Lock()
        self.logger = logging.getLogger(__name__)
        self.logger.info(f"JSON file store initialized: {self.directory}")

    def _path(self, key: str) -> Path:
        safe_key = re.sub(r"[^A-Za-z0-9_.-]+", "_", key)
        return self.directory / f"{safe_key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return f.read()
        except OSError as e:
            self.logger.error(f"Failed to read {path}: {e}")
            return None

    def set(self, key: str, value: str):
        path = self._path(key)
        with self.lock:
            tmp_name = None
            try:
                fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{path.stem}_", suffix=".tmp")
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    f.write(value)
                os.replace(tmp_name, path)
            except OSError as e:
                if tmp_name and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise LedgerWriteError(f"Failed to write {path}: {e}") from e

    def delete(self, key: str):
        path = self._path(key)
        with self.lock:
            try:
                path.unlink()
            except FileNotFoundError:
                pass
            except OSError as e:
                raise LedgerWriteError(f"Failed to delete {path}: {e}") from e

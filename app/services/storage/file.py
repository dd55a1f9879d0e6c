"""
File Storage Implementation

Keeps every document as a pretty-printed JSON file under DATA_DIRECTORY.
Used in development mode (ENV_MODE=development).

Concurrency:
    - Each document has a sibling ".lock" file guarded with filelock,
      so updates are serialized across threads, worker processes and
      Celery workers sharing the same directory
    - Writes go to a temporary file that replaces the document in one
      os.replace() call, so readers never see a half-written file
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any

from filelock import FileLock, Timeout

from app.core.exceptions import StorageUnavailableError
from app.services.storage.base import BaseStorage, Mutator

logger = logging.getLogger(__name__)


class FileStorage(BaseStorage):
    """
    JSON file document store.

    Attributes:
        data_dir: Folder holding <document>.json files
        lock_timeout: Seconds to wait for a document lock

    Example:
        >>> storage = FileStorage("data")
        >>> storage.get_coupons()
        []
    """

    def __init__(self, data_directory: str | Path, lock_timeout: float = 30):
        self.data_dir = Path(data_directory)
        self.lock_timeout = lock_timeout
        self._ensure_data_dir()

        logger.info(
            f"FileStorage initialized "
            f"(data_dir={self.data_dir}, lock_timeout={lock_timeout}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "file"

    def _ensure_data_dir(self) -> None:
        """Create data directory if needed."""
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_dir}")

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def _lock(self, key: str) -> FileLock:
        return FileLock(str(self.data_dir / f"{key}.json.lock"), timeout=self.lock_timeout)

    def _load(self, key: str, default: Any) -> Any:
        path = self._path(key)
        if not path.exists():
            return copy.deepcopy(default)
        return json.loads(path.read_text(encoding="utf-8"))

    def _dump(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(json.dumps(value, indent=2, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp_path, path)

    def read_document(self, key: str, default: Any) -> Any:
        return self._load(key, default)

    def write_document(self, key: str, value: Any) -> None:
        try:
            with self._lock(key):
                self._dump(key, value)
        except Timeout:
            logger.error(f"Lock timeout writing '{key}'")
            raise StorageUnavailableError(
                f"Timed out after {self.lock_timeout}s waiting for '{key}'"
            )

    def update_document(self, key: str, mutator: Mutator, default: Any) -> Any:
        try:
            with self._lock(key):
                logger.debug(f"Lock acquired for '{key}'")
                current = self._load(key, default)
                updated, result = mutator(current)
                self._dump(key, updated)
            logger.debug(f"Lock released for '{key}'")
            return result
        except Timeout:
            logger.error(f"Lock timeout updating '{key}'")
            raise StorageUnavailableError(
                f"Timed out after {self.lock_timeout}s waiting for '{key}'"
            )

    def health_check(self) -> bool:
        """The data directory must exist and be writable."""
        return self.data_dir.is_dir() and os.access(self.data_dir, os.W_OK)

    def clear_all(self) -> None:
        """Delete every document (testing/reset purposes)."""
        for key in (self.COUPONS, self.ORDERS, self.DRAFTS, self.MENU_STOCK):
            for path in (self._path(key), self.data_dir / f"{key}.json.lock"):
                if path.exists():
                    path.unlink()
        logger.info("All documents cleared")

"""
Quality Store Module
====================
JSON persistence for the quality snapshot.

Storage rules:
- A missing file, unreadable JSON or a structurally invalid document all load
  as "absent" (None). A cache miss is always safe, so nothing here raises on
  read.
- Writes go to a temporary file in the same directory which then replaces the
  target, so a failed write leaves the previous document intact.
- Every document path has one lock shared by all stores in the process;
  read-modify-write cycles hold it for their whole duration.
"""

import os
import json
import tempfile
import logging
import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..models import (
    QualityMetric,
    QualityOverview,
    CachedQualitySnapshot,
    utc_now,
)
from ..config import CacheConfig, get_config

logger = logging.getLogger(__name__)


_path_locks: Dict[str, threading.RLock] = {}
_path_locks_guard = threading.Lock()


def lock_for(path: Union[str, Path]) -> threading.RLock:
    """Get the process-wide lock for a document path."""
    key = str(Path(path).resolve())
    with _path_locks_guard:
        if key not in _path_locks:
            _path_locks[key] = threading.RLock()
        return _path_locks[key]


class JsonDocumentStore:
    """
    A single JSON document on disk.

    Usage:
        store = JsonDocumentStore("state.json")
        with store.lock:
            data = store.read_json() or {}
            data["count"] = data.get("count", 0) + 1
            store.write_json(data)
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.lock = lock_for(self.path)

    def exists(self) -> bool:
        return self.path.exists()

    def modified_at(self) -> Optional[float]:
        """File modification time (epoch seconds), or None if absent."""
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None

    def read_json(self) -> Optional[Dict[str, Any]]:
        """
        Read the document.

        Returns:
            The parsed object, or None if the file is missing, unreadable, or
            does not contain a JSON object
        """
        with self.lock:
            if not self.path.exists():
                logger.debug(f"No document at {self.path}")
                return None
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.warning(f"Ignoring unreadable document {self.path}: {e}")
                return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring document {self.path}: expected a JSON object")
            return None
        return data

    def write_json(self, data: Dict[str, Any]) -> None:
        """
        Atomically replace the document.

        Raises:
            OSError: If the document could not be written
        """
        with self.lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise

    def delete(self) -> bool:
        """
        Delete the document.

        Returns:
            True if a document was removed, False if there was none
        """
        with self.lock:
            try:
                self.path.unlink()
                return True
            except FileNotFoundError:
                return False


class QualityStore(JsonDocumentStore):
    """
    Reads and writes the cached quality snapshot.

    Usage:
        store = QualityStore(config.paths.cache, config.cache)
        snapshot = store.save(overview, metrics, learning_iteration=7)
        snapshot = store.load()  # None on miss
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        config: Optional[CacheConfig] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        super().__init__(path or get_config().paths.cache)
        self.config = config or get_config().cache
        self.clock = clock or utc_now

    def load(self) -> Optional[CachedQualitySnapshot]:
        """
        Load the stored snapshot.

        Returns:
            The snapshot, or None if it is missing or malformed
        """
        data = self.read_json()
        if data is None:
            return None
        try:
            return CachedQualitySnapshot.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring malformed quality snapshot {self.path}: {e}")
            return None

    def build_snapshot(
        self,
        overview: QualityOverview,
        metrics: List[QualityMetric],
        learning_iteration: int,
        created_at: Optional[datetime] = None
    ) -> CachedQualitySnapshot:
        """Create a snapshot whose expiry is created_at + max age."""
        created = created_at or self.clock()
        return CachedQualitySnapshot(
            overview=overview,
            metrics=list(metrics),
            created_at=created,
            expires_at=created + timedelta(seconds=self.config.max_age_seconds),
            cache_version=self.config.cache_version,
            learning_iteration=learning_iteration,
        )

    def save(
        self,
        overview: QualityOverview,
        metrics: List[QualityMetric],
        learning_iteration: int,
        created_at: Optional[datetime] = None
    ) -> CachedQualitySnapshot:
        """
        Write a new snapshot, replacing any previous one.

        Returns:
            The snapshot that was written

        Raises:
            OSError: If the snapshot could not be written
        """
        snapshot = self.build_snapshot(overview, metrics, learning_iteration, created_at)
        self.write(snapshot)
        return snapshot

    def write(self, snapshot: CachedQualitySnapshot) -> None:
        self.write_json(snapshot.to_dict())

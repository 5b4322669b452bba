"""
Record store for mareatigre.

Handles:
- Loading JSON documents with documented defaults on missing/corrupt files
- Atomic writes (stage to a unique .tmp file, then replace)
- Exclusive read-transform-write updates (fcntl on Unix, thread lock elsewhere)
- Bounded append for the height histories
"""

from __future__ import annotations

import contextlib
import copy
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable

import structlog

from mareatigre.constants import (
    DATA_DIR_DEFAULT,
    FILE_ALTURAS,
    FILE_PILOTE,
    FILE_SUDESTADA,
    PILOTE_KEY,
    SF_KEY,
)
from mareatigre.errors import StorageFailure

try:
    import fcntl  # type: ignore[import]
except ImportError:  # pragma: no cover
    fcntl = None  # type: ignore[assignment]

log = structlog.get_logger()

DEFAULTS: dict[str, dict[str, Any]] = {
    FILE_ALTURAS: {SF_KEY: []},
    FILE_PILOTE: {PILOTE_KEY: []},
    FILE_SUDESTADA: {
        "activa": False,
        "pico_maximo": 0,
        "hora_pico": None,
        "timestamp_pico": None,
        "inicio": None,
    },
}

_thread_locks: dict[Path, threading.Lock] = {}
_thread_locks_guard = threading.Lock()


def default_for(filename: str) -> dict[str, Any]:
    """Return a fresh copy of the default document for `filename`."""
    return copy.deepcopy(DEFAULTS.get(filename, {}))


class _FileLock:
    """
    Exclusive lock for a given document, held for a write or an update cycle.

    Uses a sibling `.lock` file and a blocking `fcntl.flock` when available so
    concurrent updaters (threads or processes) serialize. On platforms without
    `fcntl` this falls back to a process-local lock per path.
    """

    def __init__(self, path: Path) -> None:
        self._lock_path = path.with_suffix(path.suffix + ".lock")
        self._fh = None
        self._thread_lock: threading.Lock | None = None

    def __enter__(self) -> "_FileLock":
        if fcntl is None:
            with _thread_locks_guard:
                lock = _thread_locks.setdefault(self._lock_path, threading.Lock())
            lock.acquire()
            self._thread_lock = lock
            return self
        try:
            fh = self._lock_path.open("a", encoding="utf-8")
        except OSError as exc:
            raise StorageFailure(f"No se pudo abrir {self._lock_path}") from exc
        try:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
        except OSError as exc:
            fh.close()
            raise StorageFailure(f"No se pudo bloquear {self._lock_path}") from exc
        self._fh = fh
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._thread_lock is not None:
            self._thread_lock.release()
            self._thread_lock = None
            return
        if self._fh is None:
            return
        try:
            fcntl.flock(self._fh.fileno(), fcntl.LOCK_UN)
        finally:
            self._fh.close()
            self._fh = None


class RecordStore:
    """JSON documents under `data_dir`, one file per document."""

    def __init__(self, data_dir: str | Path = DATA_DIR_DEFAULT) -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path(self, filename: str) -> Path:
        return self._data_dir / filename

    def _load(self, path: Path, filename: str) -> dict[str, Any]:
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError):
            return default_for(filename)
        if not isinstance(data, dict):
            return default_for(filename)
        return data

    def _save(self, path: Path, data: dict[str, Any]) -> None:
        # Each write stages into its own temp file in the same directory.
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=path.name + ".", suffix=".tmp"
            )
        except OSError as exc:
            raise StorageFailure(f"No se pudo escribir {path.name}") from exc
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            with contextlib.suppress(OSError):
                tmp_path.unlink()
            raise StorageFailure(f"No se pudo escribir {path.name}") from exc

    def read(self, filename: str) -> dict[str, Any]:
        """Read a document, returning its default shape if absent or corrupt."""
        return self._load(self.path(filename), filename)

    def write(self, filename: str, data: dict[str, Any]) -> bool:
        """Replace a document atomically under its lock. Returns False on failure."""
        path = self.path(filename)
        try:
            with _FileLock(path):
                self._save(path, data)
        except StorageFailure as exc:
            log.error("store_write_failed", file=filename, error=exc.message)
            return False
        return True

    def update(
        self,
        filename: str,
        transform: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> bool:
        """
        Apply `transform` to a document under an exclusive lock.

        This is the only mutation path for shared state. Concurrent updaters
        on the same document serialize; readers see either the old or the new
        document. Returns False (and logs) when the lock or the write fails;
        the document is then left as it was.
        """
        path = self.path(filename)
        try:
            with _FileLock(path):
                current = self._load(path, filename)
                new = transform(current)
                self._save(path, new)
        except StorageFailure as exc:
            log.error("store_update_failed", file=filename, error=exc.message)
            return False
        return True

    def append(
        self,
        filename: str,
        key: str,
        record: dict[str, Any],
        max_records: int,
    ) -> bool:
        """Append `record` to data[key], keeping only the newest `max_records`."""

        def _push(data: dict[str, Any]) -> dict[str, Any]:
            records = data.get(key)
            if not isinstance(records, list):
                records = []
            records.append(record)
            if len(records) > max_records:
                records = records[-max_records:]
            data[key] = records
            return data

        return self.update(filename, _push)

    def initialize_files(self) -> None:
        """Write the default document for every known file that is missing."""
        for filename in DEFAULTS:
            path = self.path(filename)
            if not path.exists():
                self.write(filename, default_for(filename))

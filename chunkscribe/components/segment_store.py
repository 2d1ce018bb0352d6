from __future__ import annotations

import logging
import shutil
import sqlite3
import tempfile
import threading
from pathlib import Path
from typing import Protocol

from chunkscribe.contracts.artifacts import WAV_MIME_TYPE, StoredSegment
from chunkscribe.contracts.errors import SegmentStoreError


logger = logging.getLogger(__name__)


class SegmentStore(Protocol):
    """Transient key-addressed storage for the segments of one run."""

    def save(self, key: int, data: bytes, display_name: str) -> None:
        """Store data under key, replacing any previous value."""

    def get(self, key: int) -> StoredSegment | None:
        """Return the segment stored under key, or None when absent."""

    def clear(self) -> None:
        """Drop every key and release the backing resource."""


def _validate_key(key: int) -> int:
    if isinstance(key, bool) or not isinstance(key, int) or key < 0:
        raise SegmentStoreError(f"segment key must be a non-negative int, got {key!r}")
    return key


class TempDirSegmentStore(SegmentStore):
    """
    One `<key>.wav` file per segment in a lazily created private temp directory,
    with the display name kept verbatim in a `<key>.name` sidecar.
    Suited to short-lived batch processes; clear() deletes the directory.
    """

    def __init__(self, *, parent_dir: Path | None = None, prefix: str = "chunkscribe-segments-") -> None:
        self._parent_dir = Path(parent_dir) if parent_dir is not None else None
        self._prefix = prefix
        self._lock = threading.Lock()
        self._dir: Path | None = None

    @property
    def directory(self) -> Path | None:
        return self._dir

    def _ensure_dir(self) -> Path:
        with self._lock:
            if self._dir is None:
                try:
                    if self._parent_dir is not None:
                        self._parent_dir.mkdir(parents=True, exist_ok=True)
                    self._dir = Path(tempfile.mkdtemp(prefix=self._prefix, dir=self._parent_dir))
                except OSError as exc:
                    raise SegmentStoreError(f"could not create segment directory: {exc}") from exc
                logger.debug("created temporary segment directory %s", self._dir)
            return self._dir

    @staticmethod
    def _paths(directory: Path, key: int) -> tuple[Path, Path]:
        return directory / f"{key}.wav", directory / f"{key}.name"

    def save(self, key: int, data: bytes, display_name: str) -> None:
        _validate_key(key)
        directory = self._ensure_dir()
        data_path, name_path = self._paths(directory, key)
        try:
            # get() only reports a key once its data file exists.
            name_path.write_text(display_name, encoding="utf-8")
            data_path.write_bytes(data)
        except OSError as exc:
            raise SegmentStoreError(f"could not save segment {key}: {exc}") from exc
        logger.debug("saved segment %d to %s (%d bytes)", key, data_path, len(data))

    def get(self, key: int) -> StoredSegment | None:
        _validate_key(key)
        with self._lock:
            directory = self._dir
        if directory is None:
            return None
        data_path, name_path = self._paths(directory, key)
        try:
            data = data_path.read_bytes()
            display_name = name_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug("segment %d not found in %s", key, directory)
            return None
        except OSError as exc:
            raise SegmentStoreError(f"could not read segment {key}: {exc}") from exc
        return StoredSegment(key=key, data=data, display_name=display_name, mime_type=WAV_MIME_TYPE)

    def clear(self) -> None:
        with self._lock:
            directory, self._dir = self._dir, None
        if directory is None:
            return
        logger.debug("removing temporary segment directory %s", directory)
        shutil.rmtree(directory, ignore_errors=True)


_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS segments (
    key INTEGER PRIMARY KEY,
    display_name TEXT NOT NULL,
    mime_type TEXT NOT NULL,
    data BLOB NOT NULL
)
"""


class SqliteSegmentStore(SegmentStore):
    """
    Keyed segment table in a sqlite database file.
    Suited to long-lived interactive processes: the connection is opened once on
    first use and closed by clear().
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect_locked(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
                conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
                conn.execute(_CREATE_TABLE_SQL)
                conn.commit()
            except (OSError, sqlite3.Error) as exc:
                raise SegmentStoreError(f"could not open segment database {self._db_path}: {exc}") from exc
            logger.debug("opened segment database %s", self._db_path)
            self._conn = conn
        return self._conn

    def save(self, key: int, data: bytes, display_name: str) -> None:
        _validate_key(key)
        with self._lock:
            conn = self._connect_locked()
            try:
                conn.execute(
                    "INSERT OR REPLACE INTO segments (key, display_name, mime_type, data) VALUES (?, ?, ?, ?)",
                    (key, display_name, WAV_MIME_TYPE, sqlite3.Binary(data)),
                )
                conn.commit()
            except sqlite3.Error as exc:
                raise SegmentStoreError(f"could not save segment {key}: {exc}") from exc
        logger.debug("saved segment %d to %s (%d bytes)", key, self._db_path, len(data))

    def get(self, key: int) -> StoredSegment | None:
        _validate_key(key)
        with self._lock:
            conn = self._connect_locked()
            try:
                row = conn.execute(
                    "SELECT display_name, mime_type, data FROM segments WHERE key = ?",
                    (key,),
                ).fetchone()
            except sqlite3.Error as exc:
                raise SegmentStoreError(f"could not read segment {key}: {exc}") from exc
        if row is None:
            logger.debug("segment %d not found in %s", key, self._db_path)
            return None
        display_name, mime_type, data = row
        return StoredSegment(key=key, data=bytes(data), display_name=display_name, mime_type=mime_type)

    def clear(self) -> None:
        with self._lock:
            if self._conn is None and not self._db_path.exists():
                return
            conn = self._connect_locked()
            try:
                conn.execute("DELETE FROM segments")
                conn.commit()
            except sqlite3.Error as exc:
                raise SegmentStoreError(f"could not clear segment database: {exc}") from exc
            finally:
                conn.close()
                self._conn = None
        logger.debug("cleared segment database %s", self._db_path)


__all__ = ["SegmentStore", "SqliteSegmentStore", "TempDirSegmentStore"]

"""Append-only snapshot store.

Each poll is written to its own file named ``odds_<yyyyMMdd>_<HHmmss>.snapshot``
inside a single directory. The zero-padded key makes lexical order equal
chronological order, so listing the directory sorted by name replays the
ledger oldest to newest. Files are JSON documents produced by the ``Snapshot``
pydantic model and are never rewritten once in place.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator, Optional

from models.runner import Snapshot
from services.errors import CorruptSnapshotError, StorageWriteFailure
from utils.logger import get_logger

logger = get_logger("snapshot_store")

SNAPSHOT_PREFIX = "odds_"
SNAPSHOT_SUFFIX = ".snapshot"
_KEY_FORMAT = "odds_%Y%m%d_%H%M%S.snapshot"
# A taken key is bumped one second at a time; give up well before this.
_MAX_KEY_COLLISIONS = 3600


def snapshot_key(timestamp: datetime) -> str:
    return timestamp.strftime(_KEY_FORMAT)


def parse_snapshot_key(name: str) -> Optional[datetime]:
    try:
        return datetime.strptime(name, _KEY_FORMAT)
    except ValueError:
        return None


@dataclass(frozen=True)
class SnapshotRef:
    name: str
    path: Path
    timestamp: Optional[datetime]  # None when the key is not a valid timestamp


class SnapshotStore:
    """Directory-backed ledger of odds snapshots."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def _ref(self, path: Path) -> SnapshotRef:
        return SnapshotRef(name=path.name, path=path, timestamp=parse_snapshot_key(path.name))

    def list_snapshots(self) -> list[SnapshotRef]:
        """All snapshots, oldest first. Empty if the directory is missing."""
        if not self.directory.is_dir():
            logger.info("Snapshot directory not found", directory=str(self.directory))
            return []

        paths = [
            p
            for p in self.directory.iterdir()
            if p.is_file()
            and p.name.startswith(SNAPSHOT_PREFIX)
            and p.name.endswith(SNAPSHOT_SUFFIX)
        ]
        if not paths:
            logger.info("No snapshot files found", directory=str(self.directory))
            return []

        paths.sort(key=lambda p: p.name)
        return [self._ref(p) for p in paths]

    def load(self, ref: SnapshotRef) -> Snapshot:
        try:
            raw = ref.path.read_bytes()
        except OSError as exc:
            raise CorruptSnapshotError(ref.name, str(exc)) from exc
        try:
            return Snapshot.model_validate_json(raw)
        except ValueError as exc:
            raise CorruptSnapshotError(ref.name, str(exc)) from exc

    def load_or_empty(self, ref: SnapshotRef) -> Snapshot:
        """Load a snapshot, treating unreadable content as an empty capture."""
        try:
            return self.load(ref)
        except CorruptSnapshotError as exc:
            logger.warning(
                "Error loading snapshot; treating as empty",
                snapshot=ref.name,
                error=exc.reason,
            )
            return Snapshot(timestamp=ref.timestamp or datetime.min, runners={})

    def iter_snapshots(self) -> Iterator[tuple[SnapshotRef, Snapshot]]:
        """Stream (ref, snapshot) pairs oldest first, one file in memory at a time."""
        for ref in self.list_snapshots():
            yield ref, self.load_or_empty(ref)

    def append(self, snapshot: Snapshot) -> SnapshotRef:
        """Write a new snapshot file; never overwrites an existing one."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageWriteFailure(
                f"Cannot create snapshot directory {self.directory}: {exc}"
            ) from exc

        timestamp = snapshot.timestamp.replace(microsecond=0)
        path = self.directory / snapshot_key(timestamp)
        collisions = 0
        while path.exists():
            collisions += 1
            if collisions > _MAX_KEY_COLLISIONS:
                raise StorageWriteFailure(f"No free snapshot key near {timestamp.isoformat()}")
            timestamp += timedelta(seconds=1)
            path = self.directory / snapshot_key(timestamp)

        stored = Snapshot(timestamp=timestamp, runners=snapshot.runners)
        tmp_path = self.directory / f".{path.name}.tmp"
        try:
            tmp_path.write_text(stored.model_dump_json(), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise StorageWriteFailure(f"Error saving snapshot {path.name}: {exc}") from exc

        logger.info("Odds snapshot saved", snapshot=path.name, runners=len(stored.runners))
        return self._ref(path)

"""In-memory caches for analysis results.

Two tiers with independent expiry:

- SnapshotCache: a single slot holding the last full analysis, scoped to
  one project path.
- FileCache: token counts per absolute file path, size bounded.

Nothing is persisted. Staleness is purely time based; file changes do not
invalidate anything. ``prune()`` is called at the start of each analysis
since there is no background scheduler.
"""

import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Generic, Optional, TypeVar, Union

T = TypeVar("T")
PathLike = Union[str, Path]

SNAPSHOT_TTL = 300.0
FILE_TTL = 600.0
MAX_FILE_ENTRIES = 100


@dataclass
class CacheEntry(Generic[T]):
    """A cached value and when it was stored."""
    value: T
    timestamp: float


class SnapshotCache:
    """Single-slot cache for the most recent analysis."""

    def __init__(self, ttl: float = SNAPSHOT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._project: Optional[str] = None
        self._entry: Optional[CacheEntry] = None

    def _valid(self, key: str, now: float) -> bool:
        return (
            self._entry is not None
            and self._project == key
            and now - self._entry.timestamp < self.ttl
        )

    def get(self, project_path: PathLike):
        """Return the snapshot for project_path, or None on a miss."""
        key = str(project_path)
        with self._lock:
            if self._valid(key, self._clock()):
                return self._entry.value
            return None

    def put(self, project_path: PathLike, result) -> None:
        """Store a snapshot, replacing whatever project was cached."""
        with self._lock:
            self._project = str(project_path)
            self._entry = CacheEntry(result, self._clock())

    def age(self, project_path: PathLike) -> Optional[float]:
        """Seconds since a still-valid snapshot was stored."""
        key = str(project_path)
        with self._lock:
            now = self._clock()
            if self._valid(key, now):
                return now - self._entry.timestamp
            return None

    def prune(self) -> None:
        """Drop the snapshot once it has expired."""
        with self._lock:
            if self._entry and self._clock() - self._entry.timestamp >= self.ttl:
                self._project = None
                self._entry = None

    def clear(self) -> None:
        with self._lock:
            self._project = None
            self._entry = None


class FileCache:
    """Token counts keyed by absolute file path."""

    def __init__(
        self,
        ttl: float = FILE_TTL,
        max_entries: int = MAX_FILE_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, CacheEntry[int]] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: PathLike) -> bool:
        return self.get(path) is not None

    def get(self, path: PathLike) -> Optional[int]:
        """Return cached tokens for path, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(str(path))
            if entry and self._clock() - entry.timestamp < self.ttl:
                return entry.value
            return None

    def put(self, path: PathLike, tokens: int) -> None:
        with self._lock:
            self._entries[str(path)] = CacheEntry(tokens, self._clock())

    def prune(self) -> None:
        """Expire old entries, then keep the newest half if still too large."""
        with self._lock:
            now = self._clock()
            self._entries = {
                path: entry
                for path, entry in self._entries.items()
                if now - entry.timestamp < self.ttl
            }

            if len(self._entries) > self.max_entries:
                keep = self.max_entries // 2
                newest = sorted(self._entries.items(), key=lambda item: item[1].timestamp)[-keep:]
                self._entries = dict(newest)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class ResultCache:
    """Snapshot and file caches with a shared lifecycle.

    Construct one per process and hand it to every analyzer run.
    """

    def __init__(
        self,
        snapshot_ttl: float = SNAPSHOT_TTL,
        file_ttl: float = FILE_TTL,
        max_file_entries: int = MAX_FILE_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.snapshots = SnapshotCache(ttl=snapshot_ttl, clock=clock)
        self.files = FileCache(ttl=file_ttl, max_entries=max_file_entries, clock=clock)

    @classmethod
    def from_config(cls, config) -> "ResultCache":
        return cls(
            snapshot_ttl=float(config.get("cache.snapshot_ttl", SNAPSHOT_TTL)),
            file_ttl=float(config.get("cache.file_ttl", FILE_TTL)),
            max_file_entries=int(config.get("cache.max_file_entries", MAX_FILE_ENTRIES)),
        )

    def prune(self) -> None:
        self.snapshots.prune()
        self.files.prune()

    def clear(self) -> None:
        self.snapshots.clear()
        self.files.clear()

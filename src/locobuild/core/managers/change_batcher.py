# src/locobuild/core/managers/change_batcher.py
import fnmatch
import logging
import os
import threading
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from locobuild.core.utils.ticker import Ticker
from locobuild.model import ChangeBatch

logger = logging.getLogger(__name__)

ADDED = "added"
REMOVED = "removed"


class _WatchHandler(FileSystemEventHandler):
    """Classifies watchdog events into additions and removals."""

    def __init__(self, batcher: "ChangeBatcher"):
        super().__init__()
        self._batcher = batcher

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._batcher.record(ADDED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._batcher.record(ADDED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._batcher.record(REMOVED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._batcher.record(REMOVED, event.src_path)
            self._batcher.record(ADDED, event.dest_path)


class ChangeBatcher:
    """
    Accumulates file changes under a root directory and hands them to a
    rebuild callback in batches, once per tick.

    Each flush swaps the pending lists for fresh ones before calling back,
    so changes made while a rebuild runs land in the next batch. A flush that
    finds a rebuild still in progress leaves the pending lists alone; those
    changes merge into the batch of the first tick after the build ends.
    """

    def __init__(
            self,
            root: Union[str, Path],
            on_batch: Callable[[ChangeBatch], None],
            interval: float = 1.0,
            ignore: Iterable[str] = (),
    ):
        self.root = Path(root).resolve()
        self._on_batch = on_batch
        self._ignore = [p for p in ignore if p]
        self._lock = threading.Lock()
        self._build_gate = threading.Lock()
        self._added: List[str] = []
        self._removed: List[str] = []
        self._ticker = Ticker(interval, self.flush, name=f"batcher:{self.root.name}")
        self._observer: Optional[Observer] = None

    def _relative(self, path: Union[str, Path]) -> Optional[str]:
        p = Path(path)
        if p.is_absolute():
            try:
                p = p.resolve().relative_to(self.root)
            except ValueError:
                return None
        rel = p.as_posix()
        return None if rel in ("", ".") else rel

    def is_ignored(self, rel_path: str) -> bool:
        for pattern in self._ignore:
            prefix = pattern.rstrip("/")
            if fnmatch.fnmatch(rel_path, pattern) or rel_path == prefix or rel_path.startswith(prefix + "/"):
                return True
        return False

    def record(self, kind: str, path: Union[str, Path]) -> None:
        """Records one change. ``kind`` is ADDED (add or change) or REMOVED."""
        rel = self._relative(path)
        if rel is None or self.is_ignored(rel):
            return
        with self._lock:
            (self._added if kind == ADDED else self._removed).append(rel)

    @property
    def pending(self) -> ChangeBatch:
        with self._lock:
            return ChangeBatch(added=list(self._added), removed=list(self._removed))

    def flush(self) -> bool:
        """
        Hands the pending changes to the rebuild callback.

        Returns:
            bool: True if the callback ran; False if nothing was pending or a
            rebuild was already in progress.
        """
        if not self._build_gate.acquire(blocking=False):
            logger.debug("Rebuild in progress; deferring pending changes to the next tick.")
            return False
        try:
            with self._lock:
                added, self._added = self._added, []
                removed, self._removed = self._removed, []
            batch = ChangeBatch(
                added=list(dict.fromkeys(added)),
                removed=list(dict.fromkeys(removed)),
            )
            if batch.is_empty:
                return False
            logger.info("Rebuilding: %d changed, %d removed file(s)", len(batch.added), len(batch.removed))
            self._on_batch(batch)
            return True
        finally:
            self._build_gate.release()

    def start(self) -> None:
        """Starts watching the root and ticking."""
        self._observer = Observer()
        self._observer.schedule(_WatchHandler(self), str(self.root), recursive=True)
        self._observer.start()
        self._ticker.start()
        logger.info("Watching %s for changes...", self.root)

    def stop(self) -> None:
        self._ticker.cancel()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        logger.debug("Stopped watching %s", self.root)

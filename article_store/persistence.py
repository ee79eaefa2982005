"""
Snapshot persistence for article store restart recovery.

Two pieces cooperate here:

* :class:`SnapshotFile` reads and writes encoded snapshots at one path.
* :class:`PersistenceCoordinator` loads (or seeds) the store at startup and
  runs a single background worker that flushes the store after mutations.

Save requests are coalesced: the worker clears its request flag before taking
a snapshot, so any mutation that lands while a save is running triggers exactly
one more save capturing the newest state. With a single writer thread the file
never regresses to an older snapshot than one already written.

Writes default to truncate-and-rewrite of the target path. A crash in the
middle of such a write leaves a corrupt file, which the next startup detects
and replaces with seed data. Set ``atomic=True`` to write through a temporary
file and ``os.replace`` instead.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from pathlib import Path
from typing import Any

from .codec import decode_snapshot, encode_snapshot
from .exceptions import PersistenceWriteError, SnapshotCorruptError
from .models import Snapshot
from .seed import seed_snapshot
from .store import ArticleStore

_LOGGER = logging.getLogger(__name__)


class SnapshotFile:
    """
    Manage full-state snapshot reads and writes at one file path.

    Parameters
    ----------
    snapshot_path:
        Destination file path for persisted snapshots.
    fsync:
        If true, force written data to disk before returning.
    atomic:
        If true, write to ``<snapshot>.tmp`` and rename over the target.
    """

    def __init__(self, snapshot_path: str | Path, *, fsync: bool = False, atomic: bool = False) -> None:
        self._path = Path(snapshot_path).expanduser().resolve()
        self._fsync = bool(fsync)
        self._atomic = bool(atomic)

    @property
    def path(self) -> Path:
        """Return fully resolved snapshot path."""
        return self._path

    def read(self) -> Snapshot | None:
        """
        Load the persisted snapshot.

        Returns
        -------
        Snapshot | None
            Decoded snapshot, or ``None`` when the file is absent.

        Raises
        ------
        SnapshotCorruptError
            If the file exists but cannot be decoded.
        OSError
            If the file exists but cannot be read.
        """
        if not self._path.exists():
            return None
        return decode_snapshot(self._path.read_bytes())

    def write(self, snapshot: Snapshot) -> None:
        """
        Persist a snapshot, replacing the whole file.

        Raises
        ------
        PersistenceWriteError
            If the file cannot be written.
        """
        data = encode_snapshot(snapshot)
        target = self._path.with_suffix(f"{self._path.suffix}.tmp") if self._atomic else self._path
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with target.open("wb") as handle:
                handle.write(data)
                handle.flush()
                if self._fsync:
                    os.fsync(handle.fileno())
            if self._atomic:
                os.replace(target, self._path)
        except OSError as exc:
            raise PersistenceWriteError(f"Failed to write snapshot to {self._path}: {exc}") from exc


class PersistenceCoordinator:
    """
    Keep a :class:`SnapshotFile` in step with an :class:`ArticleStore`.

    The constructor registers :meth:`request_save` as a store change listener.
    Call :meth:`load_or_seed` once before serving traffic, then :meth:`start`
    the background worker; :meth:`stop` shuts the worker down and optionally
    writes one final snapshot.
    """

    def __init__(self, store: ArticleStore, snapshot_file: SnapshotFile) -> None:
        self._store = store
        self._file = snapshot_file
        self._save_lock = threading.Lock()
        self._save_request = threading.Event()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._stats: dict[str, int] = {
            "snapshot_load_success": 0,
            "snapshot_load_failures": 0,
            "snapshot_save_success": 0,
            "snapshot_save_failures": 0,
            "seeded": 0,
        }
        self._stats_lock = threading.Lock()
        store.add_listener(self.request_save)

    @property
    def store(self) -> ArticleStore:
        """Return the store this coordinator persists."""
        return self._store

    @property
    def snapshot_file(self) -> SnapshotFile:
        """Return the file this coordinator writes to."""
        return self._file

    @property
    def is_running(self) -> bool:
        """Return whether the background worker is alive."""
        return self._thread is not None and self._thread.is_alive()

    def load_or_seed(self) -> bool:
        """
        Initialize the store from disk, falling back to seed data.

        Any failure to read or decode the snapshot (missing, unreadable, or
        corrupt file) is logged and replaced by the seed set, which is then
        saved synchronously so the file reflects the seeded state.

        Returns
        -------
        bool
            ``True`` when persisted data was loaded, ``False`` when seeded.
        """
        try:
            snapshot = self._file.read()
        except (OSError, SnapshotCorruptError) as exc:
            self._inc_stat("snapshot_load_failures")
            _LOGGER.warning("Could not load snapshot from %s: %s", self._file.path, exc)
            snapshot = None

        if snapshot is not None:
            self._store.load_snapshot(snapshot)
            self._inc_stat("snapshot_load_success")
            _LOGGER.info(
                "Loaded %s articles from %s.",
                len(snapshot.articles),
                self._file.path,
            )
            return True

        _LOGGER.info("No usable snapshot at %s, creating sample articles.", self._file.path)
        self._store.load_snapshot(seed_snapshot())
        self._inc_stat("seeded")
        self.save_now()
        return False

    def request_save(self) -> None:
        """Schedule an asynchronous snapshot flush without blocking."""
        self._save_request.set()

    def save_now(self) -> bool:
        """
        Snapshot the store and write it synchronously.

        Write failures are logged and counted but never raised: the store's
        in-memory state stays authoritative.

        Returns
        -------
        bool
            Whether the write succeeded.
        """
        with self._save_lock:
            return self._save_locked()

    def _save_locked(self) -> bool:
        snapshot = self._store.create_snapshot()
        try:
            self._file.write(snapshot)
        except PersistenceWriteError as exc:
            self._inc_stat("snapshot_save_failures")
            _LOGGER.warning("Failed to save articles: %s", exc)
            return False
        self._inc_stat("snapshot_save_success")
        _LOGGER.debug(
            "Saved %s articles to %s (next_id=%s).",
            len(snapshot.articles),
            self._file.path,
            snapshot.next_id,
        )
        return True

    def start(self) -> None:
        """
        Start the background snapshot flush worker.

        If a previous :meth:`stop` timed out, the old worker is joined first so
        only one worker ever writes the snapshot file.
        """
        if self.is_running:
            if not self._stop_event.is_set():
                return
            self._thread.join()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._worker_loop,
            name="article-store-persistence",
            daemon=True,
        )
        self._thread.start()

    def stop(self, *, flush: bool = True, timeout: float = 5.0) -> None:
        """
        Stop the worker and optionally flush one final snapshot.

        Parameters
        ----------
        flush:
            If true, write the current state after the worker exits.
        timeout:
            Seconds to wait for an in-flight save to finish. A worker still
            alive after the timeout stays referenced and exits once its save
            completes.
        """
        self._stop_event.set()
        self._save_request.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if not self._thread.is_alive():
                self._thread = None
            else:
                _LOGGER.warning("Persistence worker still saving after %.1fs.", timeout)
        self._save_request.clear()
        if flush:
            self.save_now()

    def wait_idle(self, timeout: float = 5.0) -> bool:
        """
        Block until no save is pending or running.

        A pending request with no running worker never gets serviced, so it
        counts as idle once no save is in progress. Intended for tests and
        shutdown hooks. Returns ``False`` on timeout.
        """
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            pending = self._save_request.is_set() and self.is_running
            if not pending and not self._save_lock.locked():
                return True
            time.sleep(0.01)
        return False

    def stats(self) -> dict[str, Any]:
        """Return cumulative persistence counters and worker state."""
        with self._stats_lock:
            payload: dict[str, Any] = dict(self._stats)
        payload["worker_running"] = self.is_running
        payload["snapshot_path"] = str(self._file.path)
        return payload

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            signaled = self._save_request.wait(timeout=0.5)
            if not signaled or self._stop_event.is_set():
                continue
            with self._save_lock:
                self._save_request.clear()
                self._save_locked()

    def _inc_stat(self, key: str, *, delta: int = 1) -> None:
        with self._stats_lock:
            self._stats[key] = self._stats.get(key, 0) + delta

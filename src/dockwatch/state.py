"""
Thread-safe state store.

StateManager is the single source of truth shared by the sampler thread, the
input thread and the render loop. All three only ever talk to it through
short locked calls:

  - merge():           sampler applies one poll cycle atomically
  - mark_unreachable(): sampler reports a failed listing (rows kept as-is)
  - snapshot():        renderer copies out an immutable Model
  - move_selection(), select_none(), toggle_detail_view(): input thread

Thread Safety:
  - Every read and write holds self._lock (RLock)
  - No I/O happens under the lock; snapshot() is a tuple copy of frozen rows
  - Readers never get a reference to the live list, only frozen copies

CPU percentages are derived inside merge() against the raw reading stored
for the same id by the previous merge, so each delta is always a consistent
before/after pair from two consecutive cycles.

Selection Rules:
  - Empty model -> selected_index is None
  - After a merge the selection follows the same container id; if it
    vanished, the old index is clamped into the new list
  - The first non-empty merge after an empty model selects row 0
"""

import logging
import threading
import time
from typing import Dict, Iterable, List, Optional

from .model import ConnectionStatus, ContainerSample, ContainerSnapshot, Model, RawStats
from .stats import derive_snapshot

logger = logging.getLogger(__name__)


class StateManager:
    """Thread-safe state manager."""

    def __init__(self):
        self._lock = threading.RLock()
        self._containers: List[ContainerSnapshot] = []
        self._baselines: Dict[str, RawStats] = {}
        self._selected_index: Optional[int] = None
        self._connection_status = ConnectionStatus.OK
        self._detail_view_open = False
        self._last_error = ""
        self._last_poll = 0.0
        self._version = 0

    def get_version(self) -> int:
        with self._lock:
            return self._version

    def _inc_version(self):
        # Assumes lock is held
        self._version += 1

    def merge(self, samples: Iterable[ContainerSample], connection_status: ConnectionStatus,
              error: str = "") -> None:
        """Replace the container list with one poll cycle's results."""
        samples = list(samples)
        now = time.time()
        with self._lock:
            previous = {c.id: c for c in self._containers}
            selected_id = None
            if self._selected_index is not None:
                selected_id = self._containers[self._selected_index].id

            merged: Dict[str, ContainerSnapshot] = {}
            baselines: Dict[str, RawStats] = {}
            for sample in samples:
                cid = sample.meta.id
                if cid in merged:
                    logger.warning(f"Duplicate container id {cid} in poll results, keeping first")
                    continue
                merged[cid] = derive_snapshot(
                    sample.meta,
                    sample.stats,
                    self._baselines.get(cid),
                    previous.get(cid),
                    now=now,
                )
                if sample.stats is not None:
                    baselines[cid] = sample.stats
                elif cid in self._baselines:
                    # Missed reading: keep the old baseline so the next delta spans both cycles
                    baselines[cid] = self._baselines[cid]

            containers = sorted(merged.values(), key=lambda c: (c.name, c.id))
            was_empty = not self._containers

            self._containers = containers
            self._baselines = baselines
            self._selected_index = self._resolve_selection(containers, selected_id, was_empty)
            self._connection_status = ConnectionStatus(connection_status)
            self._last_error = error if connection_status != ConnectionStatus.OK else ""
            self._last_poll = now
            self._inc_version()

    def _resolve_selection(self, containers: List[ContainerSnapshot], selected_id: Optional[str],
                           was_empty: bool) -> Optional[int]:
        # Assumes lock is held
        if not containers:
            return None
        if selected_id is not None:
            for idx, c in enumerate(containers):
                if c.id == selected_id:
                    return idx
            return min(self._selected_index, len(containers) - 1)
        if was_empty:
            return 0
        return None

    def mark_unreachable(self, error: str = "") -> None:
        """Engine listing failed: keep the stale rows, flag the connection."""
        with self._lock:
            self._connection_status = ConnectionStatus.UNREACHABLE
            self._last_error = error
            self._inc_version()

    def snapshot(self) -> Model:
        with self._lock:
            return Model(
                containers=tuple(self._containers),
                selected_index=self._selected_index,
                connection_status=self._connection_status,
                detail_view_open=self._detail_view_open,
                last_error=self._last_error,
                last_poll=self._last_poll,
                version=self._version,
            )

    def move_selection(self, delta: int) -> None:
        with self._lock:
            count = len(self._containers)
            if count == 0:
                return
            if self._selected_index is None:
                new_idx = 0
            else:
                new_idx = max(0, min(self._selected_index + delta, count - 1))
            if new_idx != self._selected_index:
                self._selected_index = new_idx
                self._inc_version()

    def select_none(self) -> None:
        with self._lock:
            if self._selected_index is not None:
                self._selected_index = None
                self._inc_version()

    def toggle_detail_view(self) -> None:
        with self._lock:
            self._detail_view_open = not self._detail_view_open
            self._inc_version()

    def close_detail_view(self) -> None:
        with self._lock:
            if self._detail_view_open:
                self._detail_view_open = False
                self._inc_version()

    def baseline(self, container_id: str) -> Optional[RawStats]:
        """Raw reading the next CPU delta for this container will be measured from."""
        with self._lock:
            return self._baselines.get(container_id)

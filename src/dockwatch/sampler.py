"""
Periodic poll worker.

One Sampler thread runs for the lifetime of the app. Each cycle:
  1. list_containers(); on failure mark the store unreachable and keep rows
  2. fetch_stats() for every listed id on a bounded thread pool
  3. merge all samples into the store in one atomic call
  4. sleep until the next tick (an overrunning cycle starts the next one
     immediately, cycles never overlap)

Per-container failures never abort a cycle:
  - ContainerNotFound: the container went away mid-cycle, drop it
  - any other failure: keep the row with its previous metrics and report the
    cycle as degraded

Shutdown is the shared threading.Event: once set, no new cycle starts and
queued stats requests are skipped; requests already on the wire end through
the adapter timeout.
"""

import concurrent.futures
import logging
import threading
import time
from typing import Dict, List, Optional, Tuple

from .backend import DockerBackend
from .errors import ContainerNotFound, EngineError, EngineTimeout
from .model import ConnectionStatus, ContainerMeta, ContainerSample, RawStats
from .state import StateManager

logger = logging.getLogger(__name__)

# Outcome of a single stats fetch
FETCH_OK = "ok"
FETCH_GONE = "gone"
FETCH_FAILED = "failed"
FETCH_SKIPPED = "skipped"


class Sampler(threading.Thread):
    def __init__(self, state_manager: StateManager, backend: DockerBackend,
                 interval: float = 1.0, max_in_flight: int = 4,
                 shutdown: Optional[threading.Event] = None):
        super().__init__(name="sampler", daemon=True)
        self.state_manager = state_manager
        self.backend = backend
        self.interval = interval
        self.max_in_flight = max(1, max_in_flight)
        self.shutdown = shutdown if shutdown is not None else threading.Event()
        self.cycles = 0
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_in_flight, thread_name_prefix="stats"
        )

    def stop(self) -> None:
        self.shutdown.set()

    def close(self) -> None:
        self._executor.shutdown(wait=True, cancel_futures=True)

    def run(self) -> None:
        logger.info(f"Sampler started (interval={self.interval}s, max_in_flight={self.max_in_flight})")
        try:
            while not self.shutdown.is_set():
                cycle_start = time.monotonic()
                try:
                    self.poll_once()
                except Exception as e:
                    logger.error(f"Unexpected error in poll cycle: {e}", exc_info=True)

                delay = self.interval - (time.monotonic() - cycle_start)
                if delay > 0:
                    self.shutdown.wait(delay)
                else:
                    logger.debug(f"Poll cycle overran interval by {-delay:.3f}s")
        finally:
            self.close()
            logger.info("Sampler stopped")

    def poll_once(self) -> ConnectionStatus:
        """Run one complete poll cycle and merge it. Returns the cycle's status."""
        try:
            containers = self.backend.list_containers()
        except EngineError as e:
            logger.warning(f"Container listing failed: {e}")
            self.state_manager.mark_unreachable(str(e))
            return ConnectionStatus.UNREACHABLE

        results = self._fetch_all(containers)
        if self.shutdown.is_set():
            # Half-fetched cycle during shutdown; nobody will render it
            return ConnectionStatus.OK

        samples: List[ContainerSample] = []
        failed = 0
        for meta in containers:
            outcome, stats = results[meta.id]
            if outcome == FETCH_GONE:
                continue
            if outcome == FETCH_FAILED:
                failed += 1
            samples.append(ContainerSample(meta=meta, stats=stats))

        if failed:
            status = ConnectionStatus.DEGRADED
            error = f"stats unavailable for {failed} of {len(containers)} containers"
        else:
            status = ConnectionStatus.OK
            error = ""

        self.state_manager.merge(samples, status, error)
        self.cycles += 1
        return status

    def _fetch_all(self, containers: List[ContainerMeta]) -> Dict[str, Tuple[str, Optional[RawStats]]]:
        futures = {
            self._executor.submit(self._fetch_one, meta.id): meta.id
            for meta in containers
        }
        results: Dict[str, Tuple[str, Optional[RawStats]]] = {}
        for future in concurrent.futures.as_completed(futures):
            results[futures[future]] = future.result()
        return results

    def _fetch_one(self, container_id: str) -> Tuple[str, Optional[RawStats]]:
        if self.shutdown.is_set():
            return FETCH_SKIPPED, None
        try:
            return FETCH_OK, self.backend.fetch_stats(container_id)
        except ContainerNotFound:
            logger.debug(f"Container {container_id[:12]} vanished during stats fetch")
            return FETCH_GONE, None
        except EngineTimeout as e:
            logger.info(f"Stats timeout for {container_id[:12]}: {e}")
            return FETCH_FAILED, None
        except EngineError as e:
            logger.warning(f"Stats failed for {container_id[:12]}: {e}")
            return FETCH_FAILED, None
        except Exception as e:
            logger.error(f"Unclassified stats failure for {container_id[:12]}: {e}", exc_info=True)
            return FETCH_FAILED, None

"""
Data models for dockwatch.

Data Classes:
  - ContainerMeta: one entry of the engine's container list
  - RawStats: one raw resource reading for a container
  - ContainerSample: what the sampler collected for one container this cycle
  - ContainerSnapshot: UI-facing row with derived CPU / memory metrics
  - Model: complete state handed to the renderer (rows + selection + status)

ContainerSnapshot and Model are frozen; the state store builds new ones on
every change and readers only ever see copies.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

# Lifecycle states as reported by the engine. Stored verbatim.
CONTAINER_STATUSES = (
    "created",
    "running",
    "paused",
    "restarting",
    "removing",
    "exited",
    "dead",
)


class ConnectionStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class ContainerMeta:
    id: str
    name: str
    image: str
    status: str
    created: int = 0  # epoch seconds, 0 if unknown


@dataclass(frozen=True)
class RawStats:
    container_id: str
    cpu_total_ns: int
    mem_usage_bytes: int
    mem_limit_bytes: int
    online_cpus: int
    read_at: float  # time.monotonic() when the reading arrived


@dataclass(frozen=True)
class ContainerSample:
    meta: ContainerMeta
    stats: Optional[RawStats] = None  # None when the stats fetch failed


@dataclass(frozen=True)
class ContainerSnapshot:
    id: str
    name: str
    image: str
    status: str
    created: int = 0
    cpu_percent: float = 0.0
    mem_usage_bytes: int = 0
    mem_limit_bytes: int = 0
    mem_percent: Optional[float] = None  # None means unavailable
    online_cpus: int = 0  # 0 until the first reading
    last_updated: float = 0.0


@dataclass(frozen=True)
class Model:
    containers: Tuple[ContainerSnapshot, ...] = field(default_factory=tuple)
    selected_index: Optional[int] = None
    connection_status: ConnectionStatus = ConnectionStatus.OK
    detail_view_open: bool = False
    last_error: str = ""
    last_poll: float = 0.0  # wall time of the last merge, 0 before the first
    version: int = 0

    @property
    def selected(self) -> Optional[ContainerSnapshot]:
        if self.selected_index is None:
            return None
        return self.containers[self.selected_index]

"""
Derived container metrics and display helpers.

CPU convention: aggregate across cores, like `top`. A container busy on two
full cores reads 200%. The value is the consumed CPU time between two raw
readings divided by the wall time between them:

    cpu% = (cpu_total_ns[now] - cpu_total_ns[prev]) / (read_at[now] - read_at[prev]) / 1e9 * 100

Memory percent is usage / limit and is None when the engine reports no
limit, since 0% would read as "idle" rather than "unknown".
"""

import time
from collections import defaultdict
from typing import Dict, Any, Iterable, Optional

from .model import ContainerMeta, ContainerSnapshot, RawStats

NS_PER_SECOND = 1_000_000_000


def compute_cpu_percent(previous: Optional[RawStats], current: RawStats) -> float:
    """CPU percent between two readings of the same container, 0 without a baseline."""
    if previous is None or previous.container_id != current.container_id:
        return 0.0
    elapsed = current.read_at - previous.read_at
    if elapsed <= 0:
        return 0.0
    cpu_delta = current.cpu_total_ns - previous.cpu_total_ns
    if cpu_delta <= 0:
        # Counter reset (container restarted) or idle
        return 0.0
    return cpu_delta / (elapsed * NS_PER_SECOND) * 100.0


def compute_mem_percent(usage: int, limit: int) -> Optional[float]:
    if limit <= 0:
        return None
    return usage / limit * 100.0


def derive_snapshot(
    meta: ContainerMeta,
    current: Optional[RawStats],
    previous_raw: Optional[RawStats],
    previous_snapshot: Optional[ContainerSnapshot],
    now: Optional[float] = None,
) -> ContainerSnapshot:
    """
    Build the snapshot for one container from this cycle's sample.

    Without a fresh reading the previous metrics are carried over (stale but
    visible); a container never measured gets 0% CPU and unavailable memory.
    """
    if now is None:
        now = time.time()

    if current is not None:
        return ContainerSnapshot(
            id=meta.id,
            name=meta.name,
            image=meta.image,
            status=meta.status,
            created=meta.created,
            cpu_percent=compute_cpu_percent(previous_raw, current),
            mem_usage_bytes=current.mem_usage_bytes,
            mem_limit_bytes=current.mem_limit_bytes,
            mem_percent=compute_mem_percent(current.mem_usage_bytes, current.mem_limit_bytes),
            online_cpus=current.online_cpus,
            last_updated=now,
        )

    if previous_snapshot is not None:
        return ContainerSnapshot(
            id=meta.id,
            name=meta.name,
            image=meta.image,
            status=meta.status,
            created=meta.created,
            cpu_percent=previous_snapshot.cpu_percent,
            mem_usage_bytes=previous_snapshot.mem_usage_bytes,
            mem_limit_bytes=previous_snapshot.mem_limit_bytes,
            mem_percent=previous_snapshot.mem_percent,
            online_cpus=previous_snapshot.online_cpus,
            last_updated=previous_snapshot.last_updated,
        )

    return ContainerSnapshot(
        id=meta.id,
        name=meta.name,
        image=meta.image,
        status=meta.status,
        created=meta.created,
        last_updated=now,
    )


def format_bytes(num_bytes: int) -> str:
    units = ["B", "KB", "MB", "GB"]
    size = float(num_bytes)
    unit_index = 0
    while size >= 1024.0 and unit_index < len(units) - 1:
        size /= 1024.0
        unit_index += 1
    return f"{size:.2f} {units[unit_index]}"


def format_percent(value: Optional[float]) -> str:
    if value is None:
        return "--"
    return f"{value:.1f}%"


def format_created(created: int) -> str:
    if created <= 0:
        return "unknown"
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(created))


def summarize(containers: Iterable[ContainerSnapshot]) -> Dict[str, Any]:
    """Fleet totals for the header line."""
    status_counts: Dict[str, int] = defaultdict(int)
    total_cpu = 0.0
    total_memory = 0
    total = 0

    for container in containers:
        total += 1
        status_counts[container.status] += 1
        total_cpu += container.cpu_percent
        total_memory += container.mem_usage_bytes

    return {
        'total': total,
        'running': status_counts.get('running', 0),
        'stopped': status_counts.get('exited', 0) + status_counts.get('dead', 0),
        'paused': status_counts.get('paused', 0),
        'total_cpu': total_cpu,
        'total_memory': total_memory,
    }

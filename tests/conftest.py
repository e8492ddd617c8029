"""Shared test fixtures for dockwatch tests."""

import os
import tempfile

# Keep the import-time config singleton away from the real ~/.config
os.environ.setdefault("DOCKWATCH_CONFIG_DIR", tempfile.mkdtemp(prefix="dockwatch-test-"))

import pytest

from dockwatch.model import ContainerMeta, ContainerSample, RawStats


def make_meta(cid, name=None, status="running", image="nginx:latest", created=1700000000):
    return ContainerMeta(id=cid, name=name or f"c-{cid}", image=image, status=status, created=created)


def make_stats(cid, cpu_ns=0, read_at=0.0, usage=0, limit=0):
    return RawStats(
        container_id=cid,
        cpu_total_ns=cpu_ns,
        mem_usage_bytes=usage,
        mem_limit_bytes=limit,
        online_cpus=1,
        read_at=read_at,
    )


def make_sample(cid, name=None, status="running", cpu_ns=0, read_at=0.0, usage=0, limit=0, with_stats=True):
    stats = make_stats(cid, cpu_ns, read_at, usage, limit) if with_stats else None
    return ContainerSample(meta=make_meta(cid, name, status), stats=stats)


@pytest.fixture
def state_mgr():
    from dockwatch.state import StateManager
    return StateManager()

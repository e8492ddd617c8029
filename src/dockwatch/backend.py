"""
Docker engine adapter.

Thin request/response wrapper over the docker-py low-level API. It does two
things only:
  - list_containers(): every container the engine knows (running or not)
  - fetch_stats(id): one non-streaming resource reading for one container

There is no caching and no retrying here; the sampler polls on a fixed
cadence and that cadence is the retry policy.

Error Handling:
  Every failure leaves this module as one of the kinds in errors.py, mapped
  in one place by the @engine_call decorator:
  - docker.errors.NotFound          -> ContainerNotFound (ProtocolError for listing)
  - requests timeouts               -> EngineTimeout (EngineConnectionError for listing)
  - connection refused / no socket  -> EngineConnectionError
  - other transport failures        -> EngineConnectionError
  - other API errors, bad payloads  -> ProtocolError

Dependencies:
  - docker>=7.0.0 (docker-py client)
  - requests (transport used by docker-py, for its exception types)
"""

import functools
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Type

import docker
import requests

from .errors import (
    ContainerNotFound,
    EngineConnectionError,
    EngineError,
    EngineTimeout,
    ProtocolError,
)
from .model import CONTAINER_STATUSES, ContainerMeta, RawStats

logger = logging.getLogger(__name__)


def engine_call(timeout_error: Type[EngineError] = EngineTimeout,
                not_found_error: Type[EngineError] = ContainerNotFound) -> Callable:
    """
    Decorator classifying docker-py / requests failures into the engine taxonomy.

    Args:
        timeout_error: kind to raise when the request timed out. Listing uses
            EngineConnectionError since a hung list means the engine itself
            is not answering.
        not_found_error: kind to raise on a 404. Listing uses ProtocolError:
            a 404 there means the endpoint is not a docker engine, not that a
            container went away.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return func(*args, **kwargs)
            except EngineError:
                raise
            except docker.errors.NotFound as e:
                raise not_found_error(f"{func.__name__}: {e}") from e
            except requests.exceptions.Timeout as e:
                raise timeout_error(f"{func.__name__} timed out: {e}") from e
            except requests.exceptions.ConnectionError as e:
                raise EngineConnectionError(f"{func.__name__}: {e}") from e
            except requests.exceptions.RequestException as e:
                # Dropped or truncated response bodies (ChunkedEncodingError and friends)
                raise EngineConnectionError(f"{func.__name__}: {e}") from e
            except docker.errors.APIError as e:
                raise ProtocolError(f"{func.__name__}: {e}") from e
            except docker.errors.DockerException as e:
                raise EngineConnectionError(f"{func.__name__}: {e}") from e
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise ProtocolError(f"{func.__name__}: malformed engine response: {e}") from e
        return wrapper
    return decorator


class DockerBackend:
    def __init__(self, base_url: Optional[str] = None, timeout: float = 0.8):
        self.base_url = base_url
        self.timeout = timeout
        self._client = None
        self._client_lock = threading.Lock()

    def _get_client(self) -> "docker.DockerClient":
        # Connected lazily so an engine that comes up later is picked up by the next poll
        with self._client_lock:
            if self._client is None:
                try:
                    if self.base_url:
                        self._client = docker.DockerClient(base_url=self.base_url, timeout=self.timeout)
                    else:
                        self._client = docker.from_env(timeout=self.timeout)
                except docker.errors.DockerException as e:
                    raise EngineConnectionError(f"cannot connect to docker engine: {e}") from e
                logger.info("Connected to docker engine")
            return self._client

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None:
                try:
                    self._client.close()
                except Exception as e:
                    logger.debug(f"Error closing docker client: {e}")
                self._client = None

    @engine_call(timeout_error=EngineConnectionError, not_found_error=ProtocolError)
    def list_containers(self) -> List[ContainerMeta]:
        raw = self._get_client().api.containers(all=True)
        if not isinstance(raw, list):
            raise ProtocolError(f"container list is {type(raw).__name__}, expected list")
        return [self._parse_container(entry) for entry in raw]

    @engine_call()
    def fetch_stats(self, container_id: str) -> RawStats:
        stats = self._get_client().api.stats(container_id, stream=False, one_shot=True)
        read_at = time.monotonic()
        if not isinstance(stats, dict):
            raise ProtocolError(f"stats for {container_id} is {type(stats).__name__}, expected dict")
        return self._parse_stats(container_id, stats, read_at)

    @staticmethod
    def _parse_container(entry: Dict[str, Any]) -> ContainerMeta:
        container_id = entry['Id']
        names = entry.get('Names') or []
        name = names[0].lstrip('/') if names else container_id[:12]
        status = entry.get('State') or 'unknown'
        if status not in CONTAINER_STATUSES:
            logger.debug(f"Unknown container state {status!r} for {name}")
        return ContainerMeta(
            id=container_id,
            name=name,
            image=entry.get('Image') or 'unknown',
            status=status,
            created=int(entry.get('Created') or 0),
        )

    @staticmethod
    def _parse_stats(container_id: str, stats: Dict[str, Any], read_at: float) -> RawStats:
        cpu_stats = stats.get('cpu_stats') or {}
        cpu_usage = cpu_stats.get('cpu_usage') or {}
        cpu_total = int(cpu_usage.get('total_usage') or 0)
        online_cpus = cpu_stats.get('online_cpus') or len(cpu_usage.get('percpu_usage') or []) or 1

        memory_stats = stats.get('memory_stats') or {}
        usage = int(memory_stats.get('usage') or 0)
        limit = int(memory_stats.get('limit') or 0)

        # Same cache accounting as `docker stats`: cgroup v2 reports inactive_file,
        # cgroup v1 total_inactive_file
        detail = memory_stats.get('stats') or {}
        cache = detail.get('inactive_file', detail.get('total_inactive_file', 0)) or 0
        if 0 < cache <= usage:
            usage -= int(cache)

        return RawStats(
            container_id=container_id,
            cpu_total_ns=cpu_total,
            mem_usage_bytes=usage,
            mem_limit_bytes=limit,
            online_cpus=int(online_cpus),
            read_at=read_at,
        )

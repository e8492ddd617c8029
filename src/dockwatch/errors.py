"""Failure taxonomy for calls into the container engine.

Every error the engine adapter raises is one of the four kinds below, so
the sampler can decide per kind whether a cycle is unreachable, degraded or
simply missing a container that went away.
"""


class EngineError(Exception):
    """Base class for all engine adapter failures."""


class EngineConnectionError(EngineError):
    """Engine socket unreachable or the connection dropped."""


class EngineTimeout(EngineError):
    """A single request exceeded its bounded timeout."""


class ContainerNotFound(EngineError):
    """Container vanished between listing and the stats request."""


class ProtocolError(EngineError):
    """Engine answered with something we could not parse."""

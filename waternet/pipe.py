"""Directed, capacity-bounded pipes."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import InvalidArgumentError


def pipe_id(origin: str, destination: str) -> str:
    """Identifier of the pipe joining ``origin`` to ``destination``."""
    return f"{origin}-{destination}"


@dataclass(frozen=True)
class Pipe:
    """Represents a directed edge in the network graph.

    Endpoints are stored as node ids and resolved through the owning
    :class:`~waternet.network.Network`.
    """

    origin: str  # upstream node id
    destination: str  # downstream node id
    capacity: float

    def __post_init__(self) -> None:
        if not self.capacity > 0:
            raise InvalidArgumentError(
                f"Pipe {self.origin}-{self.destination} capacity must be positive, got {self.capacity}"
            )

    @property
    def id(self) -> str:
        return pipe_id(self.origin, self.destination)

"""Node variants of a water distribution network.

A node is identified by a unique string id, sits at a fixed
:class:`~waternet.coordinate.Coordinate` and carries a valve that can be
opened or closed.  Three variants exist:

* :class:`Source` injects water, bounded by its output capacity.
* :class:`Consumer` withdraws water according to its current demand and keeps
  the set of clients subscribed to it.
* :class:`Junction` is a pass-through point with no attributes of its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional, Set

from .coordinate import Coordinate
from .errors import InvalidArgumentError


@dataclass(eq=False)
class Node:
    """Represents a node in the network graph."""

    kind: ClassVar[str] = "node"

    id: str
    coordinate: Coordinate
    valve_open: bool = True

    def open_valve(self) -> None:
        self.valve_open = True

    def close_valve(self) -> None:
        self.valve_open = False

    def as_source(self) -> Optional["Source"]:
        """Return this node as a :class:`Source`, or ``None`` for other variants."""
        return None

    def as_consumer(self) -> Optional["Consumer"]:
        """Return this node as a :class:`Consumer`, or ``None`` for other variants."""
        return None

    def __repr__(self) -> str:
        state = "open" if self.valve_open else "closed"
        return f"{type(self).__name__}({self.id!r}, {state})"


@dataclass(eq=False, repr=False)
class Source(Node):
    """Node injecting water into the network."""

    kind: ClassVar[str] = "source"

    output: float = 0.0

    def __post_init__(self) -> None:
        if self.output < 0:
            raise InvalidArgumentError(f"Source {self.id} output must be non-negative, got {self.output}")

    def set_output(self, value: float) -> None:
        if value < 0:
            raise InvalidArgumentError(f"Source {self.id} output must be non-negative, got {value}")
        self.output = value

    def as_source(self) -> Optional["Source"]:
        return self


@dataclass(eq=False, repr=False)
class Consumer(Node):
    """Node withdrawing water.

    ``peak_demand`` is the nominal ceiling fixed at creation time, while
    ``current_demand`` is what the node asks for right now (initially 0).
    """

    kind: ClassVar[str] = "consumer"

    peak_demand: float = 0.0
    current_demand: float = 0.0
    subscribers: Set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        if self.peak_demand < 0:
            raise InvalidArgumentError(f"Consumer {self.id} peak demand must be non-negative, got {self.peak_demand}")
        if self.current_demand < 0:
            raise InvalidArgumentError(f"Consumer {self.id} demand must be non-negative, got {self.current_demand}")

    def set_demand(self, value: float) -> None:
        if value < 0:
            raise InvalidArgumentError(f"Consumer {self.id} demand must be non-negative, got {value}")
        self.current_demand = value

    def has_subscriber(self, client_id: str) -> bool:
        return client_id in self.subscribers

    def subscribe(self, client_id: str) -> bool:
        """Add ``client_id``; return ``True`` if it was already subscribed."""
        if client_id in self.subscribers:
            return True
        self.subscribers.add(client_id)
        return False

    def as_consumer(self) -> Optional["Consumer"]:
        return self


@dataclass(eq=False, repr=False)
class Junction(Node):
    """Pass-through node with neither own demand nor own supply."""

    kind: ClassVar[str] = "junction"

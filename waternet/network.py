"""Water distribution network model.

The :class:`Network` owns every node and pipe.  Nodes and pipes live in
id-keyed dictionaries, while connectivity is indexed by a
:class:`networkx.DiGraph` whose nodes are node ids and whose edges carry the
pipe ``id`` and ``capacity``.  Pipes refer to their endpoints by id only, so
no object holds a reference back to the network.

Besides mutation and lookup, the network evaluates the idealised demand and
flow at every node.  Demand travels downstream-to-upstream: a consumer asks
for its current demand, and every other node asks for the sum of what its
outgoing pipes request.  A pipe requests a share of its destination's demand
proportional to its capacity among the incoming pipes that can actually be
fed by a source.  Flow then travels upstream-to-downstream: a source delivers
``min(output, demand)`` and every other node receives the sum of its incoming
pipe flows, each pipe scaled down by its origin's shortfall ratio.  Values are
recomputed from the current state on every call; nothing is cached.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterator, List, Optional, Set, Union

import networkx as nx

from .config import AnalysisConfig, DEFAULT_CONFIG
from .coordinate import Coordinate
from .errors import (
    DuplicateIdError,
    InvalidArgumentError,
    NotFoundError,
    PreconditionError,
)
from .nodes import Consumer, Junction, Node, Source
from .pipe import Pipe, pipe_id


logger = logging.getLogger(__name__)

NodeRef = Union[str, Node]


def _ref(node: NodeRef) -> str:
    return node.id if isinstance(node, Node) else node


class Network:
    """Directed graph of sources, junctions and consumers joined by pipes."""

    def __init__(self, config: Optional[AnalysisConfig] = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self._graph = nx.DiGraph()
        self._nodes: Dict[str, Node] = {}
        self._pipes: Dict[str, Pipe] = {}
        # Each entry is the id of a node whose valve was flipped, or None when
        # the requested toggle left the valve unchanged.
        self._history: List[Optional[str]] = []

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    @property
    def graph(self) -> nx.DiGraph:
        """Read-only view of the underlying NetworkX directed graph."""

        return self._graph.copy(as_view=True)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        if isinstance(node, Node):
            return self._nodes.get(node.id) is node
        return node in self._nodes

    def nodes(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))

    def pipes(self) -> Iterator[Pipe]:
        return iter(list(self._pipes.values()))

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def has_pipe(self, pipe: Union[str, Pipe]) -> bool:
        key = pipe.id if isinstance(pipe, Pipe) else pipe
        return key in self._pipes

    def node(self, node: NodeRef) -> Node:
        """Return the node with the given id.

        :raises NotFoundError: If no such node exists.
        """
        node_id = _ref(node)
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NotFoundError(f"Node {node_id} does not belong to the network") from None

    def pipe(self, pipe_key: str) -> Pipe:
        """Return the pipe with id ``"origin-destination"``.

        :raises NotFoundError: If no such pipe exists.
        """
        try:
            return self._pipes[pipe_key]
        except KeyError:
            raise NotFoundError(f"Pipe {pipe_key} does not belong to the network") from None

    def source(self, node: NodeRef) -> Source:
        """Return the node as a :class:`Source`, raising if it is absent or another variant."""
        found = self.node(node).as_source()
        if found is None:
            raise NotFoundError(f"{_ref(node)} is not a source")
        return found

    def consumer(self, node: NodeRef) -> Consumer:
        """Return the node as a :class:`Consumer`, raising if it is absent or another variant."""
        found = self.node(node).as_consumer()
        if found is None:
            raise NotFoundError(f"{_ref(node)} is not a consumer")
        return found

    def incoming(self, node: NodeRef) -> List[Pipe]:
        """Pipes whose destination is ``node``."""
        node_id = self.node(node).id
        return [self._pipes[data["id"]] for _, _, data in self._graph.in_edges(node_id, data=True)]

    def outgoing(self, node: NodeRef) -> List[Pipe]:
        """Pipes whose origin is ``node``."""
        node_id = self.node(node).id
        return [self._pipes[data["id"]] for _, _, data in self._graph.out_edges(node_id, data=True)]

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def _add(self, node: Node) -> Node:
        if node.id in self._nodes:
            raise DuplicateIdError(f"A node named {node.id} already exists in the network")
        self._nodes[node.id] = node
        self._graph.add_node(node.id)
        logger.debug("Added %s %s at %s", node.kind, node.id, node.coordinate)
        return node

    def add_source(self, node_id: str, coordinate: Coordinate) -> Source:
        return self._add(Source(node_id, coordinate))

    def add_consumer(self, node_id: str, coordinate: Coordinate, peak_demand: float) -> Consumer:
        if node_id in self._nodes:
            raise DuplicateIdError(f"A node named {node_id} already exists in the network")
        return self._add(Consumer(node_id, coordinate, peak_demand=peak_demand))

    def add_junction(self, node_id: str, coordinate: Coordinate) -> Junction:
        return self._add(Junction(node_id, coordinate))

    def connect(self, origin: NodeRef, destination: NodeRef, capacity: float) -> Pipe:
        """Join ``origin`` to ``destination`` with a pipe of the given capacity.

        A source that becomes the destination of a pipe can no longer act as
        a source and is replaced in place by a junction with the same id,
        coordinate and valve state.

        :raises NotFoundError: If either node is absent.
        :raises InvalidArgumentError: If ``origin`` is a consumer, the
            capacity is not positive or the pair is already connected.
        """
        origin_node = self.node(origin)
        destination_node = self.node(destination)
        if origin_node.as_consumer() is not None:
            raise InvalidArgumentError(f"Pipe cannot start at consumer {origin_node.id}")
        if self._graph.has_edge(origin_node.id, destination_node.id):
            raise InvalidArgumentError(f"{origin_node.id} and {destination_node.id} are already connected")
        pipe = Pipe(origin_node.id, destination_node.id, capacity)
        if pipe.id in self._pipes:
            raise InvalidArgumentError(f"Pipe id {pipe.id} is already used by another connection")

        if destination_node.as_source() is not None:
            replacement = Junction(
                destination_node.id,
                destination_node.coordinate,
                valve_open=destination_node.valve_open,
            )
            self._nodes[replacement.id] = replacement
            logger.info("Source %s receives inflow and becomes a junction", replacement.id)

        self._pipes[pipe.id] = pipe
        self._graph.add_edge(pipe.origin, pipe.destination, id=pipe.id, capacity=pipe.capacity)
        logger.debug("Connected %s with capacity %s", pipe.id, pipe.capacity)
        return pipe

    def open_valve(self, node: NodeRef) -> None:
        target = self.node(node)
        if target.valve_open:
            self._history.append(None)
        else:
            target.open_valve()
            self._history.append(target.id)
        logger.debug("Open valve %s (history depth %d)", target.id, len(self._history))

    def close_valve(self, node: NodeRef) -> None:
        target = self.node(node)
        if target.valve_open:
            target.close_valve()
            self._history.append(target.id)
        else:
            self._history.append(None)
        logger.debug("Close valve %s (history depth %d)", target.id, len(self._history))

    @property
    def history_depth(self) -> int:
        """Number of valve operations that can still be undone."""
        return len(self._history)

    def undo(self, steps: int) -> int:
        """Revert the last ``steps`` valve operations.

        Fewer steps are reverted when the history runs out.  Operations that
        did not change a valve consume a step without touching any node.

        :returns: The number of history entries consumed.
        :raises InvalidArgumentError: If ``steps`` is not positive.
        """
        if steps <= 0:
            raise InvalidArgumentError(f"Undo steps must be positive, got {steps}")
        undone = 0
        while undone < steps and self._history:
            node_id = self._history.pop()
            if node_id is not None:
                node = self._nodes[node_id]
                if node.valve_open:
                    node.close_valve()
                else:
                    node.open_valve()
            undone += 1
        logger.debug("Undid %d of %d requested valve operations", undone, steps)
        return undone

    def subscribe(self, client_id: str, consumer: NodeRef) -> bool:
        """Subscribe a client to a consumer.

        :returns: ``True`` if the client was already subscribed.
        :raises NotFoundError: If the consumer is absent or not a consumer.
        """
        return self.consumer(consumer).subscribe(client_id)

    def set_source_output(self, source: NodeRef, value: float) -> None:
        target = self.source(source)
        target.set_output(value)
        logger.debug("Source %s output set to %s", target.id, value)

    def set_consumer_demand(self, consumer: NodeRef, value: float) -> None:
        target = self.consumer(consumer)
        target.set_demand(value)
        logger.debug("Consumer %s demand set to %s", target.id, value)

    # ------------------------------------------------------------------
    # Demand and flow propagation
    # ------------------------------------------------------------------
    def reaches_source(self, node: NodeRef) -> bool:
        """Whether water from some source can reach ``node`` through open valves."""
        start = self.node(node).id
        visited: Set[str] = set()
        stack = [start]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            current_node = self._nodes[current]
            if not current_node.valve_open:
                continue
            if current_node.as_source() is not None:
                return True
            stack.extend(origin for origin, _ in self._graph.in_edges(current))
        return False

    def _inflow_capacity(self, node_id: str) -> float:
        # Pipes that can never carry water do not take a share of the demand.
        return sum(
            data["capacity"]
            for origin, _, data in self._graph.in_edges(node_id, data=True)
            if self.reaches_source(origin)
        )

    def _demand(self, node_id: str, bounded: bool, path: Set[str]) -> float:
        node = self._nodes[node_id]
        if not node.valve_open:
            return 0.0
        consumer = node.as_consumer()
        if consumer is not None:
            return consumer.current_demand
        if node_id in path:
            raise PreconditionError(f"Demand at {node_id} depends on itself through a cycle")
        path.add(node_id)
        try:
            return sum(
                self._propagated_demand(self._pipes[data["id"]], bounded, path)
                for _, _, data in self._graph.out_edges(node_id, data=True)
            )
        finally:
            path.discard(node_id)

    def _propagated_demand(self, pipe: Pipe, bounded: bool, path: Set[str]) -> float:
        total_demand = self._demand(pipe.destination, bounded, path)
        total_capacity = self._inflow_capacity(pipe.destination)
        if total_capacity <= 0:
            return 0.0
        if bounded and total_demand >= total_capacity:
            return pipe.capacity
        return pipe.capacity / total_capacity * total_demand

    def _flow(self, node_id: str, bounded: bool, path: Set[str]) -> float:
        node = self._nodes[node_id]
        if not node.valve_open:
            return 0.0
        source = node.as_source()
        if source is not None:
            return min(source.output, self._demand(node_id, bounded, set()))
        if node_id in path:
            raise PreconditionError(f"Flow at {node_id} depends on itself through a cycle")
        path.add(node_id)
        try:
            return sum(
                self._flow_entering(self._pipes[data["id"]], bounded, path)
                for _, _, data in self._graph.in_edges(node_id, data=True)
            )
        finally:
            path.discard(node_id)

    def _flow_entering(self, pipe: Pipe, bounded: bool, path: Set[str]) -> float:
        demand = self._demand(pipe.origin, bounded, set())
        supplied = self._flow(pipe.origin, bounded, path)
        requested = self._propagated_demand(pipe, bounded, set())
        if supplied >= demand:
            return requested
        if demand == 0:
            return 0.0
        return requested / demand * supplied

    def demand_at(self, node: NodeRef, *, bounded: bool = True) -> float:
        """Theoretical demand at ``node`` under the current configuration.

        With ``bounded=False`` pipes request their proportional share even
        when it exceeds their capacity.

        :raises NotFoundError: If the node is absent.
        :raises PreconditionError: If the demand depends on itself through a cycle.
        """
        return self._demand(self.node(node).id, bounded, set())

    def flow_at(self, node: NodeRef, *, bounded: bool = True) -> float:
        """Theoretical flow at ``node`` under the current configuration.

        :raises NotFoundError: If the node is absent.
        :raises PreconditionError: If the flow depends on itself through a cycle.
        """
        return self._flow(self.node(node).id, bounded, set())

    def propagated_demand(self, pipe_key: str, *, bounded: bool = True) -> float:
        """Demand the destination of a pipe requests through it."""
        return self._propagated_demand(self.pipe(pipe_key), bounded, set())

    def pipe_flow(self, pipe_key: str, *, bounded: bool = True) -> float:
        """Theoretical flow carried by a pipe."""
        return self._flow_entering(self.pipe(pipe_key), bounded, set())

    def client_flow(self, client_id: str) -> float:
        """Flow at the consumer ``client_id`` is subscribed to.

        :raises NotFoundError: If no consumer lists the client.
        """
        for node in self._nodes.values():
            consumer = node.as_consumer()
            if consumer is not None and consumer.has_subscriber(client_id):
                return self.flow_at(consumer.id)
        raise NotFoundError(f"Client {client_id} is not subscribed to any consumer")

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------
    def connected_component(self, node: NodeRef) -> "Network":
        """Sub-network of every node linked to ``node`` by pipes in either direction.

        The returned network shares node objects with this one and has an
        empty valve history; it is meant for read-only analysis and display.
        """
        start = self.node(node).id
        members = nx.node_connected_component(self._graph.to_undirected(as_view=True), start)
        component = Network(self.config)
        for node_id, member in self._nodes.items():
            if node_id in members:
                component._nodes[node_id] = member
                component._graph.add_node(node_id)
        for key, pipe in self._pipes.items():
            if pipe.origin in members:
                component._pipes[key] = pipe
                component._graph.add_edge(pipe.origin, pipe.destination, id=key, capacity=pipe.capacity)
        return component

    def __repr__(self) -> str:
        return f"Network(nodes={len(self._nodes)}, pipes={len(self._pipes)})"

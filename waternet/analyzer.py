"""Stateless analyses over a :class:`~waternet.network.Network`.

All functions take a network plus plain inputs and return plain values or
collections; none of them mutates the network.  Structural analyses work on
the connected component of a source, i.e. every node linked to it through
pipes in either direction:

* :func:`has_cycle` / :func:`is_tree` inspect the component's shape.
* :func:`minimum_source_flow` sums the supply needed to give every reachable
  consumer a percentage of its demand.
* :func:`excess_capacity` finds pipes whose theoretical inflow exceeds their
  capacity.
* :func:`valves_to_close` finds the highest valves to close so that the
  network agrees with a report of which consumers receive water.
* :func:`order_by_distance` sorts nodes by distance to a coordinate.
* :func:`max_flow` runs Ford-Fulkerson on an auxiliary graph where all
  sources are merged into a super-source and all consumers into a
  super-terminal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

import networkx as nx

from .config import AnalysisConfig, DEFAULT_CONFIG
from .coordinate import Coordinate
from .errors import InvalidArgumentError, PreconditionError
from .network import Network, NodeRef
from .nodes import Node
from .pipe import Pipe


logger = logging.getLogger(__name__)

SUPER_SOURCE = "super-source"
SUPER_TERMINAL = "super-terminal"

Arc = Tuple[str, str]


def _node_id(node: NodeRef) -> str:
    return node.id if isinstance(node, Node) else node


# ----------------------------------------------------------------------
# Cycles and trees
# ----------------------------------------------------------------------
def _in_lists(component: Network) -> Dict[str, List[str]]:
    """Map each node id to the ids of the nodes with a pipe into it."""
    return {node.id: [pipe.origin for pipe in component.incoming(node)] for node in component.nodes()}


def _cycle_through(in_lists: Dict[str, List[str]], node_id: str, path: Set[str]) -> bool:
    if node_id in path:
        return True
    path.add(node_id)
    try:
        return any(_cycle_through(in_lists, origin, path) for origin in in_lists.get(node_id, ()))
    finally:
        path.discard(node_id)


def _component_has_cycle(component: Network) -> bool:
    in_lists = _in_lists(component)
    return any(_cycle_through(in_lists, node_id, set()) for node_id in in_lists)


def has_cycle(network: Network, source: NodeRef) -> bool:
    """Whether the component containing ``source`` has a directed cycle.

    :raises NotFoundError: If ``source`` is absent or not a source.
    """
    component = network.connected_component(network.source(source))
    return _component_has_cycle(component)


def is_tree(network: Network, source: NodeRef) -> bool:
    """Whether the component containing ``source`` is a tree rooted at a single source.

    The component must be acyclic, have exactly one pipe fewer than it has
    nodes, and contain exactly one source.
    """
    component = network.connected_component(network.source(source))
    roots = sum(1 for node in component.nodes() if node.as_source() is not None)
    edges = sum(1 for _ in component.pipes())
    return not _component_has_cycle(component) and edges == len(component) - 1 and roots == 1


# ----------------------------------------------------------------------
# Supply and capacity
# ----------------------------------------------------------------------
def minimum_source_flow(network: Network, source: NodeRef, percent: float) -> float:
    """Minimum total supply so every served consumer gets ``percent`` % of its demand.

    Only consumers of the source's component with an open valve and a path to
    some source through open valves are counted.  A consumer's current
    demand is used when non-zero, otherwise its peak demand.

    :raises NotFoundError: If ``source`` is absent or not a source.
    :raises InvalidArgumentError: If ``percent`` is negative.
    :raises PreconditionError: If the component has a cycle.
    """
    if percent < 0:
        raise InvalidArgumentError(f"Service percentage must be non-negative, got {percent}")
    component = network.connected_component(network.source(source))
    if _component_has_cycle(component):
        logger.warning("Minimum flow requested on cyclic component of %s", _node_id(source))
        raise PreconditionError(f"Component of {_node_id(source)} has cycles")
    total = 0.0
    for node in component.nodes():
        consumer = node.as_consumer()
        if consumer is None or not consumer.valve_open:
            continue
        if not network.reaches_source(consumer.id):
            continue
        demand = consumer.current_demand or consumer.peak_demand
        total += demand * (percent / 100)
    return total


def excess_capacity(network: Network, pipes: Iterable[Union[str, Pipe]]) -> Set[Pipe]:
    """Pipes whose theoretical inflow under current demands exceeds their capacity.

    Candidates missing from the network are ignored.  The inflow is the
    unbounded pipe flow, where every pipe requests its proportional share of
    downstream demand regardless of its own capacity.
    """
    tolerance = network.config.tolerance
    exceeded: Set[Pipe] = set()
    for candidate in pipes:
        key = candidate.id if isinstance(candidate, Pipe) else candidate
        if not network.has_pipe(key):
            logger.debug("Ignoring pipe %s, not present in the network", key)
            continue
        pipe = network.pipe(key)
        if network.pipe_flow(key, bounded=False) > pipe.capacity + tolerance:
            exceeded.add(pipe)
    return exceeded


# ----------------------------------------------------------------------
# Valve closures
# ----------------------------------------------------------------------
def _has_candidate_upstream(network: Network, node_id: str, candidates: Set[str], visited: Set[str]) -> bool:
    for pipe in network.incoming(node_id):
        origin = pipe.origin
        if origin in candidates:
            return True
        if origin in visited:
            continue
        visited.add(origin)
        if _has_candidate_upstream(network, origin, candidates, visited):
            return True
    return False


def valves_to_close(network: Network, service_status: Mapping[NodeRef, bool]) -> Set[Node]:
    """Topmost nodes whose valves explain the consumers reported without water.

    ``service_status`` maps consumers to whether they currently receive
    water.  For every consumer reported dry whose own valve is open, the
    origins of its incoming pipes are closure candidates.  Candidates below
    another candidate are dropped, since closing the upper one suffices.

    :raises NotFoundError: If a key is absent or not a consumer.
    :raises PreconditionError: If a referenced consumer's component has a cycle.
    """
    checked: Set[str] = set()
    candidates: Dict[str, Node] = {}
    for key, receives_water in service_status.items():
        consumer = network.consumer(key)
        if consumer.id not in checked:
            component = network.connected_component(consumer)
            if _component_has_cycle(component):
                raise PreconditionError(f"Component of {consumer.id} is not a tree")
            checked.update(node.id for node in component.nodes())
        if receives_water or not consumer.valve_open:
            continue
        for pipe in network.incoming(consumer):
            candidates[pipe.origin] = network.node(pipe.origin)

    names = set(candidates)
    return {
        node
        for node_id, node in candidates.items()
        if not _has_candidate_upstream(network, node_id, names, set())
    }


# ----------------------------------------------------------------------
# Proximity
# ----------------------------------------------------------------------
def order_by_distance(
    coordinate: Coordinate,
    nodes: Iterable[Node],
    config: Optional[AnalysisConfig] = None,
) -> List[Node]:
    """Nodes sorted by ascending distance to ``coordinate``, ties by ascending id.

    A node given more than once (same id) appears once.
    """
    radius = (config or DEFAULT_CONFIG).earth_radius_km
    unique: Dict[str, Node] = {}
    for node in nodes:
        unique.setdefault(node.id, node)
    return sorted(
        unique.values(),
        key=lambda node: (coordinate.distance_to(node.coordinate, radius), node.id),
    )


# ----------------------------------------------------------------------
# Maximum flow
# ----------------------------------------------------------------------
@dataclass
class MaxFlowResult:
    """Outcome of :func:`max_flow`.

    ``flows`` and ``capacities`` are keyed by auxiliary edge ``(u, v)``, where
    every source id is replaced by :data:`SUPER_SOURCE` and every consumer id
    by :data:`SUPER_TERMINAL`.
    """

    value: float
    flows: Dict[Arc, float]
    capacities: Dict[Arc, float]
    graph: nx.DiGraph
    aliases: Dict[str, str] = field(default_factory=dict)

    def flow_between(self, origin: str, destination: str) -> float:
        """Flow on the auxiliary edge standing for the pipe ``origin -> destination``."""
        arc = (self.aliases.get(origin, origin), self.aliases.get(destination, destination))
        return self.flows.get(arc, 0.0)


def _add_arc(graph: nx.DiGraph, u: str, v: str, capacity: float) -> None:
    for a, b in ((u, v), (v, u)):
        if not graph.has_edge(a, b):
            graph.add_edge(a, b, capacity=0.0, residual=0.0)
    graph[u][v]["capacity"] += capacity
    graph[u][v]["residual"] += capacity


def build_max_flow_graph(network: Network, source: NodeRef) -> Tuple[nx.DiGraph, Dict[str, str]]:
    """Residual graph for the component of ``source``.

    Pipes leaving sources start at :data:`SUPER_SOURCE`, pipes entering
    consumers end at :data:`SUPER_TERMINAL`, and parallel contributions are
    merged by summing capacities.  Every arc ``u -> v`` is paired with a
    reverse arc ``v -> u``; each arc stores its original ``capacity`` and its
    remaining ``residual``.

    :returns: The graph and the mapping from node id to auxiliary node id.
    """
    component = network.connected_component(network.source(source))
    graph = nx.DiGraph()
    graph.add_node(SUPER_SOURCE)
    graph.add_node(SUPER_TERMINAL)
    aliases: Dict[str, str] = {}
    for node in component.nodes():
        if node.id in (SUPER_SOURCE, SUPER_TERMINAL):
            raise PreconditionError(f"Node id {node.id} is reserved for the max-flow graph")
        if node.as_source() is not None:
            aliases[node.id] = SUPER_SOURCE
        elif node.as_consumer() is not None:
            aliases[node.id] = SUPER_TERMINAL
        else:
            aliases[node.id] = node.id
    for pipe in component.pipes():
        _add_arc(graph, aliases[pipe.origin], aliases[pipe.destination], pipe.capacity)
    return graph, aliases


def _augmenting_path(
    graph: nx.DiGraph,
    current: str,
    target: str,
    visited: Set[str],
    path: List[str],
    tolerance: float,
) -> bool:
    if current == target:
        return True
    for neighbour, data in graph.adj[current].items():
        if neighbour in visited or data["residual"] <= tolerance:
            continue
        visited.add(neighbour)
        path.append(neighbour)
        if _augmenting_path(graph, neighbour, target, visited, path, tolerance):
            return True
        path.pop()
    return False


def max_flow(network: Network, source: NodeRef) -> MaxFlowResult:
    """Maximum flow from all sources to all consumers in the component of ``source``.

    Uses Ford-Fulkerson with depth-first augmenting paths.  Valve states
    are ignored; only pipe capacities bound the flow.
    """
    graph, aliases = build_max_flow_graph(network, source)
    tolerance = network.config.tolerance
    value = 0.0
    while True:
        path = [SUPER_SOURCE]
        if not _augmenting_path(graph, SUPER_SOURCE, SUPER_TERMINAL, {SUPER_SOURCE}, path, tolerance):
            break
        arcs = list(zip(path, path[1:]))
        bottleneck = min(graph[u][v]["residual"] for u, v in arcs)
        for u, v in arcs:
            graph[u][v]["residual"] -= bottleneck
            graph[v][u]["residual"] += bottleneck
        value += bottleneck
        logger.debug("Augmenting path %s carries %s", " -> ".join(path), bottleneck)

    flows: Dict[Arc, float] = {}
    capacities: Dict[Arc, float] = {}
    for u, v, data in graph.edges(data=True):
        if data["capacity"] > 0:
            capacities[(u, v)] = data["capacity"]
            flows[(u, v)] = max(0.0, data["capacity"] - data["residual"])
    logger.debug("Maximum flow for component of %s is %s", _node_id(source), value)
    return MaxFlowResult(value=value, flows=flows, capacities=capacities, graph=graph, aliases=aliases)

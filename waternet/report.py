"""Tabular views of a network for reporting and display.

The frames are long-form :class:`pandas.DataFrame` objects with a stable
column order, sorted by id so that repeated calls produce identical output.
"""

from __future__ import annotations

from typing import Any, Dict, List

import pandas as pd

from .analyzer import MaxFlowResult
from .network import Network


NODE_COLUMNS = [
    "id",
    "kind",
    "latitude",
    "longitude",
    "valve_open",
    "demand",
    "flow",
    "output",
    "peak_demand",
    "current_demand",
]
PIPE_COLUMNS = ["id", "origin", "destination", "capacity", "flow", "requested", "over_capacity"]
MAX_FLOW_COLUMNS = ["origin", "destination", "capacity", "flow"]


def node_frame(network: Network) -> pd.DataFrame:
    """One row per node with its attributes and theoretical demand and flow.

    ``output`` is only set for sources; ``peak_demand`` and ``current_demand``
    only for consumers.  Missing values are ``NaN``.
    """
    rows: List[Dict[str, Any]] = []
    for node in network.nodes():
        source = node.as_source()
        consumer = node.as_consumer()
        rows.append(
            {
                "id": node.id,
                "kind": node.kind,
                "latitude": node.coordinate.latitude,
                "longitude": node.coordinate.longitude,
                "valve_open": node.valve_open,
                "demand": network.demand_at(node),
                "flow": network.flow_at(node),
                "output": source.output if source else None,
                "peak_demand": consumer.peak_demand if consumer else None,
                "current_demand": consumer.current_demand if consumer else None,
            }
        )
    df = pd.DataFrame(rows, columns=NODE_COLUMNS)
    return df.sort_values("id", ignore_index=True)


def pipe_frame(network: Network) -> pd.DataFrame:
    """One row per pipe.

    ``flow`` is the bounded theoretical flow, ``requested`` the unbounded
    inflow the pipe would need to carry, and ``over_capacity`` flags pipes
    where ``requested`` exceeds ``capacity``.
    """
    tolerance = network.config.tolerance
    rows: List[Dict[str, Any]] = []
    for pipe in network.pipes():
        requested = network.pipe_flow(pipe.id, bounded=False)
        rows.append(
            {
                "id": pipe.id,
                "origin": pipe.origin,
                "destination": pipe.destination,
                "capacity": pipe.capacity,
                "flow": network.pipe_flow(pipe.id),
                "requested": requested,
                "over_capacity": requested > pipe.capacity + tolerance,
            }
        )
    df = pd.DataFrame(rows, columns=PIPE_COLUMNS)
    return df.sort_values("id", ignore_index=True)


def max_flow_frame(result: MaxFlowResult) -> pd.DataFrame:
    """One row per auxiliary edge of a max-flow result."""
    rows = [
        {"origin": u, "destination": v, "capacity": capacity, "flow": result.flows.get((u, v), 0.0)}
        for (u, v), capacity in result.capacities.items()
    ]
    df = pd.DataFrame(rows, columns=MAX_FLOW_COLUMNS)
    return df.sort_values(["origin", "destination"], ignore_index=True)

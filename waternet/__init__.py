"""
Water distribution network analysis

Models a directed network of sources, junctions and consumers joined by
capacity-bounded pipes, and computes theoretical demand and flow, structural
properties, valve closures and maximum flow.
"""

from .config import AnalysisConfig, configure_logging, load_config
from .coordinate import Coordinate
from .errors import (
    DuplicateIdError,
    InvalidArgumentError,
    NetworkError,
    NotFoundError,
    PreconditionError,
)
from .nodes import Consumer, Junction, Node, Source
from .pipe import Pipe
from .network import Network
from .analyzer import (
    MaxFlowResult,
    excess_capacity,
    has_cycle,
    is_tree,
    max_flow,
    minimum_source_flow,
    order_by_distance,
    valves_to_close,
)
from .report import max_flow_frame, node_frame, pipe_frame

__version__ = "0.1.0"

__all__ = [
    'AnalysisConfig',
    'configure_logging',
    'load_config',
    'Coordinate',
    'NetworkError',
    'DuplicateIdError',
    'NotFoundError',
    'InvalidArgumentError',
    'PreconditionError',
    'Node',
    'Source',
    'Consumer',
    'Junction',
    'Pipe',
    'Network',
    'MaxFlowResult',
    'has_cycle',
    'is_tree',
    'minimum_source_flow',
    'excess_capacity',
    'valves_to_close',
    'order_by_distance',
    'max_flow',
    'node_frame',
    'pipe_frame',
    'max_flow_frame',
]

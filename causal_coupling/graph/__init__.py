"""Coupling graph model, validation and loading."""

from .io import dump_graph, load_graph
from .model import (
    Alignment,
    CouplingGraph,
    Direction,
    Edge,
    EdgeType,
    Gate,
    GraphDefaults,
    GraphMeta,
    GraphNode,
    Impact,
    ImpactFunction,
    ImpactMode,
    TriggerKind,
    TriggerSpec,
)
from .validator import GraphValidationError, ValidationResult, validate

__all__ = [
    "Alignment",
    "CouplingGraph",
    "Direction",
    "Edge",
    "EdgeType",
    "Gate",
    "GraphDefaults",
    "GraphMeta",
    "GraphNode",
    "GraphValidationError",
    "Impact",
    "ImpactFunction",
    "ImpactMode",
    "TriggerKind",
    "TriggerSpec",
    "ValidationResult",
    "dump_graph",
    "load_graph",
    "validate",
]

"""causal_coupling package initialization."""

from __future__ import annotations

from .config import EngineConfig, configure_logging, load_config
from .engine import (
    CouplingSession,
    EvaluationResult,
    TriggerRuntime,
    compute_active_triggers,
    evaluate,
    resolve,
    sample,
)
from .forensics import normalize, validate_breakdown
from .graph import CouplingGraph, GraphValidationError, load_graph, validate
from .signals import Sample, Signal, SignalRange, signals_from_dicts

__all__ = [
    "CouplingGraph",
    "CouplingSession",
    "EngineConfig",
    "EvaluationResult",
    "GraphValidationError",
    "Sample",
    "Signal",
    "SignalRange",
    "TriggerRuntime",
    "compute_active_triggers",
    "configure_logging",
    "evaluate",
    "load_config",
    "load_graph",
    "normalize",
    "resolve",
    "sample",
    "signals_from_dicts",
    "validate",
    "validate_breakdown",
]

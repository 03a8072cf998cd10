"""Trigger detection, arbitration and evaluation sessions."""

from .breakdown import Breakdown, BlockedImpact
from .resolver import resolve
from .runtime import FiredEvent, TriggerRuntime
from .sampler import mean_in_window, sample
from .session import CouplingSession, EvaluationResult, evaluate
from .triggers import compute_active_triggers

__all__ = [
    "BlockedImpact",
    "Breakdown",
    "CouplingSession",
    "EvaluationResult",
    "FiredEvent",
    "TriggerRuntime",
    "compute_active_triggers",
    "evaluate",
    "mean_in_window",
    "resolve",
    "sample",
]

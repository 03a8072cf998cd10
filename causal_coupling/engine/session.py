"""Evaluation entry points used by host applications."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Set

from ..config import EngineConfig
from ..forensics.reasons import BlockReason
from ..graph.io import load_graph
from ..graph.model import CouplingGraph
from ..graph.validator import GraphValidationError, validate
from ..signals import Signal
from .breakdown import BlockedImpact, Breakdown, Window
from .resolver import resolve
from .runtime import TriggerRuntime
from .triggers import compute_active_triggers

logger = logging.getLogger(__name__)


@dataclass
class EvaluationResult:
    """Resolved values and breakdowns for one tick."""

    values: Dict[str, float] = field(default_factory=dict)
    breakdowns: Dict[str, Breakdown] = field(default_factory=dict)
    active_triggers: Set[str] = field(default_factory=set)
    seek: bool = False


def evaluate(
    signals: Mapping[str, Signal],
    graph: CouplingGraph,
    t: float,
    runtime: TriggerRuntime,
    config: EngineConfig | None = None,
) -> EvaluationResult:
    """Run one tick: detect triggers, then resolve every target.

    ``graph`` must already have passed :func:`~causal_coupling.graph.validate`;
    use :class:`CouplingSession` to have that enforced.
    """

    cfg = config or EngineConfig()
    active = compute_active_triggers(signals, graph, t, runtime, cfg)
    values, breakdowns = resolve(signals, graph, t, active, runtime, cfg)
    return EvaluationResult(values=values, breakdowns=breakdowns, active_triggers=active)


class CouplingSession:
    """Own the runtime of one playback session and evaluate ticks against it.

    The session refuses graphs that fail validation and resets its runtime
    when time jumps backwards by more than ``config.seek_tolerance_ms``.

    Parameters
    ----------
    graph:
        A :class:`CouplingGraph` or a JSON-style mapping / JSON text.
    config:
        Engine configuration; defaults to :class:`EngineConfig`.
    """

    def __init__(
        self,
        graph: CouplingGraph | Mapping[str, Any] | str,
        config: EngineConfig | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.runtime = TriggerRuntime(self.config.fired_log_size)
        self.graph = self._checked(graph)
        self.last_t: Optional[float] = None

    @staticmethod
    def _checked(graph: CouplingGraph | Mapping[str, Any] | str) -> CouplingGraph:
        if isinstance(graph, CouplingGraph):
            result = validate(graph)
            if not result.ok:
                logger.warning("Rejected coupling graph %s", graph.meta.id or "<no id>")
                raise GraphValidationError(result.errors)
            return graph
        return load_graph(graph)

    def replace_graph(self, graph: CouplingGraph | Mapping[str, Any] | str) -> None:
        """Swap in a new graph wholesale, e.g. after an editor applies a draft.

        The runtime is kept; fired events of edges missing from the new graph
        are ignored by the resolver.
        """

        self.graph = self._checked(graph)
        logger.info("Coupling graph replaced with %s", self.graph.meta.id)

    def reset(self) -> None:
        """Clear runtime state and forget the last tick time."""

        self.runtime.reset()
        self.last_t = None

    def tick(self, signals: Mapping[str, Signal], t: float) -> EvaluationResult:
        """Evaluate the graph at ``t``, resetting first on a backward seek."""

        seek_from = None
        if self.last_t is not None and t < self.last_t - self.config.seek_tolerance_ms:
            seek_from = self.last_t
            logger.info("Seek from t=%s to t=%s; resetting trigger runtime", seek_from, t)
            self.runtime.reset()
        self.last_t = t

        result = evaluate(signals, self.graph, t, self.runtime, self.config)
        if seek_from is not None:
            result.seek = True
            result.breakdowns = {
                target: replace(bd, blocked=[*bd.blocked, _seek_entry(target, seek_from, t)])
                for target, bd in result.breakdowns.items()
            }
        return result


def _seek_entry(target: str, seek_from: float, t: float) -> BlockedImpact:
    return BlockedImpact(
        edge_id="runtime",
        reason=BlockReason.NEGATIVE_TIME_JUMP_SEEK,
        severity=BlockReason.NEGATIVE_TIME_JUMP_SEEK.default_severity,
        target_id=target,
        ts_ms=t,
        gate_source="runtime",
        message=f"runtime reset after seek from t={seek_from:g} to t={t:g}",
        window=Window(start=t, end=seek_from, now=t),
    )

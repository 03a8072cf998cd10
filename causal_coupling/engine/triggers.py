"""Deterministic trigger detection for event edges."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Hashable, Mapping, Optional, Set

from ..config import EngineConfig
from ..graph.model import CouplingGraph, Direction, Edge, EdgeType, TriggerKind, TriggerSpec
from ..signals import Sample, Signal
from .runtime import TriggerRuntime
from .sampler import mean_in_window, sample

logger = logging.getLogger(__name__)

Predicate = Callable[[TriggerSpec, Signal, float, float, Optional[float], EngineConfig], bool]


def _threshold_crossing(
    trig: TriggerSpec,
    src: Signal,
    t: float,
    v_now: float,
    v_prev: Optional[float],
    cfg: EngineConfig,
) -> bool:
    thr = trig.threshold
    if thr is None or v_prev is None:
        return False
    rising = v_prev < thr <= v_now
    falling = v_prev >= thr > v_now
    if trig.direction is Direction.RISING:
        return rising
    if trig.direction is Direction.FALLING:
        return falling
    return rising or falling


def _spike(trig, src, t, v_now, v_prev, cfg) -> bool:
    if trig.delta is None or v_prev is None:
        return False
    return abs(v_now - v_prev) >= trig.delta


def _window_mean_above(trig, src, t, v_now, v_prev, cfg) -> bool:
    if trig.window_ms is None or trig.threshold is None:
        return False
    mean = mean_in_window(src.series, t - trig.window_ms, t)
    return mean is not None and mean >= trig.threshold


def _scene_boundary(trig, src, t, v_now, v_prev, cfg) -> bool:
    eps = trig.epsilon if trig.epsilon is not None else cfg.scene_epsilon_ms
    return any(abs(t - mark) <= eps for mark in trig.marks_ms)


PREDICATES: Dict[TriggerKind, Predicate] = {
    TriggerKind.THRESHOLD_CROSSING: _threshold_crossing,
    TriggerKind.SPIKE: _spike,
    TriggerKind.WINDOW_MEAN_ABOVE: _window_mean_above,
    TriggerKind.SCENE_BOUNDARY: _scene_boundary,
}


def cache_key(edge: Edge, cfg: EngineConfig) -> Hashable:
    """Return the previous-sample cache key used for ``edge``."""

    if cfg.trigger_cache_scope == "source":
        return edge.source
    return (edge.id, edge.source)


def is_edge_triggered(
    signals: Mapping[str, Signal],
    edge: Edge,
    t: float,
    runtime: TriggerRuntime,
    config: EngineConfig | None = None,
) -> bool:
    """Evaluate ``edge`` at ``t`` and record fires on ``runtime``.

    A held edge is active without evaluating its predicate. The previous
    sample cache is refreshed on every evaluation that can sample the
    source, held or not.
    """

    cfg = config or EngineConfig()
    held = runtime.is_held(edge.id, t)
    trig = edge.trigger
    src = signals.get(edge.source)
    v_now = sample(src.series, t) if src is not None else None
    if v_now is None:
        return held

    key = cache_key(edge, cfg)
    last = runtime.get_last(key)
    runtime.set_last(key, Sample(t, v_now))
    if held:
        return True
    if trig is None:
        return False

    v_prev = last.v if last is not None else None
    if not PREDICATES[trig.kind](trig, src, t, v_now, v_prev, cfg):
        return False

    runtime.log_fire(edge.id, t)
    if trig.hold_ms > 0:
        runtime.set_hold(edge.id, t + trig.hold_ms)
    logger.debug(
        "Edge %s fired at t=%s (%s, prev=%s, now=%s)",
        edge.id,
        t,
        trig.kind.value,
        v_prev,
        v_now,
    )
    return True


def compute_active_triggers(
    signals: Mapping[str, Signal],
    graph: CouplingGraph,
    t: float,
    runtime: TriggerRuntime,
    config: EngineConfig | None = None,
) -> Set[str]:
    """Return ids of event edges active at ``t``.

    Edges are evaluated in the graph's declared order.
    """

    cfg = config or EngineConfig()
    active: Set[str] = set()
    for edge in graph.edges:
        if edge.type is not EdgeType.EVENT:
            continue
        if is_edge_triggered(signals, edge, t, runtime, cfg):
            active.add(edge.id)
    return active

"""Two-layer arbitration of coupling impacts.

Every candidate impact on a target is ordered by ``(priority desc, edge id
asc)``. If any candidate is in ``replace`` mode the first one wins outright and
all ``blend`` candidates are suppressed; otherwise the blend layer adds the
``add``/``linear`` contributions and then multiplies by the ``mul`` factors.
Each decision is recorded in a :class:`~causal_coupling.engine.breakdown.Breakdown`.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import DefaultDict, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from ..config import EngineConfig
from ..forensics.reasons import BlockReason
from ..graph.model import CouplingGraph, Edge, EdgeType, ImpactFunction, ImpactMode
from ..signals import Signal, SignalRange
from .breakdown import (
    AddTerm,
    BlendSection,
    BlockedImpact,
    Breakdown,
    MulTerm,
    Preview,
    ReplaceCandidate,
    ReplaceSection,
    Window,
)
from .runtime import FiredEvent, TriggerRuntime
from .sampler import sample

logger = logging.getLogger(__name__)

_ADDITIVE = (ImpactFunction.ADD, ImpactFunction.LINEAR)


@dataclass(frozen=True)
class Candidate:
    """An impact eligible for arbitration at the current tick.

    ``value`` is the naked contribution ``src * gain`` before weighting; a
    missing source yields ``src=None`` and ``value=0``.
    """

    edge: Edge
    mode: ImpactMode
    src: Optional[float]
    value: float

    @property
    def function(self) -> ImpactFunction:
        return self.edge.impact.function

    def preview(self) -> Preview:
        weight = self.edge.impact.weight
        return Preview(
            mode=self.mode.value,
            kind=self.function.value,
            priority=self.edge.priority,
            weight=weight,
            gain=self.edge.impact.gain,
            src=self.src,
            would_add=self.value * weight if self.function in _ADDITIVE else None,
            would_factor=(
                1.0 + self.value * weight
                if self.function is ImpactFunction.MUL
                else None
            ),
        )


def order_key(edge: Edge) -> Tuple[float, str]:
    """Sort key giving priority descending, then edge id ascending."""
    return (-edge.priority, edge.id)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _candidate(
    signals: Mapping[str, Signal],
    graph: CouplingGraph,
    edge: Edge,
    t: float,
    cfg: EngineConfig,
) -> Candidate:
    src_sig = signals.get(edge.source)
    raw = sample(src_sig.series, t - edge.offset_ms) if src_sig is not None else None
    value = raw * edge.impact.gain if raw is not None else 0.0
    mode = graph.effective_mode(edge, cfg.default_impact_mode)
    return Candidate(edge=edge, mode=mode, src=raw, value=value)


def _gate_event_impacts(
    signals: Mapping[str, Signal],
    graph: CouplingGraph,
    t: float,
    fired: Iterable[FiredEvent],
    cfg: EngineConfig,
    candidates: DefaultDict[str, List[Candidate]],
    gated: DefaultDict[str, List[BlockedImpact]],
) -> None:
    """Turn fired events whose effect window covers ``t`` into candidates.

    Only the newest fire of an edge whose window contains ``t`` counts. An
    edge whose newest fire is still waiting out its delay is reported as
    ``OUTSIDE_HOLD_WINDOW`` unless an older fire is in effect.
    """

    edges = graph.edge_by_id()
    settled: Set[str] = set()
    in_window: Set[str] = set()
    pending: Dict[str, FiredEvent] = {}

    for ev in reversed(tuple(fired)):
        if ev.t > t or ev.edge_id in settled:
            continue
        edge = edges.get(ev.edge_id)
        if edge is None or edge.type is not EdgeType.EVENT:
            continue
        delay = edge.trigger.delay_ms if edge.trigger else 0.0
        hold = edge.trigger.hold_ms if edge.trigger else 0.0
        effective_t = ev.t + delay
        end_t = effective_t + hold
        if t < effective_t:
            pending.setdefault(edge.id, ev)
            continue
        # windows of older fires of the same edge end earlier
        settled.add(edge.id)
        if t > end_t:
            continue
        in_window.add(edge.id)

        cand = _candidate(signals, graph, edge, t, cfg)
        skew = abs(effective_t - ev.t)
        allowed, layer = graph.allowed_skew(edge, cfg.default_max_skew_ms)
        if skew <= allowed and effective_t <= t + allowed:
            candidates[edge.target].append(cand)
            continue
        logger.debug(
            "Edge %s blocked at t=%s: skew %s exceeds %s (%s)",
            edge.id,
            t,
            skew,
            allowed,
            layer,
        )
        gated[edge.target].append(
            BlockedImpact(
                edge_id=edge.id,
                reason=BlockReason.MAX_SKEW_EXCEEDED,
                severity=BlockReason.MAX_SKEW_EXCEEDED.default_severity,
                target_id=edge.target,
                src_id=edge.source,
                layer=cand.mode.value,
                ts_ms=t,
                fired_at_ms=ev.t,
                effect_at_ms=effective_t,
                delay_ms=delay,
                max_skew_ms=allowed,
                skew_ms=skew,
                gate_source=layer,
                message=f"skew {skew:g}ms exceeds max_skew_ms {allowed:g} ({layer})",
                window=Window(effective_t, end_t, t),
                preview=cand.preview(),
            )
        )

    for edge_id, ev in pending.items():
        if edge_id in in_window:
            continue
        edge = edges[edge_id]
        delay = edge.trigger.delay_ms if edge.trigger else 0.0
        hold = edge.trigger.hold_ms if edge.trigger else 0.0
        effective_t = ev.t + delay
        allowed, layer = graph.allowed_skew(edge, cfg.default_max_skew_ms)
        cand = _candidate(signals, graph, edge, t, cfg)
        gated[edge.target].append(
            BlockedImpact(
                edge_id=edge.id,
                reason=BlockReason.OUTSIDE_HOLD_WINDOW,
                severity=BlockReason.OUTSIDE_HOLD_WINDOW.default_severity,
                target_id=edge.target,
                src_id=edge.source,
                layer=cand.mode.value,
                ts_ms=t,
                fired_at_ms=ev.t,
                effect_at_ms=effective_t,
                delay_ms=delay,
                max_skew_ms=allowed,
                skew_ms=abs(effective_t - ev.t),
                gate_source=layer,
                message=f"effect pending until t={effective_t:g}",
                window=Window(effective_t, effective_t + hold, t),
                preview=cand.preview(),
            )
        )


def _resolve_replace(
    base: float,
    rng: SignalRange,
    replace: List[Candidate],
) -> Tuple[float, float, ReplaceSection]:
    winner = replace[0]
    fn = winner.function
    if fn is ImpactFunction.SET:
        out = winner.value
    elif fn is ImpactFunction.MUL:
        out = base * winner.value
    else:
        out = base + winner.value
    lo, hi = winner.edge.impact.clamp or (rng.min, rng.max)
    section = ReplaceSection(
        active=True,
        winner=winner.edge.id,
        candidates=[
            ReplaceCandidate(
                edge_id=c.edge.id,
                priority=c.edge.priority,
                function=c.function.value,
                src=c.src,
                gain=c.edge.impact.gain,
                value=c.value,
            )
            for c in replace
        ],
    )
    return out, _clamp(out, lo, hi), section


def _resolve_blend(
    base: float,
    rng: SignalRange,
    blend: List[Candidate],
    normalize: bool,
) -> Tuple[float, float, BlendSection]:
    total = sum(c.edge.impact.weight for c in blend)
    scale = 1.0 / total if normalize and total != 0 else 1.0
    delta_add = 0.0
    mul_factor = 1.0
    add_terms: List[AddTerm] = []
    mul_terms: List[MulTerm] = []
    for c in blend:
        w = c.edge.impact.weight * scale
        if c.function in _ADDITIVE:
            contribution = c.value * w
            delta_add += contribution
            add_terms.append(
                AddTerm(c.edge.id, c.src, c.edge.impact.gain, w, contribution)
            )
        elif c.function is ImpactFunction.MUL:
            factor = 1.0 + c.value * w
            mul_factor *= factor
            mul_terms.append(MulTerm(c.edge.id, c.src, c.edge.impact.gain, w, factor))
    out = (base + delta_add) * mul_factor
    section = BlendSection(
        suppressed_by_replace=False,
        delta_add=delta_add,
        delta_mul=mul_factor,
        add_terms=add_terms,
        mul_terms=mul_terms,
    )
    return out, rng.clamp(out), section


def _suppressed(c: Candidate, winner: Candidate, t: float) -> BlockedImpact:
    return BlockedImpact(
        edge_id=c.edge.id,
        reason=BlockReason.SUPPRESSED_BY_REPLACE,
        severity=BlockReason.SUPPRESSED_BY_REPLACE.default_severity,
        target_id=c.edge.target,
        src_id=c.edge.source,
        layer=c.mode.value,
        ts_ms=t,
        delay_ms=c.edge.trigger.delay_ms if c.edge.trigger else None,
        gate_source="none",
        message=f"suppressed by replace winner {winner.edge.id}",
        preview=c.preview(),
    )


def resolve(
    signals: Mapping[str, Signal],
    graph: CouplingGraph,
    t: float,
    active_event_edges: Iterable[str],
    runtime: TriggerRuntime,
    config: EngineConfig | None = None,
) -> Tuple[Dict[str, float], Dict[str, Breakdown]]:
    """Resolve every target of ``graph`` at ``t``.

    Parameters
    ----------
    signals:
        Mapping of signal id to :class:`Signal`; never mutated.
    graph:
        Validated coupling graph.
    t:
        Query time in milliseconds.
    active_event_edges:
        Event edge ids reported active by the trigger engine for ``t``; they
        are listed in each target's breakdown.
    runtime:
        Session runtime whose fired-event log gates event edges.

    Returns
    -------
    tuple
        ``(values, breakdowns)`` keyed by target id. Targets without a
        signal are skipped.
    """

    cfg = config or EngineConfig()
    candidates: DefaultDict[str, List[Candidate]] = defaultdict(list)
    gated: DefaultDict[str, List[BlockedImpact]] = defaultdict(list)

    _gate_event_impacts(signals, graph, t, runtime.fired, cfg, candidates, gated)
    for edge in graph.edges:
        if edge.type.continuous:
            candidates[edge.target].append(_candidate(signals, graph, edge, t, cfg))

    edges = graph.edge_by_id()
    active = set(active_event_edges)
    values: Dict[str, float] = {}
    breakdowns: Dict[str, Breakdown] = {}

    for node in graph.nodes:
        target = node.value_id
        sig = signals.get(target)
        if sig is None:
            continue
        base = sig.current
        ordered = sorted(candidates.get(target, []), key=lambda c: order_key(c.edge))
        replace = [c for c in ordered if c.mode is ImpactMode.REPLACE]
        blend = [c for c in ordered if c.mode is not ImpactMode.REPLACE]
        blocked = sorted(
            gated.get(target, []), key=lambda b: order_key(edges[b.edge_id])
        )

        after_replace: Optional[float] = None
        after_blend: Optional[float] = None
        replace_section = ReplaceSection()
        blend_section = BlendSection()
        if replace:
            after_replace, final, replace_section = _resolve_replace(
                base, sig.range, replace
            )
            blend_section = BlendSection(suppressed_by_replace=bool(blend))
            blocked.extend(_suppressed(c, replace[0], t) for c in blend)
        elif blend:
            after_blend, final, blend_section = _resolve_blend(
                base, sig.range, blend, graph.meta.defaults.blend_normalize
            )
        else:
            final = sig.range.clamp(base)

        values[target] = final
        breakdowns[target] = Breakdown(
            t=t,
            target=target,
            base=base,
            final=final,
            after_replace=after_replace,
            after_blend=after_blend,
            replace=replace_section,
            blend=blend_section,
            blocked=blocked,
            active_triggers=sorted(
                eid for eid in active if eid in edges and edges[eid].target == target
            ),
        )
    return values, breakdowns

"""Typed, immutable model of coupling graphs built from validated JSON documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .types import EdgeData, GraphDict, TriggerData


class EdgeType(Enum):
    """How an edge becomes active."""

    CAUSAL = "causal"
    SOFT_SYNC = "soft_sync"
    HARD_SYNC = "hard_sync"
    EVENT = "event"

    @property
    def continuous(self) -> bool:
        return self is not EdgeType.EVENT


class ImpactMode(Enum):
    """Arbitration layer an impact participates in."""

    BLEND = "blend"
    REPLACE = "replace"


class ImpactFunction(Enum):
    ADD = "add"
    MUL = "mul"
    SET = "set"
    LINEAR = "linear"


class TriggerKind(Enum):
    """Predicates available to event edges."""

    THRESHOLD_CROSSING = "threshold_crossing"
    SPIKE = "spike"
    WINDOW_MEAN_ABOVE = "window_mean_above"
    SCENE_BOUNDARY = "scene_boundary"


class Direction(Enum):
    RISING = "rising"
    FALLING = "falling"
    BOTH = "both"


@dataclass(frozen=True)
class TriggerSpec:
    """Predicate and timing of an event edge.

    Only the fields relevant to ``kind`` are read; the rest stay ``None``.
    """

    kind: TriggerKind
    threshold: Optional[float] = None
    direction: Direction = Direction.RISING
    delta: Optional[float] = None
    window_ms: Optional[float] = None
    marks_ms: Tuple[float, ...] = ()
    epsilon: Optional[float] = None
    delay_ms: float = 0.0
    hold_ms: float = 0.0

    @classmethod
    def from_dict(cls, data: TriggerData) -> "TriggerSpec":
        """Construct a :class:`TriggerSpec` from its JSON form.

        The nested ``scene: {"mode": "timeline_marks", "marks_ms": [...]}``
        layout is accepted for ``scene_boundary`` triggers.
        """

        marks = data.get("marks_ms")
        epsilon = data.get("epsilon")
        scene = data.get("scene")
        if marks is None and isinstance(scene, Mapping):
            marks = scene.get("marks_ms")
            if epsilon is None:
                epsilon = scene.get("epsilon")
        return cls(
            kind=TriggerKind(data["kind"]),
            threshold=_opt_float(data.get("threshold")),
            direction=Direction(data.get("direction") or "rising"),
            delta=_opt_float(data.get("delta")),
            window_ms=_opt_float(data.get("window_ms")),
            marks_ms=tuple(float(m) for m in (marks or ())),
            epsilon=_opt_float(epsilon),
            delay_ms=float(data.get("delay_ms") or 0.0),
            hold_ms=float(data.get("hold_ms") or 0.0),
        )

    def to_dict(self) -> TriggerData:
        data: Dict[str, Any] = {"kind": self.kind.value}
        if self.kind is TriggerKind.THRESHOLD_CROSSING:
            data["threshold"] = self.threshold
            data["direction"] = self.direction.value
        elif self.kind is TriggerKind.SPIKE:
            data["delta"] = self.delta
        elif self.kind is TriggerKind.WINDOW_MEAN_ABOVE:
            data["window_ms"] = self.window_ms
            data["threshold"] = self.threshold
        else:
            data["marks_ms"] = list(self.marks_ms)
            if self.epsilon is not None:
                data["epsilon"] = self.epsilon
        data["delay_ms"] = self.delay_ms
        data["hold_ms"] = self.hold_ms
        return data


@dataclass(frozen=True)
class Impact:
    """How a candidate value is applied to its target.

    ``mode`` is ``None`` when the edge defers to the graph default.
    """

    mode: Optional[ImpactMode] = None
    function: ImpactFunction = ImpactFunction.LINEAR
    gain: float = 1.0
    weight: float = 1.0
    clamp: Optional[Tuple[float, float]] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Impact":
        data = data or {}
        clamp = data.get("clamp")
        return cls(
            mode=ImpactMode(data["mode"]) if data.get("mode") else None,
            function=ImpactFunction(data.get("function") or "linear"),
            gain=float(data["gain"]) if data.get("gain") is not None else 1.0,
            weight=float(data["weight"]) if data.get("weight") is not None else 1.0,
            clamp=(float(clamp[0]), float(clamp[1])) if clamp else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "function": self.function.value,
            "gain": self.gain,
            "weight": self.weight,
        }
        if self.mode is not None:
            data["mode"] = self.mode.value
        if self.clamp is not None:
            data["clamp"] = list(self.clamp)
        return data


@dataclass(frozen=True)
class Alignment:
    offset_ms: float = 0.0
    max_skew_ms: Optional[float] = None


@dataclass(frozen=True)
class Gate:
    max_skew_ms: Optional[float] = None


@dataclass(frozen=True)
class Edge:
    """Directed coupling rule from ``source`` to ``target``."""

    id: str
    source: str
    target: str
    type: EdgeType = EdgeType.CAUSAL
    priority: float = 0.0
    trigger: Optional[TriggerSpec] = None
    impact: Impact = field(default_factory=Impact)
    alignment: Optional[Alignment] = None
    gate: Optional[Gate] = None

    @property
    def offset_ms(self) -> float:
        return self.alignment.offset_ms if self.alignment else 0.0

    @classmethod
    def from_dict(cls, data: EdgeData) -> "Edge":
        """Construct an :class:`Edge` from its JSON form."""

        trigger = data.get("trigger")
        alignment = data.get("alignment")
        gate = data.get("gate")
        return cls(
            id=str(data["id"]),
            source=str(data["from"]),
            target=str(data["to"]),
            type=EdgeType(data.get("type") or "causal"),
            priority=float(data.get("priority") or 0.0),
            trigger=TriggerSpec.from_dict(trigger) if trigger else None,
            impact=Impact.from_dict(data.get("impact")),
            alignment=(
                Alignment(
                    offset_ms=float(alignment.get("offset_ms") or 0.0),
                    max_skew_ms=_opt_float(alignment.get("max_skew_ms")),
                )
                if alignment is not None
                else None
            ),
            gate=(
                Gate(max_skew_ms=_opt_float(gate.get("max_skew_ms")))
                if gate is not None
                else None
            ),
        )

    def to_dict(self) -> EdgeData:
        data: Dict[str, Any] = {
            "id": self.id,
            "from": self.source,
            "to": self.target,
            "type": self.type.value,
            "priority": self.priority,
            "impact": self.impact.to_dict(),
        }
        if self.trigger is not None:
            data["trigger"] = self.trigger.to_dict()
        if self.alignment is not None:
            data["alignment"] = {"offset_ms": self.alignment.offset_ms}
            if self.alignment.max_skew_ms is not None:
                data["alignment"]["max_skew_ms"] = self.alignment.max_skew_ms
        if self.gate is not None:
            data["gate"] = {}
            if self.gate.max_skew_ms is not None:
                data["gate"]["max_skew_ms"] = self.gate.max_skew_ms
        return data


@dataclass(frozen=True)
class GraphDefaults:
    """Graph-wide fallbacks; ``None`` defers to the engine configuration."""

    max_skew_ms: Optional[float] = None
    impact_mode: Optional[ImpactMode] = None
    blend_normalize: bool = False


@dataclass(frozen=True)
class GraphMeta:
    id: str
    defaults: GraphDefaults = field(default_factory=GraphDefaults)


@dataclass(frozen=True)
class GraphNode:
    value_id: str


@dataclass(frozen=True)
class CouplingGraph:
    """Immutable coupling graph evaluated by the engine.

    ``edges`` keeps the declared order, which the trigger engine relies on.
    """

    meta: GraphMeta
    nodes: Tuple[GraphNode, ...] = ()
    edges: Tuple[Edge, ...] = ()

    @property
    def node_ids(self) -> List[str]:
        return [n.value_id for n in self.nodes]

    def edge_by_id(self) -> Dict[str, Edge]:
        """Return a ``{edge_id: Edge}`` lookup."""
        return {e.id: e for e in self.edges}

    def effective_mode(self, edge: Edge, fallback: str = "blend") -> ImpactMode:
        """Resolve ``edge``'s mode: edge level, then graph default, then ``fallback``."""

        if edge.impact.mode is not None:
            return edge.impact.mode
        if self.meta.defaults.impact_mode is not None:
            return self.meta.defaults.impact_mode
        return ImpactMode(fallback)

    def allowed_skew(self, edge: Edge, fallback: float) -> Tuple[float, str]:
        """Return ``(max_skew_ms, layer)`` for ``edge``.

        Resolution order is ``gate`` then ``alignment`` then the graph
        ``defaults``; ``fallback`` stands in when the graph declares none.
        """

        if edge.gate is not None and edge.gate.max_skew_ms is not None:
            return edge.gate.max_skew_ms, "gate"
        if edge.alignment is not None and edge.alignment.max_skew_ms is not None:
            return edge.alignment.max_skew_ms, "alignment"
        if self.meta.defaults.max_skew_ms is not None:
            return self.meta.defaults.max_skew_ms, "defaults"
        return fallback, "defaults"

    @classmethod
    def from_dict(cls, data: GraphDict) -> "CouplingGraph":
        """Construct a :class:`CouplingGraph` from ``data``.

        ``data`` is expected to have passed :func:`validate`; malformed enum
        values surface as :class:`ValueError`.
        """

        meta = data.get("meta") or {}
        defaults = meta.get("defaults") or {}
        mode = defaults.get("impact_mode")
        nodes = data.get("nodes", [])
        if isinstance(nodes, Mapping):
            node_ids = list(nodes)
        else:
            node_ids = [n if isinstance(n, str) else n["value_id"] for n in nodes]
        return cls(
            meta=GraphMeta(
                id=str(meta.get("id", "")),
                defaults=GraphDefaults(
                    max_skew_ms=_opt_float(defaults.get("max_skew_ms")),
                    impact_mode=ImpactMode(mode) if mode else None,
                    blend_normalize=bool(defaults.get("blend_normalize", False)),
                ),
            ),
            nodes=tuple(GraphNode(str(nid)) for nid in node_ids),
            edges=tuple(Edge.from_dict(e) for e in data.get("edges", [])),
        )

    def to_dict(self) -> GraphDict:
        """Serialize the graph to a plain ``dict`` suitable for JSON."""

        defaults: Dict[str, Any] = {
            "blend_normalize": self.meta.defaults.blend_normalize
        }
        if self.meta.defaults.max_skew_ms is not None:
            defaults["max_skew_ms"] = self.meta.defaults.max_skew_ms
        if self.meta.defaults.impact_mode is not None:
            defaults["impact_mode"] = self.meta.defaults.impact_mode.value
        return {
            "meta": {"id": self.meta.id, "defaults": defaults},
            "nodes": [{"value_id": n.value_id} for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


def _opt_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)

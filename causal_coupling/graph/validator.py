"""Structural and semantic checks for coupling graph documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Sequence

from .model import (
    CouplingGraph,
    Direction,
    EdgeType,
    ImpactFunction,
    ImpactMode,
    TriggerKind,
)

_EDGE_TYPES = {t.value for t in EdgeType}
_TRIGGER_KINDS = {k.value for k in TriggerKind}
_MODES = {m.value for m in ImpactMode}
_FUNCTIONS = {f.value for f in ImpactFunction}
_DIRECTIONS = {d.value for d in Direction}

# Numeric parameters each trigger kind cannot evaluate without
_TRIGGER_PARAMS = {
    "threshold_crossing": ("threshold",),
    "spike": ("delta",),
    "window_mean_above": ("window_ms", "threshold"),
    "scene_boundary": (),
}


@dataclass
class ValidationResult:
    """Outcome of :func:`validate`; ``ok`` is ``True`` iff ``errors`` is empty."""

    ok: bool
    errors: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.ok


class GraphValidationError(ValueError):
    """Raised when a graph that failed validation is loaded for evaluation."""

    def __init__(self, errors: Sequence[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid coupling graph: " + "; ".join(self.errors))


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_range(value: Any) -> bool:
    if not _is_sequence(value) or len(value) != 2:
        return False
    lo, hi = value
    return _is_number(lo) and _is_number(hi) and lo <= hi


def _check_numbers(
    errors: List[str], prefix: str, data: Mapping[str, Any], names: Sequence[str]
) -> None:
    for name in names:
        value = data.get(name)
        if value is not None and not _is_number(value):
            errors.append(f"{prefix}{name} must be a number")


def _node_ids(nodes: Any, errors: List[str]) -> set[str]:
    node_ids: set[str] = set()
    if isinstance(nodes, Mapping):
        return {k for k in nodes if isinstance(k, str)}
    if not _is_sequence(nodes):
        errors.append("Missing nodes array")
        return node_ids
    for i, node in enumerate(nodes):
        value_id = node.get("value_id") if isinstance(node, Mapping) else node
        if value_id is None or value_id == "":
            errors.append(f"Node {i}: missing value_id")
        elif not isinstance(value_id, str):
            errors.append(f"Node {i}: value_id must be a string")
        elif value_id in node_ids:
            errors.append(f"Node {value_id}: duplicate value_id")
        else:
            node_ids.add(value_id)
    return node_ids


def _check_trigger(errors: List[str], label: str, trigger: Any) -> None:
    if not isinstance(trigger, Mapping):
        errors.append(f"Edge {label}: trigger must be an object")
        return
    kind = trigger.get("kind")
    if not isinstance(kind, str) or kind not in _TRIGGER_KINDS:
        errors.append(f"Edge {label}: unknown trigger kind '{kind}'")
        return
    for name in _TRIGGER_PARAMS[kind]:
        if not _is_number(trigger.get(name)):
            errors.append(f"Edge {label}: trigger {kind} requires numeric {name}")
    _check_numbers(
        errors,
        f"Edge {label}: trigger.",
        trigger,
        [
            n
            for n in ("threshold", "delta", "window_ms", "epsilon", "delay_ms", "hold_ms")
            if n not in _TRIGGER_PARAMS[kind]
        ],
    )
    direction = trigger.get("direction")
    if direction is not None and (
        not isinstance(direction, str) or direction not in _DIRECTIONS
    ):
        errors.append(f"Edge {label}: unknown direction '{direction}'")

    marks = trigger.get("marks_ms")
    scene = trigger.get("scene")
    if scene is not None and not isinstance(scene, Mapping):
        errors.append(f"Edge {label}: trigger.scene must be an object")
        scene = None
    if marks is None and scene is not None:
        marks = scene.get("marks_ms")
        if trigger.get("epsilon") is None:
            _check_numbers(errors, f"Edge {label}: trigger.scene.", scene, ("epsilon",))
    if marks is not None and not (
        _is_sequence(marks) and all(_is_number(m) for m in marks)
    ):
        errors.append(f"Edge {label}: trigger.marks_ms must be a list of numbers")


def _check_edge(
    errors: List[str],
    label: str,
    edge: Mapping[str, Any],
    node_ids: set[str],
    default_mode: Any,
) -> None:
    for end, name in (("from", "Source"), ("to", "Target")):
        value = edge.get(end)
        if not isinstance(value, str):
            errors.append(f"Edge {label}: {end} must be a string")
        elif value not in node_ids:
            errors.append(f"Edge {label}: {name} node {value} not in nodes list")

    edge_type = edge.get("type") or "causal"
    if not isinstance(edge_type, str) or edge_type not in _EDGE_TYPES:
        errors.append(f"Edge {label}: unknown type '{edge_type}'")
    _check_numbers(errors, f"Edge {label}: ", edge, ("priority",))

    trigger = edge.get("trigger")
    if edge_type == "event" and not trigger:
        errors.append(f"Edge {label}: Event type requires a trigger")
    elif trigger:
        _check_trigger(errors, label, trigger)

    for section, names in (("alignment", ("offset_ms", "max_skew_ms")), ("gate", ("max_skew_ms",))):
        value = edge.get(section)
        if value is None:
            continue
        if not isinstance(value, Mapping):
            errors.append(f"Edge {label}: {section} must be an object")
        else:
            _check_numbers(errors, f"Edge {label}: {section}.", value, names)

    impact = edge.get("impact") or {}
    if not isinstance(impact, Mapping):
        errors.append(f"Edge {label}: impact must be an object")
        return
    _check_numbers(errors, f"Edge {label}: impact.", impact, ("gain", "weight"))
    mode = impact.get("mode")
    if mode is not None and (not isinstance(mode, str) or mode not in _MODES):
        errors.append(f"Edge {label}: impact.mode '{mode}' is not blend/replace")
        return
    function = impact.get("function")
    if function is not None and (
        not isinstance(function, str) or function not in _FUNCTIONS
    ):
        errors.append(f"Edge {label}: unknown impact.function '{function}'")
    effective = mode or default_mode or "blend"
    if function == "set" and effective == "blend":
        errors.append(f"Edge {label}: impact.function 'set' requires mode 'replace'")
    clamp = impact.get("clamp")
    if clamp is not None and not _is_range(clamp):
        errors.append(f"Edge {label}: impact.clamp must be [min, max]")


def validate(graph: Mapping[str, Any] | CouplingGraph) -> ValidationResult:
    """Validate ``graph`` and return every violation found.

    ``graph`` may be a JSON-style mapping or a :class:`CouplingGraph`. The
    checks never stop at the first error, and malformed values of any JSON
    type are reported rather than raised.
    """

    if isinstance(graph, CouplingGraph):
        graph = graph.to_dict()
    errors: List[str] = []
    if not isinstance(graph, Mapping):
        return ValidationResult(False, ["Graph must be an object"])

    meta = graph.get("meta")
    if not isinstance(meta, Mapping) or not meta.get("id"):
        errors.append("Missing meta.id")
        meta = meta if isinstance(meta, Mapping) else {}
    defaults = meta.get("defaults") or {}
    if not isinstance(defaults, Mapping):
        errors.append("meta.defaults must be an object")
        defaults = {}
    _check_numbers(errors, "meta.defaults.", defaults, ("max_skew_ms",))
    default_mode = defaults.get("impact_mode")
    if default_mode is not None and (
        not isinstance(default_mode, str) or default_mode not in _MODES
    ):
        errors.append(f"meta.defaults.impact_mode '{default_mode}' is not blend/replace")
        default_mode = None

    node_ids = _node_ids(graph.get("nodes"), errors)

    edges = graph.get("edges")
    if not _is_sequence(edges):
        errors.append("Missing edges array")
        return ValidationResult(not errors, errors)

    seen: set[str] = set()
    for i, edge in enumerate(edges):
        if not isinstance(edge, Mapping):
            errors.append(f"Edge {i}: entry must be an object")
            continue
        edge_id = edge.get("id")
        if edge_id is None or edge_id == "":
            label = f"#{i}"
            errors.append(f"Edge {label}: missing id")
        elif not isinstance(edge_id, str):
            label = f"#{i}"
            errors.append(f"Edge {label}: id must be a string")
        elif edge_id in seen:
            label = edge_id
            errors.append(f"Edge {edge_id}: duplicate edge id")
        else:
            label = edge_id
            seen.add(edge_id)
        _check_edge(errors, label, edge, node_ids, default_mode)

    return ValidationResult(not errors, errors)

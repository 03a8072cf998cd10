"""Upgrade legacy or partial breakdown payloads to the v1.1 export shape.

:func:`normalize` is total and idempotent: it accepts anything, never raises,
and ``normalize(normalize(x)) == normalize(x)``. Free-text reasons are mapped
onto :class:`~causal_coupling.forensics.reasons.BlockReason` here and only
here.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional

from .reasons import BREAKDOWN_VERSION, SCHEMA_VERSION, map_reason, map_severity

_LEGACY_ITEM = re.compile(r"^\s*([^\s:]+)\s*:\s*(.*)$", re.DOTALL)

_TOP_LEVEL_NUMBERS = ("base", "after_replace", "after_blend", "final")


def _num(*values: Any) -> Optional[float]:
    """Return the first real number among ``values``; booleans do not count."""

    for value in values:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
    return None


def _text(*values: Any) -> Optional[str]:
    for value in values:
        if value is not None and value != "":
            return str(value)
    return None


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _coerce_item(item: Any) -> Mapping[str, Any]:
    if isinstance(item, Mapping):
        return item
    if isinstance(item, str):
        match = _LEGACY_ITEM.match(item)
        if match:
            return {"edge_id": match.group(1), "reason": "UNKNOWN", "message": match.group(2)}
        return {"edge_id": "unknown", "reason": "UNKNOWN", "message": item}
    return {"reason": "UNKNOWN", "message": "" if item is None else str(item)}


def normalize_blocked(item: Any, t_now: Optional[float] = None) -> Dict[str, Any]:
    """Return ``item`` as a canonical blocked-impact record."""

    item = _coerce_item(item)
    reason = map_reason(item.get("reason"))
    severity = map_severity(item.get("severity"), reason)
    impact = _mapping(item.get("impact"))
    preview_raw = _mapping(item.get("preview"))
    src_raw = item.get("src")

    layer = _text(item.get("layer"), preview_raw.get("mode"), impact.get("mode")) or "blend"
    fired_at = _num(item.get("fired_at_ms"), item.get("t_trigger"))
    effect_at = _num(item.get("effect_at_ms"), item.get("t_effective"))
    delay = _num(item.get("delay_ms"))
    if delay is None and fired_at is not None and effect_at is not None:
        delay = effect_at - fired_at

    window_raw = item.get("window")
    window = None
    if isinstance(window_raw, Mapping):
        window = {
            "start": _num(window_raw.get("start")),
            "end": _num(window_raw.get("end")),
            "now": _num(window_raw.get("now"), t_now),
        }

    gate_source = item.get("gate_source")
    return {
        "edge_id": _text(item.get("edge_id")) or "unknown",
        "target_id": _text(item.get("target_id"), item.get("to")),
        "src_id": _text(item.get("src_id")),
        "reason": reason.value,
        "severity": severity.value,
        "layer": layer,
        "ts_ms": _num(item.get("ts_ms"), t_now),
        "fired_at_ms": fired_at,
        "effect_at_ms": effect_at,
        "delay_ms": delay,
        "max_skew_ms": _num(item.get("max_skew_ms")),
        "skew_ms": _num(item.get("skew_ms")),
        "gate_source": "unknown" if gate_source is None else str(gate_source),
        "message": _text(item.get("message"), item.get("note")) or "",
        "window": window,
        "preview": {
            "mode": _text(preview_raw.get("mode")) or layer,
            "kind": _text(
                preview_raw.get("kind"), impact.get("kind"), impact.get("function")
            ),
            "priority": _num(preview_raw.get("priority"), item.get("priority")),
            "weight": _num(preview_raw.get("weight"), impact.get("weight")),
            "gain": _num(preview_raw.get("gain"), impact.get("gain")),
            "src": _num(preview_raw.get("src"), _mapping(src_raw).get("value"), src_raw),
            "would_add": _num(preview_raw.get("would_add")),
            "would_factor": _num(preview_raw.get("would_factor")),
        },
    }


def _normalize_replace(section: Any) -> Dict[str, Any]:
    section = _mapping(section)
    candidates = section.get("candidates")
    return {
        **section,
        "active": bool(section.get("active", False)),
        "winner": _text(section.get("winner")),
        "candidates": list(candidates) if isinstance(candidates, (list, tuple)) else [],
    }


def _normalize_blend(section: Any) -> Dict[str, Any]:
    section = _mapping(section)
    add_terms = section.get("add_terms")
    mul_terms = section.get("mul_terms")
    return {
        **section,
        "suppressed_by_replace": bool(section.get("suppressed_by_replace", False)),
        "delta_add": _num(section.get("delta_add")),
        "delta_mul": _num(section.get("delta_mul")),
        "add_terms": list(add_terms) if isinstance(add_terms, (list, tuple)) else [],
        "mul_terms": list(mul_terms) if isinstance(mul_terms, (list, tuple)) else [],
    }


def normalize(breakdown: Any) -> Dict[str, Any]:
    """Return ``breakdown`` upgraded to the canonical v1.1 shape.

    ``breakdown`` may be a :class:`~causal_coupling.engine.breakdown.Breakdown`,
    any mapping, or garbage; the latter normalizes to an empty breakdown.
    Unknown top-level keys are preserved.
    """

    if not isinstance(breakdown, Mapping) and callable(getattr(breakdown, "to_dict", None)):
        breakdown = breakdown.to_dict()
    source = dict(breakdown) if isinstance(breakdown, Mapping) else {}

    t_now = _num(source.get("t"))
    blocked = source.get("blocked")
    items: List[Any] = list(blocked) if isinstance(blocked, (list, tuple)) else []

    result: Dict[str, Any] = dict(source)
    result["t"] = t_now
    result["target"] = _text(source.get("target"))
    for key in _TOP_LEVEL_NUMBERS:
        result[key] = _num(source.get(key))
    result["replace"] = _normalize_replace(source.get("replace"))
    result["blend"] = _normalize_blend(source.get("blend"))
    result["blocked"] = [normalize_blocked(item, t_now) for item in items]
    if not result.get("breakdown_version"):
        result["breakdown_version"] = BREAKDOWN_VERSION
    if not result.get("schema_version"):
        result["schema_version"] = SCHEMA_VERSION
    return result

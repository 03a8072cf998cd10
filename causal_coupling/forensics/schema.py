"""Pydantic models of the v1.1 breakdown export contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .reasons import BREAKDOWN_VERSION, SCHEMA_VERSION, BlockReason, Severity


class WindowModel(BaseModel):
    start: Optional[float]
    end: Optional[float]
    now: Optional[float]


class PreviewModel(BaseModel):
    mode: Optional[str]
    kind: Optional[str]
    priority: Optional[float]
    weight: Optional[float]
    gain: Optional[float]
    src: Optional[float]
    would_add: Optional[float]
    would_factor: Optional[float]


class BlockedModel(BaseModel):
    """A blocked impact; every optional field must be present, possibly null."""

    model_config = ConfigDict(extra="allow")

    edge_id: str
    target_id: Optional[str]
    src_id: Optional[str]
    reason: BlockReason
    severity: Severity
    layer: Optional[str]
    ts_ms: Optional[float]
    fired_at_ms: Optional[float]
    effect_at_ms: Optional[float]
    delay_ms: Optional[float]
    max_skew_ms: Optional[float]
    skew_ms: Optional[float]
    gate_source: str
    message: str
    window: Optional[WindowModel]
    preview: PreviewModel


class ReplaceModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    active: bool
    winner: Optional[str]
    candidates: List[Dict[str, Any]]


class BlendModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    suppressed_by_replace: bool
    delta_add: Optional[float]
    delta_mul: Optional[float]
    add_terms: List[Dict[str, Any]]
    mul_terms: List[Dict[str, Any]]


class BreakdownModel(BaseModel):
    """Normalized breakdown as consumed by export and snapshot tooling.

    Extra keys are allowed so newer producers stay readable.
    """

    model_config = ConfigDict(extra="allow")

    breakdown_version: Literal["1.1"]
    schema_version: Literal["causal_breakdown_v1.1"]
    t: Optional[float]
    target: Optional[str]
    base: Optional[float]
    after_replace: Optional[float]
    after_blend: Optional[float]
    final: Optional[float]
    replace: ReplaceModel
    blend: BlendModel
    blocked: List[BlockedModel]


@dataclass
class BreakdownValidation:
    ok: bool
    errors: List[str] = field(default_factory=list)


def validate_breakdown(payload: Mapping[str, Any]) -> BreakdownValidation:
    """Check ``payload`` against :class:`BreakdownModel`.

    ``payload`` should already be normalized; legacy payloads fail here.
    """

    try:
        BreakdownModel.model_validate(payload)
    except ValidationError as exc:
        errors = [
            f"/{'/'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        ]
        return BreakdownValidation(False, errors)
    return BreakdownValidation(True)


def breakdown_json_schema() -> Dict[str, Any]:
    """Return the JSON schema of the export contract."""

    schema = BreakdownModel.model_json_schema()
    schema["$id"] = f"{SCHEMA_VERSION}.schema.json"
    schema["title"] = f"Causal breakdown v{BREAKDOWN_VERSION}"
    return schema


def policy_warnings(breakdown: Mapping[str, Any]) -> List[str]:
    """Return soft policy issues that the schema alone does not catch."""

    warnings: List[str] = []
    blocked = breakdown.get("blocked")
    if not isinstance(blocked, list):
        return warnings
    for idx, item in enumerate(blocked):
        if not isinstance(item, Mapping):
            continue
        reason = item.get("reason")
        if reason == BlockReason.MAX_SKEW_EXCEEDED.value:
            if item.get("skew_ms") is None:
                warnings.append(
                    f"blocked[{idx}]: Reason is MAX_SKEW_EXCEEDED but skew_ms is missing/null."
                )
            if item.get("max_skew_ms") is None:
                warnings.append(
                    f"blocked[{idx}]: Reason is MAX_SKEW_EXCEEDED but max_skew_ms is missing/null."
                )
            if item.get("gate_source") in (None, "unknown"):
                warnings.append(
                    f"blocked[{idx}]: Reason is MAX_SKEW_EXCEEDED but gate_source is unknown/missing."
                )
        if reason == BlockReason.SUPPRESSED_BY_REPLACE.value and not str(
            item.get("message") or ""
        ).strip():
            warnings.append(
                f"blocked[{idx}]: Reason is SUPPRESSED_BY_REPLACE but message is empty."
            )
    return warnings

"""Audit records emitted by the coupling resolver."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..forensics.reasons import (
    BREAKDOWN_VERSION,
    SCHEMA_VERSION,
    BlockReason,
    Severity,
)


def _plain(items: List[tuple[str, Any]]) -> Dict[str, Any]:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in items}


@dataclass(frozen=True)
class Window:
    start: Optional[float] = None
    end: Optional[float] = None
    now: Optional[float] = None


@dataclass(frozen=True)
class Preview:
    """What a blocked impact would have contributed had it been applied."""

    mode: Optional[str] = None
    kind: Optional[str] = None
    priority: Optional[float] = None
    weight: Optional[float] = None
    gain: Optional[float] = None
    src: Optional[float] = None
    would_add: Optional[float] = None
    would_factor: Optional[float] = None


@dataclass(frozen=True)
class BlockedImpact:
    """A candidate impact that was gated or suppressed at one tick."""

    edge_id: str
    reason: BlockReason
    severity: Severity
    target_id: Optional[str] = None
    src_id: Optional[str] = None
    layer: Optional[str] = None
    ts_ms: Optional[float] = None
    fired_at_ms: Optional[float] = None
    effect_at_ms: Optional[float] = None
    delay_ms: Optional[float] = None
    max_skew_ms: Optional[float] = None
    skew_ms: Optional[float] = None
    gate_source: str = "unknown"
    message: str = ""
    window: Optional[Window] = None
    preview: Preview = field(default_factory=Preview)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self, dict_factory=_plain)


@dataclass(frozen=True)
class AddTerm:
    edge_id: str
    src: Optional[float]
    gain: float
    weight: float
    contribution: float


@dataclass(frozen=True)
class MulTerm:
    edge_id: str
    src: Optional[float]
    gain: float
    weight: float
    factor: float


@dataclass(frozen=True)
class ReplaceCandidate:
    edge_id: str
    priority: float
    function: str
    src: Optional[float]
    gain: float
    value: float


@dataclass(frozen=True)
class ReplaceSection:
    active: bool = False
    winner: Optional[str] = None
    candidates: List[ReplaceCandidate] = field(default_factory=list)


@dataclass(frozen=True)
class BlendSection:
    suppressed_by_replace: bool = False
    delta_add: float = 0.0
    delta_mul: float = 1.0
    add_terms: List[AddTerm] = field(default_factory=list)
    mul_terms: List[MulTerm] = field(default_factory=list)


@dataclass(frozen=True)
class Breakdown:
    """How the final value of ``target`` was derived at ``t``.

    ``after_replace`` and ``after_blend`` hold the unclamped outcome of the
    layer that ran (``None`` for the one that did not); ``final`` is clamped.
    """

    t: float
    target: str
    base: float
    final: float
    after_replace: Optional[float] = None
    after_blend: Optional[float] = None
    replace: ReplaceSection = field(default_factory=ReplaceSection)
    blend: BlendSection = field(default_factory=BlendSection)
    blocked: List[BlockedImpact] = field(default_factory=list)
    active_triggers: List[str] = field(default_factory=list)
    breakdown_version: str = BREAKDOWN_VERSION
    schema_version: str = SCHEMA_VERSION

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the plain ``dict`` export shape."""
        return asdict(self, dict_factory=_plain)

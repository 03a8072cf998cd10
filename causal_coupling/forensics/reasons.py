"""Closed taxonomy of blocked-impact reasons."""

from __future__ import annotations

from enum import Enum
from typing import Any

BREAKDOWN_VERSION = "1.1"
SCHEMA_VERSION = "causal_breakdown_v1.1"


class BlockReason(Enum):
    """Why a candidate impact was not applied."""

    MAX_SKEW_EXCEEDED = "MAX_SKEW_EXCEEDED"
    SUPPRESSED_BY_REPLACE = "SUPPRESSED_BY_REPLACE"
    VALIDATION_REJECTED = "VALIDATION_REJECTED"
    MISSING_SOURCE_METRIC = "MISSING_SOURCE_METRIC"
    OUTSIDE_HOLD_WINDOW = "OUTSIDE_HOLD_WINDOW"
    NEGATIVE_TIME_JUMP_SEEK = "NEGATIVE_TIME_JUMP_SEEK"
    UNKNOWN = "UNKNOWN"

    @property
    def default_severity(self) -> "Severity":
        return _DEFAULT_SEVERITY[self]


class Severity(Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


_DEFAULT_SEVERITY = {
    BlockReason.MAX_SKEW_EXCEEDED: Severity.WARN,
    BlockReason.SUPPRESSED_BY_REPLACE: Severity.INFO,
    BlockReason.VALIDATION_REJECTED: Severity.ERROR,
    BlockReason.MISSING_SOURCE_METRIC: Severity.WARN,
    BlockReason.OUTSIDE_HOLD_WINDOW: Severity.WARN,
    BlockReason.NEGATIVE_TIME_JUMP_SEEK: Severity.INFO,
    BlockReason.UNKNOWN: Severity.WARN,
}

# Substring heuristics for legacy free-text reasons, checked in order
_KEYWORDS = (
    (("SKEW",), BlockReason.MAX_SKEW_EXCEEDED),
    (("REPLACE", "SUPPRESS"), BlockReason.SUPPRESSED_BY_REPLACE),
    (("VALIDATION", "SCHEMA"), BlockReason.VALIDATION_REJECTED),
    (("MISSING", "NAN"), BlockReason.MISSING_SOURCE_METRIC),
    (("WINDOW", "HOLD"), BlockReason.OUTSIDE_HOLD_WINDOW),
    (("SEEK", "JUMP"), BlockReason.NEGATIVE_TIME_JUMP_SEEK),
)


def map_reason(raw: Any) -> BlockReason:
    """Map a legacy or canonical reason value onto :class:`BlockReason`."""

    if isinstance(raw, BlockReason):
        return raw
    text = "" if raw is None else str(raw).strip().upper()
    if text in BlockReason.__members__:
        return BlockReason[text]
    for words, reason in _KEYWORDS:
        if any(w in text for w in words):
            return reason
    return BlockReason.UNKNOWN


def map_severity(raw: Any, reason: BlockReason) -> Severity:
    """Return ``raw`` as a :class:`Severity`, or ``reason``'s default."""

    if isinstance(raw, Severity):
        return raw
    text = "" if raw is None else str(raw).strip().lower()
    if text == "warning":
        text = "warn"
    for sev in Severity:
        if sev.value == text:
            return sev
    return reason.default_severity

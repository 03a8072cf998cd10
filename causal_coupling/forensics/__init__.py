"""Breakdown normalization and export contract."""

from .normalize import normalize, normalize_blocked
from .reasons import (
    BREAKDOWN_VERSION,
    SCHEMA_VERSION,
    BlockReason,
    Severity,
    map_reason,
    map_severity,
)
from .schema import (
    BreakdownModel,
    BreakdownValidation,
    breakdown_json_schema,
    policy_warnings,
    validate_breakdown,
)

__all__ = [
    "BREAKDOWN_VERSION",
    "SCHEMA_VERSION",
    "BlockReason",
    "BreakdownModel",
    "BreakdownValidation",
    "Severity",
    "breakdown_json_schema",
    "map_reason",
    "map_severity",
    "normalize",
    "normalize_blocked",
    "policy_warnings",
    "validate_breakdown",
]

from __future__ import annotations

from typing import Any, Dict, List, TypedDict

# Reusable typed mappings for coupling graph JSON documents

DefaultsData = TypedDict(
    "DefaultsData",
    {
        "max_skew_ms": float,
        "impact_mode": str,
        "blend_normalize": bool,
    },
    total=False,
)

MetaData = TypedDict(
    "MetaData",
    {
        "id": str,
        "defaults": DefaultsData,
    },
    total=False,
)

NodeData = TypedDict(
    "NodeData",
    {
        "value_id": str,
    },
    total=False,
)

TriggerData = TypedDict(
    "TriggerData",
    {
        "kind": str,
        "threshold": float,
        "direction": str,
        "delta": float,
        "window_ms": float,
        "marks_ms": List[float],
        "epsilon": float,
        "scene": Dict[str, Any],
        "delay_ms": float,
        "hold_ms": float,
    },
    total=False,
)

ImpactData = TypedDict(
    "ImpactData",
    {
        "mode": str,
        "function": str,
        "gain": float,
        "weight": float,
        "clamp": List[float],
    },
    total=False,
)

EdgeData = TypedDict(
    "EdgeData",
    {
        "id": str,
        "from": str,
        "to": str,
        "type": str,
        "priority": float,
        "trigger": TriggerData,
        "impact": ImpactData,
        "alignment": Dict[str, float],
        "gate": Dict[str, float],
    },
    total=False,
)

GraphDict = TypedDict(
    "GraphDict",
    {
        "meta": MetaData,
        "nodes": List[NodeData],
        "edges": List[EdgeData],
    },
    total=False,
)

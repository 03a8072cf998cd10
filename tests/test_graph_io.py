import json
import logging

import pytest

from causal_coupling.graph.io import dump_graph, load_graph
from causal_coupling.graph.model import (
    CouplingGraph,
    Direction,
    EdgeType,
    ImpactFunction,
    ImpactMode,
    TriggerKind,
)
from causal_coupling.graph.validator import GraphValidationError

from tests.coupling_utils import edge, graph_dict

GRAPH = {
    "meta": {
        "id": "scene-1",
        "defaults": {"max_skew_ms": 120, "impact_mode": "blend", "blend_normalize": True},
    },
    "nodes": [{"value_id": "audio.rms"}, {"value_id": "light.level"}],
    "edges": [
        {
            "id": "beat",
            "from": "audio.rms",
            "to": "light.level",
            "type": "event",
            "priority": 2,
            "trigger": {
                "kind": "threshold_crossing",
                "threshold": 0.6,
                "direction": "falling",
                "delay_ms": 40,
                "hold_ms": 200,
            },
            "impact": {"mode": "replace", "function": "set", "gain": 80, "clamp": [0, 90]},
            "gate": {"max_skew_ms": 60},
        },
        {
            "id": "follow",
            "from": "audio.rms",
            "to": "light.level",
            "type": "soft_sync",
            "impact": {"function": "add", "weight": 0.25},
            "alignment": {"offset_ms": 15},
        },
    ],
}


def test_load_graph_from_mapping():
    graph = load_graph(GRAPH)

    assert graph.meta.id == "scene-1"
    assert graph.node_ids == ["audio.rms", "light.level"]
    assert graph.meta.defaults.blend_normalize
    beat, follow = graph.edges
    assert beat.type is EdgeType.EVENT
    assert beat.trigger.kind is TriggerKind.THRESHOLD_CROSSING
    assert beat.trigger.direction is Direction.FALLING
    assert beat.trigger.hold_ms == 200.0
    assert beat.impact.mode is ImpactMode.REPLACE
    assert beat.impact.function is ImpactFunction.SET
    assert beat.impact.clamp == (0.0, 90.0)
    assert graph.allowed_skew(beat, 250.0) == (60.0, "gate")
    assert follow.offset_ms == 15.0
    assert follow.impact.mode is None
    assert graph.effective_mode(follow, "replace") is ImpactMode.BLEND
    assert graph.allowed_skew(follow, 250.0) == (120.0, "defaults")


def test_load_graph_from_json_text():
    assert load_graph(json.dumps(GRAPH)) == load_graph(GRAPH)
    assert load_graph(json.dumps(GRAPH).encode()) == load_graph(GRAPH)


def test_dump_graph_round_trip():
    graph = load_graph(GRAPH)
    assert load_graph(dump_graph(graph)) == graph


def test_load_graph_rejects_invalid(caplog):
    bad = graph_dict([edge("e1", "a", "ghost")], nodes=["a"])

    with caplog.at_level(logging.WARNING, logger="causal_coupling.graph.io"):
        with pytest.raises(GraphValidationError) as excinfo:
            load_graph(bad)

    assert excinfo.value.errors == ["Edge e1: Target node ghost not in nodes list"]
    assert isinstance(excinfo.value, ValueError)
    assert "Rejected coupling graph" in caplog.text


def test_load_graph_rejects_bad_json():
    with pytest.raises(ValueError):
        load_graph("{not json")


def test_nodes_accept_plain_ids():
    graph = CouplingGraph.from_dict(
        {"meta": {"id": "g"}, "nodes": ["a", "b"], "edges": [edge("e", "a", "b")]}
    )
    assert graph.node_ids == ["a", "b"]
    assert graph.edge_by_id()["e"].source == "a"

import pytest

from causal_coupling.graph.io import load_graph
from causal_coupling.graph.validator import GraphValidationError, validate

from tests.coupling_utils import edge, graph_dict, make_graph


def test_valid_graph_passes():
    trig = {"kind": "threshold_crossing", "threshold": 40, "direction": "both"}
    graph = graph_dict(
        [
            edge("c", "a", "b", weight=0.5),
            edge("e", "a", "b", type="event", trigger=trig, function="add"),
            edge("r", "a", "b", type="hard_sync", function="set", mode="replace"),
        ]
    )

    result = validate(graph)

    assert result.ok and bool(result)
    assert result.errors == []


def test_undeclared_nodes_are_reported():
    result = validate(graph_dict([edge("e1", "x", "y")], nodes=["a"]))

    assert not result.ok
    assert result.errors == [
        "Edge e1: Source node x not in nodes list",
        "Edge e1: Target node y not in nodes list",
    ]


def test_set_requires_replace_mode():
    result = validate(graph_dict([edge("e1", "a", "b", function="set")]))
    assert result.errors == ["Edge e1: impact.function 'set' requires mode 'replace'"]


def test_set_allowed_through_graph_default_mode():
    graph = graph_dict([edge("e1", "a", "b", function="set")], impact_mode="replace")
    assert validate(graph).ok


def test_set_rejected_through_graph_default_blend():
    graph = graph_dict(
        [edge("e1", "a", "b", function="set", mode="blend")], impact_mode="replace"
    )
    assert not validate(graph).ok


def test_event_edge_requires_trigger():
    result = validate(graph_dict([edge("e1", "a", "b", type="event")]))
    assert result.errors == ["Edge e1: Event type requires a trigger"]


@pytest.mark.parametrize(
    "trigger,message",
    [
        ({"kind": "bogus"}, "unknown trigger kind 'bogus'"),
        ({"kind": "spike"}, "trigger spike requires numeric delta"),
        (
            {"kind": "window_mean_above", "window_ms": 100},
            "trigger window_mean_above requires numeric threshold",
        ),
        (
            {"kind": "threshold_crossing", "threshold": 1, "direction": "up"},
            "unknown direction 'up'",
        ),
    ],
)
def test_trigger_checks(trigger, message):
    result = validate(graph_dict([edge("e1", "a", "b", type="event", trigger=trigger)]))
    assert result.errors == [f"Edge e1: {message}"]


def test_duplicates_and_missing_meta_are_all_collected():
    graph = graph_dict([edge("e1", "a", "b"), edge("e1", "b", "a", clamp=[5, 1])])
    graph["meta"] = {}
    graph["nodes"].append({"value_id": "a"})

    result = validate(graph)

    assert result.errors == [
        "Missing meta.id",
        "Node a: duplicate value_id",
        "Edge e1: duplicate edge id",
        "Edge e1: impact.clamp must be [min, max]",
    ]


def test_unknown_enums_are_reported():
    graph = graph_dict(
        [
            edge("e1", "a", "b", type="teleport"),
            edge("e2", "a", "b", mode="overlay"),
            edge("e3", "a", "b", function="pow"),
        ],
        impact_mode="mix",
    )

    errors = validate(graph).errors

    assert "meta.defaults.impact_mode 'mix' is not blend/replace" in errors
    assert "Edge e1: unknown type 'teleport'" in errors
    assert "Edge e2: impact.mode 'overlay' is not blend/replace" in errors
    assert "Edge e3: unknown impact.function 'pow'" in errors


def test_missing_arrays():
    result = validate({"meta": {"id": "g"}})
    assert result.errors == ["Missing nodes array", "Missing edges array"]


def test_non_mapping_graph():
    assert validate("nope").errors == ["Graph must be an object"]


def test_accepts_graph_object():
    assert validate(make_graph([edge("e1", "a", "b")])).ok
    assert not validate(make_graph([edge("e1", "a", "b", function="set")])).ok


def test_plain_and_mapping_node_ids_are_accepted():
    plain = graph_dict([edge("e1", "a", "b")])
    plain["nodes"] = ["a", "b"]
    keyed = graph_dict([edge("e1", "a", "b")])
    keyed["nodes"] = {"a": {}, "b": {}}

    assert validate(plain).ok
    assert validate(keyed).ok
    assert load_graph(plain).node_ids == ["a", "b"]


@pytest.mark.parametrize(
    "mutate,message",
    [
        (lambda g: g["nodes"].append({"value_id": ["c"]}), "Node 2: value_id must be a string"),
        (lambda g: g["nodes"].append(7), "Node 2: value_id must be a string"),
        (lambda g: g["edges"][0].update({"id": {"x": 1}}), "Edge #0: id must be a string"),
        (lambda g: g["edges"][0].update({"from": ["a"]}), "Edge e1: from must be a string"),
        (lambda g: g["edges"][0].update({"to": {"b": 1}}), "Edge e1: to must be a string"),
        (lambda g: g["edges"][0].update({"type": ["event"]}), "Edge e1: unknown type '['event']'"),
        (
            lambda g: g["edges"][0].update({"type": "event", "trigger": {"kind": ["spike"]}}),
            "Edge e1: unknown trigger kind '['spike']'",
        ),
        (
            lambda g: g["edges"][0]["impact"].update({"mode": {"m": 1}}),
            "Edge e1: impact.mode '{'m': 1}' is not blend/replace",
        ),
    ],
)
def test_unhashable_values_are_reported_not_raised(mutate, message):
    graph = graph_dict([edge("e1", "a", "b")])
    mutate(graph)

    result = validate(graph)

    assert not result.ok
    assert message in result.errors


@pytest.mark.parametrize(
    "mutate,message",
    [
        (lambda e: e.update({"alignment": 5}), "Edge e1: alignment must be an object"),
        (lambda e: e.update({"gate": "strict"}), "Edge e1: gate must be an object"),
        (lambda e: e.update({"priority": "high"}), "Edge e1: priority must be a number"),
        (lambda e: e["impact"].update({"gain": "big"}), "Edge e1: impact.gain must be a number"),
        (lambda e: e["impact"].update({"weight": True}), "Edge e1: impact.weight must be a number"),
        (
            lambda e: e.update({"alignment": {"offset_ms": "10"}}),
            "Edge e1: alignment.offset_ms must be a number",
        ),
        (
            lambda e: e.update({"gate": {"max_skew_ms": [1]}}),
            "Edge e1: gate.max_skew_ms must be a number",
        ),
        (
            lambda e: e.update(
                {"type": "event", "trigger": {"kind": "spike", "delta": 1, "delay_ms": "x"}}
            ),
            "Edge e1: trigger.delay_ms must be a number",
        ),
        (
            lambda e: e.update(
                {"type": "event", "trigger": {"kind": "spike", "delta": 1, "hold_ms": None, "epsilon": "e"}}
            ),
            "Edge e1: trigger.epsilon must be a number",
        ),
        (
            lambda e: e.update({"type": "event", "trigger": {"kind": "scene_boundary", "marks_ms": 5}}),
            "Edge e1: trigger.marks_ms must be a list of numbers",
        ),
        (
            lambda e: e.update(
                {"type": "event", "trigger": {"kind": "scene_boundary", "scene": {"marks_ms": ["a"]}}}
            ),
            "Edge e1: trigger.marks_ms must be a list of numbers",
        ),
        (
            lambda e: e.update({"type": "event", "trigger": {"kind": "scene_boundary", "scene": 3}}),
            "Edge e1: trigger.scene must be an object",
        ),
        (lambda e: e.update({"trigger": "soon"}), "Edge e1: trigger must be an object"),
    ],
)
def test_fields_the_model_cannot_build_are_rejected(mutate, message):
    graph = graph_dict([edge("e1", "a", "b")])
    mutate(graph["edges"][0])

    assert message in validate(graph).errors
    with pytest.raises(GraphValidationError):
        load_graph(graph)


def test_defaults_max_skew_must_be_numeric():
    graph = graph_dict([edge("e1", "a", "b")], max_skew_ms="fast")
    assert validate(graph).errors == ["meta.defaults.max_skew_ms must be a number"]

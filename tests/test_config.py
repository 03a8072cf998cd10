import io
import logging

import pytest

from causal_coupling.config import EngineConfig, configure_logging, load_config


def test_defaults():
    cfg = EngineConfig()
    assert cfg.default_max_skew_ms == 250.0
    assert cfg.default_impact_mode == "blend"
    assert cfg.fired_log_size == 2000
    assert cfg.scene_epsilon_ms == 30.0
    assert cfg.trigger_cache_scope == "edge"


def test_from_mapping_coerces_values():
    cfg = EngineConfig.from_mapping(
        {"default_max_skew_ms": "100", "fired_log_size": 64.0, "log_level": "debug"}
    )
    assert cfg.default_max_skew_ms == 100.0
    assert cfg.fired_log_size == 64
    assert cfg.log_level == "DEBUG"
    assert EngineConfig.from_mapping(None) == EngineConfig()


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ValueError, match="max_skew"):
        EngineConfig.from_mapping({"max_skew": 10})


@pytest.mark.parametrize(
    "kwargs",
    [
        {"default_impact_mode": "overlay"},
        {"trigger_cache_scope": "global"},
        {"fired_log_size": 0},
        {"seek_tolerance_ms": -1},
        {"scene_epsilon_ms": -0.5},
    ],
)
def test_invalid_values_raise(kwargs):
    with pytest.raises(ValueError):
        EngineConfig(**kwargs)


def test_load_config_with_engine_section():
    text = """
engine:
  default_max_skew_ms: 120
  trigger_cache_scope: source
  seek_tolerance_ms: 500
"""
    cfg = load_config(text)
    assert cfg.default_max_skew_ms == 120.0
    assert cfg.trigger_cache_scope == "source"
    assert cfg.seek_tolerance_ms == 500.0


def test_load_config_flat_stream():
    cfg = load_config(io.StringIO("default_impact_mode: replace\n"))
    assert cfg.default_impact_mode == "replace"


def test_load_config_empty_document():
    assert load_config("") == EngineConfig()
    assert load_config(None) == EngineConfig()


def test_load_config_rejects_non_mapping():
    with pytest.raises(ValueError):
        load_config("- 1\n- 2\n")


def test_to_dict_round_trip():
    cfg = EngineConfig(default_max_skew_ms=80.0, trigger_cache_scope="source")
    assert EngineConfig.from_mapping(cfg.to_dict()) == cfg


def test_configure_logging_sets_root_level(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))

    configure_logging("info")

    assert calls["level"] == logging.INFO
    assert "%(name)s" in calls["format"]

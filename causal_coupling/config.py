"""Engine configuration and logging setup."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import IO, Any, Dict, Mapping

import yaml

_CACHE_SCOPES = {"edge", "source"}
_IMPACT_MODES = {"blend", "replace"}


@dataclass(frozen=True)
class EngineConfig:
    """Tunable defaults shared by the trigger engine, resolver and session.

    Attributes
    ----------
    default_max_skew_ms:
        Skew limit used when neither the edge nor the graph declares one.
    default_impact_mode:
        Impact mode used when neither the edge nor the graph declares one.
    fired_log_size:
        Capacity of the runtime's fired-event ring buffer.
    seek_tolerance_ms:
        Backward time jump, in milliseconds, tolerated before a session
        treats the tick as a seek and resets its runtime.
    scene_epsilon_ms:
        Distance to a scene mark counted as a boundary hit when a trigger
        omits ``epsilon``.
    trigger_cache_scope:
        ``"edge"`` keys the previous-sample cache by ``(edge_id, source_id)``;
        ``"source"`` shares it between all edges reading one signal.
    log_level:
        Level name passed to :func:`configure_logging`.
    """

    default_max_skew_ms: float = 250.0
    default_impact_mode: str = "blend"
    fired_log_size: int = 2000
    seek_tolerance_ms: float = 250.0
    scene_epsilon_ms: float = 30.0
    trigger_cache_scope: str = "edge"
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.default_impact_mode not in _IMPACT_MODES:
            raise ValueError(
                f"default_impact_mode must be one of {sorted(_IMPACT_MODES)}"
            )
        if self.trigger_cache_scope not in _CACHE_SCOPES:
            raise ValueError(
                f"trigger_cache_scope must be one of {sorted(_CACHE_SCOPES)}"
            )
        if self.fired_log_size < 1:
            raise ValueError("fired_log_size must be positive")
        if self.default_max_skew_ms < 0 or self.seek_tolerance_ms < 0:
            raise ValueError("time tolerances must be non-negative")
        if self.scene_epsilon_ms < 0:
            raise ValueError("scene_epsilon_ms must be non-negative")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "EngineConfig":
        """Construct an :class:`EngineConfig` from a generic mapping.

        Raises
        ------
        ValueError
            If ``data`` contains unknown keys or invalid values.
        """

        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(
                f"Unknown engine configuration keys: {', '.join(sorted(unknown))}"
            )
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "fired_log_size":
                kwargs[key] = int(value)
            elif key in {"default_impact_mode", "trigger_cache_scope"}:
                kwargs[key] = str(value)
            elif key == "log_level":
                kwargs[key] = str(value).upper()
            else:
                kwargs[key] = float(value)
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Return the configuration as a plain ``dict``."""
        return asdict(self)


def load_config(stream: str | IO[str] | None) -> EngineConfig:
    """Parse YAML ``stream`` into an :class:`EngineConfig`.

    ``stream`` may be YAML text or an already opened text stream. An empty
    document yields the defaults. The document may either hold the keys
    directly or nest them under an ``engine`` section.
    """

    data = yaml.safe_load(stream) if stream is not None else None
    if data is None:
        return EngineConfig()
    if not isinstance(data, dict):
        raise ValueError("engine configuration must be a mapping")
    if isinstance(data.get("engine"), dict):
        data = data["engine"]
    return EngineConfig.from_mapping(data)


def configure_logging(level: str | int = "WARNING") -> None:
    """Configure root logging for hosts embedding the engine."""

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

"""Signal containers read by the coupling engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, NamedTuple, Tuple


class Sample(NamedTuple):
    """A single ``(t, v)`` observation with ``t`` in milliseconds."""

    t: float
    v: float


@dataclass(frozen=True)
class SignalRange:
    """Declared numeric range of a signal."""

    min: float = 0.0
    max: float = 100.0

    def clamp(self, value: float) -> float:
        """Return ``value`` limited to ``[min, max]``."""
        return max(self.min, min(self.max, value))


@dataclass(frozen=True)
class Signal:
    """A named time series with a declared range and a current value.

    The engine reads signals but never mutates them; ``series`` must be
    ordered by non-decreasing ``t``.
    """

    id: str
    range: SignalRange = field(default_factory=SignalRange)
    current: float = 0.0
    series: Tuple[Sample, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Signal":
        """Construct a :class:`Signal` from a JSON-style mapping.

        Samples may be given as ``{"t": .., "v": ..}``, ``{"t_ms": .., "v": ..}``
        or ``[t, v]`` pairs.
        """

        rng = data.get("range") or {}
        series = data.get("series") or []
        return cls(
            id=str(data["id"]),
            range=SignalRange(
                float(rng.get("min", 0.0)), float(rng.get("max", 100.0))
            ),
            current=float(data.get("current", 0.0)),
            series=tuple(_coerce_sample(p) for p in series),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the signal to a plain ``dict`` suitable for JSON."""
        return {
            "id": self.id,
            "range": {"min": self.range.min, "max": self.range.max},
            "current": self.current,
            "series": [{"t": s.t, "v": s.v} for s in self.series],
        }


def _coerce_sample(point: Any) -> Sample:
    if isinstance(point, Mapping):
        t = point["t"] if "t" in point else point["t_ms"]
        return Sample(float(t), float(point["v"]))
    t, v = point
    return Sample(float(t), float(v))


def signals_from_dicts(items: Iterable[Mapping[str, Any]]) -> Dict[str, Signal]:
    """Return a ``{id: Signal}`` mapping built from JSON-style records."""

    out: Dict[str, Signal] = {}
    for item in items:
        sig = Signal.from_dict(item)
        out[sig.id] = sig
    return out

"""Mutable per-session state for edge-triggered detection."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Hashable, Optional, Tuple

from ..signals import Sample

DEFAULT_FIRED_LOG_SIZE = 2000


@dataclass(frozen=True)
class FiredEvent:
    """Record of an event edge firing at ``t``."""

    edge_id: str
    t: float


class TriggerRuntime:
    """Last-sample cache, hold deadlines and a bounded fired-event log.

    A runtime belongs to exactly one playback session. It must be reset when
    the session seeks backwards, otherwise holds and fired events from the
    previous position leak into later ticks.

    Parameters
    ----------
    max_fired:
        Number of most recent fired events retained.
    """

    def __init__(self, max_fired: int = DEFAULT_FIRED_LOG_SIZE) -> None:
        self._last: Dict[Hashable, Sample] = {}
        self._hold_until: Dict[str, float] = {}
        self._fired: Deque[FiredEvent] = deque(maxlen=max_fired)

    @property
    def capacity(self) -> int:
        return self._fired.maxlen or 0

    @property
    def fired(self) -> Tuple[FiredEvent, ...]:
        """Fired events, oldest first."""
        return tuple(self._fired)

    def get_last(self, key: Hashable) -> Optional[Sample]:
        """Return the cached previous sample for ``key`` if any."""
        return self._last.get(key)

    def set_last(self, key: Hashable, sample: Sample) -> None:
        self._last[key] = sample

    def set_hold(self, edge_id: str, until_t: float) -> None:
        """Keep ``edge_id`` active up to and including ``until_t``."""
        self._hold_until[edge_id] = until_t

    def is_held(self, edge_id: str, t: float) -> bool:
        until = self._hold_until.get(edge_id)
        return until is not None and t <= until

    def log_fire(self, edge_id: str, t: float) -> None:
        """Append a fired event, dropping the oldest once full."""
        self._fired.append(FiredEvent(edge_id, t))

    def reset(self) -> None:
        """Forget all cached samples, holds and fired events."""

        self._last.clear()
        self._hold_until.clear()
        self._fired.clear()

"""Time-series sampling helpers."""

from __future__ import annotations

from bisect import bisect_left
from typing import Optional, Sequence

import numpy as np

from ..signals import Sample


def sample(series: Sequence[Sample], t: float) -> Optional[float]:
    """Return the value of ``series`` at time ``t``.

    Values are clamped to the first and last samples outside the covered
    interval and linearly interpolated inside it. ``None`` is returned for an
    empty series. When the bracketing samples share a timestamp the earlier
    value wins.
    """

    if not series:
        return None
    first, last = series[0], series[-1]
    if t <= first.t:
        return first.v
    if t >= last.t:
        return last.v

    hi = bisect_left(series, t, key=lambda s: s.t)
    p2 = series[hi]
    if p2.t == t:
        return p2.v
    p1 = series[hi - 1]
    if p2.t == p1.t:
        return p1.v
    return p1.v + (p2.v - p1.v) * (t - p1.t) / (p2.t - p1.t)


def mean_in_window(series: Sequence[Sample], t0: float, t1: float) -> Optional[float]:
    """Return the mean of raw samples with ``t0 <= t <= t1`` or ``None``."""

    if not series:
        return None
    data = np.asarray(series, dtype=float)
    mask = (data[:, 0] >= t0) & (data[:, 0] <= t1)
    if not mask.any():
        return None
    return float(data[mask, 1].mean())

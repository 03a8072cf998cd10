"""Loading helpers for :mod:`causal_coupling.graph`."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from .model import CouplingGraph
from .validator import GraphValidationError, validate

logger = logging.getLogger(__name__)


def load_graph(data: Mapping[str, Any] | str | bytes) -> CouplingGraph:
    """Validate ``data`` and return a :class:`CouplingGraph`.

    ``data`` is either an already decoded mapping or JSON text. The caller
    owns any file or network access.

    Raises
    ------
    GraphValidationError
        If the graph violates any structural or semantic invariant.
    ValueError
        If ``data`` is not valid JSON.
    """

    if isinstance(data, (str, bytes)):
        data = json.loads(data)
    result = validate(data)
    if not result.ok:
        logger.warning(
            "Rejected coupling graph with %d error(s): %s",
            len(result.errors),
            "; ".join(result.errors),
        )
        raise GraphValidationError(result.errors)
    return CouplingGraph.from_dict(data)


def dump_graph(graph: CouplingGraph, indent: int | None = 2) -> str:
    """Return ``graph`` serialized as JSON text."""
    return json.dumps(graph.to_dict(), indent=indent)

import sys
from pathlib import Path

# Ensure package import for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from causal_coupling.config import EngineConfig
from causal_coupling.engine.runtime import TriggerRuntime


@pytest.fixture
def runtime() -> TriggerRuntime:
    """Fresh runtime for a single test."""

    return TriggerRuntime()


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()

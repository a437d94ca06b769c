import sys
import pathlib

import pytest

# Ensure the project package is importable without installation
PACKAGE_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from autobalance.config import OptimizationConfig, SearchSettings  # noqa: E402

ENV_OVERRIDES = (
    "AUTOBALANCE_MAX_TRIALS",
    "AUTOBALANCE_ITERATIONS_PER_TRIAL",
    "AUTOBALANCE_PARALLEL_TRIALS",
    "AUTOBALANCE_SEED",
    "AUTOBALANCE_DEBUG",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep environment overrides from leaking into configs built by tests."""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_config():
    def build(**search):
        config = OptimizationConfig(search=SearchSettings(**search))
        config.validate()
        return config
    return build


def quadratic_peak(params):
    return 100 - 200 * (params["a"] - 0.5) ** 2 - 200 * (params["b"] - 0.5) ** 2


@pytest.fixture
def quadratic():
    return quadratic_peak


@pytest.fixture
def unit_square():
    return {"a": (0.0, 1.0), "b": (0.0, 1.0)}

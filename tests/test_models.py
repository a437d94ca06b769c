import pytest

from autobalance.optimization.models import (
    EngineState,
    OptimizationHistory,
    ParameterBounds,
    TrialMetadata,
    TrialResult,
)
from autobalance.utils.exceptions import InvalidBoundsError


def make_result(score, params=None, failed=False, iteration=0):
    return TrialResult(
        params=params or {"x": 1.0},
        balance_score=score,
        metadata=TrialMetadata(trial_index=0, iteration_index=0, iteration_count=iteration,
                               elapsed_ms=0.0, failed=failed),
    )


@pytest.mark.parametrize("ranges", [
    {},
    {"x": (2.0, 1.0)},
    {"x": ("a", 1.0)},
    {"x": (0.0, float("inf"))},
    {"x": (1.0,)},
])
def test_invalid_bounds_rejected(ranges):
    with pytest.raises(InvalidBoundsError):
        ParameterBounds(ranges)


def test_invalid_bounds_error_names_parameter():
    with pytest.raises(InvalidBoundsError) as exc:
        ParameterBounds({"speed": (5, 1)})
    assert exc.value.context["parameter"] == "speed"
    assert exc.value.error_code == "INVALID_BOUNDS"


def test_bounds_helpers():
    bounds = ParameterBounds({"x": (0, 10), "y": [1, 1]})
    assert bounds.names == ["x", "y"]
    assert bounds["x"] == (0.0, 10.0)
    assert bounds.span("x") == 10.0
    assert bounds.clamp("x", 12) == 10.0
    assert bounds.midpoint() == {"x": 5.0, "y": 1.0}
    assert bounds.clamp_params({"x": -3, "extra": 9}) == {"x": 0.0, "y": 1.0}
    assert bounds.contains({"x": 3, "y": 1})
    assert not bounds.contains({"x": 3})
    assert bounds.to_dict() == {"x": [0.0, 10.0], "y": [1.0, 1.0]}


def test_normalized_distance_ignores_zero_span():
    bounds = ParameterBounds({"x": (0, 10), "y": (1, 1)})
    assert bounds.normalized_distance({"x": 0, "y": 1}, {"x": 5, "y": 1}) == pytest.approx(0.25)


def test_bounds_are_read_only():
    bounds = ParameterBounds({"x": (0, 1)})
    with pytest.raises(TypeError):
        bounds._ranges["x"] = (0, 2)


def test_history_best_prefers_earliest_on_tie():
    history = OptimizationHistory()
    first = make_result(50.0)
    history.append(first)
    history.append(make_result(50.0))
    history.append(make_result(10.0))
    assert history.best() is first
    assert history.scores() == [50.0, 50.0, 10.0]
    assert len(history) == 3


def test_history_top_fraction_and_failures():
    history = OptimizationHistory()
    for score in [10.0, 90.0, 40.0, 70.0]:
        history.append(make_result(score))
    history.append(make_result(0.0, failed=True))

    assert [r.balance_score for r in history.top_fraction(0.3)] == [90.0, 70.0]
    assert history.failed_count() == 1


def test_history_to_frame_has_param_columns():
    history = OptimizationHistory()
    history.append(make_result(20.0, {"x": 1.0, "y": 2.0}))
    history.append(make_result(30.0, {"x": 1.5, "y": 2.5}))
    frame = history.to_frame()
    assert list(frame["x"]) == [1.0, 1.5]
    assert list(frame["balance_score"]) == [20.0, 30.0]


def test_trial_result_to_dict_and_immutability():
    result = TrialResult(
        params={"x": 1.0},
        balance_score=42.0,
        metadata=TrialMetadata(trial_index=1, iteration_index=0, iteration_count=3, elapsed_ms=1.5),
        confidence_interval=(40.0, 44.0),
    )
    data = result.to_dict()
    assert data["balanceScore"] == 42.0
    assert data["confidenceInterval"] == {"lower": 40.0, "upper": 44.0}
    assert data["metadata"]["iteration_count"] == 3
    with pytest.raises(AttributeError):
        result.balance_score = 1.0


def test_engine_state_terminal_flags():
    assert not EngineState.IDLE.is_terminal
    assert not EngineState.RUNNING.is_terminal
    assert EngineState.CONVERGED.is_terminal
    assert EngineState.EXHAUSTED.is_terminal
    assert EngineState.CANCELLED.is_terminal

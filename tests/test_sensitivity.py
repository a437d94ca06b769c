import pytest

from autobalance.analytics.sensitivity import analyze
from autobalance.optimization.models import OptimizationHistory, TrialMetadata, TrialResult
from autobalance.utils.exceptions import InsufficientHistoryError


def make_history(rows, failed_rows=()):
    history = OptimizationHistory()
    for i, (params, score) in enumerate(rows):
        history.append(TrialResult(
            params=params,
            balance_score=score,
            metadata=TrialMetadata(trial_index=0, iteration_index=0, iteration_count=i,
                                   elapsed_ms=0.0, failed=i in failed_rows),
        ))
    return history


def linear_history(n=12):
    # Score moves 10 per unit of x; y never changes
    return make_history([({"x": float(i), "y": 1.0, "z": (i % 2) * 0.5}, 10.0 * i) for i in range(n)])


def test_five_entries_raise():
    with pytest.raises(InsufficientHistoryError) as exc:
        analyze(linear_history(5))
    assert exc.value.context == {"required": 10, "available": 5}


def test_keys_match_parameter_names():
    ranking = analyze(linear_history(), parameter_names=["x", "y", "z"])
    assert set(ranking.influence) == {"x", "y", "z"}
    assert ranking.sample_size == 12


def test_influence_values_and_ranking():
    ranking = analyze(linear_history())
    assert ranking.influence["x"] == pytest.approx(10.0)
    assert ranking.influence["y"] == 0.0
    # Each step moves z by 0.5 while the score moves 10
    assert ranking.influence["z"] == pytest.approx(20.0)
    assert ranking.ranked == ["z", "x", "y"]


def test_ties_ranked_by_name():
    history = make_history([({"b": 1.0, "a": 1.0}, 50.0) for _ in range(10)])
    ranking = analyze(history)
    assert ranking.ranked == ["a", "b"]
    assert ranking.influence == {"a": 0.0, "b": 0.0}


def test_unseen_parameter_has_zero_influence():
    ranking = analyze(linear_history(), parameter_names=["x", "missing"])
    assert ranking.influence["missing"] == 0.0


def test_failed_trials_are_skipped():
    rows = [({"x": float(i)}, 10.0 * i) for i in range(12)]
    rows[5] = ({"x": 50.0}, 0.0)
    ranking = analyze(make_history(rows, failed_rows={5}))
    assert ranking.influence["x"] == pytest.approx(10.0)
    assert ranking.sample_size == 11


def test_to_dict():
    data = analyze(linear_history()).to_dict()
    assert data["ranked"][0] == "z"
    assert data["sampleSize"] == 12

import pytest

from autobalance.config import BalanceScoreWeights, EconomyWeights
from autobalance.simulation.scorers import BalanceScorer
from autobalance.utils.exceptions import ConfigurationError

IDEAL_ECONOMY = {
    "goldEfficiency": 1.0,
    "itemUtilization": 1.0,
    "resourceBalance": 0.0,
    "unitEconomy": 1.0,
    "marketDynamics": 1.0,
}


def test_perfect_parity_without_effects():
    score, components = BalanceScorer().calculate({"A": 0.5, "B": 0.5}, IDEAL_ECONOMY)
    assert score == pytest.approx(90.0)
    assert components["counter"].normalized_value == 0.5
    assert components["bond"].normalized_value == 0.5
    assert components["win_rate"].contribution == pytest.approx(0.5)


def test_effect_penalties():
    score = BalanceScorer().score(
        {"A": 0.5, "B": 0.5},
        IDEAL_ECONOMY,
        counter_effects={"A": 0.1, "B": -0.1},
        bond_effects={"A": 0.1},
    )
    assert score == pytest.approx(95.0)


def test_win_rate_deviation():
    scorer = BalanceScorer()
    assert scorer.win_rate_deviation({"A": 0.3, "B": 0.7}) == pytest.approx(0.04)
    assert scorer.win_rate_deviation({}) == 0.0
    score, components = scorer.calculate({"A": 0.3, "B": 0.7}, IDEAL_ECONOMY)
    assert components["win_rate"].raw_value == pytest.approx(0.04)
    assert score == pytest.approx(30.0 + 30.0 + 10.0)


def test_economy_submetrics_clipped_and_missing_count_as_zero():
    scorer = BalanceScorer()
    assert scorer.economy_balance({**IDEAL_ECONOMY, "goldEfficiency": 1.5}) == pytest.approx(1.0)
    assert scorer.economy_balance({}) == pytest.approx(0.2)


def test_score_clamped_to_range():
    assert BalanceScorer().score({"A": 0.0, "B": 1.0}, {}) == 0.0


def test_custom_weights():
    scorer = BalanceScorer(weights=BalanceScoreWeights(win_rate=1.0, economy=0.0, counter=0.0, bond=0.0))
    assert scorer.score({"A": 0.5}, {}) == pytest.approx(100.0)


def test_weights_must_sum_to_one():
    with pytest.raises(ConfigurationError):
        BalanceScoreWeights(win_rate=0.6)
    with pytest.raises(ConfigurationError):
        EconomyWeights(gold_efficiency=0.5)

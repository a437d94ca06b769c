import asyncio

import pytest

from autobalance.simulation.simulator import (
    DEFAULT_PARAMETER_SPACE,
    UNIT_TYPES,
    BalanceSimulator,
)


def midpoint():
    return {name: (low + high) / 2 for name, (low, high) in DEFAULT_PARAMETER_SPACE.items()}


def test_default_space_and_units():
    assert len(DEFAULT_PARAMETER_SPACE) == 12
    assert len(UNIT_TYPES) == 7
    assert BalanceSimulator(seed=1).bounds.names == list(DEFAULT_PARAMETER_SPACE)


def test_same_seed_same_outcome():
    first = asyncio.run(BalanceSimulator(seed=3, enable_bonds=True).evaluate(midpoint()))
    second = asyncio.run(BalanceSimulator(seed=3, enable_bonds=True).evaluate(midpoint()))
    assert first.balance_score == second.balance_score
    assert first.win_rates == second.win_rates


def test_outcome_ranges():
    outcome = asyncio.run(BalanceSimulator(seed=5).evaluate(midpoint()))
    assert 0.0 <= outcome.balance_score <= 100.0
    assert set(outcome.win_rates) == set(UNIT_TYPES)
    assert all(0.1 <= rate <= 0.9 for rate in outcome.win_rates.values())
    assert outcome.bond_effects == {}


def test_counter_cycle_effects():
    effects = BalanceSimulator(seed=0).counter_effects({"counterMultiplier": 2.0})
    # Every unit counters one unit and is countered by one: +0.1 - 0.05
    assert all(value == pytest.approx(0.05) for value in effects.values())


def test_bond_effects_when_enabled():
    effects = BalanceSimulator(seed=0, enable_bonds=True).bond_effects({"bondBonus": 0.2})
    assert effects["Assassin"] == pytest.approx(0.2 * 1.2 * 0.05)
    assert effects["Warrior"] >= 0.2 * 1.1 * 0.05


def test_economy_metrics_formula():
    simulator = BalanceSimulator(seed=0)
    metrics = simulator.economy_metrics({"goldScaling": 1.0, "interestRate": 0.1, "unitCost": 4,
                                         "sellingReturn": 0.5, "bondBonus": 0.2}, {"A": 0.4, "B": 0.6})
    assert metrics["goldEfficiency"] == pytest.approx(0.9)
    assert metrics["itemUtilization"] == pytest.approx(0.75)
    assert metrics["resourceBalance"] == pytest.approx(0.4)
    assert metrics["unitEconomy"] == pytest.approx(0.7)
    assert metrics["marketDynamics"] == pytest.approx(0.8)
    assert metrics["synergisticValue"] == pytest.approx(0.84)
    assert metrics["victoryDividend"] == pytest.approx(0.75)


@pytest.mark.parametrize("method", ["sobol", "latin", "random"])
def test_batch_test(method):
    simulator = BalanceSimulator(seed=2)
    results = asyncio.run(simulator.batch_test(scenarios=12, sampling_method=method))
    assert len(results) == 12
    assert all(simulator.bounds.contains(r.params) for r in results)


def test_monte_carlo_stays_in_bounds():
    simulator = BalanceSimulator(seed=4)
    results = asyncio.run(simulator.monte_carlo(midpoint(), iterations=20, variation=0.5))
    assert len(results) == 20
    assert all(simulator.bounds.contains(r.params) for r in results)


def test_sensitivity_grid_one_and_two_parameters():
    simulator = BalanceSimulator(seed=6)
    single = asyncio.run(simulator.sensitivity_grid(midpoint(), ["goldScaling"], steps=4))
    assert single["parameters"] == ["goldScaling"]
    assert len(single["values"]) == 5
    assert single["min"] <= single["max"]

    double = asyncio.run(simulator.sensitivity_grid(midpoint(), ["goldScaling", "unitCost"], steps=3))
    assert len(double["grid"]) == 4 and all(len(row) == 4 for row in double["grid"])
    assert double["x_axis"][0] == pytest.approx(0.9)
    assert double["y_axis"][-1] == pytest.approx(5.0)


def test_sensitivity_grid_rejects_unknown_parameter():
    with pytest.raises(ValueError):
        asyncio.run(BalanceSimulator(seed=0).sensitivity_grid(midpoint(), ["mana"]))

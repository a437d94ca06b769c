from autobalance.config import EvolutionSettings
from autobalance.optimization.evolution import (
    EvolutionaryGenerator,
    crossover,
    mutate,
    perturb,
    random_point,
)
from autobalance.optimization.models import (
    OptimizationHistory,
    ParameterBounds,
    TrialMetadata,
    TrialResult,
)
from autobalance.utils.random_source import SeededRandom

BOUNDS = ParameterBounds({"x": (0.0, 10.0), "y": (0.0, 1.0)})


def make_history(points):
    history = OptimizationHistory()
    for i, (params, score) in enumerate(points):
        history.append(TrialResult(
            params=params,
            balance_score=score,
            metadata=TrialMetadata(trial_index=0, iteration_index=0, iteration_count=i, elapsed_ms=0.0),
        ))
    return history


def test_crossover_copies_or_averages():
    rng = SeededRandom(1)
    first, second = {"x": 2.0, "y": 0.0}, {"x": 8.0, "y": 1.0}
    for _ in range(50):
        child = crossover(first, second, BOUNDS, rng, copy_probability=0.8)
        assert child["x"] in (2.0, 5.0, 8.0)
        assert child["y"] in (0.0, 0.5, 1.0)

    always_average = crossover(first, second, BOUNDS, rng, copy_probability=0.0)
    assert always_average == {"x": 5.0, "y": 0.5}


def test_mutation_is_bounded():
    rng = SeededRandom(2)
    base = {"x": 9.9, "y": 0.01}
    for _ in range(100):
        mutated = mutate(base, BOUNDS, rng, rate=1.0, scale=0.2)
        assert 0.0 <= mutated["x"] <= 10.0
        assert abs(mutated["x"] - base["x"]) <= 2.0 + 1e-9
        assert 0.0 <= mutated["y"] <= 1.0

    assert mutate(base, BOUNDS, rng, rate=0.0, scale=0.2) == base


def test_perturb_is_bounded():
    rng = SeededRandom(3)
    for _ in range(100):
        point = perturb({"x": 5.0, "y": 0.5}, BOUNDS, rng, scale=0.1)
        assert 4.0 <= point["x"] <= 6.0
        assert 0.4 <= point["y"] <= 0.6


def test_short_history_perturbs_incumbent():
    generator = EvolutionaryGenerator(BOUNDS, EvolutionSettings(), SeededRandom(4))
    history = make_history([({"x": 5.0, "y": 0.5}, 50.0)])
    batch = generator.generate_batch(history, {"x": 5.0, "y": 0.5}, size=3, exploration_weight=0.0)
    assert [strategy for _, strategy in batch] == ["perturb"] * 3


def test_children_come_from_elite_region():
    settings = EvolutionSettings(mutation_rate=0.0, similarity_threshold=0.0)
    generator = EvolutionaryGenerator(BOUNDS, settings, SeededRandom(5))
    points = [({"x": 1.0, "y": 0.1}, 90.0), ({"x": 1.0, "y": 0.1}, 85.0)]
    points += [({"x": 9.0, "y": 0.9}, 10.0 + i) for i in range(8)]
    history = make_history(points)

    batch = generator.generate_batch(history, {"x": 1.0, "y": 0.1}, size=5, exploration_weight=0.0)
    for params, strategy in batch:
        assert strategy == "evolution"
        # Top 30% of 10 results is the two leaders plus the best of the rest
        assert params["x"] in (1.0, 5.0, 9.0)


def test_batch_members_are_spread_out():
    settings = EvolutionSettings(max_diversity_attempts=100)
    generator = EvolutionaryGenerator(BOUNDS, settings, SeededRandom(6))
    history = make_history([({"x": 5.0, "y": 0.5}, 60.0)])
    batch = generator.generate_batch(history, {"x": 5.0, "y": 0.5}, size=6, exploration_weight=0.0)

    for i, (first, _) in enumerate(batch):
        for second, _ in batch[:i]:
            assert BOUNDS.normalized_distance(first, second) >= settings.similarity_threshold


class OvershootingRandom(SeededRandom):
    """Returns a value rounded just past the upper edge of every range."""

    def uniform(self, low, high):
        return high + abs(high) * 1e-15 + 1e-15


def test_random_point_is_clamped_to_upper_edge():
    point = random_point(ParameterBounds({"x": (0.1, 0.3), "y": (-2.0, -1.0)}), OvershootingRandom(0))
    assert point == {"x": 0.3, "y": -1.0}


def test_random_point_stays_in_bounds():
    rng = SeededRandom(7)
    for _ in range(200):
        assert BOUNDS.contains(random_point(BOUNDS, rng))

"""
Evolutionary Candidate Generation
=================================

Builds the candidate batches evaluated concurrently when the engine runs in
batch (parallel) mode.

Each candidate is one of:
- explore: a uniform draw over the bounds
- evolution: a child of two elite parents (crossover + mutation)
- perturb: the incumbent plus bounded noise (used until history has two entries)

A batch is kept diverse: a candidate too close to an already chosen member
is re-perturbed a bounded number of times before it is accepted anyway.
"""

import logging
from typing import List, Mapping, Tuple

from ..config.optimizer_config import EvolutionSettings
from ..utils.random_source import SeededRandom
from .models import OptimizationHistory, ParameterBounds, ParameterSet

logger = logging.getLogger(__name__)

Candidate = Tuple[ParameterSet, str]


def random_point(bounds: ParameterBounds, rng: SeededRandom) -> ParameterSet:
    """Uniform draw over every range; rounding never leaves the bounds."""
    return {name: bounds.clamp(name, rng.uniform(low, high)) for name, (low, high) in bounds.items()}


def perturb(base: Mapping[str, float], bounds: ParameterBounds, rng: SeededRandom,
            scale: float) -> ParameterSet:
    """Add noise of up to +/- ``scale`` of each range, then clamp."""
    point = {}
    for name in bounds:
        noise = (rng.next() * 2 - 1) * bounds.span(name) * scale
        point[name] = bounds.clamp(name, base[name] + noise)
    return point


def crossover(first: Mapping[str, float], second: Mapping[str, float], bounds: ParameterBounds,
              rng: SeededRandom, copy_probability: float) -> ParameterSet:
    """Per dimension: copy one parent's value, otherwise average both."""
    child = {}
    for name in bounds:
        if rng.next() < copy_probability:
            child[name] = first[name] if rng.next() < 0.5 else second[name]
        else:
            child[name] = (first[name] + second[name]) / 2
    return child


def mutate(params: Mapping[str, float], bounds: ParameterBounds, rng: SeededRandom,
           rate: float, scale: float) -> ParameterSet:
    mutated = {}
    for name in bounds:
        value = params[name]
        if rng.next() < rate:
            value += (rng.next() * 2 - 1) * bounds.span(name) * scale
        mutated[name] = bounds.clamp(name, value)
    return mutated


class EvolutionaryGenerator:
    """
    Candidate batch generator for batch-mode optimization.

    Args:
        bounds: Search space
        settings: Elitism, crossover, mutation and diversity settings
        rng: Shared random source of the run
    """

    def __init__(self, bounds: ParameterBounds, settings: EvolutionSettings, rng: SeededRandom):
        self.bounds = bounds
        self.settings = settings
        self.rng = rng

    def child(self, history: OptimizationHistory) -> ParameterSet:
        elite = history.top_fraction(self.settings.elite_fraction)
        first = self.rng.choice(elite).params
        second = self.rng.choice(elite).params
        offspring = crossover(first, second, self.bounds, self.rng,
                              self.settings.crossover_copy_probability)
        return mutate(offspring, self.bounds, self.rng,
                      self.settings.mutation_rate, self.settings.mutation_scale)

    def candidate(self, history: OptimizationHistory, incumbent: Mapping[str, float],
                  exploration_weight: float) -> Candidate:
        if self.rng.next() < exploration_weight:
            return random_point(self.bounds, self.rng), 'explore'
        if len(history) < 2:
            return perturb(incumbent, self.bounds, self.rng, self.settings.perturbation_scale), 'perturb'
        return self.child(history), 'evolution'

    def is_diverse(self, point: Mapping[str, float], chosen: List[Candidate]) -> bool:
        threshold = self.settings.similarity_threshold
        return all(self.bounds.normalized_distance(point, other) >= threshold for other, _ in chosen)

    def generate_batch(self, history: OptimizationHistory, incumbent: Mapping[str, float],
                       size: int, exploration_weight: float) -> List[Candidate]:
        """
        Produce ``size`` candidates for one concurrent evaluation round.

        Args:
            history: Results recorded so far (parents are drawn from its elite)
            incumbent: Parameters of the current best result
            size: Batch width
            exploration_weight: Probability of a uniform draw per candidate

        Returns:
            List of (params, strategy) pairs, every value inside its bound
        """
        batch: List[Candidate] = []
        for _ in range(size):
            point, strategy = self.candidate(history, incumbent, exploration_weight)

            attempts = 0
            while not self.is_diverse(point, batch) and attempts < self.settings.max_diversity_attempts:
                point = perturb(point, self.bounds, self.rng, self.settings.perturbation_scale)
                attempts += 1
            if attempts:
                logger.debug(f"Candidate re-perturbed {attempts} time(s) for batch diversity")

            batch.append((point, strategy))
        return batch

"""
Parameter Space Sampling
========================

Space-filling samplers used to seed searches and run batch sweeps.

Methods:
- sobol: Gray-code Van der Corput sequence with a per-dimension offset
- latin-hypercube: one draw per stratum per dimension, shuffled per dimension
- random: independent uniform draws

All methods are stateless; randomness comes from the SeededRandom passed in.
"""

import logging
from typing import List, Mapping, Optional, Tuple

from ..utils.random_source import SeededRandom
from .models import ParameterBounds, ParameterSet

logger = logging.getLogger(__name__)

SAMPLING_METHODS = ('sobol', 'latin-hypercube', 'random')
_METHOD_ALIASES = {'latin': 'latin-hypercube', 'lhs': 'latin-hypercube'}

SOBOL_BITS = 30
DIMENSION_OFFSET = 0.1


def reverse_bits(n: int, width: int = SOBOL_BITS) -> int:
    """Reverse the lowest ``width`` bits of ``n``."""
    result = 0
    for _ in range(width):
        result = (result << 1) | (n & 1)
        n >>= 1
    return result


def van_der_corput_gray(index: int, width: int = SOBOL_BITS) -> float:
    """Radical inverse of the Gray code of ``index``, in ``[0, 1)``."""
    gray = index ^ (index >> 1)
    return reverse_bits(gray, width) / float(1 << width)


def _scale(fraction: float, limits: Tuple[float, float]) -> float:
    low, high = limits
    if low == high:
        return low
    return min(high, low + fraction * (high - low))


def sobol_sample(bounds: ParameterBounds, count: int) -> List[ParameterSet]:
    samples = []
    for i in range(count):
        base = van_der_corput_gray(i)
        point = {}
        for j, name in enumerate(bounds):
            position = (base + j * DIMENSION_OFFSET) % 1.0
            point[name] = _scale(position, bounds[name])
        samples.append(point)
    return samples


def latin_hypercube_sample(bounds: ParameterBounds, count: int, rng: SeededRandom) -> List[ParameterSet]:
    samples: List[ParameterSet] = [{} for _ in range(count)]
    for name in bounds:
        strata = [(k + rng.next()) / count for k in range(count)]
        order = rng.permutation(count)
        for sample_index, stratum in enumerate(order):
            samples[sample_index][name] = _scale(strata[stratum], bounds[name])
    return samples


def random_sample(bounds: ParameterBounds, count: int, rng: SeededRandom) -> List[ParameterSet]:
    return [
        {name: _scale(rng.next(), bounds[name]) for name in bounds}
        for _ in range(count)
    ]


def resolve_method(method: str) -> str:
    resolved = _METHOD_ALIASES.get(method, method)
    if resolved not in SAMPLING_METHODS:
        raise ValueError(f"Unknown sampling method {method!r}; expected one of {SAMPLING_METHODS}")
    return resolved


def sample(bounds: Mapping[str, Tuple[float, float]],
           count: int,
           method: str = 'sobol',
           rng: Optional[SeededRandom] = None) -> List[ParameterSet]:
    """
    Produce ``count`` points covering the parameter space.

    Args:
        bounds: Parameter name -> (min, max)
        count: Number of samples (0 yields an empty list)
        method: 'sobol', 'latin-hypercube' (or 'latin') or 'random'
        rng: Random source for the stochastic methods (fresh entropy if None)

    Returns:
        List of parameter sets, every value inside its bound

    Raises:
        InvalidBoundsError: If bounds are empty or inverted
        ValueError: If count is negative or the method is unknown
    """
    bounds = ParameterBounds(bounds)
    method = resolve_method(method)
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    if count == 0:
        return []

    if method == 'sobol':
        samples = sobol_sample(bounds, count)
    else:
        rng = rng or SeededRandom()
        if method == 'latin-hypercube':
            samples = latin_hypercube_sample(bounds, count, rng)
        else:
            samples = random_sample(bounds, count, rng)

    logger.debug(f"Generated {len(samples)} {method} samples over {len(bounds)} dimensions")
    return samples

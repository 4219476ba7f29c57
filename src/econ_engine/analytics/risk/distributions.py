"""
Random Variable Sampling
========================
Vectorized draws for the Monte Carlo engine from a numpy Generator.

- normal:     Box-Muller transform, mean + std_dev * z
- uniform:    min + u * (max - min)
- triangular: inverse CDF
"""

import numpy as np

from econ_engine.models.inputs import Distribution, RandomVariableSpec


def standard_normal(rng: np.random.Generator, size: int) -> np.ndarray:
    """
    Box-Muller: z = sqrt(-2 ln u1) * cos(2 pi u2).

    u1 is drawn on (0, 1] so the logarithm stays finite.
    """
    u1 = 1.0 - rng.random(size)
    u2 = rng.random(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


def sample_normal(rng: np.random.Generator, size: int, mean: float, std_dev: float) -> np.ndarray:
    return mean + std_dev * standard_normal(rng, size)


def sample_uniform(rng: np.random.Generator, size: int, low: float, high: float) -> np.ndarray:
    return low + rng.random(size) * (high - low)


def sample_triangular(rng: np.random.Generator, size: int, low: float, mode: float, high: float) -> np.ndarray:
    """
    Inverse CDF with f = (mode - min) / (max - min):
        u <  f: min + sqrt(u (max - min)(mode - min))
        u >= f: max - sqrt((1 - u)(max - min)(max - mode))
    """
    u = rng.random(size)
    span = high - low
    f = (mode - low) / span
    left = low + np.sqrt(u * span * (mode - low))
    right = high - np.sqrt((1.0 - u) * span * (high - mode))
    return np.where(u < f, left, right)


def draw(spec: RandomVariableSpec, rng: np.random.Generator, size: int) -> np.ndarray:
    """Draw ``size`` independent samples of ``spec``."""
    p = spec.parameters
    if spec.distribution is Distribution.NORMAL:
        return sample_normal(rng, size, p["mean"], p["std_dev"])
    if spec.distribution is Distribution.UNIFORM:
        return sample_uniform(rng, size, p["min"], p["max"])
    return sample_triangular(rng, size, p["min"], p["mode"], p["max"])

"""Sampling strategies for database generation.

A sampler fills a composition buffer in place and returns the scalar
conditions ``(T, L, P, FV, TWALL)`` of one scenario. Samplers own their
``numpy.random.Generator``, so runs are reproducible from a seed and
independent samplers never share random state.
"""

from __future__ import annotations

from typing import Dict, Optional, Protocol, Tuple, Type, Union

import numpy as np

from ..config import SamplerConfig
from ..exceptions import ConfigurationError, validate_shape
from .scenario import N_SPECIES

Conditions = Tuple[float, float, float, float, float]
SeedLike = Union[None, int, np.random.Generator]


def make_rng(seed: SeedLike = None) -> np.random.Generator:
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def grid_choice(rng: np.random.Generator, start: float, stop: float, step: float) -> float:
    """Uniform draw from the inclusive grid ``start, start + step, ..., stop``."""
    n = int(round((stop - start) / step)) + 1
    return round(start + step * int(rng.integers(0, n)), 12)


class Sampler(Protocol):
    """Strategy producing one randomized scenario per call."""

    def generate(self, X: np.ndarray) -> Conditions:
        ...


class DefaultSampler:
    """Sample space of the published model.

    CO2, H2O and CO are drawn on 0.01 grids, the remaining hydrocarbons and
    O2 are zero and N2 closes the composition to one.
    """

    def __init__(self, config: Optional[SamplerConfig] = None, seed: SeedLike = None):
        self.config = config or SamplerConfig()
        self.rng = make_rng(seed)

    def _draw(self, name: str) -> float:
        return grid_choice(self.rng, *self.config.grid(name))

    def _conditions(self) -> Conditions:
        T = self._draw("temperature")
        L = self._draw("length")
        P = self._draw("pressure")
        FV = float(self.config.soot_fraction)
        TWALL = self._draw("wall_temperature")
        return T, L, P, FV, TWALL

    def generate(self, X: np.ndarray) -> Conditions:
        validate_shape(X, (N_SPECIES,), "X")
        X[:] = 0.0
        X[0] = self._draw("xco2")
        X[1] = self._draw("xh2o")
        X[2] = self._draw("xco")
        X[-1] = 1.0 - X[:3].sum()
        return self._conditions()


class FullSpectrumSampler(DefaultSampler):
    """Samples every species but the last on a quantized grid.

    Draws are rescaled when they add up to more than one, leaving the last
    species (N2) with the residual.
    """

    def __init__(
        self,
        config: Optional[SamplerConfig] = None,
        seed: SeedLike = None,
        max_fraction: float = 0.1,
        step: float = 0.01,
    ):
        super().__init__(config, seed)
        self.max_fraction = max_fraction
        self.step = step

    def generate(self, X: np.ndarray) -> Conditions:
        validate_shape(X, (N_SPECIES,), "X")
        X[:] = 0.0
        for k in range(N_SPECIES - 1):
            X[k] = grid_choice(self.rng, 0.0, self.max_fraction, self.step)

        total = X[:-1].sum()
        if total > 1.0:
            X[:-1] /= total

        X[-1] = max(0.0, 1.0 - X[:-1].sum())
        return self._conditions()


SAMPLERS: Dict[str, Type[DefaultSampler]] = {
    "default": DefaultSampler,
    "full-spectrum": FullSpectrumSampler,
}


def build_sampler(name: str = "default", seed: SeedLike = None,
                  config: Optional[SamplerConfig] = None) -> Sampler:
    """Instantiate a registered sampler by name."""
    try:
        cls = SAMPLERS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown sampler {name}",
            details={"available": sorted(SAMPLERS)}
        ) from None
    return cls(config=config, seed=seed)

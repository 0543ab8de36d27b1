"""Unit tests for scenario sampling."""

import numpy as np
import pytest

from radcalnet.config import SamplerConfig
from radcalnet.database.sampler import (
    DefaultSampler,
    FullSpectrumSampler,
    build_sampler,
    grid_choice,
    make_rng,
)
from radcalnet.database.scenario import N_SPECIES
from radcalnet.exceptions import ConfigurationError, ValidationError


def _on_grid(value, start, stop, step):
    k = (value - start) / step
    return start - 1e-9 <= value <= stop + 1e-9 and abs(k - round(k)) < 1e-6


def test_grid_choice_stays_on_inclusive_grid():
    rng = make_rng(0)
    draws = {grid_choice(rng, 0.5, 1.5, 0.5) for _ in range(200)}
    assert draws == {0.5, 1.0, 1.5}


def test_make_rng_passes_generators_through():
    rng = np.random.default_rng(1)
    assert make_rng(rng) is rng


class TestDefaultSampler:
    """Test the sample space of the published model."""

    def test_composition_closes_to_one(self):
        sampler = DefaultSampler(seed=123)
        X = np.full(N_SPECIES, 7.0)
        for _ in range(500):
            sampler.generate(X)
            assert abs(X.sum() - 1.0) < 1e-12
            assert np.all(X >= 0.0)
            assert np.all(X[3:-1] == 0.0)

    def test_draws_lie_on_configured_grids(self):
        config = SamplerConfig()
        sampler = DefaultSampler(config=config, seed=5)
        X = np.zeros(N_SPECIES)
        for _ in range(200):
            T, L, P, FV, TWALL = sampler.generate(X)
            assert _on_grid(X[0], *config.grid("xco2"))
            assert _on_grid(X[1], *config.grid("xh2o"))
            assert _on_grid(X[2], *config.grid("xco"))
            assert _on_grid(T, *config.grid("temperature"))
            assert _on_grid(L, *config.grid("length"))
            assert _on_grid(P, *config.grid("pressure"))
            assert _on_grid(TWALL, *config.grid("wall_temperature"))
            assert FV == 0.0

    def test_same_seed_same_sequence(self):
        a, b = DefaultSampler(seed=42), DefaultSampler(seed=42)
        Xa, Xb = np.zeros(N_SPECIES), np.zeros(N_SPECIES)
        for _ in range(50):
            assert a.generate(Xa) == b.generate(Xb)
            np.testing.assert_array_equal(Xa, Xb)

    def test_independent_samplers_do_not_share_state(self):
        a, b = DefaultSampler(seed=1), DefaultSampler(seed=1)
        X = np.zeros(N_SPECIES)
        first = a.generate(X)
        for _ in range(10):
            b.generate(X)
        assert DefaultSampler(seed=1).generate(X) == first

    def test_rejects_wrong_buffer_shape(self):
        with pytest.raises(ValidationError):
            DefaultSampler(seed=0).generate(np.zeros(3))

    def test_custom_grids_are_honored(self):
        config = SamplerConfig(temperature=[1000.0, 1000.0, 10.0], soot_fraction=1e-7)
        T, _, _, FV, _ = DefaultSampler(config=config, seed=0).generate(np.zeros(N_SPECIES))
        assert T == 1000.0
        assert FV == 1e-7


class TestFullSpectrumSampler:
    """Test sampling of every species."""

    def test_composition_closes_to_one(self):
        sampler = FullSpectrumSampler(seed=9)
        X = np.zeros(N_SPECIES)
        for _ in range(500):
            sampler.generate(X)
            assert abs(X.sum() - 1.0) < 1e-12
            assert np.all(X >= 0.0)

    def test_large_draws_are_rescaled(self):
        sampler = FullSpectrumSampler(seed=3, max_fraction=0.5, step=0.1)
        X = np.zeros(N_SPECIES)
        for _ in range(200):
            sampler.generate(X)
            assert abs(X.sum() - 1.0) < 1e-12
            assert X[-1] >= 0.0


def test_build_sampler_by_name():
    assert isinstance(build_sampler("default", seed=0), DefaultSampler)
    assert isinstance(build_sampler("full-spectrum", seed=0), FullSpectrumSampler)


def test_build_sampler_unknown_name():
    with pytest.raises(ConfigurationError):
        build_sampler("sobol")

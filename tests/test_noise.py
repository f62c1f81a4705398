import numpy as np
import pytest

from riso_proxy.processing.noise import (
    apply_grain,
    apply_scuff,
    scuff_cell_sizes,
    scuff_seed,
    value_noise,
)


def test_scuff_seeds_differ_per_ink():
    assert scuff_seed(0) == 31
    assert len({scuff_seed(index) for index in range(8)}) == 8


def test_scuff_cell_sizes_scale_with_dot_size_and_noise():
    assert scuff_cell_sizes(1, 0.0) == (8.0, 24.0, 72.0)
    assert scuff_cell_sizes(4, 0.25) == (48.0, 144.0, 432.0)


def test_value_noise_is_bounded_and_smooth():
    ys, xs = np.mgrid[0:64, 0:64].astype(np.float64)

    noise = value_noise(xs, ys, 16.0, seed=31)

    assert noise.min() >= 0.0
    assert noise.max() < 1.0
    # Neighbouring pixels on a 16px lattice never jump far.
    assert np.abs(np.diff(noise, axis=1)).max() < 0.2


def test_scuff_without_noise_is_a_no_op():
    opacity = np.full(16, 0.7, dtype=np.float32)

    assert apply_scuff(opacity, 4, 4, dot_size=2, noise=0.0, ink_index=0) is opacity


def test_scuff_only_removes_ink():
    width = height = 256
    opacity = np.ones(width * height, dtype=np.float32)

    scuffed = apply_scuff(opacity, width, height, dot_size=1, noise=0.1, ink_index=2)

    assert scuffed.shape == opacity.shape
    assert scuffed.max() <= 1.0
    assert scuffed.min() >= 0.0
    assert (scuffed < 1.0).any()
    assert np.all(opacity == 1.0)


def test_scuff_is_deterministic_per_ink():
    width, height = 64, 48
    opacity = np.ones(width * height, dtype=np.float32)

    first = apply_scuff(opacity, width, height, dot_size=2, noise=0.3, ink_index=1)
    again = apply_scuff(opacity, width, height, dot_size=2, noise=0.3, ink_index=1)
    other = apply_scuff(opacity, width, height, dot_size=2, noise=0.3, ink_index=5)

    np.testing.assert_array_equal(first, again)
    assert not np.array_equal(first, other)


def test_scuff_skips_nearly_empty_pixels():
    opacity = np.full(32 * 32, 0.002, dtype=np.float32)

    scuffed = apply_scuff(opacity, 32, 32, dot_size=1, noise=0.5, ink_index=0)

    np.testing.assert_array_equal(scuffed, opacity)


def test_grain_without_strength_draws_nothing():
    rng = np.random.default_rng(11)
    opacity = np.full(8, 0.5, dtype=np.float32)

    assert apply_grain(opacity, 0.0, rng) is opacity
    assert rng.random() == np.random.default_rng(11).random()


def test_grain_jitter_is_bounded():
    opacity = np.full(10_000, 0.5, dtype=np.float32)

    grained = apply_grain(opacity, 0.4, np.random.default_rng(5))

    assert grained.min() >= 0.3 - 1e-6
    assert grained.max() <= 0.7 + 1e-6
    assert grained.std() > 0.05
    assert grained.mean() == pytest.approx(0.5, abs=0.01)


def test_grain_clamps_to_unit_range():
    opacity = np.array([0.0, 1.0] * 500, dtype=np.float32)

    grained = apply_grain(opacity, 1.0, np.random.default_rng(9))

    assert grained.min() >= 0.0
    assert grained.max() <= 1.0


def test_grain_is_reproducible_with_a_seed():
    opacity = np.linspace(0, 1, 100, dtype=np.float32)

    first = apply_grain(opacity, 0.3, np.random.default_rng(42))
    second = apply_grain(opacity, 0.3, np.random.default_rng(42))

    np.testing.assert_array_equal(first, second)

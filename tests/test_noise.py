"""Unit tests for fBm noise maps."""

import math

import numpy as np
import pytest
import taichi as ti


class TestPermutation:
    """Tests for the seeded permutation table."""

    def test_deterministic(self):
        from glint.materials.noise import make_permutation

        np.testing.assert_array_equal(make_permutation(7), make_permutation(7))

    def test_doubled_permutation(self):
        """Both halves hold the same permutation of 0..255."""
        from glint.materials.noise import PERMUTATION_SIZE, make_permutation

        perm = make_permutation(3)
        assert perm.shape == (2 * PERMUTATION_SIZE,)
        np.testing.assert_array_equal(perm[:PERMUTATION_SIZE], perm[PERMUTATION_SIZE:])
        assert sorted(perm[:PERMUTATION_SIZE].tolist()) == list(range(PERMUTATION_SIZE))

    def test_seeds_differ(self):
        from glint.materials.noise import make_permutation

        assert not np.array_equal(make_permutation(1), make_permutation(2))


class TestNoiseEvaluation:
    """Tests for evaluating registered maps."""

    def test_zero_at_lattice_points(self):
        """Gradient noise vanishes at integer lattice points."""
        from glint.materials.noise import NormalMap, add_noise_map, evaluate_noise

        map_id = add_noise_map(NormalMap(seed=11, octaves=3, wavelength=1.0))
        for point in [(0.0, 0.0, 0.0), (1.0, 2.0, 3.0), (-4.0, 5.0, -6.0)]:
            assert evaluate_noise(map_id, point) == pytest.approx(0.0, abs=1e-6)

    def test_zero_octaves(self):
        from glint.materials.noise import NormalMap, add_noise_map, evaluate_noise

        map_id = add_noise_map(NormalMap(seed=1, octaves=0))
        assert evaluate_noise(map_id, (0.3, 0.7, 0.1)) == 0.0

    def test_single_octave_bounded(self):
        from glint.materials.noise import DisplacementMap, add_noise_map, evaluate_noise

        map_id = add_noise_map(DisplacementMap(seed=5, octaves=1, wavelength=0.7))
        rng = np.random.default_rng(0)
        for point in rng.uniform(-10.0, 10.0, size=(50, 3)):
            value = evaluate_noise(map_id, tuple(float(c) for c in point))
            assert math.isfinite(value)
            assert abs(value) <= 1.1

    def test_same_seed_same_values(self):
        """Two maps with equal parameters agree everywhere."""
        from glint.materials.noise import NormalMap, add_noise_map, evaluate_noise

        a = add_noise_map(NormalMap(seed=42, octaves=4, wavelength=0.5))
        b = add_noise_map(NormalMap(seed=42, octaves=4, wavelength=0.5))
        for point in [(0.13, 0.57, 0.91), (2.5, -1.25, 3.75)]:
            assert evaluate_noise(a, point) == evaluate_noise(b, point)

    def test_noise_is_not_constant(self):
        from glint.materials.noise import NormalMap, add_noise_map, evaluate_noise

        map_id = add_noise_map(NormalMap(seed=9, octaves=2, wavelength=1.0))
        values = {evaluate_noise(map_id, (x + 0.37, 0.21, 0.64)) for x in range(8)}
        assert len(values) > 1

    def test_invalid_map_id(self):
        from glint.materials.noise import evaluate_noise

        with pytest.raises(ValueError):
            evaluate_noise(0, (0.0, 0.0, 0.0))


class TestNoiseValidation:
    """Tests for noise parameter checks."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"seed": -1, "octaves": 1},
            {"seed": 0, "octaves": -1},
            {"seed": 0, "octaves": 1, "wavelength": 0.0},
        ],
    )
    def test_invalid_params(self, kwargs):
        from glint.materials.noise import NormalMap, add_noise_map

        with pytest.raises(ValueError):
            add_noise_map(NormalMap(**kwargs))

    def test_count_and_clear(self):
        from glint.materials.noise import (
            NormalMap,
            add_noise_map,
            clear_noise_maps,
            get_noise_map_count,
        )

        add_noise_map(NormalMap(seed=0, octaves=1))
        add_noise_map(NormalMap(seed=1, octaves=1))
        assert get_noise_map_count() == 2
        clear_noise_maps()
        assert get_noise_map_count() == 0


class TestNoisePerturbation:
    """Tests for applying maps to normals and positions."""

    def test_normal_map_at_lattice_point(self):
        """With zero noise the normal is shifted by 0.5 on every axis."""
        from glint.materials.noise import NormalMap, add_noise_map, apply_normal_map, vec3

        map_id = add_noise_map(NormalMap(seed=3, octaves=2))
        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel(m: ti.i32):
            result[None] = apply_normal_map(m, vec3(0.0, 0.0, -1.0), vec3(1.0, 2.0, 3.0))

        test_kernel(map_id)
        s = 1.0 / math.sqrt(3.0)
        assert tuple(result[None].to_numpy()) == pytest.approx((s, s, -s), abs=1e-5)

    def test_displacement_map_at_lattice_point(self):
        """With zero noise every coordinate moves by one."""
        from glint.materials.noise import (
            DisplacementMap,
            add_noise_map,
            apply_displacement_map,
            vec3,
        )

        map_id = add_noise_map(DisplacementMap(seed=3, octaves=2))
        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel(m: ti.i32):
            result[None] = apply_displacement_map(m, vec3(1.0, 2.0, 3.0))

        test_kernel(map_id)
        assert tuple(result[None].to_numpy()) == pytest.approx((2.0, 3.0, 4.0), abs=1e-5)

    def test_perturbed_normal_is_unit(self):
        from glint.materials.noise import NormalMap, add_noise_map, apply_normal_map, vec3

        map_id = add_noise_map(NormalMap(seed=8, octaves=4, wavelength=0.3))
        length = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel(m: ti.i32):
            n = apply_normal_map(m, vec3(0.0, 1.0, 0.0), vec3(0.31, 0.77, -1.43))
            length[None] = n.norm()

        test_kernel(map_id)
        assert length[None] == pytest.approx(1.0, abs=1e-5)

"""Tests for vector helpers, the envelope SDF and flow fields."""

import math

import numpy as np
import pytest

from geometric_interior.core.params import DivisionParams
from geometric_interior.core.prng import rng_from_label
from geometric_interior.engine.envelope import (
    check_radii,
    envelope_normal,
    envelope_sdf,
    generate_seed_points,
    project_to_envelope,
)
from geometric_interior.engine.flow_field import (
    color_field_hue,
    composite_flow_field,
    flow_field_normal,
    hash_vec,
)
from geometric_interior.engine.geometry import (
    catmull_rom_points,
    gaussian,
    normalize,
    reflect_across_line,
    reject,
    rotate_about,
)
from geometric_interior.errors import InvalidParameter

RADII = (1.4, 0.95, 1.15)


class TestVectorHelpers:
    def test_normalize(self):
        assert np.allclose(normalize(np.array([3.0, 0.0, 4.0])), [0.6, 0.0, 0.8])

    def test_normalize_zero(self):
        assert np.allclose(normalize(np.zeros(3)), 0.0)

    def test_reject(self):
        assert np.allclose(reject(np.array([1.0, 2.0, 3.0]), np.array([0.0, 1.0, 0.0])), [1.0, 0.0, 3.0])

    def test_rotate_about(self):
        out = rotate_about(np.array([1.0, 0.0, 0.0]), np.array([0.0, 0.0, 1.0]), math.pi / 2)
        assert np.allclose(out, [0.0, 1.0, 0.0])

    def test_reflect_across_line(self):
        out = reflect_across_line(np.array([0.0, 1.0, 0.0]), np.zeros(3), np.array([1.0, 0.0, 0.0]))
        assert np.allclose(out, [0.0, -1.0, 0.0])

    def test_gaussian_consumes_two_draws(self):
        a, b = rng_from_label("g"), rng_from_label("g")
        gaussian(a)
        b()
        b()
        assert a() == b()

    def test_catmull_rom_endpoints(self):
        pts = np.array([[0.0, 0, 0], [1, 0, 0], [2, 1, 0], [3, 1, 0]])
        out = catmull_rom_points(pts, 12)
        assert out.shape == (13, 3)
        assert np.allclose(out[0], pts[0])
        assert np.allclose(out[-1], pts[-1])


class TestEnvelope:
    def test_sign(self):
        assert envelope_sdf(np.zeros(3), RADII) < 0
        assert envelope_sdf(np.array([5.0, 0.0, 0.0]), RADII) > 0

    def test_batch_matches_single(self):
        pts = np.array([[0.1, 0.2, 0.3], [1.0, -0.5, 0.2]])
        batch = envelope_sdf(pts, RADII)
        assert batch.shape == (2,)
        assert batch[1] == pytest.approx(envelope_sdf(pts[1], RADII))

    def test_groove_dips_the_top(self):
        flat = DivisionParams(groove_depth=0.0)
        deep = DivisionParams(groove_depth=0.35)
        top = np.array([0.0, 0.9, 0.0])
        assert envelope_sdf(top, RADII, deep) > envelope_sdf(top, RADII, flat)

    def test_normal_points_outward(self):
        n = envelope_normal(np.array([1.4, 0.0, 0.0]), RADII)
        assert n[0] > 0.9
        assert np.linalg.norm(n) == pytest.approx(1.0)

    def test_projection_lands_on_surface(self):
        p = project_to_envelope(np.array([0.3, 0.2, 0.1]), RADII)
        assert abs(envelope_sdf(p, RADII)) < 0.01

    def test_seed_points(self):
        seeds = generate_seed_points(8, RADII, theta_offset=math.pi)
        assert len(seeds) == 8
        assert all(abs(envelope_sdf(s, RADII)) < 0.01 for s in seeds)
        # Spiral runs top to bottom.
        assert seeds[0][1] > 0 > seeds[-1][1]

    def test_single_seed_point(self):
        assert len(generate_seed_points(1, RADII)) == 1

    @pytest.mark.parametrize("bad", [(1.0, 0.0, 1.0), (1.0, -1.0, 1.0), (1.0, 1.0), (1.0, math.nan, 1.0)])
    def test_check_radii(self, bad):
        with pytest.raises(InvalidParameter):
            check_radii(bad)


class TestFlowField:
    def test_hash_in_unit_cube(self):
        h = hash_vec(np.array([[1.0, 2.0, 3.0], [-4.0, 5.0, 6.0]]))
        assert h.shape == (2, 3)
        assert ((h >= 0) & (h < 1)).all()

    def test_flow_normal_is_unit_and_deterministic(self):
        p = np.array([0.3, -0.2, 0.5])
        a = flow_field_normal(p)
        assert np.linalg.norm(a) == pytest.approx(1.0)
        assert np.allclose(a, flow_field_normal(p))

    def test_composite_endpoints(self):
        p = np.array([0.5, 0.1, 0.0])
        assert np.allclose(composite_flow_field(p, 1.5, 0.0), flow_field_normal(p, 1.5))
        swirl = composite_flow_field(p, 1.5, 1.0)
        # Pure swirl circulates about the vertical axis.
        assert swirl[2] > 0.9

    def test_color_field_hue_range(self):
        for x in np.linspace(-1, 1, 9):
            hue = color_field_hue(np.array([x, 0.2, -0.1]), 1.2, 200.0, 100.0)
            assert 150.0 <= hue <= 250.0

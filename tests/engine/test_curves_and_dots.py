"""Tests for guide curves and light dots."""

import numpy as np
import pytest

from geometric_interior.core.controls import Controls
from geometric_interior.core.params import TIERS, derive_params
from geometric_interior.core.prng import rng_from_label
from geometric_interior.engine.dots import (
    MAX_LIGHTS,
    build_light_set,
    create_glow_texture,
    generate_dots,
    glow_profile,
    illumination,
)
from geometric_interior.engine.envelope import envelope_sdf
from geometric_interior.engine.guide_curves import (
    MAX_OUTSIDE,
    generate_all_guide_curves,
    generate_guide_curve,
    sample_along_curve,
)


@pytest.fixture(scope="module")
def params():
    return derive_params(Controls(density=0.1))


@pytest.fixture(scope="module")
def curves(params):
    return generate_all_guide_curves(
        params.curve_config, rng_from_label("curves"), params.envelope_radii, params.division, np.pi
    )


class TestGuideCurves:
    def test_tiers_in_order_and_capped(self, curves, params):
        tiers = [c.tier for c in curves]
        assert tiers == sorted(tiers, key=TIERS.index)
        for tier in TIERS:
            kept = sum(1 for c in curves if c.tier == tier)
            assert kept <= params.curve_config[tier].max_count

    def test_curves_meet_minimum_length(self, curves, params):
        for c in curves:
            assert len(c) > params.curve_config[c.tier].min_length

    def test_points_hug_the_envelope(self, curves, params):
        for c in curves:
            sdf = envelope_sdf(c.points, params.envelope_radii, params.division)
            assert (sdf <= MAX_OUTSIDE + 1e-9).all()

    def test_deterministic(self, params):
        def grow():
            return generate_all_guide_curves(
                params.curve_config, rng_from_label("again"), params.envelope_radii, params.division
            )
        a, b = grow(), grow()
        assert len(a) == len(b)
        assert all(np.array_equal(x.points, y.points) for x, y in zip(a, b))

    def test_single_curve_starts_at_seed(self, params):
        seed = np.array([0.0, 0.0, params.envelope_radii[2]])
        pts = generate_guide_curve(seed, np.zeros((0, 3)), 10, 0.05, 0.3, rng_from_label("one"), params.envelope_radii)
        assert np.allclose(pts[0], seed)
        assert len(pts) <= 11

    def test_samples_have_unit_frames(self, curves, params):
        samples = sample_along_curve(curves[0].points, 0.1, params.envelope_radii, params.division)
        assert samples
        for s in samples:
            assert np.linalg.norm(s.tangent) == pytest.approx(1.0)
            assert np.linalg.norm(s.normal) == pytest.approx(1.0)


class TestDots:
    @pytest.fixture(scope="class")
    def field(self, params, curves):
        return generate_dots(params.dot_config, curves, params.envelope_radii, rng_from_label("dots"))

    def test_hero_dots_first(self, field, params):
        heroes = field.dots[:params.dot_config.hero_count]
        assert all(d.tier == "hero" and d.intensity == 1.0 for d in heroes)

    def test_tier_order(self, field):
        order = ["hero", "medium", "small", "interior", "micro"]
        ranks = [order.index(d.tier) for d in field.dots]
        assert ranks == sorted(ranks)

    def test_counts(self, field, params):
        c = params.dot_config
        assert sum(d.tier == "interior" for d in field.dots) == c.interior_count
        assert sum(d.tier == "micro" for d in field.dots) == c.micro_count
        assert field.sphere_count == len(field.dots)
        assert len(field.glow_pos) == len(field.glow_size) <= field.sphere_count

    def test_light_set(self, field):
        lights = field.lights
        assert lights.positions.shape == (MAX_LIGHTS, 3)
        assert lights.count <= MAX_LIGHTS
        assert (lights.intensities[lights.count:] == 0).all()
        assert all(d.tier == "light" for d in lights.active())

    def test_light_set_uses_hero_and_medium_only(self):
        from geometric_interior.engine.dots import DotPosition

        dots = [DotPosition(np.full(3, 99.0), "micro", 0.05)] + [
            DotPosition(np.full(3, i, dtype=float), "hero", 1.0) for i in range(12)
        ]
        lights = build_light_set(dots)
        assert lights.count == MAX_LIGHTS
        assert lights.positions[0][0] == 0.0
        assert lights.positions[1][0] == 1.0

    def test_illumination(self, field):
        assert illumination(np.zeros(3), None) == 0.0
        near = illumination(field.lights.positions[0], field.lights)
        far = illumination(np.array([50.0, 0.0, 0.0]), field.lights)
        assert 0 < far < near <= 3.0


class TestGlowSprite:
    def test_profile(self):
        assert glow_profile(np.array([0.0]))[0] == pytest.approx(0.40)
        assert glow_profile(np.array([1.0, 2.0])).tolist() == [0.0, 0.0]

    def test_texture(self):
        img = create_glow_texture(32)
        assert img.mode == "RGBA"
        assert img.size == (32, 32)
        alpha = np.asarray(img)[..., 3]
        assert alpha[16, 16] > alpha[0, 0]

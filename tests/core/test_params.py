"""Tests for derived parameters."""

import math

import pytest

from geometric_interior.core.controls import Controls
from geometric_interior.core.params import TIERS, derive_params


class TestDeriveParams:
    def test_default_scene_values(self):
        p = derive_params(Controls())
        assert p.camera_z == pytest.approx(3.5)
        assert p.camera_fov == pytest.approx(50.0)
        assert p.envelope_radii == pytest.approx((1.4, 0.95, 1.15))
        assert p.density_scale == pytest.approx(1.0)

    def test_colour_primitives(self):
        p = derive_params(Controls(hue=0.5, spectrum=1.0, chroma=0.5))
        assert p.base_hue == pytest.approx(180.0)
        assert p.hue_range == pytest.approx(360.0)
        assert p.saturation == pytest.approx(0.65)

    def test_background_is_near_black(self):
        p = derive_params(Controls(luminosity=1.0, chroma=1.0))
        assert all(0.0 <= v <= 0.008 for v in p.bg_inner_color)
        assert p.bg_outer_color == (0.0, 0.0, 0.0)

    @pytest.mark.parametrize("fracture", [0.0, 0.5, 1.0])
    def test_envelope_radii_positive(self, fracture):
        radii = derive_params(Controls(fracture=fracture)).envelope_radii
        assert all(r > 0 for r in radii)

    def test_density_grows_structure(self):
        sparse = derive_params(Controls(density=0.0))
        dense = derive_params(Controls(density=1.0))
        for tier in TIERS:
            assert dense.curve_config[tier].max_count >= sparse.curve_config[tier].max_count
        assert dense.dot_config.micro_count > sparse.dot_config.micro_count
        assert dense.density_scale > sparse.density_scale

    def test_density_dims_glow(self):
        sparse = derive_params(Controls(density=0.0))
        dense = derive_params(Controls(density=1.0))
        assert dense.dot_config.hero_glow_base < sparse.dot_config.hero_glow_base

    @pytest.mark.parametrize("density,scale", [(0.0, 1.0), (0.0, 0.0), (1.0, 1.0)])
    def test_chain_length_at_least_one(self, density, scale):
        p = derive_params(Controls(density=density, scale=scale))
        for tier in TIERS:
            assert p.chain_config[tier].chain_len_base >= 1

    def test_coherence_drives_flow(self):
        loose = derive_params(Controls(coherence=0.0))
        tight = derive_params(Controls(coherence=1.0))
        assert loose.flow_influence == 0.0
        assert tight.flow_influence == pytest.approx(0.5)
        assert tight.flow_scale < loose.flow_scale

    def test_all_scalars_finite(self):
        p = derive_params(Controls(density=1, luminosity=0, fracture=1, coherence=0))
        for name in ("bloom_strength", "back_light_factor", "illumination_cap", "front_light_factor"):
            assert math.isfinite(getattr(p, name))

    def test_dot_hues_follow_base_hue(self):
        p = derive_params(Controls(hue=0.25))
        assert p.dot_base_hue == pytest.approx(90.0)
        assert p.micro_dot_base_hue == pytest.approx(80.0)

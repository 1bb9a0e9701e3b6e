"""
Controls -> derived engine parameters.

Every scalar is a ``control_lerp`` triple tuned around the default scene.
The triples are part of the deterministic render contract: change one
and every saved portrait changes with it.

Couplings worth knowing about:

- density divides every glow amplitude (``density_scale``) and attenuates
  face lighting, face opacity and bloom so dense scenes stay legible;
- fracture moves envelope anisotropy, curve curvature and length, dot
  spread, chain scale and aberration together;
- coherence sets the flow-field scale and how strongly chains follow it.
"""

import math
from dataclasses import dataclass, field
from typing import Tuple

from geometric_interior.core.controls import Controls
from geometric_interior.core.palettes import hsl_to_rgb01
from geometric_interior.core.prng import control_lerp as cl
from geometric_interior.core.prng import round_half_up
from geometric_interior.errors import InvalidParameter

Vec3 = Tuple[float, float, float]

TIERS = ("primary", "secondary", "tertiary")


@dataclass(frozen=True)
class CurveTierConfig:
    seed_count: int
    max_count: int
    max_steps: int
    step_size: float
    curvature: float
    min_length: int


@dataclass(frozen=True)
class ChainTierConfig:
    chain_len_base: int
    chain_len_range: int
    scale_base: float
    scale_range: float
    spread: float
    dual_prob: float
    spacing: float


@dataclass(frozen=True)
class DivisionParams:
    """Envelope groove topology."""

    groove_depth: float = 0.2
    groove_width: float = 0.18
    secondary_groove_depth: float = 0.0
    secondary_groove_angle: float = 2.094  # 120 degrees
    noise_amplitude: float = 0.06


@dataclass(frozen=True)
class FacetingParams:
    """Shard geometry of folding chains."""

    quad_probability: float = 0.7
    dihedral_base: float = 0.02
    dihedral_range: float = 0.08
    contraction_base: float = 0.92
    contraction_range: float = 0.12


@dataclass(frozen=True)
class DotConfig:
    hero_count: int
    hero_spread: Vec3
    hero_radius_base: float
    hero_radius_range: float
    hero_glow_base: float
    hero_glow_range: float

    medium_count: int
    medium_jitter: float
    medium_radius_base: float
    medium_radius_range: float
    medium_glow_base: float
    medium_glow_range: float

    small_density: dict
    small_radius_base: float
    small_radius_range: float
    small_glow_base: float
    small_lightness_base: float
    small_lightness_range: float

    interior_count: int
    interior_spread: Vec3

    micro_count: int
    micro_spread: Vec3
    micro_radius_base: float
    micro_radius_range: float
    micro_glow_base: float
    micro_lightness_base: float
    micro_lightness_range: float

    dot_base_hue: float
    micro_dot_base_hue: float


@dataclass(frozen=True)
class DerivedParams:
    """Read-only parameter record consumed by every producer."""

    density: float
    fracture: float
    luminosity: float
    density_scale: float

    # Palette primitives
    base_hue: float
    hue_range: float
    saturation: float
    fog_color: Vec3
    bg_inner_color: Vec3
    bg_outer_color: Vec3

    envelope_radii: Vec3

    camera_z: float
    camera_fov: float
    camera_offset_x: float
    camera_offset_y: float

    curve_config: dict
    chain_config: dict

    edge_color_offset: Vec3
    edge_opacity_base: float
    edge_opacity_fade_scale: float
    crack_extend_scale: float
    face_density_atten: float
    back_light_factor: float
    illumination_cap: float
    ambient_light: float
    front_light_factor: float
    edge_fade_threshold: float
    atmospheric_count: int

    dot_config: DotConfig

    tendril_hue_base: float
    tendril_hue_range: float
    tendril_sat_base: float
    tendril_sat_range: float
    tendril_opacity: dict

    face_opacity_scale: float
    bloom_density_atten: float
    bloom_strength: float
    bloom_threshold: float
    chromatic_aberration: float
    vignette_strength: float

    flow_scale: float
    flow_influence: float
    flow_type: float
    color_field_scale: float

    division: DivisionParams = field(default_factory=DivisionParams)
    faceting: FacetingParams = field(default_factory=FacetingParams)

    @property
    def dot_base_hue(self) -> float:
        return self.dot_config.dot_base_hue

    @property
    def micro_dot_base_hue(self) -> float:
        return self.dot_config.micro_dot_base_hue


def _clamp_bg(rgb: Vec3) -> Vec3:
    return tuple(max(0.0, min(0.008, v)) for v in rgb)


def derive_params(controls: Controls) -> DerivedParams:
    """
    Map controls onto the derived parameter record.

    Args:
        controls: Sanitised control vector.

    Returns:
        Frozen DerivedParams.

    Raises:
        InvalidParameter: If a derived value comes out non-finite or the
            envelope radii are not strictly positive.
    """
    c = controls
    frac = 1 - c.fracture

    # --- Colour ---
    base_hue = c.hue * 360
    hue_range = 10 + 350 * c.spectrum * c.spectrum
    saturation = cl(c.chroma, 0.05, 0.65, 1.0)
    lum_scale = cl(c.luminosity, 0.65, 1.0, 1.5)

    fog_saturation = 0.3 * max(saturation, 0.15)
    fog_color = _clamp_bg(hsl_to_rgb01(base_hue, fog_saturation, 0.004 * lum_scale))
    bg_inner_color = fog_color
    bg_outer_color = (0.0, 0.0, 0.0)

    envelope_radii = (
        cl(frac, 1.0, 1.4, 1.8),
        cl(frac, 0.70, 0.95, 1.20),
        cl(frac, 0.85, 1.15, 1.50),
    )

    # --- Camera (depth is a legacy axis, neutral at 0.5) ---
    camera_z = cl(c.depth, 3.0, 3.5, 4.2)
    camera_fov = cl(c.depth, 46.0, 50.0, 56.0)
    vignette_strength = cl(c.depth, 0.40, 0.50, 0.62)

    # --- Scale tier weighting ---
    primary_scale = cl(c.scale, 1.4, 1.0, 0.4)
    secondary_scale = cl(c.scale, 1.15, 1.0, 0.85)
    tertiary_scale = cl(c.scale, 0.6, 1.0, 1.8)

    curve_config = {
        "primary": CurveTierConfig(
            seed_count=round_half_up(cl(c.coherence, 5, 8, 12)),
            max_count=round_half_up(cl(c.density, 3, 5, 7) * primary_scale),
            max_steps=round_half_up(cl(frac, 28, 40, 55)),
            step_size=cl(c.coherence, 0.08, 0.06, 0.04),
            curvature=cl(frac, 0.2, 0.4, 0.7),
            min_length=8,
        ),
        "secondary": CurveTierConfig(
            seed_count=round_half_up(cl(c.coherence, 10, 16, 24)),
            max_count=round_half_up(cl(c.density, 5, 10, 14) * secondary_scale),
            max_steps=round_half_up(cl(frac, 10, 16, 24)),
            step_size=cl(c.coherence, 0.07, 0.05, 0.035),
            curvature=cl(frac, 0.3, 0.6, 1.0),
            min_length=5,
        ),
        "tertiary": CurveTierConfig(
            seed_count=round_half_up(cl(c.coherence, 16, 24, 36)),
            max_count=round_half_up(cl(c.density, 7, 14, 20) * tertiary_scale),
            max_steps=8,
            step_size=cl(c.coherence, 0.055, 0.04, 0.025),
            curvature=cl(frac, 0.4, 0.8, 1.3),
            min_length=3,
        ),
    }

    chain_config = {
        "primary": ChainTierConfig(
            chain_len_base=max(1, round_half_up(cl(c.density, 5, 8, 11) * primary_scale)),
            chain_len_range=3,
            scale_base=0.95 * cl(c.scale, 1.2, 1.0, 0.7),
            scale_range=cl(frac, 0.25, 0.50, 0.80),
            spread=cl(frac, 0.35, 0.60, 0.85),
            dual_prob=cl(c.density, 0.45, 0.75, 0.95),
            spacing=cl(c.coherence, 0.15, 0.11, 0.07),
        ),
        "secondary": ChainTierConfig(
            chain_len_base=max(1, round_half_up(cl(c.density, 3, 5, 7) * secondary_scale)),
            chain_len_range=2,
            scale_base=0.75 * cl(c.scale, 1.1, 1.0, 0.85),
            scale_range=cl(frac, 0.18, 0.35, 0.55),
            spread=cl(frac, 0.25, 0.40, 0.60),
            dual_prob=cl(c.density, 0.25, 0.50, 0.75),
            spacing=cl(c.coherence, 0.17, 0.13, 0.08),
        ),
        "tertiary": ChainTierConfig(
            chain_len_base=max(1, round_half_up(cl(c.density, 2, 3, 5) * tertiary_scale)),
            chain_len_range=2,
            scale_base=0.45 * cl(c.scale, 0.9, 1.0, 1.3),
            scale_range=cl(frac, 0.18, 0.35, 0.55),
            spread=cl(frac, 0.15, 0.30, 0.50),
            dual_prob=cl(c.density, 0.10, 0.28, 0.50),
            spacing=cl(c.coherence, 0.13, 0.09, 0.05),
        ),
    }

    # --- Edge / face rendering ---
    face_density_atten = cl(c.density, 0.90, 1.0, 2.5)
    density_scale = cl(c.density, 0.35, 1.0, 5.5)

    hero_spread_scale = cl(frac, 0.5, 1.0, 1.75)
    spread_density = cl(c.density, 0.85, 1.0, 1.25)
    small_density_scale = cl(c.density, 0.25, 1.0, 2.0)
    dot_config = DotConfig(
        hero_count=round_half_up(cl(c.density, 3, 5, 9) * primary_scale),
        hero_spread=(0.08 * hero_spread_scale, 0.06 * hero_spread_scale, 0.08 * hero_spread_scale),
        hero_radius_base=0.028,
        hero_radius_range=0.05,
        hero_glow_base=cl(c.luminosity, 24, 34, 44) / density_scale,
        hero_glow_range=14,
        medium_count=round_half_up(cl(c.density, 3, 8, 20) * secondary_scale),
        medium_jitter=0.02,
        medium_radius_base=0.012,
        medium_radius_range=0.020,
        medium_glow_base=cl(c.luminosity, 12, 16, 21) / density_scale,
        medium_glow_range=8,
        small_density={
            "primary": 0.28 * small_density_scale,
            "secondary": 0.16 * small_density_scale,
            "tertiary": 0.09 * small_density_scale,
        },
        small_radius_base=0.003,
        small_radius_range=0.008,
        small_glow_base=cl(c.luminosity, 7, 10, 14) / density_scale,
        small_lightness_base=cl(c.luminosity, 0.25, 0.35, 0.50),
        small_lightness_range=0.35,
        interior_count=round_half_up(cl(c.density, 18, 50, 180) * secondary_scale),
        interior_spread=(
            cl(frac, 0.40, 0.65, 0.90) * spread_density,
            cl(frac, 0.30, 0.48, 0.66) * spread_density,
            cl(frac, 0.36, 0.58, 0.80) * spread_density,
        ),
        micro_count=round_half_up(cl(c.density, 70, 220, 800) * tertiary_scale),
        micro_spread=(
            cl(frac, 0.55, 0.90, 1.25) * spread_density,
            cl(frac, 0.38, 0.62, 0.86) * spread_density,
            cl(frac, 0.46, 0.75, 1.04) * spread_density,
        ),
        micro_radius_base=0.002,
        micro_radius_range=0.006,
        micro_glow_base=cl(c.luminosity, 8, 12, 16) / density_scale,
        micro_lightness_base=cl(c.luminosity, 0.20, 0.30, 0.45),
        micro_lightness_range=0.40,
        dot_base_hue=base_hue,
        micro_dot_base_hue=base_hue - 10,
    )

    bloom_density_atten = cl(c.density, 1.0, 1.0, 1.8)
    flow_scale = cl(c.coherence, 5.0, 1.5, 0.5)

    params = DerivedParams(
        density=c.density,
        fracture=c.fracture,
        luminosity=c.luminosity,
        density_scale=density_scale,
        base_hue=base_hue,
        hue_range=hue_range,
        saturation=saturation,
        fog_color=fog_color,
        bg_inner_color=bg_inner_color,
        bg_outer_color=bg_outer_color,
        envelope_radii=envelope_radii,
        camera_z=camera_z,
        camera_fov=camera_fov,
        camera_offset_x=0.0,
        camera_offset_y=0.0,
        curve_config=curve_config,
        chain_config=chain_config,
        edge_color_offset=(0.0, -0.04, 0.04),
        edge_opacity_base=cl(frac, 0.001, 0.003, 0.006),
        edge_opacity_fade_scale=cl(frac, 0.008, 0.015, 0.025),
        crack_extend_scale=cl(frac, 1.04, 1.12, 1.22),
        face_density_atten=face_density_atten,
        back_light_factor=cl(c.luminosity, 1.2, 2.0, 2.8) / face_density_atten,
        illumination_cap=cl(c.luminosity, 1.3, 1.8, 2.2) / face_density_atten,
        ambient_light=cl(c.luminosity, 0.008, 0.02, 0.04),
        front_light_factor=cl(c.luminosity, 0.15, 0.3, 0.5) / face_density_atten,
        edge_fade_threshold=cl(frac, 0.30, 0.22, 0.14),
        atmospheric_count=round_half_up(cl(c.density, 4, 8, 14) * tertiary_scale),
        dot_config=dot_config,
        tendril_hue_base=base_hue - 20,
        tendril_hue_range=min(hue_range, 40),
        tendril_sat_base=0.4,
        tendril_sat_range=0.3,
        tendril_opacity={
            "primary": cl(c.coherence, 0.01, 0.06, 0.14),
            "other": cl(c.coherence, 0.005, 0.03, 0.08),
        },
        face_opacity_scale=cl(c.density, 1.0, 1.0, 0.45),
        bloom_density_atten=bloom_density_atten,
        bloom_strength=cl(c.luminosity, 0.12, 0.20, 0.30) / bloom_density_atten,
        bloom_threshold=cl(c.coherence, 0.55, 0.70, 0.85),
        chromatic_aberration=cl(frac, 0.001, 0.002, 0.004),
        vignette_strength=vignette_strength,
        flow_scale=flow_scale,
        flow_influence=cl(c.coherence, 0.0, 0.18, 0.50),
        flow_type=c.flow,
        color_field_scale=flow_scale * 0.8,
        division=DivisionParams(
            groove_depth=cl(c.division, 0.0, 0.2, 0.35),
            groove_width=cl(c.division, 0.25, 0.18, 0.14),
            secondary_groove_depth=cl(c.division, 0.0, 0.0, 0.25),
            secondary_groove_angle=2.094,
            noise_amplitude=cl(c.division, 0.03, 0.06, 0.09),
        ),
        faceting=FacetingParams(
            quad_probability=cl(c.faceting, 0.90, 0.70, 0.30),
            dihedral_base=cl(c.faceting, 0.01, 0.02, 0.05),
            dihedral_range=cl(c.faceting, 0.03, 0.08, 0.14),
            contraction_base=cl(c.faceting, 0.96, 0.92, 0.86),
            contraction_range=cl(c.faceting, 0.05, 0.12, 0.18),
        ),
    )
    _check_finite(params)
    return params


def _check_finite(params: DerivedParams) -> None:
    scalars = [
        params.density_scale,
        params.back_light_factor,
        params.bloom_strength,
        params.flow_scale,
        params.camera_z,
        params.camera_fov,
        *params.envelope_radii,
        *params.bg_inner_color,
    ]
    if not all(math.isfinite(v) for v in scalars):
        raise InvalidParameter("derived parameters contain non-finite values")
    if any(r <= 0 for r in params.envelope_radii):
        raise InvalidParameter(f"envelope radii must be positive, got {params.envelope_radii}")

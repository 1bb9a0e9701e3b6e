"""
Scene assembly.

``build_scene(seed, controls)`` runs the producers in their fixed order
(envelope, curves, dots, chains, tendrils) against three seeded
streams, one per seed-tag slot, and freezes the result into an immutable
Scene. Per-frame state (fold progress, clock, live animation params,
camera override) never touches the Scene; it is layered on by
``frame_uniforms``.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Union

import numpy as np

from geometric_interior.core.controls import Controls
from geometric_interior.core.palettes import RGB, hsl
from geometric_interior.core.params import TIERS, DerivedParams, derive_params
from geometric_interior.core.prng import Rng
from geometric_interior.core.seed_tags import Seed, TagStreams, create_tag_streams, parse_seed, seed_to_string
from geometric_interior.engine.accumulator import BatchAccumulator, EdgeStream, FaceStream
from geometric_interior.engine.dots import DotField, generate_dots
from geometric_interior.engine.envelope import check_radii, envelope_sdf
from geometric_interior.engine.flow_field import color_field_hue, composite_flow_field
from geometric_interior.engine.folding_chains import ChainConfig, create_folding_chain
from geometric_interior.engine.geometry import catmull_rom_points, gaussian3, normalize
from geometric_interior.engine.guide_curves import (
    CurveSample,
    GuideCurve,
    curves_by_tier,
    draping_direction,
    generate_all_guide_curves,
    sample_along_curve,
)
from geometric_interior.errors import RenderFailure

ATMOSPHERIC_SPREAD = (0.6, 0.4, 0.5)
ATMOSPHERIC_MAX_SDF = -0.1
ATMOSPHERIC_ATTEMPTS = 50


@dataclass(frozen=True)
class SceneUniforms:
    """Scene-constant shader inputs."""

    light_positions: np.ndarray
    light_intensities: np.ndarray
    light_count: int
    bg_inner_color: RGB
    bg_outer_color: RGB
    fog_color: RGB
    camera_z: float
    camera_fov: float
    camera_offset_x: float
    camera_offset_y: float
    bloom_strength: float
    bloom_threshold: float
    chromatic_aberration: float
    vignette_strength: float
    front_light_factor: float
    back_light_factor: float
    illumination_cap: float
    ambient_light: float
    edge_fade_threshold: float

    @classmethod
    def from_params(cls, params: DerivedParams, dots: DotField) -> "SceneUniforms":
        return cls(
            light_positions=dots.lights.positions,
            light_intensities=dots.lights.intensities,
            light_count=dots.lights.count,
            bg_inner_color=params.bg_inner_color,
            bg_outer_color=params.bg_outer_color,
            fog_color=params.fog_color,
            camera_z=params.camera_z,
            camera_fov=params.camera_fov,
            camera_offset_x=params.camera_offset_x,
            camera_offset_y=params.camera_offset_y,
            bloom_strength=params.bloom_strength,
            bloom_threshold=params.bloom_threshold,
            chromatic_aberration=params.chromatic_aberration,
            vignette_strength=params.vignette_strength,
            front_light_factor=params.front_light_factor,
            back_light_factor=params.back_light_factor,
            illumination_cap=params.illumination_cap,
            ambient_light=params.ambient_light,
            edge_fade_threshold=params.edge_fade_threshold,
        )


@dataclass(frozen=True)
class Scene:
    seed: Seed
    seed_label: str
    controls: Controls
    params: DerivedParams
    curves: tuple[GuideCurve, ...]
    dots: DotField
    faces: FaceStream
    edges: EdgeStream
    tendril_pos: np.ndarray  # (2K, 3) segment endpoints
    tendril_color: np.ndarray  # (2K, 3), premultiplied by opacity
    chain_count: int
    node_count: int
    uniforms: SceneUniforms

    @property
    def face_count(self) -> int:
        return self.faces.triangle_count


@dataclass(frozen=True)
class AnimConfig:
    """Live animation multipliers; 1.0 is the editor's default motion."""

    sparkle: float = 1.0
    drift: float = 1.0
    wobble: float = 1.0

    @classmethod
    def from_live_params(cls, twinkle: float, dynamism: float) -> "AnimConfig":
        return cls(sparkle=twinkle, drift=dynamism, wobble=twinkle)


@dataclass(frozen=True)
class CameraOverride:
    zoom: float = 1.0
    orbit_y: float = 0.0  # degrees
    orbit_x: float = 0.0  # degrees


@dataclass(frozen=True)
class FrameUniforms:
    fold_progress: float
    time: float
    sparkle: float
    drift: float
    wobble: float
    camera_position: np.ndarray
    camera_target: np.ndarray
    camera_fov: float
    morph_fade: float = 1.0
    extra: dict = field(default_factory=dict)


def _make_pick_color(params: DerivedParams, rng: Rng, warmth_shift: float = 0.0):
    def pick_color(dist: float, decay: float, boost: float, family_hue: Optional[float]) -> RGB:
        fade = math.exp(-decay * dist * dist)
        if family_hue is not None:
            hue = family_hue + (rng() - 0.5) * 35 + warmth_shift
        else:
            center_hue = params.base_hue + 25 + rng() * 40 + warmth_shift
            edge_hue = params.base_hue - 50 + rng() * 40 + warmth_shift
            hue = edge_hue + fade * (center_hue - edge_hue)
        saturation = min(params.saturation * 0.75 + rng() * 0.25 + (1 - fade) * 0.05, 1.0)
        lightness = min(0.06 + rng() * 0.08 + fade * (0.22 + rng() * 0.22) + boost, 0.60)
        return hsl(hue / 360.0, saturation, lightness)

    return pick_color


def _oriented(direction: np.ndarray, pos: np.ndarray, params: DerivedParams) -> np.ndarray:
    if params.flow_influence > 0:
        flow = composite_flow_field(pos, params.flow_scale, params.flow_type)
        direction = normalize(direction + (flow - direction) * params.flow_influence)
    return direction


def _emit_curve_chains(accum, curves, params, radii, lights, chain_cfg, streams: TagStreams, pick_color) -> None:
    rng, detail = streams.structure, streams.detail
    for curve in curves:
        tc = params.chain_config[curve.tier]
        for sample in sample_along_curve(curve.points, tc.spacing, radii, params.division):
            dir1 = _oriented(draping_direction(sample, tc.spread, rng), sample.pos, params)
            family_hue = color_field_hue(
                sample.pos, params.color_field_scale, params.base_hue, params.hue_range
            ) + (detail() - 0.5) * 30
            chain_len = tc.chain_len_base + math.floor(rng() * tc.chain_len_range)
            plane_scale = tc.scale_base + rng() * tc.scale_range
            dist = float(np.linalg.norm(sample.pos))

            create_folding_chain(
                accum, sample.pos, chain_len, plane_scale, dist, lights,
                chain_cfg, rng, pick_color, family_hue, dir1,
            )

            if rng() < tc.dual_prob:
                flipped = CurveSample(
                    pos=sample.pos, tangent=sample.tangent,
                    normal=sample.normal, binormal=-sample.binormal,
                )
                dir2 = _oriented(draping_direction(flipped, tc.spread, rng), sample.pos, params)
                create_folding_chain(
                    accum, sample.pos, chain_len, plane_scale, dist, lights,
                    chain_cfg, rng, pick_color, family_hue + (detail() - 0.5) * 15, dir2,
                )


def _emit_atmospheric_chains(accum, params, radii, lights, chain_cfg, streams: TagStreams, pick_color) -> None:
    rng, detail = streams.structure, streams.detail
    for _ in range(params.atmospheric_count):
        pos = gaussian3(rng, ATMOSPHERIC_SPREAD)
        attempts = 1
        while envelope_sdf(pos, radii, params.division) > ATMOSPHERIC_MAX_SDF and attempts < ATMOSPHERIC_ATTEMPTS:
            pos = gaussian3(rng, ATMOSPHERIC_SPREAD)
            attempts += 1
        flow = composite_flow_field(pos, params.flow_scale, params.flow_type)
        family_hue = color_field_hue(
            pos, params.color_field_scale, params.base_hue, params.hue_range
        ) + (detail() - 0.5) * 40
        plane_scale = 0.5 + rng() * 0.3
        chain_len = 3 + math.floor(rng() * 2)
        create_folding_chain(
            accum, pos, chain_len, plane_scale, float(np.linalg.norm(pos)), lights,
            chain_cfg, rng, pick_color, family_hue, flow,
        )


def build_tendrils(curves, params: DerivedParams, rng: Rng) -> tuple[np.ndarray, np.ndarray]:
    """Catmull-Rom line strips along each curve, as segment endpoint pairs."""
    positions, colors = [], []
    for curve in curves:
        if len(curve) < 4:
            continue
        pts = catmull_rom_points(curve.points, max(16, len(curve) * 2))
        hue = (params.tendril_hue_base + rng() * params.tendril_hue_range) / 360.0
        sat = params.tendril_sat_base + rng() * params.tendril_sat_range
        opacity = params.tendril_opacity["primary" if curve.tier == "primary" else "other"]

        d2 = np.einsum("ij,ij->i", pts, pts)
        lightness = 0.04 + np.exp(-1.5 * d2) * 0.20
        cols = np.array([hsl(hue, sat, l) for l in lightness]) * opacity

        starts, ends = np.arange(len(pts) - 1), np.arange(1, len(pts))
        seg = np.column_stack([starts, ends]).reshape(-1)
        positions.append(pts[seg])
        colors.append(cols[seg])

    if not positions:
        return np.zeros((0, 3)), np.zeros((0, 3))
    return np.vstack(positions), np.vstack(colors)


def build_scene(seed: Seed, controls: Union[Controls, Mapping[str, Any], None] = None) -> Scene:
    """
    Assemble the full scene for ``(seed, controls)``.

    Args:
        seed: Free-form string or tag triple.
        controls: Controls or a loose mapping (sanitised on ingress).

    Returns:
        Immutable Scene.

    Raises:
        InvalidSeed: If the seed is absent or malformed.
        InvalidParameter: If derived parameters are unusable.
        RenderFailure: If any finalised buffer holds a non-finite value.
    """
    if not isinstance(controls, Controls):
        controls = Controls.from_mapping(controls)
    label = seed_to_string(seed)
    streams = create_tag_streams(parse_seed(seed))
    params = derive_params(controls)
    radii = check_radii(params.envelope_radii)

    # Curves and dots share the arrangement stream; the slot bias turns the seed spiral.
    theta_offset = streams.arrangement_bias * math.pi * 2
    curves = generate_all_guide_curves(params.curve_config, streams.arrangement, radii, params.division, theta_offset)
    dots = generate_dots(params.dot_config, curves, radii, streams.arrangement)

    accum = BatchAccumulator()
    chain_cfg = ChainConfig.from_params(params, streams.structure_bias)
    # Detail slot shifts every chain hue by up to ten degrees either way.
    pick_color = _make_pick_color(params, streams.detail, (streams.detail_bias - 0.5) * 20)
    _emit_curve_chains(accum, curves, params, radii, dots.lights, chain_cfg, streams, pick_color)
    _emit_atmospheric_chains(accum, params, radii, dots.lights, chain_cfg, streams, pick_color)
    faces, edges = accum.finalize()

    tendril_pos, tendril_color = build_tendrils(curves, params, streams.detail)
    for name, arr in (("tendrils", tendril_pos), ("spheres", dots.sphere_pos), ("glow", dots.glow_size)):
        if not np.isfinite(arr).all():
            raise RenderFailure(f"non-finite values in {name}")

    return Scene(
        seed=seed,
        seed_label=label,
        controls=controls,
        params=params,
        curves=tuple(curves),
        dots=dots,
        faces=faces,
        edges=edges,
        tendril_pos=tendril_pos.astype(np.float32),
        tendril_color=np.clip(tendril_color, 0.0, 1.0).astype(np.float32),
        chain_count=accum.chain_count,
        node_count=faces.triangle_count + accum.chain_count,
        uniforms=SceneUniforms.from_params(params, dots),
    )


def camera_position(uniforms: SceneUniforms, camera: Optional[CameraOverride] = None) -> np.ndarray:
    """Base camera position with zoom and orbit applied (orbits in degrees)."""
    camera = camera or CameraOverride()
    x, y, z = uniforms.camera_offset_x, uniforms.camera_offset_y, uniforms.camera_z
    x, y, z = x * camera.zoom, y * camera.zoom, z * camera.zoom

    ay = math.radians(camera.orbit_y)
    x, z = x * math.cos(ay) + z * math.sin(ay), -x * math.sin(ay) + z * math.cos(ay)
    ax = math.radians(camera.orbit_x)
    y, z = y * math.cos(ax) - z * math.sin(ax), y * math.sin(ax) + z * math.cos(ax)
    return np.array([x, y, z])


def frame_uniforms(
    scene: Scene,
    fold_progress: float = 1.0,
    time: float = 0.0,
    anim_config: Optional[AnimConfig] = None,
    camera: Optional[CameraOverride] = None,
) -> FrameUniforms:
    """Per-frame uniform set; the scene itself is left untouched."""
    anim = anim_config or AnimConfig()
    u = scene.uniforms
    return FrameUniforms(
        fold_progress=max(0.0, min(1.0, fold_progress)),
        time=time,
        sparkle=anim.sparkle,
        drift=anim.drift,
        wobble=anim.wobble,
        camera_position=camera_position(u, camera),
        camera_target=np.array([u.camera_offset_x, u.camera_offset_y, 0.0]),
        camera_fov=u.camera_fov,
    )


def sphere_wobble(positions: np.ndarray, time: float, wobble: float) -> np.ndarray:
    """Small per-sphere drift offsets, phase-keyed on position."""
    if len(positions) == 0 or wobble == 0:
        return np.zeros_like(positions)
    phase = positions[:, 0] * 12.9898 + positions[:, 1] * 78.233
    return np.column_stack([
        np.sin(time * 0.8 + phase) * 0.008 * wobble,
        np.cos(time * 0.6 + phase + 1.57) * 0.006 * wobble,
        np.sin(time * 0.5 + phase + 3.14) * 0.005 * wobble,
    ])


def tier_curve_counts(scene: Scene) -> dict[str, int]:
    return {tier: len(curves_by_tier(scene.curves, tier)) for tier in TIERS}

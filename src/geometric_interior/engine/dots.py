"""
Multi-tier light dots.

Five tiers, generated in order: hero, medium, small, interior, micro.
Each dot becomes a light sphere and, when it has a glow, a glow sprite.
Hero and medium dots also seed the significant-light set that
illuminates the folding chains.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from PIL import Image

from geometric_interior.core.palettes import hsl
from geometric_interior.core.params import DotConfig
from geometric_interior.core.prng import Rng
from geometric_interior.engine.envelope import envelope_sdf
from geometric_interior.engine.geometry import gaussian, gaussian3, vec3
from geometric_interior.engine.guide_curves import GuideCurve

MAX_LIGHTS = 10
GLOW_TEXTURE_SIZE = 128
GLOW_STOPS = ((0.0, 0.40), (0.1, 0.25), (0.3, 0.10), (0.6, 0.03), (1.0, 0.00))

SMALL_JITTER = 0.03
INTERIOR_MAX_SDF = -0.05
MICRO_MAX_SDF = 0.05
MAX_ATTEMPTS = 50
SPHERE_RADIUS_SCALE = 0.3

WHITE = (1.0, 1.0, 1.0)


@dataclass(frozen=True)
class DotPosition:
    pos: np.ndarray
    tier: str
    intensity: float


@dataclass(frozen=True)
class LightSet:
    """Exactly MAX_LIGHTS slots; unused ones have zero intensity."""

    positions: np.ndarray  # (MAX_LIGHTS, 3)
    intensities: np.ndarray  # (MAX_LIGHTS,)
    count: int

    def active(self) -> list[DotPosition]:
        return [
            DotPosition(pos=self.positions[i], tier="light", intensity=float(self.intensities[i]))
            for i in range(self.count)
        ]


@dataclass(frozen=True)
class DotField:
    sphere_pos: np.ndarray  # (N, 3)
    sphere_radius: np.ndarray  # (N,)
    sphere_color: np.ndarray  # (N, 3)
    glow_pos: np.ndarray  # (M, 3)
    glow_size: np.ndarray  # (M,)
    dots: tuple[DotPosition, ...]
    lights: LightSet

    @property
    def sphere_count(self) -> int:
        return len(self.sphere_radius)


def glow_profile(r: np.ndarray) -> np.ndarray:
    """Alpha of the glow sprite at normalised radius ``r`` (0 centre, 1 rim)."""
    xs = [s for s, _ in GLOW_STOPS]
    ys = [a for _, a in GLOW_STOPS]
    return np.interp(np.clip(r, 0.0, 1.0), xs, ys)


def create_glow_texture(size: int = GLOW_TEXTURE_SIZE) -> Image.Image:
    """White RGBA radial gradient sprite; alpha follows ``GLOW_STOPS``."""
    half = size / 2.0
    coords = np.arange(size, dtype=np.float64) + 0.5 - half
    xg, yg = np.meshgrid(coords, coords)
    alpha = glow_profile(np.sqrt(xg ** 2 + yg ** 2) / half)
    rgba = np.empty((size, size, 4), dtype=np.uint8)
    rgba[..., :3] = 255
    rgba[..., 3] = np.round(alpha * 255).astype(np.uint8)
    return Image.fromarray(rgba)


def _transducer(
    rng: Rng,
    dist: float,
    decay: float,
    base_hue: float,
    hue_spread: float,
    hue_jitter: float,
    sat_scale: float,
    sat_floor: float,
    lightness_base: float,
    lightness_range: float,
):
    """Radial distance -> (fade, edgeness, colour); consumes one draw."""
    fade = math.exp(-decay * dist * dist)
    edgeness = math.pow(1.0 - fade, 0.6)
    hue = (base_hue + edgeness * hue_spread + rng() * hue_jitter) / 360.0
    sat = edgeness * sat_scale + sat_floor
    light = lightness_base + fade * lightness_range
    return fade, edgeness, hsl(hue, sat, light)


class _DotBuilder:
    def __init__(self):
        self.sphere_pos = []
        self.sphere_radius = []
        self.sphere_color = []
        self.glow_pos = []
        self.glow_size = []
        self.dots: list[DotPosition] = []

    def add(self, pos, radius, color, glow_scale, tier, intensity):
        self.sphere_pos.append(pos)
        self.sphere_radius.append(radius)
        self.sphere_color.append(color)
        if glow_scale > 0:
            self.glow_pos.append(pos)
            self.glow_size.append(radius * glow_scale)
        self.dots.append(DotPosition(pos=pos, tier=tier, intensity=intensity))


def _rejection_sample(rng: Rng, spread, radii, max_sdf: float) -> np.ndarray:
    pos = gaussian3(rng, spread)
    attempts = 1
    while envelope_sdf(pos, radii) > max_sdf and attempts < MAX_ATTEMPTS:
        pos = gaussian3(rng, spread)
        attempts += 1
    return pos


def build_light_set(dots: Sequence[DotPosition]) -> LightSet:
    significant = [d for d in dots if d.tier in ("hero", "medium")][:MAX_LIGHTS]
    positions = np.zeros((MAX_LIGHTS, 3))
    intensities = np.zeros(MAX_LIGHTS)
    for i, d in enumerate(significant):
        positions[i] = d.pos
        intensities[i] = d.intensity
    return LightSet(positions=positions, intensities=intensities, count=len(significant))


def generate_dots(
    config: DotConfig,
    curves: Sequence[GuideCurve],
    radii,
    rng: Rng,
) -> DotField:
    """
    Generate every dot tier.

    Args:
        config: Dot tier configuration.
        curves: Guide curves, in generation order.
        radii: Envelope radii for the interior/micro rejection tests.
        rng: Scene stream.

    Returns:
        DotField with sphere, glow and light data.
    """
    b = _DotBuilder()
    c = config

    for _ in range(c.hero_count):
        pos = gaussian3(rng, c.hero_spread)
        radius = (c.hero_radius_base + rng() * c.hero_radius_range) * SPHERE_RADIUS_SCALE
        b.add(pos, radius, WHITE, c.hero_glow_base + rng() * c.hero_glow_range, "hero", 1.0)

    placed = 0
    for curve in curves:
        if curve.tier != "primary":
            continue
        if placed >= c.medium_count:
            break
        idx = math.floor(len(curve) * (0.3 + rng() * 0.4))
        if idx < len(curve):
            jitter = vec3(
                gaussian(rng, 0, c.medium_jitter),
                gaussian(rng, 0, c.medium_jitter),
                gaussian(rng, 0, c.medium_jitter),
            )
            pos = curve.points[idx] + jitter
            dist = float(np.linalg.norm(pos))
            fade = math.exp(-0.4 * dist * dist)
            radius = (c.medium_radius_base + rng() * c.medium_radius_range + fade * 0.010) * SPHERE_RADIUS_SCALE
            b.add(pos, radius, WHITE, c.medium_glow_base + rng() * c.medium_glow_range, "medium", 0.5)
            placed += 1

    def small_like(pos, tier):
        dist = float(np.linalg.norm(pos))
        radius = (c.small_radius_base + rng() * c.small_radius_range) * SPHERE_RADIUS_SCALE
        fade, edge, color = _transducer(
            rng, dist, 0.3, c.dot_base_hue, 60, 25, 0.90, 0.08,
            c.small_lightness_base, c.small_lightness_range,
        )
        b.add(pos, radius, color, c.small_glow_base + fade * 6 + edge * 5 + rng() * 4, tier, 0.15)

    for curve in curves:
        density = c.small_density.get(curve.tier, 0.05)
        for point in curve.points:
            if rng() < density:
                small_like(point + gaussian3(rng, (SMALL_JITTER,) * 3), "small")

    for _ in range(c.interior_count):
        small_like(_rejection_sample(rng, c.interior_spread, radii, INTERIOR_MAX_SDF), "interior")

    for _ in range(c.micro_count):
        pos = _rejection_sample(rng, c.micro_spread, radii, MICRO_MAX_SDF)
        dist = float(np.linalg.norm(pos))
        radius = (c.micro_radius_base + rng() * c.micro_radius_range) * SPHERE_RADIUS_SCALE
        fade, edge, color = _transducer(
            rng, dist, 0.25, c.micro_dot_base_hue, 70, 30, 0.85, 0.12,
            c.micro_lightness_base, c.micro_lightness_range,
        )
        b.add(pos, radius, color, c.micro_glow_base + fade * 5 + edge * 6 + rng() * 4, "micro", 0.05)

    def stack(rows, width):
        return np.asarray(rows, dtype=np.float64).reshape(-1, width) if width > 1 else np.asarray(rows, dtype=np.float64)

    return DotField(
        sphere_pos=stack(b.sphere_pos, 3),
        sphere_radius=stack(b.sphere_radius, 1),
        sphere_color=stack(b.sphere_color, 3),
        glow_pos=stack(b.glow_pos, 3),
        glow_size=stack(b.glow_size, 1),
        dots=tuple(b.dots),
        lights=build_light_set(b.dots),
    )


def illumination(world_pos: np.ndarray, lights: Optional[LightSet]) -> float:
    """Inverse-square light sum at a point, capped at 3."""
    if lights is None or lights.count == 0:
        return 0.0
    delta = lights.positions[: lights.count] - world_pos
    d2 = np.einsum("ij,ij->i", delta, delta)
    return min(float((lights.intensities[: lights.count] / (1.0 + d2 * 10.0)).sum()), 3.0)

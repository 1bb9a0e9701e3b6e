"""
Guide curves: constrained random walks on the envelope surface.

Each step re-projects the tangent into the local tangent plane, turns it
by a random angle about the normal and nudges it away from earlier
curves (and from this curve's own older samples). The repulsion is a
weak many-body effect between curves, so curve order matters.
"""

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from geometric_interior.core.params import TIERS, CurveTierConfig, DivisionParams
from geometric_interior.core.prng import Rng
from geometric_interior.engine.envelope import (
    DEFAULT_DIVISION,
    envelope_normal,
    envelope_sdf,
    generate_seed_points,
    project_to_envelope,
)
from geometric_interior.engine.geometry import normalize, random_centered, reject, rotate_about

INTER_RADIUS = 0.35
INTER_STRENGTH = 0.12
SELF_RADIUS = 0.25
SELF_STRENGTH = 0.06
SELF_SKIP = 5
REPULSION_BLEND = 0.3
MIN_REPULSION_DIST = 0.01
MAX_OUTSIDE = 0.05
MAX_RADIUS = 1.8


@dataclass(frozen=True)
class GuideCurve:
    tier: str
    points: np.ndarray  # (N, 3)

    def __len__(self) -> int:
        return len(self.points)


@dataclass(frozen=True)
class CurveSample:
    """Orthonormal-ish frame at one arc-length sample."""

    pos: np.ndarray
    tangent: np.ndarray
    normal: np.ndarray
    binormal: np.ndarray


def _repulsion(current: np.ndarray, normal: np.ndarray, others: np.ndarray, radius: float, strength: float) -> np.ndarray:
    if len(others) == 0:
        return np.zeros(3)
    delta = current - others
    dist = np.sqrt(np.einsum("ij,ij->i", delta, delta))
    near = (dist < radius) & (dist > MIN_REPULSION_DIST)
    if not near.any():
        return np.zeros(3)
    d = dist[near][:, None]
    away = delta[near] / d
    away = away - np.outer(away @ normal, normal)
    return (away * (strength / (d * d))).sum(axis=0)


def generate_guide_curve(
    seed: np.ndarray,
    existing: np.ndarray,
    max_steps: int,
    step_size: float,
    curvature: float,
    rng: Rng,
    radii,
    div: DivisionParams = DEFAULT_DIVISION,
) -> np.ndarray:
    """
    Grow one curve from ``seed``.

    Args:
        seed: Start point on the envelope.
        existing: (M, 3) samples of every previously kept curve.
        max_steps: Step budget.
        step_size: Arc step before re-projection.
        curvature: Full width of the per-step random turn, radians.
        rng: Scene stream.
        radii: Envelope radii.
        div: Envelope groove parameters.

    Returns:
        (N, 3) array of points, seed first.
    """
    points = [np.array(seed, dtype=np.float64)]
    normal = envelope_normal(seed, radii, div)
    tangent = normalize(reject(random_centered(rng), normal))

    for _ in range(max_steps):
        current = points[-1]
        n = envelope_normal(current, radii, div)

        tangent = normalize(reject(tangent, n))
        tangent = rotate_about(tangent, n, (rng() - 0.5) * curvature)

        push = _repulsion(current, n, existing, INTER_RADIUS, INTER_STRENGTH)
        older = len(points) - SELF_SKIP
        if older > 0:
            push = push + _repulsion(current, n, np.asarray(points[:older]), SELF_RADIUS, SELF_STRENGTH)
        if math.sqrt(float(push @ push)) > 0.001:
            tangent = tangent + normalize(push) * REPULSION_BLEND
            tangent = normalize(reject(tangent, n))

        projected = project_to_envelope(current + tangent * step_size, radii, div)
        if envelope_sdf(projected, radii, div) > MAX_OUTSIDE or np.linalg.norm(projected) > MAX_RADIUS:
            break
        points.append(projected)
        tangent = normalize(projected - current)

    return np.asarray(points)


def generate_all_guide_curves(
    config: dict[str, CurveTierConfig],
    rng: Rng,
    radii,
    div: DivisionParams = DEFAULT_DIVISION,
    theta_offset: float = 0.0,
) -> list[GuideCurve]:
    """
    Grow the three curve tiers in order.

    A curve is kept when it has more than ``min_length`` points; a tier
    stops once it holds ``max_count`` curves.
    """
    curves: list[GuideCurve] = []
    existing = np.zeros((0, 3))

    for tier in TIERS:
        tc = config[tier]
        kept = 0
        for seed in generate_seed_points(tc.seed_count, radii, div, theta_offset):
            steps = tc.max_steps + math.floor(rng() * (tc.max_steps * 0.5))
            pts = generate_guide_curve(seed, existing, steps, tc.step_size, tc.curvature, rng, radii, div)
            if len(pts) > tc.min_length:
                curves.append(GuideCurve(tier=tier, points=pts))
                existing = np.vstack([existing, pts])
                kept += 1
            if kept >= tc.max_count:
                break

    return curves


def sample_along_curve(
    points: np.ndarray,
    spacing: float,
    radii,
    div: DivisionParams = DEFAULT_DIVISION,
) -> list[CurveSample]:
    """Frames at regular arc-length spacing along a curve."""
    samples = []
    accumulated = 0.0
    last = len(points) - 1
    for i in range(1, len(points)):
        accumulated += float(np.linalg.norm(points[i] - points[i - 1]))
        if accumulated >= spacing:
            accumulated -= spacing
            pos = np.array(points[i])
            tangent = normalize(points[min(last, i + 1)] - points[i - 1])
            normal = envelope_normal(pos, radii, div)
            binormal = normalize(np.cross(tangent, normal))
            samples.append(CurveSample(pos=pos, tangent=tangent, normal=normal, binormal=binormal))
    return samples


def draping_direction(sample: CurveSample, spread: float, rng: Rng) -> np.ndarray:
    """Normal/binormal blend with a small random perturbation; unit length."""
    direction = sample.normal * (1.0 - spread) + sample.binormal * spread
    return normalize(direction + random_centered(rng, 0.2))


def curves_by_tier(curves: Sequence[GuideCurve], tier: str) -> list[GuideCurve]:
    return [c for c in curves if c.tier == tier]

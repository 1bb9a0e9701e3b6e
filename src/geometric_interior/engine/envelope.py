"""
Envelope: the asymmetric ellipsoidal SDF that bounds the scene.

A groove along the x = 0 plane breaks vertical symmetry in the upper
hemisphere and a low tri-sinusoidal term breaks what is left. All
functions accept a single point of shape (3,) or a batch (N, 3).
"""

import math

import numpy as np

from geometric_interior.core.params import DivisionParams
from geometric_interior.errors import InvalidParameter

DEFAULT_DIVISION = DivisionParams()

NORMAL_EPS = 0.01
PROJECT_ITERATIONS = 12
PROJECT_TOLERANCE = 0.001
GOLDEN_ANGLE = math.pi * (3.0 - math.sqrt(5.0))

_OFFSETS = np.array([
    [NORMAL_EPS, 0, 0], [-NORMAL_EPS, 0, 0],
    [0, NORMAL_EPS, 0], [0, -NORMAL_EPS, 0],
    [0, 0, NORMAL_EPS], [0, 0, -NORMAL_EPS],
])


def check_radii(radii) -> np.ndarray:
    r = np.asarray(radii, dtype=np.float64)
    if r.shape != (3,) or not np.isfinite(r).all() or (r <= 0).any():
        raise InvalidParameter(f"envelope radii must be three positive numbers, got {radii!r}")
    return r


def envelope_sdf(p, radii, div: DivisionParams = DEFAULT_DIVISION):
    """
    Signed distance (negative inside) at ``p``.

    Returns a float for a single point, an (N,) array for a batch.
    """
    p = np.asarray(p, dtype=np.float64)
    x, y, z = p[..., 0], p[..., 1], p[..., 2]
    rx, ry, rz = radii

    ellipsoid = (x / rx) ** 2 + (y / ry) ** 2 + (z / rz) ** 2 - 1.0
    top_bias = np.maximum(0.0, y / ry)
    width2 = div.groove_width * div.groove_width
    groove = div.groove_depth * np.exp(-x * x / width2) * top_bias

    secondary = 0.0
    if div.secondary_groove_depth > 0.001:
        cos_a = math.cos(div.secondary_groove_angle)
        sin_a = math.sin(div.secondary_groove_angle)
        rot_x = x * cos_a + z * sin_a
        secondary = div.secondary_groove_depth * np.exp(-rot_x * rot_x / width2) * top_bias

    noise = np.sin(x * 1.1 + 7.3) * np.sin(y * 1.3 + 2.1) * np.sin(z * 0.9 + 5.7)
    d = ellipsoid + groove + secondary + noise * div.noise_amplitude
    return float(d) if p.ndim == 1 else d


def envelope_normal(p, radii, div: DivisionParams = DEFAULT_DIVISION) -> np.ndarray:
    """Outward unit gradient by central differences."""
    p = np.asarray(p, dtype=np.float64)
    d = envelope_sdf(p + _OFFSETS, radii, div)
    grad = np.array([d[0] - d[1], d[2] - d[3], d[4] - d[5]])
    length = math.sqrt(float(grad @ grad))
    return grad / length if length > 0 else grad


def project_to_envelope(p, radii, div: DivisionParams = DEFAULT_DIVISION) -> np.ndarray:
    """Walk ``p`` onto the zero set; at most 12 gradient steps."""
    result = np.array(p, dtype=np.float64)
    for _ in range(PROJECT_ITERATIONS):
        val = envelope_sdf(result, radii, div)
        if abs(val) < PROJECT_TOLERANCE:
            break
        result = result - envelope_normal(result, radii, div) * val
    return result


def generate_seed_points(
    count: int,
    radii,
    div: DivisionParams = DEFAULT_DIVISION,
    theta_offset: float = 0.0,
) -> list[np.ndarray]:
    """Fibonacci spiral scaled to the ellipsoid axes and projected onto the envelope."""
    rx, ry, rz = radii
    seeds = []
    for i in range(count):
        y = 1.0 - (i / max(count - 1, 1)) * 2.0
        radius = math.sqrt(max(0.0, 1.0 - y * y))
        theta = GOLDEN_ANGLE * i + theta_offset
        raw = np.array([math.cos(theta) * radius * rx, y * ry, math.sin(theta) * radius * rz])
        seeds.append(project_to_envelope(raw, radii, div))
    return seeds

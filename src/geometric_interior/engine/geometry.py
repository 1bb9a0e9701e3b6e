"""
Small vector helpers shared by the scene producers.

Vectors are float64 numpy arrays of shape (3,). Rotations go through
``scipy.spatial.transform.Rotation``.
"""

import math

import numpy as np
from scipy.spatial.transform import Rotation

from geometric_interior.core.prng import Rng

ORIGIN = np.zeros(3)
UP = np.array([0.0, 1.0, 0.0])
RIGHT = np.array([1.0, 0.0, 0.0])


def vec3(x: float, y: float, z: float) -> np.ndarray:
    return np.array([x, y, z], dtype=np.float64)


def normalize(v: np.ndarray) -> np.ndarray:
    """Unit vector along ``v``; the zero vector is returned unchanged."""
    length = math.sqrt(float(v @ v))
    if length == 0.0:
        return np.array(v, dtype=np.float64)
    return v / length


def reject(v: np.ndarray, n: np.ndarray) -> np.ndarray:
    """Component of ``v`` perpendicular to unit normal ``n``."""
    return v - n * float(v @ n)


def rotate_about(v: np.ndarray, axis: np.ndarray, angle: float) -> np.ndarray:
    """Rotate ``v`` about a unit ``axis`` through the origin."""
    return Rotation.from_rotvec(axis * angle).apply(v)


def reflect_across_line(point: np.ndarray, line_point: np.ndarray, line_dir: np.ndarray) -> np.ndarray:
    """Mirror ``point`` across the line through ``line_point`` along unit ``line_dir``."""
    to_p = point - line_point
    proj = line_dir * float(to_p @ line_dir)
    return line_point + 2.0 * proj - to_p


def random_centered(rng: Rng, amount: float = 1.0) -> np.ndarray:
    """Three draws of ``(rng() - 0.5) * amount``, x then y then z."""
    x = (rng() - 0.5) * amount
    y = (rng() - 0.5) * amount
    z = (rng() - 0.5) * amount
    return vec3(x, y, z)


def gaussian(rng: Rng, mean: float = 0.0, stdev: float = 1.0) -> float:
    """Box-Muller sample; consumes exactly two draws."""
    u = 1.0 - rng()
    v = rng()
    return mean + stdev * math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)


def gaussian3(rng: Rng, spread) -> np.ndarray:
    x = gaussian(rng, 0.0, spread[0])
    y = gaussian(rng, 0.0, spread[1])
    z = gaussian(rng, 0.0, spread[2])
    return vec3(x, y, z)


def catmull_rom_points(points: np.ndarray, divisions: int) -> np.ndarray:
    """
    Sample a uniform Catmull-Rom spline through ``points``.

    Returns ``divisions + 1`` points evenly spaced in the spline parameter,
    endpoints included. End tangents use mirrored phantom points.
    """
    pts = np.asarray(points, dtype=np.float64)
    n = len(pts)
    first = 2 * pts[0] - pts[1]
    last = 2 * pts[-1] - pts[-2]
    padded = np.vstack([first, pts, last])

    u = np.linspace(0.0, 1.0, divisions + 1) * (n - 1)
    seg = np.minimum(np.floor(u).astype(int), n - 2)
    t = (u - seg)[:, None]
    p0, p1, p2, p3 = padded[seg], padded[seg + 1], padded[seg + 2], padded[seg + 3]
    t2 = t * t
    t3 = t2 * t
    return 0.5 * (
        2 * p1
        + (-p0 + p2) * t
        + (2 * p0 - 5 * p1 + 4 * p2 - p3) * t2
        + (-p0 + 3 * p1 - 3 * p2 + p3) * t3
    )

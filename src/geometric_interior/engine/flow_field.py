"""
Position-deterministic noise fields for chain orientation and spatial
hue variation. No RNG is consumed here.
"""

import math

import numpy as np

from geometric_interior.engine.geometry import normalize

_CORNERS = np.array([
    [0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 0],
    [0, 0, 1], [1, 0, 1], [0, 1, 1], [1, 1, 1],
], dtype=np.float64)

_HASH_ROWS = np.array([
    [127.1, 311.7, 74.7],
    [269.5, 183.3, 246.1],
    [419.2, 371.9, 128.9],
])

COLOR_FIELD_OFFSET = np.array([73.1, 159.4, 213.7])
COLOR_CONTRAST = 1.6


def hash_vec(p) -> np.ndarray:
    """Deterministic hash of a lattice point (or batch) into [0, 1)^3."""
    v = np.sin(np.asarray(p, dtype=np.float64) @ _HASH_ROWS.T) * 43758.5453
    return v - np.floor(v)


def _smooth(f: np.ndarray) -> np.ndarray:
    return f * f * (3.0 - 2.0 * f)


def _trilinear(h: np.ndarray, s: np.ndarray):
    """Blend eight corner values (corner order as ``_CORNERS``)."""
    c00 = h[0] + (h[1] - h[0]) * s[0]
    c10 = h[2] + (h[3] - h[2]) * s[0]
    c01 = h[4] + (h[5] - h[4]) * s[0]
    c11 = h[6] + (h[7] - h[6]) * s[0]
    c0 = c00 + (c10 - c00) * s[1]
    c1 = c01 + (c11 - c01) * s[1]
    return c0 + (c1 - c0) * s[2]


def flow_field_normal(pos, scale: float = 1.5) -> np.ndarray:
    """Value-noise direction field; unit vector."""
    sp = np.asarray(pos, dtype=np.float64) * scale
    i = np.floor(sp)
    s = _smooth(sp - i)
    h = hash_vec(i + _CORNERS)
    return normalize(_trilinear(h, s) - 0.5)


def color_field_hue(pos, scale: float = 1.2, base_hue: float = 280.0, hue_range: float = 140.0) -> float:
    """Contrast-enhanced hue field in degrees, centred on ``base_hue``."""
    sp = np.asarray(pos, dtype=np.float64) * scale + COLOR_FIELD_OFFSET
    i = np.floor(sp)
    s = _smooth(sp - i)
    h = hash_vec(i + _CORNERS)[:, 0]
    val = float(_trilinear(h, s))

    if val < 0.5:
        contrasty = 0.5 * math.pow(2.0 * val, COLOR_CONTRAST)
    else:
        contrasty = 1.0 - 0.5 * math.pow(2.0 * (1.0 - val), COLOR_CONTRAST)
    return base_hue - hue_range / 2.0 + contrasty * hue_range


def swirl_field(pos) -> np.ndarray:
    """Tangential circulation about the vertical axis with a slight lift."""
    x, _, z = pos
    tangent = np.array([-z, 0.0, x])
    if float(tangent @ tangent) < 1e-12:
        return np.array([0.0, 1.0, 0.0])
    return normalize(normalize(tangent) + np.array([0.0, 0.25, 0.0]))


def composite_flow_field(pos, scale: float = 1.5, flow: float = 0.5) -> np.ndarray:
    """
    Orientation field for chains.

    ``flow`` slides from pure value noise (0) toward an organised swirl
    about the vertical axis (1); 0.5 is an even mix.
    """
    noise = flow_field_normal(pos, scale)
    swirl = swirl_field(np.asarray(pos, dtype=np.float64))
    mixed = noise * (1.0 - flow) + swirl * flow
    if float(mixed @ mixed) < 1e-12:
        return noise
    return normalize(mixed)

"""
Folding chains: sequences of triangles and quads hinged along shared
edges.

Each plane is mirrored across one of its edges, opened by a small signed
dihedral angle and contracted toward its new centroid, so a chain
spirals inward as it grows. Every plane is written straight into the
batch accumulator together with its outline and a thin "skirt" ribbon
that lets procedural cracks bleed past the plane boundary.
"""

import math
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from scipy.spatial.transform import Rotation

from geometric_interior.core.palettes import RGB, offset_hsl
from geometric_interior.core.params import DerivedParams
from geometric_interior.core.prng import Rng
from geometric_interior.engine.accumulator import ALPHA_SCALE, BatchAccumulator
from geometric_interior.engine.dots import LightSet, illumination
from geometric_interior.engine.geometry import (
    RIGHT,
    UP,
    normalize,
    random_centered,
    reflect_across_line,
    rotate_about,
)

PickColor = Callable[[float, float, float, Optional[float]], RGB]

TRI_UVS = np.array([[0, 0], [1, 0], [0.5, 1]], dtype=np.float64)
QUAD_UVS = np.array([[0, 0.5], [1, 0.5], [0.5, 1], [0, 0.5], [0.5, 0], [1, 0.5]], dtype=np.float64)

# Outline segments per layout; the quad is stored as [A, B, C, A, D, B].
TRI_EDGES = ((0, 1), (1, 2), (2, 0))
QUAD_EDGES = ((1, 2), (2, 0), (3, 4), (4, 5))

# Boundary loops for the skirt: A, B, C and A, D, B, C.
TRI_BOUNDARY = (0, 1, 2)
QUAD_BOUNDARY = (0, 4, 1, 2)

TWIST_RANGE = math.pi * 0.5
WOBBLE_RANGE = math.pi * 0.18
OUTER_DELAY_SPAN = 0.3


@dataclass(frozen=True)
class ChainConfig:
    """Chain-wide shading and faceting parameters."""

    edge_color_offset: tuple = (0.0, -0.04, 0.04)
    edge_opacity_base: float = 0.003
    edge_opacity_fade_scale: float = 0.015
    crack_extend_scale: float = 1.12
    face_opacity_scale: float = 1.0
    quad_probability: float = 0.7
    dihedral_base: float = 0.02
    dihedral_range: float = 0.08
    contraction_base: float = 0.92
    contraction_range: float = 0.12

    @classmethod
    def from_params(cls, params: DerivedParams, structure_bias: float = 0.5) -> "ChainConfig":
        """Chain settings for a scene; the structure slot bias nudges faceting."""
        f = params.faceting
        return cls(
            edge_color_offset=params.edge_color_offset,
            edge_opacity_base=params.edge_opacity_base,
            edge_opacity_fade_scale=params.edge_opacity_fade_scale,
            crack_extend_scale=params.crack_extend_scale,
            face_opacity_scale=params.face_opacity_scale,
            quad_probability=f.quad_probability + (structure_bias - 0.5) * 0.1,
            dihedral_base=f.dihedral_base * (0.9 + structure_bias * 0.2),
            dihedral_range=f.dihedral_range,
            contraction_base=f.contraction_base,
            contraction_range=f.contraction_range,
        )


def look_rotation(forward: np.ndarray, rng: Rng) -> Rotation:
    """
    Orientation whose -Z axis looks along ``forward``, then twisted about
    ``forward`` and wobbled about ``up x forward``.
    """
    forward = normalize(forward)
    up = UP if abs(forward[1]) < 0.9 else RIGHT
    z = -forward
    x = normalize(np.cross(up, z))
    y = np.cross(z, x)
    look = Rotation.from_matrix(np.column_stack([x, y, z]))

    twist = Rotation.from_rotvec(forward * ((rng() - 0.5) * TWIST_RANGE))
    wobble_axis = normalize(np.cross(up, forward))
    wobble = Rotation.from_rotvec(wobble_axis * ((rng() - 0.5) * WOBBLE_RANGE))
    return wobble * twist * look


def random_rotation(rng: Rng) -> Rotation:
    a = rng() * math.pi * 2
    b = rng() * math.pi * 2
    c = rng() * math.pi * 2
    return Rotation.from_euler("XYZ", [a, b, c])


def vertex_alpha(world: np.ndarray, lights: Optional[LightSet]) -> float:
    """Radial fade boosted by nearby lights, normalised into [0, 1]."""
    d2 = float(world @ world)
    radial = math.exp(-1.5 * d2)
    return radial * (1.0 + illumination(world, lights) * 2.5) / ALPHA_SCALE


def corner_alpha(alphas: np.ndarray, corners) -> float:
    """Mean alpha over the distinct plane corners; quads repeat two of them."""
    return float(alphas[list(corners)].mean())


def _jitter(v: np.ndarray, amount: float, rng: Rng) -> np.ndarray:
    return v + random_centered(rng, amount)


def _skirt(local: np.ndarray, uvs: np.ndarray, alphas: np.ndarray, boundary, scale: float):
    """
    Ribbon triangles around a boundary loop.

    Returns local positions, uvs, alphas and crack-extend flags (1 on the
    plane boundary, 0 on the expanded rim), two triangles per edge.
    """
    idx = np.array(boundary)
    b_pos, b_uv, b_alpha = local[idx], uvs[idx], alphas[idx]
    c_pos, c_uv = b_pos.mean(axis=0), b_uv.mean(axis=0)
    e_pos = c_pos + (b_pos - c_pos) * scale
    e_uv = c_uv + (b_uv - c_uv) * scale

    pos, uv, alpha, crack = [], [], [], []
    n = len(idx)
    for i in range(n):
        j = (i + 1) % n
        pos += [b_pos[i], e_pos[j], b_pos[j], b_pos[i], e_pos[i], e_pos[j]]
        uv += [b_uv[i], e_uv[j], b_uv[j], b_uv[i], e_uv[i], e_uv[j]]
        alpha += [b_alpha[i], b_alpha[j], b_alpha[j], b_alpha[i], b_alpha[i], b_alpha[j]]
        crack += [1.0, 0.0, 1.0, 1.0, 0.0, 0.0]
    return np.array(pos), np.array(uv), np.array(alpha), np.array(crack)


def create_folding_chain(
    accum: BatchAccumulator,
    origin: np.ndarray,
    chain_length: int,
    plane_scale: float,
    dist_from_center: float,
    lights: Optional[LightSet],
    config: ChainConfig,
    rng: Rng,
    pick_color: PickColor,
    family_hue: Optional[float] = None,
    tendril_dir: Optional[np.ndarray] = None,
) -> None:
    """
    Emit one folding chain into ``accum``.

    Args:
        accum: Target streams.
        origin: World-space anchor; also every vertex's fold origin.
        chain_length: Number of planes, at least 1.
        plane_scale: Size of the first plane.
        dist_from_center: Drives colour fade and opacity.
        lights: Significant-light set for illumination.
        config: Chain-wide parameters.
        rng: Scene stream.
        pick_color: ``(dist, decay, lightness_boost, family_hue) -> rgb``.
        family_hue: Hue in degrees shared by neighbouring chains.
        tendril_dir: Preferred facing; a random orientation when None.
    """
    origin = np.asarray(origin, dtype=np.float64)
    decay = 0.15 + rng() * 0.45
    jitter_amt = plane_scale * 0.015

    if tendril_dir is not None and np.any(tendril_dir):
        group = look_rotation(tendril_dir, rng)
    else:
        group = random_rotation(rng)

    def rand_vec():
        v = normalize(random_centered(rng))
        return v * (plane_scale * (0.3 + rng() * 0.4))

    va, vb, vc = rand_vec(), rand_vec(), rand_vec()
    outer_delay_step = OUTER_DELAY_SPAN / max(chain_length, 1)

    for p in range(chain_length):
        progress = p / max(chain_length - 1, 1)
        this_fade = math.exp(-decay * dist_from_center * dist_from_center) * (1.0 - progress * 0.7)

        centroid = group.apply((va + vb + vc) / 3.0) + origin
        illum = illumination(centroid, lights)

        color = pick_color(dist_from_center + p * 0.1, decay, illum * 0.15, family_hue)
        base_opacity = (0.008 + this_fade * 0.04) * (0.4 + rng() * 0.6) * config.face_opacity_scale
        edge_fade = this_fade * this_fade
        edge_opacity = (
            (config.edge_opacity_base + edge_fade * config.edge_opacity_fade_scale)
            * (0.3 + rng() * 0.7)
            * config.face_opacity_scale
        )

        make_quad = rng() < config.quad_probability
        noise_scale = 6 + rng() * 8
        noise_strength = 0.15 + rng() * 0.35

        if make_quad:
            edge = normalize(vb - va)
            mid = (va + vb) * 0.5
            vd = _jitter(reflect_across_line(vc, mid, edge), jitter_amt, rng)
            ja = _jitter(va, jitter_amt * 0.3, rng)
            jb = _jitter(vb, jitter_amt * 0.3, rng)
            jc = _jitter(vc, jitter_amt, rng)
            jd = _jitter(vd, jitter_amt, rng)
            local = np.array([ja, jb, jc, ja, jd, jb])
            uvs, edges, boundary = QUAD_UVS, QUAD_EDGES, QUAD_BOUNDARY
        else:
            ja = _jitter(va, jitter_amt, rng)
            jb = _jitter(vb, jitter_amt, rng)
            jc = _jitter(vc, jitter_amt, rng)
            local = np.array([ja, jb, jc])
            uvs, edges, boundary = TRI_UVS, TRI_EDGES, TRI_BOUNDARY

        world = group.apply(local) + origin
        alphas = np.array([vertex_alpha(w, lights) for w in world])
        local_normal = normalize(np.cross(local[1] - local[0], local[2] - local[0]))
        world_normal = group.apply(local_normal)

        # Plane and skirt share one chunk; only the rim is delayed.
        s_pos, s_uv, s_alpha, s_crack = _skirt(local, uvs, alphas, boundary, config.crack_extend_scale)
        n_plane = len(local)
        crack = np.concatenate([np.ones(n_plane), s_crack])
        delay = np.where(crack < 0.5, min(1.0, progress + outer_delay_step), progress)
        accum.add_faces(
            pos=np.vstack([world, group.apply(s_pos) + origin]),
            norm=world_normal,
            uv=np.vstack([uvs, s_uv]),
            alpha=np.concatenate([alphas, s_alpha]),
            color=color,
            opacity=base_opacity,
            noise_scale=noise_scale,
            noise_strength=noise_strength,
            crack_extend=crack,
            fold_delay=delay,
            fold_origin=origin,
        )

        seg_idx = np.array(edges).reshape(-1)
        accum.add_edges(
            pos=world[seg_idx],
            alpha=alphas[seg_idx],
            color=offset_hsl(color, *config.edge_color_offset),
            opacity=edge_opacity * corner_alpha(alphas, boundary) * ALPHA_SCALE,
            fold_delay=progress,
            fold_origin=origin,
        )

        # Hinge onto the next plane.
        choice = rng()
        if choice < 0.4:
            shared_a, shared_b, free = vb, vc, va
        elif choice < 0.8:
            shared_a, shared_b, free = va, vc, vb
        else:
            shared_a, shared_b, free = va, vb, vc

        edge = normalize(shared_b - shared_a)
        mid = (shared_a + shared_b) * 0.5
        reflected = reflect_across_line(free, mid, edge)
        magnitude = config.dihedral_base + rng() * config.dihedral_range
        dihedral = magnitude if rng() < 0.5 else -magnitude
        new_free = mid + rotate_about(reflected - mid, edge, dihedral)

        contraction = config.contraction_base + rng() * config.contraction_range
        center = (shared_a + shared_b + new_free) / 3.0
        va = center + (shared_a - center) * contraction
        vb = center + (shared_b - center) * contraction
        vc = center + (new_free - center) * contraction

    accum.chain_count += 1

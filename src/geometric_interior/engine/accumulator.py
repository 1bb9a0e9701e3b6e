"""
Batched vertex streams shared by every scene producer.

Producers append numpy chunks; ``finalize`` concatenates them into
float32 attribute arrays, clamps the normalised attributes and refuses
to hand back anything non-finite.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from geometric_interior.errors import RenderFailure

# Vertex alpha is radial * (1 + 2.5 * illum) with illum capped at 3.
ALPHA_SCALE = 8.5

FACE_ATTRS = {
    "pos": 3,
    "norm": 3,
    "uv": 2,
    "alpha": 1,
    "color": 3,
    "opacity": 1,
    "noise_scale": 1,
    "noise_strength": 1,
    "crack_extend": 1,
    "fold_delay": 1,
    "fold_origin": 3,
}

EDGE_ATTRS = {
    "pos": 3,
    "alpha": 1,
    "color": 3,
    "opacity": 1,
    "fold_delay": 1,
    "fold_origin": 3,
}

UNIT_ATTRS = ("alpha", "color", "opacity", "crack_extend", "fold_delay")


def _column(value, n: int, width: int) -> np.ndarray:
    shape = (n,) if width == 1 else (n, width)
    return np.array(np.broadcast_to(np.asarray(value, dtype=np.float64), shape))


def _fix_winding(chunk: dict) -> None:
    """Swap the last two vertices of any triangle facing away from its stored normal."""
    pos = chunk["pos"].reshape(-1, 3, 3)
    geo = np.cross(pos[:, 1] - pos[:, 0], pos[:, 2] - pos[:, 0])
    stored = chunk["norm"].reshape(-1, 3, 3)[:, 0]
    flip = np.einsum("ij,ij->i", geo, stored) < 0
    if not flip.any():
        return
    for name, width in FACE_ATTRS.items():
        tri = chunk[name].reshape(-1, 3, width) if width > 1 else chunk[name].reshape(-1, 3)
        tri[flip, 1], tri[flip, 2] = tri[flip, 2].copy(), tri[flip, 1].copy()


@dataclass(frozen=True)
class FaceStream:
    """Non-indexed triangles; one row per vertex."""

    pos: np.ndarray
    norm: np.ndarray
    uv: np.ndarray
    alpha: np.ndarray
    color: np.ndarray
    opacity: np.ndarray
    noise_scale: np.ndarray
    noise_strength: np.ndarray
    crack_extend: np.ndarray
    fold_delay: np.ndarray
    fold_origin: np.ndarray

    @property
    def vertex_count(self) -> int:
        return len(self.alpha)

    @property
    def triangle_count(self) -> int:
        return self.vertex_count // 3

    def padded(self, n: int, template: Optional["FaceStream"] = None) -> "FaceStream":
        return _pad_stream(self, n, template, FACE_ATTRS)


@dataclass(frozen=True)
class EdgeStream:
    """Line segments; consecutive rows pair up as endpoints."""

    pos: np.ndarray
    alpha: np.ndarray
    color: np.ndarray
    opacity: np.ndarray
    fold_delay: np.ndarray
    fold_origin: np.ndarray

    @property
    def vertex_count(self) -> int:
        return len(self.alpha)

    @property
    def segment_count(self) -> int:
        return self.vertex_count // 2

    def padded(self, n: int, template: Optional["EdgeStream"] = None) -> "EdgeStream":
        return _pad_stream(self, n, template, EDGE_ATTRS)


def _pad_stream(stream, n: int, template, attrs: dict):
    """
    Extend a stream to ``n`` vertices with invisible rows.

    Padding rows copy the ``template`` stream's attributes at the same
    indices (so they sit where the other scene has geometry) with alpha
    and opacity forced to zero.
    """
    have = stream.vertex_count
    if n <= have:
        return stream
    extra = n - have
    out = {}
    for name, width in attrs.items():
        cur = getattr(stream, name)
        if template is not None and template.vertex_count >= n:
            pad = np.array(getattr(template, name)[have:n])
        else:
            shape = (extra,) if width == 1 else (extra, width)
            pad = np.zeros(shape, dtype=np.float32)
        if name in ("alpha", "opacity"):
            pad[:] = 0.0
        arr = np.concatenate([cur, pad])
        arr.flags.writeable = False
        out[name] = arr
    return type(stream)(**out)


class BatchAccumulator:
    """Face and edge streams under construction."""

    def __init__(self):
        self._faces: list[dict] = []
        self._edges: list[dict] = []
        self.chain_count = 0

    def add_faces(
        self,
        pos,
        norm,
        uv,
        alpha,
        color,
        opacity,
        noise_scale,
        noise_strength,
        crack_extend,
        fold_delay,
        fold_origin,
    ) -> None:
        """
        Append whole triangles. ``pos`` fixes the vertex count (a multiple
        of 3); every other attribute broadcasts to it.
        """
        pos = np.asarray(pos, dtype=np.float64).reshape(-1, 3)
        n = len(pos)
        if n % 3:
            raise ValueError(f"face chunk must hold whole triangles, got {n} vertices")
        values = dict(
            pos=pos, norm=norm, uv=uv, alpha=alpha, color=color, opacity=opacity,
            noise_scale=noise_scale, noise_strength=noise_strength,
            crack_extend=crack_extend, fold_delay=fold_delay, fold_origin=fold_origin,
        )
        chunk = {name: _column(values[name], n, width) for name, width in FACE_ATTRS.items()}
        _fix_winding(chunk)
        self._faces.append(chunk)

    def add_edges(self, pos, alpha, color, opacity, fold_delay, fold_origin) -> None:
        """Append segments; ``pos`` rows pair up as endpoints."""
        pos = np.asarray(pos, dtype=np.float64).reshape(-1, 3)
        n = len(pos)
        if n % 2:
            raise ValueError(f"edge chunk must hold whole segments, got {n} vertices")
        values = dict(
            pos=pos, alpha=alpha, color=color, opacity=opacity,
            fold_delay=fold_delay, fold_origin=fold_origin,
        )
        self._edges.append({name: _column(values[name], n, width) for name, width in EDGE_ATTRS.items()})

    def finalize(self) -> tuple[FaceStream, EdgeStream]:
        """
        Freeze the streams.

        Raises:
            RenderFailure: If any attribute holds NaN or infinity.
        """
        return (
            _freeze(self._faces, FACE_ATTRS, FaceStream),
            _freeze(self._edges, EDGE_ATTRS, EdgeStream),
        )


def _freeze(chunks: list[dict], attrs: dict, cls):
    out = {}
    for name, width in attrs.items():
        if chunks:
            arr = np.concatenate([c[name] for c in chunks])
        else:
            arr = np.zeros((0,) if width == 1 else (0, width))
        if not np.isfinite(arr).all():
            raise RenderFailure(f"non-finite values in {cls.__name__}.{name}")
        if name in UNIT_ATTRS:
            arr = np.clip(arr, 0.0, 1.0)
        arr = arr.astype(np.float32)
        arr.flags.writeable = False
        out[name] = arr
    return cls(**out)

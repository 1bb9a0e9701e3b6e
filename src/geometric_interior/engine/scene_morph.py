"""
Cross-scene morphing.

Two fully built scenes are brought to equal stream lengths (the shorter
side gains zero-alpha rows parked on the other side's geometry) and
then interpolated attribute by attribute. Light spheres and tendrils
cross-fade; glow dots travel along a greedy correspondence.
"""

from dataclasses import dataclass, fields
from typing import Callable, Optional

import numpy as np

from geometric_interior.core.controls import Controls
from geometric_interior.core.seed_tags import Seed
from geometric_interior.engine.accumulator import EDGE_ATTRS, FACE_ATTRS, EdgeStream, FaceStream
from geometric_interior.engine.dot_matching import GlowMorphLayer, build_glow_morph_layer, match_dots
from geometric_interior.engine.scene import Scene, SceneUniforms, build_scene

# Uniforms that blend linearly; light slots blend slot by slot.
LERPED_UNIFORMS = (
    "light_positions",
    "light_intensities",
    "bg_inner_color",
    "bg_outer_color",
    "fog_color",
    "camera_z",
    "camera_fov",
    "camera_offset_x",
    "camera_offset_y",
    "bloom_strength",
    "bloom_threshold",
    "chromatic_aberration",
    "vignette_strength",
    "front_light_factor",
    "back_light_factor",
    "illumination_cap",
    "ambient_light",
    "edge_fade_threshold",
)


@dataclass(frozen=True)
class MorphFrame:
    """Everything the renderer needs at one morph time."""

    t: float
    faces: FaceStream
    edges: EdgeStream
    uniforms: SceneUniforms
    glow_pos: np.ndarray
    glow_size: np.ndarray
    glow_opacity: np.ndarray
    fade_from: float
    fade_to: float


def _lerp_stream(a, b, t: float, attrs: dict):
    out = {}
    for name in attrs:
        va, vb = getattr(a, name), getattr(b, name)
        out[name] = (va + (vb - va) * np.float32(t)).astype(np.float32)
    return type(a)(**out)


def _lerp_uniforms(a: SceneUniforms, b: SceneUniforms, t: float) -> SceneUniforms:
    values = {}
    for f in fields(SceneUniforms):
        va, vb = getattr(a, f.name), getattr(b, f.name)
        if f.name in LERPED_UNIFORMS:
            blended = np.asarray(va, dtype=np.float64) + (np.asarray(vb, dtype=np.float64) - np.asarray(va, dtype=np.float64)) * t
            values[f.name] = tuple(blended) if isinstance(va, tuple) else (float(blended) if np.ndim(blended) == 0 else blended)
        else:
            values[f.name] = max(va, vb) if f.name == "light_count" else va
    return SceneUniforms(**values)


class ScenePairMorph:
    """
    Prepared interpolation between two scenes.

    Args:
        scene_from: Outgoing scene.
        scene_to: Incoming scene.
        on_complete: Called once when ``update`` first reaches t = 1.
    """

    def __init__(self, scene_from: Scene, scene_to: Scene, on_complete: Optional[Callable[[], None]] = None):
        self.scene_from = scene_from
        self.scene_to = scene_to
        self.on_complete = on_complete
        self._completed = False

        n_faces = max(scene_from.faces.vertex_count, scene_to.faces.vertex_count)
        n_edges = max(scene_from.edges.vertex_count, scene_to.edges.vertex_count)
        self.faces_from = scene_from.faces.padded(n_faces, scene_to.faces)
        self.faces_to = scene_to.faces.padded(n_faces, scene_from.faces)
        self.edges_from = scene_from.edges.padded(n_edges, scene_to.edges)
        self.edges_to = scene_to.edges.padded(n_edges, scene_from.edges)

        a, b = scene_from.dots, scene_to.dots
        self.matching = match_dots(a.glow_pos, a.glow_size, b.glow_pos, b.glow_size)
        self.glow: GlowMorphLayer = build_glow_morph_layer(
            a.glow_pos, a.glow_size, b.glow_pos, b.glow_size, self.matching
        )

    @classmethod
    def prepare(
        cls,
        seed_from: Seed,
        controls_from: Controls,
        seed_to: Seed,
        controls_to: Controls,
        on_prepared: Optional[Callable[["ScenePairMorph"], None]] = None,
        **kwargs,
    ) -> "ScenePairMorph":
        """
        Build both scenes and the padded pair.

        ``on_prepared`` receives the morph once it is ready to ``update``.
        """
        morph = cls(build_scene(seed_from, controls_from), build_scene(seed_to, controls_to), **kwargs)
        if on_prepared is not None:
            on_prepared(morph)
        return morph

    @property
    def face_vertex_count(self) -> int:
        return self.faces_from.vertex_count

    @property
    def edge_vertex_count(self) -> int:
        return self.edges_from.vertex_count

    @property
    def is_complete(self) -> bool:
        return self._completed

    def update(self, t: float) -> MorphFrame:
        t = min(max(float(t), 0.0), 1.0)
        glow_pos, glow_size, glow_opacity = self.glow.evaluate(t)
        frame = MorphFrame(
            t=t,
            faces=_lerp_stream(self.faces_from, self.faces_to, t, FACE_ATTRS),
            edges=_lerp_stream(self.edges_from, self.edges_to, t, EDGE_ATTRS),
            uniforms=_lerp_uniforms(self.scene_from.uniforms, self.scene_to.uniforms, t),
            glow_pos=glow_pos,
            glow_size=glow_size,
            glow_opacity=glow_opacity,
            fade_from=1.0 - t,
            fade_to=t,
        )
        if t >= 1.0 and not self._completed:
            self._completed = True
            if self.on_complete is not None:
                self.on_complete()
        return frame

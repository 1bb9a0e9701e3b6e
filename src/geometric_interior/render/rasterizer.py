"""
CPU preview renderer.

Rather than rasterise exact coverage, every layer is stippled into a
float light buffer: triangles get low-discrepancy barycentric samples
in proportion to their projected area, segments get one sample per
pixel of length, and sprites are stamped from the glow profile. The
buffer sits on top of the background gradient and runs through the
usual post-processing chain.
"""

import math
from typing import Optional

import numpy as np
from PIL import Image
from scipy.spatial.transform import Rotation

from geometric_interior.core.fold import apply_fold, fold_factor
from geometric_interior.engine.accumulator import ALPHA_SCALE, EdgeStream, FaceStream
from geometric_interior.engine.dots import glow_profile
from geometric_interior.engine.scene import (
    CameraOverride,
    FrameUniforms,
    Scene,
    SceneUniforms,
    camera_position,
    frame_uniforms,
    sphere_wobble,
)
from geometric_interior.engine.scene_morph import MorphFrame, ScenePairMorph
from geometric_interior.render.colorgrade import (
    add_bloom,
    background_gradient,
    chromatic_aberration,
    to_uint8,
    tone_map_soft,
    vignette,
)
from geometric_interior.render.config import RenderConfig

NEAR_PLANE = 0.05
MAX_TRIANGLE_SAMPLES = 64
MAX_SEGMENT_SAMPLES = 256
MAX_SPRITE_RADIUS = 96

# R2 sequence steps.
_R2_U = 0.7548776662466927
_R2_V = 0.5698402909980532

DRIFT_AMPLITUDE = 0.06
DRIFT_RATE = 0.25
SPARKLE_AMPLITUDE = 0.35
SPHERE_GAIN = 2.5


class Camera:
    """Pinhole camera looking from ``position`` at ``target``."""

    def __init__(self, position, target, fov_deg: float, width: int, height: int):
        self.position = np.asarray(position, dtype=np.float64)
        self.width = width
        self.height = height

        forward = np.asarray(target, dtype=np.float64) - self.position
        forward /= max(np.linalg.norm(forward), 1e-9)
        up = np.array([0.0, 1.0, 0.0])
        if abs(float(forward @ up)) > 0.999:
            up = np.array([0.0, 0.0, -1.0])
        right = np.cross(forward, up)
        right /= np.linalg.norm(right)
        self.forward = forward
        self.right = right
        self.up = np.cross(right, forward)
        self.focal = (height / 2) / math.tan(math.radians(fov_deg) / 2)

    def project(self, points: np.ndarray):
        """
        Returns:
            (px, py, depth, visible) arrays, one entry per point.
        """
        rel = np.asarray(points, dtype=np.float64).reshape(-1, 3) - self.position
        x = rel @ self.right
        y = rel @ self.up
        z = rel @ self.forward
        visible = z > NEAR_PLANE
        zs = np.where(visible, z, 1.0)
        px = self.width / 2 + x / zs * self.focal
        py = self.height / 2 - y / zs * self.focal
        return px, py, z, visible


class LightBuffer:
    """Additive float RGB accumulation target."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.data = np.zeros((height, width, 3), dtype=np.float64)

    def splat(self, px: np.ndarray, py: np.ndarray, rgb: np.ndarray) -> None:
        ix = np.floor(px).astype(np.int64)
        iy = np.floor(py).astype(np.int64)
        inside = (ix >= 0) & (ix < self.width) & (iy >= 0) & (iy < self.height)
        if not inside.any():
            return
        idx = iy[inside] * self.width + ix[inside]
        rgb = np.asarray(rgb, dtype=np.float64).reshape(-1, 3)[inside]
        size = self.width * self.height
        for c in range(3):
            self.data[..., c] += np.bincount(idx, weights=rgb[:, c], minlength=size).reshape(self.height, self.width)

    def stamp(self, cx: float, cy: float, radius: float, rgb, profile) -> None:
        """Add a radial sprite whose alpha is ``profile(r / radius)``."""
        r = int(math.ceil(min(radius, MAX_SPRITE_RADIUS)))
        x0, x1 = max(int(cx) - r, 0), min(int(cx) + r + 1, self.width)
        y0, y1 = max(int(cy) - r, 0), min(int(cy) + r + 1, self.height)
        if x0 >= x1 or y0 >= y1:
            return
        xs = np.arange(x0, x1) + 0.5 - cx
        ys = np.arange(y0, y1) + 0.5 - cy
        xg, yg = np.meshgrid(xs, ys)
        weight = profile(np.sqrt(xg ** 2 + yg ** 2) / max(radius, 1e-6))
        self.data[y0:y1, x0:x1] += weight[:, :, np.newaxis] * np.asarray(rgb, dtype=np.float64)


def _gaussian_disc(r: np.ndarray) -> np.ndarray:
    return np.exp(-4.0 * r * r) * (r < 1.0)


def _drift_rotation(time: float, drift: float) -> Optional[Rotation]:
    if drift == 0:
        return None
    angle = drift * DRIFT_AMPLITUDE * math.sin(time * DRIFT_RATE)
    return Rotation.from_rotvec([0.0, angle, 0.0])


def _moved(points: np.ndarray, drift: Optional[Rotation]) -> np.ndarray:
    if drift is None or len(points) == 0:
        return points
    return drift.apply(points)


def draw_faces(buf: LightBuffer, cam: Camera, faces: FaceStream, fold_progress: float, drift, gain: float, fade: float = 1.0) -> None:
    if faces.triangle_count == 0 or fade <= 0:
        return
    pos = apply_fold(
        faces.pos.astype(np.float64), faces.fold_origin.astype(np.float64),
        faces.fold_delay.astype(np.float64), fold_progress,
    )
    px, py, _, visible = cam.project(_moved(pos, drift))
    px, py = px.reshape(-1, 3), py.reshape(-1, 3)
    visible = visible.reshape(-1, 3).all(axis=1)

    area = 0.5 * np.abs(
        (px[:, 1] - px[:, 0]) * (py[:, 2] - py[:, 0]) - (px[:, 2] - px[:, 0]) * (py[:, 1] - py[:, 0])
    )
    alpha = faces.alpha.reshape(-1, 3).mean(axis=1) * ALPHA_SCALE
    crack = faces.crack_extend.reshape(-1, 3).mean(axis=1)
    opacity = faces.opacity.reshape(-1, 3).mean(axis=1)
    color = faces.color.reshape(-1, 3, 3).mean(axis=1)
    energy = opacity * alpha * (0.35 + 0.65 * crack) * gain * fade

    keep = visible & (area > 0) & (energy > 0)
    if not keep.any():
        return
    px, py, area, energy, color = px[keep], py[keep], area[keep], energy[keep], color[keep]

    counts = np.clip(np.ceil(area), 1, MAX_TRIANGLE_SAMPLES).astype(np.int64)
    tri = np.repeat(np.arange(len(counts)), counts)
    j = np.arange(len(tri)) - np.repeat(np.cumsum(counts) - counts, counts)
    u = (0.5 + j * _R2_U) % 1.0
    v = (0.5 + j * _R2_V) % 1.0
    flip = u + v > 1.0
    u, v = np.where(flip, 1.0 - u, u), np.where(flip, 1.0 - v, v)

    sx = px[tri, 0] + u * (px[tri, 1] - px[tri, 0]) + v * (px[tri, 2] - px[tri, 0])
    sy = py[tri, 0] + u * (py[tri, 1] - py[tri, 0]) + v * (py[tri, 2] - py[tri, 0])
    weight = (energy * area / counts)[tri]
    buf.splat(sx, sy, color[tri] * weight[:, np.newaxis])


def draw_segments(buf: LightBuffer, cam: Camera, pos: np.ndarray, rgb: np.ndarray) -> None:
    """Segments from consecutive endpoint pairs, ``rgb`` per endpoint."""
    if len(pos) < 2:
        return
    px, py, _, visible = cam.project(pos)
    px, py = px.reshape(-1, 2), py.reshape(-1, 2)
    rgb = np.asarray(rgb, dtype=np.float64).reshape(-1, 2, 3)
    keep = visible.reshape(-1, 2).all(axis=1)
    if not keep.any():
        return
    px, py, rgb = px[keep], py[keep], rgb[keep]

    length = np.hypot(px[:, 1] - px[:, 0], py[:, 1] - py[:, 0])
    counts = np.clip(np.ceil(length), 1, MAX_SEGMENT_SAMPLES).astype(np.int64)
    seg = np.repeat(np.arange(len(counts)), counts)
    j = np.arange(len(seg)) - np.repeat(np.cumsum(counts) - counts, counts)
    t = ((j + 0.5) / counts[seg])[:, np.newaxis]

    sx = px[seg, 0] + t[:, 0] * (px[seg, 1] - px[seg, 0])
    sy = py[seg, 0] + t[:, 0] * (py[seg, 1] - py[seg, 0])
    col = rgb[seg, 0] + t * (rgb[seg, 1] - rgb[seg, 0])
    # Long segments are capped; keep their total energy per pixel of length.
    col *= (length[seg] / counts[seg]).clip(min=1.0)[:, np.newaxis]
    buf.splat(sx, sy, col)


def draw_edges(buf: LightBuffer, cam: Camera, edges: EdgeStream, uniforms: SceneUniforms, fold_progress: float, drift, gain: float, fade: float = 1.0) -> None:
    if edges.segment_count == 0 or fade <= 0:
        return
    pos = apply_fold(
        edges.pos.astype(np.float64), edges.fold_origin.astype(np.float64),
        edges.fold_delay.astype(np.float64), fold_progress,
    )
    alpha = edges.alpha.astype(np.float64) * ALPHA_SCALE
    # Edges dissolve as the radial alpha falls under the fade threshold.
    threshold = max(uniforms.edge_fade_threshold, 1e-3)
    t = np.clip(alpha / threshold, 0.0, 1.0)
    fade_in = t * t * (3.0 - 2.0 * t)
    weight = edges.opacity * alpha * fade_in * gain * fade
    draw_segments(buf, cam, _moved(pos, drift), edges.color * weight[:, np.newaxis])


def draw_sprites(buf: LightBuffer, cam: Camera, pos: np.ndarray, size: np.ndarray, rgb, profile, min_radius: float = 0.5) -> None:
    if len(pos) == 0:
        return
    px, py, depth, visible = cam.project(pos)
    rgb = np.broadcast_to(np.asarray(rgb, dtype=np.float64), (len(px), 3))
    for i in np.flatnonzero(visible):
        radius = max(float(size[i]) * cam.focal / float(depth[i]), min_radius)
        buf.stamp(float(px[i]), float(py[i]), radius, rgb[i], profile)


def _sparkle(positions: np.ndarray, time: float, sparkle: float) -> np.ndarray:
    if len(positions) == 0 or sparkle == 0:
        return np.ones(len(positions))
    phase = positions[:, 0] * 43.758 + positions[:, 2] * 12.9898
    return 1.0 + SPARKLE_AMPLITUDE * sparkle * np.sin(time * 3.0 + phase)


def _draw_dots(buf, cam, scene: Scene, frame: FrameUniforms, drift, config: RenderConfig, fade: float = 1.0, glow: bool = True) -> None:
    dots = scene.dots
    appear = float(fold_factor(frame.fold_progress, 0.0)) * fade
    if appear <= 0:
        return
    if dots.sphere_count:
        sphere_pos = dots.sphere_pos + sphere_wobble(dots.sphere_pos, frame.time, frame.wobble)
        brightness = _sparkle(dots.sphere_pos, frame.time, frame.sparkle) * SPHERE_GAIN * appear
        draw_sprites(
            buf, cam, _moved(sphere_pos, drift), dots.sphere_radius,
            dots.sphere_color * brightness[:, np.newaxis], _gaussian_disc,
        )
    if glow and len(dots.glow_size):
        draw_sprites(
            buf, cam, _moved(dots.glow_pos, drift), dots.glow_size,
            np.full(3, config.sprite_gain * appear), glow_profile,
        )


def _camera(frame: FrameUniforms, uniforms: SceneUniforms, width: int, height: int) -> Camera:
    return Camera(frame.camera_position, frame.camera_target, uniforms.camera_fov, width, height)


def _finish(buf: LightBuffer, uniforms: SceneUniforms, config: RenderConfig) -> np.ndarray:
    linear = buf.data
    ss = config.supersample
    if ss > 1:
        h, w = config.height, config.width
        linear = linear.reshape(h, ss, w, ss, 3).mean(axis=(1, 3))

    frame_rgb = to_uint8(background_gradient(
        config.width, config.height, uniforms.bg_inner_color, uniforms.bg_outer_color,
    ) + linear)

    if config.glow_enabled:
        frame_rgb = add_bloom(
            frame_rgb,
            strength=min(uniforms.bloom_strength * config.glow_intensity, 0.8),
            threshold=uniforms.bloom_threshold,
            radius=config.glow_radius,
        )
    if config.aberration_enabled:
        frame_rgb = chromatic_aberration(frame_rgb, offset=uniforms.chromatic_aberration * config.width)
    if config.vignette_enabled:
        frame_rgb = vignette(frame_rgb, strength=uniforms.vignette_strength)
    if config.tone_map_enabled:
        frame_rgb = tone_map_soft(frame_rgb)
    return frame_rgb


def render_still(
    scene: Scene,
    config: Optional[RenderConfig] = None,
    frame: Optional[FrameUniforms] = None,
) -> np.ndarray:
    """
    Render one frame of ``scene``.

    Args:
        scene: Assembled scene.
        config: Output size and post-processing; defaults to RenderConfig().
        frame: Per-frame uniforms; defaults to a fully built, static frame.

    Returns:
        (H, W, 3) uint8 RGB array.
    """
    config = config or RenderConfig()
    frame = frame or frame_uniforms(scene)
    width, height = config.render_dims()
    cam = _camera(frame, scene.uniforms, width, height)
    buf = LightBuffer(width, height)
    drift = _drift_rotation(frame.time, frame.drift)

    draw_faces(buf, cam, scene.faces, frame.fold_progress, drift, config.face_gain)
    draw_edges(buf, cam, scene.edges, scene.uniforms, frame.fold_progress, drift, config.edge_gain)
    draw_segments(
        buf, cam, _moved(scene.tendril_pos.astype(np.float64), drift),
        scene.tendril_color * float(fold_factor(frame.fold_progress, 0.0)),
    )
    _draw_dots(buf, cam, scene, frame, drift, config)
    return _finish(buf, scene.uniforms, config)


def render_morph_frame(
    morph: ScenePairMorph,
    t: float,
    config: Optional[RenderConfig] = None,
    frame: Optional[FrameUniforms] = None,
    camera: Optional[CameraOverride] = None,
) -> np.ndarray:
    """Render a scene-pair morph at ``t``; the camera follows the blended uniforms."""
    config = config or RenderConfig()
    state: MorphFrame = morph.update(t)
    frame = frame or frame_uniforms(morph.scene_from)
    width, height = config.render_dims()

    target = np.array([state.uniforms.camera_offset_x, state.uniforms.camera_offset_y, 0.0])
    cam = Camera(camera_position(state.uniforms, camera), target, state.uniforms.camera_fov, width, height)

    buf = LightBuffer(width, height)
    drift = _drift_rotation(frame.time, frame.drift)
    draw_faces(buf, cam, state.faces, frame.fold_progress, drift, config.face_gain)
    draw_edges(buf, cam, state.edges, state.uniforms, frame.fold_progress, drift, config.edge_gain)

    appear = float(fold_factor(frame.fold_progress, 0.0))
    for scene, fade in ((morph.scene_from, state.fade_from), (morph.scene_to, state.fade_to)):
        if fade > 0:
            draw_segments(buf, cam, _moved(scene.tendril_pos.astype(np.float64), drift), scene.tendril_color * appear * fade)
            _draw_dots(buf, cam, scene, frame, drift, config, fade=fade, glow=False)

    glow_rgb = np.outer(state.glow_opacity * config.sprite_gain * appear, np.ones(3))
    draw_sprites(buf, cam, _moved(state.glow_pos.astype(np.float64), drift), state.glow_size, glow_rgb, glow_profile)
    return _finish(buf, state.uniforms, config)


def to_png_image(frame_rgb: np.ndarray) -> Image.Image:
    return Image.fromarray(frame_rgb)

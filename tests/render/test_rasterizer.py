"""Tests for the CPU preview renderer."""

import numpy as np
import pytest

from geometric_interior.engine.dots import glow_profile
from geometric_interior.engine.scene import CameraOverride, frame_uniforms
from geometric_interior.engine.scene_morph import ScenePairMorph
from geometric_interior.render.config import RenderConfig
from geometric_interior.render.rasterizer import (
    Camera,
    LightBuffer,
    render_morph_frame,
    render_still,
    to_png_image,
)


class TestCamera:
    def test_centre_projects_to_middle(self):
        cam = Camera([0, 0, 5], [0, 0, 0], 60.0, 64, 48)
        px, py, depth, visible = cam.project(np.zeros((1, 3)))
        assert px[0] == pytest.approx(32)
        assert py[0] == pytest.approx(24)
        assert depth[0] == pytest.approx(5)
        assert visible[0]

    def test_up_is_up(self):
        cam = Camera([0, 0, 5], [0, 0, 0], 60.0, 64, 48)
        _, py, _, _ = cam.project(np.array([[0.0, 1.0, 0.0]]))
        assert py[0] < 24

    def test_behind_is_hidden(self):
        cam = Camera([0, 0, 5], [0, 0, 0], 60.0, 64, 48)
        *_, visible = cam.project(np.array([[0.0, 0.0, 10.0]]))
        assert not visible[0]


class TestLightBuffer:
    def test_splat_ignores_outside(self):
        buf = LightBuffer(4, 3)
        buf.splat(np.array([1.2, -1.0, 9.0]), np.array([2.5, 0.0, 0.0]), np.ones((3, 3)))
        assert buf.data.sum() == pytest.approx(3.0)
        assert buf.data[2, 1, 0] == 1.0

    def test_stamp(self):
        buf = LightBuffer(16, 16)
        buf.stamp(8.0, 8.0, 4.0, (1.0, 1.0, 1.0), glow_profile)
        assert buf.data[8, 8, 0] > buf.data[8, 11, 0] > 0
        assert buf.data[0, 0, 0] == 0


class TestRenderStill:
    def test_shape_and_type(self, scene, tiny_config):
        frame = render_still(scene, tiny_config)
        assert frame.shape == (48, 64, 3)
        assert frame.dtype == np.uint8

    def test_not_blank(self, scene, tiny_config):
        frame = render_still(scene, tiny_config)
        assert frame.max() > frame.min()

    def test_deterministic(self, scene, tiny_config):
        assert np.array_equal(render_still(scene, tiny_config), render_still(scene, tiny_config))

    def test_collapsed_scene_is_darker(self, scene, tiny_config):
        full = render_still(scene, tiny_config).astype(int).sum()
        folded = render_still(scene, tiny_config, frame_uniforms(scene, fold_progress=0.0)).astype(int).sum()
        assert folded < full

    def test_supersample(self, scene):
        cfg = RenderConfig(width=32, height=24, supersample=2, glow_enabled=False)
        assert render_still(scene, cfg).shape == (24, 32, 3)

    def test_camera_override(self, scene, tiny_config):
        near = frame_uniforms(scene, camera=CameraOverride(zoom=0.6))
        assert not np.array_equal(render_still(scene, tiny_config, near), render_still(scene, tiny_config))

    def test_png_image(self, solid_frame):
        img = to_png_image(solid_frame)
        assert img.size == (64, 48)
        assert img.mode == "RGB"


class TestRenderMorphFrame:
    def test_shape(self, scene, other_scene, tiny_config):
        morph = ScenePairMorph(scene, other_scene)
        for t in (0.0, 0.5, 1.0):
            frame = render_morph_frame(morph, t, tiny_config)
            assert frame.shape == (48, 64, 3)
            assert frame.dtype == np.uint8

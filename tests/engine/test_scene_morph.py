"""Tests for dot matching and cross-scene morphs."""

import numpy as np
import pytest

from geometric_interior.engine.dot_matching import build_glow_morph_layer, match_dots
from geometric_interior.engine.scene_morph import ScenePairMorph


class TestMatchDots:
    def test_largest_dot_chooses_first(self):
        from_pos = [[0.0, 0, 0], [0.1, 0, 0]]
        to_pos = [[0.05, 0, 0]]
        m = match_dots(from_pos, [1.0, 5.0], to_pos, [1.0])
        assert m.matched == ((1, 0),)
        assert m.unmatched_from == (0,)
        assert m.unmatched_to == ()

    def test_max_dist_is_strict(self):
        m = match_dots([[0.0, 0, 0]], [1.0], [[3.0, 0, 0]], [1.0], max_dist=3.0)
        assert m.matched == ()
        assert m.unmatched_to == (0,)

    def test_empty_sides(self):
        m = match_dots(np.zeros((0, 3)), [], [[1.0, 0, 0]], [1.0])
        assert m.matched == ()
        assert m.unmatched_to == (0,)

    def test_layer_opacities(self):
        from_pos, from_size = [[0.0, 0, 0], [9.0, 0, 0]], [1.0, 2.0]
        to_pos, to_size = [[0.5, 0, 0], [-9.0, 0, 0]], [3.0, 1.0]
        m = match_dots(from_pos, from_size, to_pos, to_size)
        layer = build_glow_morph_layer(from_pos, from_size, to_pos, to_size, m)
        assert len(layer) == 3
        pos, size, opacity = layer.evaluate(0.25)
        # Matched pair, then the fading-out leftover, then the fading-in one.
        assert opacity.tolist() == [1.0, 0.75, 0.25]
        assert size[0] == pytest.approx(1.5)
        assert pos[0][0] == pytest.approx(0.125)


class TestScenePairMorph:
    @pytest.fixture(scope="class")
    def morph(self, scene, other_scene):
        return ScenePairMorph(scene, other_scene)

    def test_streams_padded_to_equal_length(self, morph, scene, other_scene):
        expected = max(scene.faces.vertex_count, other_scene.faces.vertex_count)
        assert morph.faces_from.vertex_count == morph.faces_to.vertex_count == expected
        assert morph.edges_from.vertex_count == morph.edges_to.vertex_count

    def test_endpoints(self, morph):
        start = morph.update(0.0)
        assert np.array_equal(start.faces.pos, morph.faces_from.pos)
        assert start.fade_from == 1.0
        end = morph.update(1.0)
        assert np.allclose(end.faces.pos, morph.faces_to.pos, atol=1e-5)
        assert end.fade_to == 1.0

    def test_t_clamped(self, morph):
        assert morph.update(-1.0).t == 0.0

    def test_uniforms_blend(self, morph, scene, other_scene):
        mid = morph.update(0.5).uniforms
        expected = (scene.uniforms.camera_z + other_scene.uniforms.camera_z) / 2
        assert mid.camera_z == pytest.approx(expected)
        assert mid.light_count == max(scene.uniforms.light_count, other_scene.uniforms.light_count)
        assert len(mid.fog_color) == 3

    def test_on_complete_fires_once(self, scene, other_scene):
        calls = []
        morph = ScenePairMorph(scene, other_scene, on_complete=lambda: calls.append(1))
        morph.update(0.5)
        assert not morph.is_complete
        morph.update(1.0)
        morph.update(1.0)
        assert calls == [1]
        assert morph.is_complete

    def test_prepare_reports_ready_morph(self, sparse_controls):
        prepared = []
        morph = ScenePairMorph.prepare(
            "prep a", sparse_controls, "prep b", sparse_controls,
            on_prepared=prepared.append,
        )
        assert prepared == [morph]
        assert morph.scene_from.seed == "prep a"
        assert morph.scene_to.seed == "prep b"

"""Tests for the PortraitPipeline module."""

import itertools

import numpy as np
import pytest

from geometric_interior.core.timeline import Animation, AnimationSettings, evaluate_timeline
from geometric_interior.errors import EmptyTimeline, InvalidSeed
from geometric_interior.io.exporter import PNG_SIGNATURE, read_zip
from geometric_interior.io.url_state import ShareState
from geometric_interior.pipeline import (
    PortraitPipeline,
    StillResult,
    generate_scene_title,
    title_rng_label,
)
from geometric_interior.render.config import RenderConfig

SEED = "the quiet interior"


class TestSceneCache:
    """Tests for scene building and caching."""

    def test_build_is_cached(self, sparse_controls):
        """Same seed and controls should return the same scene object."""
        pipeline = PortraitPipeline()
        a = pipeline.build(SEED, sparse_controls)
        assert pipeline.build(SEED, sparse_controls.to_dict()) is a

    def test_oldest_scene_evicted(self, sparse_controls):
        """The first scene in should be the first out."""
        pipeline = PortraitPipeline(max_cached_scenes=1)
        a = pipeline.build(SEED, sparse_controls)
        pipeline.build("another", sparse_controls)
        assert pipeline.build(SEED, sparse_controls) is not a

    def test_clear_cache(self, sparse_controls):
        pipeline = PortraitPipeline()
        a = pipeline.build(SEED, sparse_controls)
        pipeline.clear_cache()
        assert pipeline.build(SEED, sparse_controls) is not a

    def test_invalid_seed(self):
        with pytest.raises(InvalidSeed):
            PortraitPipeline().build("")


class TestStills:
    """Tests for still rendering and export."""

    def test_render(self, sparse_controls, tiny_config):
        """render() should return a frame with title and alt text."""
        result = PortraitPipeline(tiny_config).render(SEED, sparse_controls)

        assert isinstance(result, StillResult)
        assert result.frame.shape == (48, 64, 3)
        assert result.title
        assert result.alt_text
        assert result.node_count == result.scene.node_count

    def test_title_is_deterministic(self, sparse_controls):
        assert generate_scene_title(SEED, sparse_controls) == generate_scene_title(SEED, sparse_controls)
        assert title_rng_label((1, 2, 3)) == "1.2.3:title"

    def test_export_png(self, tmp_path, sparse_controls, tiny_config):
        out = PortraitPipeline(tiny_config).export(
            ShareState(seed=SEED, controls=sparse_controls), tmp_path / "still.png"
        )
        assert out.read_bytes().startswith(PNG_SIGNATURE)

    def test_export_zip(self, tmp_path, sparse_controls, tiny_config):
        out = PortraitPipeline(tiny_config).export(
            ShareState(seed=SEED, controls=sparse_controls, name="Named"), tmp_path / "still.zip", format="zip"
        )
        bundle = read_zip(out.read_bytes())
        assert bundle["metadata"]["name"] == "Named"
        assert bundle["metadata"]["intent"] == SEED

    def test_export_numpy(self, tmp_path, sparse_controls):
        out = PortraitPipeline().export(
            ShareState(seed=SEED, controls=sparse_controls), tmp_path / "streams.npz", format="numpy"
        )
        assert out.exists()

    def test_export_unknown_format(self, tmp_path, sparse_controls, tiny_config):
        with pytest.raises(ValueError, match="unknown export format"):
            PortraitPipeline(tiny_config).export(
                ShareState(seed=SEED, controls=sparse_controls), tmp_path / "x.gif", format="gif"
            )


class TestAnimation:
    """Tests for timeline rendering."""

    def test_animation_config(self, animation):
        cfg = PortraitPipeline(RenderConfig(glow_enabled=False)).animation_config(animation)
        assert (cfg.width, cfg.height, cfg.fps) == (64, 48, 10)
        assert not cfg.glow_enabled

    def test_first_frames(self, animation):
        frames = list(itertools.islice(PortraitPipeline().render_animation(animation), 3))
        assert len(frames) == 3
        assert all(f.shape == (48, 64, 3) for f in frames)

    def test_every_frame_reported(self, animation, monkeypatch):
        """Progress should count every frame of the timeline."""
        pipeline = PortraitPipeline()
        monkeypatch.setattr(pipeline, "render_frame_state", lambda fs, config=None: np.zeros((48, 64, 3), np.uint8))
        seen = []
        frames = list(pipeline.render_animation(animation, progress_callback=lambda c, t: seen.append((c, t))))
        assert len(frames) == 40
        assert seen[-1] == (40, 40)

    def test_morphing_frame(self, animation, tiny_config):
        pipeline = PortraitPipeline(tiny_config)
        fs = evaluate_timeline(animation, 2.5)
        assert fs.is_morphing
        frame = pipeline.render_frame_state(fs)
        assert frame.shape == (48, 64, 3)
        assert len(pipeline._morphs) == 1

    def test_blurred_frame(self, animation, tiny_config):
        pipeline = PortraitPipeline(tiny_config)
        sharp = pipeline.render_frame_state(evaluate_timeline(animation, 1.5))
        fs = evaluate_timeline(animation, 3.9)
        assert fs.blur_amount > 0.5
        assert pipeline.render_frame_state(fs).shape == sharp.shape

    def test_empty_timeline(self):
        with pytest.raises(EmptyTimeline):
            next(PortraitPipeline().render_animation(Animation(settings=AnimationSettings(), events=[])))

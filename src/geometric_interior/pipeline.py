"""
Main portrait pipeline.

Orchestrates the flow from (seed, controls) to finished artefacts:
scene assembly, title and alt text, preview rendering, export bundles
and timeline-driven animation.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, Optional, Union

import numpy as np

from geometric_interior.core.controls import Controls
from geometric_interior.core.prng import rng_from_label
from geometric_interior.core.seed_tags import Seed, seed_to_string
from geometric_interior.core.text import generate_alt_text, generate_title
from geometric_interior.core.timeline import (
    Animation,
    FrameState,
    evaluate_timeline,
    total_frames,
    validate_animation,
)
from geometric_interior.engine.scene import AnimConfig, CameraOverride, Scene, build_scene, frame_uniforms
from geometric_interior.engine.scene_morph import ScenePairMorph
from geometric_interior.io.exporter import VisualExporter, encode_png
from geometric_interior.io.url_state import ShareState
from geometric_interior.render.colorgrade import focus_blur
from geometric_interior.render.config import RenderConfig
from geometric_interior.render.encoder import encode_video
from geometric_interior.render.rasterizer import render_morph_frame, render_still

ProgressCallback = Callable[[int, int], None]


@dataclass
class StillResult:
    """A rendered still and its text metadata."""

    frame: np.ndarray
    title: str
    alt_text: str
    scene: Scene

    @property
    def node_count(self) -> int:
        return self.scene.node_count


def title_rng_label(seed: Seed) -> str:
    return f"{seed_to_string(seed)}:title"


def generate_scene_title(seed: Seed, controls: Controls) -> str:
    """Deterministic title; depends only on the seed and controls."""
    return generate_title(controls, rng_from_label(title_rng_label(seed)))


class PortraitPipeline:
    """
    Complete (seed, controls) to image/video pipeline.

    Scenes are cached in memory per (seed label, controls) so animation
    renders build each distinct scene once.

    Args:
        render_config: Output size and post-processing.
        max_cached_scenes: Scene cache size; oldest entries go first.
    """

    def __init__(self, render_config: Optional[RenderConfig] = None, max_cached_scenes: int = 8):
        self.render_config = render_config or RenderConfig()
        self.max_cached_scenes = max_cached_scenes
        self.exporter = VisualExporter()
        self._scenes: dict[tuple, Scene] = {}
        self._morphs: dict[tuple, ScenePairMorph] = {}

    def clear_cache(self):
        self._scenes.clear()
        self._morphs.clear()

    def _scene_key(self, seed: Seed, controls: Controls) -> tuple:
        return (seed_to_string(seed), controls)

    def build(self, seed: Seed, controls: Union[Controls, Mapping[str, Any], None] = None) -> Scene:
        """
        Build (or fetch) the scene for ``(seed, controls)``.

        Raises:
            InvalidSeed, InvalidParameter, RenderFailure: See ``build_scene``.
        """
        if not isinstance(controls, Controls):
            controls = Controls.from_mapping(controls)
        key = self._scene_key(seed, controls)
        scene = self._scenes.get(key)
        if scene is None:
            scene = build_scene(seed, controls)
            if len(self._scenes) >= self.max_cached_scenes:
                self._scenes.pop(next(iter(self._scenes)))
            self._scenes[key] = scene
        return scene

    def describe(self, scene: Scene) -> tuple[str, str]:
        """(title, alt text) for a built scene."""
        title = generate_scene_title(scene.seed, scene.controls)
        return title, generate_alt_text(scene.controls, scene.node_count, title)

    def render(
        self,
        seed: Seed,
        controls: Union[Controls, Mapping[str, Any], None] = None,
        config: Optional[RenderConfig] = None,
    ) -> StillResult:
        """
        Build and render one still.

        Args:
            seed: Free-form string or tag triple.
            controls: Controls or loose mapping.
            config: Overrides the pipeline's render config.

        Returns:
            StillResult with the frame, title and alt text.
        """
        scene = self.build(seed, controls)
        frame = render_still(scene, config or self.render_config)
        title, alt_text = self.describe(scene)
        return StillResult(frame=frame, title=title, alt_text=alt_text, scene=scene)

    def export(
        self,
        state: ShareState,
        output_path: Union[str, Path],
        format: str = "png",
        config: Optional[RenderConfig] = None,
    ) -> Path:
        """
        Render ``state`` and write it out.

        Args:
            state: Seed, controls and name.
            output_path: Destination file.
            format: "png", "zip" (image + title + alt text + config) or
                "numpy" (raw scene streams, nothing rendered).

        Returns:
            Path to the written file.
        """
        output_path = Path(output_path)
        if format == "numpy":
            return self.exporter.export_numpy(self.build(state.seed, state.controls), output_path)

        result = self.render(state.seed, state.controls, config)
        if format == "zip":
            return self.exporter.export_zip(result.frame, result.title, result.alt_text, state, output_path)
        if format != "png":
            raise ValueError(f"unknown export format {format!r}")
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(encode_png(result.frame))
        return output_path

    def _morph_for(self, fs: FrameState) -> ScenePairMorph:
        scene_from = self.build(fs.morph_from_seed, fs.morph_from_config)
        scene_to = self.build(fs.morph_to_seed, fs.morph_to_config)
        key = (self._scene_key(scene_from.seed, scene_from.controls), self._scene_key(scene_to.seed, scene_to.controls))
        morph = self._morphs.get(key)
        if morph is None:
            # One transition is live at a time.
            self._morphs.clear()
            morph = ScenePairMorph(scene_from, scene_to)
            self._morphs[key] = morph
        return morph

    def render_frame_state(self, fs: FrameState, config: Optional[RenderConfig] = None) -> np.ndarray:
        """Render one evaluated timeline frame."""
        config = config or self.render_config
        anim = AnimConfig.from_live_params(fs.twinkle, fs.dynamism)
        camera = CameraOverride(zoom=fs.camera_zoom, orbit_y=fs.camera_orbit_y, orbit_x=fs.camera_orbit_x)

        if fs.is_morphing:
            morph = self._morph_for(fs)
            uniforms = frame_uniforms(morph.scene_from, fs.fold_progress, fs.time, anim, camera)
            frame = render_morph_frame(morph, fs.morph_t, config, uniforms, camera)
        else:
            scene = self.build(fs.current_seed, fs.current_config)
            uniforms = frame_uniforms(scene, fs.fold_progress, fs.time, anim, camera)
            frame = render_still(scene, config, uniforms)

        return focus_blur(frame, fs.blur_amount)

    def animation_config(self, animation: Animation) -> RenderConfig:
        s = animation.settings
        cfg = self.render_config.with_size(s.width, s.height)
        cfg.fps = int(round(s.fps))
        return cfg

    def render_animation(
        self,
        animation: Animation,
        config: Optional[RenderConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Iterator[np.ndarray]:
        """
        Yield every frame of ``animation`` in order.

        Raises:
            EmptyTimeline, InvalidParameter: If the animation is invalid.
        """
        validate_animation(animation)
        config = config or self.animation_config(animation)
        n = total_frames(animation)
        fps = animation.settings.fps

        for i in range(n):
            fs = evaluate_timeline(animation, i / fps)
            yield self.render_frame_state(fs, config)
            if progress_callback:
                progress_callback(i + 1, n)

    def encode_animation(
        self,
        animation: Animation,
        output_path: Union[str, Path],
        config: Optional[RenderConfig] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Path:
        """Render ``animation`` straight into a silent MP4."""
        validate_animation(animation)
        config = config or self.animation_config(animation)
        metadata = {}
        opening = next((e for e in animation.events if e.has_payload), None)
        if opening is not None:
            metadata["title"], _ = self.describe(self.build(opening.seed, opening.config))
        return encode_video(
            frame_iterator=self.render_animation(animation, config, progress_callback),
            output_path=Path(output_path),
            width=config.width,
            height=config.height,
            fps=config.fps,
            quality=config.quality,
            metadata=metadata,
        )

"""Scene geometry: guide curves, folding chains, dots and morphs."""

from geometric_interior.engine.scene import Scene, build_scene, frame_uniforms
from geometric_interior.engine.scene_morph import ScenePairMorph

__all__ = ["Scene", "build_scene", "frame_uniforms", "ScenePairMorph"]

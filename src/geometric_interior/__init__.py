"""Deterministic generative self-portraits built from folding chains of light."""

from geometric_interior.core.controls import Controls
from geometric_interior.engine.scene import Scene, build_scene
from geometric_interior.io.url_state import ShareState, decode_state_from_url, encode_state_to_url
from geometric_interior.pipeline import PortraitPipeline

__version__ = "0.1.0"
__all__ = [
    "Controls",
    "Scene",
    "build_scene",
    "ShareState",
    "encode_state_to_url",
    "decode_state_from_url",
    "PortraitPipeline",
]

"""CPU preview renderer, post-processing and video encoding."""

from geometric_interior.render.config import RenderConfig
from geometric_interior.render.encoder import encode_video
from geometric_interior.render.rasterizer import render_morph_frame, render_still

__all__ = ["RenderConfig", "encode_video", "render_still", "render_morph_frame"]

"""
Render settings for the CPU preview renderer and the video encoder.
"""

from dataclasses import dataclass, replace
from typing import Tuple

from geometric_interior.errors import InvalidParameter


@dataclass
class RenderConfig:
    """Output size and post-processing switches.

    Bloom, aberration and vignette amounts come from the scene; the
    fields here only switch them on or off and scale them.
    """
    width: int = 1920
    height: int = 1080
    fps: int = 30
    supersample: int = 1
    quality: str = "medium"

    # Post-processing
    glow_enabled: bool = True
    glow_intensity: float = 1.0
    glow_radius: int = 15
    aberration_enabled: bool = True
    vignette_enabled: bool = True
    tone_map_enabled: bool = True

    # Splat gains
    face_gain: float = 4.0
    edge_gain: float = 6.0
    sprite_gain: float = 1.0

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise InvalidParameter(f"render size must be positive, got {self.width}x{self.height}")
        if self.fps <= 0:
            raise InvalidParameter(f"fps must be positive, got {self.fps}")
        if self.supersample < 1:
            raise InvalidParameter(f"supersample must be at least 1, got {self.supersample}")

    def render_dims(self) -> Tuple[int, int]:
        """Internal (width, height) before downsampling."""
        return (self.width * self.supersample, self.height * self.supersample)

    def with_size(self, width: int, height: int) -> "RenderConfig":
        return replace(self, width=width, height=height)

"""Pure parameter, seed, text and timeline logic."""

from geometric_interior.core.controls import Controls
from geometric_interior.core.params import DerivedParams, derive_params
from geometric_interior.core.timeline import Animation, FrameState, evaluate_timeline

__all__ = ["Controls", "DerivedParams", "derive_params", "Animation", "FrameState", "evaluate_timeline"]

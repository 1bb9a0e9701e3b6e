"""Pytest configuration and shared fixtures."""

import numpy as np
import pytest

from geometric_interior.core.controls import Controls
from geometric_interior.core.timeline import (
    Animation,
    AnimationSettings,
    CameraMove,
    CameraState,
    ContentEvent,
    FocusState,
    FocusTrack,
    ParamTrack,
)
from geometric_interior.engine.scene import build_scene
from geometric_interior.render.config import RenderConfig

# Low density keeps scene builds fast.
SPARSE = {"density": 0.1, "scale": 0.5}

TEST_SEED = "the quiet interior"
OTHER_SEED = "a second portrait"


@pytest.fixture(scope="session")
def sparse_controls() -> Controls:
    return Controls.from_mapping(SPARSE)


@pytest.fixture(scope="session")
def scene(sparse_controls):
    """One fully built scene shared across the session."""
    return build_scene(TEST_SEED, sparse_controls)


@pytest.fixture(scope="session")
def other_scene(sparse_controls):
    return build_scene(OTHER_SEED, sparse_controls.with_values(hue=0.1, fracture=0.8))


@pytest.fixture
def tiny_config() -> RenderConfig:
    """Small output so renders stay cheap."""
    return RenderConfig(width=64, height=48, fps=10, glow_radius=2)


@pytest.fixture
def animation(sparse_controls) -> Animation:
    """
    Expand, pause, transition, collapse at 10 fps.

    Returns:
        Animation spanning 4 seconds.
    """
    second = sparse_controls.with_values(hue=0.3)
    return Animation(
        settings=AnimationSettings(fps=10, width=64, height=48),
        events=[
            ContentEvent(type="expand", duration=1.0, config=sparse_controls, seed=TEST_SEED),
            ContentEvent(type="pause", duration=1.0),
            ContentEvent(type="transition", duration=1.0, config=second, seed=OTHER_SEED),
            ContentEvent(type="collapse", duration=1.0, easing="ease-in"),
        ],
        camera_moves=[
            CameraMove(
                type="zoom", start_time=0.0, end_time=2.0, easing="linear",
                start=CameraState(zoom=1.0), end=CameraState(zoom=0.5),
            ),
        ],
        param_tracks=[
            ParamTrack(param="twinkle", start_time=0.0, end_time=4.0, easing="linear", start=0.0, end=1.0),
        ],
        focus_tracks=[
            FocusTrack(
                start_time=3.0, end_time=4.0, easing="linear",
                start=FocusState(0.5, 0.0), end=FocusState(0.5, 1.0),
            ),
        ],
    )


@pytest.fixture
def solid_frame() -> np.ndarray:
    return np.full((48, 64, 3), (40, 80, 160), dtype=np.uint8)

"""
Seamless animation interpolation: Catmull-Rom splines, time-warp and
cosine easing, plus landmark loop evaluation.
"""

import math
from typing import Sequence

from geometric_interior.core.controls import CONTROL_AXES, Controls
from geometric_interior.core.prng import clamp01, lerp, round_half_up

TIME_WARP_STRENGTH = 0.78

# Controls fields that are chosen, not blended.
DISCRETE_KEYS = ("topology",)


def smootherstep(t: float) -> float:
    t = clamp01(t)
    return t * t * t * (t * (t * 6 - 15) + 10)


def warp_segment_t(t: float, strength: float) -> float:
    """Blend ``t`` toward its smootherstep by ``strength`` (0 = identity)."""
    w = smootherstep(t)
    return lerp(t, w, clamp01(strength))


def cosine_ease(t: float) -> float:
    return 0.5 - 0.5 * math.cos(math.pi * clamp01(t))


def catmull_rom(p0: float, p1: float, p2: float, p3: float, t: float) -> float:
    t2 = t * t
    t3 = t2 * t
    return 0.5 * (
        (2 * p1)
        + (-p0 + p2) * t
        + (2 * p0 - 5 * p1 + 4 * p2 - p3) * t2
        + (-p0 + 3 * p1 - 3 * p2 + p3) * t3
    )


def nearest_landmark_index(t_norm: float, n: int) -> int:
    """Landmark closest to ``t_norm``; exact halves go to the later one."""
    return round_half_up(t_norm * n) % n


def eval_controls_at(t_norm: float, landmarks: Sequence[Controls]) -> Controls | None:
    """
    Evaluate a looping landmark animation at normalised time.

    Two landmarks ping-pong with a softened warp and cosine ease; three or
    more run a periodic Catmull-Rom through every landmark. Discrete
    fields come from the nearest landmark.

    Args:
        t_norm: Loop position in [0, 1).
        landmarks: Ordered keyframe controls.

    Returns:
        Interpolated controls, or None when fewer than two landmarks.
    """
    n = len(landmarks)
    if n < 2:
        return None

    nearest = landmarks[nearest_landmark_index(t_norm, n)]
    discrete = {key: getattr(nearest, key) for key in DISCRETE_KEYS}

    if n == 2:
        c0, c1 = landmarks
        phase = t_norm * 2 if t_norm < 0.5 else 2 - t_norm * 2
        u = cosine_ease(warp_segment_t(phase, TIME_WARP_STRENGTH * 0.55))
        values = {key: lerp(c0.axis(key), c1.axis(key), u) for key in CONTROL_AXES}
        return Controls(**values, **discrete)

    seg = t_norm * n
    i1 = math.floor(seg) % n
    t = warp_segment_t(seg - math.floor(seg), TIME_WARP_STRENGTH)
    i0 = (i1 - 1 + n) % n
    i2 = (i1 + 1) % n
    i3 = (i1 + 2) % n
    c0, c1, c2, c3 = landmarks[i0], landmarks[i1], landmarks[i2], landmarks[i3]

    values = {
        key: clamp01(catmull_rom(c0.axis(key), c1.axis(key), c2.axis(key), c3.axis(key), t))
        for key in CONTROL_AXES
    }
    return Controls(**values, **discrete)

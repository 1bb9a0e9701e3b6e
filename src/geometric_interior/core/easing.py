"""
Easing curves for the animation timeline.

All curves map t in [0, 1] onto [0, 1] and are cubic.
"""

from geometric_interior.core.prng import clamp01
from geometric_interior.errors import InvalidParameter

EASINGS = ("linear", "ease-in", "ease-out", "ease-in-out")


def apply_easing(t: float, easing: str) -> float:
    """
    Apply a named easing to a normalised time.

    Args:
        t: Time value; clamped to [0, 1].
        easing: One of ``EASINGS``.

    Returns:
        Eased value in [0, 1].

    Raises:
        InvalidParameter: For an easing name outside the enumeration.
    """
    t = clamp01(t)
    if easing == "linear":
        return t
    if easing == "ease-in":
        return t * t * t
    if easing == "ease-out":
        return 1 - (1 - t) ** 3
    if easing == "ease-in-out":
        return 4 * t * t * t if t < 0.5 else 1 - (-2 * t + 2) ** 3 / 2
    raise InvalidParameter(f"easing: must be one of {', '.join(EASINGS)}, got {easing!r}")

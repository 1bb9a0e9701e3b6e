"""
Morph controller for transitioning between two visual states.

Numeric axes are cosine-eased, hue takes the shortest way round the
colour wheel, and the discrete fields (seed, topology) snap exactly at
the midpoint. The controller is host-driven: call ``tick(now_ms)`` once
per frame.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from geometric_interior.core.controls import CONTROL_AXES, Controls
from geometric_interior.core.interpolation import cosine_ease
from geometric_interior.core.prng import clamp01, lerp
from geometric_interior.core.seed_tags import Seed

MORPH_DURATION_MS = 1000.0

CIRCULAR_KEYS = ("hue",)


@dataclass(frozen=True)
class MorphState:
    seed: Seed
    controls: Controls


def circular_lerp(a: float, b: float, t: float, period: float = 360.0) -> float:
    """Shortest-path interpolation on a circular domain."""
    diff = b - a
    if diff > period / 2:
        diff -= period
    if diff < -period / 2:
        diff += period
    return ((a + diff * t) % period + period) % period


def interpolate_state(start: MorphState, end: MorphState, t_raw: float) -> MorphState:
    """
    Blend two states; cosine easing is applied internally.

    Args:
        start: State at ``t_raw = 0``.
        end: State at ``t_raw = 1``.
        t_raw: Linear morph time.

    Returns:
        Interpolated MorphState.
    """
    t = cosine_ease(clamp01(t_raw))
    a, b = start.controls, end.controls

    values = {}
    for key in CONTROL_AXES:
        if key in CIRCULAR_KEYS:
            values[key] = circular_lerp(a.axis(key), b.axis(key), t, period=1.0)
        else:
            values[key] = lerp(a.axis(key), b.axis(key), t)
    values["depth"] = lerp(a.depth, b.depth, t)

    snapped = end if t_raw >= 0.5 else start
    controls = Controls(**values, topology=snapped.controls.topology)
    return MorphState(seed=snapped.seed, controls=controls)


class MorphController:
    """
    Drives a morph between two states from host ticks.

    Callbacks:
        on_tick(state, t_eased): every tick while active.
        on_complete(): once, when the morph reaches its end. Never fired
            for a cancelled morph.
    """

    def __init__(
        self,
        on_tick: Optional[Callable[[MorphState, float], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ):
        self.on_tick = on_tick
        self.on_complete = on_complete
        self._active = False
        self._start_ms = 0.0
        self._duration_ms = MORPH_DURATION_MS
        self._from: Optional[MorphState] = None
        self._to: Optional[MorphState] = None
        self._last: Optional[MorphState] = None

    def start(
        self,
        start: MorphState,
        end: MorphState,
        now_ms: float = 0.0,
        duration_ms: float = MORPH_DURATION_MS,
    ) -> None:
        if self._active:
            self.cancel()
        self._from = start
        self._to = end
        self._start_ms = now_ms
        self._duration_ms = max(float(duration_ms), 1e-9)
        self._last = None
        self._active = True

    def tick(self, now_ms: float) -> Optional[MorphState]:
        if not self._active:
            return None

        t_raw = clamp01((now_ms - self._start_ms) / self._duration_ms)
        self._last = interpolate_state(self._from, self._to, t_raw)
        if self.on_tick:
            self.on_tick(self._last, cosine_ease(t_raw))

        if t_raw >= 1.0:
            self._active = False
            if self.on_complete:
                self.on_complete()
        return self._last

    def cancel(self) -> Optional[MorphState]:
        """Stop the morph; returns the last interpolated state, if any."""
        self._active = False
        return self._last

    def is_active(self) -> bool:
        return self._active

    def current_state(self) -> Optional[MorphState]:
        return self._last

"""
Fold (build-out / tear-down) state machine.

A single scalar ``fold_progress`` in [0, 1] drives the whole scene: each
vertex expands out of its ``foldOrigin`` once progress passes its
``foldDelay``. A scene swap runs

    idle -> folding-out -> rebuilding -> folding-in -> idle

with ``fold-out-complete`` and ``fold-in-complete`` fired at the phase
boundaries.
"""

from typing import Callable, Optional

import numpy as np

from geometric_interior.errors import TransitionCancelled

FOLD_IN_SPEED = 1.25  # 0 -> 1 in ~800 ms
FOLD_OUT_SPEED = 1.67  # 1 -> 0 in ~600 ms
SNAP_EPSILON = 0.001

IDLE = "idle"
FOLDING_OUT = "folding-out"
REBUILDING = "rebuilding"
FOLDING_IN = "folding-in"

FOLD_EVENTS = ("fold-out-complete", "fold-in-complete")


def fold_factor(fold_progress, fold_delay):
    """
    Per-vertex expansion amount for a given global progress.

    Works on scalars or numpy arrays of delays. Vertices with a later delay
    start later but all reach 1 together at ``fold_progress = 1``.
    """
    delay_start = np.asarray(fold_delay, dtype=np.float64) * 0.7
    local = (fold_progress - delay_start) / np.maximum(1.0 - delay_start, 0.001)
    local = np.clip(local, 0.0, 1.0)
    return local * local * (3.0 - 2.0 * local)


def apply_fold(positions: np.ndarray, origins: np.ndarray, delays: np.ndarray, fold_progress: float) -> np.ndarray:
    """Displace ``positions`` toward their fold origins; returns a new array."""
    f = fold_factor(fold_progress, delays)[:, None]
    return origins + (positions - origins) * f


class FoldController:
    """
    Host-ticked fold state machine.

    Args:
        progress: Initial fold progress (1 = fully built).
    """

    def __init__(self, progress: float = 1.0):
        self.progress = float(progress)
        self.target = float(progress)
        self.state = IDLE
        self._handlers: dict[str, list[Callable[[], None]]] = {name: [] for name in FOLD_EVENTS}
        self._rebuild: Optional[Callable[[], None]] = None
        self._cancelled = False

    def on(self, event: str, handler: Callable[[], None]) -> None:
        if event not in self._handlers:
            raise ValueError(f"unknown fold event {event!r}; expected one of {FOLD_EVENTS}")
        self._handlers[event].append(handler)

    def _emit(self, event: str) -> None:
        for handler in list(self._handlers[event]):
            handler()

    # Low-level targets

    def fold_in(self) -> None:
        self.target = 1.0

    def fold_out(self) -> None:
        self.target = 0.0

    def set_immediate(self, value: float) -> None:
        self.progress = self.target = max(0.0, min(1.0, float(value)))

    def is_complete(self) -> bool:
        return self.progress == self.target

    # Scene swap

    def begin(self, rebuild: Optional[Callable[[], None]] = None) -> None:
        """
        Start a fold-out / rebuild / fold-in cycle.

        Args:
            rebuild: Called synchronously once folding-out finishes. When
                omitted the controller waits in ``rebuilding`` until the
                host calls ``finish_rebuild``.
        """
        if self.state != IDLE:
            self.cancel()
        self._rebuild = rebuild
        self._cancelled = False
        self.state = FOLDING_OUT
        self.fold_out()

    def finish_rebuild(self) -> None:
        """
        Hand the rebuilt scene back and start folding in.

        Raises:
            TransitionCancelled: If the cycle was cancelled before the
                rebuild finished.
        """
        if self.state != REBUILDING:
            if self._cancelled:
                raise TransitionCancelled("fold cycle was cancelled")
            return
        self.state = FOLDING_IN
        self.fold_in()

    def cancel(self) -> None:
        """Snap to progress 0 and idle. Idempotent; fires nothing."""
        if self.state != IDLE:
            self._cancelled = True
        self.progress = self.target = 0.0
        self.state = IDLE
        self._rebuild = None

    def tick(self, dt: float) -> float:
        """
        Advance by ``dt`` seconds.

        Returns:
            Current fold progress.
        """
        if dt > 0 and self.progress != self.target:
            rising = self.target > self.progress
            speed = FOLD_IN_SPEED if rising else FOLD_OUT_SPEED
            step = speed * dt if rising else -speed * dt
            self.progress = max(0.0, min(1.0, self.progress + step))
            if abs(self.progress - self.target) < SNAP_EPSILON:
                self.progress = self.target

        if self.state == FOLDING_OUT and self.progress == 0.0:
            self.state = REBUILDING
            self._emit("fold-out-complete")
            if self._rebuild is not None and self.state == REBUILDING:
                rebuild, self._rebuild = self._rebuild, None
                rebuild()
                if self.state == REBUILDING:
                    self.finish_rebuild()
        elif self.state == FOLDING_IN and self.progress == 1.0:
            self.state = IDLE
            self._emit("fold-in-complete")

        return self.progress

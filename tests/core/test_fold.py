"""Tests for fold progress and the scene-swap state machine."""

import numpy as np
import pytest

from geometric_interior.core.fold import (
    FOLDING_IN,
    FOLDING_OUT,
    IDLE,
    REBUILDING,
    FoldController,
    apply_fold,
    fold_factor,
)
from geometric_interior.errors import TransitionCancelled


class TestFoldFactor:
    def test_endpoints(self):
        delays = np.array([0.0, 0.5, 1.0])
        assert np.allclose(fold_factor(0.0, delays), 0.0)
        assert np.allclose(fold_factor(1.0, delays), 1.0)

    def test_later_delay_starts_later(self):
        early, late = fold_factor(0.5, np.array([0.0, 1.0]))
        assert early > late

    def test_monotonic(self):
        values = [float(fold_factor(p, 0.3)) for p in np.linspace(0, 1, 21)]
        assert all(b >= a for a, b in zip(values, values[1:]))

    def test_apply_fold(self):
        pos = np.array([[1.0, 0.0, 0.0]])
        origin = np.zeros((1, 3))
        assert np.allclose(apply_fold(pos, origin, np.zeros(1), 0.0), origin)
        assert np.allclose(apply_fold(pos, origin, np.zeros(1), 1.0), pos)


def _run(ctl: FoldController, seconds: float, dt: float = 1 / 60):
    for _ in range(int(seconds / dt)):
        ctl.tick(dt)


class TestFoldController:
    def test_fold_in_takes_about_800ms(self):
        ctl = FoldController(progress=0.0)
        ctl.fold_in()
        _run(ctl, 0.7)
        assert ctl.progress < 1.0
        _run(ctl, 0.2)
        assert ctl.progress == 1.0

    def test_swap_cycle_with_rebuild(self):
        events = []
        ctl = FoldController()
        ctl.on("fold-out-complete", lambda: events.append("out"))
        ctl.on("fold-in-complete", lambda: events.append("in"))

        ctl.begin(rebuild=lambda: events.append("rebuild"))
        assert ctl.state == FOLDING_OUT
        _run(ctl, 1.0)
        assert ctl.state == FOLDING_IN
        assert events == ["out", "rebuild"]
        _run(ctl, 1.0)
        assert ctl.state == IDLE
        assert events == ["out", "rebuild", "in"]
        assert ctl.progress == 1.0

    def test_waits_for_host_rebuild(self):
        ctl = FoldController()
        ctl.begin()
        _run(ctl, 1.0)
        assert ctl.state == REBUILDING
        assert ctl.progress == 0.0
        ctl.finish_rebuild()
        assert ctl.state == FOLDING_IN

    def test_cancel_is_idempotent_and_silent(self):
        events = []
        ctl = FoldController()
        ctl.on("fold-out-complete", lambda: events.append("out"))
        ctl.begin()
        ctl.tick(0.1)
        ctl.cancel()
        ctl.cancel()
        assert ctl.state == IDLE
        assert ctl.progress == 0.0
        _run(ctl, 0.5)
        assert events == []

    def test_late_rebuild_after_cancel(self):
        ctl = FoldController()
        ctl.begin()
        _run(ctl, 1.0)
        ctl.cancel()
        with pytest.raises(TransitionCancelled):
            ctl.finish_rebuild()
        # A fresh cycle clears the cancellation.
        ctl.begin()
        ctl.finish_rebuild()
        assert ctl.state == FOLDING_OUT

    def test_set_immediate_clamps(self):
        ctl = FoldController()
        ctl.set_immediate(3.0)
        assert ctl.progress == 1.0
        assert ctl.is_complete()

    def test_unknown_event(self):
        with pytest.raises(ValueError):
            FoldController().on("fold-sideways", lambda: None)

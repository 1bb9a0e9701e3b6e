"""Tests for the state morph controller."""

import pytest

from geometric_interior.core.controls import Controls
from geometric_interior.core.morph import (
    MORPH_DURATION_MS,
    MorphController,
    MorphState,
    circular_lerp,
    interpolate_state,
)


@pytest.fixture
def states():
    a = MorphState(seed="from", controls=Controls(density=0.0, hue=0.9))
    b = MorphState(seed="to", controls=Controls(density=1.0, hue=0.1))
    return a, b


class TestCircularLerp:
    def test_takes_short_way_round(self):
        assert circular_lerp(350, 10, 0.5) == pytest.approx(0.0)

    def test_plain_interval(self):
        assert circular_lerp(10, 50, 0.5) == pytest.approx(30.0)

    def test_unit_period(self):
        v = circular_lerp(0.9, 0.1, 0.5, period=1.0)
        assert min(v, 1.0 - v) == pytest.approx(0.0, abs=1e-9)


class TestInterpolateState:
    def test_endpoints(self, states):
        a, b = states
        assert interpolate_state(a, b, 0.0).controls.density == pytest.approx(0.0)
        assert interpolate_state(a, b, 1.0).controls.density == pytest.approx(1.0)

    def test_cosine_eased(self, states):
        a, b = states
        assert interpolate_state(a, b, 0.25).controls.density == pytest.approx(0.5 - 0.5 * 0.7071067811865476)

    def test_hue_wraps(self, states):
        a, b = states
        hue = interpolate_state(a, b, 0.5).controls.hue
        assert min(hue, 1.0 - hue) == pytest.approx(0.0, abs=1e-9)

    def test_seed_snaps_at_midpoint(self, states):
        a, b = states
        assert interpolate_state(a, b, 0.49).seed == "from"
        assert interpolate_state(a, b, 0.5).seed == "to"


class TestMorphController:
    def test_runs_to_completion_once(self, states):
        done = []
        ctl = MorphController(on_complete=lambda: done.append(True))
        ctl.start(*states, now_ms=0.0)
        assert ctl.is_active()
        ctl.tick(500.0)
        assert not done
        final = ctl.tick(MORPH_DURATION_MS)
        assert final.seed == "to"
        assert done == [True]
        assert not ctl.is_active()
        assert ctl.tick(2000.0) is None
        assert done == [True]

    def test_on_tick_receives_eased_t(self, states):
        seen = []
        ctl = MorphController(on_tick=lambda state, t: seen.append(t))
        ctl.start(*states, now_ms=100.0)
        ctl.tick(600.0)
        assert seen == [pytest.approx(0.5)]

    def test_cancel_keeps_last_state_and_skips_completion(self, states):
        done = []
        ctl = MorphController(on_complete=lambda: done.append(True))
        ctl.start(*states)
        mid = ctl.tick(300.0)
        assert ctl.cancel() is mid
        assert ctl.tick(5000.0) is None
        assert not done

    def test_restart_replaces_running_morph(self, states):
        a, b = states
        ctl = MorphController()
        ctl.start(a, b)
        ctl.tick(400.0)
        ctl.start(b, a, now_ms=400.0)
        assert ctl.current_state() is None
        assert ctl.tick(400.0).seed == "to"

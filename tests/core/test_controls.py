"""Tests for the control vector."""

import math

import pytest

from geometric_interior.core.controls import CONTROL_AXES, DEFAULTS, Controls, sanitize_axis


class TestSanitizeAxis:
    @pytest.mark.parametrize("raw", [None, "abc", math.nan, math.inf, -math.inf, True, [1]])
    def test_bad_values_fall_back(self, raw):
        assert sanitize_axis(raw, 0.42) == 0.42

    def test_clamps(self):
        assert sanitize_axis(-0.5, 0.5) == 0.0
        assert sanitize_axis(1.5, 0.5) == 1.0

    def test_numeric_strings_accepted(self):
        assert sanitize_axis("0.25", 0.5) == 0.25


class TestControls:
    def test_defaults(self):
        c = Controls()
        for axis in CONTROL_AXES:
            assert c.axis(axis) == DEFAULTS[axis]
        assert c.topology == "flow-field"

    def test_from_mapping_ignores_unknown_keys(self):
        c = Controls.from_mapping({"density": 0.9, "bogus": 3})
        assert c.density == 0.9

    def test_from_mapping_none(self):
        assert Controls.from_mapping(None) == Controls()

    def test_sanitised_on_construction(self):
        c = Controls(density=7, luminosity=math.nan)
        assert c.density == 1.0
        assert c.luminosity == DEFAULTS["luminosity"]

    def test_unknown_topology_falls_back(self):
        assert Controls(topology="spiral").topology == "flow-field"

    def test_hashable_and_frozen(self):
        c = Controls()
        assert hash(c) == hash(Controls())
        with pytest.raises(Exception):
            c.density = 0.1

    def test_with_values(self):
        c = Controls().with_values(hue=0.1)
        assert c.hue == 0.1
        assert c.density == DEFAULTS["density"]

    def test_to_dict_round_trip(self):
        c = Controls(density=0.2, flow=0.9)
        assert Controls.from_mapping(c.to_dict()) == c

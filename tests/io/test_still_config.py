"""Tests for still config validation and conversion."""

import json

import pytest

from geometric_interior.core.controls import Controls
from geometric_interior.io.still_config import (
    config_to_state,
    parse_still_config_text,
    state_to_config,
    validate_still_config,
)
from geometric_interior.io.url_state import ShareState


@pytest.fixture
def v2_config():
    return {
        "kind": "still-v2",
        "name": "Glass Orchard",
        "intent": "light through folded glass",
        "color": {"hue": 0.6, "spectrum": 0.3, "chroma": 0.5},
        "structure": {
            "density": 0.4, "luminosity": 0.6, "fracture": 0.2, "coherence": 0.8,
            "scale": 0.5, "division": 0.3, "faceting": 0.7, "flow": 0.1,
        },
    }


@pytest.fixture
def legacy_config():
    return {
        "kind": "still",
        "name": "Old Piece",
        "intent": "first release",
        "palette": {"hue": 185, "range": 25, "saturation": 0.6},
        "structure": {"density": 0.5, "luminosity": 0.4, "fracture": 0.3, "depth": 0.9, "coherence": 0.6},
    }


class TestValidate:
    def test_valid_v2(self, v2_config):
        assert validate_still_config(v2_config) == (True, [])

    def test_valid_legacy(self, legacy_config):
        assert validate_still_config(legacy_config) == (True, [])

    def test_not_an_object(self):
        assert validate_still_config([1, 2]) == (False, ["Expected a JSON object"])

    def test_missing_kind(self, v2_config):
        del v2_config["kind"]
        ok, errors = validate_still_config(v2_config)
        assert not ok
        assert errors == ['kind: must be "still" or "still-v2" (missing)']

    def test_wrong_kind(self, v2_config):
        v2_config["kind"] = "movie"
        _, errors = validate_still_config(v2_config)
        assert errors[0].endswith('got "movie"')

    def test_collects_every_error(self, v2_config):
        v2_config["name"] = "x" * 41
        v2_config["intent"] = "  "
        v2_config["structure"]["density"] = 1.5
        v2_config["color"]["hue"] = "red"
        _, errors = validate_still_config(v2_config)
        assert "name: must be at most 40 characters" in errors
        assert "intent: required, must be a non-empty string" in errors
        assert "structure.density: must be between 0 and 1" in errors
        assert "color.hue: required, must be a number" in errors

    def test_missing_block(self, legacy_config):
        del legacy_config["palette"]
        _, errors = validate_still_config(legacy_config)
        assert errors == ["palette: required, must be an object"]

    def test_bool_is_not_a_number(self, v2_config):
        v2_config["structure"]["flow"] = True
        ok, _ = validate_still_config(v2_config)
        assert not ok


class TestParseText:
    def test_bad_json(self):
        config, errors = parse_still_config_text("{not json")
        assert config is None
        assert errors[0].startswith("Invalid JSON")

    def test_good_json(self, v2_config):
        config, errors = parse_still_config_text(json.dumps(v2_config))
        assert config == v2_config
        assert errors == []


class TestConversion:
    def test_v2_to_state(self, v2_config):
        state = config_to_state(v2_config)
        assert state.seed == "light through folded glass"
        assert state.name == "Glass Orchard"
        assert state.controls.hue == 0.6
        assert state.controls.faceting == 0.7

    def test_legacy_to_state(self, legacy_config):
        state = config_to_state(legacy_config)
        assert state.controls.hue == pytest.approx(185 / 360)
        assert state.controls.depth == 0.9
        assert state.controls.scale == 0.5

    def test_state_to_config_validates(self):
        state = ShareState(seed=(3, 4, 5), controls=Controls(density=0.2), name="Tagged")
        config = state_to_config(state)
        assert config["intent"] == "3.4.5"
        assert validate_still_config(config) == (True, [])
        assert config_to_state(config).controls == state.controls

"""
Portable still-image configs.

The current shape is ``kind: "still-v2"`` with a ``color`` block and
the eight structure axes. First-release ``kind: "still"`` files (a
``palette`` block in degrees plus a ``depth`` axis) are still accepted
on import and converted.
"""

import json
import math
from typing import Any, Union

from geometric_interior.core.controls import COLOR_AXES, STRUCTURE_AXES, Controls
from geometric_interior.core.palettes import legacy_palette_to_color
from geometric_interior.core.seed_tags import seed_to_string
from geometric_interior.io.url_state import ShareState

KIND_V2 = "still-v2"
KIND_LEGACY = "still"
KINDS = (KIND_V2, KIND_LEGACY)

NAME_MAX = 40
INTENT_MAX = 120

LEGACY_STRUCTURE_AXES = ("density", "luminosity", "fracture", "depth", "coherence")
LEGACY_PALETTE_RANGES = (("hue", 0, 359), ("range", 0, 360), ("saturation", 0, 1))


def _is_obj(v: Any) -> bool:
    return isinstance(v, dict)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and not math.isnan(v)


def _check_str(errors: list[str], key: str, obj: dict, max_len: int) -> None:
    v = obj.get(key)
    if not isinstance(v, str) or not v.strip():
        errors.append(f"{key}: required, must be a non-empty string")
    elif len(v) > max_len:
        errors.append(f"{key}: must be at most {max_len} characters")


def _check_num(errors: list[str], path: str, obj: dict, key: str, lo: float, hi: float) -> None:
    v = obj.get(key)
    if not _is_number(v):
        errors.append(f"{path}.{key}: required, must be a number")
    elif v < lo or v > hi:
        errors.append(f"{path}.{key}: must be between {lo} and {hi}")


def _check_block(errors: list[str], data: dict, path: str, ranges) -> None:
    block = data.get(path)
    if not _is_obj(block):
        errors.append(f"{path}: required, must be an object")
        return
    for key, lo, hi in ranges:
        _check_num(errors, path, block, key, lo, hi)


def validate_still_config(data: Any) -> tuple[bool, list[str]]:
    """
    Validate a still config.

    Returns:
        ``(ok, errors)``; each error is a human-readable ``path: reason``.
    """
    if not _is_obj(data):
        return False, ["Expected a JSON object"]

    errors: list[str] = []
    kind = data.get("kind")
    if kind not in KINDS:
        got = f', got "{kind}"' if kind is not None else " (missing)"
        errors.append(f'kind: must be "{KIND_LEGACY}" or "{KIND_V2}"{got}')

    _check_str(errors, "name", data, NAME_MAX)
    _check_str(errors, "intent", data, INTENT_MAX)

    if kind == KIND_LEGACY:
        _check_block(errors, data, "palette", LEGACY_PALETTE_RANGES)
        _check_block(errors, data, "structure", [(k, 0, 1) for k in LEGACY_STRUCTURE_AXES])
    else:
        _check_block(errors, data, "color", [(k, 0, 1) for k in COLOR_AXES])
        _check_block(errors, data, "structure", [(k, 0, 1) for k in STRUCTURE_AXES])

    return not errors, errors


def parse_still_config_text(text: str) -> tuple[Union[dict, None], list[str]]:
    """Decode JSON text and validate it; the config is None when invalid."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        return None, [f"Invalid JSON: {e.msg}"]
    ok, errors = validate_still_config(data)
    return (data if ok else None), errors


def config_to_state(config: dict) -> ShareState:
    """
    Convert a validated config (either kind) into share state.

    The config's ``intent`` is the seed.
    """
    structure = config["structure"]
    if config.get("kind") == KIND_LEGACY:
        p = config["palette"]
        values = legacy_palette_to_color(p["hue"], p["range"], p["saturation"])
        values.update({k: structure[k] for k in LEGACY_STRUCTURE_AXES})
    else:
        values = {k: config["color"][k] for k in COLOR_AXES}
        values.update({k: structure[k] for k in STRUCTURE_AXES})
    return ShareState(
        seed=config["intent"],
        controls=Controls.from_mapping(values),
        name=config["name"],
    )


def state_to_config(state: ShareState) -> dict:
    """Export share state as a ``still-v2`` config."""
    c = state.controls
    return {
        "kind": KIND_V2,
        "name": state.name,
        "intent": seed_to_string(state.seed),
        "color": {k: c.axis(k) for k in COLOR_AXES},
        "structure": {k: c.axis(k) for k in STRUCTURE_AXES},
    }

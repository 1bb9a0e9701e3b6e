"""
Share-link encoding.

A link carries the seed, the optional name and all eleven control axes
as compact query parameters, so the same link reproduces the same
image. Links from the first release (palette name plus hue/range/
saturation tweaks) are detected by their ``p`` parameter and migrated.
"""

import math
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from geometric_interior.core.controls import DEFAULTS, Controls
from geometric_interior.core.palettes import PRESETS, legacy_palette_to_color
from geometric_interior.core.seed_tags import Seed, coerce_seed, is_seed_tag
from geometric_interior.errors import InvalidSeed

PARAM_SEED = "s"
PARAM_NAME = "n"

# (control axis, query key, decimals)
PARAM_AXES = (
    ("density", "d", 2),
    ("luminosity", "l", 2),
    ("fracture", "f", 2),
    ("coherence", "c", 2),
    ("hue", "h", 3),
    ("spectrum", "sp", 3),
    ("chroma", "ch", 3),
    ("scale", "sc", 2),
    ("division", "dv", 2),
    ("faceting", "ft", 2),
    ("flow", "fl", 2),
)

LEGACY_PALETTE = "p"
LEGACY_HUE = "h"
LEGACY_HUE_RANGE = "r"
LEGACY_SATURATION = "a"
LEGACY_DEFAULT_PALETTE = "violet-depth"

# Longest leading decimal, as browsers read numeric query values.
LEADING_FLOAT = re.compile(r"[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


@dataclass(frozen=True)
class ShareState:
    seed: Seed
    controls: Controls = field(default_factory=Controls)
    name: str = ""


def format_fixed(value: float, digits: int) -> str:
    """Fixed-point formatting that rounds exact ties away from zero."""
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(float(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def parse_leading_float(raw: str) -> float:
    """
    Read the numeric prefix of ``raw``, ignoring trailing junk.

    ``"0.5abc"`` reads as 0.5 and ``"Infinity"`` as inf; NaN when there
    is no leading number (``float`` would also take "nan", "inf" and
    underscores, which share links never carry).
    """
    m = LEADING_FLOAT.match(raw.lstrip())
    if m is None:
        return math.nan
    return float(m.group(0).replace("Infinity", "inf"))


def clamp_float(raw: Optional[str], lo: float, hi: float, fallback: float) -> float:
    if raw is None:
        return fallback
    v = parse_leading_float(raw)
    if math.isnan(v):
        return fallback
    return min(hi, max(lo, v))


def seed_to_param(seed: Seed) -> str:
    if is_seed_tag(seed):
        return ",".join(str(int(v)) for v in seed)
    return str(seed)


def seed_from_param(raw: str) -> Seed:
    """``"a,b,c"`` triples become tags; anything else stays a string."""
    if raw.count(",") == 2:
        try:
            return coerce_seed(raw)
        except InvalidSeed:
            pass
    return raw


def encode_state_to_url(origin: str, state: ShareState) -> str:
    """
    Build a share URL.

    Args:
        origin: Base URL, e.g. ``https://example.org``; its path is kept.
        state: Seed, controls and optional name.

    Returns:
        Full URL with the share parameters as its query string.
    """
    parts = urlsplit(origin)
    params = []
    if state.name:
        params.append((PARAM_NAME, state.name))
    params.append((PARAM_SEED, seed_to_param(state.seed)))
    for axis, key, digits in PARAM_AXES:
        params.append((key, format_fixed(state.controls.axis(axis), digits)))
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", urlencode(params), ""))


def _first(query: dict, key: str) -> Optional[str]:
    values = query.get(key)
    return values[0] if values else None


def _decode_legacy(query: dict) -> dict[str, float]:
    preset = PRESETS.get(_first(query, LEGACY_PALETTE) or LEGACY_DEFAULT_PALETTE, {})
    color = {
        "hue": preset.get("hue", DEFAULTS["hue"]),
        "spectrum": preset.get("spectrum", DEFAULTS["spectrum"]),
        "chroma": preset.get("chroma", DEFAULTS["chroma"]),
    }
    if LEGACY_HUE in query and LEGACY_HUE_RANGE in query:
        color = legacy_palette_to_color(
            clamp_float(_first(query, LEGACY_HUE), 0, 360, 282),
            clamp_float(_first(query, LEGACY_HUE_RANGE), 5, 360, 30),
            clamp_float(_first(query, LEGACY_SATURATION), 0.05, 1, 0.55),
        )
    # First-release links predate the scale/division/faceting/flow axes.
    return dict(color, scale=0.5, division=0.5, faceting=0.5, flow=0.5)


def decode_state_from_url(href: str) -> Optional[ShareState]:
    """
    Parse a share URL.

    Returns:
        ShareState, or None when the URL carries no seed parameter.
    """
    query = parse_qs(urlsplit(href).query, keep_blank_values=True)
    if PARAM_SEED not in query:
        return None

    values = {
        axis: clamp_float(_first(query, key), 0, 1, DEFAULTS[axis])
        for axis, key, _ in PARAM_AXES
    }
    if LEGACY_PALETTE in query:
        values.update(_decode_legacy(query))

    return ShareState(
        seed=seed_from_param(_first(query, PARAM_SEED)),
        controls=Controls.from_mapping(values),
        name=_first(query, PARAM_NAME) or "",
    )


def canonical_share_params(state: ShareState) -> str:
    """Query string with a fixed key order; equal states give equal strings."""
    return urlsplit(encode_state_to_url("https://localhost/", state)).query

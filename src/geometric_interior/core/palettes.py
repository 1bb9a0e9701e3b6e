"""
Palette presets and colour utilities.

Legacy palettes were a ``(baseHue, hueRange, saturation)`` triple; the
continuous ``(hue, spectrum, chroma)`` axes are a closed-form, invertible
remapping of that triple so old share links keep their colour.
"""

import colorsys
import math
from typing import Tuple

RGB = Tuple[float, float, float]

# Legacy palette definitions, the source of PRESETS.
LEGACY_PALETTES: dict[str, dict] = {
    "violet-depth": {"label": "Violet Depth", "base_hue": 282, "hue_range": 30, "saturation": 0.55},
    "warm-spectrum": {"label": "Warm Spectrum", "base_hue": 22, "hue_range": 27, "saturation": 0.97},
    "teal-volumetric": {"label": "Teal Volumetric", "base_hue": 185, "hue_range": 25, "saturation": 0.6},
    "prismatic": {"label": "Prismatic", "base_hue": 0, "hue_range": 360, "saturation": 1.0},
    "crystal-lattice": {"label": "Crystal Lattice", "base_hue": 211, "hue_range": 10, "saturation": 0.05},
    "sapphire": {"label": "Sapphire", "base_hue": 225, "hue_range": 30, "saturation": 0.9},
    "amethyst": {"label": "Amethyst", "base_hue": 312, "hue_range": 35, "saturation": 0.55},
}


def legacy_palette_to_color(base_hue: float, hue_range: float, saturation: float) -> dict[str, float]:
    """
    Map a legacy palette triple onto the continuous colour axes.

    Args:
        base_hue: Degrees, 0-360.
        hue_range: Degrees of hue spread.
        saturation: 0.05-1.

    Returns:
        Dict with ``hue``, ``spectrum`` and ``chroma`` in [0, 1].
    """
    hue = base_hue / 360.0
    spectrum = math.sqrt(max(0.0, (hue_range - 10) / 350.0))
    if saturation <= 0.65:
        chroma = (saturation - 0.05) / (2 * 0.60)
    else:
        chroma = 0.5 + (saturation - 0.65) / (2 * 0.35)
    return {
        "hue": max(0.0, min(1.0, hue)),
        "spectrum": max(0.0, min(1.0, spectrum)),
        "chroma": max(0.0, min(1.0, chroma)),
    }


def color_to_legacy_palette(hue: float, spectrum: float, chroma: float) -> dict[str, float]:
    """Inverse of ``legacy_palette_to_color`` (used when exporting legacy configs)."""
    if chroma <= 0.5:
        saturation = 0.05 + chroma * 2 * 0.60
    else:
        saturation = 0.65 + (chroma - 0.5) * 2 * 0.35
    return {
        "hue": hue * 360.0,
        "range": 10 + 350 * spectrum * spectrum,
        "saturation": saturation,
    }


PRESETS: dict[str, dict[str, float]] = {
    "violet-depth": legacy_palette_to_color(282, 30, 0.55),
    "warm-spectrum": legacy_palette_to_color(22, 27, 0.97),
    "teal-volumetric": legacy_palette_to_color(185, 25, 0.60),
    "sapphire": legacy_palette_to_color(225, 30, 0.90),
    "amethyst": legacy_palette_to_color(312, 35, 0.55),
    "crystal-lattice": {"hue": 211 / 360, "spectrum": 0.0, "chroma": 0.0},
    "prismatic": {"hue": 0.0, "spectrum": 1.0, "chroma": 1.0},
}


def hsl_to_rgb01(h: float, s: float, l: float) -> RGB:
    """Convert HSL (h in degrees, s/l in 0-1) to RGB in 0-1."""
    h = ((h % 360) + 360) % 360
    c = (1 - abs(2 * l - 1)) * s
    x = c * (1 - abs(((h / 60) % 2) - 1))
    m = l - c / 2
    if h < 60:
        r, g, b = c, x, 0.0
    elif h < 120:
        r, g, b = x, c, 0.0
    elif h < 180:
        r, g, b = 0.0, c, x
    elif h < 240:
        r, g, b = 0.0, x, c
    elif h < 300:
        r, g, b = x, 0.0, c
    else:
        r, g, b = c, 0.0, x
    return (r + m, g + m, b + m)


def hsl(h: float, s: float, l: float) -> RGB:
    """HSL with hue as a wrapping fraction of a turn; s and l are clamped."""
    s = max(0.0, min(1.0, s))
    l = max(0.0, min(1.0, l))
    return colorsys.hls_to_rgb(h % 1.0, l, s)


def offset_hsl(rgb: RGB, dh: float, ds: float, dl: float) -> RGB:
    """Shift a colour in HSL space."""
    h, l, s = colorsys.rgb_to_hls(*rgb)
    return hsl(h + dh, s + ds, l + dl)


def clamp_rgb(rgb: RGB) -> RGB:
    return tuple(max(0.0, min(1.0, c)) for c in rgb)

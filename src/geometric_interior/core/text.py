"""
Title and alt-text generation from controls.

Titles sample descriptor word lists keyed off control thresholds; the
caller supplies an RNG seeded from ``seed + ":title"`` so a fixed seed
and controls always produce the same title.
"""

from typing import Sequence

from geometric_interior.core.controls import Controls
from geometric_interior.core.prng import Rng

TOPOLOGY_WORDS = {
    "flow-field": ["Drifting", "Curling", "Streaming", "Field"],
}

HUE_WORD_MAP = [
    (30, ["Ruby", "Crimson", "Carmine", "Scarlet"]),
    (60, ["Amber", "Golden", "Saffron", "Topaz"]),
    (90, ["Chartreuse", "Citrine", "Peridot", "Lime"]),
    (150, ["Emerald", "Jade", "Viridian", "Malachite"]),
    (210, ["Cerulean", "Teal", "Aquamarine", "Marine"]),
    (270, ["Cobalt", "Indigo", "Lapis", "Sapphire"]),
    (330, ["Amethyst", "Plum", "Orchid", "Mauve"]),
    (361, ["Ruby", "Crimson", "Carmine", "Scarlet"]),
]

HUE_NAMES = [
    (30, "red"),
    (60, "amber"),
    (90, "yellow-green"),
    (150, "green"),
    (210, "cyan"),
    (270, "blue"),
    (330, "violet"),
    (361, "red"),
]

DENSITY_WORDS = {
    "high": ["Dense", "Layered", "Complex", "Saturated"],
    "mid": ["Balanced", "Structured", "Composed", "Measured"],
    "low": ["Sparse", "Minimal", "Distilled", "Essential"],
}

FRACTURE_WORDS = {
    "high": ["Shattered", "Splintered", "Fractured", "Riven"],
    "mid": ["Faceted", "Angular", "Creased", "Cut"],
    "low": ["Smooth", "Whole", "Unbroken", "Serene"],
}

LUMINOSITY_WORDS = {
    "high": ["Luminous", "Radiant", "Incandescent", "Blazing"],
    "mid": ["Glowing", "Steady", "Warm", "Tempered"],
    "low": ["Dark", "Subdued", "Dim", "Shadowed"],
}


def _pick(words: Sequence[str], rng: Rng) -> str:
    return words[int(rng() * len(words))]


def _tier(value: float) -> str:
    if value > 0.66:
        return "high"
    if value > 0.33:
        return "mid"
    return "low"


def _hue_degrees(controls: Controls) -> float:
    return (controls.hue * 360) % 360


def hue_words(controls: Controls) -> list[str]:
    hue = _hue_degrees(controls)
    for upper, words in HUE_WORD_MAP:
        if hue < upper:
            return words
    return HUE_WORD_MAP[0][1]


def hue_name(controls: Controls) -> str:
    hue = _hue_degrees(controls)
    for upper, name in HUE_NAMES:
        if hue < upper:
            return name
    return HUE_NAMES[0][1]


def generate_title(controls: Controls, rng: Rng) -> str:
    """
    Short human-readable name for a portrait.

    Args:
        controls: Scene controls.
        rng: Title stream; consumed in a fixed order.

    Returns:
        Three-word title such as ``"Streaming Cobalt Fractured"``.
    """
    c = controls
    topo = TOPOLOGY_WORDS.get(c.topology, TOPOLOGY_WORDS["flow-field"])
    pal = hue_words(c)
    lum = LUMINOSITY_WORDS[_tier(c.luminosity)]
    frac = FRACTURE_WORDS[_tier(c.fracture)]
    den = DENSITY_WORDS[_tier(c.density)]

    templates = [
        lambda: f"{_pick(topo, rng)} {_pick(pal, rng)} {_pick(frac, rng)}",
        lambda: f"{_pick(lum, rng)} {_pick(topo, rng)} Interior",
        lambda: f"{_pick(pal, rng)} {_pick(den, rng)} Field",
        lambda: f"{_pick(frac, rng)} {_pick(topo, rng)} Geometry",
        lambda: f"{_pick(lum, rng)} {_pick(pal, rng)} Manifold",
        lambda: f"{_pick(topo, rng)} {_pick(den, rng)} Plane",
        lambda: f"{_pick(pal, rng)} {_pick(lum, rng)} Structure",
        lambda: f"{_pick(frac, rng)} {_pick(pal, rng)} Lattice",
    ]
    return templates[int(rng() * len(templates))]()


def _three_way(value: float, high: str, mid: str, low: str) -> str:
    if value > 0.66:
        return high
    if value > 0.33:
        return mid
    return low


def generate_alt_text(controls: Controls, node_count: int, title: str) -> str:
    """
    Screen-reader description of a portrait.

    Mentions the dark field, the node count as ``energy nodes`` and the
    title. Fixed for fixed controls and ``node_count``.
    """
    c = controls
    density_phrase = _three_way(
        c.density,
        "densely layered translucent planes",
        "a balanced arrangement of crystalline planes",
        "sparse, carefully placed geometric shards",
    )
    scale_phrase = _three_way(
        c.scale,
        "a swarm of fine detail, planes dissolving into grain",
        "forms held at a measured middle scale",
        "a few monumental planes dominating the frame",
    )
    luminosity_phrase = _three_way(
        c.luminosity,
        "bright emissive glow radiating from within each form",
        "a steady, tempered luminescence",
        "subdued lighting, forms barely emerging from darkness",
    )
    fracture_phrase = _three_way(
        c.fracture,
        "heavily fractured edges and splintered micro-shards",
        "moderately textured edges with occasional fragmentation",
        "clean, smooth edges maintaining geometric purity",
    )
    coherence_phrase = _three_way(
        c.coherence,
        "tightly following the governing flow",
        "loosely organized around structural currents",
        "scattered freely with minimal structural constraint",
    )

    return "\n".join([
        f"“{title}”: a dark field carries {density_phrase}, organized around "
        f"a curl noise flow field in {hue_name(c)} tones.",
        f"The composition shows {scale_phrase}, with {luminosity_phrase}.",
        f"Planes exhibit {fracture_phrase}, {coherence_phrase}.",
        f"{node_count} energy nodes anchor the structure, creating focal points of concentrated light.",
        "Translucent polygonal forms overlap with additive blending, "
        "Fresnel-brightened edges catching the light at oblique angles.",
    ])


# Animation alt-text

ANIM_KEYS = ("density", "luminosity", "fracture", "coherence", "scale")

DYNAMIC_PHRASES = {
    "density": "plane density shifts, the field filling and emptying",
    "luminosity": "light swells and dims, energy arriving and receding",
    "fracture": "edges sharpen and smooth, fragmentation breathing",
    "coherence": "structure tightens and loosens, order questioning itself",
    "scale": "forms swell and shrink, the portrait breathing in size",
}

STABLE_PHRASES = {
    "density": "structural density holds steady",
    "luminosity": "luminosity persists unchanged",
    "fracture": "edge complexity stays constant",
    "coherence": "topological coherence is maintained",
    "scale": "the scale of forms remains fixed",
}

TRANSITION_VERBS = {
    "density": {"rises": "planes accumulating", "falls": "geometry thinning"},
    "luminosity": {"rises": "light arriving", "falls": "glow receding"},
    "fracture": {"rises": "edges shattering", "falls": "forms smoothing"},
    "coherence": {"rises": "structure crystallizing", "falls": "order dissolving"},
    "scale": {"rises": "detail multiplying", "falls": "forms consolidating"},
}

DYNAMIC_THRESHOLD = 0.15


def generate_anim_alt_text(
    landmarks: Sequence[tuple[str, Controls]],
    duration_secs: float,
    keyframe_titles: Sequence[str] | None = None,
) -> str:
    """
    Describe a looping landmark animation.

    Args:
        landmarks: ``(name, controls)`` pairs in loop order.
        duration_secs: Loop length.
        keyframe_titles: Optional generated titles, one per landmark;
            landmark names are used where missing.

    Returns:
        Multi-line description.
    """
    n = len(landmarks)
    titles = list(keyframe_titles or [])

    spreads = {}
    for key in ANIM_KEYS:
        values = [c.axis(key) for _, c in landmarks] or [0.0]
        spreads[key] = max(values) - min(values)

    dynamic = sorted(
        (k for k in ANIM_KEYS if spreads[k] >= DYNAMIC_THRESHOLD),
        key=lambda k: spreads[k],
        reverse=True,
    )
    stable = [k for k in ANIM_KEYS if spreads[k] < DYNAMIC_THRESHOLD]

    duration = f"{duration_secs:g}"
    parts = [
        f"A {duration}-second loop cycles through {n} landmark{'' if n == 1 else 's'}, "
        "each a crystalline geometry of light and structure."
    ]
    if dynamic:
        parts.append(f"Across the cycle, {'; '.join(DYNAMIC_PHRASES[k] for k in dynamic)}.")
    if stable and len(stable) < len(ANIM_KEYS):
        parts.append(f"Throughout, {'; '.join(STABLE_PHRASES[k] for k in stable)}.")

    if n >= 2:
        transitions = []
        for i in range(n):
            from_name, from_c = landmarks[i]
            to_name, to_c = landmarks[(i + 1) % n]
            from_title = titles[i] if i < len(titles) and titles[i] else from_name
            j = (i + 1) % n
            to_title = titles[j] if j < len(titles) and titles[j] else to_name

            max_key, max_delta = ANIM_KEYS[0], 0.0
            for key in ANIM_KEYS:
                delta = abs(to_c.axis(key) - from_c.axis(key))
                if delta > max_delta:
                    max_key, max_delta = key, delta
            direction = "rises" if to_c.axis(max_key) > from_c.axis(max_key) else "falls"
            verb = TRANSITION_VERBS[max_key][direction]
            transitions.append(f"from “{from_title}” to “{to_title}”: {verb}")
        parts.append(f"The journey moves {'; '.join(transitions)}.")

    parts.append(
        "The geometry completes its cycle, translucent planes overlapping without collapsing, "
        "returning to where it began, subtly changed by having moved."
    )
    return "\n".join(parts)

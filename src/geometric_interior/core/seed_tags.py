"""
Compositional seed tags.

A seed is either a free-form string or a triple of indices
``(arrangement, structure, detail)`` into fixed per-locale word lists.
Tags serialise to ``"a.b.c"``. Each slot seeds its own random stream, so
changing one slot only re-rolls the part of the scene it names.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from geometric_interior.core.prng import Rng, rng_from_label, round_half_up, string_hash
from geometric_interior.errors import InvalidSeed

SeedTag = Tuple[int, int, int]
Seed = Union[str, SeedTag]

TAG_LIST_LENGTH = 18

# Slot 1, still -> turbulent
ARRANGEMENT_LABELS = {
    "en": [
        "Anchored", "Poised", "Centered", "Settled", "Resting", "Balanced",
        "Drifting", "Leaning", "Shifting", "Flowing", "Turning", "Arcing",
        "Swirling", "Rushing", "Scattering", "Diverging", "Spiraling", "Turbulent",
    ],
    "es": [
        "Anclado", "Equilibrado", "Centrado", "Asentado", "En Reposo", "Balanceado",
        "A la Deriva", "Inclinado", "Cambiante", "Fluido", "Girando", "Arqueado",
        "Arremolinado", "Precipitado", "Disperso", "Divergente", "En Espiral", "Turbulento",
    ],
}

# Slot 2, smooth -> jagged
STRUCTURE_LABELS = {
    "en": [
        "Silken", "Draped", "Smooth", "Folded", "Layered", "Woven",
        "Creased", "Pleated", "Angular", "Faceted", "Carved", "Fractured",
        "Splintered", "Shattered", "Crystalline", "Serrated", "Bristling", "Jagged",
    ],
    "es": [
        "Sedoso", "Drapeado", "Liso", "Plegado", "Estratificado", "Tejido",
        "Arrugado", "Plisado", "Angular", "Facetado", "Tallado", "Fracturado",
        "Astillado", "Destrozado", "Cristalino", "Serrado", "Erizado", "Dentado",
    ],
}

# Slot 3, frozen -> burning
DETAIL_LABELS = {
    "en": [
        "Frozen", "Glacial", "Still", "Cool", "Misty", "Dim",
        "Dusky", "Neutral", "Mild", "Warm", "Glowing", "Bright",
        "Vivid", "Radiant", "Blazing", "Molten", "Incandescent", "Burning",
    ],
    "es": [
        "Congelado", "Glacial", "Quieto", "Fresco", "Brumoso", "Tenue",
        "Crepuscular", "Neutro", "Suave", "Cálido", "Resplandeciente", "Brillante",
        "Vívido", "Radiante", "Ardiente", "Fundido", "Incandescente", "Abrasador",
    ],
}


def localized_words(locale: str = "en") -> dict[str, list[str]]:
    """The three slot word lists for ``locale`` (English fallback)."""
    return {
        "arrangement": ARRANGEMENT_LABELS.get(locale, ARRANGEMENT_LABELS["en"]),
        "structure": STRUCTURE_LABELS.get(locale, STRUCTURE_LABELS["en"]),
        "detail": DETAIL_LABELS.get(locale, DETAIL_LABELS["en"]),
    }


def is_seed_tag(seed) -> bool:
    return (
        isinstance(seed, (list, tuple))
        and len(seed) == 3
        and all(isinstance(n, (int, float)) and not isinstance(n, bool) for n in seed)
    )


def _clamp_slot(v: float) -> int:
    return max(0, min(TAG_LIST_LENGTH - 1, round_half_up(v)))


def parse_seed(seed: Seed) -> SeedTag:
    """
    Normalise a seed into a tag triple.

    Triples are rounded and clamped; strings hash to three slot values.

    Raises:
        InvalidSeed: For empty strings or anything that is neither form.
    """
    if is_seed_tag(seed):
        return (_clamp_slot(seed[0]), _clamp_slot(seed[1]), _clamp_slot(seed[2]))
    if not isinstance(seed, str) or not seed:
        raise InvalidSeed(f"seed must be a non-empty string or a tag triple, got {seed!r}")
    h = string_hash(seed)
    return (h() % TAG_LIST_LENGTH, h() % TAG_LIST_LENGTH, h() % TAG_LIST_LENGTH)


@dataclass(frozen=True)
class TagStreams:
    """
    Independent scene streams, one per tag slot.

    ``arrangement`` drives curves and dots, ``structure`` the folding
    chains, ``detail`` colour and tendrils. Each bias is the slot index
    scaled into [0, 1].
    """

    arrangement: Rng
    structure: Rng
    detail: Rng
    arrangement_bias: float
    structure_bias: float
    detail_bias: float


def slot_bias(slot_value: int) -> float:
    return slot_value / (TAG_LIST_LENGTH - 1)


def create_tag_streams(tag: Sequence[int]) -> TagStreams:
    """Seed one stream per slot from ``"arr-<a>"``, ``"str-<b>"`` and ``"det-<c>"``."""
    return TagStreams(
        arrangement=rng_from_label(f"arr-{tag[0]}"),
        structure=rng_from_label(f"str-{tag[1]}"),
        detail=rng_from_label(f"det-{tag[2]}"),
        arrangement_bias=slot_bias(tag[0]),
        structure_bias=slot_bias(tag[1]),
        detail_bias=slot_bias(tag[2]),
    )


def seed_tag_to_label(tag: Sequence[int], locale: str = "en") -> str:
    """Render a tag as a display label, e.g. ``"Settled, Splintered, Warm"``."""
    words = localized_words(locale)

    def word(slot: str, i: int) -> str:
        options = words[slot]
        return options[i] if 0 <= i < len(options) else options[0]

    a = word("arrangement", tag[0])
    return f"{a[:1].upper()}{a[1:]}, {word('structure', tag[1])}, {word('detail', tag[2])}"


def serialize_seed_tag(tag: Sequence[int]) -> str:
    return f"{tag[0]}.{tag[1]}.{tag[2]}"


def deserialize_seed_tag(s: str) -> SeedTag | None:
    """Parse ``"a.b.c"``; None when malformed or out of range."""
    parts = s.split(".")
    if len(parts) != 3:
        return None
    try:
        nums = [float(p) for p in parts]
    except ValueError:
        return None
    if any(n != n or n < 0 or n >= TAG_LIST_LENGTH or n != int(n) for n in nums):
        return None
    return (int(nums[0]), int(nums[1]), int(nums[2]))


def seed_to_string(seed: Seed) -> str:
    """
    Canonical label for a seed, the string fed to the scene hash.

    Raises:
        InvalidSeed: If the seed is absent, empty or malformed.
    """
    if is_seed_tag(seed):
        return serialize_seed_tag(parse_seed(seed))
    if isinstance(seed, str) and seed:
        return seed
    raise InvalidSeed(f"seed must be a non-empty string or a tag triple, got {seed!r}")


def coerce_seed(value) -> Seed:
    """Accept ``"a.b.c"`` tag strings, ``"a,b,c"`` share-link triples, lists or plain strings."""
    if is_seed_tag(value):
        return parse_seed(value)
    if isinstance(value, str):
        tag = deserialize_seed_tag(value.replace(",", ".")) if value.count(",") == 2 else None
        if tag is not None:
            return tag
        if value:
            return value
    raise InvalidSeed(f"seed must be a non-empty string or a tag triple, got {value!r}")

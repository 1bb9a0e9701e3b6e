"""
Deterministic PRNG kernel and scalar helpers.

``string_hash`` is an xmur3 mix over the UTF-16 code units of the input,
``uniform_stream`` a mulberry32 generator. Both reproduce the 32-bit
integer arithmetic exactly so the same seed yields the same bits on any
host.
"""

import math
from typing import Callable

from geometric_interior.errors import InvalidSeed

MASK32 = 0xFFFFFFFF

Rng = Callable[[], float]


def _imul(a: int, b: int) -> int:
    """32-bit wrapping multiply."""
    return (a * b) & MASK32


def _code_units(s: str) -> list[int]:
    raw = s.encode("utf-16-le", errors="surrogatepass")
    return [raw[i] | (raw[i + 1] << 8) for i in range(0, len(raw), 2)]


def string_hash(s: str) -> Callable[[], int]:
    """
    Hash a string into a producer of unsigned 32-bit integers.

    Args:
        s: Seed label.

    Returns:
        Zero-argument callable; successive calls continue the mix.

    Raises:
        InvalidSeed: If ``s`` is not a string.
    """
    if not isinstance(s, str):
        raise InvalidSeed(f"seed label must be a string, got {type(s).__name__}")

    units = _code_units(s)
    h = (1779033703 ^ len(units)) & MASK32
    for c in units:
        h = _imul(h ^ c, 3432918353)
        h = ((h << 13) | (h >> 19)) & MASK32

    state = [h]

    def next_int() -> int:
        x = state[0]
        x = _imul(x ^ (x >> 16), 2246822507)
        x = _imul(x ^ (x >> 13), 3266489909)
        x ^= x >> 16
        state[0] = x
        return x

    return next_int


def uniform_stream(seed32: int) -> Rng:
    """
    Build a uniform [0, 1) generator from a 32-bit state.

    Args:
        seed32: Initial state; only the low 32 bits are used.

    Returns:
        Zero-argument callable returning floats in [0, 1).
    """
    state = [int(seed32) & MASK32]

    def next_float() -> float:
        state[0] = (state[0] + 0x6D2B79F5) & MASK32
        t = state[0]
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & MASK32
        return ((t ^ (t >> 14)) & MASK32) / 4294967296.0

    return next_float


def rng_from_label(label: str) -> Rng:
    """``uniform_stream(string_hash(label)())``, the canonical scene RNG."""
    return uniform_stream(string_hash(label)())


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def control_lerp(t: float, lo: float, mid: float, hi: float) -> float:
    """
    Asymmetric lerp: t=0 -> lo, t=0.5 -> mid (exact), t=1 -> hi.

    Used for slider parameterisation where ``mid`` is the tuned default.
    """
    t = clamp01(t)
    if t < 0.5:
        return lo + (mid - lo) * (t * 2)
    return mid + (hi - mid) * ((t - 0.5) * 2)


def round_half_up(x: float) -> int:
    """Round halves toward +inf; ``round`` would bank them to even."""
    return math.floor(x + 0.5)

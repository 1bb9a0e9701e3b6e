"""
Glow-dot correspondence for scene morphs.

Dots are matched greedily, largest "from" dot first, each taking the
nearest still-free "to" dot inside ``max_dist``. The morph layer then
carries matched pairs across and fades the leftovers in or out.
"""

from dataclasses import dataclass

import numpy as np
from scipy.spatial.distance import cdist

DEFAULT_MAX_DIST = 3.0


@dataclass(frozen=True)
class DotMatching:
    matched: tuple[tuple[int, int], ...]
    unmatched_from: tuple[int, ...]
    unmatched_to: tuple[int, ...]


@dataclass(frozen=True)
class GlowMorphLayer:
    """Per-dot attribute pairs for the morphing glow layer."""

    pos: np.ndarray  # (N, 3)
    pos_to: np.ndarray  # (N, 3)
    size: np.ndarray  # (N,)
    size_to: np.ndarray  # (N,)
    match_flag: np.ndarray  # (N,) 1 for matched pairs
    fade_dir: np.ndarray  # (N,) -1 fade out, +1 fade in, 0 matched

    def __len__(self) -> int:
        return len(self.size)

    def evaluate(self, t: float) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Positions, sizes and opacities at morph time ``t``."""
        t = min(max(t, 0.0), 1.0)
        pos = self.pos + (self.pos_to - self.pos) * t
        size = self.size + (self.size_to - self.size) * t
        opacity = np.where(self.fade_dir < 0, 1.0 - t, np.where(self.fade_dir > 0, t, 1.0))
        return pos, size, opacity


def match_dots(from_pos, from_size, to_pos, to_size, max_dist: float = DEFAULT_MAX_DIST) -> DotMatching:
    """
    Greedy nearest-neighbour matching.

    Args:
        from_pos: (N, 3) positions of the outgoing dots.
        from_size: (N,) sizes; larger dots choose first.
        to_pos: (M, 3) positions of the incoming dots.
        to_size: (M,) sizes (unused by the matching itself).
        max_dist: Pairs at or beyond this distance stay unmatched.

    Returns:
        DotMatching with ``unmatched_from`` in size order.
    """
    from_pos = np.asarray(from_pos, dtype=np.float64).reshape(-1, 3)
    to_pos = np.asarray(to_pos, dtype=np.float64).reshape(-1, 3)
    order = np.argsort(-np.asarray(from_size, dtype=np.float64), kind="stable")

    dist = cdist(from_pos, to_pos) if len(from_pos) and len(to_pos) else np.zeros((len(from_pos), len(to_pos)))
    used = np.zeros(len(to_pos), dtype=bool)
    matched = []

    for fi in order:
        row = np.where(used, np.inf, dist[fi])
        if row.size == 0:
            continue
        ti = int(np.argmin(row))
        if row[ti] < max_dist:
            matched.append((int(fi), ti))
            used[ti] = True

    matched_from = {fi for fi, _ in matched}
    return DotMatching(
        matched=tuple(matched),
        unmatched_from=tuple(int(i) for i in order if int(i) not in matched_from),
        unmatched_to=tuple(int(i) for i in np.flatnonzero(~used)),
    )


def build_glow_morph_layer(from_pos, from_size, to_pos, to_size, matching: DotMatching) -> GlowMorphLayer:
    from_pos = np.asarray(from_pos, dtype=np.float64).reshape(-1, 3)
    to_pos = np.asarray(to_pos, dtype=np.float64).reshape(-1, 3)
    from_size = np.asarray(from_size, dtype=np.float64)
    to_size = np.asarray(to_size, dtype=np.float64)

    fi = np.array([f for f, _ in matching.matched], dtype=int)
    ti = np.array([t for _, t in matching.matched], dtype=int)
    uf = np.array(matching.unmatched_from, dtype=int)
    ut = np.array(matching.unmatched_to, dtype=int)

    pos = np.vstack([from_pos[fi], from_pos[uf], to_pos[ut]])
    pos_to = np.vstack([to_pos[ti], from_pos[uf], to_pos[ut]])
    size = np.concatenate([from_size[fi], from_size[uf], to_size[ut]])
    size_to = np.concatenate([to_size[ti], from_size[uf], to_size[ut]])
    match_flag = np.concatenate([np.ones(len(fi)), np.zeros(len(uf) + len(ut))])
    fade_dir = np.concatenate([np.zeros(len(fi)), -np.ones(len(uf)), np.ones(len(ut))])

    return GlowMorphLayer(
        pos=pos.astype(np.float32),
        pos_to=pos_to.astype(np.float32),
        size=size.astype(np.float32),
        size_to=size_to.astype(np.float32),
        match_flag=match_flag.astype(np.float32),
        fade_dir=fade_dir.astype(np.float32),
    )

"""
Open Graph preview cards.

``OgCardCache.handle(href)`` answers ``/og-render?s=...`` style requests
with a 1200x630 PNG of the shared scene. Renders are deterministic, so
responses are marked immutable. Cards live in a bounded in-memory LRU
and, optionally, indefinitely on disk.
"""

import hashlib
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from geometric_interior.engine.scene import build_scene
from geometric_interior.errors import InvalidSeed
from geometric_interior.io.exporter import encode_png
from geometric_interior.io.url_state import ShareState, canonical_share_params, decode_state_from_url
from geometric_interior.render.config import RenderConfig
from geometric_interior.render.rasterizer import render_still

OG_WIDTH = 1200
OG_HEIGHT = 630

CACHE_CONTROL = "public, max-age=31536000, immutable"

# Bump when rendering changes so stale disk entries are not served.
RENDER_VERSION = "1"

# Cards are ~1 MB each; older ones fall back to the disk tier.
MEMORY_CARDS = 32


@dataclass(frozen=True)
class OgResponse:
    status: int
    body: bytes
    headers: dict = field(default_factory=dict)


def default_cache_dir() -> Path:
    """``~/.cache/geometric_interior/og``, created on demand."""
    cache_dir = Path.home() / ".cache" / "geometric_interior" / "og"
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def render_card(state: ShareState, config: Optional[RenderConfig] = None) -> np.ndarray:
    config = config or RenderConfig(width=OG_WIDTH, height=OG_HEIGHT)
    return render_still(build_scene(state.seed, state.controls), config)


class OgCardCache:
    """
    Share-card renderer with a memory LRU over an optional disk cache.

    Args:
        cache_dir: Directory for PNGs that survive restarts; memory only
            when None.
        renderer: ``ShareState -> (630, 1200, 3) uint8``; the CPU preview
            renderer by default.
        memory_cards: Most PNGs kept in memory; least recently served
            cards are dropped first.
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        renderer: Optional[Callable[[ShareState], np.ndarray]] = None,
        memory_cards: int = MEMORY_CARDS,
    ):
        self.cache_dir = Path(cache_dir) if cache_dir is not None else None
        self.renderer = renderer or render_card
        self.memory_cards = max(int(memory_cards), 0)
        self._memory: OrderedDict[str, bytes] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def cache_key(self, state: ShareState) -> str:
        payload = f"{RENDER_VERSION}|{canonical_share_params(state)}"
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def _disk_path(self, key: str) -> Optional[Path]:
        if self.cache_dir is None:
            return None
        return self.cache_dir / f"og_{key}.png"

    def get_png(self, state: ShareState) -> bytes:
        """PNG bytes for ``state``; renders only when neither cache tier has it."""
        key = self.cache_key(state)
        if key in self._memory:
            self.hits += 1
            self._memory.move_to_end(key)
            return self._memory[key]

        path = self._disk_path(key)
        if path is not None and path.exists():
            self.hits += 1
            png = path.read_bytes()
            self._remember(key, png)
            return png

        self.misses += 1
        png = encode_png(self.renderer(state))
        self._remember(key, png)
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(png)
        return png

    def _remember(self, key: str, png: bytes) -> None:
        if self.memory_cards == 0:
            return
        self._memory[key] = png
        self._memory.move_to_end(key)
        while len(self._memory) > self.memory_cards:
            self._memory.popitem(last=False)

    def handle(self, href: str) -> OgResponse:
        """Answer a card request; 400 when the URL has no usable share params."""
        state = decode_state_from_url(href)
        if state is None:
            return self._bad_request("Missing share params")
        try:
            png = self.get_png(state)
        except InvalidSeed as e:
            return self._bad_request(str(e))
        return OgResponse(
            status=200,
            body=png,
            headers={"Content-Type": "image/png", "Cache-Control": CACHE_CONTROL},
        )

    @staticmethod
    def _bad_request(message: str) -> OgResponse:
        return OgResponse(status=400, body=message.encode("utf-8"), headers={"Content-Type": "text/plain"})

    def clear(self) -> None:
        self._memory.clear()
        if self.cache_dir is not None and self.cache_dir.exists():
            for path in self.cache_dir.glob("og_*.png"):
                path.unlink()

"""Tests for export bundles and share cards."""

import numpy as np
import pytest

from geometric_interior.core.controls import Controls
from geometric_interior.core.seed_tags import seed_to_string
from geometric_interior.io.exporter import PNG_SIGNATURE, VisualExporter, read_zip
from geometric_interior.io.og import CACHE_CONTROL, OG_HEIGHT, OG_WIDTH, OgCardCache
from geometric_interior.io.still_config import validate_still_config
from geometric_interior.io.url_state import ShareState, encode_state_to_url


@pytest.fixture
def state():
    return ShareState(seed="export me", controls=Controls(density=0.123456))


class TestVisualExporter:
    def test_bundle_contents(self, solid_frame, state):
        data = VisualExporter().to_bytes(solid_frame, "Quiet Lattice", "Folded planes of light.", state)
        bundle = read_zip(data)
        assert bundle["image"].startswith(PNG_SIGNATURE)
        assert bundle["title"] == "Quiet Lattice"
        assert bundle["alt_text"] == "Folded planes of light."
        assert validate_still_config(bundle["metadata"]) == (True, [])

    def test_metadata_name_falls_back_to_title(self, state):
        meta = VisualExporter().build_metadata(state, "T" * 60)
        assert meta["name"] == "T" * 40
        assert meta["structure"]["density"] == 0.1235

    def test_metadata_keeps_given_name(self, state):
        named = ShareState(seed=state.seed, controls=state.controls, name="Mine")
        assert VisualExporter().build_metadata(named, "Title")["name"] == "Mine"

    @pytest.mark.parametrize("title,alt", [("", "alt"), ("Title", "  ")])
    def test_requires_text(self, solid_frame, state, title, alt):
        with pytest.raises(ValueError):
            VisualExporter().to_bytes(solid_frame, title, alt, state)

    def test_export_zip(self, tmp_path, solid_frame, state):
        out = VisualExporter().export_zip(solid_frame, "T", "A", state, tmp_path / "nested" / "art.zip")
        assert out.exists()
        assert read_zip(out.read_bytes())["title"] == "T"

    def test_export_numpy(self, tmp_path, scene):
        out = VisualExporter().export_numpy(scene, tmp_path / "scene.npz")
        with np.load(out) as data:
            assert data["face_pos"].shape == scene.faces.pos.shape
            assert int(data["node_count"]) == scene.node_count
            assert data["light_positions"].shape == (10, 3)


def _stub_renderer(state):
    seed_to_string(state.seed)
    return np.zeros((OG_HEIGHT, OG_WIDTH, 3), dtype=np.uint8)


class TestOgCardCache:
    def test_renders_once_per_state(self):
        cache = OgCardCache(renderer=_stub_renderer)
        url = encode_state_to_url("https://example.org/", ShareState(seed="card"))
        first = cache.handle(url)
        second = cache.handle(url)
        assert first.status == 200
        assert first.body.startswith(PNG_SIGNATURE)
        assert first.headers == {"Content-Type": "image/png", "Cache-Control": CACHE_CONTROL}
        assert second.body == first.body
        assert (cache.misses, cache.hits) == (1, 1)

    def test_missing_params(self):
        response = OgCardCache(renderer=_stub_renderer).handle("https://example.org/og-render?d=0.5")
        assert response.status == 400
        assert response.body == b"Missing share params"

    def test_invalid_seed(self):
        response = OgCardCache(renderer=_stub_renderer).handle("https://example.org/og-render?s=")
        assert response.status == 400

    def test_disk_cache_survives_restart(self, tmp_path):
        state = ShareState(seed="persist")
        OgCardCache(cache_dir=tmp_path, renderer=_stub_renderer).get_png(state)
        assert len(list(tmp_path.glob("og_*.png"))) == 1

        fresh = OgCardCache(cache_dir=tmp_path, renderer=_stub_renderer)
        fresh.get_png(state)
        assert (fresh.misses, fresh.hits) == (0, 1)

        fresh.clear()
        assert not list(tmp_path.glob("og_*.png"))

    def test_key_depends_on_state(self):
        cache = OgCardCache(renderer=_stub_renderer)
        assert cache.cache_key(ShareState(seed="a")) != cache.cache_key(ShareState(seed="b"))

    def test_memory_tier_is_bounded_lru(self):
        cache = OgCardCache(renderer=_stub_renderer, memory_cards=2)
        a, b, c = ShareState(seed="a"), ShareState(seed="b"), ShareState(seed="c")
        cache.get_png(a)
        cache.get_png(b)
        cache.get_png(a)  # a is now the most recent
        cache.get_png(c)  # evicts b
        assert len(cache._memory) == 2
        assert cache.cache_key(b) not in cache._memory

        cache.get_png(a)
        assert (cache.misses, cache.hits) == (3, 2)
        cache.get_png(b)
        assert cache.misses == 4

    def test_evicted_cards_come_back_from_disk(self, tmp_path):
        cache = OgCardCache(cache_dir=tmp_path, renderer=_stub_renderer, memory_cards=1)
        cache.get_png(ShareState(seed="first"))
        cache.get_png(ShareState(seed="second"))
        cache.get_png(ShareState(seed="first"))
        assert (cache.misses, cache.hits) == (2, 1)

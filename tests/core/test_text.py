"""Tests for title and alt-text generation."""

from geometric_interior.core.controls import Controls
from geometric_interior.core.prng import rng_from_label
from geometric_interior.core.text import (
    generate_alt_text,
    generate_anim_alt_text,
    generate_title,
    hue_name,
    hue_words,
)


class TestTitle:
    def test_deterministic(self):
        c = Controls()
        assert generate_title(c, rng_from_label("s:title")) == generate_title(c, rng_from_label("s:title"))

    def test_three_words(self):
        for i in range(20):
            title = generate_title(Controls(), rng_from_label(f"{i}:title"))
            assert len(title.split()) == 3

    def test_varies_with_stream(self):
        titles = {generate_title(Controls(), rng_from_label(f"{i}:title")) for i in range(20)}
        assert len(titles) > 1


class TestHueWords:
    def test_blue(self):
        c = Controls(hue=240 / 360)
        assert hue_name(c) == "blue"
        assert "Cobalt" in hue_words(c)

    def test_wraps_to_red(self):
        assert hue_name(Controls(hue=1.0)) == "red"
        assert hue_name(Controls(hue=350 / 360)) == "red"


class TestAltText:
    def test_mentions_nodes_and_title(self):
        text = generate_alt_text(Controls(), 1234, "Steady Field Interior")
        assert "1234 energy nodes" in text
        assert "Steady Field Interior" in text
        assert "dark field" in text

    def test_density_phrases(self):
        dense = generate_alt_text(Controls(density=0.9), 1, "T")
        sparse = generate_alt_text(Controls(density=0.1), 1, "T")
        assert "densely layered" in dense
        assert "sparse" in sparse

    def test_deterministic(self):
        c = Controls(fracture=0.8)
        assert generate_alt_text(c, 10, "T") == generate_alt_text(c, 10, "T")


class TestAnimAltText:
    def test_dynamic_and_stable_axes(self):
        landmarks = [
            ("calm", Controls(luminosity=0.1)),
            ("bright", Controls(luminosity=0.9)),
        ]
        text = generate_anim_alt_text(landmarks, 12)
        assert text.startswith("A 12-second loop cycles through 2 landmarks")
        assert "light swells and dims" in text
        assert "structural density holds steady" in text
        assert "from “calm” to “bright”: light arriving" in text
        assert "from “bright” to “calm”: glow receding" in text

    def test_keyframe_titles_replace_names(self):
        landmarks = [("a", Controls(density=0.0)), ("b", Controls(density=1.0))]
        text = generate_anim_alt_text(landmarks, 8.5, ["First", "Second"])
        assert "8.5-second" in text
        assert "“First”" in text and "“Second”" in text

    def test_single_landmark(self):
        text = generate_anim_alt_text([("only", Controls())], 4)
        assert "1 landmark," in text
        assert "The journey" not in text

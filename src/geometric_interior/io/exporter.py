"""
Visual export.

Bundles a rendered still with its title, alt text and a re-importable
still config into one ZIP, and can dump a scene's raw vertex streams to
a NumPy archive for offline tooling.
"""

import io
import json
import zipfile
from pathlib import Path
from typing import Any, Union

import numpy as np
from PIL import Image

from geometric_interior.engine.scene import Scene
from geometric_interior.io.still_config import NAME_MAX, state_to_config
from geometric_interior.io.url_state import ShareState

PNG_SIGNATURE = b"\x89PNG"

ZIP_IMAGE = "image.png"
ZIP_TITLE = "title.txt"
ZIP_ALT_TEXT = "alt-text.txt"
ZIP_METADATA = "metadata.json"


def encode_png(frame: np.ndarray) -> bytes:
    """(H, W, 3) uint8 RGB -> PNG bytes."""
    buf = io.BytesIO()
    Image.fromarray(frame).save(buf, format="PNG")
    return buf.getvalue()


class VisualExporter:
    """
    Writes export bundles.

    The metadata entry is a ``still-v2`` config, so a bundle can be
    imported back to reproduce the image.
    """

    def __init__(self, precision: int = 4):
        """
        Args:
            precision: Decimal places for control values in metadata.
        """
        self.precision = precision

    def _round(self, value: float) -> float:
        return round(float(value), self.precision)

    def build_metadata(self, state: ShareState, title: str) -> dict[str, Any]:
        """Still config for ``state``; falls back to ``title`` when unnamed."""
        config = state_to_config(state)
        if not config["name"]:
            config["name"] = title[:NAME_MAX]
        for block in ("color", "structure"):
            config[block] = {k: self._round(v) for k, v in config[block].items()}
        return config

    def to_bytes(
        self,
        frame: np.ndarray,
        title: str,
        alt_text: str,
        state: ShareState,
    ) -> bytes:
        """
        Build the ZIP in memory.

        Args:
            frame: Rendered (H, W, 3) uint8 image.
            title: Artwork title; must be non-empty.
            alt_text: Accessibility description; must be non-empty.
            state: Seed, controls and name the image was rendered from.

        Returns:
            ZIP archive bytes.
        """
        if not title.strip():
            raise ValueError("title must be non-empty")
        if not alt_text.strip():
            raise ValueError("alt text must be non-empty")

        metadata = self.build_metadata(state, title)
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            # PNG is already compressed.
            zf.writestr(ZIP_IMAGE, encode_png(frame), compress_type=zipfile.ZIP_STORED)
            zf.writestr(ZIP_TITLE, title)
            zf.writestr(ZIP_ALT_TEXT, alt_text)
            zf.writestr(ZIP_METADATA, json.dumps(metadata, indent=2))
        return buf.getvalue()

    def export_zip(
        self,
        frame: np.ndarray,
        title: str,
        alt_text: str,
        state: ShareState,
        output_path: Union[str, Path],
    ) -> Path:
        """Write the bundle to ``output_path``; returns the path."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(self.to_bytes(frame, title, alt_text, state))
        return output_path

    def export_numpy(self, scene: Scene, output_path: Union[str, Path]) -> Path:
        """
        Dump the scene's vertex streams as a compressed .npz archive.
        """
        output_path = Path(output_path)
        f, e, d = scene.faces, scene.edges, scene.dots

        np.savez_compressed(
            output_path,
            face_pos=f.pos,
            face_norm=f.norm,
            face_uv=f.uv,
            face_alpha=f.alpha,
            face_color=f.color,
            face_opacity=f.opacity,
            face_noise_scale=f.noise_scale,
            face_noise_strength=f.noise_strength,
            face_crack_extend=f.crack_extend,
            face_fold_delay=f.fold_delay,
            face_fold_origin=f.fold_origin,
            edge_pos=e.pos,
            edge_alpha=e.alpha,
            edge_color=e.color,
            edge_opacity=e.opacity,
            edge_fold_delay=e.fold_delay,
            edge_fold_origin=e.fold_origin,
            tendril_pos=scene.tendril_pos,
            tendril_color=scene.tendril_color,
            sphere_pos=d.sphere_pos,
            sphere_radius=d.sphere_radius,
            sphere_color=d.sphere_color,
            glow_pos=d.glow_pos,
            glow_size=d.glow_size,
            light_positions=d.lights.positions,
            light_intensities=d.lights.intensities,
            node_count=scene.node_count,
        )

        return output_path


def read_zip(data: bytes) -> dict[str, Any]:
    """Unpack an export bundle into ``{image, title, alt_text, metadata}``."""
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return {
            "image": zf.read(ZIP_IMAGE),
            "title": zf.read(ZIP_TITLE).decode("utf-8"),
            "alt_text": zf.read(ZIP_ALT_TEXT).decode("utf-8"),
            "metadata": json.loads(zf.read(ZIP_METADATA)),
        }

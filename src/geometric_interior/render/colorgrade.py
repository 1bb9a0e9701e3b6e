"""
Background and post-processing for preview frames.

Everything past ``background_gradient`` works on (H, W, 3) uint8 RGB
frames, in the order bloom, chromatic aberration, vignette, soft tone
map.
"""

import numpy as np
from PIL import Image, ImageFilter

LUMA = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)


def _radius_map(height: int, width: int):
    """
    Pixel-centre offsets from the frame centre.

    Returns:
        (dx, dy, rho): float32 grids, with ``rho`` the distance normalised
        so the corners sit at 1.
    """
    cy, cx = height / 2, width / 2
    dy, dx = np.meshgrid(
        np.arange(height, dtype=np.float32) + 0.5 - cy,
        np.arange(width, dtype=np.float32) + 0.5 - cx,
        indexing="ij",
    )
    rho = np.hypot(dx, dy) / np.float32(np.hypot(cx, cy))
    return dx, dy, rho


def background_gradient(
    width: int,
    height: int,
    inner: tuple,
    outer: tuple,
) -> np.ndarray:
    """
    Radial gradient from ``inner`` at the centre to ``outer`` at the corners.

    Args:
        width: Frame width.
        height: Frame height.
        inner: RGB in [0, 1] at the centre.
        outer: RGB in [0, 1] at the corners.

    Returns:
        (H, W, 3) float32 array in [0, 1].
    """
    _, _, rho = _radius_map(height, width)
    t = np.clip(rho, 0, 1)[:, :, np.newaxis]
    inner = np.asarray(inner, dtype=np.float32)
    outer = np.asarray(outer, dtype=np.float32)
    return inner + (outer - inner) * t


def to_uint8(linear: np.ndarray) -> np.ndarray:
    """Clip a float frame in [0, 1] to uint8."""
    return (np.clip(linear, 0, 1) * 255 + 0.5).astype(np.uint8)


def tone_map_soft(frame: np.ndarray, knee: float = 0.78) -> np.ndarray:
    """
    Roll off highlights without shifting their hue.

    Each pixel is scaled by how much its brightest channel exceeds
    ``knee`` (fraction of full scale), so saturated glows stay the same
    colour as they approach white. Pixels below the knee are returned
    unchanged.
    """
    f = frame.astype(np.float32) / 255.0
    peak = f.max(axis=2)
    over = np.maximum(peak - knee, 0.0)
    room = 1.0 - knee
    mapped = knee + over * room / (over + room)
    gain = np.where(peak > knee, mapped / np.maximum(peak, 1e-6), 1.0)
    return to_uint8(f * gain[:, :, np.newaxis])


def add_bloom(
    frame: np.ndarray,
    strength: float = 0.2,
    threshold: float = 0.7,
    radius: int = 15,
) -> np.ndarray:
    """
    Bright-pass, blur and screen-blend back.

    Args:
        frame: (H, W, 3) uint8 RGB array.
        strength: Bloom opacity (0-1).
        threshold: Luminance fraction below which pixels do not bloom.
        radius: Blur radius in pixels.

    Returns:
        (H, W, 3) uint8 RGB array.
    """
    if strength <= 0:
        return frame

    a = frame.astype(np.float32) / 255.0
    weight = np.clip((a @ LUMA - threshold) / max(1.0 - threshold, 1e-3), 0, 1)
    bright = to_uint8(a * weight[:, :, np.newaxis])

    halo = Image.fromarray(bright).filter(ImageFilter.GaussianBlur(radius=radius))
    b = np.asarray(halo, dtype=np.float32) / 255.0 * strength
    return to_uint8(1.0 - (1.0 - a) * (1.0 - b))


def chromatic_aberration(frame: np.ndarray, offset: float = 3.0) -> np.ndarray:
    """
    Radial lens fringing.

    Red is magnified and blue shrunk about the frame centre; green is the
    reference. The split grows with distance from the centre and reaches
    ``offset`` pixels at the corners.
    """
    if offset <= 0:
        return frame

    h, w = frame.shape[:2]
    dx, dy, rho = _radius_map(h, w)
    k = offset / float(np.hypot(w / 2, h / 2)) * rho
    result = frame.copy()
    for channel, sign in ((0, -1.0), (2, 1.0)):
        scale = 1.0 + sign * k
        sx = np.clip(np.floor(w / 2 + dx * scale), 0, w - 1).astype(np.intp)
        sy = np.clip(np.floor(h / 2 + dy * scale), 0, h - 1).astype(np.intp)
        result[:, :, channel] = frame[sy, sx, channel]
    return result


def vignette(frame: np.ndarray, strength: float = 0.4, inner: float = 0.35) -> np.ndarray:
    """
    Darken towards the corners.

    The centre disc out to ``inner`` is left alone; beyond it the falloff
    is a smoothstep reaching ``1 - strength`` at the corners.
    """
    if strength <= 0:
        return frame

    _, _, rho = _radius_map(*frame.shape[:2])
    t = np.clip((rho - inner) / (1.0 - inner), 0, 1)
    shade = 1.0 - min(strength, 1.0) * t * t * (3.0 - 2.0 * t)
    return to_uint8(frame.astype(np.float32) / 255.0 * shade[:, :, np.newaxis])


def focus_blur(
    frame: np.ndarray,
    amount: float,
    max_radius: float = 8.0,
) -> np.ndarray:
    """Whole-frame defocus; ``amount`` in [0, 1] scales the blur radius."""
    if amount <= 0:
        return frame
    radius = max_radius * min(amount, 1.0)
    return np.asarray(Image.fromarray(frame).filter(ImageFilter.GaussianBlur(radius=radius)))

"""
Silent MP4 output through ffmpeg.

Frames are streamed as raw RGB over stdin, so a whole timeline never sits
in memory at once.
"""

import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

import numpy as np

# Quality presets: (preset, crf, pix_fmt)
QUALITY_PRESETS = {
    "high": ("slow", "18", "yuv444p"),
    "medium": ("medium", "23", "yuv420p"),
    "fast": ("ultrafast", "28", "yuv420p"),
}


def ffmpeg_available() -> bool:
    return shutil.which("ffmpeg") is not None


def build_ffmpeg_command(
    output_path: Path,
    width: int,
    height: int,
    fps: int,
    quality: str = "high",
    metadata: Optional[Mapping[str, str]] = None,
) -> list[str]:
    """Argument list for a raw-RGB-on-stdin, H.264-out ffmpeg run."""
    preset, crf, pix_fmt = QUALITY_PRESETS.get(quality, QUALITY_PRESETS["high"])
    cmd = [
        "ffmpeg", "-y", "-hide_banner", "-loglevel", "error",
        "-f", "rawvideo",
        "-pix_fmt", "rgb24",
        "-s", f"{width}x{height}",
        "-r", str(fps),
        "-i", "pipe:0",
        "-an",
        "-c:v", "libx264",
        "-preset", preset,
        "-crf", crf,
        "-pix_fmt", pix_fmt,
        "-movflags", "+faststart",
    ]
    for key, value in (metadata or {}).items():
        cmd += ["-metadata", f"{key}={value}"]
    cmd.append(str(output_path))
    return cmd


def _ffmpeg_failure(returncode: int, stderr: bytes) -> RuntimeError:
    text = stderr.decode("utf-8", errors="replace").strip()
    # With -loglevel error every line is relevant; keep the tail.
    tail = "\n".join(text.splitlines()[-5:]) or "no output"
    return RuntimeError(f"ffmpeg exited with code {returncode}: {tail}")


def encode_video(
    frame_iterator: Iterable[np.ndarray],
    output_path: Path,
    width: int = 1920,
    height: int = 1080,
    fps: int = 30,
    quality: str = "high",
    total_frames: Optional[int] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    metadata: Optional[Mapping[str, str]] = None,
) -> Path:
    """
    Pipe frames into ffmpeg and wait for the MP4.

    Args:
        frame_iterator: (height, width, 3) uint8 frames in display order.
        output_path: Destination; parent directories are created.
        width, height: Frame size every frame must match.
        fps: Output frame rate.
        quality: Key into ``QUALITY_PRESETS``; unknown keys use "high".
        total_frames: Enables ``progress_callback`` when given.
        progress_callback: ``callback(frames_written, total_frames)``.
        metadata: Container tags such as ``title``.

    Returns:
        ``output_path`` as a Path.

    Raises:
        ValueError: On a frame of the wrong shape.
        RuntimeError: If ffmpeg exits non-zero.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    expected = (height, width, 3)

    proc = subprocess.Popen(
        build_ffmpeg_command(output_path, width, height, fps, quality, metadata),
        stdin=subprocess.PIPE,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
    )

    written = 0
    try:
        for frame in frame_iterator:
            if frame.shape != expected:
                raise ValueError(f"frame {written} has shape {frame.shape}, expected {expected}")
            proc.stdin.write(np.ascontiguousarray(frame, dtype=np.uint8).tobytes())
            written += 1
            if progress_callback and total_frames:
                progress_callback(written, total_frames)
    except BrokenPipeError:
        # ffmpeg quit early; the return code below reports it.
        pass
    except BaseException:
        proc.kill()
        proc.wait()
        raise

    # communicate() flushes and closes stdin.
    _, stderr = proc.communicate()
    if proc.returncode != 0:
        raise _ffmpeg_failure(proc.returncode, stderr)
    return output_path

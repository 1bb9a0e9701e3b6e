"""
CLI entry point for geometric-interior.

Usage:
    geometric-interior still <seed> [options]
    geometric-interior animate <timeline.json> [options]
    geometric-interior url <seed> [options]
    geometric-interior og <share-url> [-o card.png]
    geometric-interior validate <config.json>
"""

import argparse
import json
import sys
import time
from pathlib import Path

from geometric_interior.core.controls import CONTROL_AXES, Controls
from geometric_interior.core.seed_tags import coerce_seed, is_seed_tag, seed_tag_to_label
from geometric_interior.core.timeline import animation_from_dict, total_duration, total_frames
from geometric_interior.errors import GeometricInteriorError
from geometric_interior.io.og import OgCardCache, default_cache_dir
from geometric_interior.io.still_config import config_to_state, parse_still_config_text
from geometric_interior.io.url_state import ShareState, encode_state_to_url
from geometric_interior.pipeline import PortraitPipeline
from geometric_interior.render.config import RenderConfig
from geometric_interior.render.encoder import ffmpeg_available

PROFILES = {
    "low": {"width": 1280, "height": 720, "fps": 30, "quality": "fast"},
    "medium": {"width": 1920, "height": 1080, "fps": 60, "quality": "medium"},
    "high": {"width": 3840, "height": 2160, "fps": 60, "quality": "high"},
}

DEFAULT_ORIGIN = "https://example.org/"


def _progress_bar(current: int, total: int, width: int = 35):
    """Print a progress bar to stdout."""
    pct = current / max(total, 1) * 100
    filled = int(width * current / max(total, 1))
    bar = "#" * filled + "-" * (width - filled)
    if sys.stdout.isatty():
        sys.stdout.write(f"\r[{bar}] {pct:5.1f}%  frame {current}/{total}")
        sys.stdout.flush()
        if current >= total:
            sys.stdout.write("\n")
    else:
        if current % max(1, total // 20) == 0 or current >= total:
            print(f"{pct:5.1f}%  frame {current}/{total}", flush=True)


def _add_render_args(parser: argparse.ArgumentParser):
    parser.add_argument(
        "-p", "--profile", type=str, default="medium",
        choices=list(PROFILES),
        help="Target profile (low: 720p, medium: 1080p, high: 4k)",
    )
    parser.add_argument("--width", type=int, default=None, help="Output width (overrides profile)")
    parser.add_argument("--height", type=int, default=None, help="Output height (overrides profile)")
    parser.add_argument("--supersample", type=int, default=1, help="Internal supersampling factor")

    # Post-processing
    parser.add_argument("--no-glow", action="store_true", help="Disable bloom")
    parser.add_argument("--no-aberration", action="store_true", help="Disable chromatic aberration")
    parser.add_argument("--no-vignette", action="store_true", help="Disable vignette")


def _add_control_args(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--config", type=Path, default=None,
        help="Still config JSON; its intent replaces the seed argument",
    )
    for axis in CONTROL_AXES:
        parser.add_argument(f"--{axis}", type=float, default=None, help=f"{axis} axis in [0, 1]")
    parser.add_argument("-n", "--name", type=str, default="", help="Display name for the image")


def _render_config(args, animation_settings=None) -> RenderConfig:
    p_cfg = PROFILES[args.profile]
    width = args.width or (animation_settings.width if animation_settings else p_cfg["width"])
    height = args.height or (animation_settings.height if animation_settings else p_cfg["height"])
    fps = int(round(animation_settings.fps)) if animation_settings else p_cfg["fps"]
    return RenderConfig(
        width=width,
        height=height,
        fps=fps,
        supersample=args.supersample,
        quality=getattr(args, "quality", None) or p_cfg["quality"],
        glow_enabled=not args.no_glow,
        aberration_enabled=not args.no_aberration,
        vignette_enabled=not args.no_vignette,
    )


def _load_config_state(path: Path) -> ShareState:
    if not path.exists():
        raise GeometricInteriorError(f"Config file not found: {path}")
    config, errors = parse_still_config_text(path.read_text(encoding="utf-8"))
    if config is None:
        raise GeometricInteriorError("Invalid config:\n  " + "\n  ".join(errors))
    return config_to_state(config)


def _state_from_args(args) -> ShareState:
    if args.config is not None:
        state = _load_config_state(args.config)
        controls, seed, name = state.controls, state.seed, state.name
    else:
        controls, seed, name = Controls(), coerce_seed(args.seed), ""

    overrides = {axis: getattr(args, axis) for axis in CONTROL_AXES if getattr(args, axis) is not None}
    if overrides:
        controls = controls.with_values(**overrides)
    return ShareState(seed=seed, controls=controls, name=args.name or name)


def _seed_display(seed) -> str:
    return seed_tag_to_label(seed) if is_seed_tag(seed) else seed


def cmd_still(args) -> int:
    state = _state_from_args(args)
    config = _render_config(args)

    fmt = args.format
    output = args.output
    if output is None:
        suffix = {"png": ".png", "zip": ".zip", "numpy": ".npz"}[fmt]
        output = Path(f"portrait{suffix}")

    print(f"Seed: {_seed_display(state.seed)}")
    t0 = time.time()

    pipeline = PortraitPipeline(config)
    scene = pipeline.build(state.seed, state.controls)
    title, alt_text = pipeline.describe(scene)

    print(f"  Title: {title}")
    print(f"  Nodes: {scene.node_count}  Faces: {scene.face_count}")

    if fmt != "numpy":
        print(f"\nRendering {config.width}x{config.height}")
    pipeline.export(state, output, format=fmt)

    print(f"  Took {time.time() - t0:.1f}s")
    if args.alt_text:
        print(f"\n{alt_text}")
    print(f"\nDone! Output: {output}")
    return 0


def cmd_animate(args) -> int:
    if not args.timeline.exists():
        print(f"Error: Timeline file not found: {args.timeline}", file=sys.stderr)
        return 1
    if not ffmpeg_available():
        print("Error: ffmpeg not found on PATH", file=sys.stderr)
        return 1

    animation = animation_from_dict(json.loads(args.timeline.read_text(encoding="utf-8")))
    config = _render_config(args, animation.settings)

    output = args.output
    if output is None:
        output = args.timeline.with_suffix(".mp4")

    n = total_frames(animation)
    print(f"Timeline: {args.timeline}")
    print(f"  Events: {len(animation.events)}")
    print(f"  Duration: {total_duration(animation):.1f}s")
    print(f"\nRendering {n} frames at {config.width}x{config.height} @ {config.fps}fps")

    t0 = time.time()
    pipeline = PortraitPipeline(config)
    pipeline.encode_animation(animation, output, config, progress_callback=_progress_bar)

    elapsed = time.time() - t0
    file_size_mb = output.stat().st_size / 1024 / 1024
    print(f"\nDone! Output: {output}")
    print(f"  Size: {file_size_mb:.1f} MB")
    print(f"  Render time: {elapsed:.1f}s ({n / max(elapsed, 1e-6):.1f} fps)")
    return 0


def cmd_url(args) -> int:
    state = _state_from_args(args)
    print(encode_state_to_url(args.origin, state))
    return 0


def cmd_og(args) -> int:
    cache = OgCardCache(cache_dir=None if args.no_cache else (args.cache_dir or default_cache_dir()))
    response = cache.handle(args.share_url)
    if response.status != 200:
        print(f"Error: {response.body.decode('utf-8')}", file=sys.stderr)
        return 1

    output = args.output or Path("og-card.png")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(response.body)
    source = "cache" if cache.hits else "rendered"
    print(f"Done! Output: {output} ({source})")
    return 0


def cmd_validate(args) -> int:
    if not args.config_file.exists():
        print(f"Error: Config file not found: {args.config_file}", file=sys.stderr)
        return 1
    config, errors = parse_still_config_text(args.config_file.read_text(encoding="utf-8"))
    if config is None:
        for err in errors:
            print(f"  {err}", file=sys.stderr)
        return 1
    print(f"OK: {config['kind']} \"{config['name']}\"")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="geometric-interior",
        description="Deterministic generative self-portraits",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    still = sub.add_parser("still", help="Render one still image")
    still.add_argument("seed", type=str, nargs="?", default="", help='Seed text or "a,b,c" tag')
    still.add_argument("-o", "--output", type=Path, default=None, help="Output path")
    still.add_argument(
        "--format", type=str, default="png",
        choices=["png", "zip", "numpy"],
        help="png image, zip bundle (image, title, alt text, config) or raw numpy streams",
    )
    still.add_argument("--alt-text", action="store_true", help="Print the generated alt text")
    _add_control_args(still)
    _add_render_args(still)
    still.set_defaults(func=cmd_still)

    animate = sub.add_parser("animate", help="Render a timeline JSON to MP4")
    animate.add_argument("timeline", type=Path, help="Animation timeline JSON")
    animate.add_argument("-o", "--output", type=Path, default=None, help="Output MP4 path (default: <timeline>.mp4)")
    animate.add_argument(
        "-q", "--quality", type=str, default=None,
        choices=["high", "medium", "fast"],
        help="Encoding quality (defaults to profile quality)",
    )
    _add_render_args(animate)
    animate.set_defaults(func=cmd_animate)

    url = sub.add_parser("url", help="Print a share link")
    url.add_argument("seed", type=str, nargs="?", default="", help='Seed text or "a,b,c" tag')
    url.add_argument("--origin", type=str, default=DEFAULT_ORIGIN, help="Link origin")
    _add_control_args(url)
    url.set_defaults(func=cmd_url)

    og = sub.add_parser("og", help="Render the 1200x630 share card for a share link")
    og.add_argument("share_url", type=str, help="Share link carrying at least the s parameter")
    og.add_argument("-o", "--output", type=Path, default=None, help="Output PNG (default: og-card.png)")
    og.add_argument("--cache-dir", type=Path, default=None, help="Card cache directory")
    og.add_argument("--no-cache", action="store_true", help="Skip the on-disk card cache")
    og.set_defaults(func=cmd_og)

    validate = sub.add_parser("validate", help="Check a still config JSON")
    validate.add_argument("config_file", type=Path, help="Still config JSON")
    validate.set_defaults(func=cmd_validate)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        code = args.func(args)
    except GeometricInteriorError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()

"""
Animation timeline evaluator.

``evaluate_timeline(animation, t)`` maps an absolute time in seconds onto
the complete render state for that frame: content event, fold progress,
morph pair, camera, live params and focus. The evaluator is stateless, so
frames can be rendered in any order.
"""

import bisect
import itertools
from dataclasses import dataclass, field
from typing import Any, Optional

from geometric_interior.core.controls import Controls
from geometric_interior.core.easing import EASINGS, apply_easing
from geometric_interior.core.prng import lerp, round_half_up
from geometric_interior.core.seed_tags import Seed, coerce_seed, is_seed_tag
from geometric_interior.errors import EmptyTimeline, InvalidParameter

EVENT_TYPES = ("expand", "pause", "transition", "collapse")
CAMERA_MOVE_TYPES = ("zoom", "rotate")
PARAM_NAMES = ("twinkle", "dynamism")


@dataclass
class ContentEvent:
    type: str
    duration: float
    easing: str = "linear"
    config: Optional[Controls] = None
    seed: Optional[Seed] = None

    @property
    def has_payload(self) -> bool:
        return self.config is not None and self.seed is not None


@dataclass
class CameraState:
    zoom: Optional[float] = None
    orbit_y: Optional[float] = None
    orbit_x: Optional[float] = None


@dataclass
class CameraMove:
    type: str
    start_time: float
    end_time: float
    easing: str
    start: CameraState
    end: CameraState


@dataclass
class ParamTrack:
    param: str
    start_time: float
    end_time: float
    easing: str
    start: float
    end: float


@dataclass
class FocusState:
    focal_depth: float = 0.5
    blur_amount: float = 0.0


@dataclass
class FocusTrack:
    start_time: float
    end_time: float
    easing: str
    start: FocusState
    end: FocusState


@dataclass
class AnimationSettings:
    fps: float = 30
    width: int = 1920
    height: int = 1080


@dataclass
class Animation:
    settings: AnimationSettings
    events: list[ContentEvent]
    camera_moves: list[CameraMove] = field(default_factory=list)
    param_tracks: list[ParamTrack] = field(default_factory=list)
    focus_tracks: list[FocusTrack] = field(default_factory=list)


@dataclass
class FrameState:
    """Everything the renderer needs for one frame."""

    event_index: int
    event_progress: float
    event_type: str

    current_config: Controls
    current_seed: Seed
    fold_progress: float

    camera_zoom: float
    camera_orbit_y: float
    camera_orbit_x: float

    twinkle: float
    dynamism: float

    focal_depth: float
    blur_amount: float

    time: float

    morph_from_config: Optional[Controls] = None
    morph_from_seed: Optional[Seed] = None
    morph_to_config: Optional[Controls] = None
    morph_to_seed: Optional[Seed] = None
    morph_t: Optional[float] = None

    @property
    def is_morphing(self) -> bool:
        return self.morph_t is not None


def _event_starts(events: list[ContentEvent]) -> list[float]:
    return [0.0, *itertools.accumulate(ev.duration for ev in events)][:-1]


def total_duration(animation: Animation) -> float:
    return float(sum(ev.duration for ev in animation.events))


def total_frames(animation: Animation) -> int:
    return max(1, round_half_up(total_duration(animation) * animation.settings.fps))


def _resolve_config(events: list[ContentEvent], index: int) -> tuple[Controls, Seed]:
    """Most recent expand/transition payload at or before ``index``."""
    for i in range(index, -1, -1):
        ev = events[i]
        if ev.type in ("expand", "transition") and ev.has_payload:
            return ev.config, ev.seed
    raise InvalidParameter(f"events[{index}]: no expand or transition event establishes a config")


def _window_t(t: float, start: float, end: float, easing: str) -> float:
    span = end - start
    raw = (t - start) / span if span > 0 else 1.0
    return apply_easing(raw, easing)


def evaluate_timeline(animation: Animation, time_seconds: float) -> FrameState:
    """
    Evaluate the animation at an absolute time.

    Args:
        animation: Timeline definition.
        time_seconds: Absolute time; clamped to ``[0, total_duration]``.

    Returns:
        FrameState for that instant.

    Raises:
        EmptyTimeline: If the animation has no events.
        InvalidParameter: If no expand/transition precedes the active event.
    """
    events = animation.events
    if not events:
        raise EmptyTimeline()

    starts = _event_starts(events)
    dur = total_duration(animation)
    t = max(0.0, min(float(time_seconds), dur))

    ends = [s + ev.duration for s, ev in zip(starts, events)]
    index = min(bisect.bisect_right(ends, t), len(events) - 1)

    event = events[index]
    raw = min((t - starts[index]) / event.duration, 1.0) if event.duration > 0 else 1.0
    progress = apply_easing(raw, event.easing)

    config, seed = _resolve_config(events, index)

    fold_progress = 1.0
    if event.type == "expand":
        fold_progress = progress
    elif event.type == "collapse":
        fold_progress = 1.0 - progress

    morph = {}
    if event.type == "transition" and event.has_payload:
        from_config, from_seed = _resolve_config(events, index - 1) if index > 0 else (config, seed)
        morph = dict(
            morph_from_config=from_config,
            morph_from_seed=from_seed,
            morph_to_config=event.config,
            morph_to_seed=event.seed,
            morph_t=progress,
        )

    # Camera: zoom multiplies, orbits add; both sides must define a key.
    zoom, orbit_y, orbit_x = 1.0, 0.0, 0.0
    for move in animation.camera_moves:
        if t < move.start_time or t > move.end_time:
            continue
        mt = _window_t(t, move.start_time, move.end_time, move.easing)
        if move.start.zoom is not None and move.end.zoom is not None:
            zoom *= lerp(move.start.zoom, move.end.zoom, mt)
        if move.start.orbit_y is not None and move.end.orbit_y is not None:
            orbit_y += lerp(move.start.orbit_y, move.end.orbit_y, mt)
        if move.start.orbit_x is not None and move.end.orbit_x is not None:
            orbit_x += lerp(move.start.orbit_x, move.end.orbit_x, mt)

    live = {name: 0.0 for name in PARAM_NAMES}
    for track in animation.param_tracks:
        if t < track.start_time or t > track.end_time:
            continue
        tt = _window_t(t, track.start_time, track.end_time, track.easing)
        if track.param in live:
            live[track.param] += lerp(track.start, track.end, tt)

    focal_depth, blur_amount = 0.5, 0.0
    active = []
    for track in animation.focus_tracks:
        if t < track.start_time or t > track.end_time:
            continue
        tt = _window_t(t, track.start_time, track.end_time, track.easing)
        active.append((
            lerp(track.start.focal_depth, track.end.focal_depth, tt),
            lerp(track.start.blur_amount, track.end.blur_amount, tt),
        ))
    if active:
        focal_depth = sum(fd for fd, _ in active) / len(active)
        blur_amount = sum(ba for _, ba in active) / len(active)

    return FrameState(
        event_index=index,
        event_progress=progress,
        event_type=event.type,
        current_config=config,
        current_seed=seed,
        fold_progress=fold_progress,
        camera_zoom=zoom,
        camera_orbit_y=orbit_y,
        camera_orbit_x=orbit_x,
        twinkle=live["twinkle"],
        dynamism=live["dynamism"],
        focal_depth=focal_depth,
        blur_amount=blur_amount,
        time=t,
        **morph,
    )


def validate_animation(animation: Animation) -> None:
    """
    Check structural invariants of a timeline.

    Raises:
        EmptyTimeline: If there are no events.
        InvalidParameter: On the first violated invariant.
    """
    if animation.settings.fps <= 0:
        raise InvalidParameter("settings.fps: must be greater than 0")
    if not animation.events:
        raise EmptyTimeline()

    for i, ev in enumerate(animation.events):
        where = f"events[{i}]"
        if ev.type not in EVENT_TYPES:
            raise InvalidParameter(f"{where}.type: must be one of {', '.join(EVENT_TYPES)}")
        if not ev.duration > 0:
            raise InvalidParameter(f"{where}.duration: must be greater than 0")
        apply_easing(0.0, ev.easing)
        if ev.type in ("expand", "transition") and not ev.has_payload:
            raise InvalidParameter(f"{where}: {ev.type} requires config and seed")
    _resolve_config(animation.events, 0)

    tracks = [
        *(("cameraMoves", i, m) for i, m in enumerate(animation.camera_moves)),
        *(("paramTracks", i, p) for i, p in enumerate(animation.param_tracks)),
        *(("focusTracks", i, f) for i, f in enumerate(animation.focus_tracks)),
    ]
    for kind, i, track in tracks:
        if not track.start_time < track.end_time:
            raise InvalidParameter(f"{kind}[{i}]: startTime must be before endTime")
        if track.easing not in EASINGS:
            raise InvalidParameter(f"{kind}[{i}].easing: must be one of {', '.join(EASINGS)}")
    for i, track in enumerate(animation.param_tracks):
        if track.param not in PARAM_NAMES:
            raise InvalidParameter(f"paramTracks[{i}].param: must be one of {', '.join(PARAM_NAMES)}")


# JSON shape (camelCase, as written by the timeline editor)

def _camera_state_from_dict(d: dict) -> CameraState:
    return CameraState(zoom=d.get("zoom"), orbit_y=d.get("orbitY"), orbit_x=d.get("orbitX"))


def _camera_state_to_dict(s: CameraState) -> dict:
    out = {}
    if s.zoom is not None:
        out["zoom"] = s.zoom
    if s.orbit_y is not None:
        out["orbitY"] = s.orbit_y
    if s.orbit_x is not None:
        out["orbitX"] = s.orbit_x
    return out


def _focus_from_dict(d: dict) -> FocusState:
    return FocusState(focal_depth=d.get("focalDepth", 0.5), blur_amount=d.get("blurAmount", 0.0))


def _seed_to_json(seed: Seed) -> Any:
    return list(seed) if is_seed_tag(seed) else seed


def animation_from_dict(data: dict) -> Animation:
    """Build an Animation from its JSON mapping."""
    settings = data.get("settings", {})
    events = []
    for ev in data.get("events", []):
        config = ev.get("config")
        seed = ev.get("seed")
        events.append(ContentEvent(
            type=ev["type"],
            duration=float(ev["duration"]),
            easing=ev.get("easing", "linear"),
            config=Controls.from_mapping(config) if config is not None else None,
            seed=coerce_seed(seed) if seed is not None else None,
        ))
    return Animation(
        settings=AnimationSettings(
            fps=settings.get("fps", 30),
            width=settings.get("width", 1920),
            height=settings.get("height", 1080),
        ),
        events=events,
        camera_moves=[
            CameraMove(
                type=m.get("type", "zoom"),
                start_time=float(m["startTime"]),
                end_time=float(m["endTime"]),
                easing=m.get("easing", "linear"),
                start=_camera_state_from_dict(m.get("from", {})),
                end=_camera_state_from_dict(m.get("to", {})),
            )
            for m in data.get("cameraMoves", [])
        ],
        param_tracks=[
            ParamTrack(
                param=p["param"],
                start_time=float(p["startTime"]),
                end_time=float(p["endTime"]),
                easing=p.get("easing", "linear"),
                start=float(p["from"]),
                end=float(p["to"]),
            )
            for p in data.get("paramTracks", [])
        ],
        focus_tracks=[
            FocusTrack(
                start_time=float(f["startTime"]),
                end_time=float(f["endTime"]),
                easing=f.get("easing", "linear"),
                start=_focus_from_dict(f.get("from", {})),
                end=_focus_from_dict(f.get("to", {})),
            )
            for f in data.get("focusTracks", [])
        ],
    )


def animation_to_dict(animation: Animation) -> dict:
    """Inverse of ``animation_from_dict``."""
    events = []
    for ev in animation.events:
        out = {"type": ev.type, "duration": ev.duration, "easing": ev.easing}
        if ev.config is not None:
            out["config"] = ev.config.to_dict()
        if ev.seed is not None:
            out["seed"] = _seed_to_json(ev.seed)
        events.append(out)

    return {
        "settings": {
            "fps": animation.settings.fps,
            "width": animation.settings.width,
            "height": animation.settings.height,
        },
        "events": events,
        "cameraMoves": [
            {
                "type": m.type,
                "startTime": m.start_time,
                "endTime": m.end_time,
                "easing": m.easing,
                "from": _camera_state_to_dict(m.start),
                "to": _camera_state_to_dict(m.end),
            }
            for m in animation.camera_moves
        ],
        "paramTracks": [
            {
                "param": p.param,
                "startTime": p.start_time,
                "endTime": p.end_time,
                "easing": p.easing,
                "from": p.start,
                "to": p.end,
            }
            for p in animation.param_tracks
        ],
        "focusTracks": [
            {
                "startTime": f.start_time,
                "endTime": f.end_time,
                "easing": f.easing,
                "from": {"focalDepth": f.start.focal_depth, "blurAmount": f.start.blur_amount},
                "to": {"focalDepth": f.end.focal_depth, "blurAmount": f.end.blur_amount},
            }
            for f in animation.focus_tracks
        ],
    }

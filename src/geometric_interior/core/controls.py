"""
User-facing control vector.

Eleven continuous axes in [0, 1] plus the discrete topology tag. Raw
input is sanitised on ingress: anything non-numeric or non-finite falls
back to the documented default, everything else is clamped.
"""

import math
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Mapping

CONTROL_AXES = (
    "density",
    "luminosity",
    "fracture",
    "coherence",
    "hue",
    "spectrum",
    "chroma",
    "scale",
    "division",
    "faceting",
    "flow",
)

STRUCTURE_AXES = (
    "density",
    "luminosity",
    "fracture",
    "coherence",
    "scale",
    "division",
    "faceting",
    "flow",
)

COLOR_AXES = ("hue", "spectrum", "chroma")

TOPOLOGIES = ("flow-field",)

DEFAULTS: dict[str, float] = {
    "density": 0.5,
    "luminosity": 0.5,
    "fracture": 0.5,
    "coherence": 0.5,
    "hue": 0.783,
    "spectrum": 0.239,
    "chroma": 0.417,
    "scale": 0.5,
    "division": 0.5,
    "faceting": 0.5,
    "flow": 0.5,
    "depth": 0.5,
}


def sanitize_axis(value: Any, default: float) -> float:
    """Clamp a raw value to [0, 1], substituting ``default`` for junk."""
    if isinstance(value, bool):
        return default
    try:
        v = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(v):
        return default
    return max(0.0, min(1.0, v))


@dataclass(frozen=True)
class Controls:
    """Normalised parameter vector driving a scene."""

    density: float = DEFAULTS["density"]
    luminosity: float = DEFAULTS["luminosity"]
    fracture: float = DEFAULTS["fracture"]
    coherence: float = DEFAULTS["coherence"]
    hue: float = DEFAULTS["hue"]
    spectrum: float = DEFAULTS["spectrum"]
    chroma: float = DEFAULTS["chroma"]
    scale: float = DEFAULTS["scale"]
    division: float = DEFAULTS["division"]
    faceting: float = DEFAULTS["faceting"]
    flow: float = DEFAULTS["flow"]
    topology: str = "flow-field"
    # Legacy axis: camera distance, FOV and vignette only.
    depth: float = DEFAULTS["depth"]

    def __post_init__(self):
        for f in fields(self):
            if f.name == "topology":
                continue
            object.__setattr__(
                self, f.name, sanitize_axis(getattr(self, f.name), DEFAULTS[f.name])
            )
        if self.topology not in TOPOLOGIES:
            object.__setattr__(self, "topology", "flow-field")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "Controls":
        """Build controls from a loose mapping, ignoring unknown keys."""
        data = data or {}
        kwargs = {k: data[k] for k in (*CONTROL_AXES, "depth", "topology") if k in data}
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def with_values(self, **changes: Any) -> "Controls":
        return replace(self, **changes)

    def axis(self, name: str) -> float:
        return getattr(self, name)

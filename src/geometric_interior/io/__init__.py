"""Share links, still configs, export bundles and share cards."""

from geometric_interior.io.exporter import VisualExporter
from geometric_interior.io.og import OgCardCache
from geometric_interior.io.still_config import validate_still_config
from geometric_interior.io.url_state import ShareState, decode_state_from_url, encode_state_to_url

__all__ = [
    "VisualExporter",
    "OgCardCache",
    "validate_still_config",
    "ShareState",
    "encode_state_to_url",
    "decode_state_from_url",
]

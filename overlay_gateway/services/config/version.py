"""
Overlay Version Gate

Decides whether a candidate overlay supersedes the cached one.
"""

from collections.abc import Mapping
from typing import Any


def overlay_version(overlay: Any) -> int:
    """
    Extract an overlay version.

    Accepts a mapping with a "version" key, an object with a ``version``
    attribute, or a bare integer. Missing or None counts as 0.
    """
    if overlay is None:
        return 0
    if isinstance(overlay, bool):
        return 0
    if isinstance(overlay, int):
        return overlay
    if isinstance(overlay, Mapping):
        version = overlay.get("version")
    else:
        version = getattr(overlay, "version", None)
    if version is None or isinstance(version, bool):
        return 0
    try:
        return int(version)
    except (TypeError, ValueError):
        return 0


def is_newer(cached: Any, candidate: Any) -> bool:
    """True if the candidate version is strictly greater than the cached one"""
    return overlay_version(candidate) > overlay_version(cached)

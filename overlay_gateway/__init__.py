"""
Overlay Gateway

Applies versioned configuration overlays from a remote management plane
to a storage gateway's live configuration.
"""

from .common.config import LiveConfiguration, PatchPolicy
from .services.config import (
    OverlayService,
    PatchResult,
    PatchStatus,
    is_newer,
    patch_configuration,
)

__version__ = "0.1.0"

__all__ = [
    "LiveConfiguration",
    "PatchPolicy",
    "OverlayService",
    "PatchResult",
    "PatchStatus",
    "is_newer",
    "patch_configuration",
]

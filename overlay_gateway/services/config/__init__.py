"""
Overlay Config Service - Live Configuration Patching

Responsibilities:
- Gate overlays on their version (stale and duplicate overlays are ignored)
- Translate users, locations, endpoints and browser access into live config
- Decrypt embedded secrets with the management private key
- Cache applied overlays for restart
"""

from .auth import build_account, translate_users
from .cache import OverlayCache
from .endpoints import translate_endpoints
from .locations import LOCATION_TRANSLATORS, translate_location, translate_locations
from .patch import PatchResult, PatchStatus, patch_configuration
from .secret_codec import SecretCodec, decrypt_secret, encrypt_secret
from .service import OverlayService
from .validator import OverlayValidator, load_overlay
from .version import is_newer, overlay_version

__all__ = [
    "build_account",
    "translate_users",
    "OverlayCache",
    "translate_endpoints",
    "LOCATION_TRANSLATORS",
    "translate_location",
    "translate_locations",
    "PatchResult",
    "PatchStatus",
    "patch_configuration",
    "SecretCodec",
    "decrypt_secret",
    "encrypt_secret",
    "OverlayService",
    "OverlayValidator",
    "load_overlay",
    "is_newer",
    "overlay_version",
]

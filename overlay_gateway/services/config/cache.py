"""
Overlay Cache

Persists the last applied overlay in the metadata store so the gateway
can restore its configuration on restart without the management plane.

Layout in the management database:
- configuration/overlay-version - version of the latest saved overlay
- configuration/overlay/<version> - the overlay document itself
"""

from typing import Any

from overlay_gateway.common.exceptions import StoreError
from overlay_gateway.common.logging_setup import get_service_logger
from overlay_gateway.common.state import MetadataStore

from .version import is_newer, overlay_version

logger = get_service_logger("overlay.cache")

LATEST_OVERLAY_VERSION_KEY = "configuration/overlay-version"
OVERLAY_KEY_PREFIX = "configuration/overlay/"


class OverlayCache:
    """Cached overlay documents in the management database"""

    def __init__(self, store: MetadataStore, database: str = "PENSIEVE"):
        self.store = store
        self.database = database

    def _overlay_key(self, version: int) -> str:
        return f"{OVERLAY_KEY_PREFIX}{version}"

    def get_current_version(self) -> int:
        """Version of the latest saved overlay, 0 if none"""
        return overlay_version(self.store.get(self.database, LATEST_OVERLAY_VERSION_KEY))

    def load(self) -> dict[str, Any]:
        """
        Load the latest cached overlay.

        Returns:
            Cached overlay document, or {"version": 0} if none was saved
        """
        version = self.get_current_version()
        if not version:
            logger.info("No cached overlay found")
            return {"version": 0}

        overlay = self.store.get(self.database, self._overlay_key(version))
        if overlay is None:
            logger.warning(
                f"Overlay version pointer is {version} but the document is missing",
                extra={"overlay_version": version},
            )
            return {"version": 0}

        logger.info(f"Loaded cached overlay (version: {version})", extra={"overlay_version": version})
        return overlay

    def save(self, overlay: dict[str, Any]) -> bool:
        """
        Save an overlay if it is newer than the cached one.

        The document is written before the version pointer, so the
        pointer never names a missing document.

        Returns:
            True if the overlay was saved
        """
        cached_version = self.get_current_version()
        if not is_newer(cached_version, overlay):
            logger.debug(
                f"Not caching overlay {overlay_version(overlay)}: cached version is {cached_version}"
            )
            return False

        version = overlay_version(overlay)
        try:
            self.store.put(self.database, self._overlay_key(version), overlay)
            self.store.put(self.database, LATEST_OVERLAY_VERSION_KEY, version)
        except StoreError as e:
            logger.error(f"Failed to cache overlay {version}: {e}", exc_info=True)
            raise

        logger.info(
            f"Overlay cached (version: {cached_version} -> {version})",
            extra={"overlay_version": version, "previous_version": cached_version},
        )
        return True

    def get_version(self, version: int) -> dict[str, Any] | None:
        """Load a specific cached overlay version"""
        return self.store.get(self.database, self._overlay_key(version))

    def get_versions(self) -> list[int]:
        """Cached overlay versions, newest first"""
        versions = []
        for key in self.store.list_keys(self.database, OVERLAY_KEY_PREFIX):
            suffix = key[len(OVERLAY_KEY_PREFIX):]
            if suffix.isdigit():
                versions.append(int(suffix))
        return sorted(versions, reverse=True)

    def clear(self) -> None:
        """Remove all cached overlays"""
        for version in self.get_versions():
            self.store.delete(self.database, self._overlay_key(version))
        self.store.delete(self.database, LATEST_OVERLAY_VERSION_KEY)
        logger.info("Overlay cache cleared")

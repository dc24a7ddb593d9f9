"""
Overlay Service

Entry point used by the gateway to keep its live configuration in step
with the management plane:
- Load the management private key from the metadata store
- Restore the cached overlay on startup
- Apply overlays handed over by the fetcher and cache the applied ones
"""

import threading
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from overlay_gateway.common.config import LiveConfiguration, OverlayDescriptor
from overlay_gateway.common.exceptions import ConfigError
from overlay_gateway.common.logging_setup import configure_logging, get_service_logger
from overlay_gateway.common.settings import ServiceSettings, load_service_settings
from overlay_gateway.common.state import FileMetadataStore, MetadataStore

from .cache import OverlayCache
from .patch import PatchResult, patch_configuration

logger = get_service_logger("overlay.service")


class OverlayService:
    """
    Overlay Service

    Serializes patch attempts so that an overlay fetched while another
    one is being applied is gated against the updated version.
    """

    def __init__(
        self,
        store: MetadataStore,
        live_config: LiveConfiguration | None = None,
        settings: ServiceSettings | None = None,
    ):
        self.settings = settings or ServiceSettings()
        self.store = store
        self.live_config = live_config or LiveConfiguration()
        self.cache = OverlayCache(store, self.settings.management_database)

        self._private_key: str | None = None
        self._last_result: PatchResult | None = None
        self._last_applied_at: datetime | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: ServiceSettings | None = None,
        live_config: LiveConfiguration | None = None,
    ) -> "OverlayService":
        """Build a service backed by the file store configured in settings"""
        settings = settings or load_service_settings()
        configure_logging(settings.log_level, settings.log_format)
        return cls(FileMetadataStore(settings.state_dir), live_config, settings)

    def load_credentials(self) -> str:
        """
        Load the management private key.

        Raises:
            ConfigError: If no key is stored
        """
        credentials = self.store.get(self.settings.management_database, self.settings.token_key)
        if not isinstance(credentials, Mapping) or not credentials.get("privateKey"):
            raise ConfigError(
                f"No management credentials under {self.settings.token_key} "
                f"in {self.settings.management_database}"
            )

        self._private_key = credentials["privateKey"]
        logger.info("Management credentials loaded")
        return self._private_key

    def bootstrap(self) -> PatchResult:
        """
        Restore the cached overlay into the live configuration.

        Raises:
            ConfigError: If no management credentials are stored
        """
        self.load_credentials()
        overlay = self.cache.load()
        logger.info(
            f"Bootstrapping from cached overlay (version: {overlay.get('version')})",
            extra={"overlay_version": overlay.get("version")},
        )
        with self._lock:
            return self._apply(overlay)

    def apply_and_save(self, overlay: Mapping[str, Any]) -> PatchResult:
        """
        Apply an overlay and cache it when it was applied.

        Raises:
            ConfigError: If no management credentials are stored
            StoreError: If the applied overlay cannot be cached
        """
        if self._private_key is None:
            self.load_credentials()

        with self._lock:
            result = self._apply(overlay)
            if result.applied and result.version is not None:
                self.cache.save(dict(overlay))
            return result

    def _apply(self, overlay: Mapping[str, Any] | OverlayDescriptor) -> PatchResult:
        result = patch_configuration(
            overlay,
            self.live_config,
            private_key=self._private_key,
            policy=self.settings.policy,
        )
        self._last_result = result
        if result.applied:
            self._last_applied_at = datetime.now(timezone.utc)
        return result

    def get_status(self) -> dict[str, Any]:
        """Current overlay state for health reporting"""
        last = self._last_result
        return {
            "overlay_version": self.live_config.overlay_version,
            "cached_version": self.cache.get_current_version(),
            "last_status": last.status.value if last else None,
            "last_error": str(last.error) if last and last.error else None,
            "last_applied_at": self._last_applied_at.isoformat() if self._last_applied_at else None,
        }

"""
Patch Applier

Applies an overlay to the live configuration:
1. Version gate (stale or duplicate overlays are ignored)
2. Translate every section the overlay carries
3. Commit all translated sections at once, then bump overlay_version

A failing section aborts the whole patch and leaves the live
configuration untouched. Errors are returned in the PatchResult.
"""

from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from overlay_gateway.common.config import (
    LiveConfiguration,
    OverlayDescriptor,
    OverlaySection,
    PatchPolicy,
)
from overlay_gateway.common.exceptions import (
    OverlayError,
    TranslationError,
    ValidationError,
)
from overlay_gateway.common.logging_setup import get_service_logger, log_patch_result

from .auth import translate_users
from .endpoints import translate_endpoints
from .locations import translate_locations
from .secret_codec import SecretCodec
from .validator import load_overlay
from .version import is_newer

logger = get_service_logger("overlay.patch")

# Sections whose translation needs the private key
SECRET_SECTIONS = (OverlaySection.USERS, OverlaySection.LOCATIONS)


class PatchStatus(str, Enum):
    """Outcome of one patch attempt"""
    APPLIED = "applied"
    STALE_IGNORED = "stale_ignored"
    FAILED = "failed"


@dataclass
class PatchResult:
    """Result reported to the caller of patch_configuration"""
    status: PatchStatus
    version: int | None
    previous_version: int
    sections: list[str] = field(default_factory=list)
    section: str | None = None
    error: OverlayError | None = None

    @property
    def ok(self) -> bool:
        """True for applied and stale overlays"""
        return self.status != PatchStatus.FAILED

    @property
    def applied(self) -> bool:
        return self.status == PatchStatus.APPLIED


def _is_empty(descriptor: OverlayDescriptor, section: OverlaySection) -> bool:
    if section == OverlaySection.USERS:
        return not descriptor.users
    if section == OverlaySection.LOCATIONS:
        return not descriptor.locations
    if section == OverlaySection.ENDPOINTS:
        return not descriptor.endpoints
    return descriptor.browser_access_enabled is None


def effective_sections(descriptor: OverlayDescriptor, policy: PatchPolicy) -> list[OverlaySection]:
    """Sections of the overlay that will change the live configuration"""
    sections = descriptor.present_sections()
    if policy.empty_sections_clear:
        return sections
    return [s for s in sections if not _is_empty(descriptor, s)]


def _load_codec(private_key: Any, sections: list[OverlaySection]) -> SecretCodec | None:
    """Load the private key only when a secret-bearing section is present"""
    secret_sections = [s for s in sections if s in SECRET_SECTIONS]
    if not secret_sections or private_key is None:
        return None
    try:
        return SecretCodec(private_key)
    except TranslationError as e:
        e.section = secret_sections[0].value
        raise


def _run_sequential(tasks: dict[OverlaySection, Callable[[], Any]]) -> dict[OverlaySection, Any]:
    return {section: task() for section, task in tasks.items()}


def _run_parallel(
    tasks: dict[OverlaySection, Callable[[], Any]],
    max_workers: int,
) -> dict[OverlaySection, Any]:
    """Run translators concurrently; the first failure cancels the rest"""
    results: dict[OverlaySection, Any] = {}
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(task): section for section, task in tasks.items()}
        try:
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        except BaseException:
            for pending in futures:
                pending.cancel()
            raise
    return results


def translate_overlay(
    descriptor: OverlayDescriptor,
    sections: list[OverlaySection],
    private_key: Any,
    policy: PatchPolicy,
    known_locations: set[str],
) -> dict[OverlaySection, Any]:
    """
    Translate the given overlay sections without touching live state.

    Raises:
        TranslationError: On the first failing section
    """
    codec = _load_codec(private_key, sections)

    tasks: dict[OverlaySection, Callable[[], Any]] = {}
    if OverlaySection.USERS in sections:
        tasks[OverlaySection.USERS] = lambda: translate_users(descriptor.users, codec, policy.naming)
    if OverlaySection.LOCATIONS in sections:
        tasks[OverlaySection.LOCATIONS] = lambda: translate_locations(descriptor.locations, codec)
    if OverlaySection.ENDPOINTS in sections:
        tasks[OverlaySection.ENDPOINTS] = lambda: translate_endpoints(descriptor.endpoints)
    if OverlaySection.BROWSER_ACCESS in sections:
        tasks[OverlaySection.BROWSER_ACCESS] = lambda: bool(descriptor.browser_access_enabled)

    if policy.parallel_translation and len(tasks) > 1:
        derived = _run_parallel(tasks, policy.max_workers)
    else:
        derived = _run_sequential(tasks)

    if policy.validate_endpoint_locations and OverlaySection.ENDPOINTS in derived:
        if OverlaySection.LOCATIONS in derived:
            known_locations = set(derived[OverlaySection.LOCATIONS])
        for hostname, location_name in derived[OverlaySection.ENDPOINTS].items():
            if location_name not in known_locations:
                raise ValidationError(
                    f"endpoint {hostname!r} routes to unknown location {location_name!r}",
                    field="locationName",
                    location=location_name,
                    section=OverlaySection.ENDPOINTS.value,
                )

    return derived


def _commit(
    live_config: LiveConfiguration,
    descriptor: OverlayDescriptor,
    derived: dict[OverlaySection, Any],
) -> None:
    if OverlaySection.USERS in derived:
        live_config.auth_data = derived[OverlaySection.USERS]
    if OverlaySection.LOCATIONS in derived:
        live_config.location_constraints = derived[OverlaySection.LOCATIONS]
    if OverlaySection.ENDPOINTS in derived:
        live_config.rest_endpoints = derived[OverlaySection.ENDPOINTS]
    if OverlaySection.BROWSER_ACCESS in derived:
        live_config.browser_access_enabled = derived[OverlaySection.BROWSER_ACCESS]
    if descriptor.version is not None:
        live_config.overlay_version = descriptor.version


def patch_configuration(
    overlay: OverlayDescriptor | Mapping[str, Any],
    live_config: LiveConfiguration,
    private_key: Any = None,
    policy: PatchPolicy | None = None,
) -> PatchResult:
    """
    Apply an overlay to the live configuration.

    An overlay without a version is always admitted (bootstrap). A
    versioned overlay is admitted only if newer than
    live_config.overlay_version; otherwise nothing changes and the
    result is STALE_IGNORED.

    Args:
        overlay: Overlay document or an already loaded OverlayDescriptor
        live_config: Configuration to patch in place
        private_key: PEM private key for encrypted secrets
        policy: Patch behavior switches

    Returns:
        PatchResult describing what happened
    """
    policy = policy or PatchPolicy()

    if isinstance(overlay, OverlayDescriptor):
        descriptor = overlay
    else:
        try:
            descriptor = load_overlay(overlay)
        except ValidationError as e:
            result = PatchResult(
                status=PatchStatus.FAILED,
                version=None,
                previous_version=live_config.overlay_version,
                section=e.section or "overlay",
                error=e,
            )
            log_patch_result(logger, result)
            return result

    with live_config.lock:
        previous_version = live_config.overlay_version

        if descriptor.version is not None and not is_newer(previous_version, descriptor.version):
            result = PatchResult(
                status=PatchStatus.STALE_IGNORED,
                version=descriptor.version,
                previous_version=previous_version,
            )
            log_patch_result(logger, result)
            return result

        sections = effective_sections(descriptor, policy)

        try:
            derived = translate_overlay(
                descriptor,
                sections,
                private_key,
                policy,
                known_locations=set(live_config.location_constraints),
            )
        except TranslationError as e:
            result = PatchResult(
                status=PatchStatus.FAILED,
                version=descriptor.version,
                previous_version=previous_version,
                section=e.section,
                error=e,
            )
            log_patch_result(logger, result)
            return result

        _commit(live_config, descriptor, derived)

        result = PatchResult(
            status=PatchStatus.APPLIED,
            version=descriptor.version,
            previous_version=previous_version,
            sections=[s.value for s in sections],
        )
        log_patch_result(logger, result)
        return result

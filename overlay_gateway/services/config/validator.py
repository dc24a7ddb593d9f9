"""
Overlay Validator

Checks the shape of overlay documents and loads them into
OverlayDescriptor. Field-level requirements of each section are
enforced later by the section translators.
"""

from collections.abc import Mapping
from typing import Any

from overlay_gateway.common.config import (
    EndpointEntry,
    LocationEntry,
    OverlayDescriptor,
    UserEntry,
)
from overlay_gateway.common.exceptions import ValidationError
from overlay_gateway.common.logging_setup import get_service_logger

logger = get_service_logger("overlay.validator")


class OverlayValidator:
    """Validates raw overlay documents"""

    def validate(self, overlay: Any) -> tuple[bool, list[str]]:
        """
        Validate an overlay document.

        Args:
            overlay: Decoded overlay document

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        if not isinstance(overlay, Mapping):
            return False, ["overlay: must be an object"]

        errors: list[str] = []
        errors.extend(self._validate_version(overlay))
        errors.extend(self._validate_users(overlay))
        errors.extend(self._validate_endpoints(overlay))
        errors.extend(self._validate_locations(overlay))
        errors.extend(self._validate_browser_access(overlay))

        is_valid = len(errors) == 0

        if not is_valid:
            logger.warning(
                f"Overlay validation failed: {len(errors)} errors",
                extra={"errors": errors},
            )
        else:
            logger.debug("Overlay validation passed")

        return is_valid, errors

    def _validate_version(self, overlay: Mapping) -> list[str]:
        version = overlay.get("version")
        if version is None:
            return []
        if isinstance(version, bool) or not isinstance(version, int):
            return ["version: must be an integer"]
        if version < 0:
            return ["version: must be non-negative"]
        return []

    def _validate_users(self, overlay: Mapping) -> list[str]:
        users = overlay.get("users")
        if users is None:
            return []
        if not isinstance(users, list):
            return ["users: must be a list"]
        return [
            f"users[{i}]: must be an object"
            for i, user in enumerate(users)
            if not isinstance(user, Mapping)
        ]

    def _validate_endpoints(self, overlay: Mapping) -> list[str]:
        endpoints = overlay.get("endpoints")
        if endpoints is None:
            return []
        if not isinstance(endpoints, list):
            return ["endpoints: must be a list"]
        return [
            f"endpoints[{i}]: must be an object"
            for i, endpoint in enumerate(endpoints)
            if not isinstance(endpoint, Mapping)
        ]

    def _validate_locations(self, overlay: Mapping) -> list[str]:
        locations = overlay.get("locations")
        if locations is None:
            return []
        if not isinstance(locations, Mapping):
            return ["locations: must be an object keyed by location name"]

        errors = []
        for key, location in locations.items():
            if not isinstance(location, Mapping):
                errors.append(f"locations.{key}: must be an object")
                continue
            details = location.get("details")
            if details is not None and not isinstance(details, Mapping):
                errors.append(f"locations.{key}.details: must be an object")
        return errors

    def _validate_browser_access(self, overlay: Mapping) -> list[str]:
        browser_access = overlay.get("browserAccess")
        if browser_access is None:
            return []
        if not isinstance(browser_access, Mapping):
            return ["browserAccess: must be an object"]
        enabled = browser_access.get("enabled")
        if enabled is not None and not isinstance(enabled, bool):
            return ["browserAccess.enabled: must be a boolean"]
        return []


def load_overlay(data: Any) -> OverlayDescriptor:
    """
    Load an OverlayDescriptor from a decoded overlay document.

    Raises:
        ValidationError: If the document shape is invalid
    """
    is_valid, errors = OverlayValidator().validate(data)
    if not is_valid:
        section = errors[0].split(":", 1)[0].split("[", 1)[0].split(".", 1)[0]
        raise ValidationError("; ".join(errors), section=section)

    users = None
    if data.get("users") is not None:
        users = [
            UserEntry(
                access_key=u.get("accessKey"),
                secret_key=u.get("secretKey"),
                canonical_id=u.get("canonicalId"),
                user_name=u.get("userName"),
            )
            for u in data["users"]
        ]

    endpoints = None
    if data.get("endpoints") is not None:
        endpoints = [
            EndpointEntry(
                hostname=e.get("hostname"),
                location_name=e.get("locationName"),
            )
            for e in data["endpoints"]
        ]

    locations = None
    if data.get("locations") is not None:
        locations = {
            key: LocationEntry(
                name=loc.get("name") or key,
                location_type=loc.get("locationType"),
                legacy_aws_behavior=loc.get("legacyAwsBehavior"),
                details=dict(loc.get("details") or {}),
            )
            for key, loc in data["locations"].items()
        }

    browser_access = data.get("browserAccess")

    return OverlayDescriptor(
        version=data.get("version"),
        users=users,
        endpoints=endpoints,
        locations=locations,
        browser_access_enabled=browser_access.get("enabled") if browser_access is not None else None,
        browser_access_present=browser_access is not None,
    )

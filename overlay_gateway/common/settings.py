"""
Service Settings

Local settings for the overlay service, read from a YAML file with
environment variable fallbacks.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .config import AccountNaming, PatchPolicy
from .exceptions import ConfigError
from .logging_setup import get_service_logger

logger = get_service_logger("settings")


@dataclass
class ServiceSettings:
    """Overlay service runtime settings"""
    state_dir: str = "/opt/overlay-gateway/data/state"
    log_level: str = "INFO"
    log_format: str = "json"
    management_database: str = "PENSIEVE"
    token_key: str = "auth/zenko/remote-management-token"
    policy: PatchPolicy = field(default_factory=PatchPolicy)


def find_settings_path() -> str:
    """Find settings file"""
    possible_paths = [
        "/etc/overlay-gateway/config.yaml",
        "/opt/overlay-gateway/config.yaml",
        Path(__file__).parent.parent.parent / "config.yaml",
    ]

    for path in possible_paths:
        path = Path(path)
        if path.exists():
            return str(path)

    return str(possible_paths[0])


def load_service_settings(path: str | None = None) -> ServiceSettings:
    """
    Load service settings.

    A missing file yields defaults. Environment variables override
    the logging and state directory values from the file.

    Raises:
        ConfigError: If the file is not valid YAML or has wrong types
    """
    path = path or os.environ.get("OVERLAY_GATEWAY_CONFIG") or find_settings_path()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning(f"Settings file not found: {path}, using defaults")
        data = {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Error parsing settings {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Settings {path} must be a mapping")

    try:
        return _settings_from_dict(data)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid settings in {path}: {e}") from e


def _settings_from_dict(data: dict) -> ServiceSettings:
    logging_data = data.get("logging", {})
    state_data = data.get("state", {})
    patch_data = data.get("patch", {})
    accounts_data = data.get("accounts", {})

    naming = AccountNaming(
        shortid=str(accounts_data.get("shortid", "123456789012")),
        email=accounts_data.get("email", "customaccount1@setbyenv.com"),
        default_name=accounts_data.get("default_name", "CustomAccount"),
    )

    policy = PatchPolicy(
        empty_sections_clear=bool(patch_data.get("empty_sections_clear", True)),
        validate_endpoint_locations=bool(patch_data.get("validate_endpoint_locations", False)),
        parallel_translation=bool(patch_data.get("parallel_translation", False)),
        max_workers=int(patch_data.get("max_workers", 4)),
        naming=naming,
    )
    if policy.max_workers < 1:
        raise ValueError("patch.max_workers must be at least 1")

    return ServiceSettings(
        state_dir=os.environ.get("OVERLAY_GATEWAY_STATE_DIR")
        or state_data.get("dir", "/opt/overlay-gateway/data/state"),
        log_level=os.environ.get("OVERLAY_GATEWAY_LOG_LEVEL")
        or logging_data.get("level", "INFO"),
        log_format=os.environ.get("OVERLAY_GATEWAY_LOG_FORMAT")
        or logging_data.get("format", "json"),
        management_database=state_data.get("management_database", "PENSIEVE"),
        token_key=state_data.get("token_key", "auth/zenko/remote-management-token"),
        policy=policy,
    )

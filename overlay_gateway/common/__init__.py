"""
Common Utilities

Shared modules used across the overlay gateway:
- config.py - Overlay and live configuration dataclasses
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
- settings.py - Service settings loader
- state.py - Metadata store implementations
"""

from .config import (
    BackendType,
    OverlaySection,
    UserEntry,
    LocationEntry,
    EndpointEntry,
    OverlayDescriptor,
    AccessKeyPair,
    Account,
    AuthData,
    BackendCredentials,
    AzureDetails,
    AwsS3Details,
    GcpDetails,
    LocationConstraint,
    LiveConfiguration,
    AccountNaming,
    PatchPolicy,
)
from .exceptions import (
    OverlayError,
    ConfigError,
    StoreError,
    TranslationError,
    ValidationError,
    UnsupportedBackendError,
    DecryptionError,
)
from .logging_setup import (
    setup_logging,
    get_service_logger,
    configure_logging,
    log_patch_result,
)
from .settings import ServiceSettings, load_service_settings
from .state import MetadataStore, InMemoryMetadataStore, FileMetadataStore

__all__ = [
    # Config
    "BackendType",
    "OverlaySection",
    "UserEntry",
    "LocationEntry",
    "EndpointEntry",
    "OverlayDescriptor",
    "AccessKeyPair",
    "Account",
    "AuthData",
    "BackendCredentials",
    "AzureDetails",
    "AwsS3Details",
    "GcpDetails",
    "LocationConstraint",
    "LiveConfiguration",
    "AccountNaming",
    "PatchPolicy",
    # Exceptions
    "OverlayError",
    "ConfigError",
    "StoreError",
    "TranslationError",
    "ValidationError",
    "UnsupportedBackendError",
    "DecryptionError",
    # Logging
    "setup_logging",
    "get_service_logger",
    "configure_logging",
    "log_patch_result",
    # Settings
    "ServiceSettings",
    "load_service_settings",
    # State
    "MetadataStore",
    "InMemoryMetadataStore",
    "FileMetadataStore",
]

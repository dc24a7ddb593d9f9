"""
Configuration Dataclasses

Type-safe structures for overlay descriptors and the live gateway
configuration they are translated into.
"""

import threading
from dataclasses import dataclass, field
from typing import Any
from enum import Enum


class BackendType(str, Enum):
    """Storage backend types - must match the gateway's location types"""
    MEM = "mem"
    FILE = "file"
    AZURE = "azure"
    AWS_S3 = "aws_s3"
    GCP = "gcp"


class OverlaySection(str, Enum):
    """Overlay sections that map onto live configuration fields"""
    USERS = "users"
    LOCATIONS = "locations"
    ENDPOINTS = "endpoints"
    BROWSER_ACCESS = "browserAccess"


# ============================================
# OVERLAY (external input)
# ============================================

@dataclass
class UserEntry:
    """Overlay user, secret key still encrypted"""
    access_key: str | None
    secret_key: str | None = field(default=None, repr=False)
    canonical_id: str | None = None
    user_name: str | None = None


@dataclass
class LocationEntry:
    """Overlay storage location"""
    name: str
    location_type: str | None
    legacy_aws_behavior: bool | None = None
    details: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class EndpointEntry:
    """Overlay hostname routing rule"""
    hostname: str | None
    location_name: str | None


@dataclass
class OverlayDescriptor:
    """
    Versioned configuration document from the management plane.

    A section left as None is absent from the overlay and must not
    change the live configuration.
    """
    version: int | None = None
    users: list[UserEntry] | None = None
    endpoints: list[EndpointEntry] | None = None
    locations: dict[str, LocationEntry] | None = None
    browser_access_enabled: bool | None = None
    browser_access_present: bool = False

    def present_sections(self) -> list[OverlaySection]:
        """Sections carried by this overlay, in translation order"""
        sections = []
        if self.users is not None:
            sections.append(OverlaySection.USERS)
        if self.locations is not None:
            sections.append(OverlaySection.LOCATIONS)
        if self.endpoints is not None:
            sections.append(OverlaySection.ENDPOINTS)
        if self.browser_access_present:
            sections.append(OverlaySection.BROWSER_ACCESS)
        return sections


# ============================================
# LIVE CONFIGURATION (internal shape)
# ============================================

@dataclass
class AccessKeyPair:
    """Account access key with decrypted secret"""
    access: str
    secret: str = field(repr=False)

    def to_dict(self) -> dict[str, str]:
        return {"access": self.access, "secret": self.secret}


@dataclass
class Account:
    """Gateway account record"""
    name: str
    email: str
    arn: str
    canonical_id: str
    shortid: str
    keys: list[AccessKeyPair] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "arn": self.arn,
            "canonicalID": self.canonical_id,
            "shortid": self.shortid,
            "keys": [k.to_dict() for k in self.keys],
        }


@dataclass
class AuthData:
    """Accounts known to the gateway"""
    accounts: list[Account] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"accounts": [a.to_dict() for a in self.accounts]}


@dataclass
class BackendCredentials:
    """Access key / decrypted secret pair for S3-compatible backends"""
    access_key: str
    secret_key: str = field(repr=False)

    def to_dict(self) -> dict[str, str]:
        return {"accessKey": self.access_key, "secretKey": self.secret_key}


@dataclass
class AzureDetails:
    """Azure Blob storage location details"""
    bucket_match: Any
    storage_endpoint: str
    storage_account_name: str
    storage_access_key: str = field(repr=False)
    container_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucketMatch": self.bucket_match,
            "azureStorageEndpoint": self.storage_endpoint,
            "azureStorageAccountName": self.storage_account_name,
            "azureStorageAccessKey": self.storage_access_key,
            "azureContainerName": self.container_name,
        }


@dataclass
class AwsS3Details:
    """AWS S3 (or S3-compatible) location details"""
    bucket_match: Any
    bucket_name: str
    endpoint: str
    credentials: BackendCredentials
    https: bool = True
    path_style: bool = False
    server_side_encryption: bool = False
    supports_versioning: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucketMatch": self.bucket_match,
            "bucketName": self.bucket_name,
            "awsEndpoint": self.endpoint,
            "credentials": self.credentials.to_dict(),
            "https": self.https,
            "pathStyle": self.path_style,
            "serverSideEncryption": self.server_side_encryption,
            "supportsVersioning": self.supports_versioning,
        }


@dataclass
class GcpDetails:
    """Google Cloud Storage location details"""
    bucket_match: Any
    bucket_name: str
    endpoint: str
    credentials: BackendCredentials
    mpu_bucket_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucketMatch": self.bucket_match,
            "bucketName": self.bucket_name,
            "gcpEndpoint": self.endpoint,
            "credentials": self.credentials.to_dict(),
            "mpuBucketName": self.mpu_bucket_name,
        }


@dataclass
class LocationConstraint:
    """One storage backend target of the gateway"""
    type: BackendType
    legacy_aws_behavior: bool = False
    details: AzureDetails | AwsS3Details | GcpDetails | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "legacyAwsBehavior": self.legacy_aws_behavior,
        }
        if self.details is not None:
            data["details"] = self.details.to_dict()
        return data


@dataclass
class LiveConfiguration:
    """
    Process-wide runtime configuration patched from overlays.

    Owned by the surrounding process. Writers must hold ``lock``; the
    patch engine is the only writer.
    """
    overlay_version: int = 0
    auth_data: AuthData | None = None
    location_constraints: dict[str, LocationConstraint] = field(default_factory=dict)
    rest_endpoints: dict[str, str] = field(default_factory=dict)
    browser_access_enabled: bool | None = None
    lock: threading.RLock = field(
        default_factory=threading.RLock, repr=False, compare=False
    )

    def snapshot(self) -> dict[str, Any]:
        """Plain-dict view of the current configuration"""
        with self.lock:
            return {
                "overlayVersion": self.overlay_version,
                "authData": self.auth_data.to_dict() if self.auth_data else None,
                "locationConstraints": {
                    name: lc.to_dict()
                    for name, lc in self.location_constraints.items()
                },
                "restEndpoints": dict(self.rest_endpoints),
                "browserAccessEnabled": self.browser_access_enabled,
            }


@dataclass
class AccountNaming:
    """Derivation rules for account identity fields"""
    shortid: str = "123456789012"
    email: str = "customaccount1@setbyenv.com"
    default_name: str = "CustomAccount"

    @property
    def arn(self) -> str:
        return f"arn:aws:iam::{self.shortid}:root"


@dataclass
class PatchPolicy:
    """Behavior switches for the patch engine"""
    # Present-but-empty sections replace prior state when True,
    # and are ignored like absent sections when False
    empty_sections_clear: bool = True
    # Reject endpoints routing to unknown locations
    validate_endpoint_locations: bool = False
    parallel_translation: bool = False
    max_workers: int = 4
    naming: AccountNaming = field(default_factory=AccountNaming)

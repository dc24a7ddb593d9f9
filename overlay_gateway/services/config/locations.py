"""
Backend Location Translators

One translator per storage backend type. Each turns an overlay location
entry into a LocationConstraint, decrypting credentials on the way.

Dispatch is a closed table keyed by location type tag. Tags are accepted
with or without the "location-" prefix ("location-mem-v1" == "mem-v1").
Unknown tags are rejected.
"""

from typing import Any, Callable

from overlay_gateway.common.config import (
    AwsS3Details,
    AzureDetails,
    BackendCredentials,
    BackendType,
    GcpDetails,
    LocationConstraint,
    LocationEntry,
)
from overlay_gateway.common.exceptions import (
    DecryptionError,
    UnsupportedBackendError,
    ValidationError,
)

from .secret_codec import SecretCodec

LOCATION_TYPE_PREFIX = "location-"

# Details every cloud backend must carry
CLOUD_REQUIRED_DETAILS = ["bucketMatch", "endpoint", "accessKey", "secretKey", "bucketName"]

# Details that must be strings when present
STRING_DETAILS = ("endpoint", "accessKey", "secretKey", "bucketName", "mpuBucketName")

LocationTranslator = Callable[[LocationEntry, SecretCodec | None], LocationConstraint]


def normalize_location_type(location_type: Any) -> str | None:
    """Strip the optional "location-" prefix from a location type tag"""
    if not isinstance(location_type, str):
        return None
    if location_type.startswith(LOCATION_TYPE_PREFIX):
        return location_type[len(LOCATION_TYPE_PREFIX):]
    return location_type


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _require_details(entry: LocationEntry, fields: list[str]) -> dict[str, Any]:
    """Return entry details, raising on the first missing or mistyped field"""
    details = entry.details or {}
    for name in fields:
        if _is_missing(details.get(name)):
            raise ValidationError(
                f"location {entry.name!r} ({entry.location_type}): "
                f"missing required field details.{name}",
                field=name,
                location=entry.name,
                section="locations",
            )
    for name in STRING_DETAILS:
        value = details.get(name)
        if value is not None and not isinstance(value, str):
            raise ValidationError(
                f"location {entry.name!r} ({entry.location_type}): "
                f"details.{name} must be a string",
                field=name,
                location=entry.name,
                section="locations",
            )
    return details


def _decrypt(entry: LocationEntry, codec: SecretCodec | None, ciphertext: str) -> str:
    if codec is None:
        raise DecryptionError("no private key available", section="locations")
    try:
        return codec.decrypt(ciphertext)
    except DecryptionError as e:
        raise DecryptionError(
            f"location {entry.name!r}: {e.reason}",
            section="locations",
        ) from None


def _flag(details: dict[str, Any], name: str, default: bool) -> bool:
    value = details.get(name)
    if value is None:
        return default
    return bool(value)


def _credentials(
    entry: LocationEntry,
    codec: SecretCodec | None,
    details: dict[str, Any],
) -> BackendCredentials:
    return BackendCredentials(
        access_key=details["accessKey"],
        secret_key=_decrypt(entry, codec, details["secretKey"]),
    )


def translate_mem(entry: LocationEntry, codec: SecretCodec | None) -> LocationConstraint:
    return LocationConstraint(type=BackendType.MEM)


def translate_file(entry: LocationEntry, codec: SecretCodec | None) -> LocationConstraint:
    return LocationConstraint(type=BackendType.FILE)


def translate_azure(entry: LocationEntry, codec: SecretCodec | None) -> LocationConstraint:
    """Azure Blob: account name travels as accessKey, container as bucketName"""
    details = _require_details(entry, CLOUD_REQUIRED_DETAILS)
    return LocationConstraint(
        type=BackendType.AZURE,
        details=AzureDetails(
            bucket_match=details["bucketMatch"],
            storage_endpoint=details["endpoint"],
            storage_account_name=details["accessKey"],
            storage_access_key=_decrypt(entry, codec, details["secretKey"]),
            container_name=details["bucketName"],
        ),
    )


def translate_aws_s3(entry: LocationEntry, codec: SecretCodec | None) -> LocationConstraint:
    """AWS S3 and S3-compatible providers"""
    details = _require_details(entry, CLOUD_REQUIRED_DETAILS)
    return LocationConstraint(
        type=BackendType.AWS_S3,
        details=AwsS3Details(
            bucket_match=details["bucketMatch"],
            bucket_name=details["bucketName"],
            endpoint=details["endpoint"],
            credentials=_credentials(entry, codec, details),
            https=_flag(details, "https", True),
            path_style=_flag(details, "pathStyle", False),
            server_side_encryption=_flag(details, "serverSideEncryption", False),
            supports_versioning=_flag(details, "supportsVersioning", True),
        ),
    )


def translate_gcp(entry: LocationEntry, codec: SecretCodec | None) -> LocationConstraint:
    details = _require_details(entry, CLOUD_REQUIRED_DETAILS)
    mpu_bucket_name = details.get("mpuBucketName")
    return LocationConstraint(
        type=BackendType.GCP,
        details=GcpDetails(
            bucket_match=details["bucketMatch"],
            bucket_name=details["bucketName"],
            endpoint=details["endpoint"],
            credentials=_credentials(entry, codec, details),
            mpu_bucket_name=None if _is_missing(mpu_bucket_name) else mpu_bucket_name,
        ),
    )


LOCATION_TRANSLATORS: dict[str, LocationTranslator] = {
    "mem-v1": translate_mem,
    "file-v1": translate_file,
    "azure-v1": translate_azure,
    "aws-s3-v1": translate_aws_s3,
    "do-spaces-v1": translate_aws_s3,
    "wasabi-v1": translate_aws_s3,
    "gcp-v1": translate_gcp,
}


def translate_location(entry: LocationEntry, codec: SecretCodec | None) -> LocationConstraint:
    """
    Translate one overlay location.

    Raises:
        UnsupportedBackendError: If the location type has no translator
        ValidationError: If the name or a required details field is missing
            or not a string
        DecryptionError: If the secret key cannot be decrypted
    """
    if not isinstance(entry.name, str) or not entry.name:
        raise ValidationError(
            f"location {entry.name!r}: name must be a non-empty string",
            field="name",
            section="locations",
        )
    if entry.location_type is not None and not isinstance(entry.location_type, str):
        raise ValidationError(
            f"location {entry.name!r}: locationType must be a string",
            field="locationType",
            location=entry.name,
            section="locations",
        )

    translator = LOCATION_TRANSLATORS.get(normalize_location_type(entry.location_type))
    if translator is None:
        raise UnsupportedBackendError(entry.location_type, entry.name)

    constraint = translator(entry, codec)
    constraint.legacy_aws_behavior = bool(entry.legacy_aws_behavior)
    return constraint


def translate_locations(
    locations: dict[str, LocationEntry],
    codec: SecretCodec | None,
) -> dict[str, LocationConstraint]:
    """
    Translate every location of an overlay, keyed by location name.

    Raises:
        ValidationError: If two entries carry the same name
    """
    constraints: dict[str, LocationConstraint] = {}
    for entry in locations.values():
        constraint = translate_location(entry, codec)
        if entry.name in constraints:
            raise ValidationError(
                f"location {entry.name!r}: duplicate location name",
                field="name",
                location=entry.name,
                section="locations",
            )
        constraints[entry.name] = constraint
    return constraints

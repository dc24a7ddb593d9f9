"""Shared test fixtures for overlay gateway tests."""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from overlay_gateway.common.config import LiveConfiguration
from overlay_gateway.common.logging_setup import configure_logging
from overlay_gateway.services.config.secret_codec import SecretCodec, encrypt_secret
from tests.resources import ACCESS_KEY, CANONICAL_ID, DECRYPTED_SECRET_KEY, USER_NAME


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key(rsa_key: rsa.RSAPrivateKey) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def public_key(rsa_key: rsa.RSAPrivateKey) -> str:
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


@pytest.fixture(scope="session")
def other_private_key() -> str:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def secret_key(public_key: str) -> str:
    """DECRYPTED_SECRET_KEY encrypted the way the management plane does"""
    return encrypt_secret(DECRYPTED_SECRET_KEY, public_key)


@pytest.fixture(scope="session")
def codec(private_key: str) -> SecretCodec:
    return SecretCodec(private_key)


@pytest.fixture
def restore_logging(monkeypatch):
    """Clear logging env overrides and reset logger levels afterwards"""
    monkeypatch.delenv("OVERLAY_GATEWAY_LOG_LEVEL", raising=False)
    monkeypatch.delenv("OVERLAY_GATEWAY_LOG_FORMAT", raising=False)
    yield
    configure_logging("INFO", "json")


@pytest.fixture
def live_config() -> LiveConfiguration:
    return LiveConfiguration()


@pytest.fixture
def full_overlay(secret_key: str) -> dict:
    return {
        "version": 1,
        "users": [
            {
                "secretKey": secret_key,
                "accessKey": ACCESS_KEY,
                "canonicalId": CANONICAL_ID,
                "userName": USER_NAME,
            }
        ],
        "endpoints": [
            {"hostname": "1.1.1.1", "locationName": "us-east-1"},
        ],
        "locations": {
            "legacy": {
                "name": "legacy",
                "locationType": "location-mem-v1",
            },
            "us-east-1": {
                "name": "us-east-1",
                "locationType": "location-file-v1",
                "legacyAwsBehavior": True,
            },
            "azurebackendtest": {
                "name": "azurebackendtest",
                "locationType": "location-azure-v1",
                "details": {
                    "bucketMatch": "azurebucketmatch",
                    "endpoint": "azure.end.point",
                    "accessKey": "azureaccesskey",
                    "secretKey": secret_key,
                    "bucketName": "azurebucketname",
                },
            },
            "awsbackendtest": {
                "name": "awsbackendtest",
                "locationType": "location-aws-s3-v1",
                "details": {
                    "bucketMatch": "awsbucketmatch",
                    "endpoint": "aws.end.point",
                    "accessKey": "awsaccesskey",
                    "secretKey": secret_key,
                    "bucketName": "awsbucketname",
                },
            },
            "gcpbackendtest": {
                "name": "gcpbackendtest",
                "locationType": "location-gcp-v1",
                "details": {
                    "bucketMatch": "gcpbucketmatch",
                    "endpoint": "gcp.end.point",
                    "accessKey": "gcpaccesskey",
                    "secretKey": secret_key,
                    "bucketName": "gcpbucketname",
                },
            },
        },
        "browserAccess": {"enabled": True},
    }

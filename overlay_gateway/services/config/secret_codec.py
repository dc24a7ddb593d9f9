"""
Secret Codec

Decrypts secrets embedded in overlays. The management plane encrypts each
secret with the gateway's RSA public key using RSA-OAEP (SHA-256) and
base64-encodes the result.

Plaintext is returned to the caller only. It is never logged and never
placed in exception messages.
"""

import base64
import binascii

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from overlay_gateway.common.exceptions import DecryptionError
from overlay_gateway.common.logging_setup import get_service_logger

logger = get_service_logger("overlay.secrets")


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None,
    )


def load_private_key(private_key: str | bytes | rsa.RSAPrivateKey) -> rsa.RSAPrivateKey:
    """
    Load a PEM-encoded RSA private key.

    Raises:
        DecryptionError: If the key is malformed or not an RSA key
    """
    if isinstance(private_key, rsa.RSAPrivateKey):
        return private_key
    if isinstance(private_key, str):
        private_key = private_key.encode("utf-8")
    if not private_key:
        raise DecryptionError("no private key available")

    try:
        key = serialization.load_pem_private_key(private_key, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.warning("Private key could not be loaded")
        raise DecryptionError("malformed private key") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise DecryptionError("private key is not an RSA key")
    return key


class SecretCodec:
    """Decrypts overlay secrets with one loaded private key"""

    def __init__(self, private_key: str | bytes | rsa.RSAPrivateKey):
        self._key = load_private_key(private_key)

    def decrypt(self, ciphertext: str | bytes) -> str:
        """
        Decrypt one base64-encoded secret.

        Raises:
            DecryptionError: If the ciphertext is malformed or the key does not match
        """
        if not isinstance(ciphertext, (str, bytes)):
            raise DecryptionError("ciphertext must be a base64 string")
        if not ciphertext:
            raise DecryptionError("empty ciphertext")

        try:
            raw = base64.b64decode(ciphertext, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecryptionError("ciphertext is not valid base64") from e

        try:
            plaintext = self._key.decrypt(raw, _oaep())
        except ValueError:
            # Cause omitted from the chain
            raise DecryptionError("ciphertext does not match private key") from None

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptionError("decrypted secret is not valid UTF-8") from None


def decrypt_secret(ciphertext: str | bytes, private_key: str | bytes | rsa.RSAPrivateKey) -> str:
    """Decrypt one secret with the given private key"""
    return SecretCodec(private_key).decrypt(ciphertext)


def encrypt_secret(plaintext: str, public_key: str | bytes | rsa.RSAPublicKey) -> str:
    """
    Encrypt a secret the way the management plane does.

    Returns:
        Base64-encoded RSA-OAEP ciphertext
    """
    if isinstance(public_key, str):
        public_key = public_key.encode("utf-8")
    if isinstance(public_key, bytes):
        public_key = serialization.load_pem_public_key(public_key)

    encrypted = public_key.encrypt(plaintext.encode("utf-8"), _oaep())
    return base64.b64encode(encrypted).decode("ascii")

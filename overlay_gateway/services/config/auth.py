"""
Auth Data Translator

Turns overlay users into gateway accounts.
"""

from overlay_gateway.common.config import (
    AccessKeyPair,
    Account,
    AccountNaming,
    AuthData,
    UserEntry,
)
from overlay_gateway.common.exceptions import DecryptionError, ValidationError

from .secret_codec import SecretCodec

REQUIRED_USER_FIELDS: dict[str, str] = {
    "access_key": "accessKey",
    "secret_key": "secretKey",
    "canonical_id": "canonicalId",
}


def build_account(
    access_key: str,
    secret_key: str,
    canonical_id: str,
    user_name: str | None = None,
    naming: AccountNaming | None = None,
) -> Account:
    """Build one account record using the gateway account naming convention"""
    naming = naming or AccountNaming()
    return Account(
        name=user_name or naming.default_name,
        email=naming.email,
        arn=naming.arn,
        canonical_id=canonical_id,
        shortid=naming.shortid,
        keys=[AccessKeyPair(access=access_key, secret=secret_key)],
    )


def translate_users(
    users: list[UserEntry],
    codec: SecretCodec | None,
    naming: AccountNaming | None = None,
) -> AuthData:
    """
    Translate overlay users into auth data.

    Any failing entry aborts the whole section.

    Raises:
        ValidationError: If a user misses accessKey, secretKey or canonicalId,
            or carries a non-string value for one of them or for userName
        DecryptionError: If a secret key cannot be decrypted
    """
    accounts = []
    for index, user in enumerate(users):
        for attr, field_name in REQUIRED_USER_FIELDS.items():
            value = getattr(user, attr)
            if not value:
                raise ValidationError(
                    f"users[{index}]: missing required field {field_name}",
                    field=field_name,
                    section="users",
                )
            if not isinstance(value, str):
                raise ValidationError(
                    f"users[{index}]: {field_name} must be a string",
                    field=field_name,
                    section="users",
                )
        if user.user_name is not None and not isinstance(user.user_name, str):
            raise ValidationError(
                f"users[{index}]: userName must be a string",
                field="userName",
                section="users",
            )

        if codec is None:
            raise DecryptionError("no private key available", section="users")

        try:
            secret = codec.decrypt(user.secret_key)
        except DecryptionError as e:
            raise DecryptionError(
                f"users[{index}] ({user.access_key}): {e.reason}",
                section="users",
            ) from None

        accounts.append(build_account(
            access_key=user.access_key,
            secret_key=secret,
            canonical_id=user.canonical_id,
            user_name=user.user_name,
            naming=naming,
        ))

    return AuthData(accounts=accounts)

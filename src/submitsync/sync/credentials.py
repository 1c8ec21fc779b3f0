"""Per-account credentials for the external version control system."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, SecretStr, field_validator

# Key types that only ever appear at the start of a public key line
_PUBLIC_KEY_PREFIXES = (
    "ssh-rsa ",
    "ssh-dss ",
    "ssh-ed25519 ",
    "ecdsa-sha2-",
    "sk-ssh-ed25519@openssh.com ",
    "sk-ecdsa-sha2-",
)


class InvalidPrivateKeyError(ValueError):
    """The configured secret is an SSH public key."""

    MESSAGE = (
        "Invalid SSH Private Key "
        "(note that it should be private not public key)"
    )

    def __init__(self):
        super().__init__(self.MESSAGE)


def check_private_key(secret: str) -> str:
    """Reject secrets that are clearly SSH public keys.

    Passwords and private keys in any format are accepted unchanged.

    Raises:
        InvalidPrivateKeyError: If secret is a public key line
    """
    if secret.lstrip().startswith(_PUBLIC_KEY_PREFIXES):
        raise InvalidPrivateKeyError()
    return secret


class ExternalCredentials(BaseModel):
    """Identity and secret a submitter uses on the external system."""

    model_config = ConfigDict(frozen=True)

    account_id: int
    external_user: str
    external_secret: SecretStr

    @field_validator("external_user")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("external_user must not be empty")
        return value

    @field_validator("external_secret")
    @classmethod
    def _private(cls, value: SecretStr) -> SecretStr:
        check_private_key(value.get_secret_value())
        return value

"""Secret operations the control plane performs against a PrivX vault."""
import base64
import logging
from typing import Dict, Optional, Sequence, Union

from ..domains.errors import NoNameError, PrivXError, PropertyNotFoundError, is_not_found
from ..domains.models import (
    DecodingStrategy,
    FindRef,
    PushSecretData,
    RemoteRef,
    RoleHandle,
    SourceSecret,
    ValidationResult,
)
from ..domains.navigator import resolve_map, resolve_value
from ..domains.values import decode
from .search import find_all

logger = logging.getLogger(__name__)

# Deliberately absent from any vault; a "not found" answer proves the
# server is reachable and our credentials are accepted.
VALIDATION_KEY = "2F0vZqCe0Z3XU5"


def pack_roles(role_ids: Sequence[str]) -> list:
    """Build RoleHandles from role IDs. PrivX ignores the name, so it is left empty."""
    return [RoleHandle(id=role_id) for role_id in role_ids]


def _push_value(value: bytes) -> str:
    # Read back with DecodingStrategy.BASE64
    return base64.b64encode(value).decode("ascii")


class PrivXSecretsClient:
    """
    Get, push, search and delete secrets in a PrivX vault.

    Holds only immutable configuration, so one instance can be shared
    between threads. Every call goes straight to the vault; nothing is cached.
    """

    def __init__(
        self,
        vault,
        read_roles: Sequence[str] = (),
        write_roles: Sequence[str] = (),
        namespace: Optional[str] = None,
    ):
        self._vault = vault
        self._read_roles = tuple(read_roles)
        self._write_roles = tuple(write_roles)
        self.namespace = namespace

    @property
    def default_read_roles(self) -> tuple:
        return self._read_roles

    @property
    def default_write_roles(self) -> tuple:
        return self._write_roles

    def get_secret(self, ref: RemoteRef) -> bytes:
        """
        Fetch a secret, or one property of it.

        Args:
            ref: Key, optional property and decoding strategy

        Returns:
            The whole document as JSON when no property is given, otherwise
            the property's value decoded with ref.decoding_strategy

        Raises:
            SecretDataMissingError, PropertyNotFoundError, DecodeError,
            UnsupportedStrategyError, VaultError
        """
        document = self._vault.get_document(ref.key)
        value = resolve_value(document, ref.property)
        if not ref.property:
            return value
        return decode(value, ref.decoding_strategy)

    def get_secret_map(self, ref: RemoteRef) -> Dict[str, bytes]:
        """Fetch a secret as a key/value map. No decoding strategy is applied."""
        document = self._vault.get_document(ref.key)
        return resolve_map(document, ref.property)

    def get_all_secrets(self, ref: FindRef) -> Dict[str, bytes]:
        return find_all(self._vault, ref)

    def push_secret(self, secret: SourceSecret, data: PushSecretData) -> None:
        """
        Write one key of a source secret to the vault.

        The remote document is replaced wholesale with a single field,
        data.secret_key, holding the value base64-encoded, and gets the
        store's default read/write roles.

        Raises:
            NoNameError: Neither data.remote_key nor secret.name is set
            PropertyNotFoundError: The source secret has no data.secret_key
            VaultError: The vault rejected the write
        """
        name = data.remote_key or secret.name
        if not name:
            raise NoNameError()

        if data.secret_key not in secret.data:
            raise PropertyNotFoundError(secret.name, data.secret_key)
        fields = {data.secret_key: _push_value(secret.data[data.secret_key])}

        try:
            self._vault.create_or_replace_document(
                name,
                pack_roles(self._read_roles),
                pack_roles(self._write_roles),
                fields,
            )
        except Exception as e:
            logger.error(
                f"PrivX push failed for {name} ({type(e).__name__}): {e}; "
                f"read roles {list(self._read_roles)}, write roles {list(self._write_roles)}"
            )
            raise
        logger.info(f"Pushed key '{data.secret_key}' to PrivX secret {name}")

    def delete_secret(self, remote_key: str) -> None:
        """Delete a secret. Deleting a secret that does not exist succeeds."""
        try:
            self._vault.delete_document(remote_key)
        except Exception as e:
            if not is_not_found(e):
                raise
            logger.warning(f"PrivX secret {remote_key} already absent, nothing to delete")
            return
        logger.info(f"Deleted PrivX secret {remote_key}")

    def secret_exists(self, remote_key: str) -> bool:
        """
        Check whether a secret exists.

        Raises:
            Any error other than "secret not found"
        """
        try:
            self.get_secret(RemoteRef(key=remote_key))
        except Exception as e:
            if is_not_found(e):
                return False
            raise
        return True

    def validate(self) -> ValidationResult:
        """
        Check that the vault is reachable and accepts our credentials.

        Returns:
            ValidationResult.READY

        Raises:
            The underlying error when the lookup fails for any reason other
            than "secret not found", or PrivXError if the validation secret exists
        """
        try:
            self.get_secret(RemoteRef(key=VALIDATION_KEY))
        except Exception as e:
            if is_not_found(e):
                return ValidationResult.READY
            raise
        raise PrivXError(f"validation secret {VALIDATION_KEY} unexpectedly exists")

    def close(self) -> None:
        pass


def get_secret(
    client: PrivXSecretsClient,
    key: str,
    prop: str = "",
    decoding_strategy: Union[DecodingStrategy, str, None] = None,
) -> bytes:
    """Convenience wrapper taking a decoding strategy tag such as "base64"."""
    return client.get_secret(
        RemoteRef(key=key, property=prop, decoding_strategy=DecodingStrategy.parse(decoding_strategy))
    )

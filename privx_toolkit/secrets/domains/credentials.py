"""Resolution of credential references against host key/value secrets.

The credentials file is YAML laid out as namespace -> secret name -> key -> value:

    default:
      privx:
        oauth-client-id: ...
        oauth-client-secret: ...
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import CredentialError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SecretKeyRef:
    """Points at one key of a host secret."""
    name: str
    key: str
    namespace: Optional[str] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SecretKeyRef":
        return cls(name=raw["name"], key=raw["key"], namespace=raw.get("namespace"))

    def describe(self, namespace: Optional[str] = None) -> str:
        return f"{self.namespace or namespace or '<none>'}/{self.name}/{self.key}"


class CredentialResolver:
    """Looks up SecretKeyRefs in a credentials file, loaded on first use."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._secrets: Optional[Dict[str, Any]] = None

    @property
    def secrets(self) -> Dict[str, Any]:
        if self._secrets is None:
            self._secrets = self._load()
        return self._secrets

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, 'r') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise CredentialError(f"Failed to parse credentials file {self.path}: {e}") from e
        except OSError as e:
            raise CredentialError(f"Failed to read credentials file {self.path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise CredentialError(f"Credentials file {self.path} must contain a mapping of namespaces")
        logger.debug(f"Loaded credentials for {len(loaded)} namespace(s) from {self.path}")
        return loaded

    def resolve(self, ref: SecretKeyRef, namespace: Optional[str] = None) -> bytes:
        """
        Return the value a reference points at.

        Args:
            ref: Reference to resolve
            namespace: Namespace used when the reference does not name one

        Returns:
            The referenced value as bytes

        Raises:
            CredentialError: The namespace, secret or key does not exist
        """
        effective_namespace = ref.namespace or namespace
        if not effective_namespace:
            raise CredentialError(f"No namespace for credential reference {ref.describe()}")

        namespace_secrets = self.secrets.get(effective_namespace)
        if not isinstance(namespace_secrets, dict):
            raise CredentialError(f"Namespace {effective_namespace} not found in credentials file {self.path}")

        secret = namespace_secrets.get(ref.name)
        if not isinstance(secret, dict):
            raise CredentialError(f"Secret {effective_namespace}/{ref.name} not found")

        value = secret.get(ref.key)
        if value is None:
            raise CredentialError(f"Key '{ref.key}' not found in secret {effective_namespace}/{ref.name}")

        if isinstance(value, bytes):
            return value
        return str(value).encode("utf-8")

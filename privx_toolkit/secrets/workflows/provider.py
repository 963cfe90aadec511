"""Builds PrivX secrets clients from store configuration."""
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional

from ..domains.config_loader import (
    OPTIONAL_REFS,
    REQUIRED_REFS,
    StoreConfig,
    load_config,
    parse_store_config,
    validate_config,
)
from ..domains.credentials import CredentialResolver
from ..domains.errors import CredentialError, NoStoreAuthError
from ..domains.models import StoreCapabilities
from ..domains.privx_client import PrivXVault
from .secret_operations import PrivXSecretsClient

logger = logging.getLogger(__name__)


class PrivXProvider:
    """Entry point that turns a store configuration into a PrivXSecretsClient."""

    def capabilities(self) -> StoreCapabilities:
        return StoreCapabilities.READ_WRITE

    def validate_store(self, config: Optional[Dict[str, Any]]) -> List[str]:
        """
        Check a store configuration without contacting PrivX.

        Returns:
            Warnings about settings that work but are probably unintended

        Raises:
            NoStoreAuthError: The config has no authentication section
            ConfigError: The config is otherwise invalid
        """
        if config and "authentication" not in config:
            raise NoStoreAuthError("authentication")
        validate_config(config, source="store configuration")

        warnings = []
        roles = config.get("roles") or {}
        if not roles.get("read"):
            warnings.append("no default read roles configured; pushed secrets will not be readable by any role")
        if not roles.get("write"):
            warnings.append("no default write roles configured; pushed secrets will not be writable by any role")
        if not str(config["privx"]["server"]).startswith("https://"):
            warnings.append(f"PrivX server {config['privx']['server']} does not use https")
        return warnings

    def _resolve(self, resolver: CredentialResolver, store: StoreConfig, field: str) -> Optional[str]:
        ref = getattr(store, field)
        if ref is None:
            return None
        try:
            return resolver.resolve(ref, store.namespace).decode("utf-8")
        except CredentialError as e:
            logger.error(f"Cannot resolve authentication.{field} ({ref.describe(store.namespace)}): {e}")
            raise NoStoreAuthError(f"authentication.{field}") from e

    def new_client(
        self,
        config: Optional[Dict[str, Any]] = None,
        namespace: Optional[str] = None,
        resolver: Optional[CredentialResolver] = None,
        vault=None,
    ) -> PrivXSecretsClient:
        """
        Create a client for the configured PrivX store.

        Args:
            config: Parsed configuration; loaded from the config file if omitted
            namespace: Namespace for credential references that do not name one;
                defaults to authentication.namespace
            resolver: Credential resolver; defaults to one reading
                authentication.credentials_path
            vault: Transport to use instead of a PrivXVault built from the config

        Raises:
            NoStoreAuthError: A required credential reference cannot be resolved
            ConfigError: The configuration is invalid
        """
        if config is None:
            config = load_config()
        elif "authentication" not in config:
            raise NoStoreAuthError("authentication")
        else:
            validate_config(config, source="store configuration")

        store = parse_store_config(config)
        if namespace:
            store = replace(store, namespace=namespace)

        if vault is None:
            resolver = resolver or CredentialResolver(store.credentials_path)
            creds = {field: self._resolve(resolver, store, field) for field in REQUIRED_REFS + OPTIONAL_REFS}
            vault = PrivXVault(
                server=store.server,
                oauth_client_id=creds["oauth_client_id_ref"],
                oauth_client_secret=creds["oauth_client_secret_ref"],
                api_client_id=creds["api_client_id_ref"],
                api_client_secret=creds["api_client_secret_ref"],
                timeout=store.timeout,
                verify=store.verify,
            )
            logger.debug(f"Created PrivX vault client for {store.server}")

        return PrivXSecretsClient(
            vault,
            read_roles=store.read_roles,
            write_roles=store.write_roles,
            namespace=store.namespace,
        )


def new_client(**kwargs) -> PrivXSecretsClient:
    return PrivXProvider().new_client(**kwargs)

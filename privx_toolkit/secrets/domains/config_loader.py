"""Configuration loader for privx-toolkit."""
import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from .credentials import SecretKeyRef
from .preferences import CONFIG_PATH_KEY, default_config_path, get_preference

logger = logging.getLogger(__name__)

SUPPORTED_AUTH_TYPE = "oauth"
DEFAULT_TIMEOUT = 30.0
REQUIRED_REFS = ("oauth_client_id_ref", "oauth_client_secret_ref")
OPTIONAL_REFS = ("api_client_id_ref", "api_client_secret_ref")


class ConfigError(Exception):
    """Configuration error exception."""
    pass


@dataclass(frozen=True)
class StoreConfig:
    """Validated store configuration. Immutable for the lifetime of a client."""
    server: str
    credentials_path: str
    oauth_client_id_ref: SecretKeyRef
    oauth_client_secret_ref: SecretKeyRef
    api_client_id_ref: Optional[SecretKeyRef] = None
    api_client_secret_ref: Optional[SecretKeyRef] = None
    namespace: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    verify: Union[bool, str] = True
    read_roles: Tuple[str, ...] = field(default_factory=tuple)
    write_roles: Tuple[str, ...] = field(default_factory=tuple)


def _get_config_path() -> str:
    """
    Get config file path.

    Priority order:
    1. User preference (stored in ~/.config/privx-toolkit/preferences.json)
    2. Default location: ~/.config/privx-toolkit/config.yml

    Raises:
        FileNotFoundError: If config file doesn't exist in any location
    """
    config_path_pref = get_preference(CONFIG_PATH_KEY)
    if config_path_pref:
        config_path = Path(config_path_pref)
        if config_path.exists():
            logger.info(f"Using config from preference: {config_path}")
            return str(config_path)
        logger.warning(f"Config path from preference doesn't exist: {config_path}")

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    raise FileNotFoundError(
        "Configuration file not found. Please set up your config file using one of these methods:\n\n"
        "1. Use the default location:\n"
        f"   mkdir -p {default_config.parent}\n"
        f"   cp /path/to/your/config.yml {default_config}\n\n"
        "2. Point to an existing config file:\n"
        "   privxtoolkit config set-path /path/to/your/config.yml\n\n"
        "3. Run interactive setup:\n"
        "   privxtoolkit config init\n"
    )


def _validate_ref(auth: Dict[str, Any], name: str, required: bool) -> None:
    raw = auth.get(name)
    if raw is None:
        if required:
            raise ConfigError(
                f"Missing 'authentication.{name}' in config\n"
                f"Required format:\n"
                f"  {name}: {{name: <secret name>, key: <key in secret>}}"
            )
        return
    if not isinstance(raw, dict) or not raw.get("name") or not raw.get("key"):
        raise ConfigError(f"'authentication.{name}' must be a mapping with 'name' and 'key'")


def _validate_roles(config: Dict[str, Any]) -> None:
    roles = config.get("roles")
    if roles is None:
        return
    if not isinstance(roles, dict):
        raise ConfigError("'roles' must be a mapping with optional 'read' and 'write' lists")
    for kind in ("read", "write"):
        ids = roles.get(kind)
        if ids is None:
            continue
        if not isinstance(ids, list) or not all(isinstance(i, str) and i for i in ids):
            raise ConfigError(f"'roles.{kind}' must be a list of role ID strings")


def validate_config(config: Optional[Dict[str, Any]], source: str = "config") -> Dict[str, Any]:
    """
    Validate a parsed configuration dictionary.

    Args:
        config: Parsed YAML content
        source: Where the config came from, used in error messages

    Returns:
        The same dictionary

    Raises:
        ConfigError: If a required field is missing or malformed
    """
    if not config:
        raise ConfigError(f"Config file at {source} is empty")
    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {source} must contain a mapping")

    privx = config.get("privx")
    if not isinstance(privx, dict) or not privx.get("server"):
        raise ConfigError(
            f"Missing 'privx.server' in config at {source}\n"
            f"Required format:\n"
            f"privx:\n"
            f"  server: https://privx.example.com"
        )
    timeout = privx.get("timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("'privx.timeout' must be a positive number of seconds")

    if 'authentication' not in config:
        raise ConfigError(
            f"Missing 'authentication' section in config at {source}\n"
            f"Required format:\n"
            f"authentication:\n"
            f"  type: oauth\n"
            f"  credentials_path: /path/to/credentials.yml\n"
            f"  oauth_client_id_ref: {{name: privx, key: oauth-client-id}}\n"
            f"  oauth_client_secret_ref: {{name: privx, key: oauth-client-secret}}"
        )

    auth = config['authentication']
    if not isinstance(auth, dict):
        raise ConfigError("'authentication' must be a mapping")

    if 'type' not in auth:
        raise ConfigError("Missing 'authentication.type' in config")

    if auth['type'] != SUPPORTED_AUTH_TYPE:
        raise ConfigError(
            f"Unsupported authentication type: {auth['type']}\n"
            f"Only '{SUPPORTED_AUTH_TYPE}' is supported."
        )

    credentials_path = auth.get('credentials_path')
    if not credentials_path:
        raise ConfigError(
            "Missing 'authentication.credentials_path' in config\n"
            "Please specify the path to your credentials YAML file."
        )
    if not os.path.isfile(credentials_path):
        raise ConfigError(
            f"Credentials file not found at: {credentials_path}\n"
            f"Please ensure the file exists or update the path in {source}"
        )

    for name in REQUIRED_REFS:
        _validate_ref(auth, name, required=True)
    for name in OPTIONAL_REFS:
        _validate_ref(auth, name, required=False)
    if bool(auth.get("api_client_id_ref")) != bool(auth.get("api_client_secret_ref")):
        raise ConfigError("'api_client_id_ref' and 'api_client_secret_ref' must be set together")

    _validate_roles(config)
    return config


def load_config() -> Dict[str, Any]:
    """
    Load and validate configuration from YAML file.

    Returns:
        Dict containing configuration with keys privx, authentication and
        optionally roles

    Raises:
        FileNotFoundError: If no config file can be located
        ConfigError: If the config file is unreadable or invalid
    """
    # Resolved on every call so preference changes apply immediately
    config_path = _get_config_path()

    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    validate_config(config, source=config_path)

    logger.info(f"Configuration loaded successfully from {config_path}")
    logger.debug(f"Using PrivX server: {config['privx']['server']}")
    return config


def parse_store_config(config: Dict[str, Any]) -> StoreConfig:
    """
    Build a StoreConfig from a validated configuration dictionary.

    The PRIVX_SERVER environment variable overrides privx.server.
    """
    privx = config["privx"]
    auth = config["authentication"]
    roles = config.get("roles") or {}

    server = os.getenv("PRIVX_SERVER") or privx["server"]
    if server != privx["server"]:
        logger.debug(f"Using PRIVX_SERVER from environment: {server}")

    def optional_ref(name: str) -> Optional[SecretKeyRef]:
        raw = auth.get(name)
        return SecretKeyRef.from_dict(raw) if raw else None

    return StoreConfig(
        server=server.rstrip("/"),
        credentials_path=auth["credentials_path"],
        oauth_client_id_ref=SecretKeyRef.from_dict(auth["oauth_client_id_ref"]),
        oauth_client_secret_ref=SecretKeyRef.from_dict(auth["oauth_client_secret_ref"]),
        api_client_id_ref=optional_ref("api_client_id_ref"),
        api_client_secret_ref=optional_ref("api_client_secret_ref"),
        namespace=auth.get("namespace"),
        timeout=float(privx.get("timeout", DEFAULT_TIMEOUT)),
        verify=privx.get("verify", True),
        read_roles=tuple(roles.get("read") or ()),
        write_roles=tuple(roles.get("write") or ()),
    )

"""CLI entrypoint for privx-toolkit."""
import sys
import json
import argparse
import logging
import shutil
from pathlib import Path

from privx_toolkit import __version__
from .validators import validate_decoding_strategy, validate_secret_key

# Configure logging to stderr
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    stream=sys.stderr
)
logger = logging.getLogger(__name__)


def _client():
    from privx_toolkit.secrets.workflows.provider import new_client
    return new_client()


def _text(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


def cmd_version(args):
    """Show version information."""
    print(f"privx-toolkit {__version__}")


def cmd_config_set_path(args):
    """Set config file path preference."""
    from privx_toolkit.secrets.domains.preferences import CONFIG_PATH_KEY, set_preference

    config_path = Path(args.path).resolve()

    if not config_path.exists():
        print(f"Error: Config file does not exist: {config_path}", file=sys.stderr)
        sys.exit(1)

    if not config_path.is_file():
        print(f"Error: Path is not a file: {config_path}", file=sys.stderr)
        sys.exit(1)

    set_preference(CONFIG_PATH_KEY, str(config_path))
    print(f"Config path set to: {config_path}")


def cmd_config_show(args):
    """Show current config file path."""
    from privx_toolkit.secrets.domains.preferences import CONFIG_PATH_KEY, default_config_path, get_preference

    config_path_pref = get_preference(CONFIG_PATH_KEY)
    if config_path_pref:
        config_path = Path(config_path_pref)
        suffix = "" if config_path.exists() else " (file not found)"
        print(f"Config path: {config_path}{suffix}")
        print("Source: preference")
        return

    default_config = default_config_path()
    print(f"Config path: {default_config}")
    print("Source: default" if default_config.exists() else "Source: default (file not found)")


def cmd_config_clear(args):
    """Clear config path preference."""
    from privx_toolkit.secrets.domains.preferences import CONFIG_PATH_KEY, clear_preference, default_config_path

    clear_preference(CONFIG_PATH_KEY)
    print(f"Config path preference cleared. Will use default: {default_config_path()}")


def cmd_config_init(args):
    """Interactive config setup."""
    from privx_toolkit.secrets.domains.preferences import CONFIG_PATH_KEY, default_config_path, set_preference

    default_config = default_config_path()

    print("=== privx-toolkit Configuration Setup ===\n")
    print(f"Default config location: {default_config}\n")

    if default_config.exists():
        print(f"Configuration file already exists at: {default_config}")
        response = input("Do you want to use a different config file? (y/N): ").strip().lower()
        if response != 'y':
            print(f"\nUsing existing config at: {default_config}")
            return

    print("Choose an option:")
    print("1. Copy an existing config file to default location")
    print("2. Point to an existing config file at a different location")
    print("3. Cancel (manually create config file later)")

    choice = input("\nEnter choice (1-3): ").strip()

    if choice in ("1", "2"):
        source = Path(input("Enter path to existing config file: ").strip()).expanduser().resolve()
        if not source.is_file():
            print(f"Error: File not found: {source}", file=sys.stderr)
            sys.exit(1)

        if choice == "1":
            default_config.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, default_config)
            print(f"\nConfig copied to: {default_config}")
        else:
            set_preference(CONFIG_PATH_KEY, str(source))
            print(f"\nConfig path set to: {source}")

    elif choice == "3":
        print("\nSetup cancelled.")
        print(f"Create your config file at: {default_config}")
        print("Or use: privxtoolkit config set-path <path>")

    else:
        print("Invalid choice.", file=sys.stderr)
        sys.exit(2)


def cmd_secrets_get(args):
    """Get a secret, or one property of it."""
    from privx_toolkit.secrets.workflows.secret_operations import get_secret

    validate_secret_key(args.key)
    strategy = validate_decoding_strategy(args.decoding_strategy)

    value = get_secret(_client(), args.key, args.property or "", strategy)
    if args.quiet:
        # Quiet mode: raw bytes only
        sys.stdout.buffer.write(value)
        sys.stdout.buffer.write(b"\n")
        sys.stdout.flush()
    else:
        label = f"{args.key}/{args.property}" if args.property else args.key
        print(f"Secret '{label}': {_text(value)}")


def cmd_secrets_get_map(args):
    """Print a secret as a JSON object of key/value pairs."""
    from privx_toolkit.secrets.domains.models import RemoteRef

    validate_secret_key(args.key)
    values = _client().get_secret_map(RemoteRef(key=args.key, property=args.property or ""))
    print(json.dumps({k: _text(v) for k, v in sorted(values.items())}, indent=2, ensure_ascii=False))


def cmd_secrets_list(args):
    """Print every matching secret as a JSON object of name -> document."""
    from privx_toolkit.secrets.domains.models import FindName, FindRef

    name = FindName(regexp=args.name_regexp) if args.name_regexp is not None else None
    secrets = _client().get_all_secrets(FindRef(name=name))
    print(json.dumps({k: json.loads(v) for k, v in sorted(secrets.items())}, indent=2, ensure_ascii=False))


def cmd_secrets_push(args):
    """Push one key/value pair to PrivX."""
    from privx_toolkit.secrets.domains.models import PushSecretData, SourceSecret

    validate_secret_key(args.remote_key)
    if not args.key:
        print("Error: --key cannot be empty", file=sys.stderr)
        sys.exit(2)

    if args.from_file:
        value = Path(args.from_file).read_bytes()
    else:
        value = args.value.encode("utf-8")

    source = SourceSecret(name=args.remote_key, data={args.key: value})
    _client().push_secret(source, PushSecretData(secret_key=args.key, remote_key=args.remote_key))
    print(f"Pushed '{args.key}' to {args.remote_key}")


def cmd_secrets_delete(args):
    """Delete a secret. Succeeds when the secret does not exist."""
    validate_secret_key(args.key)
    _client().delete_secret(args.key)
    print(f"Deleted {args.key}")


def cmd_secrets_exists(args):
    """Exit 0 if the secret exists, 1 if it does not."""
    validate_secret_key(args.key)
    if _client().secret_exists(args.key):
        print(f"Secret '{args.key}' exists")
        sys.exit(0)
    print(f"Secret '{args.key}' does not exist")
    sys.exit(1)


def cmd_secrets_validate(args):
    """Check that PrivX is reachable and the credentials are accepted."""
    result = _client().validate()
    print(f"Validation result: {result.value}")


def build_parser():
    parser = argparse.ArgumentParser(
        prog="privxtoolkit",
        description="privx-toolkit CLI - read, write, search and delete secrets in a PrivX vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit codes:
  0 - Success
  1 - Runtime error (authentication, network, secret not found, etc.)
  2 - Usage error (invalid arguments, unsupported decoding strategy, etc.)

Environment variables:
  PRIVX_SERVER - PrivX server address (overrides config file)

Configuration:
  Default location: ~/.config/privx-toolkit/config.yml
  Custom path: Set with 'privxtoolkit config set-path <path>'
  View current: Run 'privxtoolkit config show'
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "version",
        help="Show version information",
        description="Display the current version of privx-toolkit"
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Manage privx-toolkit configuration"
    )
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    config_set_path_parser = config_subparsers.add_parser(
        "set-path",
        help="Set config file path",
        description="Store the absolute path to your config file in ~/.config/privx-toolkit/preferences.json"
    )
    config_set_path_parser.add_argument("path", help="Path to config file")

    config_subparsers.add_parser("show", help="Show current config path")
    config_subparsers.add_parser("clear", help="Clear config path preference")
    config_subparsers.add_parser("init", help="Interactive config setup")

    # secrets command
    secrets_parser = subparsers.add_parser(
        "secrets",
        help="Secret management operations",
        description="Manage secrets in a PrivX vault"
    )
    secrets_subparsers = secrets_parser.add_subparsers(dest="secrets_command")

    get_parser = secrets_subparsers.add_parser(
        "get",
        help="Get a secret value",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="""
Fetch a secret from PrivX.

Without --property the whole secret is printed as JSON. With --property only
that field is printed, decoded with --decoding-strategy.
        """
    )
    get_parser.add_argument("key", help="Name of the secret in PrivX")
    get_parser.add_argument("--property", help="Top-level field of the secret to print")
    get_parser.add_argument(
        "--decoding-strategy",
        default="none",
        help="Decoding applied to the property value: none, base64, base64url or auto (default: none)"
    )
    get_parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Output only the secret value (useful for scripts)"
    )

    get_map_parser = secrets_subparsers.add_parser(
        "get-map",
        help="Get a secret as key/value pairs",
        description="Print the secret's top-level fields, or the fields of the object named by --property, as JSON"
    )
    get_map_parser.add_argument("key", help="Name of the secret in PrivX")
    get_map_parser.add_argument("--property", help="Field holding a nested object to flatten")

    list_parser = secrets_subparsers.add_parser(
        "list",
        help="Find secrets by name",
        description="Print every secret whose name matches a regular expression"
    )
    list_parser.add_argument("--name-regexp", help="Regular expression matched against secret names (default: all)")

    push_parser = secrets_subparsers.add_parser(
        "push",
        help="Create or replace a secret",
        description="Write a single key/value pair to PrivX with the configured default roles"
    )
    push_parser.add_argument("remote_key", help="Name of the secret in PrivX")
    push_parser.add_argument("--key", required=True, help="Field name inside the secret")
    value_group = push_parser.add_mutually_exclusive_group(required=True)
    value_group.add_argument("--value", help="Value to store")
    value_group.add_argument("--from-file", help="Read the value from this file")

    delete_parser = secrets_subparsers.add_parser("delete", help="Delete a secret")
    delete_parser.add_argument("key", help="Name of the secret in PrivX")

    exists_parser = secrets_subparsers.add_parser("exists", help="Check whether a secret exists")
    exists_parser.add_argument("key", help="Name of the secret in PrivX")

    secrets_subparsers.add_parser("validate", help="Check connectivity and credentials")

    return parser, config_parser, secrets_parser


CONFIG_COMMANDS = {
    "set-path": cmd_config_set_path,
    "show": cmd_config_show,
    "clear": cmd_config_clear,
    "init": cmd_config_init,
}

SECRETS_COMMANDS = {
    "get": cmd_secrets_get,
    "get-map": cmd_secrets_get_map,
    "list": cmd_secrets_list,
    "push": cmd_secrets_push,
    "delete": cmd_secrets_delete,
    "exists": cmd_secrets_exists,
    "validate": cmd_secrets_validate,
}


def main(argv=None):
    """Main CLI entrypoint.

    Exit codes:
        0 - Success
        1 - Runtime errors (authentication, network, secret not found, etc.)
        2 - Usage errors (invalid arguments, unsupported decoding strategy, etc.)
    """
    parser, config_parser, secrets_parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(2)

    try:
        if args.command == "version":
            cmd_version(args)
        elif args.command == "config":
            handler = CONFIG_COMMANDS.get(args.config_command)
            if handler is None:
                config_parser.print_help()
                sys.exit(2)
            handler(args)
        elif args.command == "secrets":
            handler = SECRETS_COMMANDS.get(args.secrets_command)
            if handler is None:
                secrets_parser.print_help()
                sys.exit(2)
            handler(args)
        else:
            parser.print_help()
            sys.exit(2)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""Input validation for CLI arguments."""
import sys

from ..secrets.domains.errors import UnsupportedStrategyError
from ..secrets.domains.models import DecodingStrategy


def validate_secret_key(key: str) -> None:
    """
    Validate a PrivX secret name given on the command line.

    Raises:
        SystemExit with code 2 if the name is empty or blank
    """
    if not key or not key.strip():
        print("Error: Secret name cannot be empty", file=sys.stderr)
        sys.exit(2)


def validate_decoding_strategy(tag: str) -> DecodingStrategy:
    """
    Parse a --decoding-strategy value.

    Raises:
        SystemExit with code 2 if the tag is not a known strategy
    """
    try:
        return DecodingStrategy.parse(tag)
    except UnsupportedStrategyError:
        print(f"Error: Unsupported decoding strategy '{tag}'", file=sys.stderr)
        print("\nAllowed values: none, base64, base64url, auto", file=sys.stderr)
        sys.exit(2)

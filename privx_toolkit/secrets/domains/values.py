"""Conversion of vault JSON values to bytes, and decoding of those bytes."""
import base64
import binascii
import json
from decimal import Decimal
from typing import Any, Optional, Union

from .errors import DecodeError, UnsupportedStrategyError
from .models import DecodingStrategy

_URLSAFE_TO_STANDARD = bytes.maketrans(b"-_", b"+/")
_LINE_BREAKS = b"\r\n"


def to_json_bytes(value: Any) -> bytes:
    """Serialise a JSON value compactly, with sorted keys, as UTF-8."""
    return json.dumps(
        value, separators=(",", ":"), sort_keys=True, ensure_ascii=False
    ).encode("utf-8")


def _format_number(value: Union[int, float]) -> str:
    if isinstance(value, int):
        return str(value)
    # repr() is the shortest round-trip form; Decimal expands any exponent
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def to_bytes(value: Any) -> bytes:
    """
    Convert a JSON-decoded value to its canonical byte form.

    Strings are returned as their raw UTF-8 text (never re-parsed as JSON),
    booleans as "true"/"false", numbers in shortest positional form, null as
    "null", and objects/arrays as compact JSON. Never fails for a JSON value.

    Args:
        value: Value produced by json.loads (or bytes, which pass through)

    Returns:
        Canonical byte representation
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode("utf-8")
    if isinstance(value, bool):
        return b"true" if value else b"false"
    if isinstance(value, (int, float)):
        return _format_number(value).encode("ascii")
    if value is None:
        return b"null"
    return to_json_bytes(value)


def _b64decode_standard(value: bytes) -> bytes:
    value = value.translate(None, _LINE_BREAKS)
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"illegal base64 data: {e}") from e


def _b64decode_urlsafe(value: bytes) -> bytes:
    value = value.translate(None, _LINE_BREAKS)
    if b"+" in value or b"/" in value:
        raise DecodeError("illegal base64url data: standard alphabet character in input")
    try:
        return base64.b64decode(value.translate(_URLSAFE_TO_STANDARD), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"illegal base64url data: {e}") from e


def decode(value: bytes, strategy: Optional[Union[DecodingStrategy, str]] = None) -> bytes:
    """
    Decode a resolved value according to a decoding strategy.

    Args:
        value: Raw bytes to decode
        strategy: DecodingStrategy member or tag; None/empty means no decoding

    Returns:
        Decoded bytes (the input itself for NONE, and for AUTO when neither
        base64 alphabet applies)

    Raises:
        DecodeError: BASE64/BASE64URL input is not valid for that alphabet
        UnsupportedStrategyError: Unknown strategy
    """
    if strategy is None or strategy == "":
        return value
    if not isinstance(strategy, DecodingStrategy):
        try:
            strategy = DecodingStrategy.parse(strategy)
        except (AttributeError, TypeError):
            raise UnsupportedStrategyError(strategy)

    if strategy is DecodingStrategy.NONE:
        return value
    if strategy is DecodingStrategy.BASE64:
        return _b64decode_standard(value)
    if strategy is DecodingStrategy.BASE64URL:
        return _b64decode_urlsafe(value)

    # AUTO: standard alphabet first, then URL-safe, else leave as is
    for decoder in (_b64decode_standard, _b64decode_urlsafe):
        try:
            return decoder(value)
        except DecodeError:
            continue
    return value

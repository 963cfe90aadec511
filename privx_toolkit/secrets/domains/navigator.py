"""Projection of a secret document onto the values a caller asked for."""
import logging
from typing import Any, Dict

from .errors import PropertyNotFoundError, SecretDataMissingError
from .models import SecretDocument
from .values import to_bytes, to_json_bytes

logger = logging.getLogger(__name__)


def _document_data(document: SecretDocument) -> Dict[str, Any]:
    if document.data is None:
        raise SecretDataMissingError(document.name)
    return document.data


def _select(document: SecretDocument, prop: str) -> Any:
    data = _document_data(document)
    value = data.get(prop)
    if value is None:
        raise PropertyNotFoundError(document.name, prop)
    return value


def resolve_value(document: SecretDocument, prop: str = "") -> bytes:
    """
    Resolve a single value from a secret document.

    Args:
        document: Secret fetched from the vault
        prop: Top-level field to select; empty selects the whole document

    Returns:
        The whole document as JSON when prop is empty, else the selected
        field converted with to_bytes()

    Raises:
        SecretDataMissingError: The document has no data payload
        PropertyNotFoundError: prop is absent from the document or null
    """
    if not prop:
        return to_json_bytes(_document_data(document))
    return to_bytes(_select(document, prop))


def resolve_map(document: SecretDocument, prop: str = "") -> Dict[str, bytes]:
    """
    Resolve a key/value map from a secret document.

    With no prop every top-level field is returned. When prop names a nested
    object, that object's fields are returned; deeper levels stay JSON and are
    not flattened further. Any other selected value comes back as a single
    entry keyed by prop.

    Raises:
        SecretDataMissingError: The document has no data payload
        PropertyNotFoundError: prop is absent from the document or null
    """
    if not prop:
        return {k: to_bytes(v) for k, v in _document_data(document).items()}

    value = _select(document, prop)
    if isinstance(value, dict):
        logger.debug(f"Flattening nested object '{prop}' of secret {document.name}")
        return {k: to_bytes(v) for k, v in value.items()}
    return {prop: to_bytes(value)}

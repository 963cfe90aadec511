"""Regular-expression search across the whole PrivX vault.

The vault's listing API only filters on substrings, so every page is fetched
and names are matched client-side. Pages are read strictly in order, and any
failure aborts the search without returning partial results.
"""
import logging
import re
from typing import Dict

from ..domains.errors import InvalidFilterError, ParameterNotImplementedError, SecretDataMissingError
from ..domains.models import ConversionStrategy, FindRef
from ..domains.values import to_json_bytes

logger = logging.getLogger(__name__)

PAGE_SIZE = 100


def _check_supported(ref: FindRef) -> None:
    if ref.path is not None:
        raise ParameterNotImplementedError("ref.Path")
    if ref.tags is not None:
        raise ParameterNotImplementedError("ref.Tags")
    if ref.conversion_strategy not in (ConversionStrategy.DEFAULT, "", None):
        raise ParameterNotImplementedError("ref.ConversionStrategy")


def _compile(pattern: str) -> "re.Pattern":
    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidFilterError(pattern, str(e)) from e


def find_all(vault, ref: FindRef, page_size: int = PAGE_SIZE) -> Dict[str, bytes]:
    """
    Return every secret whose name matches ref.name.regexp.

    Args:
        vault: Transport providing list_documents() and get_document()
        ref: Search request; a missing name filter matches every secret
        page_size: Number of secrets requested per listing page

    Returns:
        Mapping of secret name to the whole secret document as JSON

    Raises:
        ParameterNotImplementedError: Path, tag or conversion filtering was requested
        InvalidFilterError: The name pattern does not compile
        SecretDataMissingError: A matching secret has no data payload
        VaultError: A listing or fetch call failed
    """
    _check_supported(ref)
    pattern = ref.name.regexp if ref.name is not None else ""
    name_regexp = _compile(pattern or "")

    results: Dict[str, bytes] = {}
    offset = 0
    while True:
        page = vault.list_documents(offset=offset, limit=page_size)
        fetched = len(page.items)
        logger.debug(f"Fetched {fetched} secret name(s) at offset {offset}")
        if fetched == 0:
            break

        for item in page.items:
            if not name_regexp.search(item.name):
                continue
            document = vault.get_document(item.name)
            if document.data is None:
                raise SecretDataMissingError(item.name)
            results[item.name] = to_json_bytes(document.data)

        if fetched < page_size:
            break
        offset += page_size

    logger.debug(f"Pattern {pattern!r} matched {len(results)} secret(s)")
    return results

"""Errors raised by the PrivX adapter, plus the vault error classifiers.

PrivX clients do not reliably carry a status code for a missing secret, so
not-found is recognised from the error text. is_not_found() and
is_already_exists() are the only places that inspect error messages.
"""
from typing import Optional

NOT_FOUND_MARKER = "secret not found"
ALREADY_EXISTS_MARKER = "already exists"


class PrivXError(Exception):
    """Base class for PrivX adapter errors."""
    pass


class VaultError(PrivXError):
    """A PrivX API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CredentialError(PrivXError):
    """A credential reference could not be resolved."""
    pass


class PropertyNotFoundError(PrivXError):
    def __init__(self, key: str, prop: str):
        super().__init__(f"property not found in secret: {key}/{prop}")
        self.key = key
        self.property = prop


class SecretDataMissingError(PrivXError):
    def __init__(self, key: str):
        super().__init__(f"secret data missing: {key}")
        self.key = key


class DecodeError(PrivXError):
    pass


class UnsupportedStrategyError(PrivXError):
    def __init__(self, strategy):
        super().__init__(f"unsupported decoding strategy: {strategy}")
        self.strategy = strategy


class InvalidFilterError(PrivXError):
    def __init__(self, pattern: str, reason: str):
        super().__init__(f"invalid regex {pattern!r}: {reason}")
        self.pattern = pattern


class ParameterNotImplementedError(PrivXError, NotImplementedError):
    """A find parameter this backend does not support."""

    def __init__(self, parameter: str):
        super().__init__(f"parameter {parameter!r}: not implemented")
        self.parameter = parameter


class NoNameError(PrivXError):
    def __init__(self):
        super().__init__("No name provided for secret")


class NoStoreAuthError(PrivXError):
    """The store configuration carries no usable PrivX authorisation."""

    def __init__(self, field: str = ""):
        if field:
            message = f"no PrivX authorisation from store configuration (missing {field})"
        else:
            message = "no PrivX authorisation from store configuration"
        super().__init__(message)
        self.field = field


def is_not_found(error: Optional[BaseException]) -> bool:
    """
    Whether a vault error means the secret does not exist.

    Matches the lowercased message against "secret not found". A change in
    PrivX's wording breaks this silently.
    """
    if error is None:
        return False
    return NOT_FOUND_MARKER in str(error).lower()


def is_already_exists(error: Optional[BaseException]) -> bool:
    """Whether a create call failed because a secret with that name exists."""
    if error is None:
        return False
    if isinstance(error, VaultError) and error.status_code == 409:
        return True
    return ALREADY_EXISTS_MARKER in str(error).lower()

"""Domain models for PrivX secret management."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import UnsupportedStrategyError


class DecodingStrategy(str, Enum):
    """Byte-level decoding applied to a resolved scalar value."""
    NONE = "None"
    BASE64 = "Base64"
    BASE64URL = "Base64URL"
    AUTO = "Auto"

    @classmethod
    def parse(cls, tag: Optional[str]) -> "DecodingStrategy":
        """
        Parse a decoding strategy tag.

        Accepts the enum values as well as the lowercase tags
        none/base64/base64url/auto. An empty or missing tag means NONE.

        Raises:
            UnsupportedStrategyError: If the tag is not a known strategy
        """
        if isinstance(tag, cls):
            return tag
        if not tag:
            return cls.NONE
        for strategy in cls:
            if tag.lower() == strategy.value.lower():
                return strategy
        raise UnsupportedStrategyError(tag)


class ConversionStrategy(str, Enum):
    DEFAULT = "Default"
    UNICODE = "Unicode"


class ValidationResult(str, Enum):
    READY = "Ready"
    UNKNOWN = "Unknown"
    ERROR = "Error"


class StoreCapabilities(str, Enum):
    READ_ONLY = "ReadOnly"
    WRITE_ONLY = "WriteOnly"
    READ_WRITE = "ReadWrite"


@dataclass
class SecretDocument:
    """A secret as stored in the PrivX vault. data is None when the payload is missing."""
    name: str
    data: Optional[Dict[str, Any]] = None


@dataclass
class SecretPage:
    """One page of the vault's secret listing."""
    items: List[SecretDocument] = field(default_factory=list)
    count: int = 0


@dataclass(frozen=True)
class RoleHandle:
    """Role granting read or write access to a secret."""
    id: str
    name: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name}


@dataclass
class RemoteRef:
    """Reference to a secret (and optionally one of its properties) in the vault."""
    key: str
    property: str = ""
    decoding_strategy: DecodingStrategy = DecodingStrategy.NONE


@dataclass
class FindName:
    regexp: str = ""


@dataclass
class FindRef:
    """Search request for get_all_secrets."""
    name: Optional[FindName] = None
    path: Optional[str] = None
    tags: Optional[Dict[str, str]] = None
    conversion_strategy: ConversionStrategy = ConversionStrategy.DEFAULT
    decoding_strategy: DecodingStrategy = DecodingStrategy.NONE


@dataclass
class PushSecretData:
    """Which key of the source secret to push, and where to."""
    secret_key: str
    remote_key: str = ""


@dataclass
class SourceSecret:
    """Host-side secret whose data is pushed to the vault."""
    name: str
    data: Dict[str, bytes] = field(default_factory=dict)
    namespace: str = ""

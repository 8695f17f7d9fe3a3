"""Structured error values reported by the validation phases and the codecs."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Category of a user-facing error."""

    INVALID_CONFIG = "invalid_config"
    INCOMPATIBLE_CONFIG = "incompatible_config"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class EnrichError:
    """
    A user-facing error carried in the ``Err`` variant of a ``Result``.

    Attributes:
        kind: Error category
        message: Human-readable description
        action: Name of the action (or loader) that reported the error
        target: Offending target (BomRef, URL, package type), if any
    """

    kind: ErrorKind
    message: str
    action: str
    target: Optional[str] = None

    @classmethod
    def invalid_config(cls, action: str, message: str, target: Optional[str] = None) -> "EnrichError":
        """Create an error for a structurally invalid configuration."""
        return cls(kind=ErrorKind.INVALID_CONFIG, message=message, action=action, target=target)

    @classmethod
    def incompatible(cls, action: str, message: str, target: Optional[str] = None) -> "EnrichError":
        """Create an error for a configuration that does not fit the BOM."""
        return cls(kind=ErrorKind.INCOMPATIBLE_CONFIG, message=message, action=action, target=target)

    @classmethod
    def parse_error(cls, source: str, message: str) -> "EnrichError":
        """Create an error for unreadable input."""
        return cls(kind=ErrorKind.PARSE_ERROR, message=message, action=source)

    def __str__(self) -> str:
        if self.target:
            return f"[{self.action}] {self.message} (target: {self.target})"
        return f"[{self.action}] {self.message}"

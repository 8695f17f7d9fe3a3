"""Custom exceptions for cdx-enrich.

User-facing failures (bad configuration, unresolved targets, unreadable
BOMs) travel as ``EnrichError`` values inside a ``Result``. The exceptions
below only signal programming faults.
"""


class CdxEnrichError(Exception):
    """Base exception for all cdx-enrich operations."""


class ExecutionDefect(CdxEnrichError):
    """Raised when an action fails after its configuration passed every check."""

    def __init__(self, action: str, message: str) -> None:
        super().__init__(f"{action}: {message}")
        self.action = action


class UnwrapError(CdxEnrichError):
    """Raised when unwrapping an Err result."""

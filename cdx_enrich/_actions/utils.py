"""Validation helpers shared by the action plugins."""

from collections import Counter
from typing import Any, Callable, Iterable, List, Optional, Sequence

from ..errors import EnrichError
from ..result import Err, Ok, Result


def first_duplicate(values: Iterable[str]) -> Optional[str]:
    """Return the first value that occurs more than once, if any."""
    counts = Counter(values)
    for value, count in counts.items():
        if count > 1:
            return value
    return None


def set_fields(entry: Any, field_names: Sequence[str]) -> List[str]:
    """Names of the given fields that are set (not None) on an entry."""
    return [name for name in field_names if getattr(entry, name) is not None]


def require_non_empty(action: str, entries: List[Any], field_name: str, label: str) -> Result[List[Any]]:
    """Every entry must carry a non-blank value for ``field_name``."""
    for entry in entries:
        value = getattr(entry, field_name)
        if value is None or not value.strip():
            return Err(EnrichError.invalid_config(action, f"{label} must be set and cannot be an empty string."))
    return Ok(entries)


def require_exactly_one(
    action: str, entries: List[Any], field_names: Sequence[str], target: Callable[[Any], str]
) -> Result[List[Any]]:
    """Every entry must set exactly one of ``field_names``."""
    labels = " or ".join(name.capitalize() for name in field_names)
    for entry in entries:
        present = set_fields(entry, field_names)
        if not present:
            return Err(EnrichError.invalid_config(action, f"One entry must have either {labels}.", target(entry)))
        if len(present) > 1:
            return Err(
                EnrichError.invalid_config(
                    action, f"One entry must have either {labels}. Not more than one.", target(entry)
                )
            )
    return Ok(entries)


def require_unique(action: str, entries: List[Any], key: Callable[[Any], str], label: str) -> Result[List[Any]]:
    """No two entries may share the same target."""
    duplicate = first_duplicate(key(entry) for entry in entries)
    if duplicate is not None:
        return Err(EnrichError.invalid_config(action, f"{label} '{duplicate}' is configured more than once.", duplicate))
    return Ok(entries)

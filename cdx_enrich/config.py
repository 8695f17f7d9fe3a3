"""Typed enrichment configuration and its YAML loader.

The configuration file is a YAML mapping whose keys name actions and whose
values are lists of entries, e.g.:

    ReplaceLicenseByBomRef:
      - Ref: pkg:npm/lodash@4.17.21
        Expression: MIT
    ReplaceLicensesByUrl:
      - Url: https://opensource.org/licenses/MIT
        Id: MIT
    ReplaceLicenseByClearlyDefined:
      - PackageType: npm
      - PackageType: maven
        Provider: mavengoogle

Sections are kept in file order, which is the order actions execute in.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Type, Union

import yaml

from .errors import EnrichError
from .logging_config import logger
from .result import Err, Ok, Result

LOADER_NAME = "config"

REPLACE_LICENSE_BY_BOM_REF = "ReplaceLicenseByBomRef"
REPLACE_LICENSES_BY_URL = "ReplaceLicensesByUrl"
REPLACE_LICENSE_BY_CLEARLY_DEFINED = "ReplaceLicenseByClearlyDefined"


@dataclass(frozen=True)
class ReplaceLicenseByBomRefEntry:
    """Replace the license of the component identified by ``ref``."""

    yaml_keys: ClassVar[Dict[str, str]] = {"Ref": "ref", "Id": "id", "Name": "name", "Expression": "expression"}

    ref: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    expression: Optional[str] = None


@dataclass(frozen=True)
class ReplaceLicensesByUrlEntry:
    """Replace every license whose URL equals ``url`` with an id or a name."""

    yaml_keys: ClassVar[Dict[str, str]] = {"Url": "url", "Id": "id", "Name": "name"}

    url: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ReplaceLicenseByClearlyDefinedEntry:
    """Look up declared licenses on ClearlyDefined for one package type."""

    yaml_keys: ClassVar[Dict[str, str]] = {"PackageType": "package_type", "Provider": "provider"}

    package_type: Optional[str] = None
    provider: Optional[str] = None


ENTRY_TYPES: Dict[str, Type] = {
    REPLACE_LICENSE_BY_BOM_REF: ReplaceLicenseByBomRefEntry,
    REPLACE_LICENSES_BY_URL: ReplaceLicensesByUrlEntry,
    REPLACE_LICENSE_BY_CLEARLY_DEFINED: ReplaceLicenseByClearlyDefinedEntry,
}


@dataclass
class Configuration:
    """
    Ordered, action-keyed enrichment configuration.

    Attributes:
        sections: Mapping of action name to its entries, in file order
    """

    sections: Dict[str, List[Any]] = field(default_factory=dict)

    def get(self, action_name: str) -> List[Any]:
        """Get the entries configured for an action (empty if absent)."""
        return self.sections.get(action_name, [])

    @property
    def action_names(self) -> List[str]:
        return list(self.sections.keys())


def _parse_entry(section: str, entry_type: Type, index: int, raw: Any) -> Result:
    if not isinstance(raw, dict):
        return Err(EnrichError.invalid_config(section, f"Entry #{index + 1} must be a mapping, got {type(raw).__name__}"))

    unknown = sorted(str(key) for key in raw if key not in entry_type.yaml_keys)
    if unknown:
        allowed = ", ".join(entry_type.yaml_keys)
        return Err(
            EnrichError.invalid_config(
                section, f"Entry #{index + 1} has unknown key(s) {', '.join(unknown)}. Allowed keys: {allowed}"
            )
        )

    values: Dict[str, Optional[str]] = {}
    for yaml_key, attr in entry_type.yaml_keys.items():
        value = raw.get(yaml_key)
        if value is None:
            values[attr] = None
        elif isinstance(value, (str, int, float)) and not isinstance(value, bool):
            values[attr] = str(value)
        else:
            return Err(EnrichError.invalid_config(section, f"Entry #{index + 1}: '{yaml_key}' must be a string"))

    return Ok(entry_type(**values))


def _parse_section(section: str, raw_entries: Any) -> Result:
    entry_type = ENTRY_TYPES.get(section)
    if entry_type is None:
        known = ", ".join(ENTRY_TYPES)
        return Err(EnrichError.invalid_config(LOADER_NAME, f"Unknown action '{section}'. Known actions: {known}"))

    if raw_entries is None:
        return Ok([])
    if not isinstance(raw_entries, list):
        return Err(EnrichError.invalid_config(section, "Section must be a list of entries"))

    entries = []
    for index, raw in enumerate(raw_entries):
        parsed = _parse_entry(section, entry_type, index, raw)
        if parsed.is_err():
            return parsed
        entries.append(parsed.unwrap())
    return Ok(entries)


def load_config(text: str) -> Result[Configuration]:
    """
    Parse YAML configuration text into a typed Configuration.

    Args:
        text: YAML document

    Returns:
        Ok(Configuration) or Err(EnrichError) of kind INVALID_CONFIG
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        return Err(EnrichError.invalid_config(LOADER_NAME, f"Configuration is not valid YAML: {e}"))

    if data is None:
        logger.debug("Configuration is empty")
        return Ok(Configuration())
    if not isinstance(data, dict):
        return Err(EnrichError.invalid_config(LOADER_NAME, "Configuration must be a mapping of action names"))

    configuration = Configuration()
    for section, raw_entries in data.items():
        parsed = _parse_section(str(section), raw_entries)
        if parsed.is_err():
            return parsed
        configuration.sections[str(section)] = parsed.unwrap()

    logger.debug(
        "Loaded configuration with sections: "
        + ", ".join(f"{name} ({len(entries)})" for name, entries in configuration.sections.items())
    )
    return Ok(configuration)


def load_config_file(path: Union[str, Path]) -> Result[Configuration]:
    """Read and parse a YAML configuration file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        return Err(EnrichError.invalid_config(LOADER_NAME, f"Cannot read configuration file {path}: {e}"))
    return load_config(text)


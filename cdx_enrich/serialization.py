"""
CycloneDX BOM parsing and version-aware serialization.

Both JSON and XML encodings are supported. The spec version of the input is
detected so that the enriched BOM can be written back in the same version.
"""

import io
import json
import re
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union
from xml.etree.ElementTree import ParseError

from cyclonedx.model.bom import Bom
from cyclonedx.output import make_outputter
from cyclonedx.schema import OutputFormat, SchemaVersion

from .errors import EnrichError
from .logging_config import logger
from .result import Err, Ok, Result

CODEC_NAME = "bom"


class BomFormat(str, Enum):
    """Textual encodings of a CycloneDX BOM."""

    JSON = "json"
    XML = "xml"


# ============================================================================
# CycloneDX Version Management
# ============================================================================

_SCHEMA_VERSIONS: Dict[str, SchemaVersion] = {
    "1.4": SchemaVersion.V1_4,
    "1.5": SchemaVersion.V1_5,
    "1.6": SchemaVersion.V1_6,
    # Add new versions here as they become available in cyclonedx-python-lib
}

# Default version to use when version cannot be detected
DEFAULT_CYCLONEDX_VERSION = "1.6"

_XML_NAMESPACE_VERSION = re.compile(r"http://cyclonedx\.org/schema/bom/(\d+\.\d+)")

_OUTPUT_FORMATS = {
    BomFormat.JSON: OutputFormat.JSON,
    BomFormat.XML: OutputFormat.XML,
}


def get_supported_cyclonedx_versions() -> list[str]:
    """
    Get list of supported CycloneDX versions.

    Returns:
        List of version strings (e.g., ["1.4", "1.5", "1.6"])
    """
    return sorted(_SCHEMA_VERSIONS.keys())


def detect_format(path: Union[str, Path]) -> BomFormat:
    """Pick the BOM encoding from a file extension (``.json`` or anything else for XML)."""
    if Path(path).suffix.lower() == ".json":
        return BomFormat.JSON
    return BomFormat.XML


def detect_spec_version(content: str, fmt: BomFormat) -> Optional[str]:
    """
    Detect the CycloneDX spec version of a serialized BOM.

    Args:
        content: Serialized BOM
        fmt: Encoding of ``content``

    Returns:
        Version string (e.g., "1.6"), or None if it cannot be determined
    """
    if fmt == BomFormat.JSON:
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            return None
        version = data.get("specVersion") if isinstance(data, dict) else None
        return str(version) if version else None

    match = _XML_NAMESPACE_VERSION.search(content)
    return match.group(1) if match else None


def _normalize_version(spec_version: Optional[str]) -> str:
    if not spec_version:
        return DEFAULT_CYCLONEDX_VERSION
    return ".".join(spec_version.split(".")[:2])


def parse_bom(content: Union[str, bytes], fmt: BomFormat) -> Result[Bom]:
    """
    Parse a serialized CycloneDX BOM.

    Args:
        content: BOM text (bytes are decoded as UTF-8)
        fmt: Encoding of ``content``

    Returns:
        Ok(Bom) or Err(EnrichError) of kind PARSE_ERROR
    """
    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            return Err(EnrichError.parse_error(CODEC_NAME, f"BOM is not valid UTF-8: {e}"))

    try:
        if fmt == BomFormat.JSON:
            data = json.loads(content)
            if not isinstance(data, dict) or data.get("bomFormat") != "CycloneDX":
                return Err(EnrichError.parse_error(CODEC_NAME, "Document is not a CycloneDX JSON BOM"))
            bom = Bom.from_json(data)
        else:
            bom = Bom.from_xml(io.StringIO(content))
    except (json.JSONDecodeError, ParseError) as e:
        return Err(EnrichError.parse_error(CODEC_NAME, f"Malformed {fmt.value.upper()} document: {e}"))
    except Exception as e:
        # The deserializer raises a variety of library-specific errors for schema violations
        return Err(EnrichError.parse_error(CODEC_NAME, f"Invalid CycloneDX {fmt.value.upper()} BOM: {e}"))

    if bom is None:
        return Err(EnrichError.parse_error(CODEC_NAME, "Document does not contain a BOM"))

    logger.debug(f"Parsed CycloneDX {fmt.value.upper()} BOM with {len(bom.components)} top-level component(s)")
    return Ok(bom)


def serialize_bom(bom: Bom, fmt: BomFormat, spec_version: Optional[str] = None) -> str:
    """
    Serialize a CycloneDX BOM using the outputter matching the spec version.

    Args:
        bom: The CycloneDX BOM object to serialize
        fmt: Target encoding
        spec_version: CycloneDX spec version (e.g., "1.5"); defaults to 1.6

    Returns:
        Serialized BOM

    Raises:
        ValueError: If spec_version is unsupported
    """
    major_minor = _normalize_version(spec_version)
    schema_version = _SCHEMA_VERSIONS.get(major_minor)
    if schema_version is None:
        raise ValueError(
            f"Unsupported CycloneDX version: {spec_version}. "
            f"Supported versions: {', '.join(get_supported_cyclonedx_versions())}"
        )

    logger.debug(f"Serializing CycloneDX BOM as {fmt.value.upper()} using version {major_minor}")
    outputter = make_outputter(bom, _OUTPUT_FORMATS[fmt], schema_version)
    return outputter.output_as_string(indent=2)

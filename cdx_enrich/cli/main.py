"""Command-line interface for cdx-enrich.

Reads a CycloneDX BOM and a YAML configuration, applies the configured
actions and writes the enriched BOM.

# Exit codes
- 0: BOM enriched and written
- 1: Input BOM or configuration rejected (parse, configuration or
  compatibility error); no output is written
- 3: An action failed after validation (a defect, reported to Sentry when
  telemetry is enabled)

# Configuration
Besides CLI options, the tool reads these environment variables:
- LOG_LEVEL: Default for --log-level
- CLEARLYDEFINED_API_BASE: Override the ClearlyDefined definitions endpoint
- SENTRY_DSN: Enable error tracking for defects
- TELEMETRY: Set to "false" to disable error tracking even if SENTRY_DSN is set
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click
import sentry_sdk

from .. import __version__
from ..config import load_config_file
from ..console import print_error, print_final_failure, print_final_success, print_run_summary
from ..document import iter_components
from ..errors import EnrichError
from ..exceptions import ExecutionDefect
from ..logging_config import logger, setup_logging
from ..result import Err, Result
from ..runner import run_sync
from ..serialization import (
    BomFormat,
    detect_format,
    detect_spec_version,
    get_supported_cyclonedx_versions,
    parse_bom,
    serialize_bom,
)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_DEFECT = 3

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
FORMAT_CHOICES = [f.value for f in BomFormat]


@dataclass
class EnrichOptions:
    """
    Options of one enrichment run.

    Attributes:
        input_file: Path of the BOM to enrich
        config_file: Path of the YAML configuration
        output_file: Path the enriched BOM is written to
        input_format: Encoding of the input (detected from the extension if None)
        output_format: Encoding of the output (detected from the extension if None)
    """

    input_file: str
    config_file: str
    output_file: str
    input_format: Optional[BomFormat] = None
    output_format: Optional[BomFormat] = None


def evaluate_boolean(value: Optional[str]) -> bool:
    """Interpret an environment variable value as a boolean."""
    return (value or "").strip().lower() in ("true", "1", "yes", "on")


def initialize_sentry() -> bool:
    """
    Initialize Sentry for defect tracking.

    Only enabled when SENTRY_DSN is set and TELEMETRY is not "false".

    Returns:
        True if Sentry was initialized
    """
    dsn = os.getenv("SENTRY_DSN")
    telemetry = os.getenv("TELEMETRY")
    if not dsn or (telemetry is not None and not evaluate_boolean(telemetry)):
        return False

    sentry_sdk.init(dsn=dsn, send_default_pii=False, traces_sample_rate=0.0, release=f"cdx-enrich@{__version__}")
    logger.debug("Sentry error tracking enabled")
    return True


def _read_bom(options: EnrichOptions) -> Result:
    input_format = options.input_format or detect_format(options.input_file)
    try:
        content = Path(options.input_file).read_bytes()
    except OSError as e:
        return Err(EnrichError.parse_error("bom", f"Cannot read BOM file {options.input_file}: {e}"))

    text = content.decode("utf-8-sig", errors="replace")
    spec_version = detect_spec_version(text, input_format)
    return parse_bom(content, input_format).map(lambda bom: (bom, spec_version))


def _output_version(spec_version: Optional[str]) -> Optional[str]:
    if spec_version is None:
        return None
    major_minor = ".".join(spec_version.split(".")[:2])
    if major_minor not in get_supported_cyclonedx_versions():
        logger.warning(f"CycloneDX {spec_version} cannot be written, falling back to the default version")
        return None
    return major_minor


def run_enrichment(options: EnrichOptions) -> int:
    """
    Enrich one BOM file.

    Args:
        options: Input, configuration and output locations

    Returns:
        Process exit code
    """
    loaded = _read_bom(options).bind(
        lambda parsed: load_config_file(options.config_file).map(lambda configuration: (*parsed, configuration))
    )
    if loaded.is_err():
        print_error(loaded.error)
        print_final_failure("Enrichment aborted, no output written")
        return EXIT_FAILURE

    bom, spec_version, configuration = loaded.unwrap()
    logger.info(f"Loaded BOM {options.input_file} and configuration {options.config_file}")

    try:
        result = run_sync(bom, configuration)
    except ExecutionDefect as e:
        logger.exception(f"Action failed after validation: {e}")
        sentry_sdk.capture_exception(e)
        print_final_failure(f"Internal error in {e.action}, no output written")
        return EXIT_DEFECT

    if result.is_err():
        print_error(result.error)
        print_final_failure("Enrichment aborted, no output written")
        return EXIT_FAILURE

    enriched = result.unwrap()
    output_format = options.output_format or detect_format(options.output_file)
    serialized = serialize_bom(enriched, output_format, _output_version(spec_version))
    Path(options.output_file).write_text(serialized, encoding="utf-8")

    print_run_summary(
        options.input_file,
        options.output_file,
        [(name, len(entries)) for name, entries in configuration.sections.items()],
        sum(1 for _ in iter_components(enriched)),
    )
    print_final_success(options.output_file)
    return EXIT_SUCCESS


@click.command(context_settings=CONTEXT_SETTINGS)
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "-c",
    "--config",
    "config_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="YAML file configuring the enrichment actions.",
)
@click.option(
    "-o",
    "--output",
    "output_file",
    required=True,
    type=click.Path(dir_okay=False),
    help="Path to write the enriched BOM to.",
)
@click.option(
    "--input-format",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default=None,
    help="Encoding of INPUT_FILE. Detected from the file extension by default.",
)
@click.option(
    "--output-format",
    type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
    default=None,
    help="Encoding of the output. Detected from the file extension by default.",
)
@click.option(
    "--log-level",
    envvar="LOG_LEVEL",
    default="INFO",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity.",
)
@click.option("--structured-logs/--no-structured-logs", default=False, help="Emit logs as JSON lines.")
@click.version_option(__version__, "-V", "--version", prog_name="cdx-enrich", message="%(prog)s %(version)s")
def cli(
    input_file: str,
    config_file: str,
    output_file: str,
    input_format: Optional[str],
    output_format: Optional[str],
    log_level: str,
    structured_logs: bool,
) -> None:
    """Enrich the licenses of a CycloneDX BOM.

    INPUT_FILE is a CycloneDX BOM in JSON or XML.
    """
    setup_logging(level=log_level, structured=structured_logs)
    initialize_sentry()

    options = EnrichOptions(
        input_file=input_file,
        config_file=config_file,
        output_file=output_file,
        input_format=BomFormat(input_format.lower()) if input_format else None,
        output_format=BomFormat(output_format.lower()) if output_format else None,
    )
    sys.exit(run_enrichment(options))


def main() -> None:
    """Console script entry point."""
    cli()

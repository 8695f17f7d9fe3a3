"""Rich console utilities for cdx-enrich.

Provides a shared Rich Console instance and helpers for run summaries and
error reports.
"""

import os
from typing import Any, List, Optional, Tuple

from rich.console import Console
from rich.table import Table
from rich.theme import Theme

from .errors import EnrichError

IS_GITHUB_ACTIONS = os.getenv("GITHUB_ACTIONS") == "true"

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "highlight": "magenta",
    }
)

# Shared console instance; reports go to stderr, the BOM is written to a file
console = Console(theme=custom_theme, stderr=True, force_terminal=IS_GITHUB_ACTIONS or None)


def print_summary_table(
    title: str,
    data: List[Tuple[str, Any]],
    show_if_empty: bool = False,
) -> None:
    """
    Print a summary table.

    Args:
        title: Table title
        data: List of (label, value) tuples
        show_if_empty: Whether to show the table if all values are 0/empty
    """
    if not show_if_empty:
        data = [(label, value) for label, value in data if value]

    if not data:
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    for label, value in data:
        table.add_row(label, str(value))

    console.print(table)


def print_run_summary(input_file: str, output_file: str, actions: List[Tuple[str, int]], total_components: int) -> None:
    """
    Print what an enrichment run did.

    Args:
        input_file: Path of the input BOM
        output_file: Path of the written BOM
        actions: (action name, number of entries) in execution order
        total_components: Number of components in the BOM
    """
    data: List[Tuple[str, Any]] = [
        ("Input", input_file),
        ("Output", output_file),
        ("Components", total_components),
    ]
    data.extend((f"Action: {name}", f"{count} entr{'y' if count == 1 else 'ies'}") for name, count in actions)
    print_summary_table("Enrichment Summary", data, show_if_empty=True)


def print_error(error: EnrichError, title: Optional[str] = None) -> None:
    """
    Print a structured error.

    In GitHub Actions the error is emitted as an annotation.

    Args:
        error: Error to report
        title: Optional heading (defaults to the error kind)
    """
    heading = title or error.kind.value.replace("_", " ").capitalize()
    if IS_GITHUB_ACTIONS:
        print(f"::error title={heading}::{error}")
        return

    console.print(f"[error]✗ {heading}[/error]")
    console.print(f"  Action: [highlight]{error.action}[/highlight]")
    if error.target:
        console.print(f"  Target: [highlight]{error.target}[/highlight]")
    console.print(f"  {error.message}")


def print_final_success(output_file: str) -> None:
    """Print final success message."""
    console.print(f"[success]✓ Enriched BOM written to {output_file}[/success]")


def print_final_failure(message: str) -> None:
    """Print final failure message."""
    console.print(f"[error]✗ {message}[/error]")

"""CLI module for cdx-enrich."""

from .main import EnrichOptions, cli, evaluate_boolean, initialize_sentry, main, run_enrichment

__all__ = [
    "cli",
    "main",
    "EnrichOptions",
    "run_enrichment",
    "initialize_sentry",
    "evaluate_boolean",
]

"""Enrichment action plugin system.

Each action reads its entries from one configuration section and follows
the three-phase contract of ``ReplaceAction``: check_config,
check_compatibility, execute.

Example:
    from cdx_enrich._actions import create_default_registry

    registry = create_default_registry()
    action = registry.get("ReplaceLicenseByBomRef")
"""

from .protocol import ReplaceAction
from .registry import ActionRegistry, create_default_registry
from .replace_license_by_bom_ref import ReplaceLicenseByBomRef
from .replace_license_by_clearly_defined import ReplaceLicenseByClearlyDefined
from .replace_licenses_by_url import ReplaceLicensesByUrl

__all__ = [
    # Registry and protocol
    "ActionRegistry",
    "ReplaceAction",
    "create_default_registry",
    # Actions
    "ReplaceLicenseByBomRef",
    "ReplaceLicensesByUrl",
    "ReplaceLicenseByClearlyDefined",
]

"""Action registry for managing enrichment action plugins."""

from typing import Dict, List, Optional

from cdx_enrich._clearlydefined import LicenseLookup
from cdx_enrich.logging_config import logger

from .protocol import ReplaceAction
from .replace_license_by_bom_ref import ReplaceLicenseByBomRef
from .replace_license_by_clearly_defined import ReplaceLicenseByClearlyDefined
from .replace_licenses_by_url import ReplaceLicensesByUrl


class ActionRegistry:
    """
    Registry mapping configuration section names to action plugins.

    Example:
        registry = ActionRegistry()
        registry.register(ReplaceLicenseByBomRef())
        registry.register(ReplaceLicenseByClearlyDefined(client=my_client))

        action = registry.get("ReplaceLicenseByBomRef")
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._actions: Dict[str, ReplaceAction] = {}

    def register(self, action: ReplaceAction) -> None:
        """
        Register an action under its name.

        Args:
            action: ReplaceAction implementation to register
        """
        self._actions[action.name] = action
        logger.debug(f"Registered action: {action.name}")

    def get(self, name: str) -> Optional[ReplaceAction]:
        """
        Get an action by name.

        Args:
            name: Configuration section name of the action

        Returns:
            Action if registered, None otherwise
        """
        return self._actions.get(name)

    def list_actions(self) -> List[str]:
        """List the names of all registered actions."""
        return sorted(self._actions.keys())

    def clear(self) -> None:
        """Remove all registered actions."""
        self._actions.clear()


def create_default_registry(license_lookup: Optional[LicenseLookup] = None) -> ActionRegistry:
    """
    Create an ActionRegistry with all built-in actions.

    Args:
        license_lookup: ClearlyDefined lookup to use; defaults to a
            ClearlyDefinedClient on the shared rate limiter, created on first use

    Returns:
        Configured ActionRegistry
    """
    registry = ActionRegistry()
    registry.register(ReplaceLicenseByBomRef())
    registry.register(ReplaceLicensesByUrl())
    registry.register(ReplaceLicenseByClearlyDefined(client=license_lookup))
    return registry

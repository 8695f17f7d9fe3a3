"""ReplaceAction protocol for BOM enrichment action plugins.

Every action goes through three phases, always in this order:

1. ``check_config`` - structural validation of the action's configuration
   entries, without looking at any BOM.
2. ``check_compatibility`` - verification that every configured target
   exists in the BOM that is about to be enriched.
3. ``execute`` - in-place mutation of the BOM. Only runs after both checks
   succeeded for every configured action.
"""

from typing import Any, List, Protocol, Tuple

from cyclonedx.model.bom import Bom

from ..result import Result


class ReplaceAction(Protocol):
    """
    Protocol defining the interface for enrichment action plugins.

    Example:
        class ReplaceLicenseByBomRef:
            name = "ReplaceLicenseByBomRef"

            def check_config(self, entries):
                # Reject duplicate refs, over-specified entries, ...
                ...

            def check_compatibility(self, bom, entries):
                # Every ref must exist in the BOM
                ...

            async def execute(self, bom, entries):
                # Replace the licenses of the referenced components
                ...
    """

    @property
    def name(self) -> str:
        """
        Name of this action.

        Matches the configuration section the action reads its entries from.
        Examples: "ReplaceLicenseByBomRef", "ReplaceLicenseByClearlyDefined"
        """
        ...

    def check_config(self, entries: List[Any]) -> Result[List[Any]]:
        """
        Validate the configuration entries of this action.

        Must be pure and must not depend on any BOM.

        Args:
            entries: Entries of this action's configuration section

        Returns:
            Ok(entries) or Err(EnrichError) of kind INVALID_CONFIG
        """
        ...

    def check_compatibility(self, bom: Bom, entries: List[Any]) -> Result[Tuple[Bom, List[Any]]]:
        """
        Check that the validated entries fit the BOM.

        Must be pure. Only called when check_config succeeded.

        Args:
            bom: The BOM to be enriched (not modified)
            entries: Entries that passed check_config

        Returns:
            Ok((bom, entries)) or Err(EnrichError) of kind INCOMPATIBLE_CONFIG
        """
        ...

    async def execute(self, bom: Bom, entries: List[Any]) -> Bom:
        """
        Apply the action to the BOM in place.

        Only called when both checks succeeded. A failure here is a defect,
        not a user error.

        Args:
            bom: The BOM to enrich
            entries: Validated entries

        Returns:
            The enriched BOM (the same object)
        """
        ...

"""Run configured enrichment actions against a BOM.

The runner enforces an all-or-nothing discipline across the whole batch of
configured actions:

1. check_config for every action; the first failure aborts the run
2. check_compatibility for every action against the unmodified BOM
3. execute every action in configured order, each one seeing the changes
   of the previous ones

No action executes unless every action passed both checks, so a failed run
never leaves a partially enriched BOM behind.
"""

import asyncio
from typing import Any, List, Optional, Tuple

from cyclonedx.model.bom import Bom

from ._actions import ActionRegistry, ReplaceAction, create_default_registry
from .config import Configuration
from .errors import EnrichError
from .logging_config import logger
from .result import Err, Ok, Result

ConfiguredAction = Tuple[ReplaceAction, List[Any]]


def _resolve_actions(configuration: Configuration, registry: ActionRegistry) -> Result[List[ConfiguredAction]]:
    configured: List[ConfiguredAction] = []
    for name in configuration.action_names:
        action = registry.get(name)
        if action is None:
            return Err(
                EnrichError.invalid_config(
                    "runner", f"No action registered for section '{name}'. Available: {registry.list_actions()}"
                )
            )
        configured.append((action, configuration.get(name)))
    return Ok(configured)


def check_configs(configured: List[ConfiguredAction]) -> Result[List[ConfiguredAction]]:
    """Run check_config for every action, keeping the validated entries."""
    validated: List[ConfiguredAction] = []
    for action, entries in configured:
        result = action.check_config(entries)
        if result.is_err():
            logger.error(f"Invalid configuration for {action.name}: {result.error.message}")
            return result
        validated.append((action, result.unwrap()))
    return Ok(validated)


def check_compatibility(bom: Bom, configured: List[ConfiguredAction]) -> Result[List[ConfiguredAction]]:
    """Run check_compatibility for every action against the same, unmodified BOM."""
    for action, entries in configured:
        result = action.check_compatibility(bom, entries)
        if result.is_err():
            logger.error(f"Configuration of {action.name} does not fit the BOM: {result.error.message}")
            return result
    return Ok(configured)


async def execute_all(bom: Bom, configured: List[ConfiguredAction]) -> Bom:
    """Execute every validated action in order."""
    for action, entries in configured:
        logger.info(f"Executing action: {action.name} ({len(entries)} entr{'y' if len(entries) == 1 else 'ies'})")
        bom = await action.execute(bom, entries)
    return bom


async def run(bom: Bom, configuration: Configuration, registry: Optional[ActionRegistry] = None) -> Result[Bom]:
    """
    Validate all configured actions, then apply them to the BOM.

    Args:
        bom: Parsed BOM; enriched in place if the run succeeds
        configuration: Parsed configuration
        registry: Actions to use; defaults to all built-in actions

    Returns:
        Ok(bom) or the first Err(EnrichError) reported by a check
    """
    registry = registry or create_default_registry()

    validated = (
        _resolve_actions(configuration, registry)
        .bind(check_configs)
        .bind(lambda configured: check_compatibility(bom, configured))
    )
    if validated.is_err():
        return validated

    return Ok(await execute_all(bom, validated.unwrap()))


def run_sync(bom: Bom, configuration: Configuration, registry: Optional[ActionRegistry] = None) -> Result[Bom]:
    """Synchronous wrapper around ``run`` for callers without an event loop."""
    return asyncio.run(run(bom, configuration, registry))

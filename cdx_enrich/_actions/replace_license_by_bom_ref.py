"""Replace the license of a component identified by its BomRef."""

from typing import List, Tuple

from cyclonedx.model.bom import Bom
from cyclonedx.model.license import DisjunctiveLicense, License, LicenseExpression

from cdx_enrich.config import REPLACE_LICENSE_BY_BOM_REF, ReplaceLicenseByBomRefEntry
from cdx_enrich.document import index_by_bom_ref
from cdx_enrich.errors import EnrichError
from cdx_enrich.exceptions import ExecutionDefect
from cdx_enrich.logging_config import logger
from cdx_enrich.result import Err, Ok, Result

from .utils import require_exactly_one, require_non_empty, require_unique

SOURCE_FIELDS = ("id", "name", "expression")


def create_license(entry: ReplaceLicenseByBomRefEntry) -> License:
    """Build the single license that replaces a component's licenses."""
    if entry.expression is not None:
        return LicenseExpression(value=entry.expression)
    if entry.id is not None:
        return DisjunctiveLicense(id=entry.id)
    return DisjunctiveLicense(name=entry.name)


class ReplaceLicenseByBomRef:
    """
    Replace the licenses of a component with a single configured license.

    Configuration entries name a component by BomRef and give exactly one of
    an SPDX license id, a license name or an SPDX expression. The component's
    licenses are replaced as a whole; applying the same entry twice yields
    the same BOM as applying it once.
    """

    @property
    def name(self) -> str:
        return REPLACE_LICENSE_BY_BOM_REF

    def check_config(self, entries: List[ReplaceLicenseByBomRefEntry]) -> Result[List[ReplaceLicenseByBomRefEntry]]:
        return (
            require_non_empty(self.name, entries, "ref", "BomRef")
            .bind(lambda valid: require_exactly_one(self.name, valid, SOURCE_FIELDS, lambda e: e.ref))
            .bind(lambda valid: require_unique(self.name, valid, lambda e: e.ref, "BomRef"))
        )

    def check_compatibility(
        self, bom: Bom, entries: List[ReplaceLicenseByBomRefEntry]
    ) -> Result[Tuple[Bom, List[ReplaceLicenseByBomRefEntry]]]:
        known_refs = index_by_bom_ref(bom)
        for entry in entries:
            if entry.ref not in known_refs:
                return Err(
                    EnrichError.incompatible(self.name, f"No component with BomRef '{entry.ref}' in the BOM.", entry.ref)
                )
        return Ok((bom, entries))

    async def execute(self, bom: Bom, entries: List[ReplaceLicenseByBomRefEntry]) -> Bom:
        components = index_by_bom_ref(bom)
        for entry in entries:
            component = components.get(entry.ref)
            if component is None:
                raise ExecutionDefect(self.name, f"BomRef '{entry.ref}' vanished after compatibility check")

            component.licenses = [create_license(entry)]
            logger.info(f"Replaced license of {entry.ref}")

        return bom

"""Replace licenses that are only given by URL with an SPDX id or a name."""

from typing import Dict, List, Tuple

from cyclonedx.model.bom import Bom
from cyclonedx.model.license import DisjunctiveLicense, License

from cdx_enrich.config import REPLACE_LICENSES_BY_URL, ReplaceLicensesByUrlEntry
from cdx_enrich.document import bom_ref_of, iter_components
from cdx_enrich.logging_config import logger
from cdx_enrich.result import Ok, Result

from .utils import require_exactly_one, require_non_empty, require_unique

SOURCE_FIELDS = ("id", "name")


def _license_url(license: License) -> str:
    if isinstance(license, DisjunctiveLicense) and license.url is not None:
        return str(license.url)
    return ""


class ReplaceLicensesByUrl:
    """
    Replace every license whose URL matches a configured URL.

    Scanners often record a license only by the URL of its text. Entries map
    such a URL to an SPDX id or a license name. Only the matching licenses
    of a component are replaced; its other licenses are kept. A configured
    URL that occurs nowhere in the BOM is not an error, since URLs are match
    patterns rather than identities.
    """

    @property
    def name(self) -> str:
        return REPLACE_LICENSES_BY_URL

    def check_config(self, entries: List[ReplaceLicensesByUrlEntry]) -> Result[List[ReplaceLicensesByUrlEntry]]:
        return (
            require_non_empty(self.name, entries, "url", "Url")
            .bind(lambda valid: require_exactly_one(self.name, valid, SOURCE_FIELDS, lambda e: e.url))
            .bind(lambda valid: require_unique(self.name, valid, lambda e: e.url.strip(), "Url"))
        )

    def check_compatibility(
        self, bom: Bom, entries: List[ReplaceLicensesByUrlEntry]
    ) -> Result[Tuple[Bom, List[ReplaceLicensesByUrlEntry]]]:
        return Ok((bom, entries))

    async def execute(self, bom: Bom, entries: List[ReplaceLicensesByUrlEntry]) -> Bom:
        by_url: Dict[str, ReplaceLicensesByUrlEntry] = {entry.url.strip(): entry for entry in entries}

        for component in iter_components(bom):
            current = list(component.licenses)
            if not any(_license_url(lic) in by_url for lic in current):
                continue

            replaced: List[License] = []
            for lic in current:
                entry = by_url.get(_license_url(lic))
                if entry is None:
                    replaced.append(lic)
                elif entry.id is not None:
                    replaced.append(DisjunctiveLicense(id=entry.id))
                else:
                    replaced.append(DisjunctiveLicense(name=entry.name))

            component.licenses = replaced
            logger.info(f"Replaced license(s) by URL for {bom_ref_of(component) or component.name}")

        return bom

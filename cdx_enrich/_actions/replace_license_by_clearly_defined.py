"""Replace component licenses with the declared license found on ClearlyDefined."""

import asyncio
from typing import Dict, List, Optional, Tuple

from cyclonedx.model.bom import Bom
from cyclonedx.model.component import Component
from cyclonedx.model.license import LicenseExpression
from packageurl import PackageURL

from cdx_enrich._clearlydefined import (
    ClearlyDefinedClient,
    LicenseLookup,
    PackageType,
    Provider,
    get_package_type,
    package_type_for_purl,
)
from cdx_enrich.config import REPLACE_LICENSE_BY_CLEARLY_DEFINED, ReplaceLicenseByClearlyDefinedEntry
from cdx_enrich.document import bom_ref_of, iter_components, purl_of
from cdx_enrich.errors import EnrichError
from cdx_enrich.exceptions import ExecutionDefect
from cdx_enrich.logging_config import logger
from cdx_enrich.result import Err, Ok, Result

from .utils import require_non_empty, require_unique

Entries = List[ReplaceLicenseByClearlyDefinedEntry]


def resolve_provider(entry: ReplaceLicenseByClearlyDefinedEntry) -> Tuple[PackageType, Provider]:
    """Resolve the package type and provider of a validated entry."""
    package_type = get_package_type(entry.package_type)
    if package_type is None:
        raise ExecutionDefect(REPLACE_LICENSE_BY_CLEARLY_DEFINED, f"Unknown package type '{entry.package_type}'")
    if entry.provider is None:
        return package_type, package_type.default_provider
    provider = package_type.get_provider(entry.provider)
    if provider is None:
        raise ExecutionDefect(
            REPLACE_LICENSE_BY_CLEARLY_DEFINED,
            f"Provider '{entry.provider}' is not valid for package type '{package_type.name}'",
        )
    return package_type, provider


class ReplaceLicenseByClearlyDefined:
    """
    Replace licenses of all components of a package type with ClearlyDefined data.

    For every component whose PURL matches a configured package type, the
    declared license of its ClearlyDefined definition replaces the
    component's licenses. Components for which ClearlyDefined has no usable
    declared license keep their licenses untouched.

    Lookups run concurrently; each one only writes the licenses of its own
    component, so the outcome equals running them one after another.
    """

    def __init__(self, client: Optional[LicenseLookup] = None) -> None:
        self._client = client

    @property
    def name(self) -> str:
        return REPLACE_LICENSE_BY_CLEARLY_DEFINED

    @property
    def client(self) -> LicenseLookup:
        if self._client is None:
            self._client = ClearlyDefinedClient()
        return self._client

    def check_config(self, entries: Entries) -> Result[Entries]:
        return (
            require_non_empty(self.name, entries, "package_type", "PackageType")
            .bind(self._check_package_types)
            .bind(
                lambda valid: require_unique(self.name, valid, lambda e: e.package_type.strip().lower(), "PackageType")
            )
        )

    def _check_package_types(self, entries: Entries) -> Result[Entries]:
        for entry in entries:
            package_type = get_package_type(entry.package_type)
            if package_type is None:
                return Err(
                    EnrichError.invalid_config(
                        self.name, f"Unsupported PackageType '{entry.package_type}'.", entry.package_type
                    )
                )
            if entry.provider is not None and package_type.get_provider(entry.provider) is None:
                valid = ", ".join(p.name for p in package_type.providers)
                return Err(
                    EnrichError.invalid_config(
                        self.name,
                        f"Provider '{entry.provider}' is not valid for PackageType '{package_type.name}'. "
                        f"Valid providers: {valid}",
                        entry.package_type,
                    )
                )
        return Ok(entries)

    def check_compatibility(self, bom: Bom, entries: Entries) -> Result[Tuple[Bom, Entries]]:
        present = set()
        for component in iter_components(bom):
            purl = purl_of(component)
            package_type = package_type_for_purl(purl) if purl else None
            if package_type is not None:
                present.add(package_type.name)

        for entry in entries:
            package_type = get_package_type(entry.package_type)
            if package_type is None or package_type.name not in present:
                return Err(
                    EnrichError.incompatible(
                        self.name,
                        f"No component with a PURL of PackageType '{entry.package_type}' in the BOM.",
                        entry.package_type,
                    )
                )
        return Ok((bom, entries))

    async def execute(self, bom: Bom, entries: Entries) -> Bom:
        providers: Dict[str, Provider] = {}
        for entry in entries:
            package_type, provider = resolve_provider(entry)
            providers[package_type.name] = provider

        lookups = []
        for component in iter_components(bom):
            purl = purl_of(component)
            package_type = package_type_for_purl(purl) if purl else None
            if package_type is None or package_type.name not in providers:
                continue
            lookups.append(self._replace_license(component, purl, providers[package_type.name]))

        replaced = sum(await asyncio.gather(*lookups))
        logger.info(
            f"ClearlyDefined enrichment: replaced {replaced} of {len(lookups)} matching component license(s)"
        )
        return bom

    async def _replace_license(self, component: Component, purl: PackageURL, provider: Provider) -> bool:
        licensed = await self.client.fetch_licensed_data(purl, provider)
        if licensed is None or not licensed.has_declared_license:
            logger.debug(f"No declared license on ClearlyDefined for {purl}, keeping existing license")
            return False

        component.licenses = [LicenseExpression(value=licensed.declared.strip())]
        logger.debug(f"Set license of {bom_ref_of(component) or purl} to '{licensed.declared}'")
        return True

"""Helpers for navigating the components of a CycloneDX BOM."""

from typing import Dict, Iterable, Iterator, Optional

from cyclonedx.model.bom import Bom
from cyclonedx.model.component import Component
from packageurl import PackageURL


def _walk(components: Iterable[Component]) -> Iterator[Component]:
    for component in components:
        yield component
        if component.components:
            yield from _walk(component.components)


def iter_components(bom: Bom) -> Iterator[Component]:
    """Iterate over all components of a BOM, nested components included (depth-first)."""
    yield from _walk(bom.components)


def bom_ref_of(component: Component) -> Optional[str]:
    """Get the BomRef value of a component, or None if it has none."""
    if component.bom_ref is None:
        return None
    return component.bom_ref.value


def index_by_bom_ref(bom: Bom) -> Dict[str, Component]:
    """Map every BomRef in the BOM to its component."""
    return {ref: component for component in iter_components(bom) if (ref := bom_ref_of(component))}


def purl_of(component: Component) -> Optional[PackageURL]:
    """
    Get the package URL of a component.

    cyclonedx-python-lib already deserializes ``purl`` into a PackageURL,
    but components built by hand may carry a plain string.
    """
    purl = component.purl
    if purl is None or isinstance(purl, PackageURL):
        return purl
    try:
        return PackageURL.from_string(str(purl))
    except ValueError:
        return None

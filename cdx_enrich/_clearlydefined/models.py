"""ClearlyDefined coordinate types, providers and response models."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from packageurl import PackageURL

# Declared values that carry no usable license information
NON_ASSERTED_LICENSES = frozenset({"", "NOASSERTION"})


@dataclass(frozen=True)
class Provider:
    """Upstream data source queried by ClearlyDefined for a package type."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PackageType:
    """
    ClearlyDefined coordinate type.

    Attributes:
        name: ClearlyDefined type name, also used in configuration (e.g. "crate")
        purl_types: PURL types that map onto this type (e.g. "cargo", "crate")
        default_provider: Provider queried when configuration names none
        providers: All providers valid for this type
    """

    name: str
    purl_types: FrozenSet[str]
    default_provider: Provider
    providers: Tuple[Provider, ...]

    def matches(self, purl: PackageURL) -> bool:
        return purl.type.lower() in self.purl_types

    def get_provider(self, name: str) -> Optional[Provider]:
        for provider in self.providers:
            if provider.name == name.lower():
                return provider
        return None


def _package_type(name: str, purl_types: Tuple[str, ...], providers: Tuple[str, ...]) -> PackageType:
    provider_objs = tuple(Provider(p) for p in providers)
    return PackageType(
        name=name,
        purl_types=frozenset(purl_types),
        default_provider=provider_objs[0],
        providers=provider_objs,
    )


# The first provider of each type is its default.
# See: https://docs.clearlydefined.io/docs/curation/coordinates
PACKAGE_TYPES: Dict[str, PackageType] = {
    pt.name: pt
    for pt in (
        _package_type("composer", ("composer",), ("packagist",)),
        _package_type("conda", ("conda",), ("conda-forge", "anaconda-main", "anaconda-r")),
        _package_type("crate", ("cargo", "crate"), ("cratesio",)),
        _package_type("cran", ("cran",), ("cran",)),
        _package_type("deb", ("deb",), ("debian",)),
        _package_type("gem", ("gem",), ("rubygems",)),
        _package_type("git", ("github", "gitlab", "git"), ("github", "gitlab")),
        _package_type("go", ("golang", "go"), ("golang",)),
        _package_type("maven", ("maven",), ("mavencentral", "mavengoogle", "gradleplugin")),
        _package_type("npm", ("npm",), ("npmjs",)),
        _package_type("nuget", ("nuget",), ("nuget",)),
        _package_type("pod", ("cocoapods", "pod"), ("cocoapods",)),
        _package_type("pypi", ("pypi",), ("pypi",)),
    )
}


def get_package_type(name: str) -> Optional[PackageType]:
    """Look up a package type by its (case-insensitive) ClearlyDefined name."""
    return PACKAGE_TYPES.get(name.strip().lower())


def package_type_for_purl(purl: PackageURL) -> Optional[PackageType]:
    """Find the package type a PURL belongs to."""
    for package_type in PACKAGE_TYPES.values():
        if package_type.matches(purl):
            return package_type
    return None


@dataclass
class Discovered:
    """License expressions found by scanning the package sources."""

    expressions: List[str] = field(default_factory=list)
    unknown: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Discovered":
        expressions = data.get("expressions") or []
        if not isinstance(expressions, list):
            raise ValueError("'discovered.expressions' must be a list")
        unknown = data.get("unknown") or 0
        return cls(expressions=[str(e) for e in expressions], unknown=int(unknown))


@dataclass
class CoreFacet:
    discovered: Discovered = field(default_factory=Discovered)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CoreFacet":
        return cls(discovered=Discovered.from_dict(_mapping(data.get("discovered"), "discovered")))


@dataclass
class Facets:
    core: CoreFacet = field(default_factory=CoreFacet)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Facets":
        return cls(core=CoreFacet.from_dict(_mapping(data.get("core"), "core")))


@dataclass
class LicensedData:
    """
    The ``licensed`` section of a ClearlyDefined definition.

    Attributes:
        declared: License expression declared by the package metadata
        facets: Scan results per facet (only ``core.discovered`` is modelled)
    """

    declared: Optional[str] = None
    facets: Facets = field(default_factory=Facets)

    @property
    def has_declared_license(self) -> bool:
        return self.declared is not None and self.declared.strip().upper() not in NON_ASSERTED_LICENSES

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LicensedData":
        declared = data.get("declared")
        if declared is not None and not isinstance(declared, str):
            raise ValueError("'licensed.declared' must be a string")
        return cls(declared=declared, facets=Facets.from_dict(_mapping(data.get("facets"), "facets")))


def parse_definition(data: Any) -> Optional[LicensedData]:
    """
    Extract LicensedData from a ClearlyDefined definition body.

    Returns:
        LicensedData, or None if the definition has no ``licensed`` section

    Raises:
        ValueError: If the body does not have the expected shape
    """
    if not isinstance(data, dict):
        raise ValueError("Definition must be a JSON object")
    licensed = data.get("licensed")
    if licensed is None:
        return None
    return LicensedData.from_dict(_mapping(licensed, "licensed"))


def _mapping(value: Any, key: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a JSON object")
    return value

"""ClearlyDefined lookup client.

Modules:
- models.py: Package types, providers and response models
- rate_limiter.py: Asynchronous token bucket shared by all lookups
- retry.py: Exponential backoff with jitter and per-attempt timeout
- client.py: ClearlyDefinedClient composing the rate limiter and retry policy

Example:
    from cdx_enrich._clearlydefined import ClearlyDefinedClient, get_package_type

    client = ClearlyDefinedClient()
    npm = get_package_type("npm")
    licensed = await client.fetch_licensed_data(purl, npm.default_provider)
"""

from .client import CLEARLYDEFINED_API_BASE, ClearlyDefinedClient, LicenseLookup, build_definition_url
from .models import (
    PACKAGE_TYPES,
    Discovered,
    LicensedData,
    PackageType,
    Provider,
    get_package_type,
    package_type_for_purl,
)
from .rate_limiter import TokenBucketRateLimiter, get_default_rate_limiter
from .retry import RetryPolicy

__all__ = [
    # Client
    "ClearlyDefinedClient",
    "LicenseLookup",
    "CLEARLYDEFINED_API_BASE",
    "build_definition_url",
    # Models
    "LicensedData",
    "Discovered",
    "PackageType",
    "Provider",
    "PACKAGE_TYPES",
    "get_package_type",
    "package_type_for_purl",
    # Resilience
    "TokenBucketRateLimiter",
    "get_default_rate_limiter",
    "RetryPolicy",
]

"""ClearlyDefined API client returning declared license data for a package."""

import asyncio
import os
from typing import Dict, Optional, Protocol, Tuple
from urllib.parse import quote

import requests
from packageurl import PackageURL

from cdx_enrich.http_client import create_session
from cdx_enrich.logging_config import logger

from .models import LicensedData, Provider, package_type_for_purl, parse_definition
from .rate_limiter import TokenBucketRateLimiter, get_default_rate_limiter
from .retry import RetryPolicy

CLEARLYDEFINED_API_BASE = "https://api.clearlydefined.io/definitions"
DEFAULT_TIMEOUT = 60  # seconds - per attempt

HTTP_NOT_FOUND = 404
HTTP_TOO_MANY_REQUESTS = 429

CacheKey = Tuple[str, str]


class LicenseLookup(Protocol):
    """
    Protocol for anything that can look up ClearlyDefined license data.

    Implementations must never raise: a missing definition, an unreachable
    service or a malformed answer are all reported as None.
    """

    async def fetch_licensed_data(self, purl: PackageURL, provider: Provider) -> Optional[LicensedData]:
        """
        Fetch the ``licensed`` section of the definition of a package.

        Args:
            purl: Package coordinate
            provider: ClearlyDefined provider to query

        Returns:
            LicensedData if available, None otherwise
        """
        ...


def get_api_base() -> str:
    """ClearlyDefined definitions endpoint, overridable via CLEARLYDEFINED_API_BASE."""
    return os.getenv("CLEARLYDEFINED_API_BASE", CLEARLYDEFINED_API_BASE).rstrip("/")


def build_definition_url(purl: PackageURL, provider: Provider, api_base: Optional[str] = None) -> str:
    """
    Build the definitions URL for a package coordinate.

    Format: {base}/{type}/{provider}/{namespace or "-"}/{name}/{version}?expand=-files
    e.g. .../maven/mavencentral/org.apache.commons/commons-lang3/3.12.0?expand=-files
    """
    package_type = package_type_for_purl(purl)
    cd_type = package_type.name if package_type else purl.type
    namespace = quote(purl.namespace, safe="@") if purl.namespace else "-"
    name = quote(purl.name, safe="@")
    version = quote(purl.version, safe="") if purl.version else "-"
    base = api_base or get_api_base()
    return f"{base}/{cd_type}/{provider.name}/{namespace}/{name}/{version}?expand=-files"


class ClearlyDefinedClient:
    """
    Rate-limited, retrying client for the ClearlyDefined definitions API.

    Every request first takes a token from the shared rate limiter, then runs
    through the retry policy: transport failures, timeouts and HTTP 429 are
    retried with backoff, anything else ends the lookup. ``fetch_licensed_data``
    never raises.

    Definitive answers (200 and 404) are cached per (PURL, provider) for the
    lifetime of the client, and concurrent lookups of the same key share a
    single request.

    Example:
        client = ClearlyDefinedClient()
        licensed = await client.fetch_licensed_data(
            PackageURL.from_string("pkg:npm/lodash@4.17.21"), Provider("npmjs")
        )
        if licensed and licensed.has_declared_license:
            print(licensed.declared)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[TokenBucketRateLimiter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        api_base: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._session = session or create_session()
        self._rate_limiter = rate_limiter or get_default_rate_limiter()
        self._retry_policy = retry_policy or RetryPolicy(timeout_seconds=timeout)
        self._api_base = api_base
        self._timeout = timeout
        self._cache: Dict[CacheKey, Optional[LicensedData]] = {}
        self._pending: Dict[CacheKey, "asyncio.Future[Optional[LicensedData]]"] = {}

    def clear_cache(self) -> None:
        """Clear cached lookup results."""
        self._cache.clear()

    async def fetch_licensed_data(self, purl: PackageURL, provider: Provider) -> Optional[LicensedData]:
        cache_key = (purl.to_string(), provider.name)
        if cache_key in self._cache:
            logger.debug(f"Cache hit (ClearlyDefined): {purl}")
            return self._cache[cache_key]

        # Concurrent lookups of the same package share one request
        pending = self._pending.get(cache_key)
        if pending is None:
            pending = asyncio.ensure_future(self._lookup(purl, provider, cache_key))
            self._pending[cache_key] = pending
            pending.add_done_callback(lambda _: self._pending.pop(cache_key, None))
        else:
            logger.debug(f"Joining in-flight ClearlyDefined lookup: {purl}")
        return await asyncio.shield(pending)

    async def _lookup(self, purl: PackageURL, provider: Provider, cache_key: CacheKey) -> Optional[LicensedData]:
        url = build_definition_url(purl, provider, self._api_base)
        try:
            licensed, definitive = await self._fetch(url, purl)
        except Exception as e:
            # A failed lookup is reported as "no data"
            logger.error(f"Error during ClearlyDefined API call {url}: {e}")
            return None

        # Transient failures are not cached so a later lookup can retry
        if definitive:
            self._cache[cache_key] = licensed
        return licensed

    async def _fetch(self, url: str, purl: PackageURL) -> Tuple[Optional[LicensedData], bool]:
        """
        Fetch and parse one definition.

        Returns:
            (LicensedData or None, whether the answer is definitive). Only a
            200 or 404 response is definitive.
        """
        await self._rate_limiter.acquire()

        async def attempt() -> requests.Response:
            return await asyncio.to_thread(self._session.get, url, timeout=self._timeout)

        try:
            response = await self._retry_policy.execute(
                attempt,
                should_retry_result=lambda r: r.status_code == HTTP_TOO_MANY_REQUESTS,
                on_retry=self._log_retry,
            )
        except requests.RequestException as e:
            logger.warning(f"ClearlyDefined API unreachable for {purl} after retries: {e}")
            return None, False
        except asyncio.TimeoutError:
            logger.warning(f"Timeout fetching ClearlyDefined definition for {purl}")
            return None, False

        if response.status_code == HTTP_NOT_FOUND:
            logger.debug(f"Package not found in ClearlyDefined: {purl}")
            return None, True
        if response.status_code != 200:
            logger.error(f"ClearlyDefined API call unsuccessful: HTTP {response.status_code} for {url}")
            return None, False

        try:
            licensed = parse_definition(response.json())
        except (ValueError, TypeError) as e:
            logger.warning(f"Malformed ClearlyDefined definition for {purl}: {e}")
            return None, True

        logger.info(f"Successfully retrieved data from ClearlyDefined API for package: {purl}")
        return licensed, True

    @staticmethod
    def _log_retry(attempt: int, delay: float, outcome: object) -> None:
        if isinstance(outcome, requests.Response):
            logger.warning(
                f"Rate limit reached on ClearlyDefined API call. Retry attempt {attempt} after {delay:.2f}s"
            )
            remaining = outcome.headers.get("x-ratelimit-remaining")
            limit = outcome.headers.get("x-ratelimit-limit")
            if remaining is not None and limit is not None:
                logger.info(f"Rate Limit Info: {remaining}/{limit} remaining")
        else:
            logger.warning(f"HTTP error on ClearlyDefined API call ({outcome}). Retry attempt {attempt} after {delay:.2f}s")

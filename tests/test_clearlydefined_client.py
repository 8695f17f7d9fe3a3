"""Tests for the ClearlyDefined API client."""

import asyncio
from unittest.mock import Mock

import pytest
import requests
from packageurl import PackageURL

from cdx_enrich._clearlydefined import (
    CLEARLYDEFINED_API_BASE,
    ClearlyDefinedClient,
    Provider,
    RetryPolicy,
    TokenBucketRateLimiter,
    build_definition_url,
)

LODASH = PackageURL.from_string("pkg:npm/lodash@4.17.21")
NPMJS = Provider("npmjs")
LODASH_URL = f"{CLEARLYDEFINED_API_BASE}/npm/npmjs/-/lodash/4.17.21?expand=-files"

DEFINITION = {
    "coordinates": {"type": "npm", "provider": "npmjs", "name": "lodash", "revision": "4.17.21"},
    "licensed": {
        "declared": "MIT",
        "facets": {"core": {"discovered": {"expressions": ["CC0-1.0", "MIT"], "unknown": 3}}},
    },
}


@pytest.fixture
def mock_session():
    """Create a mock requests session."""
    return Mock(spec=requests.Session)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def client(mock_session, sleeps, monkeypatch):
    monkeypatch.delenv("CLEARLYDEFINED_API_BASE", raising=False)

    async def record_sleep(seconds):
        sleeps.append(seconds)

    return ClearlyDefinedClient(
        session=mock_session,
        rate_limiter=TokenBucketRateLimiter(),
        retry_policy=RetryPolicy(sleep=record_sleep),
    )


def make_response(status_code=200, body=None, headers=None):
    mock_response = Mock()
    mock_response.status_code = status_code
    mock_response.json.return_value = body
    mock_response.headers = headers or {}
    return mock_response


def fetch(client, purl=LODASH, provider=NPMJS):
    return asyncio.run(client.fetch_licensed_data(purl, provider))


class TestBuildDefinitionUrl:
    def test_without_namespace(self):
        assert build_definition_url(LODASH, NPMJS, CLEARLYDEFINED_API_BASE) == LODASH_URL

    def test_with_namespace(self):
        purl = PackageURL.from_string("pkg:maven/org.apache.commons/commons-lang3@3.12.0")
        url = build_definition_url(purl, Provider("mavencentral"), "https://cd.example")
        assert url == "https://cd.example/maven/mavencentral/org.apache.commons/commons-lang3/3.12.0?expand=-files"

    def test_scoped_npm_package(self):
        purl = PackageURL.from_string("pkg:npm/%40angular/core@16.0.0")
        url = build_definition_url(purl, NPMJS, "https://cd.example")
        assert url == "https://cd.example/npm/npmjs/@angular/core/16.0.0?expand=-files"

    def test_missing_version(self):
        purl = PackageURL.from_string("pkg:pypi/requests")
        url = build_definition_url(purl, Provider("pypi"), "https://cd.example")
        assert url == "https://cd.example/pypi/pypi/-/requests/-?expand=-files"

    def test_purl_type_mapped_to_clearlydefined_type(self):
        purl = PackageURL.from_string("pkg:cargo/serde@1.0.152")
        url = build_definition_url(purl, Provider("cratesio"), "https://cd.example")
        assert url == "https://cd.example/crate/cratesio/-/serde/1.0.152?expand=-files"

    def test_api_base_from_environment(self, monkeypatch):
        monkeypatch.setenv("CLEARLYDEFINED_API_BASE", "https://mirror.example/definitions/")
        assert build_definition_url(LODASH, NPMJS).startswith("https://mirror.example/definitions/npm/")


class TestFetchLicensedData:
    def test_success(self, client, mock_session):
        mock_session.get.return_value = make_response(body=DEFINITION)

        licensed = fetch(client)

        assert licensed is not None
        assert licensed.declared == "MIT"
        assert licensed.facets.core.discovered.expressions == ["CC0-1.0", "MIT"]
        assert licensed.facets.core.discovered.unknown == 3
        mock_session.get.assert_called_once_with(LODASH_URL, timeout=60)

    def test_not_found_single_attempt(self, client, mock_session, sleeps):
        mock_session.get.return_value = make_response(status_code=404)

        assert fetch(client) is None
        assert mock_session.get.call_count == 1
        assert sleeps == []

    def test_server_error_not_retried(self, client, mock_session):
        mock_session.get.return_value = make_response(status_code=500)

        assert fetch(client) is None
        assert mock_session.get.call_count == 1

    def test_rate_limited_then_success(self, client, mock_session, sleeps):
        limited = make_response(429, headers={"x-ratelimit-remaining": "0", "x-ratelimit-limit": "2000"})
        mock_session.get.side_effect = [limited, limited, make_response(body=DEFINITION)]

        licensed = fetch(client)

        assert licensed.declared == "MIT"
        assert mock_session.get.call_count == 3
        assert len(sleeps) == 2

    def test_rate_limited_on_every_attempt(self, client, mock_session):
        mock_session.get.return_value = make_response(status_code=429)

        assert fetch(client) is None
        assert mock_session.get.call_count == 3

    def test_network_error_on_every_attempt(self, client, mock_session, sleeps):
        mock_session.get.side_effect = requests.ConnectionError("Network error")

        assert fetch(client) is None
        assert mock_session.get.call_count == 3
        assert len(sleeps) == 2

    def test_timeout_then_success(self, client, mock_session):
        mock_session.get.side_effect = [requests.Timeout("slow"), make_response(body=DEFINITION)]

        assert fetch(client).declared == "MIT"

    def test_malformed_json(self, client, mock_session):
        response = make_response()
        response.json.side_effect = ValueError("Invalid JSON")
        mock_session.get.return_value = response

        assert fetch(client) is None

    @pytest.mark.parametrize(
        "body",
        [
            ["not", "an", "object"],
            {"licensed": "MIT"},
            {"licensed": {"declared": 42}},
            {"licensed": {"facets": {"core": {"discovered": {"expressions": "MIT"}}}}},
        ],
    )
    def test_unexpected_shape(self, client, mock_session, body):
        mock_session.get.return_value = make_response(body=body)
        assert fetch(client) is None

    def test_definition_without_licensed_section(self, client, mock_session):
        mock_session.get.return_value = make_response(body={"coordinates": {}})
        assert fetch(client) is None

    def test_noassertion_returned_as_data(self, client, mock_session):
        mock_session.get.return_value = make_response(body={"licensed": {"declared": "NOASSERTION"}})

        licensed = fetch(client)

        assert licensed is not None
        assert licensed.has_declared_license is False

    def test_unexpected_exception_reported_as_no_data(self, client, mock_session):
        mock_session.get.side_effect = RuntimeError("boom")
        assert fetch(client) is None

    def test_results_cached(self, client, mock_session):
        mock_session.get.return_value = make_response(body=DEFINITION)

        fetch(client)
        fetch(client)

        assert mock_session.get.call_count == 1

    def test_cache_keyed_by_provider(self, client, mock_session):
        mock_session.get.return_value = make_response(body=DEFINITION)

        fetch(client, provider=NPMJS)
        fetch(client, provider=Provider("github"))

        assert mock_session.get.call_count == 2

    def test_clear_cache(self, client, mock_session):
        mock_session.get.return_value = make_response(body=DEFINITION)

        fetch(client)
        client.clear_cache()
        fetch(client)

        assert mock_session.get.call_count == 2

    def test_each_request_takes_a_token(self, mock_session):
        limiter = TokenBucketRateLimiter(capacity=5)
        client = ClearlyDefinedClient(session=mock_session, rate_limiter=limiter, api_base="https://cd.example")
        mock_session.get.return_value = make_response(status_code=404)

        fetch(client, PackageURL.from_string("pkg:npm/a@1.0.0"))
        fetch(client, PackageURL.from_string("pkg:npm/b@1.0.0"))

        assert limiter.available_tokens == 3


class TestSharedRateLimiter:
    def test_clients_share_limiter_across_runs(self):
        """Two runs, each with its own event loop, both enrich every package."""
        limiter = TokenBucketRateLimiter(capacity=1, period=0.01)
        purls = [PackageURL.from_string(f"pkg:npm/p{i}@1.0.0") for i in range(3)]

        def run_once():
            session = Mock(spec=requests.Session)
            session.get.return_value = make_response(body=DEFINITION)
            client = ClearlyDefinedClient(session=session, rate_limiter=limiter, api_base="https://cd.example")

            async def lookups():
                return await asyncio.gather(*(client.fetch_licensed_data(p, NPMJS) for p in purls))

            return [licensed.declared if licensed else None for licensed in asyncio.run(lookups())]

        assert run_once() == ["MIT", "MIT", "MIT"]
        assert run_once() == ["MIT", "MIT", "MIT"]


class TestLookupCache:
    """Only definitive answers are cached; duplicate in-flight lookups share a request."""

    def test_not_found_cached(self, client, mock_session):
        mock_session.get.return_value = make_response(status_code=404)

        assert fetch(client) is None
        assert fetch(client) is None
        assert mock_session.get.call_count == 1

    def test_server_error_not_cached(self, client, mock_session):
        mock_session.get.side_effect = [make_response(status_code=503), make_response(body=DEFINITION)]

        assert fetch(client) is None
        assert fetch(client).declared == "MIT"
        assert mock_session.get.call_count == 2

    def test_exhausted_retries_not_cached(self, client, mock_session):
        down = requests.ConnectionError("Network error")
        mock_session.get.side_effect = [down, down, down, make_response(body=DEFINITION)]

        assert fetch(client) is None
        assert fetch(client).declared == "MIT"
        assert mock_session.get.call_count == 4

    def test_concurrent_duplicates_share_request(self, client, mock_session):
        mock_session.get.return_value = make_response(body=DEFINITION)

        async def lookups():
            return await asyncio.gather(
                client.fetch_licensed_data(LODASH, NPMJS),
                client.fetch_licensed_data(PackageURL.from_string("pkg:npm/lodash@4.17.21"), NPMJS),
            )

        first, second = asyncio.run(lookups())

        assert first.declared == second.declared == "MIT"
        assert mock_session.get.call_count == 1

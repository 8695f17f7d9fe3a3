"""Pytest configuration and shared fixtures for all tests."""

import pytest

from cdx_enrich._clearlydefined import Provider, get_package_type

from .fakes import FakeLicenseLookup, licensed


@pytest.fixture(autouse=True)
def disable_sentry_for_tests(monkeypatch):
    """Disable Sentry telemetry for all tests.

    Runs automatically for every test so no events are sent, even if
    SENTRY_DSN happens to be set in the environment.
    """
    monkeypatch.setenv("TELEMETRY", "false")


@pytest.fixture
def fake_lookup():
    """A LicenseLookup answering for a handful of well-known packages."""
    lookup = FakeLicenseLookup()

    def default_provider(type_name: str) -> Provider:
        return get_package_type(type_name).default_provider

    lookup.setup("pkg:npm/lodash@4.17.21", default_provider("npm"), licensed("CC0-1.0 AND MIT"))
    lookup.setup(
        "pkg:maven/org.apache.commons/commons-lang3@3.12.0", default_provider("maven"), licensed("Apache-2.0")
    )
    lookup.setup("pkg:pypi/requests@2.28.1", default_provider("pypi"), licensed("Apache-2.0"))
    lookup.setup("pkg:gem/rails@7.0.4", default_provider("gem"), licensed("MIT"))
    lookup.setup("pkg:cargo/serde@1.0.152", default_provider("crate"), licensed("MIT OR Apache-2.0"))
    return lookup

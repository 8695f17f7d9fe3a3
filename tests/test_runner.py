"""Tests for the validate-then-execute runner."""

import asyncio
from unittest.mock import Mock

import pytest
from cyclonedx.model.license import DisjunctiveLicense, LicenseExpression

from cdx_enrich._actions import create_default_registry
from cdx_enrich.config import (
    REPLACE_LICENSE_BY_BOM_REF,
    REPLACE_LICENSE_BY_CLEARLY_DEFINED,
    REPLACE_LICENSES_BY_URL,
    Configuration,
    ReplaceLicenseByBomRefEntry,
    ReplaceLicenseByClearlyDefinedEntry,
    ReplaceLicensesByUrlEntry,
    load_config,
)
from cdx_enrich.errors import ErrorKind
from cdx_enrich.exceptions import ExecutionDefect
from cdx_enrich.result import Ok
from cdx_enrich.runner import run, run_sync

from .fakes import make_bom, make_component


@pytest.fixture
def registry(fake_lookup):
    return create_default_registry(license_lookup=fake_lookup)


@pytest.fixture
def bom():
    return make_bom(
        make_component("pkg-1", "pkg:npm/lodash@4.17.21", [DisjunctiveLicense(id="Apache-2.0")]),
        make_component("pkg-2", "pkg:pypi/requests@2.28.1", [DisjunctiveLicense(id="GPL-3.0-only")]),
    )


def licenses_of(bom, ref):
    component = next(c for c in bom.components if c.bom_ref.value == ref)
    return list(component.licenses)


def snapshot(bom):
    return {c.bom_ref.value: list(c.licenses) for c in bom.components}


class TestRun:
    def test_replace_by_bom_ref(self, bom, registry):
        configuration = load_config("ReplaceLicenseByBomRef:\n  - Ref: pkg-1\n    Id: MIT\n").unwrap()

        result = run_sync(bom, configuration, registry)

        assert result.is_ok()
        assert [lic.id for lic in licenses_of(result.unwrap(), "pkg-1")] == ["MIT"]

    def test_empty_configuration_leaves_bom_unchanged(self, bom, registry):
        before = snapshot(bom)
        result = run_sync(bom, Configuration(), registry)
        assert result.is_ok()
        assert snapshot(result.unwrap()) == before

    def test_compatibility_error_prevents_all_execution(self, bom, registry, fake_lookup):
        """A missing BomRef in one action stops every action, even ones configured earlier."""
        configuration = Configuration(
            sections={
                REPLACE_LICENSE_BY_CLEARLY_DEFINED: [ReplaceLicenseByClearlyDefinedEntry(package_type="npm")],
                REPLACE_LICENSE_BY_BOM_REF: [ReplaceLicenseByBomRefEntry(ref="missing", id="MIT")],
            }
        )
        before = snapshot(bom)

        result = run_sync(bom, configuration, registry)

        assert result.is_err()
        assert result.error.kind == ErrorKind.INCOMPATIBLE_CONFIG
        assert result.error.target == "missing"
        assert snapshot(bom) == before
        assert fake_lookup.calls == []

    def test_config_error_reported_before_compatibility(self, bom, registry):
        configuration = Configuration(
            sections={
                REPLACE_LICENSE_BY_BOM_REF: [ReplaceLicenseByBomRefEntry(ref="missing", id="MIT")],
                REPLACE_LICENSES_BY_URL: [ReplaceLicensesByUrlEntry(url="https://example.com")],
            }
        )

        result = run_sync(bom, configuration, registry)

        assert result.is_err()
        assert result.error.kind == ErrorKind.INVALID_CONFIG
        assert result.error.action == REPLACE_LICENSES_BY_URL

    def test_actions_execute_in_configured_order(self, registry):
        entries_cd = [ReplaceLicenseByClearlyDefinedEntry(package_type="npm")]
        entries_ref = [ReplaceLicenseByBomRefEntry(ref="pkg-1", id="MIT")]

        first = make_bom(make_component("pkg-1", "pkg:npm/lodash@4.17.21"))
        cd_then_ref = {REPLACE_LICENSE_BY_CLEARLY_DEFINED: entries_cd, REPLACE_LICENSE_BY_BOM_REF: entries_ref}
        run_sync(first, Configuration(cd_then_ref), registry)
        assert [lic.id for lic in licenses_of(first, "pkg-1")] == ["MIT"]

        second = make_bom(make_component("pkg-1", "pkg:npm/lodash@4.17.21"))
        ref_then_cd = {REPLACE_LICENSE_BY_BOM_REF: entries_ref, REPLACE_LICENSE_BY_CLEARLY_DEFINED: entries_cd}
        run_sync(second, Configuration(ref_then_cd), registry)
        assert [lic.value for lic in licenses_of(second, "pkg-1")] == ["CC0-1.0 AND MIT"]

    def test_unregistered_section(self, bom, registry):
        result = run_sync(bom, Configuration({"ReplaceEverything": []}), registry)
        assert result.is_err()
        assert result.error.action == "runner"

    def test_defect_propagates(self, bom):
        action = Mock()
        action.name = "Broken"
        action.check_config.side_effect = lambda entries: Ok(entries)
        action.check_compatibility.side_effect = lambda b, entries: Ok((b, entries))

        async def fail(b, entries):
            raise ExecutionDefect("Broken", "unexpected state")

        action.execute.side_effect = fail
        registry = create_default_registry()
        registry.register(action)

        with pytest.raises(ExecutionDefect):
            asyncio.run(run(bom, Configuration({"Broken": []}), registry))


class TestEndToEnd:
    """Whole-pipeline scenarios on small documents."""

    def test_expression_set_on_unlicensed_component(self, registry):
        bom = make_bom(make_component("pkg-1"))
        configuration = load_config("ReplaceLicenseByBomRef:\n  - Ref: pkg-1\n    Expression: MIT\n").unwrap()

        result = run_sync(bom, configuration, registry)

        licenses = licenses_of(result.unwrap(), "pkg-1")
        assert len(licenses) == 1
        assert isinstance(licenses[0], LicenseExpression)
        assert licenses[0].value == "MIT"

    def test_missing_ref_leaves_document_unchanged(self, registry):
        bom = make_bom(make_component("pkg-1"))
        configuration = load_config("ReplaceLicenseByBomRef:\n  - Ref: missing-ref\n    Expression: MIT\n").unwrap()

        result = run_sync(bom, configuration, registry)

        assert result.is_err()
        assert result.error.kind == ErrorKind.INCOMPATIBLE_CONFIG
        assert licenses_of(bom, "pkg-1") == []

    def test_declared_license_from_lookup(self, registry):
        bom = make_bom(make_component("lodash", "pkg:npm/lodash@4.17.21"))
        configuration = load_config("ReplaceLicenseByClearlyDefined:\n  - PackageType: npm\n").unwrap()

        result = run_sync(bom, configuration, registry)

        licenses = licenses_of(result.unwrap(), "lodash")
        assert len(licenses) == 1
        assert licenses[0].value == "CC0-1.0 AND MIT"

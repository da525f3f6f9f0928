"""Architectural boundary tests using pytest-archon.

These tests verify that the codebase follows clean architecture principles:
- Domain layer has no dependencies on adapters
- Application services don't depend on adapters
- Adapters can depend on domain
- No circular dependencies
"""

from pytest_archon import archrule


def test_domain_models_have_no_dependencies() -> None:
    """Domain models should not import any other modules except standard library and domain itself."""
    (
        archrule("domain models", comment="Domain models should be independent")
        .match("tracker_sync.domain.models*")
        .should_not_import("tracker_sync.adapters*")
        .should_not_import("tracker_sync.application*")
        .should_not_import("tracker_sync.domain.contracts*")
        .should_not_import("tracker_sync.domain.ports*")
        .may_import("tracker_sync.domain.models*")
        .check("tracker_sync")
    )


def test_domain_contracts_have_no_dependencies() -> None:
    """Domain contracts (protocols/interfaces) should not import adapters or application."""
    (
        archrule("domain contracts", comment="Domain contracts should be independent")
        .match("tracker_sync.domain.contracts*")
        .should_not_import("tracker_sync.adapters*")
        .should_not_import("tracker_sync.application*")
        .may_import("tracker_sync.domain.contracts*")
        .may_import("tracker_sync.domain.models*")
        .check("tracker_sync")
    )


def test_domain_ports_have_no_dependencies() -> None:
    """Domain ports (interfaces) should not import adapters or application."""
    (
        archrule("domain ports", comment="Domain ports should be independent")
        .match("tracker_sync.domain.ports*")
        .should_not_import("tracker_sync.adapters*")
        .should_not_import("tracker_sync.application*")
        .may_import("tracker_sync.domain.ports*")
        .may_import("tracker_sync.domain.models*")
        .check("tracker_sync")
    )


def test_application_services_dont_import_adapters() -> None:
    """Application services should not depend on adapters (infrastructure layer)."""
    (
        archrule(
            "application services", comment="Application services should not depend on adapters"
        )
        .match("tracker_sync.application*")
        .should_not_import("tracker_sync.adapters*")
        .should_not_import("tracker_sync.main")
        .should_not_import("tracker_sync.cli")
        .may_import("tracker_sync.domain*")
        .may_import("tracker_sync.application*")
        .check("tracker_sync")
    )


def test_adapters_dont_import_application() -> None:
    """Adapters should not import application services (to avoid cycles)."""
    (
        archrule(
            "adapters independence", comment="Adapters should not depend on application services"
        )
        .match("tracker_sync.adapters*")
        .should_not_import("tracker_sync.application*")
        .may_import("tracker_sync.domain*")
        .may_import("tracker_sync.adapters*")
        .check("tracker_sync", only_direct_imports=True)
    )


def test_no_circular_dependencies_in_domain() -> None:
    """Domain layer should not have circular dependencies."""
    (
        archrule("domain no cycles", comment="Domain layer should not have circular dependencies")
        .match("tracker_sync.domain*")
        .should_not_import("tracker_sync.adapters*")
        .should_not_import("tracker_sync.application*")
        .may_import("tracker_sync.domain*")
        .check("tracker_sync", only_direct_imports=True)
    )


def test_parser_does_no_io() -> None:
    """The tracker page parser should not depend on the store or the HTTP client."""
    (
        archrule("parser purity", comment="The parser is a pure function over page text")
        .match("tracker_sync.adapters.tracker_html*")
        .should_not_import("tracker_sync.adapters.sqlite_store*")
        .should_not_import("tracker_sync.adapters.upstream*")
        .should_not_import("aiohttp*")
        .should_not_import("sqlite3")
        .may_import("tracker_sync.domain*")
        .may_import("tracker_sync.adapters.tracker_html*")
        .check("tracker_sync", only_direct_imports=True)
    )

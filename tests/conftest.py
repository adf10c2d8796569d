"""Shared test fixtures for oasir.

Provides the document fixtures under ``tests/fixtures``, factories for
small in-memory documents and resolution contexts, and the global output
reset. These fixtures are discovered by pytest and available to every test
module without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import pytest
import yaml

from oasir.models import AssemblyConfig
from oasir.output import reset_output
from oasir.parser import DocumentRegistry, ResolutionContext


FIXTURES_DIR = Path(__file__).parent / "fixtures"

COMMON_URI = "https://schemas.example.com/common.yaml"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Raw document fixtures
# ---------------------------------------------------------------------------


def _load(name: str) -> dict[str, Any]:
    path = FIXTURES_DIR / name
    with open(path, encoding="utf-8") as f:
        if path.suffix == ".json":
            return json.load(f)
        return yaml.safe_load(f)


@pytest.fixture
def petstore_raw() -> dict[str, Any]:
    """OpenAPI 3.0 petstore: servers, links, security, allOf and oneOf."""
    return _load("petstore.yaml")


@pytest.fixture
def events_raw() -> dict[str, Any]:
    """OpenAPI 3.1 document with webhooks, callbacks and path item components."""
    return _load("events.yaml")


@pytest.fixture
def swagger_raw() -> dict[str, Any]:
    """Swagger 2.0 document with body and formData parameters."""
    return _load("swagger.json")


@pytest.fixture
def common_raw() -> dict[str, Any]:
    """Auxiliary API document with shared schemas and parameters."""
    return _load("common.yaml")


@pytest.fixture
def catalog_raw() -> dict[str, Any]:
    """Primary document whose references point into ``common.yaml``."""
    return _load("catalog.yaml")


@pytest.fixture
def base_schema_raw() -> dict[str, Any]:
    """Standalone JSON Schema document with ``$id``, ``$anchor`` and ``$defs``."""
    return _load("base.schema.json")


@pytest.fixture
def common_registry(common_raw: dict[str, Any]) -> DocumentRegistry:
    """A frozen registry holding ``common.yaml`` under :data:`COMMON_URI`."""
    registry = DocumentRegistry()
    registry.register_api_document(COMMON_URI, common_raw)
    return registry.freeze()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_document() -> Callable[..., dict[str, Any]]:
    """Factory for a minimal OpenAPI document.

    Usage::

        doc = make_document(paths={...}, components={...}, openapi="3.0.3")
    """

    def _make(
        paths: Optional[dict[str, Any]] = None,
        components: Optional[dict[str, Any]] = None,
        openapi: str = "3.1.0",
        **extra: Any,
    ) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "openapi": openapi,
            "info": {"title": "Test API", "version": "1.0.0"},
            "paths": paths or {},
        }
        if components is not None:
            doc["components"] = components
        doc.update(extra)
        return doc

    return _make


@pytest.fixture
def make_context(
    make_document: Callable[..., dict[str, Any]],
) -> Callable[..., ResolutionContext]:
    """Factory for a :class:`ResolutionContext` over a minimal document.

    Usage::

        context = make_context(components={"schemas": {...}})
        context = make_context(document=raw, registry=registry)
    """

    def _make(
        document: Optional[dict[str, Any]] = None,
        registry: Optional[DocumentRegistry] = None,
        config: Optional[AssemblyConfig] = None,
        retrieval_uri: Optional[str] = None,
        **kwargs: Any,
    ) -> ResolutionContext:
        raw = document if document is not None else make_document(**kwargs)
        return ResolutionContext.for_document(raw, retrieval_uri, registry, config)

    return _make


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()

"""oasir -- a validated intermediate representation of OpenAPI documents.

This package ingests API description documents (OpenAPI 3.0/3.1/3.2, legacy
Swagger 2.0 and standalone JSON Schema) and produces a fully-resolved,
immutable intermediate representation of routes, data models, parameters and
cross-document references. Code emitters, documentation renderers and test
generators consume that representation instead of the raw documents.

Typical usage::

    from oasir import DocumentRegistry, assemble, build_models, load_document

    registry = DocumentRegistry()
    registry.register_api_document("file:///specs/common.yaml", common_raw)
    raw = load_document("openapi.yaml")
    result = assemble(raw, registry=registry, retrieval_uri="file:///specs/openapi.yaml")
    for route in result.routes:
        print(route.method, route.path, route.handler_name)

Modules:
    models: Pydantic models of the intermediate representation.
    exceptions: Exception hierarchy with exit-code mapping.
    config: Assembly configuration and its precedence resolution.
    parser: Loading, JSON Pointer / URI helpers, the document registry and
        the resolution context.
    schemas: The schema model builder.
    operations: Parameter, request-body and response resolution.
    routes: The route/operation assembler.
    validation: Structural validation suite.
    app: Typer application and CLI entry point.
"""

__version__ = "0.4.0"

from oasir.exceptions import (  # noqa: E402
    DocumentParseError,
    OasirError,
    ParameterConflictError,
    ReferenceCollisionError,
    ReferenceCycleError,
    ReferenceNotFoundError,
    SchemaCompositionError,
    ValidationViolation,
    VersionUnsupportedError,
)
from oasir.models import AssemblyConfig  # noqa: E402
from oasir.parser import DocumentRegistry, detect_version, load_document, parse_text  # noqa: E402
from oasir.routes import AssembledDocument, assemble  # noqa: E402
from oasir.schemas import build_models, schema_to_type  # noqa: E402
from oasir.validation import validate_document  # noqa: E402

__all__ = [
    "AssembledDocument",
    "AssemblyConfig",
    "DocumentParseError",
    "DocumentRegistry",
    "OasirError",
    "ParameterConflictError",
    "ReferenceCollisionError",
    "ReferenceCycleError",
    "ReferenceNotFoundError",
    "SchemaCompositionError",
    "ValidationViolation",
    "VersionUnsupportedError",
    "assemble",
    "build_models",
    "detect_version",
    "load_document",
    "parse_text",
    "schema_to_type",
    "validate_document",
]

"""Tests for oasir.validation.suite -- whole-document validation."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from oasir.exceptions import ValidationViolation, VersionUnsupportedError
from oasir.parser import DocumentRegistry, ResolutionContext
from oasir.validation import DocumentValidator, validate_document

from conftest import COMMON_URI


class TestFixtures:
    """Every bundled fixture is a valid document."""

    def test_petstore(self, petstore_raw: dict[str, Any]) -> None:
        validate_document(petstore_raw)

    def test_events(self, events_raw: dict[str, Any]) -> None:
        validate_document(events_raw)

    def test_swagger(self, swagger_raw: dict[str, Any]) -> None:
        validate_document(swagger_raw)

    def test_catalog_with_registry(self, catalog_raw: dict[str, Any], common_registry: DocumentRegistry) -> None:
        validate_document(catalog_raw, common_registry)

    def test_accepts_context(self, make_context: Callable[..., ResolutionContext], petstore_raw: dict[str, Any]) -> None:
        validate_document(make_context(document=petstore_raw))


class TestDocumentRules:
    """Test rules applied while walking a document."""

    def test_unsupported_version(self) -> None:
        with pytest.raises(VersionUnsupportedError):
            validate_document({"openapi": "4.0.0", "info": {"title": "T", "version": "1"}, "paths": {}})

    def test_missing_info(self) -> None:
        with pytest.raises(ValidationViolation) as exc_info:
            validate_document({"openapi": "3.1.0", "paths": {}})
        assert exc_info.value.path == "info"

    def test_root_servers(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(servers=[{"url": "https://{env}.example.com"}])
        with pytest.raises(ValidationViolation, match="server variable 'env' is used but not declared"):
            validate_document(doc)

    def test_component_keys(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(components={"schemas": {"bad key": {}}})
        with pytest.raises(ValidationViolation, match="component key must match"):
            validate_document(doc)

    def test_component_responses(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(components={"responses": {"Bad": {}}})
        with pytest.raises(ValidationViolation) as exc_info:
            validate_document(doc)
        assert exc_info.value.path == "components.responses.Bad"

    def test_security_schemes(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(components={"securitySchemes": {"oidc": {"type": "openIdConnect"}}})
        with pytest.raises(ValidationViolation) as exc_info:
            validate_document(doc)
        assert exc_info.value.path == "components.securitySchemes.oidc.openIdConnectUrl"

    def test_swagger_security_definitions(self, swagger_raw: dict[str, Any]) -> None:
        swagger_raw["securityDefinitions"]["key"]["in"] = "cookie"
        with pytest.raises(ValidationViolation) as exc_info:
            validate_document(swagger_raw)
        assert exc_info.value.path == "securityDefinitions.key.in"


class TestOperations:
    """Test per-operation rules."""

    def test_duplicate_operation_id(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(
            paths={
                "/a": {"get": {"operationId": "same", "responses": {"200": {"description": "ok"}}}},
                "/b": {"get": {"operationId": "same", "responses": {"200": {"description": "ok"}}}},
            }
        )
        with pytest.raises(ValidationViolation) as exc_info:
            validate_document(doc)
        assert exc_info.value.path == "paths./b.get.operationId"
        assert exc_info.value.reason == "operationId 'same' is already used by paths./a.get"

    def test_duplicate_across_webhooks(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(
            paths={"/a": {"post": {"operationId": "same"}}},
            webhooks={"hook": {"post": {"operationId": "same"}}},
        )
        with pytest.raises(ValidationViolation, match="already used by paths./a.post"):
            validate_document(doc)

    def test_shared_path_item_is_checked_once(self, events_raw: dict[str, Any]) -> None:
        validator = DocumentValidator(ResolutionContext.for_document(events_raw))
        validator.run()
        assert set(validator._operation_ids) == {"subscribe", "unsubscribe", "onPetAdopted"}

    def test_responses_required_in_30(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(paths={"/a": {"get": {}}}, openapi="3.0.3")
        with pytest.raises(ValidationViolation, match="responses must be an object") as exc_info:
            validate_document(doc)
        assert exc_info.value.path == "paths./a.get.responses"

    def test_responses_optional_in_31(self, make_document: Callable[..., dict]) -> None:
        validate_document(make_document(paths={"/a": {"get": {}}}))

    def test_declared_responses_are_checked_in_31(self, make_document: Callable[..., dict]) -> None:
        with pytest.raises(ValidationViolation, match="at least one response"):
            validate_document(make_document(paths={"/a": {"get": {"responses": {}}}}))

    def test_request_body(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(paths={"/a": {"post": {"requestBody": {"description": "empty"}}}})
        with pytest.raises(ValidationViolation) as exc_info:
            validate_document(doc)
        assert exc_info.value.path == "paths./a.post.requestBody.content"

    def test_request_body_encoding_headers(self, make_document: Callable[..., dict]) -> None:
        media = {
            "schema": {"type": "object"},
            "encoding": {"file": {"headers": {"X-Part": {"style": "form", "schema": {"type": "string"}}}}},
        }
        doc = make_document(
            paths={"/a": {"post": {"requestBody": {"content": {"multipart/form-data": media}}}}}
        )
        with pytest.raises(ValidationViolation, match="header style must be 'simple'") as exc_info:
            validate_document(doc)
        assert exc_info.value.path == (
            "paths./a.post.requestBody.content.multipart/form-data.encoding.file.headers.X-Part.style"
        )

    def test_operation_servers(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(paths={"/a": {"get": {"servers": [{"url": "/x?y=1"}]}}})
        with pytest.raises(ValidationViolation) as exc_info:
            validate_document(doc)
        assert exc_info.value.path == "paths./a.get.servers[0]"

    def test_parameter_content(self, make_document: Callable[..., dict]) -> None:
        param = {
            "name": "filter",
            "in": "query",
            "content": {"application/json": {"example": {}, "examples": {}}},
        }
        doc = make_document(paths={"/a": {"parameters": [param], "get": {}}})
        with pytest.raises(ValidationViolation) as exc_info:
            validate_document(doc)
        assert exc_info.value.path == "paths./a.parameters[0].content.application/json"

    def test_path_conflict(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(paths={"/u/{a}": {}, "/u/{b}": {}})
        with pytest.raises(ValidationViolation, match="templated path conflicts"):
            validate_document(doc)


class TestCallbacks:
    def test_invalid_expression(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(
            paths={"/a": {"post": {"callbacks": {"hook": {"https://x/{id}": {"post": {}}}}}}}
        )
        with pytest.raises(ValidationViolation) as exc_info:
            validate_document(doc)
        assert exc_info.value.path == "paths./a.post.callbacks.hook.https://x/{id}"

    def test_callback_operations_are_checked(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(
            paths={
                "/a": {
                    "post": {
                        "callbacks": {
                            "hook": {"{$url}": {"post": {"requestBody": {"content": {}}}}}
                        }
                    }
                }
            }
        )
        with pytest.raises(ValidationViolation, match="request body must declare content"):
            validate_document(doc)

    def test_cross_document_response(self, catalog_raw: dict[str, Any], common_raw: dict[str, Any]) -> None:
        common_raw["components"]["responses"] = {"Gone": {"description": ""}}
        registry = DocumentRegistry()
        registry.register_api_document(COMMON_URI, common_raw)
        catalog_raw["paths"]["/items"]["get"]["responses"]["410"] = {
            "$ref": f"{COMMON_URI}#/components/responses/Gone"
        }
        with pytest.raises(ValidationViolation, match="non-empty description"):
            validate_document(catalog_raw, registry.freeze())

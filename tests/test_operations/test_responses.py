"""Tests for oasir.operations.responses -- success response selection."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from oasir.exceptions import ReferenceNotFoundError
from oasir.models import TypeKind
from oasir.operations.responses import (
    infer_media_type,
    resolve_response,
    select_response,
    select_response_media,
)
from oasir.parser import ResolutionContext


@pytest.fixture
def petstore(make_context: Callable[..., ResolutionContext], petstore_raw: dict[str, Any]) -> ResolutionContext:
    return make_context(document=petstore_raw)


class TestSelectResponse:
    """Test the success status priority."""

    @pytest.mark.parametrize(
        "statuses, expected",
        [
            (["default", "201", "200"], "200"),
            (["default", "201"], "201"),
            (["404", "2XX", "default"], "2XX"),
            (["2xx", "default"], "2xx"),
            (["400", "default"], "default"),
            (["3XX", "204"], "3XX"),
            (["404", "204", "202"], "204"),
        ],
    )
    def test_priority(self, statuses: list[str], expected: str) -> None:
        status, _ = select_response({s: {"description": s} for s in statuses})
        assert status == expected

    def test_integer_keys(self) -> None:
        status, raw = select_response({200: {"description": "ok"}})
        assert status == "200"
        assert raw == {"description": "ok"}

    @pytest.mark.parametrize("responses", [{}, None, {"404": {}, "500": {}}])
    def test_no_success_response(self, responses: Any) -> None:
        assert select_response(responses) is None


class TestResponseMedia:
    """Test the JSON-first media preference."""

    @pytest.mark.parametrize(
        "media_types, expected",
        [
            (["application/xml", "application/json"], "application/json"),
            (["application/xml", "application/problem+json"], "application/problem+json"),
            (["text/plain", "application/*"], "application/*"),
            (["text/plain", "*/*"], "*/*"),
            (["text/plain", "application/xml"], "text/plain"),
        ],
    )
    def test_preference(self, media_types: list[str], expected: str) -> None:
        media_type, _ = select_response_media({m: {} for m in media_types})
        assert media_type == expected

    @pytest.mark.parametrize(
        "media_type, rendered",
        [
            ("application/json", "opaque"),
            ("text/html", "string"),
            ("image/png", "binary"),
            ("application/pdf", "binary"),
        ],
    )
    def test_infer_media_type(self, media_type: str, rendered: str) -> None:
        assert infer_media_type(media_type).render() == rendered

    def test_unknown_media_type(self) -> None:
        assert infer_media_type("application/xml") is None


class TestResolveResponse:
    """Test body types, headers and links of the selected response."""

    def test_list_pets(self, petstore: ResolutionContext, petstore_raw: dict[str, Any]) -> None:
        details = resolve_response(petstore_raw["paths"]["/pets"]["get"]["responses"], petstore)
        assert details.status == "200"
        assert details.media_type == "application/json"
        assert details.body_type.render() == "array<Pet>"
        assert [h.name for h in details.headers] == ["X-Total-Count"]
        assert details.headers[0].type.render() == "int64"

    def test_inline_link(self, petstore: ResolutionContext, petstore_raw: dict[str, Any]) -> None:
        details = resolve_response(petstore_raw["paths"]["/pets"]["post"]["responses"], petstore)
        link = details.links[0]
        assert link.name == "GetCreatedPet"
        assert link.operation_id == "getPetById"
        assert link.parameters == {"petId": "$response.body#/id"}
        assert link.target is None

    def test_referenced_link(self, petstore: ResolutionContext, petstore_raw: dict[str, Any]) -> None:
        details = resolve_response(petstore_raw["paths"]["/pets/{petId}"]["get"]["responses"], petstore)
        assert details.links[0].name == "Self"
        assert details.links[0].operation_ref == "#/paths/~1pets~1{petId}/get"

    def test_referenced_default_response(self, petstore: ResolutionContext) -> None:
        details = resolve_response({"default": {"$ref": "#/components/responses/Error"}}, petstore)
        assert details.status == "default"
        assert details.body_type.render() == "Error"

    def test_no_content(self, petstore: ResolutionContext) -> None:
        details = resolve_response({"204": {"description": "Deleted"}}, petstore)
        assert details.status == "204"
        assert details.body_type is None
        assert details.media_type is None

    def test_item_schema(self, make_context: Callable[..., ResolutionContext]) -> None:
        responses = {
            "200": {
                "description": "stream",
                "content": {"application/jsonl": {"itemSchema": {"$ref": "#/components/schemas/Event"}}},
            }
        }
        details = resolve_response(responses, make_context())
        assert details.body_type.render() == "array<Event>"

    def test_schemaless_media(self, make_context: Callable[..., ResolutionContext]) -> None:
        details = resolve_response(
            {"200": {"description": "csv", "content": {"text/csv": {}}}}, make_context()
        )
        assert details.body_type.render() == "string"

    def test_header_metadata(self, make_context: Callable[..., ResolutionContext]) -> None:
        context = make_context(
            components={"headers": {"RateLimit": {"description": "Calls left", "required": True, "schema": {"type": "integer"}}}}
        )
        responses = {
            "200": {
                "description": "ok",
                "headers": {
                    "X-Rate-Limit": {"$ref": "#/components/headers/RateLimit"},
                    "X-Old": {"deprecated": True, "schema": {"type": "string"}},
                },
            }
        }
        headers = resolve_response(responses, context).headers
        assert headers[0].description == "Calls left"
        assert headers[0].required
        assert headers[1].deprecated

    def test_missing_link_ref_raises(self, make_context: Callable[..., ResolutionContext]) -> None:
        responses = {"200": {"description": "ok", "links": {"x": {"$ref": "#/components/links/Nope"}}}}
        with pytest.raises(ReferenceNotFoundError):
            resolve_response(responses, make_context())

    def test_no_success(self, make_context: Callable[..., ResolutionContext]) -> None:
        assert resolve_response({"500": {"description": "boom"}}, make_context()) is None


class TestSwaggerResponses:
    """Test Swagger 2.0 response schemas and produces."""

    @pytest.fixture
    def context(
        self, make_context: Callable[..., ResolutionContext], swagger_raw: dict[str, Any]
    ) -> ResolutionContext:
        return make_context(document=swagger_raw)

    def test_root_produces(self, context: ResolutionContext, swagger_raw: dict[str, Any]) -> None:
        operation = swagger_raw["paths"]["/orders"]["get"]
        details = resolve_response(operation["responses"], context, operation)
        assert details.media_type == "application/json"
        assert details.body_type.kind == TypeKind.ARRAY
        assert details.body_type.render() == "array<Order>"

    def test_operation_produces(self, context: ResolutionContext) -> None:
        operation = {"produces": ["application/xml"]}
        responses = {"200": {"description": "ok", "schema": {"type": "string"}}}
        details = resolve_response(responses, context, operation)
        assert details.media_type == "application/xml"

    def test_without_schema(self, context: ResolutionContext) -> None:
        details = resolve_response({"default": {"description": "Done"}}, context)
        assert details.status == "default"
        assert details.body_type is None

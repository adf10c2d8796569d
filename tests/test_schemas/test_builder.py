"""Tests for oasir.schemas.builder -- classifying component and $defs schemas."""

from __future__ import annotations

import logging
from typing import Any, Callable

import pytest

from oasir.exceptions import ReferenceCycleError, ReferenceNotFoundError
from oasir.models import EnumModel, StructModel
from oasir.parser import ResolutionContext
from oasir.schemas import build_model, build_models
from oasir.schemas.builder import ROOT_SCHEMA_NAME, sanitize_schema_name, schema_root_name
from oasir.schemas.refs import deref_schema


def _names(models: list) -> list[str]:
    return [model.name for model in models]


class TestBuildModels:
    """Test classification of component schemas."""

    def test_petstore_models_in_declaration_order(self, petstore_raw: dict[str, Any]) -> None:
        models = build_models(petstore_raw)
        assert _names(models) == ["Pet", "NewPet", "Error", "Animal", "Cat", "Dog"]

    def test_string_enum_is_not_modeled(self, petstore_raw: dict[str, Any]) -> None:
        assert "Status" not in _names(build_models(petstore_raw))

    def test_kinds(self, petstore_raw: dict[str, Any]) -> None:
        kinds = {model.name: model.kind for model in build_models(petstore_raw)}
        assert kinds["Pet"] == "struct"
        assert kinds["NewPet"] == "struct"
        assert kinds["Animal"] == "enum"

    def test_swagger_definitions(self, swagger_raw: dict[str, Any]) -> None:
        models = build_models(swagger_raw)
        assert _names(models) == ["Order"]
        order = models[0]
        assert order.field("id").type.render() == "int64"
        assert order.field("status").type.render() == "string?"

    def test_swagger_x_nullable_property(self) -> None:
        doc = {
            "swagger": "2.0",
            "info": {"title": "T", "version": "1"},
            "paths": {},
            "definitions": {
                "Note": {
                    "type": "object",
                    "required": ["body", "editor"],
                    "properties": {
                        "body": {"type": "string"},
                        "editor": {"type": "string", "x-nullable": True},
                    },
                }
            },
        }
        note = build_models(doc)[0]
        assert note.field("body").type.render() == "string"
        assert note.field("editor").type.render() == "string?"

    def test_accepts_ready_context(self, make_context: Callable[..., ResolutionContext]) -> None:
        context = make_context(components={"schemas": {"A": {"type": "object"}}})
        assert _names(build_models(context)) == ["A"]

    def test_untyped_schema_with_properties_is_struct(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(components={"schemas": {"Loose": {"properties": {"a": {"type": "string"}}}}})
        assert isinstance(build_models(doc)[0], StructModel)

    def test_boolean_schema_is_skipped(self, make_document: Callable[..., dict]) -> None:
        doc = make_document(components={"schemas": {"Anything": True}})
        assert build_models(doc) == []

    def test_allof_with_oneof_becomes_enum(
        self, make_document: Callable[..., dict], caplog: pytest.LogCaptureFixture
    ) -> None:
        doc = make_document(
            components={
                "schemas": {
                    "Mixed": {
                        "allOf": [{"type": "object", "properties": {"a": {}}}],
                        "oneOf": [{"type": "string"}, {"type": "integer"}],
                    }
                }
            }
        )
        with caplog.at_level(logging.WARNING, logger="oasir"):
            models = build_models(doc)
        assert isinstance(models[0], EnumModel)
        assert "combines allOf with oneOf/anyOf" in caplog.text


class TestAliases:
    """Test component schemas that are bare or extended references."""

    SCHEMAS = {
        "Pet": {
            "type": "object",
            "required": ["id"],
            "properties": {"id": {"type": "string"}, "name": {"type": "string"}},
        },
    }

    def test_bare_alias_copies_target(self, make_context: Callable[..., ResolutionContext]) -> None:
        context = make_context(components={"schemas": self.SCHEMAS})
        model = build_model("PetAlias", {"$ref": "#/components/schemas/Pet"}, context)
        assert model.name == "PetAlias"
        assert [f.name for f in model.fields] == ["id", "name"]

    def test_ref_with_sibling_properties(self, make_context: Callable[..., ResolutionContext]) -> None:
        context = make_context(components={"schemas": self.SCHEMAS})
        schema = {"$ref": "#/components/schemas/Pet", "properties": {"extra": {"type": "boolean"}}}
        model = build_model("Extended", schema, context)
        assert [f.name for f in model.fields] == ["id", "name", "extra"]

    def test_missing_alias_raises(self, make_context: Callable[..., ResolutionContext]) -> None:
        context = make_context()
        with pytest.raises(ReferenceNotFoundError):
            build_model("Ghost", {"$ref": "#/components/schemas/Ghost"}, context)

    def test_alias_cycle_raises(self, make_context: Callable[..., ResolutionContext]) -> None:
        context = make_context(
            components={
                "schemas": {
                    "A": {"$ref": "#/components/schemas/B"},
                    "B": {"$ref": "#/components/schemas/A"},
                }
            }
        )
        with pytest.raises(ReferenceCycleError):
            deref_schema({"$ref": "#/components/schemas/A"}, context)

    def test_deref_keeps_annotation_only_refs_bare(
        self, make_context: Callable[..., ResolutionContext]
    ) -> None:
        context = make_context(components={"schemas": self.SCHEMAS})
        resolved = deref_schema({"$ref": "#/components/schemas/Pet", "description": "alias"}, context)
        assert resolved.name == "Pet"
        assert resolved.value["required"] == ["id"]


class TestSchemaDocuments:
    """Test standalone JSON Schema documents."""

    def test_root_and_defs(self, base_schema_raw: dict[str, Any]) -> None:
        models = build_models(base_schema_raw, retrieval_uri="file:///schemas/base.schema.json")
        assert _names(models) == ["BaseEntity", "Owner", "Kind"]

    def test_root_fields(self, base_schema_raw: dict[str, Any]) -> None:
        root = build_models(base_schema_raw, retrieval_uri="file:///schemas/base.schema.json")[0]
        assert root.field("id").type.render() == "uuid"
        assert root.field("created").type.render() == "date-time?"
        assert root.field("owner").type.render() == "Owner?"

    @pytest.mark.parametrize(
        "raw, uri, name",
        [
            ({"title": "order line"}, None, "OrderLine"),
            ({"$id": "https://x/schemas/pet-owner.json"}, None, "PetOwner"),
            ({}, "file:///tmp/invoice.schema.json", "Invoice"),
            ({}, None, ROOT_SCHEMA_NAME),
            ({"title": "  "}, "file:///tmp/2024-report.json", "Schema2024Report"),
        ],
    )
    def test_schema_root_name(self, raw: dict, uri: str, name: str) -> None:
        assert schema_root_name(raw, uri) == name

    def test_sanitize_schema_name(self) -> None:
        assert sanitize_schema_name("user profile") == "UserProfile"
        assert sanitize_schema_name("!!!") == ROOT_SCHEMA_NAME

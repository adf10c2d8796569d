"""Tests for oasir.operations.params -- parameter validation and defaulting."""

from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from oasir.exceptions import ParameterConflictError, ReferenceNotFoundError
from oasir.models import AssemblyConfig, ParameterLocation, ParameterStyle, RouteParam
from oasir.operations.params import (
    check_style,
    merge_parameters,
    resolve_explode,
    resolve_parameter,
    resolve_parameters,
    resolve_style,
)
from oasir.parser import ResolutionContext

Q = ParameterLocation.QUERY
P = ParameterLocation.PATH
H = ParameterLocation.HEADER
C = ParameterLocation.COOKIE


def _param(name: str, location: str, **extra: Any) -> dict[str, Any]:
    raw: dict[str, Any] = {"name": name, "in": location, "schema": {"type": "string"}}
    if location == "path":
        raw["required"] = True
    raw.update(extra)
    return raw


@pytest.fixture
def context(make_context: Callable[..., ResolutionContext]) -> ResolutionContext:
    return make_context(
        components={
            "parameters": {
                "Limit": {
                    "name": "limit",
                    "in": "query",
                    "description": "Page size",
                    "schema": {"type": "integer"},
                },
            },
            "schemas": {"Filter": {"type": "object", "properties": {"q": {"type": "string"}}}},
        }
    )


# ---------------------------------------------------------------------------
# Defaulting
# ---------------------------------------------------------------------------


class TestStyleDefaulting:
    """Test explicit > collectionFormat > location default."""

    @pytest.mark.parametrize(
        "location, style",
        [
            (P, ParameterStyle.SIMPLE),
            (H, ParameterStyle.SIMPLE),
            (Q, ParameterStyle.FORM),
            (C, ParameterStyle.FORM),
            (ParameterLocation.QUERYSTRING, ParameterStyle.FORM),
        ],
    )
    def test_location_defaults(self, location: ParameterLocation, style: ParameterStyle) -> None:
        assert resolve_style(None, None, location) == style

    def test_explicit_wins_over_collection_format(self) -> None:
        assert resolve_style("spaceDelimited", "pipes", Q) == ParameterStyle.SPACE_DELIMITED

    @pytest.mark.parametrize(
        "collection_format, style",
        [
            ("ssv", ParameterStyle.SPACE_DELIMITED),
            ("tsv", ParameterStyle.SPACE_DELIMITED),
            ("pipes", ParameterStyle.PIPE_DELIMITED),
            ("multi", ParameterStyle.FORM),
            ("csv", ParameterStyle.FORM),
            ("bogus", ParameterStyle.FORM),
        ],
    )
    def test_collection_formats(self, collection_format: str, style: ParameterStyle) -> None:
        assert resolve_style(None, collection_format, Q) == style

    def test_csv_in_path_uses_simple(self) -> None:
        assert resolve_style(None, "csv", P) == ParameterStyle.SIMPLE

    def test_unknown_style_raises(self) -> None:
        with pytest.raises(ParameterConflictError, match="unknown style 'weird'"):
            resolve_style("weird", None, Q, "x")


class TestExplodeDefaulting:
    """Test explicit > form/cookie > false."""

    @pytest.mark.parametrize(
        "style, expected",
        [
            (ParameterStyle.FORM, True),
            (ParameterStyle.COOKIE, True),
            (ParameterStyle.SIMPLE, False),
            (ParameterStyle.DEEP_OBJECT, False),
            (ParameterStyle.PIPE_DELIMITED, False),
        ],
    )
    def test_defaults(self, style: ParameterStyle, expected: bool) -> None:
        assert resolve_explode(None, style) is expected

    def test_explicit_value_wins(self) -> None:
        assert resolve_explode(False, ParameterStyle.FORM) is False
        assert resolve_explode(True, ParameterStyle.SIMPLE) is True


class TestStyleMatrix:
    """Test style compatibility with location and value kind."""

    @pytest.mark.parametrize(
        "style, location",
        [
            (ParameterStyle.FORM, P),
            (ParameterStyle.SIMPLE, Q),
            (ParameterStyle.FORM, H),
            (ParameterStyle.MATRIX, C),
            (ParameterStyle.DEEP_OBJECT, H),
        ],
    )
    def test_disallowed_combinations(self, style: ParameterStyle, location: ParameterLocation) -> None:
        with pytest.raises(ParameterConflictError, match="is not allowed in"):
            check_style(style, location, None)

    @pytest.mark.parametrize(
        "style, location",
        [
            (ParameterStyle.MATRIX, P),
            (ParameterStyle.LABEL, P),
            (ParameterStyle.COOKIE, C),
            (ParameterStyle.DEEP_OBJECT, Q),
        ],
    )
    def test_allowed_combinations(self, style: ParameterStyle, location: ParameterLocation) -> None:
        check_style(style, location, None)

    def test_deep_object_requires_object(self) -> None:
        with pytest.raises(ParameterConflictError, match="deepObject"):
            check_style(ParameterStyle.DEEP_OBJECT, Q, "string")

    @pytest.mark.parametrize("style", [ParameterStyle.SPACE_DELIMITED, ParameterStyle.PIPE_DELIMITED])
    def test_delimited_rejects_primitives(self, style: ParameterStyle) -> None:
        with pytest.raises(ParameterConflictError, match="primitive"):
            check_style(style, Q, "integer")
        check_style(style, Q, "array")


# ---------------------------------------------------------------------------
# Single parameters
# ---------------------------------------------------------------------------


class TestResolveParameter:
    """Test the per-parameter pipeline."""

    def test_path_uuid_parameter(self, context: ResolutionContext) -> None:
        param = resolve_parameter(
            _param("id", "path", schema={"type": "string", "format": "uuid"}), context
        )
        assert param.location == P
        assert param.type.render() == "uuid"
        assert param.style == ParameterStyle.SIMPLE
        assert param.explode is False
        assert param.required

    def test_query_defaults(self, context: ResolutionContext) -> None:
        param = resolve_parameter(_param("q", "query"), context)
        assert param.style == ParameterStyle.FORM
        assert param.explode is True
        assert param.type.render() == "string?"
        assert not param.required

    def test_explicit_style_and_explode(self, context: ResolutionContext) -> None:
        raw = _param("ids", "path", style="label", explode=True, schema={"type": "array", "items": {"type": "integer"}})
        param = resolve_parameter(raw, context)
        assert param.style == ParameterStyle.LABEL
        assert param.explode is True
        assert param.type.render() == "array<int32>"

    def test_deep_object_through_schema_ref(self, context: ResolutionContext) -> None:
        raw = _param("filter", "query", style="deepObject", schema={"$ref": "#/components/schemas/Filter"})
        param = resolve_parameter(raw, context)
        assert param.style == ParameterStyle.DEEP_OBJECT
        assert param.explode is False
        assert param.type.render() == "Filter?"

    def test_deep_object_on_string_raises(self, context: ResolutionContext) -> None:
        with pytest.raises(ParameterConflictError, match="deepObject"):
            resolve_parameter(_param("filter", "query", style="deepObject"), context)

    def test_ref_with_description_override(self, context: ResolutionContext) -> None:
        raw = {"$ref": "#/components/parameters/Limit", "description": "How many"}
        param = resolve_parameter(raw, context)
        assert param.name == "limit"
        assert param.description == "How many"
        assert param.type.render() == "int32?"

    def test_ref_keeps_target_description(self, context: ResolutionContext) -> None:
        param = resolve_parameter({"$ref": "#/components/parameters/Limit"}, context)
        assert param.description == "Page size"

    def test_missing_ref_raises(self, context: ResolutionContext) -> None:
        with pytest.raises(ReferenceNotFoundError):
            resolve_parameter({"$ref": "#/components/parameters/Nope"}, context)

    @pytest.mark.parametrize("name", ["Accept", "content-type", "AUTHORIZATION"])
    def test_reserved_headers_are_dropped(self, context: ResolutionContext, name: str) -> None:
        assert resolve_parameter(_param(name, "header"), context) is None

    def test_custom_reserved_headers(self, make_context: Callable[..., ResolutionContext]) -> None:
        context = make_context(config=AssemblyConfig(reserved_headers=("x-internal",)))
        assert resolve_parameter(_param("X-Internal", "header"), context) is None
        assert resolve_parameter(_param("Accept", "header"), context) is not None

    def test_content_parameter(self, context: ResolutionContext) -> None:
        raw = {
            "name": "filter",
            "in": "query",
            "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Filter"}}},
        }
        param = resolve_parameter(raw, context)
        assert param.content_media_type == "application/json"
        assert param.style is None
        assert param.explode is False
        assert param.type.render() == "Filter?"

    def test_flags(self, context: ResolutionContext) -> None:
        raw = _param("q", "query", allowEmptyValue=True, allowReserved=True, deprecated=True, example="abc")
        param = resolve_parameter(raw, context)
        assert param.allow_empty_value
        assert param.allow_reserved
        assert param.deprecated
        assert param.example == "abc"


class TestParameterShape:
    """Test shape violations."""

    @pytest.mark.parametrize(
        "raw, message",
        [
            (_param("id", "path", required=False), "required: true"),
            ({"name": "id", "in": "path", "schema": {"type": "string"}}, "required: true"),
            (
                _param("q", "query", content={"text/plain": {}}),
                "both 'schema' and 'content'",
            ),
            (
                {"name": "q", "in": "query", "style": "form", "content": {"text/plain": {}}},
                "cannot be combined with style",
            ),
            ({"name": "q", "in": "query", "content": {}}, "must declare a media type"),
            ({"name": "q", "in": "query"}, "either 'schema' or 'content'"),
            (_param("q", "query", example=1, examples={}), "both 'example' and 'examples'"),
            (_param("X-A", "header", allowEmptyValue=True), "only allowed on query"),
            (_param("q", "body"), "unsupported location"),
            ({"in": "query", "schema": {}}, "without a name"),
        ],
    )
    def test_violations(self, context: ResolutionContext, raw: dict, message: str) -> None:
        with pytest.raises(ParameterConflictError, match=message):
            resolve_parameter(raw, context)

    def test_non_object_parameter(self, context: ResolutionContext) -> None:
        with pytest.raises(ParameterConflictError, match="not an object"):
            resolve_parameter("limit", context)


# ---------------------------------------------------------------------------
# Parameter sets
# ---------------------------------------------------------------------------


def _querystring(name: str = "qs") -> dict[str, Any]:
    return {
        "name": name,
        "in": "querystring",
        "content": {"application/x-www-form-urlencoded": {"schema": {"type": "object"}}},
    }


class TestParameterSets:
    """Test duplicate detection, querystring exclusivity and merging."""

    def test_querystring_alone(self, context: ResolutionContext) -> None:
        params = resolve_parameters([_querystring()], context)
        assert params[0].location == ParameterLocation.QUERYSTRING
        assert params[0].style is None

    def test_querystring_with_query_conflicts(self, context: ResolutionContext) -> None:
        with pytest.raises(ParameterConflictError, match="cannot be combined with query"):
            resolve_parameters([_querystring(), _param("limit", "query")], context)

    def test_two_querystrings_conflict(self, context: ResolutionContext) -> None:
        with pytest.raises(ParameterConflictError, match="At most one querystring"):
            resolve_parameters([_querystring("a"), _querystring("b")], context)

    def test_querystring_with_schema_raises(self, context: ResolutionContext) -> None:
        with pytest.raises(ParameterConflictError, match="querystring"):
            resolve_parameter(_param("qs", "querystring"), context)

    def test_querystring_with_two_media_types_raises(self, context: ResolutionContext) -> None:
        raw = {"name": "qs", "in": "querystring", "content": {"text/plain": {}, "application/json": {}}}
        with pytest.raises(ParameterConflictError, match="exactly one media type"):
            resolve_parameter(raw, context)

    def test_duplicate_raises(self, context: ResolutionContext) -> None:
        with pytest.raises(ParameterConflictError, match="Duplicate parameter 'a'"):
            resolve_parameters([_param("a", "query"), _param("a", "query")], context)

    def test_duplicate_headers_are_case_insensitive(self, context: ResolutionContext) -> None:
        with pytest.raises(ParameterConflictError, match="Duplicate"):
            resolve_parameters([_param("X-Id", "header"), _param("x-id", "header")], context)

    def test_same_name_in_other_location(self, context: ResolutionContext) -> None:
        params = resolve_parameters([_param("id", "query"), _param("id", "header")], context)
        assert [p.location for p in params] == [Q, H]

    def test_none_and_non_list(self, context: ResolutionContext) -> None:
        assert resolve_parameters(None, context) == []
        with pytest.raises(ParameterConflictError, match="must be an array"):
            resolve_parameters({"name": "a"}, context)

    def test_merge_operation_overrides(self, context: ResolutionContext) -> None:
        common = resolve_parameters([_param("a", "query"), _param("b", "header")], context)
        operation = resolve_parameters([_param("a", "query", description="op-level")], context)
        merged = merge_parameters(common, operation)
        assert [(p.name, p.location) for p in merged] == [("b", H), ("a", Q)]
        assert merged[1].description == "op-level"

    def test_merge_rechecks_querystring(self, context: ResolutionContext) -> None:
        common = resolve_parameters([_param("limit", "query")], context)
        operation = resolve_parameters([_querystring()], context)
        with pytest.raises(ParameterConflictError):
            merge_parameters(common, operation)


class TestSwaggerParameters:
    """Test Swagger 2.0 inline types and collection formats."""

    @pytest.fixture
    def swagger_context(
        self, make_context: Callable[..., ResolutionContext], swagger_raw: dict[str, Any]
    ) -> ResolutionContext:
        return make_context(document=swagger_raw)

    def _operation_params(self, raw: dict[str, Any], path: str, method: str) -> Any:
        return raw["paths"][path][method]["parameters"]

    def test_collection_formats(self, swagger_context: ResolutionContext, swagger_raw: dict) -> None:
        params = resolve_parameters(self._operation_params(swagger_raw, "/orders", "get"), swagger_context)
        status, ids = params
        assert status.style == ParameterStyle.PIPE_DELIMITED
        assert status.explode is False
        assert status.type.render() == "array<string>?"
        assert ids.style == ParameterStyle.FORM
        assert ids.explode is True

    def test_body_parameters_are_skipped(self, swagger_context: ResolutionContext, swagger_raw: dict) -> None:
        assert resolve_parameters(self._operation_params(swagger_raw, "/orders", "post"), swagger_context) == []
        form = self._operation_params(swagger_raw, "/orders/{orderId}/attachments", "post")
        assert resolve_parameters(form, swagger_context) == []

    def test_shared_parameter_ref(self, swagger_context: ResolutionContext) -> None:
        param: Optional[RouteParam] = resolve_parameter({"$ref": "#/parameters/OrderId"}, swagger_context)
        assert param.location == P
        assert param.type.render() == "int64"

    def test_untyped_parameter_is_string(self, swagger_context: ResolutionContext) -> None:
        param = resolve_parameter({"name": "q", "in": "query"}, swagger_context)
        assert param.type.render() == "string?"

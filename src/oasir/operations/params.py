"""Parameter resolution: validation, style/explode defaulting and merging.

Every raw parameter goes through the same steps:

1. ``$ref`` resolution through ``components/parameters`` (a ``description``
   next to the ``$ref`` replaces the target's description).
2. Reserved header names are dropped.
3. Shape validation (schema vs content, style keywords on content-based
   parameters, example vs examples, ``allowEmptyValue`` outside query,
   ``required`` on path parameters).
4. Style defaulting: explicit ``style`` > Swagger 2.0 ``collectionFormat``
   > location default. Explode defaulting: explicit value > ``True`` for
   ``form``/``cookie`` styles > ``False``.
5. Style compatibility with the location and with the value's structural
   kind.

Merged parameter sets (path item + operation) are keyed by
``(name, location)`` with operation entries winning, and are checked for
``querystring`` exclusivity.

Default styles by location::

    path, header               -> simple
    query, cookie, querystring -> form
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from oasir.exceptions import ParameterConflictError
from oasir.models import (
    ParameterLocation,
    ParameterStyle,
    PrimitiveType,
    RouteParam,
    TypeDescriptor,
)
from oasir.operations.examples import resolve_example
from oasir.parser.context import ResolutionContext
from oasir.schemas.types import schema_to_type, schema_type_name

logger = logging.getLogger(__name__)

# --- Style tables ---

LOCATION_STYLES: dict[ParameterLocation, frozenset[ParameterStyle]] = {
    ParameterLocation.PATH: frozenset(
        {ParameterStyle.MATRIX, ParameterStyle.LABEL, ParameterStyle.SIMPLE}
    ),
    ParameterLocation.QUERY: frozenset(
        {
            ParameterStyle.FORM,
            ParameterStyle.SPACE_DELIMITED,
            ParameterStyle.PIPE_DELIMITED,
            ParameterStyle.DEEP_OBJECT,
        }
    ),
    ParameterLocation.QUERYSTRING: frozenset(
        {
            ParameterStyle.FORM,
            ParameterStyle.SPACE_DELIMITED,
            ParameterStyle.PIPE_DELIMITED,
            ParameterStyle.DEEP_OBJECT,
        }
    ),
    ParameterLocation.HEADER: frozenset({ParameterStyle.SIMPLE}),
    ParameterLocation.COOKIE: frozenset({ParameterStyle.FORM, ParameterStyle.COOKIE}),
}
"""Styles each location accepts."""

DEFAULT_STYLES: dict[ParameterLocation, ParameterStyle] = {
    ParameterLocation.PATH: ParameterStyle.SIMPLE,
    ParameterLocation.HEADER: ParameterStyle.SIMPLE,
    ParameterLocation.QUERY: ParameterStyle.FORM,
    ParameterLocation.COOKIE: ParameterStyle.FORM,
    ParameterLocation.QUERYSTRING: ParameterStyle.FORM,
}

_COLLECTION_FORMATS: dict[str, ParameterStyle] = {
    "ssv": ParameterStyle.SPACE_DELIMITED,
    "tsv": ParameterStyle.SPACE_DELIMITED,
    "pipes": ParameterStyle.PIPE_DELIMITED,
    "multi": ParameterStyle.FORM,
}

_EXPLODING_STYLES = frozenset({ParameterStyle.FORM, ParameterStyle.COOKIE})

_STYLE_KEYWORDS = ("style", "explode", "allowReserved", "collectionFormat")

# Swagger 2.0 locations that describe the request body, not parameters.
SWAGGER_BODY_LOCATIONS = frozenset({"body", "formData"})

# Keys of a Swagger 2.0 non-body parameter that form its inline schema.
_SWAGGER_SCHEMA_KEYS = (
    "type",
    "format",
    "items",
    "enum",
    "default",
    "minimum",
    "maximum",
    "pattern",
)


def _conflict(name: str, location: str, message: str) -> ParameterConflictError:
    return ParameterConflictError(f"Parameter '{name}' in {location}: {message}")


# --- Defaulting ---


def resolve_style(
    explicit: Optional[str],
    collection_format: Optional[str],
    location: ParameterLocation,
    name: str = "",
) -> ParameterStyle:
    """Resolve the effective style of a parameter.

    Raises:
        ParameterConflictError: If *explicit* is not a known style.
    """
    if explicit is not None:
        try:
            return ParameterStyle(explicit)
        except ValueError:
            raise _conflict(name, location.value, f"unknown style '{explicit}'") from None

    if collection_format is not None:
        if collection_format == "csv":
            return DEFAULT_STYLES[location]
        mapped = _COLLECTION_FORMATS.get(collection_format)
        if mapped is not None:
            return mapped
        logger.debug("Ignoring unknown collectionFormat %r on %s", collection_format, name)

    return DEFAULT_STYLES[location]


def resolve_explode(explicit: Optional[bool], style: ParameterStyle) -> bool:
    """Explicit value, else ``True`` for the ``form`` and ``cookie`` styles."""
    if explicit is not None:
        return explicit
    return style in _EXPLODING_STYLES


def check_style(
    style: ParameterStyle,
    location: ParameterLocation,
    structural_kind: Optional[str],
    name: str = "",
) -> None:
    """Check *style* against the location matrix and the value's structural kind.

    Args:
        style: The resolved style.
        location: The parameter location.
        structural_kind: ``object``, ``array``, a primitive type name, or
            ``None`` when unknown (no type check then).

    Raises:
        ParameterConflictError: On any incompatibility.
    """
    if style not in LOCATION_STYLES[location]:
        raise _conflict(
            name, location.value, f"style '{style.value}' is not allowed in {location.value}"
        )
    if structural_kind is None:
        return
    if style == ParameterStyle.DEEP_OBJECT and structural_kind != "object":
        raise _conflict(name, location.value, "style 'deepObject' requires an object schema")
    if style in (ParameterStyle.SPACE_DELIMITED, ParameterStyle.PIPE_DELIMITED):
        if structural_kind not in ("array", "object"):
            raise _conflict(
                name,
                location.value,
                f"style '{style.value}' does not apply to primitive values",
            )


# --- Single parameter ---


def _structural_kind(schema: Any, context: ResolutionContext) -> Optional[str]:
    if isinstance(schema, dict) and isinstance(schema.get("$ref"), str):
        target = context.locate_schema(schema["$ref"])
        schema = target.value if target is not None else None
    return schema_type_name(schema)


def _parse_location(raw: dict[str, Any], name: str) -> ParameterLocation:
    location = raw.get("in")
    try:
        return ParameterLocation(location)
    except ValueError:
        raise ParameterConflictError(
            f"Parameter '{name}' has unsupported location '{location}'"
        ) from None


def _swagger_schema(raw: dict[str, Any]) -> Optional[dict[str, Any]]:
    schema = {key: raw[key] for key in _SWAGGER_SCHEMA_KEYS if key in raw}
    if not schema:
        return None
    if schema.get("type") == "file":
        schema = {"type": "string", "format": "binary"}
    return schema


def _validate_shape(
    raw: dict[str, Any], name: str, location: ParameterLocation, is_v3: bool
) -> None:
    where = location.value
    has_schema = "schema" in raw
    has_content = "content" in raw

    if has_schema and has_content:
        raise _conflict(name, where, "declares both 'schema' and 'content'")
    if has_content:
        present = [key for key in _STYLE_KEYWORDS if key in raw]
        if present:
            raise _conflict(
                name, where, f"'content' cannot be combined with {', '.join(present)}"
            )
        content = raw["content"]
        if not isinstance(content, dict) or not content:
            raise _conflict(name, where, "'content' must declare a media type")
    if is_v3 and not has_schema and not has_content:
        raise _conflict(name, where, "must declare either 'schema' or 'content'")
    if "example" in raw and "examples" in raw:
        raise _conflict(name, where, "declares both 'example' and 'examples'")
    if "allowEmptyValue" in raw and location != ParameterLocation.QUERY:
        raise _conflict(name, where, "'allowEmptyValue' is only allowed on query parameters")
    if location == ParameterLocation.PATH and raw.get("required") is not True:
        raise _conflict(name, where, "path parameters must declare 'required: true'")
    if location == ParameterLocation.QUERYSTRING:
        if has_schema or "style" in raw:
            raise _conflict(name, where, "querystring parameters use 'content', not 'schema'/'style'")
        if not has_content or len(raw["content"]) != 1:
            raise _conflict(name, where, "querystring parameters must declare exactly one media type")


def resolve_parameter(
    raw: Any,
    context: ResolutionContext,
    is_v3: Optional[bool] = None,
) -> Optional[RouteParam]:
    """Resolve one raw parameter (inline or ``$ref``).

    Returns:
        The :class:`~oasir.models.RouteParam`, or ``None`` for a dropped
        reserved header or a Swagger 2.0 body/formData parameter.

    Raises:
        ParameterConflictError: On any validation failure.
        ReferenceNotFoundError: If a ``$ref`` does not resolve.
        ReferenceCycleError: If a ``$ref`` chain loops.
    """
    is_v3 = context.is_v3 if is_v3 is None else is_v3

    description_override: Optional[str] = None
    if isinstance(raw, dict) and isinstance(raw.get("$ref"), str):
        if isinstance(raw.get("description"), str):
            description_override = raw["description"]
    resolved = context.resolve_inline(raw, "parameters", visited=set())
    param, owner = resolved.value, resolved.context
    if not isinstance(param, dict):
        raise ParameterConflictError(f"Parameter is not an object: {param!r}")

    name = param.get("name")
    if not isinstance(name, str) or not name:
        raise ParameterConflictError("Parameter without a name")
    if not is_v3 and param.get("in") in SWAGGER_BODY_LOCATIONS:
        return None
    location = _parse_location(param, name)

    if location == ParameterLocation.HEADER and owner.config.is_reserved_header(name):
        logger.debug("Dropping reserved header parameter %s", name)
        return None

    _validate_shape(param, name, location, is_v3)
    required = location == ParameterLocation.PATH or param.get("required") is True

    content_media_type: Optional[str] = None
    media: Optional[dict[str, Any]] = None
    if "content" in param:
        content_media_type, media_value = next(iter(param["content"].items()))
        media = media_value if isinstance(media_value, dict) else {}
        schema = media.get("schema")
        descriptor = (
            schema_to_type(schema, required)
            if schema is not None
            else TypeDescriptor.opaque().as_optional(not required)
        )
        style: Optional[ParameterStyle] = None
        explode = False
    else:
        schema = param.get("schema") if is_v3 or "schema" in param else _swagger_schema(param)
        descriptor = (
            schema_to_type(schema, required)
            if schema is not None
            else TypeDescriptor.of_primitive(PrimitiveType.STRING).as_optional(not required)
        )
        style = resolve_style(param.get("style"), param.get("collectionFormat"), location, name)
        check_style(style, location, _structural_kind(schema, owner), name)
        explode = resolve_explode(param.get("explode"), style)

    description = description_override or param.get("description")
    return RouteParam(
        name=name,
        location=location,
        type=descriptor,
        required=required,
        description=description if isinstance(description, str) else None,
        style=style,
        explode=explode,
        allow_reserved=param.get("allowReserved") is True,
        allow_empty_value=param.get("allowEmptyValue") is True,
        deprecated=param.get("deprecated") is True,
        example=resolve_example(param, owner, schema=schema, media=media),
        content_media_type=content_media_type,
    )


# --- Parameter sets ---


def _key(param: RouteParam) -> tuple[str, ParameterLocation]:
    # Header names are case-insensitive.
    if param.location == ParameterLocation.HEADER:
        return param.name.lower(), param.location
    return param.name, param.location


def check_parameter_set(params: Iterable[RouteParam]) -> None:
    """Enforce ``querystring`` exclusivity on a merged parameter set.

    Raises:
        ParameterConflictError: If more than one ``querystring`` parameter
            exists, or one coexists with ``query`` parameters.
    """
    params = list(params)
    querystring = [p for p in params if p.location == ParameterLocation.QUERYSTRING]
    if len(querystring) > 1:
        names = ", ".join(p.name for p in querystring)
        raise ParameterConflictError(f"At most one querystring parameter is allowed, found: {names}")
    if querystring and any(p.location == ParameterLocation.QUERY for p in params):
        raise ParameterConflictError(
            f"querystring parameter '{querystring[0].name}' cannot be combined with query parameters"
        )


def resolve_parameters(
    params: Any,
    context: ResolutionContext,
    is_v3: Optional[bool] = None,
) -> list[RouteParam]:
    """Resolve one parameter list (a path item's or an operation's).

    Args:
        params: The raw ``parameters`` array (``None`` is an empty list).
        context: Context of the document the list lives in.
        is_v3: Apply OAS 3.x rules; defaults to the document's version.

    Returns:
        The resolved parameters in declaration order.

    Raises:
        ParameterConflictError: On a duplicate ``(name, location)`` pair,
            an invalid parameter, or a querystring conflict.
    """
    if params is None:
        return []
    if not isinstance(params, list):
        raise ParameterConflictError("'parameters' must be an array")

    resolved: list[RouteParam] = []
    seen: set[tuple[str, ParameterLocation]] = set()
    for raw in params:
        param = resolve_parameter(raw, context, is_v3)
        if param is None:
            continue
        key = _key(param)
        if key in seen:
            raise ParameterConflictError(
                f"Duplicate parameter '{param.name}' in {param.location.value}"
            )
        seen.add(key)
        resolved.append(param)

    check_parameter_set(resolved)
    return resolved


def merge_parameters(
    common: list[RouteParam], operation: list[RouteParam]
) -> list[RouteParam]:
    """Merge path-item and operation parameters.

    Operation-level parameters override path-level parameters that share
    their ``(name, location)``; the merged set is re-checked for querystring
    exclusivity.
    """
    overridden = {_key(p) for p in operation}
    merged = [p for p in common if _key(p) not in overridden]
    merged.extend(operation)
    check_parameter_set(merged)
    return merged

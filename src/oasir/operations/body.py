"""Request-body extraction.

Media types are tried in priority order:

1. structured JSON (``application/json``, then any ``+json`` type),
2. ``application/x-www-form-urlencoded``,
3. any ``multipart/*``,
4. any ``text/*`` (text),
5. whatever else is declared first (binary).

Form and multipart bodies keep their per-part ``encoding`` map so that
emitters can build correctly typed parts. Swagger 2.0 ``in: body`` and
``in: formData`` parameters are turned into the same descriptor.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from oasir.exceptions import ParameterConflictError
from oasir.models import (
    BodyFormat,
    EncodingInfo,
    ParameterStyle,
    PrimitiveType,
    RequestBodyDescriptor,
    TypeDescriptor,
)
from oasir.operations.examples import resolve_example
from oasir.parser.context import ResolutionContext
from oasir.schemas.types import schema_to_type

logger = logging.getLogger(__name__)

FORM_MEDIA_TYPE = "application/x-www-form-urlencoded"
MULTIPART_MEDIA_TYPE = "multipart/form-data"
JSON_MEDIA_TYPE = "application/json"


def media_essence(media_type: str) -> str:
    """Lower-cased media type without parameters (``Application/JSON; charset=x`` -> ``application/json``)."""
    return media_type.split(";", 1)[0].strip().lower()


def is_json_media(media_type: str) -> bool:
    essence = media_essence(media_type)
    return essence == JSON_MEDIA_TYPE or essence.endswith("+json")


def select_body_media(
    content: dict[str, Any],
) -> Optional[tuple[str, dict[str, Any], BodyFormat]]:
    """Pick the media type a request body is modeled from.

    Returns:
        ``(media_type, media_object, format)`` or ``None`` for empty content.
    """
    if not content:
        return None
    entries = [(key, value if isinstance(value, dict) else {}) for key, value in content.items()]

    for key, media in entries:
        if media_essence(key) == JSON_MEDIA_TYPE:
            return key, media, BodyFormat.JSON
    for key, media in entries:
        if is_json_media(key):
            return key, media, BodyFormat.JSON
    for key, media in entries:
        if media_essence(key) == FORM_MEDIA_TYPE:
            return key, media, BodyFormat.FORM
    for key, media in entries:
        if media_essence(key).startswith("multipart/"):
            return key, media, BodyFormat.MULTIPART
    for key, media in entries:
        if media_essence(key).startswith("text/"):
            return key, media, BodyFormat.TEXT
    key, media = entries[0]
    return key, media, BodyFormat.BINARY


def _fallback_type(body_format: BodyFormat) -> TypeDescriptor:
    if body_format == BodyFormat.TEXT:
        return TypeDescriptor.of_primitive(PrimitiveType.STRING)
    if body_format == BodyFormat.BINARY:
        return TypeDescriptor.of_primitive(PrimitiveType.BINARY)
    return TypeDescriptor.opaque()


def header_type(header: dict[str, Any]) -> TypeDescriptor:
    """Type of a Header Object: its schema, or the schema of its single content entry."""
    schema = header.get("schema")
    if schema is None and isinstance(header.get("content"), dict) and header["content"]:
        media = next(iter(header["content"].values()))
        schema = media.get("schema") if isinstance(media, dict) else None
    if schema is None and "type" in header:
        # Swagger 2.0 headers carry their type inline.
        schema = {key: header[key] for key in ("type", "format", "items") if key in header}
    return schema_to_type(schema) if schema is not None else TypeDescriptor.opaque()


def resolve_encoding(
    encoding: Any, context: ResolutionContext
) -> dict[str, EncodingInfo]:
    """Resolve a media type's ``encoding`` map (property -> part encoding)."""
    if not isinstance(encoding, dict):
        return {}

    result: dict[str, EncodingInfo] = {}
    for prop, raw in encoding.items():
        if not isinstance(raw, dict):
            continue
        headers: dict[str, TypeDescriptor] = {}
        raw_headers = raw.get("headers")
        if isinstance(raw_headers, dict):
            for name, header in raw_headers.items():
                if name.lower() == "content-type":
                    continue
                resolved = context.resolve_inline(header, "headers", visited=set())
                if isinstance(resolved.value, dict):
                    headers[name] = header_type(resolved.value)

        style: Optional[ParameterStyle] = None
        if "style" in raw:
            try:
                style = ParameterStyle(raw["style"])
            except ValueError:
                raise ParameterConflictError(
                    f"Encoding of '{prop}' declares unknown style '{raw['style']}'"
                ) from None

        content_type = raw.get("contentType")
        result[prop] = EncodingInfo(
            content_type=content_type if isinstance(content_type, str) else None,
            headers=headers,
            style=style,
            explode=raw["explode"] if isinstance(raw.get("explode"), bool) else None,
            allow_reserved=(
                raw["allowReserved"] if isinstance(raw.get("allowReserved"), bool) else None
            ),
        )
    return result


def resolve_request_body(
    raw: Any, context: ResolutionContext
) -> Optional[RequestBodyDescriptor]:
    """Resolve an OAS 3.x ``requestBody`` (inline or ``$ref``).

    Returns:
        The descriptor, or ``None`` when the body declares no content.

    Raises:
        ReferenceNotFoundError: If the ``$ref`` does not resolve.
        ReferenceCycleError: If a ``$ref`` chain loops.
    """
    if raw is None:
        return None
    resolved = context.resolve_inline(raw, "requestBodies", visited=set())
    body, owner = resolved.value, resolved.context
    if not isinstance(body, dict):
        return None

    content = body.get("content")
    selected = select_body_media(content if isinstance(content, dict) else {})
    if selected is None:
        logger.debug("Request body without content entries ignored")
        return None
    media_type, media, body_format = selected

    schema = media.get("schema")
    descriptor = schema_to_type(schema) if schema is not None else _fallback_type(body_format)
    encoding: dict[str, EncodingInfo] = {}
    if body_format in (BodyFormat.FORM, BodyFormat.MULTIPART):
        encoding = resolve_encoding(media.get("encoding"), owner)

    description = body.get("description")
    return RequestBodyDescriptor(
        type=descriptor,
        media_type=media_type,
        format=body_format,
        required=body.get("required") is True,
        description=description if isinstance(description, str) else None,
        encoding=encoding,
        example=resolve_example(media, owner),
    )


# --- Swagger 2.0 ---


def _consumes(operation: dict[str, Any], root: dict[str, Any]) -> list[str]:
    for source in (operation, root):
        value = source.get("consumes")
        if isinstance(value, list) and value:
            return [item for item in value if isinstance(item, str)]
    return []


def swagger_request_body(
    params: list[Any],
    context: ResolutionContext,
    operation: Optional[dict[str, Any]] = None,
) -> Optional[RequestBodyDescriptor]:
    """Build the request body of a Swagger 2.0 operation from its parameters.

    Args:
        params: Merged raw parameters (path item + operation, ``$ref`` s allowed).
        context: Context of the document.
        operation: The operation, for its ``consumes`` list.

    Raises:
        ParameterConflictError: If both ``body`` and ``formData`` parameters
            are declared, or more than one ``body`` parameter.
    """
    bodies: list[dict[str, Any]] = []
    form: list[dict[str, Any]] = []
    for raw in params:
        resolved = context.resolve_inline(raw, "parameters", visited=set())
        param = resolved.value
        if not isinstance(param, dict):
            continue
        if param.get("in") == "body":
            bodies.append(param)
        elif param.get("in") == "formData":
            form.append(param)

    if bodies and form:
        raise ParameterConflictError("An operation cannot declare both body and formData parameters")
    if len(bodies) > 1:
        raise ParameterConflictError("An operation can declare at most one body parameter")

    consumes = _consumes(operation or {}, context.raw)

    if bodies:
        param = bodies[0]
        media_type = next((m for m in consumes if is_json_media(m)), JSON_MEDIA_TYPE)
        schema = param.get("schema")
        description = param.get("description")
        return RequestBodyDescriptor(
            type=schema_to_type(schema) if schema is not None else TypeDescriptor.opaque(),
            media_type=media_type,
            format=BodyFormat.JSON,
            required=param.get("required") is True,
            description=description if isinstance(description, str) else None,
            example=resolve_example(param, context),
        )

    if form:
        has_file = any(p.get("type") == "file" for p in form)
        multipart = has_file or any(media_essence(m) == MULTIPART_MEDIA_TYPE for m in consumes)
        encoding = {
            p["name"]: EncodingInfo(
                content_type="application/octet-stream" if p.get("type") == "file" else "text/plain"
            )
            for p in form
            if isinstance(p.get("name"), str)
        }
        return RequestBodyDescriptor(
            type=TypeDescriptor.opaque(),
            media_type=MULTIPART_MEDIA_TYPE if multipart else FORM_MEDIA_TYPE,
            format=BodyFormat.MULTIPART if multipart else BodyFormat.FORM,
            required=any(p.get("required") is True for p in form),
            encoding=encoding if multipart else {},
        )
    return None

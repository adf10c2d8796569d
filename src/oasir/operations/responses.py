"""Success-response selection with typed headers and links.

The modeled response is the first of ``200``, ``201``, ``2XX``/``2xx``,
``default``, ``3XX``/``3xx`` that exists, else the first literal
``2nn`` code. Its body type comes from the preferred media type:
``application/json``, any ``+json`` type, ``application/*``, ``*/*``, then
the first entry.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from oasir.models import PrimitiveType, ResponseHeader, ResponseLink, TypeDescriptor
from oasir.operations.body import header_type, is_json_media, media_essence
from oasir.parser.context import ResolutionContext
from oasir.schemas.types import schema_to_type

SUCCESS_PRIORITY = ("200", "201", "2XX", "2xx", "default", "3XX", "3xx")

_LITERAL_2XX = re.compile(r"^2\d\d$")

_BINARY_MEDIA_PREFIXES = ("image/", "audio/", "video/")
_BINARY_MEDIA_TYPES = frozenset({"application/octet-stream", "application/pdf"})


@dataclass
class ResponseDetails:
    """What a route records about its success response."""

    status: str
    body_type: Optional[TypeDescriptor] = None
    media_type: Optional[str] = None
    headers: list[ResponseHeader] = field(default_factory=list)
    links: list[ResponseLink] = field(default_factory=list)


def select_response(responses: Any) -> Optional[tuple[str, Any]]:
    """Return ``(status, raw_response)`` of the success response, or ``None``."""
    if not isinstance(responses, dict) or not responses:
        return None
    keys = {str(key): key for key in responses}
    for status in SUCCESS_PRIORITY:
        if status in keys:
            return status, responses[keys[status]]
    for status, key in keys.items():
        if _LITERAL_2XX.match(status):
            return status, responses[key]
    return None


def select_response_media(content: Any) -> Optional[tuple[str, dict[str, Any]]]:
    """Pick the response media type by JSON-first preference."""
    if not isinstance(content, dict) or not content:
        return None
    entries = [(key, value if isinstance(value, dict) else {}) for key, value in content.items()]
    for predicate in (
        lambda m: m == "application/json",
        is_json_media,
        lambda m: m == "application/*",
        lambda m: m == "*/*",
    ):
        for key, media in entries:
            if predicate(media_essence(key)):
                return key, media
    return entries[0]


def infer_media_type(media_type: str) -> Optional[TypeDescriptor]:
    """Type of a schema-less media type: JSON opaque, text string, known binary types."""
    essence = media_essence(media_type)
    if is_json_media(essence) or essence == "application/*+json":
        return TypeDescriptor.opaque()
    if essence.startswith("text/"):
        return TypeDescriptor.of_primitive(PrimitiveType.STRING)
    if essence in _BINARY_MEDIA_TYPES or essence.startswith(_BINARY_MEDIA_PREFIXES):
        return TypeDescriptor.of_primitive(PrimitiveType.BINARY)
    return None


def resolve_headers(headers: Any, context: ResolutionContext) -> list[ResponseHeader]:
    """Type every response header except ``content-type``."""
    if not isinstance(headers, dict):
        return []
    result: list[ResponseHeader] = []
    for name, raw in headers.items():
        if name.lower() == "content-type":
            continue
        resolved = context.resolve_inline(raw, "headers", visited=set())
        header = resolved.value
        if not isinstance(header, dict):
            continue
        description = header.get("description")
        result.append(
            ResponseHeader(
                name=name,
                type=header_type(header),
                description=description if isinstance(description, str) else None,
                required=header.get("required") is True,
                deprecated=header.get("deprecated") is True,
            )
        )
    return result


def resolve_links(links: Any, context: ResolutionContext) -> list[ResponseLink]:
    """Resolve a response's ``links`` map; targets are filled in by the assembler.

    Raises:
        ReferenceNotFoundError: If a link ``$ref`` does not resolve.
        ReferenceCycleError: If a link ``$ref`` chain loops.
    """
    if not isinstance(links, dict):
        return []
    result: list[ResponseLink] = []
    for name, raw in links.items():
        resolved = context.resolve_inline(raw, "links", visited=set())
        link = resolved.value
        if not isinstance(link, dict):
            continue
        parameters = link.get("parameters")
        server = link.get("server")
        result.append(
            ResponseLink(
                name=name,
                description=_text(link.get("description")),
                operation_id=_text(link.get("operationId")),
                operation_ref=_text(link.get("operationRef")),
                parameters=dict(parameters) if isinstance(parameters, dict) else {},
                request_body=link.get("requestBody"),
                server_url=_text(server.get("url")) if isinstance(server, dict) else None,
            )
        )
    return result


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _produces(operation: dict[str, Any], root: dict[str, Any]) -> Optional[str]:
    for source in (operation, root):
        value = source.get("produces")
        if isinstance(value, list) and value:
            json_types = [m for m in value if isinstance(m, str) and is_json_media(m)]
            return json_types[0] if json_types else str(value[0])
    return None


def resolve_response(
    responses: Any,
    context: ResolutionContext,
    operation: Optional[dict[str, Any]] = None,
) -> Optional[ResponseDetails]:
    """Resolve the success response of an operation.

    Args:
        responses: The operation's raw ``responses`` map.
        context: Context of the document.
        operation: The operation (Swagger 2.0 ``produces``).

    Returns:
        The :class:`ResponseDetails`, or ``None`` when no success response
        is declared.
    """
    selected = select_response(responses)
    if selected is None:
        return None
    status, raw = selected

    resolved = context.resolve_inline(raw, "responses", visited=set())
    response, owner = resolved.value, resolved.context
    if not isinstance(response, dict):
        return ResponseDetails(status=status)

    details = ResponseDetails(
        status=status,
        headers=resolve_headers(response.get("headers"), owner),
        links=resolve_links(response.get("links"), owner),
    )

    if owner.is_swagger:
        schema = response.get("schema")
        if schema is not None:
            details.body_type = schema_to_type(schema)
            details.media_type = _produces(operation or {}, owner.raw) or "application/json"
        return details

    media = select_response_media(response.get("content"))
    if media is not None:
        media_type, media_obj = media
        details.media_type = media_type
        if media_obj.get("schema") is not None:
            details.body_type = schema_to_type(media_obj["schema"])
        elif media_obj.get("itemSchema") is not None:
            # Sequential media types (jsonl, event streams) describe one item.
            details.body_type = TypeDescriptor.array_of(schema_to_type(media_obj["itemSchema"]))
        else:
            details.body_type = infer_media_type(media_type)
    return details

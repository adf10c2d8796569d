"""Response, header, media type and request body rules.

Referenced objects are resolved through their component section before
they are checked, so a ``$ref`` into another registered document is
validated in place.
"""

from __future__ import annotations

import re
from typing import Any

from oasir.exceptions import ValidationViolation
from oasir.parser.context import ResolutionContext

RESPONSE_KEY = re.compile(r"^(?:[1-5]\d\d|[1-5]XX|[1-5]xx|default)$")

_HEADER_FORBIDDEN = ("name", "in", "allowEmptyValue")


def _resolve(value: Any, section: str, context: ResolutionContext) -> tuple[Any, ResolutionContext]:
    resolved = context.resolve_inline(value, section, visited=set())
    return resolved.value, resolved.context


def check_media_type(
    media: Any,
    context: ResolutionContext,
    where: str,
    enclosing: tuple[dict[str, Any], ...] = (),
) -> None:
    """A Media Type Object declares at most one of ``example`` and ``examples``.

    Header Objects under ``encoding.<property>.headers`` get the same
    checks as response headers. *enclosing* holds the headers whose
    content is being checked, so a header reached again through its own
    encoding is not re-entered.
    """
    if not isinstance(media, dict):
        raise ValidationViolation(where, "media type must be an object")
    if "example" in media and "examples" in media:
        raise ValidationViolation(where, "media type declares both example and examples")
    encoding = media.get("encoding")
    if not isinstance(encoding, dict):
        return
    for name, entry in encoding.items():
        if isinstance(entry, dict):
            check_headers(
                entry.get("headers"), context, f"{where}.encoding.{name}.headers", enclosing
            )


def check_content(
    content: Any,
    context: ResolutionContext,
    where: str,
    enclosing: tuple[dict[str, Any], ...] = (),
) -> None:
    if content is None:
        return
    if not isinstance(content, dict):
        raise ValidationViolation(where, "content must be an object")
    for media_type, media in content.items():
        check_media_type(media, context, f"{where}.{media_type}", enclosing)


def check_header(
    header: Any,
    context: ResolutionContext,
    where: str,
    enclosing: tuple[dict[str, Any], ...] = (),
) -> None:
    """Check a (possibly referenced) OAS 3.x Header Object.

    A header has no ``name``, ``in`` or ``allowEmptyValue``, uses the
    ``simple`` style if any, and declares exactly one of ``schema`` and
    ``content``.
    """
    value, owner = _resolve(header, "headers", context)
    if not isinstance(value, dict):
        raise ValidationViolation(where, "header must be an object")
    if any(value is seen for seen in enclosing):
        return
    for key in _HEADER_FORBIDDEN:
        if key in value:
            raise ValidationViolation(f"{where}.{key}", f"header must not declare '{key}'")
    if "style" in value and value["style"] != "simple":
        raise ValidationViolation(f"{where}.style", "header style must be 'simple'")
    if ("schema" in value) == ("content" in value):
        raise ValidationViolation(where, "header must declare exactly one of schema or content")
    check_content(value.get("content"), owner, f"{where}.content", enclosing + (value,))


def check_headers(
    headers: Any,
    context: ResolutionContext,
    where: str,
    enclosing: tuple[dict[str, Any], ...] = (),
) -> None:
    if not isinstance(headers, dict):
        return
    for name, header in headers.items():
        check_header(header, context, f"{where}.{name}", enclosing)


def check_response(response: Any, context: ResolutionContext, where: str) -> None:
    """A resolved response carries a non-empty description and valid headers/content."""
    value, owner = _resolve(response, "responses", context)
    if not isinstance(value, dict):
        raise ValidationViolation(where, "response must be an object")
    description = value.get("description")
    if not isinstance(description, str) or not description.strip():
        raise ValidationViolation(where, "response must have a non-empty description")
    if owner.is_v3:
        check_headers(value.get("headers"), owner, f"{where}.headers")
        check_content(value.get("content"), owner, f"{where}.content")


def check_responses(responses: Any, context: ResolutionContext, where: str) -> None:
    """The responses map is non-empty and keyed by status codes, ranges or ``default``."""
    if not isinstance(responses, dict):
        raise ValidationViolation(where, "responses must be an object")
    codes = [key for key in responses if not str(key).startswith("x-")]
    if not codes:
        raise ValidationViolation(where, "responses must declare at least one response")
    for code in codes:
        if not RESPONSE_KEY.match(str(code)):
            raise ValidationViolation(
                f"{where}.{code}", f"invalid response key '{code}'"
            )
        check_response(responses[code], context, f"{where}.{code}")


def check_request_body(body: Any, context: ResolutionContext, where: str) -> None:
    """A request body declares at least one content entry."""
    value, owner = _resolve(body, "requestBodies", context)
    if not isinstance(value, dict):
        raise ValidationViolation(where, "request body must be an object")
    content = value.get("content")
    if not isinstance(content, dict) or not content:
        raise ValidationViolation(f"{where}.content", "request body must declare content")
    check_content(content, owner, f"{where}.content")


def check_parameter_content(parameter: Any, context: ResolutionContext, where: str) -> None:
    """Media types of a content-based parameter."""
    value, owner = _resolve(parameter, "parameters", context)
    if isinstance(value, dict):
        check_content(value.get("content"), owner, f"{where}.content")

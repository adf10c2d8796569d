"""Document-level metadata: info, servers, tags, security and components."""

from __future__ import annotations

import copy
from typing import Any, Optional

from oasir.exceptions import VersionUnsupportedError
from oasir.models import (
    ApiInfo,
    ContactInfo,
    DocumentMetadata,
    LicenseInfo,
    TagInfo,
)
from oasir.parser.context import ResolutionContext
from oasir.routes.security import resolve_security, security_schemes
from oasir.routes.servers import parse_servers, resolve_base_path
from oasir.schemas.structs import external_docs

DEFAULT_TITLE = "Untitled API"
DEFAULT_VERSION = "0.0.0"

# Swagger 2.0 keeps its reusable objects at the root.
_SWAGGER_COMPONENT_KEYS = ("definitions", "parameters", "responses", "securityDefinitions")


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def parse_info(raw: Any) -> ApiInfo:
    """Parse the Info Object; a missing title or version gets a placeholder."""
    info = raw if isinstance(raw, dict) else {}

    contact = None
    raw_contact = info.get("contact")
    if isinstance(raw_contact, dict):
        contact = ContactInfo(
            name=_text(raw_contact.get("name")),
            url=_text(raw_contact.get("url")),
            email=_text(raw_contact.get("email")),
        )

    license_ = None
    raw_license = info.get("license")
    if isinstance(raw_license, dict) and isinstance(raw_license.get("name"), str):
        license_ = LicenseInfo(
            name=raw_license["name"],
            identifier=_text(raw_license.get("identifier")),
            url=_text(raw_license.get("url")),
        )

    version = info.get("version")
    return ApiInfo(
        title=_text(info.get("title")) or DEFAULT_TITLE,
        version=str(version) if version is not None else DEFAULT_VERSION,
        summary=_text(info.get("summary")),
        description=_text(info.get("description")),
        terms_of_service=_text(info.get("termsOfService")),
        contact=contact,
        license=license_,
    )


def parse_tags(raw: Any) -> list[TagInfo]:
    """Parse the root ``tags`` array, skipping entries without a name."""
    if not isinstance(raw, list):
        return []
    return [
        TagInfo(
            name=tag["name"],
            summary=_text(tag.get("summary")),
            description=_text(tag.get("description")),
            parent=_text(tag.get("parent")),
            kind=_text(tag.get("kind")),
            external_docs=external_docs(tag),
        )
        for tag in raw
        if isinstance(tag, dict) and isinstance(tag.get("name"), str)
    ]


def raw_components(raw: dict[str, Any], swagger: bool) -> dict[str, Any]:
    """A detached copy of the reusable-object tree for re-serialization."""
    if swagger:
        return {key: copy.deepcopy(raw[key]) for key in _SWAGGER_COMPONENT_KEYS if key in raw}
    components = raw.get("components")
    return copy.deepcopy(components) if isinstance(components, dict) else {}


def build_metadata(context: ResolutionContext) -> DocumentMetadata:
    """Collect the document-level metadata of an API document.

    Raises:
        ValidationViolation: If the global ``security`` names an unknown scheme.
        VersionUnsupportedError: If *context* is a plain schema document.
    """
    raw = context.raw
    if context.version is None:
        raise VersionUnsupportedError(f"{context.base_uri} is not an OpenAPI or Swagger document")
    schemes = security_schemes(context)
    servers = parse_servers(raw.get("servers"))
    return DocumentMetadata(
        version=context.version,
        info=parse_info(raw.get("info")),
        servers=servers,
        tags=parse_tags(raw.get("tags")),
        external_docs=external_docs(raw),
        json_schema_dialect=_text(raw.get("jsonSchemaDialect")),
        self_uri=context.self_uri,
        base_path=resolve_base_path(
            servers,
            context.retrieval_uri,
            raw.get("basePath") if context.is_swagger else None,
            context.config.synthetic_base_uri,
        ),
        security=resolve_security(raw.get("security"), schemes, "security"),
        security_schemes=schemes,
        components=raw_components(raw, context.is_swagger),
    )

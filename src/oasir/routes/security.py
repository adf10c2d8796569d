"""Security schemes and requirement merging.

An operation-level ``security`` array replaces the document-level one; an
explicit empty array means "no auth". Every requirement key must name a
declared security scheme, or be an absolute URI (an extension point for
schemes declared elsewhere).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from oasir.exceptions import ValidationViolation
from oasir.models import SecurityRequirement, SecuritySchemeInfo, SecuritySchemeKind
from oasir.parser.context import ResolutionContext
from oasir.parser.pointer import is_absolute_uri

logger = logging.getLogger(__name__)


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _swagger_flows(raw: dict[str, Any]) -> dict[str, Any]:
    flow = raw.get("flow")
    if not isinstance(flow, str):
        return {}
    details = {
        key: raw[key] for key in ("authorizationUrl", "tokenUrl", "scopes") if key in raw
    }
    return {flow: details}


def parse_security_scheme(raw: dict[str, Any]) -> Optional[SecuritySchemeInfo]:
    """Parse a Security Scheme Object; ``None`` when its ``type`` is unknown."""
    try:
        kind = SecuritySchemeKind(raw.get("type"))
    except ValueError:
        return None

    flows = raw.get("flows")
    if kind == SecuritySchemeKind.OAUTH2 and "flow" in raw:
        flows = _swagger_flows(raw)
    scheme = _text(raw.get("scheme"))
    if kind == SecuritySchemeKind.BASIC:
        scheme = "basic"

    return SecuritySchemeInfo(
        kind=kind,
        description=_text(raw.get("description")),
        name=_text(raw.get("name")),
        location=_text(raw.get("in")),
        scheme=scheme,
        bearer_format=_text(raw.get("bearerFormat")),
        flows=dict(flows) if isinstance(flows, dict) else {},
        open_id_connect_url=_text(raw.get("openIdConnectUrl")),
    )


def security_schemes(context: ResolutionContext) -> dict[str, SecuritySchemeInfo]:
    """All declared security schemes of the document, ``$ref`` s resolved."""
    result: dict[str, SecuritySchemeInfo] = {}
    for name, raw in context.components("securitySchemes").items():
        resolved = context.resolve_inline(raw, "securitySchemes", visited=set())
        if not isinstance(resolved.value, dict):
            continue
        info = parse_security_scheme(resolved.value)
        if info is None:
            logger.debug("Ignoring security scheme %s of unknown type", name)
            continue
        result[name] = info
    return result


def resolve_security(
    requirements: Any,
    schemes: dict[str, SecuritySchemeInfo],
    where: str,
) -> list[SecurityRequirement]:
    """Flatten a ``security`` array into requirements.

    Requirements from the same requirement object share their
    ``alternative`` index.

    Args:
        requirements: The raw ``security`` array.
        schemes: Declared schemes by name.
        where: Dotted document path of the array, for diagnostics.

    Raises:
        ValidationViolation: If a key is neither a declared scheme nor an
            absolute URI.
    """
    if not isinstance(requirements, list):
        return []
    result: list[SecurityRequirement] = []
    for index, requirement in enumerate(requirements):
        if not isinstance(requirement, dict):
            raise ValidationViolation(f"{where}[{index}]", "security requirement must be an object")
        for scheme_name, scopes in requirement.items():
            scheme = schemes.get(scheme_name)
            if scheme is None and not is_absolute_uri(scheme_name):
                raise ValidationViolation(
                    f"{where}[{index}]", f"unknown security scheme '{scheme_name}'"
                )
            result.append(
                SecurityRequirement(
                    scheme_name=scheme_name,
                    scopes=[str(s) for s in scopes] if isinstance(scopes, list) else [],
                    alternative=index,
                    scheme=scheme,
                )
            )
    return result


def effective_security(
    operation: dict[str, Any],
    root: dict[str, Any],
    schemes: dict[str, SecuritySchemeInfo],
    where: str,
) -> list[SecurityRequirement]:
    """Operation ``security`` when present (``[]`` clears auth), else the root's."""
    if "security" in operation:
        return resolve_security(operation["security"], schemes, f"{where}.security")
    return resolve_security(root.get("security"), schemes, "security")

"""Security Scheme Object shape rules."""

from __future__ import annotations

from typing import Any

from oasir.exceptions import ValidationViolation

API_KEY_LOCATIONS = frozenset({"query", "header", "cookie"})
SWAGGER_API_KEY_LOCATIONS = frozenset({"query", "header"})

# URLs an OAuth2 flow must declare, by flow name (OAS 3.x and Swagger 2.0).
OAUTH2_FLOW_URLS: dict[str, tuple[str, ...]] = {
    "implicit": ("authorizationUrl",),
    "password": ("tokenUrl",),
    "clientCredentials": ("tokenUrl",),
    "authorizationCode": ("authorizationUrl", "tokenUrl"),
    "deviceAuthorization": ("deviceAuthorizationUrl", "tokenUrl"),
    "application": ("tokenUrl",),
    "accessCode": ("authorizationUrl", "tokenUrl"),
}


def _require_https(value: Any, where: str) -> None:
    if not isinstance(value, str) or not value:
        raise ValidationViolation(where, "URL is required")
    if not value.lower().startswith("https://"):
        raise ValidationViolation(where, f"URL '{value}' must use https")


def _check_flow(name: str, flow: Any, where: str) -> None:
    if not isinstance(flow, dict):
        raise ValidationViolation(where, "OAuth flow must be an object")
    for key in OAUTH2_FLOW_URLS.get(name, ()):
        _require_https(flow.get(key), f"{where}.{key}")


def check_security_scheme(scheme: Any, where: str, swagger: bool = False) -> None:
    """Check one (resolved) Security Scheme Object.

    Args:
        scheme: The scheme object.
        where: Dotted document path, for diagnostics.
        swagger: Apply Swagger 2.0 ``securityDefinitions`` rules.
    """
    if not isinstance(scheme, dict):
        raise ValidationViolation(where, "security scheme must be an object")
    kind = scheme.get("type")

    if kind == "apiKey":
        allowed = SWAGGER_API_KEY_LOCATIONS if swagger else API_KEY_LOCATIONS
        if scheme.get("in") not in allowed:
            raise ValidationViolation(
                f"{where}.in", f"apiKey location must be one of {', '.join(sorted(allowed))}"
            )
    elif kind == "http":
        if not isinstance(scheme.get("scheme"), str) or not scheme["scheme"].strip():
            raise ValidationViolation(f"{where}.scheme", "http scheme must be a non-empty string")
    elif kind == "oauth2":
        if swagger:
            flow = scheme.get("flow")
            if isinstance(flow, str):
                _check_flow(flow, scheme, where)
            return
        flows = scheme.get("flows")
        if not isinstance(flows, dict) or not flows:
            raise ValidationViolation(f"{where}.flows", "oauth2 scheme must declare flows")
        for name, flow in flows.items():
            _check_flow(name, flow, f"{where}.flows.{name}")
    elif kind == "openIdConnect":
        _require_https(scheme.get("openIdConnectUrl"), f"{where}.openIdConnectUrl")

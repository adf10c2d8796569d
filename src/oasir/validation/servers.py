"""Server Object rules."""

from __future__ import annotations

import re
from typing import Any

from oasir.exceptions import ValidationViolation

_VARIABLE = re.compile(r"\{([^}]*)\}")


def check_server(server: Any, where: str) -> None:
    """Check one Server Object.

    * the URL carries neither a query nor a fragment;
    * every ``{name}`` placeholder is declared and appears once;
    * a declared ``enum`` is non-empty and contains the default.
    """
    if not isinstance(server, dict) or not isinstance(server.get("url"), str):
        raise ValidationViolation(where, "server must be an object with a string url")
    url = server["url"]
    if "?" in url or "#" in url:
        raise ValidationViolation(where, f"server URL '{url}' must not include a query or fragment")

    variables = server.get("variables") or {}
    if not isinstance(variables, dict):
        raise ValidationViolation(f"{where}.variables", "variables must be an object")

    placeholders = _VARIABLE.findall(url)
    for name in placeholders:
        if name not in variables:
            raise ValidationViolation(
                f"{where}.url", f"server variable '{name}' is used but not declared"
            )
        if placeholders.count(name) > 1:
            raise ValidationViolation(
                f"{where}.url", f"server variable '{name}' appears more than once in '{url}'"
            )

    for name, variable in variables.items():
        var_where = f"{where}.variables.{name}"
        if not isinstance(variable, dict) or "default" not in variable:
            raise ValidationViolation(var_where, "server variable must declare a default")
        if "enum" not in variable:
            continue
        enum = variable["enum"]
        if not isinstance(enum, list) or not enum:
            raise ValidationViolation(f"{var_where}.enum", "enum must be a non-empty array")
        if variable["default"] not in enum:
            raise ValidationViolation(
                f"{var_where}.default", f"default '{variable['default']}' not in enum"
            )


def check_servers(servers: Any, where: str) -> None:
    if servers is None:
        return
    if not isinstance(servers, list):
        raise ValidationViolation(where, "servers must be an array")
    for index, server in enumerate(servers):
        check_server(server, f"{where}[{index}]")

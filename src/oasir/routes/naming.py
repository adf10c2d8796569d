"""Handler identifiers for routes."""

from __future__ import annotations

from typing import Optional


def to_snake_case(value: str) -> str:
    """Convert ``camelCase``/``PascalCase`` to ``snake_case``.

    Each uppercase character becomes ``_`` plus its lowercase form, except
    at the very start::

        >>> to_snake_case("getUserById")
        'get_user_by_id'
        >>> to_snake_case("GetUsers")
        'get_users'
    """
    out: list[str] = []
    for index, char in enumerate(value):
        if char.isupper():
            if index > 0:
                out.append("_")
            out.append(char.lower())
        else:
            out.append(char)
    return "".join(out)


def derive_handler_name(method: str, path: str) -> str:
    """Derive a handler name from method and path (``GET /users/{id}`` -> ``get_users_id``)."""
    cleaned = path.replace("{", "").replace("}", "").replace("/", "_")
    return f"{method.lower()}_{cleaned.lstrip('_')}"


def handler_name(operation_id: Optional[str], method: str, path: str) -> str:
    """The ``operationId`` in snake case, else the method+path derivation."""
    if operation_id:
        return to_snake_case(operation_id)
    return derive_handler_name(method, path)

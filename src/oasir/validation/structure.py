"""Document-level structure rules: info, tags, component keys and paths."""

from __future__ import annotations

import re
from typing import Any, Optional

from oasir.exceptions import ValidationViolation

COMPONENT_KEY_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")

COMPONENT_SECTIONS = (
    "schemas",
    "responses",
    "parameters",
    "examples",
    "requestBodies",
    "headers",
    "securitySchemes",
    "links",
    "callbacks",
    "pathItems",
    "mediaTypes",
)

_TEMPLATE = re.compile(r"\{[^}]+\}")


def check_info(raw: dict[str, Any]) -> None:
    """``info`` must be an object with string ``title`` and ``version``."""
    info = raw.get("info")
    if not isinstance(info, dict):
        raise ValidationViolation("info", "document is missing the required 'info' object")
    if not isinstance(info.get("title"), str):
        raise ValidationViolation("info.title", "title is required")
    if "version" not in info or info["version"] is None:
        raise ValidationViolation("info.version", "version is required")


def check_tags(raw: dict[str, Any]) -> None:
    """Tag names are unique and every ``parent`` chain ends without a loop."""
    tags = raw.get("tags")
    if tags is None:
        return
    if not isinstance(tags, list):
        raise ValidationViolation("tags", "tags must be an array")

    parents: dict[str, Optional[str]] = {}
    for index, tag in enumerate(tags):
        if not isinstance(tag, dict) or not isinstance(tag.get("name"), str):
            raise ValidationViolation(f"tags[{index}]", "tag must be an object with a name")
        name = tag["name"]
        if name in parents:
            raise ValidationViolation(f"tags[{index}]", f"duplicate tag name '{name}'")
        parent = tag.get("parent")
        if parent is not None and not isinstance(parent, str):
            raise ValidationViolation(f"tags[{index}].parent", "parent must be a tag name")
        parents[name] = parent

    for name, parent in parents.items():
        if parent is not None and parent not in parents:
            raise ValidationViolation(
                f"tags.{name}.parent", f"parent tag '{parent}' is not declared"
            )
        seen = {name}
        current = parent
        while current is not None:
            if current in seen:
                raise ValidationViolation(
                    f"tags.{name}.parent", f"tag parent chain of '{name}' is cyclic"
                )
            seen.add(current)
            current = parents.get(current)


def check_component_keys(components: Any) -> None:
    """Every component key matches ``^[a-zA-Z0-9._-]+$``."""
    if not isinstance(components, dict):
        return
    for section in COMPONENT_SECTIONS:
        table = components.get(section)
        if not isinstance(table, dict):
            continue
        for key in table:
            if not COMPONENT_KEY_PATTERN.match(key):
                raise ValidationViolation(
                    f"components.{section}.{key}",
                    f"component key must match {COMPONENT_KEY_PATTERN.pattern}",
                )


def check_paths(paths: Any) -> None:
    """Path keys start with ``/``; templated paths must differ in more than names.

    ``/users/{id}`` and ``/users/{name}`` describe the same URL shape and
    conflict.
    """
    if paths is None:
        return
    if not isinstance(paths, dict):
        raise ValidationViolation("paths", "paths must be an object")

    shapes: dict[str, str] = {}
    for path in paths:
        if path.startswith("x-"):
            continue
        if not path.startswith("/"):
            raise ValidationViolation(f"paths.{path}", "path must start with '/'")
        shape = _TEMPLATE.sub("{}", path)
        existing = shapes.setdefault(shape, path)
        if existing != path:
            raise ValidationViolation(
                f"paths.{path}", f"templated path conflicts with '{existing}'"
            )


def check_callback_expression(expression: str, where: str) -> None:
    """Every ``{...}`` in a callback key must hold a runtime expression (``{$...}``)."""
    depth = 0
    start = 0
    for index, char in enumerate(expression):
        if char == "{":
            if depth:
                raise ValidationViolation(where, f"nested '{{' in callback key '{expression}'")
            depth, start = 1, index
        elif char == "}":
            if not depth:
                raise ValidationViolation(where, f"unbalanced '}}' in callback key '{expression}'")
            depth = 0
            if not expression[start + 1 : index].startswith("$"):
                raise ValidationViolation(
                    where, f"callback key '{expression}' must embed expressions as {{$...}}"
                )
    if depth:
        raise ValidationViolation(where, f"unbalanced '{{' in callback key '{expression}'")

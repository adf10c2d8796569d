"""Schema ``$ref`` following shared by the model builder and the resolvers."""

from __future__ import annotations

from typing import Any, Optional

from oasir.exceptions import ReferenceCycleError, ReferenceNotFoundError
from oasir.parser.context import ResolutionContext, Resolved


def schema_key(resolved: Resolved) -> str:
    """Identity of a resolved schema on a visitation path."""
    if resolved.name is not None:
        return f"{resolved.context.base_uri}#{resolved.name}"
    return f"{resolved.context.base_uri}@{id(resolved.value)}"


def deref_schema(
    schema: Any,
    context: ResolutionContext,
    visited: Optional[set[str]] = None,
) -> Resolved:
    """Follow a chain of schema ``$ref`` s down to a schema without one.

    Only a bare reference object (``$ref`` and nothing else besides
    annotations) is followed; a schema whose ``$ref`` sits next to other
    keywords is returned as-is so the caller can merge the siblings.

    Raises:
        ReferenceNotFoundError: If a hop does not resolve.
        ReferenceCycleError: If the chain revisits a schema.
    """
    visited = set() if visited is None else visited
    current = Resolved(schema, context)
    while _is_bare_ref(current.value):
        ref = current.value["$ref"]
        target = current.context.locate_schema(ref)
        if target is None:
            raise ReferenceNotFoundError(f"Schema reference not found: {ref}", ref=ref)
        key = schema_key(target)
        if key in visited:
            raise ReferenceCycleError(f"Schema reference cycle detected at {ref}", ref=ref)
        visited.add(key)
        current = Resolved(target.value, target.context, target.name or current.name)
    return current


_ANNOTATIONS = frozenset({"$ref", "description", "summary", "title", "deprecated"})


def _is_bare_ref(schema: Any) -> bool:
    return (
        isinstance(schema, dict)
        and isinstance(schema.get("$ref"), str)
        and set(schema).issubset(_ANNOTATIONS)
    )

"""Path Item handling: ``$ref`` resolution and operation iteration."""

from __future__ import annotations

from typing import Any, Iterator

from oasir.exceptions import ValidationViolation
from oasir.models import HTTPMethod
from oasir.parser.context import ResolutionContext, Resolved

PATH_ITEM_METHODS: tuple[str, ...] = tuple(method.value.lower() for method in HTTPMethod)
"""Operation keys of a Path Item, in the order routes are emitted."""


def resolve_path_item_entry(raw: Any, context: ResolutionContext, where: str) -> Resolved:
    """Resolve a ``paths``/``webhooks``/callback entry to its Path Item.

    Raises:
        ValidationViolation: If the entry is not an object, or combines
            ``$ref`` with sibling fields.
        ReferenceNotFoundError: If the ``$ref`` does not resolve.
        ReferenceCycleError: If the ``$ref`` chain loops.
    """
    if not isinstance(raw, dict):
        raise ValidationViolation(where, "path item must be an object")
    if "$ref" not in raw:
        return Resolved(raw, context)
    siblings = sorted(key for key in raw if key != "$ref")
    if siblings:
        raise ValidationViolation(
            where, f"path item combines $ref with sibling fields: {', '.join(siblings)}"
        )
    if not isinstance(raw["$ref"], str):
        raise ValidationViolation(where, "$ref must be a string")
    return context.resolve_path_item(raw["$ref"])


def iter_operations(path_item: dict[str, Any]) -> Iterator[tuple[str, dict[str, Any]]]:
    """Yield ``(METHOD, operation)`` pairs, standard methods first.

    OAS 3.2 ``additionalOperations`` follow, keyed by their declared method.
    """
    for method in PATH_ITEM_METHODS:
        operation = path_item.get(method)
        if isinstance(operation, dict):
            yield method.upper(), operation

    extra = path_item.get("additionalOperations")
    if isinstance(extra, dict):
        for method, operation in extra.items():
            if isinstance(operation, dict) and method.lower() not in PATH_ITEM_METHODS:
                yield method.upper(), operation


def supports_method(path_item: dict[str, Any], method: str) -> bool:
    """Return True if *path_item* declares an operation for *method* (any case)."""
    wanted = method.upper()
    return any(declared == wanted for declared, _ in iter_operations(path_item))

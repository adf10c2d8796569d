"""Callback expansion.

Each named callback (inline, or a ``$ref`` into ``components/callbacks``)
maps runtime expressions to Path Items. Every ``(name, expression, method)``
triple becomes one :class:`~oasir.models.ParsedCallback`; callbacks declared
by a callback operation are expanded into its own ``callbacks`` list.
"""

from __future__ import annotations

from typing import Any

from oasir.exceptions import ReferenceCycleError, ValidationViolation
from oasir.models import ParsedCallback
from oasir.operations.body import resolve_request_body
from oasir.operations.params import merge_parameters, resolve_parameters
from oasir.operations.responses import resolve_response
from oasir.parser.context import ResolutionContext
from oasir.routes.path_items import iter_operations, resolve_path_item_entry


def resolve_callbacks(
    callbacks: Any,
    context: ResolutionContext,
    where: str,
    ancestors: tuple[dict[str, Any], ...] = (),
) -> list[ParsedCallback]:
    """Expand an operation's ``callbacks`` map.

    Args:
        callbacks: The raw ``callbacks`` map (``None`` for none).
        context: Context the operation lives in.
        where: Dotted document path of the operation.
        ancestors: Callback objects already being expanded above this one.

    Raises:
        ReferenceNotFoundError: If a callback or path item ``$ref`` misses.
        ReferenceCycleError: If a ``$ref`` chain loops, or a callback
            operation declares a callback it is nested in.
        ValidationViolation: If a callback is not a map of path items.
    """
    if callbacks is None:
        return []
    if not isinstance(callbacks, dict):
        raise ValidationViolation(f"{where}.callbacks", "callbacks must be an object")

    result: list[ParsedCallback] = []
    for name, raw in callbacks.items():
        resolved = context.resolve_inline(raw, "callbacks", visited=set())
        callback, owner = resolved.value, resolved.context
        if not isinstance(callback, dict):
            raise ValidationViolation(f"{where}.callbacks.{name}", "callback must be an object")
        if any(callback is seen for seen in ancestors):
            raise ReferenceCycleError(f"Callback cycle detected at {where}.callbacks.{name}")

        for expression, raw_item in callback.items():
            if expression.startswith("x-"):
                continue
            item_where = f"{where}.callbacks.{name}.{expression}"
            item = resolve_path_item_entry(raw_item, owner, item_where)
            path_item, item_context = item.value, item.context
            common = resolve_parameters(path_item.get("parameters"), item_context)

            for method, operation in iter_operations(path_item):
                params = merge_parameters(
                    common, resolve_parameters(operation.get("parameters"), item_context)
                )
                response = resolve_response(operation.get("responses"), item_context, operation)
                operation_id = operation.get("operationId")
                result.append(
                    ParsedCallback(
                        name=name,
                        expression=expression,
                        method=method,
                        operation_id=operation_id if isinstance(operation_id, str) else None,
                        params=params,
                        request_body=resolve_request_body(
                            operation.get("requestBody"), item_context
                        ),
                        response_type=response.body_type if response else None,
                        response_headers=response.headers if response else [],
                        callbacks=resolve_callbacks(
                            operation.get("callbacks"),
                            item_context,
                            f"{item_where}.{method.lower()}",
                            ancestors + (callback,),
                        ),
                    )
                )
    return result

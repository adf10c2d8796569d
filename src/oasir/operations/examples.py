"""Example extraction for parameters, media types and request bodies.

Priority, highest first:

1. an explicit ``example``;
2. the first entry of ``examples`` that resolves (entries may be ``$ref`` s
   into ``components/examples``; chains are cycle-guarded);
3. the schema's own ``example`` or first ``examples`` item, following one
   level of ``$ref``;
4. the example of the (single) content media type.

Example objects carry their value under ``value``, ``dataValue``,
``serializedValue`` or ``externalValue``, tried in that order.
"""

from __future__ import annotations

from typing import Any, Optional

from oasir.parser.context import ResolutionContext

EXAMPLE_VALUE_KEYS = ("value", "dataValue", "serializedValue", "externalValue")

_MISSING = object()


def example_object_value(example: Any) -> Any:
    """Return the value carried by an Example Object, or ``_MISSING``."""
    if not isinstance(example, dict):
        return _MISSING
    for key in EXAMPLE_VALUE_KEYS:
        if key in example:
            return example[key]
    return _MISSING


def _first_named_example(examples: Any, context: ResolutionContext) -> Any:
    if not isinstance(examples, dict):
        return _MISSING
    for entry in examples.values():
        resolved = context.find_inline(entry, "examples", visited=set())
        if resolved is None:
            continue
        value = example_object_value(resolved.value)
        if value is not _MISSING:
            return value
    return _MISSING


def _schema_example(schema: Any, context: ResolutionContext) -> Any:
    if not isinstance(schema, dict):
        return _MISSING
    ref = schema.get("$ref")
    if isinstance(ref, str) and "example" not in schema and "examples" not in schema:
        target = context.locate_schema(ref)
        schema = target.value if target is not None else None
        if not isinstance(schema, dict):
            return _MISSING
    if "example" in schema:
        return schema["example"]
    examples = schema.get("examples")
    if isinstance(examples, list) and examples:
        return examples[0]
    return _MISSING


def _lookup(obj: dict[str, Any], context: ResolutionContext, schema: Any) -> Any:
    if "example" in obj:
        return obj["example"]
    value = _first_named_example(obj.get("examples"), context)
    if value is not _MISSING:
        return value
    return _schema_example(schema, context)


def resolve_example(
    obj: dict[str, Any],
    context: ResolutionContext,
    schema: Any = None,
    media: Optional[dict[str, Any]] = None,
) -> Any:
    """Resolve the example of a parameter, header or media type object.

    Args:
        obj: The object declaring ``example`` / ``examples``.
        context: Context the object lives in.
        schema: The object's schema (``obj["schema"]`` when omitted).
        media: The content media type object of a content-based parameter.

    Returns:
        The example value, or ``None`` when nothing declares one.

    Raises:
        ReferenceCycleError: If an ``examples`` ``$ref`` chain loops.
    """
    if schema is None:
        schema = obj.get("schema")
    value = _lookup(obj, context, schema)
    if value is _MISSING and isinstance(media, dict):
        value = _lookup(media, context, media.get("schema"))
    return None if value is _MISSING else value

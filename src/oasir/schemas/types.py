"""Map schema objects to :class:`~oasir.models.TypeDescriptor` values.

The mapping is structural and never renders host-language syntax:

* ``$ref`` -- a named reference (the last pointer segment, or the file stem).
* ``integer`` -- ``int64`` for ``format: int64``, else ``int32``.
* ``number`` -- ``float`` for ``format: float``, else ``double``.
* ``boolean`` -- boolean.
* ``string`` -- ``uuid`` / ``date-time`` / ``date`` formats, else plain;
  a binary content encoding, a non-textual ``contentMediaType`` or the
  ``binary``/``byte`` formats yield a binary descriptor instead.
* ``array`` -- array of the mapped ``items`` schema.
* ``object`` -- a map when only ``additionalProperties`` is declared,
  otherwise opaque.
* inline ``oneOf``/``anyOf``/``allOf`` -- opaque, except the nullable
  wrappers ``anyOf: [X, {type: null}]`` and single-branch ``allOf: [X]``,
  which map to ``X``.

Optionality is applied last: a schema that is not required, or that is
nullable (``nullable: true`` in 3.0, a ``"null"`` member of ``type`` or a
``null`` branch in 3.1), is wrapped as optional.
"""

from __future__ import annotations

from typing import Any, Optional

from oasir.models import PrimitiveType, TypeDescriptor
from oasir.parser.pointer import extract_ref_name

_STRING_FORMATS = frozenset({"uuid", "date-time", "date"})
_BINARY_FORMATS = frozenset({"binary", "byte"})


def schema_to_type(schema: Any, required: bool = True) -> TypeDescriptor:
    """Map *schema* to a type descriptor.

    Args:
        schema: A schema object (dict), a boolean schema, or ``None``.
        required: Whether the value must be present; ``False`` wraps the
            result as optional.

    Returns:
        The :class:`~oasir.models.TypeDescriptor`.

    Example::

        >>> schema_to_type({"type": "integer", "format": "int64"}, required=False).render()
        'int64?'
    """
    descriptor = _map_schema(schema)
    return descriptor.as_optional(not required or is_nullable(schema))


def is_nullable(schema: Any) -> bool:
    """Return True if *schema* admits ``null``."""
    if not isinstance(schema, dict):
        return False
    # x-nullable is the Swagger 2.0 vendor spelling.
    if schema.get("nullable") is True or schema.get("x-nullable") is True:
        return True
    declared = schema.get("type")
    if isinstance(declared, list) and "null" in declared:
        return True
    for keyword in ("anyOf", "oneOf"):
        branches = schema.get(keyword)
        if isinstance(branches, list) and any(_is_null_schema(b) for b in branches):
            return True
    return False


def _is_null_schema(schema: Any) -> bool:
    return isinstance(schema, dict) and schema.get("type") == "null" and len(schema) == 1


def schema_type_name(schema: Any) -> Optional[str]:
    """Return the single non-null ``type`` of *schema*, inferring it when undeclared.

    Used wherever only the structural kind matters (parameter style
    checks, variant naming).
    """
    if not isinstance(schema, dict):
        return None
    declared = schema.get("type")
    if isinstance(declared, list):
        non_null = [t for t in declared if t != "null"]
        return non_null[0] if len(non_null) == 1 else None
    if isinstance(declared, str):
        return declared
    if "properties" in schema or "additionalProperties" in schema:
        return "object"
    if "items" in schema:
        return "array"
    if "const" in schema:
        return _infer_value_type(schema["const"])
    values = schema.get("enum")
    if isinstance(values, list) and values:
        kinds = {_infer_value_type(v) for v in values if v is not None}
        if len(kinds) == 1:
            return kinds.pop()
    return None


def _infer_value_type(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return None


def _map_schema(schema: Any) -> TypeDescriptor:
    if not isinstance(schema, dict):
        return TypeDescriptor.opaque()

    ref = schema.get("$ref")
    if isinstance(ref, str):
        return TypeDescriptor.reference(extract_ref_name(ref))

    unwrapped = _unwrap_composition(schema)
    if unwrapped is not None:
        return _map_schema(unwrapped)
    if any(keyword in schema for keyword in ("oneOf", "anyOf", "allOf")):
        return TypeDescriptor.opaque()

    type_name = schema_type_name(schema)
    if type_name == "integer":
        fmt = "int64" if schema.get("format") == "int64" else "int32"
        return TypeDescriptor.of_primitive(PrimitiveType.INTEGER, fmt)
    if type_name == "number":
        fmt = "float" if schema.get("format") == "float" else "double"
        return TypeDescriptor.of_primitive(PrimitiveType.NUMBER, fmt)
    if type_name == "boolean":
        return TypeDescriptor.of_primitive(PrimitiveType.BOOLEAN)
    if type_name == "string":
        if _is_binary_string(schema):
            return TypeDescriptor.of_primitive(PrimitiveType.BINARY)
        fmt = schema.get("format")
        return TypeDescriptor.of_primitive(
            PrimitiveType.STRING, fmt if fmt in _STRING_FORMATS else None
        )
    if type_name == "array":
        items = schema.get("items")
        inner = _map_schema(items) if isinstance(items, dict) else TypeDescriptor.opaque()
        return TypeDescriptor.array_of(inner.as_optional(is_nullable(items)))
    if type_name == "object":
        extra = schema.get("additionalProperties")
        if isinstance(extra, dict) and not schema.get("properties"):
            return TypeDescriptor.map_of(schema_to_type(extra))
        return TypeDescriptor.opaque()
    return TypeDescriptor.opaque()


def _unwrap_composition(schema: dict[str, Any]) -> Optional[dict[str, Any]]:
    """Return the wrapped schema of a nullable or single-branch composition."""
    for keyword in ("anyOf", "oneOf"):
        branches = schema.get(keyword)
        if isinstance(branches, list):
            rest = [b for b in branches if not _is_null_schema(b)]
            if len(rest) == 1 and len(rest) < len(branches) and isinstance(rest[0], dict):
                return rest[0]
    branches = schema.get("allOf")
    if isinstance(branches, list) and len(branches) == 1 and isinstance(branches[0], dict):
        if not schema.get("properties"):
            return branches[0]
    return None


def _is_binary_string(schema: dict[str, Any]) -> bool:
    if schema.get("contentEncoding"):
        return True
    media_type = schema.get("contentMediaType")
    if isinstance(media_type, str) and media_type:
        lowered = media_type.lower()
        if not lowered.startswith("text/") and "json" not in lowered:
            return True
    return schema.get("format") in _BINARY_FORMATS

"""Struct extraction and ``allOf`` flattening.

Fields are accumulated in an insertion-ordered dict. A property declared
again by a later branch replaces the earlier field (name, type and
description) but keeps the position of the first declaration::

    A = {x: integer}        B = {x: string, y: boolean}
    C = allOf[A, B]    ->   C = {x: string, y: boolean}

``$ref`` branches resolve through the
:class:`~oasir.parser.context.ResolutionContext` and recurse in the
context of the document they land in. A branch that is already on the
current visitation path is handled according to
:attr:`~oasir.models.AssemblyConfig.allof_cycles`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from oasir.exceptions import ReferenceCycleError, ReferenceNotFoundError
from oasir.models import (
    CyclePolicy,
    ExternalDocs,
    StructField,
    StructModel,
    TypeDescriptor,
)
from oasir.parser.context import ResolutionContext, Resolved
from oasir.schemas.refs import schema_key
from oasir.schemas.types import schema_to_type, schema_type_name

logger = logging.getLogger(__name__)

ADDITIONAL_PROPERTIES_FIELD = "additional_properties"


@dataclass
class _Accumulator:
    fields: dict[str, StructField] = field(default_factory=dict)
    deny_unknown_fields: bool = False

    def upsert(self, item: StructField) -> None:
        # Reassigning an existing key keeps its insertion position.
        self.fields[item.name] = item


def flatten_schema_fields(
    schema: dict[str, Any],
    context: ResolutionContext,
    root_key: Optional[str] = None,
) -> tuple[list[StructField], bool]:
    """Collect the fields of an object or ``allOf`` schema.

    Args:
        schema: The component schema.
        context: Context of the document the schema lives in.
        root_key: Visitation key of the schema itself, so a branch that
            refers back to it counts as a cycle.

    Returns:
        The ordered field list and whether unknown fields are denied.

    Raises:
        ReferenceNotFoundError: If an ``allOf`` ``$ref`` does not resolve.
        ReferenceCycleError: If a branch revisits the path and the cycle
            policy is ``error``.
    """
    acc = _Accumulator()
    path: list[str] = [root_key] if root_key else []
    _collect(schema, context, acc, path)
    return list(acc.fields.values()), acc.deny_unknown_fields


def _collect(
    schema: Any,
    context: ResolutionContext,
    acc: _Accumulator,
    path: list[str],
) -> None:
    if not isinstance(schema, dict):
        return

    ref = schema.get("$ref")
    if isinstance(ref, str):
        _collect_ref(ref, context, acc, path)

    branches = schema.get("allOf")
    if isinstance(branches, list):
        for branch in branches:
            _collect_branch(branch, context, acc, path)

    _collect_properties(schema, acc)


def _collect_branch(
    branch: Any,
    context: ResolutionContext,
    acc: _Accumulator,
    path: list[str],
) -> None:
    if isinstance(branch, bool):
        return
    if not isinstance(branch, dict):
        context.composition_issue(f"allOf branch is not a schema: {branch!r}")
        return
    if "$ref" not in branch and "properties" not in branch and "allOf" not in branch:
        for keyword in ("oneOf", "anyOf"):
            if keyword in branch:
                context.composition_issue(
                    f"{keyword} inside an allOf branch is not flattened; its variants are ignored"
                )
                return
    type_name = schema_type_name(branch)
    if type_name not in (None, "object") and "$ref" not in branch:
        context.composition_issue(
            f"allOf branch of type '{type_name}' contributes no properties"
        )
        return
    _collect(branch, context, acc, path)


def _collect_ref(
    ref: str,
    context: ResolutionContext,
    acc: _Accumulator,
    path: list[str],
) -> None:
    target = context.locate_schema(ref)
    if target is None:
        raise ReferenceNotFoundError(f"allOf reference not found: {ref}", ref=ref)

    key = schema_key(target)
    if key in path:
        if context.config.allof_cycles == CyclePolicy.SKIP:
            logger.debug("Skipping allOf branch %s already on the visitation path", ref)
            return
        raise ReferenceCycleError(f"allOf reference cycle detected at {ref}", ref=ref)

    path.append(key)
    try:
        _collect(target.value, target.context, acc, path)
    finally:
        path.pop()


def _collect_properties(schema: dict[str, Any], acc: _Accumulator) -> None:
    properties = schema.get("properties")
    required = schema.get("required")
    required_names = set(required) if isinstance(required, list) else set()

    if isinstance(properties, dict):
        for name, prop in properties.items():
            acc.upsert(build_field(name, prop, name in required_names))

    extra = schema.get("additionalProperties")
    if extra is False:
        acc.deny_unknown_fields = True
    elif extra is True or isinstance(extra, dict):
        inner = schema_to_type(extra) if isinstance(extra, dict) else TypeDescriptor.opaque()
        if ADDITIONAL_PROPERTIES_FIELD not in acc.fields:
            acc.upsert(
                StructField(
                    name=ADDITIONAL_PROPERTIES_FIELD,
                    type=TypeDescriptor.map_of(inner),
                    description="Captured additional properties",
                )
            )


def build_field(name: str, prop: Any, required: bool) -> StructField:
    """Build one :class:`~oasir.models.StructField` from a property schema."""
    description = None
    deprecated = False
    if isinstance(prop, dict):
        if isinstance(prop.get("description"), str):
            description = prop["description"]
        deprecated = prop.get("deprecated") is True
    return StructField(
        name=name,
        type=schema_to_type(prop, required),
        description=description,
        deprecated=deprecated,
    )


def external_docs(schema: dict[str, Any]) -> Optional[ExternalDocs]:
    """Parse a schema's ``externalDocs``, ignoring malformed values."""
    value = schema.get("externalDocs")
    if isinstance(value, dict) and isinstance(value.get("url"), str):
        description = value.get("description")
        return ExternalDocs(
            url=value["url"],
            description=description if isinstance(description, str) else None,
        )
    return None


def build_struct(name: str, resolved: Resolved) -> StructModel:
    """Build a :class:`~oasir.models.StructModel` from a resolved object/allOf schema."""
    schema = resolved.value
    fields, deny_unknown = flatten_schema_fields(schema, resolved.context, schema_key(resolved))
    description = schema.get("description")
    return StructModel(
        name=name,
        description=description if isinstance(description, str) else None,
        fields=fields,
        deprecated=schema.get("deprecated") is True,
        external_docs=external_docs(schema),
        deny_unknown_fields=deny_unknown,
    )

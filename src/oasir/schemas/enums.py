"""Enum extraction from ``oneOf``/``anyOf`` schemas.

Each branch becomes one :class:`~oasir.models.EnumVariant`:

* a ``$ref`` branch is named after the referenced component;
* an inline branch is named after its type (``String``, ``Integer``,
  ``Uuid``, ``Array``...) or ``Variant<i>`` when the type says nothing.

A discriminator makes the enum tagged. Its ``mapping`` is reverse-resolved:
every mapping key whose target names a variant becomes that variant's
rename (first key) or an alias (further keys). Without a discriminator the
enum is untagged and consumers try variants in declaration order.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from oasir.models import EnumModel, EnumVariant, PrimitiveType, TypeDescriptor, TypeKind
from oasir.parser.context import Resolved
from oasir.parser.pointer import extract_ref_name
from oasir.schemas.structs import external_docs
from oasir.schemas.types import schema_to_type

logger = logging.getLogger(__name__)

_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9]+")

_FORMAT_NAMES = {"uuid": "Uuid", "date": "Date", "date-time": "DateTime"}
_PRIMITIVE_NAMES = {
    PrimitiveType.STRING: "String",
    PrimitiveType.INTEGER: "Integer",
    PrimitiveType.NUMBER: "Number",
    PrimitiveType.BOOLEAN: "Boolean",
    PrimitiveType.BINARY: "Binary",
}


def variant_name_for_type(descriptor: TypeDescriptor) -> Optional[str]:
    """Derive a variant name from an inline branch's type, or ``None``."""
    if descriptor.kind == TypeKind.ARRAY:
        return "Array"
    if descriptor.kind == TypeKind.MAP:
        return "Map"
    if descriptor.kind != TypeKind.PRIMITIVE or descriptor.primitive is None:
        return None
    if descriptor.primitive == PrimitiveType.STRING and descriptor.format in _FORMAT_NAMES:
        return _FORMAT_NAMES[descriptor.format]
    return _PRIMITIVE_NAMES[descriptor.primitive]


def sanitize_variant_name(value: str) -> str:
    """Turn a constant or title into a PascalCase identifier (``in-progress`` -> ``InProgress``)."""
    words = [w for w in _NON_IDENTIFIER.split(value) if w]
    name = "".join(w[0].upper() + w[1:] for w in words) or "Value"
    if name[0].isdigit():
        name = f"Value{name}"
    return name


def _is_null_branch(branch: Any) -> bool:
    return isinstance(branch, dict) and branch.get("type") == "null"


def _mapping_target_name(target: str) -> str:
    # Mapping values are either references or bare component names.
    if "#" in target or "/" in target or "." in target:
        return extract_ref_name(target)
    return target


def parse_variants(
    branches: list[Any],
    mapping: Optional[dict[str, str]] = None,
) -> list[EnumVariant]:
    """Build the variants of a ``oneOf``/``anyOf`` branch list.

    Args:
        branches: The raw branch schemas.
        mapping: Discriminator mapping (value -> reference).

    Returns:
        One variant per non-null branch, in declaration order, with unique
        names.
    """
    variants: list[EnumVariant] = []
    seen: set[str] = set()

    for index, branch in enumerate(branches):
        if _is_null_branch(branch):
            continue

        ref = branch.get("$ref") if isinstance(branch, dict) else None
        if isinstance(ref, str):
            base_name = extract_ref_name(ref)
            descriptor = TypeDescriptor.reference(base_name)
        else:
            descriptor = schema_to_type(branch)
            base_name = variant_name_for_type(descriptor) or f"Variant{index}"

        name = base_name if base_name not in seen else f"{base_name}{index}"
        seen.add(name)

        rename: Optional[str] = None
        aliases: list[str] = []
        if mapping and isinstance(ref, str):
            for key, target in mapping.items():
                if _mapping_target_name(target) != base_name:
                    continue
                if rename is None:
                    rename = key
                else:
                    aliases.append(key)

        description = None
        deprecated = False
        if isinstance(branch, dict):
            if isinstance(branch.get("description"), str):
                description = branch["description"]
            deprecated = branch.get("deprecated") is True

        variants.append(
            EnumVariant(
                name=name,
                type=descriptor,
                rename=rename,
                aliases=aliases,
                description=description,
                deprecated=deprecated,
            )
        )
    return variants


def const_variants(branches: list[Any]) -> Optional[list[EnumVariant]]:
    """Variants of a ``oneOf`` whose every branch is a string constant, else ``None``.

    A branch counts as a constant when it declares ``const`` or a
    single-value ``enum``. Variants are named after the branch ``title``
    (or the value) and renamed to the value.
    """
    if not branches:
        return None

    variants: list[EnumVariant] = []
    seen: set[str] = set()
    for branch in branches:
        if not isinstance(branch, dict):
            return None
        if "const" in branch:
            value = branch["const"]
        elif isinstance(branch.get("enum"), list) and len(branch["enum"]) == 1:
            value = branch["enum"][0]
        else:
            return None
        if not isinstance(value, str):
            return None

        title = branch.get("title")
        base = sanitize_variant_name(title if isinstance(title, str) else value)
        name = base
        suffix = 1
        while name in seen:
            suffix += 1
            name = f"{base}{suffix}"
        seen.add(name)

        description = branch.get("description")
        variants.append(
            EnumVariant(
                name=name,
                type=TypeDescriptor.of_primitive(PrimitiveType.STRING),
                rename=value,
                description=description if isinstance(description, str) else None,
                deprecated=branch.get("deprecated") is True,
            )
        )
    return variants


def build_enum(name: str, resolved: Resolved) -> Optional[EnumModel]:
    """Build an :class:`~oasir.models.EnumModel` from a ``oneOf``/``anyOf`` schema.

    Returns ``None`` when no variant remains (e.g. only ``null`` branches).
    """
    schema = resolved.value
    keyword = "oneOf" if isinstance(schema.get("oneOf"), list) else "anyOf"
    branches = schema.get(keyword) or []
    if "oneOf" in schema and "anyOf" in schema:
        resolved.context.composition_issue(
            f"Schema '{name}' declares both oneOf and anyOf; only oneOf is modeled"
        )

    description = schema.get("description")
    description = description if isinstance(description, str) else None
    docs = external_docs(schema)
    deprecated = schema.get("deprecated") is True

    constants = const_variants(branches)
    if constants is not None:
        return EnumModel(
            name=name,
            description=description,
            untagged=False,
            variants=constants,
            deprecated=deprecated,
            external_docs=docs,
        )

    discriminator = schema.get("discriminator")
    discriminator = discriminator if isinstance(discriminator, dict) else {}
    tag = discriminator.get("propertyName")
    tag = tag if isinstance(tag, str) and tag else None
    raw_mapping = discriminator.get("mapping")
    mapping = (
        {str(k): v for k, v in raw_mapping.items() if isinstance(v, str)}
        if isinstance(raw_mapping, dict)
        else {}
    )

    variants = parse_variants(branches, mapping)
    if not variants:
        logger.debug("Skipping schema %s: no variants", name)
        return None

    known = {v.name for v in variants}
    resolved_mapping: dict[str, str] = {}
    for key, target in mapping.items():
        target_name = _mapping_target_name(target)
        if target_name in known:
            resolved_mapping[key] = target_name
        else:
            resolved.context.composition_issue(
                f"Discriminator mapping '{key}' of '{name}' targets '{target}', "
                f"which is not one of its {keyword} branches"
            )

    default_variant = None
    default_mapping = discriminator.get("defaultMapping")
    if isinstance(default_mapping, str) and default_mapping.strip():
        default_variant = _mapping_target_name(default_mapping)

    return EnumModel(
        name=name,
        description=description,
        tag=tag,
        untagged=tag is None,
        variants=variants,
        discriminator_mapping=resolved_mapping,
        default_variant=default_variant,
        deprecated=deprecated,
        external_docs=docs,
    )

"""Model extraction for API documents and standalone JSON Schema documents.

:func:`build_models` classifies every component schema:

* ``oneOf`` / ``anyOf`` -> :class:`~oasir.models.EnumModel`
* ``allOf`` -> :class:`~oasir.models.StructModel` (flattened)
* ``type: object`` (or untyped with ``properties``) -> :class:`~oasir.models.StructModel`
* anything else is not modeled.

For a schema document the root schema (named after its ``title``, its
``$id`` or its retrieval URI) and every ``$defs`` / ``definitions`` entry
are classified the same way.
"""

from __future__ import annotations

import logging
import posixpath
import re
from typing import Any, Optional, Union
from urllib.parse import urlsplit

from oasir.models import AssemblyConfig, EnumModel, StructModel
from oasir.parser.context import ResolutionContext, Resolved
from oasir.parser.registry import DocumentRegistry
from oasir.schemas.enums import build_enum
from oasir.schemas.refs import deref_schema
from oasir.schemas.structs import build_struct
from oasir.schemas.types import schema_type_name

logger = logging.getLogger(__name__)

_NON_IDENTIFIER = re.compile(r"[^A-Za-z0-9]+")

ROOT_SCHEMA_NAME = "RootSchema"


def build_models(
    document: Union[dict[str, Any], ResolutionContext],
    registry: Optional[DocumentRegistry] = None,
    retrieval_uri: Optional[str] = None,
    config: Optional[AssemblyConfig] = None,
) -> list[Union[StructModel, EnumModel]]:
    """Extract the structural models of one document.

    Args:
        document: A parsed document, or a ready
            :class:`~oasir.parser.context.ResolutionContext`.
        registry: Registry with auxiliary documents for cross-document
            references (ignored when *document* is a context).
        retrieval_uri: URI the document was retrieved from.
        config: Engine configuration.

    Returns:
        The models in component declaration order.

    Raises:
        ReferenceNotFoundError: If an ``allOf`` or aliasing ``$ref`` misses.
        ReferenceCycleError: On a reference cycle (see
            :attr:`~oasir.models.AssemblyConfig.allof_cycles`).
        SchemaCompositionError: On irregular compositions in strict mode.
    """
    if isinstance(document, ResolutionContext):
        context = document
    else:
        context = ResolutionContext.for_document(document, retrieval_uri, registry, config)

    if context.entry.is_api:
        candidates = list(context.components("schemas").items())
    else:
        candidates = _schema_document_candidates(context)

    models: list[Union[StructModel, EnumModel]] = []
    for name, schema in candidates:
        model = build_model(name, schema, context)
        if model is not None:
            models.append(model)
    logger.debug("Built %d models from %s", len(models), context.retrieval_uri)
    return models


def build_model(
    name: str,
    schema: Any,
    context: ResolutionContext,
) -> Optional[Union[StructModel, EnumModel]]:
    """Classify and build one named schema; ``None`` when it is not modeled."""
    resolved = deref_schema(schema, context)
    value = resolved.value
    if not isinstance(value, dict):
        logger.debug("Skipping schema %s: boolean schema", name)
        return None

    target = Resolved(value, resolved.context, resolved.name or name)
    if isinstance(value.get("oneOf"), list) or isinstance(value.get("anyOf"), list):
        if "allOf" in value:
            context.composition_issue(
                f"Schema '{name}' combines allOf with oneOf/anyOf; modeled as an enum"
            )
        return build_enum(name, target)
    if isinstance(value.get("allOf"), list):
        return build_struct(name, target)
    if schema_type_name(value) == "object" or "$ref" in value:
        return build_struct(name, target)

    logger.debug("Skipping schema %s: not an object or composition", name)
    return None


def _schema_document_candidates(context: ResolutionContext) -> list[tuple[str, Any]]:
    raw = context.raw
    candidates: list[tuple[str, Any]] = [(schema_root_name(raw, context.retrieval_uri), raw)]
    for keyword in ("$defs", "definitions"):
        table = raw.get(keyword)
        if isinstance(table, dict):
            candidates.extend(table.items())
    return candidates


def schema_root_name(raw: dict[str, Any], retrieval_uri: Optional[str] = None) -> str:
    """Name of a schema document's root model.

    The ``title`` when present, else the file stem of the ``$id`` or of the
    retrieval URI, sanitised to PascalCase; ``RootSchema`` as a last resort.
    """
    title = raw.get("title")
    if isinstance(title, str) and title.strip():
        return sanitize_schema_name(title)
    for uri in (raw.get("$id"), retrieval_uri):
        if isinstance(uri, str) and uri.strip():
            stem = _uri_stem(uri)
            if stem:
                return sanitize_schema_name(stem)
    return ROOT_SCHEMA_NAME


def _uri_stem(uri: str) -> str:
    path = urlsplit(uri.split("#", 1)[0]).path.rstrip("/")
    return posixpath.basename(path).split(".", 1)[0]


def sanitize_schema_name(raw: str) -> str:
    """PascalCase *raw*, prefixing ``Schema`` when it would start with a digit."""
    words = [w for w in _NON_IDENTIFIER.split(raw) if w]
    name = "".join(w[0].upper() + w[1:] for w in words)
    if not name:
        return ROOT_SCHEMA_NAME
    if name[0].isdigit():
        return f"Schema{name}"
    return name

"""Multi-document registry for cross-document ``$ref`` resolution.

A :class:`DocumentRegistry` holds every document of one resolution session.
Nothing is ever fetched: callers register the auxiliary documents they have
(API documents and standalone JSON Schema documents) before assembling the
primary one. The registry has two phases:

1. **Build** -- sequential ``register_*`` calls. Each call assigns the next
   stable integer index, indexes the document under its retrieval URI *and*
   its resolved base URI, and indexes every ``$id`` / ``$anchor`` /
   ``$dynamicAnchor`` it declares (component roots and nested schemas).
2. **Read** -- after :meth:`DocumentRegistry.freeze` no further registration
   is accepted and any number of resolution queries may run concurrently;
   no query mutates the registry.

Lookups that miss return ``None``. Whether a miss is fatal is the caller's
decision (see :class:`~oasir.parser.context.ResolutionContext`).
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, NamedTuple, Optional

from oasir.exceptions import (
    ReferenceCollisionError,
    ReferenceCycleError,
    RegistryFrozenError,
)
from oasir.models import (
    DEFAULT_SYNTHETIC_BASE_URI,
    DocumentKind,
    DocumentVersion,
)
from oasir.parser.loader import detect_version, is_api_document, parse_text
from oasir.parser.pointer import (
    compute_base_uri,
    decode_segment,
    get_pointer,
    join_uri,
    parse_reference,
    resolve_document_uri,
)

logger = logging.getLogger(__name__)

SWAGGER_SECTIONS: dict[str, str] = {
    "schemas": "definitions",
    "parameters": "parameters",
    "responses": "responses",
    "securitySchemes": "securityDefinitions",
}
"""Where Swagger 2.0 keeps what OpenAPI 3.x keeps under ``components/<section>``."""

# Keys whose values are instance data, never schemas.
_DATA_KEYS = frozenset({"example", "examples", "const", "enum", "default"})


@dataclass(frozen=True)
class DocumentEntry:
    """One registered document. Immutable once inserted.

    Attributes:
        index: Stable registration index.
        retrieval_uri: URI the caller registered the document under.
        base_uri: Resolved base URI (self URI against retrieval URI).
        kind: API document or schema document.
        raw: Deep copy of the parsed tree.
        version: Declared version (API documents only).
        self_uri: ``$self`` of an API document or root ``$id`` of a schema.
    """

    index: int
    retrieval_uri: str
    base_uri: str
    kind: DocumentKind
    raw: dict[str, Any] = field(repr=False)
    version: Optional[DocumentVersion] = None
    self_uri: Optional[str] = None

    @property
    def is_api(self) -> bool:
        return self.kind == DocumentKind.API

    @property
    def root_schema(self) -> Optional[dict[str, Any]]:
        """The whole document for a schema document, else ``None``."""
        return self.raw if self.kind == DocumentKind.SCHEMA else None

    def section_path(self, section: str) -> tuple[str, ...]:
        """Mapping keys leading to a component section in this document."""
        if self.version is not None and self.version.is_swagger:
            mapped = SWAGGER_SECTIONS.get(section)
            return (mapped,) if mapped else ("components", section)
        return ("components", section)

    def component_table(self, section: str) -> dict[str, Any]:
        """Return the ``components/<section>`` map (or its Swagger 2.0 home)."""
        if not self.is_api:
            return {}
        node: Any = self.raw
        for key in self.section_path(section):
            node = node.get(key) if isinstance(node, dict) else None
        return node if isinstance(node, dict) else {}

    def component_value(self, section: str, name: str) -> Any:
        return self.component_table(section).get(name)

    def component_from_fragment(self, fragment: Optional[str], section: str) -> Optional[str]:
        """Return the component name if *fragment* is ``/components/<section>/<name>``.

        Deeper pointers (``/components/schemas/Pet/properties/id``) do not
        name a component and yield ``None``.
        """
        if not fragment or not fragment.startswith("/"):
            return None
        segments = [decode_segment(part) for part in fragment[1:].split("/")]
        prefix = list(self.section_path(section))
        if len(segments) != len(prefix) + 1 or segments[: len(prefix)] != prefix:
            return None
        return segments[-1] or None


@dataclass(frozen=True)
class SchemaTarget:
    """Target of an ``$id``/``$anchor`` index entry.

    Either the root of a document (``component`` is ``None``) or a named
    component schema within an API document.
    """

    doc_index: int
    component: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return self.component is None


class Located(NamedTuple):
    """A resolved value together with the document it was found in."""

    value: Any
    entry: DocumentEntry
    name: Optional[str] = None


class DocumentRegistry:
    """Registry of parsed documents, indexed by URI and by schema identity.

    Args:
        synthetic_base_uri: Base URI for documents whose retrieval and self
            URIs are both unusable.

    Example::

        registry = DocumentRegistry()
        registry.register_schema_document(
            "file:///schemas/base.json",
            {"$id": "https://x/base.json", "$anchor": "Base", "type": "object"},
        )
        registry.freeze()
        registry.resolve_schema_ref("https://x/base.json#Base")
    """

    def __init__(self, synthetic_base_uri: str = DEFAULT_SYNTHETIC_BASE_URI) -> None:
        self._synthetic_base = synthetic_base_uri
        self._entries: list[DocumentEntry] = []
        self._index: dict[str, int] = {}
        self._schema_ids: dict[str, SchemaTarget] = {}
        self._schema_anchors: dict[str, SchemaTarget] = {}
        self._inline_ids: dict[str, Located] = {}
        self._inline_anchors: dict[str, Located] = {}
        self._frozen = False

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def frozen(self) -> bool:
        """Whether the registry has entered its read phase."""
        return self._frozen

    @property
    def entries(self) -> tuple[DocumentEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DocumentEntry]:
        return iter(tuple(self._entries))

    def __contains__(self, uri: object) -> bool:
        return isinstance(uri, str) and self.get(uri) is not None

    def get(self, uri: str) -> Optional[DocumentEntry]:
        """Return the entry registered under *uri* (retrieval or base URI)."""
        idx = self._index.get(uri)
        if idx is None:
            idx = self._index.get(uri.rstrip("#"))
        return self._entries[idx] if idx is not None else None

    def freeze(self) -> DocumentRegistry:
        """End the build phase. Later registrations raise :class:`RegistryFrozenError`."""
        if not self._frozen:
            logger.debug("Registry frozen with %d document(s)", len(self._entries))
        self._frozen = True
        return self

    # ------------------------------------------------------------------ #
    # Build phase
    # ------------------------------------------------------------------ #

    def register_api_document(self, retrieval_uri: str, raw: dict[str, Any]) -> DocumentEntry:
        """Register an OpenAPI/Swagger document.

        The OAS 3.2 ``$self`` field, when present, is the self-identifying URI.

        Raises:
            VersionUnsupportedError: If the document has no usable version field.
            ReferenceCollisionError: If its retrieval or base URI is taken.
            RegistryFrozenError: If the registry is frozen.
        """
        self._check_mutable()
        version = detect_version(raw)
        self_uri = raw.get("$self") if isinstance(raw.get("$self"), str) else None
        entry = self._insert(retrieval_uri, raw, DocumentKind.API, version, self_uri)
        self._index_components(entry)
        self._index_inline(entry)
        return entry

    def register_schema_document(self, retrieval_uri: str, raw: dict[str, Any]) -> DocumentEntry:
        """Register a standalone JSON Schema document.

        The root ``$id``, when present, is the self-identifying URI.

        Raises:
            ReferenceCollisionError: If its retrieval or base URI is taken.
            RegistryFrozenError: If the registry is frozen.
        """
        self._check_mutable()
        self_uri = raw.get("$id") if isinstance(raw.get("$id"), str) else None
        entry = self._insert(retrieval_uri, raw, DocumentKind.SCHEMA, None, self_uri)
        self._index_root(entry)
        self._index_inline(entry)
        return entry

    def register_document_text(
        self, retrieval_uri: str, text: str, hint: str = ""
    ) -> DocumentEntry:
        """Parse *text* and register it as an API or schema document.

        Documents declaring ``openapi``/``swagger`` are API documents;
        anything else is treated as JSON Schema.
        """
        raw = parse_text(text, hint=hint)
        if is_api_document(raw):
            return self.register_api_document(retrieval_uri, raw)
        return self.register_schema_document(retrieval_uri, raw)

    def _check_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError(
                "Document registry is frozen; register documents before assembling"
            )

    def _insert(
        self,
        retrieval_uri: str,
        raw: dict[str, Any],
        kind: DocumentKind,
        version: Optional[DocumentVersion],
        self_uri: Optional[str],
    ) -> DocumentEntry:
        base_uri = compute_base_uri(retrieval_uri, self_uri, self._synthetic_base)
        aliases = [retrieval_uri]
        if base_uri != retrieval_uri:
            aliases.append(base_uri)

        for alias in aliases:
            existing = self._index.get(alias)
            if existing is not None:
                raise ReferenceCollisionError(
                    f"Document registry URI collision for '{alias}': "
                    f"already registered as {self._entries[existing].retrieval_uri}"
                )

        entry = DocumentEntry(
            index=len(self._entries),
            retrieval_uri=retrieval_uri,
            base_uri=base_uri,
            kind=kind,
            raw=copy.deepcopy(raw),
            version=version,
            self_uri=self_uri,
        )
        self._entries.append(entry)
        for alias in aliases:
            self._index[alias] = entry.index

        logger.debug(
            "Registered %s document #%d: %s (base %s)",
            kind.value,
            entry.index,
            retrieval_uri,
            base_uri,
        )
        return entry

    def _index_components(self, entry: DocumentEntry) -> None:
        for name, schema in entry.component_table("schemas").items():
            if not isinstance(schema, dict):
                continue
            target = SchemaTarget(entry.index, name)
            schema_id = schema.get("$id")
            anchor_base = entry.base_uri
            if isinstance(schema_id, str):
                resolved = resolve_document_uri(schema_id, entry.base_uri)
                if resolved is not None:
                    self._schema_ids.setdefault(resolved, target)
                    anchor_base = resolved
            self._index_anchors(schema, anchor_base, target, self._schema_anchors)

    def _index_root(self, entry: DocumentEntry) -> None:
        target = SchemaTarget(entry.index)
        if entry.self_uri is not None:
            self._schema_ids.setdefault(entry.base_uri, target)
        self._index_anchors(entry.raw, entry.base_uri, target, self._schema_anchors)

    @staticmethod
    def _index_anchors(
        schema: dict[str, Any], base: Optional[str], target: Any, index: dict[str, Any]
    ) -> None:
        for keyword in ("$anchor", "$dynamicAnchor"):
            anchor = schema.get(keyword)
            if not isinstance(anchor, str) or not anchor.strip():
                continue
            anchor = anchor.strip()
            index.setdefault(f"#{anchor}", target)
            if base:
                index.setdefault(f"{base}#{anchor}", target)

    def _index_inline(self, entry: DocumentEntry) -> None:
        skip_prefix = entry.section_path("schemas") if entry.is_api else None
        self._walk_inline(entry, entry.raw, entry.base_uri, [], skip_prefix)

    def _walk_inline(
        self,
        entry: DocumentEntry,
        node: Any,
        base: str,
        path: list[str],
        skip_prefix: Optional[tuple[str, ...]],
    ) -> None:
        if isinstance(node, list):
            for idx, item in enumerate(node):
                self._walk_inline(entry, item, base, path + [str(idx)], skip_prefix)
            return
        if not isinstance(node, dict):
            return

        # Component roots and the schema-document root are indexed as targets.
        is_target_root = (
            not path
            if skip_prefix is None
            else len(path) == len(skip_prefix) + 1 and tuple(path[:-1]) == skip_prefix
        )

        child_base = base
        schema_id = node.get("$id")
        if isinstance(schema_id, str):
            child_base = join_uri(base, schema_id)

        if not is_target_root:
            located = Located(node, entry)
            if isinstance(schema_id, str):
                self._inline_ids.setdefault(child_base, located)
            self._index_anchors(node, child_base, located, self._inline_anchors)

        for key, value in node.items():
            if key in _DATA_KEYS:
                continue
            self._walk_inline(entry, value, child_base, path + [key], skip_prefix)

    # ------------------------------------------------------------------ #
    # Read phase
    # ------------------------------------------------------------------ #

    def _target_value(self, target: SchemaTarget) -> Optional[Located]:
        entry = self._entries[target.doc_index]
        if target.is_root:
            return Located(entry.raw, entry)
        value = entry.component_value("schemas", target.component or "")
        if not isinstance(value, dict):
            return None
        return Located(value, entry, target.component)

    def _document_for(self, document: str, base: Optional[str]) -> Optional[DocumentEntry]:
        if document:
            doc_uri = resolve_document_uri(document, base)
        else:
            doc_uri = base
        if doc_uri is None:
            return None
        return self.get(doc_uri)

    def locate_schema_ref(self, ref: str, base: Optional[str] = None) -> Optional[Located]:
        """Resolve a schema reference and report where it was found.

        Lookup order:

        1. ``$id`` match (document root or component schema), then a nested
           ``$id`` found anywhere in a document.
        2. ``$anchor``/``$dynamicAnchor`` match, tried as the bare fragment,
           then namespaced by the resolved document URI (or by *base* for a
           fragment-only reference); component/root anchors before nested.
        3. Schema documents: the root for an empty or ``/`` fragment, or the
           target of a JSON Pointer fragment.
        4. API documents: ``#/components/schemas/<name>`` (``#/definitions/``
           for Swagger 2.0), or the target of any other JSON Pointer.

        Args:
            ref: The ``$ref`` string.
            base: Base URI of the referring document.

        Returns:
            The :class:`Located` schema, or ``None`` on a miss.
        """
        parsed = parse_reference(ref)

        if parsed.document and parsed.is_root:
            doc_uri = resolve_document_uri(parsed.document, base)
            if doc_uri is not None:
                target = self._schema_ids.get(doc_uri)
                if target is not None:
                    located = self._target_value(target)
                    if located is not None:
                        return located
                inline = self._inline_ids.get(doc_uri)
                if inline is not None:
                    return inline

        if parsed.fragment and not parsed.is_pointer:
            candidates = [f"#{parsed.fragment}"]
            if parsed.document:
                doc_uri = resolve_document_uri(parsed.document, base)
                if doc_uri is not None:
                    candidates.append(f"{doc_uri}#{parsed.fragment}")
            elif base is not None:
                candidates.append(f"{base}#{parsed.fragment}")

            for candidate in candidates:
                target = self._schema_anchors.get(candidate)
                if target is not None:
                    located = self._target_value(target)
                    if located is not None:
                        return located
            for candidate in candidates:
                inline = self._inline_anchors.get(candidate)
                if inline is not None:
                    return inline

        entry = self._document_for(parsed.document, base)
        if entry is None:
            return None

        if entry.kind == DocumentKind.SCHEMA:
            if parsed.is_root:
                return Located(entry.raw, entry)
            if parsed.is_pointer:
                value = get_pointer(entry.raw, parsed.fragment or "")
                if isinstance(value, (dict, bool)):
                    return Located(value, entry, _last_segment(parsed.fragment))
            return None

        if not parsed.is_pointer:
            return None
        name = entry.component_from_fragment(parsed.fragment, "schemas")
        if name is not None:
            value = entry.component_value("schemas", name)
            return Located(value, entry, name) if isinstance(value, (dict, bool)) else None
        value = get_pointer(entry.raw, parsed.fragment or "")
        if isinstance(value, (dict, bool)):
            return Located(value, entry, _last_segment(parsed.fragment))
        return None

    def resolve_schema_ref(self, ref: str, base: Optional[str] = None) -> Optional[Any]:
        """Resolve a schema reference; see :meth:`locate_schema_ref` for the lookup order."""
        located = self.locate_schema_ref(ref, base)
        return located.value if located is not None else None

    def locate_component_ref(
        self, ref: str, base: Optional[str], section: str
    ) -> Optional[Located]:
        """Resolve ``<doc>#/components/<section>/<name>`` to the raw component.

        A reference without a document part resolves against *base*. The
        returned value may itself be a ``$ref``; following chains is the
        caller's job.
        """
        parsed = parse_reference(ref)
        entry = self._document_for(parsed.document, base)
        if entry is None or not entry.is_api:
            return None
        name = entry.component_from_fragment(parsed.fragment, section)
        if name is None:
            return None
        value = entry.component_value(section, name)
        if value is None:
            return None
        return Located(value, entry, name)

    def resolve_component_ref(self, ref: str, base: Optional[str], section: str) -> Optional[Any]:
        """Resolve a non-schema component reference to its raw value, or ``None``."""
        located = self.locate_component_ref(ref, base, section)
        return located.value if located is not None else None

    def locate_path_item_ref(
        self,
        ref: str,
        base: Optional[str],
        visited: Optional[set[str]] = None,
        follow: bool = True,
    ) -> Optional[Located]:
        """Resolve a Path Item reference, following chained ``$ref`` s.

        Targets are ``#/components/pathItems/<name>`` and
        ``#/paths/<escaped-path>`` of a registered API document.

        Args:
            ref: The ``$ref`` string.
            base: Base URI of the referring document.
            visited: Absolute references already followed on this chain.
            follow: When false, return the first hop even if it is itself
                a ``$ref`` (used to follow chains across registries).

        Raises:
            ReferenceCycleError: If the chain revisits a reference.
        """
        visited = set() if visited is None else visited
        parsed = parse_reference(ref)
        entry = self._document_for(parsed.document, base)
        if entry is None or not entry.is_api or not parsed.is_pointer:
            return None

        name = entry.component_from_fragment(parsed.fragment, "pathItems")
        value: Any = None
        if name is not None:
            value = entry.component_value("pathItems", name)
        else:
            segments = (parsed.fragment or "")[1:].split("/")
            if len(segments) == 2 and segments[0] == "paths":
                path_key = decode_segment(segments[1])
                paths = entry.raw.get("paths")
                value = paths.get(path_key) if isinstance(paths, dict) else None
                name = path_key

        if not isinstance(value, dict):
            return None

        key = f"{entry.base_uri}#{parsed.fragment}"
        if key in visited:
            raise ReferenceCycleError(f"PathItem reference cycle detected at {ref}", ref=ref)
        visited.add(key)

        next_ref = value.get("$ref")
        if follow and isinstance(next_ref, str):
            return self.locate_path_item_ref(next_ref, entry.base_uri, visited)
        return Located(value, entry, name)

    def resolve_path_item_ref(self, ref: str, base: Optional[str] = None) -> Optional[dict[str, Any]]:
        """Resolve a Path Item reference to its raw path item, or ``None``."""
        located = self.locate_path_item_ref(ref, base)
        return located.value if located is not None else None


def _last_segment(fragment: Optional[str]) -> Optional[str]:
    if not fragment:
        return None
    name = decode_segment(fragment.rsplit("/", 1)[-1])
    return name or None

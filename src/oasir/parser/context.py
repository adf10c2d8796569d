"""Resolution scope of one document.

A :class:`ResolutionContext` bundles what every resolver needs to follow a
``$ref`` out of one document: the document's registry entry, a *home*
registry that knows the document itself, the shared session registry with
the auxiliary documents, and the :class:`~oasir.models.AssemblyConfig`.

All component sections (parameters, requestBodies, responses, headers,
examples, links, callbacks, securitySchemes, ...) resolve through the single
:meth:`ResolutionContext.resolve_component`, parameterised by section name
and an optional parse callable. Schema references go through
:meth:`ResolutionContext.locate_schema` and path items through
:meth:`ResolutionContext.resolve_path_item`.

When a reference lands in another document, the result carries a context
re-rooted at that document so nested references keep resolving relative to
the right base URI.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, NamedTuple, Optional

from oasir.exceptions import (
    ReferenceCycleError,
    ReferenceNotFoundError,
    SchemaCompositionError,
)
from oasir.models import AssemblyConfig, DocumentVersion
from oasir.parser.loader import is_api_document
from oasir.parser.pointer import get_pointer, normalize_ref_to_local, parse_reference
from oasir.parser.registry import DocumentEntry, DocumentRegistry, Located

logger = logging.getLogger(__name__)


class Resolved(NamedTuple):
    """A resolved value, the context it lives in, and its component name if any."""

    value: Any
    context: ResolutionContext
    name: Optional[str] = None


class ResolutionContext:
    """Reference resolution rooted at one registered document.

    Use :meth:`for_document` to build the context of a primary document;
    contexts for auxiliary documents are derived automatically while
    resolving. Derived contexts keep the primary's registry in their
    lookup chain, so an auxiliary document can refer back into the
    primary without the primary being registered in the shared registry.

    Args:
        entry: The registry entry of the document.
        home: Registry holding *entry*.
        registry: Shared session registry (may be *home* itself).
        config: Engine configuration.
        primary: Registry of the primary document; defaults to *home*.
    """

    def __init__(
        self,
        entry: DocumentEntry,
        home: DocumentRegistry,
        registry: Optional[DocumentRegistry] = None,
        config: Optional[AssemblyConfig] = None,
        primary: Optional[DocumentRegistry] = None,
    ) -> None:
        self.entry = entry
        self.home = home
        self.registry = registry
        self.config = config or AssemblyConfig()
        self.primary = primary or home

    @classmethod
    def for_document(
        cls,
        raw: dict[str, Any],
        retrieval_uri: Optional[str] = None,
        registry: Optional[DocumentRegistry] = None,
        config: Optional[AssemblyConfig] = None,
    ) -> ResolutionContext:
        """Build the context of a primary document.

        The document is registered in a private one-document registry so
        that its own ``$id``/``$anchor`` declarations resolve exactly like
        those of auxiliary documents, without touching (or requiring a
        mutable) shared *registry*.
        """
        config = config or AssemblyConfig()
        home = DocumentRegistry(config.synthetic_base_uri)
        uri = retrieval_uri or config.synthetic_base_uri
        if is_api_document(raw):
            entry = home.register_api_document(uri, raw)
        else:
            entry = home.register_schema_document(uri, raw)
        home.freeze()
        return cls(entry, home, registry, config)

    # ------------------------------------------------------------------ #
    # Document identity
    # ------------------------------------------------------------------ #

    @property
    def raw(self) -> dict[str, Any]:
        return self.entry.raw

    @property
    def version(self) -> Optional[DocumentVersion]:
        return self.entry.version

    @property
    def is_v3(self) -> bool:
        return self.version is not None and self.version.is_v3

    @property
    def is_swagger(self) -> bool:
        return self.version is not None and self.version.is_swagger

    @property
    def base_uri(self) -> str:
        return self.entry.base_uri

    @property
    def self_uri(self) -> Optional[str]:
        return self.entry.self_uri

    @property
    def retrieval_uri(self) -> str:
        return self.entry.retrieval_uri

    def components(self, section: str) -> dict[str, Any]:
        """The ``components/<section>`` map of this document."""
        return self.entry.component_table(section)

    def _registries(self) -> list[DocumentRegistry]:
        registries = [self.home]
        for extra in (self.registry, self.primary):
            if extra is not None and all(extra is not seen for seen in registries):
                registries.append(extra)
        return registries

    def _context_for(self, located: Located, registry: DocumentRegistry) -> ResolutionContext:
        if located.entry is self.entry:
            return self
        return ResolutionContext(located.entry, registry, self.registry, self.config, self.primary)

    def _target(self, ref: str) -> str:
        local = normalize_ref_to_local(ref, self.self_uri)
        return local if local is not None else ref

    # ------------------------------------------------------------------ #
    # Generic component resolution
    # ------------------------------------------------------------------ #

    def resolve_component(
        self,
        ref: str,
        section: str,
        parse: Optional[Callable[[Any], Any]] = None,
        visited: Optional[set[str]] = None,
    ) -> Resolved:
        """Resolve a reference into ``components/<section>``, following chains.

        Same-document references may also be arbitrary JSON Pointers (e.g.
        into an operation's parameter list); cross-document references go
        through the registries. Every hop is recorded in *visited* and a
        repeat is a cycle.

        Args:
            ref: The ``$ref`` string.
            section: Component section name (``parameters``, ``examples``...).
            parse: Optional callable applied to the final raw value.
            visited: Hops already followed by the caller.

        Raises:
            ReferenceNotFoundError: If any hop of the chain misses.
            ReferenceCycleError: If the chain revisits a hop.
        """
        resolved, missed = self._follow(ref, section, parse, visited)
        if resolved is None:
            raise ReferenceNotFoundError(
                f"Cannot resolve {section} reference '{missed}'", ref=missed
            )
        return resolved

    def find_component(
        self,
        ref: str,
        section: str,
        parse: Optional[Callable[[Any], Any]] = None,
        visited: Optional[set[str]] = None,
    ) -> Optional[Resolved]:
        """Like :meth:`resolve_component`, but return ``None`` when a hop misses."""
        return self._follow(ref, section, parse, visited)[0]

    def _follow(
        self,
        ref: str,
        section: str,
        parse: Optional[Callable[[Any], Any]],
        visited: Optional[set[str]],
    ) -> tuple[Optional[Resolved], str]:
        visited = set() if visited is None else visited
        context: ResolutionContext = self
        current = ref
        name: Optional[str] = None

        while True:
            located, owner = context._locate_component(current, section)
            if located is None:
                return None, current

            key = f"{located.entry.base_uri}#{section}:{located.name or current}"
            if key in visited:
                raise ReferenceCycleError(
                    f"Reference cycle detected while resolving {section} '{ref}' at '{current}'",
                    ref=current,
                )
            visited.add(key)

            context = context._context_for(located, owner)
            name = located.name or name
            value = located.value
            if isinstance(value, dict) and isinstance(value.get("$ref"), str):
                current = value["$ref"]
                continue
            return Resolved(parse(value) if parse else value, context, name), current

    def _locate_component(
        self, ref: str, section: str
    ) -> tuple[Optional[Located], DocumentRegistry]:
        target = self._target(ref)
        for registry in self._registries():
            located = registry.locate_component_ref(target, self.base_uri, section)
            if located is not None:
                return located, registry

        parsed = parse_reference(target)
        if parsed.is_local and parsed.is_pointer:
            value = get_pointer(self.raw, parsed.fragment or "")
            if value is not None:
                return Located(value, self.entry, None), self.home
        return None, self.home

    def resolve_inline(
        self,
        value: Any,
        section: str,
        parse: Optional[Callable[[Any], Any]] = None,
        visited: Optional[set[str]] = None,
    ) -> Resolved:
        """Resolve *value* if it is a ``{"$ref": ...}`` object, else wrap it as-is."""
        if isinstance(value, dict) and isinstance(value.get("$ref"), str):
            return self.resolve_component(value["$ref"], section, parse=parse, visited=visited)
        return Resolved(parse(value) if parse else value, self)

    def find_inline(
        self, value: Any, section: str, visited: Optional[set[str]] = None
    ) -> Optional[Resolved]:
        """Like :meth:`resolve_inline`, but return ``None`` for a dangling ``$ref``."""
        if isinstance(value, dict) and isinstance(value.get("$ref"), str):
            return self.find_component(value["$ref"], section, visited=visited)
        return Resolved(value, self)

    # ------------------------------------------------------------------ #
    # Schemas
    # ------------------------------------------------------------------ #

    def locate_schema(self, ref: str) -> Optional[Resolved]:
        """Resolve a schema reference through the home and shared registries.

        Returns ``None`` on a miss; see
        :meth:`~oasir.parser.registry.DocumentRegistry.locate_schema_ref`
        for the lookup order.
        """
        target = self._target(ref)
        for registry in self._registries():
            located = registry.locate_schema_ref(target, self.base_uri)
            if located is not None:
                return Resolved(located.value, self._context_for(located, registry), located.name)
        return None

    def resolve_schema_ref(self, ref: str) -> Optional[Any]:
        resolved = self.locate_schema(ref)
        return resolved.value if resolved is not None else None

    # ------------------------------------------------------------------ #
    # Path items
    # ------------------------------------------------------------------ #

    def resolve_path_item(self, ref: str, visited: Optional[set[str]] = None) -> Resolved:
        """Resolve a Path Item reference, following chains across documents.

        Raises:
            ReferenceNotFoundError: If any hop does not resolve.
            ReferenceCycleError: If the chain revisits a path item.
        """
        visited = set() if visited is None else visited
        context: ResolutionContext = self
        current = ref

        while True:
            target = context._target(current)
            found: Optional[Located] = None
            owner = context.home
            for registry in context._registries():
                found = registry.locate_path_item_ref(
                    target, context.base_uri, visited, follow=False
                )
                if found is not None:
                    owner = registry
                    break
            if found is None:
                raise ReferenceNotFoundError(f"PathItem reference not found: {current}", ref=current)

            context = context._context_for(found, owner)
            next_ref = found.value.get("$ref")
            if isinstance(next_ref, str):
                current = next_ref
                continue
            return Resolved(found.value, context, found.name)

    # ------------------------------------------------------------------ #
    # Diagnostics
    # ------------------------------------------------------------------ #

    def composition_issue(self, message: str) -> None:
        """Report an irregular composition: a warning, or an error in strict mode."""
        if self.config.strict_composition:
            raise SchemaCompositionError(message)
        logger.warning("%s", message)

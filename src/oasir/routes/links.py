"""Response link target resolution.

Runs after every route is built so that links can point at any operation
of the document. A resolved target is recorded as a route key
(``GET /users/{id}``):

* ``operationId`` -- must name an operation of the document; a callback
  operation is recorded by its expression (``POST {$request.body#/url}``);
* ``operationRef`` starting with ``/`` -- kept as-is;
* ``operationRef`` into ``#/paths/...``, ``#/webhooks/...`` or
  ``#/components/pathItems/...`` of this document -- resolved to the route
  key, optionally narrowed by a trailing method segment;
* ``operationRef`` into another document -- kept as-is.

A same-document ``operationRef`` that does not land on an operation is an
error.
"""

from __future__ import annotations

from typing import Any, Optional

from oasir.exceptions import ReferenceError_, ReferenceNotFoundError
from oasir.models import ParsedCallback, ParsedRoute, ResponseLink
from oasir.parser.context import ResolutionContext
from oasir.parser.pointer import component_name, normalize_ref_to_local, split_pointer
from oasir.routes.path_items import iter_operations, resolve_path_item_entry, supports_method


class LinkTargetResolver:
    """Resolve link targets against the routes of one document.

    Args:
        context: Context of the primary document.
        routes: Every route built from the document.
    """

    def __init__(self, context: ResolutionContext, routes: list[ParsedRoute]) -> None:
        self.context = context
        self.operation_index: dict[str, str] = {}
        for route in routes:
            if route.operation_id:
                self.operation_index.setdefault(route.operation_id, route.key)
            self._index_callbacks(route.callbacks)

    def _index_callbacks(self, callbacks: list[ParsedCallback]) -> None:
        for callback in callbacks:
            if callback.operation_id:
                self.operation_index.setdefault(callback.operation_id, callback.key)
            self._index_callbacks(callback.callbacks)

    def resolve(self, routes: list[ParsedRoute]) -> list[ParsedRoute]:
        """Return *routes* with every response link target filled in.

        Raises:
            ReferenceNotFoundError: For an unknown ``operationId`` or an
                unresolvable same-document ``operationRef``.
        """
        result: list[ParsedRoute] = []
        for route in routes:
            if not route.response_links:
                result.append(route)
                continue
            links = [self._resolve_link(link) for link in route.response_links]
            result.append(route.model_copy(update={"response_links": links}))
        return result

    def _resolve_link(self, link: ResponseLink) -> ResponseLink:
        if link.operation_ref is not None:
            target = self.resolve_operation_ref(link.operation_ref)
            if target is None:
                raise ReferenceNotFoundError(
                    f"Link '{link.name}' operationRef '{link.operation_ref}' "
                    "does not resolve to a known operation",
                    ref=link.operation_ref,
                )
            return link.model_copy(update={"target": target})

        if link.operation_id is not None:
            target = self.operation_index.get(link.operation_id)
            if target is None:
                raise ReferenceNotFoundError(
                    f"Link '{link.name}' references unknown operationId '{link.operation_id}'"
                )
            return link.model_copy(update={"target": target})
        return link

    def resolve_operation_ref(self, operation_ref: str) -> Optional[str]:
        """Resolve an ``operationRef`` to a route key; ``None`` when it misses."""
        if operation_ref.startswith("/"):
            return operation_ref
        local = normalize_ref_to_local(operation_ref, self.context.self_uri)
        if local is None:
            return operation_ref
        try:
            segments = split_pointer(local[1:])
        except ValueError:
            return None
        try:
            return self._resolve_segments(segments)
        except ReferenceError_:
            return None

    def _resolve_segments(self, segments: list[str]) -> Optional[str]:
        raw = self.context.raw
        if len(segments) in (2, 3) and segments[0] in ("paths", "webhooks"):
            table = raw.get(segments[0])
            entry = table.get(segments[1]) if isinstance(table, dict) else None
            if entry is None:
                return None
            item = resolve_path_item_entry(entry, self.context, f"{segments[0]}.{segments[1]}")
            return _route_key(segments[1], item.value, segments[2] if len(segments) == 3 else None)

        if len(segments) in (3, 4) and segments[:2] == ["components", "pathItems"]:
            name = segments[2]
            entry = self.context.components("pathItems").get(name)
            if entry is None:
                return None
            item = resolve_path_item_entry(entry, self.context, f"components.pathItems.{name}")
            key = self._component_path_item_key(name)
            if key is None:
                return None
            return _route_key(key, item.value, segments[3] if len(segments) == 4 else None)
        return None

    def _component_path_item_key(self, name: str) -> Optional[str]:
        """The unique path or webhook whose ``$ref`` names ``components/pathItems/<name>``."""
        matches: list[str] = []
        for section in ("paths", "webhooks"):
            table = self.context.raw.get(section)
            if not isinstance(table, dict):
                continue
            for key, entry in table.items():
                ref = entry.get("$ref") if isinstance(entry, dict) else None
                if isinstance(ref, str) and component_name(ref, "pathItems", self.context.self_uri) == name:
                    matches.append(key)
        return matches[0] if len(matches) == 1 else None


def _route_key(path: str, path_item: Any, method: Optional[str]) -> Optional[str]:
    if not isinstance(path_item, dict):
        return None
    if method is not None:
        if not supports_method(path_item, method):
            return None
        return f"{method.upper()} {path}"
    operations = list(iter_operations(path_item))
    if len(operations) == 1:
        return f"{operations[0][0]} {path}"
    return path

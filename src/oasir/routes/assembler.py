"""Build the route list of an API document.

The single public entry point is :func:`assemble`. It walks ``paths`` and
``webhooks`` in declaration order and produces one
:class:`~oasir.models.ParsedRoute` per operation:

* handler name from the ``operationId`` (snake case), else method and path;
* parameters merged from the path item and the operation, the operation
  winning on ``(name, location)``;
* request body, success response type, headers and links;
* servers and base path (operation > path item > root);
* security requirements (operation list, else the global list);
* callbacks, one entry per callback operation.

Link targets are resolved once every route exists, then the document's
models and metadata are built.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from oasir.models import (
    AssembledDocument,
    AssemblyConfig,
    ParsedRoute,
    RouteKind,
    RouteParam,
    SecuritySchemeInfo,
)
from oasir.operations import (
    merge_parameters,
    resolve_parameters,
    resolve_request_body,
    resolve_response,
    swagger_request_body,
)
from oasir.parser.context import ResolutionContext
from oasir.parser.loader import check_root_sections, detect_version
from oasir.parser.registry import DocumentRegistry
from oasir.routes.callbacks import resolve_callbacks
from oasir.routes.links import LinkTargetResolver
from oasir.routes.metadata import build_metadata
from oasir.routes.naming import handler_name
from oasir.routes.path_items import iter_operations, resolve_path_item_entry
from oasir.routes.security import effective_security, security_schemes
from oasir.routes.servers import effective_servers, resolve_base_path
from oasir.schemas import build_models
from oasir.schemas.structs import external_docs

logger = logging.getLogger(__name__)


def assemble(
    document: dict[str, Any],
    registry: Optional[DocumentRegistry] = None,
    retrieval_uri: Optional[str] = None,
    config: Optional[AssemblyConfig] = None,
) -> AssembledDocument:
    """Assemble routes, models and metadata of one API document.

    Args:
        document: The parsed API document.
        registry: Auxiliary documents for cross-document references. It is
            frozen on entry.
        retrieval_uri: URI the document was retrieved from; relative server
            URLs and references resolve against it.
        config: Engine configuration.

    Returns:
        The :class:`~oasir.models.AssembledDocument`.

    Raises:
        VersionUnsupportedError: If the document declares no supported version.
        ValidationViolation: If a 3.x document has none of ``components``,
            ``paths`` and ``webhooks``, or a validation rule fails.
        ReferenceNotFoundError: If a required reference misses.
        ReferenceCycleError: If a reference chain loops.
        ParameterConflictError: On invalid or conflicting parameters.
        SchemaCompositionError: On irregular compositions in strict mode.

    Example::

        result = assemble(load_document("petstore.yaml"))
        for route in result.routes:
            print(route.key, route.handler_name)
    """
    config = config or AssemblyConfig()
    if registry is not None:
        registry.freeze()

    check_root_sections(document, detect_version(document))

    context = ResolutionContext.for_document(document, retrieval_uri, registry, config)
    if config.validate_document:
        # Imported here: the validation package resolves through this one.
        from oasir.validation import validate_document

        validate_document(context)

    routes = RouteAssembler(context).assemble_routes()
    routes = LinkTargetResolver(context, routes).resolve(routes)
    models = build_models(context)
    metadata = build_metadata(context)
    logger.debug(
        "Assembled %d routes and %d models from %s",
        len(routes),
        len(models),
        context.retrieval_uri,
    )
    return AssembledDocument(routes=routes, models=models, metadata=metadata)


class RouteAssembler:
    """Turn the path items of one document into routes.

    Args:
        context: Context of the primary document.
    """

    def __init__(self, context: ResolutionContext) -> None:
        self.context = context
        self.schemes: dict[str, SecuritySchemeInfo] = security_schemes(context)

    def assemble_routes(self) -> list[ParsedRoute]:
        routes: list[ParsedRoute] = []
        for section, kind in (("paths", RouteKind.PATH), ("webhooks", RouteKind.WEBHOOK)):
            table = self.context.raw.get(section)
            if not isinstance(table, dict):
                continue
            for path, raw_item in table.items():
                if path.startswith("x-"):
                    continue
                routes.extend(self._path_item_routes(section, path, raw_item, kind))
        return routes

    def _path_item_routes(
        self, section: str, path: str, raw_item: Any, kind: RouteKind
    ) -> list[ParsedRoute]:
        where = f"{section}.{path}"
        item = resolve_path_item_entry(raw_item, self.context, where)
        path_item, item_context = item.value, item.context
        common = resolve_parameters(path_item.get("parameters"), item_context)

        routes: list[ParsedRoute] = []
        for method, operation in iter_operations(path_item):
            route = self._build_route(
                path,
                method,
                operation,
                path_item,
                common,
                item_context,
                kind,
                f"{where}.{method.lower()}",
            )
            logger.debug("Registered route %s -> %s", route.key, route.handler_name)
            routes.append(route)
        return routes

    def _build_route(
        self,
        path: str,
        method: str,
        operation: dict[str, Any],
        path_item: dict[str, Any],
        common: list[RouteParam],
        context: ResolutionContext,
        kind: RouteKind,
        where: str,
    ) -> ParsedRoute:
        root = self.context.raw
        operation_id = operation.get("operationId")
        operation_id = operation_id if isinstance(operation_id, str) else None

        params = merge_parameters(
            common, resolve_parameters(operation.get("parameters"), context)
        )

        if context.is_swagger:
            request_body = swagger_request_body(
                _merge_raw_parameters(path_item, operation, context), context, operation
            )
        else:
            request_body = resolve_request_body(operation.get("requestBody"), context)

        response = resolve_response(operation.get("responses"), context, operation)

        servers = effective_servers(
            operation.get("servers"), path_item.get("servers"), root.get("servers")
        )
        base_path = None
        if kind == RouteKind.PATH:
            base_path = resolve_base_path(
                servers,
                self.context.retrieval_uri,
                root.get("basePath") if self.context.is_swagger else None,
                self.context.config.synthetic_base_uri,
            )

        tags = operation.get("tags")
        summary = operation.get("summary", path_item.get("summary"))
        description = operation.get("description", path_item.get("description"))
        return ParsedRoute(
            path=path,
            method=method,
            handler_name=handler_name(operation_id, method, path),
            kind=kind,
            operation_id=operation_id,
            summary=summary if isinstance(summary, str) else None,
            description=description if isinstance(description, str) else None,
            tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else [],
            base_path=base_path,
            servers=servers,
            params=params,
            request_body=request_body,
            security=effective_security(operation, root, self.schemes, where),
            response_status=response.status if response else None,
            response_type=response.body_type if response else None,
            response_media_type=response.media_type if response else None,
            response_headers=response.headers if response else [],
            response_links=response.links if response else [],
            callbacks=resolve_callbacks(operation.get("callbacks"), context, where),
            deprecated=operation.get("deprecated") is True,
            external_docs=external_docs(operation),
        )


def _merge_raw_parameters(
    path_item: dict[str, Any], operation: dict[str, Any], context: ResolutionContext
) -> list[dict[str, Any]]:
    """Resolved raw parameters, operation entries overriding path-level ones."""

    def resolve(params: Any) -> list[dict[str, Any]]:
        if not isinstance(params, list):
            return []
        result = []
        for raw in params:
            resolved = context.resolve_inline(raw, "parameters", visited=set())
            if isinstance(resolved.value, dict):
                result.append(resolved.value)
        return result

    own = resolve(operation.get("parameters"))
    overridden = {(p.get("name"), p.get("in")) for p in own}
    merged = [
        p
        for p in resolve(path_item.get("parameters"))
        if (p.get("name"), p.get("in")) not in overridden
    ]
    merged.extend(own)
    return merged

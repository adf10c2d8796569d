"""The structural validation suite.

:func:`validate_document` runs every rule over a raw API document and stops
at the first violation. Violations carry a dotted document path such as
``paths./items.get.responses.200``.

Operations are visited wherever they are declared: ``paths``,
``webhooks``, ``components/pathItems`` and, recursively, callbacks. A path
item reached twice (through ``$ref``) is checked once.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from oasir.exceptions import ValidationViolation
from oasir.models import AssemblyConfig, VersionFamily
from oasir.parser.context import ResolutionContext
from oasir.parser.loader import check_root_sections, detect_version
from oasir.parser.registry import DocumentRegistry
from oasir.routes.path_items import iter_operations, resolve_path_item_entry
from oasir.validation.objects import (
    check_content,
    check_headers,
    check_parameter_content,
    check_request_body,
    check_response,
    check_responses,
)
from oasir.validation.security import check_security_scheme
from oasir.validation.servers import check_servers
from oasir.validation.structure import (
    check_callback_expression,
    check_component_keys,
    check_info,
    check_paths,
    check_tags,
)

logger = logging.getLogger(__name__)

_RESPONSES_REQUIRED = frozenset({VersionFamily.SWAGGER_2, VersionFamily.OPENAPI_30})


def validate_document(
    document: Union[dict[str, Any], ResolutionContext],
    registry: Optional[DocumentRegistry] = None,
    retrieval_uri: Optional[str] = None,
    config: Optional[AssemblyConfig] = None,
) -> None:
    """Validate the structure of an API document.

    Args:
        document: A parsed API document or a ready
            :class:`~oasir.parser.context.ResolutionContext`.
        registry: Auxiliary documents for cross-document references
            (ignored when *document* is a context).
        retrieval_uri: URI the document was retrieved from.
        config: Engine configuration.

    Raises:
        VersionUnsupportedError: If the document declares no supported version.
        ValidationViolation: On the first rule violation.
        ReferenceNotFoundError: If a referenced object does not resolve.
        ReferenceCycleError: If a reference chain loops.

    Example::

        try:
            validate_document(load_document("openapi.yaml"))
        except ValidationViolation as exc:
            print(exc.path, exc.reason)
    """
    if isinstance(document, ResolutionContext):
        context = document
    else:
        check_root_sections(document, detect_version(document))
        context = ResolutionContext.for_document(document, retrieval_uri, registry, config)
    DocumentValidator(context).run()
    logger.debug("Document %s passed validation", context.retrieval_uri)


class DocumentValidator:
    """Walk one document and apply every structural rule.

    Args:
        context: Context of the document.
    """

    def __init__(self, context: ResolutionContext) -> None:
        self.context = context
        self._seen_items: set[int] = set()
        self._operation_ids: dict[str, str] = {}

    def run(self) -> None:
        raw = self.context.raw
        check_info(raw)
        check_tags(raw)
        check_paths(raw.get("paths"))
        if self.context.is_v3:
            check_servers(raw.get("servers"), "servers")
            check_component_keys(raw.get("components"))
            self._check_components()
        self._check_security_schemes()

        for section in ("paths", "webhooks"):
            table = raw.get(section)
            if not isinstance(table, dict):
                continue
            for key, entry in table.items():
                if not key.startswith("x-"):
                    self._check_path_item(entry, self.context, f"{section}.{key}")

        for name, entry in self.context.components("pathItems").items():
            self._check_path_item(entry, self.context, f"components.pathItems.{name}")

    # ------------------------------------------------------------------ #
    # Components
    # ------------------------------------------------------------------ #

    def _check_components(self) -> None:
        context = self.context
        for name, response in context.components("responses").items():
            check_response(response, context, f"components.responses.{name}")
        check_headers(context.components("headers"), context, "components.headers")
        for name, body in context.components("requestBodies").items():
            check_request_body(body, context, f"components.requestBodies.{name}")
        for name, media in context.components("mediaTypes").items():
            check_content({name: media}, context, "components.mediaTypes")

    def _check_security_schemes(self) -> None:
        swagger = self.context.is_swagger
        prefix = "securityDefinitions" if swagger else "components.securitySchemes"
        for name, raw in self.context.components("securitySchemes").items():
            resolved = self.context.resolve_inline(raw, "securitySchemes", visited=set())
            check_security_scheme(resolved.value, f"{prefix}.{name}", swagger)

    # ------------------------------------------------------------------ #
    # Path items and operations
    # ------------------------------------------------------------------ #

    def _check_path_item(self, entry: Any, context: ResolutionContext, where: str) -> None:
        item = resolve_path_item_entry(entry, context, where)
        path_item, owner = item.value, item.context
        if id(path_item) in self._seen_items:
            return
        self._seen_items.add(id(path_item))

        if owner.is_v3:
            check_servers(path_item.get("servers"), f"{where}.servers")
        self._check_parameters(path_item.get("parameters"), owner, f"{where}.parameters")
        for method, operation in iter_operations(path_item):
            self._check_operation(operation, owner, f"{where}.{method.lower()}")

    def _check_parameters(self, params: Any, context: ResolutionContext, where: str) -> None:
        if not isinstance(params, list) or not context.is_v3:
            return
        for index, param in enumerate(params):
            check_parameter_content(param, context, f"{where}[{index}]")

    def _check_operation(
        self, operation: dict[str, Any], context: ResolutionContext, where: str
    ) -> None:
        operation_id = operation.get("operationId")
        if isinstance(operation_id, str):
            previous = self._operation_ids.setdefault(operation_id, where)
            if previous != where:
                raise ValidationViolation(
                    f"{where}.operationId",
                    f"operationId '{operation_id}' is already used by {previous}",
                )

        self._check_parameters(operation.get("parameters"), context, f"{where}.parameters")
        if context.is_v3:
            check_servers(operation.get("servers"), f"{where}.servers")
            if "requestBody" in operation:
                check_request_body(operation["requestBody"], context, f"{where}.requestBody")
        # OAS 3.1 made the responses map optional.
        version = context.version
        if "responses" in operation or (version and version.family in _RESPONSES_REQUIRED):
            check_responses(operation.get("responses"), context, f"{where}.responses")
        self._check_callbacks(operation.get("callbacks"), context, f"{where}.callbacks")

    def _check_callbacks(self, callbacks: Any, context: ResolutionContext, where: str) -> None:
        if not isinstance(callbacks, dict):
            return
        for name, raw in callbacks.items():
            resolved = context.resolve_inline(raw, "callbacks", visited=set())
            callback, owner = resolved.value, resolved.context
            if not isinstance(callback, dict):
                raise ValidationViolation(f"{where}.{name}", "callback must be an object")
            for expression, entry in callback.items():
                if expression.startswith("x-"):
                    continue
                item_where = f"{where}.{name}.{expression}"
                check_callback_expression(expression, item_where)
                self._check_path_item(entry, owner, item_where)

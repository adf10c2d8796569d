"""Document parsing and reference resolution.

This sub-package is the foundation of the oasir pipeline: it turns text into
document trees and answers every "what does this ``$ref`` point at?" query
for the layers above it.

Typical usage::

    from oasir.parser import DocumentRegistry, ResolutionContext, load_document

    registry = DocumentRegistry()
    registry.register_document_text("https://x/common.yaml", common_text)
    registry.freeze()
    context = ResolutionContext.for_document(load_document("api.yaml"),
                                             "https://x/api.yaml", registry)
    pet = context.resolve_schema_ref("common.yaml#/components/schemas/Pet")

Sub-modules:

* :mod:`~oasir.parser.loader` -- JSON/YAML parsing and version detection.
* :mod:`~oasir.parser.pointer` -- JSON Pointer escapes and RFC 3986
  reference handling.
* :mod:`~oasir.parser.registry` -- The multi-document
  :class:`~oasir.parser.registry.DocumentRegistry`.
* :mod:`~oasir.parser.context` -- Per-document
  :class:`~oasir.parser.context.ResolutionContext` with the generic
  component resolver.
"""

from oasir.parser.context import ResolutionContext, Resolved
from oasir.parser.loader import (
    check_root_sections,
    detect_version,
    is_api_document,
    load_document,
    parse_text,
)
from oasir.parser.registry import DocumentEntry, DocumentRegistry, Located

__all__ = [
    "DocumentEntry",
    "DocumentRegistry",
    "Located",
    "ResolutionContext",
    "Resolved",
    "check_root_sections",
    "detect_version",
    "is_api_document",
    "load_document",
    "parse_text",
]

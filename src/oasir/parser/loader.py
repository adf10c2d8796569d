"""Load API description documents from text or local files.

This module turns raw text into a Python tree and classifies it. It supports
both JSON and YAML with automatic format detection, and recognises the
version field of OpenAPI 3.0/3.1/3.2 and Swagger 2.0 documents. Nothing here
touches the network: auxiliary documents are supplied by the caller and
registered in a :class:`~oasir.parser.registry.DocumentRegistry`.

The public functions are:

* :func:`parse_text` -- Parse JSON or YAML text into a mapping.
* :func:`load_document` -- Read and parse a local file.
* :func:`detect_version` -- Classify the ``openapi``/``swagger`` field.
* :func:`is_api_document` -- Tell API documents from standalone JSON Schema.
* :func:`check_root_sections` -- The 3.x root-section precondition.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from oasir.exceptions import DocumentParseError, ValidationViolation, VersionUnsupportedError
from oasir.models import DocumentVersion, VersionFamily

logger = logging.getLogger(__name__)


def load_document(path: str | Path) -> dict[str, Any]:
    """Load a document from a local file.

    Supports ``.json``, ``.yaml`` and ``.yml`` extensions. Falls back to
    content-based detection if the extension is not recognised.

    Args:
        path: Path to the local file.

    Returns:
        The parsed document as a dictionary.

    Raises:
        DocumentParseError: If the file cannot be read or parsed.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise DocumentParseError(f"Document not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DocumentParseError(f"Failed to read document {path}: {exc}") from exc

    if not content.strip():
        raise DocumentParseError(f"Document is empty: {path}")

    logger.debug("Loaded %d characters from %s", len(content), file_path)
    return parse_text(content, hint=_hint_from_suffix(file_path.suffix))


def _hint_from_suffix(suffix: str) -> str:
    suffix = suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix in (".yaml", ".yml"):
        return "yaml"
    return ""


def parse_text(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    Tries JSON first (unless hint is ``'yaml'``), then falls back to YAML.
    Valid JSON is also valid YAML, but JSON parsing is stricter and faster.

    Args:
        content: The raw string content.
        hint: Optional format hint (``'json'`` or ``'yaml'``).

    Returns:
        The parsed dictionary.

    Raises:
        DocumentParseError: If the content cannot be parsed as either format,
            or parses to something other than a mapping.
    """
    json_error: Exception | None = None
    yaml_error: Exception | None = None

    if hint != "yaml":
        try:
            return _require_mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            json_error = exc
            if hint == "json":
                raise DocumentParseError(f"Invalid JSON: {exc}") from exc

    try:
        return _require_mapping(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        yaml_error = exc

    msg = "Failed to parse document as JSON or YAML"
    if json_error:
        msg += f"\n  JSON error: {json_error}"
    if yaml_error:
        msg += f"\n  YAML error: {yaml_error}"
    raise DocumentParseError(msg)


def _require_mapping(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise DocumentParseError(f"Document must be a JSON/YAML object (got {kind})")
    return result


def is_api_document(raw: dict[str, Any]) -> bool:
    """Return True if *raw* declares an ``openapi`` or ``swagger`` version field."""
    return "openapi" in raw or "swagger" in raw


def detect_version(raw: dict[str, Any]) -> DocumentVersion:
    """Classify the declared version of an API document.

    Accepts ``swagger: "2.0"`` and ``openapi: 3.0.x / 3.1.x / 3.2.x``. YAML
    documents sometimes carry the version as a number (``openapi: 3.1``);
    that form is accepted too.

    Args:
        raw: The parsed document.

    Returns:
        The :class:`~oasir.models.DocumentVersion`.

    Raises:
        VersionUnsupportedError: If neither field is present, or the version
            is not one of the supported families.
    """
    if "openapi" in raw:
        version_str = str(raw["openapi"]).strip()
        for family in (
            VersionFamily.OPENAPI_30,
            VersionFamily.OPENAPI_31,
            VersionFamily.OPENAPI_32,
        ):
            if version_str == family.value or version_str.startswith(family.value + "."):
                return DocumentVersion(family=family, raw=version_str)
        raise VersionUnsupportedError(
            f"Unsupported OpenAPI version: {version_str}. "
            "Only OpenAPI 3.0.x, 3.1.x and 3.2.x are supported."
        )

    if "swagger" in raw:
        version_str = str(raw["swagger"]).strip()
        if version_str in ("2.0", "2"):
            return DocumentVersion(family=VersionFamily.SWAGGER_2, raw=version_str)
        raise VersionUnsupportedError(
            f"Unsupported Swagger version: {version_str}. Only Swagger 2.0 is supported."
        )

    raise VersionUnsupportedError(
        "Missing 'openapi' or 'swagger' field. Is this an API description document?"
    )


def check_root_sections(raw: dict[str, Any], version: DocumentVersion) -> None:
    """Require at least one of ``components``/``paths``/``webhooks`` in a 3.x document.

    Raises:
        ValidationViolation: If a 3.x document declares none of them.
    """
    if version.is_v3 and not any(key in raw for key in ("components", "paths", "webhooks")):
        raise ValidationViolation(
            "", "an OpenAPI 3.x document must declare components, paths or webhooks"
        )

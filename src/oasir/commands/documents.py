"""Shared document loading for CLI commands.

Every command takes a primary document path plus repeated
``--register URI=PATH`` options. The auxiliary documents are registered in
a fresh :class:`~oasir.parser.registry.DocumentRegistry` under the given
URI, so cross-document ``$ref`` s in the primary document can reach them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import typer

from oasir.config import resolve_config
from oasir.exceptions import InvalidUsageError
from oasir.models import AssemblyConfig, CyclePolicy
from oasir.parser import DocumentRegistry, is_api_document, load_document

logger = logging.getLogger(__name__)

REGISTER_OPTION = typer.Option(
    None,
    "--register",
    "-r",
    help="Pre-register an auxiliary document as URI=PATH (repeatable).",
)
VALIDATE_OPTION = typer.Option(
    None, "--validate/--no-validate", help="Run structural validation before assembly."
)
ALLOF_CYCLES_OPTION = typer.Option(
    None, "--allof-cycles", help="Policy for allOf reference cycles: error or skip."
)
STRICT_OPTION = typer.Option(
    None,
    "--strict-composition/--lenient-composition",
    help="Fail on irregular allOf/oneOf/anyOf instead of warning.",
)


@dataclass
class LoadedDocument:
    """A primary document with its registry and effective config."""

    raw: dict[str, Any]
    retrieval_uri: str
    registry: DocumentRegistry
    config: AssemblyConfig


def parse_register_option(value: str) -> tuple[str, Path]:
    """Split a ``URI=PATH`` option value.

    Raises:
        InvalidUsageError: If the value has no ``=`` or an empty side.
    """
    uri, sep, path = value.partition("=")
    if not sep or not uri.strip() or not path.strip():
        raise InvalidUsageError(f"--register expects URI=PATH, got '{value}'")
    return uri.strip(), Path(path.strip()).expanduser()


def load_with_registry(
    file: Path,
    register: Optional[list[str]] = None,
    validate: Optional[bool] = None,
    allof_cycles: Optional[CyclePolicy] = None,
    strict_composition: Optional[bool] = None,
) -> LoadedDocument:
    """Load *file*, register the auxiliary documents and resolve the config.

    Raises:
        InvalidUsageError: On a malformed ``--register`` value.
        DocumentParseError: If a document cannot be read or parsed.
        ReferenceCollisionError: If two documents share a URI.
        ConfigError: If the configuration is invalid.
    """
    config = resolve_config(
        validate=validate,
        allof_cycles=allof_cycles,
        strict_composition=strict_composition,
    )
    registry = DocumentRegistry(config.synthetic_base_uri)
    for value in register or []:
        uri, path = parse_register_option(value)
        raw = load_document(path)
        if is_api_document(raw):
            registry.register_api_document(uri, raw)
        else:
            registry.register_schema_document(uri, raw)
        logger.debug("Registered %s from %s", uri, path)
    registry.freeze()

    return LoadedDocument(
        raw=load_document(file),
        retrieval_uri=file.resolve().as_uri(),
        registry=registry,
        config=config,
    )

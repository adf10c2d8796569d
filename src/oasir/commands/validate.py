"""``oasir validate`` -- run the structural validation suite on a document."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from oasir.commands.documents import REGISTER_OPTION, load_with_registry
from oasir.exceptions import OasirError, ValidationViolation
from oasir.output import OutputFormat, error, get_output
from oasir.validation import validate_document


def validate_command(
    file: Path = typer.Argument(..., help="OpenAPI or Swagger document (JSON or YAML)."),
    register: Optional[list[str]] = REGISTER_OPTION,
) -> None:
    """Validate a document and report the first violation.

    Exits with code 8 on a structural violation, or with the exit code of
    the parse/reference error that prevented validation.

    Example::

        oasir validate openapi.yaml
        oasir --json validate openapi.yaml
    """
    output = get_output()
    try:
        loaded = load_with_registry(file, register)
        validate_document(
            loaded.raw,
            registry=loaded.registry,
            retrieval_uri=loaded.retrieval_uri,
            config=loaded.config,
        )
    except ValidationViolation as exc:
        if output.format == OutputFormat.JSON:
            output.print_document({"valid": False, "path": exc.path, "message": exc.reason})
        else:
            error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    except OasirError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if output.format == OutputFormat.JSON:
        output.print_document({"valid": True, "file": str(file)})
    else:
        output.success(f"{file} is valid")

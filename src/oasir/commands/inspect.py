"""Inspect commands -- examine the assembled representation of a document.

Provides the ``oasir inspect`` sub-command group: ``routes``, ``models``
and ``metadata``. Every sub-command assembles the given document (with
any ``--register`` ed auxiliary documents) and presents one part of the
result as a table or a structured document.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from oasir.commands.documents import (
    ALLOF_CYCLES_OPTION,
    REGISTER_OPTION,
    STRICT_OPTION,
    VALIDATE_OPTION,
    load_with_registry,
)
from oasir.exceptions import OasirError
from oasir.models import AssembledDocument, CyclePolicy, EnumModel
from oasir.output import error, get_output
from oasir.routes import assemble

inspect_app = typer.Typer(no_args_is_help=True)

FILE_ARGUMENT = typer.Argument(..., help="OpenAPI or Swagger document (JSON or YAML).")


def _assemble_file(
    file: Path,
    register: Optional[list[str]],
    validate: Optional[bool],
    allof_cycles: Optional[CyclePolicy],
    strict_composition: Optional[bool],
) -> AssembledDocument:
    """Load and assemble *file*, turning library errors into exit codes.

    Raises:
        typer.Exit: With the error's ``exit_code`` on any
            :class:`~oasir.exceptions.OasirError`.
    """
    try:
        loaded = load_with_registry(file, register, validate, allof_cycles, strict_composition)
        result = assemble(
            loaded.raw,
            registry=loaded.registry,
            retrieval_uri=loaded.retrieval_uri,
            config=loaded.config,
        )
    except OasirError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    get_output().info(
        f"Assembled {len(result.routes)} routes and {len(result.models)} models from {file}"
    )
    return result


@inspect_app.command("routes")
def inspect_routes(
    file: Path = FILE_ARGUMENT,
    register: Optional[list[str]] = REGISTER_OPTION,
    validate: Optional[bool] = VALIDATE_OPTION,
    allof_cycles: Optional[CyclePolicy] = ALLOF_CYCLES_OPTION,
    strict_composition: Optional[bool] = STRICT_OPTION,
) -> None:
    """List every route with its handler, parameters and types.

    Example::

        oasir inspect routes openapi.yaml
        oasir --json inspect routes openapi.yaml -r https://x/common.yaml=common.yaml
    """
    result = _assemble_file(file, register, validate, allof_cycles, strict_composition)

    headers = ["Method", "Path", "Handler", "Params", "Body", "Response", "Security"]
    rows: list[list[str]] = []
    for route in result.routes:
        full_path = f"{route.base_path or ''}{route.path}"
        params = ", ".join(f"{p.name}:{p.location.value}" for p in route.params)
        body = route.request_body.type.render() if route.request_body else ""
        response = route.response_type.render() if route.response_type else ""
        security = ", ".join(sorted({s.scheme_name for s in route.security}))
        rows.append([
            route.method,
            full_path,
            route.handler_name,
            params or "-",
            body or "-",
            f"{route.response_status} {response}".strip() if route.response_status else "-",
            security or "-",
        ])

    title = result.metadata.info.title
    get_output().print_table(headers, rows, title=f"{title} -- Routes ({len(rows)})")


@inspect_app.command("models")
def inspect_models(
    file: Path = FILE_ARGUMENT,
    register: Optional[list[str]] = REGISTER_OPTION,
    validate: Optional[bool] = VALIDATE_OPTION,
    allof_cycles: Optional[CyclePolicy] = ALLOF_CYCLES_OPTION,
    strict_composition: Optional[bool] = STRICT_OPTION,
) -> None:
    """List the data models (structs and enums) of a document.

    Example::

        oasir inspect models openapi.yaml
    """
    result = _assemble_file(file, register, validate, allof_cycles, strict_composition)

    headers = ["Model", "Kind", "Members"]
    rows: list[list[str]] = []
    for model in result.models:
        if isinstance(model, EnumModel):
            members = ", ".join(v.rename or v.name for v in model.variants)
            kind = f"enum (tag: {model.tag})" if model.tag else "enum"
        else:
            members = ", ".join(f"{f.rename or f.name}: {f.type.render()}" for f in model.fields)
            kind = "struct"
        rows.append([model.name, kind, members or "-"])

    get_output().print_table(headers, rows, title=f"Models ({len(rows)})")


@inspect_app.command("metadata")
def inspect_metadata(
    file: Path = FILE_ARGUMENT,
    register: Optional[list[str]] = REGISTER_OPTION,
    validate: Optional[bool] = VALIDATE_OPTION,
    allof_cycles: Optional[CyclePolicy] = ALLOF_CYCLES_OPTION,
    strict_composition: Optional[bool] = STRICT_OPTION,
    components: bool = typer.Option(
        False, "--components", help="Include the raw components tree."
    ),
) -> None:
    """Show document metadata: info, servers, tags, security.

    Example::

        oasir inspect metadata openapi.yaml --components
    """
    result = _assemble_file(file, register, validate, allof_cycles, strict_composition)
    exclude = None if components else {"components"}
    data = result.metadata.model_dump(mode="json", exclude=exclude, exclude_none=True)
    data["routes"] = len(result.routes)
    data["models"] = len(result.models)
    get_output().print_document(data)

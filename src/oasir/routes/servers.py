"""Server lists and base-path resolution.

The base path of a route comes from the first entry of its effective server
list (operation > path item > document root): every ``{variable}`` is
replaced with its default, the URL is resolved (against the retrieval URI
when it is relative), scheme and host are dropped, and the remaining path
is trimmed of its trailing slash. An empty result means no prefix.
Swagger 2.0 documents use ``basePath`` instead.
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urlsplit

from oasir.models import DEFAULT_SYNTHETIC_BASE_URI, ServerInfo, ServerVariable
from oasir.parser.pointer import is_absolute_uri, join_uri


def parse_servers(raw: Any) -> list[ServerInfo]:
    """Parse a ``servers`` array, skipping malformed entries."""
    if not isinstance(raw, list):
        return []
    servers: list[ServerInfo] = []
    for entry in raw:
        if not isinstance(entry, dict) or not isinstance(entry.get("url"), str):
            continue
        variables: dict[str, ServerVariable] = {}
        raw_vars = entry.get("variables")
        if isinstance(raw_vars, dict):
            for name, var in raw_vars.items():
                if not isinstance(var, dict) or "default" not in var:
                    continue
                enum = var.get("enum")
                variables[name] = ServerVariable(
                    default=str(var["default"]),
                    enum=[str(v) for v in enum] if isinstance(enum, list) else None,
                    description=var.get("description") if isinstance(var.get("description"), str) else None,
                )
        description = entry.get("description")
        servers.append(
            ServerInfo(
                url=entry["url"],
                description=description if isinstance(description, str) else None,
                variables=variables,
            )
        )
    return servers


def substitute_variables(server: ServerInfo) -> str:
    """Return the server URL with every declared variable replaced by its default."""
    url = server.url
    for name, variable in server.variables.items():
        url = url.replace(f"{{{name}}}", variable.default)
    return url


def normalize_base_path(path: str) -> Optional[str]:
    """Trim a trailing slash and ensure a leading one; ``""`` and ``/`` give ``None``."""
    trimmed = path.strip().rstrip("/")
    if not trimmed:
        return None
    return trimmed if trimmed.startswith("/") else f"/{trimmed}"


def base_path_from_url(
    url: str,
    retrieval_uri: Optional[str] = None,
    synthetic_base: str = DEFAULT_SYNTHETIC_BASE_URI,
) -> Optional[str]:
    """Extract the path prefix of a (possibly relative) server URL."""
    trimmed = url.strip()
    if not trimmed:
        return None
    if is_absolute_uri(trimmed):
        resolved = trimmed
    elif retrieval_uri and is_absolute_uri(retrieval_uri):
        resolved = join_uri(retrieval_uri, trimmed)
    else:
        resolved = join_uri(synthetic_base, trimmed)
    return normalize_base_path(urlsplit(resolved).path)


def effective_servers(*levels: Any) -> list[ServerInfo]:
    """The first non-empty ``servers`` array among *levels* (most specific first)."""
    for raw in levels:
        servers = parse_servers(raw)
        if servers:
            return servers
    return []


def resolve_base_path(
    servers: list[ServerInfo],
    retrieval_uri: Optional[str] = None,
    swagger_base_path: Any = None,
    synthetic_base: str = DEFAULT_SYNTHETIC_BASE_URI,
) -> Optional[str]:
    """Resolve the base path from Swagger ``basePath`` or the first server."""
    if isinstance(swagger_base_path, str):
        trimmed = swagger_base_path.rstrip("/")
        if trimmed:
            return trimmed
    if not servers:
        return None
    return base_path_from_url(substitute_variables(servers[0]), retrieval_uri, synthetic_base)

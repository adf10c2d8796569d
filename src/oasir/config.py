"""Configuration loading with precedence resolution.

The engine itself takes an explicit :class:`~oasir.models.AssemblyConfig`;
this module builds one for the CLI from the usual layers:

* **Project config** -- ``./oasir.json`` in the working directory.
* **Environment** -- ``OASIR_CONFIG`` naming a JSON config file.
* **CLI flags** -- individual overrides passed by the caller.

See :func:`resolve_config` for the precedence chain.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from oasir.exceptions import ConfigError
from oasir.models import AssemblyConfig

logger = logging.getLogger(__name__)

_PROJECT_CONFIG_FILENAME = "oasir.json"
CONFIG_ENV_VAR = "OASIR_CONFIG"


def _read_config_file(path: Path, label: str) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
    except OSError as exc:
        raise ConfigError(f"Cannot read {label} config at {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid {label} config at {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid {label} config at {path}: expected a JSON object")
    return data


def load_project_config() -> Optional[dict[str, Any]]:
    """Load project-local configuration from ``./oasir.json``.

    Returns:
        The parsed JSON as a dict, or ``None`` if the file does not exist.

    Raises:
        ConfigError: If the file exists but is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    return _read_config_file(path, "project")


def load_env_config() -> Optional[dict[str, Any]]:
    """Load the config file named by ``OASIR_CONFIG``, if the variable is set.

    Raises:
        ConfigError: If the variable points at a missing or invalid file.
    """
    value = os.environ.get(CONFIG_ENV_VAR)
    if not value:
        return None
    path = Path(value).expanduser()
    if not path.is_file():
        raise ConfigError(f"{CONFIG_ENV_VAR} points at a missing file: {path}")
    return _read_config_file(path, "environment")


def resolve_config(**cli_overrides: Any) -> AssemblyConfig:
    """Resolve the effective engine config with the full precedence chain.

    Precedence (high to low):
        1. CLI flags (*cli_overrides*; ``None`` values are ignored)
        2. Environment (the JSON file named by ``OASIR_CONFIG``)
        3. Project config (``./oasir.json``)
        4. Defaults

    Returns:
        The merged :class:`~oasir.models.AssemblyConfig`.

    Raises:
        ConfigError: If a config file is unreadable or a value is invalid.

    Example::

        config = resolve_config(validate=False)
    """
    merged: dict[str, Any] = {}
    for layer in (load_project_config(), load_env_config()):
        if layer:
            merged.update(layer)
    merged.update({key: value for key, value in cli_overrides.items() if value is not None})

    try:
        config = AssemblyConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    logger.debug("Effective config: %s", config.model_dump(mode="json", by_alias=True))
    return config

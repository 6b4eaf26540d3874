"""Config Loader - Loads request settings and declarative endpoint tables.

Both are YAML files with ${ENV_VAR} substitution, validated by the Pydantic
models in api_request.models.

Endpoint tables describe methods without any Python interface class:

    settings:
      media_type: application/json
    endpoints:
      listPulls:
        method: GET
        path: /repos/{owner}/{repo}/pulls
        returns_value: true
        params:
          - {attribute: owner, role: path, name: owner}
          - {attribute: state, role: query, name: state}
          - {attribute: filter, role: unclassified}

Parameters are optional unless marked `required: true`.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from api_request.models import EndpointTable, MethodDescriptor, RequestSettings

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration loading fails."""


def _load_yaml_mapping(path: Path, kind: str) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"{kind} file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {kind.lower()} file: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"{kind} file must be a YAML mapping")

    return _substitute_env_vars(raw)


def load_settings(settings_path: Path) -> RequestSettings:
    """Load RequestSettings from YAML with ${ENV_VAR} substitution."""
    raw = _load_yaml_mapping(settings_path, "Settings")
    try:
        return RequestSettings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings structure: {e}") from e


def load_endpoint_table(table_path: Path) -> EndpointTable:
    """Load an endpoint table (settings plus endpoints) from YAML.

    Each endpoint's name defaults to its key in the `endpoints` mapping.

    Raises:
        ConfigError: Missing file, invalid YAML, or invalid structure.
        AmbiguousBodyError: An endpoint declares more than one body or
            unclassified param.
    """
    raw = _load_yaml_mapping(table_path, "Endpoint table")

    endpoints = raw.get("endpoints") or {}
    if not isinstance(endpoints, dict):
        raise ConfigError("'endpoints' must be a mapping of endpoint name to definition")
    raw["endpoints"] = endpoints
    for name, definition in endpoints.items():
        if isinstance(definition, dict):
            definition.setdefault("name", name)

    try:
        table = EndpointTable.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid endpoint table structure: {e}") from e

    logger.debug("Loaded %d endpoint(s) from %s", len(table.endpoints), table_path)
    return table


def load_endpoints(table_path: Path) -> dict[str, MethodDescriptor]:
    """Load only the endpoint descriptors of an endpoint table."""
    return load_endpoint_table(table_path).endpoints


def _substitute_env_vars(data: Any) -> Any:
    """Recursively substitute ${ENV_VAR} patterns in strings within data."""
    if isinstance(data, str):
        return _substitute_string(data)
    elif isinstance(data, dict):
        return {k: _substitute_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    return data


def _substitute_string(s: str) -> str:
    """Substitute ${ENV_VAR} patterns. Raises ConfigError if env var is not set.

    Path templates also use braces, but only `${...}` (with the dollar sign)
    is treated as a variable reference.
    """
    pattern = re.compile(r"\$\{([^}]+)\}")

    def replacer(match: re.Match) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(f"Environment variable '{var_name}' is not set")
        return value

    return pattern.sub(replacer, s)

"""Selection profiles and run configuration.

Handles:
- Loading selection profiles from YAML files.
- Merging CLI options over profile values.
- Validating the run configuration before anything executes.

Profile format::

    types: [Core]                  # or "Core,Framework"
    methods: [Build, SourceChanged]
    parameters:
      restore: [true, false]
      sdk-version: 2.1.4
    target_count: 3
    warmup_count: 1
    debug: false
    timeout: 900
    work_dir: scenarios
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from cliperf.errors import ProfileError
from cliperf.logging import get_logger
from cliperf.selection.dimensions import REGISTRY, DimensionRegistry
from cliperf.selection.request import (
    RunConfig,
    SelectionRequest,
    parse_dimension_filters,
    split_list,
)

log = get_logger("config")


# ---------------------------------------------------------------------------
# YAML profile loading
# ---------------------------------------------------------------------------


def load_profile(profile_path: Path) -> dict[str, Any]:
    """Load a selection profile from a YAML file.

    Raises:
        ProfileError: If the file is missing, unparsable, or not a mapping.
    """
    if not profile_path.exists():
        raise ProfileError(f"Profile not found: {profile_path}")

    try:
        data = yaml.safe_load(profile_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ProfileError(f"Could not parse profile {profile_path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ProfileError(f"Profile must be a YAML mapping, got {type(data).__name__}")

    log.debug("Loaded profile %s", profile_path)
    return data


def _yaml_scalar(value: Any) -> str:
    # YAML turns ``true`` into a bool and ``2.0`` into a float.
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def profile_filter_tokens(parameters: Any) -> list[str]:
    """Convert a profile's ``parameters`` entry into ``dim=v1|v2`` tokens.

    Accepts a mapping of dimension to value (or list of values), or a
    list of ready-made tokens.
    """
    if parameters is None:
        return []
    if isinstance(parameters, str):
        return [parameters]
    if isinstance(parameters, list):
        return [str(p) for p in parameters]
    if not isinstance(parameters, dict):
        raise ProfileError(
            "Profile 'parameters' must be a mapping of dimension -> value(s) or a list"
        )

    tokens: list[str] = []
    for name, values in parameters.items():
        if not isinstance(values, list):
            values = [values]
        tokens.append(f"{name}={'|'.join(_yaml_scalar(v) for v in values)}")
    return tokens


def _int_setting(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProfileError(f"Profile '{key}' must be an integer, got {value!r}")
    return value


def _bool_setting(data: dict[str, Any], key: str, default: bool) -> bool:
    # A quoted "false" would otherwise be truthy.
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ProfileError(f"Profile '{key}' must be true or false, got {value!r}")
    return value


def _list_setting(data: dict[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return split_list(value)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return split_list(value)
    raise ProfileError(
        f"Profile '{key}' must be a string or a list of strings, got {value!r}"
    )


def _path_setting(data: dict[str, Any], key: str, default: str) -> Path:
    value = data.get(key)
    if value is None:
        return Path(default)
    if not isinstance(value, str) or not value:
        raise ProfileError(f"Profile '{key}' must be a non-empty path string, got {value!r}")
    return Path(value)


def request_from_profile(
    profile_data: dict[str, Any],
    *,
    cli_overrides: dict[str, Any] | None = None,
    registry: DimensionRegistry = REGISTRY,
) -> SelectionRequest:
    """Build a SelectionRequest from a parsed profile plus CLI overrides.

    Non-empty CLI ``types``/``methods`` replace the profile's lists.  CLI
    ``parameters`` replace the profile's filter for each dimension they
    name and leave the others in place.  Counts, ``debug``, ``timeout``
    and ``work_dir`` from the CLI win whenever they are not None.

    Raises:
        ProfileError: If a profile setting has the wrong shape.
        SelectionError: If a filter token is invalid.
    """
    cli = cli_overrides or {}

    types = split_list(cli.get("types")) or _list_setting(profile_data, "types")
    methods = split_list(cli.get("methods")) or _list_setting(profile_data, "methods")

    filters = parse_dimension_filters(
        profile_filter_tokens(profile_data.get("parameters")), registry
    )
    filters.update(parse_dimension_filters(cli.get("parameters"), registry))

    run_config = RunConfig(
        target_count=(
            cli["target_count"]
            if cli.get("target_count") is not None
            else _int_setting(profile_data, "target_count", 1)
        ),
        warmup_count=(
            cli["warmup_count"]
            if cli.get("warmup_count") is not None
            else _int_setting(profile_data, "warmup_count", 0)
        ),
        debug=_bool_setting(profile_data, "debug", False) or bool(cli.get("debug")),
        timeout=(
            cli["timeout"]
            if cli.get("timeout") is not None
            else _int_setting(profile_data, "timeout", 600)
        ),
        work_dir=(
            Path(cli["work_dir"])
            if cli.get("work_dir")
            else _path_setting(profile_data, "work_dir", "scenarios")
        ),
    )

    return SelectionRequest(
        type_substrings=types,
        method_substrings=methods,
        dimension_filters=filters,
        run_config=run_config,
        registry=registry,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation error."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_run_config(config: RunConfig) -> list[ValidationError]:
    """Validate a run configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if config.target_count < 1:
        errors.append(
            ValidationError(
                field="target_count",
                message=f"Target count must be at least 1 (got {config.target_count}).",
            )
        )

    if config.warmup_count < 0:
        errors.append(
            ValidationError(
                field="warmup_count",
                message=f"Warm-up count cannot be negative (got {config.warmup_count}).",
            )
        )

    if config.timeout <= 0:
        errors.append(
            ValidationError(
                field="timeout",
                message=f"Timeout must be positive (got {config.timeout}).",
            )
        )

    if not config.work_dir.exists():
        errors.append(
            ValidationError(
                field="work_dir",
                message=f"Scenario directory does not exist: {config.work_dir}",
                severity="warning",
            )
        )

    return errors

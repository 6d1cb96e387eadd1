"""YAML configuration for mailtag, validated against config_schema.AppConfig.

The active config is cached in-process and re-read when the file's mtime
moves forward, so the custom tag list can be edited while the tagger runs.
Everything here runs on the event loop thread; there is no locking.

Usage:
    from mailtag.config import get_config, reload_config_if_changed

    config = get_config()

    if reload_config_if_changed():
        config = get_config()
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mailtag.config_schema import CURRENT_SCHEMA_VERSION, AppConfig
from mailtag.core.errors import ConfigLoadError, ConfigValidationError
from mailtag.core.logging import get_logger

logger = get_logger(__name__)

CONFIG_PATH_ENV = "MAILTAG_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path("config/config.yaml")

# Pydantic error types that get a plainer wording than the default message
_ERROR_WORDING = {
    "missing": "Missing required field '{field}'",
    "string_type": "Field '{field}' must be a string",
    "int_type": "Field '{field}' must be an integer",
    "int_parsing": "Field '{field}' must be an integer",
    "bool_type": "Field '{field}' must be true or false",
    "bool_parsing": "Field '{field}' must be true or false",
    "list_type": "Field '{field}' must be a list",
}


@dataclass
class _ConfigState:
    """The cached config and the file it came from."""

    config: AppConfig | None = None
    path: Path | None = None
    mtime: float = 0.0


_state = _ConfigState()


def get_config_path() -> Path:
    """Return the config path from MAILTAG_CONFIG_PATH, or the default."""
    env_path = os.environ.get(CONFIG_PATH_ENV)
    return Path(env_path) if env_path else DEFAULT_CONFIG_PATH


def _describe_validation_error(error: ValidationError) -> str:
    """One indented line per field problem, e.g. "  - Field 'tags.store_path': ..."."""
    lines = []
    for err in error.errors():
        field = ".".join(str(loc) for loc in err["loc"]) or "<root>"
        template = _ERROR_WORDING.get(err["type"], "Field '{field}': {msg}")
        lines.append("  - " + template.format(field=field, msg=err["msg"]))
    return "\n".join(lines)


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    """Read a YAML file that must hold a mapping. An empty file is an empty mapping.

    Raises:
        ConfigLoadError: If the file is missing, unparseable or not a mapping
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigLoadError(
            f"Configuration file not found: {path}\n"
            f"Create it by copying config/config.yaml.example to {path}"
        ) from e
    except OSError as e:
        raise ConfigLoadError(f"Cannot read configuration file {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse YAML in {path}:\n{e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"Configuration file must be a YAML mapping, got {type(data).__name__}"
        )
    return data


def _build_config(data: dict[str, Any], path: Path) -> AppConfig:
    """Validate raw config data, including the schema version guard.

    Raises:
        ConfigValidationError: If validation fails
    """
    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(
            f"Configuration validation failed for {path}:\n{_describe_validation_error(e)}"
        ) from e

    if config.schema_version > CURRENT_SCHEMA_VERSION:
        raise ConfigValidationError(
            f"Config schema version {config.schema_version} is newer than "
            f"supported version {CURRENT_SCHEMA_VERSION}. "
            "Please upgrade mailtag or downgrade the config."
        )
    return config


def load_config(path: Path | None = None) -> AppConfig:
    """Load and validate a config file, bypassing the cache.

    Args:
        path: Config file; defaults to get_config_path()

    Raises:
        ConfigLoadError: If the file cannot be read or parsed
        ConfigValidationError: If the contents fail validation
    """
    config_path = path or get_config_path()
    logger.debug("Loading configuration", path=str(config_path))

    config = _build_config(_read_yaml_mapping(config_path), config_path)

    custom_tags = config.tags.custom_tags
    logger.info(
        "Configuration loaded successfully",
        path=str(config_path),
        schema_version=config.schema_version,
        custom_tags_count=len(custom_tags) if custom_tags is not None else None,
    )
    return config


def get_config() -> AppConfig:
    """Return the cached config, loading it on first use.

    Raises:
        ConfigLoadError: If the file cannot be read or parsed
        ConfigValidationError: If the contents fail validation
    """
    if _state.config is None:
        path = get_config_path()
        config = load_config(path)
        _state.config, _state.path, _state.mtime = config, path, path.stat().st_mtime
    return _state.config


def reload_config_if_changed() -> bool:
    """Reload the cached config if its file has a newer mtime.

    An edit that fails to load or validate is logged and the previous
    config stays active. That mtime is remembered, so the broken file is
    only retried once it changes again.

    Returns:
        True if a new config was loaded
    """
    path = _state.path
    if path is None:
        return False

    try:
        mtime = path.stat().st_mtime
    except OSError as e:
        logger.warning("Failed to check config file mtime", path=str(path), error=str(e))
        return False

    if mtime <= _state.mtime:
        return False

    logger.info("Configuration file changed, attempting reload", path=str(path))
    _state.mtime = mtime

    try:
        config = load_config(path)
    except (ConfigLoadError, ConfigValidationError) as e:
        logger.warning(
            "Configuration reload failed, keeping previous config",
            path=str(path),
            error=str(e),
        )
        return False

    _state.config = config
    logger.info(
        "Configuration reloaded successfully",
        path=str(path),
        schema_version=config.schema_version,
    )
    return True


def validate_config_file(path: Path | None = None) -> tuple[bool, str]:
    """Check a config file without touching the cached config.

    Returns:
        (is_valid, message): a summary of the config, or the load or validation error
    """
    try:
        config = load_config(path or get_config_path())
    except ConfigLoadError as e:
        return False, f"Load error: {e}"
    except ConfigValidationError as e:
        return False, f"Validation error: {e}"

    custom_tags = config.tags.custom_tags
    if custom_tags is None:
        custom_desc = "default custom tags"
    else:
        custom_desc = f"{len(custom_tags)} custom tags"

    summary = [
        f"Configuration valid (schema version {config.schema_version})",
        f"  - {custom_desc}",
        f"  - prompt limit {config.prompt.context_char_limit} characters",
        f"  - tag store {config.tags.store_path}",
    ]
    return True, "\n".join(summary)


def reset_config() -> None:
    """Forget the cached config. Used by tests."""
    global _state
    _state = _ConfigState()

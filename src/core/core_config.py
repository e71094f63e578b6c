"""Configuration loading for Music Library Bridge."""

from __future__ import annotations

import logging
import os
import pathlib
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from core.exceptions import ConfigurationError
from core.models.config_models import AppConfig

ConfigValue = dict[str, Any] | list[Any] | str | int | float | bool | None

# Handlers are attached later by the main logger setup
logger = logging.getLogger("config")
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
logger.setLevel(logging.INFO)

MAX_CONFIG_SIZE = 1024 * 1024

__all__ = ["ConfigurationError", "format_pydantic_errors", "load_config", "resolve_env_vars"]


def resolve_env_vars(config: ConfigValue) -> ConfigValue:
    """Recursively resolve ``${VAR}``, ``$VAR`` and ``~`` in string values.

    A value that is exactly ``${VAR}`` becomes the variable's value, or an
    empty string when it is unset.
    """
    if isinstance(config, dict):
        return {str(k): resolve_env_vars(v) for k, v in config.items()}
    if isinstance(config, list):
        return [resolve_env_vars(item) for item in config]
    if isinstance(config, str):
        if config.startswith("${") and config.endswith("}"):
            return os.getenv(config[2:-1], "")
        if "~" in config or "$" in config:
            result = os.path.expandvars(config) if "$" in config else config
            if "~" in result:
                result = str(pathlib.Path(result).expanduser())
            return result
    return config


def _validate_config_path(path: str) -> pathlib.Path:
    """Resolve the config path and check it is a readable YAML file in an allowed directory.

    Raises:
        FileNotFoundError: If the path does not exist or is not a file.
        ValueError: If the path is outside allowed directories or has a wrong extension.
        PermissionError: If the file is not readable.

    """
    try:
        resolved_path = pathlib.Path(path).resolve(strict=True)
    except FileNotFoundError as e:
        msg = f"Config file not found at the specified path: {path}"
        raise FileNotFoundError(msg) from e

    if not resolved_path.is_file():
        msg = f"Config path does not point to a file: {resolved_path}"
        raise FileNotFoundError(msg)

    allowed_dirs = [
        pathlib.Path.cwd().resolve(),
        (pathlib.Path.home() / ".config").resolve(),
    ]
    if not any(resolved_path.is_relative_to(allowed_dir) for allowed_dir in allowed_dirs):
        allowed_paths_str = ", ".join(f'"{d}"' for d in allowed_dirs)
        msg = f"Access to {resolved_path} is not allowed. Config must be in one of: {allowed_paths_str}"
        raise ValueError(msg)

    if not os.access(resolved_path, os.R_OK):
        msg = f"No read permission for config file: {resolved_path}"
        raise PermissionError(msg)

    if resolved_path.suffix.lower() not in (".yaml", ".yml"):
        msg = "Configuration file must have a .yaml or .yml extension"
        raise ValueError(msg)

    return resolved_path


def _read_and_parse_config(path: pathlib.Path) -> ConfigValue:
    """Read and parse the YAML file, refusing files over ``MAX_CONFIG_SIZE``."""
    if path.stat().st_size > MAX_CONFIG_SIZE:
        msg = f"Config file {path} is too large (max {MAX_CONFIG_SIZE} bytes)"
        raise ValueError(msg)

    logger.info("Loading config from: %s", path)
    parsed: ConfigValue = yaml.safe_load(path.read_text(encoding="utf-8"))
    return parsed


def _validate_config_data_type(config_data: ConfigValue) -> dict[str, Any]:
    """Return the parsed YAML as a dict; an empty file is an empty dict.

    Raises:
        TypeError: If the top level is not a mapping

    """
    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        msg = "Configuration data is not a dictionary after parsing."
        raise TypeError(msg)
    return config_data


def load_config(config_path: str) -> AppConfig:
    """Load the YAML configuration, resolve environment variables, and validate it.

    Args:
        config_path: Path to the configuration YAML file.

    Returns:
        Validated AppConfig model.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the configuration is invalid or the path is not allowed.
        PermissionError: If the config file cannot be read.
        yaml.YAMLError: If the YAML cannot be parsed.
        RuntimeError: For unexpected errors during loading.

    """
    env_loaded = load_dotenv()
    logger.info(".env file %s", "found and loaded" if env_loaded else "not found, using system environment variables")

    try:
        validated_path = _validate_config_path(config_path)
        config_data = resolve_env_vars(_read_and_parse_config(validated_path))
        logger.debug("[CONFIG] Resolved config:\n%s", yaml.dump(config_data))
        config_dict = _validate_config_data_type(config_data)

        try:
            config_model = AppConfig(**config_dict)
        except ValidationError as e:
            msg = f"Configuration validation failed:\n{format_pydantic_errors(e)}"
            raise ValueError(msg) from e

        logger.info("Configuration successfully loaded and validated.")
        return config_model

    except (FileNotFoundError, PermissionError, ValueError, yaml.YAMLError) as e:
        logger.critical("Configuration loading failed: %s", e)
        raise
    except Exception as e:
        logger.critical("An unexpected error occurred during config loading: %s", e, exc_info=True)
        msg = f"An unexpected error occurred during config loading: {e}"
        raise RuntimeError(msg) from e


def format_pydantic_errors(error: ValidationError) -> str:
    """Format Pydantic validation errors one field per line."""
    error_messages: list[str] = []

    for err in error.errors():
        loc_path = ".".join(str(loc) for loc in err["loc"])
        error_type = err["type"]

        if error_type == "missing":
            error_messages.append(f"{loc_path}: Missing required field")
        elif error_type in ("type_error", "value_error", "assertion_error"):
            error_messages.append(f"{loc_path}: {err['msg']}")
        else:
            error_messages.append(f"{loc_path}: {err['msg']} (type: {error_type})")

    return "\n".join(error_messages)

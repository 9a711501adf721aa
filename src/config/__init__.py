"""
Configuration Module for the Kiosk Content Service.

This module loads the service's own settings from config.yml: where the
schemas live, debounce and retry timing, which content files to watch and
how to log. (The content files themselves are loaded by the content package.)

Usage:
    >>> from config import load_config, get_content_settings
    >>> config = load_config()
    >>> settings = get_content_settings(config)
    >>> settings["watch_delay"]
    1.0
"""
import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional

from .logging_setup import configure_logging, get_log_level


logger = logging.getLogger(__name__)

DEFAULT_WATCH_DELAY = 1.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from config.yml file.

    Args:
        config_path: Path to config.yml file. If None, looks in current directory
                    and parent directories.

    Returns:
        Dictionary containing configuration settings. Falls back to
        get_default_config() when the file is missing, unparsable or not a
        mapping.

    Example:
        >>> config = load_config()
        >>> watch_entries = config.get("content", {}).get("watch", [])
    """
    if config_path is None:
        # Try to find config.yml in current directory or parent directories
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            candidate = parent / "config.yml"
            if candidate.exists():
                config_path = str(candidate)
                break

        # If still not found, check the project root (where this file is located)
        if config_path is None:
            project_root = Path(__file__).parent.parent.parent
            candidate = project_root / "config.yml"
            if candidate.exists():
                config_path = str(candidate)

    if config_path is None:
        logger.warning("config.yml not found, using default configuration")
        return get_default_config()

    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
            if not isinstance(config, dict):
                logger.warning("Configuration root must be a mapping, using default configuration")
                return get_default_config()
            config["config_path"] = str(Path(config_path).resolve())
            logger.info(f"Loaded configuration from {config_path}")
            return config
    except FileNotFoundError:
        logger.warning(f"Configuration file not found: {config_path}")
        return get_default_config()
    except yaml.YAMLError as e:
        logger.error(f"Error parsing configuration file: {e}")
        return get_default_config()


def get_default_config() -> Dict[str, Any]:
    """Return default configuration when config.yml is not available.

    Returns:
        Dictionary with default configuration values
    """
    return {
        "content": {
            "schemas_directory": None,
            "watch_delay": DEFAULT_WATCH_DELAY,
            "max_retries": DEFAULT_MAX_RETRIES,
            "retry_delay": DEFAULT_RETRY_DELAY,
            "enable_caching": True,
            "use_polling": False,
            "watch": []
        },
        "logging": {
            "level": "INFO",
            "file": "kiosk.log"
        }
    }


def _non_negative_number(section: Dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        logger.warning(f"Invalid content.{key} {value!r}; falling back to {default}")
        return default
    return float(value)


def _non_negative_int(section: Dict[str, Any], key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        logger.warning(f"Invalid content.{key} {value!r}; falling back to {default}")
        return default
    return value


def _resolve_relative(path: str, config: Dict[str, Any]) -> str:
    """Resolve a path from config.yml relative to the file's directory."""
    expanded = os.path.expanduser(path)
    if os.path.isabs(expanded):
        return expanded
    base = config.get("config_path")
    if base:
        return str(Path(base).parent / expanded)
    return expanded


def _get_watch_entries(section: Dict[str, Any], config: Dict[str, Any]) -> List[Dict[str, Any]]:
    entries = section.get("watch") or []
    if not isinstance(entries, list):
        logger.warning(f"Invalid content.watch {entries!r}; expected a list")
        return []

    watch = []
    for entry in entries:
        if isinstance(entry, str):
            entry = {"path": entry}
        if not isinstance(entry, dict) or not isinstance(entry.get("path"), str) or not entry["path"].strip():
            logger.warning(f"Skipping invalid content.watch entry: {entry!r}")
            continue
        schema_key = entry.get("schema_key")
        if schema_key is not None and not isinstance(schema_key, str):
            logger.warning(f"Ignoring non-string schema_key for {entry['path']}: {schema_key!r}")
            schema_key = None
        watch.append({
            "path": _resolve_relative(entry["path"].strip(), config),
            "schema_key": schema_key
        })
    return watch


def get_content_settings(config: Dict[str, Any]) -> Dict[str, Any]:
    """Return validated content service settings from config.

    Invalid values are logged and replaced by their defaults, so a typo in
    config.yml never prevents the display from starting.

    Args:
        config: Configuration dictionary from load_config()

    Returns:
        Dictionary with keys schemas_directory, watch_delay, max_retries,
        retry_delay, enable_caching, use_polling and watch (list of
        {"path", "schema_key"} dicts with paths resolved against config.yml)
    """
    section = config.get("content") or {}
    if not isinstance(section, dict):
        logger.warning("Configuration 'content' section must be a mapping, using defaults")
        section = {}

    schemas_directory = section.get("schemas_directory")
    if schemas_directory is not None:
        if isinstance(schemas_directory, str) and schemas_directory.strip():
            schemas_directory = _resolve_relative(schemas_directory.strip(), config)
        else:
            logger.warning(f"Invalid content.schemas_directory {schemas_directory!r}; using bundled schemas")
            schemas_directory = None

    return {
        "schemas_directory": schemas_directory,
        "watch_delay": _non_negative_number(section, "watch_delay", DEFAULT_WATCH_DELAY),
        "max_retries": _non_negative_int(section, "max_retries", DEFAULT_MAX_RETRIES),
        "retry_delay": _non_negative_number(section, "retry_delay", DEFAULT_RETRY_DELAY),
        "enable_caching": bool(section.get("enable_caching", True)),
        "use_polling": bool(section.get("use_polling", False)),
        "watch": _get_watch_entries(section, config)
    }


__all__ = [
    "configure_logging",
    "get_content_settings",
    "get_default_config",
    "get_log_level",
    "load_config",
]

"""
Logging configuration for the kiosk content service.

Installs a rotating file handler (10MB, 3 backups) and a stdout handler on the
root logger. Every module logs through ``logging.getLogger(__name__)`` and
inherits these handlers.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_BACKUP_COUNT = 3

logger = logging.getLogger(__name__)


def _logging_section(config: Dict[str, Any]) -> Dict[str, Any]:
    section = config.get("logging") or {}
    return section if isinstance(section, dict) else {}


def get_log_level(config: Dict[str, Any], debug: bool = False) -> int:
    """Return the numeric log level from config, with INFO fallback."""
    if debug:
        return logging.DEBUG

    level_name = _logging_section(config).get("level", "INFO")
    if not isinstance(level_name, str):
        return logging.INFO

    # Accept the "warn" spelling used by the display's system-config
    level_name = level_name.strip().upper()
    if level_name == "WARN":
        level_name = "WARNING"

    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        logger.warning(f"Unknown log level '{level_name}'; falling back to INFO")
        return logging.INFO
    return level


def configure_logging(config: Dict[str, Any], debug: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """Configure the root logger from the ``logging`` section of config.

    Args:
        config: Configuration dictionary from load_config()
        debug: Force DEBUG level regardless of config
        log_file: Override for logging.file (empty string disables the file handler)

    Returns:
        The configured root logger
    """
    log_level = get_log_level(config, debug)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear any existing handlers to avoid duplicates on re-configuration
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    if log_file is None:
        log_file = _logging_section(config).get("file", "kiosk.log")

    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    return root_logger

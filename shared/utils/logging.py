"""Logging configuration for the kAI services."""

import logging
import logging.config
import sys
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

# Loggers owned by this project
SERVICE_LOGGERS = ("kai_router", "kai_orchestrator", "shared")

# Third-party loggers that log every request at INFO
QUIET_LOGGERS = ("httpx", "httpcore")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _ensure_log_dirs(config: Dict[str, Any]) -> None:
    """Create parent directories of file handlers declared in a dictConfig."""
    for handler in (config.get("handlers") or {}).values():
        filename = handler.get("filename") if isinstance(handler, dict) else None
        if filename:
            Path(filename).parent.mkdir(parents=True, exist_ok=True)


def load_logging_config(config_file: str) -> Optional[Dict[str, Any]]:
    """
    Read a YAML dictConfig.

    Returns:
        The config mapping, or None if the file is missing or empty
    """
    path = Path(config_file)
    if not path.exists():
        return None
    with open(path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)
    return config or None


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    config_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up logging for the API process.

    A YAML config file wins when it exists; otherwise the root logger gets a
    console handler (and a file handler if ``log_file`` is set) at
    ``log_level``.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        config_file: Optional path to YAML logging config file

    Returns:
        Configured logger instance
    """
    # Load config from YAML if provided
    config = load_logging_config(config_file) if config_file else None
    if config is not None:
        _ensure_log_dirs(config)
        logging.config.dictConfig(config)
        return logging.getLogger(__name__)

    # Default configuration
    level = getattr(logging, log_level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler if specified
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in SERVICE_LOGGERS:
        logging.getLogger(name).setLevel(level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if config_file:
        root_logger.warning(f"Logging config {config_file} not found, using defaults")

    return root_logger

# -*- coding: utf-8 -*-
"""
Centralized logging configuration for docgraph

Each entry point calls setup_logging() once, then modules use
logger = logging.getLogger(__name__).

Examples:
    # In the CLI or an application entry point
    from docgraph.utils.logger import setup_logging
    setup_logging(level="DEBUG", log_file="logs/build.log")

    # In any module
    import logging
    logger = logging.getLogger(__name__)
    logger.info("This will use the configured format")

"""
# Standard library
import logging
import sys
from pathlib import Path
from typing import Optional, Union

# Global flag to prevent duplicate configuration
_logging_configured = False

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _resolve_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    format_string: str = DEFAULT_FORMAT,
    force: bool = False
) -> None:
    """
    Configure logging for the application.

    Sets up console output and optional file output with consistent formatting.
    Safe to call multiple times (only the first call configures unless
    force=True).

    Args:
        level: Logging level, as int or name (default: logging.INFO)
        log_file: Optional path to log file, parent directories are created
        format_string: Log message format
        force: Reconfigure even if logging was already set up
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    level = _resolve_level(level)
    formatter = logging.Formatter(format_string)

    handlers = []

    # Console handler (always included)
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    # File handler (optional)
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    _logging_configured = True

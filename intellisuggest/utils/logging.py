"""Logging configuration."""

import logging
from pathlib import Path
from logging.handlers import RotatingFileHandler
from typing import Optional


def setup_logging(
    debug: bool = False,
    log_file: Optional[Path] = None
) -> Path:
    """
    Configure logging for IntelliSuggest.
    
    Records go to a rotating log file only. The shell owns the terminal,
    so nothing is written to stdout or stderr, not even warnings about
    failed suggestion requests.
    
    Args:
        debug: Enable debug logging
        log_file: Optional log file path (defaults to ~/.intellisuggest/logs/suggest.log)
        
    Returns:
        Path of the log file in use
    """
    log_level = logging.DEBUG if debug else logging.INFO
    
    if log_file is None:
        log_dir = Path.home() / ".intellisuggest" / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = log_dir / "suggest.log"
    else:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
    
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    
    # File handler (rotating)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"
    ))
    
    root_logger.addHandler(file_handler)
    
    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized (level={logging.getLevelName(log_level)})")
    logger.debug(f"Log file: {log_file}")
    return log_file

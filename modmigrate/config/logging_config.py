"""
Logging configuration.

Sets up the 'modmigrate' logger tree from the logging section of the
configuration. Records carry the owning module's name as context so a
shared log file can hold the output of several modules' migrations.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Any, Optional

LOGGER_NAME = 'modmigrate'

CONSOLE_FORMAT = '%(asctime)s - [%(module_context)s] - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s.%(msecs)03d - [%(module_context)s] - %(name)s - %(levelname)s - %(message)s'


class SafeFormatter(logging.Formatter):
    """Formatter that provides default values for missing context fields."""
    
    def format(self, record):
        if not hasattr(record, 'module_context'):
            record.module_context = 'app'
        return super().format(record)


def setup_logging(config: Dict[str, Any], stream=None) -> logging.Logger:
    """
    Setup migration logging based on configuration.
    
    Args:
        config: Full configuration dictionary (uses the 'logging' section)
        stream: Console stream (default: stderr)
        
    Returns:
        Configured 'modmigrate' logger
    """
    logging_config = config.get('logging', {}) or {}
    log_level = str(logging_config.get('level', 'INFO')).upper()
    
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, log_level))
    
    # Remove any existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    
    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(SafeFormatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
    console_handler.setLevel(getattr(logging, log_level))
    logger.addHandler(console_handler)
    
    log_file = logging_config.get('log_file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=int(logging_config.get('max_log_size_mb', 10)) * 1024 * 1024,
            backupCount=int(logging_config.get('backup_count', 5))
        )
        file_handler.setFormatter(SafeFormatter(FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)
    
    # Prevent propagation to root logger to avoid duplicate messages
    logger.propagate = False
    
    return logger


class MigrationLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds the module name to log records.
    
    Also provides a helper for timing output of ledger operations.
    """
    
    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})
    
    def process(self, msg, kwargs):
        """Add module context to log records."""
        if 'extra' not in kwargs:
            kwargs['extra'] = {}
        kwargs['extra']['module_context'] = self.extra.get('module', 'app')
        return msg, kwargs
    
    def performance(self, metric_name: str, value: float, unit: str = '') -> None:
        """Log a performance metric at DEBUG level."""
        if self.isEnabledFor(logging.DEBUG):
            self.debug(f"Performance metric - {metric_name}: {value:.4f}{unit}")

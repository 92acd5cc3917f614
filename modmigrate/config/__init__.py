"""
Configuration management.

- Layered settings (defaults, YAML file, environment) with schema validation
- Logging configuration
"""

from .settings import (
    ConfigManager, load_config, DEFAULT_CONFIG, CONFIG_SCHEMA, BATCH_POLICIES
)
from .logging_config import setup_logging, MigrationLoggerAdapter, SafeFormatter

__all__ = [
    'ConfigManager',
    'load_config',
    'DEFAULT_CONFIG',
    'CONFIG_SCHEMA',
    'BATCH_POLICIES',
    'setup_logging',
    'MigrationLoggerAdapter',
    'SafeFormatter'
]

"""Configuration management for modmigrate.

This module provides:
- Built-in defaults merged with an optional YAML configuration file
- Environment variable overrides
- Configuration schema validation
- Dot-path lookup of individual settings
"""

import os
import yaml
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union
from copy import deepcopy
from jsonschema import validate, ValidationError

from ..discovery import DEFAULT_NAME_REGEX
from ..models.module import ModuleInfo

logger = logging.getLogger(__name__)


BATCH_POLICIES = ['one-batch-per-unit', 'one-batch-per-call']

DEFAULT_CONFIG: Dict[str, Any] = {
    'module': {
        'name': 'app',
        'path': '.',
    },
    'paths': {
        'migration': 'Database/Migrations',
    },
    'database': {
        'type': 'sqlite',
        'database': 'modmigrate.db',
        'url': None,
        'table': 'migrations',
        'engine_args': {},
    },
    'migrations': {
        'batch_policy': 'one-batch-per-unit',
        'pattern': '*_*.py',
        'name_regex': DEFAULT_NAME_REGEX,
    },
    'logging': {
        'level': 'INFO',
        'log_file': None,
        'max_log_size_mb': 10,
        'backup_count': 5,
    },
}

# Configuration schema for validation
CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["module", "paths", "database", "migrations"],
    "properties": {
        "module": {
            "type": "object",
            "required": ["name", "path"],
            "properties": {
                "name": {"type": "string", "minLength": 1},
                "path": {"type": "string", "minLength": 1}
            }
        },
        "paths": {
            "type": "object",
            "required": ["migration"],
            "properties": {
                "migration": {"type": "string", "minLength": 1}
            }
        },
        "database": {
            "type": "object",
            "required": ["type", "table"],
            "properties": {
                "type": {"type": "string", "enum": ["sqlite", "duckdb", "postgresql"]},
                "database": {"type": ["string", "null"]},
                "url": {"type": ["string", "null"]},
                "table": {"type": "string", "pattern": "^[A-Za-z_][A-Za-z0-9_]*$"},
                "engine_args": {"type": "object"}
            }
        },
        "migrations": {
            "type": "object",
            "properties": {
                "batch_policy": {"type": "string", "enum": BATCH_POLICIES},
                "pattern": {"type": "string", "minLength": 1},
                "name_regex": {"type": "string", "minLength": 1}
            }
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
                "log_file": {"type": ["string", "null"]},
                "max_log_size_mb": {"type": "integer", "minimum": 1},
                "backup_count": {"type": "integer", "minimum": 0}
            }
        }
    }
}


class ConfigManager:
    """Manages layered configuration: defaults, YAML file, environment."""
    
    # Environment variable mappings
    ENV_MAPPINGS = {
        'database.url': 'MODMIGRATE_DB_URL',
        'paths.migration': 'MODMIGRATE_MIGRATION_PATH',
        'logging.level': 'MODMIGRATE_LOG_LEVEL',
    }
    
    def __init__(self, config_path: Optional[Union[str, Path]] = None,
                 overrides: Optional[Dict[str, Any]] = None):
        """Initialize config manager.
        
        Args:
            config_path: Optional path to a YAML configuration file
            overrides: Optional dictionary merged last (e.g. from CLI flags)
        """
        self.config_path = Path(config_path) if config_path else None
        self.merged_config = deepcopy(DEFAULT_CONFIG)
        
        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Config not found: {config_path}")
            file_config = self._load_yaml_file(self.config_path)
            self.merged_config = self._deep_merge(self.merged_config, file_config)
        
        self._apply_env_overrides()
        
        if overrides:
            self.merged_config = self._deep_merge(self.merged_config, overrides)
    
    def _load_yaml_file(self, path: Path) -> Dict[str, Any]:
        """Safely load YAML file.
        
        Args:
            path: Path to YAML file
            
        Returns:
            Loaded configuration dictionary
        """
        try:
            with open(path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML file {path}: {e}")
            raise
        
        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ValueError(f"Config file must contain a dictionary, got {type(config)}")
        
        return config
    
    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = deepcopy(base)
        
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = deepcopy(value)
        
        return result
    
    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        for config_path, env_var in self.ENV_MAPPINGS.items():
            env_value = os.environ.get(env_var)
            if env_value:
                self.set(config_path, env_value)
                logger.debug(f"Applied environment override for {config_path}")
    
    def set(self, path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = path.split('.')
        current = self.merged_config
        
        for key in keys[:-1]:
            if not isinstance(current.get(key), dict):
                current[key] = {}
            current = current[key]
        
        current[keys[-1]] = value
    
    def get(self, path: str, default: Any = None) -> Any:
        """Get a configuration value using dot notation.
        
        Args:
            path: Dot-separated path (e.g., 'database.table')
            default: Default value if path not found
            
        Returns:
            Configuration value or default
        """
        current = self.merged_config
        
        for key in path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        
        return current
    
    def validate(self, schema: Optional[Dict[str, Any]] = None) -> None:
        """Validate configuration against schema.
        
        Raises:
            ValidationError: If configuration is invalid
        """
        schema = schema or CONFIG_SCHEMA
        
        try:
            validate(self.merged_config, schema)
            logger.debug("Configuration validation successful")
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e.message}")
            logger.error(f"Failed at path: {'.'.join(str(p) for p in e.path)}")
            raise
    
    def get_config(self) -> Dict[str, Any]:
        """Get a copy of the merged configuration."""
        return deepcopy(self.merged_config)
    
    @property
    def module(self) -> ModuleInfo:
        """The module whose migrations are managed."""
        return ModuleInfo(name=self.get('module.name', 'app'), path=self.get('module.path', '.'))
    
    @property
    def migration_path(self) -> Path:
        """Migration directory: paths.migration resolved against module.path."""
        return self.module.get_extra_path(self.get('paths.migration'))
    
    @property
    def table_name(self) -> str:
        """Ledger table name."""
        return self.get('database.table', 'migrations')


def load_config(config_path: Optional[Union[str, Path]] = None,
                overrides: Optional[Dict[str, Any]] = None,
                validate_schema: bool = True) -> ConfigManager:
    """Convenience function to load and validate configuration.
    
    Args:
        config_path: Optional path to a YAML configuration file
        overrides: Optional dictionary merged over file and environment
        validate_schema: Whether to validate against schema
        
    Returns:
        Loaded ConfigManager
    """
    manager = ConfigManager(config_path, overrides)
    
    if validate_schema:
        manager.validate()
    
    return manager

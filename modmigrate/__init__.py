"""
modmigrate: versioned, ordered schema migrations for application modules.

Key components:
- Discovery of timestamp-prefixed migration files
- Explicit registry resolving migration names to implementations
- Ledger of applied migrations on SQLAlchemy Core
- Migrator orchestrating migrate / rollback / reset / refresh
- Swappable batch numbering policies
"""

__version__ = "1.0.0"

from .exceptions import MigrationError, MigrationRunError, ResolutionError, StoreError
from .migration import Migration
from .models import LedgerEntry, MigrationState, ModuleInfo
from .batching import BatchPolicy, OneBatchPerCall, OneBatchPerUnit, get_batch_policy
from .discovery import FilesystemLister, MigrationDiscovery, ModuleLoader
from .resolver import MigrationRegistry, Resolver, derive_name, studly_case
from .core import EngineConfig, LedgerTable, TableQuery
from .repositories import LedgerRepository
from .migrator import Migrator
from .config import ConfigManager, load_config, setup_logging
from .factory import MigratorFactory, create_migrator
from .generator import create_migration_file

__all__ = [
    # Errors
    "MigrationError",
    "MigrationRunError",
    "ResolutionError",
    "StoreError",
    
    # Units and models
    "Migration",
    "LedgerEntry",
    "MigrationState",
    "ModuleInfo",
    
    # Engine components
    "BatchPolicy",
    "OneBatchPerCall",
    "OneBatchPerUnit",
    "get_batch_policy",
    "FilesystemLister",
    "MigrationDiscovery",
    "ModuleLoader",
    "MigrationRegistry",
    "Resolver",
    "derive_name",
    "studly_case",
    "EngineConfig",
    "LedgerTable",
    "TableQuery",
    "LedgerRepository",
    "Migrator",
    
    # Configuration and wiring
    "ConfigManager",
    "load_config",
    "setup_logging",
    "MigratorFactory",
    "create_migrator",
    "create_migration_file",
]

"""
Factory assembling a Migrator from configuration
"""

from typing import Optional
import logging

from .batching import get_batch_policy
from .config.settings import ConfigManager
from .core.engine import EngineConfig
from .core.table import LedgerTable
from .discovery import DEFAULT_NAME_REGEX, FilesystemLister, MigrationDiscovery, ModuleLoader
from .migrator import Migrator
from .repositories.ledger_repository import LedgerRepository
from .resolver import MigrationRegistry

logger = logging.getLogger(__name__)


class MigratorFactory:
    """Builds migrators and their collaborators from a ConfigManager"""
    
    @staticmethod
    def create_engine(config: ConfigManager):
        """Create the SQLAlchemy engine holding the ledger"""
        db_type = config.get('database.type', 'sqlite')
        return EngineConfig.get_engine(db_type, config.get('database', {}))
    
    @staticmethod
    def create_migrator(config: ConfigManager, engine=None,
                        registry: Optional[MigrationRegistry] = None,
                        lister=None, loader=None) -> Migrator:
        """
        Create a migrator from configuration
        
        Args:
            config: Loaded configuration
            engine: Existing SQLAlchemy engine (default: built from config)
            registry: Implementation registry (default: new, filled from files)
            lister: Directory lister (default: FilesystemLister)
            loader: Migration file loader (default: ModuleLoader)
            
        Returns:
            Migrator instance
        """
        engine = engine if engine is not None else MigratorFactory.create_engine(config)
        module_name = config.get('module.name', 'app')
        
        discovery = MigrationDiscovery(
            config.migration_path,
            lister=lister or FilesystemLister(),
            pattern=config.get('migrations.pattern', '*_*.py'),
            name_regex=config.get('migrations.name_regex', DEFAULT_NAME_REGEX),
        )
        ledger = LedgerRepository(LedgerTable(engine, config.table_name), module_name)
        policy = get_batch_policy(config.get('migrations.batch_policy', 'one-batch-per-unit'))
        
        logger.debug(
            f"Created migrator for module {module_name}: directory={discovery.directory}, "
            f"table={config.table_name}, policy={policy.name}"
        )
        return Migrator(
            discovery,
            ledger,
            registry=registry if registry is not None else MigrationRegistry(),
            loader=loader or ModuleLoader(),
            batch_policy=policy,
            module_name=module_name,
            unit_kwargs={'engine': engine},
        )


def create_migrator(config: Optional[ConfigManager] = None, **kwargs) -> Migrator:
    """Create a migrator from configuration (defaults when None)"""
    return MigratorFactory.create_migrator(config or ConfigManager(), **kwargs)

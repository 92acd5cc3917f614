"""
Migration engine.

The Migrator applies and reverses the migrations of one application module,
recording progress in the ledger so that running it again only does the
remaining work.

- migrate(): apply every discovered migration not yet in the ledger,
  newest first, logging each with the batch chosen by the batch policy
- rollback(): reverse the migrations recorded in the highest batch
- reset(): reverse every applied migration, oldest first
- refresh(): reset() then migrate()

Unit calls are not transactional across units. If a unit's up() or down()
raises, the run stops and MigrationRunError reports the failing migration
together with those already processed, which stay applied (or reversed)
and logged. ResolutionError and StoreError propagate unchanged.

Every ledger entry is expected to match a file in the migration directory,
but this is not checked while running; validate() reports mismatches on
request.
"""

import logging
import time
from typing import Any, Dict, List, Optional, Set

from .batching import BatchPolicy, OneBatchPerUnit
from .config.logging_config import MigrationLoggerAdapter
from .discovery import MigrationDiscovery
from .exceptions import MigrationRunError
from .models.ledger import LedgerEntry, MigrationState
from .repositories.ledger_repository import LedgerRepository
from .resolver import MigrationRegistry, Resolver, derive_name


class Migrator:
    """
    Orchestrates migrate / rollback / reset for one module.
    
    All collaborators are passed in, so any of them can be replaced by a
    test double.
    """
    
    def __init__(self, discovery: MigrationDiscovery, ledger: LedgerRepository,
                 registry: Optional[MigrationRegistry] = None, loader=None,
                 batch_policy: Optional[BatchPolicy] = None,
                 module_name: str = 'app', unit_kwargs: Optional[Dict[str, Any]] = None):
        """
        Initialize the migrator.
        
        Args:
            discovery: Lists migration identifiers
            ledger: Ledger repository
            registry: Implementation registry (default: empty registry)
            loader: Object with load(path) returning a module; when None,
                migration files are not loaded and the registry must
                already hold every implementation
            batch_policy: Batch assignment policy (default: one batch per unit)
            module_name: Owning module, used as logging context
            unit_kwargs: Constructor arguments for units registered from files
        """
        self.discovery = discovery
        self.ledger = ledger
        self.registry = registry if registry is not None else MigrationRegistry()
        self.resolver = Resolver(self.registry)
        self.loader = loader
        self.batch_policy = batch_policy or OneBatchPerUnit()
        self.module_name = module_name
        self.unit_kwargs = unit_kwargs or {}
        self.logger = MigrationLoggerAdapter(
            logging.getLogger('modmigrate.migrator'), {'module': module_name}
        )
    
    # Discovery and resolution
    
    def list_units(self) -> List[str]:
        """Available migration identifiers, ascending."""
        return self.discovery.list_units()
    
    def require_files(self, migrations: List[str]) -> None:
        """
        Load the files of the given migrations and register their classes.
        
        Loading is idempotent, so this is safe to call on every run.
        """
        if self.loader is None:
            return
        for migration in migrations:
            module = self.loader.load(self.discovery.path_for(migration))
            self.registry.register_module(module, **self.unit_kwargs)
    
    def resolve(self, migration: str) -> Any:
        """Build the unit object for a migration identifier."""
        return self.resolver.resolve(migration)
    
    def up(self, migration: str) -> None:
        """Run the forward step of a single migration (no ledger update)."""
        self.resolve(migration).up()
    
    def down(self, migration: str) -> None:
        """Run the backward step of a single migration (no ledger update)."""
        self.resolve(migration).down()
    
    # Ledger passthroughs
    
    def find(self, migration: str) -> List[LedgerEntry]:
        return self.ledger.find(migration)
    
    def ran(self) -> Set[str]:
        return self.ledger.ran()
    
    def last_batch(self) -> int:
        return self.ledger.last_batch()
    
    def next_batch(self) -> int:
        return self.ledger.next_batch()
    
    # Runs
    
    def _run_unit(self, migration: str, direction: str, processed: List[str]) -> float:
        """
        Resolve a migration and call up() or down() on it.
        
        Returns:
            Execution time in milliseconds
        """
        unit = self.resolve(migration)
        start_time = time.time()
        try:
            getattr(unit, direction)()
        except Exception as e:
            self.logger.error(f"Migration {migration} failed during {direction}(): {e}")
            self.logger.debug(f"Migration failure details: {e}", exc_info=True)
            raise MigrationRunError(migration, direction, processed, e) from e
        return (time.time() - start_time) * 1000
    
    def migrate(self) -> List[str]:
        """
        Apply all pending migrations.
        
        Pending migrations run newest first. Each is logged right after its
        up() succeeds, with the batch number given by the batch policy.
        
        Returns:
            Identifiers applied, in execution order
            
        Raises:
            MigrationRunError: If a unit's up() fails
        """
        migrations = list(reversed(self.list_units()))
        self.require_files(migrations)
        
        ran = self.ran()
        pending = [m for m in migrations if m not in ran]
        self.logger.debug(f"Found {len(pending)} pending migrations: {pending}")
        
        if not pending:
            self.logger.info("Nothing to migrate")
            return []
        
        self.batch_policy.start(self.ledger)
        migrated: List[str] = []
        
        for migration in pending:
            self.logger.info(f"Migrating: {migration}")
            elapsed = self._run_unit(migration, 'up', migrated)
            batch = self.batch_policy.batch_for(self.ledger, migration)
            self.ledger.log(migration, batch)
            migrated.append(migration)
            self.logger.info(f"Migrated: {migration} (batch {batch}, {elapsed:.1f}ms)")
        
        self.logger.info(f"Successfully applied {len(migrated)} migrations")
        return migrated
    
    def _revert(self, migrations: List[str]) -> List[str]:
        self.require_files(migrations)
        reverted: List[str] = []
        
        for migration in migrations:
            entries = self.ledger.find(migration)
            if not entries:
                continue
            self.logger.info(f"Rolling back: {migration}")
            elapsed = self._run_unit(migration, 'down', reverted)
            self.ledger.delete(entries)
            reverted.append(migration)
            self.logger.info(f"Rolled back: {migration} ({elapsed:.1f}ms)")
        
        return reverted
    
    def rollback(self) -> List[str]:
        """
        Reverse the migrations recorded in the last batch.
        
        Only discovered migrations are considered, in descending order.
        
        Returns:
            Identifiers rolled back, in execution order
            
        Raises:
            MigrationRunError: If a unit's down() fails
        """
        last_batch = self.last_batch()
        migrations = self.ledger.get_last(self.list_units())
        self.logger.debug(f"Batch {last_batch} holds {migrations}")
        
        if not migrations:
            if last_batch > 0:
                self.logger.warning(
                    f"Batch {last_batch} holds no discovered migrations; "
                    f"run validate() to list ledger entries without a file"
                )
            self.logger.info("Nothing to rollback")
            return []
        
        rolled_back = self._revert(migrations)
        self.logger.info(f"Rolled back {len(rolled_back)} migrations from batch {last_batch}")
        return rolled_back
    
    def reset(self) -> List[str]:
        """
        Reverse every applied migration, oldest first.
        
        Returns:
            Identifiers reverted, in execution order
            
        Raises:
            MigrationRunError: If a unit's down() fails
        """
        reverted = self._revert(self.list_units())
        
        if reverted:
            self.logger.info(f"Reset {len(reverted)} migrations")
        else:
            self.logger.info("Nothing to reset")
        return reverted
    
    def refresh(self) -> Dict[str, List[str]]:
        """Reset all migrations, then migrate again."""
        reset = self.reset()
        migrated = self.migrate()
        return {'reset': reset, 'migrated': migrated}
    
    # Reporting
    
    def pending(self) -> List[str]:
        """Discovered migrations not in the ledger, ascending."""
        ran = self.ran()
        return [m for m in self.list_units() if m not in ran]
    
    def status(self) -> Dict[str, Any]:
        """
        Get current migration status.
        
        Returns:
            Dictionary with per-migration state, counts, last batch and
            ledger entries that have no migration file
        """
        migrations = self.list_units()
        entries = self.ledger.entries()
        batches = {entry.migration: entry.batch for entry in entries}
        
        states = [
            MigrationState(
                migration=migration,
                name=derive_name(migration),
                ran=migration in batches,
                batch=batches.get(migration),
            )
            for migration in migrations
        ]
        applied = [s for s in states if s.ran]
        discovered = set(migrations)
        
        return {
            'module': self.module_name,
            'directory': str(self.discovery.directory),
            'last_batch': max(batches.values(), default=0),
            'total_migrations': len(states),
            'applied_migrations': len(applied),
            'pending_migrations': len(states) - len(applied),
            'is_up_to_date': len(applied) == len(states),
            'migrations': [s.model_dump() for s in states],
            'orphaned': sorted(m for m in batches if m not in discovered),
        }
    
    def validate(self) -> List[Dict[str, Any]]:
        """
        Check the ledger against the migration directory.
        
        Returns:
            List of issues; empty when ledger and directory agree
        """
        issues = []
        discovered = set(self.list_units())
        seen: Dict[str, int] = {}
        
        for entry in self.ledger.entries():
            seen[entry.migration] = seen.get(entry.migration, 0) + 1
        
        for migration, count in sorted(seen.items()):
            if migration not in discovered:
                issues.append({
                    'type': 'missing_file',
                    'migration': migration,
                    'message': f"Migration {migration} is applied but its file is missing"
                })
            if count > 1:
                issues.append({
                    'type': 'duplicate_entry',
                    'migration': migration,
                    'message': f"Migration {migration} has {count} ledger entries"
                })
        
        if issues:
            self.logger.warning(f"Found {len(issues)} migration validation issues")
        else:
            self.logger.info("Ledger matches migration directory")
        
        return issues

"""
Ledger repository implementation.

This module provides the persisted record of applied migrations. It is a
thin layer over a table accessor exposing where / where_in / order_by /
get / count / max / insert / delete, normally a LedgerTable.

Nothing here is cached: every call re-queries the store, so next_batch()
observes rows inserted earlier in the same run.
"""

from typing import List, Optional, Dict, Any, Set, Iterable
import logging
import time

from ..config.logging_config import MigrationLoggerAdapter
from ..models.ledger import LedgerEntry


class LedgerRepository:
    """
    Repository for the migration ledger.
    
    Rows have the shape {migration: str, batch: int}. A migration is
    either absent or present exactly once.
    """
    
    def __init__(self, table, module_name: str = 'app'):
        """
        Initialize repository with a table accessor.
        
        Args:
            table: Table accessor (LedgerTable or compatible)
            module_name: Owning module, used as logging context
        """
        self.table = table
        self.logger = MigrationLoggerAdapter(
            logging.getLogger(f'modmigrate.{self.__class__.__name__.lower()}'),
            {'module': module_name}
        )
        
        self.operation_stats = {
            'queries_executed': 0,
            'total_query_time': 0.0,
        }
        
        self._init_ledger_table()
    
    def _init_ledger_table(self) -> None:
        """Create the ledger table when the accessor supports it."""
        ensure_table = getattr(self.table, 'ensure_table', None)
        if ensure_table is not None:
            ensure_table()
    
    def _row_to_model(self, row: Dict[str, Any]) -> LedgerEntry:
        return LedgerEntry(id=row.get('id'), migration=row['migration'], batch=row['batch'])
    
    def _track_operation(self, operation: str, start_time: float) -> None:
        duration = time.time() - start_time
        self.operation_stats['queries_executed'] += 1
        self.operation_stats['total_query_time'] += duration
        self.logger.performance(f'{operation}_duration', duration, 's')
    
    def find(self, migration: str) -> List[LedgerEntry]:
        """
        Find ledger rows for a migration.
        
        Args:
            migration: Migration identifier
            
        Returns:
            Matching entries (zero or one expected)
        """
        start_time = time.time()
        rows = self.table.where('migration', migration).get()
        self._track_operation('find', start_time)
        return [self._row_to_model(row) for row in rows]
    
    def log(self, migration: str, batch: int) -> LedgerEntry:
        """
        Record a migration as applied.
        
        Args:
            migration: Migration identifier
            batch: Batch number
            
        Returns:
            The recorded entry
        """
        entry = LedgerEntry(migration=migration, batch=batch)
        start_time = time.time()
        self.table.insert(entry.to_row())
        self._track_operation('log', start_time)
        self.logger.debug(f"Logged {migration} in batch {batch}")
        return entry
    
    insert = log
    
    def delete(self, entries: Iterable[LedgerEntry]) -> int:
        """
        Remove ledger rows.
        
        Args:
            entries: Entries previously returned by find() or entries()
            
        Returns:
            Number of entries removed
        """
        migrations = sorted({entry.migration for entry in entries})
        if not migrations:
            return 0
        
        start_time = time.time()
        self.table.where_in('migration', migrations).delete()
        self._track_operation('delete', start_time)
        self.logger.debug(f"Removed ledger rows for {', '.join(migrations)}")
        return len(migrations)
    
    def ran(self) -> Set[str]:
        """All applied migration identifiers."""
        start_time = time.time()
        migrations = set(self.table.lists('migration'))
        self._track_operation('ran', start_time)
        return migrations
    
    def entries(self) -> List[LedgerEntry]:
        """All ledger entries ordered by batch, then migration."""
        rows = self.table.order_by('batch', 'asc').order_by('migration', 'asc').get()
        return [self._row_to_model(row) for row in rows]
    
    def last_batch(self) -> int:
        """
        Highest batch number stored.
        
        Returns:
            Last batch number, 0 when the ledger is empty
        """
        start_time = time.time()
        value = self.table.max('batch')
        self._track_operation('last_batch', start_time)
        return int(value) if value is not None else 0
    
    def next_batch(self) -> int:
        """Next batch number, recomputed from the store on every call."""
        return self.last_batch() + 1
    
    def get_last(self, migrations: Optional[List[str]] = None) -> List[str]:
        """
        Migrations recorded in the last batch.
        
        Args:
            migrations: Restrict to these identifiers (None = all)
            
        Returns:
            Identifiers in the last batch, descending
        """
        query = self.table.where('batch', self.last_batch())
        if migrations is not None:
            if not migrations:
                return []
            query = query.where_in('migration', list(migrations))
        rows = query.order_by('migration', 'desc').get()
        return [row['migration'] for row in rows]
    
    def count(self) -> int:
        """Number of ledger rows."""
        return self.table.count()
    
    def get_performance_stats(self) -> Dict[str, Any]:
        """Get performance statistics for this repository."""
        stats = self.operation_stats.copy()
        
        if stats['queries_executed'] > 0:
            stats['avg_query_time'] = stats['total_query_time'] / stats['queries_executed']
        else:
            stats['avg_query_time'] = 0.0
        
        return stats

"""
Ledger table accessor using SQLAlchemy Core.

LedgerTable owns the SQLAlchemy Table describing the ledger and hands out
TableQuery builders. Every builder call returns a new query, so a query
can be refined without disturbing the one it came from. All SQLAlchemy
failures surface as StoreError.
"""

from sqlalchemy import (
    MetaData, Table, Column, Integer, String, Sequence,
    select, insert, delete, func, inspect, asc, desc
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Dict, Any, Optional, Sequence as SequenceType, Tuple
import logging

from ..exceptions import StoreError

logger = logging.getLogger(__name__)


class TableQuery:
    """Immutable query over the ledger table"""
    
    def __init__(self, ledger_table: 'LedgerTable',
                 conditions: Tuple = (), ordering: Tuple = ()):
        self._ledger_table = ledger_table
        self._conditions = conditions
        self._ordering = ordering
    
    @property
    def _table(self) -> Table:
        return self._ledger_table.table
    
    def _column(self, name: str):
        try:
            return self._table.c[name]
        except KeyError:
            raise ValueError(f"Unknown column '{name}' for table {self._table.name}")
    
    def where(self, column: str, value: Any) -> 'TableQuery':
        """Add an equality condition"""
        condition = self._column(column) == value
        return TableQuery(self._ledger_table, self._conditions + (condition,), self._ordering)
    
    def where_in(self, column: str, values: SequenceType[Any]) -> 'TableQuery':
        """Add a membership condition"""
        condition = self._column(column).in_(list(values))
        return TableQuery(self._ledger_table, self._conditions + (condition,), self._ordering)
    
    def order_by(self, column: str, direction: str = 'asc') -> 'TableQuery':
        """
        Add an ordering term
        
        Args:
            column: Column name
            direction: 'asc' or 'desc'
        """
        direction = direction.lower()
        if direction not in ('asc', 'desc'):
            raise ValueError(f"Invalid order direction: {direction}")
        term = desc(self._column(column)) if direction == 'desc' else asc(self._column(column))
        return TableQuery(self._ledger_table, self._conditions, self._ordering + (term,))
    
    def _apply(self, stmt):
        for condition in self._conditions:
            stmt = stmt.where(condition)
        return stmt
    
    def get(self) -> List[Dict[str, Any]]:
        """
        Execute the query
        
        Returns:
            List of row dictionaries
        """
        stmt = self._apply(select(self._table))
        if self._ordering:
            stmt = stmt.order_by(*self._ordering)
        with self._ledger_table.connect() as conn:
            result = conn.execute(stmt)
            return [dict(row._mapping) for row in result]
    
    def lists(self, column: str) -> List[Any]:
        """Values of a single column for every matching row"""
        return [row[column] for row in self.get()]
    
    def count(self) -> int:
        """Number of matching rows"""
        stmt = self._apply(select(func.count()).select_from(self._table))
        with self._ledger_table.connect() as conn:
            return conn.execute(stmt).scalar() or 0
    
    def max(self, column: str) -> Optional[Any]:
        """Maximum value of a column over matching rows, None when there are none"""
        stmt = self._apply(select(func.max(self._column(column))))
        with self._ledger_table.connect() as conn:
            return conn.execute(stmt).scalar()
    
    def delete(self) -> int:
        """
        Delete matching rows
        
        Returns:
            Number of rows deleted (-1 when the driver does not report it)
        """
        stmt = self._apply(delete(self._table))
        with self._ledger_table.begin() as conn:
            result = conn.execute(stmt)
            return result.rowcount if result.rowcount is not None else -1


class _StoreContext:
    """Connection context that converts SQLAlchemy errors into StoreError"""
    
    def __init__(self, factory, table_name: str):
        self._factory = factory
        self._table_name = table_name
        self._ctx = None
    
    def __enter__(self):
        try:
            self._ctx = self._factory()
            return self._ctx.__enter__()
        except SQLAlchemyError as e:
            raise StoreError(f"Cannot connect to ledger store for {self._table_name}: {e}") from e
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            suppressed = self._ctx.__exit__(exc_type, exc_val, exc_tb)
        except SQLAlchemyError as e:
            raise StoreError(f"Ledger store operation on {self._table_name} failed: {e}") from e
        if isinstance(exc_val, SQLAlchemyError):
            raise StoreError(f"Ledger store operation on {self._table_name} failed: {exc_val}") from exc_val
        return suppressed


class LedgerTable:
    """Persisted table holding {migration, batch} rows"""
    
    def __init__(self, engine: Engine, table_name: str = 'migrations'):
        """
        Initialize ledger table accessor
        
        Args:
            engine: SQLAlchemy Engine instance
            table_name: Name of the ledger table
        """
        self.engine = engine
        self.table_name = table_name
        self.metadata = MetaData()
        self.table = Table(
            table_name,
            self.metadata,
            Column('id', Integer, Sequence(f'{table_name}_id_seq'), primary_key=True),
            Column('migration', String(255), nullable=False),
            Column('batch', Integer, nullable=False),
        )
    
    def connect(self) -> _StoreContext:
        """Read-only connection context"""
        return _StoreContext(self.engine.connect, self.table_name)
    
    def begin(self) -> _StoreContext:
        """Transactional connection context"""
        return _StoreContext(self.engine.begin, self.table_name)
    
    def exists(self) -> bool:
        """Check if the ledger table exists"""
        with self.connect() as conn:
            return inspect(conn).has_table(self.table_name)
    
    def ensure_table(self) -> None:
        """Create the ledger table if it does not exist yet"""
        with self.begin() as conn:
            self.metadata.create_all(conn, tables=[self.table], checkfirst=True)
        logger.debug(f"Ledger table '{self.table_name}' ready")
    
    def drop_table(self) -> None:
        """Drop the ledger table if it exists"""
        with self.begin() as conn:
            self.table.drop(conn, checkfirst=True)
    
    def query(self) -> TableQuery:
        """Start a new query over the whole table"""
        return TableQuery(self)
    
    def insert(self, row: Dict[str, Any]) -> None:
        """
        Insert a single row
        
        Args:
            row: Column values ({'migration': ..., 'batch': ...})
        """
        with self.begin() as conn:
            conn.execute(insert(self.table), [row])
    
    # Shortcuts so the table itself can be used like a query
    def where(self, column: str, value: Any) -> TableQuery:
        return self.query().where(column, value)
    
    def where_in(self, column: str, values: SequenceType[Any]) -> TableQuery:
        return self.query().where_in(column, values)
    
    def order_by(self, column: str, direction: str = 'asc') -> TableQuery:
        return self.query().order_by(column, direction)
    
    def get(self) -> List[Dict[str, Any]]:
        return self.query().get()
    
    def lists(self, column: str) -> List[Any]:
        return self.query().lists(column)
    
    def count(self) -> int:
        return self.query().count()
    
    def max(self, column: str) -> Optional[Any]:
        return self.query().max(column)
    
    def delete(self) -> int:
        return self.query().delete()

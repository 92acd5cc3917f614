"""
Base class for migration units.

A migration file defines one subclass of Migration whose class name is the
StudlyCase form of the file's name without its timestamp, for example
2020_01_01_000000_create_users_table.py defines CreateUsersTable. The
engine only sequences up() and down(); the schema work itself belongs to
the subclass.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from .exceptions import MigrationError


class Migration(ABC):
    """Base class for migration units.
    
    Subclasses implement up() and, for rollback support, down().
    
    Attributes:
        description: A brief description of what this migration does
        engine: SQLAlchemy engine the migration operates on (optional)
    """
    
    description: str = ""
    
    def __init__(self, engine: Optional[Engine] = None):
        self.engine = engine
        self.logger = logging.getLogger(f'modmigrate.units.{self.__class__.__name__}')
    
    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise MigrationError(
                f"Migration {self.__class__.__name__} has no database engine bound"
            )
        return self.engine
    
    def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> None:
        """Execute a statement in its own transaction.
        
        Args:
            sql: SQL statement
            params: Optional bound parameters
        """
        with self._require_engine().begin() as conn:
            conn.execute(text(sql), params or {})
        self.logger.debug(f"Executed: {sql.strip()[:200]}")
    
    def has_table(self, table: str) -> bool:
        """Check if a table exists."""
        with self._require_engine().connect() as conn:
            return inspect(conn).has_table(table)
    
    def has_column(self, table: str, column: str) -> bool:
        """Check if a column exists in a table.
        
        Returns:
            True if column exists, False otherwise (including a missing table)
        """
        with self._require_engine().connect() as conn:
            inspector = inspect(conn)
            if not inspector.has_table(table):
                return False
            return any(col['name'] == column for col in inspector.get_columns(table))
    
    @abstractmethod
    def up(self) -> None:
        """Apply the migration."""
        pass
    
    def down(self) -> None:
        """Reverse the migration.
        
        Raises:
            MigrationError: If rollback is not supported
        """
        raise MigrationError(
            f"Migration {self.__class__.__name__} does not support rollback"
        )

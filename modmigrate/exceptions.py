"""
Exception hierarchy for the migration engine.

All errors raised deliberately by modmigrate derive from MigrationError so
callers can catch the whole family in one place.
"""

from typing import List, Optional


class MigrationError(Exception):
    """Base exception for migration failures."""
    pass


class ResolutionError(MigrationError):
    """Raised when no implementation is registered for a migration name."""
    
    def __init__(self, migration: str, name: str):
        self.migration = migration
        self.name = name
        super().__init__(
            f"No implementation registered for '{name}' (migration {migration})"
        )


class StoreError(MigrationError):
    """Raised when the ledger store cannot be read or written."""
    pass


class MigrationRunError(MigrationError):
    """
    Raised when a unit's up() or down() fails part way through a run.
    
    Attributes:
        migration: Identifier of the unit that failed
        direction: 'up' or 'down'
        processed: Identifiers fully processed before the failure, in order
    """
    
    def __init__(self, migration: str, direction: str,
                 processed: Optional[List[str]] = None, cause: Optional[BaseException] = None):
        self.migration = migration
        self.direction = direction
        self.processed = list(processed or [])
        message = f"Migration {migration} failed during {direction}()"
        if cause is not None:
            message += f": {type(cause).__name__}: {cause}"
        super().__init__(message)

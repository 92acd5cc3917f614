"""
Data models using Pydantic for validation and type safety.

- Ledger entry and per-migration status models
- Application module model
"""

from .ledger import LedgerEntry, MigrationState
from .module import ModuleInfo

__all__ = ['LedgerEntry', 'MigrationState', 'ModuleInfo']

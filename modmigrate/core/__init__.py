"""
Core storage components.

- Engine construction for the supported ledger backends
- SQLAlchemy Core accessor for the ledger table
"""

from .engine import EngineConfig
from .table import LedgerTable, TableQuery

__all__ = ["EngineConfig", "LedgerTable", "TableQuery"]

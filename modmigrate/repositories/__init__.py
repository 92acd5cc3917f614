"""
Repository implementations for data access.
"""

from .ledger_repository import LedgerRepository

__all__ = ['LedgerRepository']

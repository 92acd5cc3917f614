"""
Batch assignment policies.

The ledger groups applied migrations by batch number and rollback reverses
the highest batch. Which batch a newly applied migration receives is a
policy:

one-batch-per-unit
    Every migration asks the ledger for its next batch at the moment it is
    logged. Migrations applied in the same run therefore get consecutive
    batch numbers and rollback reverses one migration at a time. This is
    the default.

one-batch-per-call
    The batch is computed once when a run starts and shared by every
    migration applied in that run, so rollback reverses the whole run.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Type


class BatchPolicy(ABC):
    """Chooses the batch number for each migration logged during migrate()."""
    
    name: str = ''
    
    def start(self, ledger) -> None:
        """Called once at the start of every migrate() run."""
        pass
    
    @abstractmethod
    def batch_for(self, ledger, migration: str) -> int:
        """Batch number for a migration about to be logged."""
        pass


class OneBatchPerUnit(BatchPolicy):
    name = 'one-batch-per-unit'
    
    def batch_for(self, ledger, migration: str) -> int:
        return ledger.next_batch()


class OneBatchPerCall(BatchPolicy):
    name = 'one-batch-per-call'
    
    def __init__(self):
        self._batch: Optional[int] = None
    
    def start(self, ledger) -> None:
        self._batch = ledger.next_batch()
    
    def batch_for(self, ledger, migration: str) -> int:
        if self._batch is None:
            self._batch = ledger.next_batch()
        return self._batch


BATCH_POLICY_CLASSES: Dict[str, Type[BatchPolicy]] = {
    OneBatchPerUnit.name: OneBatchPerUnit,
    OneBatchPerCall.name: OneBatchPerCall,
}


def get_batch_policy(name: str) -> BatchPolicy:
    """
    Instantiate a batch policy by name.
    
    Raises:
        ValueError: If the name is unknown
    """
    try:
        return BATCH_POLICY_CLASSES[name]()
    except KeyError:
        raise ValueError(
            f"Unknown batch policy '{name}'. Choose from: {', '.join(BATCH_POLICY_CLASSES)}"
        )

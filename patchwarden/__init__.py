"""Patchwarden: transactional application of agent-proposed file changes.

A batch of write/delete/rename operations is applied all-or-nothing:
snapshot, stage a pending record, apply, check, approve, then commit or
roll back.  Every outcome is recorded in a per-project transaction store.
"""

__version__ = "0.1.0"
__description__ = "Transactional, auditable application of file operation batches"

from patchwarden.core.coordinator import ProcessOutcome, TransactionCoordinator
from patchwarden.core.directory_lock import DirectoryLock
from patchwarden.core.transaction_store import TransactionStore
from patchwarden.models.config import PatchConfig, ProcessOptions
from patchwarden.models.transactions import TransactionInput, TransactionRecord, TransactionStatus

__all__ = [
    "TransactionCoordinator",
    "ProcessOutcome",
    "DirectoryLock",
    "TransactionStore",
    "PatchConfig",
    "ProcessOptions",
    "TransactionInput",
    "TransactionRecord",
    "TransactionStatus",
    "__version__",
]

"""Patchwarden data models — all Pydantic v2, all frozen (immutable)."""

from patchwarden.models.config import ApprovalMode, BranchTemplate, PatchConfig, ProcessOptions
from patchwarden.models.operations import (
    DeleteOperation,
    FileOperation,
    PatchStrategy,
    RenameOperation,
    WriteOperation,
    affected_paths,
    operation_paths,
    parse_operations,
)
from patchwarden.models.transactions import (
    TERMINAL_STATUSES,
    VALID_TRANSITIONS,
    LineStats,
    TransactionInput,
    TransactionRecord,
    TransactionStatus,
    is_revert_transaction,
    is_uuid,
    reverted_transaction_id,
)

__all__ = [
    # config
    "ApprovalMode",
    "BranchTemplate",
    "PatchConfig",
    "ProcessOptions",
    # operations
    "PatchStrategy",
    "WriteOperation",
    "DeleteOperation",
    "RenameOperation",
    "FileOperation",
    "affected_paths",
    "operation_paths",
    "parse_operations",
    # transactions
    "TransactionStatus",
    "VALID_TRANSITIONS",
    "TERMINAL_STATUSES",
    "LineStats",
    "TransactionInput",
    "TransactionRecord",
    "is_revert_transaction",
    "is_uuid",
    "reverted_transaction_id",
]

"""File operation models — the closed ``write | delete | rename`` union.

Operations are ordered inside a transaction; a later operation on the same
path observes the in-memory result of the earlier one.  Every consumer
dispatches on the concrete class, never on a free-form string.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class PatchStrategy(str, Enum):
    """How a write turns the current file content into the new content."""

    REPLACE = "replace"
    STANDARD_DIFF = "standard-diff"
    SEARCH_REPLACE = "search-replace"


class WriteOperation(BaseModel):
    """Write ``content`` to ``path`` using ``strategy``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["write"] = "write"
    path: str
    content: str
    strategy: PatchStrategy = PatchStrategy.REPLACE


class DeleteOperation(BaseModel):
    """Remove ``path`` from the tree."""

    model_config = ConfigDict(frozen=True)

    type: Literal["delete"] = "delete"
    path: str


class RenameOperation(BaseModel):
    """Move the file at ``from_path`` to ``to_path``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: Literal["rename"] = "rename"
    from_path: str = Field(alias="from")
    to_path: str = Field(alias="to")


FileOperation = Annotated[
    Union[WriteOperation, DeleteOperation, RenameOperation],
    Field(discriminator="type"),
]

_OPERATIONS_ADAPTER: TypeAdapter[list[FileOperation]] = TypeAdapter(list[FileOperation])


def parse_operations(raw: list[dict]) -> list[FileOperation]:
    """Validate a list of plain dicts into typed operations."""
    return _OPERATIONS_ADAPTER.validate_python(raw)


def operation_paths(operation: FileOperation) -> list[str]:
    """Return every path an operation reads or writes."""
    if isinstance(operation, RenameOperation):
        return [operation.from_path, operation.to_path]
    if isinstance(operation, (WriteOperation, DeleteOperation)):
        return [operation.path]
    raise TypeError(f"Unknown operation type: {type(operation).__name__}")


def affected_paths(operations: list[FileOperation]) -> list[str]:
    """All touched paths in first-seen order, both sides of renames included."""
    seen: dict[str, None] = {}
    for op in operations:
        for path in operation_paths(op):
            seen.setdefault(path, None)
    return list(seen)

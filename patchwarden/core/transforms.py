"""Content-transform registry — the seam to the external diff engines.

A write operation carries a ``PatchStrategy``.  The registry maps each
strategy to a transform ``(operation, current_content) -> new_content``.
Only ``replace`` ships built in; diff and search/replace engines are
registered by the embedding application.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from patchwarden.models.operations import PatchStrategy, WriteOperation

logger = logging.getLogger(__name__)

TransformFn = Callable[[WriteOperation, "str | None"], str]


class TransformError(RuntimeError):
    """Raised when a write's content cannot be computed."""


class ContentTransformer(Protocol):
    """Anything that turns a write plus current content into new content."""

    def transform(self, operation: WriteOperation, current: str | None) -> str: ...


def replace_transform(operation: WriteOperation, current: str | None) -> str:
    """Full replacement: the operation's content is the new file."""
    return operation.content


class StrategyRegistry:
    """Dispatches writes to a transform function by strategy."""

    def __init__(self) -> None:
        self._transforms: dict[PatchStrategy, TransformFn] = {
            PatchStrategy.REPLACE: replace_transform,
        }

    def register(self, strategy: PatchStrategy, transform: TransformFn) -> None:
        """Install (or override) the transform for *strategy*."""
        self._transforms[strategy] = transform
        logger.debug("Registered content transform for %s", strategy.value)

    def supports(self, strategy: PatchStrategy) -> bool:
        return strategy in self._transforms

    def transform(self, operation: WriteOperation, current: str | None) -> str:
        fn = self._transforms.get(operation.strategy)
        if fn is None:
            raise TransformError(
                f"No content transform registered for strategy "
                f"{operation.strategy.value!r} (path {operation.path})"
            )
        try:
            return fn(operation, current)
        except TransformError:
            raise
        except Exception as exc:
            raise TransformError(
                f"Failed to apply {operation.strategy.value} patch to {operation.path}: {exc}"
            ) from exc

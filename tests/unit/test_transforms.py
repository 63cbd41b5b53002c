"""Tests for the content-transform registry."""

from __future__ import annotations

import pytest

from patchwarden.core.transforms import StrategyRegistry, TransformError
from patchwarden.models.operations import PatchStrategy, WriteOperation


class TestStrategyRegistry:
    def test_replace_is_built_in(self):
        registry = StrategyRegistry()
        op = WriteOperation(path="a", content="new")
        assert registry.supports(PatchStrategy.REPLACE)
        assert registry.transform(op, "old") == "new"

    def test_register_custom_strategy(self):
        registry = StrategyRegistry()
        registry.register(
            PatchStrategy.SEARCH_REPLACE,
            lambda op, current: (current or "").replace("old", op.content),
        )
        op = WriteOperation(path="a", content="fresh", strategy=PatchStrategy.SEARCH_REPLACE)
        assert registry.transform(op, "old text") == "fresh text"

    def test_missing_strategy(self):
        registry = StrategyRegistry()
        op = WriteOperation(path="a", content="x", strategy=PatchStrategy.STANDARD_DIFF)
        assert not registry.supports(PatchStrategy.STANDARD_DIFF)
        with pytest.raises(TransformError):
            registry.transform(op, None)

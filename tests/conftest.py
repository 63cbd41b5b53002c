"""Shared test fixtures for Patchwarden."""

from __future__ import annotations

import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from patchwarden.core.approval import NotificationResult
from patchwarden.core.coordinator import TransactionCoordinator
from patchwarden.core.record_backends import InMemoryRecordBackend, SQLiteRecordBackend
from patchwarden.core.shell import CommandResult
from patchwarden.core.transaction_store import TransactionStore
from patchwarden.models.config import PatchConfig
from patchwarden.models.transactions import TransactionInput


class FakeExecutor:
    """Command runner that returns canned results and records every call."""

    def __init__(self, results: dict[str, CommandResult] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[str, str]] = []

    async def run(self, command: str, cwd: Path | str) -> CommandResult:
        self.calls.append((command, str(cwd)))
        return self.results.get(command, CommandResult(command=command, exit_code=0))

    @property
    def commands(self) -> list[str]:
        return [command for command, _ in self.calls]


class FakePrompter:
    """Answers every question with a fixed value and remembers the questions."""

    def __init__(self, answer: bool = True) -> None:
        self.answer = answer
        self.questions: list[str] = []

    async def __call__(self, question: str) -> bool:
        self.questions.append(question)
        return self.answer


class FakeChannel:
    """Notification channel with a scripted approval result."""

    def __init__(self, result: NotificationResult = NotificationResult.TIMEOUT) -> None:
        self.result = result
        self.requests: list[str] = []
        self.events: list[tuple[str, str]] = []

    async def request(self, project_id: str) -> NotificationResult:
        self.requests.append(project_id)
        return self.result

    async def notify_patch_detected(self, project_id: str) -> None:
        self.events.append(("detected", project_id))

    async def notify_success(self, record_id: str) -> None:
        self.events.append(("success", record_id))

    async def notify_failure(self, record_id: str) -> None:
        self.events.append(("failure", record_id))

    async def notify_rollback_failure(self, record_id: str) -> None:
        self.events.append(("rollback_failure", record_id))


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Provide an empty project directory."""
    directory = tmp_path / "project"
    directory.mkdir()
    return directory


@pytest.fixture
def memory_store() -> TransactionStore:
    """Provide a TransactionStore backed by an in-memory backend."""
    return TransactionStore(InMemoryRecordBackend())


@pytest.fixture
def sqlite_store(tmp_path: Path) -> TransactionStore:
    """Provide a TransactionStore backed by a temp SQLite database."""
    store = TransactionStore(SQLiteRecordBackend(tmp_path / "state" / "transactions.db"))
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> TransactionStore:
    """Provide a TransactionStore for each backend."""
    if request.param == "memory":
        backend = InMemoryRecordBackend()
    else:
        backend = SQLiteRecordBackend(tmp_path / "state" / "transactions.db")
    store = TransactionStore(backend)
    yield store
    store.close()


@pytest.fixture
def config() -> PatchConfig:
    """Provide an auto-approving configuration for project 'demo'."""
    return PatchConfig(project_id="demo")


@pytest.fixture
def executor() -> FakeExecutor:
    """Provide a command runner where every command succeeds by default."""
    return FakeExecutor()


@pytest.fixture
def prompter() -> FakePrompter:
    return FakePrompter(answer=True)


@pytest.fixture
def make_input() -> Callable[..., TransactionInput]:
    """Factory for TransactionInputs targeting project 'demo'."""

    def _make(operations: list[Any], **overrides: Any) -> TransactionInput:
        fields: dict[str, Any] = {
            "id": str(uuid.uuid4()),
            "project_id": "demo",
            "operations": operations,
            "reasoning": ["Test change."],
        }
        fields.update(overrides)
        return TransactionInput(**fields)

    return _make


@pytest.fixture
def make_coordinator(
    memory_store: TransactionStore, executor: FakeExecutor, prompter: FakePrompter
) -> Callable[..., TransactionCoordinator]:
    """Factory for coordinators that share one in-memory store."""

    def _make(config: PatchConfig | None = None, **overrides: Any) -> TransactionCoordinator:
        kwargs: dict[str, Any] = {
            "store_factory": lambda directory: memory_store,
            "executor": executor,
            "prompter": prompter,
        }
        kwargs.update(overrides)
        return TransactionCoordinator(config or PatchConfig(project_id="demo"), **kwargs)

    return _make


@pytest.fixture
def channel() -> FakeChannel:
    """Provide a notification channel that times out unless told otherwise."""
    return FakeChannel()

"""Transaction coordinator — the lifecycle state machine for one batch.

Validate -> PreCheck -> Snapshot -> Stage -> Apply -> PostCheck ->
Lint+Approve -> Commit, with Rollback reachable from every step after
Stage.

Failure semantics:
- Everything before Stage fails closed: nothing is persisted.
- From Stage on, every path ends in exactly one terminal status
  (``committed`` or ``undone``) before ``process()`` returns.
- Post-commit actions (branch creation, notifications) run after the
  commit is final and can never undo it.

Calls for the same project directory are serialized through a
``DirectoryLock``.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from patchwarden.config import EngineSettings, settings as default_settings
from patchwarden.core.applier import OperationApplier, operation_line_changes, total_line_changes
from patchwarden.core.approval import (
    ApprovalGate,
    NotificationChannel,
    Prompter,
    make_confirmation_handler,
)
from patchwarden.core.directory_lock import DirectoryLock
from patchwarden.core.git_branch import create_branch_for
from patchwarden.core.revert import build_inverse_operations, revert_reasoning
from patchwarden.core.shell import CommandRunner, LinterRunner, ShellExecutor
from patchwarden.core.snapshot import RollbackError, SnapshotManager
from patchwarden.core.transaction_store import InvalidIdentifierError, TransactionStore
from patchwarden.core.transforms import ContentTransformer
from patchwarden.models.config import PatchConfig, ProcessOptions
from patchwarden.models.operations import (
    DeleteOperation,
    FileOperation,
    RenameOperation,
    WriteOperation,
    affected_paths,
)
from patchwarden.models.transactions import (
    LineStats,
    TransactionInput,
    TransactionRecord,
    TransactionStatus,
    is_uuid,
)

logger = logging.getLogger(__name__)


class CommandFailedError(RuntimeError):
    """Raised when a post-apply hook exits non-zero."""


class ProcessOutcome(str, Enum):
    """What ``process()`` did with a submission."""

    SKIPPED = "skipped"  # rejected before Stage, nothing persisted
    COMMITTED = "committed"
    UNDONE = "undone"


class TransactionCoordinator:
    """Runs submitted batches through the transaction lifecycle.

    Parameters
    ----------
    config:
        Project configuration (id, approval, hooks, op-count bounds).
    store_factory:
        Builds the ``TransactionStore`` for a project directory.  Defaults
        to a SQLite store under the directory's state dir.
    transformer:
        Content-transform engine for write strategies.
    executor:
        Shell runner for pre/post hooks and post-commit actions.
    linter:
        Linter runner; defaults to one backed by *executor*.
    channel:
        Optional notification-approval channel.
    prompter:
        Interactive yes/no fallback.  Defaults to a terminal prompt.
    lock:
        Per-directory serialization registry.  A private one is created
        (and torn down by ``aclose()``) when omitted.
    """

    def __init__(
        self,
        config: PatchConfig,
        *,
        store_factory: Callable[[Path], TransactionStore] | None = None,
        transformer: ContentTransformer | None = None,
        executor: CommandRunner | None = None,
        linter: LinterRunner | None = None,
        channel: NotificationChannel | None = None,
        prompter: Prompter | None = None,
        lock: DirectoryLock | None = None,
        engine_settings: EngineSettings | None = None,
    ) -> None:
        self.config = config
        self._settings = engine_settings or default_settings
        self._store_factory = store_factory or (
            lambda directory: TransactionStore.for_directory(directory, self._settings)
        )
        self._transformer = transformer
        self._executor = executor or ShellExecutor()
        self._linter = linter or LinterRunner(self._executor)
        self._channel = channel
        self._prompter = prompter
        self._owns_lock = lock is None
        self._lock = lock or DirectoryLock()
        self._stores: dict[Path, TransactionStore] = {}

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def store_for(self, directory: Path | str) -> TransactionStore:
        """Return the (cached) store for a project directory."""
        key = Path(directory).resolve()
        if key not in self._stores:
            self._stores[key] = self._store_factory(key)
        return self._stores[key]

    @property
    def lock(self) -> DirectoryLock:
        return self._lock

    async def aclose(self) -> None:
        """Wait for queued work and release stores."""
        if self._owns_lock:
            await self._lock.aclose()
        for store in self._stores.values():
            store.close()
        self._stores.clear()

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def process(
        self, tx_input: TransactionInput, options: ProcessOptions | None = None
    ) -> ProcessOutcome:
        """Process one submission; serialized per project directory.

        Idempotent for ids that are already ``committed`` or ``undone``.

        Raises
        ------
        InvalidIdentifierError
            If the submission id is not a UUID.  Nothing is persisted.
        """
        options = options or ProcessOptions()
        cwd = Path(options.directory).resolve()
        return await self._lock.run(cwd, lambda: self._process(tx_input, options, cwd))

    async def _process(
        self, tx_input: TransactionInput, options: ProcessOptions, cwd: Path
    ) -> ProcessOutcome:
        start = time.perf_counter()
        store = self.store_for(cwd)

        # 1. Validate
        if not await self._validate(tx_input, store):
            return ProcessOutcome.SKIPPED

        if options.notify_on_start:
            await self._notify("notify_patch_detected", self.config.project_id)

        # 2. Pre-flight
        if self.config.pre_command:
            logger.info("Running pre-command: %s", self.config.pre_command)
            result = await self._executor.run(self.config.pre_command, cwd)
            if not result.ok:
                logger.error(
                    "Pre-command failed with exit code %d, aborting transaction.",
                    result.exit_code,
                )
                if result.stderr:
                    logger.error("Stderr: %s", result.stderr)
                return ProcessOutcome.SKIPPED

        logger.info("Applying patch %s for %r...", tx_input.id[:8], tx_input.project_id)
        if tx_input.reasoning:
            logger.info("Reasoning:\n  %s", "\n  ".join(tx_input.reasoning))

        # 3. Snapshot
        snapshots = SnapshotManager(cwd)
        try:
            snapshot = await snapshots.create_snapshot(affected_paths(tx_input.operations))
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Could not snapshot affected files, skipping patch: %s", exc)
            return ProcessOutcome.SKIPPED

        # 4. Stage
        record = await asyncio.to_thread(
            store.insert, TransactionRecord.from_input(tx_input, snapshot)
        )

        # 5-7. Apply, post-check, lint and approve
        try:
            approved, stats = await self._apply_and_decide(record, options, cwd, start)
            if approved:
                await self._commit(store, record, stats)
        except Exception as exc:
            await self._rollback(store, snapshots, record, str(exc), is_error=True)
            return ProcessOutcome.UNDONE

        if not approved:
            logger.warning("Operation cancelled. Rolling back changes...")
            await self._rollback(store, snapshots, record, "user/automated rejection", is_error=False)
            return ProcessOutcome.UNDONE

        # Commit is final; nothing below may revert it.
        logger.info("Patch %s committed.", record.id[:8])
        await self._notify("notify_success", record.id)
        await self._after_commit(store, record.id, cwd)
        return ProcessOutcome.COMMITTED

    # ------------------------------------------------------------------
    # Lifecycle steps
    # ------------------------------------------------------------------

    async def _validate(self, tx_input: TransactionInput, store: TransactionStore) -> bool:
        if tx_input.project_id != self.config.project_id:
            logger.warning(
                "Skipping patch: projectId mismatch (expected %r, got %r).",
                self.config.project_id,
                tx_input.project_id,
            )
            return False

        if not is_uuid(tx_input.id):
            logger.error("Fatal: invalid transaction id %r", tx_input.id)
            raise InvalidIdentifierError(f"Invalid transaction id: {tx_input.id!r}")

        if await asyncio.to_thread(store.has_been_processed, tx_input.id):
            logger.info("Skipping patch: id %s has already been processed.", tx_input.id)
            return False

        count = len(tx_input.operations)
        minimum = self.config.min_file_changes
        maximum = self.config.max_file_changes
        if minimum > 0 and count < minimum:
            logger.warning(
                "Skipping patch: not enough file changes (expected at least %d, got %d).",
                minimum,
                count,
            )
            return False
        if maximum and count > maximum:
            logger.warning(
                "Skipping patch: too many file changes (expected at most %d, got %d).",
                maximum,
                count,
            )
            return False
        return True

    async def _apply_and_decide(
        self,
        record: TransactionRecord,
        options: ProcessOptions,
        cwd: Path,
        start: float,
    ) -> tuple[bool, LineStats]:
        applier = OperationApplier(cwd, self._transformer)
        final = await applier.apply(record.operations, record.snapshot)
        for op in record.operations:
            _log_operation(op, operation_line_changes(op, record.snapshot, final))

        if self.config.post_command:
            logger.info("Running post-command: %s", self.config.post_command)
            result = await self._executor.run(self.config.post_command, cwd)
            if not result.ok:
                logger.error("Post-command failed with exit code %d.", result.exit_code)
                if result.stderr:
                    logger.error("Stderr: %s", result.stderr)
                raise CommandFailedError("Post-command failed, forcing rollback.")

        error_count = await self._linter.error_count(self.config.linter, cwd)
        stats = total_line_changes(record.operations, record.snapshot, final)
        count = len(record.operations)
        logger.info(
            "Summary: %d file operation%s applied in %.2fs. Linter errors: %d.",
            count,
            "" if count == 1 else "s",
            time.perf_counter() - start,
            error_count,
        )

        prompter = make_confirmation_handler(yes=options.yes, prompter=self._prompter)
        gate = ApprovalGate(
            self.config,
            prompter,
            channel=self._channel,
            linter=self._linter,
            notification_timeout=self._settings.notification_timeout_seconds,
        )
        return await gate.decide(cwd, error_count=error_count), stats

    async def _commit(
        self, store: TransactionStore, record: TransactionRecord, stats: LineStats
    ) -> None:
        await asyncio.to_thread(
            store.update,
            record.id,
            {
                "approved": True,
                "lines_added": stats.added,
                "lines_removed": stats.removed,
                "lines_difference": stats.difference,
            },
        )
        await asyncio.to_thread(
            store.set_status, record.id, TransactionStatus.PENDING, TransactionStatus.COMMITTED
        )

    async def _rollback(
        self,
        store: TransactionStore,
        snapshots: SnapshotManager,
        record: TransactionRecord,
        reason: str,
        *,
        is_error: bool,
    ) -> None:
        """Restore the snapshot, then mark the record ``undone`` regardless."""
        if is_error:
            logger.warning("Rolling back changes: %s", reason)

        restored = False
        try:
            await snapshots.restore_snapshot(record.snapshot)
            logger.info("Files restored to original state.")
            restored = True
        except RollbackError as exc:
            logger.error("Fatal: rollback failed, manual recovery may be required: %s", exc)
            await self._notify("notify_rollback_failure", record.id)
        finally:
            # The record must not stay pending, even if restoration failed.
            await self._mark_undone(store, record.id)

        if is_error and restored:
            await self._notify("notify_failure", record.id)

    async def _mark_undone(self, store: TransactionStore, record_id: str) -> None:
        try:
            await asyncio.to_thread(
                store.set_status, record_id, TransactionStatus.PENDING, TransactionStatus.UNDONE
            )
        except Exception:
            logger.exception("Fatal: could not mark transaction %s as undone.", record_id)
        else:
            logger.info("Transaction %s rolled back.", record_id)

    async def _after_commit(self, store: TransactionStore, record_id: str, cwd: Path) -> None:
        if not self.config.auto_git_branch:
            return
        committed = await asyncio.to_thread(store.find_by_id, record_id)
        if committed is None:
            return
        try:
            await create_branch_for(committed, self.config, self._executor, cwd)
        except Exception as exc:
            logger.warning("Post-commit branch creation failed: %s", exc)

    async def _notify(self, method_name: str, *args: Any) -> None:
        """Best-effort outcome notification on channels that support it."""
        if self._channel is None or not self.config.enable_notifications:
            return
        method = getattr(self._channel, method_name, None)
        if method is None:
            return
        try:
            result = method(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.warning("Notification %s failed: %s", method_name, exc)

    # ------------------------------------------------------------------
    # Bulk approval and revert
    # ------------------------------------------------------------------

    async def approve_all_pending(self, directory: Path | str = ".", *, yes: bool = False) -> int:
        """Commit every ``pending`` record in a directory. Returns the count."""
        cwd = Path(directory).resolve()
        return await self._lock.run(cwd, lambda: self._approve_all(cwd, yes))

    async def _approve_all(self, cwd: Path, yes: bool) -> int:
        store = self.store_for(cwd)
        pending = await asyncio.to_thread(store.query_by_status, TransactionStatus.PENDING)
        if not pending:
            logger.info("No pending transactions to approve.")
            return 0

        logger.info("Found %d pending patch(es):", len(pending))
        for tx in pending:
            first_line = (" ".join(tx.reasoning) or "No reasoning provided.").splitlines()[0]
            logger.info("  - %s: %s", tx.id[:8], first_line)

        prompter = make_confirmation_handler(yes=yes, prompter=self._prompter)
        if not await prompter("Do you want to approve and commit all of them?"):
            logger.info("Bulk approval cancelled.")
            return 0

        committed = 0
        for tx in pending:
            ok = await asyncio.to_thread(
                store.set_status, tx.id, TransactionStatus.PENDING, TransactionStatus.COMMITTED
            )
            if ok:
                committed += 1
                logger.info("Patch %s committed.", tx.id[:8])
        logger.info("Successfully committed %d patch(es).", committed)
        return committed

    async def revert(
        self,
        identifier: str = "1",
        options: ProcessOptions | None = None,
        *,
        include_reverts: bool = False,
    ) -> ProcessOutcome | None:
        """Revert a committed transaction by UUID or 1-based recency index.

        The revert is itself a new transaction.  Returns its outcome, or
        ``None`` when nothing was found, confirmed, or needed.
        """
        options = options or ProcessOptions()
        store = self.store_for(options.directory)
        target = await asyncio.to_thread(
            store.find_committed, identifier, skip_reverts=not include_reverts
        )
        if target is None:
            logger.error("Could not find transaction %r to revert.", identifier)
            return None

        prompter = make_confirmation_handler(yes=options.yes, prompter=self._prompter)
        if not await prompter(f"Are you sure you want to revert transaction {target.id}?"):
            logger.info("Revert operation cancelled.")
            return None

        inverse = build_inverse_operations(target)
        if not inverse:
            logger.warning("No operations to revert for this transaction.")
            return None

        revert_input = TransactionInput(
            project_id=self.config.project_id,
            operations=inverse,
            reasoning=revert_reasoning(target),
        )
        logger.info("Creating new transaction %s to perform the revert.", revert_input.id)
        return await self.process(revert_input, options)


def _log_operation(op: FileOperation, stats: LineStats) -> None:
    if isinstance(op, WriteOperation):
        logger.info("Written: %s (+%d, -%d)", op.path, stats.added, stats.removed)
    elif isinstance(op, DeleteOperation):
        logger.info("Deleted: %s", op.path)
    elif isinstance(op, RenameOperation):
        logger.info("Renamed: %s -> %s", op.from_path, op.to_path)

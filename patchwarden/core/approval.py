"""Approval gate — decides whether an applied transaction becomes permanent.

Two modes:

- ``auto``: approve when the post-apply linter error count is within the
  configured threshold; otherwise escalate to the manual path.
- ``manual``: offer the decision to the notification channel first.
  ``approved`` and ``rejected`` are final; ``timeout`` (or no channel at
  all) falls back to the interactive prompter.

The gate has no side effects beyond invoking its two collaborators.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

from rich.console import Console
from rich.prompt import Confirm

from patchwarden.config import settings
from patchwarden.core.shell import LinterRunner
from patchwarden.models.config import ApprovalMode, PatchConfig

logger = logging.getLogger(__name__)

APPROVAL_QUESTION = "Changes applied. Do you want to approve and commit them?"

Prompter = Callable[[str], Awaitable[bool]]


class NotificationResult(str, Enum):
    """Outcome of a notification-based approval request."""

    APPROVED = "approved"
    REJECTED = "rejected"
    TIMEOUT = "timeout"


@runtime_checkable
class NotificationChannel(Protocol):
    """External channel that can ask a human to approve out of band."""

    async def request(self, project_id: str) -> NotificationResult: ...


def make_confirmation_handler(*, yes: bool = False, prompter: Prompter | None = None) -> Prompter:
    """Build the prompter used for yes/no questions.

    With *yes*, every question is answered affirmatively without asking.
    """
    if yes:

        async def _always_yes(question: str) -> bool:
            logger.info("%s (auto-approved)", question)
            return True

        return _always_yes
    return prompter or ConsolePrompter()


class ConsolePrompter:
    """Interactive terminal confirmation via ``rich.prompt.Confirm``."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    async def __call__(self, question: str) -> bool:
        return await asyncio.to_thread(
            Confirm.ask, question, console=self.console, default=False
        )


class ApprovalGate:
    """Turns a finished apply into an approve/reject decision.

    Parameters
    ----------
    config:
        Project configuration (mode, threshold, linter, notifications).
    prompter:
        Interactive fallback, consulted when no channel decides.
    channel:
        Optional notification-approval channel.
    linter:
        Used to compute the error count when the caller has none.
    notification_timeout:
        Seconds to wait for the channel before treating it as a timeout.
        Defaults to ``EngineSettings.notification_timeout_seconds``.
    """

    def __init__(
        self,
        config: PatchConfig,
        prompter: Prompter,
        *,
        channel: NotificationChannel | None = None,
        linter: LinterRunner | None = None,
        notification_timeout: float | None = None,
    ) -> None:
        self._config = config
        self._prompter = prompter
        self._channel = channel if config.enable_notifications else None
        self._linter = linter or LinterRunner()
        self._notification_timeout = (
            settings.notification_timeout_seconds
            if notification_timeout is None
            else notification_timeout
        )

    async def decide(self, cwd: Path | str, *, error_count: int | None = None) -> bool:
        """Return ``True`` to commit, ``False`` to roll back."""
        if self._config.approval_mode == ApprovalMode.MANUAL:
            return await self._manual_approval()

        if error_count is None:
            error_count = await self._linter.error_count(self._config.linter, cwd)

        threshold = self._config.approval_on_error_count
        if error_count <= threshold:
            logger.info("Changes automatically approved (linter errors %d <= %d).", error_count, threshold)
            return True

        logger.warning(
            "Manual approval required: linter found %d error(s) (threshold is %d).",
            error_count,
            threshold,
        )
        return await self._manual_approval()

    async def _manual_approval(self) -> bool:
        if self._channel is not None:
            try:
                result = await asyncio.wait_for(
                    self._channel.request(self._config.project_id),
                    timeout=self._notification_timeout,
                )
            except asyncio.TimeoutError:
                result = NotificationResult.TIMEOUT
            if result == NotificationResult.APPROVED:
                logger.info("Approved via notification.")
                return True
            if result == NotificationResult.REJECTED:
                logger.info("Rejected via notification.")
                return False
            logger.info("Notification timed out; falling back to the terminal prompt.")

        return await self._prompter(APPROVAL_QUESTION)

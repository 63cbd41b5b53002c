"""Best-effort git branch creation after a commit.

Runs only after the transaction record is already ``committed``; any
failure here is logged and never touches the record or the files.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from patchwarden.core.shell import CommandRunner
from patchwarden.models.config import BranchTemplate, PatchConfig
from patchwarden.models.transactions import TransactionRecord

logger = logging.getLogger(__name__)

_MAX_SEGMENT_LENGTH = 70


def normalize_commit_message(message: str | None) -> str | None:
    """Collapse a commit message to its trimmed text, or ``None`` if blank."""
    if not message:
        return None
    text = message.strip()
    return text or None


def sanitize_branch_segment(text: str) -> str:
    """Turn free text into a branch-name segment."""
    segment = text.strip().lower()
    segment = re.sub(r"[^\w\s-]", "", segment)
    segment = re.sub(r"[\s_]+", "-", segment)
    segment = re.sub(r"-+", "-", segment)
    segment = segment.strip("-")
    return segment[:_MAX_SEGMENT_LENGTH]


def branch_name_for(record: TransactionRecord, config: PatchConfig) -> str | None:
    """Compute ``<prefix><segment>`` for *record*, or ``None`` if empty."""
    source = record.id
    if config.git_branch_template == BranchTemplate.COMMIT_MESSAGE:
        source = normalize_commit_message(record.commit_message) or ""
    segment = sanitize_branch_segment(source)
    if not segment:
        return None
    return f"{config.git_branch_prefix}{segment}"


async def create_branch_for(
    record: TransactionRecord,
    config: PatchConfig,
    runner: CommandRunner,
    cwd: Path | str,
) -> bool:
    """Create and switch to the branch for *record*. Returns success."""
    branch = branch_name_for(record, config)
    if branch is None:
        logger.warning(
            "Could not generate a branch name from commit message or id; skipping branch creation."
        )
        return False

    logger.info("Creating and switching to git branch %s", branch)
    command = f'git checkout -b "{branch}"'
    result = await runner.run(command, cwd)
    if result.ok:
        logger.info("Switched to new branch %s.", branch)
        return True

    if result.exit_code == 128 and "already exists" in result.stderr:
        logger.warning("Could not create branch %s because it already exists.", branch)
    else:
        logger.warning("Could not create git branch %s.", branch)
    logger.debug("%r failed with: %s", command, result.stderr)
    return False

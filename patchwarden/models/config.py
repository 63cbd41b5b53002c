"""Per-project patch configuration and per-call processing options."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class ApprovalMode(str, Enum):
    """How the approval gate decides whether to commit."""

    AUTO = "auto"
    MANUAL = "manual"


class BranchTemplate(str, Enum):
    """Source of the branch name segment for post-commit branch creation."""

    UUID = "uuid"
    COMMIT_MESSAGE = "commit_message"


class PatchConfig(BaseModel):
    """Project-level configuration consumed by the transaction coordinator.

    Loaded from the project's config file by the caller; the engine only
    sees the validated model.
    """

    model_config = ConfigDict(frozen=True)

    project_id: str
    approval_mode: ApprovalMode = ApprovalMode.AUTO
    approval_on_error_count: int = 0
    min_file_changes: int = 0  # 0 disables the lower bound
    max_file_changes: int | None = None  # None or 0 disables the upper bound
    linter: str = ""
    pre_command: str = ""
    post_command: str = ""
    enable_notifications: bool = True
    auto_git_branch: bool = False
    git_branch_prefix: str = "relay/"
    git_branch_template: BranchTemplate = BranchTemplate.UUID


class ProcessOptions(BaseModel):
    """Per-call options for ``TransactionCoordinator.process``."""

    model_config = ConfigDict(frozen=True)

    directory: str = "."
    yes: bool = False  # auto-approve every prompt
    notify_on_start: bool = False

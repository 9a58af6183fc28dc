"""Existence check results and provisioning outcomes."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class TargetPresence(str, Enum):
    """Whether the compliance file exists on the target branch tip."""
    PRESENT = "present"
    ABSENT = "absent"


class PRPresence(str, Enum):
    """Whether the compliance file is among the pull request's changed files."""
    PRESENT = "present"
    ABSENT = "absent"
    CHECK_FAILED = "check_failed"


class ExistenceResult(BaseModel):
    """Result of the two existence checks for one event."""

    model_config = ConfigDict(frozen=True)

    in_target: TargetPresence
    in_pr: Optional[PRPresence] = None  # None when the PR check was skipped
    failure_reason: Optional[str] = None


class ProvisioningDecision(str, Enum):
    """What the workflow should do given an ExistenceResult."""
    SKIP_ALREADY_IN_REPO = "skip_already_in_repo"
    SKIP_ALREADY_IN_PR = "skip_already_in_pr"
    CREATE = "create"
    ABORT = "abort"


class OutcomeStatus(str, Enum):
    """Terminal status of one workflow run."""
    SKIPPED_WRONG_BRANCH = "skipped_wrong_branch"
    SKIPPED_ALREADY_IN_REPO = "skipped_already_in_repo"
    SKIPPED_ALREADY_IN_PR = "skipped_already_in_pr"
    COMMITTED = "committed"
    FAILED = "failed"


class ProvisioningOutcome(BaseModel):
    """Terminal value of one workflow run."""

    model_config = ConfigDict(frozen=True)

    status: OutcomeStatus
    reason: Optional[str] = None

    @classmethod
    def failed(cls, reason: str) -> "ProvisioningOutcome":
        return cls(status=OutcomeStatus.FAILED, reason=reason)

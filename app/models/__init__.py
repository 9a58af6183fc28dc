"""Data models for the cursorignore checker."""

from .api_response import AdmissionDecision, WebhookResponse
from .outcome import (
    ExistenceResult,
    OutcomeStatus,
    PRPresence,
    ProvisioningDecision,
    ProvisioningOutcome,
    TargetPresence,
)
from .pr_event import InvalidEventPayload, PullRequestAction, PullRequestEvent

__all__ = [
    # Pull request event models
    "PullRequestEvent",
    "PullRequestAction",
    "InvalidEventPayload",
    # Existence and outcome models
    "TargetPresence",
    "PRPresence",
    "ExistenceResult",
    "ProvisioningDecision",
    "OutcomeStatus",
    "ProvisioningOutcome",
    # API response models
    "WebhookResponse",
    "AdmissionDecision",
]

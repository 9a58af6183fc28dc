"""
Pure policy functions: which branches are policed, and what to do once the
existence checks are in.
"""

from app.models.outcome import (
    ExistenceResult,
    PRPresence,
    ProvisioningDecision,
    TargetPresence,
)


POLICED_BRANCHES = frozenset({"master", "duet", "cocome"})


def should_process(target_branch: str) -> bool:
    """Return True if pull requests into ``target_branch`` are policed."""
    return target_branch in POLICED_BRANCHES


def decide(result: ExistenceResult) -> ProvisioningDecision:
    """
    Combine the two existence facts into a single decision.

    Args:
        result: Existence checks for one event

    Returns:
        ProvisioningDecision
    """
    if result.in_target == TargetPresence.PRESENT:
        return ProvisioningDecision.SKIP_ALREADY_IN_REPO
    if result.in_pr == PRPresence.PRESENT:
        return ProvisioningDecision.SKIP_ALREADY_IN_PR
    if result.in_pr == PRPresence.ABSENT:
        return ProvisioningDecision.CREATE
    # PR check failed, or was never run while the target was absent
    return ProvisioningDecision.ABORT

"""
Workflow Orchestrator.

Runs one pull request event through the provisioning sequence:

    received -> filtered -> repo_checked -> pr_checked -> committing -> done

Any state after ``received`` may end in ``failed``. Errors are caught here
and reported as a failed outcome; nothing escapes to the server.
"""

from app.models.outcome import (
    OutcomeStatus,
    ProvisioningDecision,
    ProvisioningOutcome,
)
from app.models.pr_event import PullRequestEvent
from app.services.existence_oracle import ExistenceOracle
from app.services.file_committer import FileCommitter
from app.services.policy import POLICED_BRANCHES, decide, should_process
from app.utils.logging import get_logger, log_error_with_context, log_pr_event


logger = get_logger(__name__, component="workflow")


class ProvisioningWorkflow:
    """Ensures a policed pull request carries the compliance file."""

    def __init__(self, oracle: ExistenceOracle, committer: FileCommitter):
        self.oracle = oracle
        self.committer = committer

    async def run(self, event: PullRequestEvent) -> ProvisioningOutcome:
        """
        Process one pull request event.

        Args:
            event: Pull request event

        Returns:
            Terminal ProvisioningOutcome
        """
        log = logger.with_context(
            pr_number=event.number,
            repository=event.repository,
            delivery_id=event.delivery_id,
        )
        log_pr_event(
            log.with_context(operation="received"),
            pr_number=event.number,
            repository=event.repository,
            action=event.action.value,
            delivery_id=event.delivery_id,
        )

        try:
            outcome = await self._run(event, log)
        except Exception as e:
            log_error_with_context(
                log.with_context(operation="failed"),
                f"Error handling {event.label} PR #{event.number}: {e}",
                e,
            )
            outcome = ProvisioningOutcome.failed(str(e))

        log.with_context(operation="done").info(
            f"Finished {event.label} PR #{event.number}: {outcome.status.value}",
            extra={"outcome": outcome.status.value, "reason": outcome.reason},
        )
        return outcome

    async def _run(self, event: PullRequestEvent, log) -> ProvisioningOutcome:
        log.with_context(operation="filtered").info(
            f"Handling {event.label} PR #{event.number} into {event.target_branch}"
        )
        if not should_process(event.target_branch):
            log.with_context(operation="filtered").info(
                f"PR #{event.number} targets {event.target_branch}, not one of "
                f"{'/'.join(sorted(POLICED_BRANCHES))}; skipping"
            )
            return ProvisioningOutcome(status=OutcomeStatus.SKIPPED_WRONG_BRANCH)

        result = await self.oracle.check(event)
        decision = decide(result)

        if decision == ProvisioningDecision.SKIP_ALREADY_IN_REPO:
            log.with_context(operation="repo_checked").info(
                f"{event.repository} already has the file on {event.target_branch}; skipping"
            )
            return ProvisioningOutcome(status=OutcomeStatus.SKIPPED_ALREADY_IN_REPO)

        if decision == ProvisioningDecision.SKIP_ALREADY_IN_PR:
            log.with_context(operation="pr_checked").info(
                f"PR #{event.number} already contains the file; skipping"
            )
            return ProvisioningOutcome(status=OutcomeStatus.SKIPPED_ALREADY_IN_PR)

        if decision == ProvisioningDecision.ABORT:
            reason = result.failure_reason or "pull request file check failed"
            log.with_context(operation="pr_checked").error(
                f"Aborting PR #{event.number}: {reason}"
            )
            return ProvisioningOutcome.failed(reason)

        log.with_context(operation="committing").info(
            f"PR #{event.number} and {event.target_branch} both lack the file; "
            f"committing to {event.source_branch}"
        )
        return await self.committer.commit(event)

"""
Existence Oracle.

Answers two questions for a pull request event: is the compliance file on
the target branch tip, and is it among the pull request's changed files.
The second question is only asked when the first answer is no.
"""

from app.models.outcome import ExistenceResult, PRPresence, TargetPresence
from app.models.pr_event import PullRequestEvent
from app.services.github_client import ContentLookup, GitHubAPIError, GitHubClient
from app.utils.logging import get_logger


logger = get_logger(__name__, component="existence_oracle")

COMPLIANCE_FILE_PATH = ".cursorignore"


class ExistenceOracle:
    """Queries GitHub for the presence of the compliance file."""

    def __init__(self, github: GitHubClient, path: str = COMPLIANCE_FILE_PATH):
        self.github = github
        self.path = path

    async def check(self, event: PullRequestEvent) -> ExistenceResult:
        """
        Run the target-branch check and, if needed, the PR-files check.

        Args:
            event: Pull request event

        Returns:
            ExistenceResult

        Raises:
            GitHubAPIError: If the target-branch lookup fails
        """
        log = logger.with_context(
            pr_number=event.number,
            repository=event.repository,
            delivery_id=event.delivery_id,
        )

        lookup = await self.github.get_content(
            event.repository_owner,
            event.repository_name,
            self.path,
            ref=event.target_branch,
            installation_id=event.installation_id,
        )
        if lookup == ContentLookup.FOUND:
            log.with_context(operation="check_target").info(
                f"{self.path} already present on {event.target_branch} in {event.repository}"
            )
            return ExistenceResult(in_target=TargetPresence.PRESENT)

        try:
            filenames = await self.github.list_pull_request_files(
                event.repository_owner,
                event.repository_name,
                event.number,
                installation_id=event.installation_id,
            )
        except GitHubAPIError as e:
            log.with_context(operation="check_pr").error(
                f"Failed to list files of PR #{event.number}: {e}",
                extra={"status_code": e.status_code},
            )
            return ExistenceResult(
                in_target=TargetPresence.ABSENT,
                in_pr=PRPresence.CHECK_FAILED,
                failure_reason=str(e),
            )

        if self.path in filenames:
            log.with_context(operation="check_pr").info(
                f"PR #{event.number} already adds {self.path}"
            )
            return ExistenceResult(in_target=TargetPresence.ABSENT, in_pr=PRPresence.PRESENT)

        return ExistenceResult(in_target=TargetPresence.ABSENT, in_pr=PRPresence.ABSENT)

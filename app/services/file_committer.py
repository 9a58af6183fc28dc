"""
File Committer component.

Commits the default compliance file onto a pull request's source branch.
"""

from pathlib import Path
from typing import Optional

import httpx

from app.models.outcome import OutcomeStatus, ProvisioningOutcome
from app.models.pr_event import PullRequestEvent
from app.services.existence_oracle import COMPLIANCE_FILE_PATH
from app.services.github_client import GitHubAPIError, GitHubClient
from app.utils.logging import get_logger, log_error_with_context


logger = get_logger(__name__, component="file_committer")

DEFAULT_TEMPLATE_PATH = Path(__file__).resolve().parent / "templates" / ".cursorignore"

FALLBACK_CONTENT = "conf/\nbuild/\ntools/\nscripts/\ndeploy/"


class ConfigurationError(Exception):
    """Raised when the compliance file template cannot be read."""
    pass


def read_template(template_path: Path) -> str:
    """
    Read the compliance file template.

    Raises:
        ConfigurationError: If the file cannot be read
    """
    try:
        return template_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read template {template_path}: {e}") from e


class FileCommitter:
    """Writes the compliance file to a pull request's source branch."""

    def __init__(
        self,
        github: GitHubClient,
        template_path: Optional[Path] = None,
        path: str = COMPLIANCE_FILE_PATH,
    ):
        self.github = github
        self.template_path = Path(template_path) if template_path else DEFAULT_TEMPLATE_PATH
        self.path = path

    def load_content(self) -> str:
        """Return the template body, or the fallback body if it is unreadable."""
        try:
            return read_template(self.template_path)
        except ConfigurationError as e:
            logger.with_context(operation="load_template").error(
                f"{e}; using built-in default content"
            )
            return FALLBACK_CONTENT

    @staticmethod
    def commit_message(target_branch: str) -> str:
        return f"Add .cursorignore for {target_branch} branch"

    async def commit(self, event: PullRequestEvent) -> ProvisioningOutcome:
        """
        Commit the compliance file onto the event's source branch.

        Args:
            event: Pull request event

        Returns:
            ProvisioningOutcome with status COMMITTED or FAILED
        """
        log = logger.with_context(
            operation="commit",
            pr_number=event.number,
            repository=event.repository,
            delivery_id=event.delivery_id,
        )
        content = self.load_content()

        try:
            await self.github.create_or_update_file(
                event.repository_owner,
                event.repository_name,
                self.path,
                content.encode("utf-8"),
                message=self.commit_message(event.target_branch),
                branch=event.source_branch,
                installation_id=event.installation_id,
            )
        except (GitHubAPIError, httpx.HTTPError) as e:
            log_error_with_context(
                log,
                f"Failed to commit {self.path} to {event.source_branch} for PR #{event.number}",
                e,
                source_branch=event.source_branch,
                target_branch=event.target_branch,
            )
            return ProvisioningOutcome.failed(str(e))

        log.info(f"Committed {self.path} to {event.source_branch} for PR #{event.number}")
        return ProvisioningOutcome(status=OutcomeStatus.COMMITTED)

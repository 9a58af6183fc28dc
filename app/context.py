"""
Application context.

Everything a request handler needs, built once at startup in this order:
settings, GitHub client, admission gate, existence oracle, file committer,
workflow. Components receive their collaborators from here rather than
reading module-level globals.
"""

from dataclasses import dataclass
from typing import Optional

import httpx

from app.config import Settings
from app.services.admission import AdmissionGate
from app.services.existence_oracle import ExistenceOracle
from app.services.file_committer import FileCommitter
from app.services.github_auth import load_private_key
from app.services.github_client import GitHubClient
from app.services.workflow import ProvisioningWorkflow


@dataclass
class AppContext:
    """Process-wide, read-only collaborators."""

    settings: Settings
    github: GitHubClient
    admission_gate: AdmissionGate
    workflow: ProvisioningWorkflow

    @classmethod
    def build(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AppContext":
        github = GitHubClient(
            token=settings.github_token,
            base_url=settings.github_api_url,
            transport=transport,
            app_id=settings.app_id,
            private_key=load_private_key(settings.private_key, settings.private_key_path),
        )
        workflow = ProvisioningWorkflow(
            oracle=ExistenceOracle(github),
            committer=FileCommitter(github, template_path=settings.template_path),
        )
        return cls(
            settings=settings,
            github=github,
            admission_gate=AdmissionGate(settings.webhook_secret),
            workflow=workflow,
        )

    async def close(self) -> None:
        await self.github.close()

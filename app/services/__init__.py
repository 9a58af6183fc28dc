"""Business logic services package."""

from app.services.admission import (
    AdmissionError,
    AdmissionGate,
    verify_signature,
)
from app.services.existence_oracle import (
    COMPLIANCE_FILE_PATH,
    ExistenceOracle,
)
from app.services.file_committer import (
    ConfigurationError,
    FALLBACK_CONTENT,
    FileCommitter,
)
from app.services.github_auth import (
    GitHubAppAuth,
    GitHubAuthError,
    load_private_key,
)
from app.services.github_client import (
    ContentLookup,
    GitHubAPIError,
    GitHubClient,
)
from app.services.policy import (
    POLICED_BRANCHES,
    decide,
    should_process,
)
from app.services.workflow import ProvisioningWorkflow

__all__ = [
    'AdmissionError',
    'AdmissionGate',
    'verify_signature',
    'COMPLIANCE_FILE_PATH',
    'ExistenceOracle',
    'ConfigurationError',
    'FALLBACK_CONTENT',
    'FileCommitter',
    'GitHubAppAuth',
    'GitHubAuthError',
    'load_private_key',
    'ContentLookup',
    'GitHubAPIError',
    'GitHubClient',
    'POLICED_BRANCHES',
    'decide',
    'should_process',
    'ProvisioningWorkflow',
]

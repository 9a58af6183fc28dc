"""Pull request event data models."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class InvalidEventPayload(ValueError):
    """Raised when a pull_request payload lacks a required field."""
    pass


class PullRequestAction(str, Enum):
    """Pull request actions that trigger the provisioning workflow."""
    OPENED = "opened"
    REOPENED = "reopened"


class PullRequestEvent(BaseModel):
    """Pull request event from a GitHub webhook delivery."""

    model_config = ConfigDict(frozen=True)

    number: int
    target_branch: str
    source_branch: str
    repository_owner: str
    repository_name: str
    action: PullRequestAction
    delivery_id: Optional[str] = None
    installation_id: Optional[int] = None

    @property
    def repository(self) -> str:
        """Repository full name, owner/name."""
        return f"{self.repository_owner}/{self.repository_name}"

    @property
    def label(self) -> str:
        return "created" if self.action == PullRequestAction.OPENED else "reopened"

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], delivery_id: Optional[str] = None) -> "PullRequestEvent":
        """
        Build an event from a GitHub ``pull_request`` webhook payload.

        Args:
            payload: Parsed JSON body of the delivery
            delivery_id: Value of the X-GitHub-Delivery header

        Returns:
            PullRequestEvent

        Raises:
            InvalidEventPayload: If a required field is missing or a
                nested section is not a JSON object
        """
        if not isinstance(payload, dict):
            raise InvalidEventPayload("Payload must be a JSON object")

        pr = _section(payload, "pull_request")
        repository = _section(payload, "repository")
        installation = _section(payload, "installation")

        fields = {
            "number": pr.get("number"),
            "target_branch": _section(pr, "base", "pull_request.").get("ref"),
            "source_branch": _section(pr, "head", "pull_request.").get("ref"),
            "repository_owner": _section(repository, "owner", "repository.").get("login"),
            "repository_name": repository.get("name"),
            "action": payload.get("action"),
        }

        missing = [name for name, value in fields.items() if value in (None, "")]
        if missing:
            raise InvalidEventPayload(f"Missing pull request fields: {', '.join(missing)}")

        try:
            return cls(
                delivery_id=delivery_id,
                installation_id=installation.get("id"),
                **fields,
            )
        except ValueError as e:
            raise InvalidEventPayload(str(e)) from e


def _section(parent: Dict[str, Any], key: str, prefix: str = "") -> Dict[str, Any]:
    """Return a nested object, {} when absent; raise if it is not an object."""
    value = parent.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidEventPayload(f"{prefix}{key} must be a JSON object")
    return value

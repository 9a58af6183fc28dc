"""
Unit tests for the provisioning workflow.

GitHub is faked with an httpx.MockTransport that keeps a tiny in-memory
picture of one repository: files on each branch and files changed by the
pull request.
"""

import base64
import json

import httpx
import pytest
from unittest.mock import AsyncMock, Mock

from app.models.outcome import ExistenceResult, OutcomeStatus, PRPresence, TargetPresence
from app.models.pr_event import PullRequestAction, PullRequestEvent
from app.services.existence_oracle import ExistenceOracle
from app.services.file_committer import FALLBACK_CONTENT, FileCommitter, read_template
from app.services.github_client import GitHubClient
from app.services.workflow import ProvisioningWorkflow


class FakeGitHub:
    """Records calls and answers them from in-memory state."""

    def __init__(self, branch_files=None, pr_files=None, content_status=None):
        self.branch_files = branch_files or {}
        self.pr_files = list(pr_files or [])
        self.content_status = content_status
        self.calls = []
        self.commits = []
        self.authorizations = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "POST" and path.startswith("/app/installations/"):
            self.calls.append("create_installation_token")
            return httpx.Response(201, json={"token": "ghs_inst", "expires_at": "2099-01-01T00:00:00Z"})

        self.authorizations.append(request.headers.get("Authorization"))
        if request.method == "GET" and "/contents/" in path:
            self.calls.append("get_content")
            if self.content_status:
                return httpx.Response(self.content_status, json={"message": "Server Error"})
            ref = request.url.params["ref"]
            filename = path.split("/contents/", 1)[1]
            if filename in self.branch_files.get(ref, set()):
                return httpx.Response(200, json={"path": filename})
            return httpx.Response(404, json={"message": "Not Found"})

        if request.method == "GET" and path.endswith("/files"):
            self.calls.append("list_pull_request_files")
            return httpx.Response(200, json=[{"filename": name} for name in self.pr_files])

        if request.method == "PUT" and "/contents/" in path:
            self.calls.append("create_or_update_file")
            body = json.loads(request.content)
            filename = path.split("/contents/", 1)[1]
            self.commits.append({
                "path": filename,
                "branch": body["branch"],
                "message": body["message"],
                "content": base64.b64decode(body["content"]).decode("utf-8"),
            })
            # The committed file now shows up in the pull request's changes
            self.pr_files.append(filename)
            return httpx.Response(201, json={"content": {"path": filename}})

        return httpx.Response(500, json={"message": f"unexpected {request.method} {path}"})


def make_event(target_branch="master", source_branch="feature-x", action=PullRequestAction.OPENED):
    return PullRequestEvent(
        number=17,
        target_branch=target_branch,
        source_branch=source_branch,
        repository_owner="acme",
        repository_name="widgets",
        action=action,
        delivery_id="delivery-1",
    )


def make_workflow(fake, template_path=None):
    github = GitHubClient(token="ghs_test", transport=httpx.MockTransport(fake))
    workflow = ProvisioningWorkflow(
        oracle=ExistenceOracle(github),
        committer=FileCommitter(github, template_path=template_path),
    )
    return workflow, github


@pytest.mark.asyncio
async def test_wrong_branch_makes_no_remote_calls():
    fake = FakeGitHub()
    workflow, github = make_workflow(fake)

    outcome = await workflow.run(make_event(target_branch="develop"))
    await github.close()

    assert outcome.status == OutcomeStatus.SKIPPED_WRONG_BRANCH
    assert fake.calls == []


@pytest.mark.asyncio
async def test_present_in_target_skips_pr_check():
    fake = FakeGitHub(branch_files={"master": {".cursorignore"}})
    workflow, github = make_workflow(fake)

    outcome = await workflow.run(make_event())
    await github.close()

    assert outcome.status == OutcomeStatus.SKIPPED_ALREADY_IN_REPO
    assert fake.calls == ["get_content"]


@pytest.mark.asyncio
async def test_present_in_pr_skips_commit():
    fake = FakeGitHub(pr_files=["README.md", ".cursorignore"])
    workflow, github = make_workflow(fake)

    outcome = await workflow.run(make_event())
    await github.close()

    assert outcome.status == OutcomeStatus.SKIPPED_ALREADY_IN_PR
    assert fake.calls == ["get_content", "list_pull_request_files"]
    assert fake.commits == []


@pytest.mark.asyncio
async def test_absent_everywhere_commits_template_to_source_branch():
    fake = FakeGitHub(pr_files=["src/app.py"])
    workflow, github = make_workflow(fake)

    outcome = await workflow.run(make_event())
    await github.close()

    assert outcome.status == OutcomeStatus.COMMITTED
    assert fake.calls == ["get_content", "list_pull_request_files", "create_or_update_file"]
    assert len(fake.commits) == 1
    commit = fake.commits[0]
    assert commit["path"] == ".cursorignore"
    assert commit["branch"] == "feature-x"
    assert commit["message"] == "Add .cursorignore for master branch"
    assert commit["content"] == read_template(FileCommitter(github).template_path)


@pytest.mark.asyncio
async def test_unreadable_template_commits_fallback(tmp_path):
    fake = FakeGitHub()
    workflow, github = make_workflow(fake, template_path=tmp_path / "missing")

    outcome = await workflow.run(make_event())
    await github.close()

    assert outcome.status == OutcomeStatus.COMMITTED
    assert fake.commits[0]["content"] == FALLBACK_CONTENT


@pytest.mark.asyncio
async def test_redelivery_after_commit_is_skipped():
    fake = FakeGitHub()
    workflow, github = make_workflow(fake)

    first = await workflow.run(make_event())
    second = await workflow.run(make_event(action=PullRequestAction.REOPENED))
    await github.close()

    assert first.status == OutcomeStatus.COMMITTED
    assert second.status == OutcomeStatus.SKIPPED_ALREADY_IN_PR
    assert len(fake.commits) == 1


@pytest.mark.asyncio
async def test_target_lookup_server_error_fails_without_further_calls():
    fake = FakeGitHub(content_status=500)
    workflow, github = make_workflow(fake)

    outcome = await workflow.run(make_event())
    await github.close()

    assert outcome.status == OutcomeStatus.FAILED
    assert "500" in outcome.reason
    assert fake.calls == ["get_content"]


@pytest.mark.asyncio
async def test_pr_check_failure_aborts_before_commit():
    oracle = Mock()
    oracle.check = AsyncMock(return_value=ExistenceResult(
        in_target=TargetPresence.ABSENT,
        in_pr=PRPresence.CHECK_FAILED,
        failure_reason="list_pull_request_files failed: HTTP 502: Bad Gateway",
    ))
    committer = Mock()
    committer.commit = AsyncMock()

    outcome = await ProvisioningWorkflow(oracle, committer).run(make_event())

    assert outcome.status == OutcomeStatus.FAILED
    assert "502" in outcome.reason
    committer.commit.assert_not_called()


@pytest.mark.asyncio
async def test_unexpected_error_is_contained():
    oracle = Mock()
    oracle.check = AsyncMock(side_effect=RuntimeError("unexpected"))
    committer = Mock()
    committer.commit = AsyncMock()

    outcome = await ProvisioningWorkflow(oracle, committer).run(make_event())

    assert outcome.status == OutcomeStatus.FAILED
    assert outcome.reason == "unexpected"
    committer.commit.assert_not_called()


@pytest.mark.asyncio
async def test_app_installation_token_used_for_every_call(private_key_pem):
    fake = FakeGitHub()
    github = GitHubClient(transport=httpx.MockTransport(fake), app_id="4242", private_key=private_key_pem)
    workflow = ProvisioningWorkflow(oracle=ExistenceOracle(github), committer=FileCommitter(github))
    event = make_event().model_copy(update={"installation_id": 99})

    outcome = await workflow.run(event)
    await github.close()

    assert outcome.status == OutcomeStatus.COMMITTED
    assert fake.calls == [
        "create_installation_token",
        "get_content",
        "list_pull_request_files",
        "create_or_update_file",
    ]
    assert fake.authorizations == ["Bearer ghs_inst"] * 3

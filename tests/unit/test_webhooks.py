"""
Unit tests for webhook endpoints.
"""

import json

import pytest
from unittest.mock import AsyncMock
import hashlib
import hmac

from fastapi.testclient import TestClient

from app.config import Settings
from app.main import create_app
from app.models.pr_event import PullRequestAction


SECRET = "test_secret"


@pytest.fixture
def application():
    """Create an app with a configured secret and a mocked workflow."""
    app = create_app(Settings(_env_file=None, webhook_secret=SECRET, github_token="ghs_test"))
    app.state.context.workflow.run = AsyncMock()
    return app


@pytest.fixture
def client(application):
    """Create test client."""
    return TestClient(application)


def generate_signature(payload: bytes, secret: str) -> str:
    """Generate webhook signature."""
    return "sha256=" + hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256
    ).hexdigest()


def pr_payload(action="opened", base="master", head="feature-x"):
    return {
        "action": action,
        "number": 9,
        "pull_request": {
            "number": 9,
            "base": {"ref": base},
            "head": {"ref": head},
        },
        "repository": {
            "name": "widgets",
            "owner": {"login": "acme"},
        },
    }


def post(client, payload, event="pull_request", signed=True, **extra_headers):
    body = json.dumps(payload).encode()
    headers = {
        "Content-Type": "application/json",
        "X-GitHub-Event": event,
        "X-GitHub-Delivery": "delivery-123",
    }
    if signed:
        headers["X-Hub-Signature-256"] = generate_signature(body, SECRET)
    headers.update(extra_headers)
    return client.post("/", content=body, headers=headers)


def test_pr_opened_is_accepted(client, application):
    """Test a signed pull_request.opened delivery runs the workflow."""
    response = post(client, pr_payload())

    assert response.status_code == 200
    assert response.json()["status"] == "accepted"
    assert response.json()["delivery_id"] == "delivery-123"

    run = application.state.context.workflow.run
    run.assert_awaited_once()
    event = run.await_args.args[0]
    assert event.number == 9
    assert event.target_branch == "master"
    assert event.source_branch == "feature-x"
    assert event.action == PullRequestAction.OPENED
    assert event.delivery_id == "delivery-123"


def test_pr_reopened_is_accepted(client, application):
    response = post(client, pr_payload(action="reopened"))

    assert response.status_code == 200
    assert response.json()["status"] == "accepted"
    assert application.state.context.workflow.run.await_args.args[0].action == PullRequestAction.REOPENED


def test_other_actions_are_ignored(client, application):
    response = post(client, pr_payload(action="closed"))

    assert response.status_code == 200
    assert response.json()["status"] == "ignored"
    application.state.context.workflow.run.assert_not_called()


def test_other_events_are_ignored(client, application):
    response = post(client, {"action": "created", "repository": {}}, event="repository")

    assert response.status_code == 200
    assert response.json()["status"] == "ignored"
    application.state.context.workflow.run.assert_not_called()


def test_missing_headers_rejected(client, application):
    body = json.dumps(pr_payload()).encode()

    response = client.post("/", content=body, headers={"X-Hub-Signature-256": generate_signature(body, SECRET)})

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "missing_headers"
    application.state.context.workflow.run.assert_not_called()


def test_invalid_signature_rejected(client, application):
    response = post(client, pr_payload(), signed=False, **{"X-Hub-Signature-256": "sha256=" + "0" * 64})

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "invalid_signature"
    application.state.context.workflow.run.assert_not_called()


def test_missing_signature_rejected(client, application):
    response = post(client, pr_payload(), signed=False, **{"User-Agent": "curl/8.0"})

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "missing_signature"


def test_trusted_relay_without_signature_accepted(client, application):
    response = post(client, pr_payload(), signed=False, **{"User-Agent": "smee.io/1.0"})

    assert response.status_code == 200
    assert response.json()["status"] == "accepted"
    application.state.context.workflow.run.assert_awaited_once()


def test_invalid_json_rejected(client):
    body = b"{not json"
    response = client.post(
        "/",
        content=body,
        headers={
            "X-GitHub-Event": "pull_request",
            "X-GitHub-Delivery": "delivery-123",
            "X-Hub-Signature-256": generate_signature(body, SECRET),
        },
    )

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "invalid_json"


def test_incomplete_pr_payload_rejected(client, application):
    payload = pr_payload()
    del payload["pull_request"]["head"]

    response = post(client, payload)

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "invalid_payload"
    application.state.context.workflow.run.assert_not_called()


def test_no_secret_accepts_unsigned():
    app = create_app(Settings(_env_file=None, github_token="ghs_test"))
    app.state.context.workflow.run = AsyncMock()
    client = TestClient(app)

    response = post(client, pr_payload(), signed=False)

    assert response.status_code == 200
    assert response.json()["status"] == "accepted"


@pytest.mark.parametrize("section", ["base", "head"])
def test_branch_given_as_string_rejected(client, application, section):
    payload = pr_payload()
    payload["pull_request"][section] = "master"

    response = post(client, payload)

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "invalid_payload"
    application.state.context.workflow.run.assert_not_called()


def test_pull_request_given_as_string_rejected(client, application):
    payload = pr_payload()
    payload["pull_request"] = "9"

    response = post(client, payload)

    assert response.status_code == 400
    assert response.json()["detail"]["reason"] == "invalid_payload"
    application.state.context.workflow.run.assert_not_called()

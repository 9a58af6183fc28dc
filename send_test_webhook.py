#!/usr/bin/env python3
"""
Send a signed test webhook to a locally running cursorignore checker.
Reads WEBHOOK_SECRET from the environment (or .env) and signs the payload
the same way GitHub does.
"""

import argparse
import hashlib
import hmac
import json
import os
import sys
import uuid
from typing import Optional

import httpx
from dotenv import load_dotenv


def create_signature(body: bytes, secret: str) -> str:
    """Return the X-Hub-Signature-256 value for a body."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def build_payload(owner: str, repo: str, number: int, base: str, head: str, action: str,
                  installation_id: Optional[int] = None) -> dict:
    payload = {
        "action": action,
        "number": number,
        "pull_request": {
            "number": number,
            "base": {"ref": base},
            "head": {"ref": head},
        },
        "repository": {
            "name": repo,
            "owner": {"login": owner},
        },
    }
    if installation_id is not None:
        payload["installation"] = {"id": installation_id}
    return payload


def send_test_webhook(url: str, event: str, payload: dict, secret: str) -> httpx.Response:
    """Post a signed delivery and print the response."""
    body = json.dumps(payload).encode()
    delivery_id = uuid.uuid4().hex
    headers = {
        "Content-Type": "application/json",
        "X-GitHub-Event": event,
        "X-GitHub-Delivery": delivery_id,
        "X-Hub-Signature-256": create_signature(body, secret),
        "User-Agent": "GitHub-Hookshot/Test",
    }

    print(f"Sending test webhook ({event}) to {url}...")
    print(f"X-GitHub-Delivery: {delivery_id}")
    print(f"X-Hub-Signature-256: {headers['X-Hub-Signature-256']}")

    response = httpx.post(url, content=body, headers=headers, timeout=10.0)
    print(f"Response status: {response.status_code}")
    print(f"Response body: {response.text}")
    return response


def main() -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--url", default=f"http://localhost:{os.getenv('PORT', '3000')}/")
    parser.add_argument("--owner", default="test-org")
    parser.add_argument("--repo", default="intl-test-repo")
    parser.add_argument("--number", type=int, default=1)
    parser.add_argument("--base", default="master")
    parser.add_argument("--head", default="feature-x")
    parser.add_argument("--action", default="opened", choices=["opened", "reopened"])
    parser.add_argument("--installation-id", type=int, default=None)
    args = parser.parse_args()

    secret = os.getenv("WEBHOOK_SECRET")
    if not secret:
        print("Error: WEBHOOK_SECRET is not set")
        sys.exit(1)

    payload = build_payload(
        args.owner, args.repo, args.number, args.base, args.head, args.action, args.installation_id
    )
    try:
        response = send_test_webhook(args.url, "pull_request", payload, secret)
    except httpx.HTTPError as e:
        print(f"Request failed: {e}")
        sys.exit(1)

    if response.status_code >= 400:
        sys.exit(1)


if __name__ == "__main__":
    main()

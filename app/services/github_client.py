"""
GitHub REST client for the compliance file workflow.

Wraps the three GitHub calls the workflow needs:
- get file content at a path on a ref
- list the files changed by a pull request
- create or update a file on a branch

A 404 from the content lookup is returned as ``ContentLookup.NOT_FOUND``.
Every other failure is raised as ``GitHubAPIError``.

Calls authenticate with a static token when one is configured; otherwise
as the GitHub App, using an installation token for the installation that
sent the delivery.
"""

import base64
import time
from enum import Enum
from typing import Dict, List, Optional

import httpx

from app.services.github_auth import GitHubAppAuth, GitHubAuthError
from app.utils.logging import get_logger, log_api_call


logger = get_logger(__name__, component="github_client")

GITHUB_API_VERSION = "2022-11-28"
USER_AGENT = "cursorignore-checker"


class GitHubAPIError(Exception):
    """A GitHub call failed for any reason other than a content 404."""

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None):
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"{operation} failed: {message}")


class ContentLookup(str, Enum):
    """Outcome of a content lookup that did not fail."""
    FOUND = "found"
    NOT_FOUND = "not_found"


class GitHubClient:
    """
    Async client for the GitHub REST API.

    The underlying ``httpx.AsyncClient`` is shared by all concurrent
    deliveries; no retries are performed.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = "https://api.github.com",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        app_id: Optional[str] = None,
        private_key: Optional[str] = None,
    ):
        """
        Args:
            token: Static token; overrides app authentication when set
            base_url: GitHub API root
            transport: Optional transport, used by tests to fake GitHub
            app_id: GitHub App id
            private_key: PEM private key of the GitHub App
        """
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": USER_AGENT,
        }

        self.token = token or None
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            transport=transport,
        )
        self.app_auth: Optional[GitHubAppAuth] = None
        if not self.token and app_id and private_key:
            self.app_auth = GitHubAppAuth(app_id, private_key, self._client)

    async def close(self) -> None:
        await self._client.aclose()

    async def _auth_headers(self, installation_id: Optional[int]) -> Dict[str, str]:
        """
        Build the Authorization header for one call.

        Raises:
            GitHubAPIError: If an installation token cannot be obtained
        """
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        if self.app_auth is None:
            return {}
        if installation_id is None:
            raise GitHubAPIError("authenticate", "delivery carries no installation id")
        try:
            token = await self.app_auth.installation_token(installation_id)
        except GitHubAuthError as e:
            raise GitHubAPIError("authenticate", str(e)) from e
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        installation_id: Optional[int] = None,
        allow_not_found: bool = False,
        **kwargs,
    ) -> httpx.Response:
        """
        Send one request and translate failures into GitHubAPIError.

        Args:
            operation: Name used in logs and errors
            method: HTTP method
            url: Path or absolute URL
            installation_id: Installation to authenticate as, for app auth
            allow_not_found: Return 404 responses instead of raising
            **kwargs: Passed to httpx

        Returns:
            The response (2xx, or 404 when allowed)

        Raises:
            GitHubAPIError: On auth failures, transport errors and non-2xx responses
        """
        headers = await self._auth_headers(installation_id)

        start_time = time.time()
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            duration_ms = (time.time() - start_time) * 1000
            log_api_call(
                logger.with_context(operation=operation),
                service="github",
                endpoint=url,
                method=method,
                duration_ms=duration_ms,
                error=str(e),
            )
            raise GitHubAPIError(operation, str(e)) from e

        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code

        if status_code == 404 and allow_not_found:
            log_api_call(
                logger.with_context(operation=operation),
                service="github",
                endpoint=url,
                method=method,
                status_code=status_code,
                duration_ms=duration_ms,
            )
            return response

        if status_code >= 400:
            message = _error_message(response)
            log_api_call(
                logger.with_context(operation=operation),
                service="github",
                endpoint=url,
                method=method,
                status_code=status_code,
                duration_ms=duration_ms,
                error=message,
            )
            raise GitHubAPIError(operation, f"HTTP {status_code}: {message}", status_code=status_code)

        log_api_call(
            logger.with_context(operation=operation),
            service="github",
            endpoint=url,
            method=method,
            status_code=status_code,
            duration_ms=duration_ms,
        )
        return response

    async def get_content(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: str,
        installation_id: Optional[int] = None,
    ) -> ContentLookup:
        """
        Look up a file at a path on a ref.

        Args:
            owner: Repository owner login
            repo: Repository name
            path: File path inside the repository
            ref: Branch, tag or commit
            installation_id: Installation to authenticate as

        Returns:
            ContentLookup.FOUND or ContentLookup.NOT_FOUND

        Raises:
            GitHubAPIError: For any failure other than 404
        """
        response = await self._request(
            "get_content",
            "GET",
            f"/repos/{owner}/{repo}/contents/{path}",
            installation_id=installation_id,
            params={"ref": ref},
            allow_not_found=True,
        )
        if response.status_code == 404:
            return ContentLookup.NOT_FOUND
        return ContentLookup.FOUND

    async def list_pull_request_files(
        self,
        owner: str,
        repo: str,
        number: int,
        installation_id: Optional[int] = None,
    ) -> List[str]:
        """
        List the filenames changed by a pull request, following pagination.

        Args:
            owner: Repository owner login
            repo: Repository name
            number: Pull request number
            installation_id: Installation to authenticate as

        Returns:
            Filenames in the order GitHub returns them

        Raises:
            GitHubAPIError: If any page fails
        """
        filenames: List[str] = []
        url: Optional[str] = f"/repos/{owner}/{repo}/pulls/{number}/files"
        params: Optional[dict] = {"per_page": 100}

        while url:
            response = await self._request(
                "list_pull_request_files",
                "GET",
                url,
                installation_id=installation_id,
                params=params,
            )
            filenames.extend(item.get("filename", "") for item in response.json())
            url = response.links.get("next", {}).get("url")
            # The next link already carries the query string
            params = None

        return filenames

    async def create_or_update_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: bytes,
        message: str,
        branch: str,
        installation_id: Optional[int] = None,
    ) -> dict:
        """
        Write a file's full content to a branch.

        Only used after the file was found absent, so no blob sha is sent.

        Args:
            owner: Repository owner login
            repo: Repository name
            path: File path inside the repository
            content: Raw file bytes, base64-encoded for transport here
            message: Commit message
            branch: Branch to commit onto
            installation_id: Installation to authenticate as

        Returns:
            Parsed GitHub response

        Raises:
            GitHubAPIError: If the write fails
        """
        body = {
            "message": message,
            "content": base64.b64encode(content).decode("ascii"),
            "branch": branch,
        }

        response = await self._request(
            "create_or_update_file",
            "PUT",
            f"/repos/{owner}/{repo}/contents/{path}",
            installation_id=installation_id,
            json=body,
        )
        return response.json()


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase

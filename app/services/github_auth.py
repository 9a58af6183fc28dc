"""
GitHub App authentication.

Signs a short-lived RS256 JWT as the app, and exchanges it for an
installation access token for the installation that sent the delivery.
Installation tokens are reused until shortly before they expire.
"""

import time
from datetime import datetime
from typing import Dict, Optional, Tuple

import httpx
import jwt

from app.utils.logging import get_logger, log_api_call


logger = get_logger(__name__, component="github_auth")

# GitHub rejects app JWTs valid for more than 10 minutes
JWT_TTL_SECONDS = 540
# Backdate iat to tolerate clock drift
JWT_CLOCK_SKEW_SECONDS = 60
# Refresh installation tokens this long before expiry
TOKEN_REFRESH_MARGIN_SECONDS = 300


class GitHubAuthError(Exception):
    """Raised when an installation token cannot be obtained."""
    pass


def load_private_key(private_key: Optional[str], private_key_path: Optional[str] = None) -> Optional[str]:
    """
    Resolve the app's PEM private key.

    An inline key may carry escaped newlines, as it does when set in a .env
    file. A key path is read only when no inline key is given.
    """
    if private_key:
        return private_key.replace("\\n", "\n")
    if private_key_path:
        with open(private_key_path, encoding="utf-8") as handle:
            return handle.read()
    return None


class GitHubAppAuth:
    """Mints installation tokens for a GitHub App."""

    def __init__(self, app_id: str, private_key: str, client: httpx.AsyncClient):
        """
        Args:
            app_id: GitHub App id, used as the JWT issuer
            private_key: PEM encoded RSA private key of the app
            client: HTTP client with the GitHub API as base URL
        """
        self.app_id = str(app_id)
        self.private_key = private_key
        self._client = client
        self._tokens: Dict[int, Tuple[str, float]] = {}

    def create_jwt(self, now: Optional[float] = None) -> str:
        """Return an RS256 JWT identifying the app."""
        now = int(now if now is not None else time.time())
        payload = {
            "iat": now - JWT_CLOCK_SKEW_SECONDS,
            "exp": now + JWT_TTL_SECONDS,
            "iss": self.app_id,
        }
        return jwt.encode(payload, self.private_key, algorithm="RS256")

    async def installation_token(self, installation_id: int) -> str:
        """
        Return an access token for an installation.

        Args:
            installation_id: Installation id from the webhook payload

        Returns:
            Installation access token

        Raises:
            GitHubAuthError: If the exchange fails
        """
        cached = self._tokens.get(installation_id)
        if cached and cached[1] - TOKEN_REFRESH_MARGIN_SECONDS > time.time():
            return cached[0]

        url = f"/app/installations/{installation_id}/access_tokens"
        log = logger.with_context(operation="create_installation_token")
        start_time = time.time()
        try:
            response = await self._client.post(
                url,
                headers={"Authorization": f"Bearer {self.create_jwt()}"},
            )
        except httpx.HTTPError as e:
            log_api_call(log, service="github", endpoint=url, method="POST",
                         duration_ms=(time.time() - start_time) * 1000, error=str(e))
            raise GitHubAuthError(f"Installation token request failed: {e}") from e

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code >= 400:
            log_api_call(log, service="github", endpoint=url, method="POST",
                         status_code=response.status_code, duration_ms=duration_ms,
                         error=response.text)
            raise GitHubAuthError(
                f"Installation token request for {installation_id} returned HTTP {response.status_code}"
            )

        log_api_call(log, service="github", endpoint=url, method="POST",
                     status_code=response.status_code, duration_ms=duration_ms)

        try:
            body = response.json()
            token = body["token"]
        except (ValueError, KeyError, TypeError) as e:
            raise GitHubAuthError(f"Malformed installation token response: {e}") from e
        self._tokens[installation_id] = (token, _expiry(body.get("expires_at")))
        return token


def _expiry(expires_at: Optional[str]) -> float:
    if not expires_at:
        return time.time() + 3600
    return datetime.fromisoformat(expires_at.replace("Z", "+00:00")).timestamp()

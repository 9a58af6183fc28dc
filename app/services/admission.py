"""
Admission Gate for inbound GitHub webhook deliveries.

Decides whether a delivery may reach the provisioning workflow:
required identifying headers, then the HMAC-SHA256 signature when a
secret is configured. One narrow exception exists: a delivery relayed by
a known webhook proxy (smee.io) that carries an event header but no
signature headers is let through with a warning.
"""

import hashlib
import hmac
from typing import Mapping, Optional, Sequence

from app.models.api_response import AdmissionDecision
from app.utils.logging import get_logger


logger = get_logger(__name__, component="admission_gate")

EVENT_HEADER = "x-github-event"
DELIVERY_HEADER = "x-github-delivery"
SIGNATURE_256_HEADER = "x-hub-signature-256"
SIGNATURE_HEADER = "x-hub-signature"
USER_AGENT_HEADER = "user-agent"

REQUIRED_HEADERS = (EVENT_HEADER, DELIVERY_HEADER)

# User-agent substrings of relays allowed to drop the signature headers
TRUSTED_RELAY_AGENTS = ("smee",)


class AdmissionError(Exception):
    """Raised when a delivery is rejected."""

    def __init__(self, reason: str, message: str, status_code: int = 400):
        self.reason = reason
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def verify_signature(secret: str, payload: bytes, signature: Optional[str]) -> bool:
    """
    Verify a webhook signature.

    Args:
        secret: Shared webhook secret
        payload: Raw request body
        signature: Header value, ``sha256=<hex>``

    Returns:
        True if the signature matches, False otherwise
    """
    if not signature:
        return False

    expected_signature = "sha256=" + hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256
    ).hexdigest()

    return hmac.compare_digest(signature.encode(), expected_signature.encode())


class AdmissionGate:
    """Evaluates inbound deliveries before the workflow sees them."""

    def __init__(
        self,
        webhook_secret: Optional[str],
        trusted_relay_agents: Sequence[str] = TRUSTED_RELAY_AGENTS,
    ):
        self.webhook_secret = webhook_secret or None
        self.trusted_relay_agents = tuple(trusted_relay_agents)

    def _is_trusted_relay(self, headers: Mapping[str, str]) -> bool:
        """
        The single signature bypass rule.

        Holds only when a secret is configured, the event header is
        present, both signature headers are absent, and the user agent
        contains one of the trusted relay substrings.
        """
        user_agent = headers.get(USER_AGENT_HEADER) or ""
        return bool(
            self.webhook_secret
            and headers.get(EVENT_HEADER)
            and not headers.get(SIGNATURE_256_HEADER)
            and not headers.get(SIGNATURE_HEADER)
            and any(agent in user_agent for agent in self.trusted_relay_agents)
        )

    def evaluate(self, headers: Mapping[str, str], body: bytes) -> AdmissionDecision:
        """
        Decide whether to accept a delivery.

        Args:
            headers: Request headers (lookups must be case-insensitive, or
                keys already lower-cased)
            body: Raw request body

        Returns:
            AdmissionDecision
        """
        try:
            decision = self._evaluate(headers, body)
        except AdmissionError as e:
            logger.with_context(
                operation="reject",
                delivery_id=headers.get(DELIVERY_HEADER),
            ).error(
                f"Rejected webhook delivery: {e.message}",
                extra={"reason": e.reason, "event": headers.get(EVENT_HEADER)},
            )
            return AdmissionDecision(
                accepted=False,
                status_code=e.status_code,
                reason=e.reason,
                message=e.message,
            )

        log = logger.with_context(delivery_id=headers.get(DELIVERY_HEADER))
        if decision.bypassed:
            log.with_context(operation="bypass").warning(
                "Delivery from trusted relay has no signature headers; skipping signature verification",
                extra={"user_agent": headers.get(USER_AGENT_HEADER), "event": headers.get(EVENT_HEADER)},
            )
        else:
            log.with_context(operation="accept").info(
                f"Accepted webhook delivery for event {headers.get(EVENT_HEADER)}"
            )
        return decision

    def _evaluate(self, headers: Mapping[str, str], body: bytes) -> AdmissionDecision:
        missing = [name for name in REQUIRED_HEADERS if not headers.get(name)]
        if missing:
            raise AdmissionError(
                "missing_headers",
                f"Missing required webhook headers: {', '.join(missing)}",
            )

        if not self.webhook_secret:
            return AdmissionDecision(accepted=True)

        if self._is_trusted_relay(headers):
            return AdmissionDecision(accepted=True, bypassed=True)

        signature = headers.get(SIGNATURE_256_HEADER) or headers.get(SIGNATURE_HEADER)
        if not signature:
            raise AdmissionError(
                "missing_signature",
                "Webhook secret is configured but the delivery has no signature header",
            )

        if not verify_signature(self.webhook_secret, body, signature):
            raise AdmissionError("invalid_signature", "Webhook signature does not match")

        return AdmissionDecision(accepted=True)

"""API response data models."""

from typing import Optional

from pydantic import BaseModel


class WebhookResponse(BaseModel):
    """Response from webhook handler."""

    status: str
    message: str
    delivery_id: Optional[str] = None


class AdmissionDecision(BaseModel):
    """Result of evaluating an inbound webhook delivery."""

    accepted: bool
    bypassed: bool = False
    status_code: int = 200
    reason: Optional[str] = None
    message: Optional[str] = None

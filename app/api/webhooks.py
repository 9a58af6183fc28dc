"""
Webhook endpoint for GitHub App deliveries.
"""

import json
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request

from app.context import AppContext
from app.models.api_response import WebhookResponse
from app.models.pr_event import InvalidEventPayload, PullRequestAction, PullRequestEvent
from app.services.admission import DELIVERY_HEADER, EVENT_HEADER
from app.utils.logging import get_logger

logger = get_logger(__name__, component="webhook")

router = APIRouter(tags=["webhooks"])

HANDLED_ACTIONS = {action.value for action in PullRequestAction}


def get_context(request: Request) -> AppContext:
    return request.app.state.context


@router.post("/", response_model=WebhookResponse)
async def handle_github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
) -> WebhookResponse:
    """
    Receive a GitHub webhook delivery.

    This endpoint:
    1. Runs the admission gate (required headers, signature)
    2. Ignores anything but pull_request.opened / pull_request.reopened
    3. Returns 200 immediately and runs the provisioning workflow in the background

    Raises:
        HTTPException: 400 if the delivery is rejected or the payload is invalid
    """
    context = get_context(request)
    payload = await request.body()

    decision = context.admission_gate.evaluate(request.headers, payload)
    if not decision.accepted:
        raise HTTPException(
            status_code=decision.status_code,
            detail={"reason": decision.reason, "message": decision.message},
        )

    event_name = request.headers.get(EVENT_HEADER)
    delivery_id = request.headers.get(DELIVERY_HEADER)
    log = logger.with_context(delivery_id=delivery_id)

    try:
        payload_json: Dict[str, Any] = json.loads(payload)
    except ValueError as e:
        log.error(f"Invalid JSON body: {e}")
        raise HTTPException(
            status_code=400,
            detail={"reason": "invalid_json", "message": str(e)},
        )

    action = payload_json.get("action", "") if isinstance(payload_json, dict) else ""
    if event_name != "pull_request" or action not in HANDLED_ACTIONS:
        log.info(f"Ignoring event {event_name}.{action}")
        return WebhookResponse(
            status="ignored",
            message=f"Event {event_name}.{action} not processed",
            delivery_id=delivery_id,
        )

    try:
        event = PullRequestEvent.from_payload(payload_json, delivery_id=delivery_id)
    except InvalidEventPayload as e:
        log.error(f"Invalid pull request payload: {e}")
        raise HTTPException(
            status_code=400,
            detail={"reason": "invalid_payload", "message": str(e)},
        )

    background_tasks.add_task(context.workflow.run, event)

    return WebhookResponse(
        status="accepted",
        message=f"pull_request.{action} for {event.repository}#{event.number} accepted for processing",
        delivery_id=delivery_id,
    )

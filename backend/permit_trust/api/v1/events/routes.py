"""Live event stream and event schema documentation."""

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from permit_trust.api.v1.dependencies import BroadcasterDep, StreamIdentityDep
from permit_trust.services.events.channels import InvalidScope, resolve_scope
from permit_trust.services.events.events import StreamEvent
from permit_trust.services.exceptions import AuthorizationError

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["events"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    # Disable proxy buffering so frames reach the client immediately
    "X-Accel-Buffering": "no",
}


@router.get(
    "/events/stream",
    operation_id="streamEvents",
    response_class=StreamingResponse,
    summary="Server-Sent Events stream for one audience scope",
)
async def stream_events(
    request: Request,
    identity: StreamIdentityDep,
    broadcaster: BroadcasterDep,
    scope: str | None = None,
    vendor_id: str | None = None,
) -> StreamingResponse:
    """Stream every event published to the caller's scope, plus heartbeats.

    Vendors always receive their own private scope; other roles their
    role-wide scope unless an admin asks for a specific one.
    """
    try:
        resolved = resolve_scope(identity, scope, vendor_id)
    except InvalidScope as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AuthorizationError as e:
        raise HTTPException(status_code=403, detail=str(e))

    subscription = await broadcaster.subscribe(resolved, identity=identity)
    logger.info("Opening event stream", scope=resolved, user_id=identity.user_id, live=subscription.live)
    return StreamingResponse(
        subscription.frames(request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get(
    "/events/schema",
    response_model=StreamEvent,
    operation_id="getEventSchema",
    include_in_schema=True,
    summary="Event schema (for documentation only)",
    description="This endpoint documents the shape of the events carried in SSE `data:` frames. "
    "Do not call this endpoint directly - subscribe to /events/stream instead.",
)
async def get_event_schema() -> None:
    """This endpoint exists only to expose event types in OpenAPI schema."""
    raise NotImplementedError("This endpoint is for schema documentation only")

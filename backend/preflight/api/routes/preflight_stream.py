"""Preflight Stream — SSE delivery of readiness snapshots as checks change.

Invariants:
    - First event is always the current snapshot (reconnect needs no replay)
    - One "readiness" event per published ReadinessState change, in order
    - Subscription removed when the client disconnects or the flow is deleted
    - An open stream keeps its flow alive: counted in open_streams, touched per event

Design Decisions:
    - Per-client asyncio.Queue bridges the synchronous Signal callback to the
      async generator without blocking the aggregator
    - Keepalive comment every KEEPALIVE_SECONDS so proxies don't drop idle streams
"""

import asyncio
import json
import logging

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from preflight.api.routes.preflight_lifecycle import _flows, get_flow_or_404
from preflight.core.readiness import ReadinessState

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/preflight", tags=["preflight"])

KEEPALIVE_SECONDS = 15.0

# ADR: SSE headers prevent proxy/browser buffering of streamed events.
_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def _sse_line(event: dict) -> str:
    """Format event as SSE data line."""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"


@router.get("/{preflight_id}/events")
async def stream_preflight(preflight_id: str):
    """SSE stream — current snapshot, then one event per readiness change."""
    flow = get_flow_or_404(preflight_id)
    queue: asyncio.Queue[ReadinessState] = asyncio.Queue()
    unsubscribe = flow.check.subscribe(queue.put_nowait)

    async def event_generator():
        flow.open_streams += 1
        try:
            yield _sse_line({"type": "readiness", "data": flow.snapshot()})
            while _flows.get(preflight_id) is flow:
                try:
                    await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    flow.touch()
                    yield ": keepalive\n\n"
                    continue
                flow.touch()
                yield _sse_line({"type": "readiness", "data": flow.snapshot()})
            yield _sse_line({"type": "done", "data": {"reason": "flow_closed"}})
        except asyncio.CancelledError:
            logger.info(
                "Client disconnected from preflight stream",
                extra={"preflight_id": preflight_id},
            )
            return
        finally:
            flow.open_streams -= 1
            unsubscribe()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )

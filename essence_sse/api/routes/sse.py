"""
SSE Routes
==========

FastAPI routes streaming tagged events through an Emitter.
"""

from typing import Optional, Set
import asyncio

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from essence_sse.config.settings import get_settings
from essence_sse.config.logging import get_logger
from essence_sse.sse import AbortSignal, Emitter, EventStreamResponse

logger = get_logger(__name__)

router = APIRouter(
    prefix="/sse",
    tags=["SSE"],
    responses={404: {"description": "Not found"}},
)

# Producer tasks must stay referenced until they finish
_producer_tasks: Set["asyncio.Task[None]"] = set()


class ProgressUpdate(BaseModel):
    """Payload pushed by the progress stream."""

    step: int = Field(..., ge=1, description="Step number (1-based)")
    percent: int = Field(..., ge=0, le=100, description="Progress percentage (0-100)")


async def produce_progress(emitter: "Emitter[ProgressUpdate]", steps: int, interval: float) -> None:
    """Push one update per step, then terminate the stream."""
    try:
        for step in range(1, steps + 1):
            update = ProgressUpdate(step=step, percent=round(step * 100 / steps))
            if not await emitter.push(update):
                logger.info("Progress stream stopped early", step=step, channel=emitter.channel_tag)
                return
            await asyncio.sleep(interval)
    finally:
        if emitter.is_open:
            await emitter.close()


@router.get("/progress")
async def stream_progress(
    steps: int = Query(5, ge=1, le=1000, description="Number of progress updates"),
    interval: float = Query(0.0, ge=0.0, le=60.0, description="Seconds between updates"),
    channel: Optional[str] = Query(None, description="Channel tag (defaults to settings)"),
) -> EventStreamResponse:
    """
    Stream progress updates.

    Pushes ``steps`` progress payloads on the channel tag and then sends the
    termination envelope. Production stops early if the client disconnects.
    """
    channel_tag = channel or get_settings().sse_default_channel
    emitter: Emitter[ProgressUpdate] = Emitter(AbortSignal(), channel_tag)

    try:
        response = emitter.open()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    task = asyncio.create_task(produce_progress(emitter, steps, interval))
    _producer_tasks.add(task)
    task.add_done_callback(_producer_tasks.discard)

    logger.info("Progress stream started", channel=channel_tag, steps=steps)
    return response

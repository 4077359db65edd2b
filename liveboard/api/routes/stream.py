from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from liveboard.api.dependencies import get_stream_hub
from liveboard.services.stream_session import StreamHub

router = APIRouter(tags=["Stream"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    # Disable proxy buffering (nginx) so frames are flushed immediately
    "X-Accel-Buffering": "no",
}


@router.get("/stream", response_class=StreamingResponse)
async def event_stream(
    hub: Annotated[StreamHub, Depends(get_stream_hub)],
) -> StreamingResponse:
    """Server-sent event stream of question changes.

    Each frame is ``data: <json>\\n\\n`` where the JSON object's ``type`` is
    ``new-question``, ``question-update``, ``question-delete`` or ``ping``.
    The first frames after connecting replay the current latest questions.
    The session closes when the client disconnects.
    """
    session = hub.create_session()
    await session.open()
    return StreamingResponse(
        session.frames(),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )

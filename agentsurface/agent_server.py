"""Worker agent HTTP app: agent card plus a streaming task endpoint."""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from fastapi import FastAPI
from fastapi.responses import StreamingResponse

from agentsurface.discovery import AGENT_CARD_PATH
from agentsurface.frames import (
    COMMENT_FRAME,
    EVENT_STREAM_HEADERS,
    EVENT_STREAM_MEDIA_TYPE,
    encode_frame,
)
from agentsurface.schemas import (
    AgentCard,
    AgentEndpoints,
    Artifact,
    TaskFrame,
    TaskFrameType,
    TaskSubmission,
)

logger = logging.getLogger(__name__)

SEND_SUBSCRIBE_PATH = "/tasks/sendSubscribe"

# Turns task input into artifact data; raising reports a task error
AgentHandler = Callable[[Any], Awaitable[Any]]


async def echo_handler(input: Any) -> Any:
    """Return the task input unchanged."""
    return input


def _task_frames(task_id: str, kind: str, data: Any) -> list[str]:
    return [
        encode_frame(TaskFrame(type=TaskFrameType.STATUS, task_id=task_id, stage="completed").to_wire()),
        encode_frame(TaskFrame(
            type=TaskFrameType.FINAL, task_id=task_id, artifact=Artifact(kind=kind, data=data)
        ).to_wire()),
    ]


def create_agent_app(
    name: str,
    kind: str,
    handler: AgentHandler,
    public_url: str,
    version: str = "0.0.1",
) -> FastAPI:
    """Build a FastAPI app serving one agent.

    Args:
        name: Agent name published in the card
        kind: Artifact kind of every result
        handler: Coroutine mapping task input to artifact data
        public_url: Base URL clients reach this agent at
        version: Agent version published in the card

    Returns:
        FastAPI application
    """
    app = FastAPI(title=name, version=version)
    prefix = name.split("-")[0][:1] or "t"

    card = AgentCard(
        name=name,
        version=version,
        endpoints=AgentEndpoints(send_subscribe=f"{public_url.rstrip('/')}{SEND_SUBSCRIBE_PATH}"),
    )

    @app.get(AGENT_CARD_PATH)
    async def agent_card() -> dict:
        return card.to_wire()

    @app.post(SEND_SUBSCRIBE_PATH)
    async def send_subscribe(submission: TaskSubmission) -> StreamingResponse:
        task_id = f"{prefix}_{int(time.time() * 1000)}"
        logger.info(f"[{name}] task {task_id} received")

        async def event_stream() -> AsyncIterator[str]:
            yield COMMENT_FRAME
            yield encode_frame(
                TaskFrame(type=TaskFrameType.STATUS, task_id=task_id, stage="started").to_wire()
            )
            try:
                data = await handler(submission.input)
            except Exception as e:
                logger.error(f"[{name}] task {task_id} failed: {e}", exc_info=True)
                yield encode_frame(
                    TaskFrame(type=TaskFrameType.FINAL, task_id=task_id, error=str(e)).to_wire()
                )
                return
            for frame in _task_frames(task_id, kind, data):
                yield frame
            logger.info(f"[{name}] task {task_id} completed")

        return StreamingResponse(
            event_stream(),
            media_type=EVENT_STREAM_MEDIA_TYPE,
            headers=EVENT_STREAM_HEADERS,
        )

    @app.get("/health")
    async def health() -> dict:
        return {"ok": True, "service": name}

    return app

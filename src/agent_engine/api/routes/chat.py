import uuid
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from agent_engine.api.serialization import result_to_dict, sse_frame
from agent_engine.application.executor import AgentExecutor
from agent_engine.core.domain.errors import AppNotFoundError, UnauthorizedStopError
from agent_engine.core.domain.models import InvokeFrom

router = APIRouter()
logger = structlog.get_logger().bind(component="chat_routes")


class ChatRequest(BaseModel):
    """Request to chat with an agent application."""

    query: str
    user_id: str
    image_urls: list[str] = Field(default_factory=list)
    conversation_id: str | None = None
    invoke_from: InvokeFrom = InvokeFrom.DEBUGGER
    stream: bool = True


class StopTaskRequest(BaseModel):
    """Request to stop a running task."""

    user_id: str
    invoke_from: InvokeFrom = InvokeFrom.DEBUGGER


def get_executor(request: Request) -> AgentExecutor:
    return request.app.state.executor


@router.post("/apps/{app_id}/chat")
async def chat(app_id: str, body: ChatRequest, request: Request) -> Any:
    """Chat with an application.

    Streams SSE frames when `stream` is true, otherwise returns the
    aggregated result once the run has finished.
    """
    executor = get_executor(request)
    message_id = str(uuid.uuid4())

    try:
        if not body.stream:
            result = await executor.invoke_app(
                app_id,
                body.user_id,
                body.query,
                image_urls=body.image_urls,
                invoke_from=body.invoke_from,
                conversation_id=body.conversation_id,
            )
            return result_to_dict(result, body.conversation_id, message_id)

        events = await executor.stream_app(
            app_id,
            body.user_id,
            body.query,
            image_urls=body.image_urls,
            invoke_from=body.invoke_from,
            conversation_id=body.conversation_id,
        )
    except AppNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error("chat.failed", app_id=app_id, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))

    async def event_generator():
        async for event in events:
            yield sse_frame(event, body.conversation_id, message_id)

    return StreamingResponse(event_generator(), media_type="text/event-stream")


@router.post("/tasks/{task_id}/stop")
async def stop_task(task_id: str, body: StopTaskRequest, request: Request):
    """Stop a running task owned by the caller."""
    executor = get_executor(request)
    try:
        await executor.stop_task(task_id, body.user_id, body.invoke_from)
    except UnauthorizedStopError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except Exception as e:
        logger.error("stop.failed", task_id=task_id, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))
    return {"task_id": task_id, "status": "stopping"}

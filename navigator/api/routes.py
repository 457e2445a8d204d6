"""
API route aggregator: register endpoints; no logic, only delegate to handlers.
"""

import json
import logging

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import StreamingResponse

from navigator.agent.graph import run_agent_stream
from navigator.agent.tools import get_default_registry
from navigator.api.handlers import handle_chat, require_prompt, save_chat_upload
from navigator.schemas.chat import ChatResponse, ToolInfo, ToolsResponse

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "Knowledge Navigator backend running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


@router.get("/tools", response_model=ToolsResponse, tags=["system"], summary="List the tools the planner can choose from")
def get_tools() -> ToolsResponse:
    return ToolsResponse(tools=[ToolInfo(**t) for t in get_default_registry().catalog()])


# --- Chat ---

@router.post(
    "/chat",
    response_model=ChatResponse,
    tags=["chat"],
    summary="Ask the agent (sync)",
    description="Multipart form with `prompt` and an optional `file`. 400 on a blank prompt, 503/500 with a generic message on agent failure.",
)
async def post_chat(
    prompt: str | None = Form(None, description="User question for the agent."),
    file: UploadFile | None = File(None, description="Optional file for the file_analyst tool."),
) -> ChatResponse:
    return await handle_chat(prompt, file)


def _sse_generator(query: str, file_path: str | None):
    """Yield Server-Sent Events for one agent run."""
    for evt in run_agent_stream(query, file_path):
        event_type = evt.get("event", "")
        yield f"event: {event_type}\ndata: {json.dumps({'data': evt.get('data')})}\n\n"


@router.post(
    "/chat/stream",
    tags=["chat"],
    summary="Ask the agent (SSE stream)",
    description="Same form as /chat. Events: plan, step, answer, error.",
)
async def post_chat_stream(
    prompt: str | None = Form(None),
    file: UploadFile | None = File(None),
) -> StreamingResponse:
    query = require_prompt(prompt)
    file_path = await save_chat_upload(file)
    logger.info("[api:chat_stream] IN  prompt=%r file_path=%s", query, file_path)
    return StreamingResponse(
        _sse_generator(query, file_path),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )

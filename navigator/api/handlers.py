"""
API handlers: read request data (form fields, UploadFile), call the agent, map results/errors to HTTP.

Responsibility: Bridge HTTP types and the agent. Marshalling and exception-to-HTTP mapping.
Lives in the API layer so the agent stays free of FastAPI/HTTP types.
"""

import logging

from fastapi import HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from navigator.agent.graph import run_agent
from navigator.core.errors import GENERIC_FAILURE_MESSAGE, InvalidUploadError, ServiceUnavailableError
from navigator.schemas.chat import ChatResponse
from navigator.services.uploads import save_upload

logger = logging.getLogger(__name__)


def require_prompt(prompt: str | None) -> str:
    query = (prompt or "").strip()
    if not query:
        raise HTTPException(status_code=400, detail="Prompt is required")
    return query


async def save_chat_upload(file: UploadFile | None) -> str | None:
    """Persist the optional upload; returns its absolute path or None when no file was sent."""
    if file is None or not file.filename:
        return None
    content = await file.read()
    try:
        path = save_upload(file.filename, content)
    except InvalidUploadError as e:
        raise HTTPException(status_code=400, detail=f"Rejected upload {e.filename}: {e.reason}") from e
    except OSError as e:
        logger.exception("Failed to save upload %s", file.filename)
        raise HTTPException(status_code=500, detail="Failed to save the uploaded file.") from e
    return str(path)


async def handle_chat(prompt: str | None, file: UploadFile | None) -> ChatResponse:
    """
    Validate the prompt, store the optional file, run the agent off the event loop.
    Provider outages map to 503, anything else to 500; both with the same generic message.
    """
    query = require_prompt(prompt)
    file_path = await save_chat_upload(file)
    logger.info("[api:chat] IN  prompt=%r file_path=%s", query, file_path)
    try:
        result = await run_in_threadpool(run_agent, query, file_path)
    except ServiceUnavailableError as e:
        logger.error("[api:chat] LLM provider unavailable: %s", e.message)
        raise HTTPException(status_code=503, detail=GENERIC_FAILURE_MESSAGE) from e
    except Exception as e:
        logger.exception("Error invoking agent")
        raise HTTPException(status_code=500, detail=GENERIC_FAILURE_MESSAGE) from e
    logger.info("[api:chat] OUT steps=%d response_len=%d", len(result.get("past_steps") or []), len(result["response"]))
    return ChatResponse(response=result["response"])

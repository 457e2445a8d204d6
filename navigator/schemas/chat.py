"""Schemas for the chat and tool-catalog endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class ChatResponse(BaseModel):
    """Response for POST /chat."""

    response: str = Field(..., description="Final answer synthesized by the agent.")

    model_config = {
        "json_schema_extra": {
            "examples": [{"response": "It is currently 64°F and partly cloudy in Paris."}]
        }
    }


class ToolInfo(BaseModel):
    """One entry of the tool catalog."""

    name: str = Field(..., description="Unique tool name the planner can select.")
    description: str = Field(..., description="What the tool does.")
    input_schema: dict[str, Any] = Field(..., description="JSON schema of the tool arguments.")


class ToolsResponse(BaseModel):
    """Response for GET /tools."""

    tools: list[ToolInfo] = Field(default_factory=list)

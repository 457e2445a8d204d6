"""
Structured-output recovery for model replies.

Model text may wrap a JSON payload in a ```json fence or return it bare. Nothing here
raises on bad input: every parser returns Parsed(value) or Malformed(raw, reason) and
the caller decides the fallback.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import AliasChoices, BaseModel, Field

T = TypeVar("T")

# Body of the first ```json fenced block; the closing fence must start its own line.
_JSON_FENCE = re.compile(r"```json[ \t]*\r?\n([\s\S]*?)\r?\n\s*```")


@dataclass(frozen=True)
class Parsed(Generic[T]):
    value: T


@dataclass(frozen=True)
class Malformed:
    raw: str
    reason: str


@dataclass(frozen=True)
class ToolCall:
    tool: str
    arguments: dict[str, Any] | None


class _PlanPayload(BaseModel):
    plan: list[str]


class _ToolCallPayload(BaseModel):
    tool: str = Field(..., min_length=1)
    tool_input: dict[str, Any] | None = Field(
        default=None, validation_alias=AliasChoices("tool_input", "arguments")
    )


def extract_structured(text: str) -> str:
    """Return the body of a ```json fenced block if present, else `text` unchanged."""
    match = _JSON_FENCE.search(text or "")
    return match.group(1) if match else text


def _load_json(text: str) -> Any:
    return json.loads(extract_structured(text).strip())


def parse_plan(text: str) -> Parsed[list[str]] | Malformed:
    try:
        payload = _PlanPayload.model_validate(_load_json(text))
    except (ValueError, TypeError) as e:
        # ValidationError is a ValueError subclass; so is JSONDecodeError
        return Malformed(raw=text, reason=str(e))
    return Parsed([step.strip() for step in payload.plan if step.strip()])


def parse_tool_call(text: str) -> Parsed[ToolCall] | Malformed:
    """
    Parse {"tool": name, "tool_input": {...}} (also accepts "arguments").
    A missing or null argument object yields ToolCall(arguments=None).
    """
    try:
        payload = _ToolCallPayload.model_validate(_load_json(text))
    except (ValueError, TypeError) as e:
        return Malformed(raw=text, reason=str(e))
    return Parsed(ToolCall(tool=payload.tool.strip(), arguments=payload.tool_input))

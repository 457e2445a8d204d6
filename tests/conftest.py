from pydantic import BaseModel
import pytest

from navigator.agent.tools import FILE_ANALYST, FileAnalystInput, Tool, ToolRegistry
from tests.fakes import ToolCalls


class _QueryInput(BaseModel):
    query: str


class _CoordinatesInput(BaseModel):
    latitude: float
    longitude: float


@pytest.fixture
def tool_calls() -> ToolCalls:
    return ToolCalls()


@pytest.fixture
def fake_registry(tool_calls: ToolCalls) -> ToolRegistry:
    """Three in-memory tools that record their arguments instead of calling out."""
    return ToolRegistry([
        Tool("echo", "Echoes the query.", _QueryInput, tool_calls.recorder("echo", "echoed")),
        Tool("coords", "Takes coordinates.", _CoordinatesInput, tool_calls.recorder("coords", {"temp": 20.5})),
        Tool(FILE_ANALYST, "Analyzes a file.", FileAnalystInput, tool_calls.recorder(FILE_ANALYST, "file analysed")),
    ])

"""Run-state threaded through every node of the agent graph (one request only)."""

import operator
from typing import Annotated, TypedDict


class StepRecord(TypedDict):
    tool: str
    output: str


class RunState(TypedDict):
    input: str
    file_path: str | None
    plan: list[str]  # overwritten by each planner run; [] or [step] or [PLAN_COMPLETE]
    past_steps: Annotated[list[StepRecord], operator.add]  # node updates are appended, never replace
    response: str


def initial_state(query: str, file_path: str | None = None) -> RunState:
    return {
        "input": query,
        "file_path": file_path,
        "plan": [],
        "past_steps": [],
        "response": "",
    }

"""
LangGraph agent: planner → route → (execute_tools → responder | responder).

Single pass. The planner picks one tool and phrases one step; the router either sends
that step to the executor (one tool call, one past_steps record) or, when the plan is
empty or PLAN_COMPLETE, straight to the responder. There is no edge back from the
executor to the planner, so a request makes at most three model calls.
"""

import json
import logging
from typing import Any, Literal

from langgraph.graph import END, START, StateGraph
from pydantic import ValidationError

from navigator.agent.llm import LLMClient, get_default_llm
from navigator.agent.parsing import Malformed, ToolCall, parse_plan, parse_tool_call
from navigator.agent.state import RunState, StepRecord, initial_state
from navigator.agent.tools import FILE_ANALYST, Tool, ToolRegistry, build_registry, get_default_registry
from navigator.core.config import GRAPH_RECURSION_LIMIT, PLAN_COMPLETE
from navigator.core.errors import GENERIC_FAILURE_MESSAGE

logger = logging.getLogger(__name__)

ERROR_HANDLER = "error_handler"
INVALID_TOOL_CALL = "Error: The model generated an invalid tool call. Please try again."
NO_ANSWER = "I'm sorry, I couldn't generate an answer for that request."
NOTHING_GATHERED = "No information was gathered: no tool was run for this query."


def _record(tool: str, output: str) -> dict:
    return {"past_steps": [StepRecord(tool=tool, output=output)]}


def plan_step(state: RunState, llm: LLMClient, registry: ToolRegistry) -> dict:
    """Planner node: one model call, returns {"plan": [step]} or {"plan": [PLAN_COMPLETE]}."""
    query = state.get("input") or ""
    logger.info("[graph:planner] IN  input=%r", query)
    tool_lines = "\n".join(f"  - {t.name}: {t.description}" for t in registry)
    prompt = f"""You are a planner agent. Your job is to create a plan to answer a user's query.

Here is the user's query:
{query}

**Your Task:**
Determine the single best tool to use to answer the user's query.
- Formulate a clear and concise instruction for the tool.
- Available tools:
{tool_lines}
- Respond with a JSON object containing the plan. For example:
  {{"plan": ["Use the 'get_weather_forecast' tool for the location specified in the query."]}}
- If no tool is needed, respond with {{"plan": ["{PLAN_COMPLETE}"]}}

**Important Rules:**
- You must choose only one step.
- Your response MUST be a valid JSON object."""
    raw = llm.complete(prompt)
    logger.info("[graph:planner] llm_raw=%r", raw)
    result = parse_plan(raw)
    if isinstance(result, Malformed):
        logger.warning("[graph:planner] unparseable plan, using %s: %s", PLAN_COMPLETE, result.reason)
        plan = [PLAN_COMPLETE]
    else:
        plan = result.value
        if len(plan) > 1:
            logger.warning("[graph:planner] model returned %d steps; keeping the first", len(plan))
            plan = plan[:1]
    logger.info("[graph:planner] OUT plan=%r", plan)
    return {"plan": plan}


def route_after_plan(state: RunState) -> Literal["execute", "respond"]:
    """Empty plan or PLAN_COMPLETE → respond; anything else → execute."""
    plan = state.get("plan") or []
    next_node = "respond" if (not plan or PLAN_COMPLETE in plan) else "execute"
    logger.info("[graph:route_after_plan] plan=%r -> %s", plan, next_node)
    return next_node


def _resolve_arguments(tool: Tool, call: ToolCall, state: RunState) -> dict[str, Any]:
    """
    Best-effort arguments for `tool`: missing arguments become {"query": input}; for
    file_analyst the uploaded file path always wins and a model-supplied path is dropped
    when nothing was uploaded; a required "query" field that is still missing after
    validation is filled with the original query.
    """
    query = state.get("input") or ""
    arguments = dict(call.arguments) if call.arguments else {}
    if not arguments:
        logger.warning("[graph:execute_tools] tool_input for %r is missing; using fallback", tool.name)
        arguments = {"query": query}
    if tool.name == FILE_ANALYST:
        file_path = state.get("file_path")
        if file_path:
            arguments["file_path"] = file_path
        elif arguments.pop("file_path", None) is not None:
            logger.warning("[graph:execute_tools] no upload for this request; dropping model-supplied file_path")
    try:
        return tool.validate(arguments)
    except ValidationError as e:
        logger.warning("[graph:execute_tools] arguments for %r incomplete: %s", tool.name, e.errors())
    if tool.required_fields().get("query") is str and not arguments.get("query"):
        arguments["query"] = query
    try:
        return tool.validate(arguments)
    except ValidationError:
        # the tool reports whatever is still missing as an error payload
        return arguments


def normalize_output(raw: Any) -> str:
    """Text passes through; None becomes ""; scalars are str()'d; anything else is JSON."""
    if isinstance(raw, str):
        return raw
    if raw is None:
        return ""
    if isinstance(raw, (bool, int, float)):
        return str(raw)
    return json.dumps(raw, indent=2, default=str)


def execute_step(state: RunState, llm: LLMClient, registry: ToolRegistry) -> dict:
    """Executor node: turn the last plan step into one tool call and record its output."""
    plan = state.get("plan") or []
    step = plan[-1] if plan else ""
    query = state.get("input") or ""
    logger.info("[graph:execute_tools] IN  step=%r input=%r file_path=%s", step, query, state.get("file_path"))
    prompt = f"""Based on the plan step, generate a JSON tool call object for the tool executor.
Plan Step: "{step}"
User Query: "{query}"
Available tools: {json.dumps(registry.catalog())}

Your response must be a single JSON object that is a valid tool call, extracting any necessary parameters from the User Query.
For example: {{"tool": "github_repo_search", "tool_input": {{"query": "helloworld c++ example"}}}}"""
    raw = llm.complete(prompt)
    logger.info("[graph:execute_tools] llm_raw=%r", raw)
    result = parse_tool_call(raw)
    if isinstance(result, Malformed):
        logger.warning("[graph:execute_tools] invalid tool call: %s", result.reason)
        return _record(ERROR_HANDLER, INVALID_TOOL_CALL)

    call = result.value
    tool = registry.get(call.tool)
    if tool is None:
        output = f"Error: Tool '{call.tool}' not found. Please select from the available tools."
        logger.info("[graph:execute_tools] OUT %s", output)
        return _record(call.tool, output)

    arguments = _resolve_arguments(tool, call, state)
    logger.info("[graph:execute_tools] executing %r arguments=%r", tool.name, arguments)
    output = normalize_output(tool.invoke(arguments))
    logger.info("[graph:execute_tools] OUT tool=%s output_len=%d", tool.name, len(output))
    logger.debug("[graph:execute_tools] OUT output=%r", output)
    return _record(tool.name, output)


def respond_step(state: RunState, llm: LLMClient) -> dict:
    """Responder node: synthesize the final answer from the query and every past step."""
    query = state.get("input") or ""
    steps = state.get("past_steps") or []
    logger.info("[graph:responder] IN  input=%r steps=%d", query, len(steps))
    if steps:
        gathered = "\n\n---\n\n".join(
            f"Step: Executed '{s['tool']}'\nResult: {s['output']}" for s in steps
        )
    else:
        gathered = NOTHING_GATHERED
    prompt = f"""You are the Final Responder. Your task is to synthesize all the gathered information into a single, comprehensive, and user-friendly response.
Original Query: {query}
Gathered Information:
{gathered}

Provide a final, well-structured answer. If there was an error in a previous step, explain the error to the user in a helpful way. If no information was gathered, say so and answer as well as you can."""
    answer = (llm.complete(prompt) or "").strip()
    logger.info("[graph:responder] OUT answer_len=%d", len(answer))
    return {"response": answer or NO_ANSWER}


def build_graph(llm: LLMClient, registry: ToolRegistry):
    """
    Build and compile the agent graph.
    START → planner → (execute_tools → responder | responder) → END.
    """
    def planner(state: RunState) -> dict:
        return plan_step(state, llm, registry)

    def execute_tools(state: RunState) -> dict:
        return execute_step(state, llm, registry)

    def responder(state: RunState) -> dict:
        return respond_step(state, llm)

    graph = StateGraph(RunState)

    graph.add_node("planner", planner)
    graph.add_node("execute_tools", execute_tools)
    graph.add_node("responder", responder)

    graph.add_edge(START, "planner")
    graph.add_conditional_edges(
        "planner",
        route_after_plan,
        {"execute": "execute_tools", "respond": "responder"},
    )
    graph.add_edge("execute_tools", "responder")
    graph.add_edge("responder", END)

    return graph.compile()


def _dependencies(llm: LLMClient | None, registry: ToolRegistry | None) -> tuple[LLMClient, ToolRegistry]:
    if registry is None:
        registry = build_registry(llm) if llm is not None else get_default_registry()
    if llm is None:
        llm = get_default_llm()
    return llm, registry


def run_agent(
    query: str,
    file_path: str | None = None,
    *,
    llm: LLMClient | None = None,
    registry: ToolRegistry | None = None,
) -> dict:
    """
    Run the agent synchronously. Returns response, plan and past_steps.
    Model or tool exceptions propagate to the caller.
    """
    if not query or not str(query).strip():
        raise ValueError("query is required")
    q = str(query).strip()
    llm, registry = _dependencies(llm, registry)
    logger.info("[run_agent] START query=%r file_path=%s", q, file_path)
    graph = build_graph(llm, registry)
    final = graph.invoke(initial_state(q, file_path), config={"recursion_limit": GRAPH_RECURSION_LIMIT})
    response = final.get("response") or ""
    past_steps = list(final.get("past_steps") or [])
    logger.info("[run_agent] END steps=%d response_len=%d", len(past_steps), len(response))
    return {
        "response": response,
        "plan": list(final.get("plan") or []),
        "past_steps": past_steps,
    }


def run_agent_stream(
    query: str,
    file_path: str | None = None,
    *,
    llm: LLMClient | None = None,
    registry: ToolRegistry | None = None,
):
    """
    Run the agent and yield one event per node: plan → step (when a tool ran) → answer.
    Each yield is {"event": str, "data": ...}. Failures yield a single generic error event.
    """
    if not query or not str(query).strip():
        yield {"event": "error", "data": "query is required"}
        return
    q = str(query).strip()
    logger.info("[run_agent_stream] START query=%r file_path=%s", q, file_path)
    try:
        llm, registry = _dependencies(llm, registry)
        graph = build_graph(llm, registry)
        for event in graph.stream(initial_state(q, file_path), config={"recursion_limit": GRAPH_RECURSION_LIMIT}):
            # event: dict mapping node name to state update, e.g. {"planner": {"plan": [...]}}
            for node_name, state_update in event.items():
                if node_name == "planner":
                    yield {"event": "plan", "data": state_update.get("plan", [])}
                elif node_name == "execute_tools":
                    for record in state_update.get("past_steps", []):
                        yield {"event": "step", "data": dict(record)}
                elif node_name == "responder":
                    yield {"event": "answer", "data": state_update.get("response", "")}
    except Exception:
        logger.exception("[run_agent_stream] Agent stream failed")
        yield {"event": "error", "data": GENERIC_FAILURE_MESSAGE}
    logger.info("[run_agent_stream] END")

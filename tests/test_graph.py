"""
Tests for the agent graph: planner, router, executor, responder and full runs.

Uses FakeLLM (scripted replies) so no provider is called; the weather end-to-end run
mocks Open-Meteo with respx.
"""

import json

import httpx
import pytest
import respx

from navigator.agent.graph import (
    ERROR_HANDLER,
    INVALID_TOOL_CALL,
    NO_ANSWER,
    NOTHING_GATHERED,
    execute_step,
    normalize_output,
    plan_step,
    respond_step,
    route_after_plan,
    run_agent,
    run_agent_stream,
)
from navigator.agent.state import initial_state
from navigator.agent.tools import FILE_ANALYST, build_registry
from navigator.core.errors import GENERIC_FAILURE_MESSAGE, ServiceUnavailableError
from tests.fakes import FakeLLM


def _state(query: str = "What's new?", plan: list[str] | None = None, file_path: str | None = None) -> dict:
    state = initial_state(query, file_path)
    state["plan"] = plan if plan is not None else ["Use the echo tool."]
    return state


# --- Router ---

class TestRouteAfterPlan:
    """Tests for route_after_plan()."""

    @pytest.mark.parametrize("plan", [[], ["PLAN_COMPLETE"], None])
    def test_complete_plans_respond(self, plan) -> None:
        assert route_after_plan({"plan": plan}) == "respond"

    @pytest.mark.parametrize("step", ["Use the weather tool.", "plan_complete", "PLAN_COMPLETE soon"])
    def test_any_other_step_executes(self, step: str) -> None:
        assert route_after_plan({"plan": [step]}) == "execute"

    def test_pure(self) -> None:
        state = {"input": "q", "plan": ["Use the echo tool."], "past_steps": []}
        snapshot = json.dumps(state)
        results = {route_after_plan(state) for _ in range(5)}
        assert results == {"execute"}
        assert json.dumps(state) == snapshot


# --- Planner ---

class TestPlanStep:
    """Tests for plan_step()."""

    def test_parses_plan_and_lists_tools(self, fake_registry) -> None:
        llm = FakeLLM('```json\n{"plan": ["Use the echo tool."]}\n```')
        update = plan_step(_state(plan=[]), llm, fake_registry)
        assert update == {"plan": ["Use the echo tool."]}
        assert len(llm.prompts) == 1
        assert "echo" in llm.prompts[0] and FILE_ANALYST in llm.prompts[0]

    def test_crlf_fenced_plan(self, fake_registry) -> None:
        llm = FakeLLM('```json\r\n{"plan": ["Use the echo tool."]}\r\n```')
        assert plan_step(_state(plan=[]), llm, fake_registry) == {"plan": ["Use the echo tool."]}

    def test_malformed_reply_becomes_sentinel(self, fake_registry) -> None:
        llm = FakeLLM("I would use the weather tool!")
        assert plan_step(_state(plan=[]), llm, fake_registry) == {"plan": ["PLAN_COMPLETE"]}

    def test_keeps_only_first_step(self, fake_registry) -> None:
        llm = FakeLLM('{"plan": ["first", "second"]}')
        assert plan_step(_state(plan=[]), llm, fake_registry) == {"plan": ["first"]}

    def test_llm_failure_propagates(self, fake_registry) -> None:
        llm = FakeLLM(ServiceUnavailableError("down"))
        with pytest.raises(ServiceUnavailableError):
            plan_step(_state(plan=[]), llm, fake_registry)


# --- Executor ---

class TestExecuteStep:
    """Tests for execute_step()."""

    def test_runs_named_tool(self, fake_registry, tool_calls) -> None:
        llm = FakeLLM('{"tool": "echo", "tool_input": {"query": "hello"}}')
        update = execute_step(_state(), llm, fake_registry)
        assert update == {"past_steps": [{"tool": "echo", "output": "echoed"}]}
        assert tool_calls.calls == [("echo", {"query": "hello"})]
        assert "Use the echo tool." in llm.prompts[0]

    def test_unknown_tool_records_error_without_invoking(self, fake_registry, tool_calls) -> None:
        llm = FakeLLM('{"tool": "teleport", "tool_input": {"query": "mars"}}')
        update = execute_step(_state(), llm, fake_registry)
        steps = update["past_steps"]
        assert len(steps) == 1
        assert steps[0]["tool"] == "teleport"
        assert "teleport" in steps[0]["output"] and "not found" in steps[0]["output"]
        assert tool_calls.calls == []

    def test_malformed_tool_call_records_error(self, fake_registry, tool_calls) -> None:
        llm = FakeLLM("call echo please")
        update = execute_step(_state(), llm, fake_registry)
        assert update == {"past_steps": [{"tool": ERROR_HANDLER, "output": INVALID_TOOL_CALL}]}
        assert tool_calls.calls == []

    @pytest.mark.parametrize("reply", ['{"tool": "echo"}', '{"tool": "echo", "tool_input": {}}'])
    def test_missing_arguments_fall_back_to_query(self, fake_registry, tool_calls, reply: str) -> None:
        update = execute_step(_state(query="tell me about LangGraph"), FakeLLM(reply), fake_registry)
        assert tool_calls.calls == [("echo", {"query": "tell me about LangGraph"})]
        assert update["past_steps"][0]["output"] == "echoed"

    def test_incomplete_arguments_fill_query(self, fake_registry, tool_calls) -> None:
        llm = FakeLLM('{"tool": "echo", "tool_input": {"q": "typo"}}')
        execute_step(_state(query="original"), llm, fake_registry)
        assert tool_calls.calls == [("echo", {"query": "original"})]

    def test_file_path_is_injected_for_file_analyst(self, fake_registry, tool_calls) -> None:
        llm = FakeLLM('{"tool": "file_analyst", "tool_input": {"file_path": "/tmp/hallucinated.txt", "query": "summarize"}}')
        execute_step(_state(query="summarize my file", file_path="/srv/uploads/abc_report.txt"), llm, fake_registry)
        assert tool_calls.calls == [
            (FILE_ANALYST, {"file_path": "/srv/uploads/abc_report.txt", "query": "summarize"})
        ]

    def test_file_path_is_injected_when_arguments_missing(self, fake_registry, tool_calls) -> None:
        execute_step(_state(query="what is in it?", file_path="/srv/up.txt"), FakeLLM('{"tool": "file_analyst"}'), fake_registry)
        assert tool_calls.calls == [(FILE_ANALYST, {"file_path": "/srv/up.txt", "query": "what is in it?"})]

    def test_file_analyst_without_upload_drops_model_path(self, fake_registry, tool_calls) -> None:
        llm = FakeLLM('{"tool": "file_analyst", "tool_input": {"file_path": "/etc/passwd", "query": "x"}}')
        execute_step(_state(query="read the password file"), llm, fake_registry)
        assert tool_calls.calls == [(FILE_ANALYST, {"query": "x"})]

    @respx.mock
    def test_unexpected_service_body_becomes_record(self) -> None:
        respx.get(host="api.github.com").mock(return_value=httpx.Response(200, json=["unexpected"]))
        llm = FakeLLM('{"tool": "github_repo_search", "tool_input": {"query": "langgraph"}}')
        update = execute_step(_state(), llm, build_registry(llm))
        assert update == {"past_steps": [
            {"tool": "github_repo_search", "output": "Error: unexpected response from GitHub."}
        ]}

    def test_structured_output_is_serialized(self, fake_registry) -> None:
        llm = FakeLLM('{"tool": "coords", "tool_input": {"latitude": "48.85", "longitude": 2.35}}')
        update = execute_step(_state(), llm, fake_registry)
        record = update["past_steps"][0]
        assert record["tool"] == "coords"
        assert json.loads(record["output"]) == {"temp": 20.5}

    def test_uses_last_plan_step(self, fake_registry) -> None:
        llm = FakeLLM('{"tool": "echo", "tool_input": {"query": "x"}}')
        execute_step(_state(plan=["older step", "latest step"]), llm, fake_registry)
        assert 'Plan Step: "latest step"' in llm.prompts[0]


class TestNormalizeOutput:
    """Tests for normalize_output()."""

    def test_text_and_scalars(self) -> None:
        assert normalize_output("plain") == "plain"
        assert normalize_output(None) == ""
        assert normalize_output(42) == "42"

    def test_structured(self) -> None:
        assert json.loads(normalize_output([{"a": 1}])) == [{"a": 1}]


# --- Responder ---

class TestRespondStep:
    """Tests for respond_step()."""

    def test_includes_every_step(self) -> None:
        state = _state()
        state["past_steps"] = [
            {"tool": "echo", "output": "first result"},
            {"tool": "teleport", "output": "Error: Tool 'teleport' not found."},
        ]
        llm = FakeLLM("Final answer.")
        assert respond_step(state, llm) == {"response": "Final answer."}
        prompt = llm.prompts[0]
        assert "first result" in prompt and "teleport" in prompt

    def test_no_steps_says_nothing_gathered(self) -> None:
        llm = FakeLLM("I could not look anything up.")
        respond_step(_state(plan=["PLAN_COMPLETE"]), llm)
        assert NOTHING_GATHERED in llm.prompts[0]

    def test_empty_reply_gets_fallback(self) -> None:
        assert respond_step(_state(), FakeLLM("   ")) == {"response": NO_ANSWER}


# --- Full runs ---

PARIS_FORECAST = {
    "latitude": 48.86,
    "longitude": 2.36,
    "current": {
        "time": "2026-10-18T12:00",
        "temperature_2m": 64.2,
        "relative_humidity_2m": 55,
        "apparent_temperature": 63.1,
        "rain": 0.0,
        "showers": 0.0,
        "wind_speed_10m": 9.4,
        "weather_code": 2,
    },
}


class TestRunAgent:
    """Tests for run_agent() and run_agent_stream()."""

    @respx.mock
    def test_weather_end_to_end(self) -> None:
        route = respx.get(host="api.open-meteo.com", path="/v1/forecast").mock(
            return_value=httpx.Response(200, json=PARIS_FORECAST)
        )
        llm = FakeLLM(
            '{"plan": ["Use the \'get_weather_forecast\' tool for Paris."]}',
            '```json\n{"tool": "get_weather_forecast", "tool_input": {"latitude": 48.8566, "longitude": 2.3522}}\n```',
            "It is 64°F and partly cloudy in Paris right now.",
        )
        result = run_agent("What's the weather in Paris?", llm=llm, registry=build_registry(llm))

        assert route.called
        params = route.calls.last.request.url.params
        assert params["latitude"] == "48.8566" and params["temperature_unit"] == "fahrenheit"
        assert result["plan"] == ["Use the 'get_weather_forecast' tool for Paris."]
        assert len(result["past_steps"]) == 1
        step = result["past_steps"][0]
        assert step["tool"] == "get_weather_forecast"
        assert json.loads(step["output"])["conditions"] == "Partly cloudy"
        assert "temperature_2m" in llm.responder_prompts()[0]
        assert result["response"] == "It is 64°F and partly cloudy in Paris right now."

    def test_malformed_plan_goes_straight_to_responder(self, fake_registry, tool_calls) -> None:
        llm = FakeLLM("Sorry, I can't produce JSON today.", "I wasn't able to gather any information.")
        result = run_agent("Who won the match?", llm=llm, registry=fake_registry)
        assert result["plan"] == ["PLAN_COMPLETE"]
        assert result["past_steps"] == []
        assert result["response"]
        assert len(llm.prompts) == 2
        assert NOTHING_GATHERED in llm.prompts[1]
        assert tool_calls.calls == []

    @pytest.mark.parametrize(
        "replies, expected_steps",
        [
            (['{"plan": []}', "answer"], 0),
            (['{"plan": ["PLAN_COMPLETE"]}', "answer"], 0),
            (['{"plan": ["Use echo."]}', '{"tool": "echo"}', "answer"], 1),
            (['{"plan": ["Use echo."]}', "garbage", "answer"], 1),
        ],
    )
    def test_responder_runs_once_and_steps_bounded(self, fake_registry, replies, expected_steps) -> None:
        llm = FakeLLM(*replies)
        result = run_agent("question", llm=llm, registry=fake_registry)
        assert len(llm.responder_prompts()) == 1
        assert len(result["past_steps"]) == expected_steps
        assert result["response"] == "answer"
        assert llm.responses == []

    def test_empty_query_rejected(self, fake_registry) -> None:
        with pytest.raises(ValueError):
            run_agent("   ", llm=FakeLLM(), registry=fake_registry)

    def test_fatal_llm_failure_propagates(self, fake_registry) -> None:
        llm = FakeLLM('{"plan": ["Use echo."]}', ServiceUnavailableError("provider down"))
        with pytest.raises(ServiceUnavailableError):
            run_agent("question", llm=llm, registry=fake_registry)

    def test_stream_events(self, fake_registry) -> None:
        llm = FakeLLM('{"plan": ["Use echo."]}', '{"tool": "echo", "tool_input": {"query": "hi"}}', "done")
        events = list(run_agent_stream("question", llm=llm, registry=fake_registry))
        assert [e["event"] for e in events] == ["plan", "step", "answer"]
        assert events[1]["data"] == {"tool": "echo", "output": "echoed"}
        assert events[2]["data"] == "done"

    def test_stream_failure_is_generic(self, fake_registry) -> None:
        llm = FakeLLM(RuntimeError("secret stack detail"))
        events = list(run_agent_stream("question", llm=llm, registry=fake_registry))
        assert events == [{"event": "error", "data": GENERIC_FAILURE_MESSAGE}]

    def test_stream_empty_query(self) -> None:
        assert list(run_agent_stream("")) == [{"event": "error", "data": "query is required"}]

"""Tests for the two-phase completion orchestrator."""

import json

import pytest

from conftest import FakeBackend, FakeCompletion, tool_call

from motionbridge.core.types import ChatRole, ChatTurn


async def _started(make_services, backend, completion):
    services = make_services(backend=backend, completion=completion)
    await services.start()
    return services


def _user(text):
    return ChatTurn(role=ChatRole.USER, content=text)


@pytest.mark.asyncio
async def test_plain_answer_without_tool_calls(make_services):
    completion = FakeCompletion([{"role": "assistant", "content": "Hello there."}])
    services = await _started(make_services, FakeBackend(), completion)

    result = await services.orchestrator.converse([], _user("hi"))

    assert result.answer == "Hello there."
    assert result.tools_used == []
    assert len(completion.bodies) == 1
    first = completion.bodies[0]
    assert first["tool_choice"] == "auto"
    assert len(first["tools"]) == services.registry.count()
    assert first["messages"][0]["role"] == "system"
    assert first["messages"][-1] == {"role": "user", "content": "hi"}
    await services.close()


@pytest.mark.asyncio
async def test_empty_reply_becomes_no_response(make_services):
    completion = FakeCompletion([{"role": "assistant", "content": None}])
    services = await _started(make_services, FakeBackend(), completion)

    result = await services.orchestrator.converse([], _user("hi"))

    assert result.answer == "No response generated"
    await services.close()


@pytest.mark.asyncio
async def test_tool_call_is_dispatched_before_second_phase(make_services):
    backend = FakeBackend()
    completion = FakeCompletion(
        [
            {"role": "assistant", "content": "", "tool_calls": [tool_call("call-1", "ping")]},
            {"role": "assistant", "content": "The backend is healthy."},
        ]
    )
    services = await _started(make_services, backend, completion)

    result = await services.orchestrator.converse([], _user("is the backend up?"))

    assert result.answer == "The backend is healthy."
    assert result.tools_used == ["ping"]
    assert backend.paths() == ["/health"]
    assert len(completion.bodies) == 2

    second = completion.bodies[1]
    assert "tools" not in second
    assistant, tool_message = second["messages"][-2:]
    assert assistant["role"] == "assistant"
    assert assistant["tool_calls"][0]["id"] == "call-1"
    assert tool_message["role"] == "tool"
    assert tool_message["tool_call_id"] == "call-1"
    assert tool_message["name"] == "ping"
    assert json.loads(tool_message["content"]) == {"status": "ok"}
    await services.close()


@pytest.mark.asyncio
async def test_rejected_call_is_reported_but_not_counted_as_used(make_services):
    backend = FakeBackend()
    completion = FakeCompletion(
        [
            {
                "role": "assistant",
                "content": "",
                "tool_calls": [tool_call("call-1", "startHoming", {"deviceRef": "servo-01"})],
            },
            {"role": "assistant", "content": "Which device should I home?"},
        ]
    )
    services = await _started(make_services, backend, completion)

    result = await services.orchestrator.converse([], _user("home the servo"))

    assert result.answer == "Which device should I home?"
    assert result.tools_used == []
    assert result.tool_calls_requested == 1
    assert backend.requests == []
    tool_message = completion.bodies[1]["messages"][-1]
    payload = json.loads(tool_message["content"])
    assert payload["success"] is False
    assert "deviceRef" in payload["error"]
    assert payload["hint"]
    await services.close()


@pytest.mark.asyncio
async def test_malformed_arguments_become_failure_turns(make_services):
    completion = FakeCompletion(
        [
            {"role": "assistant", "content": "", "tool_calls": [tool_call("call-1", "getCia402State", "{broken")]},
            {"role": "assistant", "content": "Sorry, that failed."},
        ]
    )
    services = await _started(make_services, FakeBackend(), completion)

    result = await services.orchestrator.converse([], _user("state?"))

    assert result.tool_results[0].success is False
    assert "Malformed tool arguments" in result.tool_results[0].error
    assert len(completion.bodies) == 2
    await services.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("arguments", [["line3-axis-7"], 42, True])
async def test_non_object_arguments_and_numeric_ids_stay_inside_the_conversation(make_services, arguments):
    backend = FakeBackend()
    raw_call = {"id": 7, "type": "function", "function": {"name": "getCia402State", "arguments": arguments}}
    completion = FakeCompletion(
        [
            {"role": "assistant", "content": "", "tool_calls": [raw_call]},
            {"role": "assistant", "content": "I could not read the device state."},
        ]
    )
    services = await _started(make_services, backend, completion)

    result = await services.orchestrator.converse([], _user("state?"))

    assert result.answer == "I could not read the device state."
    failure = result.tool_results[0]
    assert failure.success is False
    assert failure.rejected is True
    assert failure.call_id == "7"
    assert "Malformed tool arguments" in failure.error
    assert backend.requests == []
    assert len(completion.bodies) == 2
    assert completion.bodies[1]["messages"][-1]["tool_call_id"] == "7"
    await services.close()


@pytest.mark.asyncio
async def test_numeric_call_id_is_normalized_for_valid_calls(make_services):
    backend = FakeBackend()
    raw_call = {"id": 3, "type": "function", "function": {"name": "ping", "arguments": "{}"}}
    completion = FakeCompletion(
        [
            {"role": "assistant", "content": "", "tool_calls": [raw_call]},
            {"role": "assistant", "content": "Up."},
        ]
    )
    services = await _started(make_services, backend, completion)

    result = await services.orchestrator.converse([], _user("up?"))

    assert result.tool_results[0].success is True
    assert result.tool_results[0].call_id == "3"
    assert result.tool_turns[0].tool_call_id == "3"
    assert backend.paths() == ["/health"]
    await services.close()


@pytest.mark.asyncio
async def test_multiple_calls_run_in_order(make_services):
    backend = FakeBackend()
    completion = FakeCompletion(
        [
            {
                "role": "assistant",
                "content": "",
                "tool_calls": [
                    tool_call("a", "getCia402State", {"deviceRef": "line3-axis-7"}),
                    tool_call("b", "ping"),
                    tool_call("c", "getCia402State", {"deviceRef": "line3-axis-8"}),
                ],
            },
            {"role": "assistant", "content": "Done."},
        ]
    )
    services = await _started(make_services, backend, completion)

    result = await services.orchestrator.converse([], _user("check everything"))

    assert [r.call_id for r in result.tool_results] == ["a", "b", "c"]
    assert backend.paths() == [
        "/parameterConfig/api/devices/line3-axis-7/getCia402StateOfDevice",
        "/health",
        "/parameterConfig/api/devices/line3-axis-8/getCia402StateOfDevice",
    ]
    assert [m["tool_call_id"] for m in completion.bodies[1]["messages"][-3:]] == ["a", "b", "c"]
    assert result.tools_used == ["getCia402State", "ping", "getCia402State"]
    assert result.tool_calls_requested == 3
    assert [t.role for t in result.tool_turns] == [ChatRole.TOOL] * 3
    assert [t.to_message() for t in result.tool_turns] == completion.bodies[1]["messages"][-3:]
    await services.close()


@pytest.mark.asyncio
async def test_history_is_forwarded(make_services):
    completion = FakeCompletion([{"role": "assistant", "content": "line3-axis-7 it is."}])
    services = await _started(make_services, FakeBackend(), completion)
    history = [
        ChatTurn(role=ChatRole.USER, content="use line3-axis-7"),
        ChatTurn(role=ChatRole.ASSISTANT, content="ok"),
    ]

    await services.orchestrator.converse(history, _user("which device?"))

    roles = [m["role"] for m in completion.bodies[0]["messages"]]
    assert roles == ["system", "user", "assistant", "user"]
    await services.close()

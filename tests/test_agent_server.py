"""Tests for the worker agent app."""

import httpx
import pytest
from fastapi.testclient import TestClient

from agentsurface.agent_server import create_agent_app, echo_handler
from agentsurface.frames import COMMENT_FRAME, extract_frames, iter_data_payloads
from agentsurface.rpc import AgentClient, RpcError, RpcErrorKind

PUBLIC_URL = "http://weather.test"


async def failing_handler(input):
    raise RuntimeError("model unavailable")


def decode(text: str) -> list:
    events, remainder = extract_frames(text)
    assert remainder == ""
    return [p for event in events for p in iter_data_payloads(event)]


class TestAgentCard:
    def test_card_advertises_stream_endpoint(self):
        app = create_agent_app("weather-agent", "weather", echo_handler, PUBLIC_URL + "/")
        response = TestClient(app).get("/.well-known/agent-card.json")

        assert response.status_code == 200
        assert response.json() == {
            "name": "weather-agent",
            "version": "0.0.1",
            "endpoints": {"sendSubscribe": f"{PUBLIC_URL}/tasks/sendSubscribe"},
        }


class TestSendSubscribe:
    """Test the task stream emitted by an agent."""

    def test_stream_frames(self):
        """Preamble, started, completed, then the final artifact."""
        app = create_agent_app("weather-agent", "weather", echo_handler, PUBLIC_URL)
        response = TestClient(app).post("/tasks/sendSubscribe", json={"input": {"query": "Paris"}})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.text.startswith(COMMENT_FRAME)

        frames = decode(response.text)
        assert [f["type"] for f in frames] == ["status", "status", "final"]
        assert [f.get("stage") for f in frames[:2]] == ["started", "completed"]
        assert frames[-1]["artifact"] == {"kind": "weather", "data": {"query": "Paris"}}
        assert len({f["taskId"] for f in frames}) == 1
        assert frames[0]["taskId"].startswith("w_")

    def test_handler_error_becomes_final_error(self):
        app = create_agent_app("flight-agent", "flights", failing_handler, PUBLIC_URL)
        response = TestClient(app).post("/tasks/sendSubscribe", json={"input": {}})

        frames = decode(response.text)
        assert frames[-1]["type"] == "final"
        assert frames[-1]["error"] == "model unavailable"
        assert "artifact" not in frames[-1]


class TestAgentRoundTrip:
    """Test the RPC client against a real agent app in-process."""

    @pytest.mark.asyncio
    async def test_call_agent(self):
        app = create_agent_app("weather-agent", "weather", echo_handler, PUBLIC_URL)
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http:
            artifact = await AgentClient(http_client=http).call_agent(PUBLIC_URL, {"query": "Paris"})

        assert artifact.kind == "weather"
        assert artifact.data == {"query": "Paris"}

    @pytest.mark.asyncio
    async def test_call_agent_remote_error(self):
        app = create_agent_app("flight-agent", "flights", failing_handler, PUBLIC_URL)
        async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app)) as http:
            with pytest.raises(RpcError) as exc_info:
                await AgentClient(http_client=http).call_agent(PUBLIC_URL, {})

        assert exc_info.value.kind == RpcErrorKind.REMOTE_ERROR
        assert str(exc_info.value) == "model unavailable"

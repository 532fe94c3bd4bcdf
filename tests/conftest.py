"""Pytest configuration and fixtures for AgentSurface tests."""

import asyncio
import json

import httpx
import pytest

from agentsurface.catalog import Bindings, Catalog
from agentsurface.frames import extract_frames, iter_data_payloads

AGENT_URL = "http://agent.test"
SEND_SUBSCRIBE_URL = f"{AGENT_URL}/tasks/sendSubscribe"


def frame(payload: dict) -> bytes:
    return f"data: {json.dumps(payload)}\n\n".encode("utf-8")


async def byte_stream(chunks, hang: bool = False):
    """Yield chunks one read at a time, optionally never ending."""
    for chunk in chunks:
        yield chunk
        await asyncio.sleep(0)
    if hang:
        await asyncio.sleep(3600)


def payloads(connection) -> list:
    """Decode every data frame queued on a surface connection."""
    out = []
    for raw in connection.pending():
        events, _ = extract_frames(raw)
        for event in events:
            out.extend(iter_data_payloads(event))
    return out


class FakeAgent:
    """MockTransport-backed agent serving a card and a scripted task stream."""

    def __init__(
        self,
        chunks=(),
        hang: bool = False,
        card_status: int = 200,
        card_body: dict | None = None,
        task_status: int = 200,
    ):
        self.chunks = list(chunks)
        self.hang = hang
        self.card_status = card_status
        self.card_body = card_body
        self.task_status = task_status
        self.card_requests = 0
        self.task_bodies = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/.well-known/agent-card.json":
            self.card_requests += 1
            body = self.card_body if self.card_body is not None else {
                "name": "fake-agent",
                "version": "0.0.1",
                "endpoints": {"sendSubscribe": SEND_SUBSCRIBE_URL},
            }
            return httpx.Response(self.card_status, json=body)
        if request.url.path == "/tasks/sendSubscribe":
            self.task_bodies.append(json.loads(request.content))
            if self.task_status != 200:
                return httpx.Response(self.task_status, text="boom")
            return httpx.Response(
                200,
                headers={"content-type": "text/event-stream"},
                content=byte_stream(self.chunks, hang=self.hang),
            )
        return httpx.Response(404)

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def catalog_components() -> list:
    """A small catalog covering every bind-bearing component type."""
    return [
        {"id": "root", "component": {"Column": {"children": {"explicitList": [
            "title", "query", "go", "weather", "picker", "detail", "logo",
        ]}}}},
        {"id": "title", "component": {"Text": {"text": {"literalString": "Trip"}, "usageHint": "h2"}}},
        {"id": "query", "component": {"TextField": {
            "label": {"literalString": "Query"}, "text": {"path": "/form/query"},
        }}},
        {"id": "goLabel", "component": {"Text": {"text": {"literalString": "Go"}}}},
        {"id": "go", "component": {"Button": {
            "child": "goLabel",
            "action": {"name": "submit", "context": [{"key": "query", "value": {"path": "/form/query"}}]},
        }}},
        {"id": "weather", "component": {"Card": {
            "title": {"literalString": "Weather"}, "body": {"path": "/weather/temp_text"},
        }}},
        {"id": "picker", "component": {"Select": {
            "label": {"literalString": "Flights"},
            "options": {"path": "/flights/options"},
            "selectedIndex": {"path": "/flights/selectedIndex"},
            "detailText": {"path": "/flights/detail"},
            "detailImage": {"path": "/flights/image"},
        }}},
        {"id": "detail", "component": {"Text": {"text": {"path": "/flights/detail"}}}},
        {"id": "logo", "component": {"Image": {"src": {"path": "/flights/image"}}}},
    ]


@pytest.fixture
def catalog(catalog_components) -> Catalog:
    return Catalog(root="root", components=catalog_components)


@pytest.fixture
def bindings() -> Bindings:
    return Bindings.model_validate({
        "root": "root",
        "form": {"query": "/form/query"},
        "weather": {"tempText": "/weather/temp_text", "precipText": "/weather/precip_text"},
        "flights": {
            "options": "/flights/options",
            "optionsText": "/flights/options_text",
            "selectedIndex": "/flights/selectedIndex",
            "detailText": "/flights/detail",
            "detailImage": "/flights/image",
        },
    })

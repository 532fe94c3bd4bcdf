"""HTTP coordinator: UI surface streams, UI events, and agent fan-out."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse

from agentsurface import config
from agentsurface.catalog import Bindings, Catalog, load_bindings, load_catalog
from agentsurface.discovery import DiscoveryError
from agentsurface.frames import EVENT_STREAM_HEADERS, EVENT_STREAM_MEDIA_TYPE
from agentsurface.orchestrator import AgentCall, run_all
from agentsurface.presenters import error_writes, loading_writes, result_writes
from agentsurface.rpc import AgentClient, RpcError
from agentsurface.schemas import (
    ErrorResponse,
    EventResponse,
    HealthResponse,
    UserAction,
    UserActionRequest,
)
from agentsurface.surface import NoActiveStreamError, SurfaceEmitter, SurfaceRegistry

logger = logging.getLogger(__name__)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

SUBMIT_ACTION = "submit"


def _error_code(exc: Exception) -> str:
    if isinstance(exc, RpcError):
        return "AGENT_TIMEOUT" if exc.is_timeout else "AGENT_ERROR"
    return "DISCOVERY_ERROR"


def _push_writes(emitter: SurfaceEmitter, surface_id: str, writes: list[tuple[str, Any]]) -> None:
    """Write to the surface, tolerating a stream that closed mid-request."""
    try:
        emitter.apply_writes(surface_id, writes)
    except NoActiveStreamError:
        logger.warning(f"Surface {surface_id} disconnected before {len(writes)} writes were sent")


def create_app(
    catalog: Catalog | None = None,
    bindings: Bindings | None = None,
    agent_client: AgentClient | None = None,
    weather_agent_url: str = config.WEATHER_AGENT_URL,
    flight_agent_url: str = config.FLIGHT_AGENT_URL,
    agent_timeout: float = config.AGENT_TIMEOUT,
    heartbeat_interval: float | None = config.HEARTBEAT_INTERVAL,
) -> FastAPI:
    """Build the coordinator app.

    Args:
        catalog: Component catalog (defaults to the bundled document)
        bindings: Result bindings (defaults to the bundled document)
        agent_client: Client used for agent calls
        weather_agent_url: Base URL of the weather agent
        flight_agent_url: Base URL of the flight agent
        agent_timeout: Per-call timeout in seconds
        heartbeat_interval: Seconds between stream heartbeats; None disables

    Returns:
        FastAPI application
    """
    registry = SurfaceRegistry()
    emitter = SurfaceEmitter(registry, catalog or load_catalog(), bindings or load_bindings())
    client = agent_client or AgentClient()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await client.aclose()

    app = FastAPI(
        title="AgentSurface Coordinator",
        description="Delegates tasks to worker agents and streams UI state to surfaces",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.registry = registry
    app.state.emitter = emitter
    app.state.agent_client = client

    @app.get("/ui/stream")
    async def ui_stream(surfaceId: str = config.DEFAULT_SURFACE_ID) -> StreamingResponse:
        """Open the push stream for a surface, replacing any previous one."""
        connection = emitter.connect(surfaceId, heartbeat_interval=heartbeat_interval)

        async def stream() -> AsyncIterator[str]:
            try:
                async for frame in connection.frames():
                    yield frame
            finally:
                registry.release(connection)

        return StreamingResponse(
            stream(),
            media_type=EVENT_STREAM_MEDIA_TYPE,
            headers=EVENT_STREAM_HEADERS,
        )

    @app.post("/ui/event", response_model=EventResponse)
    async def ui_event(request: UserActionRequest) -> Any:
        """Handle a user action raised by a surface.

        Args:
            request: UserActionRequest wrapping the action

        Returns:
            EventResponse, or an ErrorResponse with status 500 if the
            agent fan-out failed
        """
        action = request.user_action or UserAction()
        surface_id = action.surface_id or config.DEFAULT_SURFACE_ID
        registry.get(surface_id)

        logger.info(f"Received user action: surface={surface_id}, name={action.name}")
        if action.name != SUBMIT_ACTION:
            return EventResponse()

        query = str(action.context.get("query") or "")
        if not query.strip():
            raise HTTPException(status_code=400, detail="Empty query")

        bindings = emitter.bindings
        _push_writes(emitter, surface_id, loading_writes(bindings, query))

        calls = [
            AgentCall(weather_agent_url, {"query": query}),
            AgentCall(flight_agent_url, {"query": query}),
        ]
        try:
            weather, flights = await run_all(client, calls, timeout=agent_timeout)
        except (RpcError, DiscoveryError) as e:
            message = f"ERROR: {e}"
            logger.error(f"Fan-out failed for surface {surface_id}: {e}")
            _push_writes(emitter, surface_id, error_writes(bindings, message))
            return JSONResponse(
                status_code=500,
                content=ErrorResponse(detail=message, error_code=_error_code(e)).model_dump(),
            )

        _push_writes(emitter, surface_id, result_writes(bindings, weather, flights))
        logger.info(f"Completed user action: surface={surface_id}, name={action.name}")
        return EventResponse()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Report coordinator status."""
        return HealthResponse(service="main-agent", active_surfaces=len(registry))

    @app.exception_handler(NoActiveStreamError)
    async def no_stream_handler(request: Request, exc: NoActiveStreamError) -> JSONResponse:
        return JSONResponse(
            status_code=409,
            content=ErrorResponse(detail=str(exc), error_code="NO_ACTIVE_STREAM").model_dump(),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(detail=str(exc), error_code="INTERNAL_ERROR").model_dump(),
        )

    return app


app = create_app()

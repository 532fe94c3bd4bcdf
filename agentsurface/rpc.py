"""Streaming RPC client: submit a task and wait for its terminal frame."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

import httpx
from pydantic import ValidationError

from agentsurface.config import AGENT_TIMEOUT
from agentsurface.discovery import AgentDiscovery
from agentsurface.frames import FrameDecoder, ProtocolFrameError
from agentsurface.schemas import Artifact, TaskFrame, TaskSubmission

logger = logging.getLogger(__name__)


class RpcErrorKind(str, Enum):
    """Failure modes of a streaming call."""

    REMOTE_ERROR = "remote-error"
    TIMEOUT = "timeout"
    STREAM_ENDED = "stream-ended-without-result"


class RpcError(Exception):
    """Raised when a streaming call does not produce an artifact."""

    def __init__(
        self,
        message: str,
        kind: RpcErrorKind = RpcErrorKind.REMOTE_ERROR,
        elapsed: float | None = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.elapsed = elapsed

    @property
    def is_timeout(self) -> bool:
        return self.kind == RpcErrorKind.TIMEOUT


def _parse_task_frame(payload: Any) -> TaskFrame:
    try:
        return TaskFrame.model_validate(payload)
    except ValidationError as e:
        raise ProtocolFrameError(f"Malformed task frame: {payload!r}") from e


def _terminal_result(frame: TaskFrame) -> Artifact | None:
    """Return the artifact of a terminal frame, raising on a remote error."""
    if frame.error is not None:
        raise RpcError(frame.error, RpcErrorKind.REMOTE_ERROR)
    if frame.artifact is not None:
        return frame.artifact
    if frame.is_terminal:
        raise ProtocolFrameError(f"Final frame without artifact or error: task={frame.task_id}")
    return None


class AgentClient:
    """Calls agents through their advertised ``sendSubscribe`` endpoint."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        discovery: AgentDiscovery | None = None,
    ):
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient()
        self.discovery = discovery or AgentDiscovery(self._http)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> AgentClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def call_agent(
        self,
        base_url: str,
        input: Any,
        timeout: float = AGENT_TIMEOUT,
    ) -> Artifact:
        """Submit ``input`` to an agent and return its artifact.

        Args:
            base_url: Agent base address
            input: Arbitrary JSON-serializable task input
            timeout: Seconds to wait for the terminal frame

        Returns:
            Artifact from the agent's final frame

        Raises:
            DiscoveryError: If the agent card cannot be resolved
            RpcError: On remote error, timeout, or a stream without a result
        """
        card = await self.discovery.get_descriptor(base_url)
        endpoint = card.endpoints.send_subscribe

        try:
            return await asyncio.wait_for(self._subscribe(endpoint, input), timeout)
        except asyncio.TimeoutError as e:
            logger.warning(f"sendSubscribe timed out after {timeout}s: {base_url}")
            raise RpcError(
                f"sendSubscribe timeout after {timeout}s: {base_url}",
                RpcErrorKind.TIMEOUT,
                elapsed=timeout,
            ) from e

    async def _subscribe(self, endpoint: str, input: Any) -> Artifact:
        body = TaskSubmission(input=input).model_dump()
        try:
            async with self._http.stream("POST", endpoint, json=body, timeout=None) as response:
                if not response.is_success:
                    raise RpcError(
                        f"sendSubscribe failed: {endpoint} {response.status_code}",
                        RpcErrorKind.REMOTE_ERROR,
                    )
                return await self._read_until_final(response)
        except httpx.HTTPError as e:
            logger.error(f"sendSubscribe transport error for {endpoint}: {e}")
            raise RpcError(
                f"sendSubscribe failed: {endpoint} ({e})", RpcErrorKind.REMOTE_ERROR
            ) from e

    async def _read_until_final(self, response: httpx.Response) -> Artifact:
        decoder = FrameDecoder()
        async for chunk in response.aiter_bytes():
            for payload in decoder.feed(chunk):
                try:
                    frame = _parse_task_frame(payload)
                    artifact = _terminal_result(frame)
                except ProtocolFrameError as e:
                    logger.warning(f"Dropping frame: {e}")
                    continue
                if artifact is not None:
                    logger.info(f"Task {frame.task_id} finished with artifact kind={artifact.kind}")
                    return artifact
                logger.debug(f"Task {frame.task_id} stage={frame.stage}")

        raise RpcError("stream ended without result", RpcErrorKind.STREAM_ENDED)

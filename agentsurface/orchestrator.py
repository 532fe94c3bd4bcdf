"""Concurrent fan-out of agent calls with all-or-nothing join."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from agentsurface.config import AGENT_TIMEOUT
from agentsurface.schemas import Artifact

logger = logging.getLogger(__name__)


class AgentCaller(Protocol):
    async def call_agent(self, base_url: str, input: Any, timeout: float = ...) -> Artifact: ...


@dataclass(frozen=True)
class AgentCall:
    """One agent invocation in a fan-out."""

    base_url: str
    input: Any


# Calls abandoned after a sibling failed; held so they are not collected mid-flight
_detached: set[asyncio.Task] = set()


def _discard_outcome(task: asyncio.Task) -> None:
    _detached.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.info(f"Discarded late failure from abandoned call: {exc}")


async def run_all(
    client: AgentCaller,
    calls: list[AgentCall],
    timeout: float = AGENT_TIMEOUT,
) -> list[Artifact]:
    """Run every call concurrently and return artifacts in call order.

    The first failure is raised as soon as it happens. Calls still in flight
    keep running, but their results and errors are discarded.

    Args:
        client: Object exposing ``call_agent``
        calls: Agent calls to issue
        timeout: Per-call timeout in seconds

    Returns:
        One artifact per call, in the order given

    Raises:
        RpcError, DiscoveryError: The first failure among the calls
    """
    if not calls:
        return []

    tasks = [
        asyncio.create_task(client.call_agent(call.base_url, call.input, timeout=timeout))
        for call in calls
    ]
    pending = set(tasks)

    while pending:
        done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_EXCEPTION)
        failed = [task for task in tasks if task in done and task.exception() is not None]
        if failed:
            for task in pending:
                _detached.add(task)
                task.add_done_callback(_discard_outcome)
            logger.warning(
                f"Fan-out failed after {len(tasks) - len(pending)}/{len(tasks)} calls settled"
            )
            raise failed[0].exception()

    return [task.result() for task in tasks]

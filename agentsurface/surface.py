"""Push side of UI surface streams.

A ``SurfaceConnection`` is one live server-push stream: frames are queued by
the emitter and drained by the HTTP response. The ``SurfaceRegistry`` keeps
at most one live connection per surface id; registering a new one closes the
previous connection and stops its heartbeat in the same step.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from agentsurface.catalog import Bindings, Catalog, root_id
from agentsurface.config import HEARTBEAT_INTERVAL
from agentsurface.datamodel import split_path
from agentsurface.frames import COMMENT_FRAME, encode_frame
from agentsurface.init_synth import infer_init, materialize
from agentsurface.presenters import default_overrides
from agentsurface.schemas import BeginRendering, DataEntry, DataModelUpdate, SurfaceUpdate

logger = logging.getLogger(__name__)


class NoActiveStreamError(Exception):
    """Raised when a surface has no live stream connection."""

    def __init__(self, surface_id: str):
        self.surface_id = surface_id
        super().__init__(f"No active stream for surfaceId: {surface_id}")


class SurfaceConnection:
    """One live server-push stream for a surface."""

    def __init__(self, surface_id: str):
        self.surface_id = surface_id
        self.closed = False
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._heartbeat: asyncio.Task | None = None

    def __repr__(self) -> str:
        return f"SurfaceConnection(surface_id={self.surface_id!r}, closed={self.closed})"

    def send(self, payload: dict[str, Any]) -> None:
        """Queue one data frame."""
        self.send_raw(encode_frame(payload))

    def send_raw(self, frame: str) -> None:
        if self.closed:
            logger.debug(f"Dropping frame for closed connection on {self.surface_id}")
            return
        self._queue.put_nowait(frame)

    @property
    def heartbeat_active(self) -> bool:
        return self._heartbeat is not None and not self._heartbeat.done()

    def start_heartbeat(self, interval: float = HEARTBEAT_INTERVAL) -> None:
        """Queue a comment frame every ``interval`` seconds until stopped."""
        self.stop_heartbeat()
        self._heartbeat = asyncio.create_task(self._heartbeat_loop(interval))

    def stop_heartbeat(self) -> None:
        if self._heartbeat is not None:
            self._heartbeat.cancel()
            self._heartbeat = None

    async def _heartbeat_loop(self, interval: float) -> None:
        while not self.closed:
            await asyncio.sleep(interval)
            self.send_raw(COMMENT_FRAME)

    def close(self) -> None:
        """Stop the heartbeat and end the frame iterator."""
        self.stop_heartbeat()
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(None)

    def pending(self) -> list[str]:
        """Drain queued frames without waiting."""
        frames = []
        while not self._queue.empty():
            frame = self._queue.get_nowait()
            if frame is not None:
                frames.append(frame)
        return frames

    async def frames(self) -> AsyncIterator[str]:
        """Yield queued frames until the connection is closed."""
        while True:
            frame = await self._queue.get()
            if frame is None:
                break
            yield frame


class SurfaceRegistry:
    """Surface id to live connection map."""

    def __init__(self) -> None:
        self._connections: dict[str, SurfaceConnection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def register(self, connection: SurfaceConnection) -> SurfaceConnection | None:
        """Make ``connection`` the active one for its surface.

        Returns:
            The superseded connection, already closed, or None
        """
        previous = self._connections.get(connection.surface_id)
        if previous is not None and previous is not connection:
            previous.close()
            logger.info(f"Superseded stream for surface {connection.surface_id}")
        self._connections[connection.surface_id] = connection
        return previous if previous is not connection else None

    def lookup(self, surface_id: str) -> SurfaceConnection | None:
        return self._connections.get(surface_id)

    def get(self, surface_id: str) -> SurfaceConnection:
        connection = self._connections.get(surface_id)
        if connection is None or connection.closed:
            raise NoActiveStreamError(surface_id)
        return connection

    def release(self, connection: SurfaceConnection) -> bool:
        """Close ``connection`` and unregister it if it is still the active one."""
        connection.close()
        if self._connections.get(connection.surface_id) is connection:
            del self._connections[connection.surface_id]
            logger.info(f"Released stream for surface {connection.surface_id}")
            return True
        return False


class SurfaceEmitter:
    """Pushes catalog, initial state and deltas to registered surfaces."""

    def __init__(self, registry: SurfaceRegistry, catalog: Catalog, bindings: Bindings):
        self.registry = registry
        self.catalog = catalog
        self.bindings = bindings

    @property
    def root_id(self) -> str:
        return root_id(self.catalog, self.bindings)

    def initial_frames(self, surface_id: str) -> list[dict[str, Any]]:
        """Catalog, synthesized initial data model, then begin-rendering."""
        frames: list[dict[str, Any]] = [
            {"surfaceUpdate": SurfaceUpdate(
                surface_id=surface_id, components=self.catalog.components
            ).to_wire()}
        ]

        items = infer_init(self.catalog.components)
        for update in materialize(items, default_overrides(self.bindings)):
            update.surface_id = surface_id
            frames.append({"dataModelUpdate": update.to_wire()})

        frames.append(
            {"beginRendering": BeginRendering(surface_id=surface_id, root=self.root_id).to_wire()}
        )
        return frames

    def connect(
        self,
        surface_id: str,
        heartbeat_interval: float | None = HEARTBEAT_INTERVAL,
    ) -> SurfaceConnection:
        """Register a new connection and queue the initial UI on it."""
        connection = SurfaceConnection(surface_id)
        self.registry.register(connection)
        connection.send_raw(COMMENT_FRAME)
        for frame in self.initial_frames(surface_id):
            connection.send(frame)
        if heartbeat_interval:
            connection.start_heartbeat(heartbeat_interval)
        logger.info(f"Surface {surface_id} connected, root={self.root_id}")
        return connection

    def write_many(self, surface_id: str, base_path: str, contents: list[DataEntry]) -> None:
        """Push one mutation unit to the surface's active connection."""
        update = DataModelUpdate(surface_id=surface_id, path=base_path, contents=contents)
        self.registry.get(surface_id).send({"dataModelUpdate": update.to_wire()})

    def write(self, surface_id: str, full_path: str, value: Any) -> None:
        """Overwrite a single full path."""
        parts = split_path(full_path)
        if parts is None:
            logger.warning(f"Ignoring write to empty path on surface {surface_id}")
            return
        base, key = parts
        self.write_many(surface_id, base, [DataEntry.from_value(key, value)])

    def apply_writes(self, surface_id: str, writes: list[tuple[str, Any]]) -> None:
        for full_path, value in writes:
            self.write(surface_id, full_path, value)

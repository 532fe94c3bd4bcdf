"""Client-side reconciliation of a UI surface stream.

The engine keeps a component registry and a path-indexed data model, applies
frames in arrival order, and rebuilds a render tree from the root id after
every catalog or data model change once rendering has begun. Interactions
write bind paths locally and turn button clicks into user actions.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError

from agentsurface.catalog import ComponentNode, ComponentType, bind_path, normalize_component
from agentsurface.config import DEFAULT_SURFACE_ID
from agentsurface.datamodel import DataModel
from agentsurface.frames import FrameDecoder, ProtocolFrameError
from agentsurface.presenters import format_option_detail
from agentsurface.schemas import (
    BeginRendering,
    DataModelUpdate,
    SurfaceUpdate,
    UserAction,
    UserActionRequest,
)

logger = logging.getLogger(__name__)

ActionSubmitter = Callable[[UserAction], Awaitable[Any]]

FRAME_TAGS = ("surfaceUpdate", "dataModelUpdate", "beginRendering")


@dataclass
class RenderNode:
    """One node of a rendered surface.

    ``type`` is None for placeholders standing in for ids that did not
    resolve to a component.
    """

    id: str
    type: ComponentType | None
    props: dict[str, Any] = field(default_factory=dict)
    children: list[RenderNode] = field(default_factory=list)

    @property
    def is_placeholder(self) -> bool:
        return self.type is None

    def find(self, node_id: str) -> RenderNode | None:
        if self.id == node_id:
            return self
        for child in self.children:
            found = child.find(node_id)
            if found is not None:
                return found
        return None


def _display(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _option_label(option: Any, index: int) -> str:
    if isinstance(option, dict):
        for name in ("label", "name", "title", "airline"):
            if option.get(name):
                return str(option[name])
        return f"Option {index + 1}"
    return _display(option)


class ReconciliationEngine:
    """Applies surface frames and maintains the render tree."""

    def __init__(
        self,
        surface_id: str = DEFAULT_SURFACE_ID,
        submit: ActionSubmitter | None = None,
    ):
        self.surface_id = surface_id
        self.components: dict[str, ComponentNode] = {}
        self.data = DataModel()
        self.root_id: str | None = None
        self.tree: RenderNode | None = None
        self.render_count = 0
        self._submit = submit

    @property
    def state(self) -> str:
        return "rendering" if self.root_id else "uninitialized"

    # --- Frame processing ---

    def handle_message(self, message: Any) -> bool:
        """Apply one decoded frame.

        Malformed frames are logged and dropped.

        Returns:
            True if the frame was applied
        """
        try:
            self._apply(message)
        except ProtocolFrameError as e:
            logger.warning(f"Dropping frame: {e}")
            return False
        return True

    def _apply(self, message: Any) -> None:
        if not isinstance(message, dict) or not any(tag in message for tag in FRAME_TAGS):
            raise ProtocolFrameError(f"Unrecognized frame: {message!r}")

        # Every part is validated before any state changes
        surface_update = None
        data_update = None
        if "surfaceUpdate" in message:
            surface_update = self._parse(SurfaceUpdate, message["surfaceUpdate"])
        if "dataModelUpdate" in message:
            data_update = self._parse(DataModelUpdate, message["dataModelUpdate"])

        if surface_update is not None:
            self._apply_surface_update(surface_update)
        if data_update is not None:
            self.data.apply(data_update.path, data_update.contents)
        if "beginRendering" in message:
            if self._apply_begin_rendering(message["beginRendering"]):
                self.render()
                return

        changed = surface_update is not None or data_update is not None
        if changed and self.root_id:
            self.render()

    @staticmethod
    def _parse(model: type[Any], body: Any) -> Any:
        try:
            return model.model_validate(body)
        except ValidationError as e:
            raise ProtocolFrameError(f"Malformed {model.__name__}: {body!r}") from e

    def _apply_surface_update(self, update: SurfaceUpdate) -> None:
        for raw in update.components:
            node = normalize_component(raw)
            if node is None:
                logger.warning(f"Skipping component without id or type: {raw!r}")
                continue
            self.components[node.id] = node

    def _apply_begin_rendering(self, body: Any) -> bool:
        try:
            begin = BeginRendering.model_validate(body)
        except ValidationError:
            logger.warning(f"Ignored beginRendering without root: {body!r}")
            return False
        if not begin.root:
            logger.warning(f"Ignored beginRendering with empty root: {body!r}")
            return False
        self.root_id = begin.root
        return True

    # --- Rendering ---

    def render(self) -> RenderNode | None:
        """Rebuild the render tree from the root id."""
        if not self.root_id:
            return None
        self.tree = self._build(self.root_id, frozenset())
        self.render_count += 1
        return self.tree

    def resolve_text(self, ref: Any) -> str:
        """Resolve a literal, ``{literalString}`` or ``{path}`` reference to text."""
        if ref is None:
            return ""
        if isinstance(ref, str):
            return ref
        if isinstance(ref, dict):
            if ref.get("literalString") is not None:
                return str(ref["literalString"])
            path = bind_path(ref)
            if path:
                return _display(self.data.get(path))
        return ""

    def _build(self, node_id: str, ancestors: frozenset[str]) -> RenderNode:
        node = self.components.get(node_id)
        if node is None:
            return RenderNode(node_id, None, {"text": f"[Unknown component: {node_id}]"})
        if node_id in ancestors:
            logger.warning(f"Component reference cycle at {node_id}")
            return RenderNode(node_id, None, {"text": f"[Cyclic component: {node_id}]"})

        payload = node.payload
        kind = node.type

        if kind.is_container:
            path = ancestors | {node_id}
            children = [self._build(child_id, path) for child_id in node.child_ids()]
            return RenderNode(node_id, kind, {}, children)

        if kind == ComponentType.TEXT:
            props = {"text": self.resolve_text(payload.get("text"))}
            if payload.get("usageHint"):
                props["usageHint"] = payload["usageHint"]
            return RenderNode(node_id, kind, props)

        if kind == ComponentType.TEXT_FIELD:
            path = bind_path(payload.get("text"))
            return RenderNode(node_id, kind, {
                "label": self.resolve_text(payload.get("label")) or "Input",
                "value": _display(self.data.get(path)) if path else "",
                "bindPath": path,
            })

        if kind == ComponentType.BUTTON:
            label = "Button"
            child = self.components.get(payload.get("child") or "")
            if child is not None and child.type == ComponentType.TEXT:
                label = self.resolve_text(child.payload.get("text")) or "Button"
            action = payload.get("action") or {}
            return RenderNode(node_id, kind, {"label": label, "action": action.get("name") or "action"})

        if kind == ComponentType.SELECT:
            options = self.data.get(bind_path(payload.get("options")))
            options = options if isinstance(options, list) else []
            selected = self.data.get(bind_path(payload.get("selectedIndex")))
            return RenderNode(node_id, kind, {
                "label": self.resolve_text(payload.get("label")),
                "options": [_option_label(o, i) for i, o in enumerate(options)],
                "selectedIndex": selected if isinstance(selected, int) and not isinstance(selected, bool) else -1,
            })

        if kind == ComponentType.IMAGE:
            return RenderNode(node_id, kind, {"src": self.resolve_text(payload.get("src"))})

        if kind == ComponentType.CARD:
            return RenderNode(node_id, kind, {
                "title": self.resolve_text(payload.get("title")) or "Card",
                "body": self.resolve_text(payload.get("body")),
            })

        return RenderNode(node_id, kind, {"text": f"[Unsupported type: {node.type_name}]"})

    # --- Interaction ---

    def _component(self, component_id: str, expected: ComponentType) -> ComponentNode:
        node = self.components.get(component_id)
        if node is None:
            raise KeyError(f"Unknown component: {component_id}")
        if node.type != expected:
            raise ValueError(f"Component {component_id} is {node.type_name}, not {expected.value}")
        return node

    def input_text(self, component_id: str, value: str) -> None:
        """Write a keystroke's full field value into the TextField's bind path."""
        node = self._component(component_id, ComponentType.TEXT_FIELD)
        path = bind_path(node.payload.get("text"))
        if path:
            self.data.set(path, value)

    def select(self, component_id: str, index: int) -> None:
        """Select an option and recompute the Select's detail paths locally."""
        node = self._component(component_id, ComponentType.SELECT)
        payload = node.payload

        options = self.data.get(bind_path(payload.get("options")))
        options = options if isinstance(options, list) else []
        if not -1 <= index < len(options):
            raise ValueError(f"Option index {index} out of range for {component_id}")

        index_path = bind_path(payload.get("selectedIndex"))
        if index_path:
            self.data.set(index_path, index)

        selected = options[index] if index >= 0 else None
        detail_text_path = bind_path(payload.get("detailText"))
        if detail_text_path:
            option = selected if isinstance(selected, dict) else None
            self.data.set(detail_text_path, format_option_detail(option))
        detail_image_path = bind_path(payload.get("detailImage"))
        if detail_image_path:
            image = selected.get("image_url", "") if isinstance(selected, dict) else ""
            self.data.set(detail_image_path, image or "")

        if self.root_id:
            self.render()

    def action_context(self, component_id: str) -> dict[str, Any]:
        node = self._component(component_id, ComponentType.BUTTON)
        context = {}
        for item in (node.payload.get("action") or {}).get("context") or []:
            if not isinstance(item, dict) or not item.get("key"):
                continue
            ref = item.get("value")
            path = bind_path(ref)
            if path:
                context[item["key"]] = self.data.get(path)
            elif isinstance(ref, dict) and "literalString" in ref:
                context[item["key"]] = ref["literalString"]
            else:
                context[item["key"]] = None
        return context

    async def click(self, component_id: str) -> UserAction:
        """Build the button's user action and hand it to the submitter."""
        node = self._component(component_id, ComponentType.BUTTON)
        action = UserAction(
            surface_id=self.surface_id,
            name=(node.payload.get("action") or {}).get("name") or "action",
            context=self.action_context(component_id),
        )
        if self._submit is not None:
            await self._submit(action)
        return action


def render_text(node: RenderNode | None, indent: int = 0) -> list[str]:
    """Render a tree as indented text lines."""
    if node is None:
        return []
    pad = "  " * indent
    props = node.props

    if node.is_placeholder or node.type == ComponentType.UNSUPPORTED:
        lines = [f"{pad}{props['text']}"]
    elif node.type == ComponentType.TEXT:
        lines = [f"{pad}{props['text']}"]
    elif node.type == ComponentType.TEXT_FIELD:
        lines = [f"{pad}{props['label']}: [{props['value']}]"]
    elif node.type == ComponentType.BUTTON:
        lines = [f"{pad}<{props['label']}>"]
    elif node.type == ComponentType.SELECT:
        lines = [f"{pad}{props['label'] or 'Select'}:"]
        for i, label in enumerate(props["options"]):
            marker = "*" if i == props["selectedIndex"] else " "
            lines.append(f"{pad}  {marker} {label}")
    elif node.type == ComponentType.IMAGE:
        lines = [f"{pad}[image: {props['src']}]"] if props["src"] else []
    elif node.type == ComponentType.CARD:
        lines = [f"{pad}== {props['title']} =="]
        lines.extend(f"{pad}  {line}" for line in props["body"].splitlines())
    else:
        lines = []

    child_indent = indent + 1 if node.type == ComponentType.ROW else indent
    for child in node.children:
        lines.extend(render_text(child, child_indent))
    return lines


class SurfaceClient:
    """Consumes a coordinator's UI stream and posts user actions back."""

    def __init__(
        self,
        base_url: str,
        surface_id: str = DEFAULT_SURFACE_ID,
        http_client: httpx.AsyncClient | None = None,
        on_render: Callable[[RenderNode], None] | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient()
        self._on_render = on_render
        self.engine = ReconciliationEngine(surface_id, submit=self.post_user_action)

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> SurfaceClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def post_user_action(self, action: UserAction) -> dict[str, Any]:
        body = UserActionRequest(user_action=action).to_wire()
        response = await self._http.post(f"{self.base_url}/ui/event", json=body, timeout=None)
        if not response.is_success:
            logger.error(f"userAction failed: {response.status_code} {response.text}")
        return response.json()

    async def run(self, max_frames: int | None = None) -> None:
        """Read the stream, applying frames until it ends or ``max_frames`` applied."""
        decoder = FrameDecoder()
        applied = 0
        params = {"surfaceId": self.engine.surface_id}
        async with self._http.stream(
            "GET", f"{self.base_url}/ui/stream", params=params, timeout=None
        ) as response:
            response.raise_for_status()
            async for chunk in response.aiter_bytes():
                for payload in decoder.feed(chunk):
                    before = self.engine.render_count
                    if self.engine.handle_message(payload):
                        applied += 1
                    if self._on_render and self.engine.render_count != before:
                        self._on_render(self.engine.tree)
                    if max_frames is not None and applied >= max_frames:
                        return

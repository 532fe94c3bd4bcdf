"""Declarative component catalog and data model bindings."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from agentsurface.config import BINDINGS_PATH, CATALOG_PATH

logger = logging.getLogger(__name__)


class ComponentType(str, Enum):
    """Supported component types; anything else maps to UNSUPPORTED."""

    COLUMN = "Column"
    ROW = "Row"
    TEXT = "Text"
    TEXT_FIELD = "TextField"
    BUTTON = "Button"
    SELECT = "Select"
    IMAGE = "Image"
    CARD = "Card"
    UNSUPPORTED = "Unsupported"

    @classmethod
    def parse(cls, name: str | None) -> ComponentType:
        try:
            member = cls(name)
        except ValueError:
            return cls.UNSUPPORTED
        return member

    @property
    def is_container(self) -> bool:
        return self in (ComponentType.COLUMN, ComponentType.ROW)


@dataclass
class ComponentNode:
    """A catalog entry in normalized form."""

    id: str
    type: ComponentType
    type_name: str
    payload: dict[str, Any] = field(default_factory=dict)

    def child_ids(self) -> list[str]:
        """Ids this component references as children."""
        if self.type.is_container:
            children = self.payload.get("children") or {}
            return [c for c in children.get("explicitList") or [] if isinstance(c, str)]
        child = self.payload.get("child")
        if isinstance(child, str) and child:
            return [child]
        return []


def normalize_component(raw: Any) -> ComponentNode | None:
    """Turn ``{"id", "component": {"<Type>": payload}}`` into a ComponentNode.

    Returns None when the entry has no id or no type key.
    """
    if not isinstance(raw, dict):
        return None
    component_id = raw.get("id")
    wrapper = raw.get("component")
    if not isinstance(component_id, str) or not component_id or not isinstance(wrapper, dict):
        return None
    if not wrapper:
        return None

    type_name = next(iter(wrapper))
    payload = wrapper[type_name]
    return ComponentNode(
        id=component_id,
        type=ComponentType.parse(type_name),
        type_name=type_name,
        payload=payload if isinstance(payload, dict) else {},
    )


def bind_path(ref: Any) -> str | None:
    """Return the data model path of a bind reference, if ``ref`` is one."""
    if isinstance(ref, dict):
        path = ref.get("path")
        if isinstance(path, str) and path:
            return path
    return None


# --- Documents ---


class Catalog(BaseModel):
    """Component catalog document."""

    root: str = "root"
    components: list[dict[str, Any]] = Field(default_factory=list)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WeatherBindings(_CamelModel):
    temp_text: str | None = Field(default=None, alias="tempText")
    precip_text: str | None = Field(default=None, alias="precipText")


class FlightBindings(_CamelModel):
    options: str | None = None
    options_text: str | None = Field(default=None, alias="optionsText")
    selected_index: str | None = Field(default=None, alias="selectedIndex")
    detail_text: str | None = Field(default=None, alias="detailText")
    detail_image: str | None = Field(default=None, alias="detailImage")


class FormBindings(_CamelModel):
    query: str | None = None


class Bindings(_CamelModel):
    """Data model paths the coordinator writes results into."""

    root: str | None = None
    weather: WeatherBindings = Field(default_factory=WeatherBindings)
    flights: FlightBindings = Field(default_factory=FlightBindings)
    form: FormBindings = Field(default_factory=FormBindings)


def root_id(catalog: Catalog, bindings: Bindings) -> str:
    return bindings.root or catalog.root or "root"


def load_catalog(path: Path | str | None = None) -> Catalog:
    """Load the component catalog JSON document."""
    catalog_path = Path(path) if path else CATALOG_PATH
    return Catalog.model_validate(json.loads(catalog_path.read_text(encoding="utf-8")))


def load_bindings(path: Path | str | None = None) -> Bindings:
    """Load the bindings JSON document."""
    bindings_path = Path(path) if path else BINDINGS_PATH
    return Bindings.model_validate(json.loads(bindings_path.read_text(encoding="utf-8")))

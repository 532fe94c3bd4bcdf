"""Pydantic schemas for agent and UI surface wire contracts."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WireModel(BaseModel):
    """Base for camelCase wire models that also accept snake_case names."""

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump with wire aliases, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


# --- Agent card and task stream ---


class AgentEndpoints(WireModel):
    """Endpoints advertised by an agent card."""

    send_subscribe: str = Field(..., alias="sendSubscribe", min_length=1)


class AgentCard(WireModel):
    """Capability descriptor served at an agent's well-known path."""

    name: str = ""
    version: str = ""
    endpoints: AgentEndpoints


class Artifact(WireModel):
    """Opaque result payload produced by an agent."""

    kind: str
    data: Any = None


class TaskFrameType(str, Enum):
    """Kinds of frames on a task stream."""

    STATUS = "status"
    FINAL = "final"


class TaskFrame(WireModel):
    """One frame of a task's result stream.

    ``taskId`` and ``stage`` are informational and accepted in any JSON form.
    """

    type: TaskFrameType
    task_id: Any = Field(default=None, alias="taskId")
    stage: Any = None
    artifact: Artifact | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.type == TaskFrameType.FINAL


class TaskSubmission(WireModel):
    """Body of a task submission."""

    input: Any = None


# --- Data model ---


class DataEntry(WireModel):
    """One key overwrite in a data model mutation unit.

    Exactly one value tag is expected; readers check them in the order
    string, number, bool, json and fall back to an empty string.
    """

    key: str = Field(..., min_length=1)
    value_string: str | None = Field(default=None, alias="valueString")
    value_number: int | float | None = Field(default=None, alias="valueNumber")
    value_bool: bool | None = Field(default=None, alias="valueBool")
    value_json: Any = Field(default=None, alias="valueJson")

    @classmethod
    def from_value(cls, key: str, value: Any) -> DataEntry:
        """Tag a Python value with the matching value slot."""
        if value is None:
            return cls(key=key, value_string="")
        if isinstance(value, str):
            return cls(key=key, value_string=value)
        # bool is an int subclass, check it first
        if isinstance(value, bool):
            return cls(key=key, value_bool=value)
        if isinstance(value, (int, float)):
            return cls(key=key, value_number=value)
        return cls(key=key, value_json=value)

    def value(self) -> Any:
        if self.value_string is not None:
            return self.value_string
        if self.value_number is not None:
            return self.value_number
        if self.value_bool is not None:
            return self.value_bool
        if self.value_json is not None:
            return self.value_json
        return ""


class DataModelUpdate(WireModel):
    """Mutation unit: overwrite each entry's key directly under ``path``."""

    surface_id: str | None = Field(default=None, alias="surfaceId")
    path: str
    contents: list[DataEntry]


class InitKind(str, Enum):
    """Value kinds inferred for bind paths, weakest first."""

    STRING = "string"
    BOOL = "bool"
    NUMBER = "number"
    JSON_ARRAY = "jsonArray"


class InitItem(BaseModel):
    """A data model slot that a catalog binds to."""

    base: str
    key: str
    kind: InitKind

    @property
    def full_path(self) -> str:
        return (self.base if self.base.endswith("/") else self.base + "/") + self.key


# --- UI surface frames ---


class SurfaceUpdate(WireModel):
    """Component catalog upsert for a surface."""

    surface_id: str | None = Field(default=None, alias="surfaceId")
    components: list[dict[str, Any]] = Field(default_factory=list)


class BeginRendering(WireModel):
    """Tells the client which component id anchors the render tree."""

    surface_id: str | None = Field(default=None, alias="surfaceId")
    root: str


class UserAction(WireModel):
    """Intent raised by a UI interaction."""

    surface_id: str = Field(default="main", alias="surfaceId")
    name: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)


class UserActionRequest(WireModel):
    """Body of a UI event submission."""

    user_action: UserAction | None = Field(default=None, alias="userAction")


# --- Responses ---


class EventResponse(BaseModel):
    """Acknowledgement for a handled UI event."""

    ok: bool = True


class ErrorResponse(BaseModel):
    """Error response for failed requests."""

    detail: str
    error_code: str | None = None


class HealthResponse(WireModel):
    """Health check response."""

    ok: bool = True
    service: str
    active_surfaces: int = Field(default=0, alias="activeSurfaces")

"""Initial data model synthesis from a component catalog.

Every bind reference in the catalog names a data model slot the client will
read. Scanning the catalog yields one InitItem per slot with the value kind
its component expects, so the surface can be populated with defaults before
any agent has produced content.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from agentsurface.catalog import ComponentNode, ComponentType, bind_path, normalize_component
from agentsurface.datamodel import split_path
from agentsurface.schemas import DataEntry, DataModelUpdate, InitItem, InitKind

logger = logging.getLogger(__name__)

KIND_RANK: dict[InitKind, int] = {
    InitKind.STRING: 1,
    InitKind.BOOL: 2,
    InitKind.NUMBER: 3,
    InitKind.JSON_ARRAY: 4,
}

# Payload fields that carry bind references, per component type
BIND_FIELDS: dict[ComponentType, tuple[tuple[str, InitKind], ...]] = {
    ComponentType.TEXT_FIELD: (("text", InitKind.STRING),),
    ComponentType.TEXT: (("text", InitKind.STRING),),
    ComponentType.CARD: (("body", InitKind.STRING),),
    ComponentType.IMAGE: (("src", InitKind.STRING),),
    ComponentType.SELECT: (
        ("options", InitKind.JSON_ARRAY),
        ("selectedIndex", InitKind.NUMBER),
    ),
}

DEFAULT_VALUES: dict[InitKind, Any] = {
    InitKind.JSON_ARRAY: [],
    InitKind.NUMBER: -1,
    InitKind.BOOL: False,
    InitKind.STRING: "",
}


def _component_bindings(node: ComponentNode) -> list[tuple[str, InitKind]]:
    out = []
    for field_name, kind in BIND_FIELDS.get(node.type, ()):
        path = bind_path(node.payload.get(field_name))
        if path is not None:
            out.append((path, kind))
    return out


def infer_init(components: list[Any]) -> list[InitItem]:
    """Infer the data model slots a catalog binds to.

    When several components bind the same full path with different kinds, the
    kind with the highest rank wins (string < bool < number < jsonArray).

    Args:
        components: Catalog entries, raw or already normalized

    Returns:
        One InitItem per distinct full path, in first-seen order
    """
    best: dict[tuple[str, str], InitItem] = {}

    for raw in components or []:
        node = raw if isinstance(raw, ComponentNode) else normalize_component(raw)
        if node is None:
            continue

        for path, kind in _component_bindings(node):
            if not path.startswith("/"):
                continue
            parts = split_path(path)
            if parts is None:
                continue
            base, key = parts

            current = best.get((base, key))
            if current is None or KIND_RANK[kind] > KIND_RANK[current.kind]:
                if current is not None:
                    logger.debug(
                        f"Bind path {path} upgraded from {current.kind.value} to {kind.value}"
                    )
                best[(base, key)] = InitItem(base=base, key=key, kind=kind)

    return list(best.values())


def materialize(
    items: list[InitItem],
    overrides: dict[str, Any] | None = None,
) -> list[DataModelUpdate]:
    """Build mutation units that populate every inferred slot.

    Args:
        items: Output of ``infer_init``
        overrides: Map of full path to literal default; takes precedence
            over the kind default

    Returns:
        One DataModelUpdate per distinct base path
    """
    overrides = overrides or {}
    grouped: dict[str, list[DataEntry]] = {}

    for item in items:
        if not item.key:
            continue
        if item.full_path in overrides:
            entry = DataEntry.from_value(item.key, overrides[item.full_path])
        else:
            entry = DataEntry.from_value(item.key, copy.copy(DEFAULT_VALUES[item.kind]))
        grouped.setdefault(item.base or "/", []).append(entry)

    return [DataModelUpdate(path=base, contents=contents) for base, contents in grouped.items()]

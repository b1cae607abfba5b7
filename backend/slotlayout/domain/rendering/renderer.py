"""
Slot tree renderer.

Turns ``(page schema, configuration, view mode)`` into an ordered list of
render nodes. Pure: the same triple always yields the same nodes, the input
configuration is never mutated, and malformed input degrades into fewer
nodes plus ``error`` nodes instead of raising.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from slotlayout.domain.layout.spans import grid_layout, normalize_span
from slotlayout.domain.slots.keys import SlotKey
from slotlayout.domain.slots.registry import PageTypeSchema, SlotDefinition
from slotlayout.utils.json_safe import json_copy

logger = logging.getLogger(__name__)

KIND_SLOT = "slot"
KIND_ERROR = "error"


@dataclass(frozen=True)
class MicroSlotNode:
    key: str
    micro_id: str
    content: str = ""
    class_name: str = ""
    style: Dict[str, Any] = field(default_factory=dict)
    col_span: int = 12
    row_span: int = 1
    layout: Dict[str, str] = field(default_factory=dict)
    component: Optional[str] = None
    props: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "microId": self.micro_id,
            "content": self.content,
            "className": self.class_name,
            "style": json_copy(self.style),
            "colSpan": self.col_span,
            "rowSpan": self.row_span,
            "layout": dict(self.layout),
            "component": self.component,
            "props": json_copy(self.props),
        }


@dataclass(frozen=True)
class RenderNode:
    kind: str
    slot_id: str
    name: str
    type: str
    class_name: str = ""
    style: Dict[str, Any] = field(default_factory=dict)
    component: Optional[str] = None
    micro_slots: Tuple[MicroSlotNode, ...] = ()
    message: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.kind == KIND_ERROR

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "kind": self.kind,
            "slotId": self.slot_id,
            "name": self.name,
            "type": self.type,
            "className": self.class_name,
            "style": json_copy(self.style),
            "component": self.component,
            "microSlots": [node.to_dict() for node in self.micro_slots],
        }
        if self.message is not None:
            data["message"] = self.message
        return data


def error_node(slot_id: str, message: str) -> RenderNode:
    return RenderNode(kind=KIND_ERROR, slot_id=slot_id, name=slot_id, type=KIND_ERROR, message=message)


def _mapping(config: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = config.get(name)
    return value if isinstance(value, Mapping) else {}


def _string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _style(value: Any) -> Dict[str, Any]:
    return json_copy(dict(value)) if isinstance(value, Mapping) else {}


def major_slot_order(schema: PageTypeSchema, config: Mapping[str, Any], view_mode: Optional[str]) -> List[str]:
    """
    Configured ``majorSlots`` (or the schema defaults) restricted to slots
    visible in ``view_mode``. Ids without a definition are kept so they can
    be reported.
    """
    configured = config.get("majorSlots")
    candidates = configured if isinstance(configured, list) else list(schema.default_slots)

    order: List[str] = []
    for slot_id in candidates:
        slot_id = slot_id if isinstance(slot_id, str) else repr(slot_id)
        if slot_id in order:
            continue
        definition = schema.get(slot_id)
        if definition is not None and not definition.visible_in(view_mode):
            continue
        order.append(slot_id)
    return order


def micro_slot_order(definition: SlotDefinition, config: Mapping[str, Any]) -> List[SlotKey]:
    configured = _mapping(config, "microSlotOrders").get(definition.slot_id)
    candidates = configured if isinstance(configured, list) else list(definition.micro_slots)

    keys: List[SlotKey] = []
    for raw in candidates:
        try:
            key = SlotKey.parse(raw, definition.slot_id)
        except ValueError:
            logger.debug("Skipping unreadable micro slot %r in %s", raw, definition.slot_id)
            continue
        if key not in keys:
            keys.append(key)
    return keys


def _render_micro(
    key: SlotKey,
    definition: SlotDefinition,
    schema: PageTypeSchema,
    config: Mapping[str, Any],
) -> Optional[MicroSlotNode]:
    entry = _mapping(config, "slots").get(key.generic_id(schema.page_type))
    entry = entry if isinstance(entry, Mapping) else {}
    if entry.get("enabled") is False:
        return None

    col, row = normalize_span(
        _mapping(config, "microSlotSpans").get(key.key),
        definition.default_span(key.micro_id),
    )
    component = entry.get("component")

    return MicroSlotNode(
        key=key.key,
        micro_id=key.micro_id,
        content=_string(_mapping(config, "slotContent").get(key.key)),
        class_name=_string(_mapping(config, "elementClasses").get(key.key)),
        style=_style(_mapping(config, "elementStyles").get(key.key)),
        col_span=col,
        row_span=row,
        layout=grid_layout(col, row),
        component=component if isinstance(component, str) else None,
        props=_style(entry.get("props")),
    )


def _render_major(definition: SlotDefinition, schema: PageTypeSchema, config: Mapping[str, Any]) -> RenderNode:
    micro_nodes = []
    for key in micro_slot_order(definition, config):
        node = _render_micro(key, definition, schema, config)
        if node is not None:
            micro_nodes.append(node)

    return RenderNode(
        kind=KIND_SLOT,
        slot_id=definition.slot_id,
        name=definition.name,
        type=definition.type,
        class_name=_string(_mapping(config, "elementClasses").get(definition.slot_id)),
        style=_style(_mapping(config, "elementStyles").get(definition.slot_id)),
        component=definition.component,
        micro_slots=tuple(micro_nodes),
    )


def render(
    page_schema: PageTypeSchema,
    configuration: Any,
    view_mode: Optional[str] = None,
    *,
    editing: bool = True,
) -> List[RenderNode]:
    """
    Render a configuration for one view mode.

    Missing slot definitions become ``error`` nodes while ``editing`` (editor
    and preview); the live storefront passes ``editing=False`` and the
    diagnostics are dropped.
    """
    config = configuration if isinstance(configuration, Mapping) else {}
    if not isinstance(configuration, Mapping):
        logger.warning("Rendering %s with a non-object configuration", page_schema.page_type)

    nodes: List[RenderNode] = []
    for slot_id in major_slot_order(page_schema, config, view_mode):
        definition = page_schema.get(slot_id)
        if definition is None:
            logger.warning("Slot %s is not defined for page type %s", slot_id, page_schema.page_type)
            if editing:
                nodes.append(error_node(
                    slot_id,
                    f"Slot '{slot_id}' is not defined for page type '{page_schema.page_type}'",
                ))
            continue

        try:
            nodes.append(_render_major(definition, page_schema, config))
        except Exception:  # one broken slot must not take the page down
            logger.exception("Failed to render slot %s on %s", slot_id, page_schema.page_type)
            if editing:
                nodes.append(error_node(slot_id, f"Slot '{slot_id}' could not be rendered"))

    return nodes


def render_to_dicts(
    page_schema: PageTypeSchema,
    configuration: Any,
    view_mode: Optional[str] = None,
    *,
    editing: bool = True,
) -> List[Dict[str, Any]]:
    return [node.to_dict() for node in render(page_schema, configuration, view_mode, editing=editing)]

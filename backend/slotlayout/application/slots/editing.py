# slotlayout/application/slots/editing.py
"""
Draft edits as pure functions: each takes a configuration payload and
returns a new one, leaving the input untouched. Persist the result with
``VersionStoreClient.update_draft``.
"""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Mapping, Optional

from slotlayout.domain.exceptions import NotFoundError, ValidationFailed
from slotlayout.domain.invariants.configuration import GENERIC_SLOT_ID_PATTERN
from slotlayout.domain.layout.spans import (
    col_span_from_drag,
    normalize_span,
    row_span_from_drag,
)
from slotlayout.domain.slots.keys import SlotKey
from slotlayout.domain.slots.registry import PageTypeSchema
from slotlayout.utils.json_safe import json_copy

CUSTOM_PREFIX = "custom_"
CUSTOM_SLOT_TYPES = ("text", "image", "component")


def _copy(config: Mapping[str, Any]) -> Dict[str, Any]:
    return json_copy(dict(config)) if isinstance(config, Mapping) else {}


def _section(config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config.get(name)
    if not isinstance(section, dict):
        section = {}
        config[name] = section
    return section


def _resolve_key(schema: PageTypeSchema, key: Any) -> SlotKey:
    try:
        slot_key = key if isinstance(key, SlotKey) else SlotKey.parse(key)
    except ValueError as exc:
        raise ValidationFailed(str(exc)) from exc
    if not schema.has_slot(slot_key.major_id):
        raise NotFoundError(f"Slot '{slot_key.major_id}' is not defined for page type '{schema.page_type}'")
    return slot_key


def _micro_order(config: Dict[str, Any], schema: PageTypeSchema, major_id: str) -> List[str]:
    orders = _section(config, "microSlotOrders")
    order = orders.get(major_id)
    if not isinstance(order, list):
        order = list(schema.slots[major_id].micro_slots)
        orders[major_id] = order
    return order


def set_slot_content(config: Mapping[str, Any], schema: PageTypeSchema, key: Any, content: str) -> Dict[str, Any]:
    slot_key = _resolve_key(schema, key)
    if not isinstance(content, str):
        raise ValidationFailed(f"Content for '{slot_key}' must be a string")

    updated = _copy(config)
    _section(updated, "slotContent")[slot_key.key] = content
    return updated


def set_element_class(config: Mapping[str, Any], schema: PageTypeSchema, key: Any, class_name: str) -> Dict[str, Any]:
    slot_key = _resolve_key(schema, key)
    updated = _copy(config)
    classes = _section(updated, "elementClasses")
    if class_name:
        classes[slot_key.key] = " ".join(str(class_name).split())
    else:
        classes.pop(slot_key.key, None)
    return updated


def set_element_style(
    config: Mapping[str, Any],
    schema: PageTypeSchema,
    key: Any,
    style: Mapping[str, Any],
    *,
    replace: bool = False,
) -> Dict[str, Any]:
    """
    Merge ``style`` into the element's inline style. A ``None`` value
    clears that property; ``replace=True`` drops everything not given.
    """
    slot_key = _resolve_key(schema, key)
    if style is not None and not isinstance(style, Mapping):
        raise ValidationFailed(f"Style for '{slot_key}' must be an object")

    updated = _copy(config)
    styles = _section(updated, "elementStyles")

    current = {} if replace else dict(styles.get(slot_key.key) or {})
    for prop, value in dict(style or {}).items():
        if value is None:
            current.pop(prop, None)
        else:
            current[prop] = json_copy(value)

    if current:
        styles[slot_key.key] = current
    else:
        styles.pop(slot_key.key, None)
    return updated


def set_micro_slot_span(config: Mapping[str, Any], schema: PageTypeSchema, key: Any, col: int, row: int) -> Dict[str, Any]:
    slot_key = _resolve_key(schema, key)
    col, row = normalize_span({"col": col, "row": row}, schema.slots[slot_key.major_id].default_span(slot_key.micro_id))

    updated = _copy(config)
    _section(updated, "microSlotSpans")[slot_key.key] = {"col": col, "row": row}
    return updated


def current_span(config: Mapping[str, Any], schema: PageTypeSchema, key: Any):
    slot_key = _resolve_key(schema, key)
    spans = config.get("microSlotSpans") if isinstance(config, Mapping) else None
    stored = spans.get(slot_key.key) if isinstance(spans, Mapping) else None
    return normalize_span(stored, schema.slots[slot_key.major_id].default_span(slot_key.micro_id))


def resize_micro_slot(
    config: Mapping[str, Any],
    schema: PageTypeSchema,
    key: Any,
    *,
    pixel_delta_x: float = 0,
    pixel_delta_y: float = 0,
    cell_width_px: float,
    cell_height_px: float,
    start_span: Optional[tuple] = None,
) -> Dict[str, Any]:
    """
    Finalise a drag: ``start_span`` is the span when the pointer went down
    (defaults to the stored one), deltas are measured from that point.
    """
    start_col, start_row = start_span or current_span(config, schema, key)
    col = col_span_from_drag(start_col, pixel_delta_x, cell_width_px)
    row = row_span_from_drag(start_row, pixel_delta_y, cell_height_px)
    return set_micro_slot_span(config, schema, key, col, row)


def reorder_major_slots(config: Mapping[str, Any], schema: PageTypeSchema, order: List[str]) -> Dict[str, Any]:
    unknown = [slot_id for slot_id in order if not schema.has_slot(slot_id)]
    if unknown:
        raise NotFoundError(f"Unknown slots for page type '{schema.page_type}': {', '.join(unknown)}")
    if len(set(order)) != len(order):
        raise ValidationFailed("Slot order contains duplicates")

    missing = [slot_id for slot_id in schema.required_slots if slot_id not in order]
    if missing:
        raise ValidationFailed("Required slots cannot be removed", [f"missing '{slot_id}'" for slot_id in missing])

    updated = _copy(config)
    updated["majorSlots"] = list(order)
    return updated


def reorder_micro_slots(config: Mapping[str, Any], schema: PageTypeSchema, major_id: str, order: List[str]) -> Dict[str, Any]:
    if not schema.has_slot(major_id):
        raise NotFoundError(f"Slot '{major_id}' is not defined for page type '{schema.page_type}'")
    try:
        micro_ids = [SlotKey.parse(raw, major_id).micro_id for raw in order]
    except ValueError as exc:
        raise ValidationFailed(str(exc)) from exc
    if len(set(micro_ids)) != len(micro_ids):
        raise ValidationFailed(f"Micro slot order for '{major_id}' contains duplicates")

    updated = _copy(config)
    _section(updated, "microSlotOrders")[major_id] = micro_ids
    return updated


def add_custom_slot(
    config: Mapping[str, Any],
    schema: PageTypeSchema,
    major_id: str,
    *,
    slot_type: str = "text",
    content: str = "",
    name: Optional[str] = None,
    slot_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Append a user-defined micro slot to a major slot; returns the new payload."""
    if slot_type not in CUSTOM_SLOT_TYPES:
        raise ValidationFailed(f"Custom slot type must be one of {', '.join(CUSTOM_SLOT_TYPES)}")

    micro_id = slot_id or f"{CUSTOM_PREFIX}{uuid.uuid4().hex[:8]}"
    if not micro_id.startswith(CUSTOM_PREFIX):
        micro_id = f"{CUSTOM_PREFIX}{micro_id}"
    slot_key = _resolve_key(schema, SlotKey(major_id, micro_id))

    updated = _copy(config)
    order = _micro_order(updated, schema, major_id)
    if micro_id in order:
        raise ValidationFailed(f"Slot '{slot_key}' already exists")
    order.append(micro_id)

    _section(updated, "customSlots")[slot_key.key] = {
        "type": slot_type,
        "name": name or micro_id,
    }
    _section(updated, "slotContent")[slot_key.key] = content
    return updated


def delete_custom_slot(config: Mapping[str, Any], schema: PageTypeSchema, key: Any) -> Dict[str, Any]:
    slot_key = _resolve_key(schema, key)
    if not slot_key.is_custom:
        raise ValidationFailed(f"Only custom slots can be deleted, not '{slot_key}'")

    updated = _copy(config)
    custom = _section(updated, "customSlots")
    if slot_key.key not in custom:
        raise NotFoundError(f"Custom slot '{slot_key}' not found")
    del custom[slot_key.key]

    order = _section(updated, "microSlotOrders").get(slot_key.major_id)
    if isinstance(order, list):
        order[:] = [micro_id for micro_id in order if micro_id != slot_key.micro_id]

    for name in ("slotContent", "elementClasses", "elementStyles", "microSlotSpans", "componentSizes"):
        _section(updated, name).pop(slot_key.key, None)
    return updated


def set_component_size(config: Mapping[str, Any], schema: PageTypeSchema, key: Any, size: Mapping[str, Any]) -> Dict[str, Any]:
    slot_key = _resolve_key(schema, key)
    if not isinstance(size, Mapping):
        raise ValidationFailed(f"Size for '{slot_key}' must be an object")
    updated = _copy(config)
    _section(updated, "componentSizes")[slot_key.key] = json_copy(dict(size))
    return updated


def set_slot_enabled(config: Mapping[str, Any], schema: PageTypeSchema, key: Any, enabled: bool) -> Dict[str, Any]:
    """Toggle a micro slot through its generic ``slots`` entry."""
    slot_key = _resolve_key(schema, key)
    updated = _copy(config)
    slots = _section(updated, "slots")
    generic_id = slot_key.generic_id(schema.page_type)
    if not GENERIC_SLOT_ID_PATTERN.match(generic_id):
        raise ValidationFailed(f"Slot '{slot_key}' cannot be toggled")
    entry = dict(slots.get(generic_id) or {})
    entry["enabled"] = bool(enabled)
    slots[generic_id] = entry
    return updated

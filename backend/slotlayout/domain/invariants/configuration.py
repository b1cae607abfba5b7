"""
Structural checks for slot configurations.

``validate_configuration`` reports; it never raises, whatever it is handed.
``assert_configuration`` is the raising variant used by the version store.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping

from slotlayout.domain.exceptions import ValidationFailed
from slotlayout.domain.layout.spans import GRID_COLUMNS, GRID_ROWS, MIN_SPAN
from slotlayout.domain.slots.keys import SlotKey
from slotlayout.domain.slots.registry import PageTypeSchema
from slotlayout.utils.json_safe import MAX_DEPTH, find_cycle, find_excess_depth

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"^\d+\.\d+$")
GENERIC_SLOT_ID_PATTERN = re.compile(r"^[a-z]+\.[a-z]+\.[a-z]+(\.[a-z]+)?$")

STRING_MAPS = ("slotContent", "elementClasses")
OBJECT_MAPS = ("elementStyles",)
FREE_MAPS = ("componentSizes", "customSlots", "metadata")


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


def is_valid_slot_key(key: Any, schema: PageTypeSchema) -> bool:
    """A content/style key: a schema major id or ``major.micro`` under one."""
    if not isinstance(key, str):
        return False
    if schema.has_slot(key):
        return True
    try:
        slot_key = SlotKey.parse(key)
    except ValueError:
        return False
    return schema.has_slot(slot_key.major_id)


def is_valid_generic_id(slot_id: Any, schema: PageTypeSchema) -> bool:
    if not isinstance(slot_id, str) or not GENERIC_SLOT_ID_PATTERN.match(slot_id):
        return False
    page_type, major_id = slot_id.split(".")[:2]
    return page_type == schema.page_type.lower() and schema.find_slot_ci(major_id) is not None


def is_strict_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def micro_id_of(raw: Any, major_id: str):
    """Bare micro id for an order entry; dotted leftovers are rejected."""
    if not isinstance(raw, str):
        return None
    try:
        micro_id = SlotKey.parse(raw, major_id).micro_id
    except ValueError:
        return None
    return None if "." in micro_id else micro_id


def validate_configuration(config: Any, schema: PageTypeSchema) -> ValidationResult:
    errors: List[str] = []
    try:
        _check(config, schema, errors)
    except Exception as exc:  # reported, never propagated to callers
        logger.exception("Unexpected failure while validating %s configuration", schema.page_type)
        errors.append(f"configuration could not be validated: {exc}")
    return ValidationResult(valid=not errors, errors=errors)


def _check(config: Any, schema: PageTypeSchema, errors: List[str]) -> None:
    if not isinstance(config, Mapping):
        errors.append(f"configuration must be an object, got {type(config).__name__}")
        return

    cycle = find_cycle(config)
    if cycle:
        errors.append(f"configuration contains a circular reference at {cycle}")
        return

    too_deep = find_excess_depth(config)
    if too_deep:
        errors.append(f"configuration nests deeper than {MAX_DEPTH} levels at {too_deep}")
        return

    version = config.get("version")
    if version is None:
        errors.append("version is required")
    elif not isinstance(version, str) or not VERSION_PATTERN.match(version):
        errors.append(f"version must match 'major.minor', got {version!r}")

    if "majorSlots" not in config and "slots" not in config:
        errors.append("majorSlots or slots is required")

    _check_major_slots(config, schema, errors)
    _check_micro_orders(config, schema, errors)
    _check_spans(config, schema, errors)
    _check_maps(config, schema, errors)
    _check_generic_slots(config, schema, errors)


def _check_major_slots(config, schema, errors):
    if "majorSlots" not in config:
        return
    major_slots = config["majorSlots"]
    if not isinstance(major_slots, list):
        errors.append("majorSlots must be a list")
        return

    seen = set()
    for index, slot_id in enumerate(major_slots):
        if not isinstance(slot_id, str):
            errors.append(f"majorSlots[{index}] must be a string")
            continue
        if not schema.has_slot(slot_id):
            errors.append(f"Unknown slot '{slot_id}' in majorSlots for page type '{schema.page_type}'")
        if slot_id in seen:
            errors.append(f"Duplicate slot '{slot_id}' in majorSlots")
        seen.add(slot_id)


def _check_micro_orders(config, schema, errors):
    if "microSlotOrders" not in config:
        return
    orders = config["microSlotOrders"]
    if not isinstance(orders, Mapping):
        errors.append("microSlotOrders must be an object")
        return

    for major_id, micro_ids in orders.items():
        if not schema.has_slot(major_id):
            errors.append(f"Unknown slot '{major_id}' in microSlotOrders")
            continue
        if not isinstance(micro_ids, list):
            errors.append(f"microSlotOrders['{major_id}'] must be a list")
            continue

        seen = set()
        for raw in micro_ids:
            micro_id = micro_id_of(raw, major_id)
            if micro_id is None:
                errors.append(f"Invalid micro slot {raw!r} in microSlotOrders['{major_id}']")
                continue
            if micro_id in seen:
                errors.append(f"Duplicate micro slot '{micro_id}' in microSlotOrders['{major_id}']")
            seen.add(micro_id)


def _check_spans(config, schema, errors):
    if "microSlotSpans" not in config:
        return
    spans = config["microSlotSpans"]
    if not isinstance(spans, Mapping):
        errors.append("microSlotSpans must be an object")
        return

    for key, span in spans.items():
        if not is_valid_slot_key(key, schema) or schema.has_slot(key):
            errors.append(f"microSlotSpans key {key!r} must be 'major.micro' for a known slot")
            continue
        if not isinstance(span, Mapping):
            errors.append(f"Span for '{key}' must be an object with col and row")
            continue

        col, row = span.get("col"), span.get("row")
        if not is_strict_int(col) or not MIN_SPAN <= col <= GRID_COLUMNS:
            errors.append(f"Span col for '{key}' must be an integer in [{MIN_SPAN}, {GRID_COLUMNS}], got {col!r}")
        if not is_strict_int(row) or not MIN_SPAN <= row <= GRID_ROWS:
            errors.append(f"Span row for '{key}' must be an integer in [{MIN_SPAN}, {GRID_ROWS}], got {row!r}")


def _check_maps(config, schema, errors):
    for name in STRING_MAPS + OBJECT_MAPS:
        if name not in config:
            continue
        values = config[name]
        if not isinstance(values, Mapping):
            errors.append(f"{name} must be an object")
            continue
        for key, value in values.items():
            if not is_valid_slot_key(key, schema):
                errors.append(f"Unknown slot '{key}' in {name}")
            elif name in STRING_MAPS and not isinstance(value, str):
                errors.append(f"{name}['{key}'] must be a string")
            elif name in OBJECT_MAPS and not isinstance(value, Mapping):
                errors.append(f"{name}['{key}'] must be an object")

    for name in FREE_MAPS:
        if name in config and not isinstance(config[name], Mapping):
            errors.append(f"{name} must be an object")


def _check_generic_slots(config, schema, errors):
    if "slots" not in config:
        return
    slots = config["slots"]
    if not isinstance(slots, Mapping):
        errors.append("slots must be an object")
        return

    for slot_id, entry in slots.items():
        if not isinstance(slot_id, str) or not GENERIC_SLOT_ID_PATTERN.match(slot_id):
            errors.append(f"Slot id {slot_id!r} must match {GENERIC_SLOT_ID_PATTERN.pattern}")
            continue
        if not is_valid_generic_id(slot_id, schema):
            errors.append(f"Unknown slot '{slot_id}' for page type '{schema.page_type}'")
            continue
        if not isinstance(entry, Mapping):
            errors.append(f"slots['{slot_id}'] must be an object")
            continue
        if "enabled" in entry and not isinstance(entry["enabled"], bool):
            errors.append(f"slots['{slot_id}'].enabled must be a boolean")
        if "order" in entry and not is_strict_int(entry["order"]):
            errors.append(f"slots['{slot_id}'].order must be an integer")
        if "component" in entry and not isinstance(entry["component"], str):
            errors.append(f"slots['{slot_id}'].component must be a string")
        if "props" in entry and not isinstance(entry["props"], Mapping):
            errors.append(f"slots['{slot_id}'].props must be an object")
        if "required" in entry and not isinstance(entry["required"], bool):
            errors.append(f"slots['{slot_id}'].required must be a boolean")


def missing_required_slots(config: Any, schema: PageTypeSchema) -> List[str]:
    """
    Schema-required slots that the payload does not mention at all, neither
    in ``majorSlots`` nor through a generic slot entry.
    """
    if not isinstance(config, Mapping):
        return list(schema.required_slots)

    present = set()
    major_slots = config.get("majorSlots")
    if isinstance(major_slots, list):
        present.update(s for s in major_slots if isinstance(s, str))

    slots = config.get("slots")
    if isinstance(slots, Mapping):
        for slot_id in slots:
            if isinstance(slot_id, str) and slot_id.count(".") >= 2:
                definition = schema.find_slot_ci(slot_id.split(".")[1])
                if definition is not None:
                    present.add(definition.slot_id)

    return [slot_id for slot_id in schema.required_slots if slot_id not in present]


def assert_configuration(config: Any, schema: PageTypeSchema) -> None:
    result = validate_configuration(config, schema)
    errors = list(result.errors)

    if result.valid:
        errors.extend(
            f"Required slot '{slot_id}' is missing"
            for slot_id in missing_required_slots(config, schema)
        )

    if errors:
        raise ValidationFailed(
            f"Invalid {schema.page_type} configuration ({len(errors)} problem(s))",
            errors,
        )

"""
Repair of common configuration defects.

``auto_fix_configuration`` is total and idempotent: any input yields a
configuration that passes ``validate_configuration``, and fixing an already
fixed configuration changes nothing. The input is never mutated.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Mapping, Optional

from slotlayout.domain.invariants.configuration import (
    FREE_MAPS,
    OBJECT_MAPS,
    STRING_MAPS,
    VERSION_PATTERN,
    is_strict_int,
    is_valid_generic_id,
    is_valid_slot_key,
    micro_id_of,
)
from slotlayout.domain.layout.spans import GRID_COLUMNS, GRID_ROWS, MIN_SPAN, clamp, round_half_up
from slotlayout.domain.migration.legacy import flatten_spans, is_legacy, migrate_legacy
from slotlayout.domain.slots.defaults import DEFAULT_CONFIG_VERSION, default_configuration
from slotlayout.domain.slots.registry import PageTypeSchema
from slotlayout.utils.json_safe import find_cycle, find_excess_depth, json_copy

logger = logging.getLogger(__name__)


def auto_fix_configuration(config: Any, schema: PageTypeSchema) -> Dict[str, Any]:
    if not isinstance(config, Mapping) or find_cycle(config) or find_excess_depth(config):
        logger.warning("Replacing unusable %s configuration with schema defaults", schema.page_type)
        return default_configuration(schema)

    if is_legacy(config):
        source = migrate_legacy(config, schema.page_type)
    else:
        source = json_copy(dict(config))

    fixed: Dict[str, Any] = dict(source)

    version = source.get("version")
    if not isinstance(version, str) or not VERSION_PATTERN.match(version):
        fixed["version"] = DEFAULT_CONFIG_VERSION

    fixed["majorSlots"] = _fix_major_slots(source.get("majorSlots"), schema)
    fixed["microSlotOrders"] = _fix_micro_orders(source.get("microSlotOrders"), schema)
    fixed["microSlotSpans"] = _fix_spans(source.get("microSlotSpans"), schema)

    for name in STRING_MAPS:
        fixed[name] = {
            key: value
            for key, value in _as_mapping(source.get(name)).items()
            if is_valid_slot_key(key, schema) and isinstance(value, str)
        }

    for name in OBJECT_MAPS:
        fixed[name] = {
            key: value
            for key, value in _as_mapping(source.get(name)).items()
            if is_valid_slot_key(key, schema) and isinstance(value, Mapping)
        }

    for name in FREE_MAPS:
        fixed[name] = _as_mapping(source.get(name))

    if "slots" in source:
        fixed["slots"] = _fix_generic_slots(source["slots"], schema)

    return fixed


def _as_mapping(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _fix_major_slots(raw: Any, schema: PageTypeSchema) -> List[str]:
    if not isinstance(raw, list):
        major_slots = list(schema.default_slots)
    else:
        major_slots = []
        for slot_id in raw:
            if isinstance(slot_id, str) and schema.has_slot(slot_id) and slot_id not in major_slots:
                major_slots.append(slot_id)

    for slot_id in schema.required_slots:
        if slot_id not in major_slots:
            major_slots.append(slot_id)
    return major_slots


def _fix_micro_orders(raw: Any, schema: PageTypeSchema) -> Dict[str, List[str]]:
    orders: Dict[str, List[str]] = {}
    for major_id, micro_ids in _as_mapping(raw).items():
        if not schema.has_slot(major_id) or not isinstance(micro_ids, list):
            continue
        cleaned: List[str] = []
        for entry in micro_ids:
            micro_id = micro_id_of(entry, major_id)
            if micro_id is not None and micro_id not in cleaned:
                cleaned.append(micro_id)
        orders[major_id] = cleaned
    return orders


def _span_value(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if is_strict_int(value):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return round_half_up(value)
    return None


def _fix_spans(raw: Any, schema: PageTypeSchema) -> Dict[str, Dict[str, int]]:
    spans: Dict[str, Dict[str, int]] = {}
    for key, span in _as_mapping(flatten_spans(raw)).items():
        if not is_valid_slot_key(key, schema) or schema.has_slot(key):
            continue
        if not isinstance(span, Mapping):
            continue
        col, row = _span_value(span.get("col")), _span_value(span.get("row"))
        if col is None or row is None:
            continue
        spans[key] = {
            "col": int(clamp(MIN_SPAN, GRID_COLUMNS, col)),
            "row": int(clamp(MIN_SPAN, GRID_ROWS, row)),
        }
    return spans


def _fix_generic_slots(raw: Any, schema: PageTypeSchema) -> Dict[str, Dict[str, Any]]:
    slots: Dict[str, Dict[str, Any]] = {}
    for slot_id, entry in _as_mapping(raw).items():
        if not is_valid_generic_id(slot_id, schema) or not isinstance(entry, Mapping):
            continue

        cleaned = dict(entry)
        if not isinstance(cleaned.get("enabled", True), bool):
            cleaned["enabled"] = True
        if "order" in cleaned and not is_strict_int(cleaned["order"]):
            del cleaned["order"]
        if "component" in cleaned and not isinstance(cleaned["component"], str):
            del cleaned["component"]
        if "props" in cleaned and not isinstance(cleaned["props"], Mapping):
            del cleaned["props"]
        if "required" in cleaned and not isinstance(cleaned["required"], bool):
            del cleaned["required"]
        slots[slot_id] = cleaned
    return slots

"""
Conversion of legacy, page-specific configuration shapes.

Older editors stored text and component source in separate ``textContent``
and ``componentCode`` maps and nested spans under their major slot. Both are
folded into the canonical shape once, at load time, so the renderer only ever
sees one shape.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

from slotlayout.domain.slots.defaults import DEFAULT_CONFIG_VERSION
from slotlayout.utils.json_safe import json_copy

logger = logging.getLogger(__name__)

LEGACY_CONTENT_KEYS = ("textContent", "componentCode")
PRESERVED_MAPS = ("elementClasses", "elementStyles", "componentSizes", "customSlots")


@dataclass(frozen=True)
class LegacyGridConfig:
    payload: Mapping[str, Any]


@dataclass(frozen=True)
class GenericSlotConfig:
    payload: Mapping[str, Any]


StoredConfig = Union[LegacyGridConfig, GenericSlotConfig]


def classify(raw: Any) -> StoredConfig:
    if not isinstance(raw, Mapping):
        return GenericSlotConfig({})
    if any(key in raw for key in LEGACY_CONTENT_KEYS):
        return LegacyGridConfig(raw)
    return GenericSlotConfig(raw)


def is_legacy(raw: Any) -> bool:
    return isinstance(classify(raw), LegacyGridConfig)


def flatten_spans(spans: Any) -> Any:
    """
    ``{"header": {"header.title": {...}}}`` -> ``{"header.title": {...}}``.

    Already flat entries pass through; anything that is not a mapping is
    returned untouched for the validator to report.
    """
    if not isinstance(spans, Mapping):
        return spans

    flat: Dict[str, Any] = {}
    for key, value in spans.items():
        nested = (
            isinstance(key, str)
            and "." not in key
            and isinstance(value, Mapping)
            and value
            and all(isinstance(v, Mapping) for v in value.values())
        )
        if not nested:
            flat[key] = value
            continue
        for micro_key, span in value.items():
            micro_key = str(micro_key)
            full_key = micro_key if micro_key.startswith(f"{key}.") else f"{key}.{micro_key}"
            flat[full_key] = span
    return flat


def migrate_legacy(old: Any, page_type: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Convert a legacy configuration into the canonical shape.

    Legacy ``textContent``/``componentCode`` entries win over keys already
    present in ``slotContent``.
    """
    source = json_copy(old) if isinstance(old, Mapping) else {}
    migrated: Dict[str, Any] = {
        key: value for key, value in source.items() if key not in LEGACY_CONTENT_KEYS
    }

    slot_content: Dict[str, Any] = {}
    for name in ("slotContent",) + LEGACY_CONTENT_KEYS:
        part = source.get(name)
        if isinstance(part, Mapping):
            slot_content.update(part)
    migrated["slotContent"] = slot_content

    for name in PRESERVED_MAPS:
        if not isinstance(migrated.get(name), Mapping):
            migrated[name] = {}

    if "microSlotSpans" in migrated:
        migrated["microSlotSpans"] = flatten_spans(migrated["microSlotSpans"])

    migrated.setdefault("version", DEFAULT_CONFIG_VERSION)

    metadata = migrated.get("metadata")
    metadata = dict(metadata) if isinstance(metadata, Mapping) else {}
    metadata["pageType"] = page_type
    metadata["migratedFrom"] = "legacy"
    migrated["metadata"] = metadata

    migrated["timestamp"] = (now or datetime.now(timezone.utc)).isoformat()

    logger.info(
        "Migrated legacy %s configuration (%d content entries)",
        page_type,
        len(slot_content),
    )
    return migrated


def load_configuration(raw: Any, page_type: str) -> Dict[str, Any]:
    """Bring any stored configuration into the canonical shape."""
    stored = classify(raw)
    if isinstance(stored, LegacyGridConfig):
        return migrate_legacy(stored.payload, page_type)
    return json_copy(dict(stored.payload))

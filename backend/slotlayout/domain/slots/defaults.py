from typing import Any, Dict

from slotlayout.domain.slots.keys import SlotKey
from slotlayout.domain.slots.registry import PageTypeSchema

DEFAULT_CONFIG_VERSION = "1.0"


def default_configuration(schema: PageTypeSchema) -> Dict[str, Any]:
    """
    Configuration used when a store has never saved a layout for a page.

    Default content and default spans of the default slots are
    materialised; micro orders are left empty so the renderer keeps
    following the schema.
    """
    slot_content: Dict[str, str] = {}
    spans: Dict[str, Dict[str, int]] = {}
    for slot_id in schema.default_slots:
        definition = schema.slots[slot_id]
        for micro_id, content in definition.default_content.items():
            slot_content[SlotKey(slot_id, micro_id).key] = content
        for micro_id, (col, row) in definition.default_spans.items():
            spans[SlotKey(slot_id, micro_id).key] = {"col": col, "row": row}

    return {
        "version": DEFAULT_CONFIG_VERSION,
        "majorSlots": list(schema.default_slots),
        "microSlotOrders": {},
        "microSlotSpans": spans,
        "slotContent": slot_content,
        "elementClasses": {},
        "elementStyles": {},
        "componentSizes": {},
        "customSlots": {},
        "metadata": {
            "pageType": schema.page_type,
            "name": schema.title,
            "source": "schema-defaults",
        },
    }

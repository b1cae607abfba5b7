# slotlayout/normalizers/slot_configuration.py
from __future__ import annotations

from typing import Any, Dict

SUMMARY_FIELDS = (
    "id",
    "store_id",
    "page_type",
    "status",
    "version_number",
    "display_name",
    "created_by",
    "created_at",
    "updated_at",
    "published_at",
)


def normalize_configuration(data: Dict[str, Any], admin: bool = False) -> Dict[str, Any]:
    """
    API shape of a stored configuration.

    Public readers get the payload and version only; editors also see
    authorship and draft bookkeeping.
    """
    if not data:
        raise ValueError("Configuration cannot be None")

    if not admin:
        return {
            "page_type": data["page_type"],
            "version_number": data["version_number"],
            "published_at": data.get("published_at"),
            "configuration": data["configuration"],
        }

    normalized = {field: data.get(field) for field in SUMMARY_FIELDS}
    normalized["configuration"] = data["configuration"]
    for flag in (
        "has_unpublished_changes",
        "published_version_number",
        "reverted_from",
        "can_undo_revert",
    ):
        if flag in data:
            normalized[flag] = data[flag]
    return normalized


def normalize_version(data: Dict[str, Any]) -> Dict[str, Any]:
    """History entry without the payload; fetch ``/export`` for that."""
    normalized = {field: data.get(field) for field in SUMMARY_FIELDS}
    normalized["is_reverted"] = data.get("is_reverted", False)
    normalized["is_current"] = data.get("is_current", False)
    return normalized

"""
Persistence contract consumed by the version store client.

Every operation is atomic at the row level. ``create_published_version``
takes the head version number the caller last saw and raises
``ConflictError`` when another publish has moved it.

``update_draft`` keeps a draft's revert state unless it is handed a new
one or told to clear it.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol

from slotlayout.domain.lifecycle.configuration import DRAFT, REVERTED
from slotlayout.utils.json_safe import json_copy


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: Optional[datetime]) -> Optional[str]:
    if ts is None:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.isoformat()


@dataclass
class RevertState:
    """Draft content set aside when an older version was loaded into the draft."""

    version_id: str
    version_number: int
    previous_configuration: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version_id": self.version_id,
            "version_number": self.version_number,
            "previous_configuration": json_copy(self.previous_configuration),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["RevertState"]:
        if not data:
            return None
        return cls(
            version_id=data["version_id"],
            version_number=data["version_number"],
            previous_configuration=data.get("previous_configuration") or {},
        )


@dataclass
class SlotConfigurationRecord:
    id: str
    store_id: str
    page_type: str
    status: str
    version_number: int
    configuration: Dict[str, Any]
    created_at: datetime
    updated_at: datetime
    display_name: Optional[str] = None
    created_by: Optional[str] = None
    published_at: Optional[datetime] = None
    revert_state: Optional[RevertState] = None

    @property
    def is_draft(self) -> bool:
        return self.status == DRAFT

    @property
    def is_reverted(self) -> bool:
        return self.status == REVERTED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "page_type": self.page_type,
            "status": self.status,
            "version_number": self.version_number,
            "display_name": self.display_name,
            "configuration": json_copy(self.configuration),
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "published_at": _iso(self.published_at),
            "reverted_from": (
                {"id": self.revert_state.version_id, "version_number": self.revert_state.version_number}
                if self.revert_state else None
            ),
            "can_undo_revert": self.revert_state is not None,
        }


class SlotConfigurationStore(Protocol):
    def create_draft(
        self,
        store_id: str,
        page_type: str,
        configuration: Dict[str, Any],
        *,
        base_version: int = 0,
        display_name: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> SlotConfigurationRecord: ...

    def get_draft(self, store_id: str, page_type: str) -> Optional[SlotConfigurationRecord]: ...

    def get_by_id(self, configuration_id: str) -> Optional[SlotConfigurationRecord]: ...

    def update_draft(
        self,
        draft_id: str,
        configuration: Dict[str, Any],
        *,
        base_version: Optional[int] = None,
        revert_state: Optional[RevertState] = None,
        clear_revert: bool = False,
    ) -> SlotConfigurationRecord: ...

    def delete_draft(self, draft_id: str) -> None: ...

    def get_published(self, store_id: str, page_type: str) -> Optional[SlotConfigurationRecord]: ...

    def create_published_version(
        self,
        store_id: str,
        page_type: str,
        configuration: Dict[str, Any],
        *,
        expected_version: int,
        display_name: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> SlotConfigurationRecord: ...

    def list_versions(
        self,
        store_id: str,
        page_type: str,
        limit: Optional[int] = None,
    ) -> List[SlotConfigurationRecord]: ...

    def mark_reverted(self, configuration_ids: Iterable[str]) -> List[SlotConfigurationRecord]: ...

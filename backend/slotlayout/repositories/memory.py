from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from slotlayout.domain.exceptions import ConflictError, NotFoundError
from slotlayout.domain.lifecycle.configuration import (
    DRAFT,
    PUBLISHED,
    REVERTED,
    VERSION_STATUSES,
    assert_status_transition,
)
from slotlayout.repositories.base import RevertState, SlotConfigurationRecord, utcnow
from slotlayout.utils.json_safe import json_copy

DraftKey = Tuple[str, str]


class InMemorySlotConfigurationStore:
    """
    Process-local store with the same semantics as the database one.

    Drafts are held in a map keyed by ``(store_id, page_type)`` so there is
    never more than one per page. Records handed out are copies.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._lock = RLock()
        self._rows: Dict[str, SlotConfigurationRecord] = {}
        self._drafts: Dict[DraftKey, str] = {}

    @staticmethod
    def _copy_state(state: Optional[RevertState]) -> Optional[RevertState]:
        if state is None:
            return None
        return replace(state, previous_configuration=json_copy(state.previous_configuration))

    @classmethod
    def _copy(cls, record: SlotConfigurationRecord) -> SlotConfigurationRecord:
        return replace(
            record,
            configuration=json_copy(record.configuration),
            revert_state=cls._copy_state(record.revert_state),
        )

    def _versions(self, store_id: str, page_type: str) -> List[SlotConfigurationRecord]:
        rows = [
            row for row in self._rows.values()
            if row.store_id == store_id
            and row.page_type == page_type
            and row.status in VERSION_STATUSES
        ]
        return sorted(rows, key=lambda row: row.version_number, reverse=True)

    def create_draft(
        self,
        store_id: str,
        page_type: str,
        configuration: Dict[str, Any],
        *,
        base_version: int = 0,
        display_name: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> SlotConfigurationRecord:
        with self._lock:
            if (store_id, page_type) in self._drafts:
                raise ConflictError(f"A draft already exists for {store_id}/{page_type}")

            now = self._clock()
            record = SlotConfigurationRecord(
                id=str(uuid.uuid4()),
                store_id=store_id,
                page_type=page_type,
                status=DRAFT,
                version_number=base_version,
                configuration=json_copy(configuration),
                created_at=now,
                updated_at=now,
                display_name=display_name,
                created_by=created_by,
            )
            self._rows[record.id] = record
            self._drafts[(store_id, page_type)] = record.id
            return self._copy(record)

    def get_draft(self, store_id: str, page_type: str) -> Optional[SlotConfigurationRecord]:
        with self._lock:
            draft_id = self._drafts.get((store_id, page_type))
            return self._copy(self._rows[draft_id]) if draft_id else None

    def get_by_id(self, configuration_id: str) -> Optional[SlotConfigurationRecord]:
        with self._lock:
            record = self._rows.get(configuration_id)
            return self._copy(record) if record else None

    def update_draft(
        self,
        draft_id: str,
        configuration: Dict[str, Any],
        *,
        base_version: Optional[int] = None,
        revert_state: Optional[RevertState] = None,
        clear_revert: bool = False,
    ) -> SlotConfigurationRecord:
        with self._lock:
            record = self._rows.get(draft_id)
            if record is None or record.status != DRAFT:
                raise NotFoundError(f"Draft {draft_id} not found")

            assert_status_transition(from_status=record.status, to_status=DRAFT)
            record.configuration = json_copy(configuration)
            record.updated_at = self._clock()
            if base_version is not None:
                record.version_number = base_version
            if revert_state is not None:
                record.revert_state = self._copy_state(revert_state)
            elif clear_revert:
                record.revert_state = None
            return self._copy(record)

    def delete_draft(self, draft_id: str) -> None:
        with self._lock:
            record = self._rows.get(draft_id)
            if record is None or record.status != DRAFT:
                raise NotFoundError(f"Draft {draft_id} not found")
            del self._rows[draft_id]
            self._drafts.pop((record.store_id, record.page_type), None)

    def get_published(self, store_id: str, page_type: str) -> Optional[SlotConfigurationRecord]:
        with self._lock:
            for record in self._versions(store_id, page_type):
                if record.status == PUBLISHED:
                    return self._copy(record)
            return None

    def create_published_version(
        self,
        store_id: str,
        page_type: str,
        configuration: Dict[str, Any],
        *,
        expected_version: int,
        display_name: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> SlotConfigurationRecord:
        with self._lock:
            versions = self._versions(store_id, page_type)
            head = versions[0].version_number if versions else 0
            if head != expected_version:
                raise ConflictError(
                    f"Version head for {store_id}/{page_type} moved to {head} "
                    f"(expected {expected_version}); reload and retry"
                )

            assert_status_transition(from_status=None, to_status=PUBLISHED)
            now = self._clock()
            record = SlotConfigurationRecord(
                id=str(uuid.uuid4()),
                store_id=store_id,
                page_type=page_type,
                status=PUBLISHED,
                version_number=head + 1,
                configuration=json_copy(configuration),
                created_at=now,
                updated_at=now,
                display_name=display_name,
                created_by=created_by,
                published_at=now,
            )
            self._rows[record.id] = record
            return self._copy(record)

    def list_versions(
        self,
        store_id: str,
        page_type: str,
        limit: Optional[int] = None,
    ) -> List[SlotConfigurationRecord]:
        with self._lock:
            versions = self._versions(store_id, page_type)
            if limit is not None:
                versions = versions[:limit]
            return [self._copy(record) for record in versions]

    def mark_reverted(self, configuration_ids: Iterable[str]) -> List[SlotConfigurationRecord]:
        with self._lock:
            records = []
            for configuration_id in configuration_ids:
                record = self._rows.get(configuration_id)
                if record is None:
                    raise NotFoundError(f"Version {configuration_id} not found")
                assert_status_transition(from_status=record.status, to_status=REVERTED)
                records.append(record)

            now = self._clock()
            for record in records:
                record.status = REVERTED
                record.updated_at = now
            return [self._copy(record) for record in records]

# slotlayout/repositories/slot_configuration.py
import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from slotlayout.domain.exceptions import ConflictError, NotFoundError
from slotlayout.domain.lifecycle.configuration import (
    DRAFT,
    PUBLISHED,
    REVERTED,
    VERSION_STATUSES,
    assert_status_transition,
)
from slotlayout.extensions import db
from slotlayout.models.base import utc_now
from slotlayout.models.slot_configuration import SlotConfiguration
from slotlayout.repositories.base import RevertState, SlotConfigurationRecord
from slotlayout.utils.json_safe import json_copy
from slotlayout.utils.transaction import transactional
from slotlayout.utils.versioning import head_version

logger = logging.getLogger(__name__)


class SqlAlchemySlotConfigurationStore:
    """Slot configuration rows behind Flask-SQLAlchemy; one transaction per call."""

    def _draft_row(self, store_id: str, page_type: str, lock: bool = False) -> Optional[SlotConfiguration]:
        query = select(SlotConfiguration).where(
            SlotConfiguration.store_id == store_id,
            SlotConfiguration.page_type == page_type,
            SlotConfiguration.status == DRAFT,
        )
        if lock:
            query = query.with_for_update()
        return db.session.execute(query).scalars().first()

    def _row(self, configuration_id: str, lock: bool = False) -> Optional[SlotConfiguration]:
        query = select(SlotConfiguration).where(SlotConfiguration.id == configuration_id)
        if lock:
            query = query.with_for_update()
        return db.session.execute(query).scalar_one_or_none()

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
        try:
            with transactional():
                if self._draft_row(store_id, page_type, lock=True) is not None:
                    raise ConflictError(f"A draft already exists for {store_id}/{page_type}")

                assert_status_transition(from_status=None, to_status=DRAFT)
                row = SlotConfiguration()
                row.store_id = store_id
                row.page_type = page_type
                row.status = DRAFT
                row.version_number = base_version
                row.configuration = json_copy(configuration)
                row.display_name = display_name
                row.created_by = created_by

                db.session.add(row)
                db.session.flush()  # ensures row.id and timestamps
        except IntegrityError as exc:
            # Another request created the draft between the check and the insert
            logger.info("Concurrent draft creation on %s/%s: %s", store_id, page_type, exc)
            raise ConflictError(f"A draft already exists for {store_id}/{page_type}") from exc

        return row.to_record()

    def get_draft(self, store_id: str, page_type: str) -> Optional[SlotConfigurationRecord]:
        row = self._draft_row(store_id, page_type)
        return row.to_record() if row else None

    def get_by_id(self, configuration_id: str) -> Optional[SlotConfigurationRecord]:
        row = self._row(configuration_id)
        return row.to_record() if row else None

    def update_draft(
        self,
        draft_id: str,
        configuration: Dict[str, Any],
        *,
        base_version: Optional[int] = None,
        revert_state: Optional[RevertState] = None,
        clear_revert: bool = False,
    ) -> SlotConfigurationRecord:
        with transactional():
            row = self._row(draft_id, lock=True)
            if row is None or row.status != DRAFT:
                raise NotFoundError(f"Draft {draft_id} not found")

            assert_status_transition(from_status=row.status, to_status=DRAFT)
            # New object so the JSON column registers the change
            row.configuration = json_copy(configuration)
            row.updated_at = utc_now()
            if base_version is not None:
                row.version_number = base_version
            if revert_state is not None:
                row.revert_state = revert_state.to_dict()
            elif clear_revert:
                row.revert_state = None

        return row.to_record()

    def delete_draft(self, draft_id: str) -> None:
        with transactional():
            row = self._row(draft_id, lock=True)
            if row is None or row.status != DRAFT:
                raise NotFoundError(f"Draft {draft_id} not found")
            db.session.delete(row)

    def get_published(self, store_id: str, page_type: str) -> Optional[SlotConfigurationRecord]:
        row = (
            SlotConfiguration.query
            .filter_by(store_id=store_id, page_type=page_type, status=PUBLISHED)
            .order_by(SlotConfiguration.version_number.desc())
            .first()
        )
        return row.to_record() if row else None

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
        try:
            with transactional():
                head = head_version(store_id, page_type)
                if head != expected_version:
                    raise ConflictError(
                        f"Version head for {store_id}/{page_type} moved to {head} "
                        f"(expected {expected_version}); reload and retry"
                    )

                assert_status_transition(from_status=None, to_status=PUBLISHED)
                now = utc_now()
                row = SlotConfiguration()
                row.store_id = store_id
                row.page_type = page_type
                row.status = PUBLISHED
                row.version_number = head + 1
                row.configuration = json_copy(configuration)
                row.display_name = display_name
                row.created_by = created_by
                row.published_at = now

                db.session.add(row)
                db.session.flush()
        except IntegrityError as exc:
            # Lost the race on the unique version constraint
            logger.info("Concurrent publish on %s/%s: %s", store_id, page_type, exc)
            raise ConflictError(
                f"Another publish advanced {store_id}/{page_type}; reload and retry"
            ) from exc

        return row.to_record()

    def list_versions(
        self,
        store_id: str,
        page_type: str,
        limit: Optional[int] = None,
    ) -> List[SlotConfigurationRecord]:
        query = (
            SlotConfiguration.query
            .filter(
                SlotConfiguration.store_id == store_id,
                SlotConfiguration.page_type == page_type,
                SlotConfiguration.status.in_(VERSION_STATUSES),
            )
            .order_by(SlotConfiguration.version_number.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [row.to_record() for row in query.all()]

    def mark_reverted(self, configuration_ids: Iterable[str]) -> List[SlotConfigurationRecord]:
        ids = list(configuration_ids)
        with transactional():
            rows = []
            for configuration_id in ids:
                row = self._row(configuration_id, lock=True)
                if row is None:
                    raise NotFoundError(f"Version {configuration_id} not found")
                assert_status_transition(from_status=row.status, to_status=REVERTED)
                rows.append(row)

            for row in rows:
                row.status = REVERTED
                row.updated_at = utc_now()

        return [row.to_record() for row in rows]

# slotlayout/application/slots/version_store.py
"""
Draft / publish / revert workflow for slot configurations.

The client owns the lifecycle rules; rows live behind a
``SlotConfigurationStore``. Hosts refresh their views by re-querying
``get_draft_configuration`` after a mutating call, or by registering a
listener for lifecycle events.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from slotlayout.domain.exceptions import ConflictError, NotFoundError, ValidationFailed
from slotlayout.domain.invariants.auto_fix import auto_fix_configuration
from slotlayout.domain.invariants.configuration import assert_configuration
from slotlayout.domain.lifecycle.configuration import PUBLISHED, VERSION_STATUSES
from slotlayout.domain.migration.legacy import load_configuration
from slotlayout.domain.slots.defaults import default_configuration
from slotlayout.domain.slots.registry import PageTypeSchema, get_page_schema
from slotlayout.repositories.base import RevertState, SlotConfigurationRecord, SlotConfigurationStore
from slotlayout.utils.diff import configurations_equal

logger = logging.getLogger(__name__)

Listener = Callable[[str, Dict[str, Any], Dict[str, Any]], None]

DRAFT_SOURCES = ("draft", "published")


class VersionStoreClient:
    def __init__(
        self,
        store: SlotConfigurationStore,
        *,
        schemas: Callable[[str], PageTypeSchema] = get_page_schema,
        listeners: Iterable[Listener] = (),
    ) -> None:
        self.store = store
        self._schemas = schemas
        self._listeners: List[Listener] = list(listeners)

    # -------------------------------------------------
    # Events
    # -------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: str, record: SlotConfigurationRecord, **payload: Any) -> None:
        data = record.to_dict()
        for listener in self._listeners:
            try:
                listener(event, data, payload)
            except Exception:
                # The change is already stored; a failing observer must not undo the response
                logger.exception("Listener failed for %s on %s", event, record.id)

    # -------------------------------------------------
    # Helpers
    # -------------------------------------------------

    def _head(self, store_id: str, page_type: str) -> int:
        latest = self.store.list_versions(store_id, page_type, limit=1)
        return latest[0].version_number if latest else 0

    def _draft_record(self, draft_id: str) -> SlotConfigurationRecord:
        record = self.store.get_by_id(draft_id)
        if record is None or not record.is_draft:
            raise NotFoundError(f"Draft {draft_id} not found")
        return record

    def _version_record(self, version_id: str) -> SlotConfigurationRecord:
        record = self.store.get_by_id(version_id)
        if record is None or record.status not in VERSION_STATUSES:
            raise NotFoundError(f"Version {version_id} not found")
        return record

    def _seed_configuration(self, schema: PageTypeSchema, published: Optional[SlotConfigurationRecord]) -> Dict[str, Any]:
        if published is None:
            return default_configuration(schema)
        canonical = load_configuration(published.configuration, schema.page_type)
        return auto_fix_configuration(canonical, schema)

    def _layout(self, record: SlotConfigurationRecord) -> Dict[str, Any]:
        # Repaired form, so an absent map and an empty one compare equal
        schema = self._schemas(record.page_type)
        return auto_fix_configuration(load_configuration(record.configuration, schema.page_type), schema)

    def _unpublished(self, draft: SlotConfigurationRecord, published: Optional[SlotConfigurationRecord]) -> bool:
        if published is None:
            return True
        return not configurations_equal(self._layout(draft), self._layout(published))

    def _restorable(self, target: SlotConfigurationRecord, schema: PageTypeSchema) -> Dict[str, Any]:
        canonical = load_configuration(target.configuration, schema.page_type)
        try:
            assert_configuration(canonical, schema)
        except ValidationFailed:
            # Old versions may predate the current schema
            logger.warning("Repairing version %d before revert", target.version_number)
            canonical = auto_fix_configuration(canonical, schema)
        return canonical

    def _describe_draft(self, draft: SlotConfigurationRecord) -> Dict[str, Any]:
        published = self.store.get_published(draft.store_id, draft.page_type)
        data = draft.to_dict()
        data["has_unpublished_changes"] = self._unpublished(draft, published)
        data["published_version_number"] = published.version_number if published else None
        return data

    # -------------------------------------------------
    # Drafts
    # -------------------------------------------------

    def has_draft_configuration(self, store_id: str, page_type: str) -> bool:
        return self.store.get_draft(store_id, page_type) is not None

    def get_draft_configuration(self, store_id: str, page_type: str) -> Optional[Dict[str, Any]]:
        draft = self.store.get_draft(store_id, page_type)
        if draft is None:
            return None
        return self._describe_draft(draft)

    def ensure_draft_exists(
        self,
        store_id: str,
        page_type: str,
        display_name: Optional[str] = None,
        *,
        created_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Return the draft for a page, creating it from the live configuration
        (or the schema defaults) when there is none. Safe to call repeatedly.
        """
        schema = self._schemas(page_type)

        existing = self.store.get_draft(store_id, page_type)
        if existing is not None:
            return {"draft": self._describe_draft(existing), "created": False}

        published = self.store.get_published(store_id, page_type)
        seed = self._seed_configuration(schema, published)

        try:
            draft = self.store.create_draft(
                store_id,
                page_type,
                seed,
                base_version=published.version_number if published else 0,
                display_name=display_name or schema.title,
                created_by=created_by,
            )
        except ConflictError:
            # Another editor created it between the lookup and the insert
            existing = self.store.get_draft(store_id, page_type)
            if existing is None:
                raise
            return {"draft": self._describe_draft(existing), "created": False}

        logger.info(
            "Created %s draft for store %s from %s",
            page_type,
            store_id,
            f"version {published.version_number}" if published else "schema defaults",
        )
        self._emit("draft.create", draft, source_version=published.version_number if published else None)
        return {"draft": self._describe_draft(draft), "created": True}

    def update_draft(
        self,
        draft_id: str,
        configuration: Any,
        *,
        auto_fix: bool = False,
    ) -> Dict[str, Any]:
        """
        Replace the draft payload (last writer wins).

        Rejected with ``ValidationFailed`` unless it validates; pass
        ``auto_fix=True`` to repair it first.
        """
        draft = self._draft_record(draft_id)
        schema = self._schemas(draft.page_type)

        canonical = load_configuration(configuration, schema.page_type)
        if auto_fix:
            canonical = auto_fix_configuration(canonical, schema)
        assert_configuration(canonical, schema)

        updated = self.store.update_draft(draft.id, canonical)
        self._emit("draft.update", updated, auto_fix=auto_fix)
        return self._describe_draft(updated)

    def reset_draft(self, store_id: str, page_type: str) -> Dict[str, Any]:
        """Throw away unpublished edits: the draft goes back to the live layout."""
        schema = self._schemas(page_type)
        draft = self.store.get_draft(store_id, page_type)
        if draft is None:
            raise NotFoundError(f"No draft for {store_id}/{page_type}")

        published = self.store.get_published(store_id, page_type)
        updated = self.store.update_draft(
            draft.id,
            self._seed_configuration(schema, published),
            base_version=published.version_number if published else 0,
            clear_revert=True,
        )
        self._emit("draft.reset", updated)
        return self._describe_draft(updated)

    def delete_draft(self, draft_id: str) -> None:
        draft = self._draft_record(draft_id)
        self.store.delete_draft(draft.id)
        self._emit("draft.delete", draft)

    # -------------------------------------------------
    # Versions
    # -------------------------------------------------

    def get_published_configuration(self, store_id: str, page_type: str) -> Optional[Dict[str, Any]]:
        published = self.store.get_published(store_id, page_type)
        return published.to_dict() if published else None

    def publish_draft(
        self,
        draft_id: str,
        *,
        expected_version: Optional[int] = None,
        created_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Snapshot the draft into a new published version.

        ``expected_version`` is the head the caller last saw; without it the
        head read here is used. Either way a concurrent publish surfaces as
        ``ConflictError`` and the caller has to reload and retry.
        """
        draft = self._draft_record(draft_id)
        schema = self._schemas(draft.page_type)

        canonical = load_configuration(draft.configuration, schema.page_type)
        assert_configuration(canonical, schema)

        head = self._head(draft.store_id, draft.page_type)
        if expected_version is not None and expected_version != head:
            raise ConflictError(
                f"Version head for {draft.store_id}/{draft.page_type} is {head}, "
                f"not {expected_version}; reload and retry"
            )

        published = self.store.create_published_version(
            draft.store_id,
            draft.page_type,
            canonical,
            expected_version=head,
            display_name=draft.display_name,
            created_by=created_by,
        )
        # The draft stays the editing surface for the next round
        self.store.update_draft(draft.id, canonical, base_version=published.version_number, clear_revert=True)

        logger.info(
            "Published %s for store %s as version %d",
            draft.page_type,
            draft.store_id,
            published.version_number,
        )
        self._emit("publish", published, draft_id=draft.id, version=published.version_number)
        return published.to_dict()

    def get_version_history(
        self,
        store_id: str,
        page_type: str,
        limit: Optional[int] = None,
        *,
        include_reverted: bool = True,
    ) -> List[Dict[str, Any]]:
        """Published and reverted versions, newest first."""
        self._schemas(page_type)

        records = self.store.list_versions(store_id, page_type, None if not include_reverted else limit)
        if not include_reverted:
            records = [record for record in records if not record.is_reverted]
            if limit is not None:
                records = records[:limit]

        current = self.store.get_published(store_id, page_type)
        history = []
        for record in records:
            data = record.to_dict()
            data["is_reverted"] = record.is_reverted
            data["is_current"] = current is not None and record.id == current.id
            history.append(data)
        return history

    def get_active_versions(self, store_id: str, page_type: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.get_version_history(store_id, page_type, limit, include_reverted=False)

    def revert_to_version(
        self,
        version_id: str,
        *,
        expected_version: Optional[int] = None,
        created_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Publish a copy of an earlier version as the new head.

        Versions after the target up to and including the prior head are
        marked ``reverted``; the target itself keeps its number and status.
        """
        target = self._version_record(version_id)
        schema = self._schemas(target.page_type)

        versions = self.store.list_versions(target.store_id, target.page_type)
        head = versions[0].version_number if versions else 0
        if expected_version is not None and expected_version != head:
            raise ConflictError(
                f"Version head for {target.store_id}/{target.page_type} is {head}, "
                f"not {expected_version}; reload and retry"
            )
        if target.version_number >= head:
            raise ConflictError(f"Version {target.version_number} is already the current version")

        canonical = self._restorable(target, schema)

        published = self.store.create_published_version(
            target.store_id,
            target.page_type,
            canonical,
            expected_version=head,
            display_name=target.display_name,
            created_by=created_by,
        )

        superseded = [
            record.id for record in versions
            if target.version_number < record.version_number <= head
            and record.status == PUBLISHED
        ]
        self.store.mark_reverted(superseded)

        draft = self.store.get_draft(target.store_id, target.page_type)
        if draft is not None:
            self.store.update_draft(draft.id, canonical, base_version=published.version_number, clear_revert=True)

        logger.info(
            "Reverted %s for store %s to version %d as version %d (%d superseded)",
            target.page_type,
            target.store_id,
            target.version_number,
            published.version_number,
            len(superseded),
        )
        self._emit(
            "revert",
            published,
            from_version=head,
            target_version=target.version_number,
            version=published.version_number,
        )
        return published.to_dict()

    def revert_to_draft(self, version_id: str, *, created_by: Optional[str] = None) -> Dict[str, Any]:
        """
        Load an earlier version into the draft for review. Nothing is
        published; ``undo_revert`` puts back the draft as it was before.
        """
        target = self._version_record(version_id)
        schema = self._schemas(target.page_type)
        canonical = self._restorable(target, schema)

        ensured = self.ensure_draft_exists(target.store_id, target.page_type, created_by=created_by)
        draft = self._draft_record(ensured["draft"]["id"])

        # Chained reverts still undo to the content from before the first one
        previous = draft.revert_state.previous_configuration if draft.revert_state else draft.configuration
        state = RevertState(
            version_id=target.id,
            version_number=target.version_number,
            previous_configuration=previous,
        )
        updated = self.store.update_draft(draft.id, canonical, revert_state=state)

        logger.info(
            "Loaded version %d of %s for store %s into draft %s",
            target.version_number,
            target.page_type,
            target.store_id,
            draft.id,
        )
        self._emit("draft.revert", updated, target_version=target.version_number)
        return self._describe_draft(updated)

    def undo_revert(self, draft_id: str) -> Dict[str, Any]:
        draft = self._draft_record(draft_id)
        state = draft.revert_state
        if state is None:
            raise NotFoundError(f"Draft {draft_id} has no revert to undo")

        updated = self.store.update_draft(draft.id, state.previous_configuration, clear_revert=True)
        self._emit("draft.undo_revert", updated, target_version=state.version_number)
        return self._describe_draft(updated)

    # -------------------------------------------------
    # Rendering support
    # -------------------------------------------------

    def resolve_configuration(self, store_id: str, page_type: str, source: str = "published") -> Dict[str, Any]:
        """
        Canonical payload to render: the draft (preview) or the live
        version, falling back to the schema defaults.
        """
        if source not in DRAFT_SOURCES:
            raise ValidationFailed(f"Unknown configuration source: {source}", [f"expected one of {DRAFT_SOURCES}"])

        schema = self._schemas(page_type)
        record = None
        if source == "draft":
            record = self.store.get_draft(store_id, page_type)
        if record is None:
            record = self.store.get_published(store_id, page_type)
        if record is None:
            return default_configuration(schema)
        return load_configuration(record.configuration, page_type)

from slotlayout.extensions import db
from slotlayout.repositories.base import RevertState, SlotConfigurationRecord
from .base import BaseModel
from .store_scope_mixin import StoreScopeMixin


class SlotConfiguration(BaseModel, StoreScopeMixin):
    __tablename__ = "slot_configurations"

    page_type = db.Column(db.String(50), nullable=False, index=True)
    status = db.Column(db.String(20), nullable=False, default="draft", index=True)
    # draft | published | reverted

    # published/reverted: the version itself; draft: the head it was last synced with
    version_number = db.Column(db.Integer, nullable=False, default=0)

    configuration = db.Column(db.JSON, nullable=False, default=dict)
    display_name = db.Column(db.String(200), nullable=True)
    created_by = db.Column(db.String(64), nullable=True)
    published_at = db.Column(db.DateTime(timezone=True), nullable=True)
    # draft only: version loaded by the last revert-to-draft and the content it replaced
    revert_state = db.Column(db.JSON, nullable=True)

    __table_args__ = (
        db.UniqueConstraint(
            "store_id", "page_type", "status", "version_number",
            name="uq_slot_configuration_version",
        ),
        db.Index("idx_slot_configuration_page", "store_id", "page_type"),
    )

    def to_record(self) -> SlotConfigurationRecord:
        return SlotConfigurationRecord(
            id=self.id,
            store_id=self.store_id,
            page_type=self.page_type,
            status=self.status,
            version_number=self.version_number,
            configuration=self.configuration or {},
            created_at=self.created_at,
            updated_at=self.updated_at,
            display_name=self.display_name,
            created_by=self.created_by,
            published_at=self.published_at,
            revert_state=RevertState.from_dict(self.revert_state),
        )

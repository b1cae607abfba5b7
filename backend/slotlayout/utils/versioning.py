from slotlayout.domain.lifecycle.configuration import VERSION_STATUSES


def head_version(store_id, page_type):
    """Highest published or reverted version number, 0 before the first publish."""
    from slotlayout.extensions import db
    from slotlayout.models.slot_configuration import SlotConfiguration

    head = (
        db.session.query(db.func.max(SlotConfiguration.version_number))
        .filter(
            SlotConfiguration.store_id == store_id,
            SlotConfiguration.page_type == page_type,
            SlotConfiguration.status.in_(VERSION_STATUSES),
        )
        .scalar()
    )
    return head or 0


def next_version(store_id, page_type):
    return head_version(store_id, page_type) + 1

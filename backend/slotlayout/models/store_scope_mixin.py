from slotlayout.extensions import db


class StoreScopeMixin:
    store_id = db.Column(
        db.String(64),
        nullable=False,
        index=True
    )

import logging
from contextlib import contextmanager
from slotlayout.extensions import db

logger = logging.getLogger(__name__)


@contextmanager
def transactional():
    """Context manager for database transactions."""
    try:
        yield
        db.session.commit()
    except Exception:
        logger.debug("Rolling back slot configuration transaction")
        db.session.rollback()
        raise

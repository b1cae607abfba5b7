from typing import Dict, Optional, Set

from slotlayout.domain.exceptions import InvalidTransition

DRAFT = "draft"
PUBLISHED = "published"
REVERTED = "reverted"

STATUSES = (DRAFT, PUBLISHED, REVERTED)
VERSION_STATUSES = (PUBLISHED, REVERTED)

# Explicit allowed state transitions; None is "no row yet"
ALLOWED_STATUS_TRANSITIONS: Dict[Optional[str], Set[str]] = {
    None: {DRAFT, PUBLISHED},
    DRAFT: {DRAFT},  # edits and publishes leave the draft a draft
    PUBLISHED: {REVERTED},  # only a later revert supersedes a version
    REVERTED: set(),
}


def assert_status_transition(*, from_status: Optional[str], to_status: str) -> None:
    """
    Guards slot configuration lifecycle transitions.
    Single source of truth for status changes.
    """
    allowed = ALLOWED_STATUS_TRANSITIONS.get(from_status, set())

    if to_status not in allowed:
        raise InvalidTransition(
            f"Illegal slot configuration transition: {from_status} → {to_status}"
        )

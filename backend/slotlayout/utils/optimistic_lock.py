from flask import request
from datetime import timezone
from dateutil.parser import parse, ParserError

from slotlayout.domain.exceptions import ConflictError, ValidationFailed


def normalize_ts(ts):
    """
    Ensure datetime is timezone-aware.
    Defaults to UTC if naive.
    """
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def enforce_optimistic_lock(record):
    """
    Enforces optimistic locking using the If-Unmodified-Since header.
    Raises ConflictError if the draft has been saved since the client loaded it.
    """
    client_ts = request.headers.get("If-Unmodified-Since")
    if not client_ts:
        return  # No optimistic lock requested

    try:
        client_ts = normalize_ts(parse(client_ts))
    except (ParserError, OverflowError, ValueError):
        raise ValidationFailed("Invalid If-Unmodified-Since header")

    # HTTP dates carry whole seconds only
    server_ts = normalize_ts(record.updated_at).replace(microsecond=0)

    if server_ts > client_ts.replace(microsecond=0):
        raise ConflictError(
            "Draft has been modified by another editor; reload and retry"
        )

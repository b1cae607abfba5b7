from functools import wraps
from flask import g
from flask_jwt_extended import get_jwt_identity
from slotlayout.domain.slots.registry import get_page_schema


def page_schema_required(fn):
    """Resolves the ``page_type`` URL argument into its schema (404 when unknown)."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        kwargs["schema"] = get_page_schema(kwargs["page_type"])
        return fn(*args, **kwargs)
    return wrapper


def editor_required(fn):
    """
    Records the JWT identity as the acting editor for audit rows.
    Must sit below ``jwt_required``.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        identity = get_jwt_identity()
        if isinstance(identity, dict):
            identity = identity.get("user_id")
        g.actor_id = str(identity) if identity else None
        return fn(*args, **kwargs)
    return wrapper

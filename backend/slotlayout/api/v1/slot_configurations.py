# slotlayout/api/v1/slot_configurations.py
from flask import g, request, jsonify, current_app, Response
from flask_jwt_extended import jwt_required, verify_jwt_in_request
from slotlayout.application.slots import editing
from slotlayout.application.slots.version_store import VersionStoreClient
from slotlayout.domain.exceptions import NotFoundError, ValidationFailed
from slotlayout.domain.invariants.configuration import validate_configuration
from slotlayout.domain.rendering.renderer import render_to_dicts
from slotlayout.domain.slots.registry import describe_schema, get_page_schema
from slotlayout.normalizers.slot_configuration import normalize_configuration, normalize_version
from slotlayout.repositories.slot_configuration import SqlAlchemySlotConfigurationStore
from slotlayout.utils.audit import audit_listener
from slotlayout.utils.decorators import page_schema_required, editor_required
from slotlayout.utils.diff import diff_configurations
from slotlayout.utils.optimistic_lock import enforce_optimistic_lock
from slotlayout.utils.transfer import export_configuration, import_configuration
from . import v1_bp # import the versioned blueprint

PREFIX = "/slot-configurations"

# Draft edits callable through POST /draft/<id>/edit
EDIT_OPERATIONS = {
    "set_slot_content": editing.set_slot_content,
    "set_element_class": editing.set_element_class,
    "set_element_style": editing.set_element_style,
    "set_micro_slot_span": editing.set_micro_slot_span,
    "resize_micro_slot": editing.resize_micro_slot,
    "reorder_major_slots": editing.reorder_major_slots,
    "reorder_micro_slots": editing.reorder_micro_slots,
    "add_custom_slot": editing.add_custom_slot,
    "delete_custom_slot": editing.delete_custom_slot,
    "set_component_size": editing.set_component_size,
    "set_slot_enabled": editing.set_slot_enabled,
}


def version_store() -> VersionStoreClient:
    return VersionStoreClient(
        SqlAlchemySlotConfigurationStore(),
        listeners=[audit_listener],
    )


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationFailed("Request body must be a JSON object")
    return data


def _optional_int(value, name):
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{name} must be an integer")


def _history_limit():
    default = current_app.config["SLOT_HISTORY_LIMIT"]
    maximum = current_app.config["SLOT_HISTORY_MAX"]
    limit = _optional_int(request.args.get("limit"), "limit") or default
    return max(1, min(limit, maximum))


def _record(client, config_id):
    record = client.store.get_by_id(config_id)
    if record is None:
        raise NotFoundError(f"Configuration {config_id} not found")
    return record


# ------------------------
# Schemas
# ------------------------

@v1_bp.route(f"{PREFIX}/schemas/<page_type>", methods=["GET"])
@page_schema_required
def get_schema(page_type, schema):
    return jsonify(describe_schema(schema))


# ------------------------
# Drafts
# ------------------------

@v1_bp.route(f"{PREFIX}/draft/<store_id>/<page_type>", methods=["GET"])
@jwt_required()
@page_schema_required
def get_draft(store_id, page_type, schema):
    draft = version_store().get_draft_configuration(store_id, page_type)
    if draft is None:
        return jsonify({"draft": None, "has_draft": False}), 200

    return jsonify({
        "draft": normalize_configuration(draft, admin=True),
        "has_draft": True,
    }), 200


@v1_bp.route(f"{PREFIX}/draft/<store_id>/<page_type>", methods=["POST"])
@jwt_required()
@editor_required
@page_schema_required
def ensure_draft(store_id, page_type, schema):
    data = request.get_json(silent=True) or {}
    result = version_store().ensure_draft_exists(
        store_id,
        page_type,
        data.get("display_name"),
        created_by=g.actor_id,
    )

    return jsonify({
        "draft": normalize_configuration(result["draft"], admin=True),
        "created": result["created"],
    }), 201 if result["created"] else 200


@v1_bp.route(f"{PREFIX}/draft/<config_id>", methods=["PUT"])
@jwt_required()
@editor_required
def update_draft(config_id):
    client = version_store()

    # -----------------------
    # Optimistic Locking Check
    # -----------------------
    enforce_optimistic_lock(_record(client, config_id))

    data = _json_body()
    if "configuration" not in data:
        raise ValidationFailed("configuration is required")

    draft = client.update_draft(
        config_id,
        data["configuration"],
        auto_fix=bool(data.get("auto_fix", False)),
    )
    return jsonify(normalize_configuration(draft, admin=True)), 200


@v1_bp.route(f"{PREFIX}/draft/<config_id>/edit", methods=["POST"])
@jwt_required()
@editor_required
def edit_draft(config_id):
    client = version_store()
    draft = _record(client, config_id)
    enforce_optimistic_lock(draft)

    data = _json_body()
    operation = EDIT_OPERATIONS.get(data.get("op"))
    if operation is None:
        raise ValidationFailed(
            f"Unknown edit operation: {data.get('op')!r}",
            [f"expected one of {', '.join(sorted(EDIT_OPERATIONS))}"],
        )

    args = data.get("args") or {}
    if not isinstance(args, dict):
        raise ValidationFailed("args must be an object")

    schema = get_page_schema(draft.page_type)
    try:
        edited = operation(draft.configuration, schema, **args)
    except TypeError as exc:
        raise ValidationFailed(f"Invalid arguments for {data['op']}", [str(exc)]) from exc

    updated = client.update_draft(config_id, edited)
    return jsonify(normalize_configuration(updated, admin=True)), 200


@v1_bp.route(f"{PREFIX}/draft/<config_id>", methods=["DELETE"])
@jwt_required()
@editor_required
def delete_draft(config_id):
    version_store().delete_draft(config_id)
    return jsonify({"message": "Draft deleted successfully"}), 200


@v1_bp.route(f"{PREFIX}/draft/<store_id>/<page_type>/reset", methods=["POST"])
@jwt_required()
@editor_required
@page_schema_required
def reset_draft(store_id, page_type, schema):
    draft = version_store().reset_draft(store_id, page_type)
    return jsonify(normalize_configuration(draft, admin=True)), 200


# ------------------------
# Versions
# ------------------------

@v1_bp.route(f"{PREFIX}/publish/<config_id>", methods=["POST"])
@jwt_required()
@editor_required
def publish_draft(config_id):
    data = request.get_json(silent=True) or {}
    published = version_store().publish_draft(
        config_id,
        expected_version=_optional_int(data.get("expected_version"), "expected_version"),
        created_by=g.actor_id,
    )

    return jsonify({
        "message": "Configuration published",
        "version_number": published["version_number"],
        "configuration": normalize_configuration(published, admin=True),
    }), 200


@v1_bp.route(f"{PREFIX}/published/<store_id>/<page_type>", methods=["GET"])
@page_schema_required
def get_published(store_id, page_type, schema):
    published = version_store().get_published_configuration(store_id, page_type)
    if published is None:
        raise NotFoundError(f"No published configuration for {store_id}/{page_type}")
    return jsonify(normalize_configuration(published, admin=False)), 200


@v1_bp.route(f"{PREFIX}/history/<store_id>/<page_type>", methods=["GET"])
@jwt_required()
@page_schema_required
def get_history(store_id, page_type, schema):
    active_only = request.args.get("active", "false").lower() in ("1", "true", "yes")

    versions = version_store().get_version_history(
        store_id,
        page_type,
        _history_limit(),
        include_reverted=not active_only,
    )
    return jsonify({"items": [normalize_version(v) for v in versions]}), 200


@v1_bp.route(f"{PREFIX}/revert/<version_id>", methods=["POST"])
@jwt_required()
@editor_required
def revert_to_version(version_id):
    data = request.get_json(silent=True) or {}
    published = version_store().revert_to_version(
        version_id,
        expected_version=_optional_int(data.get("expected_version"), "expected_version"),
        created_by=g.actor_id,
    )

    return jsonify({
        "message": f"Reverted to version {published['version_number']}",
        "version_number": published["version_number"],
        "configuration": normalize_configuration(published, admin=True),
    }), 200


@v1_bp.route(f"{PREFIX}/revert-draft/<version_id>", methods=["POST"])
@jwt_required()
@editor_required
def revert_to_draft(version_id):
    draft = version_store().revert_to_draft(version_id, created_by=g.actor_id)

    return jsonify({
        "message": "Version loaded into the draft; publish to apply it",
        "reverted_from": draft["reverted_from"],
        "draft": normalize_configuration(draft, admin=True),
    }), 200


@v1_bp.route(f"{PREFIX}/undo-revert/<config_id>", methods=["POST"])
@jwt_required()
@editor_required
def undo_revert(config_id):
    draft = version_store().undo_revert(config_id)
    return jsonify({
        "message": "Draft restored",
        "restored": True,
        "draft": normalize_configuration(draft, admin=True),
    }), 200


# ------------------------
# Rendering
# ------------------------

@v1_bp.route(f"{PREFIX}/render/<store_id>/<page_type>", methods=["GET"])
@page_schema_required
def render_page(store_id, page_type, schema):
    source = request.args.get("source", "published")
    view_mode = request.args.get("view", schema.default_view)
    if source == "draft":
        # Preview reads the draft and keeps diagnostics visible
        verify_jwt_in_request()

    configuration = version_store().resolve_configuration(store_id, page_type, source)
    nodes = render_to_dicts(schema, configuration, view_mode, editing=source == "draft")

    return jsonify({
        "page_type": page_type,
        "view": view_mode,
        "source": source,
        "slots": nodes,
    }), 200


# ------------------------
# Export / Import / Diff
# ------------------------

@v1_bp.route(f"{PREFIX}/export/<config_id>", methods=["GET"])
@jwt_required()
def export_config(config_id):
    record = _record(version_store(), config_id)
    body = export_configuration(record.configuration)

    filename = f"{record.page_type}-{record.status}-v{record.version_number}.json"
    return Response(
        body,
        mimetype="application/json",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@v1_bp.route(f"{PREFIX}/import/<store_id>/<page_type>", methods=["POST"])
@jwt_required()
@editor_required
@page_schema_required
def import_config(store_id, page_type, schema):
    result = import_configuration(request.get_data(as_text=True), schema)

    client = version_store()
    ensured = client.ensure_draft_exists(store_id, page_type, created_by=g.actor_id)
    draft = client.update_draft(ensured["draft"]["id"], result.configuration)

    current_app.logger.info(
        "Imported %s configuration for store %s (%d issue(s) repaired)",
        page_type, store_id, len(result.issues),
    )
    return jsonify({
        "draft": normalize_configuration(draft, admin=True),
        "issues": result.issues,
        "repaired": result.repaired,
    }), 200


@v1_bp.route(f"{PREFIX}/diff/<from_id>/<to_id>", methods=["GET"])
@jwt_required()
def diff_configs(from_id, to_id):
    client = version_store()
    before, after = _record(client, from_id), _record(client, to_id)

    changes = diff_configurations(before.configuration, after.configuration)
    return jsonify({
        "from": normalize_version(before.to_dict()),
        "to": normalize_version(after.to_dict()),
        "changes": [change.to_dict() for change in changes],
    }), 200


@v1_bp.route(f"{PREFIX}/validate/<page_type>", methods=["POST"])
@page_schema_required
def validate_config(page_type, schema):
    data = request.get_json(silent=True)
    return jsonify(validate_configuration(data, schema).to_dict()), 200

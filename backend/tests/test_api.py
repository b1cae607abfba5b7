import json

import pytest

from slotlayout.models.audit_log import AuditLog

BASE = "/api/v1/slot-configurations"


def _ensure_draft(client, headers, store_id="42", page_type="cart"):
    response = client.post(f"{BASE}/draft/{store_id}/{page_type}", headers=headers, json={})
    assert response.status_code in (200, 201)
    return response.get_json()["draft"]


def _set_title(client, headers, draft_id, title):
    response = client.post(
        f"{BASE}/draft/{draft_id}/edit",
        headers=headers,
        json={"op": "set_slot_content", "args": {"key": "header.title", "content": title}},
    )
    assert response.status_code == 200
    return response.get_json()


def _publish(client, headers, draft_id, **body):
    return client.post(f"{BASE}/publish/{draft_id}", headers=headers, json=body)


@pytest.fixture
def draft(client, auth_headers):
    return _ensure_draft(client, auth_headers)


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert "cart" in body["page_types"]


def test_schema_lookup(client):
    response = client.get(f"{BASE}/schemas/cart")
    assert response.status_code == 200
    body = response.get_json()
    assert body["default_view"] == "empty"
    assert body["slots"]["cartContent"]["required"] is True


def test_unknown_page_type_is_404(client, auth_headers):
    response = client.get(f"{BASE}/schemas/wishlist")
    assert response.status_code == 404
    assert response.get_json()["error"] == "NotFound"

    response = client.post(f"{BASE}/draft/42/wishlist", headers=auth_headers)
    assert response.status_code == 404


def test_draft_routes_require_token(client):
    assert client.post(f"{BASE}/draft/42/cart").status_code == 401
    assert client.get(f"{BASE}/draft/42/cart").status_code == 401


class TestDraftRoutes:
    def test_ensure_creates_then_returns_existing(self, client, auth_headers):
        first = client.post(f"{BASE}/draft/42/cart", headers=auth_headers, json={"display_name": "Main cart"})
        assert first.status_code == 201
        created = first.get_json()
        assert created["created"] is True
        assert created["draft"]["display_name"] == "Main cart"
        assert created["draft"]["configuration"]["majorSlots"] == [
            "header", "flashMessage", "cartContent", "recommendations",
        ]

        second = client.post(f"{BASE}/draft/42/cart", headers=auth_headers)
        assert second.status_code == 200
        assert second.get_json()["draft"]["id"] == created["draft"]["id"]

    def test_get_draft(self, client, auth_headers):
        missing = client.get(f"{BASE}/draft/42/cart", headers=auth_headers).get_json()
        assert missing == {"draft": None, "has_draft": False}

        draft = _ensure_draft(client, auth_headers)
        body = client.get(f"{BASE}/draft/42/cart", headers=auth_headers).get_json()
        assert body["has_draft"] is True
        assert body["draft"]["id"] == draft["id"]
        assert body["draft"]["has_unpublished_changes"] is True

    def test_edit_operation(self, client, auth_headers, draft):
        body = _set_title(client, auth_headers, draft["id"], "Basket")
        assert body["configuration"]["slotContent"]["header.title"] == "Basket"

    def test_unknown_edit_operation(self, client, auth_headers, draft):
        response = client.post(
            f"{BASE}/draft/{draft['id']}/edit", headers=auth_headers, json={"op": "explode"}
        )
        assert response.status_code == 400

        response = client.post(
            f"{BASE}/draft/{draft['id']}/edit",
            headers=auth_headers,
            json={"op": "set_slot_content", "args": {"wrong": "args"}},
        )
        assert response.status_code == 400

    def test_edit_with_malformed_style_is_rejected(self, client, auth_headers, draft):
        for op, args in (
            ("set_element_style", {"key": "header.title", "style": "red"}),
            ("set_component_size", {"key": "cartContent.items", "size": 320}),
        ):
            response = client.post(
                f"{BASE}/draft/{draft['id']}/edit", headers=auth_headers, json={"op": op, "args": args}
            )
            assert response.status_code == 400
            assert response.get_json()["error"] == "ValidationFailed"

    def test_put_invalid_configuration(self, client, auth_headers, draft):
        configuration = dict(draft["configuration"], majorSlots=["header", "ghost"])
        response = client.put(
            f"{BASE}/draft/{draft['id']}", headers=auth_headers, json={"configuration": configuration}
        )

        assert response.status_code == 400
        body = response.get_json()
        assert body["error"] == "ValidationFailed"
        assert any("ghost" in error for error in body["errors"])

    def test_put_with_auto_fix(self, client, auth_headers, draft):
        configuration = dict(draft["configuration"], majorSlots=["header", "ghost"])
        response = client.put(
            f"{BASE}/draft/{draft['id']}",
            headers=auth_headers,
            json={"configuration": configuration, "auto_fix": True},
        )

        assert response.status_code == 200
        assert response.get_json()["configuration"]["majorSlots"] == ["header", "cartContent"]

    def test_stale_if_unmodified_since_conflicts(self, client, auth_headers, draft):
        headers = dict(auth_headers, **{"If-Unmodified-Since": "Wed, 01 Jan 2020 00:00:00 GMT"})
        response = client.put(
            f"{BASE}/draft/{draft['id']}", headers=headers, json={"configuration": draft["configuration"]}
        )

        assert response.status_code == 409
        assert response.get_json()["action"] == "reload"

    def test_fresh_if_unmodified_since_passes(self, client, auth_headers, draft):
        headers = dict(auth_headers, **{"If-Unmodified-Since": "Fri, 01 Jan 2100 00:00:00 GMT"})
        response = client.put(
            f"{BASE}/draft/{draft['id']}", headers=headers, json={"configuration": draft["configuration"]}
        )
        assert response.status_code == 200

    def test_delete_draft(self, client, auth_headers, draft):
        assert client.delete(f"{BASE}/draft/{draft['id']}", headers=auth_headers).status_code == 200
        assert client.delete(f"{BASE}/draft/{draft['id']}", headers=auth_headers).status_code == 404

    def test_reset_draft(self, client, auth_headers, draft):
        _set_title(client, auth_headers, draft["id"], "Live")
        _publish(client, auth_headers, draft["id"])
        _set_title(client, auth_headers, draft["id"], "Scratch")

        response = client.post(f"{BASE}/draft/42/cart/reset", headers=auth_headers)
        assert response.status_code == 200
        body = response.get_json()
        assert body["configuration"]["slotContent"]["header.title"] == "Live"
        assert body["has_unpublished_changes"] is False


class TestPublishing:
    def test_publish_and_read_live(self, client, auth_headers, draft):
        _set_title(client, auth_headers, draft["id"], "Live title")

        response = _publish(client, auth_headers, draft["id"])
        assert response.status_code == 200
        assert response.get_json()["version_number"] == 1

        live = client.get(f"{BASE}/published/42/cart")
        assert live.status_code == 200
        body = live.get_json()
        assert body["version_number"] == 1
        assert body["configuration"]["slotContent"]["header.title"] == "Live title"
        assert "created_by" not in body

    def test_nothing_published_yet(self, client):
        assert client.get(f"{BASE}/published/42/cart").status_code == 404

    def test_stale_publish_is_conflict(self, client, auth_headers, draft):
        _publish(client, auth_headers, draft["id"])

        response = _publish(client, auth_headers, draft["id"], expected_version=0)
        assert response.status_code == 409
        body = response.get_json()
        assert body["error"] == "Conflict"
        assert body["action"] == "reload"

    def test_publish_is_audited(self, app, client, auth_headers, draft):
        _publish(client, auth_headers, draft["id"])

        entry = AuditLog.query.filter_by(action="slot_configuration.publish").one()
        assert entry.actor_id == "editor-1"
        assert entry.store_id == "42"
        assert entry.payload["version"] == 1
        assert entry.payload["page_type"] == "cart"

    def test_history_and_revert(self, client, auth_headers, draft):
        for title in ("First", "Second", "Third"):
            _set_title(client, auth_headers, draft["id"], title)
            _publish(client, auth_headers, draft["id"])

        history = client.get(f"{BASE}/history/42/cart", headers=auth_headers).get_json()["items"]
        assert [item["version_number"] for item in history] == [3, 2, 1]
        assert "configuration" not in history[0]
        assert history[0]["is_current"] is True

        response = client.post(f"{BASE}/revert/{history[-1]['id']}", headers=auth_headers, json={})
        assert response.status_code == 200
        assert response.get_json()["version_number"] == 4

        live = client.get(f"{BASE}/published/42/cart").get_json()
        assert live["configuration"]["slotContent"]["header.title"] == "First"

        active = client.get(f"{BASE}/history/42/cart?active=true", headers=auth_headers).get_json()["items"]
        assert [item["version_number"] for item in active] == [4, 1]

        full = client.get(f"{BASE}/history/42/cart?limit=2", headers=auth_headers).get_json()["items"]
        assert [(item["version_number"], item["is_reverted"]) for item in full] == [(4, False), (3, True)]

    def test_revert_to_head_is_conflict(self, client, auth_headers, draft):
        published = _publish(client, auth_headers, draft["id"]).get_json()["configuration"]
        response = client.post(f"{BASE}/revert/{published['id']}", headers=auth_headers)
        assert response.status_code == 409

    def test_revert_draft_then_undo(self, app, client, auth_headers, draft):
        _set_title(client, auth_headers, draft["id"], "First")
        first = _publish(client, auth_headers, draft["id"]).get_json()["configuration"]
        _set_title(client, auth_headers, draft["id"], "Second")
        _publish(client, auth_headers, draft["id"])
        _set_title(client, auth_headers, draft["id"], "Scratch")

        response = client.post(f"{BASE}/revert-draft/{first['id']}", headers=auth_headers)
        assert response.status_code == 200
        body = response.get_json()
        assert body["reverted_from"] == {"id": first["id"], "version_number": 1}
        assert body["draft"]["configuration"]["slotContent"]["header.title"] == "First"
        assert body["draft"]["can_undo_revert"] is True

        # Nothing published until the draft is
        live = client.get(f"{BASE}/published/42/cart").get_json()
        assert live["version_number"] == 2
        assert live["configuration"]["slotContent"]["header.title"] == "Second"

        response = client.post(f"{BASE}/undo-revert/{draft['id']}", headers=auth_headers)
        assert response.status_code == 200
        body = response.get_json()
        assert body["restored"] is True
        assert body["draft"]["configuration"]["slotContent"]["header.title"] == "Scratch"
        assert body["draft"]["reverted_from"] is None

        assert AuditLog.query.filter_by(action="slot_configuration.draft.revert").count() == 1
        assert AuditLog.query.filter_by(action="slot_configuration.draft.undo_revert").count() == 1

    def test_undo_without_revert_is_404(self, client, auth_headers, draft):
        response = client.post(f"{BASE}/undo-revert/{draft['id']}", headers=auth_headers)
        assert response.status_code == 404
        assert client.post(f"{BASE}/revert-draft/missing", headers=auth_headers).status_code == 404

    def test_revert_draft_requires_token(self, client):
        assert client.post(f"{BASE}/revert-draft/anything").status_code == 401


class TestRenderAndTransfer:
    def test_render_defaults_before_publish(self, client):
        response = client.get(f"{BASE}/render/42/cart")
        assert response.status_code == 200
        body = response.get_json()
        assert body["view"] == "empty"
        assert body["source"] == "published"
        assert [slot["slotId"] for slot in body["slots"]] == [
            "header", "flashMessage", "cartContent", "recommendations",
        ]

    def test_render_draft_preview(self, client, auth_headers, draft):
        _set_title(client, auth_headers, draft["id"], "Preview")

        assert client.get(f"{BASE}/render/42/cart?source=draft").status_code == 401

        body = client.get(
            f"{BASE}/render/42/cart?source=draft&view=withProducts", headers=auth_headers
        ).get_json()
        header = body["slots"][0]
        assert header["slotId"] == "header"
        assert header["microSlots"][0]["content"] == "Preview"

    def test_render_unknown_source(self, client):
        assert client.get(f"{BASE}/render/42/cart?source=staging").status_code == 400

    def test_export_is_the_stored_payload(self, client, auth_headers, draft):
        response = client.get(f"{BASE}/export/{draft['id']}", headers=auth_headers)

        assert response.status_code == 200
        assert "attachment" in response.headers["Content-Disposition"]
        assert json.loads(response.data) == draft["configuration"]

    def test_import_repairs_legacy_payload(self, client, auth_headers):
        legacy = {
            "version": "1.0",
            "majorSlots": ["header", "ghost"],
            "textContent": {"header.title": "Imported"},
        }
        response = client.post(
            f"{BASE}/import/42/cart",
            headers=auth_headers,
            data=json.dumps(legacy),
            content_type="application/json",
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body["repaired"] is True
        assert any("ghost" in issue for issue in body["issues"])

        configuration = body["draft"]["configuration"]
        assert configuration["majorSlots"] == ["header", "cartContent"]
        assert configuration["slotContent"]["header.title"] == "Imported"
        assert configuration["metadata"]["migratedFrom"] == "legacy"

    def test_import_rejects_non_objects(self, client, auth_headers):
        response = client.post(
            f"{BASE}/import/42/cart", headers=auth_headers, data="[1, 2]", content_type="application/json"
        )
        assert response.status_code == 400

    def test_diff_between_versions(self, client, auth_headers, draft):
        _set_title(client, auth_headers, draft["id"], "Before")
        first = _publish(client, auth_headers, draft["id"]).get_json()["configuration"]
        _set_title(client, auth_headers, draft["id"], "After")
        second = _publish(client, auth_headers, draft["id"]).get_json()["configuration"]

        body = client.get(f"{BASE}/diff/{first['id']}/{second['id']}", headers=auth_headers).get_json()
        assert body["from"]["version_number"] == 1
        assert body["changes"] == [
            {"path": "slotContent/header.title", "kind": "changed", "before": "Before", "after": "After"},
        ]

    def test_validate_endpoint(self, client):
        body = client.post(f"{BASE}/validate/cart", json={"majorSlots": ["ghost"]}).get_json()
        assert body["valid"] is False
        assert "version is required" in body["errors"]


def test_openapi_document_is_served(client):
    response = client.get("/openapi/slots.yaml")
    assert response.status_code == 200
    assert response.mimetype == "application/yaml"
    assert b"/slot-configurations" in response.data

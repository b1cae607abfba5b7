import copy

import pytest

from slotlayout.domain.invariants.auto_fix import auto_fix_configuration
from slotlayout.domain.rendering.renderer import (
    KIND_ERROR,
    KIND_SLOT,
    major_slot_order,
    render,
    render_to_dicts,
)


@pytest.fixture
def ghost_config(cart_config):
    cart_config["majorSlots"] = ["header", "ghost", "emptyCart", "cartContent", "cartItem"]
    return cart_config


def test_ghost_slot_degrades_to_error_node(cart_schema, ghost_config):
    nodes = render(cart_schema, ghost_config, "empty")

    assert [node.slot_id for node in nodes] == ["header", "ghost", "emptyCart", "cartContent"]
    ghost = nodes[1]
    assert ghost.kind == KIND_ERROR
    assert "ghost" in ghost.message
    assert all(node.kind == KIND_SLOT for node in nodes if node.slot_id != "ghost")


def test_view_mode_filters_major_slots(cart_schema, ghost_config):
    slot_ids = [node.slot_id for node in render(cart_schema, ghost_config, "withProducts")]
    assert slot_ids == ["header", "ghost", "cartContent", "cartItem"]


def test_production_view_suppresses_diagnostics(cart_schema, ghost_config):
    nodes = render(cart_schema, ghost_config, "empty", editing=False)
    assert [node.slot_id for node in nodes] == ["header", "emptyCart", "cartContent"]


def test_micro_slot_merge(cart_schema, cart_config):
    header = render(cart_schema, cart_config, "empty")[0]
    assert header.name == "Page Header"
    assert header.type == "container"

    (title,) = header.micro_slots
    assert title.key == "header.title"
    assert title.content == "My Cart"
    assert title.class_name == "text-2xl font-bold"
    assert title.style == {"color": "#111"}


def test_missing_maps_use_empty_defaults(cart_schema):
    nodes = render(cart_schema, {"version": "1.0", "majorSlots": ["flashMessage"]}, "empty")
    (content,) = nodes[0].micro_slots
    assert (content.content, content.class_name, content.style) == ("", "", {})


def test_spans_fall_back_to_schema_defaults(cart_schema, cart_config):
    cart_content = render(cart_schema, cart_config, "empty")[2]
    items, summary = cart_content.micro_slots
    assert (items.col_span, items.row_span) == (8, 3)
    assert (summary.col_span, summary.row_span) == (4, 3)
    assert summary.layout["className"] == "col-span-4 row-span-3"
    assert cart_content.component == "CartContent"


def test_micro_slot_order_from_configuration(cart_schema, cart_config):
    cart_config["majorSlots"] = ["orderSummary"]
    cart_config["microSlotOrders"] = {"orderSummary": ["total", "orderSummary.title", "total", "ghost"]}
    summary = render(cart_schema, cart_config, "withProducts")[0]
    assert [node.micro_id for node in summary.micro_slots] == ["total", "title", "ghost"]


def test_schema_micro_slots_used_without_order(cart_schema, cart_config):
    cart_config["majorSlots"] = ["coupon"]
    coupon = render(cart_schema, cart_config, "withProducts")[0]
    assert [node.micro_id for node in coupon.micro_slots] == ["title", "input", "button", "applied", "removeButton"]


def test_disabled_generic_entry_hides_micro_slot(cart_schema, cart_config):
    cart_config["slots"] = {
        "cart.cartcontent.summary": {"enabled": False},
        "cart.cartcontent.items": {"enabled": True, "component": "CompactItems", "props": {"dense": True}},
    }
    cart_content = render(cart_schema, cart_config, "empty")[2]
    (items,) = cart_content.micro_slots
    assert items.component == "CompactItems"
    assert items.props == {"dense": True}


def test_schema_defaults_when_major_slots_absent(cart_schema):
    nodes = render(cart_schema, {"version": "1.0"}, "empty")
    assert [node.slot_id for node in nodes] == ["header", "flashMessage", "cartContent", "recommendations"]


@pytest.mark.parametrize("configuration", [
    None,
    "corrupted",
    [1, 2, 3],
    {"majorSlots": "header"},
    {"majorSlots": [None, 5, "header"], "slotContent": [], "elementStyles": {"header.title": "red"}},
    {"majorSlots": ["header"], "microSlotOrders": {"header": "title"}, "microSlotSpans": {"header.title": "wide"}},
    {"majorSlots": ["cartContent"], "slots": {"cart.cartcontent.items": "off"}},
])
def test_malformed_configuration_never_raises(cart_schema, configuration):
    nodes = render(cart_schema, configuration, "empty")
    assert isinstance(nodes, list)


def test_non_string_ids_become_error_nodes(cart_schema):
    nodes = render(cart_schema, {"majorSlots": [None, "header"]}, "empty")
    assert nodes[0].kind == KIND_ERROR
    assert nodes[1].slot_id == "header"


def test_render_is_deterministic_and_pure(cart_schema, ghost_config):
    snapshot = copy.deepcopy(ghost_config)
    first = render_to_dicts(cart_schema, ghost_config, "empty")
    second = render_to_dicts(cart_schema, ghost_config, "empty")

    assert first == second
    assert ghost_config == snapshot


def test_render_output_does_not_alias_configuration(cart_schema, cart_config):
    header = render(cart_schema, cart_config, "empty")[0]
    header.micro_slots[0].style["color"] = "#fff"
    assert cart_config["elementStyles"]["header.title"] == {"color": "#111"}


def test_auto_fixed_configuration_renders_without_errors(cart_schema, ghost_config):
    fixed = auto_fix_configuration(ghost_config, cart_schema)
    nodes = render(cart_schema, fixed, "empty")
    assert all(node.kind == KIND_SLOT for node in nodes)


def test_major_slot_order_dedupes(cart_schema):
    config = {"majorSlots": ["header", "header", "flashMessage"]}
    assert major_slot_order(cart_schema, config, "empty") == ["header", "flashMessage"]


def test_to_dict_shape(cart_schema, ghost_config):
    nodes = render_to_dicts(cart_schema, ghost_config, "empty")
    assert nodes[1] == {
        "kind": "error",
        "slotId": "ghost",
        "name": "ghost",
        "type": "error",
        "className": "",
        "style": {},
        "component": None,
        "microSlots": [],
        "message": "Slot 'ghost' is not defined for page type 'cart'",
    }
    assert nodes[0]["microSlots"][0]["layout"]["gridColumn"] == "span 12 / span 12"

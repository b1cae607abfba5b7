import pytest

from slotlayout.domain.exceptions import NotFoundError
from slotlayout.domain.slots.defaults import default_configuration
from slotlayout.domain.slots.keys import SlotKey
from slotlayout.domain.slots.registry import (
    PAGE_SCHEMAS,
    describe_schema,
    get_page_schema,
    list_page_types,
)


def test_cart_default_slots():
    schema = get_page_schema("cart")
    assert schema.default_slots == ("header", "flashMessage", "cartContent", "recommendations")
    assert schema.views == ("empty", "withProducts")


def test_unknown_page_type_raises_not_found():
    with pytest.raises(NotFoundError):
        get_page_schema("wishlist")


def test_every_default_slot_is_defined():
    for schema in PAGE_SCHEMAS.values():
        for slot_id in schema.default_slots:
            assert schema.has_slot(slot_id), (schema.page_type, slot_id)


def test_view_restriction():
    schema = get_page_schema("cart")
    assert schema.get("emptyCart").visible_in("empty")
    assert not schema.get("emptyCart").visible_in("withProducts")
    assert schema.get("header").visible_in("withProducts")


def test_list_page_types():
    assert list_page_types() == ["cart", "category", "checkout", "login", "product", "success"]


def test_describe_schema_is_json_ready():
    described = describe_schema(get_page_schema("login"))
    assert described["default_slots"] == ["header", "loginForm", "registerPrompt"]
    assert described["slots"]["loginForm"]["required"] is True
    assert described["slots"]["loginForm"]["microSlots"][0] == "email"


def test_default_configuration_materialises_default_content():
    config = default_configuration(get_page_schema("cart"))
    assert config["majorSlots"] == ["header", "flashMessage", "cartContent", "recommendations"]
    assert config["slotContent"]["header.title"] == "Shopping Cart"
    # emptyCart is not a default slot, so its copy is not seeded
    assert "emptyCart.title" not in config["slotContent"]


class TestSlotKey:
    def test_parse_dotted(self):
        assert SlotKey.parse("header.title") == SlotKey("header", "title")

    def test_parse_bare_micro_with_major(self):
        assert SlotKey.parse("title", "header") == SlotKey("header", "title")
        assert SlotKey.parse("header.title", "header") == SlotKey("header", "title")

    @pytest.mark.parametrize("raw", ["", "header", ".title", "header.", None, 3])
    def test_parse_rejects_malformed(self, raw):
        with pytest.raises(ValueError):
            SlotKey.parse(raw)

    def test_key_round_trip_and_custom(self):
        key = SlotKey("cartContent", "custom_ab12")
        assert key.key == "cartContent.custom_ab12"
        assert str(key) == key.key
        assert key.is_custom

    def test_generic_id_is_lowercased(self):
        assert SlotKey("flashMessage", "content").generic_id("cart") == "cart.flashmessage.content"


def test_default_configuration_materialises_default_spans():
    config = default_configuration(get_page_schema("cart"))
    assert config["microSlotSpans"] == {
        "cartContent.items": {"col": 8, "row": 3},
        "cartContent.summary": {"col": 4, "row": 3},
        "recommendations.products": {"col": 12, "row": 3},
    }
    # cartItem is view-only, not a default slot
    assert "cartItem.image" not in config["microSlotSpans"]

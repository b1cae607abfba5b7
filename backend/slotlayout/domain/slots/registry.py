"""
Static slot schemas, one per page type.

Pure lookup: the registry holds no state beyond these module-level
definitions and every accessor returns immutable values.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from slotlayout.domain.exceptions import NotFoundError

GRID_COLUMNS = 12
GRID_ROWS = 4

DEFAULT_SPAN: Tuple[int, int] = (GRID_COLUMNS, 1)


@dataclass(frozen=True)
class SlotDefinition:
    slot_id: str
    name: str
    description: str = ""
    type: str = "container"  # container | content | component
    micro_slots: Tuple[str, ...] = ()
    views: Tuple[str, ...] = ()
    required: bool = False
    component: Optional[str] = None
    default_content: Mapping[str, str] = field(default_factory=dict)
    default_spans: Mapping[str, Tuple[int, int]] = field(default_factory=dict)

    def visible_in(self, view_mode: Optional[str]) -> bool:
        if not self.views or view_mode is None:
            return True
        return view_mode in self.views

    def default_span(self, micro_id: str) -> Tuple[int, int]:
        return self.default_spans.get(micro_id, DEFAULT_SPAN)


@dataclass(frozen=True)
class PageTypeSchema:
    page_type: str
    title: str
    slots: Mapping[str, SlotDefinition]
    default_slots: Tuple[str, ...]
    views: Tuple[str, ...] = ("default",)
    default_view: str = "default"

    def get(self, slot_id: str) -> Optional[SlotDefinition]:
        return self.slots.get(slot_id)

    def has_slot(self, slot_id: str) -> bool:
        return slot_id in self.slots

    @property
    def required_slots(self) -> List[str]:
        return [slot_id for slot_id, d in self.slots.items() if d.required]

    def find_slot_ci(self, lowered: str) -> Optional[SlotDefinition]:
        """Case-insensitive lookup used for lowercased generic slot ids."""
        for slot_id, definition in self.slots.items():
            if slot_id.lower() == lowered:
                return definition
        return None


def _slot(slot_id, name, micro, *, description="", type="container",
          views=(), required=False, component=None, content=None, spans=None):
    return SlotDefinition(
        slot_id=slot_id,
        name=name,
        description=description,
        type=type,
        micro_slots=tuple(micro),
        views=tuple(views),
        required=required,
        component=component,
        default_content=MappingProxyType(dict(content or {})),
        default_spans=MappingProxyType(dict(spans or {})),
    )


def _schema(page_type, title, slots, default_slots, views=("default",), default_view=None):
    by_id = {s.slot_id: s for s in slots}
    if len(by_id) != len(slots):
        raise ValueError(f"Duplicate slot id in {page_type} schema")
    for slot_id in default_slots:
        if slot_id not in by_id:
            raise ValueError(f"Default slot {slot_id} missing from {page_type} schema")

    return PageTypeSchema(
        page_type=page_type,
        title=title,
        slots=MappingProxyType(by_id),
        default_slots=tuple(default_slots),
        views=tuple(views),
        default_view=default_view or views[0],
    )


CART_VIEWS = ("empty", "withProducts")

CART_SCHEMA = _schema(
    "cart",
    "Cart Layout",
    [
        _slot("header", "Page Header", ["title"], required=True,
              content={"title": "Shopping Cart"}),
        _slot("flashMessage", "Flash Messages", ["content"],
              description="Status messages after cart updates"),
        _slot("emptyCart", "Empty Cart Message", ["icon", "title", "text", "button"],
              views=["empty"],
              content={"title": "Your cart is empty", "button": "Continue Shopping"},
              spans={"icon": (2, 1), "title": (10, 1)}),
        _slot("cartContent", "Cart Content", ["items", "summary"], required=True,
              type="component", component="CartContent",
              spans={"items": (8, 3), "summary": (4, 3)}),
        _slot("cartItem", "Cart Items", ["image", "details", "quantity", "price", "remove"],
              views=["withProducts"],
              spans={"image": (2, 2), "details": (4, 2), "quantity": (3, 1),
                     "price": (2, 1), "remove": (1, 1)}),
        _slot("coupon", "Coupon Section", ["title", "input", "button", "applied", "removeButton"],
              views=["withProducts"],
              content={"title": "Apply Coupon", "button": "Apply"},
              spans={"input": (8, 1), "button": (4, 1), "applied": (8, 1), "removeButton": (4, 1)}),
        _slot("orderSummary", "Order Summary",
              ["title", "subtotal", "tax", "shipping", "discount", "total", "checkout"],
              views=["withProducts"],
              content={"title": "Order Summary", "checkout": "Proceed to Checkout"}),
        _slot("recommendations", "Product Recommendations", ["title", "products"],
              type="component", component="ProductRecommendations",
              content={"title": "You might also like"},
              spans={"products": (12, 3)}),
    ],
    ["header", "flashMessage", "cartContent", "recommendations"],
    views=CART_VIEWS,
)

CATEGORY_SCHEMA = _schema(
    "category",
    "Category Layout",
    [
        _slot("header", "Category Header", ["title", "description"], required=True),
        _slot("breadcrumbs", "Breadcrumbs", ["trail"]),
        _slot("banner", "Category Banner", ["image"]),
        _slot("filters", "Product Filters", ["title", "options"], type="component",
              component="LayeredNavigation", spans={"options": (12, 4)}),
        _slot("sorting", "Sort Options", ["label", "select"], spans={"label": (4, 1), "select": (8, 1)}),
        _slot("products", "Product Grid", ["grid"], required=True, type="component",
              component="ProductGrid", spans={"grid": (12, 4)}),
        _slot("pagination", "Pagination", ["controls"]),
        _slot("seoContent", "SEO Content", ["text"]),
    ],
    ["header", "breadcrumbs", "filters", "sorting", "products", "pagination"],
    views=("grid", "list"),
)

PRODUCT_SCHEMA = _schema(
    "product",
    "Product Layout",
    [
        _slot("breadcrumbs", "Breadcrumbs", ["trail"]),
        _slot("gallery", "Image Gallery", ["mainImage", "thumbnails"], type="component",
              component="ProductGallery", spans={"mainImage": (12, 3)}),
        _slot("info", "Product Info", ["name", "price", "sku", "description"], required=True),
        _slot("options", "Product Options", ["variants", "quantity"]),
        _slot("actions", "Product Actions", ["addToCart", "wishlist"], required=True,
              content={"addToCart": "Add to Cart"}, spans={"addToCart": (8, 1), "wishlist": (4, 1)}),
        _slot("tabs", "Product Tabs", ["content"]),
        _slot("related", "Related Products", ["title", "products"], type="component",
              component="RelatedProducts", content={"title": "Related Products"}),
    ],
    ["breadcrumbs", "gallery", "info", "options", "actions", "tabs", "related"],
)

CHECKOUT_SCHEMA = _schema(
    "checkout",
    "Checkout Layout",
    [
        _slot("header", "Checkout Header", ["title"], content={"title": "Checkout"}),
        _slot("steps", "Step Indicator", ["indicator"]),
        _slot("shipping", "Shipping Details", ["title", "form"]),
        _slot("payment", "Payment Methods", ["title", "methods"], required=True),
        _slot("summary", "Order Summary", ["items", "total"]),
        _slot("placeOrder", "Place Order", ["button"], required=True,
              content={"button": "Place Order"}),
    ],
    ["header", "steps", "shipping", "payment", "summary", "placeOrder"],
)

LOGIN_SCHEMA = _schema(
    "login",
    "Login Layout",
    [
        _slot("header", "Login Header", ["title", "subtitle"], content={"title": "Sign in"}),
        _slot("loginForm", "Login Form", ["email", "password", "submit", "forgotPassword"],
              required=True, content={"submit": "Sign in"}),
        _slot("registerPrompt", "Register Prompt", ["text", "link"]),
    ],
    ["header", "loginForm", "registerPrompt"],
)

SUCCESS_SCHEMA = _schema(
    "success",
    "Order Success Layout",
    [
        _slot("header", "Success Header", ["title", "message"],
              content={"title": "Thank you for your order!"}),
        _slot("orderDetails", "Order Details", ["number", "items", "total"], required=True),
        _slot("actions", "Next Steps", ["continueShopping"],
              content={"continueShopping": "Continue Shopping"}),
    ],
    ["header", "orderDetails", "actions"],
)

PAGE_SCHEMAS: Mapping[str, PageTypeSchema] = MappingProxyType({
    schema.page_type: schema
    for schema in (
        CART_SCHEMA,
        CATEGORY_SCHEMA,
        PRODUCT_SCHEMA,
        CHECKOUT_SCHEMA,
        LOGIN_SCHEMA,
        SUCCESS_SCHEMA,
    )
})


def get_page_schema(page_type: str) -> PageTypeSchema:
    schema = PAGE_SCHEMAS.get(page_type)
    if schema is None:
        raise NotFoundError(f"Unknown page type: {page_type}")
    return schema


def list_page_types() -> List[str]:
    return sorted(PAGE_SCHEMAS)


def describe_schema(schema: PageTypeSchema) -> Dict:
    return {
        "page_type": schema.page_type,
        "title": schema.title,
        "views": list(schema.views),
        "default_view": schema.default_view,
        "default_slots": list(schema.default_slots),
        "slots": {
            slot_id: {
                "name": d.name,
                "description": d.description,
                "type": d.type,
                "microSlots": list(d.micro_slots),
                "views": list(d.views),
                "required": d.required,
            }
            for slot_id, d in schema.slots.items()
        },
    }

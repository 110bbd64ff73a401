"""
Layout Engine Kernel — Default Page Templates

The layout a page starts from when a tenant has no draft yet, and the layout
"reset" goes back to. Content strings are template markup for the renderer;
the engine only stores them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from layout_engine.kernel.errors import UnknownPageType
from layout_engine.kernel.invariants import validate
from layout_engine.kernel.types import DEFAULT_CLASS_NAMES, DEFAULT_STYLES, Slot, Snapshot, make_slot

# Structural containers the assistant and drag-drop may not delete or move
PROTECTED_SLOT_IDS: frozenset[str] = frozenset({"main_layout", "header_container", "content_area", "sidebar_area"})


@dataclass(frozen=True)
class PageTemplate:
    """
    A named default layout for one page type.

    `slots` rows are (id, type, parent_id, col_span, content, extra) where
    `extra` holds className / styles / variant fields. Sibling order follows
    row order.
    """

    page_type: str
    name: str
    slots: tuple[tuple[str, str, str | None, int, str, dict[str, Any]], ...]
    protected: frozenset[str] = field(default=PROTECTED_SLOT_IDS)

    def build(self) -> Snapshot:
        built: dict[str, Slot] = {}
        next_order: dict[str | None, int] = {}
        for slot_id, slot_type, parent_id, col_span, content, extra in self.slots:
            order = next_order.get(parent_id, 0)
            next_order[parent_id] = order + 1
            kwargs = {
                "class_name": DEFAULT_CLASS_NAMES[slot_type],
                "styles": dict(DEFAULT_STYLES.get(slot_type, {})),
                **extra,
            }
            built[slot_id] = make_slot(
                slot_type,
                id=slot_id,
                parent_id=parent_id,
                col_span=col_span,
                content=content,
                order=order,
                metadata={"template": self.page_type},
                **kwargs,
            )
        snapshot = Snapshot(slots=built)
        violations = validate(snapshot)
        if violations:
            raise ValueError(f"template {self.page_type!r} is invalid: {[str(v) for v in violations]}")
        return snapshot


_GRID = {"class_name": "grid grid-cols-12 gap-4", "styles": {}}
_STACK = {"layout": "stack", "class_name": "space-y-4", "styles": {}}

PRODUCT_TEMPLATE = PageTemplate(
    page_type="product",
    name="Product Detail",
    slots=(
        ("main_layout", "container", None, 12, "", {"class_name": "max-w-6xl mx-auto sm:px-4 py-8", "styles": {}}),
        ("header_container", "container", "main_layout", 12, "", _GRID),
        ("breadcrumbs", "component", "header_container", 12, "", {"component": "Breadcrumbs"}),
        (
            "content_area", "container", "main_layout", 12, "",
            {"class_name": "grid md:grid-cols-12 md:gap-8", "styles": {}},
        ),
        ("product_gallery", "component", "content_area", 6, "", {"component": "ProductGallery"}),
        ("product_info", "container", "content_area", 6, "", _STACK),
        (
            "product_title", "text", "product_info", 12, "{{product.name}}",
            {"class_name": "text-3xl font-bold text-gray-900"},
        ),
        ("product_price", "text", "product_info", 12, "{{product.price}}", {"class_name": "text-2xl font-semibold"}),
        ("product_description", "html", "product_info", 12, "{{product.description}}", {}),
        ("add_to_cart_button", "button", "product_info", 6, "Add to Cart", {}),
        ("wishlist_button", "button", "product_info", 6, "Add to Wishlist", {"class_name": "px-4 py-2 rounded border"}),
        ("product_tabs", "component", "main_layout", 12, "", {"component": "ProductTabs"}),
        ("related_products", "component", "main_layout", 12, "", {"component": "RelatedProducts"}),
    ),
)

CATEGORY_TEMPLATE = PageTemplate(
    page_type="category",
    name="Category Listing",
    slots=(
        ("main_layout", "container", None, 12, "", {"class_name": "max-w-7xl mx-auto px-4 py-8", "styles": {}}),
        ("header_container", "container", "main_layout", 12, "", _GRID),
        ("breadcrumbs", "component", "header_container", 12, "", {"component": "Breadcrumbs"}),
        ("category_title", "text", "header_container", 12, "{{category.name}}", {"class_name": "text-3xl font-bold"}),
        ("category_description", "html", "header_container", 12, "{{category.description}}", {}),
        ("content_area", "container", "main_layout", 12, "", _GRID),
        ("sidebar_area", "container", "content_area", 3, "", _STACK),
        ("layered_navigation", "component", "sidebar_area", 12, "", {"component": "LayeredNavigation"}),
        ("products_container", "container", "content_area", 9, "", _GRID),
        ("sort_selector", "component", "products_container", 12, "", {"component": "SortSelector"}),
        ("product_grid", "component", "products_container", 12, "", {"component": "ProductGrid"}),
        ("pagination", "component", "products_container", 12, "", {"component": "Pagination"}),
    ),
)

CART_TEMPLATE = PageTemplate(
    page_type="cart",
    name="Shopping Cart",
    slots=(
        ("main_layout", "container", None, 12, "", {"class_name": "max-w-6xl mx-auto px-4 py-8", "styles": {}}),
        ("header_container", "container", "main_layout", 12, "", _GRID),
        ("cart_title", "text", "header_container", 12, "My Cart", {"class_name": "text-3xl font-bold text-gray-900"}),
        ("content_area", "container", "main_layout", 12, "", _GRID),
        ("cart_items", "container", "content_area", 8, "", {"layout": "stack", "styles": {}}),
        ("cart_items_list", "component", "cart_items", 12, "", {"component": "CartItems"}),
        ("empty_cart_message", "text", "cart_items", 12, "Your cart is empty.", {}),
        ("sidebar_area", "container", "content_area", 4, "", {"layout": "stack", "styles": {}}),
        ("coupon_form", "component", "sidebar_area", 12, "", {"component": "CouponForm"}),
        ("order_summary", "component", "sidebar_area", 12, "", {"component": "OrderSummary"}),
        ("checkout_button", "button", "sidebar_area", 12, "Proceed to Checkout", {"href": "/checkout"}),
    ),
)

CHECKOUT_TEMPLATE = PageTemplate(
    page_type="checkout",
    name="Checkout",
    slots=(
        ("main_layout", "container", None, 12, "", {"class_name": "max-w-6xl mx-auto px-4 py-8", "styles": {}}),
        ("header_container", "container", "main_layout", 12, "", _GRID),
        ("checkout_title", "text", "header_container", 12, "Checkout", {"class_name": "text-3xl font-bold"}),
        ("content_area", "container", "main_layout", 12, "", _GRID),
        ("checkout_steps", "container", "content_area", 8, "", {"layout": "stack", "styles": {}}),
        ("shipping_form", "component", "checkout_steps", 12, "", {"component": "ShippingAddressForm"}),
        ("delivery_options", "component", "checkout_steps", 12, "", {"component": "DeliveryOptions"}),
        ("payment_methods", "component", "checkout_steps", 12, "", {"component": "PaymentMethods"}),
        ("sidebar_area", "container", "content_area", 4, "", {"layout": "stack", "styles": {}}),
        ("order_summary", "component", "sidebar_area", 12, "", {"component": "OrderSummary"}),
        ("place_order_button", "button", "sidebar_area", 12, "Place Order", {}),
    ),
)

TEMPLATES: dict[str, PageTemplate] = {
    t.page_type: t for t in (PRODUCT_TEMPLATE, CATEGORY_TEMPLATE, CART_TEMPLATE, CHECKOUT_TEMPLATE)
}

PAGE_TYPES: tuple[str, ...] = tuple(TEMPLATES)


def get_template(page_type: str) -> PageTemplate:
    template = TEMPLATES.get(page_type)
    if template is None:
        raise UnknownPageType(f"no default template for page type {page_type!r}; known: {list(PAGE_TYPES)}")
    return template


def default_snapshot(page_type: str) -> Snapshot:
    """Fresh snapshot of the built-in layout for `page_type`."""
    return get_template(page_type).build()

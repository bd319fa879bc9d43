"""Data models for lichi.com catalog and cart entities."""

import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import MalformedCartItem, MalformedCategory, MalformedProduct

MAX_IMAGES = 3
DEFAULT_PRODUCT_NAME = "No name"
CURRENCY = "RUB"


class Category(BaseModel):
    """Represents a catalog category (a product filter bucket)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Category ID")
    url: str = Field(description="API category key, empty for all categories")
    name: str = Field(description="Display name")

    @classmethod
    def parse(cls, raw: Any) -> "Category":
        """
        Build a category from a decoded ``aMenu`` entry.

        Raises:
            MalformedCategory: If ``id``, ``url`` or ``name`` is missing or not a string
        """
        if not isinstance(raw, dict):
            raise MalformedCategory(f"Category payload must be an object, got {type(raw).__name__}")
        for field in ("id", "url", "name"):
            if not isinstance(raw.get(field), str):
                raise MalformedCategory(f"Category field '{field}' is missing or not a string", field)
        return cls(id=raw["id"], url=raw["url"], name=raw["name"])


ALL_CATEGORY = Category(id="all", url="", name="All")


def _parse_id(value: Any) -> int:
    if isinstance(value, bool):
        raise MalformedProduct(f"Product id must be numeric, got {value!r}", "id")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
        return int(value.strip())
    raise MalformedProduct(f"Product id is missing or non-numeric: {value!r}", "id")


def _parse_price(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        return Decimal("0")
    if isinstance(value, float) and not math.isfinite(value):
        return Decimal("0")
    if isinstance(value, (int, float, str, Decimal)):
        try:
            price = Decimal(str(value).strip())
        except InvalidOperation:
            return Decimal("0")
        return price if price.is_finite() else Decimal("0")
    return Decimal("0")


def _parse_images(raw: dict) -> tuple[str, ...]:
    # Serialized products carry "images"; API payloads carry "photos".
    if isinstance(raw.get("images"), list):
        images = [image for image in raw["images"] if isinstance(image, str)]
    else:
        images = []
        photos = raw.get("photos")
        if isinstance(photos, list):
            for photo in photos:
                if isinstance(photo, dict) and isinstance(photo.get("big"), str):
                    images.append(photo["big"])
    return tuple(images[:MAX_IMAGES])


def _parse_sizes(value: Any) -> tuple[str, ...]:
    if isinstance(value, list):
        return tuple(size for size in value if isinstance(size, str))
    sizes = []
    if isinstance(value, dict):
        # Order is whatever the JSON decoder yields for the mapping.
        for size in value.values():
            if isinstance(size, dict) and isinstance(size.get("name"), str):
                sizes.append(size["name"])
    return tuple(sizes)


class Product(BaseModel):
    """Represents a product from lichi.com."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Product ID")
    name: str = Field(default=DEFAULT_PRODUCT_NAME, description="Product name")
    price: Decimal = Field(default=Decimal("0"), description="Product price")
    images: tuple[str, ...] = Field(default=(), description="Up to three image URLs")
    sizes: tuple[str, ...] = Field(default=(), description="Available size names")

    @classmethod
    def parse(cls, raw: Any) -> "Product":
        """
        Build a product from an ``aProduct`` entry or from ``serialize()`` output.

        Missing or ill-typed optional fields fall back to defaults.

        Raises:
            MalformedProduct: If ``id`` is missing or non-numeric
        """
        if not isinstance(raw, dict):
            raise MalformedProduct(f"Product payload must be an object, got {type(raw).__name__}")
        name = raw.get("name")
        return cls(
            id=_parse_id(raw.get("id")),
            name=name if isinstance(name, str) else DEFAULT_PRODUCT_NAME,
            price=_parse_price(raw.get("price")),
            images=_parse_images(raw),
            sizes=_parse_sizes(raw.get("sizes")),
        )

    def serialize(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class CartItem(BaseModel):
    """Represents an item in the shopping cart."""

    model_config = ConfigDict(validate_assignment=True)

    product: Product
    size: str = Field(description="Selected size name")
    quantity: int = Field(default=1, ge=1, description="Quantity of the product")

    @property
    def subtotal(self) -> Decimal:
        return self.product.price * self.quantity

    @classmethod
    def parse(cls, raw: Any) -> "CartItem":
        """
        Build a cart item from ``serialize()`` output.

        Raises:
            MalformedProduct: If the nested product is malformed
            MalformedCartItem: If ``size`` or ``quantity`` is invalid
        """
        if not isinstance(raw, dict):
            raise MalformedCartItem(f"Cart item payload must be an object, got {type(raw).__name__}")
        product = Product.parse(raw.get("product"))
        size = raw.get("size")
        quantity = raw.get("quantity")
        if not isinstance(size, str):
            raise MalformedCartItem("Cart item size is missing or not a string", "size")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise MalformedCartItem(f"Cart item quantity must be a positive integer, got {quantity!r}", "quantity")
        return cls(product=product, size=size, quantity=quantity)

    def serialize(self) -> dict[str, Any]:
        return {"product": self.product.serialize(), "size": self.size, "quantity": self.quantity}


class Cart(BaseModel):
    """Read-only snapshot of the shopping cart."""

    items: list[CartItem] = Field(default_factory=list, description="Cart items in add order")
    total: Decimal = Field(default=Decimal("0"), description="Total cart value")
    item_count: int = Field(default=0, description="Total number of units")


def format_price(amount: Decimal) -> str:
    """Render a price rounded to whole currency units, e.g. ``2990 RUB``."""
    amount = Decimal(amount)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 2)
        whole = amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"{whole} {CURRENCY}"

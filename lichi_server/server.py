"""MCP Server for the lichi.com clothing store."""

import asyncio
import json
import logging
from typing import Any, Optional

from mcp.server import Server
from mcp.types import Resource, Tool, TextContent
from pydantic import AnyUrl

from .config import Settings
from .models import CartItem, Product, format_price
from .storefront import Storefront

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lichi-mcp-server")

# Initialize server
app = Server("lichi-mcp-server")

# Global state
storefront: Storefront


def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _error_suffix() -> str:
    error = storefront.take_error()
    return f"\n\nError: {error}" if error else ""


def _format_products(products: tuple[Product, ...], start: int = 1) -> list[str]:
    lines = []
    for i, product in enumerate(products, start):
        lines.append(f"\n{i}. {product.name}")
        lines.append(f"   ID: {product.id}")
        lines.append(f"   Price: {format_price(product.price)}")
        if product.sizes:
            lines.append(f"   Sizes: {', '.join(product.sizes)}")
    return lines


def _format_cart() -> str:
    cart = storefront.cart
    if not cart.items:
        return "Your cart is empty"

    lines = [f"Shopping Cart ({cart.total_count} items):\n"]
    for i, item in enumerate(cart.items, 1):
        lines.append(f"\n{i}. {item.product.name}")
        lines.append(f"   Product ID: {item.product.id}")
        lines.append(f"   Size: {item.size}")
        lines.append(f"   Price: {format_price(item.product.price)}")
        lines.append(f"   Quantity: {item.quantity}")
        lines.append(f"   Subtotal: {format_price(item.subtotal)}")

    lines.append(f"\n{'='*50}")
    lines.append(f"Total: {format_price(cart.total_price)}")
    return "\n".join(lines)


def _find_cart_item(arguments: dict[str, Any]) -> Optional[CartItem]:
    return storefront.cart.find(int(arguments["product_id"]), arguments["size"])


@app.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    return [
        Resource(
            uri=AnyUrl("lichi://cart"),
            name="Shopping Cart",
            mimeType="application/json",
            description="Current shopping cart contents",
        ),
        Resource(
            uri=AnyUrl("lichi://catalog"),
            name="Catalog",
            mimeType="application/json",
            description="Loaded categories, products and pagination state",
        ),
    ]


@app.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource by URI."""
    uri_str = str(uri)

    if uri_str == "lichi://cart":
        return storefront.cart.snapshot().model_dump_json(indent=2)

    elif uri_str == "lichi://catalog":
        return json.dumps(storefront.catalog.state.model_dump(mode="json"), indent=2)

    raise ValueError(f"Unknown resource: {uri}")


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available tools."""
    product_and_size = {
        "product_id": {
            "type": "integer",
            "description": "Product ID",
        },
        "size": {
            "type": "string",
            "description": "Size name",
        },
    }
    return [
        Tool(
            name="lichi_list_categories",
            description="List catalog categories (loads the catalog on first use)",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="lichi_select_category",
            description="Filter products by category and reload from the first page",
            inputSchema={
                "type": "object",
                "properties": {
                    "category_url": {
                        "type": "string",
                        "description": "Category url from lichi_list_categories (empty for all)",
                    },
                },
                "required": ["category_url"],
            },
        ),
        Tool(
            name="lichi_list_products",
            description="List the products loaded so far for the selected category",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="lichi_load_more",
            description="Load the next page of products (12 per page)",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="lichi_get_product",
            description="Get details of a loaded product, including image URLs and sizes",
            inputSchema={
                "type": "object",
                "properties": {"product_id": product_and_size["product_id"]},
                "required": ["product_id"],
            },
        ),
        Tool(
            name="lichi_add_to_cart",
            description="Add one unit of a product in a size to the cart",
            inputSchema={
                "type": "object",
                "properties": {
                    "product_id": product_and_size["product_id"],
                    "size": {
                        "type": "string",
                        "description": "Size name (default: the product's first size)",
                    },
                },
                "required": ["product_id"],
            },
        ),
        Tool(
            name="lichi_remove_from_cart",
            description="Remove a product/size line from the cart",
            inputSchema={
                "type": "object",
                "properties": product_and_size,
                "required": ["product_id", "size"],
            },
        ),
        Tool(
            name="lichi_update_cart_quantity",
            description="Set the quantity of a cart line, or change it by a step of 1 or -1. Quantity 0 removes it.",
            inputSchema={
                "type": "object",
                "properties": {
                    **product_and_size,
                    "quantity": {
                        "type": "integer",
                        "description": "New quantity to set",
                    },
                    "step": {
                        "type": "integer",
                        "enum": [-1, 1],
                        "description": "Increment (1) or decrement (-1) instead of setting",
                    },
                },
                "required": ["product_id", "size"],
            },
        ),
        Tool(
            name="lichi_get_cart",
            description="Get current shopping cart contents with all items and total",
            inputSchema={"type": "object", "properties": {}},
        ),
    ]


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent]:
    """Handle tool calls."""
    arguments = arguments or {}
    try:
        if name == "lichi_list_categories":
            await storefront.ensure_catalog()
            state = storefront.catalog.state
            if not state.categories:
                return _text("No categories available" + _error_suffix())

            result_lines = [f"Found {len(state.categories)} categories:\n"]
            for category in state.categories:
                marker = " (selected)" if category.url == state.selected_category_url else ""
                result_lines.append(f"- {category.name}: url='{category.url}'{marker}")
            return _text("\n".join(result_lines) + _error_suffix())

        elif name == "lichi_select_category":
            await storefront.ensure_catalog()
            category_url = arguments["category_url"]
            await storefront.catalog.select_category(category_url)
            state = storefront.catalog.state
            return _text(
                f"Selected category '{category_url or 'All'}', {len(state.products)} product(s) loaded"
                + _error_suffix()
            )

        elif name == "lichi_list_products":
            await storefront.ensure_catalog()
            state = storefront.catalog.state
            if not state.products:
                return _text("No products loaded" + _error_suffix())

            result_lines = [f"{len(state.products)} product(s) loaded:\n"]
            result_lines.extend(_format_products(state.products))
            if state.has_more:
                result_lines.append("\nMore products available (use lichi_load_more)")
            return _text("\n".join(result_lines) + _error_suffix())

        elif name == "lichi_load_more":
            await storefront.ensure_catalog()
            before = len(storefront.catalog.state.products)
            loaded = await storefront.catalog.load_more()
            state = storefront.catalog.state
            if not loaded:
                message = "No more products" if not state.has_more else "Could not load more products"
                return _text(message + _error_suffix())

            result_lines = [f"Loaded {len(state.products) - before} more product(s):\n"]
            result_lines.extend(_format_products(state.products[before:], start=before + 1))
            if not state.has_more:
                result_lines.append("\nEnd of catalog")
            return _text("\n".join(result_lines))

        elif name == "lichi_get_product":
            product = storefront.catalog.find_product(int(arguments["product_id"]))
            if product is None:
                return _text(f"Product {arguments['product_id']} is not loaded")
            return _text(product.model_dump_json(indent=2))

        elif name == "lichi_add_to_cart":
            product_id = int(arguments["product_id"])
            product = storefront.catalog.find_product(product_id)
            if product is None:
                return _text(f"Product {product_id} is not loaded")

            size = arguments.get("size") or (product.sizes[0] if product.sizes else None)
            if size is None:
                return _text(f"Product {product_id} has no sizes available")
            if size not in product.sizes:
                return _text(f"Size '{size}' is not available. Choose one of: {', '.join(product.sizes)}")

            if storefront.cart.add_item(product, size):
                return _text(
                    f"Added {product.name} (size {size}) to cart. "
                    f"Cart now has {storefront.cart.total_count} item(s)"
                )
            return _text(f"Failed to add product {product_id} to cart" + _error_suffix())

        elif name == "lichi_remove_from_cart":
            item = _find_cart_item(arguments)
            if item is None:
                return _text(f"Product {arguments['product_id']} (size {arguments['size']}) is not in the cart")

            if storefront.cart.remove_item(item):
                return _text(f"Removed {item.product.name} (size {item.size}) from cart")
            return _text(f"Failed to remove product {item.product.id} from cart" + _error_suffix())

        elif name == "lichi_update_cart_quantity":
            item = _find_cart_item(arguments)
            if item is None:
                return _text(f"Product {arguments['product_id']} (size {arguments['size']}) is not in the cart")

            step = arguments.get("step")
            if step == 1:
                success = storefront.cart.increment(item)
            elif step == -1:
                success = storefront.cart.decrement(item)
            elif "quantity" in arguments:
                success = storefront.cart.set_quantity(item, int(arguments["quantity"]))
            else:
                return _text("Error: provide either quantity or step (1 or -1)")

            if not success:
                return _text(f"Failed to update product {item.product.id} quantity" + _error_suffix())
            if all(existing is not item for existing in storefront.cart.items):
                return _text(f"Removed {item.product.name} (size {item.size}) from cart")
            return _text(f"Updated {item.product.name} (size {item.size}) to quantity {item.quantity}")

        elif name == "lichi_get_cart":
            return _text(_format_cart())

        else:
            return _text(f"Unknown tool: {name}")

    except Exception as e:
        logger.error(f"Error executing tool {name}: {e}", exc_info=True)
        return _text(f"Error: {str(e)}")


async def main() -> None:
    """Main entry point for the MCP server."""
    global storefront

    settings = Settings()
    storefront = Storefront.from_settings(settings)
    logger.info(f"Cart loaded with {storefront.cart.total_count} item(s) from {settings.store_file}")

    logger.info("Starting Lichi MCP Server...")

    # Import and run the server
    from mcp.server.stdio import stdio_server

    try:
        async with stdio_server() as (read_stream, write_stream):
            await app.run(
                read_stream,
                write_stream,
                app.create_initialization_options(),
            )
    finally:
        await storefront.close()


if __name__ == "__main__":
    asyncio.run(main())

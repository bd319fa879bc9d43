"""HTTP server for the Lichi storefront with hot reloading support."""

import logging
from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from .config import Settings
from .errors import LichiError
from .models import CartItem, Product
from .storefront import Storefront

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("lichi-http-server")

# Global state
storefront: Optional[Storefront] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown."""
    global storefront

    # Startup
    logger.info("Starting Lichi HTTP Server...")
    settings = Settings()
    logger.info(f"Using API {settings.base_url} (shop={settings.shop}, lang={settings.lang})")
    storefront = Storefront.from_settings(settings)
    logger.info(f"Cart loaded with {storefront.cart.total_count} item(s)")

    yield

    # Shutdown
    logger.info("Shutting down Lichi HTTP Server...")
    await storefront.close()


app = FastAPI(
    title="Lichi MCP Server",
    description="HTTP API for browsing the lichi.com catalog and managing a local cart",
    version="0.1.0",
    lifespan=lifespan,
)


# Request/Response Models
class SelectCategoryRequest(BaseModel):
    category_url: str


class CartLineRequest(BaseModel):
    product_id: int
    size: str


class AddToCartRequest(BaseModel):
    product_id: int
    size: Optional[str] = None


class UpdateCartRequest(BaseModel):
    product_id: int
    size: str
    quantity: Optional[int] = None
    step: Optional[Literal[-1, 1]] = None


def _fetch_failed(default: str) -> HTTPException:
    error: Optional[LichiError] = storefront.take_error()
    return HTTPException(status_code=502, detail=str(error) if error else default)


def _save_failed() -> HTTPException:
    error = storefront.take_error()
    return HTTPException(status_code=500, detail=str(error) if error else "Could not save cart")


def _catalog_payload() -> dict:
    state = storefront.catalog.state
    return {
        "selected_category_url": state.selected_category_url,
        "page": state.current_page,
        "has_more": state.has_more,
        "is_loading": state.is_loading,
        "count": len(state.products),
        "products": [product.model_dump(mode="json") for product in state.products],
    }


def _cart_item(product_id: int, size: str) -> CartItem:
    item = storefront.cart.find(product_id, size)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} (size {size}) is not in the cart")
    return item


def _loaded_product(product_id: int) -> Product:
    product = storefront.catalog.find_product(product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {product_id} is not loaded")
    return product


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Lichi MCP Server",
        "version": "0.1.0",
        "description": "HTTP API for browsing the lichi.com catalog and managing a local cart",
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "categories": {
                "list": "GET /categories",
                "select": "POST /categories/select",
            },
            "products": {
                "list": "GET /products",
                "more": "POST /products/more",
                "details": "GET /products/{product_id}",
            },
            "cart": {
                "get": "GET /cart",
                "add": "POST /cart/add",
                "remove": "POST /cart/remove",
                "update": "POST /cart/update",
            },
        },
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "catalog_loaded": bool(storefront and storefront.catalog.state.categories),
    }


# Catalog endpoints
@app.get("/categories")
async def list_categories():
    """List categories, loading the catalog on first use."""
    await storefront.ensure_catalog()
    state = storefront.catalog.state
    if not state.categories:
        raise _fetch_failed("Could not load categories")
    return {
        "selected_category_url": state.selected_category_url,
        "categories": [category.model_dump() for category in state.categories],
    }


@app.post("/categories/select")
async def select_category(request: SelectCategoryRequest):
    """Switch the category filter and reload products from page 1."""
    await storefront.ensure_catalog()
    try:
        loaded = await storefront.catalog.select_category(request.category_url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not loaded:
        raise _fetch_failed("Could not load products")
    return _catalog_payload()


@app.get("/products")
async def list_products():
    """List the products loaded so far."""
    await storefront.ensure_catalog()
    return _catalog_payload()


@app.post("/products/more")
async def load_more():
    """Load the next page of products."""
    await storefront.ensure_catalog()
    state = storefront.catalog.state
    if state.has_more and not state.is_loading:
        if not await storefront.catalog.load_more():
            raise _fetch_failed("Could not load more products")
    return _catalog_payload()


@app.get("/products/{product_id}")
async def get_product(product_id: int):
    """Get a loaded product."""
    return _loaded_product(product_id).model_dump(mode="json")


# Cart endpoints
@app.get("/cart")
async def get_cart():
    """Get current shopping cart."""
    return storefront.cart.snapshot().model_dump(mode="json")


@app.post("/cart/add")
async def add_to_cart(request: AddToCartRequest):
    """Add one unit of a product to the cart."""
    product = _loaded_product(request.product_id)
    size = request.size or (product.sizes[0] if product.sizes else None)
    if size is None or size not in product.sizes:
        raise HTTPException(status_code=400, detail=f"Size must be one of: {', '.join(product.sizes)}")

    if not storefront.cart.add_item(product, size):
        raise _save_failed()
    return storefront.cart.snapshot().model_dump(mode="json")


@app.post("/cart/remove")
async def remove_from_cart(request: CartLineRequest):
    """Remove a product/size line from the cart."""
    item = _cart_item(request.product_id, request.size)
    if not storefront.cart.remove_item(item):
        raise _save_failed()
    return storefront.cart.snapshot().model_dump(mode="json")


@app.post("/cart/update")
async def update_cart(request: UpdateCartRequest):
    """Set or step the quantity of a cart line. Quantity 0 removes it."""
    item = _cart_item(request.product_id, request.size)
    if request.step == 1:
        success = storefront.cart.increment(item)
    elif request.step == -1:
        success = storefront.cart.decrement(item)
    elif request.quantity is not None:
        success = storefront.cart.set_quantity(item, request.quantity)
    else:
        raise HTTPException(status_code=400, detail="Provide either quantity or step")

    if not success:
        raise _save_failed()
    return storefront.cart.snapshot().model_dump(mode="json")


def run_http_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """
    Run the HTTP server.

    Args:
        host: Host to bind to (default: 0.0.0.0)
        port: Port to bind to (default: 8000)
        reload: Enable hot reloading (default: False)
    """
    import uvicorn

    logger.info(f"Starting server on {host}:{port} (reload={'enabled' if reload else 'disabled'})")

    if reload:
        # Hot reloading - watches for file changes
        uvicorn.run(
            "lichi_server.http_server:app",
            host=host,
            port=port,
            reload=True,
            reload_dirs=["lichi_server"],
            log_level="info",
        )
    else:
        uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    run_http_server(reload=True)

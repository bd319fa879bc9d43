"""Shared fixtures for storefront tests."""

import asyncio
from decimal import Decimal
from typing import Optional

import pytest

from lichi_server.errors import HttpError
from lichi_server.models import Category, Product
from lichi_server.storage import MemoryStore


def product_payload(product_id: int, name: str = "Dress", price=2990, sizes=("S", "M")) -> dict:
    """An aProduct entry as the API returns it."""
    return {
        "id": product_id,
        "name": name,
        "price": price,
        "photos": [{"big": f"https://cdn.lichi.com/{product_id}/{i}.jpg"} for i in range(4)],
        "sizes": {str(i): {"name": size} for i, size in enumerate(sizes)},
    }


def make_product(product_id: int = 1, price: str = "2990", sizes=("S", "M", "L")) -> Product:
    return Product(id=product_id, name=f"Product {product_id}", price=Decimal(price), sizes=tuple(sizes))


def make_page(count: int, start: int = 1) -> list[Product]:
    return [make_product(product_id) for product_id in range(start, start + count)]


class FakeLichiClient:
    """Scripted stand-in for LichiClient that records every call."""

    def __init__(self, categories=None, pages=None) -> None:
        self.categories: list[Category] = categories or []
        # Maps category url to the list of pages served in order.
        self.pages: dict[str, list] = pages or {}
        self.category_calls: list[str] = []
        self.product_calls: list[dict] = []
        self.gates: dict[tuple[str, int], asyncio.Event] = {}
        self.category_error: Optional[Exception] = None

    async def get_categories(self, scope: str = "clothes") -> list[Category]:
        self.category_calls.append(scope)
        if self.category_error:
            raise self.category_error
        return list(self.categories)

    async def get_products(self, page: int, category: str = "", limit: int = 12) -> list[Product]:
        self.product_calls.append({"page": page, "category": category, "limit": limit})
        gate = self.gates.get((category, page))
        if gate:
            await gate.wait()
        pages = self.pages.get(category, [])
        if page > len(pages):
            return []
        result = pages[page - 1]
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def close(self) -> None:
        pass


class FailingStore(MemoryStore):
    """MemoryStore whose writes can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail = False

    def set(self, key: str, value: str) -> None:
        if self.fail:
            raise OSError("disk full")
        super().set(key, value)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def http_error() -> HttpError:
    return HttpError(503, "maintenance")

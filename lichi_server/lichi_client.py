"""Lichi.com catalog API client."""

import logging
from typing import Any, Optional

import httpx

from .errors import DecodeError, HttpError, TransportError
from .models import Category, Product

logger = logging.getLogger(__name__)

PAGE_SIZE = 12


class LichiClient:
    """Client for the lichi.com catalog API."""

    BASE_URL = "https://api.lichi.com"
    CATEGORY_PATH = "/category/get_category_detail"
    PRODUCT_PATH = "/category/get_category_product_list"

    def __init__(
        self,
        shop: int = 2,
        lang: int = 1,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize the lichi client.

        Args:
            shop: Shop (storefront region) ID sent with every request
            lang: Language ID sent with every request
            base_url: API base URL, defaults to BASE_URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.shop = shop
        self.lang = lang
        self.client = httpx.AsyncClient(
            base_url=base_url or self.BASE_URL,
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        POST a JSON body and return the decoded ``api_data`` object.

        Raises:
            TransportError: If the request could not complete
            HttpError: If the status is not 200
            DecodeError: If the body is not JSON or has no ``api_data`` object
        """
        logger.debug(f"POST {path} body={body}")
        try:
            response = await self.client.post(path, json=body)
        except httpx.RequestError as e:
            raise TransportError(f"Request to {path} failed: {e}") from e

        logger.info(f"{path} response: status={response.status_code}")
        if response.status_code != 200:
            raise HttpError(response.status_code, response.text)

        try:
            data = response.json()
        except (ValueError, RecursionError) as e:
            raise DecodeError(f"Response from {path} is not valid JSON: {e}") from e

        api_data = data.get("api_data") if isinstance(data, dict) else None
        if not isinstance(api_data, dict):
            raise DecodeError(f"Response from {path} has no 'api_data' object")
        return api_data

    @staticmethod
    def _list_field(api_data: dict[str, Any], field: str) -> list[Any]:
        value = api_data.get(field)
        if value is None:
            return []
        if not isinstance(value, list):
            raise DecodeError(f"'{field}' must be a list, got {type(value).__name__}")
        return value

    async def get_categories(self, scope: str = "clothes") -> list[Category]:
        """
        Fetch the categories of a catalog section.

        Args:
            scope: Catalog section key

        Returns:
            Categories in API order, menu entries of other types skipped

        Raises:
            LichiError: On transport, status, or decoding failure
        """
        api_data = await self._post(
            self.CATEGORY_PATH,
            {"shop": self.shop, "lang": self.lang, "category": scope},
        )
        menu = self._list_field(api_data, "aMenu")
        return [
            Category.parse(entry)
            for entry in menu
            if isinstance(entry, dict) and entry.get("type") == "category"
        ]

    async def get_products(self, page: int, category: str = "", limit: int = PAGE_SIZE) -> list[Product]:
        """
        Fetch one page of products.

        Args:
            page: 1-based page number
            category: Category url; empty means all categories and is not sent
            limit: Page size

        Returns:
            Products of the page in API order

        Raises:
            LichiError: On transport, status, or decoding failure
        """
        body: dict[str, Any] = {
            "shop": self.shop,
            "lang": self.lang,
            "limit": limit,
            "page": page,
        }
        if category:
            body["category"] = category

        api_data = await self._post(self.PRODUCT_PATH, body)
        return [Product.parse(entry) for entry in self._list_field(api_data, "aProduct")]

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

"""Wires the API client, cart store and catalog controller together."""

import logging
from typing import Optional

import httpx

from .cart import CartStore
from .catalog import CatalogController
from .config import Settings
from .errors import LichiError
from .lichi_client import LichiClient
from .storage import JsonFileStore, KeyValueStore

logger = logging.getLogger(__name__)


class Storefront:
    """One catalog session: a client, a catalog controller and a cart store."""

    def __init__(self, client: LichiClient, store: KeyValueStore, category_scope: str = "clothes") -> None:
        self.client = client
        self.last_error: Optional[LichiError] = None
        self.catalog = CatalogController(client, category_scope=category_scope, on_error=self._record_error)
        self.cart = CartStore(store, on_error=self._record_error)
        self.cart.load()

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "Storefront":
        client = LichiClient(
            shop=settings.shop,
            lang=settings.lang,
            base_url=settings.base_url,
            timeout=settings.timeout,
            transport=transport,
        )
        return cls(client, JsonFileStore(settings.store_file), category_scope=settings.category_scope)

    def _record_error(self, error: LichiError) -> None:
        logger.warning(f"Storefront error: {error}")
        self.last_error = error

    def take_error(self) -> Optional[LichiError]:
        """Return the most recent error and forget it."""
        error, self.last_error = self.last_error, None
        return error

    async def ensure_catalog(self) -> None:
        """Load categories (and the first page) once per session."""
        if not self.catalog.state.categories:
            await self.catalog.fetch_categories()

    async def close(self) -> None:
        await self.client.close()

"""Catalog state machine: category selection and paginated product loading.

State changes go through ``reduce(state, event)``, a pure function over
immutable ``CatalogState`` values. ``CatalogController`` performs the network
calls, dispatches events and notifies subscribers with each new state.

Every product request is tagged with the reset generation it belongs to.
Resetting (category switch or reload) starts a new generation, so a response
that arrives for an older generation is dropped instead of being appended to
the new list.
"""

import logging
from typing import Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import LichiError
from .lichi_client import PAGE_SIZE, LichiClient
from .models import ALL_CATEGORY, Category, Product

logger = logging.getLogger(__name__)


class CatalogState(BaseModel):
    """Snapshot of what the catalog screen shows."""

    model_config = ConfigDict(frozen=True)

    categories: tuple[Category, ...] = ()
    selected_category_url: str = ""
    products: tuple[Product, ...] = ()
    is_loading: bool = False
    current_page: int = Field(default=1, ge=1)
    has_more: bool = True
    generation: int = 0


class PageRequest(BaseModel):
    """Identifies one in-flight product page fetch."""

    model_config = ConfigDict(frozen=True)

    generation: int
    category_url: str
    page: int


class CategoriesLoaded(BaseModel):
    model_config = ConfigDict(frozen=True)

    categories: tuple[Category, ...]


class CategorySelected(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str


class ProductsReset(BaseModel):
    model_config = ConfigDict(frozen=True)


class PageRequested(BaseModel):
    model_config = ConfigDict(frozen=True)

    request: PageRequest


class PageLoaded(BaseModel):
    model_config = ConfigDict(frozen=True)

    request: PageRequest
    products: tuple[Product, ...]


class PageFinished(BaseModel):
    model_config = ConfigDict(frozen=True)

    request: PageRequest


CatalogEvent = Union[
    CategoriesLoaded, CategorySelected, ProductsReset, PageRequested, PageLoaded, PageFinished
]


def _is_current(state: CatalogState, request: PageRequest) -> bool:
    return (
        request.generation == state.generation
        and request.category_url == state.selected_category_url
        and request.page == state.current_page
    )


def reduce(state: CatalogState, event: CatalogEvent) -> CatalogState:
    """Return the state that follows ``event``. Never mutates ``state``."""
    if isinstance(event, CategoriesLoaded):
        return state.model_copy(
            update={"categories": (ALL_CATEGORY, *event.categories), "selected_category_url": ""}
        )

    if isinstance(event, CategorySelected):
        return state.model_copy(update={"selected_category_url": event.url})

    if isinstance(event, ProductsReset):
        return state.model_copy(
            update={
                "products": (),
                "current_page": 1,
                "has_more": True,
                "is_loading": False,
                "generation": state.generation + 1,
            }
        )

    if isinstance(event, PageRequested):
        return state.model_copy(update={"is_loading": True})

    if isinstance(event, PageLoaded):
        if not _is_current(state, event.request):
            return state
        return state.model_copy(
            update={
                "products": state.products + event.products,
                "current_page": state.current_page + 1,
                "has_more": state.has_more and len(event.products) >= PAGE_SIZE,
            }
        )

    if isinstance(event, PageFinished):
        if event.request.generation != state.generation:
            return state
        return state.model_copy(update={"is_loading": False})

    raise TypeError(f"Unknown catalog event: {type(event).__name__}")


StateListener = Callable[[CatalogState], None]
ErrorObserver = Callable[[LichiError], None]


class CatalogController:
    """Drives category and product fetches against the lichi API."""

    def __init__(
        self,
        client: LichiClient,
        category_scope: str = "clothes",
        on_error: Optional[ErrorObserver] = None,
    ) -> None:
        self.client = client
        self.category_scope = category_scope
        self.on_error = on_error
        self._state = CatalogState()
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> CatalogState:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event: CatalogEvent) -> CatalogState:
        new_state = reduce(self._state, event)
        if new_state is not self._state:
            self._state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self._state

    def _report(self, error: LichiError) -> None:
        if self.on_error:
            self.on_error(error)

    async def fetch_categories(self) -> bool:
        """
        Load the category list, select "All" and load its first page.

        Returns:
            True if the categories were loaded
        """
        try:
            categories = await self.client.get_categories(self.category_scope)
        except LichiError as e:
            logger.error(f"Error loading categories: {e}")
            self._report(e)
            return False

        logger.info(f"Loaded {len(categories)} categories")
        self.dispatch(CategoriesLoaded(categories=tuple(categories)))
        await self.fetch_products(reset=True)
        return True

    async def fetch_products(self, reset: bool = False) -> bool:
        """
        Load the next page of products for the selected category.

        Does nothing while a page is loading or after the last page.

        Args:
            reset: Start over from page 1 with an empty product list

        Returns:
            True if a page was fetched and applied
        """
        if reset:
            self.dispatch(ProductsReset())

        state = self._state
        if not state.has_more or state.is_loading:
            return False

        request = PageRequest(
            generation=state.generation,
            category_url=state.selected_category_url,
            page=state.current_page,
        )
        self.dispatch(PageRequested(request=request))
        try:
            products = await self.client.get_products(
                page=request.page, category=request.category_url, limit=PAGE_SIZE
            )
            if not _is_current(self._state, request):
                logger.info(
                    f"Discarding stale page {request.page} for category '{request.category_url}'"
                )
                return False
            self.dispatch(PageLoaded(request=request, products=tuple(products)))
            logger.info(
                f"Loaded page {request.page} ({len(products)} products), has_more={self._state.has_more}"
            )
            return True
        except LichiError as e:
            logger.error(f"Error loading products page {request.page}: {e}")
            if request.generation == self._state.generation:
                self._report(e)
            return False
        finally:
            self.dispatch(PageFinished(request=request))

    async def select_category(self, url: str) -> bool:
        """
        Switch the category filter and reload products from page 1.

        Raises:
            ValueError: If categories are loaded and none has this url
        """
        known = self._state.categories
        if known and all(category.url != url for category in known):
            raise ValueError(f"Unknown category: {url}")
        self.dispatch(CategorySelected(url=url))
        return await self.fetch_products(reset=True)

    async def load_more(self) -> bool:
        """Fetch the next page if one may exist and none is in flight."""
        if self._state.is_loading or not self._state.has_more:
            return False
        return await self.fetch_products()

    def find_product(self, product_id: int) -> Optional[Product]:
        for product in self._state.products:
            if product.id == product_id:
                return product
        return None

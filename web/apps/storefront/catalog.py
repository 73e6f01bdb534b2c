"""Catalog paging for the storefront.

Fetching a page is split in two steps so that the request and its
response can be separated in time: ``begin_page_fetch`` marks the store
as loading and says which page to ask for, ``complete_page_fetch``
offers the response to the store. If the user switched category in
between, or another response already committed that page, the reducer
drops the late response.
"""

from dataclasses import dataclass
from typing import List, Optional, Protocol

from .state import Category, Product, ReplaceCatalogPage, SetCategories, SetLoading, Store

PER_PAGE = 12
CATEGORIES_PER_PAGE = 30


class CatalogPort(Protocol):
    """Port describing the catalog listing used by the storefront."""

    def list_products(self, page: int, per_page: int, category_id: Optional[int]) -> List[Product]:
        """Return one page of simple products, optionally within a category."""
        raise NotImplementedError()

    def list_categories(self, per_page: int) -> List[Category]:
        raise NotImplementedError()


@dataclass(frozen=True)
class PageRequest:
    page: int
    category_id: Optional[int]


def begin_page_fetch(store: Store) -> PageRequest:
    """Mark a fetch in flight and return the page to request next."""
    store.dispatch(SetLoading())
    state = store.state
    category_id = state.selected_category.id if state.selected_category else None
    return PageRequest(page=state.page + 1, category_id=category_id)


def complete_page_fetch(store: Store, request: PageRequest, products: List[Product]) -> bool:
    """Offer a fetched page to the store.

    Returns:
        True if the page was committed, False if it was stale.
    """
    before = store.state
    after = store.dispatch(
        ReplaceCatalogPage(
            products=tuple(products),
            has_more=len(products) == PER_PAGE,
            page=request.page,
            category_id=request.category_id,
        )
    )
    return after is not before


def fetch_next_page(store: Store, catalog: CatalogPort) -> bool:
    """Fetch and commit the next catalog page of the selected category."""
    request = begin_page_fetch(store)
    products = catalog.list_products(request.page, PER_PAGE, request.category_id)
    return complete_page_fetch(store, request, products)


def fetch_categories(store: Store, catalog: CatalogPort) -> None:
    store.dispatch(SetCategories(tuple(catalog.list_categories(CATEGORIES_PER_PAGE))))

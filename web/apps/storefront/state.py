"""Session state of the storefront mini-app and its reducer.

The state is an immutable value. It only changes through
``reduce(state, action)``, which returns a new value and never touches
the old one, so any earlier state can be kept around (history, undo)
and compared safely. Actions are small frozen dataclasses, one per kind
of change.

Catalog pages arrive from concurrent fetches that can complete out of
order, or after the user switched category. ``ReplaceCatalogPage`` is
therefore only committed when it is the next page of the currently
selected category; anything else is a stale response and is dropped.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple

from apps.orders.domain import PaymentMethod, ShippingAddress, ShippingInfo

logger = logging.getLogger("storefront")


class Mode(str, Enum):
    BROWSING = "browsing"
    REVIEWING_ORDER = "reviewing-order"
    VIEWING_ITEM = "viewing-item"


# ---- Catalog snapshots ----
@dataclass(frozen=True)
class Product:
    """A product as listed by the catalog at fetch time."""

    id: int
    name: str
    price: str
    regular_price: str = ""
    sale_price: str = ""
    description: str = ""
    short_description: str = ""
    images: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    count: int = 0


@dataclass(frozen=True)
class CartItem:
    product: Product
    quantity: int


class Cart(Mapping):
    """Read-only mapping of product id to cart item, in insertion order.

    Changing the cart means building a new one with ``with_quantity``;
    a quantity below 1 drops the entry. Carts hash by content, so a
    ``SessionState`` holding one stays hashable.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[CartItem] = ()):
        self._items = {item.product.id: item for item in items}

    def __getitem__(self, product_id: int) -> CartItem:
        return self._items[product_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __hash__(self) -> int:
        return hash(frozenset(self._items.values()))

    def __repr__(self) -> str:
        return f"Cart({list(self._items.values())!r})"

    def with_quantity(self, product: Product, quantity: int) -> "Cart":
        items = dict(self._items)
        if quantity < 1:
            items.pop(product.id, None)
        else:
            items[product.id] = CartItem(product, quantity)
        return Cart(items.values())


# ---- State ----
DEFAULT_ADDRESS = ShippingAddress(
    street_line1="",
    street_line2="N/A",
    city="Default City",
    state="Default State",
    country_code="US",
    post_code="00000",
)


@dataclass(frozen=True)
class SessionState:
    """Everything the mini-app knows during one session.

    Attributes:
        mode: Screen being shown.
        loading: Whether a catalog fetch is in flight.
        products: Products of all committed catalog pages, in page order.
        page: Last committed catalog page (0 before the first one).
        has_more: Whether the catalog may have further pages.
        categories: Categories offered for filtering.
        selected_category: Category filter, if any.
        selected_product: Copy of the product opened in item view.
        cart: Product id -> cart item; never holds a quantity below 1.
        comment: Customer note for the order.
        shipping_zone: Backend shipping zone of the customer.
        payment_method: Chosen payment method.
        shipping_info: Delivery data edited in the order view.
    """

    mode: Mode = Mode.BROWSING
    loading: bool = True
    products: Tuple[Product, ...] = ()
    page: int = 0
    has_more: bool = True
    categories: Tuple[Category, ...] = ()
    selected_category: Optional[Category] = None
    selected_product: Optional[Product] = None
    cart: Cart = field(default_factory=Cart)
    comment: str = ""
    shipping_zone: int = 1
    payment_method: PaymentMethod = PaymentMethod.TELEGRAM
    shipping_info: ShippingInfo = field(default_factory=ShippingInfo)

    def quantity_of(self, product_id: int) -> int:
        item = self.cart.get(product_id)
        return item.quantity if item else 0

    @property
    def cart_size(self) -> int:
        return sum(i.quantity for i in self.cart.values())


def initial_state(username: Optional[str] = None) -> SessionState:
    """Fresh state for a new session.

    Args:
        username: Telegram username of the user, when they have one.
    """
    return SessionState(
        shipping_info=ShippingInfo(
            name=f"@{username}" if username else "Guest",
            email="default@example.com",
            phone="0000000000",
            address=DEFAULT_ADDRESS,
        )
    )


# ---- Actions ----
@dataclass(frozen=True)
class SetMode:
    """Switch screen; entering item view requires the product to show."""

    mode: Mode
    product: Optional[Product] = None


@dataclass(frozen=True)
class SetLoading:
    pass


@dataclass(frozen=True)
class ReplaceCatalogPage:
    """Commit catalog page ``page`` fetched for ``category_id``.

    The page's products are added after the products of earlier pages.
    """

    products: Tuple[Product, ...]
    has_more: bool
    page: int
    category_id: Optional[int] = None


@dataclass(frozen=True)
class SetCategories:
    categories: Tuple[Category, ...]


@dataclass(frozen=True)
class SelectCategory:
    category: Category


@dataclass(frozen=True)
class Increment:
    product: Product


@dataclass(frozen=True)
class Decrement:
    product: Product


@dataclass(frozen=True)
class SetComment:
    text: str


@dataclass(frozen=True)
class SetPaymentMethod:
    method: PaymentMethod


@dataclass(frozen=True)
class SetShippingField:
    field: str
    value: str


@dataclass(frozen=True)
class SetShippingAddressField:
    field: str
    value: str


# ---- Reducer ----
_CONTACT_FIELDS = frozenset(f.name for f in fields(ShippingInfo)) - {"address"}
_ADDRESS_FIELDS = frozenset(f.name for f in fields(ShippingAddress))


def _set_mode(state: SessionState, action: SetMode) -> SessionState:
    if action.mode is Mode.VIEWING_ITEM:
        if action.product is None:
            raise ValueError("Item view needs a product")
        return replace(state, mode=action.mode, selected_product=replace(action.product))
    return replace(state, mode=action.mode)


def _set_loading(state: SessionState, action: SetLoading) -> SessionState:
    return replace(state, loading=True)


def _replace_catalog_page(state: SessionState, action: ReplaceCatalogPage) -> SessionState:
    selected_id = state.selected_category.id if state.selected_category else None
    if action.category_id != selected_id or action.page - 1 != state.page:
        logger.debug(
            "stale catalog page dropped",
            extra={"page": action.page, "category_id": action.category_id, "committed_page": state.page},
        )
        return state
    return replace(
        state,
        products=state.products + tuple(action.products),
        page=action.page,
        has_more=action.has_more,
        loading=False,
    )


def _set_categories(state: SessionState, action: SetCategories) -> SessionState:
    return replace(state, categories=tuple(action.categories))


def _select_category(state: SessionState, action: SelectCategory) -> SessionState:
    same = state.selected_category is not None and state.selected_category.id == action.category.id
    return replace(
        state,
        selected_category=None if same else action.category,
        products=(),
        page=0,
        has_more=True,
        loading=True,
    )


def _increment(state: SessionState, action: Increment) -> SessionState:
    quantity = state.quantity_of(action.product.id) + 1
    return replace(state, cart=state.cart.with_quantity(action.product, quantity))


def _decrement(state: SessionState, action: Decrement) -> SessionState:
    quantity = state.quantity_of(action.product.id)
    if quantity == 0:
        return state
    return replace(state, cart=state.cart.with_quantity(action.product, quantity - 1))


def _set_comment(state: SessionState, action: SetComment) -> SessionState:
    return replace(state, comment=action.text)


def _set_payment_method(state: SessionState, action: SetPaymentMethod) -> SessionState:
    return replace(state, payment_method=PaymentMethod(action.method))


def _set_shipping_field(state: SessionState, action: SetShippingField) -> SessionState:
    if action.field not in _CONTACT_FIELDS:
        raise ValueError(f"Unknown shipping field: {action.field}")
    return replace(state, shipping_info=replace(state.shipping_info, **{action.field: action.value}))


def _set_shipping_address_field(state: SessionState, action: SetShippingAddressField) -> SessionState:
    if action.field not in _ADDRESS_FIELDS:
        raise ValueError(f"Unknown address field: {action.field}")
    info = state.shipping_info
    address = replace(info.address, **{action.field: action.value})
    return replace(state, shipping_info=replace(info, address=address))


_REDUCERS: Dict[type, Callable] = {
    SetMode: _set_mode,
    SetLoading: _set_loading,
    ReplaceCatalogPage: _replace_catalog_page,
    SetCategories: _set_categories,
    SelectCategory: _select_category,
    Increment: _increment,
    Decrement: _decrement,
    SetComment: _set_comment,
    SetPaymentMethod: _set_payment_method,
    SetShippingField: _set_shipping_field,
    SetShippingAddressField: _set_shipping_address_field,
}


def reduce(state: SessionState, action) -> SessionState:
    """Return the state that results from applying ``action`` to ``state``.

    Raises:
        TypeError: For an object that is not a known action.
    """
    reducer = _REDUCERS.get(type(action))
    if reducer is None:
        raise TypeError(f"Unhandled action: {action!r}")
    return reducer(state, action)


class Store:
    """Holds the current state of a session and applies actions to it.

    Dispatching is synchronous and single-threaded; every dispatch
    replaces ``state`` with a new value.
    """

    def __init__(self, state: Optional[SessionState] = None):
        self.state = state or initial_state()

    def dispatch(self, action) -> SessionState:
        self.state = reduce(self.state, action)
        return self.state

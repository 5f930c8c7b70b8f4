"""Backend ports (abstract interfaces).

Defines the contract the consolidation core needs from each backend. The
httpx adapters in ``storefront.backends`` implement them for production;
tests swap in in-memory fakes without touching the core.

Every method raises ``UpstreamUnavailableError`` on network failure or a
non-success status, except where the auth contract says otherwise.
"""

from abc import ABC, abstractmethod
from typing import List

from storefront.models import (
    CartItem,
    LoginResponse,
    OrderResult,
    PlaceOrderRequest,
    PlaceOrderResponse,
    Product,
    Profile,
    RegisterRequest,
)
from storefront.money import Money


class CatalogPort(ABC):
    """Product catalog."""

    @abstractmethod
    async def list_products(self) -> List[Product]:
        ...

    @abstractmethod
    async def get_product(self, product_id: str) -> Product:
        ...

    @abstractmethod
    async def search_products(self, query: str) -> List[Product]:
        ...


class CartPort(ABC):
    """Cart store addressed by owner identity."""

    @abstractmethod
    async def get_cart(self, user_id: str) -> List[CartItem]:
        ...

    @abstractmethod
    async def add_item(self, user_id: str, product_id: str, quantity: int) -> None:
        """Upsert: adds ``quantity`` to any existing line for the product."""
        ...

    @abstractmethod
    async def update_item_quantity(self, user_id: str, product_id: str, quantity: int) -> None:
        """Set the line quantity; the store drops the line when quantity <= 0."""
        ...

    @abstractmethod
    async def empty_cart(self, user_id: str) -> None:
        ...


class ShippingPort(ABC):
    @abstractmethod
    async def get_quote(self, items: List[CartItem]) -> Money:
        """Shipping cost for the items, in USD."""
        ...


class CheckoutPort(ABC):
    @abstractmethod
    async def place_order(self, request: PlaceOrderRequest) -> PlaceOrderResponse:
        ...

    @abstractmethod
    async def get_order_history(self, user_id: str) -> List[OrderResult]:
        ...


class AuthPort(ABC):
    """Auth backend.

    ``login`` and ``register`` raise ``AuthRejectedError`` for answers the user
    should see (bad credentials, taken username) and
    ``UpstreamUnavailableError`` when the backend cannot be reached.
    ``get_profile`` raises ``AuthRejectedError`` when the token is not accepted.
    """

    @abstractmethod
    async def login(self, email: str, password: str) -> LoginResponse:
        ...

    @abstractmethod
    async def register(self, request: RegisterRequest) -> None:
        ...

    @abstractmethod
    async def get_profile(self, token: str) -> Profile:
        ...


class Backends:
    """The set of backend clients one core instance talks to"""

    def __init__(
        self,
        catalog: CatalogPort,
        cart: CartPort,
        shipping: ShippingPort,
        checkout: CheckoutPort,
        auth: AuthPort,
    ) -> None:
        self.catalog = catalog
        self.cart = cart
        self.shipping = shipping
        self.checkout = checkout
        self.auth = auth

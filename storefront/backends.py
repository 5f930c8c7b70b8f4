"""
HTTP adapters for the backend ports, sharing one pooled httpx client.
"""
import logging
from typing import Any, Iterable, List, Optional
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from storefront.config import Config
from storefront.exceptions import AuthRejectedError, UpstreamUnavailableError
from storefront.models import (
    Cart,
    CartItem,
    LoginRequest,
    LoginResponse,
    OrderResult,
    PlaceOrderRequest,
    PlaceOrderResponse,
    Product,
    Profile,
    RegisterRequest,
    ShippingQuote,
    ShippingQuoteRequest,
)
from storefront.money import Money
from storefront.ports import (
    AuthPort,
    Backends,
    CartPort,
    CatalogPort,
    CheckoutPort,
    ShippingPort,
)

logger = logging.getLogger(__name__)

_products_adapter = TypeAdapter(List[Product])
_orders_adapter = TypeAdapter(List[OrderResult])

SUCCESS_STATUSES = (200, 201)


class BackendHTTPClient:
    """Async HTTP client with connection pooling and per-call timeouts"""

    def __init__(
        self,
        timeout: float = Config.BACKEND_TIMEOUT_SECONDS,
        max_connections: int = Config.HTTP_MAX_CONNECTIONS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(max_connections=max_connections),
            transport=transport,
        )

    async def request(
        self,
        service: str,
        method: str,
        url: str,
        json: Any = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        Issue one call. No retries: a failure surfaces immediately.

        Raises:
            UpstreamUnavailableError: if the backend cannot be reached
        """
        try:
            return await self.client.request(
                method,
                url,
                json=json,
                params=params,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(service, f"{method} {url} failed: {type(e).__name__}: {e}")

    async def call(
        self,
        service: str,
        method: str,
        url: str,
        ok: Iterable[int] = SUCCESS_STATUSES,
        **kwargs: Any,
    ) -> httpx.Response:
        """Issue one call and require a success status"""
        response = await self.request(service, method, url, **kwargs)
        if response.status_code not in ok:
            raise UpstreamUnavailableError(
                service,
                f"{method} {url} failed",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    async def close(self) -> None:
        await self.client.aclose()


def _segment(value: str) -> str:
    """Escape a value for use as one URL path segment"""
    return quote(value, safe="")


def _decode(service: str, response: httpx.Response, parse) -> Any:
    try:
        return parse(response.json())
    except (ValueError, PydanticValidationError) as e:
        raise UpstreamUnavailableError(service, f"invalid response body: {e}")


class HttpCatalogClient(CatalogPort):
    service = "productcatalog"

    def __init__(self, http: BackendHTTPClient, base_url: str):
        self.http = http
        self.base_url = base_url

    async def list_products(self) -> List[Product]:
        response = await self.http.call(self.service, "GET", f"{self.base_url}/products", ok=(200,))
        return _decode(self.service, response, _products_adapter.validate_python)

    async def get_product(self, product_id: str) -> Product:
        response = await self.http.call(self.service, "GET", f"{self.base_url}/products/{_segment(product_id)}", ok=(200,))
        return _decode(self.service, response, Product.model_validate)

    async def search_products(self, query: str) -> List[Product]:
        response = await self.http.call(
            self.service, "GET", f"{self.base_url}/products/search", params={"q": query}, ok=(200,)
        )
        return _decode(self.service, response, _products_adapter.validate_python)


class HttpCartClient(CartPort):
    service = "cart"

    def __init__(self, http: BackendHTTPClient, base_url: str):
        self.http = http
        self.base_url = base_url

    async def get_cart(self, user_id: str) -> List[CartItem]:
        response = await self.http.call(self.service, "GET", f"{self.base_url}/cart/{_segment(user_id)}")
        cart = _decode(self.service, response, Cart.model_validate)
        return cart.items

    async def add_item(self, user_id: str, product_id: str, quantity: int) -> None:
        item = CartItem(product_id=product_id, quantity=quantity)
        await self.http.call(self.service, "POST", f"{self.base_url}/cart/{_segment(user_id)}/items", json=item.to_wire())

    async def update_item_quantity(self, user_id: str, product_id: str, quantity: int) -> None:
        item = CartItem(product_id=product_id, quantity=quantity)
        await self.http.call(
            self.service, "PUT", f"{self.base_url}/cart/{_segment(user_id)}/items/{_segment(product_id)}", json=item.to_wire()
        )

    async def empty_cart(self, user_id: str) -> None:
        await self.http.call(self.service, "DELETE", f"{self.base_url}/cart/{_segment(user_id)}")


class HttpShippingClient(ShippingPort):
    service = "shipping"

    def __init__(self, http: BackendHTTPClient, base_url: str):
        self.http = http
        self.base_url = base_url

    async def get_quote(self, items: List[CartItem]) -> Money:
        body = ShippingQuoteRequest(items=items).to_wire()
        response = await self.http.call(self.service, "POST", f"{self.base_url}/shipping/quote", json=body)
        shipping_quote = _decode(self.service, response, ShippingQuote.model_validate)
        return shipping_quote.cost_usd


class HttpCheckoutClient(CheckoutPort):
    service = "checkout"

    def __init__(self, http: BackendHTTPClient, base_url: str):
        self.http = http
        self.base_url = base_url

    async def place_order(self, request: PlaceOrderRequest) -> PlaceOrderResponse:
        response = await self.http.call(self.service, "POST", f"{self.base_url}/checkout", json=request.to_wire())
        return _decode(self.service, response, PlaceOrderResponse.model_validate)

    async def get_order_history(self, user_id: str) -> List[OrderResult]:
        response = await self.http.call(self.service, "GET", f"{self.base_url}/checkout/orders/{_segment(user_id)}", ok=(200,))
        return _decode(self.service, response, _orders_adapter.validate_python)


class HttpAuthClient(AuthPort):
    service = "auth"

    def __init__(self, http: BackendHTTPClient, base_url: str, timeout: float = Config.AUTH_TIMEOUT_SECONDS):
        self.http = http
        self.base_url = base_url
        self.timeout = timeout

    @staticmethod
    def _error_message(response: httpx.Response, default: str) -> str:
        try:
            message = response.json().get("error")
        except (ValueError, AttributeError):
            message = None
        return message or default

    async def login(self, email: str, password: str) -> LoginResponse:
        body = LoginRequest(email=email, password=password).to_wire()
        response = await self.http.request(
            self.service, "POST", f"{self.base_url}/login", json=body, timeout=self.timeout
        )
        if response.status_code != 200:
            raise AuthRejectedError(
                self._error_message(response, f"login failed (status {response.status_code})"),
                status_code=response.status_code,
            )
        return _decode(self.service, response, LoginResponse.model_validate)

    async def register(self, request: RegisterRequest) -> None:
        response = await self.http.request(
            self.service, "POST", f"{self.base_url}/register", json=request.to_wire(), timeout=self.timeout
        )
        if response.status_code != 201:
            raise AuthRejectedError(
                self._error_message(response, f"registration failed (status {response.status_code})"),
                status_code=response.status_code,
            )

    async def get_profile(self, token: str) -> Profile:
        response = await self.http.request(
            self.service,
            "GET",
            f"{self.base_url}/profile",
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise AuthRejectedError(
                f"failed to get profile (status {response.status_code})",
                status_code=response.status_code,
            )
        return _decode(self.service, response, Profile.model_validate)


def build_backends(http: BackendHTTPClient, addresses: Optional[dict] = None) -> Backends:
    """Wire one HTTP adapter per backend onto the shared client"""
    addresses = addresses or Config.backend_addresses()
    return Backends(
        catalog=HttpCatalogClient(http, addresses["catalog"]),
        cart=HttpCartClient(http, addresses["cart"]),
        shipping=HttpShippingClient(http, addresses["shipping"]),
        checkout=HttpCheckoutClient(http, addresses["checkout"]),
        auth=HttpAuthClient(http, addresses["auth"]),
    )


# Global HTTP client instance
_http_client: Optional[BackendHTTPClient] = None

def get_http_client() -> BackendHTTPClient:
    """Get or create the pooled HTTP client (singleton)"""
    global _http_client
    if _http_client is None:
        _http_client = BackendHTTPClient()
    return _http_client


async def close_http_client() -> None:
    """Close the pooled HTTP client"""
    global _http_client
    if _http_client is not None:
        await _http_client.close()
        _http_client = None

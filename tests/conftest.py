import pytest

from fakes import (
    TEST_RATES,
    FakeAuth,
    FakeCartStore,
    FakeCatalog,
    FakeCheckout,
    FakeShipping,
    make_backends,
    usd,
)
from storefront.context import RequestContext
from storefront.core import StorefrontCore
from storefront.currency import CurrencyConverter
from storefront.models import Product


@pytest.fixture
def converter():
    return CurrencyConverter(TEST_RATES)


@pytest.fixture
def products():
    return [
        Product(id="SUNGLASSES", name="Sunglasses", price_usd=usd(10)),
        Product(id="TANKTOP", name="Tank Top", price_usd=usd(18, 990_000_000)),
        Product(id="WATCH", name="Watch", price_usd=usd(109, 990_000_000)),
        Product(id="MUG", name="Mug", price_usd=usd(8, 500_000_000)),
    ]


@pytest.fixture
def catalog(products):
    return FakeCatalog(products)


@pytest.fixture
def cart_store():
    return FakeCartStore()


@pytest.fixture
def shipping():
    return FakeShipping(usd(5))


@pytest.fixture
def checkout_backend():
    return FakeCheckout()


@pytest.fixture
def auth():
    fake = FakeAuth()
    fake.add_user("alice@example.com", "s3cret", "alice", token="token-alice")
    return fake


@pytest.fixture
def backends(catalog, cart_store, shipping, checkout_backend, auth):
    return make_backends(catalog, cart_store, shipping, checkout_backend, auth)


@pytest.fixture
def core(backends, converter):
    return StorefrontCore(backends, converter)


@pytest.fixture
def anonymous_ctx():
    return RequestContext(session_id="session-123", currency="USD")


@pytest.fixture
def alice_ctx():
    return RequestContext(session_id="session-123", currency="USD", auth_token="token-alice", username="alice")

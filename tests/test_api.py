import pytest
from fastapi.testclient import TestClient

from storefront.config import Config
from storefront.main import app, get_core

CHECKOUT_BODY = {
    "email": "alice@example.com",
    "street_address": "1600 Amphitheatre Parkway",
    "zip_code": 94043,
    "city": "Mountain View",
    "state": "CA",
    "country": "United States",
    "credit_card_number": "4432-8015-6152-0454",
    "credit_card_expiration_month": 1,
    "credit_card_expiration_year": 2030,
    "credit_card_cvv": 672,
}


@pytest.fixture
def client(core):
    app.dependency_overrides[get_core] = lambda: core
    with_session = TestClient(app)
    with_session.cookies.set(Config.COOKIE_SESSION_ID, "session-123")
    yield with_session
    app.dependency_overrides.clear()


def cleared(response, name):
    return any(
        header.startswith(f"{name}=") and "Max-Age=0" in header
        for header in response.headers.get_list("set-cookie")
    )


def test_health_check(client):
    response = client.get("/_healthz")
    assert response.status_code == 200
    assert response.text == "ok"


def test_new_visitor_gets_session_cookie(core):
    app.dependency_overrides[get_core] = lambda: core
    try:
        response = TestClient(app).get("/")
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 200
    assert Config.COOKIE_SESSION_ID in response.cookies
    assert response.json()["identity"]["state"] == "anonymous"


def test_existing_session_is_kept(client, cart_store):
    cart_store.put("session-123", {"MUG": 3})
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["cart_size"] == 3
    assert Config.COOKIE_SESSION_ID not in response.cookies


def test_request_id_is_echoed(client):
    response = client.get("/_healthz", headers={"X-Request-ID": "req-1"})
    assert response.headers["X-Request-ID"] == "req-1"


def test_add_to_cart_validates_quantity(client):
    response = client.post("/cart", json={"product_id": "MUG", "quantity": 11})
    assert response.status_code == 422


def test_add_to_cart(client, cart_store):
    response = client.post("/cart", json={"product_id": "MUG", "quantity": 2})
    assert response.status_code == 200
    assert cart_store.contents("session-123") == {"MUG": 2}


def test_login_sets_auth_cookies_and_migrates(client, cart_store):
    cart_store.put("session-123", {"MUG": 1})

    response = client.post("/login", json={"email": "alice@example.com", "password": "s3cret"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"]
    assert "token" not in body
    assert response.cookies[Config.COOKIE_TOKEN] == "token-alice"
    assert response.cookies[Config.COOKIE_USERNAME] == "alice"
    assert cart_store.contents("alice") == {"MUG": 1}


def test_login_failure(client):
    response = client.post("/login", json={"email": "alice@example.com", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["error"] == "invalid email or password"
    assert Config.COOKIE_TOKEN not in response.cookies


def test_expired_token_clears_auth_cookies(client):
    client.cookies.set(Config.COOKIE_TOKEN, "stale")
    client.cookies.set(Config.COOKIE_USERNAME, "alice")
    response = client.get("/cart")
    assert response.status_code == 200
    assert response.json()["identity"]["state"] == "expired"
    assert cleared(response, Config.COOKIE_TOKEN)
    assert cleared(response, Config.COOKIE_USERNAME)


def test_backend_failure_returns_503(client, catalog):
    catalog.fail_listing = True
    response = client.get("/")
    assert response.status_code == 503
    assert response.json()["service"] == "productcatalog"


def test_checkout_requires_login(client):
    response = client.post("/cart/checkout", json=CHECKOUT_BODY)
    assert response.status_code == 401


def test_checkout(client, cart_store):
    client.cookies.set(Config.COOKIE_TOKEN, "token-alice")
    response = client.post("/cart/checkout", json=CHECKOUT_BODY)
    assert response.status_code == 200
    assert response.json()["confirmation"]["order"]["orderId"] == "order-1"


def test_set_currency(client):
    response = client.post("/setCurrency", json={"currency_code": "EUR"})
    assert response.status_code == 200
    assert response.cookies[Config.COOKIE_CURRENCY] == "EUR"


def test_set_currency_rejects_lowercase(client):
    response = client.post("/setCurrency", json={"currency_code": "eur"})
    assert response.status_code == 422


def test_logout_clears_auth_cookies(client):
    client.cookies.set(Config.COOKIE_TOKEN, "token-alice")
    response = client.get("/auth/logout")
    assert cleared(response, Config.COOKIE_TOKEN)
    assert cleared(response, Config.COOKIE_USERNAME)


def test_set_unsupported_currency(client):
    response = client.post("/setCurrency", json={"currency_code": "XYZ"})
    assert response.status_code == 422
    assert Config.COOKIE_CURRENCY not in response.cookies


def test_expired_token_cleared_when_backend_fails(client, catalog):
    catalog.fail_listing = True
    client.cookies.set(Config.COOKIE_TOKEN, "stale")
    client.cookies.set(Config.COOKIE_USERNAME, "alice")
    response = client.get("/")
    assert response.status_code == 503
    assert cleared(response, Config.COOKIE_TOKEN)
    assert cleared(response, Config.COOKIE_USERNAME)


def test_valid_token_kept_when_backend_fails(client, catalog):
    catalog.fail_listing = True
    client.cookies.set(Config.COOKIE_TOKEN, "token-alice")
    response = client.get("/")
    assert response.status_code == 503
    assert not cleared(response, Config.COOKIE_TOKEN)

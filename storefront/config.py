"""
Configuration management for the storefront consolidation service.
Loads settings from environment variables once at startup.
"""
import os
import json
import logging
from types import MappingProxyType
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# Exchange rates relative to USD
DEFAULT_CURRENCY_RATES = {
    "USD": 1.0,
    "EUR": 0.92,
    "CAD": 1.37,
    "JPY": 154.70,
    "GBP": 0.79,
    "TRY": 34.25,
}


def _backend_addr(env_key: str, default: str) -> str:
    """Resolve a backend base URL, routing through the gateway when one is set"""
    gateway = os.getenv("API_GATEWAY_ADDR")
    addr = gateway or os.getenv(env_key, default)
    if not addr.startswith(("http://", "https://")):
        addr = f"http://{addr}"
    return addr.rstrip("/")


def load_currency_rates() -> Mapping[str, float]:
    """Load the rate table, optionally overridden by CURRENCY_RATES (JSON object)"""
    rates = dict(DEFAULT_CURRENCY_RATES)
    raw = os.getenv("CURRENCY_RATES")
    if raw:
        try:
            override = json.loads(raw)
            parsed = {str(code).upper(): float(rate) for code, rate in override.items()}
            for code, rate in parsed.items():
                if not rate > 0:
                    raise ValueError(f"rate for {code} must be positive, got {rate}")
            rates = parsed
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring invalid CURRENCY_RATES override: {e}")
    return MappingProxyType(rates)


class Config:
    """Application configuration"""

    # Application settings
    APP_PORT: int = int(os.getenv("PORT", os.getenv("APP_PORT", "8080")))
    LISTEN_ADDR: str = os.getenv("LISTEN_ADDR", "0.0.0.0")
    PROJECT_NAME: str = os.getenv("PROJECT_NAME", "storefront")
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "USD")

    # Cookie settings
    COOKIE_PREFIX: str = os.getenv("COOKIE_PREFIX", "shop_")
    COOKIE_MAX_AGE_SECONDS: int = int(os.getenv("COOKIE_MAX_AGE_SECONDS", str(48 * 60 * 60)))  # 48 hours
    COOKIE_SESSION_ID: str = COOKIE_PREFIX + "session-id"
    COOKIE_CURRENCY: str = COOKIE_PREFIX + "currency"
    COOKIE_TOKEN: str = COOKIE_PREFIX + "token"
    COOKIE_USERNAME: str = COOKIE_PREFIX + "username"

    # Backend addresses
    API_GATEWAY_ADDR: Optional[str] = os.getenv("API_GATEWAY_ADDR")
    PRODUCT_CATALOG_SERVICE_ADDR: str = _backend_addr("PRODUCT_CATALOG_SERVICE_ADDR", "localhost:3550")
    CART_SERVICE_ADDR: str = _backend_addr("CART_SERVICE_ADDR", "localhost:7070")
    CHECKOUT_SERVICE_ADDR: str = _backend_addr("CHECKOUT_SERVICE_ADDR", "localhost:5050")
    SHIPPING_SERVICE_ADDR: str = _backend_addr("SHIPPING_SERVICE_ADDR", "localhost:50051")
    AUTH_SERVICE_ADDR: str = _backend_addr("AUTH_SERVICE_ADDR", "localhost:8081")

    # Backend connection settings
    BACKEND_TIMEOUT_SECONDS: float = float(os.getenv("BACKEND_TIMEOUT_SECONDS", "10"))
    AUTH_TIMEOUT_SECONDS: float = float(os.getenv("AUTH_TIMEOUT_SECONDS", "5"))
    HTTP_MAX_CONNECTIONS: int = int(os.getenv("HTTP_MAX_CONNECTIONS", "50"))

    # Read-only, process-wide
    CURRENCY_RATES: Mapping[str, float] = load_currency_rates()

    @classmethod
    def backend_addresses(cls) -> dict:
        """Backend base URLs keyed by service name"""
        return {
            "catalog": cls.PRODUCT_CATALOG_SERVICE_ADDR,
            "cart": cls.CART_SERVICE_ADDR,
            "checkout": cls.CHECKOUT_SERVICE_ADDR,
            "shipping": cls.SHIPPING_SERVICE_ADDR,
            "auth": cls.AUTH_SERVICE_ADDR,
        }

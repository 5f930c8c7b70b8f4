"""
Pydantic models for backend payloads, form payloads and page aggregates.
"""
from enum import Enum
from typing import Generic, List, Optional, TypeVar

from pydantic import (
    AliasChoices,
    AliasGenerator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from storefront.money import Money

T = TypeVar("T")


def _wire_alias(field_name: str) -> AliasChoices:
    # Backends are not consistent: accept camelCase and snake_case
    return AliasChoices(to_camel(field_name), field_name)


class WireModel(BaseModel):
    """Base for JSON exchanged with backends (camelCase on the wire)"""
    model_config = ConfigDict(
        alias_generator=AliasGenerator(
            validation_alias=_wire_alias,
            serialization_alias=to_camel,
        ),
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# Backend payloads

class Product(WireModel):
    """Catalog product"""
    id: str = Field(..., description="Product identifier")
    name: str = Field("", description="Display name")
    description: str = Field("", description="Product description")
    picture: str = Field("", description="Picture URL")
    price_usd: Money = Field(default_factory=lambda: Money(currency_code="USD"), description="Unit price in USD")
    categories: List[str] = Field(default_factory=list)


class CartItem(WireModel):
    """One product/quantity pair in a cart"""
    product_id: str = Field(..., description="Product identifier")
    quantity: int = Field(..., description="Item quantity")


class Cart(WireModel):
    user_id: str = ""
    items: List[CartItem] = Field(default_factory=list)


class Address(WireModel):
    street_address: str = ""
    city: str = ""
    state: str = ""
    country: str = ""
    zip_code: int = 0


class CreditCardInfo(WireModel):
    credit_card_number: str
    credit_card_cvv: int
    credit_card_expiration_year: int
    credit_card_expiration_month: int


class OrderItem(WireModel):
    item: CartItem
    cost: Optional[Money] = None


class OrderResult(WireModel):
    """Order record returned by the checkout backend (read-only here)"""
    order_id: str = ""
    shipping_tracking_id: str = ""
    shipping_cost: Optional[Money] = None
    shipping_address: Optional[Address] = None
    items: List[OrderItem] = Field(default_factory=list)
    user_id: str = ""
    email: str = ""
    total_cost: Optional[Money] = None
    created_at: str = ""
    user_currency: str = ""


class PlaceOrderRequest(WireModel):
    user_id: str
    user_currency: str
    address: Address
    email: str
    credit_card: CreditCardInfo


class PlaceOrderResponse(WireModel):
    order: OrderResult


class ShippingQuoteRequest(WireModel):
    items: List[CartItem] = Field(default_factory=list)


class ShippingQuote(WireModel):
    cost_usd: Money


class LoginRequest(WireModel):
    email: str
    password: str


class LoginResponse(WireModel):
    token: str
    expires_at: int = 0
    username: str


class RegisterRequest(WireModel):
    email: str
    username: str
    password: str
    first_name: str = ""
    last_name: str = ""


class Profile(WireModel):
    user_id: str = ""
    email: str = ""
    username: str
    first_name: str = ""
    last_name: str = ""
    created_at: str = ""


# Form payloads

class AddToCartForm(BaseModel):
    """Request model for adding a product to the cart"""
    product_id: str = Field(..., min_length=1, description="Product identifier")
    quantity: int = Field(..., ge=1, le=10, description="Quantity to add")


class UpdateCartItemForm(BaseModel):
    """Request model for setting a cart line quantity (<= 0 removes the line)"""
    product_id: str = Field(..., min_length=1, description="Product identifier")
    quantity: int = Field(..., description="New quantity")


class SetCurrencyForm(BaseModel):
    currency_code: str = Field(..., min_length=3, max_length=3, description="ISO 4217 currency code")

    @field_validator("currency_code")
    @classmethod
    def validate_currency_code(cls, v: str) -> str:
        if not v.isalpha() or not v.isupper():
            raise ValueError("Currency code must be three upper-case letters")
        return v


class PlaceOrderForm(BaseModel):
    """Request model for the checkout form"""
    email: EmailStr
    street_address: str = Field(..., min_length=1, max_length=512)
    zip_code: int = Field(..., gt=0)
    city: str = Field(..., min_length=1, max_length=128)
    state: str = Field(..., min_length=1, max_length=128)
    country: str = Field(..., min_length=1, max_length=128)
    credit_card_number: str = Field(..., min_length=12, max_length=23)
    credit_card_expiration_month: int = Field(..., ge=1, le=12)
    credit_card_expiration_year: int = Field(..., gt=0)
    credit_card_cvv: int = Field(..., gt=0)

    @field_validator("credit_card_number")
    @classmethod
    def validate_card_number(cls, v: str) -> str:
        digits = v.replace(" ", "").replace("-", "")
        if not digits.isdigit():
            raise ValueError("Credit card number must contain only digits")
        # Luhn checksum
        total = 0
        for i, ch in enumerate(reversed(digits)):
            d = int(ch)
            if i % 2 == 1:
                d *= 2
                if d > 9:
                    d -= 9
            total += d
        if total % 10 != 0:
            raise ValueError("Invalid credit card number")
        return digits


class LoginForm(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterForm(BaseModel):
    email: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    first_name: str = ""
    last_name: str = ""


# Best-effort results

class DegradedResult(BaseModel, Generic[T]):
    """Value of a best-effort operation plus whether it fell back"""
    value: T
    degraded: bool = False
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: T) -> "DegradedResult[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: object) -> "DegradedResult[T]":
        return cls(value=value, degraded=True, error=str(error))


# Identity

class IdentityState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"
    EXPIRED = "expired"


class ResolvedIdentity(BaseModel):
    """Owner key for cart/order lookups in this request"""
    state: IdentityState
    identity: str = Field(..., description="Username when authenticated, else the session id")
    session_id: str = ""
    username: Optional[str] = None
    clear_auth_cookies: bool = Field(False, description="Caller must clear token and username cookies")

    @property
    def is_authenticated(self) -> bool:
        return self.state == IdentityState.AUTHENTICATED


class MigrationReport(BaseModel):
    source_id: str
    target_id: str
    attempted: int = 0
    migrated: int = 0
    failed_product_ids: List[str] = Field(default_factory=list)
    source_cleared: bool = False


class LoginResult(BaseModel):
    success: bool
    username: Optional[str] = None
    token: Optional[str] = None
    expires_at: Optional[int] = None
    error: Optional[str] = None
    migration: Optional[DegradedResult[MigrationReport]] = None


class RegisterResult(BaseModel):
    success: bool
    error: Optional[str] = None


# Views

class ProductView(BaseModel):
    product: Product
    price: Money


class CartLineView(BaseModel):
    """Cart line with the line total in the display currency"""
    product: Product
    quantity: int
    price: Money


class CartView(BaseModel):
    currency: str
    items: List[CartLineView] = Field(default_factory=list)
    shipping_cost: Money
    total_cost: Money
    cart_size: int = 0


class OrderItemView(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    cost: Money


class OrderView(BaseModel):
    order_id: str
    shipping_tracking_id: str = ""
    currency: str
    shipping_cost: Money
    total_cost: Money
    items: List[OrderItemView] = Field(default_factory=list)
    created_at: str = ""
    degraded: bool = Field(False, description="Some amounts are shown unconverted")


class OrderConfirmation(BaseModel):
    order: OrderResult
    total_paid: Money


# Page aggregates

class Page(BaseModel):
    """Fields every page needs"""
    identity: ResolvedIdentity
    request_id: str = ""
    user_currency: str
    currencies: List[str] = Field(default_factory=list)
    cart_size: int = 0


class HomePage(Page):
    products: List[ProductView] = Field(default_factory=list)


class ProductPage(Page):
    product: ProductView
    recommendations: List[Product] = Field(default_factory=list)


class SearchPage(Page):
    query: str = ""
    products: List[ProductView] = Field(default_factory=list)
    result_count: int = 0
    degraded: bool = False


class CartPage(Page):
    cart: CartView
    recommendations: List[Product] = Field(default_factory=list)


class OrderPage(Page):
    confirmation: OrderConfirmation
    recommendations: List[Product] = Field(default_factory=list)


class OrderHistoryPage(Page):
    orders: List[OrderView] = Field(default_factory=list)


class ProfilePage(Page):
    profile: Profile

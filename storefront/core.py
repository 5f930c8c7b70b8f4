"""
Consolidation core: per-request orchestration of identity, backend reads,
conversion and aggregation into page aggregates for the rendering layer.

Required backend reads fail the page with ``UpstreamUnavailableError``;
recommendations and search degrade to empty results.
"""
from typing import List, Tuple

from storefront.cart_service import CartService, cart_product_ids, cart_size
from storefront.checkout_service import CheckoutService
from storefront.context import RequestContext
from storefront.currency import CurrencyConverter
from storefront.exceptions import AuthenticationRequiredError, UpstreamUnavailableError, ValidationError
from storefront.identity import IdentityResolver
from storefront.models import (
    AddToCartForm,
    CartItem,
    CartPage,
    HomePage,
    LoginForm,
    LoginResult,
    OrderHistoryPage,
    OrderPage,
    PlaceOrderForm,
    Product,
    ProductPage,
    ProductView,
    ProfilePage,
    RegisterForm,
    RegisterResult,
    ResolvedIdentity,
    SearchPage,
    SetCurrencyForm,
    UpdateCartItemForm,
)
from storefront.ports import Backends
from storefront.recommendations import RecommendationService


class StorefrontCore:
    """Composes the backends into page aggregates, one request at a time"""

    def __init__(self, backends: Backends, converter: CurrencyConverter):
        self.backends = backends
        self.converter = converter
        self.identity = IdentityResolver(backends.auth, backends.cart)
        self.carts = CartService(backends.catalog, backends.cart, backends.shipping, converter)
        self.checkout = CheckoutService(backends.catalog, backends.checkout, converter)
        self.recommendations = RecommendationService(backends.catalog)

    def currencies(self) -> List[str]:
        return self.converter.supported_currencies()

    def _page(self, ctx: RequestContext, identity: ResolvedIdentity, items: List[CartItem]) -> dict:
        return {
            "identity": identity,
            "request_id": ctx.request_id,
            "user_currency": ctx.currency,
            "currencies": self.currencies(),
            "cart_size": cart_size(items),
        }

    async def _identity_and_cart(self, ctx: RequestContext) -> Tuple[ResolvedIdentity, List[CartItem]]:
        identity = await self.identity.resolve(ctx)
        items = await self.carts.get_items(identity.identity)
        return identity, items

    def _price(self, product: Product, currency: str) -> ProductView:
        return ProductView(product=product, price=self.converter.convert(product.price_usd, currency))

    async def home_page(self, ctx: RequestContext) -> HomePage:
        ctx.log.info("home", extra={"currency": ctx.currency})
        identity = await self.identity.resolve(ctx)
        products = await self.backends.catalog.list_products()
        items = await self.carts.get_items(identity.identity)
        return HomePage(
            **self._page(ctx, identity, items),
            products=[self._price(p, ctx.currency) for p in products],
        )

    async def product_page(self, ctx: RequestContext, product_id: str) -> ProductPage:
        ctx.log.debug("serving product page", extra={"product_id": product_id, "currency": ctx.currency})
        identity = await self.identity.resolve(ctx)
        product = await self.backends.catalog.get_product(product_id)
        items = await self.carts.get_items(identity.identity)
        recommendations = await self.recommendations.recommend(ctx, [product_id])
        return ProductPage(
            **self._page(ctx, identity, items),
            product=self._price(product, ctx.currency),
            recommendations=recommendations.value,
        )

    async def search_page(self, ctx: RequestContext, query: str) -> SearchPage:
        ctx.log.info("search", extra={"query": query})
        identity, items = await self._identity_and_cart(ctx)

        products: List[Product] = []
        degraded = False
        if query:
            try:
                products = await self.backends.catalog.search_products(query)
            except UpstreamUnavailableError as e:
                ctx.log.warning("search failed, returning empty results", extra={"error": str(e)})
                degraded = True

        views = [self._price(p, ctx.currency) for p in products]
        return SearchPage(
            **self._page(ctx, identity, items),
            query=query,
            products=views,
            result_count=len(views),
            degraded=degraded,
        )

    async def cart_page(self, ctx: RequestContext) -> CartPage:
        ctx.log.debug("view user cart")
        identity, items = await self._identity_and_cart(ctx)
        recommendations = await self.recommendations.recommend(ctx, cart_product_ids(items))
        view = await self.carts.build_view(ctx, items, ctx.currency)
        return CartPage(
            **self._page(ctx, identity, items),
            cart=view,
            recommendations=recommendations.value,
        )

    async def add_to_cart(self, ctx: RequestContext, form: AddToCartForm) -> ResolvedIdentity:
        identity = await self.identity.resolve(ctx)
        await self.carts.add_item(ctx, identity.identity, form)
        return identity

    async def update_cart_item(self, ctx: RequestContext, form: UpdateCartItemForm) -> ResolvedIdentity:
        identity = await self.identity.resolve(ctx)
        await self.carts.update_item(ctx, identity.identity, form)
        return identity

    async def empty_cart(self, ctx: RequestContext) -> ResolvedIdentity:
        identity = await self.identity.resolve(ctx)
        await self.carts.empty_cart(ctx, identity.identity)
        return identity

    async def place_order(self, ctx: RequestContext, form: PlaceOrderForm) -> OrderPage:
        identity = await self.identity.resolve(ctx)
        confirmation = await self.checkout.place_order(ctx, identity, form, ctx.currency)
        recommendations = await self.recommendations.recommend(ctx)
        return OrderPage(
            **self._page(ctx, identity, []),
            confirmation=confirmation,
            recommendations=recommendations.value,
        )

    async def order_history_page(self, ctx: RequestContext) -> OrderHistoryPage:
        identity = await self.identity.resolve(ctx)
        orders = await self.checkout.order_history(ctx, identity)
        return OrderHistoryPage(**self._page(ctx, identity, []), orders=orders)

    async def profile_page(self, ctx: RequestContext) -> ProfilePage:
        identity, profile = await self.identity.authenticate(ctx)
        if profile is None:
            raise AuthenticationRequiredError("view the profile")
        return ProfilePage(**self._page(ctx, identity, []), profile=profile)

    async def login(self, ctx: RequestContext, form: LoginForm) -> LoginResult:
        return await self.identity.login(ctx, form)

    async def register(self, ctx: RequestContext, form: RegisterForm) -> RegisterResult:
        return await self.identity.register(ctx, form)

    def set_currency(self, ctx: RequestContext, form: SetCurrencyForm) -> str:
        """
        Validate the requested display currency.

        Raises:
            ValidationError: the currency has no exchange rate
        """
        if not self.converter.is_supported(form.currency_code):
            raise ValidationError(f"Unsupported currency: {form.currency_code}")
        ctx.log.debug("setting currency", extra={"curr_new": form.currency_code, "curr_old": ctx.currency})
        return form.currency_code

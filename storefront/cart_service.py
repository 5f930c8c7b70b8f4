"""
Cart service: cart mutations and the converted, totalled cart view.
"""
from typing import Iterable, List

from storefront.context import RequestContext
from storefront.currency import CurrencyConverter
from storefront.exceptions import UpstreamUnavailableError
from storefront.models import (
    AddToCartForm,
    CartItem,
    CartLineView,
    CartView,
    UpdateCartItemForm,
)
from storefront.money import Money, multiply_slow, sum_money, zero
from storefront.ports import CartPort, CatalogPort, ShippingPort


def cart_size(items: Iterable[CartItem]) -> int:
    """Total number of units across all cart lines"""
    return sum(item.quantity for item in items)


def cart_product_ids(items: Iterable[CartItem]) -> List[str]:
    return [item.product_id for item in items]


class CartService:
    """Service for cart operations"""

    def __init__(
        self,
        catalog: CatalogPort,
        cart: CartPort,
        shipping: ShippingPort,
        converter: CurrencyConverter,
    ):
        self.catalog = catalog
        self.cart = cart
        self.shipping = shipping
        self.converter = converter

    async def get_items(self, owner: str) -> List[CartItem]:
        return await self.cart.get_cart(owner)

    async def add_item(self, ctx: RequestContext, owner: str, form: AddToCartForm) -> None:
        """Add a catalog product to the owner's cart (the product must exist)"""
        ctx.log.debug("adding to cart", extra={"product_id": form.product_id, "quantity": form.quantity})
        product = await self.catalog.get_product(form.product_id)
        await self.cart.add_item(owner, product.id, form.quantity)

    async def update_item(self, ctx: RequestContext, owner: str, form: UpdateCartItemForm) -> None:
        """Set a line's quantity; the store removes the line when quantity <= 0"""
        ctx.log.debug("updating cart item quantity", extra={"product_id": form.product_id, "quantity": form.quantity})
        await self.cart.update_item_quantity(owner, form.product_id, form.quantity)

    async def empty_cart(self, ctx: RequestContext, owner: str) -> None:
        ctx.log.debug("emptying cart")
        await self.cart.empty_cart(owner)

    async def build_cart_view(self, ctx: RequestContext, owner: str, currency: str) -> CartView:
        items = await self.get_items(owner)
        return await self.build_view(ctx, items, currency)

    async def build_view(self, ctx: RequestContext, items: List[CartItem], currency: str) -> CartView:
        """
        Build the cart view in the display currency.

        Every amount is converted before it is multiplied or summed, so all
        terms of the total share one currency. Any failed product lookup or
        shipping quote fails the whole view.

        Raises:
            UpstreamUnavailableError: a required backend call failed
        """
        shipping_usd = await self.shipping.get_quote(items)
        shipping_cost = self.converter.convert(shipping_usd, currency)

        lines: List[CartLineView] = []
        total: Money = zero(currency)
        for item in items:
            try:
                product = await self.catalog.get_product(item.product_id)
            except UpstreamUnavailableError as e:
                ctx.log.error("could not retrieve product for cart line", extra={"product_id": item.product_id})
                raise UpstreamUnavailableError(
                    e.service,
                    f"could not retrieve product #{item.product_id}",
                    status_code=e.status_code,
                    body=e.body,
                ) from e

            unit_price = self.converter.convert(product.price_usd, currency)
            line_total = multiply_slow(unit_price, item.quantity)
            lines.append(CartLineView(product=product, quantity=item.quantity, price=line_total))
            total = sum_money(total, line_total)

        total = sum_money(total, shipping_cost)

        return CartView(
            currency=currency,
            items=lines,
            shipping_cost=shipping_cost,
            total_cost=total,
            cart_size=cart_size(items),
        )

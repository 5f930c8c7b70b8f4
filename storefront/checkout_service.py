"""
Checkout service: order placement and order-history views.
"""
from typing import List

from storefront.context import RequestContext
from storefront.currency import BASE_CURRENCY, CurrencyConverter
from storefront.exceptions import AuthenticationRequiredError, MoneyError, UpstreamUnavailableError
from storefront.models import (
    Address,
    CreditCardInfo,
    DegradedResult,
    OrderConfirmation,
    OrderItemView,
    OrderResult,
    OrderView,
    PlaceOrderForm,
    PlaceOrderRequest,
    ResolvedIdentity,
)
from storefront.money import Money, multiply_slow, sum_money, zero
from storefront.ports import CatalogPort, CheckoutPort


class CheckoutService:
    """Service for checkout operations"""

    def __init__(self, catalog: CatalogPort, checkout: CheckoutPort, converter: CurrencyConverter):
        self.catalog = catalog
        self.checkout = checkout
        self.converter = converter

    def convert_or_fallback(self, ctx: RequestContext, m: Money, currency: str) -> DegradedResult[Money]:
        """Convert for display, keeping the original amount if conversion fails"""
        try:
            return DegradedResult.ok(self.converter.convert(m, currency))
        except (MoneyError, ArithmeticError) as e:
            ctx.log.warning(
                "currency conversion failed, showing original amount",
                extra={"from": m.currency_code, "to": currency, "error": str(e)},
            )
            return DegradedResult.fallback(m, e)

    async def place_order(
        self,
        ctx: RequestContext,
        identity: ResolvedIdentity,
        form: PlaceOrderForm,
        currency: str,
    ) -> OrderConfirmation:
        """
        Place an order for the authenticated user.

        Raises:
            AuthenticationRequiredError: visitor is not logged in
            UpstreamUnavailableError: checkout backend failed
        """
        if not identity.is_authenticated:
            raise AuthenticationRequiredError("place an order")

        ctx.log.debug("placing order")
        request = PlaceOrderRequest(
            user_id=identity.identity,
            user_currency=currency,
            email=form.email,
            address=Address(
                street_address=form.street_address,
                city=form.city,
                state=form.state,
                country=form.country,
                zip_code=form.zip_code,
            ),
            credit_card=CreditCardInfo(
                credit_card_number=form.credit_card_number,
                credit_card_cvv=form.credit_card_cvv,
                credit_card_expiration_year=form.credit_card_expiration_year,
                credit_card_expiration_month=form.credit_card_expiration_month,
            ),
        )
        response = await self.checkout.place_order(request)
        order = response.order
        ctx.log.info("order placed", extra={"order_id": order.order_id})

        return OrderConfirmation(order=order, total_paid=self.total_paid(ctx, order, currency))

    def total_paid(self, ctx: RequestContext, order: OrderResult, currency: str) -> Money:
        """
        Shipping plus every item cost times its quantity, in the user's currency.

        Summed in the stored currency first; falls back to the stored
        currency if the final conversion fails. The order itself is not
        modified.
        """
        total = order.shipping_cost or zero(BASE_CURRENCY)
        for order_item in order.items:
            cost = order_item.cost or zero(total.currency_code)
            total = sum_money(total, multiply_slow(cost, order_item.item.quantity))
        return self.convert_or_fallback(ctx, total, currency).value

    async def order_history(self, ctx: RequestContext, identity: ResolvedIdentity) -> List[OrderView]:
        """
        Past orders of the authenticated user with display amounts.

        Raises:
            AuthenticationRequiredError: visitor is not logged in
            UpstreamUnavailableError: order history could not be fetched
        """
        if not identity.is_authenticated:
            raise AuthenticationRequiredError("view order history")

        ctx.log.debug("view order history")
        orders = await self.checkout.get_order_history(identity.identity)
        return [await self.build_order_view(ctx, order) for order in orders]

    async def build_order_view(self, ctx: RequestContext, order: OrderResult) -> OrderView:
        """
        Convert each stored USD component into the order's currency on its own.

        A component whose conversion fails is shown unconverted and the view
        is flagged as degraded. Product names are looked up best effort.
        """
        currency = order.user_currency or BASE_CURRENCY
        results: List[DegradedResult[Money]] = []

        def display(m: Money) -> Money:
            result = self.convert_or_fallback(ctx, m or zero(BASE_CURRENCY), currency)
            results.append(result)
            return result.value

        shipping_cost = display(order.shipping_cost)
        total_cost = display(order.total_cost)

        items: List[OrderItemView] = []
        for order_item in order.items:
            product_id = order_item.item.product_id
            items.append(
                OrderItemView(
                    product_id=product_id,
                    product_name=await self._product_name(ctx, product_id),
                    quantity=order_item.item.quantity,
                    cost=display(order_item.cost),
                )
            )

        return OrderView(
            order_id=order.order_id,
            shipping_tracking_id=order.shipping_tracking_id,
            currency=currency,
            shipping_cost=shipping_cost,
            total_cost=total_cost,
            items=items,
            created_at=order.created_at,
            degraded=any(r.degraded for r in results),
        )

    async def _product_name(self, ctx: RequestContext, product_id: str) -> str:
        try:
            product = await self.catalog.get_product(product_id)
        except UpstreamUnavailableError as e:
            ctx.log.warning("could not resolve product name", extra={"product_id": product_id, "error": str(e)})
            return product_id
        return product.name or product_id

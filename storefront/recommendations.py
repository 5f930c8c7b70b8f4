"""
Best-effort product recommendations drawn from the catalog.
"""
from typing import Iterable, List

from storefront.context import RequestContext
from storefront.exceptions import UpstreamUnavailableError
from storefront.models import DegradedResult, Product
from storefront.ports import CatalogPort

MAX_RECOMMENDATIONS = 4


class RecommendationService:
    """Suggests catalog products the visitor is not already looking at"""

    def __init__(self, catalog: CatalogPort, limit: int = MAX_RECOMMENDATIONS):
        self.catalog = catalog
        self.limit = limit

    async def recommend(self, ctx: RequestContext, exclude_ids: Iterable[str] = ()) -> DegradedResult[List[Product]]:
        """Never fails: a catalog error yields an empty list"""
        excluded = set(exclude_ids)
        try:
            products = await self.catalog.list_products()
        except UpstreamUnavailableError as e:
            ctx.log.warning("failed to get product recommendations", extra={"error": str(e)})
            return DegradedResult.fallback([], e)

        picks = [p for p in products if p.id not in excluded][: self.limit]
        return DegradedResult.ok(picks)

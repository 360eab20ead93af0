"""
Sequential, rate-limited refresh of expired review caches.

A sweep walks every product whose cache entry has gone stale, one at a time,
pausing between external queries and between products. External search quota
is the bottleneck, so there is deliberately no worker pool here.
"""

import enum
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from config import settings
from models import CachedReviewSnippet, Product, ReviewCacheEntry, utc_now
from services import review_cache
from services.errors import ProductNotFoundError, SearchProviderError
from services.serper_search import SearchResult, SerperSearchClient

logger = logging.getLogger(__name__)

MAX_QUERIES_PER_PRODUCT = 2


class SearchClient(Protocol):
    def search(self, query: str, num: int = 10) -> List[SearchResult]:
        ...


class RefreshOutcome(str, enum.Enum):
    REFRESHED = "refreshed"
    PARTIAL = "partial"  # some queries failed; results of the rest still written
    EMPTY = "empty"  # queries succeeded, nothing found; entry still written
    FAILED = "failed"  # every query failed; nothing written


@dataclass
class SweepResult:
    refreshed: int
    errored: int
    total: int


class ReviewRefreshScheduler:
    def __init__(
        self,
        search_client: Optional[SearchClient] = None,
        sleep: Callable[[float], None] = time.sleep,
        query_delay: Optional[float] = None,
        product_delay: Optional[float] = None,
        max_queries: int = MAX_QUERIES_PER_PRODUCT,
        results_per_query: Optional[int] = None,
        ttl: Optional[timedelta] = None,
    ):
        self.search_client = search_client or SerperSearchClient()
        self.sleep = sleep
        self.query_delay = settings.refresh_query_delay if query_delay is None else query_delay
        self.product_delay = settings.refresh_product_delay if product_delay is None else product_delay
        self.max_queries = max(1, min(max_queries, MAX_QUERIES_PER_PRODUCT))
        self.results_per_query = results_per_query or settings.refresh_results_per_query
        self.ttl = ttl or review_cache.default_ttl()

    def list_due_products(self, db: Session, now: Optional[datetime] = None) -> List[int]:
        now = now or utc_now()
        return list(
            db.execute(
                select(ReviewCacheEntry.product_id)
                .where(ReviewCacheEntry.next_search_due <= now)
                .order_by(ReviewCacheEntry.next_search_due, ReviewCacheEntry.product_id)
            ).scalars()
        )

    def build_queries(self, brand_name: str, product_name: str) -> List[str]:
        subject = f"{brand_name} {product_name}".strip()
        queries = [f"{subject} reviews", f"{subject} fit sizing"]
        return queries[: self.max_queries]

    def refresh_product(
        self, db: Session, product_id: int, now: Optional[datetime] = None
    ) -> RefreshOutcome:
        product = db.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(product_id)

        brand_name = product.brand.name if product.brand else ""
        queries = self.build_queries(brand_name, product.name)
        logger.info(f"Refreshing reviews for: {brand_name} {product.name} (product {product_id})")

        results: List[SearchResult] = []
        failures = 0
        for index, query in enumerate(queries):
            if index > 0:
                self.sleep(self.query_delay)
            try:
                results.extend(self.search_client.search(query, num=self.results_per_query))
            except SearchProviderError as e:
                failures += 1
                logger.warning(f"Search query '{query}' failed for product {product_id}: {e}")

        if failures == len(queries):
            logger.error(f"All {failures} searches failed for product {product_id}; cache left expired")
            return RefreshOutcome.FAILED

        review_cache.store_reviews(db, product_id, queries[0], results, now=now, ttl=self.ttl)

        if failures:
            logger.error(
                f"{failures} of {len(queries)} searches failed for product {product_id}; "
                f"stored {len(results)} reviews from the rest"
            )
            return RefreshOutcome.PARTIAL

        if not results:
            logger.error(f"No reviews found for product {product_id}; stored empty cache entry")
            return RefreshOutcome.EMPTY

        logger.info(f"Refreshed {len(results)} reviews for product {product_id}")
        return RefreshOutcome.REFRESHED

    def sweep(self, db: Session, now: Optional[datetime] = None) -> SweepResult:
        product_ids = self.list_due_products(db, now)
        if not product_ids:
            logger.info("No products need a review refresh")
            return SweepResult(refreshed=0, errored=0, total=0)

        logger.info(f"Found {len(product_ids)} products needing a review refresh")
        refreshed = 0
        errored = 0

        for index, product_id in enumerate(product_ids):
            if index > 0:
                self.sleep(self.product_delay)
            try:
                outcome = self.refresh_product(db, product_id, now=now)
            except Exception as e:
                db.rollback()
                logger.error(f"Error refreshing product {product_id}: {e}", exc_info=True)
                errored += 1
                continue

            if outcome == RefreshOutcome.REFRESHED:
                refreshed += 1
            else:
                errored += 1

        logger.info(
            f"Review refresh sweep complete: {refreshed} refreshed, {errored} errors, "
            f"{len(product_ids)} total"
        )
        return SweepResult(refreshed=refreshed, errored=errored, total=len(product_ids))

    def ensure_reviews(
        self, db: Session, product_id: int, now: Optional[datetime] = None
    ) -> List[CachedReviewSnippet]:
        """Cached snippets when fresh, otherwise a live search stored first."""
        cached = review_cache.get_cached_reviews(db, product_id, now)
        if cached is not None:
            return cached

        outcome = self.refresh_product(db, product_id, now=now)
        if outcome == RefreshOutcome.FAILED:
            raise SearchProviderError(f"Could not fetch reviews for product {product_id}")
        return review_cache.get_snippets(db, product_id)

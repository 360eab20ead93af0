"""
Persistent cache of external review search results, one entry per product.

A product's cache is a single ``ReviewCacheEntry`` (when it was last searched
and when it goes stale) plus any number of ``CachedReviewSnippet`` rows.
Both live in the relational store only; nothing is memoized in-process, so
every instance and every restart sees the same state.
"""

import enum
import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from models import CachedReviewSnippet, ReviewCacheEntry, utc_now
from models.db_retry import commit_with_retry
from services.serper_search import SearchResult

logger = logging.getLogger(__name__)


class CacheState(str, enum.Enum):
    ABSENT = "absent"
    FRESH = "fresh"
    EXPIRED = "expired"


def default_ttl() -> timedelta:
    return timedelta(days=settings.review_cache_ttl_days)


def cache_state(entry: Optional[ReviewCacheEntry], now: Optional[datetime] = None) -> CacheState:
    if entry is None:
        return CacheState.ABSENT
    now = now or utc_now()
    if now < entry.next_search_due:
        return CacheState.FRESH
    return CacheState.EXPIRED


def needs_refresh(state: CacheState) -> bool:
    return state != CacheState.FRESH


def _dialect_insert(db: Session, model):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql_insert(model)
    if dialect == "sqlite":
        return sqlite_insert(model)
    raise ValueError(f"Upserts are not supported on {dialect}")


def get_entry(db: Session, product_id: int) -> Optional[ReviewCacheEntry]:
    return db.execute(
        select(ReviewCacheEntry).where(ReviewCacheEntry.product_id == product_id)
    ).scalar_one_or_none()


def get_snippets(db: Session, product_id: int) -> List[CachedReviewSnippet]:
    return list(
        db.execute(
            select(CachedReviewSnippet)
            .where(CachedReviewSnippet.product_id == product_id)
            .order_by(CachedReviewSnippet.search_date.desc(), CachedReviewSnippet.id.desc())
        ).scalars()
    )


def upsert_entry(
    db: Session,
    product_id: int,
    query: str,
    result_count: int,
    fetched_at: datetime,
    stale_after: datetime,
) -> None:
    stmt = _dialect_insert(db, ReviewCacheEntry).values(
        product_id=product_id,
        search_query=query,
        total_results=result_count,
        last_search_at=fetched_at,
        next_search_due=stale_after,
        created_at=fetched_at,
        updated_at=fetched_at,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[ReviewCacheEntry.product_id],
        set_={
            "search_query": stmt.excluded.search_query,
            "total_results": stmt.excluded.total_results,
            "last_search_at": stmt.excluded.last_search_at,
            "next_search_due": stmt.excluded.next_search_due,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    db.execute(stmt)


def upsert_snippets(
    db: Session,
    product_id: int,
    snippets: Iterable[SearchResult],
    fetched_at: Optional[datetime] = None,
) -> int:
    """Insert snippets whose source URL is new for this product; returns rows inserted."""
    fetched_at = fetched_at or utc_now()
    existing_urls = set(
        db.execute(
            select(CachedReviewSnippet.source_url).where(
                CachedReviewSnippet.product_id == product_id,
                CachedReviewSnippet.source_url.is_not(None),
            )
        ).scalars()
    )

    rows = []
    for result in snippets:
        url = result.url or None
        if url is not None:
            if url in existing_urls:
                continue
            existing_urls.add(url)
        rows.append(
            {
                "product_id": product_id,
                "source": result.source or "unknown",
                "source_url": url,
                "snippet": result.snippet,
                "title": result.title or None,
                "search_date": fetched_at,
            }
        )

    if not rows:
        return 0

    # A concurrent writer may have stored the same URL since the read above.
    stmt = _dialect_insert(db, CachedReviewSnippet).values(rows)
    stmt = stmt.on_conflict_do_nothing(index_elements=["product_id", "source_url"])
    return db.execute(stmt).rowcount


def store_reviews(
    db: Session,
    product_id: int,
    query: str,
    results: List[SearchResult],
    now: Optional[datetime] = None,
    ttl: Optional[timedelta] = None,
) -> ReviewCacheEntry:
    fetched_at = now or utc_now()
    stale_after = fetched_at + (ttl or default_ttl())

    try:
        upsert_entry(db, product_id, query, len(results), fetched_at, stale_after)
        inserted = upsert_snippets(db, product_id, results, fetched_at)
        commit_with_retry(db)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to store reviews for product {product_id}: {e}")
        raise

    logger.info(
        f"Cached {len(results)} reviews for product {product_id} "
        f"({inserted} new, stale after {stale_after.isoformat()})"
    )
    return get_entry(db, product_id)


def get_cached_reviews(
    db: Session, product_id: int, now: Optional[datetime] = None
) -> Optional[List[CachedReviewSnippet]]:
    """Fresh snippets for a product, or None when the caller should fetch live."""
    try:
        entry = get_entry(db, product_id)
        state = cache_state(entry, now)
        if state == CacheState.ABSENT:
            logger.debug(f"No review cache for product {product_id}")
            return None
        if state == CacheState.EXPIRED:
            logger.info(f"Review cache expired for product {product_id} (due {entry.next_search_due.isoformat()})")
            return None
        return get_snippets(db, product_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error reading review cache for product {product_id}: {e}")
        return None


def clear_cache(db: Session, product_id: int) -> bool:
    try:
        snippets = db.execute(
            delete(CachedReviewSnippet).where(CachedReviewSnippet.product_id == product_id)
        ).rowcount
        entries = db.execute(
            delete(ReviewCacheEntry).where(ReviewCacheEntry.product_id == product_id)
        ).rowcount
        commit_with_retry(db)
    except SQLAlchemyError:
        db.rollback()
        raise

    logger.info(f"Cleared review cache for product {product_id} ({snippets} snippets)")
    return bool(snippets or entries)


def to_search_results(snippets: Iterable[CachedReviewSnippet]) -> List[SearchResult]:
    return [
        SearchResult(
            title=s.title or "",
            snippet=s.snippet,
            url=s.source_url or "",
            source=s.source,
        )
        for s in snippets
    ]

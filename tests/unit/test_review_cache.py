"""Tests for the persistent review cache and its freshness policy."""

from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from models import CachedReviewSnippet, ReviewCacheEntry
from services.review_cache import (
    CacheState,
    _dialect_insert,
    cache_state,
    clear_cache,
    get_cached_reviews,
    get_entry,
    get_snippets,
    needs_refresh,
    store_reviews,
    to_search_results,
    upsert_snippets,
)
from services.serper_search import SearchResult


def _snippet_count(db_session, product_id):
    return db_session.execute(
        select(func.count()).select_from(CachedReviewSnippet).where(CachedReviewSnippet.product_id == product_id)
    ).scalar_one()


class TestFreshnessPolicy:

    def test_absent_without_entry(self, now):
        assert cache_state(None, now) == CacheState.ABSENT
        assert needs_refresh(CacheState.ABSENT)

    def test_fresh_before_due(self, now):
        entry = ReviewCacheEntry(next_search_due=now + timedelta(seconds=1))
        assert cache_state(entry, now) == CacheState.FRESH
        assert not needs_refresh(CacheState.FRESH)

    def test_expired_at_due_time(self, now):
        entry = ReviewCacheEntry(next_search_due=now)
        assert cache_state(entry, now) == CacheState.EXPIRED
        assert needs_refresh(CacheState.EXPIRED)


class TestStoreReviews:

    def test_round_trip_returns_stored_snippets(self, db_session, make_brand, make_product, make_result, now):
        product = make_product(make_brand(), "Air Max 270")
        results = [make_result(1), make_result(2), make_result(3)]

        entry = store_reviews(db_session, product.id, "Nike Air Max 270 reviews", results, now=now)

        assert entry.product_id == product.id
        assert entry.total_results == 3
        assert entry.last_search_at == now
        assert entry.next_search_due == now + timedelta(days=7)

        cached = get_cached_reviews(db_session, product.id, now=now + timedelta(days=1))
        assert cached is not None
        assert {s.source_url for s in cached} == {r.url for r in results}
        assert all(s.source == "reddit.com" for s in cached)

    def test_overlapping_results_are_not_duplicated(self, db_session, make_brand, make_product, make_result, now):
        product = make_product(make_brand(), "Air Max 270")

        store_reviews(db_session, product.id, "q", [make_result(1), make_result(2), make_result(3)], now=now)
        store_reviews(
            db_session,
            product.id,
            "q",
            [make_result(2), make_result(3), make_result(4)],
            now=now + timedelta(days=8),
        )

        assert _snippet_count(db_session, product.id) == 4

    def test_duplicate_urls_in_one_batch_collapse(self, db_session, make_brand, make_product, make_result, now):
        product = make_product(make_brand(), "Air Max 270")

        store_reviews(db_session, product.id, "q", [make_result(1), make_result(1)], now=now)

        assert _snippet_count(db_session, product.id) == 1

    def test_refresh_overwrites_single_entry(self, db_session, make_brand, make_product, make_result, now):
        product = make_product(make_brand(), "Air Max 270")
        later = now + timedelta(days=8)

        store_reviews(db_session, product.id, "first query", [make_result(1)], now=now)
        entry = store_reviews(db_session, product.id, "second query", [], now=later)

        rows = db_session.execute(
            select(func.count()).select_from(ReviewCacheEntry).where(ReviewCacheEntry.product_id == product.id)
        ).scalar_one()
        assert rows == 1
        assert entry.search_query == "second query"
        assert entry.total_results == 0
        assert entry.next_search_due == later + timedelta(days=7)

    def test_snippets_without_url_are_kept(self, db_session, make_brand, make_product, now):
        product = make_product(make_brand(), "Air Max 270")
        results = [
            SearchResult(title="", snippet="true to size", url="", source="forum"),
            SearchResult(title="", snippet="runs small", url="", source="forum"),
        ]

        store_reviews(db_session, product.id, "q", results, now=now)

        snippets = get_snippets(db_session, product.id)
        assert len(snippets) == 2
        assert all(s.source_url is None for s in snippets)

    def test_custom_ttl(self, db_session, make_brand, make_product, make_result, now):
        product = make_product(make_brand(), "Air Max 270")

        entry = store_reviews(db_session, product.id, "q", [make_result(1)], now=now, ttl=timedelta(days=1))

        assert entry.next_search_due == now + timedelta(days=1)


class TestGetCachedReviews:

    def test_never_searched_product_is_absent(self, db_session, make_brand, make_product, now):
        product = make_product(make_brand(), "Air Max 270")

        assert get_entry(db_session, product.id) is None
        assert get_snippets(db_session, product.id) == []
        assert get_cached_reviews(db_session, product.id, now=now) is None

    def test_expired_entry_is_treated_as_absent(self, db_session, make_brand, make_product, make_result, now):
        product = make_product(make_brand(), "Air Max 270")
        store_reviews(db_session, product.id, "q", [make_result(1)], now=now)

        assert get_cached_reviews(db_session, product.id, now=now + timedelta(days=7)) is None
        # expiry never deletes data
        assert get_entry(db_session, product.id) is not None
        assert _snippet_count(db_session, product.id) == 1

    def test_newest_first(self, db_session, make_brand, make_product, make_result, now):
        product = make_product(make_brand(), "Air Max 270")
        store_reviews(db_session, product.id, "q", [make_result(1)], now=now)
        store_reviews(db_session, product.id, "q", [make_result(2)], now=now + timedelta(days=8))

        cached = get_cached_reviews(db_session, product.id, now=now + timedelta(days=9))

        assert [s.source_url for s in cached] == [make_result(2).url, make_result(1).url]

    def test_persistence_error_reads_as_absent(self, db_session, make_brand, make_product, now):
        product = make_product(make_brand(), "Air Max 270")

        with patch(
            "services.review_cache.get_entry",
            side_effect=OperationalError("SELECT", {}, Exception("disk I/O error")),
        ):
            assert get_cached_reviews(db_session, product.id, now=now) is None


class TestClearCache:

    def test_clear_removes_entry_and_snippets(self, db_session, make_brand, make_product, make_result, now):
        product = make_product(make_brand(), "Air Max 270")
        store_reviews(db_session, product.id, "q", [make_result(1), make_result(2)], now=now)

        assert clear_cache(db_session, product.id) is True

        assert get_entry(db_session, product.id) is None
        assert _snippet_count(db_session, product.id) == 0

    def test_clear_empty_cache(self, db_session, make_brand, make_product):
        product = make_product(make_brand(), "Air Max 270")

        assert clear_cache(db_session, product.id) is False


def test_to_search_results(db_session, make_brand, make_product, make_result, now):
    product = make_product(make_brand(), "Air Max 270")
    store_reviews(db_session, product.id, "q", [make_result(1)], now=now)

    results = to_search_results(get_snippets(db_session, product.id))

    assert results == [make_result(1)]


class TestUpsertSnippets:

    def test_returns_only_new_rows(self, db_session, make_brand, make_product, make_result, now):
        product = make_product(make_brand(), "Air Max 270")
        store_reviews(db_session, product.id, "q", [make_result(1), make_result(2)], now=now)

        inserted = upsert_snippets(db_session, product.id, [make_result(2), make_result(3)], now)
        db_session.commit()

        assert inserted == 1
        assert _snippet_count(db_session, product.id) == 3

    def test_rows_skipped_on_conflict_are_not_counted(self, db_session, make_brand, make_product, make_result, now):
        product = make_product(make_brand(), "Air Max 270")
        store_reviews(db_session, product.id, "q", [make_result(1), make_result(2)], now=now)

        # another writer stored these URLs after the existing-URL read
        with patch("services.review_cache.set", return_value=set(), create=True):
            inserted = upsert_snippets(db_session, product.id, [make_result(2), make_result(3)], now)
        db_session.commit()

        assert inserted == 1
        assert _snippet_count(db_session, product.id) == 3


def test_unsupported_dialect():
    db = MagicMock()
    db.get_bind.return_value.dialect.name = "mysql"

    with pytest.raises(ValueError, match="mysql"):
        _dialect_insert(db, CachedReviewSnippet)

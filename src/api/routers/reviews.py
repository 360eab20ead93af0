"""API router for cached external reviews."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models import Product, get_db
from models.schemas import (
    CachedReviewResponse,
    CachedReviewsResponse,
    ClearCacheResponse,
    ReviewCacheEntryResponse,
    StoreReviewsRequest,
)
from services.review_cache import (
    clear_cache,
    get_cached_reviews,
    get_entry,
    store_reviews,
)
from services.serper_search import SearchResult, source_from_url

router = APIRouter()


def _require_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=404, detail=f"Product {product_id} not found")
    return product


@router.get("/{product_id}/reviews", response_model=CachedReviewsResponse)
async def read_cached_reviews(
    product_id: int,
    db: Session = Depends(get_db),
) -> CachedReviewsResponse:
    """
    Return fresh cached reviews for a product.

    A 404 means the cache is absent, expired or unreadable; callers fall back
    to a live search in every case.
    """
    reviews = get_cached_reviews(db, product_id)
    if reviews is None:
        raise HTTPException(status_code=404, detail="No fresh cached reviews")

    entry = get_entry(db, product_id)
    return CachedReviewsResponse(
        product_id=product_id,
        cache=ReviewCacheEntryResponse.model_validate(entry),
        reviews=[CachedReviewResponse.model_validate(r) for r in reviews],
    )


@router.post("/{product_id}/reviews", response_model=ReviewCacheEntryResponse, status_code=201)
async def store_product_reviews(
    product_id: int,
    request: StoreReviewsRequest,
    db: Session = Depends(get_db),
) -> ReviewCacheEntryResponse:
    _require_product(db, product_id)

    results = [
        SearchResult(
            title=r.title,
            snippet=r.snippet,
            url=r.url,
            source=r.source or source_from_url(r.url),
        )
        for r in request.results
    ]
    try:
        entry = store_reviews(db, product_id, request.search_query, results)
    except SQLAlchemyError as e:
        raise HTTPException(status_code=500, detail=f"Failed to store reviews: {e}")

    return ReviewCacheEntryResponse.model_validate(entry)


@router.delete("/{product_id}/reviews", response_model=ClearCacheResponse)
async def clear_product_reviews(
    product_id: int,
    db: Session = Depends(get_db),
) -> ClearCacheResponse:
    _require_product(db, product_id)
    return ClearCacheResponse(product_id=product_id, cleared=clear_cache(db, product_id))

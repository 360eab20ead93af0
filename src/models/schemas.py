from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SearchResultPayload(BaseModel):
    title: str = ""
    snippet: str
    url: str = ""
    source: Optional[str] = None


class StoreReviewsRequest(BaseModel):
    search_query: str = Field(..., min_length=1)
    results: List[SearchResultPayload] = Field(default_factory=list)


class CachedReviewResponse(BaseModel):
    id: int
    product_id: int
    source: str
    source_url: Optional[str]
    snippet: str
    title: Optional[str]
    search_date: datetime

    model_config = {"from_attributes": True}


class ReviewCacheEntryResponse(BaseModel):
    product_id: int
    search_query: str
    total_results: int
    last_search_at: datetime
    next_search_due: datetime

    model_config = {"from_attributes": True}


class CachedReviewsResponse(BaseModel):
    product_id: int
    cache: ReviewCacheEntryResponse
    reviews: List[CachedReviewResponse]


class ClearCacheResponse(BaseModel):
    product_id: int
    cleared: bool


class DuplicatePairResponse(BaseModel):
    product_id_a: int
    product_id_b: int
    brand_id: int
    similarity: float = Field(..., ge=0.0, le=1.0)


class MergeProductsRequest(BaseModel):
    keep_id: int
    delete_id: int


class MergeProductsResponse(BaseModel):
    success: bool
    keep_id: int
    delete_id: int


class RefreshSweepResponse(BaseModel):
    message: str
    products_refreshed: int
    errors: int
    total_products: int
